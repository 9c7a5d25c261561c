import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from casebook import crud
from casebook.auth.token import get_current_user, get_optional_user
from casebook.database import get_db
from casebook.models.case_study import CaseStudy, CaseStudyCategory
from casebook.models.user import User
from casebook.schemas.case_study_schema import (
    CaseStudyCreate,
    CaseStudyCreated,
    CaseStudyListItem,
    CaseStudyUpdate,
    DeleteOut,
    FavoriteToggleOut,
    ReportOut,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/case-studies", tags=["Case Studies"])


def _get_or_404(db: Session, case_study_id: int) -> CaseStudy:
    case_study = crud.get_case_study(db, case_study_id)
    if not case_study:
        raise HTTPException(status_code=404, detail="Case study not found")
    return case_study


@router.get("/", response_model=List[CaseStudyListItem])
def list_case_studies(
    category: Optional[CaseStudyCategory] = None,
    q: Optional[str] = None,
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user),
):
    return crud.list_case_studies(db, viewer_id=user.id if user else None, category=category, search=q)


@router.get("/favorites", response_model=List[CaseStudyListItem])
def my_favorites(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return crud.list_user_favorites(db, user.id)


@router.get("/{case_study_id}", response_model=CaseStudyListItem)
def get_case_study(
    case_study_id: int,
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user),
):
    row = crud.get_case_study_view(db, case_study_id, viewer_id=user.id if user else None)
    if not row:
        raise HTTPException(status_code=404, detail="Case study not found")
    return row


@router.post("/", response_model=CaseStudyCreated, status_code=status.HTTP_201_CREATED)
def create_case_study(
    payload: CaseStudyCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    case_study = crud.create_case_study(db, user.id, **payload.model_dump())
    logger.info("User %s posted case study %s", user.id, case_study.id)
    return CaseStudyCreated(id=case_study.id)


@router.put("/{case_study_id}", response_model=CaseStudyListItem)
def update_case_study(
    case_study_id: int,
    payload: CaseStudyUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    case_study = _get_or_404(db, case_study_id)
    if case_study.user_id != user.id:
        raise HTTPException(status_code=403, detail="You can only edit your own posts")

    crud.update_case_study(db, case_study, payload.model_dump(exclude_unset=True))
    return crud.get_case_study_view(db, case_study_id, viewer_id=user.id)


@router.delete("/{case_study_id}", response_model=DeleteOut)
def delete_case_study(
    case_study_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    case_study = _get_or_404(db, case_study_id)
    if case_study.user_id != user.id and not user.is_admin:
        raise HTTPException(status_code=403, detail="You can only delete your own posts")

    crud.delete_case_study(db, case_study_id)
    logger.info("User %s deleted case study %s", user.id, case_study_id)
    return DeleteOut()


@router.post("/{case_study_id}/favorite", response_model=FavoriteToggleOut)
def toggle_favorite(
    case_study_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    _get_or_404(db, case_study_id)

    if crud.is_favorite(db, user.id, case_study_id):
        crud.remove_favorite(db, user.id, case_study_id)
        favorited = False
    else:
        # A racing double click lands on "favorited" either way
        crud.add_favorite(db, user.id, case_study_id)
        favorited = True

    return FavoriteToggleOut(favorited=favorited, favorite_count=crud.count_favorites(db, case_study_id))


@router.post("/{case_study_id}/report", response_model=ReportOut)
def report_case_study(
    case_study_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    case_study = _get_or_404(db, case_study_id)
    if case_study.user_id == user.id:
        raise HTTPException(status_code=400, detail="You cannot report your own post")

    outcome = crud.create_report(db, user.id, case_study_id)
    if outcome is crud.Outcome.created:
        logger.info("User %s reported case study %s", user.id, case_study_id)
    return ReportOut(already_reported=outcome is crud.Outcome.already_exists)
