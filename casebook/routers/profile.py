from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from casebook import crud
from casebook.auth.token import get_current_user, get_optional_user
from casebook.database import get_db
from casebook.models.user import User
from casebook.schemas.case_study_schema import CaseStudyOut
from casebook.schemas.user_schema import NameUpdate, NameUpdateOut, ProfileOut

router = APIRouter(prefix="/api/profile", tags=["Profile"])


@router.get("/me/posts", response_model=List[CaseStudyOut])
def my_posts(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return crud.list_user_case_studies(db, user.id)


@router.put("/me/name", response_model=NameUpdateOut)
def update_my_name(payload: NameUpdate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    # The target is always the caller; nobody renames someone else
    if not crud.update_user_name(db, user.id, payload.name):
        raise HTTPException(status_code=404, detail="User not found")
    return NameUpdateOut(name=payload.name)


@router.get("/{user_id}", response_model=ProfileOut)
def get_profile(
    user_id: int,
    db: Session = Depends(get_db),
    viewer: Optional[User] = Depends(get_optional_user),
):
    profile = crud.get_user_public(db, user_id)
    if not profile:
        raise HTTPException(status_code=404, detail="User not found")

    return {
        "user": profile,
        "posts": crud.list_user_case_studies(db, user_id),
        "is_owner": viewer is not None and viewer.id == user_id,
    }
