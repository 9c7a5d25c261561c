import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from casebook import crud
from casebook.auth.token import require_admin
from casebook.database import get_db
from casebook.models.user import User
from casebook.schemas.case_study_schema import CaseStudyListItem, DeleteOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.get("/case-studies", response_model=List[CaseStudyListItem])
def list_all_posts(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    posts = crud.list_case_studies(db, viewer_id=admin.id)
    # most reported first, newest first within the same count
    return sorted(posts, key=lambda p: (-p["report_count"], -p["id"]))


@router.delete("/case-studies/{case_study_id}", response_model=DeleteOut)
def force_delete_post(case_study_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    if not crud.delete_case_study(db, case_study_id):
        raise HTTPException(status_code=404, detail="Case study not found")

    logger.warning("Admin %s force-deleted case study %s", admin.id, case_study_id)
    return DeleteOut()
