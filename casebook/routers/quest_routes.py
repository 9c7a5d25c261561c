# routers/quest_routes.py

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from casebook import crud
from casebook.auth.token import get_current_user
from casebook.database import get_db
from casebook.models.quests import Quest, QuestStatus
from casebook.models.user import User
from casebook.schemas.quest_schema import (
    QuestAnswerCreate,
    QuestClose,
    QuestCloseOut,
    QuestCreate,
    QuestCreated,
    QuestDetail,
    QuestOut,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/quests", tags=["Quests"])


def _get_or_404(db: Session, quest_id: int) -> Quest:
    quest = crud.get_quest(db, quest_id)
    if not quest:
        raise HTTPException(status_code=404, detail="Quest not found")
    return quest


@router.get("/", response_model=List[QuestOut])
def get_all_quests(status: Optional[QuestStatus] = None, db: Session = Depends(get_db)):
    return crud.list_quests(db, status=status)


@router.get("/{quest_id}", response_model=QuestDetail)
def get_quest_by_id(quest_id: int, db: Session = Depends(get_db)):
    quest = crud.get_quest_view(db, quest_id)
    if not quest:
        raise HTTPException(status_code=404, detail="Quest not found")

    return {"quest": quest, "answers": crud.list_quest_answers(db, quest_id)}


@router.post("/", response_model=QuestCreated, status_code=status.HTTP_201_CREATED)
def create_quest(quest: QuestCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    new_quest = crud.create_quest(db, user.id, quest.title, quest.content)
    logger.info("User %s opened quest %s", user.id, new_quest.id)
    return QuestCreated(id=new_quest.id)


@router.post("/{quest_id}/answers", response_model=QuestCreated, status_code=status.HTTP_201_CREATED)
def answer_quest(
    quest_id: int,
    answer: QuestAnswerCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    quest = _get_or_404(db, quest_id)
    if quest.status is not QuestStatus.open:
        raise HTTPException(status_code=400, detail="This quest is closed and no longer accepts answers")

    new_answer = crud.create_quest_answer(db, quest_id, user.id, answer.content)
    return QuestCreated(id=new_answer.id)


@router.post("/{quest_id}/close", response_model=QuestCloseOut)
def close_quest(
    quest_id: int,
    payload: QuestClose,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    # 1. Only the author decides the outcome
    quest = _get_or_404(db, quest_id)
    if quest.user_id != user.id:
        raise HTTPException(status_code=403, detail="Only the quest author can close it")

    # 2. Terminal quests stay as they are
    if quest.status.is_terminal:
        return QuestCloseOut(already_closed=True, quest=crud.get_quest_view(db, quest_id))

    # 3. A finished quest needs one of its own answers as the solver
    solver_user_id = None
    if payload.target_status is QuestStatus.finished:
        if crud.count_quest_answers(db, quest_id) == 0:
            raise HTTPException(status_code=400, detail="A quest needs at least one answer to be finished")
        answer = crud.get_quest_answer(db, payload.solved_answer_id)
        if not answer or answer.quest_id != quest_id:
            raise HTTPException(status_code=400, detail="The chosen answer does not belong to this quest")
        solver_user_id = answer.user_id

    # 4. Conditional update; losing a race with another close is "already closed"
    changed = crud.close_quest(db, quest_id, payload.target_status, payload.solved_answer_id, solver_user_id)
    if changed:
        logger.info("Quest %s closed as %s by user %s", quest_id, payload.status, user.id)

    return QuestCloseOut(already_closed=not changed, quest=crud.get_quest_view(db, quest_id))
