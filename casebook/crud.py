# casebook/crud.py
"""
Data access for users, case studies, favorites, reports and quests.

Every function takes the request's ``Session``. List reads return plain dict
rows with the author's name and avatar joined in, so routers can shape a whole
feed from one query. Reads swallow store outages (logged, empty result);
writes let errors propagate, except inserts guarded by a unique index, which
report an ``Outcome`` instead.
"""
import enum
import functools
import logging
from typing import Any, Iterable

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, OperationalError, PendingRollbackError
from sqlalchemy.orm import Session

from casebook.core.config import settings
from casebook.database import utcnow
from casebook.models.case_study import CaseStudy, CaseStudyCategory
from casebook.models.favorite import Favorite
from casebook.models.quests import Quest, QuestAnswer, QuestStatus
from casebook.models.report import Report
from casebook.models.user import User, UserRole

logger = logging.getLogger(__name__)


class Outcome(str, enum.Enum):
    created = "created"
    already_exists = "already_exists"


def _resilient_read(default):
    """Return ``default()`` instead of raising when the store is unavailable."""
    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(db: Session, *args, **kwargs):
            try:
                return fn(db, *args, **kwargs)
            except (OperationalError, PendingRollbackError):
                logger.warning("[Database] %s failed: database not available", fn.__name__, exc_info=True)
                # rollback() expires every loaded instance; keep the caller's
                # objects readable unless there are writes to discard
                if db.new or db.dirty or db.deleted:
                    db.rollback()
                return default()
        return wrapper
    return decorator


# ========================================
# Users
# ========================================

USER_TEXT_FIELDS = ("name", "email", "avatar_url", "login_method")


def upsert_user(db: Session, open_id: str, role: UserRole | None = None, **fields: Any) -> User:
    """Insert or refresh a user by external auth id.

    Only the text fields passed in are written. Owners listed in the
    allow-list are promoted to admin unless ``role`` is given explicitly.
    """
    if not open_id:
        raise ValueError("open_id is required for upsert")

    unknown = set(fields) - set(USER_TEXT_FIELDS)
    if unknown:
        raise TypeError(f"Unknown user fields: {', '.join(sorted(unknown))}")

    if role is None and open_id in settings.owner_open_ids():
        role = UserRole.admin

    def apply(user: User) -> None:
        for key, value in fields.items():
            setattr(user, key, value)
        if role is not None:
            user.role = role
        user.last_signed_in = utcnow()

    user = db.execute(select(User).where(User.open_id == open_id)).scalar_one_or_none()
    if user is None:
        user = User(open_id=open_id)
        apply(user)
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            # Signed in twice at once; the other request inserted the row
            db.rollback()
            user = db.execute(select(User).where(User.open_id == open_id)).scalar_one()
            apply(user)
            db.commit()
    else:
        apply(user)
        db.commit()

    db.refresh(user)
    return user


@_resilient_read(lambda: None)
def get_user(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


@_resilient_read(lambda: None)
def get_user_by_open_id(db: Session, open_id: str) -> User | None:
    return db.execute(select(User).where(User.open_id == open_id)).scalar_one_or_none()


@_resilient_read(lambda: None)
def get_user_public(db: Session, user_id: int) -> dict | None:
    row = db.execute(
        select(User.id, User.name, User.avatar_url, User.created_at).where(User.id == user_id)
    ).first()
    if row is None:
        return None
    return {"id": row.id, "name": row.name, "avatar_url": row.avatar_url, "created_at": row.created_at}


def update_user_name(db: Session, user_id: int, name: str) -> bool:
    result = db.execute(
        update(User).where(User.id == user_id).values(name=name, updated_at=utcnow())
    )
    db.commit()
    return result.rowcount > 0


# ========================================
# Case studies
# ========================================

CASE_STUDY_FIELDS = (
    "title", "description", "thumbnail_url", "category", "tools", "challenge",
    "solution", "steps", "impact", "tags", "is_recommended",
)


def _case_study_view_query():
    report_counts = (
        select(Report.case_study_id, func.count(Report.id).label("report_count"))
        .group_by(Report.case_study_id)
        .subquery()
    )
    favorite_counts = (
        select(Favorite.case_study_id, func.count(Favorite.id).label("favorite_count"))
        .group_by(Favorite.case_study_id)
        .subquery()
    )
    return (
        select(
            CaseStudy,
            User.name.label("author_name"),
            User.avatar_url.label("author_avatar_url"),
            func.coalesce(report_counts.c.report_count, 0).label("report_count"),
            func.coalesce(favorite_counts.c.favorite_count, 0).label("favorite_count"),
        )
        .outerjoin(User, CaseStudy.user_id == User.id)
        .outerjoin(report_counts, report_counts.c.case_study_id == CaseStudy.id)
        .outerjoin(favorite_counts, favorite_counts.c.case_study_id == CaseStudy.id)
    )


def case_study_row(case_study: CaseStudy, **extra: Any) -> dict:
    row = {
        "id": case_study.id,
        "user_id": case_study.user_id,
        "created_at": case_study.created_at,
        "updated_at": case_study.updated_at,
    }
    for key in CASE_STUDY_FIELDS:
        row[key] = getattr(case_study, key)
    row.update(extra)
    return row


def _view_rows(rows: Iterable, favorite_ids: set[int], reported_ids: set[int]) -> list[dict]:
    return [
        case_study_row(
            row.CaseStudy,
            author_name=row.author_name,
            author_avatar_url=row.author_avatar_url,
            report_count=row.report_count,
            favorite_count=row.favorite_count,
            is_favorite=row.CaseStudy.id in favorite_ids,
            is_reported=row.CaseStudy.id in reported_ids,
        )
        for row in rows
    ]


@_resilient_read(list)
def list_case_studies(
    db: Session,
    viewer_id: int | None = None,
    category: CaseStudyCategory | None = None,
    search: str | None = None,
) -> list[dict]:
    """All case studies, oldest first, annotated for ``viewer_id`` when given."""
    stmt = _case_study_view_query()
    if category is not None:
        stmt = stmt.where(CaseStudy.category == category)
    if search:
        pattern = f"%{search.strip().lower()}%"
        stmt = stmt.where(
            func.lower(CaseStudy.title).like(pattern) | func.lower(CaseStudy.description).like(pattern)
        )
    rows = db.execute(stmt.order_by(CaseStudy.created_at, CaseStudy.id)).all()

    favorite_ids = list_user_favorite_ids(db, viewer_id) if viewer_id else set()
    reported_ids = list_user_reported_ids(db, viewer_id) if viewer_id else set()
    return _view_rows(rows, favorite_ids, reported_ids)


@_resilient_read(lambda: None)
def get_case_study_view(db: Session, case_study_id: int, viewer_id: int | None = None) -> dict | None:
    row = db.execute(_case_study_view_query().where(CaseStudy.id == case_study_id)).first()
    if row is None:
        return None
    favorite_ids = {case_study_id} if viewer_id and is_favorite(db, viewer_id, case_study_id) else set()
    reported_ids = list_user_reported_ids(db, viewer_id) if viewer_id else set()
    return _view_rows([row], favorite_ids, reported_ids)[0]


@_resilient_read(lambda: None)
def get_case_study(db: Session, case_study_id: int) -> CaseStudy | None:
    return db.get(CaseStudy, case_study_id)


def create_case_study(db: Session, user_id: int, **fields: Any) -> CaseStudy:
    case_study = CaseStudy(user_id=user_id, **fields)
    db.add(case_study)
    db.commit()
    db.refresh(case_study)
    return case_study


def update_case_study(db: Session, case_study: CaseStudy, fields: dict[str, Any]) -> CaseStudy:
    """Write every supplied field, None included; ownership is checked by the caller."""
    unknown = set(fields) - set(CASE_STUDY_FIELDS)
    if unknown:
        raise TypeError(f"Unknown case study fields: {', '.join(sorted(unknown))}")
    for key, value in fields.items():
        setattr(case_study, key, value)
    case_study.updated_at = utcnow()
    db.commit()
    db.refresh(case_study)
    return case_study


def delete_case_study(db: Session, case_study_id: int) -> bool:
    db.execute(delete(Favorite).where(Favorite.case_study_id == case_study_id))
    db.execute(delete(Report).where(Report.case_study_id == case_study_id))
    result = db.execute(delete(CaseStudy).where(CaseStudy.id == case_study_id))
    db.commit()
    return result.rowcount > 0


@_resilient_read(list)
def list_user_case_studies(db: Session, user_id: int) -> list[CaseStudy]:
    return list(
        db.execute(
            select(CaseStudy).where(CaseStudy.user_id == user_id).order_by(CaseStudy.created_at, CaseStudy.id)
        ).scalars()
    )


# ========================================
# Favorites
# ========================================

@_resilient_read(lambda: False)
def is_favorite(db: Session, user_id: int, case_study_id: int) -> bool:
    return db.execute(
        select(Favorite.id).where(Favorite.user_id == user_id, Favorite.case_study_id == case_study_id).limit(1)
    ).first() is not None


def add_favorite(db: Session, user_id: int, case_study_id: int) -> Outcome:
    db.add(Favorite(user_id=user_id, case_study_id=case_study_id))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return Outcome.already_exists
    return Outcome.created


def remove_favorite(db: Session, user_id: int, case_study_id: int) -> bool:
    result = db.execute(
        delete(Favorite).where(Favorite.user_id == user_id, Favorite.case_study_id == case_study_id)
    )
    db.commit()
    return result.rowcount > 0


@_resilient_read(lambda: 0)
def count_favorites(db: Session, case_study_id: int) -> int:
    return db.execute(
        select(func.count(Favorite.id)).where(Favorite.case_study_id == case_study_id)
    ).scalar_one()


@_resilient_read(set)
def list_user_favorite_ids(db: Session, user_id: int) -> set[int]:
    return set(db.execute(select(Favorite.case_study_id).where(Favorite.user_id == user_id)).scalars())


@_resilient_read(list)
def list_user_favorites(db: Session, user_id: int) -> list[dict]:
    rows = db.execute(
        _case_study_view_query()
        .join(Favorite, (Favorite.case_study_id == CaseStudy.id) & (Favorite.user_id == user_id))
        .order_by(Favorite.created_at, Favorite.id)
    ).all()
    return _view_rows(rows, {row.CaseStudy.id for row in rows}, list_user_reported_ids(db, user_id))


# ========================================
# Reports
# ========================================

def create_report(db: Session, user_id: int, case_study_id: int) -> Outcome:
    db.add(Report(user_id=user_id, case_study_id=case_study_id))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return Outcome.already_exists
    return Outcome.created


@_resilient_read(lambda: 0)
def count_reports(db: Session, case_study_id: int) -> int:
    return db.execute(
        select(func.count(Report.id)).where(Report.case_study_id == case_study_id)
    ).scalar_one()


@_resilient_read(set)
def list_user_reported_ids(db: Session, user_id: int) -> set[int]:
    return set(db.execute(select(Report.case_study_id).where(Report.user_id == user_id)).scalars())


# ========================================
# Quests
# ========================================

def _quest_row(quest: Quest, **extra: Any) -> dict:
    row = {
        "id": quest.id,
        "user_id": quest.user_id,
        "title": quest.title,
        "content": quest.content,
        "status": quest.status,
        "solved_answer_id": quest.solved_answer_id,
        "solver_user_id": quest.solver_user_id,
        "created_at": quest.created_at,
        "updated_at": quest.updated_at,
        "closed_at": quest.closed_at,
    }
    row.update(extra)
    return row


def _quest_view_query():
    answer_counts = (
        select(QuestAnswer.quest_id, func.count(QuestAnswer.id).label("answer_count"))
        .group_by(QuestAnswer.quest_id)
        .subquery()
    )
    return (
        select(
            Quest,
            User.name.label("author_name"),
            User.avatar_url.label("author_avatar_url"),
            func.coalesce(answer_counts.c.answer_count, 0).label("answer_count"),
        )
        .outerjoin(User, Quest.user_id == User.id)
        .outerjoin(answer_counts, answer_counts.c.quest_id == Quest.id)
    )


@_resilient_read(list)
def list_quests(db: Session, status: QuestStatus | None = None) -> list[dict]:
    """Quests newest first, with author and answer count."""
    stmt = _quest_view_query()
    if status is not None:
        stmt = stmt.where(Quest.status == status)
    rows = db.execute(stmt.order_by(Quest.created_at.desc(), Quest.id.desc())).all()
    return [
        _quest_row(
            row.Quest,
            author_name=row.author_name,
            author_avatar_url=row.author_avatar_url,
            answer_count=row.answer_count,
        )
        for row in rows
    ]


@_resilient_read(lambda: None)
def get_quest(db: Session, quest_id: int) -> Quest | None:
    return db.get(Quest, quest_id)


@_resilient_read(lambda: None)
def get_quest_view(db: Session, quest_id: int) -> dict | None:
    # populate_existing: a close lost to another session must show the stored status
    row = db.execute(
        _quest_view_query().where(Quest.id == quest_id).execution_options(populate_existing=True)
    ).first()
    if row is None:
        return None
    return _quest_row(
        row.Quest,
        author_name=row.author_name,
        author_avatar_url=row.author_avatar_url,
        answer_count=row.answer_count,
    )


def create_quest(db: Session, user_id: int, title: str, content: str) -> Quest:
    quest = Quest(user_id=user_id, title=title, content=content, status=QuestStatus.open)
    db.add(quest)
    db.commit()
    db.refresh(quest)
    return quest


def close_quest(
    db: Session,
    quest_id: int,
    status: QuestStatus,
    solved_answer_id: int | None,
    solver_user_id: int | None,
) -> bool:
    """Move an open quest to ``status`` in a single conditional update.

    Returns False when the quest had already left ``open``; nothing is
    written in that case.
    """
    if not status.is_terminal:
        raise ValueError("A quest can only be closed with a terminal status")

    now = utcnow()
    result = db.execute(
        update(Quest)
        .where(Quest.id == quest_id, Quest.status == QuestStatus.open)
        .values(
            status=status,
            solved_answer_id=solved_answer_id,
            solver_user_id=solver_user_id,
            closed_at=now,
            updated_at=now,
        )
        .execution_options(synchronize_session="fetch")
    )
    db.commit()
    return result.rowcount == 1


def create_quest_answer(db: Session, quest_id: int, user_id: int, content: str) -> QuestAnswer:
    answer = QuestAnswer(quest_id=quest_id, user_id=user_id, content=content)
    db.add(answer)
    db.commit()
    db.refresh(answer)
    return answer


@_resilient_read(lambda: None)
def get_quest_answer(db: Session, answer_id: int) -> QuestAnswer | None:
    return db.get(QuestAnswer, answer_id)


@_resilient_read(list)
def list_quest_answers(db: Session, quest_id: int) -> list[dict]:
    """Answers of a quest, first posted first."""
    rows = db.execute(
        select(QuestAnswer, User.name.label("author_name"), User.avatar_url.label("author_avatar_url"))
        .outerjoin(User, QuestAnswer.user_id == User.id)
        .where(QuestAnswer.quest_id == quest_id)
        .order_by(QuestAnswer.created_at, QuestAnswer.id)
    ).all()
    return [
        {
            "id": row.QuestAnswer.id,
            "quest_id": row.QuestAnswer.quest_id,
            "user_id": row.QuestAnswer.user_id,
            "content": row.QuestAnswer.content,
            "created_at": row.QuestAnswer.created_at,
            "updated_at": row.QuestAnswer.updated_at,
            "author_name": row.author_name,
            "author_avatar_url": row.author_avatar_url,
        }
        for row in rows
    ]


@_resilient_read(lambda: 0)
def count_quest_answers(db: Session, quest_id: int) -> int:
    return db.execute(
        select(func.count(QuestAnswer.id)).where(QuestAnswer.quest_id == quest_id)
    ).scalar_one()
