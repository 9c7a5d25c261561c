"""legacy quest status 'closed' becomes 'unsolved'

Revision ID: 0004_unsolved_backfill
Revises: 0003_quest_solver
Create Date: 2025-11-10 09:55:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0004_unsolved_backfill"
down_revision: Union[str, Sequence[str], None] = "0003_quest_solver"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute(sa.text("UPDATE quests SET status = 'unsolved' WHERE status = 'closed'"))


def downgrade() -> None:
    # backfilled rows can't be told apart from real unsolved quests
    pass
