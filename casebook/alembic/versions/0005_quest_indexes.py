"""index quests.status and quest_answers.quest_id

Revision ID: 0005_quest_indexes
Revises: 0004_unsolved_backfill
Create Date: 2025-11-10 10:02:00.000000

"""
from typing import Sequence, Union

from alembic import op

from casebook.alembic.helpers import create_index_safe

# revision identifiers, used by Alembic.
revision: str = "0005_quest_indexes"
down_revision: Union[str, Sequence[str], None] = "0004_unsolved_backfill"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()
    create_index_safe(conn, "quests_status_idx", "quests", ["status"])
    create_index_safe(conn, "quest_answers_quest_idx", "quest_answers", ["quest_id"])


def downgrade() -> None:
    op.drop_index("quest_answers_quest_idx", table_name="quest_answers")
    op.drop_index("quests_status_idx", table_name="quests")
