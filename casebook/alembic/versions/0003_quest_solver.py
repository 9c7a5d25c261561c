"""add quests.solved_answer_id and quests.solver_user_id

Revision ID: 0003_quest_solver
Revises: 0002_reports
Create Date: 2025-11-10 09:41:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from casebook.alembic.helpers import has_column

# revision identifiers, used by Alembic.
revision: str = "0003_quest_solver"
down_revision: Union[str, Sequence[str], None] = "0002_reports"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()
    # plain integers: SQLite cannot add a foreign key with ALTER TABLE
    for column in ("solved_answer_id", "solver_user_id"):
        if not has_column(conn, "quests", column):
            op.add_column("quests", sa.Column(column, sa.Integer(), nullable=True))


def downgrade() -> None:
    with op.batch_alter_table("quests") as batch:
        batch.drop_column("solver_user_id")
        batch.drop_column("solved_answer_id")
