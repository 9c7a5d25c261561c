"""create reports, one per user and post

Revision ID: 0002_reports
Revises: 0001_user_avatar
Create Date: 2025-11-03 10:20:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from casebook.alembic.helpers import create_index_safe, has_table

# revision identifiers, used by Alembic.
revision: str = "0002_reports"
down_revision: Union[str, Sequence[str], None] = "0001_user_avatar"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()
    if not has_table(conn, "reports"):
        op.create_table(
            "reports",
            sa.Column("id", sa.Integer, primary_key=True),
            sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
            sa.Column(
                "case_study_id",
                sa.Integer,
                sa.ForeignKey("case_studies.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        )
    create_index_safe(conn, "reports_user_case_unique", "reports", ["user_id", "case_study_id"], unique=True)


def downgrade() -> None:
    op.drop_index("reports_user_case_unique", table_name="reports")
    op.drop_table("reports")
