"""add users.avatarUrl

Revision ID: 0001_user_avatar
Revises:
Create Date: 2025-11-03 10:12:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from casebook.alembic.helpers import has_column

# revision identifiers, used by Alembic.
revision: str = "0001_user_avatar"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    if not has_column(op.get_bind(), "users", "avatarUrl"):
        op.add_column("users", sa.Column("avatarUrl", sa.Text(), nullable=True))


def downgrade() -> None:
    with op.batch_alter_table("users") as batch:
        batch.drop_column("avatarUrl")
