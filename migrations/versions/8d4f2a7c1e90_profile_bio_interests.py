"""profile bio and interests

Revision ID: 8d4f2a7c1e90
Revises: 5c1e8a9d2b47
Create Date: 2026-10-19 14:03:27.114920

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "8d4f2a7c1e90"
down_revision: Union[str, Sequence[str], None] = "5c1e8a9d2b47"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Add the free-text bio and the interests list to profiles."""
    with op.batch_alter_table("user_profile") as batch_op:
        batch_op.add_column(sa.Column("bio", sa.Text(), nullable=True))
        batch_op.add_column(
            sa.Column("interests", sa.JSON(), nullable=False, server_default="[]")
        )


def downgrade() -> None:
    """Drop the profile bio and interests."""
    with op.batch_alter_table("user_profile") as batch_op:
        batch_op.drop_column("interests")
        batch_op.drop_column("bio")
