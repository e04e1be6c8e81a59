"""initial failure and info-gathering stores

Revision ID: a1f3c9d2e7b4
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "a1f3c9d2e7b4"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

failure_error_type = sa.Enum(
    "element_not_found",
    "navigation_failure",
    "timeout",
    "unknown",
    name="failure_error_type",
)


def upgrade() -> None:
    op.create_table(
        "failures",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("task_name", sa.String(length=100), nullable=False),
        sa.Column("error_type", failure_error_type, nullable=False),
        sa.Column("fingerprint", sa.String(length=64), nullable=False),
        sa.Column("context", sa.JSON(), nullable=False),
        sa.Column("first_seen_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("count", sa.Integer(), nullable=False),
        sa.Column("dismissed", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_failures_task_name", "failures", ["task_name"])
    op.create_index("ix_failures_last_seen_at", "failures", ["last_seen_at"])

    op.create_table(
        "info_gathering_results",
        sa.Column("task_name", sa.String(length=100), nullable=False),
        sa.Column("category", sa.String(length=255), nullable=False),
        sa.Column("display_name", sa.Text(), nullable=False),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.Column("data_type", sa.String(length=20), nullable=False),
        sa.Column("rendered_by", sa.String(length=255), nullable=True),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("task_name"),
    )


def downgrade() -> None:
    op.drop_table("info_gathering_results")
    op.drop_index("ix_failures_last_seen_at", table_name="failures")
    op.drop_index("ix_failures_task_name", table_name="failures")
    op.drop_table("failures")
    failure_error_type.drop(op.get_bind(), checkfirst=True)
