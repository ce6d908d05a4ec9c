"""Create keyword_targets table.

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-16

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0002"
down_revision: str | None = "0001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create keyword_targets table."""
    op.create_table(
        "keyword_targets",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=False),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("project_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("query", sa.String(length=500), nullable=False),
        sa.Column("locale", sa.String(length=10), nullable=False),
        sa.Column("device", sa.String(length=20), nullable=False),
        sa.Column(
            "is_primary",
            sa.Boolean(),
            server_default=sa.text("false"),
            nullable=False,
        ),
        sa.Column("intent", sa.String(length=50), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ["project_id"],
            ["projects.id"],
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "project_id",
            "query",
            "locale",
            "device",
            name="uq_keyword_targets_project_query_locale_device",
        ),
    )
    op.create_index(
        op.f("ix_keyword_targets_project_id"),
        "keyword_targets",
        ["project_id"],
        unique=False,
    )


def downgrade() -> None:
    """Drop keyword_targets table."""
    op.drop_index(op.f("ix_keyword_targets_project_id"), table_name="keyword_targets")
    op.drop_table("keyword_targets")
