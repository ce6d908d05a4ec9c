"""Create serp_snapshots table.

Snapshots are append-only; the natural key
(project_id, query, locale, device, captured_at) makes replayed ingests
idempotent.

Revision ID: 0003
Revises: 0002
Create Date: 2026-10-16

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0003"
down_revision: str | None = "0002"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create serp_snapshots table."""
    op.create_table(
        "serp_snapshots",
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
        sa.Column("captured_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("valid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "raw_payload",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        sa.Column("payload_schema_version", sa.String(length=50), nullable=True),
        sa.Column(
            "ai_overview_status",
            sa.String(length=20),
            server_default=sa.text("'unknown'"),
            nullable=False,
        ),
        sa.Column("ai_overview_text", sa.Text(), nullable=True),
        sa.Column("source", sa.String(length=50), nullable=False),
        sa.Column("batch_ref", sa.String(length=255), nullable=True),
        sa.Column(
            "created_at",
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
            "captured_at",
            name="uq_serp_snapshots_natural_key",
        ),
    )
    op.create_index(
        op.f("ix_serp_snapshots_project_id"),
        "serp_snapshots",
        ["project_id"],
        unique=False,
    )
    op.create_index(
        "ix_serp_snapshots_target_captured_at",
        "serp_snapshots",
        ["project_id", "query", "locale", "device", "captured_at"],
        unique=False,
    )


def downgrade() -> None:
    """Drop serp_snapshots table."""
    op.drop_index("ix_serp_snapshots_target_captured_at", table_name="serp_snapshots")
    op.drop_index(op.f("ix_serp_snapshots_project_id"), table_name="serp_snapshots")
    op.drop_table("serp_snapshots")
