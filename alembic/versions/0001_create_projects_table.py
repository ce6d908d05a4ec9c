"""Create projects table and seed the default project.

Revision ID: 0001
Revises: None
Create Date: 2026-10-16

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

DEFAULT_PROJECT_ID = "00000000-0000-4000-a000-000000000001"
DEFAULT_PROJECT_SLUG = "psymetric"


def upgrade() -> None:
    """Create projects table."""
    op.create_table(
        "projects",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=False),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=100), nullable=False),
        sa.Column(
            "status",
            sa.String(length=50),
            server_default=sa.text("'active'"),
            nullable=False,
        ),
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
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_projects_slug"), "projects", ["slug"], unique=True)

    # Requests without project headers resolve to this project
    projects = sa.table(
        "projects",
        sa.column("id", postgresql.UUID(as_uuid=False)),
        sa.column("name", sa.String),
        sa.column("slug", sa.String),
    )
    op.bulk_insert(
        projects,
        [{"id": DEFAULT_PROJECT_ID, "name": "PsyMetric", "slug": DEFAULT_PROJECT_SLUG}],
    )


def downgrade() -> None:
    """Drop projects table."""
    op.drop_index(op.f("ix_projects_slug"), table_name="projects")
    op.drop_table("projects")
