"""Project model: the tenant boundary for keyword targets and snapshots.

Every keyword target and SERP snapshot belongs to exactly one project.
Requests name their project by id or slug; nothing is ever read across
projects.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy import DateTime, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from serp_volatility.core.database import Base

if TYPE_CHECKING:
    from serp_volatility.models.keyword_target import KeywordTarget


class Project(Base):
    """Project model.

    Attributes:
        id: UUID primary key
        name: Human-readable project name
        slug: Unique URL-safe identifier accepted in the X-Project-Slug header
        status: Project status ('active' or 'archived')
        created_at: Timestamp when project was created
        updated_at: Timestamp when project was last updated
    """

    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
        server_default=text("gen_random_uuid()"),
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    slug: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
        index=True,
    )

    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="active",
        server_default=text("'active'"),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=text("now()"),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=text("now()"),
        onupdate=lambda: datetime.now(UTC),
    )

    keyword_targets: Mapped[list["KeywordTarget"]] = relationship(
        "KeywordTarget",
        back_populates="project",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Project(id={self.id!r}, slug={self.slug!r})>"
