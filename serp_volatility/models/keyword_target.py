"""KeywordTarget model: a tracked query/locale/device combination.

The query is stored normalised (trimmed, whitespace collapsed,
lower-cased). UniqueConstraint on (project_id, query, locale, device)
prevents duplicate targets per project; snapshots attach to a target
through the same natural key.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from serp_volatility.core.database import Base

if TYPE_CHECKING:
    from serp_volatility.models.project import Project


class DeviceType(str, Enum):
    """Device class a SERP was captured for."""

    DESKTOP = "desktop"
    MOBILE = "mobile"


class KeywordTarget(Base):
    """KeywordTarget model.

    Attributes:
        id: UUID primary key
        project_id: FK to project (CASCADE delete)
        query: Normalised search query
        locale: Locale code (e.g. 'en-US')
        device: 'desktop' or 'mobile'
        is_primary: Whether this is a primary keyword for the project
        intent: Optional search intent label
        notes: Optional free-form notes
        created_at: Timestamp when target was created
        updated_at: Timestamp when target was last updated
    """

    __tablename__ = "keyword_targets"

    __table_args__ = (
        UniqueConstraint(
            "project_id",
            "query",
            "locale",
            "device",
            name="uq_keyword_targets_project_query_locale_device",
        ),
    )

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
        server_default=text("gen_random_uuid()"),
    )

    project_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    query: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )

    locale: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
    )

    device: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    is_primary: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    intent: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    notes: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
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

    project: Mapped["Project"] = relationship(
        "Project",
        back_populates="keyword_targets",
    )

    def __repr__(self) -> str:
        return (
            f"<KeywordTarget(id={self.id!r}, query={self.query!r}, "
            f"locale={self.locale!r}, device={self.device!r})>"
        )
