"""SerpSnapshot model: one append-only capture of a result page.

Snapshots are keyed by (project_id, query, locale, device, captured_at).
Replaying the same capture returns the stored row instead of inserting a
duplicate. Ranked results and feature tags are derived from raw_payload
on read, see serp_volatility.utils.serp_extraction.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from serp_volatility.core.database import Base


class AIOverviewStatus(str, Enum):
    """Whether the result page carried an AI overview block."""

    PRESENT = "present"
    ABSENT = "absent"
    PARSE_ERROR = "parse_error"
    UNKNOWN = "unknown"


class SnapshotSource(str, Enum):
    """Where the snapshot payload came from."""

    DATAFORSEO = "dataforseo"
    MANUAL = "manual"


class SerpSnapshot(Base):
    """SerpSnapshot model.

    Attributes:
        id: UUID primary key
        project_id: FK to project (CASCADE delete)
        query: Normalised query of the owning keyword target
        locale: Locale of the owning keyword target
        device: Device of the owning keyword target
        captured_at: When the result page was captured (UTC)
        valid_at: Optional time the provider reports the data as valid for
        raw_payload: Provider payload as returned
        payload_schema_version: Optional version tag of raw_payload's shape
        ai_overview_status: present/absent/parse_error/unknown
        ai_overview_text: Optional AI overview text
        source: Provider name
        batch_ref: Optional ingest batch reference
        created_at: Timestamp when the row was written
    """

    __tablename__ = "serp_snapshots"

    __table_args__ = (
        UniqueConstraint(
            "project_id",
            "query",
            "locale",
            "device",
            "captured_at",
            name="uq_serp_snapshots_natural_key",
        ),
        Index(
            "ix_serp_snapshots_target_captured_at",
            "project_id",
            "query",
            "locale",
            "device",
            "captured_at",
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

    captured_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    valid_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    raw_payload: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
        server_default=text("'{}'::jsonb"),
    )

    payload_schema_version: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    ai_overview_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=AIOverviewStatus.UNKNOWN.value,
        server_default=text("'unknown'"),
    )

    ai_overview_text: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    source: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    batch_ref: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=text("now()"),
    )

    def __repr__(self) -> str:
        return (
            f"<SerpSnapshot(id={self.id!r}, query={self.query!r}, "
            f"captured_at={self.captured_at!r})>"
        )
