from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Index, String, Text, TypeDecorator
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class UTCDateTime(TypeDecorator):
    # SQLite drops tzinfo on the way out; normalize to aware UTC in both directions.
    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


# Native JSONB on Postgres, JSON text everywhere else.
JSONData = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    pass


class FormSubmission(Base):
    __tablename__ = "form_submissions"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    # Not a foreign key; forms live in the YAML registry.
    form_id: Mapped[str] = mapped_column(String, nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSONData, nullable=False)
    ip_address: Mapped[str | None] = mapped_column(String, nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime] = mapped_column(UTCDateTime(timezone=True), nullable=False)
    processed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    processed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(timezone=True), nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_form_submissions_form_id", "form_id"),
        Index("idx_form_submissions_submitted_at", "submitted_at"),
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "form_id": self.form_id,
            "data": self.data,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "processed": self.processed,
            "processed_at": self.processed_at.isoformat() if self.processed_at else None,
            "error": self.error,
        }


class AnalyticsRecord(Base):
    __tablename__ = "install_analytics"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    # Uniqueness here is what keeps concurrent heartbeats from duplicating rows.
    server_hash: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    version: Mapped[str] = mapped_column(String, nullable=False)
    first_seen: Mapped[datetime] = mapped_column(UTCDateTime(timezone=True), nullable=False)
    last_seen: Mapped[datetime] = mapped_column(UTCDateTime(timezone=True), nullable=False)
    ip_hash: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        Index("idx_install_analytics_last_seen", "last_seen"),
        Index("idx_install_analytics_version", "version"),
    )
