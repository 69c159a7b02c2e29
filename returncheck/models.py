from __future__ import annotations
import uuid
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, DateTime, Index
from .database import Base

GLOBAL_STATS_ID = "00000000-0000-0000-0000-000000000001"

def _uuid() -> str:
    return str(uuid.uuid4())

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

# ----------------------------
# Reports (one claim against a phone key)
# ----------------------------
class Report(Base):
    __tablename__ = "reports"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    phone_key: Mapped[str] = mapped_column(String(128), nullable=False)  # hashed normalized phone
    reason: Mapped[str] = mapped_column(String(128), nullable=False)
    custom_reason: Mapped[Optional[str]] = mapped_column(String(200))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    # reporter metadata, written once at creation
    reporter_ip: Mapped[Optional[str]] = mapped_column(String(45))
    reporter_user_agent: Mapped[Optional[str]] = mapped_column(String(512))
    reporter_country: Mapped[Optional[str]] = mapped_column(String(8))
    reporter_city: Mapped[Optional[str]] = mapped_column(String(128))
    reporter_timezone: Mapped[Optional[str]] = mapped_column(String(64))

    __table_args__ = (
        Index("ix_reports_phone_key_created_at", "phone_key", "created_at"),
    )

# ----------------------------
# Global counters (single row)
# ----------------------------
class ReportStats(Base):
    __tablename__ = "report_stats"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=GLOBAL_STATS_ID)
    total_reports: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
