# returncheck/store.py
from __future__ import annotations
from datetime import datetime
from typing import List, Optional
from sqlalchemy import select, update
from sqlalchemy.orm import Session
from .database import Base
from .models import Report, ReportStats, GLOBAL_STATS_ID

class DuplicateReport(Exception):
    def __init__(self, existing: Report):
        self.existing = existing
        super().__init__(f"report {existing.id} already covers this phone")

def find_recent_report(db: Session, phone_key: str, since: datetime) -> Optional[Report]:
    return db.execute(
        select(Report)
        .where(Report.phone_key == phone_key, Report.created_at >= since)
        .order_by(Report.created_at.desc())
        .limit(1)
    ).scalar_one_or_none()

def list_reports(db: Session, phone_key: str) -> List[Report]:
    return list(db.execute(
        select(Report)
        .where(Report.phone_key == phone_key)
        .order_by(Report.created_at.asc())
    ).scalars().all())

def get_stats(db: Session) -> Optional[ReportStats]:
    return db.get(ReportStats, GLOBAL_STATS_ID)

def _lock_stats(db: Session, now: datetime) -> None:
    """
    Row-lock the global stats row (created on first use). Every writer takes
    this lock first, so the duplicate check below cannot interleave with a
    concurrent insert for the same phone. SQLite ignores FOR UPDATE and
    serializes writers on its own.
    """
    row = db.execute(
        select(ReportStats.id).where(ReportStats.id == GLOBAL_STATS_ID).with_for_update()
    ).scalar_one_or_none()
    if row is None:
        db.add(ReportStats(id=GLOBAL_STATS_ID, total_reports=0, last_updated=now))
        db.flush()

def record_report(
    db: Session,
    *,
    phone_key: str,
    reason: str,
    custom_reason: Optional[str],
    since: datetime,
    now: datetime,
    reporter_ip: Optional[str] = None,
    reporter_user_agent: Optional[str] = None,
    reporter_country: Optional[str] = None,
    reporter_city: Optional[str] = None,
    reporter_timezone: Optional[str] = None,
) -> Report:
    """
    Insert a report and bump the global counter in one transaction.
    Raises DuplicateReport if `phone_key` already has a report at or after `since`.
    """
    try:
        _lock_stats(db, now)

        existing = find_recent_report(db, phone_key, since)
        if existing:
            raise DuplicateReport(existing)

        report = Report(
            phone_key=phone_key,
            reason=reason,
            custom_reason=custom_reason,
            created_at=now,
            reporter_ip=reporter_ip,
            reporter_user_agent=reporter_user_agent,
            reporter_country=reporter_country,
            reporter_city=reporter_city,
            reporter_timezone=reporter_timezone,
        )
        db.add(report)
        db.execute(
            update(ReportStats)
            .where(ReportStats.id == GLOBAL_STATS_ID)
            .values(total_reports=ReportStats.total_reports + 1, last_updated=now)
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    return report

def init_db(engine) -> None:
    """create_all plus the seeded stats row, mirroring the initial migration."""
    Base.metadata.create_all(bind=engine)
    with Session(engine) as db:
        if db.get(ReportStats, GLOBAL_STATS_ID) is None:
            db.add(ReportStats(id=GLOBAL_STATS_ID, total_reports=0))
            db.commit()
