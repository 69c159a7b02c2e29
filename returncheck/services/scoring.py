# scoring.py
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

# -----------------------------
# Tunables
# -----------------------------
# (max age in days, points per report); first bucket that fits wins
AGE_DECAY = [
    (7, 15.0),
    (30, 12.0),
    (90, 9.0),
    (180, 6.0),
    (365, 3.0),
]
ANCIENT_POINTS = 1.5

RECENT_DAYS = 30
RECENT_BONUS_PER_REPORT = 5
RECENT_BONUS_CAP = 20

# (reports/day strictly above, bonus)
FREQUENCY_BONUS = [
    (0.5, 10),
    (0.1, 3),
]

THRESHOLDS = {
    "high": 35,     # >= 35 → high
    "medium": 15,   # >= 15 → medium, else low
}

MESSAGES = {
    "safe": "No reports found",
    "low": "Low risk detected",
    "medium": "Moderate risk - exercise caution",
    "high": "High risk - proceed with extreme caution",
}

MAX_REASON_TYPES = 3

@dataclass(frozen=True)
class RiskAssessment:
    level: str
    score: float
    message: str

# -----------------------------
# Helpers
# -----------------------------
def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def as_utc(ts: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)

def days_between(earlier: datetime, now: datetime) -> int:
    """Whole days elapsed, floored."""
    return int((as_utc(now) - as_utc(earlier)) // timedelta(days=1))

def is_recent(ts: datetime, now: datetime) -> bool:
    return as_utc(now) - as_utc(ts) < timedelta(days=RECENT_DAYS)

def decay_points(days_old: int) -> float:
    for max_days, points in AGE_DECAY:
        if days_old <= max_days:
            return points
    return ANCIENT_POINTS

def frequency_bonus(report_count: int, days_since_first: int) -> int:
    per_day = report_count / max(days_since_first, 1)
    for above, bonus in FREQUENCY_BONUS:
        if per_day > above:
            return bonus
    return 0

def level_for(score: float) -> str:
    if score >= THRESHOLDS["high"]:
        return "high"
    if score >= THRESHOLDS["medium"]:
        return "medium"
    return "low"

def first_seen_bucket(days_since_first: int) -> str:
    if days_since_first > 365:
        return "over a year ago"
    if days_since_first > 30:
        return "over a month ago"
    if days_since_first > 7:
        return "over a week ago"
    return "recently"

# -----------------------------
# Main entry
# -----------------------------
def compute_risk(
    created_ats: Sequence[datetime],
    days_since_first: int,
    now: datetime | None = None,
) -> RiskAssessment:
    """
    Time-decayed risk for a set of report timestamps.

      score = Σ decay_points(age)
            + min(5 × reports younger than 30 days, 20)
            + frequency bonus over count / max(days_since_first, 1)

    Zero reports is "safe" with score 0.
    """
    if not created_ats:
        return RiskAssessment("safe", 0, MESSAGES["safe"])

    now = now or utcnow()

    total = sum(decay_points(days_between(ts, now)) for ts in created_ats)

    recent = sum(1 for ts in created_ats if is_recent(ts, now))
    total += min(recent * RECENT_BONUS_PER_REPORT, RECENT_BONUS_CAP)

    total += frequency_bonus(len(created_ats), days_since_first)

    level = level_for(total)
    return RiskAssessment(level, round(total, 1), MESSAGES[level])

def summarize_patterns(
    reports: Iterable[Any],
    days_since_first: int,
    now: datetime | None = None,
) -> Optional[Dict[str, Any]]:
    """
    Coarse, count-free view of the report history for the check response.
    `reports` are objects with .reason, .custom_reason and .created_at.
    """
    reports = list(reports)
    if not reports:
        return None
    now = now or utcnow()

    reason_types: List[str] = []
    for r in reports:
        if r.reason not in reason_types:
            reason_types.append(r.reason)

    return {
        "reasonTypes": reason_types[:MAX_REASON_TYPES],
        "hasCustomReasons": any(r.custom_reason for r in reports),
        "reportedRecently": any(is_recent(r.created_at, now) for r in reports),
        "reportingTimespan": {"first": first_seen_bucket(days_since_first)},
    }
