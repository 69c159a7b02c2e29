# returncheck/services/handlers.py
from __future__ import annotations
import json
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Mapping, Optional

from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from ..config import Settings
from ..errors import (
    ApiError, CheckRateLimited, DuplicateReportError, InternalError, InvalidJson,
    InvalidPhoneError, InvalidReason, MissingFields, MissingPhone, RateLimited,
)
from ..hashing import PhoneHasher, truncate_for_logging
from ..phone import InvalidPhone, normalize_phone
from ..reasons import clean_custom_reason, is_valid_reason
from ..schemas import CheckInput, ReportInput
from ..store import DuplicateReport, find_recent_report, list_reports, record_report
from ..utils.logging import logger
from .geolocation import EMPTY, lookup_location
from .rate_limit import RateLimiter, RateLimitResult, check_policy, report_policy
from .scoring import as_utc, compute_risk, days_between, summarize_patterns, utcnow

@dataclass
class RequestContext:
    settings: Settings
    limiter: RateLimiter
    hasher: PhoneHasher
    ip: str = "unknown"
    user_agent: Optional[str] = None
    clock: Callable[[], datetime] = utcnow

# -----------------------------
# Input helpers
# -----------------------------
def parse_body(raw: bytes, model: type[BaseModel]) -> Any:
    try:
        data = json.loads(raw) if raw and raw.strip() else {}
    except ValueError:
        raise InvalidJson()
    if not isinstance(data, dict):
        raise InvalidJson()
    try:
        return model.model_validate(data)
    except ValidationError:
        raise InvalidJson("Malformed request body")

def _normalize(phone: str, ctx: RequestContext) -> str:
    try:
        return normalize_phone(phone)
    except InvalidPhone as e:
        debug = None
        if ctx.settings.is_dev:
            debug = {
                "input": e.raw,
                "normalized": e.normalized,
                "expected": "0XXXXXXXXX (where second digit is 5, 6, or 7)",
            }
        raise InvalidPhoneError(debug=debug)

def _guard(what: str, fn: Callable[[], Dict[str, Any]]) -> Dict[str, Any]:
    """Run a handler body; anything that is not an ApiError becomes a bare 500."""
    try:
        return fn()
    except ApiError:
        raise
    except Exception:
        logger.exception("Error %s", what)
        raise InternalError()

# -----------------------------
# check
# -----------------------------
def handle_check(
    db: Session,
    ctx: RequestContext,
    *,
    body: bytes | None = None,
    query: Mapping[str, str] | None = None,
) -> Dict[str, Any]:
    """
    Risk lookup for one phone number. `body` is the raw POST payload; the GET
    variant passes the query string mapping instead.
    """
    return _guard("checking phone number", lambda: _check(db, ctx, body, query))

def _check(db: Session, ctx: RequestContext, body: bytes | None, query: Mapping[str, str] | None):
    rl = ctx.limiter.hit(check_policy(ctx.settings), ctx.ip)
    if not rl.allowed:
        logger.info("Check rate limit hit for %s", ctx.ip)
        raise CheckRateLimited(resetTime=rl.reset_time)

    if body is not None:
        payload = parse_body(body, CheckInput)
    else:
        payload = CheckInput(phone=(query or {}).get("phone"))

    if not payload.phone or not payload.phone.strip():
        raise MissingPhone()

    phone = _normalize(payload.phone, ctx)
    key = ctx.hasher.hash(phone)
    now = ctx.clock()

    reports = list_reports(db, key)
    days_since_first = days_between(reports[0].created_at, now) if reports else 0

    risk = compute_risk([r.created_at for r in reports], days_since_first, now=now)

    risk_out: Dict[str, Any] = {"level": risk.level, "message": risk.message}
    if ctx.settings.is_dev:
        risk_out["score"] = risk.score

    logger.info("Phone check from %s: key=%s risk=%s reports=%d",
                ctx.ip, truncate_for_logging(key), risk.level, len(reports))

    out: Dict[str, Any] = {
        "isReported": bool(reports),
        "risk": risk_out,
        "metadata": {
            "checkedAt": now.isoformat(),
            "remaining": rl.remaining,
        },
    }
    patterns = summarize_patterns(reports, days_since_first, now=now)
    if patterns is not None:
        out["patterns"] = patterns
    return out

# -----------------------------
# report
# -----------------------------
def handle_report(db: Session, ctx: RequestContext, *, body: bytes) -> Dict[str, Any]:
    return _guard("processing report", lambda: _report(db, ctx, body))

def _report_limit(ctx: RequestContext, phone_key: str | None = None) -> RateLimitResult:
    key = ctx.ip if phone_key is None else f"{ctx.ip}:{phone_key}"
    rl = ctx.limiter.hit(report_policy(ctx.settings), key)
    if not rl.allowed:
        logger.info("Report rate limit hit for %s", ctx.ip)
        raise RateLimited(resetTime=rl.reset_time)
    return rl

def _report(db: Session, ctx: RequestContext, body: bytes):
    per_phone = ctx.settings.REPORT_RATE_LIMIT_PER_PHONE
    if not per_phone:
        _report_limit(ctx)

    payload = parse_body(body, ReportInput)
    if not payload.phone or not payload.phone.strip() or not payload.reason:
        raise MissingFields()
    if not is_valid_reason(payload.reason):
        raise InvalidReason()

    phone = _normalize(payload.phone, ctx)
    key = ctx.hasher.hash(phone)

    if per_phone:
        _report_limit(ctx, key)

    now = ctx.clock()
    since = now - timedelta(hours=ctx.settings.DUPLICATE_WINDOW_HOURS)

    existing = find_recent_report(db, key, since)
    if existing:
        raise _duplicate(existing, key)

    loc = EMPTY
    if ctx.settings.GEOLOCATION_ENABLED:
        loc = lookup_location(ctx.ip, timeout=ctx.settings.GEOLOCATION_TIMEOUT)

    try:
        report = record_report(
            db,
            phone_key=key,
            reason=payload.reason,
            custom_reason=clean_custom_reason(payload.reason, payload.customReason),
            since=since,
            now=now,
            reporter_ip=ctx.ip[:45] if ctx.ip != "unknown" else None,
            reporter_user_agent=(ctx.user_agent or "")[:512] or None,
            reporter_country=loc.country,
            reporter_city=loc.city,
            reporter_timezone=loc.timezone,
        )
    except DuplicateReport as e:
        raise _duplicate(e.existing, key)

    logger.info("Report %s stored for key=%s reason=%r", report.id, truncate_for_logging(key), report.reason)

    return {
        "message": "Report submitted successfully",
        "id": report.id,
        "timestamp": as_utc(report.created_at),
    }

def _duplicate(existing, key: str) -> DuplicateReportError:
    logger.info("Duplicate report rejected for key=%s", truncate_for_logging(key))
    return DuplicateReportError(lastReported=as_utc(existing.created_at).isoformat())
