# tests/test_api.py
from datetime import datetime

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from returncheck.database import get_db
from returncheck.main import create_app
from returncheck.models import GLOBAL_STATS_ID, Report, ReportStats
from returncheck.services import geolocation
from returncheck.services.rate_limit import InMemoryRateLimiter
from returncheck.store import init_db

PHONE = "0550123456"

def _report(client, phone=PHONE, reason="Other", ip="41.200.10.10", **extra):
    body = {"phone": phone, "reason": reason, **extra}
    return client.post("/report", json=body, headers={"X-Forwarded-For": ip})

def _check(client, phone=PHONE, ip="41.200.10.20"):
    return client.post("/check", json={"phone": phone}, headers={"X-Forwarded-For": ip})

# -----------------------------
# end to end
# -----------------------------
def test_report_then_check(client, clock):
    r = _report(client, customReason="test")
    assert r.status_code == 201
    body = r.json()
    assert body["message"] == "Report submitted successfully"
    assert body["id"]
    assert datetime.fromisoformat(body["timestamp"].replace("Z", "+00:00")) == clock.now

    c = _check(client)
    assert c.status_code == 200
    data = c.json()
    assert data["isReported"] is True
    assert data["risk"]["level"] == "medium"
    assert data["risk"]["message"] == "Moderate risk - exercise caution"
    assert data["risk"]["score"] == 30.0
    assert data["patterns"] == {
        "reasonTypes": ["Other"],
        "hasCustomReasons": True,
        "reportedRecently": True,
        "reportingTimespan": {"first": "recently"},
    }
    assert data["metadata"]["remaining"] == 99
    assert data["metadata"]["checkedAt"].startswith("2026-03-01T12:00:00")

def test_check_matches_any_input_format(client):
    assert _report(client, phone="+213 550 12 34 56").status_code == 201
    for variant in ("0550123456", "00213550123456", "213550123456", "550123456"):
        assert _check(client, phone=variant).json()["isReported"] is True

def test_unknown_phone(client):
    data = _check(client, phone="0661000000").json()
    assert data["isReported"] is False
    assert data["risk"] == {"level": "safe", "message": "No reports found", "score": 0}
    assert "patterns" not in data

def test_get_check_variant(client):
    _report(client)
    r = client.get("/check", params={"phone": PHONE})
    assert r.status_code == 200
    assert r.json()["isReported"] is True

def test_phone_stored_hashed_with_reporter_metadata(client, db):
    _report(client)
    row = db.execute(select(Report)).scalar_one()
    assert row.phone_key != PHONE
    assert len(row.phone_key) == 64
    assert row.reporter_ip == "41.200.10.10"
    assert row.reporter_user_agent == "testclient"
    assert row.reporter_country is None

def test_score_hidden_in_production(make_client):
    client = make_client(ENV="production")
    _report(client)
    risk = _check(client).json()["risk"]
    assert "score" not in risk
    assert risk["level"] == "medium"

# -----------------------------
# duplicates
# -----------------------------
def test_duplicate_within_24h(client, clock):
    first = _report(client)
    assert first.status_code == 201

    clock.advance(hours=23)
    dup = _report(client, ip="41.200.99.99")
    assert dup.status_code == 409
    body = dup.json()
    assert body["code"] == "DUPLICATE_REPORT"
    assert body["lastReported"] == first.json()["timestamp"].replace("Z", "+00:00")

    clock.advance(hours=2)
    assert _report(client, ip="41.200.99.99").status_code == 201

def test_duplicate_ignores_formatting(client):
    assert _report(client, phone="0550123456").status_code == 201
    assert _report(client, phone="+213550123456").status_code == 409

def test_stats_counter(client, clock):
    assert client.get("/stats").json() == {"totalReports": 0, "lastUpdated": None}
    _report(client)
    _report(client, phone="0661234567")
    _report(client, phone="0661234567")  # duplicate, not counted
    stats = client.get("/stats").json()
    assert stats["totalReports"] == 2

# -----------------------------
# validation
# -----------------------------
def test_report_missing_fields(client):
    r = client.post("/report", json={"phone": PHONE})
    assert r.status_code == 400
    assert r.json() == {"error": "Phone number and reason are required", "code": "MISSING_FIELDS"}

def test_report_invalid_reason(client):
    r = _report(client, reason="Because")
    assert r.status_code == 400
    assert r.json()["code"] == "INVALID_REASON"

def test_report_arabic_reason(client):
    assert _report(client, reason="رفض فتح الطرد").status_code == 201

def test_custom_reason_only_kept_for_other(client, db):
    _report(client, reason="Customer changed mind", customReason="ignored")
    _report(client, phone="0661234567", reason="أخرى", customReason="  x" * 150)
    rows = {r.reason: r for r in db.execute(select(Report)).scalars()}
    assert rows["Customer changed mind"].custom_reason is None
    assert len(rows["أخرى"].custom_reason) == 200

def test_report_invalid_phone(client):
    r = _report(client, phone="0255123456")
    assert r.status_code == 400
    body = r.json()
    assert body["code"] == "INVALID_PHONE"
    assert body["debug"]["input"] == "0255123456"
    assert body["debug"]["normalized"] == "0255123456"

def test_invalid_phone_debug_hidden_in_production(make_client):
    r = _check(make_client(ENV="production"), phone="12")
    assert r.status_code == 400
    assert r.json() == {
        "error": "Invalid Algerian mobile phone number format. Expected format: 0XXXXXXXXX",
        "code": "INVALID_PHONE",
    }

def test_check_missing_phone(client):
    r = client.post("/check", json={})
    assert r.status_code == 400
    assert r.json()["code"] == "MISSING_PHONE"
    assert client.get("/check").json()["code"] == "MISSING_PHONE"

def test_invalid_json(client):
    for path in ("/check", "/report"):
        r = client.post(path, content=b"{not json", headers={"Content-Type": "application/json"})
        assert r.status_code == 400
        assert r.json() == {"error": "Invalid JSON in request body", "code": "INVALID_JSON"}

def test_non_object_json(client):
    r = client.post("/check", json=["0550123456"])
    assert r.json()["code"] == "INVALID_JSON"

# -----------------------------
# rate limits
# -----------------------------
def test_report_rate_limit(client, clock):
    phones = ["0550000001", "0550000002", "0550000003", "0550000004"]
    codes = [_report(client, phone=p, ip="41.1.1.1").status_code for p in phones]
    assert codes == [201, 201, 201, 429]

    r = _report(client, phone="0550000005", ip="41.1.1.1")
    body = r.json()
    assert body["code"] == "RATE_LIMITED"
    assert body["resetTime"] == clock.ms() + 60 * 60 * 1000

    # other reporters are unaffected
    assert _report(client, phone="0550000005", ip="41.1.1.2").status_code == 201

    clock.advance(hours=1, seconds=1)
    assert _report(client, phone="0550000006", ip="41.1.1.1").status_code == 201

def test_report_rate_limit_counts_rejected_submissions(client):
    for _ in range(3):
        assert _report(client, reason="nope").status_code == 400
    assert _report(client).json()["code"] == "RATE_LIMITED"

def test_report_rate_limit_per_phone(make_client):
    client = make_client(REPORT_RATE_LIMIT_PER_PHONE=True, REPORT_RATE_LIMIT_MAX=1)
    assert _report(client, phone="0550000001", ip="41.1.1.1").status_code == 201
    assert _report(client, phone="0550000002", ip="41.1.1.1").status_code == 201
    assert _report(client, phone="0550000001", ip="41.1.1.1").json()["code"] == "RATE_LIMITED"

def test_check_rate_limit(make_client, clock):
    client = make_client(CHECK_RATE_LIMIT_MAX=2)
    remaining = [_check(client, ip="41.2.2.2").json()["metadata"]["remaining"] for _ in range(2)]
    assert remaining == [1, 0]

    r = _check(client, ip="41.2.2.2")
    assert r.status_code == 429
    assert r.json()["code"] == "RATE_LIMITED_CHECK"
    assert r.json()["resetTime"] > clock.ms()

# -----------------------------
# infrastructure
# -----------------------------
def test_store_failure_is_opaque_500(clock):
    # no tables created: every query fails
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Session = sessionmaker(bind=engine)

    def _get_db():
        s = Session()
        try:
            yield s
        finally:
            s.close()

    app = create_app(rate_limiter=InMemoryRateLimiter(clock=clock.ms), clock=clock)
    app.dependency_overrides[get_db] = _get_db
    client = TestClient(app)

    for r in (_check(client), _report(client), client.get("/stats")):
        assert r.status_code == 500
        assert r.json() == {"error": "Internal server error", "code": "INTERNAL_ERROR"}

def test_health(client):
    assert client.get("/health").json() == {"ok": True}

def test_injected_limiter_and_clock_are_kept(clock):
    rl = InMemoryRateLimiter(clock=clock.ms)
    app = create_app(rate_limiter=rl, clock=clock)
    assert app.state.rate_limiter is rl
    assert app.state.clock is clock

def test_init_db_seeds_stats_row():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    init_db(engine)
    init_db(engine)
    with sessionmaker(bind=engine)() as s:
        rows = s.execute(select(ReportStats)).scalars().all()
    assert [(r.id, r.total_reports) for r in rows] == [(GLOBAL_STATS_ID, 0)]

# -----------------------------
# reporter location
# -----------------------------
class _GeoResp:
    def __init__(self, payload):
        self.payload = payload

    def raise_for_status(self):
        pass

    def json(self):
        return self.payload

def test_report_stores_reporter_location(make_client, db, monkeypatch):
    def fake_get(url, headers=None, timeout=None):
        return _GeoResp({"country_code": "DZ", "city": "Algiers", "timezone": "Africa/Algiers"})

    monkeypatch.setattr(geolocation.requests, "get", fake_get)
    client = make_client(GEOLOCATION_ENABLED=True)
    assert _report(client, ip="41.200.10.10").status_code == 201

    row = db.execute(select(Report)).scalar_one()
    assert (row.reporter_country, row.reporter_city, row.reporter_timezone) == ("DZ", "Algiers", "Africa/Algiers")

def test_report_accepted_when_location_unavailable(make_client, db, monkeypatch):
    monkeypatch.setattr(geolocation.requests, "get", lambda url, headers=None, timeout=None: _GeoResp([]))
    client = make_client(GEOLOCATION_ENABLED=True)
    assert _report(client, ip="41.200.10.10").status_code == 201

    row = db.execute(select(Report)).scalar_one()
    assert (row.reporter_country, row.reporter_city, row.reporter_timezone) == (None, None, None)
