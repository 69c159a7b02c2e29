from typing import Generator, Optional
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase, Session
from .config import get_settings

def normalize_db_url(url: str) -> str:
    # Use psycopg v3 driver with SQLAlchemy
    if url.startswith("postgresql://"):
        return "postgresql+psycopg://" + url[len("postgresql://"):]
    if url.startswith("postgres://"):
        return "postgresql+psycopg://" + url[len("postgres://"):]
    return url

def _connect_args(url: str, timeout_s: int) -> dict:
    # Bound connect and per-statement time so a slow store fails the request
    if url.startswith("postgresql"):
        return {
            "connect_timeout": timeout_s,
            "options": f"-c statement_timeout={timeout_s * 1000}",
        }
    if url.startswith("sqlite"):
        return {"timeout": timeout_s, "check_same_thread": False}
    return {}

_engine: Optional[Engine] = None  # lazy-init so importing models needs no DB
_SessionLocal: Optional[sessionmaker] = None

def get_engine() -> Engine:
    global _engine
    if _engine is None:
        settings = get_settings()
        url = normalize_db_url(settings.DATABASE_URL)
        kwargs = {}
        if not url.startswith("sqlite"):
            kwargs["pool_timeout"] = settings.DB_TIMEOUT_SECONDS
        _engine = create_engine(
            url,
            pool_pre_ping=True,
            connect_args=_connect_args(url, settings.DB_TIMEOUT_SECONDS),
            **kwargs,
        )
    return _engine

def get_sessionmaker() -> sessionmaker:
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            bind=get_engine(),
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )
    return _SessionLocal

class Base(DeclarativeBase):
    pass

def get_db() -> Generator[Session, None, None]:
    db = get_sessionmaker()()
    try:
        yield db
    finally:
        db.close()
