from contextlib import asynccontextmanager
from typing import Callable, Optional
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import Settings, get_settings
from .database import get_engine
from .errors import ApiError
from .hashing import PhoneHasher
from .routes.check import router as check_router
from .routes.report import router as report_router
from .routes.stats import router as stats_router
from .services.rate_limit import RateLimiter, build_rate_limiter
from .services.scoring import utcnow
from .store import init_db
from .utils.logging import configure_logging, logger

def create_app(settings: Optional[Settings] = None,
               rate_limiter: Optional[RateLimiter] = None,
               clock: Optional[Callable[[], datetime]] = None) -> FastAPI:
    settings = settings if settings is not None else get_settings()
    configure_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.AUTO_CREATE_TABLES:
            init_db(get_engine())
        logger.info("returncheck starting (env=%s, hash=%s, rate_limit=%s)",
                    settings.ENV, settings.PHONE_HASH_SCHEME, settings.RATE_LIMIT_BACKEND)
        yield

    app = FastAPI(title="Return Check",
                  description="Report and look up phone numbers behind refused or abusive package returns",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan)

    app.state.settings = settings
    app.state.rate_limiter = rate_limiter if rate_limiter is not None else build_rate_limiter(settings)
    app.state.phone_hasher = PhoneHasher.from_settings(settings)
    app.state.clock = clock if clock is not None else utcnow

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    app.include_router(check_router)
    app.include_router(report_router)
    app.include_router(stats_router)

    @app.get("/health")
    def health():
        return {"ok": True}

    return app

app = create_app()
