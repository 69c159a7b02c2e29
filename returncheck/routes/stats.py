from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..errors import InternalError
from ..schemas import StatsResponse
from ..services.scoring import as_utc
from ..store import get_stats
from ..utils.logging import logger

router = APIRouter(tags=["stats"])

@router.get("/stats", response_model=StatsResponse)
def stats(db: Session = Depends(get_db)):
    try:
        row = get_stats(db)
    except Exception:
        logger.exception("Error reading report stats")
        raise InternalError()
    if row is None:
        return StatsResponse(totalReports=0)
    return StatsResponse(totalReports=row.total_reports, lastUpdated=as_utc(row.last_updated))
