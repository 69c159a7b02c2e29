from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from ..database import get_db
from ..dependencies import get_context
from ..schemas import ReportCreated
from ..services.handlers import RequestContext, handle_report

router = APIRouter(tags=["report"])

@router.post("/report", status_code=201, response_model=ReportCreated)
async def report(request: Request,
                 db: Session = Depends(get_db),
                 ctx: RequestContext = Depends(get_context)):
    raw = await request.body()
    return await run_in_threadpool(handle_report, db, ctx, body=raw)
