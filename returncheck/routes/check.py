from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from ..database import get_db
from ..dependencies import get_context
from ..services.handlers import RequestContext, handle_check

router = APIRouter(tags=["check"])

@router.post("/check")
async def check_post(request: Request,
                     db: Session = Depends(get_db),
                     ctx: RequestContext = Depends(get_context)):
    raw = await request.body()
    return await run_in_threadpool(handle_check, db, ctx, body=raw)

@router.get("/check")
def check_get(request: Request,
              db: Session = Depends(get_db),
              ctx: RequestContext = Depends(get_context)):
    return handle_check(db, ctx, query=request.query_params)
