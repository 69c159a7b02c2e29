from fastapi import Request

from .services.handlers import RequestContext
from .utils.request import client_ip, user_agent

def get_context(request: Request) -> RequestContext:
    state = request.app.state
    return RequestContext(
        settings=state.settings,
        limiter=state.rate_limiter,
        hasher=state.phone_hasher,
        ip=client_ip(request),
        user_agent=user_agent(request),
        clock=state.clock,
    )
