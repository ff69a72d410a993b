"""The single RPC-style endpoint every service is reached through.

POST a JSON (or multipart) body naming ``service`` and ``action`` plus the
action's fields. Framework errors come back as HTTP 200 with a non-zero
``status`` in the body; see core.exceptions.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from core.auth import ContextUser, get_context_user
from core.config import get_settings
from core.database import DbSession
from core.ratelimit import limiter
from core.request import read_service_request
from core.responses import BaseResponse
from services.dispatcher import ActionDispatcher

FRAMEWORK_VERSION = "1.0.0"

_settings = get_settings()

router = APIRouter(prefix=_settings.api_base_path.rstrip("/"), tags=["services"])

CallerIdentity = Annotated[ContextUser, Depends(get_context_user)]


def get_dispatcher(request: Request) -> ActionDispatcher:
    return request.app.state.dispatcher


Dispatcher = Annotated[ActionDispatcher, Depends(get_dispatcher)]


@router.get("/", response_model=BaseResponse)
async def ping(dispatcher: Dispatcher) -> BaseResponse:
    """Liveness of the dispatch layer plus the services it knows about."""
    return BaseResponse.json_response(
        message="pong",
        payload={
            "framework": "pionia",
            "version": FRAMEWORK_VERSION,
            "services": dispatcher.registry.names(),
        },
    )


@router.post("/", response_model=BaseResponse)
@limiter.limit(_settings.api_rate_limit)
async def dispatch(
    request: Request,
    db: DbSession,
    user: CallerIdentity,
    dispatcher: Dispatcher,
) -> BaseResponse:
    service_request = await read_service_request(request, user)
    return await dispatcher.dispatch(service_request, db)
