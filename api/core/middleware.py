"""ASGI middleware: security headers and per-request canonical log lines."""

from __future__ import annotations

import time
import uuid

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from core.logger import bind_contextvars, clear_contextvars, get_logger
from core.wide_event import clear_wide_event, init_wide_event

logger = get_logger("pionia.request")

# Successful requests faster than this are logged at debug level only
SLOW_REQUEST_THRESHOLD_MS = 1000


class SecurityHeadersMiddleware:
    """Adds security headers to every HTTP response."""

    SECURITY_HEADERS: list[tuple[bytes, bytes]] = [
        (b"x-content-type-options", b"nosniff"),
        (b"x-frame-options", b"DENY"),
        (b"referrer-policy", b"strict-origin-when-cross-origin"),
        (b"strict-transport-security", b"max-age=31536000; includeSubDomains"),
    ]

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_wrapper(message: Message) -> None:
            if message.get("type") == "http.response.start":
                headers: list[tuple[bytes, bytes]] = list(message.get("headers", []))
                headers.extend(self.SECURITY_HEADERS)
                message["headers"] = headers
            await send(message)

        await self.app(scope, receive, send_wrapper)


class RequestTimingMiddleware:
    """Emits one wide event per request (canonical log line).

    The dispatcher and services add fields (service, action, user_id,
    response_status) along the way; this middleware adds timing and HTTP
    details and logs the whole dict once the response body is sent.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        request_id = str(uuid.uuid4())

        client = scope.get("client")
        wide_event = init_wide_event()
        wide_event.update(
            request_id=request_id,
            http_method=scope.get("method", "UNKNOWN"),
            http_path=scope.get("path", ""),
            http_client_ip=client[0] if client else "unknown",
        )
        clear_contextvars()
        bind_contextvars(request_id=request_id)

        response_status: int | None = None

        async def send_wrapper(message: Message) -> None:
            nonlocal response_status

            if message.get("type") == "http.response.start":
                response_status = int(message.get("status", 0))
                headers: list[tuple[bytes, bytes]] = list(message.get("headers", []))
                headers.append((b"x-request-id", request_id.encode()))
                message["headers"] = headers

            elif message.get("type") == "http.response.body" and not message.get(
                "more_body", False
            ):
                duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
                wide_event.update(
                    http_status=response_status, duration_ms=duration_ms
                )
                self._emit(wide_event, duration_ms)

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            clear_wide_event()
            clear_contextvars()

    @staticmethod
    def _emit(event: dict, duration_ms: float) -> None:
        status = event.get("http_status") or 0
        failed = status >= 500 or event.get("response_status", 0) not in (0, None)
        if status >= 500:
            logger.error("request.completed", **event)
        elif failed or duration_ms > SLOW_REQUEST_THRESHOLD_MS:
            logger.info("request.completed", **event)
        else:
            logger.debug("request.completed", **event)
