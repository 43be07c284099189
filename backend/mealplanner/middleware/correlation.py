"""Request tracing: correlation ids and per-request log context.

Every response carries an X-Request-ID header (client-supplied ids are echoed
back). The structlog context bound by the access gate is reset at the start
of each request so one trainer's id never leaks into another request's logs.
"""

import uuid

from asgi_correlation_id import CorrelationIdMiddleware
from asgi_correlation_id.context import correlation_id
from fastapi import FastAPI, Request

from mealplanner.core.logging import clear_request_context


def setup_correlation_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def reset_log_context(request: Request, call_next):
        clear_request_context()
        return await call_next(request)

    # Added last so it wraps the reset and the id is set before handlers run
    app.add_middleware(
        CorrelationIdMiddleware,
        header_name="X-Request-ID",
        generator=lambda: str(uuid.uuid4()),
        validator=None,
    )


def get_correlation_id() -> str | None:
    """Current request's correlation id, or None outside a request."""
    return correlation_id.get(None)
