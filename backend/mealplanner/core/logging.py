"""Structured logging for the meal planner backend.

Every event is a name plus keyword context:

    logger.info("quota_exceeded", trainer_id=..., resource="customers")

Processors add the request's correlation id and, once the access gate has
resolved the caller, the trainer id, tier and subscription status, so quota
and gating decisions can be traced per trainer. Tokens, signatures and email
addresses never reach the output.

Production renders one JSON object per line; debug mode uses the console
renderer. Third-party stdlib loggers (uvicorn, SQLAlchemy, stripe) go through
the same formatter.
"""

import logging
import logging.config

import structlog
from asgi_correlation_id.context import correlation_id

REDACTED = "[redacted]"

# Keys whose values are secrets
SECRET_KEYS = frozenset({"authorization", "token", "access_token", "stripe_signature", "jwt", "password"})


def add_correlation_id(logger, method, event_dict):
    """Attach the asgi-correlation-id request id, when inside a request."""
    cid = correlation_id.get(None)
    if cid:
        event_dict["correlation_id"] = cid
    return event_dict


def _mask_email(value: str) -> str:
    local, sep, domain = value.partition("@")
    if not sep:
        return REDACTED
    return f"{local[:1]}***@{domain}"


def redact_sensitive(logger, method, event_dict):
    """Drop secret values and mask email addresses."""
    for key in list(event_dict):
        lowered = key.lower()
        if lowered in SECRET_KEYS:
            event_dict[key] = REDACTED
        elif lowered == "email" and isinstance(event_dict[key], str):
            event_dict[key] = _mask_email(event_dict[key])
    return event_dict


def bind_trainer_context(trainer_id: str, tier: str | None, status: str | None) -> None:
    """Bind the resolved caller to every event logged for the rest of the request."""
    structlog.contextvars.bind_contextvars(trainer_id=trainer_id, tier=tier, subscription_status=status)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def configure_structlog(log_level: str = "INFO", json_logs: bool = True) -> None:
    """Install the processor chain and route stdlib logging through it.

    Run once at import time of the app module, before other modules fetch
    loggers (structlog caches the chain on first use).
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_correlation_id,
        redact_sensitive,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "events": {
                "()": structlog.stdlib.ProcessorFormatter,
                "foreign_pre_chain": shared_processors,
                "processors": [structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            },
        },
        "handlers": {
            "stdout": {"class": "logging.StreamHandler", "formatter": "events", "stream": "ext://sys.stdout"},
        },
        "root": {"handlers": ["stdout"], "level": log_level},
        "loggers": {
            "uvicorn.access": {"level": "WARNING"},
            "sqlalchemy.engine": {"level": "WARNING"},
            "stripe": {"level": "WARNING"},
        },
    })

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
