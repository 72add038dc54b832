from __future__ import annotations

import logging
import logging.config
import uuid
from contextvars import ContextVar, Token
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

_request_id_ctx_var: ContextVar[Optional[str]] = ContextVar("mathstepper_request_id", default=None)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"


def bind_request_id(request_id: Optional[str] = None) -> Token:
    """Attach a request id to the current context, generating one when absent."""
    return _request_id_ctx_var.set(request_id or uuid.uuid4().hex)


def current_request_id() -> Optional[str]:
    return _request_id_ctx_var.get()


def unbind_request_id(token: Token) -> None:
    _request_id_ctx_var.reset(token)


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = current_request_id() or "-"
        return True


def _build_logging_config(level: str) -> Dict[str, Any]:
    handler_names = ["default"]
    quiet_loggers = ("uvicorn", "uvicorn.error", "uvicorn.access", "mathstepper")

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"request_id": {"()": RequestIdFilter}},
        "formatters": {
            "json": {
                "()": jsonlogger.JsonFormatter,
                "fmt": LOG_FORMAT,
                "datefmt": LOG_DATEFMT,
            },
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "json",
                "filters": ["request_id"],
            }
        },
        "loggers": {
            name: {"handlers": handler_names, "level": level, "propagate": False}
            for name in quiet_loggers
        },
        "root": {"handlers": handler_names, "level": level},
    }


def configure_logging(level: str = "INFO") -> None:
    logging.config.dictConfig(_build_logging_config(level.upper()))
