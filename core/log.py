"""
core/log.py -- Logging setup and per-request correlation context.

The service uses stdlib logging with named loggers under "sso.". Components
never reach for a global logger to do their work: the API lifespan builds one
and hands it to AuthService through the constructor.

Two fields are attached to every record by RequestContextFilter:
  request_id -- correlation id bound by the HTTP middleware (ContextVar, so it
                follows the request into FastAPI's worker threadpool).
  op         -- originating operation name. AuthService binds it per call via
                LoggerAdapter; records without one show "-".

Layer rule: core/ may not import from api/ or auth/.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar

from core.config import ENV_PROD

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

_FORMAT = "%(asctime)s %(levelname)-5s %(name)s [%(request_id)s] op=%(op)s %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


class RequestContextFilter(logging.Filter):
    """Fill in request_id and op so the format string never hits a missing key."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = request_id_var.get()
        if not hasattr(record, "op"):
            record.op = "-"
        return True


def level_for_env(env: str, override: str = "") -> int:
    """Return the log level for an environment. An explicit override wins."""
    if override:
        level = logging.getLevelName(override.upper())
        if isinstance(level, int):
            return level
        raise ValueError(f"Unknown log level {override!r}")
    return logging.INFO if env == ENV_PROD else logging.DEBUG


def setup_logging(env: str, level: str = "") -> logging.Logger:
    """Configure the root handler once and return the service logger.

    Safe to call more than once (tests, reloads): the handler is only added
    if the root logger does not already carry a RequestContextFilter handler.
    """
    root = logging.getLogger()
    root.setLevel(level_for_env(env, level))
    if not any(isinstance(f, RequestContextFilter) for h in root.handlers for f in h.filters):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATEFMT))
        handler.addFilter(RequestContextFilter())
        root.addHandler(handler)
    return logging.getLogger("sso")
