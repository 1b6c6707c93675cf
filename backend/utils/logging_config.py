import logging
import logging.handlers
import contextvars
from pathlib import Path
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

APP_LOGGER_NAME = "accounts"

user_id_var = contextvars.ContextVar("user_id", default="-")
api_var = contextvars.ContextVar("api", default="-")


def map_log_level(level_name: str) -> int:
    level = logging.getLevelName((level_name or "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


class ContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.user_id = user_id_var.get()
        record.api = api_var.get()
        return True


def _formatter() -> logging.Formatter:
    return logging.Formatter(
        fmt="%(levelname)s - %(asctime)s - %(user_id)s - %(api)s - %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _rotating_file_handler(log_dir: Path, filename: str, level: int, ttl_days: int) -> logging.Handler:
    handler = logging.handlers.TimedRotatingFileHandler(
        filename=str(log_dir / filename),
        when="midnight",
        interval=1,
        backupCount=max(int(ttl_days), 0),
        encoding="utf-8",
        utc=True,
    )
    handler.suffix = "%Y-%m-%d"
    handler.setLevel(level)
    handler.setFormatter(_formatter())
    handler.addFilter(ContextFilter())
    return handler


def _reset_handlers(target_logger: logging.Logger, handlers: list[logging.Handler], level: int) -> None:
    for h in list(target_logger.handlers):
        target_logger.removeHandler(h)
    for h in handlers:
        target_logger.addHandler(h)
    target_logger.setLevel(level)


def configure_logging(log_level: str = "INFO", log_dir: Optional[str] = None, ttl_days: int = 7) -> logging.Logger:
    """Configure root, app and uvicorn loggers.

    Console output always; with ``log_dir`` also app/access/error files that
    rotate at midnight and keep ``ttl_days`` days.
    """
    level = map_log_level(log_level)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(_formatter())
    console.addFilter(ContextFilter())

    app_handlers: list[logging.Handler] = [console]
    access_handlers: list[logging.Handler] = [console]
    if log_dir:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        app_handlers += [
            _rotating_file_handler(directory, "app.log", level, ttl_days),
            _rotating_file_handler(directory, "error.log", logging.WARNING, ttl_days),
        ]
        access_handlers.append(_rotating_file_handler(directory, "access.log", level, ttl_days))

    _reset_handlers(logging.getLogger(), app_handlers, level)

    for name in ("uvicorn", "uvicorn.error", "fastapi"):
        lgr = logging.getLogger(name)
        lgr.propagate = False
        _reset_handlers(lgr, app_handlers, level)
    access_logger = logging.getLogger("uvicorn.access")
    access_logger.propagate = False
    _reset_handlers(access_logger, access_handlers, level)

    return logging.getLogger(APP_LOGGER_NAME)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tag log records with the request's method and path.

    The authenticated user id is filled in later by the access guard.
    """

    async def dispatch(self, request: Request, call_next):
        api_token = api_var.set(f"{request.method} {request.url.path}")
        user_token = user_id_var.set("-")
        try:
            return await call_next(request)
        finally:
            api_var.reset(api_token)
            user_id_var.reset(user_token)
