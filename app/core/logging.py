import logging
from typing import Optional

from app.core.config import settings


DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | user=%(user_id)s | %(message)s"

# Chatty at INFO; raised to WARNING unless the app itself runs at DEBUG
NOISY_LOGGERS = ("httpx", "google_genai", "aiosqlite", "sqlalchemy.engine", "multipart")


class UserContextFilter(logging.Filter):
    """Default ``user_id`` so records logged without ``extra`` still format."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not hasattr(record, "user_id"):
            record.user_id = "-"
        return True


def setup_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """Configure the root logger once per process (safe to call on reload)."""
    resolved_level = getattr(logging, (level or settings.app.log_level).upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(resolved_level)
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
    handler.addFilter(UserContextFilter())
    root.addHandler(handler)

    quiet = logging.DEBUG if resolved_level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet)


def get_logger(name: str) -> logging.Logger:
    if not logging.getLogger().handlers:
        setup_logging()
    return logging.getLogger(name)
