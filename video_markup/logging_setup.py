import contextvars
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(session_id)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

LOG_SESSION_ID: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "log_session_id", default=None
)


class ContextFilter(logging.Filter):
    """Stamp every record with the session currently being worked on."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = LOG_SESSION_ID.get() or "-"
        return True


@contextmanager
def log_context(session_id: str | None = None) -> Iterator[None]:
    token = LOG_SESSION_ID.set(session_id) if session_id is not None else None
    try:
        yield
    finally:
        if token is not None:
            LOG_SESSION_ID.reset(token)


def configure_logging(
    level: str = "INFO",
    log_file: str | None = None,
    force: bool = False,
) -> logging.Logger:
    """Install console (and optional file) handlers on the root logger.

    Safe to call more than once; later calls are no-ops unless *force*.
    """
    root = logging.getLogger()
    if getattr(root, "_video_markup_configured", False) and not force:
        return root

    if force:
        for handler in list(root.handlers):
            root.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)
        # Handler-level so records from any logger get the field before formatting.
        handler.addFilter(ContextFilter())
        root.addHandler(handler)

    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root._video_markup_configured = True
    return root
