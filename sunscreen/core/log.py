import logging
from logging.handlers import RotatingFileHandler

from .config import settings

_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Console plus rotating file logging for the whole process.

    Safe to call more than once: handlers from an earlier call are replaced.
    """
    root = logging.getLogger()
    root.setLevel((level or settings.log_level).upper())

    for handler in [h for h in root.handlers if getattr(h, "_sunscreen", False)]:
        root.removeHandler(handler)
        handler.close()

    fmt = logging.Formatter(_FORMAT)

    console = logging.StreamHandler()
    # Rotate at 2 MB; the Pi runs from an SD card
    logfile = RotatingFileHandler(settings.log_path, maxBytes=2_000_000, backupCount=5)
    for handler in (console, logfile):
        handler.setFormatter(fmt)
        handler._sunscreen = True
        root.addHandler(handler)

    for noisy in ("httpx", "aiosqlite", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
