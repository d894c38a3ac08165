# catalog_hub/logging_setup.py
"""
Process logging: a rotating file under CATALOG_DATA_ROOT/logs plus a console
stream. Each handler has its own level (LOG_LEVEL / LOG_CONSOLE_LEVEL); the
root logger is opened to the more verbose of the two.
"""
from __future__ import annotations
import logging
import logging.handlers
from pathlib import Path
from typing import List

LOG_FILENAME = "catalog_hub.log"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
SERVER_LOGGERS = ("uvicorn", "uvicorn.access")

# marks handlers installed here so repeated setup (reload, tests) replaces them
_HANDLER_TAG = "_catalog_hub_handler"


def _level(name, default: int = logging.INFO) -> int:
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else default


def _tagged(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _HANDLER_TAG, True)
    return handler


def _replace_handlers(logger: logging.Logger, handlers: List[logging.Handler]) -> None:
    for h in list(logger.handlers):
        if getattr(h, _HANDLER_TAG, False):
            logger.removeHandler(h)
            h.close()
    for h in handlers:
        logger.addHandler(h)


def setup_logging(settings) -> Path:
    """Install file + console handlers; returns the log file path."""
    log_dir = Path(settings.CATALOG_DATA_ROOT).expanduser() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / LOG_FILENAME

    file_level = _level(settings.LOG_LEVEL)
    console_level = _level(getattr(settings, "LOG_CONSOLE_LEVEL", "WARNING"), logging.WARNING)
    fmt = logging.Formatter(LOG_FORMAT)

    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=5_000_000, backupCount=3, encoding="utf-8",
    )
    file_handler.setFormatter(fmt)
    file_handler.setLevel(file_level)

    console = logging.StreamHandler()
    console.setFormatter(fmt)
    console.setLevel(console_level)

    root = logging.getLogger()
    root.setLevel(min(file_level, console_level))
    _replace_handlers(root, [_tagged(file_handler), _tagged(console)])

    # uvicorn's own loggers stop propagation at "uvicorn" and "uvicorn.access"
    for name in SERVER_LOGGERS:
        lg = logging.getLogger(name)
        _replace_handlers(lg, [file_handler] if not lg.propagate else [])

    logging.getLogger(__name__).debug(
        f"Logging to {log_path} at {logging.getLevelName(file_level)}, "
        f"console at {logging.getLevelName(console_level)}"
    )
    return log_path
