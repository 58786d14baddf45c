"""Logging for the `iiif_manifest` namespace.

Handlers are installed lazily: the log directory and level are read from the
config manager the first time a logger is requested, and the file handler is
moved whenever `paths.logs_dir` points somewhere else.
"""

import logging
import os
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from .config_manager import ConfigManager, get_config_manager

LOG_FILE_NAME = "manifest.log"

CONSOLE_FORMAT = logging.Formatter("%(levelname)s | %(name)s | %(message)s")

FILE_FORMAT = logging.Formatter(
    "%(asctime)s [%(levelname)s] [%(name)s.%(funcName)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

app_logger = logging.getLogger("iiif_manifest")
app_logger.propagate = True


def _level_for(cm: ConfigManager) -> int:
    name = str(cm.get_setting("logging.level", "INFO") or "INFO").upper()
    return getattr(logging, name, logging.INFO)


def _log_file_for(cm: ConfigManager) -> Path:
    try:
        return cm.get_logs_dir() / LOG_FILE_NAME
    except OSError as exc:
        sys.stderr.write(f"Logs dir not writable ({exc}); using ./logs\n")
        fallback = Path("logs")
        fallback.mkdir(parents=True, exist_ok=True)
        return fallback.resolve() / LOG_FILE_NAME


def current_log_file() -> Path | None:
    """Return the file the rotating handler writes to, if one is installed."""
    for handler in app_logger.handlers:
        if isinstance(handler, TimedRotatingFileHandler):
            return Path(os.path.abspath(handler.baseFilename))
    return None


def close_handlers() -> None:
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
        handler.close()


def setup_logging(cm: ConfigManager | None = None) -> Path | None:
    """Install console and daily-rotating file handlers; return the log file path."""
    cm = cm or get_config_manager()
    level = _level_for(cm)
    log_file = _log_file_for(cm)

    if app_logger.handlers and current_log_file() == Path(os.path.abspath(log_file)):
        app_logger.setLevel(level)
        for h in app_logger.handlers:
            h.setLevel(level)
        return log_file

    close_handlers()
    app_logger.setLevel(level)

    # stderr keeps stdout free for manifests printed by the CLI
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(CONSOLE_FORMAT)
    console_handler.setLevel(level)
    app_logger.addHandler(console_handler)

    try:
        file_handler = TimedRotatingFileHandler(log_file, when="midnight", interval=1, backupCount=30, encoding="utf-8")
    except OSError as e:
        app_logger.error("Failed to setup file logging in %s: %s", log_file.parent, e)
        return None
    file_handler.setFormatter(FILE_FORMAT)
    file_handler.setLevel(level)
    app_logger.addHandler(file_handler)
    return log_file


def summarize_for_debug(data: str, max_chars: int = 200) -> str:
    """Summarize a large string (e.g. an info.json body) for debug logs."""
    if not data or len(data) <= max_chars:
        return data
    return f"{data[:max_chars]}... [TRUNCATED, total {len(data)} chars]"


def get_logger(name: str):
    """Get a logger within the 'iiif_manifest' namespace, installing handlers on first use."""
    if not app_logger.handlers:
        setup_logging()
    if name != "iiif_manifest" and not name.startswith("iiif_manifest."):
        name = f"iiif_manifest.{name}"
    return logging.getLogger(name)
