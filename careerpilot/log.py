"""careerpilot loggers.

The first ``get_logger`` call wires the root logger: stdout always, plus
``logs/careerpilot_<date>.log`` unless ``CAREERPILOT_LOG_FILE`` is off.
``LOG_LEVEL`` sets the console level; the file keeps DEBUG.
"""
from __future__ import annotations

import logging
import os
import sys
from datetime import date
from pathlib import Path

LOG_DIR = Path(os.environ.get("CAREERPILOT_LOG_DIR", Path(__file__).resolve().parent.parent / "logs"))
_FORMATTER = logging.Formatter("%(asctime)s  %(levelname)-8s  %(name)s  %(message)s", "%Y-%m-%d %H:%M:%S")
_OFF = ("0", "false", "no", "off")
_ready = False


def get_logger(name: str) -> logging.Logger:
    global _ready
    if not _ready:
        _setup_root()
        _ready = True
    return logging.getLogger(name)


def _file_logging_enabled() -> bool:
    return os.environ.get("CAREERPILOT_LOG_FILE", "1").strip().lower() not in _OFF


def _attach(root: logging.Logger, handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(_FORMATTER)
    root.addHandler(handler)


def _setup_root() -> None:
    level = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(min(level, logging.DEBUG) if _file_logging_enabled() else level)

    # an embedding app (or pytest) already owns the handlers
    if root.handlers:
        root.setLevel(level)
        return

    _attach(root, logging.StreamHandler(sys.stdout), level)
    if not _file_logging_enabled():
        return
    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        path = LOG_DIR / f"careerpilot_{date.today():%Y-%m-%d}.log"
        _attach(root, logging.FileHandler(path, encoding="utf-8"), logging.DEBUG)
    except OSError as exc:
        root.warning("Cannot write logs under %s: %s", LOG_DIR, exc)
