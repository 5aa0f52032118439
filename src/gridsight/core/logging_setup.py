"""Logging setup utilities for gridsight.

Provides a single setup function to configure application-wide logging with:
- Session-based file handler next to config.ini
- Console handler for quick inspection during development
- Configurable log level via config.ini (DEFAULT.log_level)
- Automatic retention of the last 3 sessions

Usage:
    from gridsight.core.logging_setup import setup_logging
    setup_logging(config_manager)

This will create logs/session-YYYYmmdd_HHMMSS/gridsight.log next to config.ini.
Debug images (grid masks, rejected crops) go to the session's artifacts/
directory, or to Config.paths.debug_dir when one is configured.
"""
from __future__ import annotations

import logging
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np

SESSION_ENV = "GS_LOG_SESSION_DIR"

logger = logging.getLogger(__name__)


def _level_from_str(value: Optional[str]) -> int:
    if not value:
        return logging.INFO
    v = str(value).strip().upper()
    mapping = {
        "CRITICAL": logging.CRITICAL,
        "ERROR": logging.ERROR,
        "WARNING": logging.WARNING,
        "WARN": logging.WARNING,
        "INFO": logging.INFO,
        "DEBUG": logging.DEBUG,
        "NOTSET": logging.NOTSET,
    }
    return mapping.get(v, logging.INFO)


def get_log_dir(config_manager) -> Path:
    """Return directory path for logs next to the config.ini."""
    base_dir = Path(getattr(config_manager, "config_path")).parent
    log_dir = base_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def get_artifacts_dir(config_manager=None, name: str = "artifacts") -> Optional[Path]:
    """Return directory path for debug artifacts (images, dumps).

    If a session directory is active (GS_LOG_SESSION_DIR), artifacts are stored
    under that session directory. Without a session, they go next to
    config.ini; with neither, None is returned.
    """
    session_env = os.environ.get(SESSION_ENV, "").strip()
    if session_env:
        out_dir = Path(session_env) / name
    elif config_manager is not None:
        out_dir = Path(getattr(config_manager, "config_path")).parent / name
    else:
        return None
    out_dir.mkdir(parents=True, exist_ok=True)
    return out_dir


def get_session_dir(config_manager) -> Path:
    """Create and return a new session directory under logs/."""
    base = get_log_dir(config_manager)
    ts = datetime.now().strftime("session-%Y%m%d_%H%M%S")
    session = base / ts
    session.mkdir(parents=True, exist_ok=True)
    return session


def prune_old_sessions(log_dir: Path, keep: int = 3) -> None:
    """Keep only the most recent 'keep' session directories inside log_dir."""
    try:
        entries = [p for p in log_dir.iterdir() if p.is_dir() and p.name.startswith("session-")]
    except OSError as e:
        logger.debug("Cannot list log dir %s: %s", log_dir, e)
        return
    entries.sort(key=lambda p: p.stat().st_mtime, reverse=True)
    for old in entries[keep:]:
        shutil.rmtree(old, ignore_errors=True)


def save_debug_image(config, name: str, image: np.ndarray) -> Optional[Path]:
    """Write a debug image when Config.log_debug is enabled.

    Returns the written path, or None when debugging is off or no target
    directory is known.
    """
    if not getattr(config, "log_debug", False) or image is None or image.size == 0:
        return None
    out_dir = getattr(config.paths, "debug_dir", None)
    if out_dir is not None:
        Path(out_dir).mkdir(parents=True, exist_ok=True)
    else:
        out_dir = get_artifacts_dir()
    if out_dir is None:
        logger.debug("Debug image '%s' dropped: no debug directory", name)
        return None
    ts = datetime.now().strftime("%H%M%S_%f")
    path = Path(out_dir) / f"{ts}_{name}.png"
    if not cv2.imwrite(str(path), image):
        logger.warning("Failed to write debug image %s", path)
        return None
    logger.debug("Debug image written: %s", path)
    return path


def setup_logging(config_manager, level: Optional[Union[str, int]] = None) -> Path:
    """Configure root logger with a session-based file and console handler.

    Returns the created session directory Path.

    - File: logs/session-YYYYmmdd_HHMMSS/gridsight.log (keep last 3 sessions)
    - Console: INFO+ by default
    - Level: from parameter if provided, else DEFAULT.log_level in config, else INFO
    """
    cfg_level = getattr(config_manager, "get", lambda *_: None)("log_level")
    if isinstance(level, str):
        lvl = _level_from_str(level)
    elif isinstance(level, int):
        lvl = level
    else:
        lvl = _level_from_str(cfg_level)

    root = logging.getLogger()
    root.setLevel(lvl)

    # Clear existing handlers to avoid duplicates on re-run
    for h in root.handlers[:]:
        root.removeHandler(h)
        h.close()

    fmt = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    log_dir = get_log_dir(config_manager)
    session_dir = get_session_dir(config_manager)
    # Expose session dir via environment so artifacts land beside the log
    os.environ[SESSION_ENV] = str(session_dir)

    file_path = session_dir / "gridsight.log"
    fh = logging.FileHandler(file_path, encoding="utf-8", delay=True)
    fh.setLevel(lvl)
    fh.setFormatter(fmt)
    root.addHandler(fh)
    prune_old_sessions(log_dir, keep=3)

    ch = logging.StreamHandler()
    ch.setLevel(logging.INFO if lvl < logging.INFO else lvl)
    ch.setFormatter(fmt)
    root.addHandler(ch)

    # Quiet down noisy libraries unless in DEBUG
    if lvl > logging.DEBUG:
        logging.getLogger("cv2").setLevel(logging.WARNING)
        logging.getLogger("PIL").setLevel(logging.WARNING)

    root.info("Logging initialized: level=%s, file=%s", logging.getLevelName(lvl), str(file_path))
    return session_dir
