"""Session logging and debug artifact output."""

import logging
import os

import numpy as np
import pytest

from gridsight.core import logging_setup
from gridsight.core.config import ConfigManager
from gridsight.core.settings import Config, PathConfig


@pytest.fixture
def clean_root_logger(monkeypatch):
    # setup_logging exports the session dir; restore the environment afterwards
    monkeypatch.setenv(logging_setup.SESSION_ENV, "")
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield root
    for h in root.handlers[:]:
        root.removeHandler(h)
        h.close()
    for h in saved_handlers:
        root.addHandler(h)
    root.setLevel(saved_level)


def test_setup_logging_creates_session(tmp_path, clean_root_logger):
    cfg = ConfigManager(str(tmp_path / "config.ini"))
    session = logging_setup.setup_logging(cfg, level="DEBUG")
    assert session.parent == tmp_path / "logs"
    assert session.name.startswith("session-")
    assert clean_root_logger.level == logging.DEBUG
    logging.getLogger("gridsight.test").debug("hello from test")
    for h in clean_root_logger.handlers:
        h.flush()
    assert "hello from test" in (session / "gridsight.log").read_text(encoding="utf-8")
    assert logging_setup.get_artifacts_dir() == session / "artifacts"


def test_level_from_config(tmp_path, clean_root_logger):
    cfg = ConfigManager(str(tmp_path / "config.ini"))
    cfg.set("log_level", "warning")
    logging_setup.setup_logging(cfg)
    assert clean_root_logger.level == logging.WARNING


def test_prune_keeps_latest_sessions(tmp_path):
    for i in range(5):
        d = tmp_path / f"session-2024010{i}_000000"
        d.mkdir()
        os.utime(d, (1_000_000 + i, 1_000_000 + i))
    logging_setup.prune_old_sessions(tmp_path, keep=3)
    remaining = sorted(p.name for p in tmp_path.iterdir())
    assert remaining == ["session-20240102_000000", "session-20240103_000000", "session-20240104_000000"]


def test_save_debug_image_only_when_enabled(tmp_path):
    img = np.zeros((4, 4), np.uint8)
    off = Config(paths=PathConfig(debug_dir=tmp_path))
    assert logging_setup.save_debug_image(off, "mask", img) is None
    on = Config(log_debug=True, paths=PathConfig(debug_dir=tmp_path / "dbg"))
    path = logging_setup.save_debug_image(on, "mask", img)
    assert path is not None and path.exists()
    assert path.parent == tmp_path / "dbg"
    assert path.name.endswith("_mask.png")
