from __future__ import annotations

import logging
from pathlib import Path

import pytest

from irctl.core.config_loader import load_profile
from irctl.core.model import ControllerProfile


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
    monkeypatch.delenv("IRCTL_VERBOSE", raising=False)
    yield
    logger = logging.getLogger("irctl")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def profile() -> ControllerProfile:
    return load_profile()
