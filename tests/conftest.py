from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Callable, Tuple

import pytest

from cargo_cgp.config import CgpConfig
from cargo_cgp.pipeline import CheckSession


@pytest.fixture(autouse=True)
def _reset_cargo_cgp_logger():
    """Undo configure_logging() between tests so caplog sees cargo_cgp records."""
    yield
    logger = logging.getLogger("cargo_cgp")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def config(tmp_path: Path) -> CgpConfig:
    """Default configuration rooted at the pytest tmp_path."""
    return CgpConfig(root=tmp_path)


@pytest.fixture
def make_session(config: CgpConfig) -> Callable[..., Tuple[CheckSession, io.StringIO]]:
    """Return a factory building a session that writes into an in-memory stream."""

    def _factory(**overrides: object) -> Tuple[CheckSession, io.StringIO]:
        for key, value in overrides.items():
            setattr(config, key, value)
        stream = io.StringIO()
        return CheckSession(config, stream=stream), stream

    return _factory
