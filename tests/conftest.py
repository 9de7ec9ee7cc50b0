from __future__ import annotations

import logging

import pytest


@pytest.fixture(autouse=True)
def _reset_polyfunc_logger():
    """Drop handlers the CLI attaches so they don't outlive CliRunner's streams."""
    yield
    logger = logging.getLogger("polyfunc")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture(autouse=True)
def _no_api_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
