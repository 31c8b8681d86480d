"""Pytest configuration and fixtures."""

import pytest
from loguru import logger

from tastybroker.backend.broker.session import resolve_by_token
from tastybroker.config import Settings


@pytest.fixture
def cfg():
    """Settings isolated from the developer's .env."""
    return Settings(
        _env_file=None,
        TASTY_API_BASE_URL="https://api.test",
        TASTY_API_TOKEN=None,
        TASTY_LOGIN=None,
        TASTY_PASSWORD=None,
        TASTY_USER_AGENT="tests/1.0",
        TASTY_AUTH_SCHEME="",
    )


@pytest.fixture
def token_session(cfg):
    """Factory: static-token session over the given transport."""

    def make(transport, token="tok-123"):
        return resolve_by_token(token, transport=transport, cfg=cfg)

    return make


@pytest.fixture(autouse=True)
def quiet_library_logs():
    logger.disable("tastybroker")
    yield
    logger.disable("tastybroker")
