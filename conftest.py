"""Root conftest for pytest configuration and shared fixtures."""

import os

import httpx
import pytest

# Register pytest-asyncio plugin at the root level
pytest_plugins = ("pytest_asyncio",)

# ---------------------------------------------------------------------------
# Environment variables, set before any pullkit module import.
# Uses setdefault so real env vars are never overridden.
# ---------------------------------------------------------------------------
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")


# ---------------------------------------------------------------------------
# Fake vendor servers
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_http():
    """Build HTTP client factories whose clients are served by a handler function.

    Usage:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[])

        datasource = JiraDatasource(http_client_factory=mock_http(handler))
    """

    def build(handler):
        transport = httpx.MockTransport(handler)
        return lambda **kwargs: httpx.AsyncClient(transport=transport, **kwargs)

    return build
