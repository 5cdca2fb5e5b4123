import sys
from pathlib import Path
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from cellgate.api.server import create_app  # noqa: E402
from cellgate.config import GatewayConfig  # noqa: E402
from cellgate.store import InMemoryRowStore  # noqa: E402

TABLE = "TestRowResource"
FAMILIES = ["a", "b"]


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "unit: fast unit tests")
    config.addinivalue_line(
        "markers",
        "integration: tests that go through the HTTP app or the client",
    )


@pytest.fixture
def memory_store() -> InMemoryRowStore:
    """Empty in-memory store with one table holding families ``a`` and ``b``."""
    return InMemoryRowStore(tables={TABLE: FAMILIES})


@pytest.fixture
def gateway_config() -> GatewayConfig:
    return GatewayConfig(tables={TABLE: FAMILIES}, request_timeout=5.0, log_json=False)


@pytest.fixture
def api_client(
    gateway_config: GatewayConfig, memory_store: InMemoryRowStore
) -> Iterator[TestClient]:
    """TestClient over a fresh app sharing ``memory_store``."""
    app = create_app(gateway_config, memory_store)
    with TestClient(app) as client:
        yield client
