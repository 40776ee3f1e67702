import os
from pathlib import Path
from typing import Any, List, Sequence

import pytest

CONFIG_DIR = Path(__file__).resolve().parent.parent / "configurations"

# Settings are read at import time; point them at the bundled configuration.
os.environ.setdefault("TABLES_CONFIG_PATH", str(CONFIG_DIR / "tables.json"))
os.environ.setdefault("FILTER_CONFIG_PATH", str(CONFIG_DIR / "filter.json"))

from fastapi.testclient import TestClient  # noqa: E402

from firemap.api import deps  # noqa: E402
from firemap.core.region_config import (  # noqa: E402
    FilterConfig,
    SchemaConfig,
    load_filter_config,
    load_schema_config,
)
from firemap.main import app  # noqa: E402


class RecordingExecutor:
    """
    In-memory stand-in for the database.

    Records every (query, params) pair and answers with the queued row
    lists in order; an exception instance in the queue is raised instead.
    """

    __test__ = False

    def __init__(self, *results: Any):
        self.calls: List[tuple] = []
        self.results = list(results)

    def queue(self, *results: Any) -> "RecordingExecutor":
        self.results.extend(results)
        return self

    def execute(self, query: str, params: Sequence[Any] = ()) -> List[dict]:
        self.calls.append((query, list(params)))
        if not self.results:
            return []
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    @property
    def last_query(self) -> str:
        return self.calls[-1][0]

    @property
    def last_params(self) -> list:
        return self.calls[-1][1]


# -----------------------------------------------------------------------------
# Configuration Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture(scope="session")
def schema_config() -> SchemaConfig:
    return load_schema_config(CONFIG_DIR / "tables.json")


@pytest.fixture(scope="session")
def filter_config() -> FilterConfig:
    return load_filter_config(CONFIG_DIR / "filter.json")


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor()


# -----------------------------------------------------------------------------
# Client Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture(scope="function")
def client(executor, schema_config, filter_config):
    """
    TestClient whose services run on the recording executor.
    """
    app.dependency_overrides[deps.get_executor] = lambda: executor
    app.dependency_overrides[deps.get_schema_config] = lambda: schema_config
    app.dependency_overrides[deps.get_filter_config] = lambda: filter_config

    # Using 'with' context manager to trigger lifespan events (startup/shutdown)
    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
