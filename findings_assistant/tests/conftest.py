# conftest.py
"""Pytest configuration and shared fixtures."""

import os
import tempfile
from pathlib import Path
from unittest.mock import Mock

import pytest

from findings_assistant.core import settings
from findings_assistant.core.exceptions import StoreUnavailableError
from findings_assistant.data import InMemoryFindingRepository
from findings_assistant.data.models import DatabaseManager
from findings_assistant.mock_llm import MockLLM
from findings_assistant.query_handlers.entity_config import EntityConfigLoader
from findings_assistant.query_handlers.router import SmartQueryRouter
from findings_assistant.services.data_loader import DataLoader
from findings_assistant.services.query_cache import QueryCache

ENTITIES_YAML = str(Path(settings.CONFIG_DIR) / "entities.yaml")


class FakeClock:
    """Manually advanced monotonic clock"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FlakyStore(InMemoryFindingRepository):
    """In-memory store that can be switched off, or run a hook on each query"""

    def __init__(self, findings=None):
        super().__init__(findings)
        self.available = True
        self.on_query = None

    def _guard(self):
        if not self.available:
            raise StoreUnavailableError("database connection refused")
        if self.on_query is not None:
            self.on_query()

    def query(self, collection, predicates, limit=None):
        self._guard()
        return super().query(collection, predicates, limit)

    def aggregate(self, collection, group_by, predicates, metrics=None):
        self._guard()
        return super().aggregate(collection, group_by, predicates, metrics)

    def distinct_values(self, collection, field):
        self._guard()
        return super().distinct_values(collection, field)


@pytest.fixture(scope="session")
def test_env():
    """Set up test environment variables."""
    # Store original values
    original_env = {}
    test_vars = {
        'ENVIRONMENT': 'test',
        'GROQ_API_KEY': 'test_key_12345',
    }

    for key, value in test_vars.items():
        original_env[key] = os.environ.get(key)
        os.environ[key] = value

    yield

    # Restore original values
    for key, original_value in original_env.items():
        if original_value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = original_value


@pytest.fixture
def temp_db():
    """Create a temporary test database for each test."""
    with tempfile.NamedTemporaryFile(suffix='.db', delete=False) as tmp_file:
        temp_db_path = tmp_file.name

    # Override the database URL for testing
    original_url = os.environ.get('DATABASE_URL')
    os.environ['DATABASE_URL'] = f'sqlite:///{temp_db_path}'

    db_manager = DatabaseManager(f'sqlite:///{temp_db_path}')
    try:
        db_manager.create_tables()
        yield db_manager
    finally:
        db_manager.dispose()
        if original_url:
            os.environ['DATABASE_URL'] = original_url
        else:
            os.environ.pop('DATABASE_URL', None)
        Path(temp_db_path).unlink(missing_ok=True)


@pytest.fixture
def sample_findings():
    """The bundled mock findings (14 across 2023-2025)."""
    return DataLoader.get_mock_findings()


@pytest.fixture
def entity_config():
    """Vocabulary loaded from the packaged entities.yaml."""
    return EntityConfigLoader(ENTITIES_YAML)


@pytest.fixture
def store(sample_findings):
    return FlakyStore(sample_findings)


@pytest.fixture
def mock_llm():
    """Deterministic offline LLM."""
    return MockLLM()


@pytest.fixture
def failing_llm():
    """LLM whose every call fails; set side_effect to the error to raise."""
    llm = Mock()
    llm.complete.side_effect = RuntimeError("configure side_effect in the test")
    return llm


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def audit_sink():
    return Mock()


@pytest.fixture
def make_router(store, mock_llm, entity_config, clock, audit_sink):
    """Factory for routers over the sample store; keyword overrides win."""

    def _make(**overrides):
        options = {
            "store": store,
            "llm": mock_llm,
            "cache": QueryCache(default_ttl=300, clock=clock),
            "audit_sink": audit_sink,
            "entity_config": entity_config,
            "clock": clock,
            "broaden_empty_lookups": True,
            "llm_filter_extraction": False,
        }
        options.update(overrides)
        return SmartQueryRouter(**options)

    return _make


@pytest.fixture
def router(make_router):
    return make_router()


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )
    config.addinivalue_line(
        "markers", "unit: mark test as unit test"
    )


# Custom collection hook for organizing tests
def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Add markers based on test file name
        if "test_web_api" in item.nodeid:
            item.add_marker(pytest.mark.integration)
        elif "test_router" in item.nodeid:
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)

        # Mark slow tests
        if any(keyword in item.nodeid.lower() for keyword in ["performance", "large", "slow"]):
            item.add_marker(pytest.mark.slow)
