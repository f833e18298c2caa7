"""
Pytest fixtures for the operations kernel test suite.

Provides:
- A fresh in-memory SQLite database per test (tables + triggers)
- Immutability listeners registered once per run
- Deterministic clock, recording notification publisher
- Ready-to-use module services with factory settings seeded
"""

import json
import logging
from datetime import UTC, datetime
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy.orm import Session

from ops_kernel.db.engine import create_tables, get_session, init_engine_from_url, reset_engine
from ops_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from ops_kernel.domain.clock import DeterministicClock
from ops_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ops_modules.planner.service import ProductionOrderService
from ops_modules.requests.service import PurchaseRequestService
from ops_modules.warehouse.service import LocationLockService
from tests.factories import TEST_CREATOR, RecordingPublisher, order_fields, request_fields

IN_MEMORY_URL = "sqlite://"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture ops_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, request_service):
            request_service.create(...)
            logs = captured_logs()
            assert any(r["message"] == "workflow_entity_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("ops_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture(scope="session")
def _immutability_listeners():
    """ORM-level immutability listeners stay active for the whole run."""
    register_immutability_listeners()
    yield
    unregister_immutability_listeners()


@pytest.fixture
def db_engine(_immutability_listeners):
    """A private in-memory database with every table and trigger installed."""
    eng = init_engine_from_url(IN_MEMORY_URL)
    create_tables()
    yield eng
    reset_engine()


@pytest.fixture
def session(db_engine) -> Generator[Session, None, None]:
    sess = get_session()
    try:
        yield sess
    finally:
        sess.close()


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 3, 1, 9, 0, 0, tzinfo=UTC))


# =============================================================================
# Collaborators
# =============================================================================


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


# =============================================================================
# Module services
# =============================================================================


@pytest.fixture
def request_service(session, deterministic_clock, publisher) -> PurchaseRequestService:
    service = PurchaseRequestService(session, clock=deterministic_clock, publisher=publisher)
    service.initialize()
    return service


@pytest.fixture
def planner_service(session, deterministic_clock, publisher) -> ProductionOrderService:
    service = ProductionOrderService(session, clock=deterministic_clock, publisher=publisher)
    service.initialize()
    return service


@pytest.fixture
def lock_service(session) -> LocationLockService:
    return LocationLockService(session)


@pytest.fixture
def make_request(request_service):
    """Create purchase requests with sensible defaults."""

    def _make(created_by: str = TEST_CREATOR, **overrides):
        return request_service.create(request_fields(**overrides), created_by=created_by)

    return _make


@pytest.fixture
def make_order(planner_service):
    """Create production orders with sensible defaults."""

    def _make(created_by: str = TEST_CREATOR, **overrides):
        return planner_service.create(order_fields(**overrides), created_by=created_by)

    return _make
