"""
Pytest fixtures for the ERP kernel test suite.

Provides:
- An in-memory SQLite database per test (fresh schema, no cleanup needed)
- Service fixtures sharing one session and one deterministic clock
- Structured log capture

Pure engine tests need none of the database fixtures.
"""

import json
import logging
from datetime import date, datetime, UTC
from io import StringIO
from typing import Generator
from uuid import UUID, uuid4

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

import erp_kernel.models  # noqa: F401  (registers every table on Base.metadata)
from erp_kernel.db.base import Base
from erp_kernel.db.engine import build_engine
from erp_kernel.domain.clock import DeterministicClock
from erp_kernel.domain.dtos import AccountType
from erp_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from erp_kernel.services.account_service import AccountService
from erp_kernel.services.business_entity_service import BusinessEntityService
from erp_kernel.services.item_service import ItemService
from erp_kernel.services.period_service import PeriodService
from erp_kernel.services.tax_service import TaxCatalogService
from erp_kernel.services.transaction_service import TransactionService


# Test actor ID for all test operations
TEST_ACTOR_ID = uuid4()


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
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
    Capture erp_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, period_service):
            period_service.close_period("2024-01", actor)
            logs = captured_logs()
            assert any(r["message"] == "period_closed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("erp_kernel")
    previous_level = root.level
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """Fresh in-memory SQLite database with every table created."""
    eng = build_engine("sqlite://")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine) -> Generator[Session, None, None]:
    """Session bound to the per-test database.  Services only flush."""
    sess = Session(bind=engine, expire_on_commit=False)
    yield sess
    sess.rollback()
    sess.close()


@pytest.fixture
def test_actor_id() -> UUID:
    """Provide a consistent test actor ID."""
    return TEST_ACTOR_ID


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC))


# =============================================================================
# Service fixtures
# =============================================================================


@pytest.fixture
def period_service(session, deterministic_clock) -> PeriodService:
    return PeriodService(session, deterministic_clock)


@pytest.fixture
def account_service(session) -> AccountService:
    return AccountService(session)


@pytest.fixture
def entity_service(session) -> BusinessEntityService:
    return BusinessEntityService(session)


@pytest.fixture
def item_service(session) -> ItemService:
    return ItemService(session)


@pytest.fixture
def tax_service(session) -> TaxCatalogService:
    return TaxCatalogService(session)


@pytest.fixture
def transaction_service(session, deterministic_clock, period_service) -> TransactionService:
    return TransactionService(session, deterministic_clock, period_service)


# =============================================================================
# Reference data
# =============================================================================


@pytest.fixture
def standard_accounts(account_service, test_actor_id):
    """A minimal chart of accounts: cash, receivables, VAT payable, equity, sales, rent."""
    specs = [
        ("1000", "Cash", AccountType.ASSET),
        ("1200", "Accounts Receivable", AccountType.ASSET),
        ("2100", "VAT Payable", AccountType.LIABILITY),
        ("3000", "Owner's Equity", AccountType.EQUITY),
        ("4000", "Sales", AccountType.REVENUE),
        ("6100", "Rent", AccountType.EXPENSE),
    ]
    return {
        code: account_service.create_account(code, name, account_type, test_actor_id)
        for code, name, account_type in specs
    }


@pytest.fixture
def open_year(period_service, test_actor_id):
    """Twelve monthly periods for 2024, all open."""
    periods = []
    for month in range(1, 13):
        start = date(2024, month, 1)
        end = date(2024 + month // 12, month % 12 + 1, 1).toordinal() - 1
        periods.append(
            period_service.create_period(
                code=f"2024-{month:02d}",
                name=start.strftime("%B %Y"),
                start_date=start,
                end_date=date.fromordinal(end),
                actor_id=test_actor_id,
            )
        )
    return periods
