"""Pytest fixtures for testing"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Generator
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from accrual_gateway.api.main import create_app
from accrual_gateway.api.dependencies import get_account_store, get_settings
from accrual_gateway.config import Settings
from accrual_gateway.domain.models import Account, Investment
from accrual_gateway.infrastructure.database.models import Base
from accrual_gateway.infrastructure.database.repositories import AccountRepository
from accrual_gateway.infrastructure.database.session import build_engine, build_session_factory


# 06:00 UTC today: HTTP and CLI runs use the real clock, so seeded
# investments must still be live now. Investments start an hour earlier.
RUN_START = datetime.now(timezone.utc).replace(hour=6, minute=0, second=0, microsecond=0)
TEST_SECRET = "test-cron-secret"


@pytest.fixture
def database_url(tmp_path) -> str:
    """File-backed SQLite so worker threads share one database"""
    return f"sqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
def engine(database_url: str) -> Generator[Engine, None, None]:
    """Create test database schema"""
    engine = build_engine(database_url)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def store(engine: Engine) -> AccountRepository:
    return AccountRepository(build_session_factory(engine))


@pytest.fixture
def test_settings(database_url: str) -> Settings:
    return Settings(
        _env_file=None,
        database_url=database_url,
        cron_secret_key=TEST_SECRET,
        accrual_policy="per_instrument",
        daily_interest_rate=Decimal("4.0"),
        max_workers=2,
        page_size=10,
        per_account_timeout_seconds=5.0,
    )


@pytest.fixture
def client(store: AccountRepository, test_settings: Settings) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()
    app.dependency_overrides[get_account_store] = lambda: store
    app.dependency_overrides[get_settings] = lambda: test_settings
    return TestClient(app)


@pytest.fixture
def make_investment() -> Callable[..., Investment]:
    """Factory for a 30-day plan like the one in the funding flow"""

    def _make(
        investment_id: str = "inv-1",
        amount: str = "100000",
        return_rate: str = "3.53",
        duration_days: int = 30,
        days_processed: int = 0,
        total_earned: str = "0.00",
        status: str = "active",
        start_date: datetime = RUN_START - timedelta(hours=1),
        plan_name: str = "Starter Ads",
    ) -> Investment:
        return Investment(
            investment_id=investment_id,
            plan_name=plan_name,
            amount=Decimal(amount),
            return_rate=Decimal(return_rate),
            duration_days=duration_days,
            start_date=start_date,
            end_date=start_date + timedelta(days=duration_days),
            days_processed=days_processed,
            total_earned=Decimal(total_earned),
            status=status,
        )

    return _make


@pytest.fixture
def seed_account(store: AccountRepository) -> Callable[..., Account]:
    """Insert an account into the test database and return it"""

    def _seed(account_id: str, investments=None, available_balance="0", total_funded_amount="0") -> Account:
        account = Account(
            account_id=account_id,
            available_balance=Decimal(available_balance),
            total_funded_amount=Decimal(total_funded_amount),
            investments=list(investments or []),
        )
        store.create_account(account)
        return account

    return _seed


@pytest.fixture
def run_start() -> datetime:
    return RUN_START
