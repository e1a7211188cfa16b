"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Request

from accrual_gateway.batch.orchestrator import BatchOrchestrator, OrchestratorConfig
from accrual_gateway.config import Settings, settings
from accrual_gateway.domain.accrual import build_policy
from accrual_gateway.domain.store import AccountStore
from accrual_gateway.gateway import TriggerGateway
from accrual_gateway.infrastructure.database.repositories import AccountRepository
from accrual_gateway.infrastructure.database.session import SessionLocal


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_settings() -> Settings:
    """Provide application settings"""
    return settings


def get_account_store() -> AccountStore:
    """Provide the account repository bound to the application database"""
    return AccountRepository(SessionLocal)


def get_trigger_gateway(
    store: AccountStore = Depends(get_account_store),
    app_settings: Settings = Depends(get_settings),
) -> TriggerGateway:
    """Assemble policy, orchestrator and gateway from configuration"""
    policy = build_policy(app_settings.accrual_policy, app_settings.daily_interest_rate)
    orchestrator = BatchOrchestrator(store, policy, OrchestratorConfig.from_settings(app_settings))
    return TriggerGateway(app_settings.cron_secret_key, orchestrator)
