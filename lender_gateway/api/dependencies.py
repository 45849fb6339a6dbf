"""Dependency injection for FastAPI endpoints"""

from functools import lru_cache
from fastapi import Request

from lender_gateway.config import settings
from lender_gateway.domain.registry import LenderRegistry
from lender_gateway.infrastructure.clients.simulator import SimulatedLenderClient
from lender_gateway.infrastructure.clients.webhook import DecisionWebhookClient
from lender_gateway.infrastructure.memory import InMemoryInFlightGuard, InMemorySubmissionStore
from lender_gateway.services.orchestrator import SubmissionOrchestrator


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


@lru_cache
def get_registry() -> LenderRegistry:
    """Provide the lender catalogue"""
    return LenderRegistry()


@lru_cache
def get_orchestrator() -> SubmissionOrchestrator:
    """Provide the process-wide orchestrator, wired to the configured store backend"""
    if settings.store_backend == "sql":
        from lender_gateway.infrastructure.database.repositories import SqlInFlightGuard, SqlSubmissionStore
        from lender_gateway.infrastructure.database.session import SessionLocal, create_tables, engine

        create_tables(engine)
        store = SqlSubmissionStore(SessionLocal)
        guard = SqlInFlightGuard(SessionLocal)
    else:
        store = InMemorySubmissionStore()
        guard = InMemoryInFlightGuard()

    registry = get_registry()
    return SubmissionOrchestrator(
        registry=registry,
        client=SimulatedLenderClient(registry),
        store=store,
        guard=guard,
        max_selected_lenders=settings.max_selected_lenders,
        lender_timeout=settings.lender_timeout_seconds,
        enforce_forward_transitions=settings.enforce_forward_transitions,
    )


def get_webhook_client() -> DecisionWebhookClient:
    """Provide decision webhook client instance"""
    return DecisionWebhookClient()
