"""Pytest fixtures for testing"""

import random
from typing import Callable
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from lender_gateway.api.dependencies import get_orchestrator, get_webhook_client
from lender_gateway.api.main import create_app
from lender_gateway.domain.models import (
    Customer,
    EmploymentInfo,
    FinancialInfo,
    FinancialRequest,
    PersonalInfo,
    Vehicle,
)
from lender_gateway.domain.registry import LenderRegistry
from lender_gateway.domain.scenarios import DEFAULT_SCENARIOS, WeightedScenarioStrategy
from lender_gateway.infrastructure.clients.simulator import SimulatedLenderClient
from lender_gateway.infrastructure.clients.webhook import DecisionWebhookClient
from lender_gateway.infrastructure.database.session import build_session_factory, create_tables
from lender_gateway.infrastructure.memory import InMemoryInFlightGuard, InMemorySubmissionStore
from lender_gateway.services.orchestrator import SubmissionOrchestrator
from lender_gateway.utils.date_utils import current_year


@pytest.fixture
def make_customer() -> Callable[..., Customer]:
    """Factory for applicants; defaults describe a strong salaried profile"""

    def _make(
        credit_score: int = 800,
        monthly_income: float = 150_000,
        experience: float = 6,
        employment_type: str = "salaried",
        existing_emis: float = 0,
    ) -> Customer:
        return Customer(
            personal_info=PersonalInfo(first_name="Asha", last_name="Verma", pan="ABCDE1234F"),
            employment_info=EmploymentInfo(
                employment_type=employment_type,
                monthly_income=monthly_income,
                experience=experience,
                company_name="Infosys",
            ),
            financial_info=FinancialInfo(credit_score=credit_score, existing_emis=existing_emis),
        )

    return _make


@pytest.fixture
def make_vehicle() -> Callable[..., Vehicle]:
    def _make(category: str = "sedan", age: int = 1, price: float = 900_000) -> Vehicle:
        return Vehicle(make="Honda", model="City", year=current_year() - age, category=category, price=price)

    return _make


@pytest.fixture
def make_financial() -> Callable[..., FinancialRequest]:
    def _make(requested_amount: float = 600_000, tenure: int = 60) -> FinancialRequest:
        return FinancialRequest(
            requested_amount=requested_amount,
            tenure=tenure,
            down_payment=300_000,
            monthly_income=150_000,
            credit_score=800,
        )

    return _make


@pytest.fixture
def registry() -> LenderRegistry:
    return LenderRegistry()


@pytest.fixture
def approving_client(registry: LenderRegistry) -> SimulatedLenderClient:
    """Zero-latency simulator whose eligible outcomes are always APPROVED"""
    return SimulatedLenderClient(
        registry,
        strategy=WeightedScenarioStrategy(DEFAULT_SCENARIOS[:1]),
        rng=random.Random(42),
        latency_scale=0,
    )


@pytest.fixture
def store() -> InMemorySubmissionStore:
    return InMemorySubmissionStore()


@pytest.fixture
def orchestrator(
    registry: LenderRegistry,
    approving_client: SimulatedLenderClient,
    store: InMemorySubmissionStore,
) -> SubmissionOrchestrator:
    return SubmissionOrchestrator(
        registry=registry,
        client=approving_client,
        store=store,
        guard=InMemoryInFlightGuard(),
    )


@pytest.fixture
def session_factory():
    """In-memory SQLite shared across threads"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(engine)
    try:
        yield build_session_factory(engine)
    finally:
        engine.dispose()


@pytest.fixture
def client(orchestrator: SubmissionOrchestrator) -> TestClient:
    """Create FastAPI test client bound to the test orchestrator"""
    app = create_app()
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_webhook_client] = lambda: DecisionWebhookClient(webhook_url="")
    return TestClient(app)


@pytest.fixture
def application_payload() -> dict:
    """JSON body for POST /v1/applications"""
    return {
        "application_id": "APP-1001",
        "customer": {
            "personal_info": {"first_name": "Asha", "last_name": "Verma", "pan": "ABCDE1234F"},
            "employment_info": {
                "employment_type": "salaried",
                "monthly_income": 150000,
                "experience": 6,
            },
            "financial_info": {"credit_score": 800, "existing_emis": 0},
        },
        "vehicle": {
            "make": "Honda",
            "model": "City",
            "year": current_year() - 1,
            "category": "sedan",
            "price": 900000,
        },
        "financial": {"requested_amount": 600000, "tenure": 60, "down_payment": 300000},
        "documents": [{"id": "doc-1", "type": "pan_card", "verified": True}],
        "lender_ids": [],
    }
