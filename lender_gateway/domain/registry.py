"""Lender catalogue - read-only lookup of lending counterparties"""

from typing import Dict, Iterable, List, Optional
from lender_gateway.domain.models import Lender


DEFAULT_LENDERS: List[Lender] = [
    Lender(
        id="hdfc-bank",
        name="HDFC Bank",
        is_active=True,
        approval_rate=0.75,
        avg_response_time=45,
        min_credit_score=650,
        min_loan_amount=100_000,
        max_loan_amount=5_000_000,
        processing_fee=2500,
        commission_rate=1.5,
        supported_vehicle_types=("sedan", "suv", "hatchback", "muv"),
        supported_employment_types=("salaried", "self-employed", "business-owner"),
        api_endpoint="https://api.hdfcbank.com/auto-loans",
    ),
    Lender(
        id="icici-bank",
        name="ICICI Bank",
        is_active=True,
        approval_rate=0.72,
        avg_response_time=60,
        min_credit_score=680,
        min_loan_amount=150_000,
        max_loan_amount=3_000_000,
        processing_fee=3000,
        commission_rate=1.8,
        supported_vehicle_types=("sedan", "suv", "hatchback"),
        supported_employment_types=("salaried", "self-employed"),
        api_endpoint="https://api.icicibank.com/vehicle-finance",
    ),
    Lender(
        id="bajaj-finserv",
        name="Bajaj Finserv",
        is_active=True,
        approval_rate=0.68,
        avg_response_time=30,
        min_credit_score=600,
        min_loan_amount=50_000,
        max_loan_amount=2_000_000,
        processing_fee=1500,
        commission_rate=2.0,
        supported_vehicle_types=("sedan", "suv", "hatchback", "muv", "commercial"),
        supported_employment_types=("salaried", "self-employed", "business-owner", "freelancer"),
        api_endpoint="https://api.bajajfinserv.com/consumer-finance",
    ),
    Lender(
        id="mahindra-finance",
        name="Mahindra Finance",
        is_active=True,
        approval_rate=0.65,
        avg_response_time=90,
        min_credit_score=580,
        min_loan_amount=75_000,
        max_loan_amount=1_500_000,
        processing_fee=2000,
        commission_rate=1.2,
        supported_vehicle_types=("suv", "muv", "commercial"),
        supported_employment_types=("salaried", "self-employed", "business-owner"),
        api_endpoint="https://api.mahindrafinance.com/vehicle-finance",
    ),
    Lender(
        id="sbi",
        name="State Bank of India",
        is_active=True,
        approval_rate=0.70,
        avg_response_time=120,
        min_credit_score=620,
        min_loan_amount=100_000,
        max_loan_amount=4_000_000,
        processing_fee=1800,
        commission_rate=1.0,
        supported_vehicle_types=("sedan", "suv", "hatchback", "muv"),
        supported_employment_types=("salaried", "self-employed", "business-owner"),
        api_endpoint="https://api.sbi.co.in/auto-loans",
    ),
]


class LenderRegistry:
    """Immutable lender catalogue, iterated in load order"""

    def __init__(self, lenders: Iterable[Lender] | None = None):
        catalogue = DEFAULT_LENDERS if lenders is None else lenders
        self._lenders: Dict[str, Lender] = {lender.id: lender for lender in catalogue}

    def get(self, lender_id: str) -> Optional[Lender]:
        return self._lenders.get(lender_id)

    def list_active(self) -> List[Lender]:
        return [lender for lender in self._lenders.values() if lender.is_active]

    def list_all(self) -> List[Lender]:
        return list(self._lenders.values())

    def name_of(self, lender_id: str) -> str:
        """Display name, falling back to the id for unknown lenders"""
        lender = self.get(lender_id)
        return lender.name if lender else lender_id
