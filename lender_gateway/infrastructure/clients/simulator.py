"""Simulated lender decision API standing in for real bank/NBFC integrations"""

import asyncio
import random
from lender_gateway.config import settings
from lender_gateway.domain.emi import calculate_emi
from lender_gateway.domain.exceptions import LenderAPIError, LenderNotFoundError
from lender_gateway.domain.models import (
    ApplicationStatus,
    CounterOffer,
    Customer,
    DecisionData,
    FinancialRequest,
    Lender,
    LenderResponse,
    Vehicle,
)
from lender_gateway.domain.registry import LenderRegistry
from lender_gateway.domain.scenarios import Scenario, ScenarioStrategy, WeightedScenarioStrategy
from lender_gateway.domain.scoring import calculate_approval_probability, check_eligibility
from lender_gateway.domain.status import describe
from lender_gateway.utils.date_utils import utcnow


class SimulatedLenderClient:
    """
    Lender client that decides locally instead of calling a bank.

    Each call sleeps for the lender's average response time scaled by a
    random factor in [0.5, 1.5), then applies the lender's hard rules and
    finally draws an outcome from the scenario strategy. A non-zero
    fault_rate makes that share of calls fail like an unreachable gateway.
    """

    def __init__(
        self,
        registry: LenderRegistry,
        strategy: ScenarioStrategy | None = None,
        rng: random.Random | None = None,
        latency_scale: float | None = None,
        fault_rate: float | None = None,
    ):
        self.registry = registry
        self.rng = rng or random.Random()
        self.strategy = strategy or WeightedScenarioStrategy(rng=self.rng)
        self.latency_scale = settings.simulated_latency_scale if latency_scale is None else latency_scale
        self.fault_rate = settings.simulated_fault_rate if fault_rate is None else fault_rate

    def simulated_latency(self, lender: Lender) -> float:
        """Seconds to sleep for one call"""
        return lender.avg_response_time * (0.5 + self.rng.random()) * self.latency_scale

    async def submit_application(
        self,
        lender_id: str,
        application_id: str,
        customer: Customer,
        vehicle: Vehicle,
        financial: FinancialRequest,
    ) -> LenderResponse:
        """
        Submit an application and wait for the lender's decision.

        Raises:
            LenderNotFoundError: lender_id is not in the catalogue
            LenderAPIError: simulated gateway fault
        """
        lender = self.registry.get(lender_id)
        if lender is None:
            raise LenderNotFoundError(f"Lender {lender_id} not found")

        latency = self.simulated_latency(lender)
        if latency > 0:
            await asyncio.sleep(latency)

        if self.fault_rate > 0 and self.rng.random() < self.fault_rate:
            raise LenderAPIError(f"Lender {lender_id} gateway unavailable")

        reason = check_eligibility(lender, customer, vehicle, financial)
        if reason:
            return LenderResponse(
                success=False,
                application_id=application_id,
                lender_id=lender_id,
                status=ApplicationStatus.REJECTED,
                message=reason,
                timestamp=utcnow(),
                data=DecisionData(rejection_reason=reason),
            )

        probability = calculate_approval_probability(customer, vehicle, financial)
        scenario = self.strategy.outcome(probability)
        return self.build_response(lender, application_id, scenario, financial)

    def build_response(
        self,
        lender: Lender,
        application_id: str,
        scenario: Scenario,
        financial: FinancialRequest,
    ) -> LenderResponse:
        """Turn a drawn scenario into concrete terms"""
        if scenario.status == ApplicationStatus.REJECTED:
            reason = self.rng.choice(scenario.rejection_reasons) if scenario.rejection_reasons else "Rejected"
            return LenderResponse(
                success=False,
                application_id=application_id,
                lender_id=lender.id,
                status=ApplicationStatus.REJECTED,
                message=reason,
                timestamp=utcnow(),
                data=DecisionData(rejection_reason=reason),
            )

        rate_min, rate_max = scenario.interest_rate_range or (0.0, 0.0)
        factor_min, factor_max = scenario.amount_factor_range or (0.0, 0.0)
        interest_rate = round(self.rng.uniform(rate_min, rate_max), 2)
        approved_amount = round(financial.requested_amount * self.rng.uniform(factor_min, factor_max))

        data = DecisionData(
            interest_rate=interest_rate,
            approved_amount=approved_amount,
            loan_tenure=financial.tenure,
            processing_fee=lender.processing_fee,
            emi_amount=calculate_emi(approved_amount, interest_rate, financial.tenure),
            conditions=list(scenario.conditions),
        )

        if scenario.status == ApplicationStatus.COUNTER_OFFER:
            data.counter_offer = CounterOffer(
                amount=round(approved_amount * 0.9),
                tenure=financial.tenure + 12,
                rate=round(interest_rate + 1, 2),
            )

        return LenderResponse(
            success=True,
            application_id=application_id,
            lender_id=lender.id,
            status=scenario.status,
            message=f"Application {describe(scenario.status)}",
            timestamp=utcnow(),
            data=data,
        )
