"""Lender outcome scenarios and the weighted-random strategy that picks one"""

import random
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Tuple
from lender_gateway.domain.models import ApplicationStatus
from lender_gateway.domain.scoring import BASELINE_APPROVAL_PROBABILITY

# Keeps every outcome reachable however strong or weak the profile
MIN_PROBABILITY = 0.05
MAX_PROBABILITY = 0.95


@dataclass(frozen=True)
class Scenario:
    """One possible lender outcome with its baseline weight and term ranges"""

    status: ApplicationStatus
    weight: float
    interest_rate_range: Optional[Tuple[float, float]] = None
    amount_factor_range: Optional[Tuple[float, float]] = None  # share of requested amount
    conditions: Tuple[str, ...] = ()
    rejection_reasons: Tuple[str, ...] = ()


DEFAULT_SCENARIOS: Tuple[Scenario, ...] = (
    Scenario(
        status=ApplicationStatus.APPROVED,
        weight=0.6,
        interest_rate_range=(8.5, 12.5),
        amount_factor_range=(0.8, 1.0),
        conditions=(
            "Income verification required",
            "Bank statements for last 3 months",
            "Vehicle insurance mandatory",
        ),
    ),
    Scenario(
        status=ApplicationStatus.CONDITIONAL_APPROVAL,
        weight=0.15,
        interest_rate_range=(10.0, 14.0),
        amount_factor_range=(0.7, 0.9),
        conditions=(
            "Additional income proof required",
            "Co-applicant signature needed",
            "Higher down payment required",
        ),
    ),
    Scenario(
        status=ApplicationStatus.COUNTER_OFFER,
        weight=0.15,
        interest_rate_range=(9.0, 13.0),
        amount_factor_range=(0.6, 0.8),
        conditions=(
            "Reduced loan amount offered",
            "Extended tenure available",
            "Processing fee waiver on higher down payment",
        ),
    ),
    Scenario(
        status=ApplicationStatus.REJECTED,
        weight=0.1,
        rejection_reasons=(
            "Insufficient credit score",
            "High debt-to-income ratio",
            "Incomplete documentation",
            "Vehicle age exceeds policy limit",
            "Employment verification failed",
        ),
    ),
)


class ScenarioStrategy(Protocol):
    """Picks a lender outcome for a given approval probability"""

    def outcome(self, probability: float) -> Scenario:
        ...


class WeightedScenarioStrategy:
    """
    Cumulative-probability roulette over a fixed scenario table.

    The first scenario is the approval outcome. Its weight is replaced by
    the (bounded) approval probability and the remaining weights are
    rescaled proportionally to fill the rest. At the baseline probability
    of 0.6 this reproduces the table weights 0.6/0.15/0.15/0.1 exactly.
    """

    def __init__(
        self,
        scenarios: Sequence[Scenario] = DEFAULT_SCENARIOS,
        rng: random.Random | None = None,
    ):
        if not scenarios:
            raise ValueError("At least one scenario is required")
        self.scenarios = tuple(scenarios)
        self.rng = rng or random.Random()

    def weights_for(self, probability: float) -> List[float]:
        if len(self.scenarios) == 1:
            return [1.0]

        p = min(max(probability, MIN_PROBABILITY), MAX_PROBABILITY)
        others = self.scenarios[1:]
        other_total = sum(s.weight for s in others)
        if other_total <= 0:
            return [1.0] + [0.0] * len(others)

        return [p] + [s.weight / other_total * (1 - p) for s in others]

    def outcome(self, probability: float = BASELINE_APPROVAL_PROBABILITY) -> Scenario:
        roll = self.rng.random()
        cumulative = 0.0
        for scenario, weight in zip(self.scenarios, self.weights_for(probability)):
            cumulative += weight
            if roll < cumulative:
                return scenario

        # Float drift past the last bucket
        return self.scenarios[0]
