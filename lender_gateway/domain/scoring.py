"""Scoring engine - lender eligibility, lender selection, priority and approval odds"""

from typing import List, Optional, Sequence
from lender_gateway.domain.models import Customer, FinancialRequest, Lender, Priority, Vehicle
from lender_gateway.utils.date_utils import current_year

BASELINE_APPROVAL_PROBABILITY = 0.6


def check_eligibility(
    lender: Lender,
    customer: Customer,
    vehicle: Vehicle,
    financial: FinancialRequest,
) -> Optional[str]:
    """
    Apply a lender's hard eligibility rules.

    Rules are checked in order: credit score floor, loan amount floor,
    loan amount ceiling, vehicle category, employment type.

    Returns:
        Human-readable reason for the first failed rule, or None if eligible
    """
    credit_score = customer.financial_info.credit_score
    if credit_score < lender.min_credit_score:
        return f"Credit score {credit_score} is below minimum requirement of {lender.min_credit_score}"

    amount = financial.requested_amount
    if amount < lender.min_loan_amount:
        return f"Requested amount ₹{amount:,.0f} is below minimum loan amount of ₹{lender.min_loan_amount:,}"
    if amount > lender.max_loan_amount:
        return f"Requested amount ₹{amount:,.0f} exceeds maximum loan amount of ₹{lender.max_loan_amount:,}"

    if vehicle.category.lower() not in lender.supported_vehicle_types:
        return f"Vehicle type {vehicle.category} is not supported by {lender.name}"

    employment_type = customer.employment_info.employment_type
    if employment_type not in lender.supported_employment_types:
        return f"Employment type {employment_type} is not supported by {lender.name}"

    return None


def debt_to_income_ratio(customer: Customer, financial: FinancialRequest) -> float:
    """
    Monthly obligations over monthly income.

    The new loan is approximated as 2% of the requested amount per month.
    Zero income yields an infinite ratio.
    """
    income = customer.employment_info.monthly_income
    obligations = customer.financial_info.existing_emis + financial.requested_amount * 0.02
    if income <= 0:
        return float("inf")
    return obligations / income


def calculate_approval_probability(
    customer: Customer,
    vehicle: Vehicle,
    financial: FinancialRequest,
    year: int | None = None,
) -> float:
    """
    Estimate how likely a lender is to approve an eligible application.

    Starts at 0.6 and adjusts for:
    - Credit score: +0.2 (>=750), +0.1 (>=700), -0.2 (<650)
    - Debt-to-income: +0.15 (<0.3), -0.25 (>0.6)
    - Employment tenure: +0.1 (>=5y), -0.15 (<2y)
    - Vehicle age: +0.1 (<=3y), -0.2 (>8y)

    The result is unclamped; the scenario strategy bounds it.
    """
    probability = BASELINE_APPROVAL_PROBABILITY

    credit_score = customer.financial_info.credit_score
    if credit_score >= 750:
        probability += 0.2
    elif credit_score >= 700:
        probability += 0.1
    elif credit_score < 650:
        probability -= 0.2

    ratio = debt_to_income_ratio(customer, financial)
    if ratio < 0.3:
        probability += 0.15
    elif ratio > 0.6:
        probability -= 0.25

    experience = customer.employment_info.experience
    if experience >= 5:
        probability += 0.1
    elif experience < 2:
        probability -= 0.15

    vehicle_age = (year or current_year()) - vehicle.year
    if vehicle_age <= 3:
        probability += 0.1
    elif vehicle_age > 8:
        probability -= 0.2

    return round(probability, 4)


def score_lender(
    lender: Lender,
    customer: Customer,
    vehicle: Vehicle,
    financial: FinancialRequest,
) -> float:
    """
    Compatibility score of a lender for an application.

    Soft version of the eligibility rules plus the lender's track record:
    - 20 credit score, 20 amount range, 15 vehicle, 15 employment
    - approval_rate * 20
    - up to 10 for fast responders (10 - avg_response_time / 10, floored at 0)
    """
    score = 0.0

    if customer.financial_info.credit_score >= lender.min_credit_score:
        score += 20

    if lender.min_loan_amount <= financial.requested_amount <= lender.max_loan_amount:
        score += 20

    if vehicle.category.lower() in lender.supported_vehicle_types:
        score += 15

    if customer.employment_info.employment_type in lender.supported_employment_types:
        score += 15

    score += lender.approval_rate * 20
    score += max(0.0, 10 - lender.avg_response_time / 10)

    return score


def select_optimal_lenders(
    lenders: Sequence[Lender],
    customer: Customer,
    vehicle: Vehicle,
    financial: FinancialRequest,
    limit: int = 5,
) -> List[str]:
    """
    Rank active lenders by compatibility and return the top ids.

    Sort is stable, so equal scores keep catalogue order.
    """
    scored = [
        (lender, score_lender(lender, customer, vehicle, financial))
        for lender in lenders
        if lender.is_active
    ]
    ranked = sorted(scored, key=lambda item: item[1], reverse=True)
    return [lender.id for lender, _ in ranked[: min(limit, len(ranked))]]


def calculate_priority(customer: Customer, financial: FinancialRequest) -> Priority:
    """
    Map an application to a processing tier.

    Points:
    - Credit score: 30 (>=750), 20 (>=700), 10 (>=650)
    - Monthly income: 25 (>=1L), 15 (>=50k), 10 (>=25k)
    - Experience: 20 (>=5y), 15 (>=3y), 10 (>=1y)
    - Requested amount: 15 (>=10L), 10 (>=5L), 5 (>=2L)

    >=70 is HIGH, >=40 is MEDIUM, otherwise LOW.
    """
    score = 0

    credit_score = customer.financial_info.credit_score
    if credit_score >= 750:
        score += 30
    elif credit_score >= 700:
        score += 20
    elif credit_score >= 650:
        score += 10

    income = customer.employment_info.monthly_income
    if income >= 100_000:
        score += 25
    elif income >= 50_000:
        score += 15
    elif income >= 25_000:
        score += 10

    experience = customer.employment_info.experience
    if experience >= 5:
        score += 20
    elif experience >= 3:
        score += 15
    elif experience >= 1:
        score += 10

    amount = financial.requested_amount
    if amount >= 1_000_000:
        score += 15
    elif amount >= 500_000:
        score += 10
    elif amount >= 200_000:
        score += 5

    if score >= 70:
        return Priority.HIGH
    if score >= 40:
        return Priority.MEDIUM
    return Priority.LOW
