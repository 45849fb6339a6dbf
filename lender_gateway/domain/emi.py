"""EMI calculation and amortization schedules for approved loans"""

from typing import List
from lender_gateway.domain.models import AmortizationRow


def monthly_rate(annual_rate: float) -> float:
    """Annual percentage rate to monthly decimal rate"""
    return annual_rate / 12 / 100


def calculate_emi(principal: float, annual_rate: float, tenure_months: int) -> int:
    """
    Equal monthly installment for an amortizing loan.

    emi = P * r * (1 + r)^n / ((1 + r)^n - 1), r = annual_rate / 12 / 100

    A zero rate degenerates to P / n. Rounded to the nearest rupee.
    """
    if principal <= 0 or tenure_months <= 0:
        return 0

    r = monthly_rate(annual_rate)
    if r == 0:
        return round(principal / tenure_months)

    growth = (1 + r) ** tenure_months
    return round(principal * r * growth / (growth - 1))


def generate_amortization_schedule(
    principal: float,
    annual_rate: float,
    tenure_months: int,
    emi: int | None = None,
) -> List[AmortizationRow]:
    """
    Month-by-month repayment schedule.

    Each payment covers the month's interest first, the rest reduces the
    balance. The final payment absorbs the rounding drift of the EMI so
    the schedule closes at exactly zero.

    Example:
        500000 @ 10% over 60 months -> EMI 10624, 60 rows, last balance 0
    """
    if principal <= 0 or tenure_months <= 0:
        return []

    if emi is None:
        emi = calculate_emi(principal, annual_rate, tenure_months)

    r = monthly_rate(annual_rate)
    balance = float(principal)
    rows = []

    for month in range(1, tenure_months + 1):
        interest = balance * r
        if month == tenure_months:
            principal_part = balance
        else:
            principal_part = emi - interest
        balance -= principal_part

        rows.append(
            AmortizationRow(
                month=month,
                payment=round(principal_part + interest, 2),
                principal=round(principal_part, 2),
                interest=round(interest, 2),
                balance=round(balance, 2),
            )
        )

    return rows
