"""Unit tests for EMI calculation and amortization schedules"""

import pytest
from lender_gateway.domain.emi import calculate_emi, generate_amortization_schedule, monthly_rate


def residual_balance(principal: float, annual_rate: float, tenure_months: int, emi: float) -> float:
    """Balance left after paying a fixed EMI for the full tenure"""
    r = monthly_rate(annual_rate)
    balance = float(principal)
    for _ in range(tenure_months):
        balance = balance * (1 + r) - emi
    return balance


def test_monthly_rate():
    assert monthly_rate(12) == pytest.approx(0.01)


def test_calculate_emi_standard_loan():
    """Test 5L at 10% over 60 months"""
    assert calculate_emi(500_000, 10, 60) == 10624


def test_calculate_emi_zero_rate():
    """Test zero interest degenerates to an equal split"""
    assert calculate_emi(120_000, 0, 12) == 10_000


def test_calculate_emi_invalid_inputs():
    assert calculate_emi(0, 10, 60) == 0
    assert calculate_emi(500_000, 10, 0) == 0


@pytest.mark.parametrize(
    "principal,rate,tenure",
    [
        (500_000, 10, 60),
        (1_250_000, 8.75, 84),
        (75_000, 13.99, 12),
        (2_000_000, 11.5, 120),
    ],
)
def test_emi_repays_loan_within_rounding(principal, rate, tenure):
    """Test paying the rounded EMI for the full tenure leaves only rounding drift"""
    emi = calculate_emi(principal, rate, tenure)
    r = monthly_rate(rate)

    # Each payment is off by at most half a rupee, compounded until the end
    tolerance = 0.5 * tenure * (1 + r) ** tenure
    assert abs(residual_balance(principal, rate, tenure, emi)) <= tolerance


def test_amortization_schedule_closes_at_zero():
    """Test last payment absorbs rounding drift"""
    schedule = generate_amortization_schedule(500_000, 10, 60)

    assert len(schedule) == 60
    assert [row.month for row in schedule] == list(range(1, 61))
    assert schedule[-1].balance == 0
    assert sum(row.principal for row in schedule) == pytest.approx(500_000, abs=1)


def test_amortization_schedule_first_month_split():
    schedule = generate_amortization_schedule(500_000, 10, 60)
    first = schedule[0]

    # 500000 * 10 / 12 / 100
    assert first.interest == pytest.approx(4166.67)
    assert first.payment == pytest.approx(10624)
    assert first.principal == pytest.approx(10624 - 4166.67, abs=0.01)


def test_amortization_schedule_interest_declines():
    schedule = generate_amortization_schedule(300_000, 9.5, 36)

    interests = [row.interest for row in schedule]
    assert interests == sorted(interests, reverse=True)


def test_amortization_schedule_with_lender_emi():
    """Test a lender-quoted EMI drives the schedule"""
    schedule = generate_amortization_schedule(120_000, 0, 12, emi=9_000)

    assert all(row.payment == 9_000 for row in schedule[:-1])
    assert schedule[-1].payment == 120_000 - 9_000 * 11
    assert schedule[-1].balance == 0


def test_amortization_schedule_invalid_inputs():
    assert generate_amortization_schedule(0, 10, 12) == []
    assert generate_amortization_schedule(100_000, 10, 0) == []
