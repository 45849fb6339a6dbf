"""Aggregations over lender application records"""

from typing import Dict, Iterable, List
from lender_gateway.domain.models import (
    ApplicationStatus,
    LenderAnalytics,
    LenderApplication,
    OfferSummary,
    StatusSummary,
)
from lender_gateway.domain.registry import LenderRegistry
from lender_gateway.domain.status import PENDING_STATUSES


def compute_lender_analytics(
    records: Iterable[LenderApplication],
    registry: LenderRegistry,
) -> List[LenderAnalytics]:
    """
    Per-lender totals across all applications.

    Commission is approved_amount * commission_rate / 100, summed over
    APPROVED records of lenders still in the catalogue. Averages are
    derived on read by LenderAnalytics.
    """
    stats: Dict[str, LenderAnalytics] = {}

    for record in records:
        entry = stats.get(record.lender_id)
        if entry is None:
            entry = LenderAnalytics(lender_id=record.lender_id, lender_name=record.lender_name)
            stats[record.lender_id] = entry

        entry.total_applications += 1

        if record.status == ApplicationStatus.APPROVED:
            entry.approved_applications += 1
            if record.interest_rate:
                entry.total_interest_rate += record.interest_rate
            lender = registry.get(record.lender_id)
            if record.approved_amount and lender:
                entry.total_commission += record.approved_amount * lender.commission_rate / 100
        elif record.status == ApplicationStatus.REJECTED:
            entry.rejected_applications += 1
        elif record.status in PENDING_STATUSES:
            entry.pending_applications += 1

        if record.response_time:
            entry.total_response_time += record.response_time

    return list(stats.values())


def summarize_status(records: List[LenderApplication]) -> StatusSummary:
    """Outcome counts for one application's lenders"""
    total = len(records)
    approved = sum(1 for r in records if r.status == ApplicationStatus.APPROVED)
    pending = sum(1 for r in records if r.status in PENDING_STATUSES)
    rejected = sum(1 for r in records if r.status == ApplicationStatus.REJECTED)

    return StatusSummary(
        total_lenders=total,
        approved_lenders=approved,
        pending_lenders=pending,
        rejected_lenders=rejected,
        approval_rate=approved / total if total else 0.0,
    )


def collect_offers(records: List[LenderApplication], top_n: int = 3) -> OfferSummary:
    """
    Rank offers by ascending interest rate.

    The best offer is the cheapest APPROVED record; top offers include any
    record carrying a rate (conditional approvals and counter offers too).
    Arrival order never matters.
    """
    approved = sorted(
        (r for r in records if r.status == ApplicationStatus.APPROVED and r.interest_rate),
        key=lambda r: r.interest_rate,
    )
    priced = sorted((r for r in records if r.interest_rate), key=lambda r: r.interest_rate)

    return OfferSummary(
        best_offer=approved[0] if approved else None,
        top_offers=priced[:top_n],
        total_offers=len(approved),
    )
