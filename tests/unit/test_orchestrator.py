"""Unit tests for the multi-lender submission orchestrator"""

import asyncio
import random
import pytest
from lender_gateway.domain.exceptions import (
    DuplicateSubmissionError,
    InvalidStatusUpdateError,
    LenderAPIError,
    NoEligibleLendersError,
)
from lender_gateway.domain.models import ApplicationStatus, CounterOffer, LenderApplication, Priority
from lender_gateway.domain.registry import LenderRegistry
from lender_gateway.domain.updates import CounterOfferTerms, OfferTerms, RejectionDetails
from lender_gateway.infrastructure.clients.simulator import SimulatedLenderClient
from lender_gateway.infrastructure.memory import InMemoryInFlightGuard, InMemorySubmissionStore
from lender_gateway.services.orchestrator import SubmissionOrchestrator
from lender_gateway.utils.date_utils import utcnow


class FlakyClient:
    """Delegates to a real client, raising for lenders listed in failing"""

    def __init__(self, inner, failing=()):
        self.inner = inner
        self.failing = set(failing)
        self.calls = []

    async def submit_application(self, lender_id, application_id, customer, vehicle, financial):
        self.calls.append(lender_id)
        if lender_id in self.failing:
            raise LenderAPIError(f"{lender_id} gateway unavailable")
        return await self.inner.submit_application(lender_id, application_id, customer, vehicle, financial)


class SlowClient:
    """Delegates to a real client after a delay, tracking how many calls overlap"""

    def __init__(self, inner, delay: float):
        self.inner = inner
        self.delay = delay
        self.active = 0
        self.peak = 0

    async def submit_application(self, lender_id, application_id, customer, vehicle, financial):
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.active -= 1
        return await self.inner.submit_application(lender_id, application_id, customer, vehicle, financial)


@pytest.fixture
def build_orchestrator(registry):
    def _build(client, **kwargs):
        return SubmissionOrchestrator(
            registry=kwargs.pop("registry", registry),
            client=client,
            store=kwargs.pop("store", InMemorySubmissionStore()),
            guard=kwargs.pop("guard", InMemoryInFlightGuard()),
            **kwargs,
        )

    return _build


@pytest.fixture
def application(make_customer, make_vehicle, make_financial):
    return {
        "customer": make_customer(),
        "vehicle": make_vehicle(),
        "financial": make_financial(),
    }


async def test_submit_fans_out_to_selected_lenders(orchestrator, application):
    """Test one record per resolved lender, each with a decision"""
    result = await orchestrator.submit("APP-1", **application)
    records = {r.lender_id: r for r in orchestrator.get_status("APP-1")}

    assert result.success is True
    assert result.message == "Successfully submitted to 5 lenders"
    assert len(records) == 5
    assert set(result.submitted_lenders) == set(records)

    rejected = records["mahindra-finance"]
    assert rejected.status == ApplicationStatus.REJECTED
    assert rejected.rejection_reason == "Vehicle type sedan is not supported by Mahindra Finance"

    approved = records["hdfc-bank"]
    assert approved.status == ApplicationStatus.APPROVED
    assert approved.lender_name == "HDFC Bank"
    assert approved.interest_rate is not None
    assert approved.emi_amount > 0
    assert approved.processing_fee == 2500
    assert approved.responded_at is not None
    assert approved.response_time is not None
    assert approved.webhook_data["status"] == "APPROVED"
    assert approved.webhook_data["lender_id"] == "hdfc-bank"


async def test_submit_stores_submission_with_priority(orchestrator, application):
    await orchestrator.submit("APP-1", **application)

    submission = orchestrator.get_submission("APP-1")

    assert submission.priority == Priority.HIGH
    assert submission.selected_lenders == (
        "bajaj-finserv", "hdfc-bank", "icici-bank", "sbi", "mahindra-finance"
    )


async def test_submit_explicit_lenders_deduplicated(orchestrator, application):
    result = await orchestrator.submit("APP-1", lender_ids=["sbi", "hdfc-bank", "sbi"], **application)

    assert result.submitted_lenders == ["sbi", "hdfc-bank"]
    assert len(orchestrator.get_status("APP-1")) == 2
    assert orchestrator.get_submission("APP-1").selected_lenders == ("sbi", "hdfc-bank")


async def test_submit_respects_selection_limit(build_orchestrator, approving_client, application):
    orchestrator = build_orchestrator(approving_client, max_selected_lenders=2)

    result = await orchestrator.submit("APP-1", **application)

    assert result.submitted_lenders == ["bajaj-finserv", "hdfc-bank"]


async def test_submit_below_minimum_amount_rejected(orchestrator, make_customer, make_vehicle, make_financial):
    """Test deterministic rejection is recorded, not raised"""
    await orchestrator.submit(
        "APP-1",
        make_customer(),
        make_vehicle(),
        make_financial(requested_amount=50_000),
        lender_ids=["hdfc-bank"],
    )

    [record] = orchestrator.get_status("APP-1")
    assert record.status == ApplicationStatus.REJECTED
    assert "below minimum loan amount" in record.rejection_reason


async def test_submit_unknown_lender_recorded_as_failed(orchestrator, application):
    result = await orchestrator.submit("APP-1", lender_ids=["nope", "sbi"], **application)
    records = {r.lender_id: r for r in orchestrator.get_status("APP-1")}

    assert result.submitted_lenders == ["sbi"]
    assert records["nope"].status == ApplicationStatus.FAILED
    assert records["nope"].lender_name == "nope"
    assert records["nope"].rejection_reason == "Lender nope not found"


async def test_failure_isolated_to_one_lender(build_orchestrator, approving_client, application):
    """Test a raising lender does not affect its siblings"""
    client = FlakyClient(approving_client, failing={"icici-bank"})
    orchestrator = build_orchestrator(client)

    result = await orchestrator.submit("APP-1", **application)
    records = {r.lender_id: r for r in orchestrator.get_status("APP-1")}

    assert result.success is True
    assert "icici-bank" not in result.submitted_lenders
    assert len(result.submitted_lenders) == 4
    assert records["icici-bank"].status == ApplicationStatus.FAILED
    assert records["icici-bank"].rejection_reason == "icici-bank gateway unavailable"
    assert records["hdfc-bank"].status == ApplicationStatus.APPROVED


async def test_all_lenders_failing(build_orchestrator, approving_client, application):
    client = FlakyClient(approving_client, failing={"hdfc-bank", "sbi"})
    orchestrator = build_orchestrator(client)

    result = await orchestrator.submit("APP-1", lender_ids=["hdfc-bank", "sbi"], **application)

    assert result.success is False
    assert result.submitted_lenders == []
    assert all(r.status == ApplicationStatus.FAILED for r in orchestrator.get_status("APP-1"))


async def test_lender_timeout_marks_failed(build_orchestrator, approving_client, application):
    orchestrator = build_orchestrator(SlowClient(approving_client, delay=1.0), lender_timeout=0.01)

    result = await orchestrator.submit("APP-1", lender_ids=["hdfc-bank"], **application)

    [record] = orchestrator.get_status("APP-1")
    assert result.submitted_lenders == []
    assert record.status == ApplicationStatus.FAILED
    assert "timed out" in record.rejection_reason


async def test_duplicate_submission_rejected_while_in_flight(build_orchestrator, approving_client, application):
    """Test concurrent submits for one id: one proceeds, the other is refused"""
    orchestrator = build_orchestrator(SlowClient(approving_client, delay=0.05))

    first, second = await asyncio.gather(
        orchestrator.submit("APP-1", **application),
        orchestrator.submit("APP-1", **application),
        return_exceptions=True,
    )

    assert first.success is True
    assert isinstance(second, DuplicateSubmissionError)
    assert second.application_id == "APP-1"
    assert len(orchestrator.get_status("APP-1")) == len(first.submitted_lenders)


async def test_guard_released_after_submission(orchestrator, application):
    await orchestrator.submit("APP-1", **application)

    assert "APP-1" not in orchestrator.guard
    # Resubmitting replaces records rather than duplicating them
    await orchestrator.submit("APP-1", **application)
    assert len(orchestrator.get_status("APP-1")) == 5


async def test_no_eligible_lenders(build_orchestrator, approving_client, application):
    orchestrator = build_orchestrator(approving_client, registry=LenderRegistry([]))

    with pytest.raises(NoEligibleLendersError):
        await orchestrator.submit("APP-1", **application)

    assert "APP-1" not in orchestrator.guard
    assert orchestrator.get_submission("APP-1") is None


async def test_retry_failed_lender(build_orchestrator, approving_client, application):
    """Test retry reuses the record and bumps its counter"""
    client = FlakyClient(approving_client, failing={"icici-bank"})
    orchestrator = build_orchestrator(client)
    await orchestrator.submit("APP-1", **application)

    client.failing.clear()
    assert await orchestrator.retry("APP-1", "icici-bank") is True

    record = orchestrator.get_record("APP-1", "icici-bank")
    assert record.status == ApplicationStatus.APPROVED
    assert record.retry_count == 1
    assert record.last_retry_at is not None
    assert record.rejection_reason is None
    assert len(orchestrator.get_status("APP-1")) == 5


async def test_retry_failing_again(build_orchestrator, approving_client, application):
    client = FlakyClient(approving_client, failing={"sbi"})
    orchestrator = build_orchestrator(client)
    await orchestrator.submit("APP-1", lender_ids=["sbi"], **application)

    assert await orchestrator.retry("APP-1", "sbi") is False

    record = orchestrator.get_record("APP-1", "sbi")
    assert record.status == ApplicationStatus.FAILED
    assert record.retry_count == 1
    assert client.calls == ["sbi", "sbi"]


async def test_retry_not_failed_is_noop(orchestrator, application):
    """Test retry of a decided record changes nothing"""
    await orchestrator.submit("APP-1", lender_ids=["hdfc-bank"], **application)
    before = orchestrator.get_record("APP-1", "hdfc-bank")

    assert await orchestrator.retry("APP-1", "hdfc-bank") is False

    after = orchestrator.get_record("APP-1", "hdfc-bank")
    assert after == before


async def test_retry_unknown_application(orchestrator):
    assert await orchestrator.retry("missing", "hdfc-bank") is False


async def test_retry_count_never_decreases(build_orchestrator, approving_client, application):
    client = FlakyClient(approving_client, failing={"sbi"})
    orchestrator = build_orchestrator(client)
    await orchestrator.submit("APP-1", lender_ids=["sbi"], **application)

    counts = []
    for _ in range(3):
        await orchestrator.retry("APP-1", "sbi")
        counts.append(orchestrator.get_record("APP-1", "sbi").retry_count)

    assert counts == [1, 2, 3]


async def test_caller_timeout_does_not_strand_records(build_orchestrator, approving_client, application):
    """Test lender tasks outlive a caller that gives up, and the claim lasts until they settle"""
    orchestrator = build_orchestrator(SlowClient(approving_client, delay=0.1))

    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(
            orchestrator.submit("APP-1", lender_ids=["hdfc-bank"], **application), timeout=0.01
        )

    assert "APP-1" in orchestrator.guard
    with pytest.raises(DuplicateSubmissionError):
        await orchestrator.submit("APP-1", **application)

    await asyncio.sleep(0.3)

    assert orchestrator.get_record("APP-1", "hdfc-bank").status == ApplicationStatus.APPROVED
    assert "APP-1" not in orchestrator.guard


async def test_cancelled_retry_leaves_record_retryable(build_orchestrator, approving_client, application):
    client = FlakyClient(approving_client, failing={"sbi"})
    orchestrator = build_orchestrator(client)
    await orchestrator.submit("APP-1", lender_ids=["sbi"], **application)

    orchestrator.client = SlowClient(approving_client, delay=1.0)
    task = asyncio.create_task(orchestrator.retry("APP-1", "sbi"))
    await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    record = orchestrator.get_record("APP-1", "sbi")
    assert record.status == ApplicationStatus.FAILED
    assert record.rejection_reason == "Lender sbi call was cancelled"

    orchestrator.client = approving_client
    assert await orchestrator.retry("APP-1", "sbi") is True
    assert orchestrator.get_record("APP-1", "sbi").retry_count == 2


async def test_concurrent_retries_of_different_lenders(build_orchestrator, approving_client, application):
    """Test two lenders of one application retry side by side and settle independently"""
    slow = SlowClient(approving_client, delay=0.05)
    client = FlakyClient(slow, failing={"hdfc-bank", "sbi"})
    orchestrator = build_orchestrator(client)
    await orchestrator.submit("APP-1", lender_ids=["hdfc-bank", "sbi"], **application)
    client.failing.clear()

    results = await asyncio.gather(
        orchestrator.retry("APP-1", "hdfc-bank"),
        orchestrator.retry("APP-1", "sbi"),
    )

    assert results == [True, True]
    assert slow.peak == 2
    for lender_id in ("hdfc-bank", "sbi"):
        record = orchestrator.get_record("APP-1", lender_id)
        assert record.status == ApplicationStatus.APPROVED
        assert record.retry_count == 1


async def test_concurrent_retries_of_same_lender(build_orchestrator, approving_client, application):
    """Test only one of two racing retries resubmits the record"""
    client = FlakyClient(SlowClient(approving_client, delay=0.05), failing={"sbi"})
    orchestrator = build_orchestrator(client)
    await orchestrator.submit("APP-1", lender_ids=["sbi"], **application)
    client.failing.clear()

    results = await asyncio.gather(
        orchestrator.retry("APP-1", "sbi"),
        orchestrator.retry("APP-1", "sbi"),
    )

    assert sorted(results) == [False, True]
    assert client.calls == ["sbi", "sbi"]
    record = orchestrator.get_record("APP-1", "sbi")
    assert record.status == ApplicationStatus.APPROVED
    assert record.retry_count == 1


async def test_gateway_fault_recorded_as_failed(build_orchestrator, registry, application):
    client = SimulatedLenderClient(registry, rng=random.Random(5), latency_scale=0, fault_rate=1.0)
    orchestrator = build_orchestrator(client)

    result = await orchestrator.submit("APP-1", lender_ids=["hdfc-bank"], **application)

    record = orchestrator.get_record("APP-1", "hdfc-bank")
    assert result.success is False
    assert record.status == ApplicationStatus.FAILED
    assert record.rejection_reason == "Lender hdfc-bank gateway unavailable"


async def test_get_repayment_schedule(orchestrator, application):
    await orchestrator.submit("APP-1", lender_ids=["hdfc-bank", "mahindra-finance"], **application)
    record = orchestrator.get_record("APP-1", "hdfc-bank")

    schedule = orchestrator.get_repayment_schedule("APP-1", "hdfc-bank")

    assert len(schedule) == record.loan_tenure == 60
    assert schedule[0].payment == pytest.approx(record.emi_amount)
    assert schedule[-1].balance == 0
    # Rejected record has no terms to amortize
    assert orchestrator.get_repayment_schedule("APP-1", "mahindra-finance") == []
    assert orchestrator.get_repayment_schedule("APP-1", "nope") is None


async def test_apply_external_update_counter_offer(orchestrator, application):
    await orchestrator.submit("APP-1", lender_ids=["hdfc-bank"], **application)
    counter = CounterOffer(amount=450_000, tenure=72, rate=11.25)

    applied = orchestrator.apply_external_update(
        "APP-1",
        "hdfc-bank",
        ApplicationStatus.COUNTER_OFFER,
        CounterOfferTerms(
            terms=OfferTerms(interest_rate=10.25, approved_amount=500_000, loan_tenure=60),
            counter_offer=counter,
        ),
    )

    record = orchestrator.get_record("APP-1", "hdfc-bank")
    assert applied is True
    assert record.status == ApplicationStatus.COUNTER_OFFER
    assert record.counter_offer == counter
    assert record.interest_rate == 10.25
    assert record.webhook_data["status"] == "COUNTER_OFFER"
    assert record.webhook_data["message"] == "Status updated to counter offer"
    assert record.webhook_data["data"]["counter_offer"] == {"amount": 450_000, "tenure": 72, "rate": 11.25}


async def test_apply_external_update_permissive_by_default(orchestrator, application):
    """Test a decided record can be moved back to review"""
    await orchestrator.submit("APP-1", lender_ids=["hdfc-bank"], **application)

    assert orchestrator.apply_external_update("APP-1", "hdfc-bank", ApplicationStatus.UNDER_REVIEW) is True
    assert orchestrator.get_record("APP-1", "hdfc-bank").status == ApplicationStatus.UNDER_REVIEW


async def test_apply_external_update_forward_only(build_orchestrator, approving_client, application):
    orchestrator = build_orchestrator(approving_client, enforce_forward_transitions=True)
    await orchestrator.submit("APP-1", lender_ids=["hdfc-bank"], **application)

    with pytest.raises(InvalidStatusUpdateError):
        orchestrator.apply_external_update("APP-1", "hdfc-bank", ApplicationStatus.UNDER_REVIEW)

    assert orchestrator.get_record("APP-1", "hdfc-bank").status == ApplicationStatus.APPROVED


async def test_apply_external_update_expired(orchestrator, application):
    await orchestrator.submit("APP-1", lender_ids=["sbi"], **application)

    orchestrator.apply_external_update("APP-1", "sbi", ApplicationStatus.EXPIRED, message="Offer lapsed")

    record = orchestrator.get_record("APP-1", "sbi")
    assert record.status == ApplicationStatus.EXPIRED
    assert record.webhook_data["message"] == "Offer lapsed"


async def test_apply_external_update_mismatched_payload(orchestrator, application):
    await orchestrator.submit("APP-1", lender_ids=["sbi"], **application)

    with pytest.raises(InvalidStatusUpdateError):
        orchestrator.apply_external_update(
            "APP-1", "sbi", ApplicationStatus.APPROVED, RejectionDetails("wrong shape")
        )


def test_apply_external_update_missing_record(orchestrator):
    assert orchestrator.apply_external_update("APP-1", "sbi", ApplicationStatus.APPROVED) is False


async def test_get_summary(orchestrator, application):
    await orchestrator.submit("APP-1", **application)

    summary, offers = orchestrator.get_summary("APP-1")

    assert summary.total_lenders == 5
    assert summary.approved_lenders == 4
    assert summary.rejected_lenders == 1
    assert offers.total_offers == 4
    assert offers.best_offer.interest_rate == min(r.interest_rate for r in offers.top_offers)
    assert len(offers.top_offers) == 3


def test_get_analytics_from_store(orchestrator, store):
    """Test analytics read through to stored records"""
    now = utcnow()
    for app_id, rate, amount in [("APP-1", 10.0, 500_000), ("APP-2", 11.0, 600_000)]:
        store.add_application(
            LenderApplication(
                id=f"{app_id}-hdfc-bank",
                application_id=app_id,
                lender_id="hdfc-bank",
                lender_name="HDFC Bank",
                status=ApplicationStatus.APPROVED,
                submitted_at=now,
                interest_rate=rate,
                approved_amount=amount,
            )
        )
    store.add_application(
        LenderApplication(
            id="APP-3-hdfc-bank",
            application_id="APP-3",
            lender_id="hdfc-bank",
            lender_name="HDFC Bank",
            status=ApplicationStatus.REJECTED,
            submitted_at=now,
        )
    )

    [stats] = orchestrator.get_analytics()

    assert stats.approval_rate == pytest.approx(2 / 3)
    assert stats.avg_interest_rate == pytest.approx(10.5)
    assert stats.total_commission == pytest.approx(16_500)
    assert len(orchestrator.list_all_records()) == 3
