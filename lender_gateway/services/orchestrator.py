"""Multi-lender submission orchestrator - fan-out, retry, status pushes and analytics"""

import asyncio
import logging
import time
from dataclasses import asdict
from typing import Any, Dict, List, Optional, Sequence, Tuple
from pydantic import TypeAdapter

from lender_gateway.domain.analytics import collect_offers, compute_lender_analytics, summarize_status
from lender_gateway.domain.emi import generate_amortization_schedule
from lender_gateway.domain.exceptions import (
    DuplicateSubmissionError,
    InvalidStatusUpdateError,
    NoEligibleLendersError,
)
from lender_gateway.domain.models import (
    AmortizationRow,
    ApplicationStatus,
    ApplicationSubmission,
    Customer,
    Document,
    FinancialRequest,
    LenderAnalytics,
    LenderApplication,
    LenderResponse,
    OfferSummary,
    StatusSummary,
    SubmissionResult,
    Vehicle,
)
from lender_gateway.domain.ports import InFlightGuard, LenderClient, SubmissionStore
from lender_gateway.domain.registry import LenderRegistry
from lender_gateway.domain.scoring import calculate_priority, select_optimal_lenders
from lender_gateway.domain.status import can_transition, describe, is_terminal
from lender_gateway.domain.updates import StatusPayload, payload_fields
from lender_gateway.infrastructure.observability.logging import log_lender_outcome, log_submission
from lender_gateway.infrastructure.observability.metrics import (
    lender_failure_counter,
    record_lender_response,
    retry_counter,
    status_update_counter,
    submission_counter,
)
from lender_gateway.utils.date_utils import minutes_between, utcnow

logger = logging.getLogger(__name__)

response_adapter = TypeAdapter(LenderResponse)
fields_adapter = TypeAdapter(Dict[str, Any])


def response_fields(record: LenderApplication, response: LenderResponse) -> Dict[str, Any]:
    """Record fields set by a lender's decision"""
    fields: Dict[str, Any] = {
        "status": response.status,
        "responded_at": response.timestamp,
        "response_time": minutes_between(record.submitted_at, response.timestamp),
        "webhook_data": response_adapter.dump_python(response, mode="json"),
    }
    if response.data is not None:
        data = asdict(response.data)
        data["counter_offer"] = response.data.counter_offer
        fields.update(data)
    return fields


class SubmissionOrchestrator:
    """
    Fans one application out to many lenders concurrently.

    One task per lender; tasks never cancel each other and each records
    its own outcome. The in-flight guard is the only mutual exclusion:
    it stops two submits for the same application id from racing.
    """

    def __init__(
        self,
        registry: LenderRegistry,
        client: LenderClient,
        store: SubmissionStore,
        guard: InFlightGuard,
        max_selected_lenders: int = 5,
        lender_timeout: float | None = None,
        enforce_forward_transitions: bool = False,
    ):
        self.registry = registry
        self.client = client
        self.store = store
        self.guard = guard
        self.max_selected_lenders = max_selected_lenders
        self.lender_timeout = lender_timeout
        self.enforce_forward_transitions = enforce_forward_transitions

    def resolve_lenders(
        self,
        customer: Customer,
        vehicle: Vehicle,
        financial: FinancialRequest,
        lender_ids: Sequence[str] = (),
    ) -> List[str]:
        """Explicit ids (deduplicated, order kept) or the scorer's top picks"""
        if lender_ids:
            return list(dict.fromkeys(lender_ids))
        return select_optimal_lenders(
            self.registry.list_active(), customer, vehicle, financial, limit=self.max_selected_lenders
        )

    async def submit(
        self,
        application_id: str,
        customer: Customer,
        vehicle: Vehicle,
        financial: FinancialRequest,
        documents: Sequence[Document] = (),
        lender_ids: Sequence[str] = (),
    ) -> SubmissionResult:
        """
        Submit an application to several lenders at once.

        Flow:
        1. Claim the application id (single-flight)
        2. Resolve lenders: explicit list, else scored selection
        3. Store the submission with its priority tier
        4. Run one task per lender and wait for all of them to settle
        5. Release the claim once every lender task has settled

        Lender tasks are shielded from the caller. If the caller is cancelled
        or times out, the tasks keep running, record their outcomes, and the
        claim is held until the last one finishes.

        Raises:
            DuplicateSubmissionError: application id is already in flight
            NoEligibleLendersError: no lender could be resolved
        """
        if not self.guard.acquire(application_id):
            submission_counter.labels(outcome="duplicate").inc()
            logger.warning("Duplicate submission rejected", extra={"application_id": application_id})
            raise DuplicateSubmissionError(application_id)

        start_time = time.time()
        handed_off = False
        try:
            resolved = self.resolve_lenders(customer, vehicle, financial, lender_ids)
            if not resolved:
                submission_counter.labels(outcome="no_lenders").inc()
                raise NoEligibleLendersError(f"No lenders available for application {application_id}")

            submission = ApplicationSubmission(
                application_id=application_id,
                customer=customer,
                vehicle=vehicle,
                financial=financial,
                documents=tuple(documents),
                selected_lenders=tuple(resolved),
                submitted_at=utcnow(),
                priority=calculate_priority(customer, financial),
            )
            self.store.add_submission(submission)
            submission_counter.labels(outcome="accepted").inc()

            tasks = [
                asyncio.create_task(self._submit_to_lender(submission, lender_id))
                for lender_id in resolved
            ]
            fan_out = asyncio.gather(*tasks, return_exceptions=True)
            fan_out.add_done_callback(lambda _: self.guard.release(application_id))
            handed_off = True

            results = await asyncio.shield(fan_out)

            submitted = [
                lender_id
                for lender_id, result in zip(resolved, results)
                if not isinstance(result, BaseException)
            ]

            duration_ms = (time.time() - start_time) * 1000
            log_submission(application_id, submission.priority.value, resolved, submitted, duration_ms)

            return SubmissionResult(
                success=len(submitted) > 0,
                application_id=application_id,
                submitted_lenders=submitted,
                message=f"Successfully submitted to {len(submitted)} lenders",
            )
        finally:
            if not handed_off:
                self.guard.release(application_id)

    async def _submit_to_lender(self, submission: ApplicationSubmission, lender_id: str) -> LenderResponse:
        record = LenderApplication(
            id=f"{submission.application_id}-{lender_id}",
            application_id=submission.application_id,
            lender_id=lender_id,
            lender_name=self.registry.name_of(lender_id),
            status=ApplicationStatus.SUBMITTED,
            submitted_at=utcnow(),
        )
        self.store.add_application(record)
        return await self._dispatch(submission, record)

    async def _dispatch(self, submission: ApplicationSubmission, record: LenderApplication) -> LenderResponse:
        """Call the lender and write its outcome into the record; FAILED on any error"""
        start_time = time.time()
        try:
            call = self.client.submit_application(
                record.lender_id,
                submission.application_id,
                submission.customer,
                submission.vehicle,
                submission.financial,
            )
            if self.lender_timeout is not None:
                response = await asyncio.wait_for(call, timeout=self.lender_timeout)
            else:
                response = await call
        except asyncio.CancelledError:
            self._record_failure(record, f"Lender {record.lender_id} call was cancelled")
            raise
        except Exception as e:
            message = str(e) or f"Lender call failed: {type(e).__name__}"
            if isinstance(e, asyncio.TimeoutError):
                message = f"Lender {record.lender_id} timed out after {self.lender_timeout}s"
            self._record_failure(record, message)
            raise

        duration = time.time() - start_time
        self.store.update_application(
            record.application_id, record.lender_id, **response_fields(record, response)
        )
        record_lender_response(record.lender_id, response.status.value, duration)
        log_lender_outcome(record.application_id, record.lender_id, response.status.value, duration * 1000)
        return response

    def _record_failure(self, record: LenderApplication, message: str) -> None:
        """Move the record to FAILED so it can be retried"""
        lender_failure_counter.labels(lender_id=record.lender_id).inc()
        logger.error(
            f"Lender submission failed: {message}",
            extra={"application_id": record.application_id, "lender_id": record.lender_id},
        )
        self.store.update_application(
            record.application_id,
            record.lender_id,
            status=ApplicationStatus.FAILED,
            responded_at=utcnow(),
            rejection_reason=message,
        )

    async def retry(self, application_id: str, lender_id: str) -> bool:
        """
        Resubmit a FAILED lender application using the stored submission.

        Returns:
            False if the record is missing or not FAILED, the submission is
            gone, or the resubmission itself failed; True otherwise
        """
        submission = self.store.get_submission(application_id)
        if submission is None:
            retry_counter.labels(outcome="rejected").inc()
            return False

        record = self.store.mark_retry(application_id, lender_id, utcnow())
        if record is None:
            retry_counter.labels(outcome="rejected").inc()
            return False

        logger.info(
            "Retrying lender submission",
            extra={"application_id": application_id, "lender_id": lender_id, "retry_count": record.retry_count},
        )
        try:
            await self._dispatch(submission, record)
        except Exception:
            retry_counter.labels(outcome="failed").inc()
            return False

        retry_counter.labels(outcome="resubmitted").inc()
        return True

    def apply_external_update(
        self,
        application_id: str,
        lender_id: str,
        status: ApplicationStatus,
        payload: Optional[StatusPayload] = None,
        message: str | None = None,
    ) -> bool:
        """
        Apply a status pushed by a lender callback.

        Overwrites the status and merges the payload's fields. Backwards
        transitions are accepted unless enforce_forward_transitions is set.

        Returns:
            False if no record exists for the pair

        Raises:
            InvalidStatusUpdateError: payload does not match status, or the
                transition is backwards while enforcement is on
        """
        record = self.store.get_application(application_id, lender_id)
        if record is None:
            return False

        if self.enforce_forward_transitions and not can_transition(record.status, status):
            raise InvalidStatusUpdateError(
                f"Cannot move {record.id} from {record.status.value} to {status.value}"
            )

        fields = payload_fields(status, payload)
        data = fields_adapter.dump_python(fields, mode="json")
        now = utcnow()
        fields.update(
            status=status,
            responded_at=now,
            webhook_data={
                "success": True,
                "application_id": application_id,
                "lender_id": lender_id,
                "status": status.value,
                "message": message or f"Status updated to {describe(status)}",
                "data": data,
                "timestamp": now.isoformat(),
            },
        )
        self.store.update_application(application_id, lender_id, **fields)

        status_update_counter.labels(status=status.value).inc()
        logger.info(
            "External status update applied",
            extra={
                "application_id": application_id,
                "lender_id": lender_id,
                "status": status.value,
                "terminal": is_terminal(status),
            },
        )
        return True

    def get_status(self, application_id: str) -> List[LenderApplication]:
        return self.store.get_applications(application_id)

    def get_record(self, application_id: str, lender_id: str) -> Optional[LenderApplication]:
        return self.store.get_application(application_id, lender_id)

    def get_submission(self, application_id: str) -> Optional[ApplicationSubmission]:
        return self.store.get_submission(application_id)

    def get_repayment_schedule(self, application_id: str, lender_id: str) -> Optional[List[AmortizationRow]]:
        """
        Month-by-month schedule for a lender's offered terms.

        Uses the lender's quoted EMI when it has one. Returns None if the
        record is missing and an empty list if it carries no offer terms.
        """
        record = self.store.get_application(application_id, lender_id)
        if record is None:
            return None
        if not (record.approved_amount and record.interest_rate is not None and record.loan_tenure):
            return []
        return generate_amortization_schedule(
            record.approved_amount, record.interest_rate, record.loan_tenure, emi=record.emi_amount
        )

    def list_all_records(self) -> List[LenderApplication]:
        return self.store.get_all_applications()

    def get_summary(self, application_id: str) -> Tuple[StatusSummary, OfferSummary]:
        """Outcome counts and ranked offers for one application"""
        records = self.store.get_applications(application_id)
        return summarize_status(records), collect_offers(records)

    def get_analytics(self) -> List[LenderAnalytics]:
        return compute_lender_analytics(self.store.get_all_applications(), self.registry)
