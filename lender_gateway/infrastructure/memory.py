"""Thread-safe in-memory store and single-flight guard (default backend)"""

import copy
import threading
from dataclasses import fields as dataclass_fields, replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Set
from lender_gateway.domain.models import ApplicationStatus, ApplicationSubmission, LenderApplication
from lender_gateway.domain.ports import InFlightGuard, SubmissionStore
from lender_gateway.domain.status import is_retryable

_RECORD_FIELDS = {f.name for f in dataclass_fields(LenderApplication)}


def retried_fields(record: LenderApplication, retried_at: datetime) -> Dict[str, Any]:
    """Field changes for a FAILED record going back out to its lender"""
    return {
        "status": ApplicationStatus.SUBMITTED,
        "retry_count": record.retry_count + 1,
        "last_retry_at": retried_at,
        "submitted_at": retried_at,
        "responded_at": None,
        "response_time": None,
        "rejection_reason": None,
    }


class InMemorySubmissionStore(SubmissionStore):
    """Dict-backed store guarded by a single re-entrant lock"""

    def __init__(self):
        self._lock = threading.RLock()
        self._applications: Dict[str, Dict[str, LenderApplication]] = {}
        self._submissions: Dict[str, ApplicationSubmission] = {}

    def add_submission(self, submission: ApplicationSubmission) -> None:
        with self._lock:
            self._submissions[submission.application_id] = submission

    def get_submission(self, application_id: str) -> Optional[ApplicationSubmission]:
        with self._lock:
            return self._submissions.get(application_id)

    def add_application(self, record: LenderApplication) -> None:
        with self._lock:
            by_lender = self._applications.setdefault(record.application_id, {})
            by_lender[record.lender_id] = copy.deepcopy(record)

    def get_application(self, application_id: str, lender_id: str) -> Optional[LenderApplication]:
        with self._lock:
            record = self._applications.get(application_id, {}).get(lender_id)
            return copy.deepcopy(record) if record else None

    def update_application(
        self, application_id: str, lender_id: str, **fields: Any
    ) -> Optional[LenderApplication]:
        unknown = set(fields) - _RECORD_FIELDS
        if unknown:
            raise ValueError(f"Unknown lender application fields: {sorted(unknown)}")

        with self._lock:
            by_lender = self._applications.get(application_id, {})
            record = by_lender.get(lender_id)
            if record is None:
                return None
            updated = replace(record, **copy.deepcopy(fields))
            by_lender[lender_id] = updated
            return copy.deepcopy(updated)

    def mark_retry(
        self, application_id: str, lender_id: str, retried_at: datetime
    ) -> Optional[LenderApplication]:
        with self._lock:
            record = self._applications.get(application_id, {}).get(lender_id)
            if record is None or not is_retryable(record.status):
                return None
            return self.update_application(
                application_id, lender_id, **retried_fields(record, retried_at)
            )

    def get_applications(self, application_id: str) -> List[LenderApplication]:
        with self._lock:
            return [copy.deepcopy(r) for r in self._applications.get(application_id, {}).values()]

    def get_all_applications(self) -> List[LenderApplication]:
        with self._lock:
            return [
                copy.deepcopy(record)
                for by_lender in self._applications.values()
                for record in by_lender.values()
            ]


class InMemoryInFlightGuard(InFlightGuard):
    """Process-local set of application ids currently being fanned out"""

    def __init__(self):
        self._lock = threading.Lock()
        self._in_flight: Set[str] = set()

    def acquire(self, application_id: str) -> bool:
        with self._lock:
            if application_id in self._in_flight:
                return False
            self._in_flight.add(application_id)
            return True

    def release(self, application_id: str) -> None:
        with self._lock:
            self._in_flight.discard(application_id)

    def __contains__(self, application_id: str) -> bool:
        with self._lock:
            return application_id in self._in_flight
