"""Interfaces the orchestrator depends on: storage, single-flight guard, lender client"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, List, Optional, Protocol
from lender_gateway.domain.models import (
    ApplicationSubmission,
    Customer,
    FinancialRequest,
    LenderApplication,
    LenderResponse,
    Vehicle,
)


class SubmissionStore(ABC):
    """
    Keyed storage of submissions and per-lender application records.

    Implementations must be safe under concurrent calls for the same
    application and must return copies, never live shared objects.
    """

    @abstractmethod
    def add_submission(self, submission: ApplicationSubmission) -> None:
        ...

    @abstractmethod
    def get_submission(self, application_id: str) -> Optional[ApplicationSubmission]:
        ...

    @abstractmethod
    def add_application(self, record: LenderApplication) -> None:
        """Insert, replacing any record for the same (application, lender) pair"""

    @abstractmethod
    def get_application(self, application_id: str, lender_id: str) -> Optional[LenderApplication]:
        ...

    @abstractmethod
    def update_application(
        self, application_id: str, lender_id: str, **fields: Any
    ) -> Optional[LenderApplication]:
        """Merge fields into an existing record; None if the record is missing"""

    @abstractmethod
    def mark_retry(
        self, application_id: str, lender_id: str, retried_at: datetime
    ) -> Optional[LenderApplication]:
        """
        Atomically move a FAILED record back to SUBMITTED.

        Increments retry_count and stamps last_retry_at. Returns None when
        the record is missing or not FAILED.
        """

    @abstractmethod
    def get_applications(self, application_id: str) -> List[LenderApplication]:
        ...

    @abstractmethod
    def get_all_applications(self) -> List[LenderApplication]:
        ...


class InFlightGuard(ABC):
    """Single-flight lock keyed by application id"""

    @abstractmethod
    def acquire(self, application_id: str) -> bool:
        """Claim the id; False if it is already in flight"""

    @abstractmethod
    def release(self, application_id: str) -> None:
        ...


class LenderClient(Protocol):
    """Lender decision API, real or simulated"""

    async def submit_application(
        self,
        lender_id: str,
        application_id: str,
        customer: Customer,
        vehicle: Vehicle,
        financial: FinancialRequest,
    ) -> LenderResponse:
        ...
