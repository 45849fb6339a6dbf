"""Status-specific payloads carried by externally pushed lender updates"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Type, Union
from lender_gateway.domain.emi import calculate_emi
from lender_gateway.domain.exceptions import InvalidStatusUpdateError
from lender_gateway.domain.models import ApplicationStatus, CounterOffer


@dataclass(frozen=True)
class OfferTerms:
    """Terms of an APPROVED or CONDITIONAL_APPROVAL decision"""

    interest_rate: float
    approved_amount: int
    loan_tenure: int
    processing_fee: Optional[int] = None
    emi_amount: Optional[int] = None
    conditions: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CounterOfferTerms:
    """Terms of a COUNTER_OFFER decision"""

    terms: OfferTerms
    counter_offer: CounterOffer


@dataclass(frozen=True)
class RejectionDetails:
    """Reason attached to REJECTED or FAILED"""

    reason: str


@dataclass(frozen=True)
class DocumentRequest:
    """Documents asked for by DOCUMENTS_REQUIRED"""

    additional_documents: Tuple[str, ...]


StatusPayload = Union[OfferTerms, CounterOfferTerms, RejectionDetails, DocumentRequest]

PAYLOAD_TYPES: Dict[ApplicationStatus, Type] = {
    ApplicationStatus.APPROVED: OfferTerms,
    ApplicationStatus.CONDITIONAL_APPROVAL: OfferTerms,
    ApplicationStatus.COUNTER_OFFER: CounterOfferTerms,
    ApplicationStatus.REJECTED: RejectionDetails,
    ApplicationStatus.FAILED: RejectionDetails,
    ApplicationStatus.DOCUMENTS_REQUIRED: DocumentRequest,
}


def _offer_fields(terms: OfferTerms) -> Dict[str, Any]:
    emi = terms.emi_amount
    if emi is None:
        emi = calculate_emi(terms.approved_amount, terms.interest_rate, terms.loan_tenure)
    fields: Dict[str, Any] = {
        "interest_rate": terms.interest_rate,
        "approved_amount": terms.approved_amount,
        "loan_tenure": terms.loan_tenure,
        "emi_amount": emi,
        "conditions": list(terms.conditions),
    }
    if terms.processing_fee is not None:
        fields["processing_fee"] = terms.processing_fee
    return fields


def payload_fields(status: ApplicationStatus, payload: Optional[StatusPayload]) -> Dict[str, Any]:
    """
    Record fields set by a status update.

    Each status accepts only its own payload variant; statuses without a
    variant (PENDING, SUBMITTED, UNDER_REVIEW, EXPIRED) accept none.

    Raises:
        InvalidStatusUpdateError: payload variant does not belong to status
    """
    if payload is None:
        return {}

    expected = PAYLOAD_TYPES.get(status)
    if expected is None or not isinstance(payload, expected):
        raise InvalidStatusUpdateError(
            f"{type(payload).__name__} payload is not valid for status {status.value}"
        )

    if isinstance(payload, OfferTerms):
        return _offer_fields(payload)
    if isinstance(payload, CounterOfferTerms):
        fields = _offer_fields(payload.terms)
        fields["counter_offer"] = payload.counter_offer
        return fields
    if isinstance(payload, RejectionDetails):
        return {"rejection_reason": payload.reason}
    return {"additional_documents": list(payload.additional_documents)}
