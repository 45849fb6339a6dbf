"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class ApplicationStatus(str, Enum):
    """Lifecycle status of a single lender application"""

    PENDING = "PENDING"
    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CONDITIONAL_APPROVAL = "CONDITIONAL_APPROVAL"
    COUNTER_OFFER = "COUNTER_OFFER"
    DOCUMENTS_REQUIRED = "DOCUMENTS_REQUIRED"
    FAILED = "FAILED"
    EXPIRED = "EXPIRED"


class Priority(str, Enum):
    """Processing priority tier of an application"""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


@dataclass(frozen=True)
class Lender:
    """Lending counterparty with eligibility and commercial parameters"""

    id: str
    name: str
    is_active: bool
    approval_rate: float
    avg_response_time: float  # minutes
    min_credit_score: int
    min_loan_amount: int
    max_loan_amount: int
    processing_fee: int
    commission_rate: float  # percentage of approved amount
    supported_vehicle_types: Tuple[str, ...]
    supported_employment_types: Tuple[str, ...]
    api_endpoint: Optional[str] = None


@dataclass(frozen=True)
class Address:
    street: str = ""
    city: str = ""
    state: str = ""
    pincode: str = ""


@dataclass(frozen=True)
class PersonalInfo:
    first_name: str
    last_name: str
    email: str = ""
    phone: str = ""
    pan: str = ""
    aadhaar: str = ""
    date_of_birth: Optional[date] = None
    address: Address = field(default_factory=Address)


@dataclass(frozen=True)
class EmploymentInfo:
    employment_type: str  # salaried | self-employed | business-owner | freelancer
    monthly_income: float
    experience: float  # years
    company_name: str = ""
    designation: str = ""


@dataclass(frozen=True)
class BankAccount:
    bank_name: str = ""
    account_number: str = ""
    ifsc_code: str = ""


@dataclass(frozen=True)
class FinancialInfo:
    credit_score: int
    existing_emis: float = 0.0
    bank_account: BankAccount = field(default_factory=BankAccount)


@dataclass(frozen=True)
class Customer:
    """Applicant record supplied by the onboarding layer"""

    personal_info: PersonalInfo
    employment_info: EmploymentInfo
    financial_info: FinancialInfo


@dataclass(frozen=True)
class Vehicle:
    """Vehicle being financed"""

    make: str
    model: str
    year: int
    category: str  # sedan | suv | hatchback | muv | commercial
    price: float
    variant: str = ""


@dataclass(frozen=True)
class FinancialRequest:
    """Loan terms requested by the applicant"""

    requested_amount: float
    tenure: int  # months
    down_payment: float = 0.0
    monthly_income: float = 0.0
    existing_emis: float = 0.0
    credit_score: Optional[int] = None


@dataclass(frozen=True)
class Document:
    id: str
    type: str
    file_name: str = ""
    file_url: str = ""
    verified: bool = False
    uploaded_at: Optional[datetime] = None


@dataclass(frozen=True)
class ApplicationSubmission:
    """Accepted application, owned by the orchestrator once stored"""

    application_id: str
    customer: Customer
    vehicle: Vehicle
    financial: FinancialRequest
    documents: Tuple[Document, ...]
    selected_lenders: Tuple[str, ...]
    submitted_at: datetime
    priority: Priority


@dataclass(frozen=True)
class CounterOffer:
    """Alternate terms proposed by a lender"""

    amount: int
    tenure: int
    rate: float


@dataclass
class DecisionData:
    """Terms and details attached to a lender decision"""

    interest_rate: Optional[float] = None
    approved_amount: Optional[int] = None
    loan_tenure: Optional[int] = None
    processing_fee: Optional[int] = None
    emi_amount: Optional[int] = None
    rejection_reason: Optional[str] = None
    additional_documents: List[str] = field(default_factory=list)
    conditions: List[str] = field(default_factory=list)
    counter_offer: Optional[CounterOffer] = None


@dataclass
class LenderResponse:
    """Decision returned by a lender API"""

    success: bool
    application_id: str
    lender_id: str
    status: ApplicationStatus
    message: str
    timestamp: datetime
    data: Optional[DecisionData] = None


@dataclass
class LenderApplication:
    """Tracking record for one (application, lender) pair"""

    id: str
    application_id: str
    lender_id: str
    lender_name: str
    status: ApplicationStatus
    submitted_at: datetime
    retry_count: int = 0
    responded_at: Optional[datetime] = None
    response_time: Optional[float] = None  # minutes
    interest_rate: Optional[float] = None
    approved_amount: Optional[int] = None
    loan_tenure: Optional[int] = None
    processing_fee: Optional[int] = None
    emi_amount: Optional[int] = None
    rejection_reason: Optional[str] = None
    additional_documents: List[str] = field(default_factory=list)
    conditions: List[str] = field(default_factory=list)
    counter_offer: Optional[CounterOffer] = None
    webhook_data: Optional[Dict[str, Any]] = None
    last_retry_at: Optional[datetime] = None


@dataclass
class SubmissionResult:
    """Aggregate outcome of a fan-out"""

    success: bool
    application_id: str
    submitted_lenders: List[str]
    message: str


@dataclass
class AmortizationRow:
    """Single month in a repayment schedule"""

    month: int
    payment: float
    principal: float
    interest: float
    balance: float


@dataclass
class LenderAnalytics:
    """Aggregated performance of one lender across all applications"""

    lender_id: str
    lender_name: str
    total_applications: int = 0
    approved_applications: int = 0
    rejected_applications: int = 0
    pending_applications: int = 0
    total_response_time: float = 0.0
    total_interest_rate: float = 0.0
    total_commission: float = 0.0

    @property
    def approval_rate(self) -> float:
        if self.total_applications == 0:
            return 0.0
        return self.approved_applications / self.total_applications

    @property
    def avg_response_time(self) -> float:
        if self.total_applications == 0:
            return 0.0
        return self.total_response_time / self.total_applications

    @property
    def avg_interest_rate(self) -> float:
        if self.approved_applications == 0:
            return 0.0
        return self.total_interest_rate / self.approved_applications


@dataclass
class StatusSummary:
    """Counts of lender outcomes for one application"""

    total_lenders: int
    approved_lenders: int
    pending_lenders: int
    rejected_lenders: int
    approval_rate: float


@dataclass
class OfferSummary:
    """Offers received for one application, cheapest first"""

    best_offer: Optional[LenderApplication]
    top_offers: List[LenderApplication]
    total_offers: int
