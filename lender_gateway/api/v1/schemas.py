"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

from lender_gateway.domain import models
from lender_gateway.domain.models import ApplicationStatus, Priority
from lender_gateway.domain.updates import (
    CounterOfferTerms,
    DocumentRequest,
    OfferTerms,
    RejectionDetails,
    StatusPayload,
)


class AddressSchema(BaseModel):
    street: str = ""
    city: str = ""
    state: str = ""
    pincode: str = ""


class PersonalInfoSchema(BaseModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = ""
    email: str = ""
    phone: str = ""
    pan: str = ""
    aadhaar: str = ""
    date_of_birth: Optional[date] = None
    address: AddressSchema = Field(default_factory=AddressSchema)


class EmploymentInfoSchema(BaseModel):
    employment_type: str = Field(..., description="salaried | self-employed | business-owner | freelancer")
    monthly_income: float = Field(..., ge=0)
    experience: float = Field(..., ge=0, description="Years in current employment")
    company_name: str = ""
    designation: str = ""


class BankAccountSchema(BaseModel):
    bank_name: str = ""
    account_number: str = ""
    ifsc_code: str = ""


class FinancialInfoSchema(BaseModel):
    credit_score: int = Field(..., ge=300, le=900)
    existing_emis: float = Field(0.0, ge=0)
    bank_account: BankAccountSchema = Field(default_factory=BankAccountSchema)


class CustomerSchema(BaseModel):
    personal_info: PersonalInfoSchema
    employment_info: EmploymentInfoSchema
    financial_info: FinancialInfoSchema

    def to_domain(self) -> models.Customer:
        p = self.personal_info
        return models.Customer(
            personal_info=models.PersonalInfo(
                first_name=p.first_name,
                last_name=p.last_name,
                email=p.email,
                phone=p.phone,
                pan=p.pan,
                aadhaar=p.aadhaar,
                date_of_birth=p.date_of_birth,
                address=models.Address(**p.address.model_dump()),
            ),
            employment_info=models.EmploymentInfo(**self.employment_info.model_dump()),
            financial_info=models.FinancialInfo(
                credit_score=self.financial_info.credit_score,
                existing_emis=self.financial_info.existing_emis,
                bank_account=models.BankAccount(**self.financial_info.bank_account.model_dump()),
            ),
        )


class VehicleSchema(BaseModel):
    make: str
    model: str
    year: int = Field(..., ge=1980)
    category: str = Field(..., description="sedan | suv | hatchback | muv | commercial")
    price: float = Field(..., gt=0)
    variant: str = ""

    def to_domain(self) -> models.Vehicle:
        return models.Vehicle(**self.model_dump())


class FinancialRequestSchema(BaseModel):
    requested_amount: float = Field(..., gt=0)
    tenure: int = Field(..., gt=0, le=120, description="Months")
    down_payment: float = Field(0.0, ge=0)
    monthly_income: float = Field(0.0, ge=0)
    existing_emis: float = Field(0.0, ge=0)
    credit_score: Optional[int] = None

    def to_domain(self) -> models.FinancialRequest:
        return models.FinancialRequest(**self.model_dump())


class DocumentSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: str
    file_name: str = ""
    file_url: str = ""
    verified: bool = False
    uploaded_at: Optional[datetime] = None

    def to_domain(self) -> models.Document:
        return models.Document(**self.model_dump())


class SubmitApplicationRequest(BaseModel):
    """Request body for POST /v1/applications"""

    application_id: str = Field(..., min_length=1)
    customer: CustomerSchema
    vehicle: VehicleSchema
    financial: FinancialRequestSchema
    documents: List[DocumentSchema] = Field(default_factory=list)
    lender_ids: List[str] = Field(default_factory=list, description="Empty to let the scorer choose")


class SubmitApplicationResponse(BaseModel):
    """Response for POST /v1/applications"""

    model_config = ConfigDict(from_attributes=True)

    success: bool
    application_id: str
    submitted_lenders: List[str]
    message: str


class CounterOfferSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    amount: int = Field(..., gt=0)
    tenure: int = Field(..., gt=0)
    rate: float = Field(..., gt=0)


class LenderApplicationSchema(BaseModel):
    """One lender's view of an application"""

    model_config = ConfigDict(from_attributes=True)

    id: str
    application_id: str
    lender_id: str
    lender_name: str
    status: ApplicationStatus
    submitted_at: datetime
    retry_count: int
    responded_at: Optional[datetime] = None
    response_time: Optional[float] = None
    interest_rate: Optional[float] = None
    approved_amount: Optional[int] = None
    loan_tenure: Optional[int] = None
    processing_fee: Optional[int] = None
    emi_amount: Optional[int] = None
    rejection_reason: Optional[str] = None
    additional_documents: List[str] = Field(default_factory=list)
    conditions: List[str] = Field(default_factory=list)
    counter_offer: Optional[CounterOfferSchema] = None
    webhook_data: Optional[Dict[str, Any]] = None
    last_retry_at: Optional[datetime] = None


class SubmissionSchema(BaseModel):
    """Stored submission as accepted by the orchestrator"""

    model_config = ConfigDict(from_attributes=True)

    application_id: str
    customer: Dict[str, Any]
    vehicle: Dict[str, Any]
    financial: Dict[str, Any]
    documents: List[DocumentSchema]
    selected_lenders: List[str]
    submitted_at: datetime
    priority: Priority


class StatusSummarySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_lenders: int
    approved_lenders: int
    pending_lenders: int
    rejected_lenders: int
    approval_rate: float


class OfferSummarySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    best_offer: Optional[LenderApplicationSchema] = None
    top_offers: List[LenderApplicationSchema]
    total_offers: int


class ApplicationStatusResponse(BaseModel):
    """Response for GET /v1/applications/{application_id}"""

    application_id: str
    submission: Optional[SubmissionSchema] = None
    applications: List[LenderApplicationSchema]
    summary: StatusSummarySchema
    offers: OfferSummarySchema


class AmortizationRowSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    month: int
    payment: float
    principal: float
    interest: float
    balance: float


class RepaymentScheduleResponse(BaseModel):
    """Response for GET /v1/applications/{application_id}/lenders/{lender_id}/schedule"""

    application_id: str
    lender_id: str
    emi_amount: Optional[int] = None
    schedule: List[AmortizationRowSchema]


class RetryResponse(BaseModel):
    success: bool
    message: str


class StatusUpdateResponse(BaseModel):
    success: bool
    application: LenderApplicationSchema


class LenderSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    is_active: bool
    approval_rate: float
    avg_response_time: float
    min_credit_score: int
    min_loan_amount: int
    max_loan_amount: int
    processing_fee: int
    commission_rate: float
    supported_vehicle_types: List[str]
    supported_employment_types: List[str]


class LenderAnalyticsSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    lender_id: str
    lender_name: str
    total_applications: int
    approved_applications: int
    rejected_applications: int
    pending_applications: int
    total_response_time: float
    total_interest_rate: float
    total_commission: float
    approval_rate: float
    avg_response_time: float
    avg_interest_rate: float


# External status pushes: one body shape per status, discriminated on "status"


class OfferUpdate(BaseModel):
    status: Literal["APPROVED", "CONDITIONAL_APPROVAL"]
    interest_rate: float = Field(..., gt=0)
    approved_amount: int = Field(..., gt=0)
    loan_tenure: int = Field(..., gt=0)
    processing_fee: Optional[int] = None
    emi_amount: Optional[int] = None
    conditions: List[str] = Field(default_factory=list)
    message: Optional[str] = None

    def offer_terms(self) -> OfferTerms:
        return OfferTerms(
            interest_rate=self.interest_rate,
            approved_amount=self.approved_amount,
            loan_tenure=self.loan_tenure,
            processing_fee=self.processing_fee,
            emi_amount=self.emi_amount,
            conditions=tuple(self.conditions),
        )

    def to_payload(self) -> StatusPayload:
        return self.offer_terms()


class CounterOfferUpdate(OfferUpdate):
    status: Literal["COUNTER_OFFER"]
    counter_offer: CounterOfferSchema

    def to_payload(self) -> StatusPayload:
        return CounterOfferTerms(
            terms=self.offer_terms(),
            counter_offer=models.CounterOffer(**self.counter_offer.model_dump()),
        )


class RejectionUpdate(BaseModel):
    status: Literal["REJECTED", "FAILED"]
    reason: str = Field(..., min_length=1)
    message: Optional[str] = None

    def to_payload(self) -> StatusPayload:
        return RejectionDetails(reason=self.reason)


class DocumentsRequiredUpdate(BaseModel):
    status: Literal["DOCUMENTS_REQUIRED"]
    additional_documents: List[str] = Field(..., min_length=1)
    message: Optional[str] = None

    def to_payload(self) -> StatusPayload:
        return DocumentRequest(additional_documents=tuple(self.additional_documents))


class ProgressUpdate(BaseModel):
    status: Literal["PENDING", "SUBMITTED", "UNDER_REVIEW", "EXPIRED"]
    message: Optional[str] = None

    def to_payload(self) -> Optional[StatusPayload]:
        return None
