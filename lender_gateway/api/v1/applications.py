"""Application endpoints - multi-lender submission, status, retry and lender callbacks"""

import logging
from dataclasses import asdict
from typing import Annotated, List, Union
from fastapi import APIRouter, BackgroundTasks, Body, Depends, HTTPException, Request

from lender_gateway.api.dependencies import get_orchestrator, get_request_id, get_webhook_client
from lender_gateway.api.v1.schemas import (
    AmortizationRowSchema,
    ApplicationStatusResponse,
    CounterOfferUpdate,
    DocumentsRequiredUpdate,
    LenderApplicationSchema,
    OfferSummarySchema,
    OfferUpdate,
    ProgressUpdate,
    RejectionUpdate,
    RepaymentScheduleResponse,
    RetryResponse,
    StatusSummarySchema,
    StatusUpdateResponse,
    SubmissionSchema,
    SubmitApplicationRequest,
    SubmitApplicationResponse,
)
from lender_gateway.domain.exceptions import (
    DuplicateSubmissionError,
    InvalidStatusUpdateError,
    NoEligibleLendersError,
)
from lender_gateway.domain.models import ApplicationStatus
from lender_gateway.infrastructure.clients.webhook import DecisionWebhookClient
from lender_gateway.services.orchestrator import SubmissionOrchestrator

router = APIRouter()

StatusUpdateBody = Annotated[
    Union[OfferUpdate, CounterOfferUpdate, RejectionUpdate, DocumentsRequiredUpdate, ProgressUpdate],
    Body(discriminator="status"),
]


@router.post("/applications", response_model=SubmitApplicationResponse)
async def submit_application(
    request_body: SubmitApplicationRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    orchestrator: SubmissionOrchestrator = Depends(get_orchestrator),
    webhook_client: DecisionWebhookClient = Depends(get_webhook_client),
):
    """
    Fan an application out to several lenders.

    Flow:
    1. Convert the request into domain records
    2. Submit to the explicit lenders, or the scorer's top picks
    3. Schedule offer notifications on the decision webhook
    4. Return which lenders were reached
    """
    request_id = get_request_id(request)

    try:
        result = await orchestrator.submit(
            application_id=request_body.application_id,
            customer=request_body.customer.to_domain(),
            vehicle=request_body.vehicle.to_domain(),
            financial=request_body.financial.to_domain(),
            documents=[doc.to_domain() for doc in request_body.documents],
            lender_ids=request_body.lender_ids,
        )
    except DuplicateSubmissionError as e:
        logging.warning(f"Duplicate submission: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail=str(e))
    except NoEligibleLendersError as e:
        logging.warning(f"No eligible lenders: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    if webhook_client.enabled:
        background_tasks.add_task(
            webhook_client.notify_offers,
            orchestrator.get_status(result.application_id),
        )

    return SubmitApplicationResponse.model_validate(result, from_attributes=True)


@router.get("/applications", response_model=List[LenderApplicationSchema])
def list_lender_applications(orchestrator: SubmissionOrchestrator = Depends(get_orchestrator)):
    """All lender application records, across applications"""
    return [
        LenderApplicationSchema.model_validate(record, from_attributes=True)
        for record in orchestrator.list_all_records()
    ]


@router.get("/applications/{application_id}", response_model=ApplicationStatusResponse)
def get_application_status(
    application_id: str,
    orchestrator: SubmissionOrchestrator = Depends(get_orchestrator),
):
    """
    Status of an application at every lender.

    Returns:
        Submission, per-lender records, outcome summary and ranked offers
    """
    submission = orchestrator.get_submission(application_id)
    records = orchestrator.get_status(application_id)
    if submission is None and not records:
        raise HTTPException(status_code=404, detail="Application not found")

    summary, offers = orchestrator.get_summary(application_id)

    return ApplicationStatusResponse(
        application_id=application_id,
        submission=SubmissionSchema.model_validate(asdict(submission)) if submission else None,
        applications=[LenderApplicationSchema.model_validate(r, from_attributes=True) for r in records],
        summary=StatusSummarySchema.model_validate(summary, from_attributes=True),
        offers=OfferSummarySchema.model_validate(offers, from_attributes=True),
    )


@router.post("/applications/{application_id}/lenders/{lender_id}/retry", response_model=RetryResponse)
async def retry_lender_application(
    application_id: str,
    lender_id: str,
    orchestrator: SubmissionOrchestrator = Depends(get_orchestrator),
):
    """Resubmit a FAILED lender application"""
    success = await orchestrator.retry(application_id, lender_id)
    return RetryResponse(
        success=success,
        message="Application retry initiated" if success else "Retry failed",
    )


@router.post(
    "/applications/{application_id}/lenders/{lender_id}/status",
    response_model=StatusUpdateResponse,
)
def push_lender_status(
    application_id: str,
    lender_id: str,
    update: StatusUpdateBody,
    request: Request,
    orchestrator: SubmissionOrchestrator = Depends(get_orchestrator),
):
    """Lender callback carrying an asynchronous status change"""
    request_id = get_request_id(request)

    try:
        applied = orchestrator.apply_external_update(
            application_id,
            lender_id,
            ApplicationStatus(update.status),
            update.to_payload(),
            message=update.message,
        )
    except InvalidStatusUpdateError as e:
        logging.warning(f"Invalid status update: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    if not applied:
        raise HTTPException(status_code=404, detail="Lender application not found")

    record = orchestrator.get_record(application_id, lender_id)
    return StatusUpdateResponse(
        success=True,
        application=LenderApplicationSchema.model_validate(record, from_attributes=True),
    )


@router.get(
    "/applications/{application_id}/lenders/{lender_id}/schedule",
    response_model=RepaymentScheduleResponse,
)
def get_repayment_schedule(
    application_id: str,
    lender_id: str,
    orchestrator: SubmissionOrchestrator = Depends(get_orchestrator),
):
    """Amortization schedule for the terms a lender offered"""
    schedule = orchestrator.get_repayment_schedule(application_id, lender_id)
    if schedule is None:
        raise HTTPException(status_code=404, detail="Lender application not found")
    if not schedule:
        raise HTTPException(status_code=422, detail="Lender application has no offer terms")

    record = orchestrator.get_record(application_id, lender_id)
    return RepaymentScheduleResponse(
        application_id=application_id,
        lender_id=lender_id,
        emi_amount=record.emi_amount,
        schedule=[AmortizationRowSchema.model_validate(row, from_attributes=True) for row in schedule],
    )
