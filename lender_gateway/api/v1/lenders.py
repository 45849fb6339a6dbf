"""Lender catalogue and analytics endpoints"""

from typing import List
from fastapi import APIRouter, Depends, HTTPException

from lender_gateway.api.dependencies import get_orchestrator, get_registry
from lender_gateway.api.v1.schemas import LenderAnalyticsSchema, LenderSchema
from lender_gateway.domain.registry import LenderRegistry
from lender_gateway.services.orchestrator import SubmissionOrchestrator

router = APIRouter()


@router.get("/lenders", response_model=List[LenderSchema])
def list_lenders(registry: LenderRegistry = Depends(get_registry)):
    """Active lenders"""
    return [LenderSchema.model_validate(lender, from_attributes=True) for lender in registry.list_active()]


@router.get("/lenders/analytics", response_model=List[LenderAnalyticsSchema])
def get_lender_analytics(orchestrator: SubmissionOrchestrator = Depends(get_orchestrator)):
    """
    Per-lender performance across all applications.

    Returns:
        Volumes, approval rate, average response time and rate, commission
    """
    return [
        LenderAnalyticsSchema.model_validate(stats, from_attributes=True)
        for stats in orchestrator.get_analytics()
    ]


@router.get("/lenders/{lender_id}", response_model=LenderSchema)
def get_lender(lender_id: str, registry: LenderRegistry = Depends(get_registry)):
    lender = registry.get(lender_id)
    if lender is None:
        raise HTTPException(status_code=404, detail="Lender not found")
    return LenderSchema.model_validate(lender, from_attributes=True)
