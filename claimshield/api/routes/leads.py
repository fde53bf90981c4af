"""Lead intake, VOB and claim packet API routes."""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from claimshield.api.requests import (
    CreateLeadRequest,
    UpdateLeadRequest,
    RecordCallRequest,
    VerifyLeadRequest,
    ClaimPacketRequest,
)
from claimshield.api.responses import LeadListResponse, ClaimPacketResponse
from claimshield.api.dependencies import get_lead_service, get_verification_service
from claimshield.api.errors import to_http_exception
from claimshield.services.lead_service import LeadService
from claimshield.services.verification_service import VerificationService
from claimshield.models.enums import LeadPriority, LeadStatus
from claimshield.models.exceptions import ClaimShieldError
from claimshield.config.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/leads", tags=["Leads"])


@router.get("", response_model=LeadListResponse)
async def list_leads(
    status: Optional[str] = Query(None, description="Filter by lead status"),
    priority: Optional[str] = Query(None, description="Filter by priority (P0, P1, P2)"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    lead_service: LeadService = Depends(get_lead_service)
):
    """
    List leads with optional filtering.

    Args:
        status: Optional status filter
        priority: Optional priority filter
        limit: Maximum results
        offset: Pagination offset
        lead_service: Injected lead service

    Returns:
        Page of leads with the total for the status filter
    """
    try:
        status_enum = LeadStatus(status) if status else None
        priority_enum = LeadPriority(priority) if priority else None
        leads = await lead_service.list_leads(
            status=status_enum, priority=priority_enum, limit=limit, offset=offset
        )
        total = await lead_service.count_leads(status=status_enum)
        return LeadListResponse(leads=leads, total=total, limit=limit, offset=offset)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error("Error listing leads", error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("", status_code=201)
async def create_lead(
    request: CreateLeadRequest,
    lead_service: LeadService = Depends(get_lead_service)
) -> Dict[str, Any]:
    """Create a lead; its VOB completeness is computed immediately."""
    try:
        return await lead_service.create_lead(request.model_dump(mode="json"))
    except (ClaimShieldError, ValueError) as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error("Error creating lead", error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/{lead_id}")
async def get_lead(
    lead_id: str,
    lead_service: LeadService = Depends(get_lead_service)
) -> Dict[str, Any]:
    try:
        return await lead_service.get_lead(lead_id)
    except ClaimShieldError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error("Error getting lead", lead_id=lead_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.patch("/{lead_id}")
async def update_lead(
    lead_id: str,
    request: UpdateLeadRequest,
    lead_service: LeadService = Depends(get_lead_service)
) -> Dict[str, Any]:
    """
    Apply manual edits to a lead.

    Args:
        lead_id: Lead identifier
        request: Fields to change; omitted fields are left alone
        lead_service: Injected lead service

    Returns:
        Updated lead with recomputed VOB completeness
    """
    try:
        return await lead_service.update_lead(lead_id, request.model_dump(mode="json", exclude_unset=True))
    except (ClaimShieldError, ValueError) as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error("Error updating lead", lead_id=lead_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/{lead_id}/calls")
async def list_calls(
    lead_id: str,
    lead_service: LeadService = Depends(get_lead_service)
) -> List[Dict[str, Any]]:
    try:
        return await lead_service.list_calls(lead_id)
    except ClaimShieldError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error("Error listing calls", lead_id=lead_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/{lead_id}/calls", status_code=201)
async def record_call(
    lead_id: str,
    request: RecordCallRequest,
    lead_service: LeadService = Depends(get_lead_service)
) -> Dict[str, Any]:
    """
    Record an intake call and apply the extracted data to the lead.

    Args:
        lead_id: Lead identifier
        request: Transcript plus optional caller-supplied extraction overrides
        lead_service: Injected lead service

    Returns:
        Stored call with the lead's new status and VOB completeness
    """
    try:
        return await lead_service.record_call(lead_id, **request.model_dump())
    except (ClaimShieldError, ValueError) as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error("Error recording call", lead_id=lead_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/{lead_id}/patient")
async def get_patient(
    lead_id: str,
    lead_service: LeadService = Depends(get_lead_service)
) -> Dict[str, Any]:
    try:
        patient = await lead_service.get_patient(lead_id)
        if not patient:
            raise HTTPException(status_code=404, detail=f"No patient for lead: {lead_id}")
        return patient
    except HTTPException:
        raise
    except ClaimShieldError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error("Error getting patient", lead_id=lead_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/{lead_id}/patient/sync")
async def sync_patient(
    lead_id: str,
    lead_service: LeadService = Depends(get_lead_service)
) -> Dict[str, Any]:
    """Copy lead and latest verified benefit fields onto the patient record."""
    try:
        return await lead_service.sync_patient(lead_id)
    except (ClaimShieldError, ValueError) as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error("Error syncing patient", lead_id=lead_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/{lead_id}/vob")
async def get_vob(
    lead_id: str,
    lead_service: LeadService = Depends(get_lead_service)
) -> Dict[str, Any]:
    try:
        return await lead_service.get_vob(lead_id)
    except ClaimShieldError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error("Error computing VOB completeness", lead_id=lead_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/{lead_id}/verifications")
async def list_verifications(
    lead_id: str,
    lead_service: LeadService = Depends(get_lead_service)
) -> List[Dict[str, Any]]:
    try:
        return await lead_service.list_verifications(lead_id)
    except ClaimShieldError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error("Error listing verifications", lead_id=lead_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/{lead_id}/verifications/latest")
async def get_latest_verification(
    lead_id: str,
    lead_service: LeadService = Depends(get_lead_service)
) -> Dict[str, Any]:
    try:
        verification = await lead_service.get_latest_verification(lead_id)
        if not verification:
            raise HTTPException(status_code=404, detail=f"No verifications for lead: {lead_id}")
        return verification
    except HTTPException:
        raise
    except ClaimShieldError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error("Error getting latest verification", lead_id=lead_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/{lead_id}/verifications", status_code=201)
async def verify_lead(
    lead_id: str,
    request: Optional[VerifyLeadRequest] = None,
    verification_service: VerificationService = Depends(get_verification_service)
) -> Dict[str, Any]:
    """
    Run a benefit verification for a lead.

    Args:
        lead_id: Lead identifier
        request: Optional subscriber overrides
        verification_service: Injected verification service

    Returns:
        Stored verification with the lead's refreshed VOB completeness
    """
    try:
        overrides = request.model_dump(exclude_none=True) if request else {}
        return await verification_service.verify_lead(lead_id, overrides)
    except (ClaimShieldError, ValueError) as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error("Error verifying lead", lead_id=lead_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/{lead_id}/claim-packet", response_model=ClaimPacketResponse, status_code=201)
async def create_claim_packet(
    lead_id: str,
    request: Optional[ClaimPacketRequest] = None,
    lead_service: LeadService = Depends(get_lead_service)
):
    """
    Convert a fully verified lead into an encounter and a scored claim.

    Args:
        lead_id: Lead identifier
        request: Optional claim overrides
        lead_service: Injected lead service

    Returns:
        Claim packet
    """
    try:
        options = (request or ClaimPacketRequest()).model_dump()
        packet = await lead_service.create_claim_packet(lead_id, **options)
        return ClaimPacketResponse(**packet)
    except (ClaimShieldError, ValueError) as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error("Error creating claim packet", lead_id=lead_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")
