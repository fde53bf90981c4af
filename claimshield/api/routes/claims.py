"""Claim lifecycle API routes."""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from claimshield.api.requests import SubmitClaimRequest, TransitionClaimRequest
from claimshield.api.responses import ClaimListResponse, ExplanationResponse
from claimshield.api.dependencies import get_claim_service
from claimshield.api.errors import to_http_exception
from claimshield.services.claim_service import ClaimService
from claimshield.models.enums import ClaimStatus, ReadinessStatus
from claimshield.models.exceptions import ClaimShieldError
from claimshield.config.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/claims", tags=["Claims"])


@router.get("", response_model=ClaimListResponse)
async def list_claims(
    status: Optional[str] = Query(None, description="Filter by lifecycle status"),
    readiness: Optional[str] = Query(None, description="Filter by readiness (GREEN, YELLOW, RED)"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    claim_service: ClaimService = Depends(get_claim_service)
):
    """
    List claims with optional filtering.

    Args:
        status: Optional status filter
        readiness: Optional readiness filter
        limit: Maximum results
        offset: Pagination offset
        claim_service: Injected claim service

    Returns:
        Page of claims with stuck status and allowed transitions
    """
    try:
        status_enum = ClaimStatus(status) if status else None
        readiness_enum = ReadinessStatus(readiness.upper()) if readiness else None
        claims = await claim_service.list_claims(
            status=status_enum, readiness=readiness_enum, limit=limit, offset=offset
        )
        total = await claim_service.count_claims(status=status_enum)
        return ClaimListResponse(claims=claims, total=total, limit=limit, offset=offset)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error("Error listing claims", error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/recent")
async def get_recent_claims(
    limit: int = Query(10, ge=1, le=100),
    claim_service: ClaimService = Depends(get_claim_service)
) -> List[Dict[str, Any]]:
    try:
        return await claim_service.get_recent_claims(limit=limit)
    except Exception as e:
        logger.error("Error getting recent claims", error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/{claim_id}")
async def get_claim(
    claim_id: str,
    claim_service: ClaimService = Depends(get_claim_service)
) -> Dict[str, Any]:
    try:
        return await claim_service.get_claim(claim_id)
    except ClaimShieldError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error("Error getting claim", claim_id=claim_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/{claim_id}/events")
async def get_claim_events(
    claim_id: str,
    claim_service: ClaimService = Depends(get_claim_service)
) -> List[Dict[str, Any]]:
    """Claim timeline, oldest event first."""
    try:
        return await claim_service.get_timeline(claim_id)
    except ClaimShieldError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error("Error getting claim events", claim_id=claim_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/{claim_id}/explanation", response_model=ExplanationResponse)
async def get_claim_explanation(
    claim_id: str,
    claim_service: ClaimService = Depends(get_claim_service)
):
    try:
        return ExplanationResponse(**await claim_service.get_explanation(claim_id))
    except ClaimShieldError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error("Error getting claim explanation", claim_id=claim_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/{claim_id}/patient")
async def get_claim_patient(
    claim_id: str,
    claim_service: ClaimService = Depends(get_claim_service)
) -> Dict[str, Any]:
    try:
        patient = await claim_service.get_claim_patient(claim_id)
        if not patient:
            raise HTTPException(status_code=404, detail=f"No patient for claim: {claim_id}")
        return patient
    except HTTPException:
        raise
    except ClaimShieldError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error("Error getting claim patient", claim_id=claim_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/{claim_id}/score")
async def score_claim(
    claim_id: str,
    claim_service: ClaimService = Depends(get_claim_service)
) -> Dict[str, Any]:
    """
    Score or rescore a claim against its latest verified benefits and active rules.

    Args:
        claim_id: Claim identifier
        claim_service: Injected claim service

    Returns:
        Claim with risk score, readiness and explanation
    """
    try:
        return await claim_service.score_claim(claim_id)
    except ClaimShieldError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error("Error scoring claim", claim_id=claim_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/{claim_id}/submit")
async def submit_claim(
    claim_id: str,
    request: Optional[SubmitClaimRequest] = None,
    claim_service: ClaimService = Depends(get_claim_service)
) -> Dict[str, Any]:
    """
    Submit a claim to the payer. Only GREEN claims in created are accepted.

    Args:
        claim_id: Claim identifier
        request: Optional notes and actor
        claim_service: Injected claim service

    Returns:
        Submitted claim
    """
    try:
        request = request or SubmitClaimRequest()
        return await claim_service.submit_claim(claim_id, notes=request.notes, actor=request.actor)
    except ClaimShieldError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error("Error submitting claim", claim_id=claim_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/{claim_id}/transition")
async def transition_claim(
    claim_id: str,
    request: TransitionClaimRequest,
    claim_service: ClaimService = Depends(get_claim_service)
) -> Dict[str, Any]:
    """
    Move a claim along its lifecycle, recording denial details when denied.

    Args:
        claim_id: Claim identifier
        request: Target status, notes, actor and optional denial details
        claim_service: Injected claim service

    Returns:
        Updated claim
    """
    try:
        return await claim_service.transition_claim(
            claim_id,
            request.status,
            notes=request.notes,
            actor=request.actor,
            denial=request.denial.model_dump() if request.denial else None,
        )
    except ClaimShieldError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error("Error transitioning claim", claim_id=claim_id, target=request.status.value, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")
