"""Payer lookup and verification follow-up API routes."""
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Query

from claimshield.api.responses import PdfExportResponse
from claimshield.api.dependencies import get_verification_service
from claimshield.api.errors import to_http_exception
from claimshield.services.verification_service import VerificationService
from claimshield.models.exceptions import ClaimShieldError
from claimshield.config.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["Verification"])


@router.get("/payers")
async def search_payers(
    query: str = Query("", description="Payer name to search for"),
    verification_service: VerificationService = Depends(get_verification_service)
) -> Dict[str, Any]:
    try:
        payers = await verification_service.search_payers(query)
        return {"payers": payers, "total": len(payers)}
    except ClaimShieldError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error("Error searching payers", query=query, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/verifications/{verification_id}/reverify", status_code=201)
async def reverify(
    verification_id: str,
    verification_service: VerificationService = Depends(get_verification_service)
) -> Dict[str, Any]:
    """
    Re-run an earlier verification with the payer.

    The result is stored as a new attempt; the original is left untouched.
    """
    try:
        return await verification_service.reverify(verification_id)
    except (ClaimShieldError, ValueError) as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error("Error re-verifying", verification_id=verification_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/verifications/{verification_id}/pdf", response_model=PdfExportResponse)
async def export_pdf(
    verification_id: str,
    verification_service: VerificationService = Depends(get_verification_service)
):
    try:
        return PdfExportResponse(**await verification_service.export_pdf(verification_id))
    except (ClaimShieldError, ValueError) as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error("Error exporting verification PDF", verification_id=verification_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")
