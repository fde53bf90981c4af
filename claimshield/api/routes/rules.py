"""Prevention rule API routes."""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Response

from claimshield.api.requests import CreateRuleRequest, UpdateRuleRequest, GenerateRuleRequest
from claimshield.api.dependencies import get_intelligence_service
from claimshield.api.errors import to_http_exception
from claimshield.services.intelligence_service import IntelligenceService
from claimshield.models.exceptions import ClaimShieldError
from claimshield.config.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/rules", tags=["Rules"])


@router.get("")
async def list_rules(
    intelligence_service: IntelligenceService = Depends(get_intelligence_service)
) -> List[Dict[str, Any]]:
    try:
        return await intelligence_service.list_rules()
    except Exception as e:
        logger.error("Error listing rules", error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("", status_code=201)
async def create_rule(
    request: CreateRuleRequest,
    intelligence_service: IntelligenceService = Depends(get_intelligence_service)
) -> Dict[str, Any]:
    """
    Create a prevention rule.

    Args:
        request: Rule definition; the trigger pattern must parse
        intelligence_service: Injected intelligence service

    Returns:
        Created rule
    """
    try:
        return await intelligence_service.create_rule(request.model_dump())
    except ClaimShieldError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error("Error creating rule", error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/generate", status_code=201)
async def generate_rule(
    request: GenerateRuleRequest,
    intelligence_service: IntelligenceService = Depends(get_intelligence_service)
) -> Dict[str, Any]:
    """Create a rule from a denial cluster's suggestion, with optional edits."""
    try:
        return await intelligence_service.generate_rule(
            payer=request.payer,
            cpt_code=request.cpt_code,
            root_cause=request.root_cause,
            suggested_rule=request.suggested_rule,
        )
    except ClaimShieldError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error("Error generating rule", payer=request.payer, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.patch("/{rule_id}")
async def update_rule(
    rule_id: str,
    request: UpdateRuleRequest,
    intelligence_service: IntelligenceService = Depends(get_intelligence_service)
) -> Dict[str, Any]:
    try:
        return await intelligence_service.update_rule(rule_id, request.model_dump(exclude_unset=True))
    except ClaimShieldError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error("Error updating rule", rule_id=rule_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.delete("/{rule_id}", status_code=204)
async def delete_rule(
    rule_id: str,
    intelligence_service: IntelligenceService = Depends(get_intelligence_service)
) -> Response:
    try:
        await intelligence_service.delete_rule(rule_id)
        return Response(status_code=204)
    except ClaimShieldError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error("Error deleting rule", rule_id=rule_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")
