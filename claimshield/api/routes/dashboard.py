"""Dashboard and denial intelligence API routes."""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from claimshield.api.responses import (
    DashboardMetricsResponse,
    AlertResponse,
    DenialClusterResponse,
    TopPatternResponse,
)
from claimshield.api.dependencies import get_dashboard_service, get_intelligence_service
from claimshield.services.dashboard_service import DashboardService
from claimshield.services.intelligence_service import IntelligenceService
from claimshield.config.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["Dashboard"])


@router.get("/dashboard/metrics", response_model=DashboardMetricsResponse)
async def get_metrics(
    dashboard_service: DashboardService = Depends(get_dashboard_service)
):
    """
    Headline metrics: denials prevented, claims at risk, average A/R days,
    top payer by risk, revenue protected and claim counts.
    """
    try:
        return DashboardMetricsResponse(**await dashboard_service.get_metrics())
    except Exception as e:
        logger.error("Error computing dashboard metrics", error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/dashboard/alerts", response_model=List[AlertResponse])
async def get_alerts(
    limit: int = Query(5, ge=1, le=50),
    dashboard_service: DashboardService = Depends(get_dashboard_service)
):
    """High-risk and stuck claim alerts, newest first."""
    try:
        return [AlertResponse(**alert) for alert in await dashboard_service.get_alerts(limit=limit)]
    except Exception as e:
        logger.error("Error building dashboard alerts", error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/intelligence/clusters", response_model=List[DenialClusterResponse])
async def get_denial_clusters(
    intelligence_service: IntelligenceService = Depends(get_intelligence_service)
):
    try:
        return [DenialClusterResponse(**c) for c in await intelligence_service.get_denial_clusters()]
    except Exception as e:
        logger.error("Error clustering denials", error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/intelligence/top-patterns", response_model=List[TopPatternResponse])
async def get_top_patterns(
    intelligence_service: IntelligenceService = Depends(get_intelligence_service)
):
    try:
        return [TopPatternResponse(**p) for p in await intelligence_service.get_top_patterns()]
    except Exception as e:
        logger.error("Error ranking denial patterns", error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")
