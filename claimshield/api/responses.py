"""Response models for API endpoints."""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class LeadListResponse(BaseModel):
    """Response containing a page of leads."""
    leads: List[Dict[str, Any]]
    total: int
    limit: int
    offset: int


class ClaimListResponse(BaseModel):
    """Response containing a page of claims."""
    claims: List[Dict[str, Any]]
    total: int
    limit: int
    offset: int


class ClaimPacketResponse(BaseModel):
    """Response from claim packet creation."""
    claim_id: str
    encounter_id: str
    claim: Dict[str, Any]


class ExplanationResponse(BaseModel):
    """Stored explanation behind a claim's risk score."""
    claim_id: str
    scored: bool
    risk_score: Optional[int] = None
    readiness_status: Optional[str] = None
    scored_at: Optional[str] = None
    explanation: Optional[Dict[str, Any]] = None


class DashboardMetricsResponse(BaseModel):
    """Dashboard headline metrics."""
    denials_prevented: int
    claims_at_risk: int
    avg_ar_days: float
    top_payer_risk: str
    revenue_protected: float
    total_claims: int
    pending_claims: int


class AlertResponse(BaseModel):
    """A dashboard alert."""
    alert_id: str
    type: str
    title: str
    description: str
    claim_id: str
    severity: str
    timestamp: str


class DenialClusterResponse(BaseModel):
    """Denials sharing payer, CPT code and root cause."""
    payer: str
    cpt_code: Optional[str] = None
    root_cause: str
    count: int
    trend: List[int] = Field(description="Weekly denial counts, oldest week first")
    suggested_rule: Dict[str, Any]


class TopPatternResponse(BaseModel):
    """Denial root cause with its 30-day change."""
    root_cause: str
    count: int
    recent_count: int
    previous_count: int
    change: int = Field(description="Percent change, last 30 days against the 30 before")


class PdfExportResponse(BaseModel):
    """Link to the payer's PDF export of a verification."""
    verification_id: str
    external_vob_id: str
    url: Optional[str] = None
