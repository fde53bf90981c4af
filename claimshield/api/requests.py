"""Request models for API endpoints."""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from claimshield.models.enums import ClaimStatus, LeadPriority, LeadStatus


class CreateLeadRequest(BaseModel):
    """Request to create a new lead."""
    name: str = Field(..., min_length=1, max_length=200, description="Full name")
    phone: Optional[str] = Field(default=None, max_length=40)
    email: Optional[str] = Field(default=None, max_length=200)
    state: Optional[str] = Field(default=None, description="Two-letter state code")
    date_of_birth: Optional[str] = Field(default=None, description="ISO date (YYYY-MM-DD)")
    source: Optional[str] = Field(default=None, description="Where the lead came from")
    priority: LeadPriority = Field(default=LeadPriority.P2)
    service_needed: Optional[str] = None
    notes: Optional[str] = None
    consent_to_call: bool = False
    insurance_carrier: Optional[str] = None
    member_id: Optional[str] = None
    plan_type: Optional[str] = None
    vob_consent: Optional[bool] = Field(default=None, description="Consent to verify benefits")


class UpdateLeadRequest(BaseModel):
    """Manual edits to a lead. Only fields that are sent are changed."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    state: Optional[str] = None
    date_of_birth: Optional[str] = None
    source: Optional[str] = None
    status: Optional[LeadStatus] = None
    priority: Optional[LeadPriority] = None
    service_needed: Optional[str] = None
    notes: Optional[str] = None
    consent_to_call: Optional[bool] = None
    insurance_carrier: Optional[str] = None
    member_id: Optional[str] = None
    plan_type: Optional[str] = None
    vob_consent: Optional[bool] = None


class RecordCallRequest(BaseModel):
    """Request to record an intake call for a lead."""
    transcript: Optional[str] = Field(default=None, description="Call transcript text")
    summary: Optional[str] = None
    disposition: Optional[str] = None
    extracted_data: Optional[Dict[str, Any]] = Field(
        default=None,
        description="camelCase values that override transcript extraction (e.g. insuranceCarrier)"
    )
    duration_seconds: Optional[int] = Field(default=None, ge=0)
    external_call_id: Optional[str] = None


class VerifyLeadRequest(BaseModel):
    """Optional subscriber details that take precedence over the lead and patient."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[str] = None
    member_id: Optional[str] = None
    payer_id: Optional[str] = None
    payer_name: Optional[str] = None
    gender: Optional[str] = None


class ClaimPacketRequest(BaseModel):
    """Request to convert a verified lead into an encounter and claim."""
    payer: Optional[str] = None
    cpt_codes: Optional[List[str]] = None
    amount: Optional[float] = Field(default=None, ge=0)
    service_type: Optional[str] = None
    facility_type: str = "Hospital"
    admission_type: str = "Elective"
    expected_start_date: Optional[str] = Field(default=None, description="ISO date (YYYY-MM-DD)")


class SubmitClaimRequest(BaseModel):
    """Request to submit a claim to the payer."""
    notes: Optional[str] = None
    actor: str = "user"


class DenialDetails(BaseModel):
    """Denial details recorded with a transition into denied."""
    root_cause_tag: str = Field(..., min_length=1)
    denial_category: Optional[str] = None
    denial_reason_text: Optional[str] = None
    cpt_code: Optional[str] = None


class TransitionClaimRequest(BaseModel):
    """Request to move a claim along its lifecycle."""
    status: ClaimStatus = Field(..., description="Target status")
    notes: Optional[str] = None
    actor: str = "user"
    denial: Optional[DenialDetails] = None


class CreateRuleRequest(BaseModel):
    """Request to create a prevention rule."""
    name: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    payer: Optional[str] = Field(default=None, description="Payer name, or empty for all payers")
    cpt_code: Optional[str] = Field(default=None, description="CPT code or glob, e.g. 9083*")
    trigger_pattern: str = Field(..., description="e.g. priorAuthRequired=true AND amount>5000")
    prevention_action: str = ""
    risk_contribution: int = Field(default=0, ge=0, le=100)
    requires_verification: bool = False
    enabled: bool = True


class UpdateRuleRequest(BaseModel):
    """Edits to a prevention rule. Only fields that are sent are changed."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    payer: Optional[str] = None
    cpt_code: Optional[str] = None
    trigger_pattern: Optional[str] = None
    prevention_action: Optional[str] = None
    risk_contribution: Optional[int] = Field(default=None, ge=0, le=100)
    requires_verification: Optional[bool] = None
    enabled: Optional[bool] = None


class GenerateRuleRequest(BaseModel):
    """Request to create a rule from a denial cluster."""
    payer: str = Field(..., min_length=1)
    cpt_code: Optional[str] = None
    root_cause: str = Field(..., min_length=1)
    suggested_rule: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Edits applied over the generated suggestion"
    )
