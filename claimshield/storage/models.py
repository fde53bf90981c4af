"""SQLAlchemy ORM models for database tables."""
from datetime import datetime, timezone

from sqlalchemy import Column, String, Integer, Float, Boolean, DateTime, Text, ForeignKey, JSON, Index, UniqueConstraint
from sqlalchemy.orm import relationship, declarative_base


def _utcnow():
    """Return current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


Base = declarative_base()


class LeadModel(Base):
    """Database model for leads. Leads are never hard-deleted."""
    __tablename__ = "leads"

    id = Column(String(36), primary_key=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    # Contact
    name = Column(String(200), nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    phone = Column(String(40), nullable=True)
    email = Column(String(200), nullable=True)
    state = Column(String(40), nullable=True)
    date_of_birth = Column(String(10), nullable=True)
    source = Column(String(100), nullable=True)

    # Pipeline
    status = Column(String(20), nullable=False, default="new")
    priority = Column(String(2), nullable=False, default="P2")
    service_needed = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    consent_to_call = Column(Boolean, nullable=False, default=False)
    attempt_count = Column(Integer, nullable=False, default=0)
    last_contacted_at = Column(DateTime(timezone=True), nullable=True)
    last_outcome = Column(String(50), nullable=True)

    # Insurance
    insurance_carrier = Column(String(200), nullable=True)
    member_id = Column(String(100), nullable=True)
    plan_type = Column(String(100), nullable=True)
    vob_consent = Column(Boolean, nullable=True)

    # VOB projection (recomputed by the lead service)
    vob_status = Column(String(20), nullable=False, default="not_started")
    vob_score = Column(Integer, nullable=False, default=0)
    vob_missing_fields = Column(JSON, nullable=True, default=list)

    __table_args__ = (
        Index('ix_leads_status', 'status'),
        Index('ix_leads_created_at', 'created_at'),
    )

    patient = relationship("PatientModel", back_populates="lead", uselist=False)
    calls = relationship("CallModel", back_populates="lead")
    verifications = relationship("VobVerificationModel", back_populates="lead")

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "lead_id": self.id,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "name": self.name,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "phone": self.phone,
            "email": self.email,
            "state": self.state,
            "date_of_birth": self.date_of_birth,
            "source": self.source,
            "status": self.status,
            "priority": self.priority,
            "service_needed": self.service_needed,
            "notes": self.notes,
            "consent_to_call": self.consent_to_call,
            "attempt_count": self.attempt_count,
            "last_contacted_at": _iso(self.last_contacted_at),
            "last_outcome": self.last_outcome,
            "insurance_carrier": self.insurance_carrier,
            "member_id": self.member_id,
            "plan_type": self.plan_type,
            "vob_consent": self.vob_consent,
            "vob_status": self.vob_status,
            "vob_score": self.vob_score,
            "vob_missing_fields": self.vob_missing_fields or [],
        }


class PatientModel(Base):
    """Database model for patients (1:1 with a lead)."""
    __tablename__ = "patients"

    id = Column(String(36), primary_key=True)
    lead_id = Column(String(36), ForeignKey("leads.id"), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    date_of_birth = Column(String(10), nullable=True)
    state = Column(String(40), nullable=True)
    insurance_carrier = Column(String(200), nullable=True)
    member_id = Column(String(100), nullable=True)
    plan_type = Column(String(100), nullable=True)

    lead = relationship("LeadModel", back_populates="patient")

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "patient_id": self.id,
            "lead_id": self.lead_id,
            "created_at": _iso(self.created_at),
            "first_name": self.first_name,
            "last_name": self.last_name,
            "date_of_birth": self.date_of_birth,
            "state": self.state,
            "insurance_carrier": self.insurance_carrier,
            "member_id": self.member_id,
            "plan_type": self.plan_type,
        }


class CallModel(Base):
    """Database model for intake calls."""
    __tablename__ = "calls"

    id = Column(String(36), primary_key=True)
    lead_id = Column(String(36), ForeignKey("leads.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    external_call_id = Column(String(100), nullable=True)
    transcript = Column(Text, nullable=True)
    summary = Column(Text, nullable=True)
    disposition = Column(String(30), nullable=True)
    duration_seconds = Column(Integer, nullable=True)
    extracted_data = Column(JSON, nullable=True, default=dict)

    __table_args__ = (
        Index('ix_calls_lead_id', 'lead_id'),
    )

    lead = relationship("LeadModel", back_populates="calls")

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "call_id": self.id,
            "lead_id": self.lead_id,
            "created_at": _iso(self.created_at),
            "external_call_id": self.external_call_id,
            "transcript": self.transcript,
            "summary": self.summary,
            "disposition": self.disposition,
            "duration_seconds": self.duration_seconds,
            "extracted_data": self.extracted_data or {},
        }


class VobVerificationModel(Base):
    """Database model for benefit verification attempts (append-only)."""
    __tablename__ = "vob_verifications"

    id = Column(String(36), primary_key=True)
    lead_id = Column(String(36), ForeignKey("leads.id"), nullable=False)
    patient_id = Column(String(36), ForeignKey("patients.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    gateway = Column(String(30), nullable=False, default="verifytx")

    # Upstream identifiers
    external_vob_id = Column(String(100), nullable=True)
    payer_id = Column(String(50), nullable=True)
    payer_name = Column(String(200), nullable=True)
    member_id = Column(String(100), nullable=True)

    # Outcome
    status = Column(String(20), nullable=False, default="pending")
    policy_status = Column(String(100), nullable=True)
    policy_type = Column(String(100), nullable=True)
    plan_name = Column(String(200), nullable=True)
    effective_date = Column(String(20), nullable=True)
    term_date = Column(String(20), nullable=True)

    # Financials
    copay = Column(Float, nullable=True)
    coinsurance = Column(Float, nullable=True)
    deductible = Column(Float, nullable=True)
    deductible_met = Column(Float, nullable=True)
    out_of_pocket_max = Column(Float, nullable=True)
    out_of_pocket_met = Column(Float, nullable=True)
    benefits_remaining = Column(Float, nullable=True)

    # Coverage details
    prior_auth_required = Column(Boolean, nullable=True)
    network_status = Column(String(20), nullable=True)
    coverage_limits = Column(Text, nullable=True)
    payer_notes = Column(Text, nullable=True)
    raw_response = Column(JSON, nullable=True)
    error_message = Column(Text, nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index('ix_vob_verifications_lead_id', 'lead_id'),
        Index('ix_vob_verifications_external_id', 'external_vob_id'),
    )

    lead = relationship("LeadModel", back_populates="verifications")

    def to_dict(self, include_raw: bool = False) -> dict:
        """Convert to dictionary."""
        data = {
            "verification_id": self.id,
            "lead_id": self.lead_id,
            "patient_id": self.patient_id,
            "created_at": _iso(self.created_at),
            "gateway": self.gateway,
            "external_vob_id": self.external_vob_id,
            "payer_id": self.payer_id,
            "payer_name": self.payer_name,
            "member_id": self.member_id,
            "status": self.status,
            "policy_status": self.policy_status,
            "policy_type": self.policy_type,
            "plan_name": self.plan_name,
            "effective_date": self.effective_date,
            "term_date": self.term_date,
            "copay": self.copay,
            "coinsurance": self.coinsurance,
            "deductible": self.deductible,
            "deductible_met": self.deductible_met,
            "out_of_pocket_max": self.out_of_pocket_max,
            "out_of_pocket_met": self.out_of_pocket_met,
            "benefits_remaining": self.benefits_remaining,
            "prior_auth_required": self.prior_auth_required,
            "network_status": self.network_status,
            "coverage_limits": self.coverage_limits,
            "payer_notes": self.payer_notes,
            "error_message": self.error_message,
            "verified_at": _iso(self.verified_at),
        }
        if include_raw:
            data["raw_response"] = self.raw_response
        return data


class EncounterModel(Base):
    """Database model for encounters."""
    __tablename__ = "encounters"

    id = Column(String(36), primary_key=True)
    patient_id = Column(String(36), ForeignKey("patients.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    service_type = Column(String(100), nullable=False)
    facility_type = Column(String(100), nullable=False)
    admission_type = Column(String(100), nullable=False)
    expected_start_date = Column(String(10), nullable=True)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "encounter_id": self.id,
            "patient_id": self.patient_id,
            "created_at": _iso(self.created_at),
            "service_type": self.service_type,
            "facility_type": self.facility_type,
            "admission_type": self.admission_type,
            "expected_start_date": self.expected_start_date,
        }


class ClaimModel(Base):
    """Database model for claims. ``status`` is a projection of the event log."""
    __tablename__ = "claims"

    id = Column(String(36), primary_key=True)
    patient_id = Column(String(36), ForeignKey("patients.id"), nullable=False)
    encounter_id = Column(String(36), ForeignKey("encounters.id"), nullable=True)
    lead_id = Column(String(36), ForeignKey("leads.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    payer = Column(String(200), nullable=True)
    cpt_codes = Column(JSON, nullable=False, default=list)
    amount = Column(Float, nullable=False, default=0.0)
    status = Column(String(20), nullable=False, default="created")

    # Risk (unset until first successful scoring)
    risk_score = Column(Integer, nullable=True)
    readiness_status = Column(String(10), nullable=True)
    fired_rule_ids = Column(JSON, nullable=True, default=list)
    risk_explanation = Column(JSON, nullable=True)
    scored_at = Column(DateTime(timezone=True), nullable=True)
    reason = Column(Text, nullable=True)
    next_step = Column(Text, nullable=True)

    __table_args__ = (
        Index('ix_claims_status', 'status'),
        Index('ix_claims_readiness', 'readiness_status'),
        Index('ix_claims_created_at', 'created_at'),
    )

    events = relationship("ClaimEventModel", back_populates="claim")
    denials = relationship("DenialModel", back_populates="claim")

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "claim_id": self.id,
            "patient_id": self.patient_id,
            "encounter_id": self.encounter_id,
            "lead_id": self.lead_id,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "payer": self.payer,
            "cpt_codes": self.cpt_codes or [],
            "amount": self.amount,
            "status": self.status,
            "risk_score": self.risk_score,
            "readiness_status": self.readiness_status,
            "fired_rule_ids": self.fired_rule_ids or [],
            "scored_at": _iso(self.scored_at),
            "reason": self.reason,
            "next_step": self.next_step,
        }


class ClaimEventModel(Base):
    """Database model for claim timeline events. Rows are never updated or deleted."""
    __tablename__ = "claim_events"

    id = Column(String(36), primary_key=True)
    claim_id = Column(String(36), ForeignKey("claims.id"), nullable=False)
    sequence = Column(Integer, nullable=False)
    event_type = Column(String(20), nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    notes = Column(Text, nullable=True)
    actor = Column(String(100), nullable=False, default="system")

    __table_args__ = (
        UniqueConstraint('claim_id', 'sequence', name='uq_claim_events_sequence'),
        Index('ix_claim_events_claim_id', 'claim_id'),
    )

    claim = relationship("ClaimModel", back_populates="events")

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "event_id": self.id,
            "claim_id": self.claim_id,
            "sequence": self.sequence,
            "type": self.event_type,
            "timestamp": _iso(self.timestamp),
            "notes": self.notes,
            "actor": self.actor,
        }


class DenialModel(Base):
    """Database model for payer denials."""
    __tablename__ = "denials"

    id = Column(String(36), primary_key=True)
    claim_id = Column(String(36), ForeignKey("claims.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    payer = Column(String(200), nullable=False)
    cpt_code = Column(String(20), nullable=True)
    denial_category = Column(String(100), nullable=True)
    denial_reason_text = Column(Text, nullable=True)
    root_cause_tag = Column(String(100), nullable=False)
    resolved = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index('ix_denials_cluster', 'payer', 'cpt_code', 'root_cause_tag'),
    )

    claim = relationship("ClaimModel", back_populates="denials")

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "denial_id": self.id,
            "claim_id": self.claim_id,
            "created_at": _iso(self.created_at),
            "payer": self.payer,
            "cpt_code": self.cpt_code,
            "denial_category": self.denial_category,
            "denial_reason_text": self.denial_reason_text,
            "root_cause_tag": self.root_cause_tag,
            "resolved": self.resolved,
        }


class RuleModel(Base):
    """Database model for denial-prevention rules."""
    __tablename__ = "rules"

    id = Column(String(36), primary_key=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    payer = Column(String(200), nullable=True)
    cpt_code = Column(String(20), nullable=True)  # Glob, e.g. 9083*
    trigger_pattern = Column(Text, nullable=False, default="")
    prevention_action = Column(Text, nullable=False, default="")
    risk_contribution = Column(Integer, nullable=False, default=0)
    requires_verification = Column(Boolean, nullable=False, default=False)
    enabled = Column(Boolean, nullable=False, default=True)

    # Counters
    triggered_count = Column(Integer, nullable=False, default=0)
    prevented_count = Column(Integer, nullable=False, default=0)
    protected_amount = Column(Float, nullable=False, default=0.0)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "rule_id": self.id,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "name": self.name,
            "description": self.description,
            "payer": self.payer,
            "cpt_code": self.cpt_code,
            "trigger_pattern": self.trigger_pattern,
            "prevention_action": self.prevention_action,
            "risk_contribution": self.risk_contribution,
            "requires_verification": self.requires_verification,
            "enabled": self.enabled,
            "triggered_count": self.triggered_count,
            "prevented_count": self.prevented_count,
            "protected_amount": self.protected_amount,
        }
