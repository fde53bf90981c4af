"""Seed deterministic demo data on startup."""
import random
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from claimshield.models.enums import ClaimStatus, LeadPriority, LeadStatus, ReadinessStatus
from claimshield.mock_services.eligibility import MockEligibilityGateway
from claimshield.services.claim_service import ClaimService
from claimshield.services.lead_service import (
    LeadService,
    DEFAULT_CPT_CODES,
    DEFAULT_CLAIM_AMOUNTS,
)
from claimshield.services.verification_service import VerificationService, VerificationLeases
from claimshield.storage.database import get_session_factory
from claimshield.storage.models import ClaimModel
from claimshield.storage.lead_repository import LeadRepository
from claimshield.storage.rule_repository import RuleRepository
from claimshield.config.logging_config import get_logger

logger = get_logger(__name__)

SEED = 42

FIRST_NAMES = ["Maria", "James", "Aisha", "Daniel", "Priya", "Marcus", "Elena", "Tom", "Grace", "Luis",
               "Hannah", "Omar", "Chloe", "Ravi", "Nina", "Owen"]
LAST_NAMES = ["Garcia", "Walker", "Okafor", "Kim", "Patel", "Reed", "Rossi", "Nguyen", "Hughes", "Mendez",
              "Fischer", "Haddad", "Brooks", "Iyer", "Novak", "Price"]
CARRIERS: List[Tuple[str, str]] = [
    # (name spoken on the call, member ID prefix)
    ("Aetna", "AET"),
    ("Blue Cross Blue Shield", "BCB"),
    ("Cigna", "CIG"),
    ("United Healthcare", "UHC"),
    ("Humana", "HUM"),
]
STATES = [("California", "CA"), ("Texas", "TX"), ("Florida", "FL"), ("New York", "NY"), ("Arizona", "AZ")]
SERVICES = [("outpatient", "Outpatient"), ("intensive outpatient", "Intensive Outpatient"),
            ("residential", "Residential"), ("detox", "Detox")]
SOURCES = ["Google Ads", "Referral", "Website", "Facebook"]
ROOT_CAUSES = ["Missing Auth", "Eligibility Issues", "Coding Error", "Medical Necessity"]
DENIAL_CATEGORIES = ["CO-197", "CO-27", "CO-16", "CO-50"]

# Eligibility scenario per converted lead, in order
CLAIM_SCENARIOS = [
    "active_in_network", "active_in_network", "prior_auth_required", "active_in_network",
    "out_of_network", "active_in_network", "inactive_policy", "active_in_network",
    "active_in_network", "prior_auth_required",
]

# Event paths after "created"; only GREEN claims get past submission
CLAIM_PATHS: List[List[ClaimStatus]] = [
    [ClaimStatus.VERIFIED, ClaimStatus.SUBMITTED, ClaimStatus.ACKNOWLEDGED, ClaimStatus.PENDING, ClaimStatus.PAID],
    [ClaimStatus.VERIFIED, ClaimStatus.SUBMITTED, ClaimStatus.ACKNOWLEDGED, ClaimStatus.PENDING],
    [ClaimStatus.SUBMITTED, ClaimStatus.ACKNOWLEDGED, ClaimStatus.PENDING, ClaimStatus.DENIED],
    [ClaimStatus.VERIFIED, ClaimStatus.SUBMITTED, ClaimStatus.ACKNOWLEDGED, ClaimStatus.PENDING,
     ClaimStatus.DENIED, ClaimStatus.APPEALED, ClaimStatus.PENDING],
    [ClaimStatus.SUBMITTED, ClaimStatus.ACKNOWLEDGED, ClaimStatus.PENDING, ClaimStatus.SUSPENDED],
    [ClaimStatus.VERIFIED],
]
HISTORY_PATH: List[ClaimStatus] = [ClaimStatus.SUBMITTED, ClaimStatus.ACKNOWLEDGED, ClaimStatus.PENDING]

DEMO_RULES = [
    {
        "name": "Aetna behavioral health prior auth",
        "description": "Aetna denies H-code behavioral health services billed without an authorization on file",
        "payer": "Aetna",
        "cpt_code": "H00*",
        "trigger_pattern": "priorAuthRequired=true",
        "prevention_action": "Obtain prior authorization before submission",
        "risk_contribution": 35,
    },
    {
        "name": "High-dollar residential stay",
        "description": "Residential claims over $10,000 are routinely pended for records",
        "cpt_code": "H0018",
        "trigger_pattern": "amount>10000",
        "prevention_action": "Attach clinical documentation for the full stay",
        "risk_contribution": 15,
    },
    {
        "name": "Cigna out-of-network",
        "description": "Cigna denies out-of-network behavioral health without a single case agreement",
        "payer": "Cigna",
        "trigger_pattern": "networkStatus=out_of_network",
        "prevention_action": "Request a single case agreement",
        "risk_contribution": 25,
    },
    {
        "name": "Verified eligibility required",
        "description": "No claim leaves without verified benefits",
        "trigger_pattern": "*",
        "prevention_action": "Verify eligibility before submission",
        "risk_contribution": 0,
        "requires_verification": True,
    },
]


def _transcript(name: str, carrier: str, member_id: str, state: str, service: str) -> str:
    return (
        f"Agent: Hi, this is Sarah from ClaimShield. Am I speaking with {name}?\n"
        f"Patient: Yes, this is {name}.\n"
        f"Agent: Who is your insurance carrier?\n"
        f"Patient: I have {carrier}. My member ID is {member_id}.\n"
        f"Agent: And which state do you live in?\n"
        f"Patient: I live in {state}.\n"
        f"Agent: What kind of program are you looking for?\n"
        f"Patient: I'm looking for {service} treatment.\n"
        f"Agent: Do we have your consent to verify your benefits with your insurance?\n"
        f"Patient: Yes, I consent."
    )


async def seed_demo_data(session_factory=None) -> int:
    """
    Seed demo leads, claims, denials and rules when the database is empty.

    Args:
        session_factory: Session factory (defaults to the global one)

    Returns:
        Number of leads seeded (0 when data already exists)
    """
    session_factory = session_factory or get_session_factory()
    async with session_factory() as session:
        if await LeadRepository(session).count() > 0:
            logger.info("Database already has data, skipping demo seed")
            return 0
        try:
            seeded = await _seed(session, random.Random(SEED), datetime.now(timezone.utc))
            await session.commit()
        except Exception:
            await session.rollback()
            raise

    logger.info("Demo data seeded", leads=seeded)
    return seeded


async def _seed(session: AsyncSession, rng: random.Random, now: datetime) -> int:
    rule_repository = RuleRepository(session)
    for rule in DEMO_RULES:
        await rule_repository.create(rule)

    claim_service = ClaimService(session)
    lead_service = LeadService(session, claim_service=claim_service)
    gateway = MockEligibilityGateway()
    verification_service = VerificationService(
        session,
        gateway=gateway,
        leases=VerificationLeases(),
        lead_service=lead_service,
    )

    lead_count = len(FIRST_NAMES)
    converted = 0
    ready = 0
    for index in range(lead_count):
        first, last = FIRST_NAMES[index], LAST_NAMES[index]
        spoken_carrier, prefix = CARRIERS[index % len(CARRIERS)]
        state_name, state_code = STATES[index % len(STATES)]
        spoken_service, service = SERVICES[index % len(SERVICES)]
        member_id = f"{prefix}{rng.randint(10_000_000, 99_999_999)}"

        lead = await lead_service.create_lead({
            "name": f"{first} {last}",
            "phone": f"555-{rng.randint(100, 999)}-{rng.randint(1000, 9999)}",
            "email": f"{first.lower()}.{last.lower()}@example.com",
            "source": rng.choice(SOURCES),
            "priority": rng.choice(list(LeadPriority)).value,
            "date_of_birth": f"{rng.randint(1958, 2001)}-{rng.randint(1, 12):02d}-{rng.randint(1, 28):02d}",
            "state": state_code if index % 3 else None,
            "consent_to_call": True,
            "created_at": now - timedelta(days=rng.randint(45, 70)),
        })

        # The first few leads stay early in the funnel
        if index < 4:
            continue
        if index < 6:
            await lead_service.record_call(
                lead["lead_id"],
                transcript=f"Agent: Hi, is this {first}?\nPatient: Yes, but I need to check my card and call back.",
            )
            continue

        await lead_service.record_call(
            lead["lead_id"],
            transcript=_transcript(f"{first} {last}", spoken_carrier, member_id, state_name, spoken_service),
            duration_seconds=rng.randint(180, 600),
        )

        scenario = CLAIM_SCENARIOS[converted % len(CLAIM_SCENARIOS)]
        gateway.set_scenario(scenario)
        await verification_service.verify_lead(lead["lead_id"])
        converted += 1

        start = now - timedelta(days=rng.randint(25, 45))
        claim = await _seed_claim(session, claim_service, lead["lead_id"], service, rng, start)
        if claim.readiness_status != ReadinessStatus.GREEN.value:
            continue

        await _walk(claim_service, claim.id, CLAIM_PATHS[ready % len(CLAIM_PATHS)], start, rng, now)
        ready += 1

        # Earlier episodes for the same patient feed the denial trends and A/R days
        for outcome in (ClaimStatus.DENIED, ClaimStatus.PAID):
            start = now - timedelta(days=rng.randint(10, 49))
            history = await _seed_claim(session, claim_service, lead["lead_id"], service, rng, start)
            if history.readiness_status == ReadinessStatus.GREEN.value:
                await _walk(claim_service, history.id, HISTORY_PATH + [outcome], start, rng, now)

    return lead_count


async def _seed_claim(
    session: AsyncSession,
    claim_service: ClaimService,
    lead_id: str,
    service: str,
    rng: random.Random,
    start: datetime
) -> ClaimModel:
    """Create an encounter and a scored claim backdated to ``start``; marks the lead converted."""
    repository = LeadRepository(session)
    lead = await repository.get_by_id(lead_id)
    patient = await repository.get_patient(lead_id)
    verification = await repository.get_latest_verification(lead_id)

    encounter = await repository.create_encounter(patient.id, {
        "service_type": service,
        "facility_type": "Hospital",
        "admission_type": "Elective",
        "expected_start_date": start.date().isoformat(),
    })
    claim = await claim_service.create_claim(
        patient_id=patient.id,
        payer=(verification.payer_name if verification else None) or patient.insurance_carrier,
        cpt_codes=DEFAULT_CPT_CODES[service],
        amount=round(DEFAULT_CLAIM_AMOUNTS[service] * rng.uniform(0.8, 1.5), 2),
        encounter_id=encounter.id,
        lead_id=lead_id,
        notes="Claim packet created from lead intake",
        created_at=start,
    )
    await repository.update(lead, {"status": LeadStatus.CONVERTED.value})
    return claim


async def _walk(
    claim_service: ClaimService,
    claim_id: str,
    path: List[ClaimStatus],
    start: datetime,
    rng: random.Random,
    now: datetime
) -> None:
    """Move a claim through ``path`` with event times spread forward from ``start``."""
    when = start
    for target in path:
        when = min(when + timedelta(days=rng.randint(1, 5), hours=rng.randint(0, 12)), now - timedelta(hours=1))
        denial: Optional[dict] = None
        if target == ClaimStatus.DENIED:
            denial = {
                "root_cause_tag": rng.choice(ROOT_CAUSES),
                "denial_category": rng.choice(DENIAL_CATEGORIES),
                "denial_reason_text": "Payer denied the claim on first review",
            }
        await claim_service.transition_claim(
            claim_id,
            target,
            notes=f"Demo history: {target.value}",
            actor="seed",
            denial=denial,
            timestamp=when,
        )
