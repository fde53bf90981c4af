"""
Shared fixtures: in-memory database, services wired to the mock gateway, API client.
"""

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from claimshield.mock_services.eligibility import MockEligibilityGateway
from claimshield.scoring.risk_scorer import ClaimRiskScorer
from claimshield.scoring.vob_completeness import VobCompletenessScorer
from claimshield.agents.intake_agent import CallIntakeAgent
from claimshield.services.claim_service import ClaimService
from claimshield.services.lead_service import LeadService
from claimshield.services.verification_service import VerificationService, VerificationLeases
from claimshield.services.dashboard_service import DashboardService
from claimshield.services.intelligence_service import IntelligenceService
from claimshield.storage import database
from claimshield.storage.models import Base


QUALIFYING_TRANSCRIPT = (
    "Agent: Thanks for calling, who is your insurance carrier?\n"
    "Patient: I have Aetna. My member ID is AET12345678.\n"
    "Agent: Which state do you live in?\n"
    "Patient: California.\n"
    "Agent: What kind of program are you looking for?\n"
    "Patient: Outpatient treatment.\n"
    "Agent: Can we verify your benefits?\n"
    "Patient: Yes, I consent."
)


@pytest.fixture
async def engine():
    """Fresh in-memory SQLite database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_gateway():
    return MockEligibilityGateway("active_in_network")


@pytest.fixture
def leases():
    return VerificationLeases()


@pytest.fixture
def claim_service(session):
    return ClaimService(session, scorer=ClaimRiskScorer(), stuck_threshold_days=7)


@pytest.fixture
def lead_service(session, claim_service):
    return LeadService(
        session,
        completeness_scorer=VobCompletenessScorer(),
        intake_agent=CallIntakeAgent(),
        claim_service=claim_service,
    )


@pytest.fixture
def verification_service(session, mock_gateway, leases, lead_service):
    return VerificationService(session, gateway=mock_gateway, leases=leases, lead_service=lead_service)


@pytest.fixture
def dashboard_service(session):
    return DashboardService(session, stuck_threshold_days=7)


@pytest.fixture
def intelligence_service(session):
    return IntelligenceService(session)


@pytest.fixture
def qualifying_transcript():
    return QUALIFYING_TRANSCRIPT


@pytest.fixture
async def verified_lead(lead_service, verification_service, qualifying_transcript):
    """A lead that has qualified on a call and passed benefit verification (VOB 100)."""
    lead = await lead_service.create_lead({
        "name": "Maria Garcia",
        "date_of_birth": "1985-04-12",
        "phone": "555-201-3344",
    })
    await lead_service.record_call(lead["lead_id"], transcript=qualifying_transcript)
    await verification_service.verify_lead(lead["lead_id"])
    return await lead_service.get_lead(lead["lead_id"])


@pytest.fixture
async def client(monkeypatch, engine, session_factory, mock_gateway, leases):
    """HTTP client against the app, backed by the in-memory database and mock gateway."""
    monkeypatch.setattr(database, "_engine", engine)
    monkeypatch.setattr(database, "_session_factory", session_factory)

    from claimshield.main import app
    from claimshield.api.dependencies import get_gateway, get_leases

    app.dependency_overrides[get_gateway] = lambda: mock_gateway
    app.dependency_overrides[get_leases] = lambda: leases

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client

    app.dependency_overrides.clear()
