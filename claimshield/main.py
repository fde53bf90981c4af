"""ClaimShield revenue cycle service: FastAPI entry point.

Lead intake, benefit verification, claim risk scoring and denial prevention.
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from claimshield.config.settings import get_settings
from claimshield.config.logging_config import setup_logging, get_logger
from claimshield.config.request_context import correlation_id_var
from claimshield.storage.database import init_db, close_db
from claimshield.api.routes import leads, claims, verification, dashboard, rules
from claimshield.api.errors import to_http_exception
from claimshield.models.exceptions import ClaimShieldError
from claimshield.mock_services.scenarios import get_scenario_manager, Scenario
from claimshield.services.verification_service import close_eligibility_gateway

VERSION = "0.1.0"
CORRELATION_HEADER = "X-Correlation-ID"

settings = get_settings()
setup_logging(log_level=settings.log_level, json_logs=settings.json_logs or settings.is_production)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: database, optional demo data, eligibility gateway."""
    logger.info("Starting ClaimShield", env=settings.app_env)

    if not settings.verifytx_configured:
        if settings.use_mock_eligibility:
            logger.warning("VerifyTX credentials not set, using the mock eligibility gateway")
        else:
            logger.error("VerifyTX credentials not set and mock fallback disabled, verification will fail")

    await init_db()
    logger.info("Database initialized")

    if settings.seed_demo_data:
        from claimshield.storage.seed_demo import seed_demo_data
        seeded = await seed_demo_data()
        if seeded:
            logger.info("Demo data seeded", leads=seeded)

    get_scenario_manager()
    logger.info("Scenario manager initialized")

    yield

    logger.info("Shutting down ClaimShield")
    await close_eligibility_gateway()
    await close_db()


app = FastAPI(
    title="ClaimShield",
    description="Lead intake, benefit verification, claim risk scoring and denial prevention",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "X-Requested-With", CORRELATION_HEADER],
    expose_headers=[CORRELATION_HEADER],
)


@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next):
    correlation_id = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex[:16]
    token = correlation_id_var.set(correlation_id)
    try:
        response = await call_next(request)
    finally:
        correlation_id_var.reset(token)
    response.headers[CORRELATION_HEADER] = correlation_id
    return response


@app.exception_handler(ClaimShieldError)
async def domain_exception_handler(request: Request, exc: ClaimShieldError):
    """Domain errors raised outside a route body, e.g. while resolving the eligibility gateway."""
    http_exc = to_http_exception(exc)
    logger.warning("Domain error", error=str(exc), status_code=http_exc.status_code, path=request.url.path)
    return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    error_id = str(uuid.uuid4())[:8]
    logger.error("Unhandled exception", error_id=error_id, error=str(exc), path=request.url.path, exc_info=True)
    return JSONResponse(status_code=500, content={"error": "Internal server error", "error_id": error_id})


# Routes
app.include_router(leads.router, prefix="/api/v1")
app.include_router(verification.router, prefix="/api/v1")
app.include_router(claims.router, prefix="/api/v1")
app.include_router(dashboard.router, prefix="/api/v1")
app.include_router(rules.router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": VERSION,
        "platform": "claimshield",
        "components": {
            "database": True,
            "eligibility_gateway": "verifytx" if settings.verifytx_configured else (
                "mock" if settings.use_mock_eligibility else "unavailable"
            ),
        },
    }


@app.get("/")
async def root():
    return {
        "name": "ClaimShield",
        "version": VERSION,
        "description": "Lead intake, benefit verification, claim risk scoring and denial prevention",
        "docs": "/docs",
        "health": "/health",
    }


# Scenario endpoints for the mock eligibility gateway
@app.get("/api/v1/scenarios")
async def list_scenarios():
    manager = get_scenario_manager()
    return {"scenarios": manager.list_scenarios(), "current": manager.current_scenario.value}


@app.post("/api/v1/scenarios/{scenario_id}")
async def set_scenario(scenario_id: str):
    try:
        scenario = Scenario(scenario_id)
    except ValueError:
        return JSONResponse(status_code=400, content={"error": f"Invalid scenario: {scenario_id}"})

    config = get_scenario_manager().set_scenario(scenario)
    return {
        "message": f"Scenario set to: {scenario_id}",
        "config": {
            "name": config.name,
            "description": config.description,
            "expected_readiness": config.expected_readiness.value if config.expected_readiness else None,
        },
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("claimshield.main:app", host="0.0.0.0", port=8000, reload=True)
