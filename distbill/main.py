from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from distbill.config import settings
from distbill.api.v1.router import api_router
from distbill.api.deps import DB, status_code_for
from distbill.core.exceptions import BillingError
from distbill.database import init_db, async_session_factory


logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


async def seed_company_profile(session_factory=async_session_factory) -> bool:
    """Create the default company profile on first start. Returns True if created."""
    from distbill.models.company import COMPANY_PROFILE_ID, CompanyProfile, DEFAULT_COMPANY_PROFILE

    async with session_factory() as session:
        async with session.begin():
            if await session.get(CompanyProfile, COMPANY_PROFILE_ID):
                return False
            session.add(CompanyProfile(id=COMPANY_PROFILE_ID, **DEFAULT_COMPANY_PROFILE))
    logger.info(f"Seeded company profile '{DEFAULT_COMPANY_PROFILE['company_name']}'")
    return True


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
    - Create tables
    - Seed the company profile when missing
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    await init_db()
    await seed_company_profile()

    yield

    logger.info("Shutting down...")


# OpenAPI Tags with detailed descriptions
OPENAPI_TAGS = [
    {"name": "Products", "description": "Product catalog, search and spreadsheet import"},
    {"name": "Parties", "description": "Customers billed on wholesale invoices"},
    {"name": "Settings", "description": "Company profile and default GST policy"},
    {"name": "Invoices", "description": "GST invoice pricing, saving and stock deduction"},
    {"name": "Dashboard", "description": "Sales, stock and expiry figures"},
]

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="GST billing and stock for a pharmaceutical distributor.",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=OPENAPI_TAGS,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router)


@app.exception_handler(BillingError)
async def billing_exception_handler(request: Request, exc: BillingError):
    """Billing errors that escape an endpoint still carry their code and payload."""
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {type(exc).__name__}: {exc.message}")
    return JSONResponse(status_code=status_code, content={"detail": exc.to_dict()})


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check(db: DB):
    """Health check endpoint with database validation."""
    from sqlalchemy import text
    from datetime import datetime, timezone

    health_status = {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {
            "database": "unknown"
        }
    }

    try:
        await db.execute(text("SELECT 1"))
        health_status["checks"]["database"] = "connected"
    except Exception as e:
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = f"error: {type(e).__name__}"
        logger.error(f"Health check database error: {e}")

    return health_status


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
