"""
WaterBill application entry point
Water utility billing: tiered tariff, meter readings, payments, audit trail
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from waterbill.config import settings
from waterbill.database import init_db, SessionLocal
from waterbill.exceptions import BillingError
from waterbill.routers import auth, customers, meter_readings, bills, audit_logs
from waterbill.routers import settings as settings_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def seed_initial_data() -> dict:
    """Default tariff and bootstrap admin. Idempotent."""
    from waterbill.services.settings_service import SettingsService
    from waterbill.services.user_service import UserService

    stats = {}
    seed_db = SessionLocal()
    try:
        if settings.SEED_DEFAULT_TARIFF:
            stats.update(SettingsService(seed_db).ensure_defaults())
        stats.update(UserService(seed_db).ensure_default_admin())
    finally:
        seed_db.close()
    return stats


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle"""
    init_db()

    seed_stats = seed_initial_data()
    if any(seed_stats.values()):
        logger.info(f"Seed data initialised: {seed_stats}")

    yield


# Create the app
app = FastAPI(
    title=settings.APP_NAME,
    description="Water utility billing backend",
    version="0.1.0",
    lifespan=lifespan
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BillingError)
async def billing_error_handler(request: Request, exc: BillingError):
    """Map domain errors to HTTP status codes"""
    logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {type(exc).__name__}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Routers
app.include_router(auth.router)
app.include_router(customers.router)
app.include_router(meter_readings.router)
app.include_router(bills.router)
app.include_router(settings_router.router)
app.include_router(audit_logs.router)


@app.get("/")
def root():
    """Service info"""
    return {
        "name": settings.APP_NAME,
        "version": "0.1.0",
        "description": "Water utility billing backend"
    }


@app.get("/health")
def health_check():
    """Health check"""
    return {"status": "healthy"}
