from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
import logging

# Import database components
from billing.database.database import sync_engine, Base

# Import middleware
from billing.common.middleware import RequestLoggingMiddleware

# Import routers
from billing.modules.taxes.router import taxes_router
from billing.modules.currency.router import currency_router
from billing.modules.imports.router import imports_router
from billing.modules.invoices.router import invoices_router
from billing.modules.revenue.router import revenue_router

# Import models for table creation
import billing.modules.contacts.models
import billing.modules.items.models
import billing.modules.revenue.models
import billing.modules.invoices.models

from billing.core.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.ENVIRONMENT == "production" else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title=f"{settings.COMPANY_NAME} Billing API",
    description="Service invoicing with GST/TDS/TCS, payment lifecycle, revenue ledger and spreadsheet import",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None
)

# Add middleware (order matters!)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(RequestLoggingMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Add your frontend URLs
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(taxes_router)
app.include_router(currency_router)
app.include_router(imports_router)  # before invoices so /invoices/import is not read as an id
app.include_router(invoices_router)
app.include_router(revenue_router)

# Create database tables (only for development - use migrations in production)
if settings.ENVIRONMENT == "development":
    Base.metadata.create_all(bind=sync_engine)


@app.get("/")
async def read_root():
    return {
        "message": f"{settings.COMPANY_NAME} Billing API is running",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy", "environment": settings.ENVIRONMENT}


@app.on_event("startup")
async def startup_event():
    logger.info("Billing API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")
    logger.info(f"Home jurisdiction: {settings.COMPANY_STATE}, {settings.HOME_COUNTRY} ({settings.HOME_CURRENCY})")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Billing API shutting down...")
