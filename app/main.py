from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

# Import database components
from app.database.database import sync_engine, Base

# Import middleware
from app.common.middleware import RequestLoggingMiddleware

# Import routers
from app.modules.orders.router import orders_router
from app.modules.invoices.router import invoices_router
from app.modules.inventory.router import inventory_router
from app.modules.workflow.router import workflow_router

# Import models for table creation
import app.modules.customers.models
import app.modules.inventory.models
import app.modules.orders.models
import app.modules.invoices.models
import app.modules.workflow.models
import app.modules.notifications.models

from app.core.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.ENVIRONMENT == "production" else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title="WMS Order Ledger API",
    description="Order lifecycle, inventory deduction and invoicing for warehouse customers",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None
)

# Add middleware
app.add_middleware(RequestLoggingMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(orders_router)
app.include_router(invoices_router)
app.include_router(inventory_router)
app.include_router(workflow_router)

# Create database tables (only for development - use migrations in production)
if settings.ENVIRONMENT == "development":
    Base.metadata.create_all(bind=sync_engine)


@app.get("/health")
def health_check():
    return {"status": "healthy", "environment": settings.ENVIRONMENT}


@app.on_event("startup")
async def startup_event():
    logger.info("WMS Order Ledger API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("WMS Order Ledger API shutting down...")
