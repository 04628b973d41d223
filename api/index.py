"""
Portal Cart Service - FastAPI Application

Entry point for the remote cart endpoints used by the portal clients.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from portal.logging import get_logger
from portal.routers import cart_router

logger = get_logger(__name__)


# ==================== FASTAPI APP ====================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    logger.info("Cart service starting")
    yield
    logger.info("Cart service stopped")


app = FastAPI(
    title="Portal Cart Service",
    description="Per-user cart snapshots for the B2B ordering portal",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(cart_router)


# ==================== HEALTH CHECK ====================

@app.get("/api/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok", "service": "portal-cart"}
