"""
Meta Ads × Trendyol Analytics — FastAPI Backend
Fetches Meta ad spend and Trendyol brand-offer revenue and reconciles them
into per-campaign ROAS / ROI. Nothing is persisted; every pass is rebuilt
from the upstream APIs.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from adcommerce.config import get_settings
from adcommerce.auth import require_auth
from adcommerce.routers import analytics, auth, meta, reports

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

settings = get_settings()

SERVICE_NAME = "Meta Ads x Trendyol Analytics"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {SERVICE_NAME} ({settings.environment})...")
    yield
    logger.info("Shutting down...")


app = FastAPI(
    title=SERVICE_NAME,
    description="Combined Meta Ads spend and Trendyol revenue per campaign",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Auth (login public; whoami requires JWT) ──────────────────────────
app.include_router(auth.router, prefix="/api")

# ── Register Routers (all require auth) ──────────────────────────────
_auth = [Depends(require_auth)]
app.include_router(reports.router, prefix="/api/reports", tags=["Trendyol Reports"], dependencies=_auth)
app.include_router(meta.router, prefix="/api/meta", tags=["Meta Ads"], dependencies=_auth)
app.include_router(analytics.router, prefix="/api/analytics", tags=["Combined Analytics"], dependencies=_auth)


@app.get("/api/health")
async def health_check():
    return {"status": "ok", "service": SERVICE_NAME}
