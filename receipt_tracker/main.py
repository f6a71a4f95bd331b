"""
Receipt tracker backend: FastAPI application entry-point.
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from receipt_tracker.config import settings
from receipt_tracker.database import Base, engine

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s  %(name)-30s  %(levelname)-5s  %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: ensure data dirs + tables exist
    os.makedirs(settings.DATA_DIR, exist_ok=True)
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    import receipt_tracker.models  # noqa: F401
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready (%s, env=%s)", settings.DATABASE_URL, settings.ENVIRONMENT)
    if not settings.DI_ENDPOINT or not settings.DI_KEY:
        logger.warning("DI_ENDPOINT / DI_KEY not set; uploads will fail at submission")
    yield
    logger.info("Shutting down")


app = FastAPI(
    title="Receipt Tracker",
    description="Receipt image → document analysis → reviewed expense records",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    return {"service": "Receipt Tracker", "version": "0.1.0", "status": "running"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


# ── Register API routers ─────────────────────────────────────────────────
from receipt_tracker.routers.analytics import router as analytics_router  # noqa: E402
from receipt_tracker.routers.blobs import router as blobs_router  # noqa: E402
from receipt_tracker.routers.receipts import router as receipts_router  # noqa: E402
from receipt_tracker.routers.upload import router as upload_router  # noqa: E402

app.include_router(upload_router, prefix="/api", tags=["Upload"])
app.include_router(blobs_router, prefix="/api", tags=["Blobs"])
app.include_router(receipts_router, prefix="/api", tags=["Receipts"])
app.include_router(analytics_router, prefix="/api", tags=["Analytics"])
