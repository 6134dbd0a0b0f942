# backend/ephemera/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from ephemera.config import get_settings
from ephemera.api.instances import router as instances_router
from ephemera.api.snapshots import router as snapshots_router
from ephemera.services.control_service import get_control_service
from ephemera.services.dns_service import get_dns_service

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    control = None
    if settings.reaper_enabled:
        control = get_control_service()
        control.start_reaper()
    else:
        logger.info("TTL reaper disabled")
    yield
    if control is not None:
        control.stop_reaper(timeout=5.0)
    get_dns_service().close()


app = FastAPI(
    title=settings.app_name,
    description="Ephemeral instance lifecycle control plane",
    version="0.1.0",
    lifespan=lifespan,
)

# Include routers
app.include_router(instances_router, prefix="/api/v1")
app.include_router(snapshots_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    return {"status": "healthy", "app": settings.app_name}
