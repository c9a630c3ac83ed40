import logging
import os
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool

from riskagent import __version__
from riskagent.api.documents import router as documents_router
from riskagent.config import get_settings
from riskagent.indexing.worker import get_delivery_worker
from riskagent.logging_config import configure_logging
from riskagent.telemetry import emit_app_startup_event

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="Risk Agent Ingestion API", version=__version__)
app.include_router(documents_router)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@app.on_event("startup")
async def _configure_runtime() -> None:
    settings = get_settings()
    configure_logging(settings.log_dir, settings.log_level)
    emit_app_startup_event()


@app.on_event("shutdown")
async def _drain_delivery_worker() -> None:
    """Give scheduled chunk deliveries a chance to finish before exit."""

    await run_in_threadpool(get_delivery_worker().shutdown, timeout=30.0)


@app.get("/api/health")
def health() -> dict[str, str]:
    """Liveness probe used by the hosting platform."""

    LOGGER.info("Health check requested")
    return {
        "status": "healthy",
        "timestamp": _utc_now(),
        "message": "Ingestion service is running.",
    }


@app.get("/api/deployment-info")
def deployment_info() -> dict[str, object]:
    settings = get_settings()
    return {
        "status": "deployed",
        "buildVersion": __version__,
        "currentTimestamp": _utc_now(),
        "environment": {
            "websiteHostname": settings.website_hostname or "localhost",
            "environment": settings.environment,
            "runFromPackage": os.getenv("WEBSITE_RUN_FROM_PACKAGE", "not set"),
        },
    }
