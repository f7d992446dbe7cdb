# /interviewer/routes/public.py

from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import PlainTextResponse
from prometheus_client import generate_latest

from interviewer.config.settings import settings
from interviewer.services.db_service import db_service
from interviewer.utils.dependencies import verify_metrics_access

# Unauthenticated endpoints: service banner and health probes. /metrics is
# protected by an API key when one is configured.

router = APIRouter()


@router.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "Interviewer Engine",
        "version": "1.0.0",
        "status": "operational",
        "environment": settings.environment
    }


@router.get("/health", summary="Basic Health Check")
async def health_check():
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc)}


@router.get("/health/ready", summary="Readiness Probe")
async def readiness_check():
    """Readiness probe: the database must answer a ping."""
    if not await db_service.health_check():
        raise HTTPException(status_code=503, detail="Service not ready: database unavailable")
    return {"status": "ready"}


@router.get("/health/live", summary="Liveness Probe")
async def liveness_check():
    return {"status": "alive"}


@router.get("/metrics", tags=["Monitoring"])
async def metrics(request: Request, _: bool = Depends(verify_metrics_access)):
    """Secured Prometheus metrics endpoint."""
    return PlainTextResponse(generate_latest(), media_type="text/plain")
