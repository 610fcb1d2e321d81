"""Observability API endpoints.

Provides metrics and health checks for monitoring.
"""

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from ..database import get_db
from .health import (
    check_database_health,
    check_scheduler_health,
    get_overall_health,
    HealthStatus,
)

router = APIRouter(tags=["Observability"])


@router.get(
    "/metrics",
    summary="Prometheus metrics endpoint",
    description="Exposes Prometheus metrics for monitoring and alerting",
    include_in_schema=False,  # Hide from OpenAPI docs
)
def metrics():
    """Expose Prometheus metrics in exposition format."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


@router.get(
    "/health",
    summary="Health check endpoint",
    description="Returns health status of the database and the eviction scheduler",
    status_code=200,
)
def health_check(request: Request, db: Session = Depends(get_db)):
    """Check health of all components.

    Returns 200 unless a component is unhealthy, then 503.
    """
    components = {
        "database": check_database_health(db),
        "scheduler": check_scheduler_health(getattr(request.app.state, "plugin", None)),
    }

    overall_status = get_overall_health(components)

    response_data = {
        "status": overall_status.value,
        "components": {
            name: {
                "status": comp.status.value,
                "message": comp.message,
                "latency_ms": comp.latency_ms,
            }
            for name, comp in components.items()
        }
    }

    status_code = 200 if overall_status != HealthStatus.UNHEALTHY else 503

    return JSONResponse(
        content=response_data,
        status_code=status_code
    )
