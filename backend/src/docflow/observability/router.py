"""Observability API endpoints: metrics and health."""

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy.orm import Session

from ..database import get_db
from .health import HealthStatus, check_database_health

router = APIRouter(tags=["Observability"])


@router.get(
    "/metrics",
    summary="Prometheus metrics endpoint",
    description="Exposes Prometheus metrics for monitoring and alerting",
    include_in_schema=False,  # Hide from OpenAPI docs
)
def metrics():
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


@router.get(
    "/health",
    summary="Health check endpoint",
    description="Returns health status of the database connection",
    status_code=200,
)
def health_check(db: Session = Depends(get_db)):
    """Check database connectivity.

    Returns 200 OK if the database answers, 503 otherwise.
    """
    database = check_database_health(db)
    response_data = {
        "status": database.status.value,
        "components": {
            "database": {
                "status": database.status.value,
                "message": database.message,
                "latency_ms": database.latency_ms,
            }
        },
    }
    status_code = 200 if database.status == HealthStatus.HEALTHY else 503
    return JSONResponse(content=response_data, status_code=status_code)
