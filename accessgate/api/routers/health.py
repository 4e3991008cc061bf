"""Health check endpoints for AccessGate.

- /health: Basic health check
- /health/ready: Readiness probe (directory loaded, store reachable)
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from accessgate import __version__
from accessgate.api.deps import get_desk
from accessgate.common.clock import utcnow
from accessgate.services.desk import AccessDesk

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def check_store(desk: AccessDesk) -> Dict[str, Any]:
    """Check the record store answers a read."""
    try:
        desk.ledger.store.values(desk.ledger.KIND)
    except SQLAlchemyError as e:
        logger.error("Store check failed: %s", e)
        return {"status": "unhealthy", "error": str(e)}
    return {"status": "healthy", "backend": type(desk.ledger.store).__name__}


def check_directory(desk: AccessDesk) -> Dict[str, Any]:
    users = len(desk.directory.users())
    return {
        "status": "healthy" if users else "unhealthy",
        "users": users,
        "projects": len(desk.directory.projects()),
    }


@router.get("/health")
async def health_check():
    """
    Basic health check endpoint.

    Returns 200 if the application is running.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": utcnow().isoformat(),
    }


@router.get("/health/ready")
async def readiness_probe(desk: AccessDesk = Depends(get_desk)):
    """
    Readiness probe.

    Returns 503 if the directory is empty or the store is unreachable.
    """
    checks = {
        "directory": check_directory(desk),
        "store": check_store(desk),
    }

    unhealthy = [name for name, check in checks.items() if check["status"] == "unhealthy"]

    if unhealthy:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "checks": checks,
                "failed": unhealthy,
                "timestamp": utcnow().isoformat(),
            },
        )

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "status": "ready",
            "checks": checks,
            "timestamp": utcnow().isoformat(),
        },
    )
