"""
Health check endpoint.

Used by:
  - Container HEALTHCHECK instructions
  - Load balancers / orchestrators
  - The viewer, to check API connectivity

Returns status + warehouse availability so callers can distinguish between
"API down" and "API up but BigQuery client unavailable".
"""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from eventmap import __version__
from eventmap.core.config import settings
from eventmap.core.warehouse import WarehouseConnection, get_warehouse

logger = logging.getLogger(__name__)
router = APIRouter()


class HealthResponse(BaseModel):
    status: str  # Always "ok" if the API process is alive
    version: str
    warehouse: str  # "connected" | "unavailable"
    environment: str


@router.get("", response_model=HealthResponse, summary="API health check")
async def health_check(warehouse: WarehouseConnection = Depends(get_warehouse)) -> HealthResponse:
    """
    Returns the liveness status of the API and its warehouse client.

    The API is considered healthy (HTTP 200) even when the warehouse is
    unavailable. No query is issued: BigQuery bills per job.
    """
    return HealthResponse(
        status="ok",
        version=__version__,
        warehouse="connected" if warehouse.available else "unavailable",
        environment=settings.environment,
    )
