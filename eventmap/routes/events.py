"""
events.py — GET /api/events, the map's data feed.

Route:
  GET /api/events — recent geotagged GDELT events as a JSON array of rows
                    using the GDELT column names.

Every query parameter is optional and overrides the configured default
filter (EVENT_* settings). With no parameters the response matches the
original dashboard feed: events since yesterday (UTC), at most 1000 rows.

Errors (shape: {"error": str, "details"?: str}):
  500 — the query ran and failed (QueryError)
  503 — the BigQuery client never initialised (WarehouseUnavailableError)
  429 — rate limited

TESTING YOUR CHANGES
─────────────────────
  pytest tests/test_events_api.py -v

  curl http://localhost:8000/api/events
  curl "http://localhost:8000/api/events?min_mentions=10&order_by_mentions=true&limit=200"
  curl "http://localhost:8000/api/events?theme=PROTEST&category=14"
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from eventmap.core.config import settings
from eventmap.core.rate_limit import EVENTS_RATE_LIMIT, limiter
from eventmap.core.warehouse import WarehouseConnection, get_warehouse
from eventmap.models.event import ErrorResponse
from eventmap.services.event_query import MAX_RESULT_LIMIT, fetch_recent_events

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/events", tags=["events"])


@router.get(
    "",
    responses={
        500: {"model": ErrorResponse, "description": "Query failed"},
        503: {"model": ErrorResponse, "description": "Warehouse unavailable"},
    },
)
@limiter.limit(EVENTS_RATE_LIMIT)
async def get_events(
    request: Request,
    min_mentions: Optional[int] = Query(default=None, ge=0, description="Minimum NumMentions (inclusive)"),
    theme: Optional[str] = Query(default=None, min_length=1, max_length=200, description="GKG theme prefix, e.g. PROTEST"),
    category: Optional[list[str]] = Query(default=None, description="CAMEO root code allow-list (repeatable)"),
    limit: Optional[int] = Query(default=None, ge=1, le=MAX_RESULT_LIMIT, description="Row cap"),
    order_by_mentions: Optional[bool] = Query(default=None, description="Sort by NumMentions descending"),
    warehouse: WarehouseConnection = Depends(get_warehouse),
):
    """
    Return recent geotagged events.

    Query failures propagate as EventMapError and are turned into the
    {error, details} body by the handler registered in main.py.
    """
    overrides = {
        "min_mention_count": min_mentions,
        "theme_filter": theme,
        "event_categories": category,
        "result_limit": limit,
        "order_by_mentions": order_by_mentions,
    }
    event_filter = settings.default_event_filter().model_copy(
        update={k: v for k, v in overrides.items() if v is not None}
    )
    records = await fetch_recent_events(warehouse, event_filter)
    return [r.to_wire(event_filter.geo_source) for r in records]
