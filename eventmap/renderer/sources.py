"""
sources.py — Where the overlay session gets its EventRecords from.

Two implementations of the EventSource protocol:

  WarehouseEventSource — in-process: calls the query service directly
                         (used by the server-held /dashboard session).
  HttpEventSource      — remote: GET {base_url}/api/events with httpx
                         (used by the desktop viewer).

Both raise only EventMapError subclasses, which is what the session
catches: QueryError for a failed query or malformed payload, NetworkError
for transport failures, WarehouseUnavailableError when the warehouse
client never initialised.
"""

import logging
from typing import Any, Callable, Optional, Protocol, Sequence

import httpx

from eventmap.core.errors import NetworkError, QueryError
from eventmap.core.warehouse import WarehouseConnection
from eventmap.models.event import EventFilter, EventRecord
from eventmap.services.event_query import fetch_recent_events

logger = logging.getLogger(__name__)


class EventSource(Protocol):
    async def fetch_events(self) -> Sequence[EventRecord]: ...


class WarehouseEventSource:
    """
    Query the warehouse directly.

    `warehouse` is a zero-arg callable so the source always uses the
    connection currently installed on the app, not one captured at import.
    """

    def __init__(
        self,
        warehouse: Callable[[], WarehouseConnection],
        event_filter: Optional[EventFilter] = None,
    ):
        self._warehouse = warehouse
        self._filter = event_filter

    async def fetch_events(self) -> Sequence[EventRecord]:
        return await fetch_recent_events(self._warehouse(), self._filter)


class HttpEventSource:
    """Fetch events from a running EventMap API."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: Optional[float] = 30.0,
        params: Optional[dict[str, Any]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._params = params or {}
        self._transport = transport

    async def fetch_events(self) -> Sequence[EventRecord]:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self._timeout, transport=self._transport
            ) as client:
                resp = await client.get("/api/events", params=self._params)
        except httpx.HTTPError as exc:
            logger.warning("Events request to %s failed: %s", self.base_url, exc)
            raise NetworkError(
                "Could not reach the events API.",
                str(exc) or type(exc).__name__,
            ) from exc

        if resp.is_error:
            body = _json_or_empty(resp)
            message = body.get("error") or f"Error: {resp.status_code}"
            logger.warning("Events API returned %s: %s", resp.status_code, message)
            raise QueryError(message, body.get("details"))

        try:
            payload = resp.json()
            if not isinstance(payload, list):
                raise ValueError(f"expected a JSON array, got {type(payload).__name__}")
            return [EventRecord.model_validate(item) for item in payload]
        except ValueError as exc:
            logger.warning("Malformed events payload from %s: %s", self.base_url, exc)
            raise QueryError("Malformed events payload.", str(exc)) from exc


def _json_or_empty(resp: httpx.Response) -> dict:
    try:
        body = resp.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
