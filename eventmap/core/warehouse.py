"""
BigQuery client construction and injection.

Architecture decision: the client is built exactly once, in FastAPI's
lifespan, and stored on app.state. Construction never raises — a failure is
captured on the returned WarehouseConnection so that:
  - the API process still starts and /health can report "unavailable";
  - /api/events answers 503 ("service unavailable") instead of the 500 it
    uses for failed queries, so callers can tell the two apart.

Credential discovery:
  1. GOOGLE_APPLICATION_CREDENTIALS_JSON — a service-account JSON blob,
     parsed for project_id and key material.
  2. Otherwise Application Default Credentials (gcloud CLI login, GCE/Cloud
     Run metadata server, GOOGLE_APPLICATION_CREDENTIALS file path).
"""

import json
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from google.cloud import bigquery
from google.oauth2 import service_account

from eventmap.core.config import Settings
from eventmap.core.errors import WarehouseUnavailableError

logger = logging.getLogger(__name__)

_NOT_INITIALIZED = WarehouseUnavailableError(
    "BigQuery client not initialized.",
    "Check server logs for initialization errors.",
)


@dataclass
class WarehouseConnection:
    """
    Result of building the BigQuery client.

    Exactly one of `client` / `error` is set. Query-side settings travel
    with the connection so the query service never reads global config.
    """

    client: Optional[bigquery.Client]
    location: str = "US"
    events_table: str = "gdelt-bq.gdeltv2.events"
    gkg_table: str = "gdelt-bq.gdeltv2.gkg_partitioned"
    timeout: Optional[float] = None
    error: Optional[WarehouseUnavailableError] = None

    @property
    def available(self) -> bool:
        return self.client is not None

    def require(self) -> bigquery.Client:
        """Return the client or raise the recorded construction failure."""
        if self.client is None:
            raise self.error or _NOT_INITIALIZED
        return self.client

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
            logger.info("BigQuery client closed")


def build_warehouse_client(settings: Settings) -> WarehouseConnection:
    """
    Create the BigQuery client from settings.

    Called once at app startup (via lifespan). Fails gracefully — the
    returned connection carries a WarehouseUnavailableError instead.
    """
    common = dict(
        location=settings.bigquery_location,
        events_table=settings.gdelt_events_table,
        gkg_table=settings.gdelt_gkg_table,
        timeout=settings.event_fetch_timeout_seconds,
    )
    try:
        if settings.google_application_credentials_json:
            info = json.loads(settings.google_application_credentials_json)
            credentials = service_account.Credentials.from_service_account_info(info)
            client = bigquery.Client(
                project=info.get("project_id"),
                credentials=credentials,
                location=settings.bigquery_location,
            )
            logger.info("BigQuery client ready (service account, project: %s)", info.get("project_id"))
        else:
            client = bigquery.Client(location=settings.bigquery_location)
            logger.info("BigQuery client ready (application default credentials)")
    except Exception as exc:
        # Never log the credential blob itself, only the failure type.
        logger.error("BigQuery client initialization failed: %s: %s", type(exc).__name__, exc)
        return WarehouseConnection(
            client=None,
            error=WarehouseUnavailableError(
                "BigQuery client not initialized.",
                f"Check server logs for initialization errors ({type(exc).__name__}).",
            ),
            **common,
        )
    return WarehouseConnection(client=client, **common)


def current_warehouse(app) -> WarehouseConnection:
    """
    The connection installed on *app* by the lifespan.

    Falls back to an unavailable connection when the lifespan has not run
    (e.g. ASGI test transports), so routes answer 503 rather than crash.
    """
    connection = getattr(app.state, "warehouse", None)
    if connection is None:
        return WarehouseConnection(client=None, error=_NOT_INITIALIZED)
    return connection


def get_warehouse(request: Request) -> WarehouseConnection:
    """
    FastAPI dependency — inject the warehouse connection into route handlers.

    Usage in a route:
        async def my_route(warehouse: WarehouseConnection = Depends(get_warehouse)):
            rows = await fetch_recent_events(warehouse, event_filter)
    """
    return current_warehouse(request.app)
