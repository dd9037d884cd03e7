"""
Error taxonomy shared by the query service, the HTTP layer and the renderer.

  EventMapError
  ├── ConfigurationError          missing/invalid credentials or map API key
  │   └── WarehouseUnavailableError   BigQuery client could not be built
  ├── QueryError                  warehouse rejected or failed the query
  └── NetworkError                transport failure talking to /api/events

None of these are retried automatically. Each carries a short message for
display and optional details (the underlying cause) for diagnostics; both
map onto the {error, details} body served by the API.
"""

from typing import Optional


class EventMapError(Exception):
    """Base class for every recognised failure."""

    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_body(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ConfigurationError(EventMapError):
    """Fatal configuration problem. Surfaced to the user, never retried."""

    status_code = 503


class WarehouseUnavailableError(ConfigurationError):
    """The BigQuery client failed to initialise (bad or missing credentials)."""


class QueryError(EventMapError):
    """The query executed but failed (syntax, permissions, timeout, quota)."""


class NetworkError(EventMapError):
    """Request transport failure; displayed like a QueryError."""
