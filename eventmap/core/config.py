"""
Application configuration loaded from environment variables.

Uses pydantic-settings for type-safe env var parsing with automatic
.env file loading. All secrets (warehouse credentials, map API key) are
injected via environment — never hard-coded.

To extend: add new fields here and document them in .env.example.
See https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from pydantic_settings import BaseSettings, SettingsConfigDict

from eventmap.models.event import EventFilter, GeoSource
from eventmap.models.marker import MarkerStyle


class Settings(BaseSettings):
    # ─── Core ──────────────────────────────────────────────────────
    environment: str = "development"
    debug: bool = False

    # ─── BigQuery ──────────────────────────────────────────────────
    # Service-account JSON blob. When empty, the client falls back to
    # Application Default Credentials (gcloud login, GCE metadata, ...).
    google_application_credentials_json: str = ""
    # The public GDELT dataset lives in the US multi-region; the query job
    # must run in the same location.
    bigquery_location: str = "US"
    gdelt_events_table: str = "gdelt-bq.gdeltv2.events"
    gdelt_gkg_table: str = "gdelt-bq.gdeltv2.gkg_partitioned"

    # ─── Event filter defaults ─────────────────────────────────────
    event_result_limit: int = 1000
    event_min_mentions: int | None = None
    event_theme_filter: str = ""
    # Comma-separated CAMEO root codes, e.g. "14,11" (protest, disapprove)
    event_categories: str = ""
    event_order_by_mentions: bool = False
    event_geo_source: GeoSource = GeoSource.ACTOR1
    event_fetch_timeout_seconds: float = 30.0

    # ─── Map surface ───────────────────────────────────────────────
    # Required by the drawing surface; the dashboard refuses to render without it.
    map_api_key: str = ""
    # google_maps styles: roadmap | satellite | hybrid | terrain. For the dark
    # basemap use MAP_PROVIDER=carto with MAP_STYLE=dark (CARTO dark-matter).
    map_provider: str = "google_maps"
    map_style: str = "roadmap"
    initial_latitude: float = 35.68
    initial_longitude: float = 139.76
    initial_zoom: float = 5

    # ─── Marker sizing ─────────────────────────────────────────────
    marker_size_by_mentions: bool = False
    marker_radius_scale: float = 3.0
    marker_radius_min_pixels: float = 5.0
    marker_radius_max_pixels: float = 100.0

    # ─── CORS ──────────────────────────────────────────────────────
    cors_origins_str: str = "http://localhost:5173,http://localhost:3000"

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins_str.split(",") if o.strip()]

    @property
    def event_category_list(self) -> list[str]:
        return [c.strip() for c in self.event_categories.split(",") if c.strip()]

    def default_event_filter(self) -> EventFilter:
        """Build the filter used when a caller supplies no overrides."""
        return EventFilter(
            min_mention_count=self.event_min_mentions,
            theme_filter=self.event_theme_filter or None,
            event_categories=self.event_category_list,
            result_limit=self.event_result_limit,
            order_by_mentions=self.event_order_by_mentions,
            geo_source=self.event_geo_source,
        )

    def marker_style(self) -> MarkerStyle:
        return MarkerStyle(
            size_by_mentions=self.marker_size_by_mentions,
            radius_scale=self.marker_radius_scale,
            radius_min_pixels=self.marker_radius_min_pixels,
            radius_max_pixels=self.marker_radius_max_pixels,
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Don't fail on unknown env vars
    )


# Module-level singleton: import this everywhere instead of instantiating Settings()
settings = Settings()
