"""
event.py — Pydantic models for GDELT event rows and the query filter.

Wire format
───────────
The warehouse returns GDELT column names (GLOBALEVENTID, SQLDATE, AvgTone…),
and GET /api/events passes them through unchanged so existing map clients keep
working. The geo columns come from one of two families depending on which
actor the query keys on:

  Actor1Geo_Lat / Actor1Geo_Long / Actor1Geo_Fullname   (default)
  ActionGeo_Lat / ActionGeo_Long / ActionGeo_Fullname

EventRecord accepts either family on input (AliasChoices) and re-emits the
requested family via to_wire().
"""

from enum import Enum
from typing import Any, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class GeoSource(str, Enum):
    """Which GDELT geo column family provides an event's coordinates."""

    ACTOR1 = "actor1"
    ACTION = "action"

    @property
    def column_prefix(self) -> str:
        return "Actor1Geo" if self is GeoSource.ACTOR1 else "ActionGeo"


class EventRecord(BaseModel):
    """One warehouse row describing a geotagged world event."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: Union[int, str] = Field(validation_alias=AliasChoices("id", "GLOBALEVENTID"))
    date: int = Field(validation_alias=AliasChoices("date", "SQLDATE"))   # YYYYMMDD
    latitude: float = Field(
        validation_alias=AliasChoices("latitude", "Actor1Geo_Lat", "ActionGeo_Lat"),
    )
    longitude: float = Field(
        validation_alias=AliasChoices("longitude", "Actor1Geo_Long", "ActionGeo_Long"),
    )
    source_url: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("source_url", "SOURCEURL"),
    )
    tone: float = Field(default=0.0, validation_alias=AliasChoices("tone", "AvgTone"))
    mention_count: Optional[int] = Field(
        default=None, ge=0, validation_alias=AliasChoices("mention_count", "NumMentions"),
    )
    place_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("place_name", "Actor1Geo_Fullname", "ActionGeo_Fullname"),
    )

    @field_validator("tone", mode="before")
    @classmethod
    def _null_tone_is_neutral(cls, value: Any) -> Any:
        return 0.0 if value is None else value

    def to_wire(self, geo_source: GeoSource = GeoSource.ACTOR1) -> dict[str, Any]:
        """Serialise back to the GDELT column names served by GET /api/events."""
        prefix = geo_source.column_prefix
        wire: dict[str, Any] = {
            "GLOBALEVENTID": self.id,
            "SQLDATE": self.date,
            f"{prefix}_Lat": self.latitude,
            f"{prefix}_Long": self.longitude,
            "SOURCEURL": self.source_url,
            "AvgTone": self.tone,
        }
        if self.mention_count is not None:
            wire["NumMentions"] = self.mention_count
        if self.place_name is not None:
            wire[f"{prefix}_Fullname"] = self.place_name
        return wire


class EventFilter(BaseModel):
    """
    Recognised options for the recent-events query.

    since_date is left as None by default and resolved to "yesterday (UTC)"
    at query time, so a long-lived filter never pins a stale date.
    """

    since_date: Optional[int] = Field(default=None, ge=19790101, le=99991231)
    min_mention_count: Optional[int] = Field(default=None, ge=0)
    theme_filter: Optional[str] = Field(default=None, max_length=200)
    event_categories: list[str] = Field(default_factory=list)
    result_limit: int = Field(default=1000, ge=1)
    order_by_mentions: bool = False
    geo_source: GeoSource = GeoSource.ACTOR1


class ErrorResponse(BaseModel):
    """Stable error body returned by every failing API call."""

    error: str
    details: Optional[str] = None
