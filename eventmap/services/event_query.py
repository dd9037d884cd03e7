"""
event_query.py — Recent-events query against the GDELT v2 BigQuery dataset.

USAGE
─────
    from eventmap.services.event_query import fetch_recent_events

    records = await fetch_recent_events(warehouse, EventFilter(min_mention_count=10))

The query is a single parameterized template. Every caller-influenced value
(date bound, mention floor, theme prefix, category codes) is a bind
parameter; only trusted config (table names), the geo column family (an
enum) and the validated integer limit are interpolated into the SQL text.

Dates: SQLDATE is an INTEGER like 20250131, so the lower bound is the same
integer representation of "yesterday in UTC", never a timestamp, to avoid
timezone drift at day boundaries.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from google.cloud import bigquery

from eventmap.core.errors import QueryError
from eventmap.core.warehouse import WarehouseConnection
from eventmap.models.event import EventFilter, EventRecord

logger = logging.getLogger(__name__)

# Hard ceiling regardless of what a caller asks for.
MAX_RESULT_LIMIT = 1000


def yesterday_as_int(now: Optional[datetime] = None) -> int:
    """
    Return yesterday's UTC calendar date as an integer YYYYMMDD.

    >>> yesterday_as_int(datetime(2025, 3, 1, 0, 30, tzinfo=timezone.utc))
    20250228
    """
    now = now or datetime.now(tz=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    yesterday = (now.astimezone(timezone.utc) - timedelta(days=1)).date()
    return int(f"{yesterday.year}{yesterday.month:02d}{yesterday.day:02d}")


@dataclass(frozen=True)
class EventQuery:
    """A rendered SQL statement plus its bind parameters."""

    sql: str
    parameters: list[Any] = field(default_factory=list)

    @property
    def parameter_names(self) -> list[str]:
        return [p.name for p in self.parameters]


def build_events_query(
    event_filter: EventFilter,
    events_table: str = "gdelt-bq.gdeltv2.events",
    gkg_table: str = "gdelt-bq.gdeltv2.gkg_partitioned",
    now: Optional[datetime] = None,
) -> EventQuery:
    """Render the recent-events SQL for *event_filter*."""
    prefix = event_filter.geo_source.column_prefix
    since_date = event_filter.since_date or yesterday_as_int(now)
    limit = min(event_filter.result_limit, MAX_RESULT_LIMIT)

    params: list[Any] = [bigquery.ScalarQueryParameter("since_date", "INT64", since_date)]
    predicates = [
        "e.SQLDATE >= @since_date",
        f"e.{prefix}_Lat IS NOT NULL",
        f"e.{prefix}_Long IS NOT NULL",
    ]

    if event_filter.min_mention_count is not None:
        predicates.append("e.NumMentions >= @min_mentions")
        params.append(
            bigquery.ScalarQueryParameter("min_mentions", "INT64", event_filter.min_mention_count)
        )

    if event_filter.event_categories:
        predicates.append("e.EventRootCode IN UNNEST(@event_categories)")
        params.append(
            bigquery.ArrayQueryParameter("event_categories", "STRING", event_filter.event_categories)
        )

    if event_filter.theme_filter:
        # Semi-join: an event matches when any GKG article for its source URL
        # carries a theme starting with the prefix. IN avoids duplicating rows
        # when several GKG records share the same DocumentIdentifier.
        predicates.append(
            "e.SOURCEURL IN (\n"
            "      SELECT g.DocumentIdentifier\n"
            f"      FROM `{gkg_table}` AS g\n"
            "      WHERE g._PARTITIONTIME >= TIMESTAMP(PARSE_DATE('%Y%m%d', CAST(@since_date AS STRING)))\n"
            "        AND EXISTS (\n"
            "          SELECT 1 FROM UNNEST(SPLIT(g.V2Themes, ';')) AS theme\n"
            "          WHERE STARTS_WITH(theme, @theme_prefix)\n"
            "        )\n"
            "    )"
        )
        params.append(
            bigquery.ScalarQueryParameter("theme_prefix", "STRING", event_filter.theme_filter)
        )

    order_clause = "ORDER BY e.NumMentions DESC\n" if event_filter.order_by_mentions else ""

    sql = (
        "SELECT\n"
        "  e.GLOBALEVENTID,\n"
        "  e.SQLDATE,\n"
        f"  e.{prefix}_Lat,\n"
        f"  e.{prefix}_Long,\n"
        f"  e.{prefix}_Fullname,\n"
        "  e.SOURCEURL,\n"
        "  e.AvgTone,\n"
        "  e.NumMentions\n"
        f"FROM `{events_table}` AS e\n"
        "WHERE " + "\n  AND ".join(predicates) + "\n"
        f"{order_clause}"
        f"LIMIT {int(limit)}"
    )
    return EventQuery(sql=sql, parameters=params)


def run_events_query(
    client: bigquery.Client,
    query: EventQuery,
    location: str = "US",
    timeout: Optional[float] = None,
) -> list[EventRecord]:
    """
    Execute *query* synchronously and convert every row to an EventRecord.

    Any failure (rejected SQL, permissions, quota, job timeout, or a row
    that does not validate) raises QueryError. No partial result is ever
    returned.
    """
    job_config = bigquery.QueryJobConfig(query_parameters=query.parameters)
    try:
        job = client.query(query.sql, job_config=job_config, location=location)
        rows = job.result(timeout=timeout)
        return [EventRecord.model_validate(dict(row.items())) for row in rows]
    except Exception as exc:
        logger.error("BigQuery Error: %s", exc)
        raise QueryError(
            "Failed to fetch data from BigQuery.",
            str(exc) or "An unknown error occurred.",
        ) from exc


async def fetch_recent_events(
    warehouse: WarehouseConnection,
    event_filter: Optional[EventFilter] = None,
) -> list[EventRecord]:
    """
    Fetch the bounded set of recent events for *event_filter*.

    Raises WarehouseUnavailableError when the client never initialised and
    QueryError when the query fails. The blocking BigQuery call runs in a
    worker thread so the event loop stays responsive.
    """
    client = warehouse.require()
    event_filter = event_filter or EventFilter()
    query = build_events_query(event_filter, warehouse.events_table, warehouse.gkg_table)
    logger.debug("Running events query with params %s", query.parameter_names)
    records = await asyncio.to_thread(
        run_events_query, client, query, warehouse.location, warehouse.timeout
    )
    logger.info("Fetched %d events (since %s)", len(records), query.parameters[0].value)
    return records
