"""
Builders for GDELT rows and a MagicMock BigQuery client.

Rows are plain dicts: run_events_query only needs `row.items()`, which
google.cloud.bigquery.Row and dict share.
"""

from unittest.mock import MagicMock


def make_row(event_id=1, date=20250101, lat=35.0, lng=139.0,
             url="https://example.com/a/Some-Story", tone=0.0, mentions=None, place=None):
    """A GDELT row as BigQuery would return it (Actor1Geo family)."""
    return {
        "GLOBALEVENTID": event_id,
        "SQLDATE": date,
        "Actor1Geo_Lat": lat,
        "Actor1Geo_Long": lng,
        "Actor1Geo_Fullname": place,
        "SOURCEURL": url,
        "AvgTone": tone,
        "NumMentions": mentions,
    }


def make_bigquery_client(rows=None, error=None):
    """MagicMock standing in for google.cloud.bigquery.Client."""
    client = MagicMock(name="bigquery.Client")
    job = MagicMock(name="QueryJob")
    if error is not None:
        job.result.side_effect = error
    else:
        job.result.return_value = list(rows or [])
    client.query.return_value = job
    return client
