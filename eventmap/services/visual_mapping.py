"""
visual_mapping.py — Pure EventRecord → VisualMarker derivation.

Everything in this module is deterministic and side-effect free, so the
overlay session can recompute the whole marker set on every refresh and a
reload with unchanged data produces an identical layer.

USAGE
─────
    from eventmap.services.visual_mapping import derive_markers

    markers = derive_markers(records, MarkerStyle(size_by_mentions=True))
    # markers[0].fill_color → (255, 0, 0) for a tone of -3.4

TESTING
────────
    pytest tests/test_visual_mapping.py -v
"""

from __future__ import annotations

import math
from typing import Iterable, Optional
from urllib.parse import unquote, urlparse

from eventmap.models.event import EventRecord
from eventmap.models.marker import RGB, MarkerStyle, VisualMarker

# ── Tone → fill colour (fixed, not configurable) ──────────────────────────────

FAVORABLE_TONE = 2.0
UNFAVORABLE_TONE = -2.0

FAVORABLE_COLOR: RGB = (0, 255, 0)      # green
UNFAVORABLE_COLOR: RGB = (255, 0, 0)    # red
NEUTRAL_COLOR: RGB = (0, 0, 255)        # blue

# ── Stroke (independent of data) ──────────────────────────────────────────────

LINE_COLOR: RGB = (0, 0, 0)
LINE_WIDTH_PIXELS = 1.0

# ── Radius ────────────────────────────────────────────────────────────────────

FIXED_RADIUS_PIXELS = 5.0

# ── Title fallback ────────────────────────────────────────────────────────────

TITLE_UNAVAILABLE = "title unavailable"
_PAGE_EXTENSIONS = (".html", ".htm", ".php", ".aspx", ".asp", ".shtml", ".cms")


def fill_color(tone: float) -> RGB:
    """Three-way step on tone: >= +2 favorable, <= -2 unfavorable, else neutral."""
    if tone >= FAVORABLE_TONE:
        return FAVORABLE_COLOR
    if tone <= UNFAVORABLE_TONE:
        return UNFAVORABLE_COLOR
    return NEUTRAL_COLOR


def marker_radius(mention_count: Optional[int], style: MarkerStyle = MarkerStyle()) -> float:
    """
    On-screen radius in pixels.

    With mention sizing on, radius grows with sqrt(mentions) so marker
    *area* tracks the count, clamped to [min, max] pixels. A missing or zero
    count sizes like a single mention.
    """
    if not style.size_by_mentions:
        return FIXED_RADIUS_PIXELS
    count = max(mention_count or 1, 1)
    raw = style.radius_scale * math.sqrt(count)
    return min(style.radius_max_pixels, max(style.radius_min_pixels, raw))


def title_from_url(url: Optional[str]) -> str:
    """
    Best-effort article title from a source URL.

    Takes the final path segment, turns '-' and '_' into spaces,
    percent-decodes and capitalises each word. Never raises: anything that
    cannot be parsed degrades to TITLE_UNAVAILABLE.
    """
    if not url:
        return TITLE_UNAVAILABLE
    try:
        parsed = urlparse(str(url).strip())
        if not parsed.scheme or not parsed.netloc:
            return TITLE_UNAVAILABLE
        segments = [s for s in parsed.path.split("/") if s]
        if not segments:
            return TITLE_UNAVAILABLE
        segment = segments[-1]
        lowered = segment.lower()
        for ext in _PAGE_EXTENSIONS:
            if lowered.endswith(ext):
                segment = segment[: -len(ext)]
                break
        text = unquote(segment.replace("-", " ").replace("_", " "))
        words = text.split()
        if not words:
            return TITLE_UNAVAILABLE
        return " ".join(w[:1].upper() + w[1:] for w in words)
    except Exception:
        return TITLE_UNAVAILABLE


def derive_marker(record: EventRecord, style: MarkerStyle = MarkerStyle()) -> VisualMarker:
    """Map one record to its marker. Total over valid EventRecords."""
    return VisualMarker(
        position=(record.longitude, record.latitude),
        fill_color=fill_color(record.tone),
        radius=marker_radius(record.mention_count, style),
        line_color=LINE_COLOR,
        line_width=LINE_WIDTH_PIXELS,
        title=title_from_url(record.source_url),
        record=record,
    )


def derive_markers(records: Iterable[EventRecord], style: MarkerStyle = MarkerStyle()) -> list[VisualMarker]:
    return [derive_marker(r, style) for r in records]
