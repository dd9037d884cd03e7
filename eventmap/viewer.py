#!/usr/bin/env python3
"""
viewer.py — Render the live event map from a running EventMap API.

Usage:
    eventmap-viewer                                  # http://localhost:8000 → eventmap.html
    eventmap-viewer --api-url https://events.example.com --output map.html
    eventmap-viewer --reload 2 --no-browser          # two extra manual refreshes

Prerequisites:
    • MAP_API_KEY env var set (or .env file present)
    • an API serving GET /api/events (uvicorn eventmap.main:app)

The viewer builds the same OverlaySession the dashboard uses, but over an
HTTP event source: mount (creates the surface and loads once), optional
reloads, then writes the page and opens it in the default browser.
"""

import argparse
import asyncio
import logging
import sys
import webbrowser
from pathlib import Path
from typing import Optional, Sequence

from eventmap.core.config import settings
from eventmap.core.errors import ConfigurationError
from eventmap.renderer.base import SurfaceOptions
from eventmap.renderer.page import render_dashboard_page
from eventmap.renderer.pydeck_provider import PydeckMapProvider
from eventmap.renderer.session import OverlaySession
from eventmap.renderer.sources import HttpEventSource

logger = logging.getLogger("eventmap.viewer")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Render recent GDELT events to an HTML map.")
    parser.add_argument("--api-url", default="http://localhost:8000", help="EventMap API base URL")
    parser.add_argument("--output", default="eventmap.html", help="HTML file to write")
    parser.add_argument("--reload", type=int, default=0, metavar="N", help="extra manual refreshes after the first load")
    parser.add_argument("--min-mentions", type=int, default=None, help="forwarded as ?min_mentions=")
    parser.add_argument("--no-browser", action="store_true", help="write the file but don't open it")
    return parser


def build_session(args: argparse.Namespace) -> OverlaySession:
    params = {}
    if args.min_mentions is not None:
        params["min_mentions"] = args.min_mentions
    source = HttpEventSource(
        args.api_url,
        timeout=settings.event_fetch_timeout_seconds,
        params=params,
    )
    return OverlaySession(
        PydeckMapProvider(settings.map_api_key, settings.map_provider),
        source,
        style=settings.marker_style(),
        surface_options=SurfaceOptions.from_settings(settings),
        open_url=webbrowser.open_new_tab,
    )


async def run(session: OverlaySession, output: Path, reloads: int = 0) -> Optional[str]:
    """Mount, refresh *reloads* times, write the page. Returns the last error, if any."""
    await session.mount(str(output))
    for _ in range(max(reloads, 0)):
        await session.reload()
    output.write_text(render_dashboard_page(session), encoding="utf-8")
    logger.info("Wrote %d markers to %s", len(session.markers), output)
    return session.error


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )
    output = Path(args.output)
    session = build_session(args)
    try:
        error = asyncio.run(run(session, output, args.reload))
    except ConfigurationError as exc:
        print(f"ERROR: {exc.message} {exc.details or ''}".rstrip(), file=sys.stderr)
        return 2
    finally:
        session.close()

    if error:
        print(f"WARNING: last refresh failed: {error}", file=sys.stderr)
    if not args.no_browser:
        webbrowser.open_new_tab(output.resolve().as_uri())
    return 1 if error else 0


if __name__ == "__main__":
    sys.exit(main())
