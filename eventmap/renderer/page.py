"""
page.py — Full-page HTML for the map dashboard.

The pydeck surface renders the map and marker tooltips; the status banner
(Loading / Error) and the Reload control are passed in as the deck's
description overlay.

Clicks are wired onto the deck instance the pydeck template creates
(`deckInstance`): a marker with a source URL opens it in a new tab. When
the page is served by the dashboard, the click is also posted to
/dashboard/pick so the server-held session sees it.
"""

import json
from html import escape
from typing import Optional

from eventmap.renderer.pydeck_provider import PydeckSurface
from eventmap.renderer.session import OverlaySession

_BUTTON_STYLE = (
    "padding: 10px 15px; font-size: 1em; color: white; border: none; "
    "border-radius: 5px; background-color: {bg}; cursor: {cursor};"
)
_ERROR_STYLE = (
    "margin-top: 10px; color: red; background: rgba(255,255,255,0.9); "
    "padding: 10px; border-radius: 5px; border: 1px solid red;"
)

# Opened synchronously inside the click so popup blockers allow it.
_CLICK_SCRIPT = """
<script>
  const pickUrl = {pick_url};
  deckInstance.setProps({{
    onClick: (info) => {{
      const url = info.object && info.object.source_url;
      if (url) {{
        window.open(url, '_blank');
      }}
      if (pickUrl) {{
        fetch(pickUrl, {{
          method: 'POST',
          headers: {{'Content-Type': 'application/json'}},
          body: JSON.stringify({{kind: 'click', index: info.object ? info.index : null, x: info.x, y: info.y}}),
        }});
      }}
    }},
  }});
</script>
"""


def status_banner(session: OverlaySession, reload_url: Optional[str] = None) -> str:
    """HTML for the Reload button and the loading/error banner."""
    parts = [f"<div><b>{len(session.markers)}</b> events</div>"]
    if reload_url:
        busy = session.loading
        style = _BUTTON_STYLE.format(
            bg="#ccc" if busy else "#0070f3",
            cursor="not-allowed" if busy else "pointer",
        )
        parts.append(
            f'<button style="{style}" {"disabled" if busy else ""} '
            f"onclick=\"fetch('{escape(reload_url)}', {{method: 'POST'}})"
            '.then(() => window.location.reload())">'
            f'{"Loading..." if busy else "Reload Data"}</button>'
        )
    if session.error:
        parts.append(f'<div style="{_ERROR_STYLE}">Error: {escape(session.error)}</div>')
    return "\n".join(parts)


def click_script(pick_url: Optional[str] = None) -> str:
    """Script that opens a clicked marker's source URL (and reports the pick)."""
    return _CLICK_SCRIPT.format(pick_url=json.dumps(pick_url))


def render_dashboard_page(
    session: OverlaySession,
    reload_url: Optional[str] = None,
    pick_url: Optional[str] = None,
) -> str:
    """Render the session's pydeck surface as a standalone HTML document."""
    surface = session.surface
    if not isinstance(surface, PydeckSurface):
        raise TypeError("Dashboard pages require a pydeck surface")
    return surface.render_html(
        description=status_banner(session, reload_url),
        scripts=click_script(pick_url),
    )
