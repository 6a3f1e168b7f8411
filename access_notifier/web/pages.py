"""HTML rendering for the dashboard pages."""

from __future__ import annotations

import json
from html import escape

from access_notifier.core.types import Recipient
from access_notifier.storage.events import EventRecord

_LAYOUT = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{title}</title>
<style>
  body {{ font-family: -apple-system, "Segoe UI", Roboto, sans-serif;
         background: #0f1419; color: #e6e6e6; margin: 0; }}
  nav {{ background: #16202a; padding: 12px 24px; }}
  nav a {{ color: #8ab4f8; margin-right: 16px; text-decoration: none; }}
  main {{ padding: 24px; max-width: 960px; }}
  table {{ width: 100%; border-collapse: collapse; margin-bottom: 24px; }}
  th, td {{ text-align: left; padding: 6px 8px; border-bottom: 1px solid #2a3540; }}
  th {{ color: #9aa5b1; font-weight: 600; }}
  form.inline {{ display: inline; }}
  input {{ background: #16202a; color: #e6e6e6; border: 1px solid #2a3540; padding: 4px 8px; }}
  button {{ background: #2a3540; color: #e6e6e6; border: 0; padding: 5px 12px; cursor: pointer; }}
  button.danger {{ background: #8b1e1e; }}
  pre {{ white-space: pre-wrap; margin: 0; font-size: 12px; }}
  .muted {{ color: #9aa5b1; }}
</style>
</head>
<body>
<nav><a href="/">Recipients</a><a href="/events">Events</a></nav>
<main>
{content}
</main>
</body>
</html>"""


def _layout(title: str, content: str) -> str:
    return _LAYOUT.format(title=escape(title), content=content)


def render_dashboard(recipients: list[Recipient], lock_control: bool) -> str:
    """Recipients table with add/delete forms plus lock controls."""
    if recipients:
        rows = "\n".join(
            f"<tr><td>{escape(r.name)}</td><td>{escape(r.phone)}</td>"
            f'<td><form class="inline" method="post" action="/recipients/delete">'
            f'<input type="hidden" name="phone" value="{escape(r.phone)}">'
            f'<button type="submit">Remove</button></form></td></tr>'
            for r in recipients
        )
    else:
        rows = '<tr><td colspan="3" class="muted">No recipients yet.</td></tr>'

    parts = [
        "<h1>Alert recipients</h1>",
        "<table><tr><th>Name</th><th>Phone</th><th></th></tr>",
        rows,
        "</table>",
        '<form method="post" action="/recipients/add">',
        '<input name="name" placeholder="Name" required> ',
        '<input name="phone" placeholder="+15551234567" required> ',
        '<button type="submit">Add recipient</button>',
        "</form>",
        "<h2>Lock control</h2>",
    ]

    if lock_control:
        for action, label in (("open", "Open"), ("unlock", "Unlock"), ("lock", "Lock")):
            parts.append(
                f'<form class="inline" method="post" action="/locks/{action}">'
                f'<input name="lockId" placeholder="Lock ID" required> '
                f'<button type="submit">{label}</button></form> '
            )
        parts.append(
            '<p><form method="post" action="/lockdown">'
            '<button class="danger" type="submit">Lockdown all main doors</button>'
            "</form></p>"
        )
    else:
        parts.append('<p class="muted">Lock control disabled (no API key configured).</p>')

    return _layout("Access Notifier", "\n".join(parts))


def render_events(events: list[EventRecord], query: str) -> str:
    """Event log table with a search box."""
    if events:
        rows = "\n".join(
            f"<tr><td>{escape(str(e.get('timestamp', '')))}</td>"
            f"<td>{escape(str(e.get('kind', '')))}</td>"
            f"<td><pre>{escape(json.dumps(e, indent=2, ensure_ascii=False, default=str))}</pre></td></tr>"
            for e in events
        )
    else:
        rows = '<tr><td colspan="3" class="muted">No events.</td></tr>'

    content = "\n".join([
        "<h1>Events</h1>",
        '<form method="get" action="/events">',
        f'<input name="q" value="{escape(query)}" placeholder="Search"> ',
        '<button type="submit">Search</button>',
        "</form>",
        "<table><tr><th>Time</th><th>Kind</th><th>Details</th></tr>",
        rows,
        "</table>",
    ])
    return _layout("Events", content)
