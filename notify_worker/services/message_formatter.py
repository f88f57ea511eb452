"""
Message Formatter
Renders a notification job into LINE message text
"""
from typing import Any, Optional

import httpx

from notify_worker.schemas.notification_schemas import RenderableJob

MAX_MESSAGE_LENGTH = 5000
DEFAULT_TITLE = "Ticket update"
TICKETS_PATH = "/tickets"
OPEN_TICKET_PARAM = "open_ticket"


def build_ticket_link(app_base_url: Optional[str], ticket_id: str) -> Optional[str]:
    """
    Deep link to the ticket board with the ticket opened

    Returns None when the base URL is empty or not an absolute http(s) URL.
    """
    base = (app_base_url or "").strip()
    if not base or not ticket_id:
        return None

    try:
        url = httpx.URL(base)
        if url.scheme not in ("http", "https") or not url.host:
            return None
        url = url.join(TICKETS_PATH).copy_set_param(OPEN_TICKET_PARAM, ticket_id)
    except (httpx.InvalidURL, ValueError, TypeError):
        return None

    return str(url)


def build_message_text(job: Any, app_base_url: Optional[str] = None) -> str:
    """
    Build the push text for a job

    Lines: title, optional priority, optional body, optional ticket id and
    deep link. The result never exceeds MAX_MESSAGE_LENGTH characters.
    """
    renderable = RenderableJob.from_job(job)

    lines = [renderable.title or DEFAULT_TITLE]
    if renderable.priority:
        lines.append(f"Priority: {renderable.priority}")
    if renderable.body:
        lines.append(renderable.body)
    if renderable.ticket_id:
        lines.append(f"Ticket ID: {renderable.ticket_id}")
        link = build_ticket_link(app_base_url, renderable.ticket_id)
        if link:
            lines.append(f"Open: {link}")

    return "\n".join(lines)[:MAX_MESSAGE_LENGTH]
