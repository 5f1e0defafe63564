"""Response header construction for file downloads."""

from __future__ import annotations

import time
from email.utils import formatdate
from urllib.parse import quote_plus

FORCE_DOWNLOAD_TYPES: tuple[str, ...] = (
    "application/force-download",
    "application/octet-stream",
)

LEGACY_USER_AGENT_TOKEN = "MSIE"

Header = tuple[str, str]


def content_type_headers(mime_type: str) -> list[Header]:
    """An empty *mime_type* yields the pair of generic download types."""
    if not mime_type:
        return [("Content-Type", value) for value in FORCE_DOWNLOAD_TYPES]
    return [("Content-Type", mime_type)]


def http_date(timestamp: float | None) -> str:
    """RFC 1123 date for *timestamp*; the current time when it is falsy."""
    return formatdate(timestamp or time.time(), usegmt=True)


def is_legacy_client(user_agent: str, token: str = LEGACY_USER_AGENT_TOKEN) -> bool:
    return bool(user_agent) and token in user_agent


def form_encode(value: str) -> str:
    """Form-encode *value*, escaping ``~`` too; only ``-_.`` stay literal."""
    return quote_plus(value, safe="").replace("~", "%7E")


def content_disposition(
    display_name: str,
    modified: float | None,
    user_agent: str = "",
    legacy_token: str = LEGACY_USER_AGENT_TOKEN,
) -> str:
    """Build the ``Content-Disposition`` value for an attachment.

    Legacy clients get a form-encoded filename; everybody else receives the
    name quoted as-is.
    """
    date = http_date(modified)
    if is_legacy_client(user_agent, legacy_token):
        filename = form_encode(display_name)
    else:
        filename = f'"{display_name}"'
    return f'attachment; filename={filename}; modification-date="{date}";'
