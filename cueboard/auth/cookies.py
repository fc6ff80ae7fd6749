"""Reading the Supabase SSR session cookie.

The JS auth helpers store the session under ``sb-<project-ref>-auth-token``.
Large sessions are split across ``<name>.0``, ``<name>.1``, ... and the value
has taken several shapes across SDK releases: a bare access token, a JSON
array whose first element is the access token, a JSON session object, or any
of those base64url-encoded behind a ``base64-`` prefix.
"""

from __future__ import annotations

import base64
import json
from collections.abc import Mapping
from urllib.parse import unquote, urlparse

from cueboard.config import settings

BASE64_PREFIX = "base64-"


def auth_cookie_name(supabase_url: str | None = None) -> str:
    if settings.auth_cookie_name:
        return settings.auth_cookie_name
    host = urlparse(supabase_url or settings.supabase_url).hostname or ""
    project_ref = host.split(".")[0] if host else "unknown"
    return f"sb-{project_ref}-auth-token"


def _join_chunks(cookies: Mapping[str, str], name: str) -> str | None:
    if name in cookies:
        return cookies[name]
    chunks = []
    index = 0
    while f"{name}.{index}" in cookies:
        chunks.append(cookies[f"{name}.{index}"])
        index += 1
    if not chunks:
        return None
    return "".join(chunks)


def _decode_base64(value: str) -> str | None:
    encoded = value[len(BASE64_PREFIX):]
    encoded += "=" * (-len(encoded) % 4)
    try:
        return base64.urlsafe_b64decode(encoded).decode("utf-8")
    except (ValueError, UnicodeDecodeError):
        return None


def extract_access_token(raw: str) -> str | None:
    value = unquote(raw).strip()
    if value.startswith(BASE64_PREFIX):
        value = _decode_base64(value)
        if value is None:
            return None

    if not value.startswith(("[", "{", '"')):
        return value if value.count(".") == 2 else None

    try:
        parsed = json.loads(value)
    except ValueError:
        return None

    if isinstance(parsed, str):
        return parsed if parsed.count(".") == 2 else None
    if isinstance(parsed, list) and parsed and isinstance(parsed[0], str):
        return parsed[0]
    if isinstance(parsed, dict):
        token = parsed.get("access_token")
        if isinstance(token, str):
            return token
        session = parsed.get("currentSession")
        if isinstance(session, dict) and isinstance(session.get("access_token"), str):
            return session["access_token"]
    return None


def read_access_token(cookies: Mapping[str, str]) -> str | None:
    """Return the access token carried by the session cookie, if any."""
    raw = _join_chunks(cookies, auth_cookie_name())
    if not raw:
        return None
    return extract_access_token(raw)
