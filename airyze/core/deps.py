"""Request dependencies."""

from __future__ import annotations

from typing import Any

from fastapi import Request

from airyze.core.errors import AuthError


async def _body_user_id(request: Request) -> Any:
    if request.method not in ("POST", "PUT", "PATCH", "DELETE"):
        return None
    try:
        body = await request.json()
    except ValueError:
        return None
    return body.get("user_id") if isinstance(body, dict) else None


async def require_user_id(request: Request) -> int:
    """Identify the caller by the ``user_id`` in the JSON body or query string.

    This is an identity convention, not authentication: any positive integer
    is accepted. Fractional or non-numeric ids are rejected whether they
    arrive as JSON numbers or strings.
    """
    raw = await _body_user_id(request) or request.query_params.get("user_id")
    if not raw:
        raise AuthError("Authentication required. Please provide user_id.")
    text = str(raw).strip()
    if isinstance(raw, bool) or not (text.isascii() and text.isdigit()):
        raise AuthError("Invalid user_id provided.")
    user_id = int(text)
    if user_id <= 0:
        raise AuthError("Invalid user_id provided.")
    return user_id
