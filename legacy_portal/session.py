"""
Per-browser session state and the login guard.

The only value kept is the logged-in profile identifier, stored under a
fixed key in Starlette's signed session cookie.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Request

SESSION_KEY = "legacyProfileId"


class LoginRequired(Exception):
    """Raised when a guarded view is requested without a session."""


def get_profile_id(request: Request) -> Optional[str]:
    return request.session.get(SESSION_KEY) or None


def start_session(request: Request, profile_id: str) -> None:
    request.session[SESSION_KEY] = profile_id


def end_session(request: Request) -> None:
    request.session.pop(SESSION_KEY, None)


def require_profile_id(request: Request) -> str:
    """
    Dependency for guarded routes.

    Only checks that a profile identifier is present; nothing verifies it
    against the store.
    """
    profile_id = get_profile_id(request)
    if not profile_id:
        raise LoginRequired()
    return profile_id
