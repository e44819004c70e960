"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from fastapi import Request

from legacy_portal.config import Settings
from legacy_portal.gateway import Gateway, InMemoryGateway, SqlGateway, SupabaseGateway


def build_gateway(settings: Settings) -> Gateway:
    """Pick the gateway backend for these settings."""
    if settings.use_in_memory_backends:
        return InMemoryGateway()
    if settings.database_url:
        return SqlGateway(settings.database_url)
    return SupabaseGateway(
        settings.supabase_url or "",
        settings.supabase_anon_key or "",
        timeout=settings.request_timeout_seconds,
    )


def get_gateway(request: Request) -> Gateway:
    """
    Return the app's gateway so in-memory data persists across requests.
    """
    return request.app.state.gateway
