"""
FastAPI application entry point for the legacy portal.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import RedirectResponse
from starlette.middleware.sessions import SessionMiddleware

from legacy_portal.config import Settings, get_settings
from legacy_portal.dependencies import build_gateway
from legacy_portal.routes import router
from legacy_portal.session import LoginRequired

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    # Missing gateway configuration aborts startup.
    settings.validate_gateway()
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(title="Legacy Portal", version="0.1.0")
    app.state.settings = settings
    app.state.gateway = build_gateway(settings)
    # No max_age: the cookie lasts for the browser session only.
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie=settings.session_cookie,
        max_age=None,
        same_site="lax",
    )

    @app.exception_handler(LoginRequired)
    async def redirect_to_login(request: Request, exc: LoginRequired):
        logger.debug("Redirecting %s to login", request.url.path)
        return RedirectResponse("/", status_code=303)

    app.include_router(router)
    return app
