"""
HTML routes for the legacy portal.
"""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError

from legacy_portal import services
from legacy_portal.dependencies import get_gateway
from legacy_portal.gateway import Gateway
from legacy_portal.schemas import ContributionForm, ForumPostForm
from legacy_portal.session import (
    end_session,
    get_profile_id,
    require_profile_id,
    start_session,
)

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
INVALID_LOGIN_MESSAGE = "Invalid username or password"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
router = APIRouter()


def _render(request: Request, name: str, **context):
    context.setdefault("session_profile_id", get_profile_id(request))
    return templates.TemplateResponse(request, name, context)


def _see_other(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=303)


@router.get("/healthz")
def healthz():
    return {"status": "ok"}


@router.get("/")
def login_page(request: Request):
    return _render(request, "login.html", error="", username="")


@router.post("/")
def login(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
    gateway: Gateway = Depends(get_gateway),
):
    profile_id = services.authenticate(gateway, username, password)
    if not profile_id:
        return _render(
            request, "login.html", error=INVALID_LOGIN_MESSAGE, username=username
        )
    start_session(request, profile_id)
    return _see_other("/legacy")


@router.post("/logout")
def logout(request: Request):
    end_session(request)
    return _see_other("/")


@router.get("/legacy")
def legacy_directory(
    request: Request,
    _: str = Depends(require_profile_id),
    gateway: Gateway = Depends(get_gateway),
):
    return _render(
        request, "legacy.html", profiles=services.list_profiles(gateway)
    )


@router.get("/legacy/{profile_id}")
def legacy_profile(
    profile_id: str,
    request: Request,
    session_profile_id: str = Depends(require_profile_id),
    gateway: Gateway = Depends(get_gateway),
):
    page = services.load_profile_page(gateway, profile_id)
    return _render(
        request,
        "legacy_profile.html",
        page=page,
        can_contribute=services.can_contribute(session_profile_id, profile_id),
    )


@router.post("/legacy/{profile_id}/contributions")
def add_contribution(
    profile_id: str,
    title: str = Form(""),
    resource_url: str = Form(""),
    description: str = Form(""),
    session_profile_id: str = Depends(require_profile_id),
    gateway: Gateway = Depends(get_gateway),
):
    if not services.can_contribute(session_profile_id, profile_id):
        logger.warning(
            "Profile %s tried to add a contribution to %s",
            session_profile_id,
            profile_id,
        )
        return _see_other(f"/legacy/{profile_id}")
    try:
        form = ContributionForm(
            title=title, resource_url=resource_url, description=description
        )
    except ValidationError:
        return _see_other(f"/legacy/{profile_id}")
    services.add_contribution(gateway, profile_id, form)
    return _see_other(f"/legacy/{profile_id}")


@router.get("/forum")
def forum(
    request: Request,
    _: str = Depends(require_profile_id),
    gateway: Gateway = Depends(get_gateway),
):
    return _render(request, "forum.html", posts=services.list_forum_posts(gateway))


@router.post("/forum")
def create_forum_post(
    title: str = Form(""),
    content: str = Form(""),
    session_profile_id: str = Depends(require_profile_id),
    gateway: Gateway = Depends(get_gateway),
):
    try:
        form = ForumPostForm(title=title, content=content)
    except ValidationError:
        return _see_other("/forum")
    services.create_forum_post(gateway, session_profile_id, form)
    return _see_other("/forum")


@router.get("/blog")
def blog_index(
    request: Request,
    _: str = Depends(require_profile_id),
    gateway: Gateway = Depends(get_gateway),
):
    return _render(request, "blog.html", blogs=services.list_blog_posts(gateway))


@router.get("/blog/{blog_id}")
def blog_post(
    blog_id: str,
    request: Request,
    _: str = Depends(require_profile_id),
    gateway: Gateway = Depends(get_gateway),
):
    return _render(
        request, "blog_post.html", blog=services.get_blog_post(gateway, blog_id)
    )
