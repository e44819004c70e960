"""
Read and write operations behind each view.

Every read returns ``None`` or an empty list when the gateway reports an
error or no rows, which the templates render as the loading state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from pydantic import ValidationError

from legacy_portal.gateway import (
    AUTH_TABLE,
    BLOGS_TABLE,
    CONTRIBUTIONS_TABLE,
    FORUM_POSTS_TABLE,
    PROFILES_TABLE,
    Gateway,
    QueryResult,
)
from legacy_portal.schemas import (
    BlogPost,
    Contribution,
    ContributionForm,
    Credential,
    ForumPost,
    ForumPostForm,
    LegacyProfile,
)

logger = logging.getLogger(__name__)

WITH_OWNER_NAME = "*, legacy_profiles(name)"


@dataclass
class ProfilePage:
    profile: Optional[LegacyProfile] = None
    blogs: list[BlogPost] = field(default_factory=list)
    forum_posts: list[ForumPost] = field(default_factory=list)
    contributions: list[Contribution] = field(default_factory=list)

    @property
    def loaded(self) -> bool:
        return self.profile is not None


def _records(result: QueryResult, model) -> list:
    if not result.ok or not result.data:
        return []
    records = []
    for row in result.data:
        try:
            records.append(model.model_validate(row))
        except ValidationError as exc:
            logger.warning("Skipping malformed %s row: %s", model.__name__, exc)
    return records


def _record(result: QueryResult, model):
    if not result.ok or not result.data:
        return None
    try:
        return model.model_validate(result.data)
    except ValidationError as exc:
        logger.warning("Malformed %s row: %s", model.__name__, exc)
        return None


def authenticate(gateway: Gateway, username: str, password: str) -> Optional[str]:
    """
    Look up a credential matching both fields exactly.

    Returns the linked profile identifier, or ``None`` when there is no
    match, more than one match, or the query fails.
    """
    result = (
        gateway.table(AUTH_TABLE)
        .select("*")
        .eq("username", username)
        .eq("password", password)
        .single()
    )
    credential = _record(result, Credential)
    if credential is None:
        logger.info("Rejected login for %r", username)
        return None
    logger.info("Login for %r as profile %s", username, credential.legacy_profile_id)
    return credential.legacy_profile_id


def list_profiles(gateway: Gateway) -> list[LegacyProfile]:
    result = gateway.table(PROFILES_TABLE).select("*").order("tenure_start").execute()
    return _records(result, LegacyProfile)


def list_contributions(gateway: Gateway, profile_id: str) -> list[Contribution]:
    result = (
        gateway.table(CONTRIBUTIONS_TABLE)
        .select("*")
        .eq("legacy_profile_id", profile_id)
        .execute()
    )
    return _records(result, Contribution)


def load_profile_page(gateway: Gateway, profile_id: str) -> ProfilePage:
    """Fetch a profile and everything it owns, in store-default order."""
    profile = _record(
        gateway.table(PROFILES_TABLE).select("*").eq("id", profile_id).single(),
        LegacyProfile,
    )
    blogs = _records(
        gateway.table(BLOGS_TABLE)
        .select("*")
        .eq("legacy_profile_id", profile_id)
        .execute(),
        BlogPost,
    )
    forum_posts = _records(
        gateway.table(FORUM_POSTS_TABLE)
        .select("*")
        .eq("legacy_profile_id", profile_id)
        .execute(),
        ForumPost,
    )
    return ProfilePage(
        profile=profile,
        blogs=blogs,
        forum_posts=forum_posts,
        contributions=list_contributions(gateway, profile_id),
    )


def can_contribute(session_profile_id: Optional[str], page_profile_id: str) -> bool:
    return session_profile_id is not None and session_profile_id == page_profile_id


def add_contribution(
    gateway: Gateway, profile_id: str, form: ContributionForm
) -> QueryResult:
    result = gateway.table(CONTRIBUTIONS_TABLE).insert(
        {**form.model_dump(), "legacy_profile_id": profile_id}
    )
    if result.ok:
        logger.info("Profile %s added contribution %r", profile_id, form.title)
    return result


def list_forum_posts(gateway: Gateway) -> list[ForumPost]:
    result = (
        gateway.table(FORUM_POSTS_TABLE)
        .select(WITH_OWNER_NAME)
        .order("created_at", ascending=False)
        .execute()
    )
    return _records(result, ForumPost)


def create_forum_post(
    gateway: Gateway, profile_id: str, form: ForumPostForm
) -> QueryResult:
    result = gateway.table(FORUM_POSTS_TABLE).insert(
        {
            "title": form.title,
            "content": form.content,
            "legacy_profile_id": profile_id,
        }
    )
    if result.ok:
        logger.info("Profile %s posted %r to the forum", profile_id, form.title)
    return result


def list_blog_posts(gateway: Gateway) -> list[BlogPost]:
    result = (
        gateway.table(BLOGS_TABLE)
        .select(WITH_OWNER_NAME)
        .order("created_at", ascending=False)
        .execute()
    )
    return _records(result, BlogPost)


def get_blog_post(gateway: Gateway, blog_id: str) -> Optional[BlogPost]:
    result = gateway.table(BLOGS_TABLE).select(WITH_OWNER_NAME).eq("id", blog_id).single()
    return _record(result, BlogPost)
