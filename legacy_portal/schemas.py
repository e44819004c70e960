"""
Pydantic records for rows read from the gateway and for submitted forms.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    model_validator,
)

_TIMESTAMP = TypeAdapter(datetime)


class GatewayRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)


class LegacyProfile(GatewayRecord):
    id: str
    name: str
    image_url: Optional[str] = ""
    description: Optional[str] = ""
    one_liner: Optional[str] = ""
    tenure_start: str
    tenure_end: Optional[str] = None

    @property
    def tenure_label(self) -> str:
        return f"{self.tenure_start} - {self.tenure_end or 'Present'}"


class Credential(GatewayRecord):
    username: str
    password: str
    legacy_profile_id: str


class _OwnedPost(GatewayRecord):
    id: str
    title: str
    created_at: str
    legacy_profile_id: Optional[str] = None
    owner_name: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _flatten_owner(cls, data):
        # Embedded ``legacy_profiles(name)`` arrives as a nested object.
        if isinstance(data, dict) and "owner_name" not in data:
            owner = data.get("legacy_profiles") or {}
            if isinstance(owner, dict) and owner.get("name"):
                data = {**data, "owner_name": owner["name"]}
        return data

    @property
    def posted_on(self) -> str:
        return format_date(self.created_at)


class BlogPost(_OwnedPost):
    content: str = ""


class ForumPost(_OwnedPost):
    content: str = ""


class Contribution(_OwnedPost):
    resource_url: str = ""
    description: str = ""


class ForumPostForm(BaseModel):
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)


class ContributionForm(BaseModel):
    title: str = Field(..., min_length=1)
    resource_url: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)


def format_date(value: str) -> str:
    """Render a stored timestamp as its calendar date."""
    try:
        parsed = _TIMESTAMP.validate_python(value)
    except ValidationError:
        return value or ""
    return parsed.date().isoformat()
