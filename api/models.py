"""
API request and response models for Tag Admin REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are kept
separate from the dataclasses in auth/models.py and tags/models.py, which own
the internal domain representation. Route handlers map between the two.

Wire format is camelCase (userName, tagName, accessToken); Python attributes
stay snake_case. FastAPI serializes response_model output by alias.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from auth.models import User
from tags.models import Tag


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


# ---------------------------------------------------------------------------
# Errors / health
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Error envelope returned on every 4xx/5xx response."""

    model_config = ConfigDict(frozen=True)

    code: str
    msg: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class LoginRequest(_CamelModel):
    """Request body for POST /api/v1/auth/login.

    No whitespace stripping: the password is checked exactly as stored and the
    captcha answer is compared case-insensitively with no other normalization.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_name: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)
    captcha: str = Field(min_length=1, max_length=16)


class UserInfo(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: int
    user_name: str

    @classmethod
    def from_user(cls, user: User) -> "UserInfo":
        return cls(id=user.id, user_name=user.user_name)


class LoginResponse(_CamelModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"  # noqa: S105 # nosec B105 -- OAuth token type, not a password
    expires_in: int
    user: UserInfo


class RefreshRequest(_CamelModel):
    """Request body for POST /api/v1/auth/refresh."""

    refresh_token: str = Field(min_length=1)


class RefreshResponse(_CamelModel):
    access_token: str
    token_type: str = "bearer"  # noqa: S105 # nosec B105
    expires_in: int


class LogoutRequest(_CamelModel):
    """Request body for POST /api/v1/auth/logout."""

    id: int
    user_name: str = Field(min_length=1, max_length=255)


class TokenTTLResponse(_CamelModel):
    """Seconds left on the caller's registry entry; null when it is gone."""

    ttl: Optional[int]


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------


class TagCreate(_CamelModel):
    """Request body for POST /api/v1/tags."""

    tag_name: str = Field(min_length=1, max_length=12, description="Tag name")
    icon: Optional[str] = Field(default="", max_length=255, description="Icon CSS class name")


class TagUpdate(_CamelModel):
    """Request body for PATCH /api/v1/tags/{tag_id}. Omitted fields are left alone."""

    tag_name: Optional[str] = Field(default=None, min_length=1, max_length=12)
    icon: Optional[str] = Field(default=None, max_length=255)


class TagResponse(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: int
    tag_name: str
    icon: str
    created_at: str
    updated_at: str

    @classmethod
    def from_tag(cls, tag: Tag) -> "TagResponse":
        return cls(
            id=tag.id,
            tag_name=tag.tag_name,
            icon=tag.icon,
            created_at=tag.created_at,
            updated_at=tag.updated_at,
        )
