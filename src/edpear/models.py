"""Canonical Pydantic models shared across all edpear modules.

The models fall into three groups:

**Persisted models** -- serialised as JSON in the user's config directory:
    :class:`User`, :class:`ApiKey` and :class:`Credential`.

**Wire models** -- payloads returned by the EdPear API:
    :class:`InitResponse` and :class:`StatusResponse`.

**Login handshake models** -- process-local, never persisted:
    :class:`AuthStatus`, :class:`SessionState`, :class:`PollingPolicy` and
    :class:`AuthSession`.

The API speaks camelCase (``apiKeys``, ``createdAt``, ``requestId``); fields
are snake_case in Python and carry the wire name as an alias. Models that
mirror server records use ``extra="allow"`` so unknown keys such as
``usageCount`` survive a load/save round trip.
"""

from __future__ import annotations

import enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# --- Persisted credential ---


class User(BaseModel):
    """Cached snapshot of the signed-in user's profile.

    Advisory only: ``status`` refreshes it from ``/api/auth/me`` and the
    server stays authoritative for credits.
    """

    model_config = ConfigDict(extra="allow")

    id: Optional[Union[int, str]] = None
    name: Optional[str] = None
    email: Optional[str] = None
    credits: Optional[Union[int, float]] = None


class ApiKey(BaseModel):
    """An API key record as returned by ``/api/keys/generate`` and ``/api/keys/list``."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: Optional[Union[int, str]] = None
    key: str
    name: Optional[str] = None
    created_at: Optional[str] = Field(default=None, alias="createdAt")


class Credential(BaseModel):
    """The locally persisted session: bearer token, cached user and cached keys.

    ``user`` and ``api_keys`` are only meaningful while ``token`` is set.
    Logging out replaces the whole structure with an empty one rather than
    dropping the token alone.

    Example::

        cred = Credential.model_validate({"token": "tok", "apiKeys": []})
        assert cred.is_authenticated
        assert cred.to_json_dict() == {"token": "tok"}
    """

    model_config = ConfigDict(populate_by_name=True)

    token: Optional[str] = Field(default=None, description="Bearer session token")
    user: Optional[User] = Field(default=None, description="Cached user profile")
    api_keys: list[ApiKey] = Field(
        default_factory=list,
        alias="apiKeys",
        description="Locally generated keys, in creation order",
    )

    @property
    def is_authenticated(self) -> bool:
        """Whether a session token is present."""
        return bool(self.token)

    def to_json_dict(self) -> dict[str, Any]:
        """Serialise using wire names, omitting unset fields.

        An empty credential serialises to ``{}``.
        """
        data = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        if not self.api_keys:
            data.pop("apiKeys", None)
        return data

    def reset(self) -> None:
        """Clear every field in place."""
        self.token = None
        self.user = None
        self.api_keys = []


# --- Wire payloads ---


class InitResponse(BaseModel):
    """Response of ``POST /api/auth/cli/init``."""

    model_config = ConfigDict(populate_by_name=True)

    request_id: str = Field(alias="requestId")
    url: str


class AuthStatus(str, enum.Enum):
    """Approval request status reported by ``/api/auth/cli/status``."""

    PENDING = "pending"
    COMPLETED = "completed"
    EXPIRED = "expired"


class StatusResponse(BaseModel):
    """Response of ``GET /api/auth/cli/status``.

    ``status`` is kept as a plain string: values other than the three known
    ones are treated like ``pending`` by the poller.
    """

    model_config = ConfigDict(populate_by_name=True)

    status: str = AuthStatus.PENDING.value
    cli_token: Optional[str] = Field(default=None, alias="cliToken")
    user: Optional[User] = None


# --- Login handshake ---


class SessionState(str, enum.Enum):
    """States of the login handshake.

    ``NOT_STARTED -> INITIATED -> POLLING`` and then exactly one of the
    terminal states.
    """

    NOT_STARTED = "not_started"
    INITIATED = "initiated"
    POLLING = "polling"
    COMPLETED = "completed"
    EXPIRED = "expired"
    TIMED_OUT = "timed_out"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (
            SessionState.COMPLETED,
            SessionState.EXPIRED,
            SessionState.TIMED_OUT,
            SessionState.FAILED,
        )


class PollingPolicy(BaseModel):
    """Bounds of the approval polling loop.

    The defaults give roughly ten minutes of wall-clock wait.
    """

    interval: float = Field(
        default=3.0, ge=0, allow_inf_nan=False, description="Seconds to sleep before each poll"
    )
    max_attempts: int = Field(default=200, ge=1, description="Maximum number of status polls")


class AuthSession(BaseModel):
    """One approval handshake, alive for the duration of a single ``login``."""

    request_id: str
    approval_url: str
    status: AuthStatus = AuthStatus.PENDING
    attempts_used: int = 0
    attempts_max: int = 200
