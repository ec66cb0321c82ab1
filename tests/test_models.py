"""Tests for the pydantic models in edpear.models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from edpear.models import (
    ApiKey,
    AuthSession,
    Credential,
    InitResponse,
    PollingPolicy,
    SessionState,
    StatusResponse,
    User,
)


class TestCredential:
    def test_empty_is_unauthenticated(self) -> None:
        credential = Credential()
        assert credential.is_authenticated is False
        assert credential.to_json_dict() == {}

    def test_empty_token_is_unauthenticated(self) -> None:
        assert Credential(token="").is_authenticated is False

    def test_aliases_on_both_sides(self) -> None:
        credential = Credential.model_validate(
            {"token": "t", "apiKeys": [{"key": "ep", "createdAt": "2024-01-01"}]}
        )
        assert credential.api_keys[0].created_at == "2024-01-01"
        assert credential.to_json_dict() == {
            "token": "t",
            "apiKeys": [{"key": "ep", "createdAt": "2024-01-01"}],
        }

    def test_empty_key_list_is_omitted(self) -> None:
        assert Credential(token="t").to_json_dict() == {"token": "t"}

    def test_reset(self) -> None:
        credential = Credential(
            token="t", user=User(name="Ada"), api_keys=[ApiKey(key="ep")]
        )
        credential.reset()
        assert credential == Credential()


class TestUser:
    def test_numeric_and_string_ids(self) -> None:
        assert User.model_validate({"id": 5}).id == 5
        assert User.model_validate({"id": "abc"}).id == "abc"

    def test_extra_fields_preserved(self) -> None:
        user = User.model_validate({"name": "Ada", "plan": "pro"})
        assert user.model_dump(exclude_none=True) == {"name": "Ada", "plan": "pro"}


class TestWirePayloads:
    def test_init_response(self) -> None:
        init = InitResponse.model_validate({"requestId": "r1", "url": "https://x"})
        assert init.request_id == "r1"
        assert init.url == "https://x"

    @pytest.mark.parametrize("payload", [{"requestId": "r1"}, {"url": "https://x"}])
    def test_init_response_requires_both_fields(self, payload) -> None:
        with pytest.raises(ValidationError):
            InitResponse.model_validate(payload)

    def test_status_defaults_to_pending(self) -> None:
        status = StatusResponse.model_validate({})
        assert status.status == "pending"
        assert status.cli_token is None

    def test_status_completed(self) -> None:
        status = StatusResponse.model_validate(
            {"status": "completed", "cliToken": "tok", "user": {"email": "a@b.c"}}
        )
        assert status.cli_token == "tok"
        assert status.user.email == "a@b.c"


class TestHandshakeModels:
    def test_polling_defaults(self) -> None:
        policy = PollingPolicy()
        assert policy.interval == 3.0
        assert policy.max_attempts == 200

    def test_polling_rejects_zero_attempts(self) -> None:
        with pytest.raises(ValidationError):
            PollingPolicy(max_attempts=0)

    def test_session_starts_pending(self) -> None:
        session = AuthSession(request_id="r", approval_url="https://x")
        assert session.status.value == "pending"
        assert session.attempts_used == 0

    @pytest.mark.parametrize(
        ("state", "terminal"),
        [
            (SessionState.NOT_STARTED, False),
            (SessionState.INITIATED, False),
            (SessionState.POLLING, False),
            (SessionState.COMPLETED, True),
            (SessionState.EXPIRED, True),
            (SessionState.TIMED_OUT, True),
            (SessionState.FAILED, True),
        ],
    )
    def test_terminal_states(self, state: SessionState, terminal: bool) -> None:
        assert state.is_terminal is terminal

    @pytest.mark.parametrize("interval", [float("inf"), float("nan"), -0.5])
    def test_polling_rejects_unusable_interval(self, interval: float) -> None:
        with pytest.raises(ValidationError):
            PollingPolicy(interval=interval)
