"""Shared test fixtures for edpear.

Provides an isolated configuration directory, a scriptable fake EdPear
API served through :class:`httpx.MockTransport`, output-state management
and a CLI runner. These fixtures are automatically discovered by pytest
and available to all test modules without explicit imports.
"""

from __future__ import annotations

import functools
from pathlib import Path
from typing import Any, Callable, Union

import httpx
import pytest
from typer.testing import CliRunner

from edpear.auth.credential_store import CredentialStore
from edpear.client import ApiClient
from edpear.models import ApiKey, Credential, User
from edpear.output import OutputFormat, OutputManager, reset_output, set_output


_EDPEAR_ENV_VARS = (
    "EDPEAR_API_URL",
    "EDPEAR_API_KEY",
    "EDPEAR_CONFIG_DIR",
    "EDPEAR_POLL_INTERVAL",
    "EDPEAR_POLL_MAX_ATTEMPTS",
)


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file").  Resetting forces a fresh manager
    to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Isolated config directory
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the config directory at a temp dir and run from a clean cwd.

    Every ``EDPEAR_*`` variable is removed from the environment so the
    developer's own settings never leak into a test. ``load_dotenv`` writes
    straight into ``os.environ``; setting each variable through monkeypatch
    first makes sure teardown removes whatever a test loaded.

    Returns:
        The temporary working directory. Credentials live in its
        ``config/`` subdirectory.
    """
    for name in _EDPEAR_ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)

    config_dir = tmp_path / "config"
    monkeypatch.setenv("EDPEAR_CONFIG_DIR", str(config_dir))
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def credentials_path(isolated_config: Path) -> Path:
    """Location of the credential file inside :func:`isolated_config`."""
    return isolated_config / "config" / "config.json"


@pytest.fixture
def store(credentials_path: Path) -> CredentialStore:
    """A :class:`CredentialStore` bound to the isolated credential file."""
    return CredentialStore(credentials_path)


@pytest.fixture
def signed_in(store: CredentialStore) -> Credential:
    """Persist and return a logged-in credential with one cached key."""
    credential = Credential(
        token="tok_live_123",
        user=User(id="u1", name="Ada", email="ada@example.com", credits=42),
        api_keys=[ApiKey(id="k1", key="ep_first", name="First", created_at="2024-01-02T03:04:05Z")],
    )
    assert store.save(credential)
    return credential


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet, colourless OutputManager for unit tests."""
    mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
    set_output(mgr)
    return mgr


# ---------------------------------------------------------------------------
# Fake API
# ---------------------------------------------------------------------------


Reply = Union[tuple[int, Any], Exception, Callable[[httpx.Request], httpx.Response]]


class FakeApi:
    """Scriptable stand-in for the EdPear API.

    Replies are queued per ``(method, path)``. Each request consumes the
    next reply; the last one is repeated once the queue is down to it.
    A reply is a ``(status_code, json_payload)`` tuple, an exception to
    raise from the transport, or a callable building a response.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[Reply]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, *replies: Reply) -> None:
        self.routes.setdefault((method.upper(), path), []).extend(replies)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [
            r for r in self.requests if r.method == method.upper() and r.url.path == path
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"error": f"no route for {request.url.path}"})
        reply = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(request)
        status_code, payload = reply
        if payload is None:
            return httpx.Response(status_code)
        if isinstance(payload, str):
            return httpx.Response(status_code, text=payload)
        return httpx.Response(status_code, json=payload)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def client(self, credential: Credential | None = None) -> ApiClient:
        """An :class:`ApiClient` wired to this fake (not yet entered)."""
        return ApiClient(credential, transport=self.transport)


@pytest.fixture
def fake_api() -> FakeApi:
    """A fresh :class:`FakeApi` with no routes."""
    return FakeApi()


@pytest.fixture
def cli_api(fake_api: FakeApi, monkeypatch: pytest.MonkeyPatch) -> FakeApi:
    """Route every command's :class:`ApiClient` through :func:`fake_api`."""
    patched = functools.partial(ApiClient, transport=fake_api.transport)
    monkeypatch.setattr("edpear.commands.auth.ApiClient", patched)
    monkeypatch.setattr("edpear.commands.keys.ApiClient", patched)
    return fake_api


# ---------------------------------------------------------------------------
# CLI runner
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner(isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> CliRunner:
    """A Typer CliRunner with plain output, no real browser and no waiting."""
    monkeypatch.setenv("NO_COLOR", "1")
    monkeypatch.setenv("EDPEAR_POLL_INTERVAL", "0")
    monkeypatch.setattr("edpear.auth.session.webbrowser.open", lambda url: True)
    return CliRunner()
