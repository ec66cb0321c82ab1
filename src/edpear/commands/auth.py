"""Session commands -- log in, inspect the session, log out.

Typical workflow::

    edpear login     # browser approval, token saved locally
    edpear status    # refresh user details and list recent keys
    edpear logout    # wipe the stored credential
"""

from __future__ import annotations

import sys
from datetime import datetime
from typing import Any, Optional

import typer
from pydantic import ValidationError

from edpear.auth.session import LoginSession
from edpear.client import ApiClient
from edpear.commands import exit_with, no_input, session_state
from edpear.config import load_polling_policy
from edpear.exceptions import ApiError, EdpearError, ServerError, UnauthorizedError
from edpear.models import ApiKey, Credential, User
from edpear.output import (
    OutputFormat,
    error,
    format_response,
    get_output,
    info,
    link,
    print_data,
    print_table,
    spinner,
    success,
    suggest,
    warning,
)

STATUS_KEY_LIMIT = 5


def login_command(ctx: typer.Context) -> None:
    """Authenticate with EdPear through your browser.

    Registers an approval request, opens it in the browser and waits
    (about ten minutes at most) for it to be approved. The session token
    is then stored for later commands.

    Example::

        edpear login
    """
    store, credential = session_state(ctx)

    try:
        policy = load_polling_policy()
    except EdpearError as exc:
        exit_with(exc)

    with ApiClient(credential) as client:
        info("EdPear Authentication")
        info(f"Connecting to: {client.base_url}")
        if not no_input(ctx) and sys.stdin.isatty():
            typer.prompt(
                "Press ENTER to open the browser for authentication",
                default="",
                show_default=False,
            )

        login = LoginSession(client, store, credential, policy=policy)
        try:
            session = login.initiate()
            if login.open_approval():
                success("Browser opened!")
            else:
                warning("Could not open a browser. Open this URL manually:")
            link(session.approval_url)
            info("Please login and approve the request in your browser.")

            with spinner("Waiting for approval...") as status:
                result = login.poll(
                    on_attempt=lambda attempt, total: status.update(
                        f"Waiting for approval... ({attempt}/{total})"
                    )
                )
            login.complete(result)
        except EdpearError as exc:
            exit_with(exc)

    success("Successfully authenticated!")
    if credential.user is not None:
        _print_user(credential.user, heading=f"Welcome, {credential.user.name}!")


def status_command(ctx: typer.Context) -> None:
    """Show the signed-in user, credits and latest API keys.

    Refreshes the cached user from the API. If the API cannot be reached,
    the cached user is shown instead.

    Example::

        edpear status
        edpear --json status
    """
    store, credential = session_state(ctx)
    as_json = get_output().format == OutputFormat.JSON
    if not credential.is_authenticated:
        error("Not authenticated")
        suggest('Run "edpear login" to get started')
        if as_json:
            format_response({"authenticated": False})
        return

    try:
        with ApiClient(credential) as client, spinner("Fetching status..."):
            me = client.get("/api/auth/me")
            listing = client.get("/api/keys/list")
        user = _parse_user(me)
        keys = _parse_keys(listing)
    except UnauthorizedError as exc:
        exit_with(exc)
    except ApiError as exc:
        error(f"Failed to fetch status: {exc}")
        if as_json:
            format_response(_status_document(credential.user, credential.api_keys, cached=True))
        else:
            _show_cached(credential)
        return

    if user is not None:
        credential.user = user
        store.save(credential)

    if as_json:
        format_response(_status_document(user, keys))
        return

    if user is not None:
        _print_user(user, heading="EdPear Status")

    if not keys:
        info("No API keys found")
        suggest('Run "edpear generate-key" to create your first API key')
        return

    rows = [
        [
            str(index),
            key.name or "",
            key.key,
            _format_date(key.created_at),
            _usage(key),
        ]
        for index, key in enumerate(keys[:STATUS_KEY_LIMIT], 1)
    ]
    print_table(
        ["#", "Name", "Key", "Created", "Uses"],
        rows,
        title=f"Latest API Keys (Top {STATUS_KEY_LIMIT})",
    )


def logout_command(ctx: typer.Context) -> None:
    """Log out and remove the stored session, user and key cache.

    Example::

        edpear logout
    """
    store, credential = session_state(ctx)
    if not credential.is_authenticated:
        info("You are not logged in.")
        return

    email = credential.user.email if credential.user else None
    store.clear(credential)
    success("Logged out successfully")
    if email:
        info(f"Disconnected from {email}")


# ------------------------------------------------------------------ #
# Helpers
# ------------------------------------------------------------------ #


def _parse_user(payload: Any) -> Optional[User]:
    """Extract ``user`` from an ``/api/auth/me`` response."""
    if not isinstance(payload, dict) or not payload.get("user"):
        return None
    try:
        return User.model_validate(payload["user"])
    except ValidationError as exc:
        raise ServerError(f"Unexpected user payload: {exc}") from exc


def _parse_keys(payload: Any) -> list[ApiKey]:
    """Extract ``apiKeys`` from an ``/api/keys/list`` response."""
    if not isinstance(payload, dict):
        return []
    try:
        return [ApiKey.model_validate(item) for item in payload.get("apiKeys") or []]
    except ValidationError as exc:
        raise ServerError(f"Unexpected key listing: {exc}") from exc


def _print_user(user: User, heading: str) -> None:
    info(heading)
    print_data(f"User: {user.name}")
    print_data(f"Email: {user.email}")
    print_data(f"Credits: {user.credits}")


def _status_document(
    user: Optional[User], keys: list[ApiKey], cached: bool = False
) -> dict[str, Any]:
    """Build the ``status --json`` document. *cached* marks data read from disk."""
    return {
        "authenticated": True,
        "cached": cached,
        "user": user.model_dump(mode="json") if user else None,
        "apiKeys": [k.model_dump(mode="json", by_alias=True) for k in keys],
    }


def _show_cached(credential: Credential) -> None:
    if credential.user is None:
        return
    info("Showing cached data:")
    _print_user(credential.user, heading="EdPear Status (cached)")


def _format_date(value: Optional[str]) -> str:
    """Render an ISO timestamp as a date, passing anything else through."""
    if not value:
        return ""
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date().isoformat()
    except ValueError:
        return value


def _usage(key: ApiKey) -> str:
    extra = key.model_extra or {}
    count = extra.get("usageCount")
    return "" if count is None else str(count)
