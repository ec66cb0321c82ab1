"""Built-in CLI commands for edpear.

* :mod:`~edpear.commands.auth` -- ``login`` (alias ``command-line``),
  ``status`` and ``logout``.
* :mod:`~edpear.commands.keys` -- ``generate-key``.

Each module exports plain callback functions registered directly on the
root app. The credential is loaded once by the root callback and handed to
commands through the Typer context; :func:`session_state` reads it back.
"""

from __future__ import annotations

from typing import NoReturn

import typer

from edpear.auth.credential_store import CredentialStore
from edpear.exceptions import (
    EdpearError,
    LoginExpiredError,
    LoginTimeoutError,
)
from edpear.models import Credential
from edpear.output import error, suggest


def session_state(ctx: typer.Context) -> tuple[CredentialStore, Credential]:
    """Return the ``(store, credential)`` pair set up by the root callback.

    Falls back to loading from the default location when a command is
    invoked without the root callback (e.g. from a test harness).
    """
    ctx.ensure_object(dict)
    store = ctx.obj.get("store")
    if store is None:
        store = ctx.obj["store"] = CredentialStore()
    credential = ctx.obj.get("credential")
    if credential is None:
        credential = ctx.obj["credential"] = store.load()
    return store, credential


def no_input(ctx: typer.Context) -> bool:
    """Whether ``--no-input`` was passed on the root command."""
    return bool(ctx.obj.get("no_input", False)) if ctx.obj else False


def exit_with(exc: EdpearError) -> NoReturn:
    """Print *exc* with a next-step hint and exit with its code."""
    error(str(exc))
    if isinstance(exc, (LoginExpiredError, LoginTimeoutError)):
        suggest("Start over: edpear login")
    raise typer.Exit(code=exc.exit_code)
