"""API key commands.

``generate-key`` asks the service for a new key, mirrors it in the local
credential, prints it once, and can write it to ``./.env.local`` as
``EDPEAR_API_KEY`` for the current project.
"""

from __future__ import annotations

from typing import Optional

import typer
from pydantic import ValidationError

from edpear.client import ApiClient
from edpear.commands import exit_with, no_input, session_state
from edpear.config import ENV_LOCAL_FILENAME, save_api_key_to_env_file
from edpear.exceptions import EdpearError, NotAuthenticatedError, ServerError
from edpear.exit_codes import EXIT_INVALID_USAGE
from edpear.models import ApiKey
from edpear.output import error, info, print_data, spinner, success, warning

DEFAULT_KEY_NAME = "My API Key"


def generate_key_command(
    ctx: typer.Context,
    name: Optional[str] = typer.Option(
        None, "--name", help="Name for the new key. Prompted for when omitted."
    ),
    save_env: Optional[bool] = typer.Option(
        None,
        "--save-env/--no-save-env",
        help=f"Write the key to {ENV_LOCAL_FILENAME} without asking.",
    ),
) -> None:
    """Generate a new API key.

    Requires a stored session. The key is shown once; keep it somewhere
    safe.

    Args:
        ctx: Typer invocation context.
        name: Key name. With ``--no-input`` the default name is used.
        save_env: Skip the confirmation and write (or do not write) the
            key to ``.env.local``.

    Raises:
        typer.Exit: With code 3 when not logged in or the session was
            rejected, code 2 for an empty name, or the API error's code.

    Example::

        edpear generate-key --name "CI key" --no-save-env
    """
    store, credential = session_state(ctx)
    if not credential.is_authenticated:
        exit_with(NotAuthenticatedError())

    interactive = not no_input(ctx)
    info("Generate New API Key")

    if name is None:
        name = _prompt_key_name() if interactive else DEFAULT_KEY_NAME
    name = name.strip()
    if not name:
        error("Name is required")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    try:
        with ApiClient(credential) as client, spinner("Generating API key..."):
            data = client.post("/api/keys/generate", json_body={"name": name})
        api_key = _parse_api_key(data)
    except EdpearError as exc:
        error("Failed to generate API key")
        exit_with(exc)

    credential.api_keys.append(api_key)
    store.save(credential)

    success("API key generated successfully!")
    info("Your new API key:")
    print_data(api_key.key)
    warning("Save this key securely. It will not be shown again.")

    if save_env is None:
        save_env = (
            typer.confirm(f"Save API key to {ENV_LOCAL_FILENAME} file?", default=True)
            if interactive
            else True
        )
    if save_env:
        try:
            path = save_api_key_to_env_file(api_key.key)
        except OSError as exc:
            error(f"Error saving to {ENV_LOCAL_FILENAME}: {exc}")
        else:
            success(f"API key saved to {path.name}")


def _prompt_key_name() -> str:
    while True:
        value = typer.prompt("Enter a name for your API key", default=DEFAULT_KEY_NAME)
        if value.strip():
            return value
        error("Name is required")


def _parse_api_key(payload: object) -> ApiKey:
    """Extract ``apiKey`` from a ``/api/keys/generate`` response."""
    if not isinstance(payload, dict) or not payload.get("apiKey"):
        raise ServerError("Response is missing 'apiKey'")
    try:
        return ApiKey.model_validate(payload["apiKey"])
    except ValidationError as exc:
        raise ServerError(f"Unexpected API key payload: {exc}") from exc
