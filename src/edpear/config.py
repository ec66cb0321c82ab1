"""Configuration: directories, environment, polling policy and atomic writes.

This module handles every persistent or environment-derived setting:

* **Directory layout** -- credentials live in ``~/.edpear/config.json``;
  ``EDPEAR_CONFIG_DIR`` relocates the whole directory. Crash logs go to a
  ``logs/`` subdirectory. See :func:`get_config_dir`.
* **API origin** -- :func:`resolve_api_url` honours ``EDPEAR_API_URL``.
* **Polling policy** -- :func:`load_polling_policy` reads
  ``EDPEAR_POLL_INTERVAL`` and ``EDPEAR_POLL_MAX_ATTEMPTS``.
* **Environment files** -- :func:`load_env_files` loads ``.env`` and
  ``.env.local`` from the working directory, and
  :func:`save_api_key_to_env_file` writes a generated key back.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) so a concurrent reader never sees a partial file.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv, set_key
from pydantic import ValidationError

from edpear.exceptions import ConfigError
from edpear.models import PollingPolicy

_APP_NAME = "edpear"
_CONFIG_FILENAME = "config.json"
ENV_LOCAL_FILENAME = ".env.local"
API_KEY_ENV_VAR = "EDPEAR_API_KEY"

DEFAULT_API_URL = "https://edpearofficial.vercel.app"


# --- Paths ---


def get_config_dir() -> Path:
    """Return the per-user configuration directory.

    ``$EDPEAR_CONFIG_DIR`` when set, ``~/.edpear/`` otherwise. The directory
    is not created here; writers create it on demand so that read-only
    commands never fail on a missing or unwritable home directory.

    Returns:
        Absolute path to the configuration directory.
    """
    env_value = os.environ.get("EDPEAR_CONFIG_DIR", "")
    if env_value:
        return Path(env_value).expanduser()
    return Path.home() / f".{_APP_NAME}"


def get_credentials_path() -> Path:
    """Path to the JSON file holding the stored :class:`~edpear.models.Credential`."""
    return get_config_dir() / _CONFIG_FILENAME


def get_logs_dir() -> Path:
    """Return the crash-log directory, creating it if necessary."""
    path = get_config_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Environment ---


def resolve_api_url() -> str:
    """Return the API origin: ``EDPEAR_API_URL`` or :data:`DEFAULT_API_URL`.

    Trailing slashes are stripped so endpoint paths can be appended directly.
    """
    url = os.environ.get("EDPEAR_API_URL") or DEFAULT_API_URL
    return url.rstrip("/")


def load_polling_policy() -> PollingPolicy:
    """Build the login :class:`~edpear.models.PollingPolicy` from the environment.

    Raises:
        ConfigError: If ``EDPEAR_POLL_INTERVAL`` or
            ``EDPEAR_POLL_MAX_ATTEMPTS`` is set to an invalid value.
    """
    values: dict[str, str] = {}
    interval = os.environ.get("EDPEAR_POLL_INTERVAL")
    if interval:
        values["interval"] = interval
    max_attempts = os.environ.get("EDPEAR_POLL_MAX_ATTEMPTS")
    if max_attempts:
        values["max_attempts"] = max_attempts
    try:
        return PollingPolicy.model_validate(values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid polling configuration: {exc}") from exc


def load_env_files(directory: Optional[Path] = None) -> None:
    """Load ``.env`` then ``.env.local`` from *directory* (default: cwd).

    Variables already present in the process environment win over values
    from either file.
    """
    base = directory or Path.cwd()
    for name in (".env", ENV_LOCAL_FILENAME):
        path = base / name
        if path.is_file():
            load_dotenv(dotenv_path=path, override=False)


def save_api_key_to_env_file(api_key: str, path: Optional[Path] = None) -> Path:
    """Write ``EDPEAR_API_KEY=<api_key>`` into a dotenv file.

    An existing ``EDPEAR_API_KEY`` line is replaced; every other line is
    kept as-is. The file is created when missing.

    Args:
        api_key: The key to store.
        path: Target file. Defaults to ``./.env.local``.

    Returns:
        The path that was written.
    """
    target = path or (Path.cwd() / ENV_LOCAL_FILENAME)
    target.touch(exist_ok=True)
    set_key(str(target), API_KEY_ENV_VAR, api_key, quote_mode="never")
    return target


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. When *mode* is
    given it is applied to the temp file before any content is written.
    On any failure the temp file is cleaned up and the error re-raised.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise
