"""Persistent credential store.

Stores the session in ``~/.edpear/config.json`` (or under
``$EDPEAR_CONFIG_DIR``). Files are written atomically via
:func:`~edpear.config._atomic_write` with ``0o600`` permissions so that the
bearer token is never world-readable, even momentarily.

Reads never fail: a missing file (first run) and an unreadable or corrupt
file both load as an empty :class:`~edpear.models.Credential`. The corrupt
case is reported on the ``--verbose`` debug channel only.

No locking is done across processes. Two concurrent invocations writing the
same file resolve as last-writer-wins.

See Also:
    :class:`~edpear.auth.session.LoginSession` -- writes the token on login.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from edpear.config import _atomic_write, get_credentials_path
from edpear.models import Credential
from edpear.output import debug, error


class CredentialStore:
    """Read/write the locally persisted :class:`~edpear.models.Credential`.

    Args:
        path: Override for the credential file location. Defaults to
            :func:`~edpear.config.get_credentials_path`, resolved at
            construction time.

    Example::

        store = CredentialStore(tmp_path / "config.json")
        store.save(Credential(token="tok123"))
        assert store.load().token == "tok123"
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = path or get_credentials_path()

    @property
    def path(self) -> Path:
        """The filesystem path to the credential file."""
        return self._path

    def load(self) -> Credential:
        """Load the stored credential from disk.

        Returns:
            The deserialised :class:`~edpear.models.Credential`, or an empty
            one if the file does not exist or cannot be read or parsed.
        """
        if not self._path.is_file():
            return Credential()
        try:
            text = self._path.read_text(encoding="utf-8")
            data = json.loads(text)
            return Credential.model_validate(data)
        except (OSError, ValueError, RecursionError, ValidationError) as exc:
            debug(f"Ignoring unreadable credential file {self._path}: {exc}")
            return Credential()

    def save(self, credential: Credential) -> bool:
        """Persist *credential* atomically with ``0o600`` permissions.

        A write failure is reported on stderr but not raised: the caller's
        in-memory credential stays as it is.

        Args:
            credential: The credential to write.

        Returns:
            ``True`` if the file was written, ``False`` otherwise.
        """
        text = json.dumps(credential.to_json_dict(), indent=2) + "\n"
        try:
            _atomic_write(self._path, text, mode=0o600)
        except OSError as exc:
            error(f"Could not save credentials to {self._path}: {exc}")
            return False
        debug(f"Saved credentials to {self._path}")
        return True

    def clear(self, credential: Optional[Credential] = None) -> bool:
        """Write back an empty credential.

        Args:
            credential: In-memory credential to reset as well, so callers
                holding a reference do not keep showing stale data.

        Returns:
            ``True`` if the file was written, ``False`` otherwise.
        """
        if credential is not None:
            credential.reset()
        return self.save(Credential())
