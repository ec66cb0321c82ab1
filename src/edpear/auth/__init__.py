"""Session handling for edpear.

The main entry points are:

- :class:`CredentialStore` -- the persisted token, cached user and cached
  API keys.
- :class:`LoginSession` -- the browser-approval handshake that produces a
  token and writes it through the store.

Typical usage::

    from edpear.auth import CredentialStore, LoginSession
    from edpear.client import ApiClient

    store = CredentialStore()
    credential = store.load()
    with ApiClient(credential) as client:
        LoginSession(client, store, credential).run()
"""

from edpear.auth.credential_store import CredentialStore
from edpear.auth.session import LoginSession, open_in_browser

__all__ = [
    "CredentialStore",
    "LoginSession",
    "open_in_browser",
]
