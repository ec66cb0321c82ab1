"""HTTP client for the EdPear API.

:class:`ApiClient` wraps :class:`httpx.Client` with bearer-token injection
and maps HTTP and transport failures onto the
:mod:`edpear.exceptions` hierarchy.

Usage::

    from edpear.client import ApiClient

    with ApiClient(credential) as client:
        keys = client.get("/api/keys/list")
"""

from edpear.client.sync_client import ApiClient

__all__ = ["ApiClient"]
