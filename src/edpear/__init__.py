"""edpear -- command-line client for the EdPear service.

Authenticates through a browser-approval handshake, stores the resulting
session locally, and exposes a small set of account commands on top of it.

Typical workflow::

    edpear login          # approve the request in your browser
    edpear generate-key   # create an API key for your project
    edpear status         # show credits and recent keys

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models for the credential and wire payloads.
    config: Config directory, environment and polling policy resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "1.0.0"
