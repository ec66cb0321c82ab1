"""Browser-approval login handshake.

Flow:
    1. POST ``/api/auth/cli/init`` (unauthenticated) to register an approval
       request and receive ``requestId`` + ``url``.
    2. Open ``url`` in the user's browser. Failing to open it is not fatal;
       the URL is printed so it can be copied by hand.
    3. Poll ``/api/auth/cli/status?requestId=...`` at a fixed interval, up to
       a fixed number of attempts. A poll that fails at the network or HTTP
       level uses up its attempt and the loop carries on.
    4. On ``completed`` with a ``cliToken``: write token and user into the
       :class:`~edpear.models.Credential` and persist it.

The three ways a handshake can fail stay distinct:

* :class:`~edpear.exceptions.InitiationError` -- step 1 failed; nothing was
  registered server-side, so there is no retry.
* :class:`~edpear.exceptions.LoginExpiredError` -- the server declared the
  request expired; polling stops at once.
* :class:`~edpear.exceptions.LoginTimeoutError` -- the polling budget ran
  out on the client side.

See Also:
    :class:`~edpear.models.PollingPolicy` for the attempt budget.
"""

from __future__ import annotations

import time
import webbrowser
from typing import Callable, Optional

from pydantic import ValidationError

from edpear.auth.credential_store import CredentialStore
from edpear.client import ApiClient
from edpear.exceptions import (
    ApiError,
    InitiationError,
    LoginExpiredError,
    LoginTimeoutError,
    ServerError,
)
from edpear.models import (
    AuthSession,
    AuthStatus,
    Credential,
    InitResponse,
    PollingPolicy,
    SessionState,
    StatusResponse,
)
from edpear.output import debug

INIT_ENDPOINT = "/api/auth/cli/init"
STATUS_ENDPOINT = "/api/auth/cli/status"


def open_in_browser(url: str) -> bool:
    """Open *url* with the platform's default browser.

    Returns:
        ``True`` if a browser was launched, ``False`` otherwise.
    """
    try:
        return webbrowser.open(url)
    except (webbrowser.Error, OSError) as exc:
        debug(f"Could not launch a browser: {exc}")
        return False


class LoginSession:
    """Drive one login handshake from ``NOT_STARTED`` to a terminal state.

    One instance handles exactly one handshake. The credential is mutated
    in place on success and written through *store*.

    Args:
        client: An open :class:`~edpear.client.ApiClient`. All handshake
            calls are sent unauthenticated.
        store: Where the credential is persisted on success.
        credential: The in-memory credential owned by the caller.
        policy: Polling interval and attempt budget.
        open_browser: Callable that opens the approval URL and returns
            whether it succeeded. Its result is informational only.
        sleep: Called with ``policy.interval`` before every poll. Tests
            pass a no-op.

    Example::

        with ApiClient(credential) as client:
            LoginSession(client, store, credential).run()
    """

    def __init__(
        self,
        client: ApiClient,
        store: CredentialStore,
        credential: Credential,
        policy: Optional[PollingPolicy] = None,
        open_browser: Callable[[str], bool] = open_in_browser,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._store = store
        self._credential = credential
        self._policy = policy or PollingPolicy()
        self._open_browser = open_browser
        self._sleep = sleep
        self._state = SessionState.NOT_STARTED
        self._session: Optional[AuthSession] = None

    @property
    def state(self) -> SessionState:
        """Current :class:`~edpear.models.SessionState`."""
        return self._state

    @property
    def session(self) -> Optional[AuthSession]:
        """The active :class:`~edpear.models.AuthSession`, once initiated."""
        return self._session

    def run(self) -> Credential:
        """Run the whole handshake and return the updated credential.

        Raises:
            InitiationError: If the approval request could not be created.
            LoginExpiredError: If the server reports the request expired.
            LoginTimeoutError: If the polling budget is exhausted.
        """
        self.initiate()
        self.open_approval()
        result = self.poll()
        self.complete(result)
        return self._credential

    def initiate(self) -> AuthSession:
        """Register a new approval request with the service.

        Returns:
            The new :class:`~edpear.models.AuthSession`.

        Raises:
            InitiationError: On any client error or an incomplete response.
        """
        try:
            data = self._client.post(INIT_ENDPOINT, authenticated=False)
            init = InitResponse.model_validate(data)
        except ApiError as exc:
            self._state = SessionState.FAILED
            raise InitiationError(exc) from exc
        except ValidationError as exc:
            self._state = SessionState.FAILED
            raise InitiationError(
                ServerError("response is missing 'requestId' or 'url'")
            ) from exc

        self._session = AuthSession(
            request_id=init.request_id,
            approval_url=init.url,
            attempts_max=self._policy.max_attempts,
        )
        self._state = SessionState.INITIATED
        debug(f"Approval request {init.request_id} created")
        return self._session

    def open_approval(self) -> bool:
        """Open the approval URL. Never raises and never blocks polling."""
        session = self._require_session()
        try:
            opened = bool(self._open_browser(session.approval_url))
        except (webbrowser.Error, OSError) as exc:
            debug(f"Browser opener failed: {exc}")
            opened = False
        return opened

    def poll(
        self, on_attempt: Optional[Callable[[int, int], None]] = None
    ) -> StatusResponse:
        """Poll the approval status until a terminal state is reached.

        Args:
            on_attempt: Optional callback receiving
                ``(attempt, max_attempts)`` after every poll.

        Returns:
            The ``completed`` status response carrying the token.

        Raises:
            LoginExpiredError: As soon as the server reports ``expired``.
            LoginTimeoutError: After ``attempts_max`` polls without a
                terminal answer.
        """
        session = self._require_session()
        self._state = SessionState.POLLING

        while session.attempts_used < session.attempts_max:
            self._sleep(self._policy.interval)
            session.attempts_used += 1
            result = self._check_status(session)
            if on_attempt is not None:
                on_attempt(session.attempts_used, session.attempts_max)

            if result is None:
                continue
            if result.status == AuthStatus.COMPLETED.value and result.cli_token:
                session.status = AuthStatus.COMPLETED
                self._state = SessionState.COMPLETED
                return result
            if result.status == AuthStatus.EXPIRED.value:
                session.status = AuthStatus.EXPIRED
                self._state = SessionState.EXPIRED
                raise LoginExpiredError()

        self._state = SessionState.TIMED_OUT
        raise LoginTimeoutError(session.attempts_used)

    def complete(self, result: StatusResponse) -> Credential:
        """Write the token and user from *result* into the credential and save it.

        A failed save is reported by the store; the in-memory credential
        keeps the new token either way.
        """
        self._credential.token = result.cli_token
        self._credential.user = result.user
        self._store.save(self._credential)
        return self._credential

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _check_status(self, session: AuthSession) -> Optional[StatusResponse]:
        """One status poll. Returns ``None`` when the poll itself failed."""
        try:
            data = self._client.get(
                STATUS_ENDPOINT,
                params={"requestId": session.request_id},
                authenticated=False,
            )
            return _parse_status(data)
        except (ApiError, ValidationError) as exc:
            debug(f"Status check {session.attempts_used} failed: {exc}")
            return None

    def _require_session(self) -> AuthSession:
        if self._session is None:
            raise RuntimeError("initiate() must succeed before the session can be used")
        return self._session


def _parse_status(data: object) -> StatusResponse:
    """Validate a status payload, dropping a ``user`` block that does not validate.

    The token is handed out only once, so a malformed profile must not cost
    the caller a completed login.
    """
    try:
        return StatusResponse.model_validate(data)
    except ValidationError as exc:
        if not isinstance(data, dict) or "user" not in data:
            raise
        result = StatusResponse.model_validate(
            {key: value for key, value in data.items() if key != "user"}
        )
        debug(f"Ignoring unreadable user in status response: {exc}")
        return result
