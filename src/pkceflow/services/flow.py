"""Authorization code + PKCE flow orchestration.

Coordinates code generation, authorization URL construction, the browser
redirect handshake and the token exchange, and publishes every state change
of the attempt to subscribers.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from typing import Callable

from pkceflow.config import FlowConfiguration
from pkceflow.models.errors import (
    AttemptSupersededError,
    AuthenticationFailedError,
    InvalidEndpointConfigError,
    PKCEFlowError,
    TokenExchangeFailedError,
    UserCancelledError,
)
from pkceflow.models.security import PKCEParameters
from pkceflow.models.state import AuthenticationState, ErrorKind
from pkceflow.models.tokens import TokenResponse
from pkceflow.primitives.callback import extract_authorization_code
from pkceflow.primitives.pkce import PKCECodeGenerator
from pkceflow.primitives.request_builder import PKCERequestBuilder
from pkceflow.services.browser import BrowserAuthenticator
from pkceflow.services.tokens import TokenExchangeClient

logger = logging.getLogger(__name__)

StateCallback = Callable[[AuthenticationState], None]


@dataclass
class _Attempt:
    """Secrets and bookkeeping owned by one authentication attempt."""

    attempt_id: int
    pkce: PKCEParameters | None = field(default=None, repr=False)
    csrf_state: str | None = field(default=None, repr=False)
    task: asyncio.Task | None = field(default=None, repr=False)
    # Failure kind reported if the attempt is interrupted in its current phase
    phase: ErrorKind = ErrorKind.INTERNAL_ERROR
    superseded: bool = False
    outcome: AuthenticationState | None = None

    def release(self) -> None:
        self.pkce = None
        self.csrf_state = None


class AuthFlowController:
    """State machine for the OAuth 2.0 authorization code flow with PKCE.

    States move UNAUTHENTICATED -> AUTHENTICATING -> AUTHENTICATED | FAILED.
    Each call to start_authentication() is a fresh attempt with new secrets;
    nothing is retried automatically.

    Only one attempt is in flight at a time. Starting a new attempt
    supersedes the previous one: its verifier is dropped, its task is
    cancelled and it never publishes again, so a late callback cannot
    complete it.

    Subscribers are plain callables receiving AuthenticationState snapshots
    in publish order. No subscriber is needed to drive the machine.
    """

    def __init__(
        self,
        config: FlowConfiguration,
        browser: BrowserAuthenticator,
        token_client: TokenExchangeClient | None = None,
        code_generator: PKCECodeGenerator | None = None,
        request_builder: PKCERequestBuilder | None = None,
    ):
        """Initialize the flow controller.

        Args:
            config: Provider endpoints and client identity
            browser: Capability that shows the authorization URL to the user
                and returns the redirect callback URL
            token_client: Token endpoint client, created from config when omitted
            code_generator: PKCE generator, replaceable for tests
            request_builder: Request builder, created from config when omitted
        """
        self._config = config
        self._browser = browser
        self._request_builder = request_builder or PKCERequestBuilder(config)
        self._token_client = token_client or TokenExchangeClient(
            config, self._request_builder
        )
        self._code_generator = code_generator or PKCECodeGenerator()

        self._state = AuthenticationState.unauthenticated()
        self._subscribers: list[StateCallback] = []
        self._attempt: _Attempt | None = None
        self._attempt_ids = itertools.count(1)

    @property
    def state(self) -> AuthenticationState:
        """Current state snapshot."""
        return self._state

    @property
    def is_authenticating(self) -> bool:
        return self._attempt is not None and self._attempt.outcome is None

    def subscribe(self, callback: StateCallback) -> Callable[[], None]:
        """Register a callback for state changes.

        The callback is called immediately with the current state, then with
        every later state. Exceptions raised by a callback are logged and do
        not reach the controller or other subscribers.

        Returns:
            A function that removes the subscription
        """
        self._subscribers.append(callback)
        self._deliver(callback, self._state)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def start_authentication(self) -> AuthenticationState:
        """Run one complete authentication attempt.

        Returns:
            The terminal state of this attempt: AUTHENTICATED with the token,
            or FAILED with the error kind and the original exception. A
            superseded attempt returns FAILED with AttemptSupersededError.

        Raises:
            asyncio.CancelledError: If the awaiting task is cancelled. The
                attempt is marked FAILED before the cancellation propagates.
        """
        self._supersede_current_attempt()

        attempt = _Attempt(attempt_id=next(self._attempt_ids))
        self._attempt = attempt
        logger.debug(f"Starting authentication attempt {attempt.attempt_id}")
        self._publish(attempt, AuthenticationState.authenticating())

        attempt.task = asyncio.create_task(self._run_attempt(attempt))
        try:
            return await attempt.task
        except asyncio.CancelledError:
            outcome = self._interrupt(attempt)
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            return outcome

    async def cancel(self) -> None:
        """Cancel the in-flight attempt, if any.

        The attempt ends in FAILED with UserCancelledError and its verifier is
        released. Does nothing when no attempt is running.
        """
        attempt = self._attempt
        if attempt is None or attempt.task is None or attempt.task.done():
            return

        logger.info(f"Cancelling authentication attempt {attempt.attempt_id}")
        attempt.task.cancel()
        await asyncio.gather(attempt.task, return_exceptions=True)
        self._interrupt(attempt)

    async def _run_attempt(self, attempt: _Attempt) -> AuthenticationState:
        try:
            return await self._authenticate(attempt)
        except asyncio.CancelledError:
            self._interrupt(attempt)
            raise
        finally:
            attempt.release()

    async def _authenticate(self, attempt: _Attempt) -> AuthenticationState:
        # 1. Fresh PKCE secrets and authorization URL
        try:
            attempt.pkce = self._code_generator.generate_parameters()
            attempt.csrf_state = self._code_generator.generate_state()
            authorization_url = self._request_builder.build_authorization_url(
                attempt.pkce.code_challenge, attempt.csrf_state
            )
        except (PKCEFlowError, ValueError) as e:
            logger.error(f"Can't build authorization URL: {e}")
            return self._finish(
                attempt, AuthenticationState.failed(ErrorKind.INTERNAL_ERROR, e)
            )

        logger.debug(f"Authenticating with: {authorization_url}")

        # 2. Browser handshake
        attempt.phase = ErrorKind.AUTHENTICATION_FAILED
        try:
            callback_url = await self._browser.authenticate(
                authorization_url, self._config.callback_scheme
            )
        except AuthenticationFailedError as e:
            logger.warning(f"Authentication failed with: {e}")
            return self._finish(
                attempt, AuthenticationState.failed(ErrorKind.AUTHENTICATION_FAILED, e)
            )
        except Exception as e:
            logger.warning(f"Browser authentication error: {e}")
            error = AuthenticationFailedError(f"Browser authentication error: {e}")
            error.__cause__ = e
            return self._finish(
                attempt,
                AuthenticationState.failed(ErrorKind.AUTHENTICATION_FAILED, error),
            )

        if self._is_stale(attempt):
            return self._finish(attempt, None)

        # 3. Callback parsing
        logger.debug("Received authorization callback")
        try:
            code = extract_authorization_code(
                callback_url, self._config.callback_scheme, attempt.csrf_state
            )
        except AuthenticationFailedError as e:
            logger.warning(f"Callback URL rejected: {e}")
            return self._finish(
                attempt, AuthenticationState.failed(ErrorKind.AUTHENTICATION_FAILED, e)
            )

        # 4. Token exchange
        attempt.phase = ErrorKind.TOKEN_EXCHANGE_FAILED
        try:
            token = await self._token_client.exchange(code, attempt.pkce.code_verifier)
        except InvalidEndpointConfigError as e:
            logger.error(f"Can't build token exchange request: {e}")
            return self._finish(
                attempt, AuthenticationState.failed(ErrorKind.INTERNAL_ERROR, e)
            )
        except Exception as e:
            logger.warning(f"Get token failed with: {e}")
            error = TokenExchangeFailedError(f"Token exchange failed: {e}")
            error.__cause__ = e
            return self._finish(
                attempt,
                AuthenticationState.failed(ErrorKind.TOKEN_EXCHANGE_FAILED, error),
            )

        return self._finish(attempt, self._authenticated(token))

    def _authenticated(self, token: TokenResponse) -> AuthenticationState:
        logger.info(
            f"Authentication succeeded (token_type={token.token_type}, "
            f"expires_in={token.expires_in}, "
            f"refresh_token={'yes' if token.refresh_token else 'no'})"
        )
        return AuthenticationState.authenticated(token)

    def _finish(
        self, attempt: _Attempt, state: AuthenticationState | None
    ) -> AuthenticationState:
        """Record the terminal state of an attempt, exactly once.

        A superseded attempt gets a private FAILED outcome that is never
        published.
        """
        if attempt.outcome is not None:
            return attempt.outcome

        if state is None or self._is_stale(attempt):
            logger.debug(f"Discarding result of superseded attempt {attempt.attempt_id}")
            state = AuthenticationState.failed(
                ErrorKind.AUTHENTICATION_FAILED,
                AttemptSupersededError(
                    f"Attempt {attempt.attempt_id} was superseded by a newer attempt"
                ),
            )
            attempt.outcome = state
        else:
            attempt.outcome = state
            self._publish(attempt, state)

        attempt.release()
        return state

    def _interrupt(self, attempt: _Attempt) -> AuthenticationState:
        if attempt.outcome is not None:
            return attempt.outcome
        return self._finish(
            attempt,
            AuthenticationState.failed(
                attempt.phase, UserCancelledError("Authentication cancelled")
            ),
        )

    def _supersede_current_attempt(self) -> None:
        previous = self._attempt
        if previous is None or previous.outcome is not None:
            return

        logger.info(f"Superseding authentication attempt {previous.attempt_id}")
        previous.superseded = True
        previous.release()
        if previous.task is not None and not previous.task.done():
            previous.task.cancel()

    def _is_stale(self, attempt: _Attempt) -> bool:
        return attempt.superseded or attempt is not self._attempt

    def _publish(self, attempt: _Attempt, state: AuthenticationState) -> None:
        if self._is_stale(attempt):
            return

        logger.debug(f"Authentication state: {state}")
        self._state = state
        for callback in list(self._subscribers):
            self._deliver(callback, state)

    def _deliver(self, callback: StateCallback, state: AuthenticationState) -> None:
        try:
            callback(state)
        except Exception as e:
            logger.warning(f"State subscriber failed: {e}")
