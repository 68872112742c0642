"""Exception hierarchy for the PKCE authorization code flow.

Provides specific exception types for each failure mode so callers can
tell a cancelled login from a rejected token request or an expired token.
"""

from __future__ import annotations


class PKCEFlowError(Exception):
    """Base exception for all PKCE flow errors."""

    pass


class ConfigurationError(PKCEFlowError):
    """Raised when the flow configuration cannot be loaded."""

    pass


class RandomSourceUnavailableError(PKCEFlowError):
    """Raised when the OS cryptographic random source is unavailable."""

    pass


class PKCEEncodingError(PKCEFlowError):
    """Raised when a code verifier cannot be encoded for hashing."""

    pass


class InvalidEndpointConfigError(PKCEFlowError):
    """Raised when a configured endpoint is not a well-formed URL."""

    pass


class AuthenticationFailedError(PKCEFlowError):
    """Raised when the user-facing authorization step fails.

    Covers browser errors, a missing or malformed callback URL and
    authorization server error responses.
    """

    pass


class UserCancelledError(AuthenticationFailedError):
    """Raised when the user dismisses the browser authorization."""

    pass


class AttemptSupersededError(AuthenticationFailedError):
    """Raised when a newer authentication attempt replaced this one."""

    pass


class TokenExchangeFailedError(PKCEFlowError):
    """Raised when exchanging the authorization code for a token fails."""

    pass


class NetworkError(PKCEFlowError):
    """Raised on transport-level HTTP failures."""

    pass


class ServerError(PKCEFlowError):
    """Raised when an endpoint answers with an unexpected status code.

    Carries the OAuth ``error`` and ``error_description`` fields when the
    server sent them (RFC 6749 Section 5.2).
    """

    def __init__(
        self,
        status: int,
        error: str | None = None,
        error_description: str | None = None,
    ):
        self.status = status
        self.error = error
        self.error_description = error_description

        message = f"Server responded with status {status}"
        if error:
            message += f": {error}"
            if error_description:
                message += f" ({error_description})"
        super().__init__(message)


class DecodeError(PKCEFlowError):
    """Raised when a response body cannot be decoded."""

    pass


class UnauthorizedError(ServerError):
    """Raised when a resource endpoint rejects the access token (401).

    Never retried here. Refreshing the token is the caller's decision.
    """

    def __init__(self, error: str | None = None, error_description: str | None = None):
        super().__init__(401, error, error_description)
