"""Authentication state snapshots published by the flow controller."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pkceflow.models.tokens import TokenResponse


class AuthStatus(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


class ErrorKind(str, Enum):
    """Why an authentication attempt ended in FAILED."""

    INTERNAL_ERROR = "internal_error"
    AUTHENTICATION_FAILED = "authentication_failed"
    TOKEN_EXCHANGE_FAILED = "token_exchange_failed"


@dataclass(frozen=True)
class AuthenticationState:
    """Immutable snapshot of the authentication state.

    Use the classmethod constructors rather than building instances by hand;
    they keep ``token`` and ``error_kind`` consistent with ``status``.
    """

    status: AuthStatus
    token: TokenResponse | None = None
    error_kind: ErrorKind | None = None
    error: Exception | None = field(default=None, compare=False)

    @classmethod
    def unauthenticated(cls) -> AuthenticationState:
        return cls(AuthStatus.UNAUTHENTICATED)

    @classmethod
    def authenticating(cls) -> AuthenticationState:
        return cls(AuthStatus.AUTHENTICATING)

    @classmethod
    def authenticated(cls, token: TokenResponse) -> AuthenticationState:
        return cls(AuthStatus.AUTHENTICATED, token=token)

    @classmethod
    def failed(
        cls, kind: ErrorKind, error: Exception | None = None
    ) -> AuthenticationState:
        return cls(AuthStatus.FAILED, error_kind=kind, error=error)

    @property
    def is_terminal(self) -> bool:
        return self.status in (AuthStatus.AUTHENTICATED, AuthStatus.FAILED)

    def __str__(self) -> str:
        if self.status is AuthStatus.FAILED:
            return f"Failed with {self.error_kind.value}"
        return self.status.value.capitalize()
