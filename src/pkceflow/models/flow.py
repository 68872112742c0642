"""Authorization flow models.

Contains models for authorization requests and callback handling.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AuthorizationRequest:
    """Authorization request parameters (RFC 7636 Section 4.3)."""

    client_id: str
    redirect_uri: str
    scope: str
    code_challenge: str
    code_challenge_method: str = "S256"
    response_type: str = "code"
    access_type: str | None = "offline"
    state: str | None = None

    def to_query_params(self) -> dict[str, str]:
        params = {
            "client_id": self.client_id,
            "code_challenge": self.code_challenge,
            "code_challenge_method": self.code_challenge_method,
            "redirect_uri": self.redirect_uri,
            "response_type": self.response_type,
            "scope": self.scope,
        }

        if self.access_type:
            params["access_type"] = self.access_type
        if self.state:
            params["state"] = self.state

        return params


@dataclass(frozen=True)
class AuthorizationCallback:
    """Query parameters of the redirect back from the authorization server."""

    code: str | None = None
    state: str | None = None
    error: str | None = None
    error_description: str | None = None
    error_uri: str | None = None

    def is_success(self) -> bool:
        return self.error is None and bool(self.code)

    def is_error(self) -> bool:
        return self.error is not None
