"""Token endpoint request and response models.

Contains the form-encoded token endpoint requests and the decoded token
response.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


@dataclass(frozen=True)
class TokenRequest:
    """HTTP request for the token endpoint (RFC 6749 Section 4.1.3 / 6).

    Token requests must use form encoding, not JSON. The form fields hold
    secrets (code verifier, refresh token), so they are kept out of repr.
    """

    url: str
    form: dict[str, str] = field(repr=False)
    method: str = "POST"
    headers: dict[str, str] = field(
        default_factory=lambda: {
            "Content-Type": FORM_CONTENT_TYPE,
            "Accept": "application/json",
        }
    )

    @property
    def grant_type(self) -> str:
        return self.form["grant_type"]

    @property
    def body(self) -> bytes:
        """The exact application/x-www-form-urlencoded request body."""
        return urlencode(self.form).encode("ascii")


class TokenResponse(BaseModel):
    """Successful token endpoint response (RFC 6749 Section 5.1).

    Decoded from the snake_case JSON body. Unknown keys are ignored.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    access_token: str = Field(min_length=1, repr=False)
    token_type: str
    expires_in: int
    refresh_token: str | None = Field(default=None, repr=False)
    scope: str | None = None
    id_token: str | None = Field(default=None, repr=False)

    def calculate_expires_at(self, issued_at: float | None = None) -> float:
        """Calculate absolute expiry timestamp from expires_in.

        Args:
            issued_at: Unix timestamp the token was received, defaults to now

        Returns:
            Unix timestamp when the access token expires
        """
        if issued_at is None:
            issued_at = time.time()
        return issued_at + self.expires_in

    @property
    def authorization_header(self) -> str:
        return f"{self.token_type} {self.access_token}"
