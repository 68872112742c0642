"""PKCE secrets held by a single authentication attempt."""

from __future__ import annotations

from dataclasses import dataclass, field

# RFC 7636 Section 4.1 bounds for the verifier; the S256 challenge is always 43
PKCE_MIN_LENGTH = 43
PKCE_MAX_LENGTH = 128
S256 = "S256"


@dataclass(frozen=True)
class PKCEParameters:
    """Verifier and challenge pair for one call to start_authentication.

    The controller generates a pair when an attempt starts and sends only the
    challenge in the authorization URL. The verifier stays in memory until
    the code exchange and is dropped when the attempt ends, whether it
    succeeded, failed, or was cancelled or superseded. It never appears in
    repr or logs.
    """

    code_verifier: str = field(repr=False)
    code_challenge: str
    code_challenge_method: str = S256

    def __post_init__(self) -> None:
        for name in ("code_verifier", "code_challenge"):
            length = len(getattr(self, name))
            if not PKCE_MIN_LENGTH <= length <= PKCE_MAX_LENGTH:
                raise ValueError(
                    f"{name} must be {PKCE_MIN_LENGTH}-{PKCE_MAX_LENGTH} "
                    f"characters, got {length}"
                )
        if self.code_challenge_method != S256:
            raise ValueError(
                f"Unsupported code challenge method {self.code_challenge_method!r}"
            )
