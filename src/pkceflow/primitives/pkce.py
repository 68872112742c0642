"""PKCE (Proof Key for Code Exchange) code generation.

Implements RFC 7636 code verifier and S256 code challenge generation to
prevent authorization code interception attacks.
"""

from __future__ import annotations

import base64
import hashlib
import secrets

from pkceflow.models.errors import PKCEEncodingError, RandomSourceUnavailableError
from pkceflow.models.security import PKCEParameters

VERIFIER_ENTROPY_BYTES = 32
STATE_ENTROPY_BYTES = 24


def base64url_encode(data: bytes) -> str:
    """Base64url-encode without padding (RFC 7636 Appendix A).

    Standard base64 with ``+`` replaced by ``-``, ``/`` by ``_`` and every
    ``=`` stripped.
    """
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


class PKCECodeGenerator:
    """Generates PKCE code verifiers and their S256 code challenges.

    This implementation follows RFC 7636 requirements:
    - 32 bytes of OS randomness per verifier, base64url-encoded (43 chars)
    - S256 challenge method only (SHA256 + base64url)
    - No fallback to weaker randomness when the OS source is missing
    """

    def generate_parameters(self) -> PKCEParameters:
        """Generate a fresh verifier and its challenge for one attempt.

        Raises:
            RandomSourceUnavailableError: If no secure random source exists
            PKCEEncodingError: If the verifier cannot be hashed
        """
        code_verifier = self.generate_code_verifier()
        code_challenge = self.generate_code_challenge(code_verifier)

        return PKCEParameters(
            code_verifier=code_verifier,
            code_challenge=code_challenge,
            code_challenge_method="S256",
        )

    def generate_code_verifier(self) -> str:
        """Generate a cryptographically secure code verifier.

        RFC 7636 Section 4.1: 32 random octets, base64url-encoded, give a
        43-character verifier made of unreserved characters only.

        Returns:
            A 43-character code verifier

        Raises:
            RandomSourceUnavailableError: If the OS random source is missing
        """
        return base64url_encode(self._random_bytes(VERIFIER_ENTROPY_BYTES))

    def generate_code_challenge(self, code_verifier: str) -> str:
        """Generate code challenge from code verifier using S256 method.

        RFC 7636 Section 4.2: for S256 the code challenge is
        BASE64URL-ENCODE(SHA256(ASCII(code_verifier)))

        Args:
            code_verifier: The code verifier to hash

        Returns:
            Base64url-encoded SHA256 hash of the code verifier

        Raises:
            PKCEEncodingError: If the verifier is not encodable text
        """
        if not isinstance(code_verifier, str):
            raise PKCEEncodingError(
                f"code_verifier must be str, got {type(code_verifier).__name__}"
            )
        try:
            data = code_verifier.encode("utf-8")
        except UnicodeEncodeError as e:
            raise PKCEEncodingError(f"Cannot encode code_verifier: {e}") from e

        return base64url_encode(hashlib.sha256(data).digest())

    def generate_state(self) -> str:
        """Generate an unguessable state parameter for CSRF protection."""
        return base64url_encode(self._random_bytes(STATE_ENTROPY_BYTES))

    def _random_bytes(self, length: int) -> bytes:
        try:
            return secrets.token_bytes(length)
        except (NotImplementedError, OSError) as e:
            raise RandomSourceUnavailableError(
                f"Secure random source unavailable: {e}"
            ) from e
