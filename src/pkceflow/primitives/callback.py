"""Parsing of the authorization server's redirect callback."""

from __future__ import annotations

import logging
import secrets
from urllib.parse import parse_qs, urlsplit

from pkceflow.models.errors import AuthenticationFailedError
from pkceflow.models.flow import AuthorizationCallback

logger = logging.getLogger(__name__)


def parse_callback_url(
    callback_url: str | None, expected_scheme: str | None = None
) -> AuthorizationCallback:
    """Parse a redirect callback URL into its OAuth query parameters.

    Args:
        callback_url: Full URL the browser was redirected to
        expected_scheme: Scheme the callback must use, compared case-insensitively

    Raises:
        AuthenticationFailedError: If the URL is missing, malformed, or uses
            the wrong scheme
    """
    if not callback_url:
        raise AuthenticationFailedError("Callback URL is missing")

    try:
        parsed = urlsplit(callback_url)
    except (TypeError, ValueError, AttributeError) as e:
        raise AuthenticationFailedError(f"Malformed callback URL: {e}") from e

    if expected_scheme and parsed.scheme != expected_scheme.lower():
        raise AuthenticationFailedError(
            f"Callback scheme {parsed.scheme!r} does not match "
            f"expected {expected_scheme!r}"
        )

    query_params = parse_qs(parsed.query)

    # Extract single values from query parameter lists
    def get_single_param(key: str) -> str | None:
        values = query_params.get(key, [])
        return values[0] if values else None

    return AuthorizationCallback(
        code=get_single_param("code"),
        state=get_single_param("state"),
        error=get_single_param("error"),
        error_description=get_single_param("error_description"),
        error_uri=get_single_param("error_uri"),
    )


def extract_authorization_code(
    callback_url: str | None,
    expected_scheme: str | None = None,
    expected_state: str | None = None,
) -> str:
    """Return the authorization code carried by a redirect callback.

    A ``state`` returned by the provider must match ``expected_state``.
    Providers that drop ``state`` are accepted.

    Raises:
        AuthenticationFailedError: If the provider returned an error, the
            code is missing, or the state does not match
    """
    callback = parse_callback_url(callback_url, expected_scheme)

    if callback.is_error():
        description = (
            f" ({callback.error_description})" if callback.error_description else ""
        )
        raise AuthenticationFailedError(
            f"Authorization failed: {callback.error}{description}"
        )

    if expected_state is not None and callback.state is not None:
        if not secrets.compare_digest(
            expected_state.encode("utf-8"), callback.state.encode("utf-8")
        ):
            raise AuthenticationFailedError("State parameter mismatch")
    elif expected_state is not None:
        logger.debug("Authorization callback did not echo the state parameter")

    if not callback.code:
        raise AuthenticationFailedError("Callback URL has no authorization code")

    return callback.code
