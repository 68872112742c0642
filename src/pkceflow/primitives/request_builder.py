"""Request construction for the authorization and token endpoints.

Builds the RFC 7636 authorization URL and the form-encoded token endpoint
requests from a FlowConfiguration. Nothing here performs I/O.
"""

from __future__ import annotations

from urllib.parse import SplitResult, parse_qsl, urlencode, urlsplit, urlunsplit

from pkceflow.config import FlowConfiguration
from pkceflow.models.errors import InvalidEndpointConfigError
from pkceflow.models.flow import AuthorizationRequest
from pkceflow.models.tokens import TokenRequest


def _validate_endpoint(url: str, name: str) -> SplitResult:
    try:
        parts = urlsplit(url)
    except ValueError as e:
        raise InvalidEndpointConfigError(f"Invalid {name}: {url!r} ({e})") from e

    if not parts.scheme or not parts.netloc:
        raise InvalidEndpointConfigError(
            f"Invalid {name}: {url!r} must be an absolute URL"
        )
    return parts


class PKCERequestBuilder:
    """Builds authorization URLs and token endpoint requests.

    Every value is form-url-encoded exactly once. Scopes are joined with the
    configured delimiter before encoding and not escaped separately.
    """

    def __init__(self, config: FlowConfiguration):
        self._config = config

    def build_authorization_url(
        self, code_challenge: str, state: str | None = None
    ) -> str:
        """Build the authorization endpoint URL (RFC 7636 Section 4.3).

        Query parameters already present on the configured endpoint are kept,
        except those the flow sets itself, which are replaced.

        Args:
            code_challenge: S256 challenge derived from this attempt's verifier
            state: Optional CSRF state to round-trip through the provider

        Raises:
            InvalidEndpointConfigError: If the authorization endpoint is not
                a well-formed absolute URL
        """
        parts = _validate_endpoint(
            self._config.authorization_endpoint, "authorization endpoint"
        )

        auth_request = AuthorizationRequest(
            client_id=self._config.client_id,
            redirect_uri=self._config.redirect_uri,
            scope=self._config.scope,
            code_challenge=code_challenge,
            access_type=self._config.access_type,
            state=state,
        )

        flow_params = auth_request.to_query_params()
        query = [
            (key, value)
            for key, value in parse_qsl(parts.query, keep_blank_values=True)
            if key not in flow_params
        ]
        query.extend(flow_params.items())

        return urlunsplit(parts._replace(query=urlencode(query)))

    def build_token_exchange_request(
        self, code: str, code_verifier: str
    ) -> TokenRequest:
        """Build the authorization code exchange (RFC 7636 Section 4.5).

        Raises:
            InvalidEndpointConfigError: If the token endpoint is malformed
        """
        return self._token_endpoint_request(
            {
                "grant_type": "authorization_code",
                "client_id": self._config.client_id,
                "code": code,
                "code_verifier": code_verifier,
                "redirect_uri": self._config.redirect_uri,
            }
        )

    def build_refresh_token_request(self, refresh_token: str) -> TokenRequest:
        """Build a refresh token request (RFC 6749 Section 6).

        Raises:
            InvalidEndpointConfigError: If the token endpoint is malformed
        """
        return self._token_endpoint_request(
            {
                "grant_type": "refresh_token",
                "client_id": self._config.client_id,
                "refresh_token": refresh_token,
            }
        )

    def _token_endpoint_request(self, form: dict[str, str]) -> TokenRequest:
        _validate_endpoint(self._config.token_endpoint, "token endpoint")
        return TokenRequest(url=self._config.token_endpoint, form=form)
