"""Token endpoint client for the PKCE flow.

Implements the RFC 6749 token endpoint interactions with PKCE (RFC 7636):
authorization code exchange and access token refresh.
"""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from pkceflow.config import FlowConfiguration
from pkceflow.models.errors import DecodeError, NetworkError, ServerError
from pkceflow.models.tokens import TokenRequest, TokenResponse
from pkceflow.primitives.request_builder import PKCERequestBuilder

logger = logging.getLogger(__name__)


class TokenExchangeClient:
    """Performs token endpoint calls and decodes token responses.

    Handles:
    - Authorization code to access token exchange (RFC 6749 Section 4.1.3)
    - Access token refresh (RFC 6749 Section 6)
    - PKCE code verification (RFC 7636 Section 4.5)

    Uses application/x-www-form-urlencoded encoding as OAuth requires.
    """

    def __init__(
        self,
        config: FlowConfiguration,
        request_builder: PKCERequestBuilder | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize the token client.

        Args:
            config: Flow configuration holding the token endpoint
            request_builder: Builder for token requests, created from config
                when omitted
            http_client: Shared HTTP client. When omitted the token client
                owns one and closes it in close()
        """
        self._request_builder = request_builder or PKCERequestBuilder(config)
        self._owns_http_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(timeout=config.timeout)

    async def exchange(self, code: str, code_verifier: str) -> TokenResponse:
        """Exchange an authorization code for tokens.

        Args:
            code: Authorization code from the redirect callback
            code_verifier: Verifier whose challenge was sent in the
                authorization request

        Returns:
            TokenResponse: Decoded token response

        Raises:
            InvalidEndpointConfigError: If the token endpoint is malformed
            NetworkError: On transport failures
            ServerError: If the status is not 2xx
            DecodeError: If the body is not a valid token response
        """
        token_request = self._request_builder.build_token_exchange_request(
            code, code_verifier
        )
        return await self._send(token_request)

    async def refresh(self, refresh_token: str) -> TokenResponse:
        """Obtain a new access token with a refresh token.

        Same contract as exchange(). Providers usually omit refresh_token in
        the response; keep using the old one in that case.
        """
        token_request = self._request_builder.build_refresh_token_request(
            refresh_token
        )
        return await self._send(token_request)

    async def _send(self, token_request: TokenRequest) -> TokenResponse:
        # Log request details (without sensitive data)
        logger.debug(
            f"Token request to {token_request.url}: "
            f"grant_type={token_request.grant_type}, "
            f"client_id={token_request.form['client_id']}"
        )

        try:
            response = await self._http_client.post(
                token_request.url,
                content=token_request.body,
                headers=token_request.headers,
            )
        except httpx.HTTPError as e:
            raise NetworkError(f"HTTP error during token request: {e}") from e

        return self._parse_token_response(response)

    def _parse_token_response(self, response: httpx.Response) -> TokenResponse:
        """Parse token endpoint response into TokenResponse.

        Raises:
            ServerError: For non-2xx responses, with the RFC 6749 Section 5.2
                error fields when the body carries them
            DecodeError: If a 2xx body is not a valid token response
        """
        if not 200 <= response.status_code < 300:
            error, description = _oauth_error_fields(response)
            logger.warning(
                f"Token request failed with {response.status_code}: "
                f"{error or 'no error code'} - {description or 'no description'}"
            )
            raise ServerError(response.status_code, error, description)

        try:
            token_response = TokenResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise DecodeError(f"Invalid token response format: {e}") from e

        logger.info("Token request successful")
        return token_response

    async def close(self) -> None:
        """Close the HTTP client if this token client created it."""
        if self._owns_http_client:
            await self._http_client.aclose()


def _oauth_error_fields(response: httpx.Response) -> tuple[str | None, str | None]:
    try:
        data = response.json()
    except ValueError:
        return None, None
    if not isinstance(data, dict):
        return None, None
    return data.get("error"), data.get("error_description")
