"""Profile resource client used once an access token is available."""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from pkceflow.config import FlowConfiguration
from pkceflow.models.errors import (
    DecodeError,
    NetworkError,
    ServerError,
    UnauthorizedError,
)
from pkceflow.models.profile import ProfileInfo

logger = logging.getLogger(__name__)


class ProfileFetcher:
    """Fetches the signed-in user's profile with a bearer token.

    A 401 is surfaced as UnauthorizedError and never retried here; refreshing
    the token and calling again is up to the caller.
    """

    def __init__(
        self,
        config: FlowConfiguration,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._profile_endpoint = config.profile_endpoint
        self._owns_http_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(timeout=config.timeout)

    async def fetch_profile(self, access_token: str) -> ProfileInfo:
        """Fetch the profile for the given access token.

        Raises:
            NetworkError: On transport failures
            UnauthorizedError: If the token was rejected (401)
            ServerError: For any other status than 200
            DecodeError: If the body is not a valid profile
        """
        try:
            response = await self._http_client.get(
                self._profile_endpoint,
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Accept": "application/json",
                },
            )
        except httpx.HTTPError as e:
            raise NetworkError(f"HTTP error during profile request: {e}") from e

        if response.status_code == 401:
            logger.warning("Profile request rejected the access token")
            raise UnauthorizedError()
        if response.status_code != 200:
            logger.warning(f"Profile request failed with {response.status_code}")
            raise ServerError(response.status_code)

        try:
            profile = ProfileInfo.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise DecodeError(f"Invalid profile response format: {e}") from e

        logger.debug(f"Downloaded profile info for: {profile.name}")
        return profile

    async def close(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._owns_http_client:
            await self._http_client.aclose()
