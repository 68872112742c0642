"""
Sign in with Google using PKCE and print your profile.

You'll need an OAuth client of type "Desktop app" in the Google Cloud console
and these environment variables (a .env file works too):

    PKCEFLOW_CLIENT_ID=<client id>
    PKCEFLOW_REDIRECT_URI=http://127.0.0.1:8765/oauth2callback

Google OAuth 2.0 for installed apps:
https://developers.google.com/identity/protocols/oauth2/native-app
"""

import asyncio
import logging

from dotenv import load_dotenv

from pkceflow.config import FlowConfiguration
from pkceflow.models.errors import PKCEFlowError, UnauthorizedError
from pkceflow.models.profile import ProfileInfo
from pkceflow.models.state import AuthStatus
from pkceflow.models.tokens import TokenResponse
from pkceflow.services.browser import LoopbackBrowserAuthenticator
from pkceflow.services.flow import AuthFlowController
from pkceflow.services.profile import ProfileFetcher
from pkceflow.services.tokens import TokenExchangeClient


async def fetch_profile_with_refresh(
    fetcher: ProfileFetcher, token_client: TokenExchangeClient, token: TokenResponse
) -> ProfileInfo:
    """Fetch the profile, refreshing the access token once on a 401."""
    try:
        return await fetcher.fetch_profile(token.access_token)
    except UnauthorizedError:
        if not token.refresh_token:
            raise
        logging.info("Access token rejected, refreshing once")
        refreshed = await token_client.refresh(token.refresh_token)
        return await fetcher.fetch_profile(refreshed.access_token)


async def main():
    config = FlowConfiguration.from_env()
    token_client = TokenExchangeClient(config)
    fetcher = ProfileFetcher(config)
    controller = AuthFlowController(
        config,
        LoopbackBrowserAuthenticator(config.redirect_uri),
        token_client=token_client,
    )
    controller.subscribe(lambda state: logging.info(f"Authentication status: {state}"))

    try:
        state = await controller.start_authentication()
        if state.status is not AuthStatus.AUTHENTICATED:
            logging.error(f"Sign-in failed: {state.error}")
            return

        # TODO: Store the token in the OS keychain instead of dropping it on exit.
        profile = await fetch_profile_with_refresh(fetcher, token_client, state.token)
        print(f"Name:        {profile.name}")
        print(f"Given name:  {profile.given_name or '-'}")
        print(f"Family name: {profile.family_name or '-'}")
        print(f"Picture:     {profile.picture_url or '-'}")
    except PKCEFlowError as e:
        logging.error(f"Profile request failed: {e}")
    finally:
        await token_client.close()
        await fetcher.close()


if __name__ == "__main__":
    load_dotenv()
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
