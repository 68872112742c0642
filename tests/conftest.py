from urllib.parse import parse_qs, urlparse

import pytest

from pkceflow.config import FlowConfiguration


class FakeBrowser:
    """Scripted browser capability for driving the flow controller headlessly.

    By default it redirects back with ``code=ABC123`` and echoes the state it
    was sent, like a provider would.
    """

    def __init__(self, callback_url=None, error=None, code="ABC123"):
        self.calls: list[tuple[str, str]] = []
        self.callback_url = callback_url
        self.error = error
        self.code = code

    async def authenticate(self, url: str, callback_scheme: str) -> str | None:
        self.calls.append((url, callback_scheme))
        if self.error is not None:
            raise self.error
        if self.callback_url is not None:
            return self.callback_url

        state = parse_qs(urlparse(url).query)["state"][0]
        return f"{callback_scheme}:/oauth2callback?code={self.code}&state={state}"


@pytest.fixture
def flow_config() -> FlowConfiguration:
    return FlowConfiguration(
        authorization_endpoint="https://auth.example.com/authorize",
        token_endpoint="https://auth.example.com/token",
        client_id="test-client-123",
        redirect_uri="com.example.app:/oauth2callback",
        scopes=("openid", "profile"),
        profile_endpoint="https://api.example.com/userinfo",
    )


@pytest.fixture
def fake_browser() -> FakeBrowser:
    return FakeBrowser()
