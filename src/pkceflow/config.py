"""Flow configuration for the PKCE client.

Holds the provider endpoints and the registered client identity. Built once
at startup and shared read-only by every component.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from urllib.parse import urlparse

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pkceflow.models.errors import ConfigurationError

GOOGLE_AUTHORIZATION_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"
GOOGLE_PROFILE_ENDPOINT = "https://www.googleapis.com/userinfo/v2/me"
GOOGLE_SCOPES = (
    "openid",
    "profile",
    "https://www.googleapis.com/auth/userinfo.profile",
)

ENV_PREFIX = "PKCEFLOW_"


class FlowConfiguration(BaseModel):
    """Endpoints and client identity for one identity provider.

    Endpoint URLs are not validated here. The request builder rejects a
    malformed endpoint when it is first used, which lets the flow controller
    report it as a failed attempt instead of a crash at startup.
    """

    model_config = ConfigDict(frozen=True)

    authorization_endpoint: str
    token_endpoint: str
    client_id: str = Field(min_length=1)
    redirect_uri: str = Field(min_length=1)
    scopes: tuple[str, ...] = GOOGLE_SCOPES
    scope_delimiter: str = " "
    access_type: str | None = "offline"
    profile_endpoint: str = GOOGLE_PROFILE_ENDPOINT
    timeout: float = Field(default=30.0, gt=0)

    @property
    def callback_scheme(self) -> str:
        """Scheme the browser redirect must come back on."""
        return urlparse(self.redirect_uri).scheme

    @property
    def scope(self) -> str:
        return self.scope_delimiter.join(self.scopes)

    @classmethod
    def google(cls, client_id: str, redirect_uri: str, **overrides) -> FlowConfiguration:
        """Configuration for Google's OAuth 2.0 endpoints.

        Args:
            client_id: Client ID of the Google Cloud OAuth client
            redirect_uri: Registered redirect, e.g. ``com.example.app:/oauth2callback``
                for an installed app or a loopback ``http://127.0.0.1:8080/oauth2callback``
        """
        values = {
            "authorization_endpoint": GOOGLE_AUTHORIZATION_ENDPOINT,
            "token_endpoint": GOOGLE_TOKEN_ENDPOINT,
            "client_id": client_id,
            "redirect_uri": redirect_uri,
        }
        values.update(overrides)
        return cls(**values)

    @classmethod
    def from_env(
        cls,
        env_file: str | os.PathLike | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> FlowConfiguration:
        """Load configuration from ``PKCEFLOW_*`` environment variables.

        Values from ``env_file`` are used as defaults; the process
        environment wins.

        Raises:
            ConfigurationError: If a required variable is missing or a value
                is invalid
        """
        values: dict[str, str | None] = {}
        if env_file is not None:
            values.update(dotenv_values(env_file))
        values.update(os.environ if environ is None else environ)

        def get(name: str) -> str | None:
            value = values.get(ENV_PREFIX + name)
            return value or None

        missing = [
            ENV_PREFIX + name
            for name in ("CLIENT_ID", "REDIRECT_URI")
            if get(name) is None
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}"
            )

        overrides: dict[str, object] = {}
        if get("AUTHORIZATION_ENDPOINT"):
            overrides["authorization_endpoint"] = get("AUTHORIZATION_ENDPOINT")
        if get("TOKEN_ENDPOINT"):
            overrides["token_endpoint"] = get("TOKEN_ENDPOINT")
        if get("PROFILE_ENDPOINT"):
            overrides["profile_endpoint"] = get("PROFILE_ENDPOINT")
        if get("SCOPES"):
            overrides["scopes"] = tuple(get("SCOPES").split())
        if get("TIMEOUT"):
            overrides["timeout"] = get("TIMEOUT")

        try:
            return cls.google(get("CLIENT_ID"), get("REDIRECT_URI"), **overrides)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid flow configuration: {e}") from e
