import pytest

from pkceflow.config import (
    GOOGLE_AUTHORIZATION_ENDPOINT,
    GOOGLE_PROFILE_ENDPOINT,
    GOOGLE_SCOPES,
    GOOGLE_TOKEN_ENDPOINT,
    FlowConfiguration,
)
from pkceflow.models.errors import ConfigurationError

REQUIRED_ENV = {
    "PKCEFLOW_CLIENT_ID": "env-client",
    "PKCEFLOW_REDIRECT_URI": "http://127.0.0.1:8765/oauth2callback",
}


class TestFlowConfiguration:
    def test_google_defaults(self):
        # Act
        config = FlowConfiguration.google("client-1", "com.example.app:/oauth2callback")

        # Assert
        assert config.authorization_endpoint == GOOGLE_AUTHORIZATION_ENDPOINT
        assert config.token_endpoint == GOOGLE_TOKEN_ENDPOINT
        assert config.profile_endpoint == GOOGLE_PROFILE_ENDPOINT
        assert config.scopes == GOOGLE_SCOPES
        assert config.access_type == "offline"
        assert config.timeout == 30.0

    def test_google_overrides(self):
        # Act
        config = FlowConfiguration.google(
            "client-1", "com.example.app:/oauth2callback", scopes=("openid",), timeout=5
        )

        # Assert
        assert config.scopes == ("openid",)
        assert config.timeout == 5.0

    def test_callback_scheme_and_scope(self, flow_config):
        assert flow_config.callback_scheme == "com.example.app"
        assert flow_config.scope == "openid profile"

    def test_custom_scope_delimiter(self, flow_config):
        # Act
        config = flow_config.model_copy(update={"scope_delimiter": ","})

        # Assert
        assert config.scope == "openid,profile"

    @pytest.mark.parametrize(
        "field, value", [("client_id", ""), ("redirect_uri", ""), ("timeout", 0)]
    )
    def test_rejects_invalid_values(self, field, value):
        with pytest.raises(ValueError):
            FlowConfiguration.google(
                **{"client_id": "c", "redirect_uri": "app:/cb", field: value}
            )

    def test_is_frozen(self, flow_config):
        with pytest.raises(ValueError):
            flow_config.client_id = "other"


class TestFromEnv:
    def test_reads_required_variables(self):
        # Act
        config = FlowConfiguration.from_env(environ=REQUIRED_ENV)

        # Assert
        assert config.client_id == "env-client"
        assert config.redirect_uri == "http://127.0.0.1:8765/oauth2callback"
        assert config.token_endpoint == GOOGLE_TOKEN_ENDPOINT
        assert config.callback_scheme == "http"

    def test_optional_overrides(self):
        # Arrange
        environ = {
            **REQUIRED_ENV,
            "PKCEFLOW_AUTHORIZATION_ENDPOINT": "https://idp.example.com/auth",
            "PKCEFLOW_TOKEN_ENDPOINT": "https://idp.example.com/token",
            "PKCEFLOW_PROFILE_ENDPOINT": "https://idp.example.com/me",
            "PKCEFLOW_SCOPES": "openid  email\nprofile",
            "PKCEFLOW_TIMEOUT": "12.5",
        }

        # Act
        config = FlowConfiguration.from_env(environ=environ)

        # Assert
        assert config.authorization_endpoint == "https://idp.example.com/auth"
        assert config.token_endpoint == "https://idp.example.com/token"
        assert config.profile_endpoint == "https://idp.example.com/me"
        assert config.scopes == ("openid", "email", "profile")
        assert config.timeout == 12.5

    def test_reads_env_file(self, tmp_path):
        # Arrange
        env_file = tmp_path / ".env"
        env_file.write_text(
            "PKCEFLOW_CLIENT_ID=file-client\n"
            "PKCEFLOW_REDIRECT_URI=com.example.app:/oauth2callback\n"
        )

        # Act
        config = FlowConfiguration.from_env(env_file=env_file, environ={})

        # Assert
        assert config.client_id == "file-client"
        assert config.callback_scheme == "com.example.app"

    def test_environment_wins_over_env_file(self, tmp_path):
        # Arrange
        env_file = tmp_path / ".env"
        env_file.write_text(
            "PKCEFLOW_CLIENT_ID=file-client\n"
            "PKCEFLOW_REDIRECT_URI=com.example.app:/oauth2callback\n"
        )

        # Act
        config = FlowConfiguration.from_env(
            env_file=env_file, environ={"PKCEFLOW_CLIENT_ID": "env-client"}
        )

        # Assert
        assert config.client_id == "env-client"
        assert config.redirect_uri == "com.example.app:/oauth2callback"

    def test_missing_variables(self):
        with pytest.raises(ConfigurationError) as exc_info:
            FlowConfiguration.from_env(environ={"PKCEFLOW_CLIENT_ID": "c"})

        assert "PKCEFLOW_REDIRECT_URI" in str(exc_info.value)
        assert "PKCEFLOW_CLIENT_ID" not in str(exc_info.value)

    def test_invalid_value(self):
        with pytest.raises(ConfigurationError, match="Invalid flow configuration"):
            FlowConfiguration.from_env(
                environ={**REQUIRED_ENV, "PKCEFLOW_TIMEOUT": "soon"}
            )
