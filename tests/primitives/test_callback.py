import pytest

from pkceflow.models.errors import AuthenticationFailedError
from pkceflow.primitives.callback import extract_authorization_code, parse_callback_url


class TestParseCallbackURL:
    def test_custom_scheme_callback(self):
        # Act
        callback = parse_callback_url(
            "com.example.app:/oauth2callback?code=ABC123&state=s1", "com.example.app"
        )

        # Assert
        assert callback.is_success()
        assert callback.code == "ABC123"
        assert callback.state == "s1"

    def test_error_callback(self):
        # Act
        callback = parse_callback_url(
            "com.example.app:/oauth2callback?"
            "error=access_denied&error_description=User+denied+access",
            "com.example.app",
        )

        # Assert
        assert callback.is_error()
        assert not callback.is_success()
        assert callback.error == "access_denied"
        assert callback.error_description == "User denied access"

    def test_scheme_comparison_ignores_case(self):
        # Act
        callback = parse_callback_url(
            "COM.Example.App:/oauth2callback?code=ABC123", "com.example.APP"
        )

        # Assert
        assert callback.code == "ABC123"

    @pytest.mark.parametrize("callback_url", [None, ""])
    def test_missing_callback_url_fails(self, callback_url):
        # Act & Assert
        with pytest.raises(AuthenticationFailedError):
            parse_callback_url(callback_url, "com.example.app")

    def test_malformed_callback_url_fails(self):
        # Act & Assert
        with pytest.raises(AuthenticationFailedError):
            parse_callback_url("http://[::1/oauth2callback?code=ABC123", "http")

    def test_scheme_mismatch_fails(self):
        # Act & Assert
        with pytest.raises(AuthenticationFailedError) as exc_info:
            parse_callback_url(
                "evil.app:/oauth2callback?code=ABC123", "com.example.app"
            )

        assert "does not match" in str(exc_info.value)


class TestExtractAuthorizationCode:
    def test_code_is_extracted(self):
        # Act
        code = extract_authorization_code(
            "com.example.app:/oauth2callback?code=ABC123", "com.example.app"
        )

        # Assert
        assert code == "ABC123"

    @pytest.mark.parametrize(
        "callback_url",
        [
            "com.example.app:/oauth2callback",
            "com.example.app:/oauth2callback?state=s1",
            "com.example.app:/oauth2callback?code=",
        ],
    )
    def test_missing_code_fails(self, callback_url):
        # Act & Assert
        with pytest.raises(AuthenticationFailedError):
            extract_authorization_code(callback_url, "com.example.app")

    def test_provider_error_fails_even_with_code(self):
        # Act & Assert
        with pytest.raises(AuthenticationFailedError) as exc_info:
            extract_authorization_code(
                "com.example.app:/oauth2callback?code=ABC123&error=server_error",
                "com.example.app",
            )

        assert "server_error" in str(exc_info.value)

    def test_matching_state_is_accepted(self):
        # Act
        code = extract_authorization_code(
            "com.example.app:/oauth2callback?code=ABC123&state=s1",
            "com.example.app",
            expected_state="s1",
        )

        # Assert
        assert code == "ABC123"

    def test_state_mismatch_fails(self):
        # Act & Assert
        with pytest.raises(AuthenticationFailedError) as exc_info:
            extract_authorization_code(
                "com.example.app:/oauth2callback?code=ABC123&state=wrong",
                "com.example.app",
                expected_state="s1",
            )

        assert "State parameter mismatch" in str(exc_info.value)

    def test_callback_without_state_is_accepted(self):
        # Act
        code = extract_authorization_code(
            "com.example.app:/oauth2callback?code=ABC123",
            "com.example.app",
            expected_state="s1",
        )

        # Assert
        assert code == "ABC123"
