"""Tests for Google OAuth and service account authentication."""

import json
import time
from unittest.mock import MagicMock, patch

import pytest
from authlib.integrations.base_client import OAuthError

from google_connect.google import (
    CredentialsNotFoundError,
    GoogleAuthError,
    GoogleOAuth,
    GoogleServiceAccount,
    MissingConfigurationError,
    TokenError,
)
from google_connect.google.scopes import SCOPES, resolve_scopes


def fresh_token(**extra):
    token = {
        "access_token": "test-access-token",
        "expires_in": 3600,
        "scope": SCOPES["sheets"],
        "token_type": "Bearer",
        "created": int(time.time()),
        "refresh_token": "test-refresh-token",
    }
    token.update(extra)
    return token


class TestScopes:
    """Test scope name resolution."""

    def test_scope_names_resolved(self):
        """Should resolve scope names to URLs."""
        assert resolve_scopes(["sheets", "drive"]) == [SCOPES["sheets"], SCOPES["drive"]]

    def test_full_url_scopes_accepted(self):
        """Should pass full scope URLs through."""
        url = "https://www.googleapis.com/auth/documents"
        assert resolve_scopes([url]) == [url]

    def test_space_separated_string(self):
        """Should accept a space separated scope string."""
        assert resolve_scopes("sheets drive_file") == [SCOPES["sheets"], SCOPES["drive_file"]]

    def test_unknown_scope_raises(self):
        """Should raise error for unknown scope names."""
        with pytest.raises(ValueError, match="Unknown scope"):
            resolve_scopes(["unknown_scope"])

    def test_available_scopes(self):
        """Should have the Sheets and Drive scopes defined."""
        assert "sheets" in SCOPES
        assert "drive" in SCOPES
        assert "drive_file" in SCOPES


class TestGoogleOAuthBasics:
    """Test basic GoogleOAuth functionality."""

    def test_requires_client_id_and_secret(self):
        """Should raise error when the client is not configured."""
        with pytest.raises(MissingConfigurationError):
            GoogleOAuth(client_id="id-only")

    def test_unknown_scope_raises(self, client_config):
        """Should reject unknown scope names."""
        with pytest.raises(ValueError, match="Unknown scope"):
            GoogleOAuth(
                client_id=client_config["client_id"],
                client_secret=client_config["client_secret"],
                scopes=["unknown_scope"],
            )

    def test_credentials_not_found(self):
        """Should raise error when credentials file is missing."""
        with pytest.raises(CredentialsNotFoundError):
            GoogleOAuth.from_client_secrets("nonexistent.json")

    def test_load_installed_credentials(self, tmp_path):
        """Should load installed app credentials."""
        creds = {
            "installed": {
                "client_id": "test-client-id.apps.googleusercontent.com",
                "client_secret": "test-client-secret",
                "redirect_uris": ["http://localhost"],
            }
        }
        creds_path = tmp_path / "credentials.json"
        creds_path.write_text(json.dumps(creds))

        auth = GoogleOAuth.from_client_secrets(creds_path)
        assert auth.client_id == "test-client-id.apps.googleusercontent.com"
        assert auth.client_secret == "test-client-secret"
        assert auth.redirect_uri == "http://localhost"

    def test_load_web_credentials(self):
        """Should load web app credentials from a dict."""
        creds = {
            "web": {
                "client_id": "web-client-id.apps.googleusercontent.com",
                "client_secret": "web-client-secret",
            }
        }
        auth = GoogleOAuth.from_client_secrets(creds)
        assert auth.client_id == "web-client-id.apps.googleusercontent.com"

    def test_invalid_credentials_format(self):
        """Should reject JSON without a web or installed section."""
        with pytest.raises(ValueError, match="Invalid credentials.json format"):
            GoogleOAuth.from_client_secrets({"other": {}})


class TestGoogleOAuthFlow:
    """Tests for the consent URL and token handling."""

    @pytest.fixture
    def auth(self, client_config):
        return GoogleOAuth(
            client_id=client_config["client_id"],
            client_secret=client_config["client_secret"],
            scopes=client_config["scopes"],
            redirect_uri="https://example.com/google/oauth/callback",
            prompt="consent",
            include_granted_scopes=True,
            application_name="test-app",
        )

    def test_get_authorization_url(self, auth):
        """Should generate the consent URL with offline access."""
        url = auth.get_authorization_url()
        assert url.startswith(GoogleOAuth.AUTHORIZE_URL)
        assert "client_id=test-client-id" in url
        assert "access_type=offline" in url
        assert "prompt=consent" in url
        assert "include_granted_scopes=true" in url
        assert "redirect_uri=" in url
        assert auth.state and f"state={auth.state}" in url

    def test_explicit_state(self, auth):
        """Should use a caller-supplied state."""
        url = auth.get_authorization_url(state="fixed-state")
        assert "state=fixed-state" in url
        assert auth.state == "fixed-state"

    def test_expired_without_token(self, auth):
        """Should report expiry when no token is attached."""
        assert auth.token is None
        assert auth.is_access_token_expired() is True

    def test_fresh_token(self, auth):
        """Should accept a token inside its lifetime."""
        auth.set_access_token(fresh_token())
        assert auth.is_access_token_expired() is False
        assert auth.refresh_token == "test-refresh-token"

    def test_token_expired_within_leeway(self, auth):
        """Should treat a token about to lapse as expired."""
        auth.set_access_token(fresh_token(created=int(time.time()) - 3590))
        assert auth.is_access_token_expired() is True

    def test_token_without_lifetime_is_fresh(self, auth):
        """Should treat tokens without expiry data as fresh."""
        auth.set_access_token({"access_token": "abc"})
        assert auth.is_access_token_expired() is False

    def test_set_access_token_keeps_created(self, auth):
        """Should attach a stored token as it is."""
        auth.set_access_token(fresh_token(created=0))
        assert auth.token["created"] == 0
        assert auth.is_access_token_expired() is True

    def test_token_without_created_is_expired(self, auth):
        """Should treat a stored token without creation time as expired."""
        token = fresh_token()
        del token["created"]
        auth.set_access_token(token)
        assert "created" not in auth.token
        assert auth.is_access_token_expired() is True

    def test_refresh_keeps_refresh_token(self, auth):
        """Should keep the old refresh token after a refresh."""
        auth.set_access_token(fresh_token(created=0))
        auth.session = MagicMock()
        auth.session.refresh_token.return_value = {
            "access_token": "new-access-token",
            "expires_in": 3599,
            "token_type": "Bearer",
            "expires_at": 12345,
        }

        token = auth.fetch_access_token_with_refresh_token()

        auth.session.refresh_token.assert_called_once_with(
            GoogleOAuth.TOKEN_URL, refresh_token="test-refresh-token"
        )
        assert token["access_token"] == "new-access-token"
        assert token["refresh_token"] == "test-refresh-token"
        assert "expires_at" not in token
        assert auth.is_access_token_expired() is False
        assert auth.refresh_count == 1

    def test_refresh_calls_on_token_refresh(self, auth):
        """Should hand every refreshed token to the callback."""
        saved = []
        auth.on_token_refresh = saved.append
        auth.set_access_token(fresh_token(created=0))
        auth.session = MagicMock()
        auth.session.refresh_token.return_value = {"access_token": "new", "expires_in": 3599}

        auth.get_credentials()

        assert [token["access_token"] for token in saved] == ["new"]

    def test_refresh_without_refresh_token(self, auth):
        """Should raise TokenError when there is nothing to refresh with."""
        with pytest.raises(TokenError):
            auth.fetch_access_token_with_refresh_token()

    def test_fetch_token_with_auth_code(self, auth):
        """Should exchange the code and attach the token."""
        auth.session = MagicMock()
        auth.session.fetch_token.return_value = {
            "access_token": "code-access-token",
            "expires_in": 3599,
            "refresh_token": "code-refresh-token",
            "scope": SCOPES["sheets"],
        }

        token = auth.fetch_access_token_with_auth_code("auth-code")

        auth.session.fetch_token.assert_called_once_with(GoogleOAuth.TOKEN_URL, code="auth-code")
        assert token["created"]
        assert auth.token["access_token"] == "code-access-token"

    def test_get_credentials_without_token(self, auth):
        """Should raise TokenError when not authorized."""
        with pytest.raises(TokenError):
            auth.get_credentials()

    def test_get_credentials_with_token(self, auth):
        """Should build google-auth credentials from the token."""
        auth.set_access_token(fresh_token())
        creds = auth.get_credentials()
        assert creds.token == "test-access-token"
        assert creds.refresh_token == "test-refresh-token"

    def test_get_credentials_refresh_failure(self, auth):
        """Should wrap a rejected refresh in TokenError."""
        auth.set_access_token(fresh_token(created=0))
        auth.session = MagicMock()
        auth.session.refresh_token.side_effect = OAuthError(error="invalid_grant")

        with pytest.raises(TokenError, match="Failed to refresh token"):
            auth.get_credentials()

    def test_get_token_info_no_token(self, auth):
        """Should return no_token status when no token exists."""
        assert auth.get_token_info() == {"status": "no_token"}

    def test_get_token_info_with_token(self, auth):
        """Should return token info when token exists."""
        auth.set_access_token(fresh_token())
        info = auth.get_token_info()
        assert info["status"] == "valid"
        assert info["has_refresh_token"] is True
        assert info["scopes"] == [SCOPES["sheets"]]

    def test_revoke_token(self, auth):
        """Should post to the revoke endpoint and detach the token."""
        auth.set_access_token(fresh_token())
        auth.session = MagicMock()

        auth.revoke_token()

        auth.session.post.assert_called_once_with(
            GoogleOAuth.REVOKE_URL,
            params={"token": "test-refresh-token"},
            withhold_token=True,
        )
        assert auth.token is None


class TestGoogleOAuthTokenRequests:
    """Token requests sent through the Authlib session."""

    @pytest.fixture
    def auth(self, client_config):
        return GoogleOAuth(
            client_id=client_config["client_id"],
            client_secret=client_config["client_secret"],
            scopes=client_config["scopes"],
            redirect_uri="https://example.com/google/oauth/callback",
            application_name="test-app",
        )

    def test_refresh_request(self, auth, token_endpoint):
        """Should post the refresh grant with client_secret_post."""
        auth.set_access_token(fresh_token(created=0))

        token = auth.fetch_access_token_with_refresh_token()

        request = token_endpoint.request
        assert request.url == GoogleOAuth.TOKEN_URL
        assert request.headers["User-Agent"] == "test-app"
        assert "Authorization" not in request.headers
        form = token_endpoint.form
        assert form["grant_type"] == "refresh_token"
        assert form["refresh_token"] == "test-refresh-token"
        assert form["client_id"] == "test-client-id.apps.googleusercontent.com"
        assert form["client_secret"] == "test-client-secret"

        assert token["access_token"] == "new-access-token"
        assert token["refresh_token"] == "test-refresh-token"
        assert "expires_at" not in token
        assert abs(token["created"] - time.time()) < 5
        assert auth.is_access_token_expired() is False

    def test_rejected_refresh_request(self, auth, token_endpoint):
        """Should raise TokenError when Google answers invalid_grant."""
        token_endpoint.respond({"error": "invalid_grant"}, status_code=400)
        auth.set_access_token(fresh_token(created=0))

        with pytest.raises(TokenError, match="Failed to refresh token"):
            auth.get_credentials()

    def test_code_exchange_request(self, auth, token_endpoint):
        """Should send the code with the registered redirect URI."""
        token_endpoint.respond(
            {
                "access_token": "code-access-token",
                "expires_in": 3599,
                "refresh_token": "code-refresh-token",
                "scope": SCOPES["sheets"],
                "token_type": "Bearer",
            }
        )

        token = auth.fetch_access_token_with_auth_code("code123")

        form = token_endpoint.form
        assert form["grant_type"] == "authorization_code"
        assert form["code"] == "code123"
        assert form["redirect_uri"] == "https://example.com/google/oauth/callback"
        assert form["client_secret"] == "test-client-secret"
        assert token_endpoint.fields["client_secret"] == ["test-client-secret"]

        assert token["refresh_token"] == "code-refresh-token"
        assert "expires_at" not in token
        assert abs(token["created"] - time.time()) < 5


class TestGoogleServiceAccount:
    """Tests for service account authentication."""

    def test_requires_key(self):
        """Should raise error when no key is given."""
        with pytest.raises(MissingConfigurationError):
            GoogleServiceAccount()

    def test_key_file_not_found(self, tmp_path):
        """Should raise error when the key file is missing."""
        with pytest.raises(CredentialsNotFoundError):
            GoogleServiceAccount(key_path=tmp_path / "missing.json")

    def test_rejects_non_service_account(self, tmp_path):
        """Should reject OAuth client secrets passed as a key."""
        key_path = tmp_path / "key.json"
        key_path.write_text(json.dumps({"web": {}}))
        with pytest.raises(GoogleAuthError, match="service_account"):
            GoogleServiceAccount(key_path=key_path)

    def test_from_key_info(self, service_account_info):
        """Should create credentials from parsed key data."""
        with patch(
            "google_connect.google.service_account.service_account.Credentials"
            ".from_service_account_info"
        ) as from_info:
            auth = GoogleServiceAccount(key_info=service_account_info, scopes=["sheets"])

        from_info.assert_called_once_with(service_account_info, scopes=[SCOPES["sheets"]])
        assert auth.email == "exporter@test-project.iam.gserviceaccount.com"
        assert auth.get_info()["project_id"] == "test-project"
        assert auth.get_info()["key_path"] is None
