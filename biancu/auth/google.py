"""Google sign-in for the platform: OAuth configuration, state handling and profile lookup."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import secrets
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from google.auth import exceptions as google_auth_exceptions
from google_auth_oauthlib.flow import Flow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from httplib2 import HttpLib2Error
from oauthlib.oauth2.rfc6749.errors import OAuth2Error
from pydantic import BaseModel, Field
from requests.exceptions import RequestException

from ..config import CONFIG


class GoogleAuthError(RuntimeError):
    """Raised when the Google OAuth configuration or callback is invalid."""


DEFAULT_LOGIN_SCOPES: Tuple[str, ...] = (
    "openid",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
)
STATE_MAX_AGE_SECONDS = 600


@dataclass(frozen=True, slots=True)
class GoogleOAuthConfig:
    """Static OAuth configuration loaded from the environment."""

    client_id: str
    client_secret: str
    redirect_uri: str
    token_uri: str = "https://oauth2.googleapis.com/token"
    authorization_uri: str = "https://accounts.google.com/o/oauth2/auth"
    scopes: Tuple[str, ...] = field(default=DEFAULT_LOGIN_SCOPES)

    @classmethod
    def from_env(cls) -> "GoogleOAuthConfig":
        if not CONFIG.google_client_id or not CONFIG.google_client_secret or not CONFIG.google_redirect_uri:
            raise GoogleAuthError(
                "Google OAuth environment variables are not fully configured. "
                "Please set GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, and GOOGLE_OAUTH_REDIRECT_URI.",
            )
        return cls(
            client_id=CONFIG.google_client_id,
            client_secret=CONFIG.google_client_secret,
            redirect_uri=CONFIG.google_redirect_uri,
        )

    def to_google_client_config(self) -> Dict[str, Dict[str, Any]]:
        """Return the structure expected by google-auth for the OAuth client."""

        return {
            "web": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": self.authorization_uri,
                "token_uri": self.token_uri,
                "redirect_uris": [self.redirect_uri],
            },
        }


def _state_key() -> bytes:
    secret = CONFIG.jwt_secret
    if not secret:
        raise GoogleAuthError("JWT_SECRET is required to sign OAuth state values.")
    return secret.encode("utf-8")


@dataclass(frozen=True, slots=True)
class OAuthState:
    """Signed state passed through the login redirect."""

    nonce: str
    issued_at: int

    @classmethod
    def issue(cls) -> "OAuthState":
        return cls(nonce=secrets.token_urlsafe(24), issued_at=int(time.time()))

    def _signature(self) -> str:
        message = f"{self.nonce}:{self.issued_at}".encode("utf-8")
        return hmac.new(_state_key(), message, hashlib.sha256).hexdigest()

    def encode(self) -> str:
        """Encode the state payload as a URL-safe base64 string without padding."""

        payload = json.dumps({"n": self.nonce, "t": self.issued_at, "s": self._signature()}).encode("utf-8")
        return base64.urlsafe_b64encode(payload).decode("utf-8").rstrip("=")

    @classmethod
    def decode(cls, value: str, *, max_age: int = STATE_MAX_AGE_SECONDS) -> "OAuthState":
        """Decode and verify a state string produced by ``encode``."""

        if not value:
            raise GoogleAuthError("Missing OAuth state parameter.")

        padding = "=" * (-len(value) % 4)
        try:
            raw_bytes = base64.urlsafe_b64decode(f"{value}{padding}")
            payload = json.loads(raw_bytes.decode("utf-8"))
        except (ValueError, UnicodeDecodeError, binascii.Error, json.JSONDecodeError) as exc:
            raise GoogleAuthError("Malformed OAuth state value.") from exc

        if not isinstance(payload, dict):
            raise GoogleAuthError("Malformed OAuth state value.")
        nonce = payload.get("n")
        issued_at = payload.get("t")
        signature = payload.get("s")
        if not nonce or not isinstance(issued_at, int) or not signature:
            raise GoogleAuthError("Malformed OAuth state value.")

        state = cls(nonce=str(nonce), issued_at=issued_at)
        if not hmac.compare_digest(state._signature(), str(signature)):
            raise GoogleAuthError("OAuth state signature mismatch.")
        if int(time.time()) - issued_at > max_age:
            raise GoogleAuthError("OAuth state has expired.")
        return state


class GoogleProfile(BaseModel):
    """Subset of the Google userinfo payload used to resolve accounts."""

    google_id: str = Field(..., description="Stable Google account identifier.")
    email: str = Field(..., description="Verified primary e-mail address.")
    name: str = Field(default="", description="Display name.")
    picture: Optional[str] = Field(default=None, description="Avatar URL.")


class GoogleOAuthService:
    """Wraps the Google authorization-code flow used for sign-in."""

    def __init__(self, config: Optional[GoogleOAuthConfig] = None) -> None:
        self._config = config

    def _config_or_raise(self) -> GoogleOAuthConfig:
        if self._config is None:
            self._config = GoogleOAuthConfig.from_env()
        return self._config

    def _flow(self, state: str) -> Flow:
        config = self._config_or_raise()
        flow = Flow.from_client_config(
            config.to_google_client_config(),
            scopes=list(config.scopes),
            state=state,
        )
        flow.redirect_uri = config.redirect_uri
        return flow

    def generate_authorization_url(self) -> Tuple[str, OAuthState]:
        """Create the Google consent URL and the state expected back on the callback."""

        state = OAuthState.issue()
        authorization_url, _ = self._flow(state.encode()).authorization_url(
            access_type="online",
            include_granted_scopes="true",
            prompt="select_account",
        )
        return authorization_url, state

    def exchange_code(self, state_value: str, code: str) -> GoogleProfile:
        """Verify the state, exchange the code and load the Google profile."""

        OAuthState.decode(state_value)
        if not code:
            raise GoogleAuthError("Missing authorization code.")

        flow = self._flow(state_value)
        try:
            flow.fetch_token(code=code)
        except (OAuth2Error, RequestException, google_auth_exceptions.GoogleAuthError) as exc:
            raise GoogleAuthError(f"Could not exchange the authorization code: {exc}") from exc
        return self._fetch_profile(flow.credentials)

    def _fetch_profile(self, credentials: Any) -> GoogleProfile:
        try:
            service = build("oauth2", "v2", credentials=credentials, cache_discovery=False)
            info = service.userinfo().get().execute()
        except (HttpError, HttpLib2Error, google_auth_exceptions.GoogleAuthError, OSError) as exc:
            raise GoogleAuthError(f"Could not load Google profile: {exc}") from exc

        email = str(info.get("email") or "").lower()
        google_id = str(info.get("id") or "")
        if not email or not google_id:
            raise GoogleAuthError("Google profile is missing an e-mail address.")
        # Sign-in links accounts by e-mail address.
        if info.get("verified_email") is not True:
            raise GoogleAuthError("Google account e-mail address is not verified.")
        return GoogleProfile(
            google_id=google_id,
            email=email,
            name=str(info.get("name") or email.split("@")[0]),
            picture=info.get("picture"),
        )


__all__ = [
    "GoogleAuthError",
    "GoogleOAuthConfig",
    "GoogleOAuthService",
    "GoogleProfile",
    "OAuthState",
]
