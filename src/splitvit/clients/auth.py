"""Supabase Auth (GoTrue) API client."""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any
from urllib.parse import urlencode

import httpx

from ..exceptions import AuthenticationError
from ..models import AuthSession, AuthUser

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
    """Pull the human-readable message out of an auth error response."""
    try:
        data = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    return (
        data.get("error_description")
        or data.get("msg")
        or data.get("message")
        or data.get("error")
        or f"HTTP {response.status_code}"
    )


def parse_user(data: dict[str, Any]) -> AuthUser:
    """Build an AuthUser from a GoTrue user object."""
    metadata = data.get("user_metadata") or {}
    return AuthUser(
        id=str(data["id"]),
        email=data.get("email"),
        full_name=metadata.get("full_name") or metadata.get("name"),
        avatar_url=metadata.get("avatar_url"),
    )


def parse_session(data: dict[str, Any]) -> AuthSession:
    """Build an AuthSession from a GoTrue token response."""
    if data.get("expires_at"):
        expires_at = datetime.fromtimestamp(int(data["expires_at"]), tz=UTC)
    else:
        expires_at = datetime.now(UTC) + timedelta(
            seconds=int(data.get("expires_in", 3600))
        )
    return AuthSession(
        access_token=data["access_token"],
        refresh_token=data["refresh_token"],
        expires_at=expires_at,
        user=parse_user(data["user"]),
    )


class SupabaseAuthClient:
    """Client for the Supabase Auth API v1."""

    def __init__(
        self,
        url: str,
        anon_key: str,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the auth client."""
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self.client = httpx.Client(
            base_url=f"{self.url}/auth/v1",
            headers={
                "apikey": anon_key,
                "Content-Type": "application/json",
            },
            timeout=30.0,
            transport=transport,
        )

    def close(self):
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    def _check(self, response: httpx.Response) -> None:
        if response.is_error:
            message = _error_message(response)
            logger.warning(f"Auth request failed ({response.status_code}): {message}")
            raise AuthenticationError(message)

    def sign_up(
        self, email: str, password: str, full_name: str | None = None
    ) -> AuthSession | None:
        """
        Register a new e-mail/password user.

        Args:
            email: E-mail address
            password: Password
            full_name: Optional display name stored in user metadata

        Returns:
            The new session, or None when the project requires the user to
            confirm their e-mail address before signing in
        """
        payload: dict[str, Any] = {"email": email, "password": password}
        if full_name:
            payload["data"] = {"full_name": full_name.strip()}

        response = self.client.post("/signup", json=payload)
        self._check(response)
        data = response.json()

        if "access_token" not in data:
            logger.info(f"Sign-up for {email} is awaiting e-mail confirmation")
            return None
        return parse_session(data)

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        """Exchange e-mail and password for a session."""
        response = self.client.post(
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        self._check(response)
        return parse_session(response.json())

    def refresh_session(self, refresh_token: str) -> AuthSession:
        """Exchange a refresh token for a new session."""
        response = self.client.post(
            "/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
        )
        self._check(response)
        return parse_session(response.json())

    def get_user(self, access_token: str) -> AuthUser:
        """Fetch the user an access token belongs to."""
        response = self.client.get(
            "/user", headers={"Authorization": f"Bearer {access_token}"}
        )
        self._check(response)
        return parse_user(response.json())

    def sign_out(self, access_token: str) -> None:
        """Revoke the session server-side."""
        response = self.client.post(
            "/logout", headers={"Authorization": f"Bearer {access_token}"}
        )
        self._check(response)

    def oauth_authorize_url(self, provider: str, redirect_to: str | None = None) -> str:
        """
        Build the URL that starts a third-party sign-in.

        Args:
            provider: OAuth provider name, e.g. "google"
            redirect_to: Where the provider should send the browser afterwards

        Returns:
            Absolute authorize URL to open in a browser
        """
        params = {"provider": provider}
        if redirect_to:
            params["redirect_to"] = redirect_to
        return f"{self.url}/auth/v1/authorize?{urlencode(params)}"
