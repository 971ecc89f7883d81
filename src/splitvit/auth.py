"""Session lifecycle on top of the hosted auth API."""

import logging
from datetime import UTC, datetime, timedelta
from urllib.parse import parse_qs, urlparse

from .clients.auth import SupabaseAuthClient
from .config import Settings
from .db import Database
from .exceptions import AuthenticationError
from .models import AuthSession

logger = logging.getLogger(__name__)


class AuthService:
    """Signs users in and out and keeps the local session fresh."""

    def __init__(self, settings: Settings, database: Database):
        """Initialize the auth service."""
        self.settings = settings
        self.db = database

    def _client(self) -> SupabaseAuthClient:
        return SupabaseAuthClient(
            self.settings.supabase_url, self.settings.supabase_anon_key
        )

    def sign_up(
        self, email: str, password: str, full_name: str | None = None
    ) -> AuthSession | None:
        """
        Create an account and sign in.

        Returns:
            The new session, or None if the e-mail address must be confirmed
            before the first sign-in
        """
        with self._client() as client:
            session = client.sign_up(email, password, full_name)

        if session:
            self.db.save_session(session)
            logger.info(f"Signed up and signed in as {email}")
        return session

    def sign_in(self, email: str, password: str) -> AuthSession:
        """Sign in with e-mail and password and remember the session."""
        with self._client() as client:
            session = client.sign_in_with_password(email, password)

        self.db.save_session(session)
        logger.info(f"Signed in as {email}")
        return session

    def oauth_url(self, provider: str = "google") -> str:
        """URL that starts a third-party sign-in and returns to the app."""
        with self._client() as client:
            return client.oauth_authorize_url(
                provider, redirect_to=self.settings.share_base_url
            )

    def sign_in_with_redirect(self, redirect_url: str) -> AuthSession:
        """
        Finish a third-party sign-in from the URL the browser landed on.

        The provider flow ends on ``share_base_url`` with the tokens in the
        URL fragment.

        Args:
            redirect_url: Full URL from the browser address bar

        Returns:
            The new session
        """
        fragment = parse_qs(urlparse(redirect_url).fragment)
        if "error_description" in fragment:
            raise AuthenticationError(fragment["error_description"][0])
        try:
            access_token = fragment["access_token"][0]
            refresh_token = fragment["refresh_token"][0]
        except KeyError:
            raise AuthenticationError(
                "Redirect URL does not contain sign-in tokens"
            ) from None
        expires_in = int(fragment.get("expires_in", ["3600"])[0])

        with self._client() as client:
            user = client.get_user(access_token)

        session = AuthSession(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=datetime.now(UTC) + timedelta(seconds=expires_in),
            user=user,
        )
        self.db.save_session(session)
        logger.info(f"Signed in as {user.email or user.id} via OAuth")
        return session

    def current_session(self) -> AuthSession:
        """
        Get a usable session, refreshing it if the access token has expired.

        Raises:
            AuthenticationError: If nobody is signed in or the refresh fails
        """
        session = self.db.get_session()
        if session is None:
            raise AuthenticationError("Not signed in. Run 'splitvit login' first.")

        if session.is_expired():
            logger.info("Access token expired, refreshing session")
            with self._client() as client:
                session = client.refresh_session(session.refresh_token)
            self.db.save_session(session)

        return session

    def sign_out(self) -> None:
        """Revoke the session and forget it locally."""
        session = self.db.get_session()
        if session is None:
            return

        try:
            with self._client() as client:
                client.sign_out(session.access_token)
        finally:
            self.db.clear_session()
            logger.info("Signed out")
