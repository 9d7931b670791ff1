"""
Session Management for DevDash.

Handles Supabase email/password auth, session storage, and user state.
Sessions are stored in NiceGUI's app.storage.user for persistence.
"""

import os
import logging
from typing import Optional, Dict, Any
from datetime import datetime, timedelta, timezone

from supabase import create_client, Client

logger = logging.getLogger(__name__)


class SessionManager:
    """
    Manages user sessions with Supabase authentication.

    Uses NiceGUI's storage system for session persistence.
    """

    def __init__(
        self,
        supabase_url: Optional[str] = None,
        supabase_key: Optional[str] = None,
        session_expiry_hours: int = 168,  # 7 days
        storage: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize SessionManager.

        Args:
            supabase_url: Supabase project URL (or use SUPABASE_URL env)
            supabase_key: Supabase publishable key (or use SUPABASE_KEY env)
            session_expiry_hours: How long sessions remain valid
            storage: Explicit session storage (defaults to app.storage.user)
        """
        self._supabase_url = supabase_url or os.environ.get("SUPABASE_URL")
        self._supabase_key = supabase_key or os.environ.get("SUPABASE_KEY")
        self._session_expiry = timedelta(hours=session_expiry_hours)
        self._storage = storage

    @property
    def is_available(self) -> bool:
        """Check if Supabase auth is configured."""
        return bool(self._supabase_url) and bool(self._supabase_key)

    def _new_client(self) -> Client:
        """
        Create a fresh Supabase client.

        Clients carry one user's auth state, so each sign-in and each
        restored session gets its own instead of sharing one per process.
        """
        if not self.is_available:
            raise RuntimeError("Supabase not configured")
        return create_client(self._supabase_url, self._supabase_key)

    def _get_storage(self) -> Dict[str, Any]:
        """Get NiceGUI storage for current user."""
        if self._storage is not None:
            return self._storage
        from nicegui import app
        return app.storage.user

    # --- Authentication ---

    def login(self, email: str, password: str) -> Dict[str, Any]:
        """
        Authenticate with email and password.

        Returns:
            Dict with 'success', 'user', 'error'
        """
        try:
            client = self._new_client()
            response = client.auth.sign_in_with_password({
                "email": email,
                "password": password
            })
        except Exception as e:
            logger.error(f"Login failed: {e}")
            return {"success": False, "user": None, "error": str(e)}

        if not response.user:
            return {"success": False, "user": None, "error": "Invalid credentials"}

        self._store_session(response)
        return {"success": True, "user": self._format_user(response.user), "error": None}

    def sign_up(self, email: str, password: str) -> Dict[str, Any]:
        """
        Register a new user. Supabase sends a confirmation email; the
        session is stored only when the project returns one immediately.

        Returns:
            Dict with 'success', 'user', 'error'
        """
        try:
            client = self._new_client()
            response = client.auth.sign_up({
                "email": email,
                "password": password,
            })
        except Exception as e:
            logger.error(f"Sign-up failed: {e}")
            error_msg = str(e)
            if "already registered" in error_msg.lower():
                error_msg = "This email is already registered"
            elif "password" in error_msg.lower():
                error_msg = "Password must be at least 6 characters"
            return {"success": False, "user": None, "error": error_msg}

        if not response.user:
            return {"success": False, "user": None, "error": "Sign-up failed"}

        if response.session:
            self._store_session(response)
        return {"success": True, "user": self._format_user(response.user), "error": None}

    def logout(self) -> None:
        """Log out the current user (this browser's session only)."""
        client = self.get_authenticated_client()
        if client is not None:
            try:
                client.auth.sign_out({"scope": "local"})
            except Exception as e:
                logger.warning(f"Logout error: {e}")

        storage = self._get_storage()
        storage.pop("supabase_session", None)
        storage.pop("user", None)

    # --- Session Management ---

    def _store_session(self, auth_response) -> None:
        """Store session data in NiceGUI storage."""
        storage = self._get_storage()
        session = auth_response.session

        storage["supabase_session"] = {
            "access_token": session.access_token if session else None,
            "refresh_token": session.refresh_token if session else None,
            "expires_at": (datetime.now(timezone.utc) + self._session_expiry).isoformat(),
            "user_id": auth_response.user.id if auth_response.user else None,
        }
        storage["user"] = self._format_user(auth_response.user) if auth_response.user else None
        logger.info(f"Stored session for user {storage['supabase_session']['user_id']}")

    @staticmethod
    def _format_user(user) -> Dict[str, Any]:
        """Format Supabase user object for storage."""
        return {
            "id": user.id,
            "email": user.email,
        }

    def get_current_user(self) -> Optional[Dict[str, Any]]:
        """Get the currently authenticated user, or None."""
        if not self.is_available:
            return None

        storage = self._get_storage()
        user = storage.get("user")
        session = storage.get("supabase_session")
        if not user or not session:
            return None

        expires_at = session.get("expires_at")
        if expires_at:
            try:
                expiry = datetime.fromisoformat(expires_at)
            except ValueError:
                logger.warning(f"Discarding session with bad expiry: {expires_at!r}")
                self.logout()
                return None
            if datetime.now(timezone.utc) > expiry:
                self.logout()
                return None

        return user

    def get_authenticated_client(self) -> Optional[Client]:
        """
        Build a Supabase client carrying the current user's session.

        The tokens come from this browser's storage, so concurrent users
        never share a client. Returns None when nobody is signed in.
        """
        if not self.is_available:
            return None

        session_data = self._get_storage().get("supabase_session") or {}
        access_token = session_data.get("access_token")
        refresh_token = session_data.get("refresh_token")
        if not access_token or not refresh_token:
            return None

        try:
            client = self._new_client()
            client.auth.set_session(access_token, refresh_token)
            logger.debug(f"Restored session for user {session_data.get('user_id')}")
            return client
        except Exception as e:
            logger.warning(f"Failed to restore session: {e}")
            return None


# Global session manager instance
_session_manager: Optional[SessionManager] = None


def get_session_manager() -> SessionManager:
    """Get the global session manager instance."""
    global _session_manager

    if _session_manager is None:
        _session_manager = SessionManager()

    return _session_manager


def configure_session_manager(
    supabase_url: Optional[str] = None,
    supabase_key: Optional[str] = None
) -> SessionManager:
    """Configure and return the global session manager."""
    global _session_manager

    _session_manager = SessionManager(
        supabase_url=supabase_url,
        supabase_key=supabase_key
    )

    return _session_manager
