"""
NiceGUI pages for DevDash.

Pages receive an explicit AppContext (storage backend + session manager)
instead of reaching for module-level clients.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from devdash.auth.session import SessionManager
from devdash.notes import LOCAL_USER


@dataclass
class AppContext:
    backend: Any
    session: SessionManager

    @property
    def auth_enabled(self) -> bool:
        return self.backend.backend_type == "supabase" and self.session.is_available

    def viewer(self) -> Optional[Dict[str, Any]]:
        """The user notes are fetched for; the local backend has a single local user."""
        if self.backend.backend_type == "local":
            return LOCAL_USER
        return self.session.get_current_user()

    def viewer_backend(self):
        """
        Backend for the current viewer's note calls.

        On Supabase the calls run under a client built from this browser's
        session; the shared backend is never rebound to a user.
        """
        if self.backend.backend_type != "supabase":
            return self.backend
        return self.backend.for_client(self.session.get_authenticated_client())


def register_pages(ctx: AppContext) -> None:
    from devdash.pages import home, ideas, snippets, notes

    home.register(ctx)
    snippets.register(ctx)
    ideas.register(ctx)
    notes.register(ctx)
