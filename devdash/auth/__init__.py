"""
Authentication for DevDash (Supabase email/password sessions).
"""

from devdash.auth.session import SessionManager, get_session_manager, configure_session_manager

__all__ = [
    'SessionManager',
    'get_session_manager',
    'configure_session_manager',
]
