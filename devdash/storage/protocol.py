"""
StorageBackend Protocol Definition.

This module defines the abstract interface that all storage backends must implement.
Both LocalBackend (JSON files) and SupabaseBackend (cloud) conform to this protocol.
"""

from typing import Protocol, Dict, Any, List, Optional, runtime_checkable


class StorageError(Exception):
    """Raised when a backend read or write fails (network, API or file I/O)."""


@runtime_checkable
class StorageBackend(Protocol):
    """
    Abstract protocol for storage backends.

    Covers the three dashboard tables: the single idea map record,
    code snippets and study notes.
    """

    # --- Backend Information ---

    @property
    def backend_type(self) -> str:
        """Return the backend type identifier ('local' or 'supabase')."""
        ...

    # --- Idea Map (one shared record) ---

    def read_idea_map(self) -> Optional[Dict[str, Any]]:
        """
        Read the idea map record.

        Returns:
            Dict with keys id, nodes, edges, updated_at; or None if no record exists.

        Raises:
            StorageError: if the read fails
        """
        ...

    def update_idea_map(self, map_id: str, fields: Dict[str, Any]) -> None:
        """
        Update the idea map record identified by map_id with a partial field dict.

        Raises:
            StorageError: if the write fails or no record has that id
        """
        ...

    # --- Snippets ---

    def list_snippets(self) -> List[Dict[str, Any]]:
        """Return all snippets, newest first."""
        ...

    def add_snippet(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a snippet row (title, code, language).

        Returns:
            The stored row including id and created_at
        """
        ...

    # --- Notes ---

    def list_notes(self, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Return notes visible to user_id, newest first.

        A signed-in user sees their own notes plus every shared note;
        an anonymous caller (user_id None) sees shared notes only.
        """
        ...

    def add_note(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a note row and return it with id and created_at."""
        ...

    def delete_note(self, note_id: str) -> None:
        """Delete a note by id. Deleting a missing note is not an error."""
        ...

    def update_note(self, note_id: str, fields: Dict[str, Any]) -> None:
        """Update a note with a partial field dict."""
        ...

    def get_shared_note(self, token: str) -> Optional[Dict[str, Any]]:
        """Return the shared note carrying share_token == token, or None."""
        ...
