"""
Supabase Storage Backend for DevDash.

Implements the StorageBackend protocol using Supabase PostgreSQL.

Tables:
- idea_maps(id, nodes jsonb, edges jsonb, updated_at)
- snippets(id, title, code, language, created_at)
- notes(id, title, content, category, created_at, user_id, is_shared, share_token)
"""

import logging
import os
from typing import Dict, Any, List, Optional

from supabase import create_client, Client

from devdash.storage.protocol import StorageError

logger = logging.getLogger(__name__)


class SupabaseBackend:
    """
    Cloud-based storage backend using Supabase.

    Features:
    - PostgreSQL storage for the idea map, snippets and notes
    - Row Level Security for note ownership (via the authenticated client)
    """

    def __init__(
        self,
        client: Optional[Client] = None,
        supabase_url: Optional[str] = None,
        supabase_key: Optional[str] = None,
    ):
        """
        Initialize SupabaseBackend.

        Args:
            client: Optional pre-configured Supabase client
            supabase_url: Supabase project URL (or use SUPABASE_URL env)
            supabase_key: Supabase publishable key (or use SUPABASE_KEY env)
        """
        if client:
            self._client = client
        else:
            url = supabase_url or os.environ.get("SUPABASE_URL")
            key = supabase_key or os.environ.get("SUPABASE_KEY")

            if not url or not key:
                raise ValueError(
                    "Supabase URL and key required. "
                    "Set SUPABASE_URL and SUPABASE_KEY environment variables."
                )

            self._client = create_client(url, key)

    @property
    def backend_type(self) -> str:
        """Return the backend type identifier."""
        return "supabase"

    def for_client(self, client: Optional[Client]) -> "SupabaseBackend":
        """
        A backend whose calls run under the given signed-in client.

        RLS policies check auth.uid(), which is NULL unless the client
        carries the user's session. The shared backend keeps its own
        client; with no user client it is returned unchanged.
        """
        if client is None:
            return self
        return SupabaseBackend(client=client)

    # --- Idea Map ---

    def read_idea_map(self) -> Optional[Dict[str, Any]]:
        """Read the single idea map record (None if the table is empty)."""
        try:
            response = self._client.table("idea_maps")\
                .select("*")\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Failed to read idea map: {e}")
            raise StorageError(f"Could not load idea map: {e}") from e

        rows = response.data or []
        if not rows:
            logger.info("No idea map record found")
            return None
        return rows[0]

    def update_idea_map(self, map_id: str, fields: Dict[str, Any]) -> None:
        """Update the idea map record by id."""
        try:
            self._client.table("idea_maps")\
                .update(fields)\
                .eq("id", map_id)\
                .execute()
        except Exception as e:
            logger.error(f"Failed to update idea map {map_id}: {e}")
            raise StorageError(f"Could not save idea map: {e}") from e

    # --- Snippets ---

    def list_snippets(self) -> List[Dict[str, Any]]:
        try:
            response = self._client.table("snippets")\
                .select("*")\
                .order("created_at", desc=True)\
                .execute()
        except Exception as e:
            logger.error(f"Failed to list snippets: {e}")
            raise StorageError(f"Could not load snippets: {e}") from e
        return response.data or []

    def add_snippet(self, row: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self._client.table("snippets").insert(row).execute()
        except Exception as e:
            logger.error(f"Failed to add snippet: {e}")
            raise StorageError(f"Could not add snippet: {e}") from e
        return response.data[0] if response.data else dict(row)

    # --- Notes ---

    def list_notes(self, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Own notes plus shared notes for a user; shared notes only when anonymous."""
        try:
            query = self._client.table("notes")\
                .select("*")\
                .order("created_at", desc=True)
            if user_id:
                query = query.or_(f"user_id.eq.{user_id},is_shared.eq.true")
            else:
                query = query.eq("is_shared", True)
            response = query.execute()
        except Exception as e:
            logger.error(f"Failed to list notes: {e}")
            raise StorageError(f"Could not load notes: {e}") from e
        return response.data or []

    def add_note(self, row: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self._client.table("notes").insert(row).execute()
        except Exception as e:
            logger.error(f"Failed to add note: {e}")
            raise StorageError(f"Could not add note: {e}") from e
        return response.data[0] if response.data else dict(row)

    def delete_note(self, note_id: str) -> None:
        try:
            self._client.table("notes")\
                .delete()\
                .eq("id", note_id)\
                .execute()
        except Exception as e:
            logger.error(f"Failed to delete note {note_id}: {e}")
            raise StorageError(f"Could not delete note: {e}") from e

    def update_note(self, note_id: str, fields: Dict[str, Any]) -> None:
        try:
            self._client.table("notes")\
                .update(fields)\
                .eq("id", note_id)\
                .execute()
        except Exception as e:
            logger.error(f"Failed to update note {note_id}: {e}")
            raise StorageError(f"Could not update note: {e}") from e

    def get_shared_note(self, token: str) -> Optional[Dict[str, Any]]:
        if not token:
            return None
        try:
            response = self._client.table("notes")\
                .select("*")\
                .eq("share_token", token)\
                .eq("is_shared", True)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Failed to fetch shared note: {e}")
            raise StorageError(f"Could not load shared note: {e}") from e
        rows = response.data or []
        return rows[0] if rows else None
