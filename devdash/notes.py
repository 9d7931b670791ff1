"""
Study notes: per-user notes with search and share-by-link.

Visibility rules:
- A signed-in user sees their own notes plus every shared note.
- An anonymous visitor sees shared notes only.
- Only the owner may delete a note or change its sharing.
- A shared note is also readable by anyone holding its share token
  at /notes/shared/{token}.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

CATEGORIES = ("general", "react", "nextjs", "css", "error")
DEFAULT_CATEGORY = "general"

CATEGORY_LABELS = {
    "general": "General",
    "react": "React",
    "nextjs": "Next.js",
    "css": "CSS",
    "error": "Error fixes",
}

SHARED_PATH = "/notes/shared/{token}"

CONFIRM_DELETE_NOTE = "Delete this note?"

# Viewer used when the local backend is active (no Supabase auth)
LOCAL_USER = {"id": "local", "email": "local"}


class NoteValidationError(ValueError):
    """Raised when a note is missing required fields."""


@dataclass
class Note:
    id: str
    title: str
    content: str
    category: str = DEFAULT_CATEGORY
    created_at: Optional[str] = None
    user_id: Optional[str] = None
    is_shared: bool = False
    share_token: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Note":
        return cls(
            id=str(row.get("id", "")),
            title=row.get("title", ""),
            content=row.get("content", ""),
            category=row.get("category") or DEFAULT_CATEGORY,
            created_at=row.get("created_at"),
            user_id=row.get("user_id"),
            is_shared=bool(row.get("is_shared")),
            share_token=row.get("share_token"),
        )


def filter_notes(notes: List[Note], query: str) -> List[Note]:
    """Case-insensitive substring search over title, content and category."""
    if not query or not query.strip():
        return list(notes)
    q = query.strip().lower()
    return [
        n for n in notes
        if q in n.title.lower() or q in n.content.lower() or q in n.category.lower()
    ]


class NotesService:
    """Note operations for one viewer (a user dict from SessionManager, or None)."""

    def __init__(self, backend, user: Optional[Dict[str, Any]] = None, io_bound=None):
        self._backend = backend
        self.user = user
        self._io_bound = io_bound or asyncio.to_thread

    @property
    def user_id(self) -> Optional[str]:
        return self.user.get("id") if self.user else None

    def fetch_notes(self) -> List[Note]:
        rows = self._backend.list_notes(self.user_id)
        return [Note.from_row(r) for r in rows]

    def add_note(self, title: str, content: str, category: str = DEFAULT_CATEGORY) -> Note:
        """
        Create a note owned by the current user (unowned when anonymous).

        Raises:
            NoteValidationError: if title or content is empty, or the category is unknown
            StorageError: if the backend write fails
        """
        if not title or not content:
            raise NoteValidationError("Please enter a title and content")
        if category not in CATEGORIES:
            raise NoteValidationError(f"Unknown category: {category}")

        row: Dict[str, Any] = {"title": title, "content": content, "category": category}
        if self.user_id:
            row["user_id"] = self.user_id
            row["is_shared"] = False

        stored = self._backend.add_note(row)
        logger.info(f"Added note '{title}' for {self.user_id or 'anonymous'}")
        return Note.from_row(stored)

    def can_manage(self, note: Note) -> bool:
        return bool(self.user_id) and note.user_id == self.user_id

    async def delete_note(self, note: Note, confirm: Callable[[str], Union[bool, Awaitable[bool]]]) -> bool:
        """Delete an owned note after confirmation."""
        if not self.can_manage(note):
            raise PermissionError("Only the owner can delete this note")

        result = confirm(CONFIRM_DELETE_NOTE)
        if hasattr(result, '__await__'):
            result = await result
        if not result:
            return False

        await self._io_bound(self._backend.delete_note, note.id)
        logger.info(f"Deleted note {note.id}")
        return True

    def toggle_share(self, note: Note) -> Note:
        """
        Flip sharing on an owned note.

        The share token is minted once and kept when sharing is turned off,
        so re-sharing revives the same link.
        """
        if not self.can_manage(note):
            raise PermissionError("Only the owner can share this note")

        token = note.share_token or str(uuid.uuid4())
        is_shared = not note.is_shared
        self._backend.update_note(note.id, {"is_shared": is_shared, "share_token": token})
        note.is_shared = is_shared
        note.share_token = token
        logger.info(f"Note {note.id} sharing {'enabled' if is_shared else 'disabled'}")
        return note

    @staticmethod
    def share_path(note: Note) -> Optional[str]:
        if not note.is_shared or not note.share_token:
            return None
        return SHARED_PATH.format(token=note.share_token)

    def get_shared_note(self, token: str) -> Optional[Note]:
        row = self._backend.get_shared_note(token)
        return Note.from_row(row) if row else None
