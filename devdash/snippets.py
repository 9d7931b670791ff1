"""
Code snippet store: save frequently used code and copy it back out.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

LANGUAGES = ("javascript", "typescript", "python", "css")
DEFAULT_LANGUAGE = "javascript"

LANGUAGE_LABELS = {
    "javascript": "JavaScript",
    "typescript": "TypeScript",
    "python": "Python",
    "css": "CSS",
}


@dataclass
class Snippet:
    id: str
    title: str
    code: str
    language: str = DEFAULT_LANGUAGE
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Snippet":
        return cls(
            id=str(row.get("id", "")),
            title=row.get("title", ""),
            code=row.get("code", ""),
            language=row.get("language") or DEFAULT_LANGUAGE,
            created_at=row.get("created_at"),
        )


class SnippetService:
    """Snippet operations on top of a StorageBackend."""

    def __init__(self, backend):
        self._backend = backend

    def list_snippets(self) -> List[Snippet]:
        """All snippets, newest first."""
        rows = self._backend.list_snippets()
        return [Snippet.from_row(r) for r in rows]

    def add_snippet(self, title: str, code: str, language: str = DEFAULT_LANGUAGE) -> Optional[Snippet]:
        """
        Store a new snippet.

        A missing title or code is ignored (returns None).

        Raises:
            ValueError: for a language outside LANGUAGES
            StorageError: if the backend write fails
        """
        if not title or not code:
            return None
        if language not in LANGUAGES:
            raise ValueError(f"Unsupported language: {language}")

        row = self._backend.add_snippet({"title": title, "code": code, "language": language})
        logger.info(f"Added snippet '{title}' ({language})")
        return Snippet.from_row(row)
