"""
Local Storage Backend for DevDash.

Implements the StorageBackend protocol using JSON files in a local
data directory. This is the default backend and needs no credentials.

Structure:
- {data_dir}/idea_maps.json: list with the single idea map record
- {data_dir}/snippets.json: list of snippet rows
- {data_dir}/notes.json: list of note rows
"""

import json
import logging
import os
import tempfile
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Any, List, Optional, Union

from devdash.storage.protocol import StorageError

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class LocalBackend:
    """
    Local file-based storage backend.

    Every table is one JSON array file. Writes go through a temp file
    and os.replace so a crash never leaves a half-written table.
    """

    def __init__(self, data_dir: Union[str, Path]):
        """
        Initialize LocalBackend.

        Args:
            data_dir: Directory holding the table files (created if missing)
        """
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        # run.io_bound executes calls on a thread pool
        self._lock = threading.RLock()

    # --- Backend Information ---

    @property
    def backend_type(self) -> str:
        """Return the backend type identifier."""
        return "local"

    # --- File I/O Helpers ---

    def _table_path(self, table: str) -> Path:
        return self.data_dir / f"{table}.json"

    def _read_table(self, table: str) -> List[Dict[str, Any]]:
        path = self._table_path(table)
        if not path.exists():
            return []
        try:
            with open(path, "r", encoding="utf-8") as f:
                rows = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.error(f"Failed to read table {path}: {e}")
            raise StorageError(f"Could not read {table}: {e}") from e
        if not isinstance(rows, list):
            logger.error(f"Table {path} is not a JSON array")
            raise StorageError(f"Corrupt table file: {path.name}")
        return rows

    def _write_table(self, table: str, rows: List[Dict[str, Any]]) -> None:
        path = self._table_path(table)
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=f".{table}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(rows, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, path)
        except OSError as e:
            logger.error(f"Failed to write table {path}: {e}")
            raise StorageError(f"Could not write {table}: {e}") from e

    def _insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        stored = dict(row)
        stored.setdefault("id", str(uuid.uuid4()))
        stored.setdefault("created_at", _now_iso())
        with self._lock:
            rows = self._read_table(table)
            rows.append(stored)
            self._write_table(table, rows)
        return stored

    @staticmethod
    def _newest_first(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return sorted(rows, key=lambda r: r.get("created_at") or "", reverse=True)

    # --- Idea Map ---

    def read_idea_map(self) -> Optional[Dict[str, Any]]:
        """
        Read the idea map record.

        The hosted database is provisioned with one record; locally the
        record is created empty on first read so the editor can save.
        """
        with self._lock:
            rows = self._read_table("idea_maps")
            if rows:
                return rows[0]
            record = {
                "id": str(uuid.uuid4()),
                "nodes": [],
                "edges": [],
                "updated_at": _now_iso(),
            }
            self._write_table("idea_maps", [record])
            logger.info(f"Provisioned local idea map record {record['id']}")
            return record

    def update_idea_map(self, map_id: str, fields: Dict[str, Any]) -> None:
        """Update the idea map record identified by map_id."""
        with self._lock:
            rows = self._read_table("idea_maps")
            for row in rows:
                if row.get("id") == map_id:
                    row.update(fields)
                    break
            else:
                raise StorageError(f"Idea map {map_id} not found")
            self._write_table("idea_maps", rows)

    # --- Snippets ---

    def list_snippets(self) -> List[Dict[str, Any]]:
        with self._lock:
            return self._newest_first(self._read_table("snippets"))

    def add_snippet(self, row: Dict[str, Any]) -> Dict[str, Any]:
        return self._insert("snippets", row)

    # --- Notes ---

    def list_notes(self, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
        with self._lock:
            rows = self._read_table("notes")
        if user_id:
            visible = [r for r in rows if r.get("user_id") == user_id or r.get("is_shared")]
        else:
            visible = [r for r in rows if r.get("is_shared")]
        return self._newest_first(visible)

    def add_note(self, row: Dict[str, Any]) -> Dict[str, Any]:
        return self._insert("notes", row)

    def delete_note(self, note_id: str) -> None:
        with self._lock:
            rows = self._read_table("notes")
            remaining = [r for r in rows if r.get("id") != note_id]
            if len(remaining) != len(rows):
                self._write_table("notes", remaining)

    def update_note(self, note_id: str, fields: Dict[str, Any]) -> None:
        with self._lock:
            rows = self._read_table("notes")
            for row in rows:
                if row.get("id") == note_id:
                    row.update(fields)
                    break
            else:
                raise StorageError(f"Note {note_id} not found")
            self._write_table("notes", rows)

    def get_shared_note(self, token: str) -> Optional[Dict[str, Any]]:
        if not token:
            return None
        with self._lock:
            rows = self._read_table("notes")
        for row in rows:
            if row.get("share_token") == token and row.get("is_shared"):
                return row
        return None
