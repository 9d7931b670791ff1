"""
Idea Map Editor - single owner of the in-memory idea graph.

The editor applies user gestures reported by the rendering surface
(add/move/delete node, connect/delete edge, edit memo, clear) and
reconciles the graph with the record store only on explicit load/save.

It holds no UI: confirmation and notifications are capabilities passed
in by the page, so the same logic runs under NiceGUI and in tests.
"""

import asyncio
import logging
import random
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Union

from devdash.ideas.models import (
    DEFAULT_COLOR,
    INCOMING_ANCHOR,
    OUTGOING_ANCHOR,
    Edge,
    Graph,
    Node,
    NodeView,
    build_node_views,
    edge_id_for,
    graph_from_record,
    graph_to_record,
    resolve_color,
)

logger = logging.getLogger(__name__)

ConfirmFn = Callable[[str], Union[bool, Awaitable[bool]]]
NotifyFn = Callable[[str, str], Any]

# New nodes land at a random spot inside this box so sequential adds don't stack
SPAWN_MIN = 100.0
SPAWN_MAX = 500.0

CONFIRM_DELETE_NODE = "Delete this node?"
CONFIRM_DELETE_EDGE = "Delete this connection?"
CONFIRM_CLEAR_ALL = "Delete all nodes and connections?"


def _always_confirm(message: str) -> bool:
    return True


def _log_notify(message: str, kind: str = "info") -> None:
    logger.info(f"[{kind}] {message}")


class IdeaMapEditor:
    """Session object owning one idea graph and the store handle it syncs with."""

    def __init__(
        self,
        store,
        confirm: Optional[ConfirmFn] = None,
        notify: Optional[NotifyFn] = None,
        io_bound: Optional[Callable[..., Awaitable[Any]]] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Args:
            store: StorageBackend providing read_idea_map / update_idea_map
            confirm: confirm(message) -> bool (or awaitable bool); defaults to yes
            notify: notify(message, kind) with kind 'positive' | 'negative' | 'info'
            io_bound: runs a blocking store call off the event loop
                      (NiceGUI pages pass run.io_bound)
            rng: random source for spawn positions
        """
        self._store = store
        self._confirm = confirm or _always_confirm
        self._notify = notify or _log_notify
        self._io_bound = io_bound or asyncio.to_thread
        self._rng = rng or random.Random()
        self._closed = False
        self._last_stamp = 0
        self.graph = Graph()
        self.last_saved_at: Optional[str] = None

    # --- Accessors ---

    @property
    def nodes(self) -> List[Node]:
        return self.graph.nodes

    @property
    def edges(self) -> List[Edge]:
        return self.graph.edges

    @property
    def record_id(self) -> Optional[str]:
        return self.graph.record_id

    @property
    def is_closed(self) -> bool:
        return self._closed

    def node_views(self) -> List[NodeView]:
        """View models for the surface, with delete / memo handles rebound."""
        return build_node_views(self.graph, on_delete=self.delete_node, on_memo_update=self.update_memo)

    def close(self) -> None:
        """Stop applying results of in-flight load/save (the page went away)."""
        self._closed = True

    def bind_to_client(self, client) -> None:
        """
        Close the editor when the page's NiceGUI client is deleted.

        A disconnect alone may be followed by a reconnect to the same
        client, so the editor stays open until the client is removed.
        """
        client.on_delete(self.close)

    # --- Helpers ---

    def _emit(self, message: str, kind: str = "info") -> None:
        if self._closed:
            return
        self._notify(message, kind)

    async def _ask(self, message: str) -> bool:
        result = self._confirm(message)
        if hasattr(result, '__await__'):
            result = await result
        return bool(result)

    def _new_node_id(self) -> str:
        # Microsecond timestamp, bumped if two adds land in the same tick
        stamp = max(time.time_ns() // 1000, self._last_stamp + 1)
        existing = self.graph.node_ids()
        while str(stamp) in existing:
            stamp += 1
        self._last_stamp = stamp
        return str(stamp)

    def _new_edge_id(self, source: str, target: str, source_anchor: str, target_anchor: str) -> str:
        base = edge_id_for(source, target, source_anchor, target_anchor)
        existing = self.graph.edge_ids()
        if base not in existing:
            return base
        n = 2
        while f"{base}-{n}" in existing:
            n += 1
        return f"{base}-{n}"

    # --- Persistence ---

    async def load(self) -> bool:
        """
        Replace the in-memory graph with the persisted record.

        A missing record yields an empty graph without a record id,
        which makes later saves no-ops.
        """
        try:
            record = await self._io_bound(self._store.read_idea_map)
        except Exception as e:
            logger.error(f"Failed to load idea map: {e}")
            self._emit(f"Failed to load idea map: {e}", "negative")
            return False

        if self._closed:
            logger.debug("Editor closed before load finished; dropping result")
            return False

        self.graph = graph_from_record(record)
        logger.info(
            f"Loaded idea map {self.graph.record_id}: "
            f"{len(self.graph.nodes)} nodes, {len(self.graph.edges)} edges"
        )
        return True

    async def save(self) -> bool:
        """
        Write nodes, edges and updated_at to the loaded record.

        The graph is serialized before the write is awaited, so edits made
        while the save is in flight are not part of it. A failed save leaves
        the in-memory graph untouched.
        """
        record_id = self.graph.record_id
        if not record_id:
            logger.info("Save skipped: no idea map record loaded")
            return False

        updated_at = datetime.now(timezone.utc).isoformat()
        record = graph_to_record(self.graph, updated_at=updated_at)
        fields = {k: v for k, v in record.items() if k != "id"}

        try:
            await self._io_bound(self._store.update_idea_map, record_id, fields)
        except Exception as e:
            logger.error(f"Failed to save idea map {record_id}: {e}")
            self._emit(f"Save failed: {e}", "negative")
            return False

        self.last_saved_at = updated_at
        logger.info(f"Saved idea map {record_id}: {len(fields['nodes'])} nodes, {len(fields['edges'])} edges")
        self._emit("Saved!", "positive")
        return True

    # --- Node operations ---

    def add_node(self, label: str, color: str = DEFAULT_COLOR) -> Optional[Node]:
        """Append a node at a random spawn position; an empty label is ignored."""
        label = (label or "").strip()
        if not label:
            return None

        node = Node(
            id=self._new_node_id(),
            label=label,
            color=resolve_color(color),
            memo="",
            x=self._rng.uniform(SPAWN_MIN, SPAWN_MAX),
            y=self._rng.uniform(SPAWN_MIN, SPAWN_MAX),
        )
        self.graph.nodes.append(node)
        logger.debug(f"Added node {node.id} ({node.label})")
        return node

    def apply_node_changes(self, changes: Iterable[Dict[str, Any]]) -> int:
        """
        Apply a batch of position patches from one drag frame.

        Each change: {"type": "position", "id": ..., "position": {"x": ..., "y": ...}}.
        Returns the number of nodes moved.
        """
        by_id = {n.id: n for n in self.graph.nodes}
        moved = 0
        for change in changes or []:
            if change.get("type") != "position":
                continue
            node = by_id.get(change.get("id"))
            position = change.get("position")
            if node is None or not position:
                continue
            try:
                node.x = float(position["x"])
                node.y = float(position["y"])
            except (KeyError, TypeError, ValueError):
                logger.debug(f"Ignoring malformed position change: {change!r}")
                continue
            moved += 1
        return moved

    async def delete_node(self, node_id: str) -> bool:
        """Remove a node and every edge touching it, after confirmation."""
        if self.graph.get_node(node_id) is None:
            return False
        if not await self._ask(CONFIRM_DELETE_NODE):
            return False

        nodes = [n for n in self.graph.nodes if n.id != node_id]
        edges = [e for e in self.graph.edges if not e.touches(node_id)]
        self.graph.nodes, self.graph.edges = nodes, edges
        logger.debug(f"Deleted node {node_id}")
        return True

    def update_memo(self, node_id: str, memo: str) -> bool:
        node = self.graph.get_node(node_id)
        if node is None:
            return False
        node.memo = memo or ""
        return True

    # --- Edge operations ---

    def connect(
        self,
        source: str,
        target: str,
        source_anchor: str = OUTGOING_ANCHOR,
        target_anchor: str = INCOMING_ANCHOR,
    ) -> Optional[Edge]:
        """
        Add an edge from source's outgoing anchor to target's incoming anchor.

        Parallel edges and self-loops are accepted; both endpoints must exist.
        """
        ids = self.graph.node_ids()
        if source not in ids or target not in ids:
            logger.debug(f"Ignoring connection {source} -> {target}: unknown endpoint")
            return None

        edge = Edge(
            id=self._new_edge_id(source, target, source_anchor, target_anchor),
            source=source,
            target=target,
            source_anchor=source_anchor,
            target_anchor=target_anchor,
        )
        self.graph.edges.append(edge)
        return edge

    async def delete_edge(self, edge_id: str) -> bool:
        """Click-to-delete path: confirm, then remove exactly that edge."""
        if edge_id not in self.graph.edge_ids():
            return False
        if not await self._ask(CONFIRM_DELETE_EDGE):
            return False
        return self.delete_edges([edge_id]) > 0

    def delete_edges(self, edge_ids: Iterable[str]) -> int:
        """Bulk deletion reported by the surface; no confirmation, unknown ids ignored."""
        doomed = set(edge_ids or [])
        before = len(self.graph.edges)
        self.graph.edges = [e for e in self.graph.edges if e.id not in doomed]
        return before - len(self.graph.edges)

    def apply_edge_changes(self, changes: Iterable[Dict[str, Any]]) -> int:
        """Apply {"type": "remove", "id": ...} patches; other change types are ignored."""
        removed = [c.get("id") for c in changes or [] if c.get("type") == "remove"]
        return self.delete_edges(removed)

    # --- Whole graph ---

    async def clear_all(self) -> bool:
        """Empty both node and edge sets after confirmation; the record id is kept."""
        if not await self._ask(CONFIRM_CLEAR_ALL):
            return False
        self.graph.nodes, self.graph.edges = [], []
        logger.info("Cleared idea map")
        return True
