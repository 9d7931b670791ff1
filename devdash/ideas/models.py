"""
Idea map data model.

Two shapes are kept strictly apart:

- Persisted data (Node, Edge, Graph and their JSON records): pure fields only.
- View model (NodeView): a node plus the operation handles the rendering
  surface calls back into (delete, update memo). Never serialized.

Persisted record shape:
{
  "id": "<record id>",
  "nodes": [{"id", "type": "custom", "position": {"x", "y"}, "data": {"label", "color", "memo"}}],
  "edges": [{"id", "source", "target"}],
  "updated_at": "<ISO timestamp>"
}
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

NODE_TYPE = "custom"

# Every node has exactly these two connection anchors
INCOMING_ANCHOR = "top"
OUTGOING_ANCHOR = "bottom"

DEFAULT_COLOR = "blue"

COLOR_PALETTE: Dict[str, Dict[str, str]] = {
    "blue": {"border": "#3b82f6", "bg": "rgba(30, 58, 138, 0.5)"},
    "green": {"border": "#22c55e", "bg": "rgba(20, 83, 45, 0.5)"},
    "red": {"border": "#ef4444", "bg": "rgba(127, 29, 29, 0.5)"},
    "yellow": {"border": "#eab308", "bg": "rgba(113, 63, 18, 0.5)"},
    "purple": {"border": "#a855f7", "bg": "rgba(88, 28, 135, 0.5)"},
}

# Older records stored the Tailwind class pair instead of the tag
_LEGACY_COLOR_CLASSES = {
    f"border-{tag}-500 bg-{tag}-900/50": tag for tag in COLOR_PALETTE
}


def resolve_color(tag: Optional[str]) -> str:
    """Map a stored color value to a palette tag; unknown or missing -> blue."""
    if not tag:
        return DEFAULT_COLOR
    tag = str(tag).strip()
    if tag in COLOR_PALETTE:
        return tag
    return _LEGACY_COLOR_CLASSES.get(tag, DEFAULT_COLOR)


def color_style(tag: Optional[str]) -> Dict[str, str]:
    """Border/fill pair for a color tag."""
    return COLOR_PALETTE[resolve_color(tag)]


def edge_id_for(source: str, target: str,
                source_anchor: str = OUTGOING_ANCHOR,
                target_anchor: str = INCOMING_ANCHOR) -> str:
    """Edge identity derived from its endpoints and anchors."""
    return f"edge-{source}{source_anchor}-{target}{target_anchor}"


@dataclass
class Node:
    id: str
    label: str
    color: str = DEFAULT_COLOR
    memo: str = ""
    x: float = 0.0
    y: float = 0.0

    @property
    def incoming_anchor(self) -> str:
        return INCOMING_ANCHOR

    @property
    def outgoing_anchor(self) -> str:
        return OUTGOING_ANCHOR


@dataclass
class Edge:
    id: str
    source: str
    target: str
    source_anchor: str = OUTGOING_ANCHOR
    target_anchor: str = INCOMING_ANCHOR

    def touches(self, node_id: str) -> bool:
        return self.source == node_id or self.target == node_id


@dataclass
class Graph:
    nodes: List[Node] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)
    record_id: Optional[str] = None

    def node_ids(self) -> set:
        return {n.id for n in self.nodes}

    def edge_ids(self) -> set:
        return {e.id for e in self.edges}

    def get_node(self, node_id: str) -> Optional[Node]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None


# --- Persisted projections ---

def node_to_record(node: Node) -> Dict[str, Any]:
    return {
        "id": node.id,
        "type": NODE_TYPE,
        "position": {"x": node.x, "y": node.y},
        "data": {
            "label": node.label,
            "color": node.color,
            "memo": node.memo,
        },
    }


def node_from_record(record: Dict[str, Any]) -> Node:
    """
    Build a Node from its persisted record.

    Any behavior-carrying keys that older records kept in "data"
    (onDelete, onMemoUpdate, ...) are ignored.

    Raises:
        ValueError: if the record has no id
    """
    node_id = record.get("id")
    if not node_id:
        raise ValueError(f"Node record without id: {record!r}")

    data = record.get("data") or {}
    position = record.get("position")
    if not isinstance(position, dict):
        position = {}
    return Node(
        id=str(node_id),
        label=str(data.get("label") or ""),
        color=resolve_color(data.get("color")),
        memo=str(data.get("memo") or ""),
        x=_coordinate(position.get("x")),
        y=_coordinate(position.get("y")),
    )


def _coordinate(value: Any) -> float:
    """A stored coordinate as float; null or non-numeric values become 0."""
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def edge_to_record(edge: Edge) -> Dict[str, Any]:
    return {"id": edge.id, "source": edge.source, "target": edge.target}


def edge_from_record(record: Dict[str, Any]) -> Edge:
    source = record.get("source")
    target = record.get("target")
    if not source or not target:
        raise ValueError(f"Edge record without endpoints: {record!r}")
    source_anchor = record.get("sourceHandle") or OUTGOING_ANCHOR
    target_anchor = record.get("targetHandle") or INCOMING_ANCHOR
    edge_id = record.get("id") or edge_id_for(source, target, source_anchor, target_anchor)
    return Edge(
        id=str(edge_id),
        source=str(source),
        target=str(target),
        source_anchor=source_anchor,
        target_anchor=target_anchor,
    )


def graph_to_record(graph: Graph, updated_at: Optional[str] = None) -> Dict[str, Any]:
    record = {
        "id": graph.record_id,
        "nodes": [node_to_record(n) for n in graph.nodes],
        "edges": [edge_to_record(e) for e in graph.edges],
    }
    if updated_at is not None:
        record["updated_at"] = updated_at
    return record


def graph_from_record(record: Optional[Dict[str, Any]]) -> Graph:
    """
    Deserialize a persisted record into a Graph.

    Malformed node/edge entries are skipped, and edges whose endpoints are
    not in the node set are dropped so the graph never holds dangling edges.
    """
    if not record:
        return Graph()

    nodes: List[Node] = []
    seen = set()
    for raw in record.get("nodes") or []:
        try:
            node = node_from_record(raw)
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Skipping malformed node record: {e}")
            continue
        if node.id in seen:
            logger.warning(f"Skipping duplicate node id {node.id}")
            continue
        seen.add(node.id)
        nodes.append(node)

    edges: List[Edge] = []
    for raw in record.get("edges") or []:
        try:
            edge = edge_from_record(raw)
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Skipping malformed edge record: {e}")
            continue
        if edge.source not in seen or edge.target not in seen:
            logger.warning(f"Dropping dangling edge {edge.id}")
            continue
        edges.append(edge)

    record_id = record.get("id")
    return Graph(nodes=nodes, edges=edges, record_id=str(record_id) if record_id else None)


# --- View model ---

@dataclass
class NodeView:
    """A node as the rendering surface sees it: data plus operation handles."""
    node: Node
    on_delete: Callable[[str], Any]
    on_memo_update: Callable[[str, str], Any]

    @property
    def id(self) -> str:
        return self.node.id

    @property
    def label(self) -> str:
        return self.node.label

    @property
    def memo(self) -> str:
        return self.node.memo

    @property
    def style(self) -> Dict[str, str]:
        return color_style(self.node.color)

    def delete(self):
        return self.on_delete(self.node.id)

    def update_memo(self, memo: str):
        return self.on_memo_update(self.node.id, memo)


def build_node_views(graph: Graph,
                     on_delete: Callable[[str], Any],
                     on_memo_update: Callable[[str, str], Any]) -> List[NodeView]:
    return [NodeView(node=n, on_delete=on_delete, on_memo_update=on_memo_update) for n in graph.nodes]
