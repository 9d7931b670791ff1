"""
Rendering-surface adapter for the idea map.

Produces an ECharts-compatible configuration for the graph (rendered by
NiceGUI's ui.echart) and turns raw chart events back into editor gestures:

- node click pairs        -> connect(source, target)
- edge click              -> delete_edge (confirmed) or selection toggle
- reported node positions -> apply_node_changes position patches

NetworkX holds the structure while building the option dict; a
MultiDiGraph because parallel edges and self-loops are allowed.
"""

from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

import networkx as nx

from devdash.ideas.models import Graph, color_style

# Custom event the page's JS emits after a node drag
POSITIONS_EVENT = 'devdash_positions'

NODE_SIZE = [150, 44]
EDGE_COLOR = '#9ca3af'
SELECTED_EDGE_COLOR = '#facc15'
PENDING_BORDER_COLOR = '#f9fafb'


def build_chart_options(
    graph: Graph,
    pending_source: Optional[str] = None,
    selected_edges: Optional[Iterable[str]] = None,
) -> Dict[str, Any]:
    """
    Build the ECharts option dict for the current graph.

    Args:
        graph: The editor's graph
        pending_source: Node armed as the source of a connection (highlighted)
        selected_edges: Edge ids selected for bulk deletion (highlighted)
    """
    selected = set(selected_edges or [])

    G = nx.MultiDiGraph()
    for node in graph.nodes:
        G.add_node(node.id, node=node)
    for edge in graph.edges:
        if edge.source in G and edge.target in G:
            G.add_edge(edge.source, edge.target, key=edge.id)

    data = []
    for node_id, attrs in G.nodes(data=True):
        node = attrs['node']
        style = color_style(node.color)
        is_pending = node_id == pending_source
        data.append({
            'id': node_id,
            'name': node_id,
            'x': node.x,
            'y': node.y,
            'value': node.label,
            'symbol': 'roundRect',
            'symbolSize': NODE_SIZE,
            'draggable': True,
            'itemStyle': {
                'color': style['bg'],
                'borderColor': PENDING_BORDER_COLOR if is_pending else style['border'],
                'borderWidth': 4 if is_pending else 2,
            },
            'label': {'show': True, 'formatter': node.label, 'color': '#ffffff', 'fontWeight': 'bold'},
            'tooltip': {'formatter': node.memo or node.label},
        })

    links = []
    for src, tgt, edge_id in G.edges(keys=True):
        is_selected = edge_id in selected
        links.append({
            'id': edge_id,
            'source': src,
            'target': tgt,
            'lineStyle': {
                'color': SELECTED_EDGE_COLOR if is_selected else EDGE_COLOR,
                'width': 4 if is_selected else 2,
                'curveness': 0.1,
            },
        })

    return {
        'backgroundColor': '#111827',
        'tooltip': {},
        'animationDurationUpdate': 0,  # Prevent animated repositioning on updates
        'series': [{
            'type': 'graph',
            'layout': 'none',
            'roam': True,
            'edgeSymbol': ['none', 'arrow'],
            'edgeSymbolSize': 10,
            'data': data,
            'links': links,
            'emphasis': {'focus': 'adjacency'},
        }],
    }


class ConnectGesture:
    """
    Two-click connection: the first node clicked is armed as the source
    (its outgoing anchor), the second click completes the connection.
    """

    def __init__(self):
        self.pending_source: Optional[str] = None

    @property
    def armed(self) -> bool:
        return self.pending_source is not None

    def click_node(self, node_id: str) -> Optional[Tuple[str, str]]:
        if self.pending_source is None:
            self.pending_source = node_id
            return None
        source, self.pending_source = self.pending_source, None
        return source, node_id

    def cancel(self) -> None:
        self.pending_source = None


class EdgeSelection:
    """Edges picked on the surface for bulk deletion with the Delete key."""

    def __init__(self):
        self._ids: Set[str] = set()

    @property
    def ids(self) -> Set[str]:
        return set(self._ids)

    def toggle(self, edge_id: str) -> bool:
        if edge_id in self._ids:
            self._ids.discard(edge_id)
            return False
        self._ids.add(edge_id)
        return True

    def retain(self, existing: Iterable[str]) -> None:
        """Forget selections whose edges no longer exist."""
        self._ids &= set(existing)

    def clear(self) -> None:
        self._ids.clear()


def parse_click(data_type: Optional[str], data: Any) -> Optional[Tuple[str, str]]:
    """Classify a chart click as ('node', id) or ('edge', id)."""
    if not isinstance(data, dict):
        return None
    if data_type == 'node':
        node_id = data.get('id') or data.get('name')
        return ('node', str(node_id)) if node_id else None
    if data_type == 'edge':
        edge_id = data.get('id')
        return ('edge', str(edge_id)) if edge_id else None
    return None


def position_changes_from_payload(payload: Any) -> List[Dict[str, Any]]:
    """
    Convert the positions reported by the chart into position patches.

    Accepts {'positions': [{'id', 'x', 'y'}, ...]} or the bare list.
    """
    if isinstance(payload, dict):
        payload = payload.get('positions', [])
    if not isinstance(payload, (list, tuple)):
        return []

    changes = []
    for item in payload:
        if not isinstance(item, dict) or item.get('id') is None:
            continue
        x, y = item.get('x'), item.get('y')
        if x is None or y is None:
            continue
        changes.append({
            'type': 'position',
            'id': str(item['id']),
            'position': {'x': x, 'y': y},
        })
    return changes
