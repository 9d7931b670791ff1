"""
Idea map: a node/edge canvas persisted as one JSON record.
"""

from devdash.ideas.models import Node, Edge, Graph, NodeView, COLOR_PALETTE, DEFAULT_COLOR
from devdash.ideas.editor import IdeaMapEditor

__all__ = [
    'Node',
    'Edge',
    'Graph',
    'NodeView',
    'COLOR_PALETTE',
    'DEFAULT_COLOR',
    'IdeaMapEditor',
]
