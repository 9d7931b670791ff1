"""
Tests for IdeaMapEditor.

The store is a small in-memory fake; confirm and notify are recorded so
tests can assert on prompts and messages.
"""

import asyncio
import random
import pytest
from unittest.mock import MagicMock
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from devdash.ideas.editor import (
    IdeaMapEditor,
    SPAWN_MIN,
    SPAWN_MAX,
    CONFIRM_DELETE_NODE,
    CONFIRM_DELETE_EDGE,
    CONFIRM_CLEAR_ALL,
)
from devdash.storage.protocol import StorageError


async def direct_io(fn, *args, **kwargs):
    """Runs the store call inline instead of on a worker thread."""
    return fn(*args, **kwargs)


class FakeStore:
    def __init__(self, record=None):
        self.record = record
        self.updates = []
        self.fail_update = False

    def read_idea_map(self):
        return self.record

    def update_idea_map(self, map_id, fields):
        if self.fail_update:
            raise StorageError("network down")
        self.updates.append((map_id, fields))


class Recorder:
    """confirm + notify capability that remembers what it was asked."""

    def __init__(self, answer=True):
        self.answer = answer
        self.prompts = []
        self.messages = []

    def confirm(self, message):
        self.prompts.append(message)
        return self.answer

    def notify(self, message, kind='info'):
        self.messages.append((message, kind))


def stored_record(nodes=(), edges=(), record_id="map-1"):
    return {
        "id": record_id,
        "nodes": [
            {"id": n, "type": "custom", "position": {"x": 0, "y": 0},
             "data": {"label": n.upper(), "color": "blue", "memo": ""}}
            for n in nodes
        ],
        "edges": [{"id": f"{s}->{t}", "source": s, "target": t} for s, t in edges],
        "updated_at": "2024-01-01T00:00:00+00:00",
    }


def make_editor(record=None, answer=True):
    store = FakeStore(record)
    rec = Recorder(answer)
    editor = IdeaMapEditor(
        store,
        confirm=rec.confirm,
        notify=rec.notify,
        io_bound=direct_io,
        rng=random.Random(42),
    )
    return editor, store, rec


def loaded_editor(nodes=(), edges=(), answer=True):
    editor, store, rec = make_editor(stored_record(nodes, edges), answer)
    assert asyncio.run(editor.load())
    return editor, store, rec


class TestAddNode:

    def test_add_node_appends_with_defaults(self):
        editor, _, _ = make_editor()

        node = editor.add_node("Build a CLI")

        assert node is not None
        assert editor.nodes == [node]
        assert node.label == "Build a CLI"
        assert node.color == "blue"
        assert node.memo == ""
        assert SPAWN_MIN <= node.x <= SPAWN_MAX
        assert SPAWN_MIN <= node.y <= SPAWN_MAX

    def test_empty_label_is_ignored(self):
        editor, _, _ = make_editor()

        assert editor.add_node("") is None
        assert editor.add_node("   ") is None
        assert editor.nodes == []

    def test_label_is_trimmed(self):
        editor, _, _ = make_editor()
        node = editor.add_node("  padded  ")
        assert node.label == "padded"

    def test_color_is_kept_and_unknown_falls_back(self):
        editor, _, _ = make_editor()
        assert editor.add_node("A", "purple").color == "purple"
        assert editor.add_node("B", "magenta").color == "blue"

    def test_rapid_adds_get_unique_ids(self):
        editor, _, _ = make_editor()
        ids = [editor.add_node(f"idea {i}").id for i in range(50)]
        assert len(set(ids)) == 50

    def test_nodes_do_not_all_stack(self):
        editor, _, _ = make_editor()
        first = editor.add_node("first")
        second = editor.add_node("second")
        assert (first.x, first.y) != (second.x, second.y)


class TestConnect:

    def test_connect_adds_edge_from_outgoing_to_incoming(self):
        editor, _, _ = loaded_editor(nodes=["a", "b"])

        edge = editor.connect("a", "b")

        assert edge is not None
        assert edge.source == "a"
        assert edge.target == "b"
        assert edge.source_anchor == "bottom"
        assert edge.target_anchor == "top"
        assert edge.id == "edge-abottom-btop"
        assert edge in editor.edges

    def test_unknown_endpoint_is_ignored(self):
        editor, _, _ = loaded_editor(nodes=["a"])
        assert editor.connect("a", "ghost") is None
        assert editor.connect("ghost", "a") is None
        assert editor.edges == []

    def test_parallel_edges_get_distinct_ids(self):
        editor, _, _ = loaded_editor(nodes=["a", "b"])

        first = editor.connect("a", "b")
        second = editor.connect("a", "b")

        assert first.id != second.id
        assert len(editor.edges) == 2
        assert len(editor.graph.edge_ids()) == 2

    def test_self_loop_is_allowed(self):
        editor, _, _ = loaded_editor(nodes=["a"])
        edge = editor.connect("a", "a")
        assert edge is not None
        assert edge.source == edge.target == "a"


class TestDeleteNode:

    def test_delete_cascades_to_touching_edges(self):
        editor, _, rec = loaded_editor(nodes=["a", "b", "c"], edges=[("a", "b"), ("b", "c"), ("a", "c")])

        assert asyncio.run(editor.delete_node("b"))

        assert [n.id for n in editor.nodes] == ["a", "c"]
        assert [(e.source, e.target) for e in editor.edges] == [("a", "c")]
        assert rec.prompts == [CONFIRM_DELETE_NODE]

    def test_no_edge_references_a_missing_node_after_delete(self):
        editor, _, _ = loaded_editor(nodes=["a", "b"], edges=[("a", "b"), ("b", "a")])
        editor.connect("b", "b")

        asyncio.run(editor.delete_node("b"))

        ids = editor.graph.node_ids()
        assert all(e.source in ids and e.target in ids for e in editor.edges)
        assert editor.edges == []

    def test_declined_confirmation_changes_nothing(self):
        editor, _, rec = loaded_editor(nodes=["a", "b"], edges=[("a", "b")], answer=False)

        assert asyncio.run(editor.delete_node("a")) is False

        assert len(editor.nodes) == 2
        assert len(editor.edges) == 1
        assert rec.prompts == [CONFIRM_DELETE_NODE]

    def test_missing_node_does_not_prompt(self):
        editor, _, rec = loaded_editor(nodes=["a"])
        assert asyncio.run(editor.delete_node("ghost")) is False
        assert rec.prompts == []

    def test_async_confirm_is_awaited(self):
        store = FakeStore(stored_record(nodes=["a"]))

        async def confirm(message):
            return True

        editor = IdeaMapEditor(store, confirm=confirm, io_bound=direct_io)
        asyncio.run(editor.load())

        assert asyncio.run(editor.delete_node("a"))
        assert editor.nodes == []

    def test_node_view_delete_handle(self):
        editor, _, _ = loaded_editor(nodes=["a", "b"], edges=[("a", "b")])

        view = next(v for v in editor.node_views() if v.id == "a")
        assert asyncio.run(view.delete())

        assert [n.id for n in editor.nodes] == ["b"]
        assert editor.edges == []


class TestMemo:

    def test_update_memo_only_touches_that_node(self):
        editor, _, _ = loaded_editor(nodes=["a", "b"])

        assert editor.update_memo("a", "remember this")

        assert editor.graph.get_node("a").memo == "remember this"
        assert editor.graph.get_node("b").memo == ""

    def test_update_memo_on_missing_node(self):
        editor, _, _ = loaded_editor(nodes=["a"])
        assert editor.update_memo("ghost", "x") is False

    def test_node_view_memo_handle(self):
        editor, _, _ = loaded_editor(nodes=["a"])
        view = editor.node_views()[0]
        view.update_memo("via view")
        assert editor.graph.get_node("a").memo == "via view"


class TestEdgeDeletion:

    def test_click_delete_confirms_and_removes(self):
        editor, _, rec = loaded_editor(nodes=["a", "b"], edges=[("a", "b")])

        assert asyncio.run(editor.delete_edge("a->b"))

        assert editor.edges == []
        assert rec.prompts == [CONFIRM_DELETE_EDGE]

    def test_click_delete_declined(self):
        editor, _, _ = loaded_editor(nodes=["a", "b"], edges=[("a", "b")], answer=False)
        assert asyncio.run(editor.delete_edge("a->b")) is False
        assert len(editor.edges) == 1

    def test_deleting_twice_is_harmless(self):
        editor, _, rec = loaded_editor(nodes=["a", "b"], edges=[("a", "b")])

        assert asyncio.run(editor.delete_edge("a->b"))
        assert asyncio.run(editor.delete_edge("a->b")) is False

        assert editor.edges == []
        assert rec.prompts == [CONFIRM_DELETE_EDGE]

    def test_bulk_delete_needs_no_confirmation(self):
        editor, _, rec = loaded_editor(nodes=["a", "b", "c"], edges=[("a", "b"), ("b", "c"), ("a", "c")])

        removed = editor.delete_edges(["a->b", "b->c", "unknown"])

        assert removed == 2
        assert [e.id for e in editor.edges] == ["a->c"]
        assert rec.prompts == []

    def test_apply_edge_changes_handles_remove_only(self):
        editor, _, _ = loaded_editor(nodes=["a", "b"], edges=[("a", "b")])

        removed = editor.apply_edge_changes([
            {"type": "select", "id": "a->b"},
            {"type": "remove", "id": "a->b"},
        ])

        assert removed == 1
        assert editor.edges == []


class TestPositions:

    def test_position_changes_are_applied(self):
        editor, _, _ = loaded_editor(nodes=["a", "b"])

        moved = editor.apply_node_changes([
            {"type": "position", "id": "a", "position": {"x": 10, "y": 20}},
            {"type": "position", "id": "ghost", "position": {"x": 1, "y": 1}},
            {"type": "dimensions", "id": "b"},
        ])

        assert moved == 1
        node = editor.graph.get_node("a")
        assert (node.x, node.y) == (10.0, 20.0)
        assert (editor.graph.get_node("b").x, editor.graph.get_node("b").y) == (0.0, 0.0)

    def test_malformed_position_is_skipped(self):
        editor, _, _ = loaded_editor(nodes=["a"])
        moved = editor.apply_node_changes([{"type": "position", "id": "a", "position": {"x": "left"}}])
        assert moved == 0


class TestClearAll:

    def test_clear_all_empties_graph_and_keeps_record(self):
        editor, _, rec = loaded_editor(
            nodes=["a", "b", "c", "d", "e"],
            edges=[("a", "b"), ("b", "c"), ("d", "e")],
        )

        assert asyncio.run(editor.clear_all())

        assert editor.nodes == []
        assert editor.edges == []
        assert editor.record_id == "map-1"
        assert rec.prompts == [CONFIRM_CLEAR_ALL]

    def test_clear_all_declined(self):
        editor, _, _ = loaded_editor(nodes=["a", "b"], edges=[("a", "b")], answer=False)
        assert asyncio.run(editor.clear_all()) is False
        assert len(editor.nodes) == 2


class TestLoad:

    def test_load_replaces_graph(self):
        editor, _, _ = make_editor(stored_record(nodes=["a", "b"], edges=[("a", "b")]))
        editor.add_node("local only")

        assert asyncio.run(editor.load())

        assert [n.id for n in editor.nodes] == ["a", "b"]
        assert editor.record_id == "map-1"

    def test_load_without_record_gives_empty_graph(self):
        editor, _, _ = make_editor(None)
        assert asyncio.run(editor.load())
        assert editor.nodes == []
        assert editor.record_id is None

    def test_load_drops_dangling_edges(self):
        record = stored_record(nodes=["a"], edges=[("a", "gone")])
        editor, _, _ = make_editor(record)
        asyncio.run(editor.load())
        assert editor.edges == []

    def test_load_failure_notifies_and_keeps_graph(self):
        store = MagicMock()
        store.read_idea_map.side_effect = StorageError("offline")
        rec = Recorder()
        editor = IdeaMapEditor(store, notify=rec.notify, io_bound=direct_io)
        editor.add_node("keep me")

        assert asyncio.run(editor.load()) is False

        assert [n.label for n in editor.nodes] == ["keep me"]
        assert rec.messages[0][1] == "negative"
        assert "offline" in rec.messages[0][0]

    def test_closed_editor_drops_load_result(self):
        editor, _, rec = make_editor(stored_record(nodes=["a"]))
        editor.close()

        assert asyncio.run(editor.load()) is False
        assert editor.nodes == []
        assert rec.messages == []

    def test_default_io_bound_runs_in_thread(self):
        store = FakeStore(stored_record(nodes=["a"]))
        editor = IdeaMapEditor(store)
        assert asyncio.run(editor.load())
        assert [n.id for n in editor.nodes] == ["a"]


class TestSave:

    def test_save_writes_nodes_edges_and_timestamp(self):
        editor, store, rec = loaded_editor(nodes=["a", "b"], edges=[("a", "b")])
        editor.update_memo("a", "note")

        assert asyncio.run(editor.save())

        map_id, fields = store.updates[0]
        assert map_id == "map-1"
        assert set(fields) == {"nodes", "edges", "updated_at"}
        assert [n["id"] for n in fields["nodes"]] == ["a", "b"]
        assert fields["nodes"][0]["data"] == {"label": "A", "color": "blue", "memo": "note"}
        assert fields["edges"] == [{"id": "a->b", "source": "a", "target": "b"}]
        assert editor.last_saved_at == fields["updated_at"]
        assert rec.messages == [("Saved!", "positive")]

    def test_saved_nodes_carry_no_handles(self):
        editor, store, _ = loaded_editor(nodes=["a"])
        editor.node_views()

        asyncio.run(editor.save())

        data = store.updates[0][1]["nodes"][0]["data"]
        assert set(data) == {"label", "color", "memo"}

    def test_save_without_record_is_a_noop(self):
        editor, store, rec = make_editor(None)
        asyncio.run(editor.load())
        editor.add_node("unsaved")

        assert asyncio.run(editor.save()) is False

        assert store.updates == []
        assert rec.messages == []

    def test_failed_save_keeps_graph_and_reports(self):
        editor, store, rec = loaded_editor(nodes=["a", "b"], edges=[("a", "b")])
        store.fail_update = True

        assert asyncio.run(editor.save()) is False

        assert len(editor.nodes) == 2
        assert len(editor.edges) == 1
        assert editor.last_saved_at is None
        assert rec.messages[0][1] == "negative"
        assert "network down" in rec.messages[0][0]

    def test_save_then_load_restores_graph(self):
        editor, store, _ = loaded_editor(nodes=["a", "b"], edges=[("a", "b")])
        editor.update_memo("b", "memo b")
        editor.apply_node_changes([{"type": "position", "id": "a", "position": {"x": 5, "y": 6}}])
        purple = editor.add_node("Gamma", "purple")
        green = editor.add_node("Delta", "green")
        editor.connect(purple.id, green.id)
        asyncio.run(editor.save())

        record = dict(store.updates[0][1], id="map-1")
        fresh, _, _ = make_editor(record)
        asyncio.run(fresh.load())

        def fields(node):
            return (node.id, node.label, node.color, node.memo, node.x, node.y)

        assert [fields(n) for n in fresh.nodes] == [fields(n) for n in editor.nodes]
        assert fresh.graph.get_node(purple.id).color == "purple"
        assert fresh.graph.get_node(green.id).color == "green"
        assert [(e.source, e.target) for e in fresh.edges] == \
            [("a", "b"), (purple.id, green.id)]

    def test_closed_editor_does_not_notify(self):
        editor, store, rec = loaded_editor(nodes=["a"])
        editor.close()

        asyncio.run(editor.save())

        assert len(store.updates) == 1
        assert rec.messages == []


class TestClientLifetime:

    def test_closes_on_client_delete_not_disconnect(self):
        editor, _, _ = loaded_editor(nodes=["a"])
        client = MagicMock()

        editor.bind_to_client(client)

        client.on_delete.assert_called_once_with(editor.close)
        client.on_disconnect.assert_not_called()
        assert not editor.is_closed

    def test_editor_keeps_working_until_client_deleted(self):
        editor, store, rec = loaded_editor(nodes=["a"])
        client = MagicMock()
        editor.bind_to_client(client)

        editor.add_node("after a reconnect")
        asyncio.run(editor.save())
        assert rec.messages == [("Saved!", "positive")]

        delete_handler = client.on_delete.call_args[0][0]
        delete_handler()
        assert editor.is_closed
