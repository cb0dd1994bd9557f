"""Tests for circe_tools.exceptions module."""

import pytest
from rich.console import Console

from circe_tools.exceptions import (
    CirceToolsError,
    DeviceInUseError,
    DuplicateEdgeError,
    DuplicateLabelError,
    EditorStateError,
    GrabCollisionError,
    GraphError,
    HistoryError,
    LoadError,
    UnknownDeviceKindError,
    UnknownLabelError,
    UnknownVertexError,
    VertexInUseError,
)


class TestCirceToolsError:
    """Tests for the base exception class."""

    def test_basic_message(self):
        err = CirceToolsError("Something went wrong")
        assert str(err) == "Something went wrong"
        assert err.message == "Something went wrong"
        assert err.context == {}
        assert err.suggestions == []

    def test_with_context_and_suggestions(self):
        err = CirceToolsError(
            "Snapshot write failed",
            context={"file": "amp.yaml"},
            suggestions=["Check the directory exists"],
        )
        msg = str(err)
        assert "Context:" in msg
        assert "file: amp.yaml" in msg
        assert "Suggestions:" in msg
        assert "- Check the directory exists" in msg

    def test_rich_rendering(self):
        console = Console(record=True, width=120)
        console.print(EditorStateError("No grab in progress", suggestions=["Grab first"]))
        text = console.export_text()
        assert "Error: No grab in progress" in text
        assert "Grab first" in text


class TestGraphErrors:
    """Graph contract violations."""

    def test_hierarchy(self):
        assert issubclass(GraphError, CirceToolsError)
        assert issubclass(VertexInUseError, GraphError)
        assert not issubclass(LoadError, GraphError)
        assert not issubclass(HistoryError, GraphError)

    def test_unknown_vertex(self):
        err = UnknownVertexError(7, "remove_vertex")
        assert err.vertex_id == 7
        assert err.context == {"vertex": 7, "operation": "remove_vertex"}

    def test_vertex_in_use(self):
        err = VertexInUseError(4, edges=[7, 9])
        assert "2 edge(s)" in err.message
        assert err.edges == [7, 9]
        assert err.suggestions

    def test_duplicate_edge_context(self):
        err = DuplicateEdgeError(3, 8, existing=12)
        assert err.context["existing_edge"] == 12

    def test_device_in_use(self):
        err = DeviceInUseError("R1", [0, 1])
        assert err.ports == [0, 1]

    def test_unknown_device_kind(self):
        err = UnknownDeviceKindError("nmos", ["NMOS", "PMOS", "R"])
        assert isinstance(err, GraphError)
        assert err.matches[0] == "NMOS"
        assert err.suggestions[0].startswith("Did you mean: NMOS")
        assert "Available kinds: NMOS, PMOS, R" in err.suggestions

    def test_label_errors(self):
        err = UnknownLabelError(3, "move_label")
        assert err.context == {"label": 3, "operation": "move_label"}
        assert issubclass(DuplicateLabelError, GraphError)

    def test_catch_as_base(self):
        with pytest.raises(CirceToolsError):
            raise UnknownVertexError(1)


class TestGrabCollisionError:
    """Refused grabs keep the gesture alive."""

    def test_collisions(self):
        err = GrabCollisionError([(0, 3, (10, 3))])
        assert isinstance(err, EditorStateError)
        assert err.collisions == [(0, 3, (10, 3))]
        assert "1 vertex(es)" in err.message
        assert err.context == {"collisions": "0 onto 3 at (10, 3)"}
        assert err.suggestions


class TestLoadError:
    """Load errors list every problem."""

    def test_numbered_errors(self):
        err = LoadError(["Edge 3 references unknown vertex 12", "Duplicate vertex id 5"])
        assert err.errors == ["Edge 3 references unknown vertex 12", "Duplicate vertex id 5"]
        assert "2 error(s)" in str(err)
        assert "1. Edge 3 references unknown vertex 12" in str(err)
        assert "2. Duplicate vertex id 5" in str(err)

    def test_context(self):
        err = LoadError(["bad"], context={"file": "design.json"})
        assert "file: design.json" in str(err)
