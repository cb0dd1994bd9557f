"""
circe-tools: Connectivity and rerouting engine for schematic editors.

This package keeps a schematic as a graph of vertices, wires and devices,
reroutes wires when parts of it are grabbed and moved, and records every
change as an undoable command.

Modules:
    schematic: Element models, connectivity graph, device library, draw model
    router: Obstacle grid, A* pathfinder, grab rerouting, background worker
    history: Reversible commands and the undo/redo history
    operations: Wire drawing, deletion, net naming, SPICE netlist export
    io: Snapshot loading and saving (JSON/YAML)
    session: EditorSession, the single owning entry point

Quick Start::

    from circe_tools import EditorSession

    session = EditorSession()
    r1 = session.place_device("R", (0, 0))
    session.draw_wire((0, 3), (8, 3))

    session.begin_grab(devices=[r1])
    session.drag(0, -5)
    result = session.commit_grab()

    print(session.netlist())
    session.undo()
"""

__version__ = "0.1.0"

from circe_tools.config import Config, ConfigError
from circe_tools.exceptions import (
    CirceToolsError,
    EditorStateError,
    GraphError,
    HistoryError,
    LoadError,
)
from circe_tools.history import Batch, CommandHistory
from circe_tools.io import Snapshot, load_snapshot, save_snapshot
from circe_tools.router import GrabResult, GrabRouter, Pathfinder, Selection
from circe_tools.schematic import (
    ConnectivityGraph,
    Device,
    DeviceLibrary,
    DrawModel,
    Edge,
    Transform,
    Vertex,
    VertexRole,
)
from circe_tools.session import EditorSession

__all__ = [
    # Version
    "__version__",
    # Session
    "EditorSession",
    # Schematic
    "ConnectivityGraph",
    "Device",
    "DeviceLibrary",
    "DrawModel",
    "Edge",
    "Transform",
    "Vertex",
    "VertexRole",
    # History
    "Batch",
    "CommandHistory",
    # Routing
    "GrabResult",
    "GrabRouter",
    "Pathfinder",
    "Selection",
    # Persistence
    "Snapshot",
    "load_snapshot",
    "save_snapshot",
    # Config
    "Config",
    # Errors
    "CirceToolsError",
    "ConfigError",
    "EditorStateError",
    "GraphError",
    "HistoryError",
    "LoadError",
]
