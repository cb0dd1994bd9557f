"""
Schematic data model.

This module provides the connectivity model the editor works on:
- Vertex, Edge, Device and Label value types
- ConnectivityGraph with derived nets
- The built-in device library
- The three-layer draw model handed to renderers
"""

from .devices import (
    BUILTIN_TYPES,
    DEFAULT_LIBRARY,
    DeviceLibrary,
    DeviceType,
    PortDef,
)
from .draw_model import (
    DeviceShape,
    DrawLayer,
    DrawModel,
    LabelMarker,
    PortMarker,
    WireSegment,
)
from .graph import ConnectivityGraph
from .logging import disable_verbose, enable_verbose, is_verbose, verbose
from .models import (
    Device,
    Edge,
    Label,
    Point,
    Transform,
    Vertex,
    VertexRole,
    label_name,
    manhattan,
    normalize_rotation,
    rotate_point,
)

__all__ = [
    # Models
    "Device",
    "Edge",
    "Label",
    "Point",
    "Transform",
    "Vertex",
    "VertexRole",
    "label_name",
    "manhattan",
    "normalize_rotation",
    "rotate_point",
    # Graph
    "ConnectivityGraph",
    # Devices
    "BUILTIN_TYPES",
    "DEFAULT_LIBRARY",
    "DeviceLibrary",
    "DeviceType",
    "PortDef",
    # Drawing
    "DeviceShape",
    "DrawLayer",
    "DrawModel",
    "LabelMarker",
    "PortMarker",
    "WireSegment",
    # Logging
    "disable_verbose",
    "enable_verbose",
    "is_verbose",
    "verbose",
]
