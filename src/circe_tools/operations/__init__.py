"""Schematic editing and analysis operations."""

from .net_ops import (
    NetInfo,
    floating_nets,
    label_nets,
    net_name_at,
    net_names,
    net_table,
    vertex_net_names,
)
from .netlist import generate_netlist, spice_line, write_netlist
from .wiring import (
    corner_point,
    delete,
    draw_wire,
    duplicate,
    place_device,
    place_label,
)

__all__ = [
    # net_ops
    "NetInfo",
    "floating_nets",
    "label_nets",
    "net_name_at",
    "net_names",
    "net_table",
    "vertex_net_names",
    # netlist
    "generate_netlist",
    "spice_line",
    "write_netlist",
    # wiring
    "corner_point",
    "delete",
    "draw_wire",
    "duplicate",
    "place_device",
    "place_label",
]
