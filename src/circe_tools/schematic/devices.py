"""
Device type library.

Each device type defines its port offsets, its body bounds and the SPICE
element line it contributes to a netlist. Geometry is expressed in grid
units relative to the device origin and rotated with the device.

Example::

    >>> from circe_tools.schematic.devices import DEFAULT_LIBRARY
    >>> res = DEFAULT_LIBRARY.get("R")
    >>> [p.name for p in res.ports]
    ['+', '-']
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from ..exceptions import UnknownDeviceKindError
from .models import Device, Point, rotate_point


@dataclass(frozen=True)
class PortDef:
    """A named port at a fixed offset from the device origin."""

    name: str
    offset: Point


@dataclass(frozen=True)
class DeviceType:
    """Definition of a placeable device kind."""

    kind: str
    prefix: str
    ports: Tuple[PortDef, ...]
    bounds: Tuple[Point, Point]  # (min corner, max corner) relative to origin
    spice_template: Optional[str] = None  # None = contributes no element line
    default_params: str = ""
    ground: bool = False  # Names its net as the ground net

    def port(self, name: str) -> PortDef:
        for port in self.ports:
            if port.name == name:
                return port
        names = ", ".join(p.name for p in self.ports)
        raise ValueError(f"Device kind {self.kind} has no port '{name}' (ports: {names})")

    @property
    def port_names(self) -> List[str]:
        return [p.name for p in self.ports]


def _two_terminal(kind: str, prefix: str, default_params: str) -> DeviceType:
    return DeviceType(
        kind=kind,
        prefix=prefix,
        ports=(PortDef("+", (0, 3)), PortDef("-", (0, -3))),
        bounds=((-1, -3), (1, 3)),
        spice_template="{ref} {nodes} {params}",
        default_params=default_params,
    )


def _mosfet(kind: str, model: str) -> DeviceType:
    return DeviceType(
        kind=kind,
        prefix="M",
        ports=(
            PortDef("d", (2, 3)),
            PortDef("g", (-2, 0)),
            PortDef("s", (2, -3)),
            PortDef("b", (2, 0)),
        ),
        bounds=((-2, -3), (2, 3)),
        spice_template="{ref} {nodes} " + model + " {params}",
    )


BUILTIN_TYPES: Tuple[DeviceType, ...] = (
    _two_terminal("R", "R", "1k"),
    _two_terminal("L", "L", "1u"),
    _two_terminal("C", "C", "1p"),
    _two_terminal("V", "V", "0"),
    _two_terminal("I", "I", "0"),
    _mosfet("NMOS", "MOSN"),
    _mosfet("PMOS", "MOSP"),
    DeviceType(
        kind="GND",
        prefix="GND",
        ports=(PortDef("gnd", (0, 2)),),
        bounds=((-1, 0), (1, 2)),
        ground=True,
    ),
)


@dataclass
class DeviceLibrary:
    """Registry of device types by kind."""

    types: Dict[str, DeviceType] = field(default_factory=dict)

    @classmethod
    def builtin(cls) -> DeviceLibrary:
        return cls({t.kind: t for t in BUILTIN_TYPES})

    def register(self, device_type: DeviceType) -> None:
        self.types[device_type.kind] = device_type

    def get(self, kind: str) -> DeviceType:
        try:
            return self.types[kind]
        except KeyError:
            raise UnknownDeviceKindError(kind, sorted(self.types)) from None

    def __contains__(self, kind: object) -> bool:
        return kind in self.types

    def __iter__(self) -> Iterator[DeviceType]:
        return iter(self.types.values())

    # Geometry helpers

    def port_position(self, device: Device, port_name: str) -> Point:
        """World position of a device port."""
        offset = self.get(device.kind).port(port_name).offset
        x, y = rotate_point(offset, device.rotation)
        return (device.position[0] + x, device.position[1] + y)

    def port_positions(self, device: Device) -> Dict[str, Point]:
        """World positions of all ports of a device, by port name."""
        return {
            port.name: self.port_position(device, port.name)
            for port in self.get(device.kind).ports
        }

    def body_bounds(self, device: Device) -> Tuple[Point, Point]:
        """World-space (min, max) corners of the device body."""
        (x0, y0), (x1, y1) = self.get(device.kind).bounds
        corners = [rotate_point(c, device.rotation) for c in ((x0, y0), (x1, y1))]
        xs = [device.position[0] + c[0] for c in corners]
        ys = [device.position[1] + c[1] for c in corners]
        return (min(xs), min(ys)), (max(xs), max(ys))

    def body_cells(self, device: Device) -> List[Point]:
        """Grid cells covered by the device body, excluding its port cells."""
        (x0, y0), (x1, y1) = self.body_bounds(device)
        ports = set(self.port_positions(device).values())
        return [
            (x, y)
            for x in range(x0, x1 + 1)
            for y in range(y0, y1 + 1)
            if (x, y) not in ports
        ]

    def reference_number(self, kind: str, ref: str) -> Optional[int]:
        """Numeric part of ``ref`` under the kind's prefix (3 for ``R3``), if any."""
        prefix = self.get(kind).prefix
        suffix = ref[len(prefix) :]
        if ref.startswith(prefix) and suffix.isdigit():
            return int(suffix)
        return None

    def next_reference(self, kind: str, issued: Iterable[str]) -> str:
        """Reference one above the highest number issued for the kind's prefix.

        Numbers freed by deleted devices are not reused: after ``R1`` and
        ``R2`` were issued and ``R2`` deleted, the next resistor is ``R3``.
        """
        numbers = (self.reference_number(kind, ref) for ref in issued)
        highest = max((n for n in numbers if n is not None), default=0)
        return f"{self.get(kind).prefix}{highest + 1}"


DEFAULT_LIBRARY = DeviceLibrary.builtin()
