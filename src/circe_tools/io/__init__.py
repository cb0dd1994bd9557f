"""Snapshot persistence."""

from .snapshot import SNAPSHOT_VERSION, Snapshot, load_snapshot, save_snapshot

__all__ = ["SNAPSHOT_VERSION", "Snapshot", "load_snapshot", "save_snapshot"]
