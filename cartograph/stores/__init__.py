"""On-disk persistence for analysis snapshots."""

from .snapshot import SnapshotStore

__all__ = ["SnapshotStore"]
