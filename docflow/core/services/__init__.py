# (c) Copyright Datacraft, 2026
from .snapshot import PdfSnapshotRenderer, SnapshotError, SnapshotRenderer

__all__ = ["PdfSnapshotRenderer", "SnapshotError", "SnapshotRenderer"]
