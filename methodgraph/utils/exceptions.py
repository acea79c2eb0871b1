"""Custom exception hierarchy for the method graph."""

from __future__ import annotations


class MethodGraphError(Exception):
    """Base exception for all method graph errors."""


class CatalogError(MethodGraphError):
    """Catalog file missing, unreadable, or failing validation."""


class UnknownMethodError(MethodGraphError):
    """A method id requested by a caller is not in the catalog."""

    def __init__(self, method_id: str) -> None:
        super().__init__(f"Unknown method: {method_id}")
        self.method_id = method_id


class LayoutError(MethodGraphError):
    """Invalid layout parameters (e.g. non-positive node spacing)."""


class SurfaceNotReadyError(MethodGraphError):
    """Render surface has no measurable width yet."""
