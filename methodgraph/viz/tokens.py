"""Immutable visual configuration: design tokens, relationship styles, colour tables.

Everything here is frozen so several graph views (or tests) can share the
defaults without one of them leaking state into another.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class EdgeStyle:
    color: str
    stroke_width: float
    dash_array: str | None
    label: str


class RelationshipType(str, Enum):
    """Closed set of edge kinds, in builder priority order."""

    EXPLICIT = "explicit"
    SAME_STEP = "same_step"
    SHARED_MODALITY = "shared_modality"
    SHARED_TASK = "shared_task"
    SIMILAR = "similar"

    @property
    def style(self) -> EdgeStyle:
        return _RELATIONSHIP_STYLES[self]

    @property
    def curved(self) -> bool:
        return self is not RelationshipType.EXPLICIT

    @property
    def has_arrow(self) -> bool:
        return self is RelationshipType.EXPLICIT


_RELATIONSHIP_STYLES: Mapping[RelationshipType, EdgeStyle] = MappingProxyType({
    RelationshipType.EXPLICIT: EdgeStyle("#88c0d0", 2.5, None, "Explicitly Related"),
    RelationshipType.SAME_STEP: EdgeStyle("rgba(136, 192, 208, 0.3)", 1.0, "3,3", "Same Pipeline Step"),
    RelationshipType.SHARED_MODALITY: EdgeStyle("rgba(163, 190, 140, 0.4)", 1.5, "5,3", "Shared Modality"),
    RelationshipType.SHARED_TASK: EdgeStyle("rgba(180, 142, 173, 0.4)", 1.5, "2,2", "Shared Task"),
    RelationshipType.SIMILAR: EdgeStyle("rgba(235, 203, 139, 0.5)", 1.5, "4,4", "Similar Methods"),
})


@dataclass(frozen=True)
class DesignTokens:
    bg: str = "#2e3440"
    bg_subtle: str = "#323845"
    surface: str = "#3b4252"
    surface_raised: str = "#434c5e"
    text: str = "#eceff4"
    text_secondary: str = "#d8dee9"
    text_muted: str = "#9aa5b8"
    border: str = "rgba(76, 86, 106, 0.5)"
    accent: str = "#88c0d0"
    accent_muted: str = "rgba(136, 192, 208, 0.3)"
    font_family: str = "Inter, -apple-system, BlinkMacSystemFont, sans-serif"


MODALITY_COLORS: Mapping[str, str] = MappingProxyType({
    "text": "#88c0d0",
    "image": "#a3be8c",
    "video": "#b48ead",
    "audio": "#d08770",
    "sensor": "#ebcb8b",
    "realtime": "#bf616a",
    "mixed": "#8fbcbb",
})

STEP_COLORS: Mapping[str, str] = MappingProxyType({
    "data_capture": "#5e81ac",
    "preprocessing": "#88c0d0",
    "activity_recognition": "#a3be8c",
    "event_abstraction": "#ebcb8b",
    "log_construction": "#d08770",
    "process_analysis": "#b48ead",
})

# Fallback palette for step ids without an assigned colour.
STEP_PALETTE: tuple[str, ...] = (
    "#5e81ac", "#88c0d0", "#8fbcbb", "#a3be8c", "#ebcb8b",
    "#d08770", "#bf616a", "#b48ead", "#81a1c1", "#d8dee9",
)


@dataclass(frozen=True)
class VisualConfig:
    """Bundle of the immutable tables a graph view renders with."""

    tokens: DesignTokens = field(default_factory=DesignTokens)
    modality_colors: Mapping[str, str] = field(default_factory=lambda: MODALITY_COLORS)
    step_colors: Mapping[str, str] = field(default_factory=lambda: STEP_COLORS)
    step_palette: tuple[str, ...] = STEP_PALETTE

    def step_color(self, step_id: str) -> str:
        """Deterministic colour for a pipeline step id."""
        if step_id in self.step_colors:
            return self.step_colors[step_id]
        digest = hashlib.sha256(step_id.encode("utf-8")).digest()
        return self.step_palette[digest[0] % len(self.step_palette)]

    def modality_color(self, modality: str) -> str:
        return self.modality_colors.get(modality, self.tokens.text_muted)


DEFAULT_VISUAL_CONFIG = VisualConfig()
