"""Unit tests for the visual configuration tables."""

from __future__ import annotations

import importlib

import pytest

from methodgraph.viz.tokens import (
    DEFAULT_VISUAL_CONFIG,
    MODALITY_COLORS,
    STEP_COLORS,
    STEP_PALETTE,
    RelationshipType,
    VisualConfig,
)


def test_package_imports_and_reexports():
    viz = importlib.import_module("methodgraph.viz")
    for name in viz.__all__:
        assert hasattr(viz, name)


def test_default_config_shares_the_frozen_tables():
    config = VisualConfig()
    assert config.modality_colors is MODALITY_COLORS
    assert config.step_colors is STEP_COLORS
    assert config.step_palette == STEP_PALETTE
    with pytest.raises(TypeError):
        config.step_colors["data_capture"] = "#000000"


def test_custom_tables_do_not_leak_into_defaults():
    custom = VisualConfig(step_colors={"data_capture": "#123456"})
    assert custom.step_color("data_capture") == "#123456"
    assert DEFAULT_VISUAL_CONFIG.step_color("data_capture") == STEP_COLORS["data_capture"]


def test_unknown_modality_falls_back_to_muted_text():
    config = VisualConfig()
    assert config.modality_color("telepathy") == config.tokens.text_muted


def test_only_explicit_edges_are_straight_with_arrows():
    for rel in RelationshipType:
        assert rel.curved is (rel is not RelationshipType.EXPLICIT)
        assert rel.has_arrow is (rel is RelationshipType.EXPLICIT)
        assert rel.style.label
