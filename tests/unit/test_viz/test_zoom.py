"""Unit tests for semantic zoom, the view transform and detail cards."""

from __future__ import annotations

import pytest

from methodgraph.viz.builder import build_graph
from methodgraph.viz.geometry import Point
from methodgraph.viz.zoom import (
    SemanticZoom,
    ViewTransform,
    ZoomBand,
    ZoomController,
    ZoomThresholds,
    band_style,
    detail_card,
    detail_cards,
    wrap_text,
)


class FakeClock:
    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.mark.parametrize(
    "scale,band",
    [
        (0.2, ZoomBand.ABSTRACT),
        (0.449, ZoomBand.ABSTRACT),
        (0.45, ZoomBand.MINIMAL),
        (0.699, ZoomBand.MINIMAL),
        (0.7, ZoomBand.NORMAL),
        (1.499, ZoomBand.NORMAL),
        (1.5, ZoomBand.DETAILED),
        (2.199, ZoomBand.DETAILED),
        (2.2, ZoomBand.FULL),
        (4.0, ZoomBand.FULL),
    ],
)
def test_band_thresholds(scale, band):
    assert ZoomThresholds().band(scale) is band


def test_minimal_normal_cutover_is_tunable():
    assert ZoomThresholds(normal=0.6).band(0.65) is ZoomBand.NORMAL


def test_band_styles_are_monotone():
    styles = [band_style(b) for b in ZoomBand]
    factors = [s.node_radius_factor for s in styles]
    assert factors == sorted(factors)
    assert factors[0] == 0.6 and factors[1] == 0.8 and factors[2:] == [1.0, 1.0, 1.0]

    hull_fill = [s.hull_fill_opacity for s in styles]
    assert hull_fill == sorted(hull_fill, reverse=True)
    label_sizes = [s.cluster_label_size for s in styles]
    assert label_sizes == sorted(label_sizes, reverse=True)


def test_band_style_values():
    abstract = band_style(ZoomBand.ABSTRACT)
    minimal = band_style(ZoomBand.MINIMAL)
    full = band_style(ZoomBand.FULL)

    assert abstract.modality_opacity == 0 and minimal.modality_opacity == 0
    assert band_style(ZoomBand.NORMAL).modality_radius == 4
    assert band_style(ZoomBand.DETAILED).modality_radius == 5
    assert full.modality_radius == 6 and full.modality_opacity == 0.8
    assert [band_style(b).edge_opacity for b in ZoomBand] == [0.2, 0.4, 0.6, 0.6, 0.6]
    # Abstract flattens every edge to one thin width.
    assert abstract.edge_width(2.5) == abstract.edge_width(1.0) == 0.5
    assert minimal.edge_width(2.5) == 2.5


def test_detail_cards_only_at_detailed_and_above(sample_catalog):
    graph = build_graph(sample_catalog.methods, sample_catalog.pipeline_steps)
    steps = sample_catalog.pipeline_steps
    for band in ZoomBand:
        cards = detail_cards(graph.nodes, band, steps)
        if band < ZoomBand.DETAILED:
            assert cards == []
        else:
            assert len(cards) == len(graph.nodes)


def test_detailed_and_full_card_contents(sample_catalog):
    graph = build_graph(sample_catalog.methods, sample_catalog.pipeline_steps)
    node = graph.node("imu")
    steps = sample_catalog.pipeline_steps

    detailed = detail_card(node, ZoomBand.DETAILED, steps)
    assert detailed.title_lines == ("Imu",)
    assert detailed.meta == "2018 · established"
    assert detailed.modality_badges == ()
    assert detailed.step_badge is None
    assert detailed.offset == Point(node.radius + 8, -node.radius - 5)

    full = detail_card(node, ZoomBand.FULL, steps)
    assert [m for m, _ in full.modality_badges] == ["sensor"]
    assert full.step_badge == ("Data Capture", node.color)
    assert full.evidence == "Evidence: case_study"


def test_wrap_text_limits_lines_and_width():
    text = "Hierarchical Event Abstraction with Interaction Patterns for Sensor Logs and More Words"
    lines = wrap_text(text, 150)
    assert 1 < len(lines) <= 3
    assert all(len(line) * 6.5 <= 150 for line in lines)
    assert wrap_text("", 150) == []


def test_update_respects_delta_and_band_changes():
    zoom = SemanticZoom(clock=FakeClock())
    assert zoom.band is ZoomBand.NORMAL
    assert zoom.update(0.87) is False
    assert zoom.update(0.72) is True
    assert zoom.band is ZoomBand.NORMAL
    # Small move that crosses a boundary still re-evaluates.
    assert zoom.update(0.69) is True
    assert zoom.band is ZoomBand.MINIMAL


def test_style_interpolates_over_duration():
    clock = FakeClock()
    zoom = SemanticZoom(clock=clock)
    start = zoom.style()
    zoom.update(0.3)
    target = zoom.target_style

    clock.now += 0.075
    mid = zoom.style()
    assert mid.node_radius_factor == pytest.approx((start.node_radius_factor + target.node_radius_factor) / 2)

    clock.now += 0.1
    assert zoom.style() == target


def test_listeners_hear_band_changes_only():
    heard = []
    zoom = SemanticZoom(clock=FakeClock())
    zoom.subscribe(heard.append)
    zoom.update(1.2)
    zoom.update(1.6)
    zoom.update(3.0)
    assert heard == [ZoomBand.DETAILED, ZoomBand.FULL]

    zoom.clear_listeners()
    zoom.update(0.3)
    assert heard == [ZoomBand.DETAILED, ZoomBand.FULL]


def test_hint_fades_once_and_stays_hidden():
    clock = FakeClock()
    zoom = SemanticZoom(clock=clock)
    assert zoom.hint_opacity == 1.0
    zoom.update(0.86)
    clock.now += 0.15
    assert zoom.hint_opacity == pytest.approx(0.5)
    clock.now += 0.2
    assert zoom.hint_opacity == 0.0
    zoom.update(0.85)
    assert zoom.hint_opacity == 0.0


def test_indicator_text():
    zoom = SemanticZoom(clock=FakeClock())
    assert (zoom.indicator.label, zoom.indicator.percent) == ("Normal", "85%")
    zoom.update(2.5)
    assert (zoom.indicator.label, zoom.indicator.percent) == ("Full Detail", "250%")


def test_controller_indicator_tracks_small_wheel_steps():
    clock = FakeClock()
    semantic = SemanticZoom(clock=clock)
    zoom = ZoomController(1000, 600, semantic, clock=clock)
    assert zoom.indicator.percent == "85%"

    zoom.wheel(-10, Point(500, 300))
    assert semantic.scale == 0.85
    assert zoom.indicator.percent == f"{round(zoom.transform.k * 100)}%" == "86%"
    assert zoom.indicator.label == "Normal"


def test_controller_indicator_follows_button_animation():
    clock = FakeClock()
    zoom = ZoomController(1000, 600, SemanticZoom(clock=clock), clock=clock)
    zoom.zoom_in()
    assert zoom.indicator.percent == "85%"
    clock.now += 1.0
    assert zoom.indicator.percent == f"{round(0.85 * 1.3 * 100)}%"


def test_view_transform_centered_and_inverse():
    t = ViewTransform.centered(1000, 600, 0.85)
    assert t.x == pytest.approx(75)
    assert t.y == pytest.approx(45)
    assert t.apply(Point(500, 300)) == pytest.approx((500, 300))
    p = Point(123.0, -45.5)
    assert t.invert(t.apply(p)) == pytest.approx(p)


def test_zoom_buttons_and_fit():
    clock = FakeClock()
    semantic = SemanticZoom(clock=clock)
    zoom = ZoomController(1000, 600, semantic, clock=clock)

    zoom.zoom_in()
    assert zoom.target.k == pytest.approx(0.85 * 1.3)
    assert semantic.scale == pytest.approx(0.85 * 1.3)
    # Animated towards the target over 300 ms.
    clock.now += 0.15
    assert 0.85 < zoom.transform.k < 0.85 * 1.3
    clock.now += 0.2
    assert zoom.transform == zoom.target

    for _ in range(20):
        zoom.zoom_in()
    assert zoom.target.k == 4.0
    for _ in range(40):
        zoom.zoom_out()
    assert zoom.target.k == 0.2

    zoom.zoom_to_fit()
    clock.now += 0.6
    assert zoom.transform == ViewTransform.centered(1000, 600, 0.85)


def test_button_zoom_keeps_viewport_centre_fixed():
    semantic = SemanticZoom(clock=FakeClock())
    zoom = ZoomController(1000, 600, semantic, clock=FakeClock())
    world = zoom.target.invert(Point(500, 300))
    zoom.zoom_out()
    assert zoom.target.apply(world) == pytest.approx((500, 300))


def test_wheel_zooms_about_cursor():
    semantic = SemanticZoom(clock=FakeClock())
    zoom = ZoomController(1000, 600, semantic, clock=FakeClock())
    cursor = Point(200, 150)
    world = zoom.transform.invert(cursor)
    zoom.wheel(-300, cursor)
    assert zoom.transform.k > 0.85
    assert zoom.transform.apply(world) == pytest.approx(cursor)
