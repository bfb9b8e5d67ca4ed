from __future__ import annotations

import math

import numpy as np
import pytest

from curveplot import PlotterConfig, Viewport, ViewportDegenerateError


def test_default_viewport_matches_config() -> None:
    vp = Viewport()
    assert vp.extent == (-10.0, 10.0, -7.5, 7.5)
    assert (vp.pixel_width, vp.pixel_height) == (800, 600)
    assert vp.scale_x == pytest.approx(40.0)
    assert vp.scale_y == pytest.approx(40.0)


def test_to_screen_maps_corners_and_origin() -> None:
    vp = Viewport()
    assert vp.to_screen(-10.0, 7.5) == (0.0, 0.0)
    assert vp.to_screen(10.0, -7.5) == (800.0, 600.0)
    assert vp.to_screen(0.0, 0.0) == (400.0, 300.0)


def test_transforms_accept_arrays() -> None:
    vp = Viewport()
    px, py = vp.to_screen(np.array([-10.0, 0.0, 10.0]), np.array([7.5, 0.0, -7.5]))
    np.testing.assert_allclose(px, [0.0, 400.0, 800.0])
    np.testing.assert_allclose(py, [0.0, 300.0, 600.0])
    wx, wy = vp.to_world(px, py)
    np.testing.assert_allclose(wx, [-10.0, 0.0, 10.0])
    np.testing.assert_allclose(wy, [7.5, 0.0, -7.5])


def test_zoom_keeps_point_under_cursor_fixed() -> None:
    vp = Viewport()
    before = vp.to_world(200.0, 150.0)
    assert vp.zoom_at(200.0, 150.0, 0.5) is True
    after = vp.to_world(200.0, 150.0)
    assert after[0] == pytest.approx(before[0])
    assert after[1] == pytest.approx(before[1])
    assert vp.x_max - vp.x_min == pytest.approx(10.0)
    assert vp.y_max - vp.y_min == pytest.approx(7.5)


@pytest.mark.parametrize("factor", [0.0, -1.0, math.nan, math.inf, "abc"])
def test_zoom_rejects_invalid_factor(factor) -> None:
    vp = Viewport()
    assert vp.zoom_at(400.0, 300.0, factor) is False
    assert vp.extent == vp.default_extent


def test_zoom_is_clamped_to_min_extent() -> None:
    vp = Viewport(min_extent=1.0)
    assert vp.zoom_at(400.0, 300.0, 0.01) is True
    # Height (the smaller extent) lands on the bound.
    assert vp.y_max - vp.y_min == pytest.approx(1.0)
    assert vp.x_max - vp.x_min == pytest.approx(20.0 / 15.0)


def test_zoom_at_bound_leaves_viewport_unchanged() -> None:
    vp = Viewport(x_range=(0, 2), y_range=(0, 1), min_extent=1.0)
    assert vp.zoom_at(10.0, 10.0, 0.5) is False
    assert vp.extent == (0.0, 2.0, 0.0, 1.0)


def test_zoom_is_clamped_to_max_extent() -> None:
    vp = Viewport(max_extent=30.0)
    assert vp.zoom_at(400.0, 300.0, 100.0) is True
    assert vp.x_max - vp.x_min == pytest.approx(30.0)


def test_zoom_out_beyond_max_extent_never_zooms_in() -> None:
    vp = Viewport(x_range=(-1e7, 1e7))
    assert vp.zoom_at(400.0, 300.0, 1.1) is False
    assert vp.extent == vp.default_extent
    # Zooming in still pulls the extent back under max_extent.
    assert vp.zoom_at(400.0, 300.0, 0.9) is True
    assert vp.x_max - vp.x_min == pytest.approx(1e6)


def test_pan_then_reset_restores_default_exactly() -> None:
    vp = Viewport()
    default = vp.extent
    for dx, dy in [(0.1, 0.2), (-3.3, 1e-7), (123.456, -9.87)]:
        assert vp.pan_by(dx, dy) is True
    assert vp.extent != default
    vp.reset()
    assert vp.extent == default


def test_pan_rejects_non_finite_delta() -> None:
    vp = Viewport()
    assert vp.pan_by(math.nan, 0.0) is False
    assert vp.pan_by(0.0, math.inf) is False
    assert vp.extent == vp.default_extent


def test_reset_after_zoom() -> None:
    vp = Viewport()
    vp.zoom_at(123.0, 45.0, 0.9)
    vp.reset()
    assert vp.extent == vp.default_extent


@pytest.mark.parametrize(
    "kwargs",
    [
        {"x_range": (1, 1)},
        {"x_range": (2, 1)},
        {"y_range": (0, math.inf)},
        {"pixel_width": 0},
    ],
)
def test_degenerate_construction_raises(kwargs) -> None:
    with pytest.raises(ViewportDegenerateError):
        Viewport(**kwargs)


def test_degenerate_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        Viewport(x_range=(3, -3))


def test_string_ranges_are_parsed() -> None:
    vp = Viewport(x_range=("-2*pi", "2*pi"))
    assert vp.x_min == pytest.approx(-2 * math.pi)


def test_viewport_from_config() -> None:
    cfg = PlotterConfig(pixel_width=200, pixel_height=100, default_x_range=(0, 4), default_y_range=(0, 2))
    vp = Viewport.from_config(cfg)
    assert vp.state_key() == (0.0, 4.0, 0.0, 2.0, 200, 100)


def test_copy_is_independent_and_equal() -> None:
    vp = Viewport()
    clone = vp.copy()
    assert clone == vp
    clone.pan_by(1.0, 0.0)
    assert clone != vp


def test_cell_centers() -> None:
    vp = Viewport(8, 4)
    np.testing.assert_allclose(vp.column_centers(2), [1.0, 3.0, 5.0, 7.0])
    np.testing.assert_allclose(vp.row_centers(1), [0.5, 1.5, 2.5, 3.5])
