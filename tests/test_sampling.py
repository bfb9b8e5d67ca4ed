from __future__ import annotations

import gc
import math

import numpy as np
import pytest

from curveplot import (
    GAP,
    CurveSampler,
    EvaluationError,
    Explicit,
    MaskSample,
    Ok,
    PathSample,
    PlotterConfig,
    Viewport,
    classify,
)


def test_reciprocal_breaks_at_column_of_zero() -> None:
    vp = Viewport()
    path = CurveSampler().sample(classify("y = 1/x"), vp)
    assert isinstance(path, PathSample)
    assert len(path) == 800
    # Column 400 is exactly x = 0.
    assert math.isnan(path.px[400])
    assert path.break_count == 1
    left, right = path.segments()
    assert left[0][-1] == pytest.approx(399.0)
    assert right[0][0] == pytest.approx(401.0)


def test_reciprocal_breaks_between_columns_when_zero_is_not_sampled() -> None:
    vp = Viewport(x_range=(-10.3, 9.7))
    path = CurveSampler().sample(classify("y = 1/x"), vp)
    segments = path.segments()
    assert len(segments) == 2
    left, right = segments
    # x = 0 sits at pixel column 412.
    assert left[0][-1] < 412.5
    assert right[0][0] > 411.5
    assert np.all(left[1] > 0)  # negative y is below the screen centre
    assert np.all(right[1] < 600)


def test_continuous_function_has_no_breaks() -> None:
    path = CurveSampler().sample(classify("y = x^3 - 2x"), Viewport())
    assert path.break_count == 0
    assert path.point_count == 800


@pytest.mark.parametrize("text", ["y = max(x, 0)", "y = min(x, 1)"])
def test_min_max_sample_every_column(text: str) -> None:
    path = CurveSampler().sample(classify(text), Viewport())
    assert path.point_count == 800
    assert path.break_count == 0


def test_domain_gaps_for_sqrt() -> None:
    path = CurveSampler().sample(classify("y = sqrt(x)"), Viewport())
    assert path.point_count == 400
    assert path.break_count == 1
    samples = list(path.samples())
    assert samples[0] is GAP
    assert samples[400] == Ok(400.0, 300.0)


class _ScalarOnly:
    """Expression stub whose vectorized form always fails."""

    text = "scalar-only"

    def evaluate_array(self, bindings=None, /, **arrays):
        raise TypeError("cannot broadcast")

    def evaluate(self, bindings=None, /, **values):
        merged = dict(bindings or {})
        merged.update(values)
        x = merged["x"]
        if x < 0:
            raise EvaluationError("negative input")
        return 2.0


def test_scalar_fallback_turns_each_failure_into_a_gap() -> None:
    vp = Viewport(8, 4, x_range=(-4, 4), y_range=(-5, 5))
    eq = Explicit(text="scalar-only", f=_ScalarOnly())
    path = CurveSampler().sample(eq, vp)
    # Columns 0..3 are x < 0.
    assert np.isnan(path.py[:4]).all()
    np.testing.assert_allclose(path.py[4:], 1.2)


def test_parametric_circle_projects_onto_screen() -> None:
    path = CurveSampler().sample(classify("x(t)=cos(t), y(t)=sin(t)"), Viewport())
    assert len(path) == 2001
    assert path.break_count == 0
    radius = np.hypot(path.px - 400.0, path.py - 300.0)
    np.testing.assert_allclose(radius, 40.0, atol=1e-9)


def test_parametric_world_path_is_reused_after_pan() -> None:
    sampler = CurveSampler()
    eq = classify("x(t)=t, y(t)=t^2")
    vp = Viewport()
    first = sampler.sample(eq, vp)
    vp.pan_by(1.0, 0.0)
    second = sampler.sample(eq, vp)
    np.testing.assert_allclose(second.px, first.px - 40.0)
    assert eq in sampler._world_paths


def test_polar_circle_radius() -> None:
    path = CurveSampler().sample(classify("r = 2"), Viewport())
    assert len(path) == round(2 * math.pi / 0.01) + 1
    radius = np.hypot(path.px - 400.0, path.py - 300.0)
    np.testing.assert_allclose(radius, 80.0, atol=1e-9)


def test_polar_breaks_on_non_finite_radius() -> None:
    # Negative cos(theta) has no real root: one run of gaps.
    path = CurveSampler().sample(classify("r = sqrt(cos(theta))"), Viewport())
    assert path.break_count >= 1


def test_implicit_circle_mask() -> None:
    mask = CurveSampler().sample(classify("x^2 + y^2 = 4"), Viewport())
    assert isinstance(mask, MaskSample)
    assert mask.kind == "curve"
    assert mask.mask.shape == (600, 800)
    # (2, 0) is pixel (row 300, column 480).
    assert mask.mask[298:303, 476:486].any()
    assert not mask.mask[300, 400]
    assert not mask.mask[0, 0]


def test_implicit_sign_change_can_be_disabled() -> None:
    cfg = PlotterConfig(implicit_sign_change=False, implicit_tolerance=1e-9)
    mask = CurveSampler(cfg).sample(classify("x = 0.0123"), Viewport())
    assert mask.count == 0
    with_flips = CurveSampler(PlotterConfig(implicit_tolerance=1e-9)).sample(classify("x = 0.0123"), Viewport())
    assert with_flips.count == 600 * 2


def test_implicit_sign_change_ignores_poles() -> None:
    sampler = CurveSampler()
    hyperbola = sampler.sample(classify("1/x = y"), Viewport())
    # x = 0 is column 400; the branches leave the screen well before it.
    assert not hyperbola.mask[:, 396:404].any()
    assert hyperbola.mask[250:270, 430:450].any()  # near (1, 1)

    tangent = sampler.sample(classify("tan(x) = y"), Viewport())
    # The pole at x = pi/2 sits at column 462.8.
    assert not tangent.mask[:, 460:466].any()
    assert tangent.mask[:, 440:458].any()


def test_inequality_region_mask() -> None:
    region = CurveSampler().sample(classify("y > x"), Viewport())
    assert region.kind == "region"
    assert region.mask[100, 400]
    assert not region.mask[500, 400]


def test_inequality_nan_is_unfilled() -> None:
    region = CurveSampler().sample(classify("y < sqrt(x)"), Viewport())
    assert not region.mask[599, :399].any()
    assert region.mask[599, 700]


def test_mask_bands_cover_surface_in_order() -> None:
    sampler = CurveSampler()
    bands = list(sampler.iter_mask_bands(classify("y > 0"), Viewport()))
    assert len(bands) == math.ceil(300 / 16)
    assert bands[0].row_start == 0
    for prev, nxt in zip(bands, bands[1:]):
        assert nxt.row_start == prev.row_stop
    assert bands[-1].row_stop == 600
    assert all(b.mask.shape[1] == 800 for b in bands)


def test_sample_steps_yields_between_bands() -> None:
    cfg = PlotterConfig(band_rows=50)
    steps = CurveSampler(cfg).sample_steps(classify("x^2 + y^2 = 9"), Viewport())
    yielded = []
    while True:
        try:
            yielded.append(next(steps))
        except StopIteration as stop:
            result = stop.value
            break
    assert yielded == [1, 2, 3, 4, 5, 6]
    assert isinstance(result, MaskSample)


def test_mask_cache_hits_for_same_viewport_only() -> None:
    sampler = CurveSampler()
    eq = classify("x^2 + y^2 = 4")
    vp = Viewport()
    first = sampler.sample(eq, vp)
    assert sampler.sample(eq, vp) is first
    vp.pan_by(0.5, 0.0)
    assert sampler.sample(eq, vp) is not first


def test_mask_cache_dropped_with_equation() -> None:
    sampler = CurveSampler()
    eq = classify("x^2 + y^2 = 4")
    sampler.sample(eq, Viewport())
    assert len(sampler._masks) == 1
    del eq
    gc.collect()
    assert len(sampler._masks) == 0


def test_invalid_equation_samples_to_none() -> None:
    assert CurveSampler().sample(classify("y = ("), Viewport()) is None


def test_changing_config_clears_cache() -> None:
    sampler = CurveSampler()
    eq = classify("y > x")
    sampler.sample(eq, Viewport())
    sampler.config = PlotterConfig(grid_stride=1)
    assert len(sampler._masks) == 0
    assert sampler.sample(eq, Viewport()).stride == 1
