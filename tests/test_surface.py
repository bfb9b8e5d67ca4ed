from __future__ import annotations

import numpy as np
import plotly.graph_objects as go
import pytest

from curveplot import PlotlySurface, RasterSurface
from curveplot.surface import parse_color


@pytest.mark.parametrize(
    "color, rgb",
    [
        ("#fff", (255, 255, 255)),
        ("#636EFA", (99, 110, 250)),
        ("rgb(1, 2, 3)", (1, 2, 3)),
        ("Red", (255, 0, 0)),
    ],
)
def test_parse_color(color: str, rgb: tuple[int, int, int]) -> None:
    assert parse_color(color) == rgb


@pytest.mark.parametrize("color", ["", "#12", "#zzzzzz", "chartreuse-ish"])
def test_parse_color_rejects_unknown(color: str) -> None:
    with pytest.raises(ValueError):
        parse_color(color)


def test_raster_clear_and_fill_rect() -> None:
    s = RasterSurface(10, 6)
    s.clear("#ffffff")
    assert (s.pixels[..., :3] == 255).all()
    assert (s.pixels[..., 3] == 255).all()
    s.set_fill_color("#000000")
    s.fill_rect(2, 1, 3, 2)
    block = s.pixels[1:3, 2:5, :3]
    assert (block == 0).all()
    assert s.pixels[0, 0, 0] == 255
    assert s.pixels[3, 2, 0] == 255


def test_raster_stroke_horizontal_line() -> None:
    s = RasterSurface(10, 10)
    s.clear("white")
    s.set_stroke_color("#0000ff")
    s.begin_path()
    s.move_to(0, 5)
    s.line_to(9, 5)
    s.stroke()
    assert (s.pixels[5, :, :3] == (0, 0, 255)).all()
    assert (s.pixels[4, :, :3] == 255).all()


def test_raster_stroke_clips_far_away_segments() -> None:
    s = RasterSurface(20, 20)
    s.clear("white")
    s.set_stroke_color("black")
    s.begin_path()
    s.move_to(-1e12, -1e12)
    s.line_to(1e12, 1e12)
    s.move_to(-50, -50)
    s.line_to(-40, -60)  # fully outside
    s.stroke()
    rows, cols = np.nonzero(s.pixels[..., 0] == 0)
    assert (np.abs(rows - cols) <= 1).all()
    assert len(set(rows.tolist())) >= 18


def test_raster_subpaths_are_not_connected() -> None:
    s = RasterSurface(10, 10)
    s.clear("white")
    s.set_stroke_color("black")
    s.begin_path()
    s.move_to(0, 0)
    s.line_to(2, 0)
    s.move_to(7, 0)
    s.line_to(9, 0)
    s.stroke()
    assert (s.pixels[0, 3:7, 0] == 255).all()


def test_raster_put_mask_blends() -> None:
    s = RasterSurface(4, 2)
    s.clear("#ffffff")
    mask = np.zeros((2, 4), dtype=bool)
    mask[0, 0] = True
    mask[1, 3] = True
    s.put_mask(mask, "#000000", alpha=0.5)
    assert tuple(s.pixels[0, 0, :3]) == (128, 128, 128)
    assert tuple(s.pixels[1, 3, :3]) == (128, 128, 128)
    assert tuple(s.pixels[0, 1, :3]) == (255, 255, 255)
    s.put_mask(mask, "#ff0000", alpha=1.0)
    assert tuple(s.pixels[0, 0, :3]) == (255, 0, 0)


def test_put_mask_shape_must_match() -> None:
    s = RasterSurface(4, 2)
    with pytest.raises(ValueError):
        s.put_mask(np.zeros((4, 2), dtype=bool), "black")


def test_to_array_is_a_copy() -> None:
    s = RasterSurface(3, 3)
    s.clear("white")
    arr = s.to_array()
    arr[:] = 0
    assert s.pixels[0, 0, 0] == 255
    with pytest.raises(ValueError):
        s.pixels[0, 0, 0] = 1


def test_invalid_sizes_and_widths() -> None:
    with pytest.raises(ValueError):
        RasterSurface(0, 5)
    with pytest.raises(ValueError):
        RasterSurface(2, 2).set_line_width(0)


def test_plotly_surface_records_traces() -> None:
    s = PlotlySurface(40, 30)
    s.clear("#1e1e1e")
    s.set_stroke_color("#ff0000")
    s.set_line_width(3)
    s.begin_path()
    s.move_to(0, 0)
    s.line_to(10, 10)
    s.move_to(20, 0)
    s.line_to(30, 5)
    s.stroke()
    mask = np.zeros((30, 40), dtype=bool)
    mask[5:10, 5:10] = True
    s.put_mask(mask, "blue", alpha=0.3)
    s.set_fill_color("green")
    s.fill_rect(1, 1, 2, 2)

    fig = s.figure
    assert isinstance(fig, go.Figure)
    line, image = fig.data
    assert isinstance(line, go.Scatter)
    assert list(line.x) == [0.0, 10.0, None, 20.0, 30.0]
    assert line.line.color == "rgb(255, 0, 0)"
    assert isinstance(image, go.Image)
    assert len(fig.layout.shapes) == 1
    assert fig.layout.plot_bgcolor == "rgb(30, 30, 30)"
    assert tuple(fig.layout.yaxis.range) == (30, 0)


def test_plotly_clear_drops_previous_drawing() -> None:
    s = PlotlySurface(10, 10)
    s.begin_path()
    s.move_to(0, 0)
    s.line_to(5, 5)
    s.stroke()
    assert len(s.figure.data) == 1
    s.clear("white")
    assert len(s.figure.data) == 0
