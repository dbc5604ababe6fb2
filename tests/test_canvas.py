"""Tests for the rendering engine."""

import asyncio
import base64
import gc
import warnings

import numpy as np
import pytest

from qrsvg.canvas import QRCanvas, RenderHandle, neighbor_function
from qrsvg.errors import GridTooLargeError, ImageUnavailableError, MissingImageError
from qrsvg.grid import MatrixGrid
from qrsvg.options import Options, merge_options


def _options(**overrides):
    return merge_options(Options(), overrides)


# ---------------------------------------------------------------------------
# Neighbour callback
# ---------------------------------------------------------------------------

OFFSETS = [(dx, dy) for dx in (-1, 0, 1) for dy in (-1, 0, 1) if (dx, dy) != (0, 0)]


def test_neighbors_all_true_inside_dark_block(dark_grid):
    grid = dark_grid(3)
    get_neighbor = neighbor_function(grid, 3, 1, 1)
    assert all(get_neighbor(dx, dy) for dx, dy in OFFSETS)


def test_neighbors_out_of_bounds_are_false(dark_grid):
    grid = dark_grid(3)
    get_neighbor = neighbor_function(grid, 3, 0, 0)
    assert not get_neighbor(-1, 0)
    assert not get_neighbor(0, -1)
    assert not get_neighbor(-1, -1)
    assert not get_neighbor(1, -1)
    assert get_neighbor(1, 0)
    assert get_neighbor(1, 1)


def test_neighbors_light_and_filtered_are_false():
    cells = np.ones((3, 3), dtype=bool)
    cells[0, 1] = False
    grid = MatrixGrid(cells)
    get_neighbor = neighbor_function(grid, 3, 1, 1, visible=lambda i, j: (i, j) != (2, 2))
    assert not get_neighbor(-1, 0)   # (0, 1) is light
    assert not get_neighbor(1, 1)    # (2, 2) is filtered out
    assert get_neighbor(1, 0)
    assert get_neighbor(0, 1)


def test_neighbor_functions_capture_their_own_cell():
    grid = MatrixGrid([[True, False], [False, False]])
    first = neighbor_function(grid, 2, 1, 1)
    second = neighbor_function(grid, 2, 0, 0)
    assert first(-1, -1)
    assert not second(-1, -1)
    assert first(-1, -1)


# ---------------------------------------------------------------------------
# Plain render
# ---------------------------------------------------------------------------

def test_round_trip_single_module(svg_tools):
    parse, shapes, _ = svg_tools
    canvas = QRCanvas(_options(width=10, height=10))
    handle = canvas.render(MatrixGrid([[True]]))
    assert handle.done

    root = parse(canvas.serialize())
    rects = shapes(root, "rect")
    assert len(rects) == 2
    background, dot = rects
    assert background.get("width") == "10" and background.get("fill") == "#fff"
    assert (dot.get("x"), dot.get("y"), dot.get("width"), dot.get("height")) == ("0", "0", "10", "10")
    assert dot.get("fill") == "#000"
    assert not shapes(root, "image")


def test_serialize_before_render_is_empty(svg_tools):
    parse, shapes, _ = svg_tools
    canvas = QRCanvas(_options(width=10, height=10))
    root = parse(canvas.serialize())
    assert root.get("width") == "10"
    assert not shapes(root, "rect")


def test_grid_too_large_leaves_surface_untouched(dark_grid):
    canvas = QRCanvas(_options(width=20, height=20))
    before = canvas.serialize()
    with pytest.raises(GridTooLargeError):
        canvas.render(dark_grid(30))
    assert canvas.surface.is_blank
    assert canvas.serialize() == before
    assert canvas.grid is None


def test_failed_render_keeps_previous_drawing_and_options(dark_grid):
    canvas = QRCanvas(_options(width=50, height=50))
    canvas.render(dark_grid(5))
    surface, before = canvas.surface, canvas.serialize()

    with pytest.raises(GridTooLargeError):
        canvas.render(dark_grid(25), _options(width=20, height=20))
    assert canvas.options.width == 50
    assert canvas.surface is surface
    assert canvas.serialize() == before


def test_only_dark_cells_drawn_at_offset_origin(svg_tools):
    parse, shapes, _ = svg_tools
    cells = np.zeros((3, 3), dtype=bool)
    cells[0, 2] = True
    cells[2, 1] = True
    canvas = QRCanvas(_options(width=32, height=32, background_options={"color": "#ffeedd"},
                               dots_options={"color": "#112233"}))
    canvas.render(MatrixGrid(cells))

    rects = shapes(parse(canvas.serialize()), "rect")
    assert rects[0].get("fill") == "#ffeedd"
    dots = [(r.get("x"), r.get("y")) for r in rects[1:]]
    # dot size 10, origin (1, 1); i runs along x
    assert dots == [("1", "21"), ("21", "11")]
    assert all(r.get("fill") == "#112233" for r in rects[1:])


def test_render_is_idempotent(dark_grid):
    canvas = QRCanvas(_options(width=50, height=50))
    canvas.render(dark_grid(5))
    first = canvas.serialize()
    canvas.render(dark_grid(5))
    assert canvas.serialize() == first


def test_render_accepts_new_options(dark_grid, svg_tools):
    parse, shapes, _ = svg_tools
    canvas = QRCanvas(_options(width=50, height=50))
    canvas.render(dark_grid(1), _options(width=8, height=8, dots_options={"type": "dots"}))
    root = parse(canvas.serialize())
    assert root.get("width") == "8"
    circles = shapes(root, "circle")
    assert len(circles) == 1
    assert (circles[0].get("cx"), circles[0].get("r")) == ("4", "4")


def test_filter_excludes_cells(dark_grid):
    canvas = QRCanvas(_options(width=40, height=40))
    canvas.render(dark_grid(4))
    canvas.clear()
    drawn = canvas.draw_dots(lambda i, j: i != j)
    assert drawn == 12


def test_draw_dots_requires_grid():
    with pytest.raises(RuntimeError):
        QRCanvas().draw_dots()


def test_traversal_order_is_row_then_column():
    seen = []
    cells = np.ones((2, 2), dtype=bool)
    canvas = QRCanvas(_options(width=2, height=2))
    canvas.render(MatrixGrid(cells))
    canvas.draw_dots(lambda i, j: seen.append((i, j)) is None)
    assert seen[:4] == [(0, 0), (0, 1), (1, 0), (1, 1)]


# ---------------------------------------------------------------------------
# Image overlay
# ---------------------------------------------------------------------------

def _image_canvas(fetcher, **overrides):
    options = _options(width=250, height=250, image="logo.svg",
                       qr_options={"error_correction_level": "Q"}, **overrides)
    return QRCanvas(options, fetcher=fetcher)


def test_image_masks_centre_and_places_image(dark_grid, logo_fetcher, svg_tools):
    parse, shapes, href = svg_tools
    fetch = logo_fetcher()
    canvas = _image_canvas(fetch, image_options={"image_color": "#ff0000"})
    handle = canvas.render(dark_grid(25))
    assert not handle.done

    asyncio.run(handle.wait())
    assert handle.done
    assert fetch.requested == ["logo.svg"]

    root = parse(canvas.serialize())
    # 7x7 hidden out of 625, plus the background
    assert len(shapes(root, "rect")) == 1 + 625 - 49
    (image,) = shapes(root, "image")
    assert (image.get("x"), image.get("y"), image.get("width"), image.get("height")) == ("90", "90", "70", "70")

    payload = image.get(href)
    assert payload.startswith("data:image/svg+xml;base64,")
    embedded = base64.b64decode(payload.split(",", 1)[1]).decode("utf-8")
    fills = [p.get("fill") for p in shapes(parse(embedded), "path")]
    assert fills == ["#123456", "#ff0000"]


def test_image_without_hiding_keeps_all_dots(dark_grid, logo_fetcher, svg_tools):
    parse, shapes, _ = svg_tools
    canvas = _image_canvas(logo_fetcher(), image_options={"hide_background_dots": False})
    asyncio.run(canvas.render(dark_grid(25)).wait())
    root = parse(canvas.serialize())
    assert len(shapes(root, "rect")) == 1 + 625
    assert len(shapes(root, "image")) == 1


def test_hidden_cells_never_drawn(dark_grid, logo_fetcher, svg_tools):
    parse, shapes, _ = svg_tools
    canvas = _image_canvas(logo_fetcher())
    asyncio.run(canvas.render(dark_grid(25)).wait())
    positions = {(r.get("x"), r.get("y")) for r in shapes(parse(canvas.serialize()), "rect")[1:]}
    for i in range(9, 16):
        for j in range(9, 16):
            assert (str(i * 10), str(j * 10)) not in positions


def test_image_margin_shrinks_drawn_image(dark_grid, logo_fetcher, svg_tools):
    parse, shapes, _ = svg_tools
    canvas = _image_canvas(logo_fetcher(), image_options={"margin": 5})
    asyncio.run(canvas.render(dark_grid(25)).wait())
    (image,) = shapes(parse(canvas.serialize()), "image")
    assert (image.get("x"), image.get("width")) == ("95", "60")


def test_margin_without_room_keeps_every_module(dark_grid, logo_fetcher, svg_tools):
    parse, shapes, _ = svg_tools
    # the reserved rectangle is 70px, a 40px margin leaves nothing
    canvas = _image_canvas(logo_fetcher(), image_options={"margin": 40})
    asyncio.run(canvas.render(dark_grid(25)).wait())
    root = parse(canvas.serialize())
    assert not shapes(root, "image")
    assert len(shapes(root, "rect")) == 1 + 625


def test_wide_image_keeps_aspect(dark_grid, logo_fetcher, wide_logo_svg, svg_tools):
    parse, shapes, _ = svg_tools
    canvas = _image_canvas(logo_fetcher(wide_logo_svg))
    asyncio.run(canvas.render(dark_grid(25)).wait())
    (image,) = shapes(parse(canvas.serialize()), "image")
    assert (image.get("width"), image.get("height")) == ("100", "50")
    assert (image.get("x"), image.get("y")) == ("75", "100")


def test_image_too_small_grid_draws_no_image(dark_grid, logo_fetcher, svg_tools):
    parse, shapes, _ = svg_tools
    canvas = _image_canvas(logo_fetcher())
    asyncio.run(canvas.render(dark_grid(11)).wait())
    root = parse(canvas.serialize())
    assert not shapes(root, "image")
    assert len(shapes(root, "rect")) == 1 + 121


def test_fetch_failure_rejects_render(dark_grid):
    async def broken(source):
        raise OSError("connection refused")

    canvas = _image_canvas(broken)
    handle = canvas.render(dark_grid(25))
    with pytest.raises(ImageUnavailableError) as info:
        asyncio.run(handle.wait())
    assert isinstance(info.value.__cause__, OSError)
    assert not handle.done
    # only the background was drawn
    assert canvas.surface.shape_count == 1


def test_parse_failure_rejects_render(dark_grid, logo_fetcher):
    canvas = _image_canvas(logo_fetcher("<html><body>nope</body></html>"))
    with pytest.raises(ImageUnavailableError):
        asyncio.run(canvas.render(dark_grid(25)).wait())


def test_missing_image_source(dark_grid):
    canvas = QRCanvas(_options(width=50, height=50))
    canvas.render(dark_grid(5))
    with pytest.raises(MissingImageError):
        canvas.draw_image_and_dots()


def test_handle_shared_between_awaits(dark_grid, logo_fetcher):
    fetch = logo_fetcher()
    canvas = _image_canvas(fetch)
    handle = canvas.render(dark_grid(25))

    async def twice():
        await handle
        await handle

    asyncio.run(twice())
    assert fetch.requested == ["logo.svg"]


def test_discarded_handle_never_fetches(dark_grid, logo_fetcher):
    fetch = logo_fetcher()
    canvas = _image_canvas(fetch)
    handle = canvas.render(dark_grid(25))
    handle.discard()
    assert fetch.requested == []


def test_plain_handle_is_awaitable():
    asyncio.run(RenderHandle().wait())


def test_dropped_handle_closes_pending_image_step(dark_grid, logo_fetcher):
    fetch = logo_fetcher()
    canvas = _image_canvas(fetch)
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        handle = canvas.render(dark_grid(25))
        del handle
        gc.collect()
    assert not [w for w in caught if issubclass(w.category, RuntimeWarning)]
    assert fetch.requested == []
