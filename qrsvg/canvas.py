"""Rendering engine: turn a module grid into a styled SVG drawing.

A render pass clears the surface, fills the background, then either draws
every dark module straight away or, when an overlay image is configured,
fetches the image, reserves a hidden rectangle for it in the middle of the
grid, draws the remaining modules and places the image on top.

The image path is the only asynchronous step. ``render`` does all the
synchronous work up front (layout validation, background, the plain dot
pass) and returns a ``RenderHandle``; awaiting the handle runs the image
step and re-raises its failure.
"""

import asyncio
from typing import Coroutine

from qrsvg.document import Fetcher, fetch_document
from qrsvg.dots import NeighborFunction, get_dot_renderer
from qrsvg.errors import MissingImageError
from qrsvg.grid import ModuleGrid
from qrsvg.layout import Geometry, compute_layout
from qrsvg.logging import audit, get_logger, trace
from qrsvg.options import Options
from qrsvg.sizing import FilterFunction, hidden_rect_filter, plan_image
from qrsvg.surface import SvgSurface

log = get_logger("canvas")


def neighbor_function(
    grid: ModuleGrid,
    count: int,
    i: int,
    j: int,
    visible: FilterFunction | None = None,
) -> NeighborFunction:
    """Visibility of the 8 modules around (i, j).

    ``get_neighbor(dx, dy)`` is True only when (i + dx, j + dy) is inside
    the grid, passes the filter and is dark.
    """
    def get_neighbor(dx: int, dy: int) -> bool:
        x, y = i + dx, j + dy
        if x < 0 or y < 0 or x >= count or y >= count:
            return False
        if visible is not None and not visible(x, y):
            return False
        return grid.is_dark(x, y)

    return get_neighbor


class RenderHandle:
    """Awaitable result of ``QRCanvas.render``.

    Plain renders are complete on return. Image renders run when first
    awaited; later awaits share the same task and see the same outcome.
    Dropping the handle without awaiting it abandons the image step, the
    same as ``discard()``.
    """

    def __init__(self, pending: Coroutine | None = None):
        self._pending = pending
        self._task: asyncio.Future | None = None

    @property
    def done(self) -> bool:
        if self._pending is None:
            return True
        return (self._task is not None and self._task.done()
                and not self._task.cancelled() and self._task.exception() is None)

    async def wait(self) -> None:
        if self._pending is None:
            return
        if self._task is None:
            self._task = asyncio.ensure_future(self._pending)
        await self._task

    def discard(self) -> None:
        """Abandon a pending image step that was never awaited."""
        if self._pending is not None and self._task is None:
            self._pending.close()

    def __await__(self):
        return self.wait().__await__()

    def __del__(self):
        self.discard()


class QRCanvas:
    """Draws one module grid at a time onto an SVG surface."""

    def __init__(self, options: Options | None = None, fetcher: Fetcher | None = None):
        self._fetcher = fetcher
        self.grid: ModuleGrid | None = None
        self.surface: SvgSurface | None = None
        self._apply(options or Options())

    def _apply(self, options: Options) -> None:
        self.options = options.validate()
        self._dot = get_dot_renderer(options.dots_options.type)
        if self.surface is None or (self.surface.width, self.surface.height) != (options.width, options.height):
            self.surface = SvgSurface(options.width, options.height)

    @property
    def width(self) -> int:
        return self.options.width

    @property
    def height(self) -> int:
        return self.options.height

    def clear(self) -> None:
        self.surface.clear()

    def draw_background(self) -> None:
        self.surface.fill_rect(0, 0, self.width, self.height, self.options.background_options.color)

    @trace
    def render(self, grid: ModuleGrid, options: Options | None = None) -> RenderHandle:
        """Start a render pass of *grid*.

        Raises:
            GridTooLargeError: before anything is drawn, if the grid has
                more modules per side than the canvas has pixels.
        """
        target = self.options if options is None else options.validate()
        geometry = compute_layout(grid.size(), target.width, target.height)
        if options is not None:
            self._apply(target)

        self.clear()
        self.draw_background()
        self.grid = grid

        if self.options.image:
            return self.draw_image_and_dots(geometry)
        self.draw_dots(geometry=geometry)
        return RenderHandle()

    def _layout(self) -> tuple[ModuleGrid, Geometry]:
        if self.grid is None:
            raise RuntimeError("QR code is not defined")
        return self.grid, compute_layout(self.grid.size(), self.width, self.height)

    def draw_dots(self, visible: FilterFunction | None = None, geometry: Geometry | None = None) -> int:
        """Draw every dark module that passes *visible*; returns the count drawn."""
        grid, computed = self._layout()
        geometry = geometry or computed
        count = grid.size()
        color = self.options.dots_options.color
        drawn = 0

        for i in range(count):
            for j in range(count):
                if visible is not None and not visible(i, j):
                    continue
                if not grid.is_dark(i, j):
                    continue
                x, y = geometry.cell_origin(i, j)
                self._dot.draw(
                    self.surface, x, y, geometry.dot_size,
                    neighbor_function(grid, count, i, j, visible),
                    color,
                )
                drawn += 1

        audit("canvas.dots_drawn", logger=log,
              count=f"{count}x{count}", dots=drawn, dot_size=geometry.dot_size,
              origin=f"{geometry.origin_x},{geometry.origin_y}", filtered=visible is not None)
        return drawn

    def draw_image_and_dots(self, geometry: Geometry | None = None) -> RenderHandle:
        """Start the overlay pass.

        Raises:
            MissingImageError: if no image source is configured.
        """
        if not self.options.image:
            raise MissingImageError()
        grid, computed = self._layout()
        return RenderHandle(self._image_pass(self.options.image, grid, geometry or computed))

    async def _image_pass(self, source: str, grid: ModuleGrid, geometry: Geometry) -> None:
        options = self.options
        image_options = options.image_options
        count = grid.size()

        document = await fetch_document(source, fetcher=self._fetcher)
        size = plan_image(
            document.width, document.height, count, geometry.dot_size,
            image_options.image_size, options.qr_options.error_correction_level,
        )

        margin = image_options.margin
        width, height = size.width - 2 * margin, size.height - 2 * margin
        if width <= 0 or height <= 0:
            # nothing will cover the centre, so keep every module
            log.warning("no room for image %s (hide=%dx%d, margin=%d)",
                        source, size.hide_x_dots, size.hide_y_dots, margin)
            self.draw_dots(geometry=geometry)
            return

        self.draw_dots(
            hidden_rect_filter(count, size.hide_x_dots, size.hide_y_dots, image_options.hide_background_dots),
            geometry,
        )

        if image_options.image_color:
            if not document.tint_last_path(image_options.image_color):
                log.warning("image %s has no path to tint", source)

        extent = geometry.extent(count)
        x = geometry.origin_x + (extent - size.width) / 2 + margin
        y = geometry.origin_y + (extent - size.height) / 2 + margin
        self.surface.draw_image(document, x, y, width, height)
        audit("image.placed", logger=log,
              source=source, x=x, y=y, size=f"{width}x{height}",
              hidden=f"{size.hide_x_dots}x{size.hide_y_dots}")

    def serialize(self) -> str:
        """SVG text of the surface as drawn so far."""
        return self.surface.serialize()
