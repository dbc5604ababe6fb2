"""SVG canvas surface built on svgwrite."""

import svgwrite

from qrsvg.document import ImageDocument
from qrsvg.logging import get_logger

log = get_logger("surface")


def fmt(value: float) -> str:
    """Compact number formatting for SVG attributes and path data."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.3f}".rstrip("0").rstrip(".")


class SvgSurface:
    """Fixed-size vector drawing target.

    One surface belongs to one engine; ``clear()`` throws away everything
    drawn so far.
    """

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.clear()

    def clear(self) -> None:
        self._dwg = svgwrite.Drawing(size=(self.width, self.height), profile="full", debug=False)
        self._dwg.viewbox(0, 0, self.width, self.height)
        self.shape_count = 0

    @property
    def is_blank(self) -> bool:
        return self.shape_count == 0

    def _add(self, element) -> None:
        self._dwg.add(element)
        self.shape_count += 1

    def fill_rect(self, x: float, y: float, width: float, height: float, color: str) -> None:
        self._add(self._dwg.rect(insert=(fmt(x), fmt(y)), size=(fmt(width), fmt(height)), fill=color))

    def fill_circle(self, cx: float, cy: float, r: float, color: str) -> None:
        self._add(self._dwg.circle(center=(fmt(cx), fmt(cy)), r=fmt(r), fill=color))

    def fill_path(self, d: str, color: str) -> None:
        self._add(self._dwg.path(d=d, fill=color))

    def draw_image(self, document: ImageDocument, x: float, y: float, width: float, height: float) -> None:
        """Embed *document* as a data-URI image scaled into the given box."""
        self._add(self._dwg.image(
            href=document.to_data_uri(),
            insert=(fmt(x), fmt(y)),
            size=(fmt(width), fmt(height)),
        ))

    def serialize(self) -> str:
        return self._dwg.tostring()
