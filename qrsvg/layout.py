"""Layout mapper: fit an N x N module grid onto a pixel canvas."""

from dataclasses import dataclass

from qrsvg.errors import GridTooLargeError
from qrsvg.logging import audit, get_logger

log = get_logger("layout")


@dataclass(frozen=True)
class Geometry:
    """Pixel geometry of one render pass."""

    dot_size: int
    origin_x: int
    origin_y: int

    def cell_origin(self, i: int, j: int) -> tuple[int, int]:
        """Top-left pixel of module (i, j); i runs along x, j along y."""
        return self.origin_x + i * self.dot_size, self.origin_y + j * self.dot_size

    def extent(self, count: int) -> int:
        """Pixel span of the whole grid along one axis."""
        return count * self.dot_size


def compute_layout(count: int, width: int, height: int) -> Geometry:
    """Compute a uniform dot size and floor-centred offsets.

    Leftover pixels are split evenly with the odd pixel going to the
    trailing edge, so the padding is biased towards the top-left.

    Raises:
        GridTooLargeError: if the grid has more modules than pixels on
            either axis.
    """
    if count < 1:
        raise ValueError(f"Grid size must be positive, got {count}")
    if count > width or count > height:
        raise GridTooLargeError(count, width, height)

    dot_size = min(width, height) // count
    geometry = Geometry(
        dot_size=dot_size,
        origin_x=(width - count * dot_size) // 2,
        origin_y=(height - count * dot_size) // 2,
    )
    audit("layout.computed", logger=log,
          count=count, canvas=f"{width}x{height}", dot_size=dot_size,
          origin=f"{geometry.origin_x},{geometry.origin_y}")
    return geometry
