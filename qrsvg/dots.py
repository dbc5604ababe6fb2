"""Dot renderers: draw one dark module, shaped by its visible neighbours.

Each renderer gets the module's pixel origin, the dot size and a
``get_neighbor(dx, dy)`` callback that reports whether the adjacent module
is drawn. Only the four orthogonal neighbours shape the dot; corners facing
away from drawn neighbours are rounded so runs of dots merge cleanly.
"""

from typing import Callable

from qrsvg.surface import SvgSurface, fmt

NeighborFunction = Callable[[int, int], bool]


def corner_path(x: float, y: float, size: float,
                tl: float = 0, tr: float = 0, br: float = 0, bl: float = 0) -> str:
    """Clockwise square outline with a per-corner arc radius.

    A radius of ``size / 2`` rounds a corner into a half side; a radius of
    ``size`` turns the module into a quarter disc around the opposite corner.
    """
    parts = [f"M{fmt(x + tl)},{fmt(y)}", f"H{fmt(x + size - tr)}"]
    if tr:
        parts.append(f"A{fmt(tr)},{fmt(tr)} 0 0 1 {fmt(x + size)},{fmt(y + tr)}")
    parts.append(f"V{fmt(y + size - br)}")
    if br:
        parts.append(f"A{fmt(br)},{fmt(br)} 0 0 1 {fmt(x + size - br)},{fmt(y + size)}")
    parts.append(f"H{fmt(x + bl)}")
    if bl:
        parts.append(f"A{fmt(bl)},{fmt(bl)} 0 0 1 {fmt(x)},{fmt(y + size - bl)}")
    parts.append(f"V{fmt(y + tl)}")
    if tl:
        parts.append(f"A{fmt(tl)},{fmt(tl)} 0 0 1 {fmt(x + tl)},{fmt(y)}")
    parts.append("Z")
    return "".join(parts)


def _neighbors(get_neighbor: NeighborFunction) -> tuple[bool, bool, bool, bool]:
    """(left, right, top, bottom) visibility."""
    return (
        bool(get_neighbor(-1, 0)),
        bool(get_neighbor(1, 0)),
        bool(get_neighbor(0, -1)),
        bool(get_neighbor(0, 1)),
    )


class DotRenderer:
    name = ""

    def draw(self, surface: SvgSurface, x: float, y: float, size: float,
             get_neighbor: NeighborFunction, color: str) -> None:
        raise NotImplementedError


class SquareDot(DotRenderer):
    name = "square"

    def draw(self, surface, x, y, size, get_neighbor, color):
        surface.fill_rect(x, y, size, size, color)


class CircleDot(DotRenderer):
    name = "dots"

    def draw(self, surface, x, y, size, get_neighbor, color):
        surface.fill_circle(x + size / 2, y + size / 2, size / 2, color)


class RoundedDot(DotRenderer):
    """Lone dots become circles, run ends become half discs, bends round out."""

    name = "rounded"
    corner_ratio = 0.5

    def draw(self, surface, x, y, size, get_neighbor, color):
        left, right, top, bottom = _neighbors(get_neighbor)
        count = left + right + top + bottom

        if count == 0:
            surface.fill_circle(x + size / 2, y + size / 2, size / 2, color)
            return
        if count > 2 or (left and right) or (top and bottom):
            surface.fill_rect(x, y, size, size, color)
            return

        half = size / 2
        if count == 2:
            r = size * self.corner_ratio
            corners = {
                "tr": r if left and bottom else 0,
                "br": r if left and top else 0,
                "bl": r if top and right else 0,
                "tl": r if right and bottom else 0,
            }
        elif left:
            corners = {"tr": half, "br": half}
        elif right:
            corners = {"tl": half, "bl": half}
        elif top:
            corners = {"bl": half, "br": half}
        else:
            corners = {"tl": half, "tr": half}
        surface.fill_path(corner_path(x, y, size, **corners), color)


class ExtraRoundedDot(RoundedDot):
    name = "extra-rounded"
    corner_ratio = 1.0


class ClassyDot(DotRenderer):
    """Leaf-like dots: the top-left and bottom-right corners round when exposed."""

    name = "classy"
    corner_ratio = 0.5

    def draw(self, surface, x, y, size, get_neighbor, color):
        left, right, top, bottom = _neighbors(get_neighbor)
        r = size * self.corner_ratio

        if not (left or right or top or bottom):
            surface.fill_path(corner_path(x, y, size, tl=r, br=r), color)
        elif not left and not top:
            surface.fill_path(corner_path(x, y, size, tl=r), color)
        elif not right and not bottom:
            surface.fill_path(corner_path(x, y, size, br=r), color)
        else:
            surface.fill_rect(x, y, size, size, color)


class ClassyRoundedDot(ClassyDot):
    name = "classy-rounded"
    corner_ratio = 1.0


DOT_RENDERERS: dict[str, type[DotRenderer]] = {
    cls.name: cls
    for cls in (SquareDot, CircleDot, RoundedDot, ExtraRoundedDot, ClassyDot, ClassyRoundedDot)
}


def get_dot_renderer(name: str) -> DotRenderer:
    try:
        return DOT_RENDERERS[name]()
    except KeyError:
        raise ValueError(f"Unknown dot type {name!r}, expected one of {sorted(DOT_RENDERERS)}") from None
