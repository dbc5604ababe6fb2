"""Image-overlay sizing: how many modules a logo may hide, and where.

The embedded image sits in a centred rectangle of hidden modules. Its size
is bounded by two budgets:

    - the error-correction budget: at most ``floor(image_size * pct * N^2)``
      modules, where ``pct`` is the rough fraction of modules the chosen
      ECC level can recover;
    - the axis budget: at most ``N - 14`` modules per axis, so the 7-module
      finder zones on each side are never covered.

Hidden-dot counts are always odd so the rectangle centres on a module.
"""

import math
from dataclasses import dataclass
from typing import Callable

from qrsvg.logging import audit, get_logger

log = get_logger("sizing")

FilterFunction = Callable[[int, int], bool]

# Approximate fraction of modules each level can lose and still decode.
ERROR_CORRECTION_PERCENTS = {
    "L": 0.07,
    "M": 0.15,
    "Q": 0.25,
    "H": 0.30,
}

FINDER_ZONE = 7


@dataclass(frozen=True)
class ImageSize:
    """Drawn image size in pixels plus the hidden-module rectangle."""

    width: float
    height: float
    hide_x_dots: int
    hide_y_dots: int

    @property
    def hidden_dots(self) -> int:
        return self.hide_x_dots * self.hide_y_dots


EMPTY = ImageSize(width=0, height=0, hide_x_dots=0, hide_y_dots=0)


def max_hidden_dots(image_size: float, error_correction_level: str, count: int) -> int:
    """Upper bound on modules the image may obscure."""
    cover_level = image_size * ERROR_CORRECTION_PERCENTS[error_correction_level.upper()]
    return math.floor(cover_level * count * count)


def max_hidden_axis_dots(count: int) -> int:
    """Modules per axis left once both finder zones are reserved."""
    return count - 2 * FINDER_ZONE


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _odd_ceil(value: float) -> int:
    """Smallest odd integer >= value (never below 1)."""
    return 1 + 2 * math.ceil((value - 1) / 2)


def _odd_floor(value: int) -> int:
    return value if value % 2 else value - 1


def _from_x(hide_x: int, ratio: float, dot_size: int) -> ImageSize:
    width = hide_x * dot_size
    return ImageSize(
        width=width,
        height=_round_half_up(width * ratio),
        hide_x_dots=hide_x,
        hide_y_dots=_odd_ceil(hide_x * ratio),
    )


def _from_y(hide_y: int, ratio: float, dot_size: int) -> ImageSize:
    height = hide_y * dot_size
    return ImageSize(
        width=_round_half_up(height / ratio),
        height=height,
        hide_x_dots=_odd_ceil(hide_y / ratio),
        hide_y_dots=hide_y,
    )


def calculate_image_size(
    original_width: float,
    original_height: float,
    max_hidden_dots: int,
    max_hidden_axis_dots: int,
    dot_size: int,
) -> ImageSize:
    """Largest odd hidden rectangle that keeps the image's aspect ratio.

    The x axis is sized first from the square root of the budget; the y axis
    follows from the aspect ratio, rounded up so the image never overlaps a
    visible module. If that overshoots either budget the y axis is taken as
    the anchor instead (clamped to the axis budget, or two modules smaller).
    Extreme aspect ratios that still overshoot fall back to scanning both
    anchors downwards and keeping the larger rectangle that fits.

    The drawn pixel size always fits inside the hidden rectangle.
    """
    if (original_width <= 0 or original_height <= 0 or max_hidden_dots <= 0
            or max_hidden_axis_dots <= 0 or dot_size <= 0):
        return EMPTY

    ratio = original_height / original_width

    def fits(size: ImageSize) -> bool:
        return (size.hidden_dots <= max_hidden_dots
                and size.hide_x_dots <= max_hidden_axis_dots
                and size.hide_y_dots <= max_hidden_axis_dots)

    hide_x = max(1, math.floor(math.sqrt(max_hidden_dots / ratio)))
    hide_x = _odd_floor(min(hide_x, max_hidden_axis_dots))
    size = _from_x(hide_x, ratio, dot_size)
    if fits(size):
        return size

    if size.hide_y_dots > max_hidden_axis_dots:
        hide_y = _odd_floor(max_hidden_axis_dots)
    else:
        hide_y = size.hide_y_dots - 2
    if hide_y >= 1:
        size = _from_y(hide_y, ratio, dot_size)
        if fits(size):
            return size

    candidates = []
    top = _odd_floor(max_hidden_axis_dots)
    for build in (_from_x, _from_y):
        for anchor in range(top, 0, -2):
            candidate = build(anchor, ratio, dot_size)
            if fits(candidate):
                candidates.append(candidate)
                break
    if not candidates:
        return EMPTY
    return max(candidates, key=lambda c: (c.hidden_dots, c.hide_x_dots))


def show_all(i: int, j: int) -> bool:
    return True


def hidden_rect_filter(count: int, hide_x_dots: int, hide_y_dots: int, hide_background_dots: bool) -> FilterFunction:
    """Visibility filter that suppresses the centred hidden rectangle.

    With ``hide_background_dots`` off every module stays visible and the
    image is simply drawn over them.
    """
    if not hide_background_dots or hide_x_dots <= 0 or hide_y_dots <= 0:
        return show_all

    x_lo, x_hi = (count - hide_x_dots) / 2, (count + hide_x_dots) / 2
    y_lo, y_hi = (count - hide_y_dots) / 2, (count + hide_y_dots) / 2

    def visible(i: int, j: int) -> bool:
        return i < x_lo or i >= x_hi or j < y_lo or j >= y_hi

    return visible


def plan_image(
    original_width: float,
    original_height: float,
    count: int,
    dot_size: int,
    image_size: float,
    error_correction_level: str,
) -> ImageSize:
    """Size the overlay for one render from the option values."""
    budget = max_hidden_dots(image_size, error_correction_level, count)
    axis = max_hidden_axis_dots(count)
    size = calculate_image_size(original_width, original_height, budget, axis, dot_size)
    audit("image.sized", logger=log,
          count=count, ecc=error_correction_level.upper(), budget=budget, axis_budget=axis,
          hide=f"{size.hide_x_dots}x{size.hide_y_dots}", px=f"{size.width}x{size.height}")
    return size
