"""Style options: the read-only snapshot a render pass consumes.

Options form a small dataclass tree with the library defaults. Partial
overrides (keyword arguments, nested dicts, or a JSON file) are deep-merged
over an existing tree with ``merge_options``; camelCase keys are accepted
alongside snake_case so option dicts written for the JavaScript styling
library load unchanged.
"""

import dataclasses
import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from PIL import ImageColor

from qrsvg.grid import ECC_LEVELS, MODES
from qrsvg.logging import get_logger

log = get_logger("options")

DOT_TYPES = ("square", "dots", "rounded", "extra-rounded", "classy", "classy-rounded")
_TRANSPARENT = {"none", "transparent"}
_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


@dataclass(frozen=True)
class QROptions:
    type_number: int = 0
    mode: str | None = None
    error_correction_level: str = "Q"


@dataclass(frozen=True)
class ImageOptions:
    hide_background_dots: bool = True
    image_size: float = 0.4
    image_color: str | None = None
    margin: int = 0


@dataclass(frozen=True)
class DotsOptions:
    type: str = "square"
    color: str = "#000"


@dataclass(frozen=True)
class BackgroundOptions:
    color: str = "#fff"


@dataclass(frozen=True)
class Options:
    width: int = 300
    height: int = 300
    data: str = ""
    image: str | None = None
    qr_options: QROptions = field(default_factory=QROptions)
    image_options: ImageOptions = field(default_factory=ImageOptions)
    dots_options: DotsOptions = field(default_factory=DotsOptions)
    background_options: BackgroundOptions = field(default_factory=BackgroundOptions)

    def validate(self) -> "Options":
        """Check value ranges; returns self so calls can be chained."""
        if self.width < 1 or self.height < 1:
            raise ValueError(f"Canvas must be at least 1x1 px, got {self.width}x{self.height}")
        if self.qr_options.error_correction_level.upper() not in ECC_LEVELS:
            raise ValueError(f"Unknown error correction level {self.qr_options.error_correction_level!r}")
        if not 0 <= self.qr_options.type_number <= 40:
            raise ValueError(f"type_number must be 0-40, got {self.qr_options.type_number}")
        if self.qr_options.mode is not None and self.qr_options.mode not in MODES:
            raise ValueError(f"Unknown mode {self.qr_options.mode!r}")
        if not 0 < self.image_options.image_size <= 1:
            raise ValueError(f"image_size must be in (0, 1], got {self.image_options.image_size}")
        if self.image_options.margin < 0:
            raise ValueError(f"image margin must be >= 0, got {self.image_options.margin}")
        if self.dots_options.type not in DOT_TYPES:
            raise ValueError(f"Unknown dot type {self.dots_options.type!r}, expected one of {DOT_TYPES}")
        check_color(self.dots_options.color)
        check_color(self.background_options.color)
        if self.image_options.image_color is not None:
            check_color(self.image_options.image_color)
        return self


def check_color(value: str) -> str:
    """Validate an SVG/CSS colour string, returning it unchanged."""
    if value.lower() in _TRANSPARENT:
        return value
    try:
        ImageColor.getrgb(value)
    except ValueError:
        raise ValueError(f"Invalid colour {value!r}") from None
    return value


def _snake(key: str) -> str:
    return _CAMEL_RE.sub("_", key).lower()


def merge_options(base: Options, overrides: Mapping[str, Any] | None = None) -> Options:
    """Deep-merge a (possibly partial, possibly camelCase) mapping over *base*.

    Nested option groups merge field by field; ``None`` values in the mapping
    are kept only for fields whose default is ``None``.
    """
    if not overrides:
        return base
    return _merge(base, overrides)


def _merge(node, overrides: Mapping[str, Any]):
    known = {f.name: f for f in dataclasses.fields(node)}
    changes = {}
    for raw_key, value in overrides.items():
        key = _snake(raw_key)
        if key not in known:
            raise ValueError(f"Unknown option {raw_key!r} for {type(node).__name__}")
        current = getattr(node, key)
        if dataclasses.is_dataclass(current):
            if isinstance(value, Mapping):
                changes[key] = _merge(current, value)
            elif value is None:
                continue
            else:
                changes[key] = value
        elif value is None and current is not None:
            continue
        else:
            changes[key] = value
    return dataclasses.replace(node, **changes)


def load_options(path: str | Path, base: Options | None = None) -> Options:
    """Read a JSON option file and merge it over *base* (defaults if None)."""
    with open(path) as f:
        overrides = json.load(f)
    if not isinstance(overrides, dict):
        raise ValueError(f"Option file {path} must contain a JSON object")
    log.debug("loaded options from %s: %s", path, sorted(overrides))
    return merge_options(base or Options(), overrides)
