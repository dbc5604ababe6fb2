"""Shared test fixtures."""

from __future__ import annotations

import xml.etree.ElementTree as ET

import numpy as np
import pytest

from qrsvg.grid import MatrixGrid

SVG_NS = "{http://www.w3.org/2000/svg}"
XLINK_HREF = "{http://www.w3.org/1999/xlink}href"

# Logo without width/height: sized as the 64x64 default
LOGO_SVG = '''<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 64 64">
  <rect x="0" y="0" width="64" height="64" fill="#eee"/>
  <path d="M8 8 H56 V56 H8 Z" fill="#123456"/>
  <path d="M20 20 H44 V44 H20 Z" fill="#abcdef"/>
</svg>'''

WIDE_LOGO_SVG = '''<svg xmlns="http://www.w3.org/2000/svg" width="128px" height="64px">
  <path d="M0 0 H128 V64 H0 Z" fill="red"/>
</svg>'''

PLAIN_LOGO_SVG = '''<svg width="48" height="24"><circle cx="12" cy="12" r="10"/></svg>'''


def parse_svg(text: str) -> ET.Element:
    return ET.fromstring(text)


def shapes(root: ET.Element, tag: str) -> list[ET.Element]:
    return root.findall(f"{SVG_NS}{tag}")


@pytest.fixture
def svg_tools():
    """(parse, shapes, xlink href attribute name)."""
    return parse_svg, shapes, XLINK_HREF


@pytest.fixture
def dark_grid():
    """Factory for fully dark square grids."""
    def make(n: int) -> MatrixGrid:
        return MatrixGrid(np.ones((n, n), dtype=bool))
    return make


@pytest.fixture
def logo_fetcher():
    """Fetcher that serves fixed SVG text and records requested sources."""
    requested = []

    def make(text: str = LOGO_SVG):
        async def fetch(source: str) -> str:
            requested.append(source)
            return text
        fetch.requested = requested
        return fetch

    return make


@pytest.fixture
def logo_svg():
    return LOGO_SVG


@pytest.fixture
def wide_logo_svg():
    return WIDE_LOGO_SVG


@pytest.fixture
def plain_logo_svg():
    return PLAIN_LOGO_SVG
