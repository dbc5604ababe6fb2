"""Vector image documents: fetch, parse, tint and embed the overlay SVG."""

import asyncio
import base64
import re
import urllib.parse
import urllib.request
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Awaitable, Callable

from qrsvg.errors import ImageUnavailableError
from qrsvg.logging import audit, get_logger, trace

log = get_logger("document")

SVG_NS = "http://www.w3.org/2000/svg"
XLINK_NS = "http://www.w3.org/1999/xlink"
DEFAULT_SIZE = 64.0

ET.register_namespace("", SVG_NS)
ET.register_namespace("xlink", XLINK_NS)

Fetcher = Callable[[str], Awaitable[str]]

_NUMBER_RE = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _leading_number(value: str | None, default: float) -> float:
    """Numeric prefix of an attribute ("48px" -> 48.0), else *default*."""
    if not value:
        return default
    match = _NUMBER_RE.match(value)
    if not match:
        return default
    return float(match.group(0))


class ImageDocument:
    """A parsed SVG document that can be inspected, tinted and embedded."""

    def __init__(self, root: ET.Element, source: str | None = None):
        if _local(root.tag) != "svg":
            raise ImageUnavailableError(source, f"no svg found, root element is <{_local(root.tag)}>")
        if not root.tag.startswith("{"):
            # image/svg+xml payloads need the SVG namespace
            root.set("xmlns", SVG_NS)
        self.root = root
        self.source = source

    @classmethod
    def parse(cls, text: str, source: str | None = None) -> "ImageDocument":
        try:
            root = ET.fromstring(text)
        except ET.ParseError as exc:
            raise ImageUnavailableError(source, f"malformed svg: {exc}") from exc
        return cls(root, source=source)

    @property
    def width(self) -> float:
        return _leading_number(self.get("width"), DEFAULT_SIZE)

    @property
    def height(self) -> float:
        return _leading_number(self.get("height"), DEFAULT_SIZE)

    def get(self, name: str, default: str | None = None) -> str | None:
        return self.root.get(name, default)

    def set(self, name: str, value: str) -> None:
        self.root.set(name, value)

    def paths(self) -> list[ET.Element]:
        """All <path> elements in document order."""
        return [el for el in self.root.iter() if _local(el.tag) == "path"]

    def tint_last_path(self, color: str) -> bool:
        """Fill the last (foreground) path with *color*; False if there is none."""
        paths = self.paths()
        if not paths:
            return False
        paths[-1].set("fill", color)
        return True

    def tostring(self) -> str:
        return ET.tostring(self.root, encoding="unicode")

    def to_data_uri(self) -> str:
        payload = base64.b64encode(self.tostring().encode("utf-8")).decode("ascii")
        return f"data:image/svg+xml;base64,{payload}"

    def __repr__(self) -> str:
        return f"ImageDocument({self.source!r}, {self.width:g}x{self.height:g}, paths={len(self.paths())})"


def _decode_data_uri(uri: str) -> str:
    header, sep, payload = uri[len("data:"):].partition(",")
    if not sep:
        raise ValueError("data URI has no payload")
    if header.endswith(";base64"):
        return base64.b64decode(payload, validate=True).decode("utf-8")
    return urllib.parse.unquote(payload)


def _read_url(url: str) -> str:
    with urllib.request.urlopen(url) as response:
        charset = response.headers.get_content_charset() or "utf-8"
        return response.read().decode(charset)


def _read_file(path: str) -> str:
    return Path(path).read_text(encoding="utf-8")


async def read_source(source: str) -> str:
    """Default fetcher: http(s)/file URLs, data URIs and local paths.

    Blocking reads run in the loop's default executor. There is no timeout.
    """
    if source.startswith("data:"):
        return _decode_data_uri(source)

    loop = asyncio.get_running_loop()
    scheme = urllib.parse.urlsplit(source).scheme.lower()
    if scheme in ("http", "https"):
        return await loop.run_in_executor(None, _read_url, source)
    if scheme == "file":
        path = urllib.request.url2pathname(urllib.parse.urlsplit(source).path)
        return await loop.run_in_executor(None, _read_file, path)
    return await loop.run_in_executor(None, _read_file, source)


@trace
async def fetch_document(source: str, fetcher: Fetcher | None = None) -> ImageDocument:
    """Fetch and parse the vector image at *source*.

    Raises:
        ImageUnavailableError: if the fetch fails or the text is not an SVG
            document. The underlying error is chained.
    """
    fetch = fetcher or read_source
    try:
        text = await fetch(source)
    except ImageUnavailableError:
        raise
    except Exception as exc:
        raise ImageUnavailableError(source, f"fetch failed: {exc}") from exc

    document = ImageDocument.parse(text, source=source)
    audit("image.fetched", logger=log,
          source=source, size=f"{document.width:g}x{document.height:g}", paths=len(document.paths()))
    return document
