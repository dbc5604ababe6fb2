"""High-level entry point: options in, styled SVG out."""

from pathlib import Path
from typing import Any, Mapping

from qrsvg.canvas import QRCanvas, RenderHandle
from qrsvg.document import Fetcher
from qrsvg.grid import MatrixGrid, encode
from qrsvg.logging import audit, get_logger
from qrsvg.options import Options, merge_options

log = get_logger("styling")


class StyledQRCode:
    """Encode data and render it as a styled QR code SVG.

    Every ``update`` merges the new options over the current ones, encodes
    the data again and starts a fresh render; nothing is reused between
    renders.

    Example::

        qr = StyledQRCode(data="https://example.com", dots_options={"type": "rounded"})
        svg = asyncio.run(qr.get_serialized_svg())
    """

    def __init__(self, options: Options | Mapping[str, Any] | None = None, fetcher: Fetcher | None = None,
                 **overrides):
        self._fetcher = fetcher
        self.options = Options()
        self.grid: MatrixGrid | None = None
        self.canvas: QRCanvas | None = None
        self._render: RenderHandle | None = None
        self.update(options, **overrides)

    def update(self, options: Options | Mapping[str, Any] | None = None, **overrides) -> None:
        if isinstance(options, Options):
            self.options = options
        else:
            self.options = merge_options(self.options, options)
        self.options = merge_options(self.options, overrides).validate()

        if self._render is not None:
            self._render.discard()
            self._render = None
        if not self.options.data:
            return

        qr_options = self.options.qr_options
        self.grid = encode(
            self.options.data,
            error_correction_level=qr_options.error_correction_level,
            type_number=qr_options.type_number,
            mode=qr_options.mode,
        )
        self.canvas = QRCanvas(self.options, fetcher=self._fetcher)
        self._render = self.canvas.render(self.grid)

    async def get_serialized_svg(self) -> str | None:
        """Wait for the pending render and return its SVG, or None without data."""
        if self._render is None or self.canvas is None:
            return None
        await self._render
        return self.canvas.serialize()

    async def save(self, path: str | Path) -> Path:
        svg = await self.get_serialized_svg()
        if svg is None:
            raise ValueError("Nothing to save: no data has been set")
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(svg, encoding="utf-8")
        audit("svg.saved", logger=log, path=str(path), bytes=len(svg))
        return path
