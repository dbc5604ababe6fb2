"""Error kinds raised while rendering a styled QR document."""


class QRStyleError(Exception):
    """Base class for qrsvg rendering failures."""


class GridTooLargeError(QRStyleError):
    """The module grid has more cells per side than the canvas has pixels."""

    def __init__(self, count: int, width: int, height: int):
        self.count = count
        self.width = width
        self.height = height
        super().__init__(f"The canvas is too small: {count} modules do not fit in {width}x{height} px")


class MissingImageError(QRStyleError):
    """An image overlay was requested but no image source is configured."""

    def __init__(self, message: str = "Image is not defined"):
        super().__init__(message)


class ImageUnavailableError(QRStyleError):
    """The embedded vector image could not be fetched or parsed."""

    def __init__(self, source: str | None, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Image {source!r} unavailable: {reason}" if source else f"Image unavailable: {reason}")
