"""Module grids: the read-only dark/light matrix consumed by the renderer.

The encoder itself is the ``qrcode`` library; this module only adapts its
output to the two queries the renderer needs, ``size()`` and
``is_dark(row, col)``.
"""

from typing import Protocol, Sequence

import numpy as np
import qrcode
import qrcode.constants
import qrcode.util

from qrsvg.logging import audit, get_logger, trace

log = get_logger("grid")

ECC_LEVELS = {
    "L": qrcode.constants.ERROR_CORRECT_L,  # 7%
    "M": qrcode.constants.ERROR_CORRECT_M,  # 15%
    "Q": qrcode.constants.ERROR_CORRECT_Q,  # 25%
    "H": qrcode.constants.ERROR_CORRECT_H,  # 30%
}

MODES = {
    "numeric": qrcode.util.MODE_NUMBER,
    "alphanumeric": qrcode.util.MODE_ALPHA_NUM,
    "byte": qrcode.util.MODE_8BIT_BYTE,
}


class ModuleGrid(Protocol):
    def size(self) -> int: ...

    def is_dark(self, row: int, col: int) -> bool: ...


class MatrixGrid:
    """Immutable square module grid backed by a numpy bool array."""

    def __init__(self, rows: Sequence[Sequence[bool]] | np.ndarray):
        cells = np.array(rows, dtype=bool)
        if cells.ndim != 2 or cells.shape[0] != cells.shape[1] or cells.shape[0] == 0:
            raise ValueError(f"Module grid must be a non-empty square matrix, got shape {cells.shape}")
        cells.setflags(write=False)
        self._cells = cells

    def size(self) -> int:
        return self._cells.shape[0]

    def is_dark(self, row: int, col: int) -> bool:
        return bool(self._cells[row, col])

    @property
    def cells(self) -> np.ndarray:
        return self._cells

    def dark_count(self) -> int:
        return int(self._cells.sum())

    def __repr__(self) -> str:
        n = self.size()
        return f"MatrixGrid({n}x{n}, dark={self.dark_count()})"


def ecc_level(name: str) -> int:
    """Map an L/M/Q/H letter to the qrcode constant."""
    try:
        return ECC_LEVELS[name.upper()]
    except KeyError:
        raise ValueError(f"Unknown error correction level {name!r}, expected one of L/M/Q/H") from None


@trace
def encode(
    data: str,
    error_correction_level: str = "Q",
    type_number: int = 0,
    mode: str | None = None,
) -> MatrixGrid:
    """Encode *data* into a bare module grid (no quiet zone).

    Args:
        data: The string to encode.
        error_correction_level: L/M/Q/H.
        type_number: QR version 1-40, or 0 to pick the smallest that fits.
        mode: "numeric", "alphanumeric" or "byte"; None lets qrcode choose.
    """
    version = type_number or None
    qr = qrcode.QRCode(
        version=version,
        error_correction=ecc_level(error_correction_level),
        box_size=1,
        border=0,
    )
    if mode is not None:
        if mode not in MODES:
            raise ValueError(f"Unknown mode {mode!r}, expected one of {sorted(MODES)}")
        qr.add_data(qrcode.util.QRData(data, mode=MODES[mode]))
    else:
        qr.add_data(data)
    qr.make(fit=(version is None))

    grid = MatrixGrid(qr.modules)
    audit("qr.encoded", logger=log,
          data=data[:80], version=qr.version, size=f"{grid.size()}x{grid.size()}",
          ecc=error_correction_level.upper(), mode=mode or "auto")
    return grid
