"""Pattern sources: dictionary bit unpacking and externally generated QR modules.

Every source yields a numpy ``uint8`` matrix, row 0 at the top, with
0 = dark and 1 = light.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List, Optional, Sequence, Union

import numpy as np
import qrcode
import qrcode.constants

from dictionaries import DictionaryCatalog
from marker_solids.contracts import ErrorCorrection, SpecialMarker, is_special_marker
from marker_solids.errors import PatternMissingError, QrGenerationError

logger = logging.getLogger(__name__)

DEFAULT_QR_TIMEOUT_S = 5.0

_QR_LEVELS = {
    ErrorCorrection.L: qrcode.constants.ERROR_CORRECT_L,
    ErrorCorrection.M: qrcode.constants.ERROR_CORRECT_M,
    ErrorCorrection.Q: qrcode.constants.ERROR_CORRECT_Q,
    ErrorCorrection.H: qrcode.constants.ERROR_CORRECT_H,
}

MarkerSource = Union[np.ndarray, SpecialMarker]


def unpack_bits(code: Iterable[int], bit_count: int) -> List[int]:
    """MSB-first bit stream of ``code``, trimmed to ``bit_count`` bits.

    A trailing partial byte contributes its low-order bits.
    """
    bits: List[int] = []
    for byte in code:
        remaining = bit_count - len(bits)
        if remaining <= 0:
            break
        for i in range(min(8, remaining) - 1, -1, -1):
            bits.append((int(byte) >> i) & 1)
    return bits


def get_bit_pattern(
    catalog: DictionaryCatalog,
    dictionary: str,
    marker_id: int,
    pattern_width: Optional[int] = None,
    pattern_height: Optional[int] = None,
) -> np.ndarray:
    """Bordered bit matrix of shape ``(pattern_height + 2, pattern_width + 2)``."""
    marker_dict = catalog.get(dictionary)
    if marker_dict is None:
        raise PatternMissingError(f"Dictionary {dictionary} not loaded")
    code = marker_dict.code(marker_id)
    if code is None:
        raise PatternMissingError(f"ID {marker_id} not found in {dictionary}")

    spec = marker_dict.spec
    width = pattern_width or spec.pattern_width
    height = pattern_height or spec.pattern_height
    bits = unpack_bits(code, width * height)
    if len(bits) != width * height:
        raise PatternMissingError(
            f"ID {marker_id} in {dictionary} has {len(bits)} bits, expected {width * height}"
        )

    payload = np.array(bits, dtype=np.uint8).reshape(height, width)
    if spec.is_apriltag:
        payload = np.rot90(payload, k=2)
    return np.pad(payload, 1, mode="constant", constant_values=0)


def qr_modules_to_pattern(modules: Sequence[Sequence[bool]]) -> np.ndarray:
    """Map an ``is_dark`` grid onto the 0 = dark convention. No ring is added."""
    rows = [list(row) for row in modules]
    if not rows or not rows[0]:
        raise QrGenerationError("QR generator returned no modules")
    if any(len(row) != len(rows[0]) for row in rows):
        raise QrGenerationError("QR module grid is not rectangular")
    dark = np.array(rows, dtype=bool)
    return np.where(dark, 0, 1).astype(np.uint8)


def _qr_matrix(content: str, level: ErrorCorrection, quiet_zone: int) -> List[List[bool]]:
    qr = qrcode.QRCode(
        version=None,
        error_correction=_QR_LEVELS[level],
        box_size=1,
        border=quiet_zone,
    )
    qr.add_data(content)
    qr.make(fit=True)
    return qr.get_matrix()


async def generate_qr_modules(
    content: str,
    level: ErrorCorrection = ErrorCorrection.M,
    quiet_zone: int = 4,
    timeout: float = DEFAULT_QR_TIMEOUT_S,
) -> np.ndarray:
    """Run the QR encoder off the event loop and return its module pattern.

    One attempt only; a timeout or encoder failure raises ``QrGenerationError``.
    """
    level = ErrorCorrection(level)
    try:
        matrix = await asyncio.wait_for(
            asyncio.to_thread(_qr_matrix, content, level, quiet_zone),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        raise QrGenerationError(f"QR generation timed out after {timeout}s")
    except Exception as e:
        raise QrGenerationError(f"QR generation failed: {e}") from e

    pattern = qr_modules_to_pattern(matrix)
    logger.debug(
        "QR code: %dx%d modules, %d dark",
        pattern.shape[1], pattern.shape[0], int(np.count_nonzero(pattern == 0)),
    )
    return pattern


def resolve_marker_source(
    catalog: DictionaryCatalog, dictionary: str, marker_id: int
) -> MarkerSource:
    """Special ids become a ``SpecialMarker``; everything else is looked up."""
    if is_special_marker(marker_id):
        return SpecialMarker(marker_id)
    return get_bit_pattern(catalog, dictionary, marker_id)


def dark_cell_count(pattern: np.ndarray) -> int:
    return int(np.count_nonzero(np.asarray(pattern) == 0))

