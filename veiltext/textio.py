"""Turn uploaded bytes into text without losing invisible characters."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Tuple, Union

from .chars import is_invisible
from .scoring import COMMON_CONTROLS

logger = logging.getLogger(__name__)

UTF16_NULL_RATIO = 0.25
UTF16_NULL_DOMINANCE = 0.6
UTF16_PRINTABLE_MIN = 0.7

# A leading UTF-8 EF BB BF is U+FEFF, a payload character, and stays in the text.
BOMS = (
    (b"\xff\xfe", "utf-16-le"),
    (b"\xfe\xff", "utf-16-be"),
)


def _null_byte_ratio(raw_bytes: bytes) -> float:
    if not raw_bytes:
        return 0.0
    return raw_bytes.count(0) / len(raw_bytes)


def _utf16_order(raw_bytes: bytes) -> str:
    """``utf-16-le`` when the zero bytes sit at odd offsets, ``utf-16-be`` otherwise."""
    even_nulls = sum(1 for i in range(0, len(raw_bytes), 2) if raw_bytes[i] == 0)
    odd_nulls = sum(1 for i in range(1, len(raw_bytes), 2) if raw_bytes[i] == 0)
    return "utf-16-le" if odd_nulls >= even_nulls else "utf-16-be"


def _should_try_utf16(raw_bytes: bytes) -> bool:
    if len(raw_bytes) % 2:
        return False
    if _null_byte_ratio(raw_bytes) < UTF16_NULL_RATIO:
        return False
    even_nulls = sum(1 for i in range(0, len(raw_bytes), 2) if raw_bytes[i] == 0)
    odd_nulls = sum(1 for i in range(1, len(raw_bytes), 2) if raw_bytes[i] == 0)
    dominant = max(even_nulls, odd_nulls) / max(1, even_nulls + odd_nulls)
    return dominant >= UTF16_NULL_DOMINANCE


def _readable_ratio(text: str) -> float:
    readable = sum(
        1 for ch in text if ch.isprintable() or ch in COMMON_CONTROLS or is_invisible(ch)
    )
    return readable / max(1, len(text))


def detect_text(raw_bytes: bytes) -> Tuple[str, str]:
    """Return ``(text, encoding)`` using a UTF-16 BOM, a UTF-16 guess, UTF-8, then Latin-1."""
    for bom, encoding in BOMS:
        if raw_bytes.startswith(bom):
            return raw_bytes[len(bom) :].decode(encoding, errors="replace"), encoding

    if _should_try_utf16(raw_bytes):
        encoding = _utf16_order(raw_bytes)
        text = raw_bytes.decode(encoding, errors="replace")
        if text and _readable_ratio(text) > UTF16_PRINTABLE_MIN:
            return text, encoding

    try:
        return raw_bytes.decode("utf-8"), "utf-8"
    except UnicodeDecodeError:
        pass

    logger.warning("Input is neither UTF-8 nor UTF-16; falling back to Latin-1")
    return raw_bytes.decode("latin-1"), "latin-1"


def read_text_auto(raw_bytes: bytes) -> str:
    return detect_text(raw_bytes)[0]


def read_text_file(path: Union[str, Path]) -> str:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Text file not found: {path}")
    return read_text_auto(path.read_bytes())
