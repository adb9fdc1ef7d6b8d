"""Digit packing helpers shared by the encoder and the resolver."""

from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np


def _powers(base: int, width: int) -> np.ndarray:
    return base ** np.arange(width - 1, -1, -1, dtype=np.int64)


def values_to_digits(values: Sequence[int], base: int, width: int) -> np.ndarray:
    """Big-endian fixed-width digits for every value, flattened."""
    arr = np.asarray(values, dtype=np.int64)
    if arr.size == 0:
        return np.zeros(0, dtype=np.int64)
    if int(arr.max()) >= base**width:
        raise ValueError(f"value {int(arr.max())} does not fit in {width} base-{base} digits")
    return ((arr[:, None] // _powers(base, width)) % base).reshape(-1)


def bytes_to_digits(payload: bytes, base: int, width: int) -> np.ndarray:
    return values_to_digits(np.frombuffer(payload, dtype=np.uint8), base, width)


def digits_to_values(digits: np.ndarray, base: int, width: int) -> Optional[np.ndarray]:
    """Group digits into fixed-width numbers; ``None`` when the length is ragged."""
    if digits.size == 0 or digits.size % width:
        return None
    return digits.reshape(-1, width) @ _powers(base, width)


def minimal_digits(value: int, base: int) -> List[int]:
    """Unpadded big-endian digits, ``[0]`` for zero."""
    if value == 0:
        return [0]
    digits: List[int] = []
    while value:
        digits.append(value % base)
        value //= base
    digits.reverse()
    return digits


def digits_value(digits: Sequence[int], base: int) -> int:
    value = 0
    for digit in digits:
        value = value * base + int(digit)
    return value


def units_to_bytes(units: np.ndarray) -> bytes:
    """Pack 16-bit code units big-endian."""
    return np.asarray(units, dtype=">u2").tobytes()


def bytes_to_units(blob: bytes) -> np.ndarray:
    return np.frombuffer(blob, dtype=">u2").astype(np.int64)
