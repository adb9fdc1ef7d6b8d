"""Hide a byte payload in text as runs of invisible characters."""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Sequence

from .bits import bytes_to_digits, bytes_to_units, minimal_digits, values_to_digits
from .chars import is_invisible
from .errors import InsufficientCarrier, UnencodableMessage
from .schemes import (
    MARKER_ROLE,
    POSITIONS,
    SEPARATOR_ROLE,
    Family,
    Scheme,
    SymbolAssignment,
    parse_assignment,
    validate_scheme,
)

logger = logging.getLogger(__name__)


def _symbols(scheme: Scheme, assignment: SymbolAssignment) -> List[str]:
    return [chr(assignment.char_for(str(digit))) for digit in range(scheme.base)]


def _render(digits: Sequence[int], symbols: Sequence[str]) -> str:
    return "".join(symbols[int(digit)] for digit in digits)


def _check_width(message: bytes, scheme: Scheme) -> None:
    limit = 2**scheme.bits
    for idx, value in enumerate(message):
        if value >= limit:
            raise UnencodableMessage(
                f"{scheme.scheme_id} carries {scheme.bits}-bit values; "
                f"byte {idx} is 0x{value:02X}"
            )


def _encode_binary(message: bytes, scheme: Scheme, assignment: SymbolAssignment) -> str:
    _check_width(message, scheme)
    return _render(bytes_to_digits(message, 2, scheme.bits), _symbols(scheme, assignment))


def _encode_nary(message: bytes, scheme: Scheme, assignment: SymbolAssignment) -> str:
    symbols = _symbols(scheme, assignment)
    if scheme.separator is None:
        return _render(bytes_to_digits(message, scheme.base, scheme.digits_per_unit), symbols)
    separator = chr(assignment.char_for(SEPARATOR_ROLE))
    return separator.join(_render(minimal_digits(value, scheme.base), symbols) for value in message)


def _encode_delimiter(message: bytes, scheme: Scheme, assignment: SymbolAssignment) -> str:
    _check_width(message, scheme)
    symbols = _symbols(scheme, assignment)
    if scheme.separator is None:
        content = _render(bytes_to_digits(message, 2, scheme.bits), symbols)
    else:
        separator = chr(assignment.char_for(SEPARATOR_ROLE))
        if scheme.variable:
            groups = [_render(minimal_digits(value, 2), symbols) for value in message]
        else:
            groups = [
                _render(values_to_digits([value], 2, scheme.bits), symbols) for value in message
            ]
        if scheme.marker is None:
            # every byte closes with its own separator
            content = "".join(group + separator for group in groups)
        else:
            content = separator.join(groups)
    if scheme.marker is None:
        return content
    marker = chr(assignment.char_for(MARKER_ROLE))
    return marker + content + marker


def _encode_offset(message: bytes, scheme: Scheme, assignment: SymbolAssignment) -> str:
    _check_width(message, scheme)
    return "".join(chr(scheme.offset + value) for value in message)


def _encode_fixed4(message: bytes, scheme: Scheme, assignment: SymbolAssignment) -> str:
    text = message.decode("utf-8", errors="surrogateescape")
    units = bytes_to_units(text.encode("utf-16-be", errors="surrogatepass"))
    return _render(values_to_digits(units, 4, scheme.digits_per_unit), _symbols(scheme, assignment))


ENCODERS: Dict[Family, Callable[[bytes, Scheme, SymbolAssignment], str]] = {
    Family.BINARY: _encode_binary,
    Family.NARY: _encode_nary,
    Family.DELIMITER: _encode_delimiter,
    Family.OFFSET: _encode_offset,
    Family.FIXED4: _encode_fixed4,
}


def insert_run(carrier_text: Optional[str], run: str, position: str = "middle") -> str:
    """Place ``run`` at the start, middle or end of the carrier."""
    if position not in POSITIONS:
        raise ValueError(f"Unsupported position '{position}'. Use start, middle or end.")
    if not carrier_text:
        return run
    if position == "start":
        return run + carrier_text
    if position == "end":
        return carrier_text + run
    mid = len(carrier_text) // 2
    return carrier_text[:mid] + run + carrier_text[mid:]


def _encode_segmented(
    message: bytes, scheme: Scheme, assignment: SymbolAssignment, carrier_text: Optional[str]
) -> str:
    _check_width(message, scheme)
    carrier = carrier_text or ""
    if not message:
        return carrier

    cleaned = "".join(ch for ch in carrier if not is_invisible(ch))
    if len(cleaned) != len(carrier):
        logger.warning(
            "Removed %d invisible characters from the carrier before segmenting",
            len(carrier) - len(cleaned),
        )

    bits = _render(bytes_to_digits(message, 2, scheme.bits), _symbols(scheme, assignment))
    width = scheme.segment_bits
    chunks = [bits[idx : idx + width] for idx in range(0, len(bits), width)]
    if len(chunks) > len(cleaned):
        raise InsufficientCarrier(
            f"{scheme.scheme_id} needs {len(chunks)} visible characters "
            f"(slots of {width} bits), "
            f"carrier has {len(cleaned)}"
        )

    out: List[str] = []
    for idx, ch in enumerate(cleaned):
        out.append(ch)
        if idx < len(chunks):
            out.append(chunks[idx])
    return "".join(out)


def encode_run(message: bytes, scheme: Scheme, assignment=None) -> str:
    """Return the bare invisible run for a non-segmented scheme."""
    validate_scheme(scheme)
    if scheme.family is Family.SEGMENTED:
        raise ValueError(f"{scheme.scheme_id} interleaves with a carrier; use encode()")
    resolved = parse_assignment(scheme, assignment)
    return ENCODERS[scheme.family](bytes(message), scheme, resolved)


def encode(
    message: bytes,
    scheme: Scheme,
    assignment=None,
    carrier_text: Optional[str] = None,
    position: str = "middle",
) -> str:
    if not isinstance(message, (bytes, bytearray)):
        raise TypeError("message must be bytes")
    if position not in POSITIONS:
        raise ValueError(f"Unsupported position '{position}'. Use start, middle or end.")
    validate_scheme(scheme)
    resolved = parse_assignment(scheme, assignment)
    payload = bytes(message)

    if scheme.family is Family.SEGMENTED:
        result = _encode_segmented(payload, scheme, resolved, carrier_text)
    else:
        run = ENCODERS[scheme.family](payload, scheme, resolved)
        result = insert_run(carrier_text, run, position)

    logger.debug(
        "Encoded %d bytes with %s (%s) into %d characters",
        len(payload),
        scheme.scheme_id,
        resolved.describe(),
        len(result),
    )
    return result
