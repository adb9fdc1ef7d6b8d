"""Core operations as plain functions returning JSON-ready dicts."""

from __future__ import annotations

import binascii
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from . import decoder, encoder, extractor
from .analyzers import analyze as analyze_text
from .analyzers import format_report
from .chars import all_chars, describe
from .schemes import SCHEME_ALIASES, all_schemes, get_scheme, parse_assignment

logger = logging.getLogger(__name__)

MESSAGE_FORMATS = ("text", "hex")
ENCODE_OPTIONS = ("assignment", "carrier_text", "position")


def list_characters() -> List[Dict[str, Any]]:
    return [
        {**entry.to_dict(), "label": describe(entry.codepoint)} for entry in all_chars()
    ]


def list_schemes() -> List[Dict[str, Any]]:
    aliases: Dict[str, List[str]] = {}
    for alias, scheme_id in SCHEME_ALIASES.items():
        aliases.setdefault(scheme_id, []).append(alias)
    return [
        {**scheme.to_dict(), "aliases": sorted(aliases.get(scheme.scheme_id, []))}
        for scheme in all_schemes()
    ]


def analyze(text: str) -> Dict[str, Any]:
    report = analyze_text(text)
    data = report.to_dict()
    data["runs"] = [run.to_dict() for run in extractor.extract(text or "")]
    data["report"] = format_report(report)
    return data


def decode(
    text: str,
    schemes: Optional[Iterable[str]] = None,
    limit: Optional[int] = None,
    workers: Optional[int] = None,
) -> Dict[str, Any]:
    candidates = decoder.decode(text, schemes=schemes, workers=workers, limit=limit)
    best = candidates[0]
    logger.info(
        "Best decode: %s via %s (score %.3f)",
        best.scheme_id,
        best.assignment.describe(),
        best.score,
    )
    return {
        "best": best.to_dict(),
        "candidates": [candidate.to_dict() for candidate in candidates],
        "count": len(candidates),
        "runs": [run.to_dict() for run in extractor.extract(text)],
    }


def parse_message(message: Union[str, bytes], message_format: str = "text") -> bytes:
    if isinstance(message, (bytes, bytearray)):
        return bytes(message)
    fmt = (message_format or "text").strip().lower()
    if fmt not in MESSAGE_FORMATS:
        raise ValueError(f"Unsupported message format '{message_format}'. Use text or hex.")
    if fmt == "hex":
        cleaned = "".join(str(message).split())
        try:
            return binascii.unhexlify(cleaned)
        except (binascii.Error, ValueError) as exc:
            raise ValueError(f"Message is not valid hex: {exc}") from exc
    return str(message).encode("utf-8")


def encode(
    message: Union[str, bytes],
    scheme_id: str,
    options: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    options = dict(options or {})
    unknown = sorted(key for key in options if key not in ENCODE_OPTIONS)
    if unknown:
        raise ValueError(f"Unknown encode option(s): {', '.join(unknown)}")

    scheme = get_scheme(scheme_id)
    assignment = parse_assignment(scheme, options.get("assignment"))
    payload = parse_message(message)
    result = encoder.encode(
        payload,
        scheme,
        assignment,
        carrier_text=options.get("carrier_text"),
        position=options.get("position") or "middle",
    )
    return {
        "text": result,
        "scheme": scheme.scheme_id,
        "assignment": assignment.to_dict(),
        "message_bytes": len(payload),
        "invisible_count": len(extractor.dump_raw(result)),
        "visualized": extractor.visualize(result),
    }


def dump_raw(text: str) -> List[Dict[str, Any]]:
    return [entry.to_dict() for entry in extractor.dump_raw(text or "")]
