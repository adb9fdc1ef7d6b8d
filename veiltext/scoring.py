"""Plausibility scoring for decoded payloads.

score = 100 * printable_ratio * coverage, plus a flat bonus when the payload is
strict UTF-8 with a high printable ratio and another when it contains a CTF
flag opener such as ``flag{``. It is deterministic and never decreases as
the printable ratio rises; ranking ties are settled by the resolver, not here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

REPLACEMENT_CHAR = "\ufffd"
TEXT_PRINTABLE_MIN = 0.75
TEXT_BONUS = 10.0
COMMON_CONTROLS = {"\n", "\r", "\t"}
FLAG_PREFIXES = ("flag{", "ctf{", "key{")
FLAG_BONUS = 50.0


@dataclass(frozen=True)
class Plausibility:
    text: Optional[str]
    is_text: bool
    printable_ratio: float
    coverage: float
    score: float


def printable_ratio(text: str) -> float:
    if not text:
        return 0.0
    printable = sum(
        1
        for ch in text
        if ch != REPLACEMENT_CHAR and (ch.isprintable() or ch in COMMON_CONTROLS)
    )
    return printable / len(text)


def looks_like_flag(text: str) -> bool:
    lowered = text.lower()
    return any(prefix in lowered for prefix in FLAG_PREFIXES)


def assess(payload: bytes, coverage: float) -> Plausibility:
    try:
        text = payload.decode("utf-8")
        strict = True
    except UnicodeDecodeError:
        text = payload.decode("utf-8", errors="replace")
        strict = False
    ratio = printable_ratio(text)
    coverage = min(1.0, max(0.0, coverage))
    is_text = strict and ratio >= TEXT_PRINTABLE_MIN
    score = 100.0 * ratio * coverage + (TEXT_BONUS if is_text else 0.0)
    if strict and looks_like_flag(text):
        score += FLAG_BONUS
    return Plausibility(
        text=text if strict else None,
        is_text=is_text,
        printable_ratio=round(ratio, 4),
        coverage=round(coverage, 4),
        score=round(score, 3),
    )


def preview(payload: bytes, limit: int = 240) -> str:
    return payload.decode("utf-8", errors="replace")[:limit]
