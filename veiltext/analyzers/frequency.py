"""Frequency analysis of invisible characters in a text."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, List, Tuple

import numpy as np

from ..chars import CATEGORIES, UNICODE_TAG, InvisibleChar, all_chars, codepoints

MAX_REPORT_ROWS = 40


@lru_cache(maxsize=1)
def _registry_codepoints() -> np.ndarray:
    return np.asarray(codepoints(), dtype=np.uint32)


def _as_codepoints(text: str) -> np.ndarray:
    if not text:
        return np.zeros(0, dtype=np.uint32)
    blob = text.encode("utf-32-le", errors="surrogatepass")
    return np.frombuffer(blob, dtype="<u4")


def _control_mask(cps: np.ndarray) -> np.ndarray:
    return (cps < 0x20) | ((cps >= 0x7F) & (cps < 0xA0))


@dataclass(frozen=True)
class FrequencyReport:
    counts: Tuple[Tuple[InvisibleChar, int], ...]
    total: int
    visible: int
    invisible: int
    categories: Dict[str, int] = field(default_factory=dict)

    @property
    def distinct(self) -> int:
        return sum(1 for _, count in self.counts if count)

    @property
    def has_unicode_tags(self) -> bool:
        return self.categories.get(UNICODE_TAG, 0) > 0

    def count_of(self, codepoint: int) -> int:
        for entry, count in self.counts:
            if entry.codepoint == codepoint:
                return count
        return 0

    def top(self, limit: int = MAX_REPORT_ROWS) -> List[Tuple[InvisibleChar, int]]:
        """Observed characters, most frequent first, ties by code point."""
        seen = [(entry, count) for entry, count in self.counts if count]
        seen.sort(key=lambda item: (-item[1], item[0].codepoint))
        return seen[:limit]

    def to_dict(self) -> Dict[str, object]:
        return {
            "total": self.total,
            "visible": self.visible,
            "invisible": self.invisible,
            "distinct_invisible": self.distinct,
            "has_unicode_tags": self.has_unicode_tags,
            "categories": dict(self.categories),
            "characters": [
                {**entry.to_dict(), "count": count} for entry, count in self.counts
            ],
        }


def analyze(text: str) -> FrequencyReport:
    cps = _as_codepoints(text or "")
    registry = _registry_codepoints()
    invisible_mask = np.isin(cps, registry)
    visible = int((~invisible_mask & ~_control_mask(cps)).sum())

    hits = cps[invisible_mask]
    order = np.argsort(registry)
    slots = order[np.searchsorted(registry[order], hits)]
    per_entry = np.bincount(slots, minlength=registry.size)

    categories = {category: 0 for category in CATEGORIES}
    counts: List[Tuple[InvisibleChar, int]] = []
    for entry, count in zip(all_chars(), per_entry.tolist()):
        counts.append((entry, int(count)))
        categories[entry.category] += int(count)

    return FrequencyReport(
        counts=tuple(counts),
        total=int(cps.size),
        visible=visible,
        invisible=int(hits.size),
        categories=categories,
    )


def format_report(report: FrequencyReport) -> str:
    lines = [
        f"Characters: {report.total} total, {report.visible} visible, "
        f"{report.invisible} invisible ({report.distinct} distinct)",
    ]
    if report.has_unicode_tags:
        lines.append("Unicode tag characters present")
    if not report.invisible:
        lines.append("No invisible characters found.")
        return "\n".join(lines)
    lines.append("")
    lines.append("By category:")
    for category, count in report.categories.items():
        if count:
            lines.append(f"  {category}: {count}")
    lines.append("")
    lines.append("Most frequent:")
    for entry, count in report.top():
        lines.append(f"  {entry.code:<9} {entry.name:<32} {count}")
    return "\n".join(lines)
