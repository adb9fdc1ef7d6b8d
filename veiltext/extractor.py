"""Isolate runs of invisible characters from surrounding visible text."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .chars import InvisibleChar, describe, lookup

MAX_MARKERS_PER_RUN = 8


@dataclass(frozen=True)
class ExtractedRun:
    index: int
    chars: Tuple[Tuple[int, InvisibleChar], ...]
    start: int
    end: int
    before: Optional[str] = None
    after: Optional[str] = None

    def __len__(self) -> int:
        return len(self.chars)

    @property
    def codepoints(self) -> Tuple[int, ...]:
        return tuple(entry.codepoint for _, entry in self.chars)

    @property
    def distinct(self) -> Tuple[int, ...]:
        return tuple(sorted(set(self.codepoints)))

    def to_dict(self) -> Dict[str, object]:
        return {
            "index": self.index,
            "start": self.start,
            "end": self.end,
            "length": len(self.chars),
            "before": self.before,
            "after": self.after,
            "distinct": [f"U+{cp:04X}" for cp in self.distinct],
        }


@dataclass(frozen=True)
class Segmentation:
    """Invisible characters grouped by the visible character they follow."""

    leading: Tuple[int, ...]
    slots: Tuple[Tuple[str, Tuple[int, ...]], ...]

    @property
    def total(self) -> int:
        return len(self.leading) + sum(len(run) for _, run in self.slots)


@dataclass(frozen=True)
class RawEntry:
    position: int
    codepoint: int
    name: str

    def to_dict(self) -> Dict[str, object]:
        return {
            "position": self.position,
            "codepoint": self.codepoint,
            "code": f"U+{self.codepoint:04X}",
            "name": self.name,
        }


def extract(text: str) -> List[ExtractedRun]:
    runs: List[ExtractedRun] = []
    current: List[Tuple[int, InvisibleChar]] = []
    run_start = 0
    for idx, ch in enumerate(text):
        entry = lookup(ch)
        if entry is not None:
            if not current:
                run_start = idx
            current.append((idx, entry))
            continue
        if current:
            runs.append(_close_run(text, len(runs), current, run_start, idx))
            current = []
    if current:
        runs.append(_close_run(text, len(runs), current, run_start, len(text)))
    return runs


def _close_run(
    text: str,
    index: int,
    chars: List[Tuple[int, InvisibleChar]],
    start: int,
    end: int,
) -> ExtractedRun:
    before = text[start - 1] if start > 0 else None
    after = text[end] if end < len(text) else None
    return ExtractedRun(
        index=index, chars=tuple(chars), start=start, end=end, before=before, after=after
    )


def segments(text: str) -> Segmentation:
    leading: List[int] = []
    slots: List[Tuple[str, List[int]]] = []
    for ch in text:
        entry = lookup(ch)
        if entry is None:
            slots.append((ch, []))
        elif slots:
            slots[-1][1].append(entry.codepoint)
        else:
            leading.append(entry.codepoint)
    return Segmentation(
        leading=tuple(leading),
        slots=tuple((visible, tuple(run)) for visible, run in slots),
    )


def dump_raw(text: str) -> List[RawEntry]:
    entries: List[RawEntry] = []
    for idx, ch in enumerate(text):
        entry = lookup(ch)
        if entry is not None:
            entries.append(RawEntry(position=idx, codepoint=entry.codepoint, name=entry.name))
    return entries


def _render_marker(codepoints: List[int]) -> str:
    markers = [f"⟦{describe(cp)}⟧" for cp in codepoints]
    if len(markers) > MAX_MARKERS_PER_RUN:
        markers = markers[:6] + ["…"] + markers[-2:]
    return "".join(markers)


def visualize(text: str) -> str:
    """Replace every invisible run with readable ``⟦U+XXXX NAME⟧`` markers."""
    out: List[str] = []
    pending: List[int] = []
    for ch in text:
        if lookup(ch) is not None:
            pending.append(ord(ch))
            continue
        if pending:
            out.append(_render_marker(pending))
            pending = []
        out.append(ch)
    if pending:
        out.append(_render_marker(pending))
    return "".join(out)
