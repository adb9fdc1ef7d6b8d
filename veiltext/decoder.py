"""Brute-force resolver: every compatible scheme x symbol assignment, ranked.

A source is one invisible run, the concatenation of all runs ("joined"), or
the whole text split into per-visible-character slots ("segments", used only
by segmented schemes). For each source the resolver shortlists the schemes
whose characters were observed, enumerates the symbol assignments they allow
and keeps every structurally valid decode. Candidates are ranked by score,
then by the size of the search that produced them, then by catalog order.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass, replace
from itertools import permutations
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .bits import digits_to_values, digits_value, units_to_bytes
from .errors import NoInvisibleCharactersFound, NoSchemeMatched
from .extractor import extract, segments
from .schemes import (
    MARKER_ROLE,
    SEPARATOR_ROLE,
    Family,
    Scheme,
    SymbolAssignment,
    default_assignment,
    schemes_for_chars,
    select_schemes,
)
from .scoring import assess, preview

logger = logging.getLogger(__name__)

SOURCE_JOINED = "joined"
SOURCE_SEGMENTS = "segments"
WILDCARD_POOL = 8

SourceLabel = Union[int, str]
Decoded = Optional[Tuple[bytes, int]]


@dataclass(frozen=True)
class DecodeSource:
    label: SourceLabel
    order: int
    codepoints: Tuple[int, ...]
    # slot index per code point for the segments source, -1 for the leading run
    slot_ids: Optional[Tuple[int, ...]] = None
    slot_count: int = 0
    # invisible characters in the whole text, the denominator of coverage
    invisible_total: int = 0

    @property
    def segmented(self) -> bool:
        return self.slot_ids is not None


@dataclass(frozen=True)
class DecodeCandidate:
    scheme_id: str
    family: str
    assignment: SymbolAssignment
    source: SourceLabel
    payload: bytes
    text: Optional[str]
    is_text: bool
    printable_ratio: float
    coverage: float
    score: float
    search_space: int
    best: bool = False

    def to_dict(self) -> Dict[str, object]:
        return {
            "scheme": self.scheme_id,
            "family": self.family,
            "assignment": self.assignment.to_dict(),
            "source": self.source,
            "payload_hex": self.payload.hex(),
            "length": len(self.payload),
            "text": self.text,
            "preview": preview(self.payload),
            "is_text": self.is_text,
            "printable_ratio": self.printable_ratio,
            "coverage": self.coverage,
            "score": self.score,
            "search_space": self.search_space,
            "best": self.best,
        }


class _Prepared:
    """Numpy view of a source: unique code points and each char's index into them."""

    def __init__(self, source: DecodeSource):
        self.source = source
        self.codepoints = np.asarray(source.codepoints, dtype=np.int64)
        self.observed, self.inverse = np.unique(self.codepoints, return_inverse=True)
        self.counts = np.bincount(self.inverse, minlength=self.observed.size)
        self.position = {int(cp): idx for idx, cp in enumerate(self.observed)}
        self.slot_ids = (
            np.asarray(source.slot_ids, dtype=np.int64) if source.slot_ids is not None else None
        )

    def __len__(self) -> int:
        return int(self.codepoints.size)

    def roles(self, assignment: SymbolAssignment) -> np.ndarray:
        """Role index of every character under ``assignment``; -1 when unassigned."""
        lut = np.full(self.observed.size, -1, dtype=np.int64)
        for role_index, (_, cp) in enumerate(assignment.pairs):
            pos = self.position.get(cp)
            if pos is not None:
                lut[pos] = role_index
        return lut[self.inverse]


def _split(symbols: np.ndarray, code: int) -> List[np.ndarray]:
    cuts = np.flatnonzero(symbols == code)
    pieces = np.split(symbols, cuts)
    return [pieces[0]] + [piece[1:] for piece in pieces[1:]]


def _as_bytes(values: Iterable[int]) -> bytes:
    return bytes(int(value) for value in values)


def _decode_binary(roles: np.ndarray, prepared: _Prepared, scheme: Scheme) -> Decoded:
    symbols = roles[roles >= 0]
    values = digits_to_values(symbols, 2, scheme.bits)
    if values is None:
        return None
    return _as_bytes(values), int(symbols.size)


def _decode_nary(roles: np.ndarray, prepared: _Prepared, scheme: Scheme) -> Decoded:
    symbols = roles[roles >= 0]
    if scheme.separator is None:
        values = digits_to_values(symbols, scheme.base, scheme.digits_per_unit)
        if values is None or int(values.max()) > 0xFF:
            return None
        return _as_bytes(values), int(symbols.size)

    groups = _split(symbols, scheme.roles.index(SEPARATOR_ROLE))
    if any(group.size == 0 for group in groups):
        return None
    values = [digits_value(group, scheme.base) for group in groups]
    if max(values) > 0xFF:
        return None
    return _as_bytes(values), int(symbols.size)


def _decode_delimiter(roles: np.ndarray, prepared: _Prepared, scheme: Scheme) -> Decoded:
    symbols = roles[roles >= 0]
    content = symbols
    consumed = int(symbols.size)
    if scheme.marker is not None:
        marker = scheme.roles.index(MARKER_ROLE)
        at = np.flatnonzero(symbols == marker)
        if at.size < 2:
            return None
        content = symbols[at[0] + 1 : at[-1]]
        if (content == marker).any():
            return None
        consumed = int(at[-1] - at[0] + 1)

    if scheme.separator is None:
        values = digits_to_values(content, 2, scheme.bits)
        if values is None:
            return None
        return _as_bytes(values), consumed

    groups = _split(content, scheme.roles.index(SEPARATOR_ROLE))
    if scheme.marker is None:
        # the last byte is closed by a separator too
        if groups[-1].size:
            return None
        groups = groups[:-1]
    if not groups or any(group.size == 0 for group in groups):
        return None
    if scheme.variable:
        if any(group.size > scheme.bits for group in groups):
            return None
    elif any(group.size != scheme.bits for group in groups):
        return None
    return _as_bytes(digits_value(group, 2) for group in groups), consumed


def _decode_offset(roles: np.ndarray, prepared: _Prepared, scheme: Scheme) -> Decoded:
    cps = prepared.codepoints
    mask = (cps >= scheme.offset) & (cps < scheme.offset + 2**scheme.bits)
    if not mask.any():
        return None
    return _as_bytes(cps[mask] - scheme.offset), int(mask.sum())


def _decode_fixed4(roles: np.ndarray, prepared: _Prepared, scheme: Scheme) -> Decoded:
    symbols = roles[roles >= 0]
    units = digits_to_values(symbols, 4, scheme.digits_per_unit)
    if units is None:
        return None
    text = units_to_bytes(units).decode("utf-16-be", errors="surrogatepass")
    try:
        payload = text.encode("utf-8", errors="surrogateescape")
    except UnicodeEncodeError:
        payload = text.encode("utf-8", errors="surrogatepass")
    return payload, int(symbols.size)


def _decode_segmented(roles: np.ndarray, prepared: _Prepared, scheme: Scheme) -> Decoded:
    slot_ids = prepared.slot_ids
    if slot_ids is None:
        return None
    mask = roles >= 0
    if not mask.any() or (slot_ids[mask] < 0).any():
        return None
    counts = np.bincount(slot_ids[mask], minlength=prepared.source.slot_count)
    filled = counts[counts > 0]
    if (filled[:-1] != scheme.segment_bits).any() or filled[-1] > scheme.segment_bits:
        return None
    symbols = roles[mask]
    values = digits_to_values(symbols, 2, scheme.bits)
    if values is None:
        return None
    return _as_bytes(values), int(symbols.size)


DECODERS: Dict[Family, Callable[[np.ndarray, _Prepared, Scheme], Decoded]] = {
    Family.BINARY: _decode_binary,
    Family.NARY: _decode_nary,
    Family.DELIMITER: _decode_delimiter,
    Family.OFFSET: _decode_offset,
    Family.FIXED4: _decode_fixed4,
    Family.SEGMENTED: _decode_segmented,
}


def _wildcard_pool(scheme: Scheme, prepared: _Prepared) -> List[int]:
    order = sorted(
        range(prepared.observed.size),
        key=lambda idx: (-int(prepared.counts[idx]), int(prepared.observed[idx])),
    )
    pool = [int(prepared.observed[idx]) for idx in order[:WILDCARD_POOL]]
    for cp in scheme.chars:
        if len(pool) >= len(scheme.roles):
            break
        if cp not in pool:
            pool.append(cp)
    return pool


def candidate_assignments(
    scheme: Scheme, observed: Sequence[int], prepared: Optional[_Prepared] = None
) -> List[SymbolAssignment]:
    """Every symbol assignment worth trying for ``scheme`` given the observed characters."""
    if scheme.family is Family.OFFSET:
        return [default_assignment(scheme)]
    roles = scheme.roles
    if scheme.wildcard:
        if prepared is None:
            prepared = _Prepared(DecodeSource(label=0, order=0, codepoints=tuple(observed)))
        pool = _wildcard_pool(scheme, prepared)
        return [
            SymbolAssignment(tuple(zip(roles, picked)))
            for picked in permutations(pool, len(roles))
        ]

    seen = set(int(cp) for cp in observed)
    present = [cp for cp in scheme.alphabet if cp in seen]
    absent = [cp for cp in scheme.alphabet if cp not in seen]
    assignments: List[SymbolAssignment] = []
    for placement in permutations(range(len(roles)), len(present)):
        placed = dict(zip(placement, present))
        rest = iter(absent)
        assignments.append(
            SymbolAssignment(
                tuple(
                    (role, placed[idx] if idx in placed else next(rest))
                    for idx, role in enumerate(roles)
                )
            )
        )
    return assignments


RankKey = Tuple[int, int, int]


def _trial_scheme(
    scheme: Scheme, scheme_index: int, sources: Sequence[DecodeSource]
) -> List[Tuple[RankKey, DecodeCandidate]]:
    """Try one scheme against every source it applies to."""
    found: List[Tuple[RankKey, DecodeCandidate]] = []
    decode_fn = DECODERS[scheme.family]
    for source in sources:
        if source.segmented != (scheme.family is Family.SEGMENTED):
            continue
        if not source.codepoints:
            continue
        prepared = _Prepared(source)
        observed = [int(cp) for cp in prepared.observed]
        if not schemes_for_chars(observed, [scheme]):
            continue
        assignments = candidate_assignments(scheme, observed, prepared)
        total = source.invisible_total or len(prepared)
        for assignment_index, assignment in enumerate(assignments):
            decoded = decode_fn(prepared.roles(assignment), prepared, scheme)
            if decoded is None:
                continue
            payload, consumed = decoded
            if not payload:
                continue
            verdict = assess(payload, consumed / total)
            candidate = DecodeCandidate(
                scheme_id=scheme.scheme_id,
                family=scheme.family.value,
                assignment=assignment,
                source=source.label,
                payload=payload,
                text=verdict.text,
                is_text=verdict.is_text,
                printable_ratio=verdict.printable_ratio,
                coverage=verdict.coverage,
                score=verdict.score,
                search_space=len(assignments),
            )
            found.append(((scheme_index, source.order, assignment_index), candidate))
    return found


def build_sources(text: str) -> List[DecodeSource]:
    runs = extract(text)
    if not runs:
        raise NoInvisibleCharactersFound("No invisible characters found in the input")
    layout = segments(text)
    total = layout.total
    sources = [
        DecodeSource(
            label=run.index, order=run.index, codepoints=run.codepoints, invisible_total=total
        )
        for run in runs
    ]
    if len(runs) > 1:
        joined = tuple(cp for run in runs for cp in run.codepoints)
        sources.append(
            DecodeSource(
                label=SOURCE_JOINED,
                order=len(sources),
                codepoints=joined,
                invisible_total=total,
            )
        )

    codepoints = list(layout.leading)
    slot_ids = [-1] * len(layout.leading)
    for slot_index, (_, run) in enumerate(layout.slots):
        codepoints.extend(run)
        slot_ids.extend([slot_index] * len(run))
    sources.append(
        DecodeSource(
            label=SOURCE_SEGMENTS,
            order=len(sources),
            codepoints=tuple(codepoints),
            slot_ids=tuple(slot_ids),
            slot_count=len(layout.slots),
            invisible_total=total,
        )
    )
    return sources


def rank(found: Iterable[Tuple[RankKey, DecodeCandidate]]) -> List[DecodeCandidate]:
    ordered = sorted(
        found, key=lambda item: (-item[1].score, item[1].search_space) + item[0]
    )
    ranked: List[DecodeCandidate] = []
    seen = set()
    for _, candidate in ordered:
        key = (candidate.scheme_id, candidate.payload)
        if key in seen:
            continue
        seen.add(key)
        ranked.append(candidate)
    if ranked:
        ranked[0] = replace(ranked[0], best=True)
    return ranked


def decode(
    text: str,
    schemes: Optional[Iterable[str]] = None,
    workers: Optional[int] = None,
    limit: Optional[int] = None,
) -> List[DecodeCandidate]:
    """Decode every invisible payload hidden in ``text``, best candidate first."""
    sources = build_sources(text)
    selected = select_schemes(schemes)
    jobs = list(enumerate(selected))

    found: List[Tuple[RankKey, DecodeCandidate]] = []
    max_workers = min(workers or 1, os.cpu_count() or 1)
    if max_workers > 1 and len(jobs) > 1:
        with ProcessPoolExecutor(max_workers=max_workers) as pool:
            futures = [pool.submit(_trial_scheme, scheme, idx, sources) for idx, scheme in jobs]
            for future in as_completed(futures):
                found.extend(future.result())
    else:
        for idx, scheme in jobs:
            found.extend(_trial_scheme(scheme, idx, sources))

    ranked = rank(found)
    logger.debug(
        "Tried %d schemes over %d sources: %d trials decoded, %d distinct candidates",
        len(selected),
        len(sources),
        len(found),
        len(ranked),
    )
    if not ranked:
        raise NoSchemeMatched(
            f"None of {len(selected)} schemes decoded the invisible characters in the input"
        )
    if limit is not None and limit > 0:
        return ranked[:limit]
    return ranked
