"""Registry of zero-width and otherwise invisible Unicode characters."""

from __future__ import annotations

import unicodedata as ud
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Optional, Tuple, Union

ZERO_WIDTH_SPACING = "zero_width_spacing"
ZERO_WIDTH_JOINING = "zero_width_joining"
FORMAT_CONTROL = "format_control"
UNICODE_TAG = "unicode_tag"
OTHER_INVISIBLE = "other_invisible"

CATEGORIES = (
    ZERO_WIDTH_SPACING,
    ZERO_WIDTH_JOINING,
    FORMAT_CONTROL,
    UNICODE_TAG,
    OTHER_INVISIBLE,
)

TAG_START = 0xE0000
TAG_END = 0xE007F
TAG_CHAR_RANGE = range(TAG_START, TAG_END + 1)

ZWSP = 0x200B
ZWNJ = 0x200C
ZWJ = 0x200D
WJ = 0x2060
BOM = 0xFEFF
PDF = 0x202C

# (codepoint, name, abbreviation, category); order is the public listing order.
NAMED_CHARACTERS: Tuple[Tuple[int, str, str, str], ...] = (
    # core zero width
    (0x200B, "ZERO WIDTH SPACE", "ZWSP", ZERO_WIDTH_SPACING),
    (0x200C, "ZERO WIDTH NON-JOINER", "ZWNJ", ZERO_WIDTH_JOINING),
    (0x200D, "ZERO WIDTH JOINER", "ZWJ", ZERO_WIDTH_JOINING),
    (0xFEFF, "ZERO WIDTH NO-BREAK SPACE", "BOM", ZERO_WIDTH_SPACING),
    (0x2060, "WORD JOINER", "WJ", ZERO_WIDTH_JOINING),
    # bidi controls
    (0x200E, "LEFT-TO-RIGHT MARK", "LRM", FORMAT_CONTROL),
    (0x200F, "RIGHT-TO-LEFT MARK", "RLM", FORMAT_CONTROL),
    (0x202A, "LEFT-TO-RIGHT EMBEDDING", "LRE", FORMAT_CONTROL),
    (0x202B, "RIGHT-TO-LEFT EMBEDDING", "RLE", FORMAT_CONTROL),
    (0x202C, "POP DIRECTIONAL FORMATTING", "PDF", FORMAT_CONTROL),
    (0x202D, "LEFT-TO-RIGHT OVERRIDE", "LRO", FORMAT_CONTROL),
    (0x202E, "RIGHT-TO-LEFT OVERRIDE", "RLO", FORMAT_CONTROL),
    (0x2066, "LEFT-TO-RIGHT ISOLATE", "LRI", FORMAT_CONTROL),
    (0x2067, "RIGHT-TO-LEFT ISOLATE", "RLI", FORMAT_CONTROL),
    (0x2068, "FIRST STRONG ISOLATE", "FSI", FORMAT_CONTROL),
    (0x2069, "POP DIRECTIONAL ISOLATE", "PDI", FORMAT_CONTROL),
    # invisible operators
    (0x2061, "FUNCTION APPLICATION", "", FORMAT_CONTROL),
    (0x2062, "INVISIBLE TIMES", "", FORMAT_CONTROL),
    (0x2063, "INVISIBLE SEPARATOR", "", FORMAT_CONTROL),
    (0x2064, "INVISIBLE PLUS", "", FORMAT_CONTROL),
    (0x180E, "MONGOLIAN VOWEL SEPARATOR", "MVS", FORMAT_CONTROL),
    # other format / filler characters
    (0x00AD, "SOFT HYPHEN", "SHY", FORMAT_CONTROL),
    (0x034F, "COMBINING GRAPHEME JOINER", "CGJ", ZERO_WIDTH_JOINING),
    (0x061C, "ARABIC LETTER MARK", "ALM", FORMAT_CONTROL),
    (0x115F, "HANGUL CHOSEONG FILLER", "", OTHER_INVISIBLE),
    (0x1160, "HANGUL JUNGSEONG FILLER", "", OTHER_INVISIBLE),
    (0x17B4, "KHMER VOWEL INHERENT AQ", "", OTHER_INVISIBLE),
    (0x17B5, "KHMER VOWEL INHERENT AA", "", OTHER_INVISIBLE),
    (0x3164, "HANGUL FILLER", "", OTHER_INVISIBLE),
    (0xFFA0, "HALFWIDTH HANGUL FILLER", "", OTHER_INVISIBLE),
    # variation selectors
    *(
        (0xFE00 + idx, f"VARIATION SELECTOR-{idx + 1}", f"VS{idx + 1}", OTHER_INVISIBLE)
        for idx in range(16)
    ),
    # deprecated format characters
    (0x206A, "INHIBIT SYMMETRIC SWAPPING", "ISS", FORMAT_CONTROL),
    (0x206B, "ACTIVATE SYMMETRIC SWAPPING", "ASS", FORMAT_CONTROL),
    (0x206C, "INHIBIT ARABIC FORM SHAPING", "IAFS", FORMAT_CONTROL),
    (0x206D, "ACTIVATE ARABIC FORM SHAPING", "AAFS", FORMAT_CONTROL),
    (0x206E, "NATIONAL DIGIT SHAPES", "NADS", FORMAT_CONTROL),
    (0x206F, "NOMINAL DIGIT SHAPES", "NODS", FORMAT_CONTROL),
    # line / paragraph separators
    (0x2028, "LINE SEPARATOR", "LSEP", OTHER_INVISIBLE),
    (0x2029, "PARAGRAPH SEPARATOR", "PSEP", OTHER_INVISIBLE),
)


@dataclass(frozen=True)
class InvisibleChar:
    codepoint: int
    name: str
    category: str
    abbreviation: str = ""

    @property
    def char(self) -> str:
        return chr(self.codepoint)

    @property
    def code(self) -> str:
        return f"U+{self.codepoint:04X}"

    @property
    def shadowed_ascii(self) -> Optional[int]:
        """ASCII value a tag character mirrors, ``None`` outside the tag block."""
        if self.category != UNICODE_TAG:
            return None
        return self.codepoint - TAG_START

    def to_dict(self) -> Dict[str, object]:
        return {
            "codepoint": self.codepoint,
            "code": self.code,
            "name": self.name,
            "abbreviation": self.abbreviation,
            "category": self.category,
        }


def _tag_name(codepoint: int) -> str:
    return ud.name(chr(codepoint), f"TAG U+{codepoint:05X}")


@lru_cache(maxsize=1)
def _registry() -> Tuple[Tuple[InvisibleChar, ...], Dict[int, InvisibleChar]]:
    entries: List[InvisibleChar] = [
        InvisibleChar(codepoint=cp, name=name, category=category, abbreviation=abbr)
        for cp, name, abbr, category in NAMED_CHARACTERS
    ]
    entries.extend(
        InvisibleChar(codepoint=cp, name=_tag_name(cp), category=UNICODE_TAG)
        for cp in TAG_CHAR_RANGE
    )
    ordered = tuple(entries)
    return ordered, {entry.codepoint: entry for entry in ordered}


def all_chars() -> Tuple[InvisibleChar, ...]:
    return _registry()[0]


def codepoints() -> Tuple[int, ...]:
    return tuple(entry.codepoint for entry in all_chars())


def _as_codepoint(value: Union[int, str]) -> Optional[int]:
    if isinstance(value, int):
        return value
    if isinstance(value, str) and len(value) == 1:
        return ord(value)
    return None


def lookup(value: Union[int, str]) -> Optional[InvisibleChar]:
    cp = _as_codepoint(value)
    if cp is None:
        return None
    return _registry()[1].get(cp)


def is_invisible(value: Union[int, str]) -> bool:
    return lookup(value) is not None


def is_unicode_tag(value: Union[int, str]) -> bool:
    cp = _as_codepoint(value)
    return cp is not None and TAG_START <= cp <= TAG_END


def by_category() -> Dict[str, List[InvisibleChar]]:
    grouped: Dict[str, List[InvisibleChar]] = {category: [] for category in CATEGORIES}
    for entry in all_chars():
        grouped[entry.category].append(entry)
    return grouped


def describe(value: Union[int, str]) -> str:
    """Return ``U+XXXX NAME`` for a registry member, or the bare code point."""
    cp = _as_codepoint(value)
    if cp is None:
        return repr(value)
    entry = lookup(cp)
    if entry is None:
        return f"U+{cp:04X}"
    if entry.shadowed_ascii is not None and 32 <= entry.shadowed_ascii < 127:
        return f"{entry.code} {entry.name} ('{chr(entry.shadowed_ascii)}')"
    return f"{entry.code} {entry.name}"
