"""Encoding scheme catalog.

Each scheme is pure data: a family tag, the characters it draws symbols from
(in canonical role order) and the family parameters. Behaviour lives in the
per-family dispatch tables of :mod:`veiltext.encoder` and
:mod:`veiltext.decoder`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .chars import BOM, PDF, TAG_END, TAG_START, WJ, ZWJ, ZWNJ, ZWSP, is_unicode_tag, lookup
from .errors import MalformedAssignment, UnsupportedScheme

MIN_BASE = 2
MAX_BASE = 8
BYTE_WIDTHS = (7, 8)
POSITIONS = ("start", "middle", "end")

MARKER_ROLE = "marker"
SEPARATOR_ROLE = "separator"

NARY_ALPHABET = (ZWSP, ZWNJ, ZWJ, WJ, BOM, 0x2061, 0x2062, 0x2063)


class Family(str, Enum):
    BINARY = "binary"
    NARY = "nary"
    DELIMITER = "delimiter"
    OFFSET = "offset"
    FIXED4 = "fixed4"
    SEGMENTED = "segmented"


@dataclass(frozen=True)
class Scheme:
    scheme_id: str
    label: str
    family: Family
    chars: Tuple[int, ...]
    description: str = ""
    bits: int = 8
    base: int = 2
    marker: Optional[int] = None
    separator: Optional[int] = None
    offset: Optional[int] = None
    segment_bits: Optional[int] = None
    unit_bits: int = 8
    variable: bool = False
    wildcard: bool = False

    @property
    def roles(self) -> Tuple[str, ...]:
        if self.family is Family.OFFSET:
            return ()
        roles = [str(digit) for digit in range(self.base)]
        if self.marker is not None:
            roles.append(MARKER_ROLE)
        if self.separator is not None:
            roles.append(SEPARATOR_ROLE)
        return tuple(roles)

    @property
    def alphabet(self) -> Tuple[int, ...]:
        """Characters in role order: digits, then marker, then separator."""
        if self.family is Family.OFFSET:
            return tuple(range(self.offset or TAG_START, TAG_END + 1))
        extra = tuple(cp for cp in (self.marker, self.separator) if cp is not None)
        return tuple(self.chars) + extra

    @property
    def digits_per_unit(self) -> int:
        """Symbols carrying one byte (or one UTF-16 unit for fixed4)."""
        if self.family is Family.OFFSET:
            return 1
        if self.family is Family.FIXED4:
            return self.unit_bits // 2
        if self.family is Family.NARY:
            width = 1
            while self.base**width < 2**self.bits:
                width += 1
            return width
        return self.bits

    @property
    def mandatory_roles(self) -> int:
        """Distinct characters any non-empty encoding is guaranteed to contain.

        A one-byte payload between markers carries no separator, and its
        unpadded digits may all be the same.
        """
        if self.family is Family.DELIMITER and (
            self.marker is not None or self.separator is not None
        ):
            return 2
        return 1

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.scheme_id,
            "label": self.label,
            "family": self.family.value,
            "description": self.description,
            "wildcard": self.wildcard,
            "roles": list(self.roles),
            "chars": [f"U+{cp:04X}" for cp in self.chars],
            "params": {"bits": self.bits, "base": self.base},
        }
        params = data["params"]
        if self.marker is not None:
            params["marker"] = f"U+{self.marker:04X}"
        if self.separator is not None:
            params["separator"] = f"U+{self.separator:04X}"
        if self.offset is not None:
            params["offset"] = f"U+{self.offset:04X}"
        if self.segment_bits is not None:
            params["segment_bits"] = self.segment_bits
        if self.family is Family.FIXED4:
            params["unit_bits"] = self.unit_bits
        if self.variable:
            params["variable"] = True
        return data


@dataclass(frozen=True)
class SymbolAssignment:
    """Bijection from scheme roles to the characters that carry them."""

    pairs: Tuple[Tuple[str, int], ...]

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, int], roles: Sequence[str]) -> "SymbolAssignment":
        return cls(tuple((role, mapping[role]) for role in roles))

    def as_dict(self) -> Dict[str, int]:
        return dict(self.pairs)

    def char_for(self, role: str) -> int:
        for name, cp in self.pairs:
            if name == role:
                return cp
        raise KeyError(role)

    def describe(self) -> str:
        if not self.pairs:
            return "identity"
        return ", ".join(f"U+{cp:04X}={role}" for role, cp in self.pairs)

    def to_dict(self) -> Dict[str, str]:
        return {role: f"U+{cp:04X}" for role, cp in self.pairs}


_SCHEME_LIST: Tuple[Scheme, ...] = (
    Scheme(
        scheme_id="unicode_tags",
        label="Unicode Tags (U+E0000-U+E007F)",
        family=Family.OFFSET,
        chars=(),
        description="Each ASCII byte shifted into the invisible tag block.",
        bits=7,
        offset=TAG_START,
    ),
    Scheme(
        scheme_id="binary_8",
        label="Binary, 8 bits per byte",
        family=Family.BINARY,
        chars=(ZWSP, ZWNJ),
        description="Two characters carry 0 and 1; any observed pair is tried.",
        bits=8,
        wildcard=True,
    ),
    Scheme(
        scheme_id="binary_7",
        label="Binary, 7 bits per byte",
        family=Family.BINARY,
        chars=(ZWSP, ZWNJ),
        description="Two characters carry 0 and 1 for 7-bit ASCII.",
        bits=7,
        wildcard=True,
    ),
    Scheme(
        scheme_id="zwj_wrapped",
        label="ZWJ-wrapped binary",
        family=Family.DELIMITER,
        chars=(ZWSP, ZWNJ),
        description="ZWSP=0, ZWNJ=1 between a pair of ZWJ markers.",
        marker=ZWJ,
    ),
    Scheme(
        scheme_id="wj_separated",
        label="WJ-separated binary",
        family=Family.DELIMITER,
        chars=(ZWSP, ZWNJ),
        description="ZWSP=0, ZWNJ=1, one word joiner after every byte.",
        separator=WJ,
    ),
    Scheme(
        scheme_id="steganographr",
        label="Steganographr (neatnik.net)",
        family=Family.DELIMITER,
        chars=(ZWSP, ZWNJ),
        description="BOM-wrapped, ZWSP=0, ZWNJ=1, ZWJ between bytes, unpadded binary.",
        marker=BOM,
        separator=ZWJ,
        variable=True,
    ),
    *(
        Scheme(
            scheme_id=f"nary_{base}",
            label=f"Base-{base} digits",
            family=Family.NARY,
            chars=NARY_ALPHABET[:base],
            description=f"Every byte written as fixed-width base-{base} digits.",
            base=base,
        )
        for base in range(3, MAX_BASE + 1)
    ),
    Scheme(
        scheme_id="nary_3_sep",
        label="Base-3 digits, WJ separated",
        family=Family.NARY,
        chars=NARY_ALPHABET[:3],
        description="Unpadded base-3 digits per byte, word joiner between bytes.",
        base=3,
        separator=WJ,
        variable=True,
    ),
    Scheme(
        scheme_id="fixed4_330k",
        label="330k Unicode Steganography (4 chars)",
        family=Family.FIXED4,
        chars=(ZWNJ, ZWJ, PDF, BOM),
        description="UTF-16 code units as 8 base-4 digits, 330k.github.io default set.",
        base=4,
        unit_bits=16,
    ),
    Scheme(
        scheme_id="fixed4_zw",
        label="Zero-width 4-char set (StegCloak / Irongeek)",
        family=Family.FIXED4,
        chars=(ZWSP, ZWNJ, ZWJ, BOM),
        description="UTF-16 code units as 8 base-4 digits over ZWSP/ZWNJ/ZWJ/BOM.",
        base=4,
        unit_bits=16,
    ),
    Scheme(
        scheme_id="segmented_8",
        label="Segmented binary, one byte per visible character",
        family=Family.SEGMENTED,
        chars=(ZWSP, ZWNJ),
        description="8 bits hidden after each visible character of the carrier.",
        bits=8,
        segment_bits=8,
        wildcard=True,
    ),
    Scheme(
        scheme_id="segmented_7",
        label="Segmented binary, 7 bits per visible character",
        family=Family.SEGMENTED,
        chars=(ZWSP, ZWNJ),
        description="7-bit ASCII hidden after each visible character of the carrier.",
        bits=7,
        segment_bits=7,
        wildcard=True,
    ),
    Scheme(
        scheme_id="segmented_4",
        label="Segmented binary, one nibble per visible character",
        family=Family.SEGMENTED,
        chars=(ZWSP, ZWNJ),
        description="4 bits hidden after each visible character of the carrier.",
        bits=8,
        segment_bits=4,
        wildcard=True,
    ),
)

SCHEMES: Dict[str, Scheme] = {scheme.scheme_id: scheme for scheme in _SCHEME_LIST}

# names other tools use for the same conventions
SCHEME_ALIASES: Dict[str, str] = {
    "tags": "unicode_tags",
    "zwsp_binary": "binary_8",
    "common_3char": "nary_3",
    "330k_default": "fixed4_330k",
    "stegcloak": "fixed4_zw",
    "irongeek_zw": "fixed4_zw",
    "steganographr_wj": "wj_separated",
}


def _canonical_id(name: str) -> str:
    key = (name or "").strip().lower()
    return SCHEME_ALIASES.get(key, key)


def validate_scheme(scheme: Scheme) -> Scheme:
    """Reject out-of-range parameters with :class:`UnsupportedScheme`."""
    sid = scheme.scheme_id
    if scheme.family is Family.OFFSET:
        if scheme.offset is None or not TAG_START <= scheme.offset <= TAG_END:
            raise UnsupportedScheme(f"{sid}: offset must lie in the tag block")
        if scheme.offset + 2**scheme.bits - 1 > TAG_END:
            raise UnsupportedScheme(f"{sid}: {scheme.bits}-bit values overflow the tag block")
        return scheme

    if scheme.bits not in BYTE_WIDTHS:
        raise UnsupportedScheme(f"{sid}: bit width must be 7 or 8, got {scheme.bits}")
    if not MIN_BASE <= scheme.base <= MAX_BASE:
        raise UnsupportedScheme(f"{sid}: base must be in {MIN_BASE}..{MAX_BASE}, got {scheme.base}")
    if scheme.family in (Family.BINARY, Family.DELIMITER, Family.SEGMENTED) and scheme.base != 2:
        raise UnsupportedScheme(f"{sid}: {scheme.family.value} schemes are base 2")
    if scheme.family is Family.FIXED4 and (scheme.base != 4 or scheme.unit_bits != 16):
        raise UnsupportedScheme(f"{sid}: fixed4 schemes use 4 symbols over 16-bit units")
    if scheme.family is Family.SEGMENTED:
        if scheme.segment_bits is None or not 1 <= scheme.segment_bits <= scheme.bits:
            raise UnsupportedScheme(f"{sid}: segment_bits must be in 1..{scheme.bits}")
    if len(scheme.chars) != scheme.base:
        raise UnsupportedScheme(f"{sid}: expected {scheme.base} symbol characters")
    alphabet = scheme.alphabet
    if len(set(alphabet)) != len(alphabet):
        raise UnsupportedScheme(f"{sid}: symbol characters must be distinct")
    if len(alphabet) > MAX_BASE:
        raise UnsupportedScheme(f"{sid}: at most {MAX_BASE} roles are searchable")
    unknown = [cp for cp in alphabet if lookup(cp) is None]
    if unknown:
        raise UnsupportedScheme(
            f"{sid}: characters outside the registry: "
            + ", ".join(f"U+{cp:04X}" for cp in unknown)
        )
    return scheme


def all_schemes() -> List[Scheme]:
    return list(SCHEMES.values())


def get_scheme(scheme_id: str) -> Scheme:
    scheme = SCHEMES.get(_canonical_id(scheme_id))
    if scheme is None:
        raise UnsupportedScheme(f"Unknown scheme '{scheme_id}'")
    return validate_scheme(scheme)


def select_schemes(names: Optional[Iterable[str]]) -> List[Scheme]:
    """Resolve scheme ids, aliases or family names to catalog entries, catalog order kept."""
    if not names:
        return all_schemes()
    wanted = {_canonical_id(str(name)) for name in names if str(name).strip()}
    if not wanted or "auto" in wanted:
        return all_schemes()
    families = {family.value for family in Family}
    unknown = [name for name in wanted if name not in SCHEMES and name not in families]
    if unknown:
        raise UnsupportedScheme(f"Unknown scheme(s): {', '.join(sorted(unknown))}")
    return [
        scheme
        for scheme in SCHEMES.values()
        if scheme.scheme_id in wanted or scheme.family.value in wanted
    ]


def schemes_for_chars(
    observed: Iterable[int], schemes: Optional[Sequence[Scheme]] = None
) -> List[Scheme]:
    """Shortlist schemes that can structurally explain the observed characters."""
    seen = set(observed)
    if not seen:
        return []
    candidates = all_schemes() if schemes is None else list(schemes)
    shortlisted: List[Scheme] = []
    for scheme in candidates:
        if scheme.family is Family.OFFSET:
            if any(is_unicode_tag(cp) for cp in seen):
                shortlisted.append(scheme)
        elif scheme.wildcard:
            shortlisted.append(scheme)
        elif len(seen.intersection(scheme.alphabet)) >= scheme.mandatory_roles:
            shortlisted.append(scheme)
    return shortlisted


def default_assignment(scheme: Scheme) -> SymbolAssignment:
    return SymbolAssignment(tuple(zip(scheme.roles, scheme.alphabet)))


_CODEPOINT_RE = re.compile(r"^(?:u\+|0x|\\u|\\U)?([0-9a-f]{1,6})$", re.IGNORECASE)


def _parse_char(value: Union[int, str], role: str) -> int:
    if isinstance(value, bool):
        raise MalformedAssignment(f"Role '{role}': expected a character, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        if len(value) == 1:
            return ord(value)
        match = _CODEPOINT_RE.match(value.strip())
        if match:
            return int(match.group(1), 16)
    raise MalformedAssignment(f"Role '{role}': cannot read {value!r} as a character")


def parse_assignment(
    scheme: Scheme, value: Union[None, str, Mapping[Any, Any], SymbolAssignment]
) -> SymbolAssignment:
    """Turn ``"auto"``/``None``/a role mapping into a checked assignment."""
    if value is None or (isinstance(value, str) and value.strip().lower() in {"", "auto"}):
        return default_assignment(scheme)
    if isinstance(value, SymbolAssignment):
        mapping: Dict[str, int] = value.as_dict()
    elif isinstance(value, Mapping):
        mapping = {str(role): _parse_char(char, str(role)) for role, char in value.items()}
    else:
        raise MalformedAssignment(f"Assignment must be 'auto' or a mapping, got {value!r}")

    if scheme.family is Family.OFFSET:
        if mapping:
            raise MalformedAssignment(f"{scheme.scheme_id} has a fixed offset and takes no roles")
        return default_assignment(scheme)

    roles = scheme.roles
    missing = [role for role in roles if role not in mapping]
    extra = [role for role in mapping if role not in roles]
    if missing or extra:
        details = []
        if missing:
            details.append(f"missing {', '.join(missing)}")
        if extra:
            details.append(f"unexpected {', '.join(sorted(extra))}")
        raise MalformedAssignment(
            f"{scheme.scheme_id} needs roles {list(roles)}: " + "; ".join(details)
        )

    chars = [mapping[role] for role in roles]
    if len(set(chars)) != len(chars):
        raise MalformedAssignment(f"{scheme.scheme_id}: one character assigned to several roles")
    outside = [cp for cp in chars if lookup(cp) is None]
    if outside:
        raise MalformedAssignment(
            f"{scheme.scheme_id}: not invisible characters: "
            + ", ".join(f"U+{cp:04X}" for cp in outside)
        )
    if not scheme.wildcard and set(chars) != set(scheme.alphabet):
        raise MalformedAssignment(
            f"{scheme.scheme_id}: assignment must permute "
            + " ".join(f"U+{cp:04X}" for cp in scheme.alphabet)
        )
    return SymbolAssignment.from_mapping(mapping, roles)
