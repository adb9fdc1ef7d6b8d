from veiltext.chars import (
    TAG_START,
    UNICODE_TAG,
    ZERO_WIDTH_SPACING,
    all_chars,
    by_category,
    codepoints,
    describe,
    is_invisible,
    is_unicode_tag,
    lookup,
)


def test_registry_is_closed_and_stable():
    first = all_chars()
    second = all_chars()
    assert len(first) == 182
    assert first == second
    assert len(set(codepoints())) == 182


def test_named_characters_come_first():
    assert all_chars()[0].codepoint == 0x200B
    assert all_chars()[53].category != UNICODE_TAG
    assert all_chars()[54].codepoint == TAG_START


def test_lookup_known_and_unknown():
    entry = lookup(0x200B)
    assert entry is not None
    assert entry.name == "ZERO WIDTH SPACE"
    assert entry.abbreviation == "ZWSP"
    assert entry.category == ZERO_WIDTH_SPACING
    assert lookup("\u200d").abbreviation == "ZWJ"
    assert lookup("a") is None
    assert lookup(0x41) is None
    assert lookup("ab") is None


def test_is_invisible():
    assert is_invisible("\u2060")
    assert is_invisible(0xFE0F)
    assert not is_invisible("x")
    assert not is_invisible(" ")


def test_tag_characters_shadow_ascii():
    entry = lookup(0xE0041)
    assert entry.category == UNICODE_TAG
    assert entry.shadowed_ascii == 0x41
    assert is_unicode_tag(chr(0xE007F))
    assert not is_unicode_tag(0x200B)
    assert lookup(0x200B).shadowed_ascii is None


def test_by_category_partitions_registry():
    grouped = by_category()
    assert len(grouped[UNICODE_TAG]) == 128
    assert sum(len(entries) for entries in grouped.values()) == 182


def test_describe():
    assert describe(0x200C) == "U+200C ZERO WIDTH NON-JOINER"
    assert describe(0xE0041) == "U+E0041 TAG LATIN CAPITAL LETTER A ('A')"
    assert describe(0x41) == "U+0041"
