from itertools import permutations

import pytest

from veiltext.chars import BOM, WJ, ZWJ, ZWNJ, ZWSP
from veiltext.decoder import (
    SOURCE_JOINED,
    SOURCE_SEGMENTS,
    candidate_assignments,
    decode,
)
from veiltext.encoder import encode, encode_run
from veiltext.errors import NoInvisibleCharactersFound, NoSchemeMatched
from veiltext.extractor import dump_raw
from veiltext.schemes import all_schemes, get_scheme

CARRIER = "The quick brown fox jumps over the lazy dog, twice over."
MESSAGE = b"Hello, world!"
EDGE_BYTES = [b"\x00", b"\xff", b"?", b"\x7f"]


def _hits(candidates, scheme_id, payload):
    return [c for c in candidates if c.scheme_id == scheme_id and c.payload == payload]


def test_hi_scenario_top_candidate():
    scheme = get_scheme("binary_8")
    text = encode(b"hi!", scheme, {"0": ZWSP, "1": ZWNJ}, carrier_text="Nothing to see here")
    candidates = decode(text)

    best = candidates[0]
    assert best.best is True
    assert best.scheme_id == "binary_8"
    assert best.text == "hi!"
    assert best.is_text is True
    assert best.coverage == 1.0
    assert best.score == 110.0
    assert best.assignment.as_dict() == {"0": ZWSP, "1": ZWNJ}
    assert all(not c.best for c in candidates[1:])


def test_visible_only_text():
    assert dump_raw("Only plain ASCII here.") == []
    with pytest.raises(NoInvisibleCharactersFound):
        decode("Only plain ASCII here.")


def test_empty_input():
    with pytest.raises(NoInvisibleCharactersFound):
        decode("")


def test_lone_format_character_matches_nothing():
    with pytest.raises(NoSchemeMatched):
        decode("x\u200ey")


def test_mixed_run_still_returns_candidates():
    run = encode_run(b"ok", get_scheme("unicode_tags"))
    run += encode_run(b"hi", get_scheme("fixed4_330k"))
    candidates = decode("see" + run + "here")
    assert candidates
    tags = [c for c in candidates if c.scheme_id == "unicode_tags"]
    assert tags and tags[0].payload == b"ok"
    assert tags[0].coverage < 1.0


@pytest.mark.parametrize("scheme", all_schemes(), ids=lambda s: s.scheme_id)
def test_round_trip_every_scheme(scheme):
    text = encode(MESSAGE, scheme, carrier_text=CARRIER)
    candidates = decode(text, schemes=[scheme.scheme_id])
    assert _hits(candidates, scheme.scheme_id, MESSAGE)


@pytest.mark.parametrize("message", EDGE_BYTES, ids=lambda m: m.hex())
@pytest.mark.parametrize("scheme", all_schemes(), ids=lambda s: s.scheme_id)
def test_round_trip_single_edge_byte(scheme, message):
    if scheme.bits == 7 and message[0] > 0x7F:
        pytest.skip("7-bit scheme")
    text = encode(message, scheme, carrier_text=CARRIER)
    assert _hits(decode(text, schemes=[scheme.scheme_id]), scheme.scheme_id, message)


@pytest.mark.parametrize("message", EDGE_BYTES, ids=lambda m: m.hex())
@pytest.mark.parametrize(
    "scheme_id",
    ["zwj_wrapped", "wj_separated", "steganographr", "nary_3", "nary_3_sep", "fixed4_zw"],
)
def test_edge_bytes_survive_every_assignment(scheme_id, message):
    scheme = get_scheme(scheme_id)
    for picked in permutations(scheme.alphabet):
        mapping = dict(zip(scheme.roles, picked))
        text = encode(message, scheme, mapping, carrier_text="a b")
        assert _hits(decode(text, schemes=[scheme_id]), scheme_id, message), mapping


def test_one_byte_steganographr_without_separator():
    run = encode_run(b"?", get_scheme("steganographr"))
    assert chr(ZWJ) not in run
    hits = _hits(decode("a" + run + "b", schemes=["steganographr"]), "steganographr", b"?")
    assert hits and hits[0].text == "?"


def test_round_trip_with_permuted_assignment():
    scheme = get_scheme("nary_4")
    mapping = {"0": WJ, "1": ZWJ, "2": ZWNJ, "3": ZWSP}
    text = encode(MESSAGE, scheme, mapping, carrier_text=CARRIER)
    hits = _hits(decode(text, schemes=["nary_4"]), "nary_4", MESSAGE)
    assert len(hits) == 1
    assert hits[0].assignment.as_dict() == mapping


def test_round_trip_binary_outside_defaults():
    scheme = get_scheme("binary_8")
    mapping = {"0": BOM, "1": WJ}
    text = encode(b"wildcard", scheme, mapping, carrier_text=CARRIER)
    hits = _hits(decode(text), "binary_8", b"wildcard")
    assert hits and hits[0].assignment.as_dict() == mapping


def test_fixed4_recovers_non_utf8_bytes():
    payload = b"\xff\xfeok"
    text = encode(payload, get_scheme("fixed4_zw"))
    hits = _hits(decode(text, schemes=["fixed4_zw"]), "fixed4_zw", payload)
    assert hits
    assert hits[0].text is None
    assert hits[0].is_text is False


def test_joined_source_spans_runs():
    bits = encode_run(b"hi", get_scheme("binary_8"))
    text = "x" + bits[:8] + "y" + bits[8:] + "z"
    candidates = decode(text, schemes=["binary_8"])
    joined = [c for c in candidates if c.source == SOURCE_JOINED]
    assert any(c.payload == b"hi" for c in joined)
    assert {c.source for c in candidates} >= {0, 1}


def test_segmented_source():
    text = encode(b"hi", get_scheme("segmented_4"), carrier_text="abcdef")
    hits = _hits(decode(text, schemes=["segmented"]), "segmented_4", b"hi")
    assert hits and hits[0].source == SOURCE_SEGMENTS


def test_segmented_payload_outranks_its_fragments():
    text = encode(b"hi!", get_scheme("segmented_8"), carrier_text="abcdef")
    candidates = decode(text)
    assert candidates[0].payload == b"hi!"
    assert candidates[0].coverage == 1.0
    fragments = [c for c in candidates if c.source == 0]
    assert fragments and all(c.coverage < 1.0 for c in fragments)


def test_ranking_is_ordered_and_deduplicated():
    text = encode(MESSAGE, get_scheme("fixed4_zw"), carrier_text=CARRIER)
    candidates = decode(text)
    keys = [(c.scheme_id, c.payload) for c in candidates]
    assert len(keys) == len(set(keys))
    for first, second in zip(candidates, candidates[1:]):
        assert (-first.score, first.search_space) <= (-second.score, second.search_space)
    assert candidates[0].payload == MESSAGE


def test_decode_is_deterministic():
    text = encode(MESSAGE, get_scheme("steganographr"), carrier_text=CARRIER)
    first = [c.to_dict() for c in decode(text)]
    second = [c.to_dict() for c in decode(text)]
    assert first == second


def test_workers_match_serial_results():
    text = encode(b"pool", get_scheme("nary_3"), carrier_text=CARRIER)
    serial = [c.to_dict() for c in decode(text)]
    pooled = [c.to_dict() for c in decode(text, workers=2)]
    assert pooled == serial


def test_limit_and_scheme_filter():
    text = encode(b"hi!", get_scheme("binary_8"), carrier_text="cover")
    assert len(decode(text, limit=1)) == 1
    with pytest.raises(NoSchemeMatched):
        decode(text, schemes=["unicode_tags"])


def test_candidate_assignment_counts():
    nary_3 = get_scheme("nary_3")
    assert len(candidate_assignments(nary_3, [ZWSP, ZWNJ, ZWJ])) == 6
    assert len(candidate_assignments(nary_3, [ZWSP])) == 3
    assert len(candidate_assignments(get_scheme("fixed4_zw"), [ZWSP, ZWNJ])) == 12
    nary_8 = get_scheme("nary_8")
    assert len(candidate_assignments(nary_8, list(nary_8.alphabet))) == 40320
    assert len(candidate_assignments(get_scheme("unicode_tags"), [0xE0041])) == 1
    assert len(candidate_assignments(get_scheme("binary_8"), [WJ])) == 2


def test_candidate_dict_shape():
    text = encode(b"hi!", get_scheme("binary_8"))
    data = decode(text)[0].to_dict()
    assert data["scheme"] == "binary_8"
    assert data["payload_hex"] == "686921"
    assert data["assignment"] == {"0": "U+200B", "1": "U+200C"}
    assert data["best"] is True
