import pytest

from veiltext.chars import BOM, WJ, ZWJ, ZWNJ, ZWSP
from veiltext.encoder import encode, encode_run, insert_run
from veiltext.errors import InsufficientCarrier, MalformedAssignment, UnencodableMessage
from veiltext.schemes import get_scheme

Z, O = chr(ZWSP), chr(ZWNJ)


def _bits(byte, width=8):
    return "".join(O if bit == "1" else Z for bit in format(byte, f"0{width}b"))


def test_binary_8_hi():
    run = encode_run(b"hi!", get_scheme("binary_8"))
    assert len(run) == 24
    assert set(run) == {Z, O}
    assert run[:8] == Z + O + O + Z + O + Z + Z + Z
    assert run == _bits(ord("h")) + _bits(ord("i")) + _bits(ord("!"))


def test_binary_7_and_tags_reject_high_bytes():
    assert encode_run(b"A", get_scheme("binary_7")) == _bits(0x41, 7)
    with pytest.raises(UnencodableMessage):
        encode_run(b"\xff", get_scheme("binary_7"))
    with pytest.raises(UnencodableMessage):
        encode_run(b"caf\xc3\xa9", get_scheme("unicode_tags"))


def test_unicode_tags_shift_ascii():
    assert encode_run(b"Ab", get_scheme("unicode_tags")) == chr(0xE0041) + chr(0xE0062)


def test_nary_fixed_width():
    scheme = get_scheme("nary_3")
    assert encode_run(b"\x00", scheme) == Z * 6
    # 255 = 100110 in base 3
    assert encode_run(b"\xff", scheme) == O + Z + Z + O + O + Z


def test_nary_with_separator_uses_minimal_digits():
    run = encode_run(b"\x05\x00", get_scheme("nary_3_sep"))
    assert run == O + chr(ZWJ) + chr(WJ) + Z


def test_delimiter_variants():
    assert encode_run(b"A", get_scheme("zwj_wrapped")) == chr(ZWJ) + _bits(0x41) + chr(ZWJ)
    assert encode_run(b"AB", get_scheme("wj_separated")) == (
        _bits(0x41) + chr(WJ) + _bits(0x42) + chr(WJ)
    )
    assert encode_run(b"\x05\x01", get_scheme("steganographr")) == (
        chr(BOM) + O + Z + O + chr(ZWJ) + O + chr(BOM)
    )


def test_empty_message_keeps_markers_only():
    assert encode_run(b"", get_scheme("binary_8")) == ""
    assert encode_run(b"", get_scheme("zwj_wrapped")) == chr(ZWJ) * 2
    assert encode_run(b"", get_scheme("steganographr")) == chr(BOM) * 2
    assert encode(b"", get_scheme("binary_8"), carrier_text="cover") == "cover"


def test_fixed4_emits_eight_base4_digits_per_unit():
    digits = [chr(ZWSP), chr(ZWNJ), chr(ZWJ), chr(BOM)]
    # U+0041 -> 0001 0001 in base 4 pairs
    expected = "".join(digits[int(d)] for d in "00001001")
    assert encode_run(b"A", get_scheme("fixed4_zw")) == expected
    assert len(encode_run(b"\xe4\xbd\xa0", get_scheme("fixed4_zw"))) == 8
    # undecodable bytes still produce one unit each
    assert len(encode_run(b"\xff\xfe", get_scheme("fixed4_330k"))) == 16


def test_insert_run_positions():
    assert insert_run("abcd", "#", "start") == "#abcd"
    assert insert_run("abcd", "#", "middle") == "ab#cd"
    assert insert_run("abcd", "#", "end") == "abcd#"
    assert insert_run("", "#") == "#"
    assert insert_run(None, "#") == "#"
    with pytest.raises(ValueError):
        insert_run("abcd", "#", "sideways")


def test_encode_inserts_into_carrier_middle():
    run = encode_run(b"A", get_scheme("binary_8"))
    assert encode(b"A", get_scheme("binary_8"), carrier_text="wxyz") == "wx" + run + "yz"
    assert encode(b"A", get_scheme("binary_8"), carrier_text="wxyz", position="end") == "wxyz" + run


def test_custom_assignment():
    text = encode(b"\x80", get_scheme("binary_8"), {"0": "U+2060", "1": "U+200D"})
    assert text == chr(ZWJ) + chr(WJ) * 7
    with pytest.raises(MalformedAssignment):
        encode(b"\x80", get_scheme("binary_8"), {"0": "U+2060"})


def test_segmented_spreads_bits_over_visible_chars():
    text = encode(b"hi", get_scheme("segmented_8"), carrier_text="abc")
    assert text == "a" + _bits(ord("h")) + "b" + _bits(ord("i")) + "c"

    text = encode(b"h", get_scheme("segmented_4"), carrier_text="abc")
    assert text == "a" + _bits(ord("h"))[:4] + "b" + _bits(ord("h"))[4:] + "c"


def test_segmented_needs_enough_visible_chars():
    with pytest.raises(InsufficientCarrier):
        encode(b"hi", get_scheme("segmented_8"), carrier_text="a")
    with pytest.raises(InsufficientCarrier):
        encode(b"hi", get_scheme("segmented_8"))
    assert encode(b"", get_scheme("segmented_8"), carrier_text="a") == "a"


def test_segmented_drops_existing_invisible_chars():
    text = encode(b"h", get_scheme("segmented_8"), carrier_text="a" + chr(WJ) + "b")
    assert text == "a" + _bits(ord("h")) + "b"


def test_message_must_be_bytes():
    with pytest.raises(TypeError):
        encode("hi", get_scheme("binary_8"))
