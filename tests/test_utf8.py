import pytest

from dcaf.utf8 import Utf8Error, uint8_to_utf8, utf8_length, utf8_to_uint8

SAMPLES = [b"", b"foobar", bytes(range(256)), b"\xe4\x00\xff\x7f\x80"]


def test_ascii_unchanged():
    assert uint8_to_utf8(b"foobar") == b"foobar"
    assert utf8_to_uint8(b"foobar") == b"foobar"


def test_high_byte_encoding():
    assert uint8_to_utf8(b"\xe4") == b"\xc3\xa4"


@pytest.mark.parametrize("data", SAMPLES)
def test_round_trip(data):
    assert utf8_to_uint8(uint8_to_utf8(data)) == data


@pytest.mark.parametrize("data", SAMPLES)
def test_length_matches_encoding(data):
    assert utf8_length(data) == len(uint8_to_utf8(data))


def test_ascii_length_equals_input_length():
    assert utf8_length(b"foobar") == len(b"foobar")


def test_code_point_above_255_rejected():
    with pytest.raises(Utf8Error):
        utf8_to_uint8(b"\xc4\x80")


def test_truncated_sequence_rejected():
    with pytest.raises(Utf8Error):
        utf8_to_uint8(b"\xc3")