import pytest

from dcaf.prng import prng, set_prng


@pytest.fixture(autouse=True)
def _restore_prng():
    yield
    set_prng(None)


def _sequence(length):
    return bytes(n % 256 for n in range(length))


def test_deterministic_source():
    set_prng(_sequence)
    assert prng(16) == bytes(
        [0x00, 0x01, 0x02, 0x03, 0x04, 0x05, 0x06, 0x07,
         0x08, 0x09, 0x0A, 0x0B, 0x0C, 0x0D, 0x0E, 0x0F]
    )


def test_zero_length():
    assert prng(0) == b""


def test_default_source_length_and_variation():
    first = prng(32)
    second = prng(32)
    assert len(first) == 32
    assert first != second


def test_reset_restores_default():
    set_prng(lambda n: b"\x00" * n)
    assert prng(8) == b"\x00" * 8
    set_prng(None)
    assert len({prng(16) for _ in range(4)}) == 4


def test_wrong_length_from_source():
    set_prng(lambda n: b"\x01")
    with pytest.raises(ValueError):
        prng(4)


def test_negative_length():
    with pytest.raises(ValueError):
        prng(-1)