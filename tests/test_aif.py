import pytest

from dcaf.aif import (
    AifError,
    Method,
    Permission,
    aif_to_cbor,
    evaluate,
    parse_aif,
    parse_aif_string,
)

CBOR_STR = bytes([0x6E]) + b"GET /something"
CBOR_ARR = bytes([0x82, 0x6A]) + b"/something" + bytes([0x01])


def test_parse_textual_aif_from_cbor():
    result = parse_aif_string(CBOR_STR)
    assert len(result) == 1
    assert result[0].methods == 0x01
    assert len(result[0].resource) == len("/something")
    assert result[0].resource == "/something"


def test_parse_cbor_aif():
    result = parse_aif(CBOR_ARR)
    assert len(result) == 1
    assert result[0].methods == 0x01
    assert result[0].resource == "/something"


def test_parsed_aif_converted_back_to_cbor():
    encoded = aif_to_cbor(parse_aif(CBOR_ARR))
    assert len(encoded) == len(CBOR_ARR)
    assert encoded == CBOR_ARR


def test_parse_string_multiple_entries_most_recent_first():
    result = parse_aif_string("GET /a POST /b")
    assert result == [Permission("/b", Method.POST), Permission("/a", Method.GET)]


def test_parse_string_trailing_whitespace_is_error():
    with pytest.raises(AifError):
        parse_aif_string("GET /a ")


def test_parse_string_invalid_method_returns_prior_entries():
    assert parse_aif_string("PUT /x BREW /y") == [Permission("/x", Method.PUT)]


def test_parse_string_invalid_method_only():
    with pytest.raises(AifError):
        parse_aif_string("BREW /y")


def test_parse_string_missing_resource():
    with pytest.raises(AifError):
        parse_aif_string("GET")


def test_parse_string_method_is_case_sensitive():
    with pytest.raises(AifError):
        parse_aif_string("get /a")


def test_parse_string_rejects_non_text():
    with pytest.raises(AifError):
        parse_aif_string(CBOR_ARR)


def test_parse_string_empty():
    with pytest.raises(AifError):
        parse_aif_string("")


def test_parse_aif_from_list_and_bytes_resource():
    result = parse_aif([b"/a", 3, "/b", 4])
    assert result == [Permission("/b", 4), Permission("/a", 3)]


def test_parse_aif_odd_length():
    with pytest.raises(AifError):
        parse_aif(["/a", 1, "/b"])


def test_parse_aif_not_an_array():
    with pytest.raises(AifError):
        parse_aif(CBOR_STR)


def test_parse_aif_bad_methods_stops_parsing():
    assert parse_aif(["/a", 1, "/b", "x"]) == [Permission("/a", 1)]
    with pytest.raises(AifError):
        parse_aif(["/b", -1])


def test_parse_aif_bad_uri_type():
    with pytest.raises(AifError):
        parse_aif([5, 1])


def test_parse_aif_resource_too_long():
    with pytest.raises(AifError):
        parse_aif(["x" * 1000, 1])


def test_parse_aif_empty_array():
    with pytest.raises(AifError):
        parse_aif([])


def test_aif_to_cbor_empty():
    with pytest.raises(AifError):
        aif_to_cbor([])


def test_round_trip_multiple():
    perms = [Permission("/b", 2), Permission("/a", 5)]
    decoded = parse_aif(aif_to_cbor(perms))
    assert list(reversed(decoded)) == perms


def test_evaluate_allows_and_denies():
    perms = [Permission("/a", Method.GET | Method.POST)]
    assert evaluate(perms, "/a", Method.GET) is True
    assert evaluate(perms, "/a", Method.PUT) is False
    assert evaluate(perms, "/b", Method.GET) is False


def test_evaluate_conflicting_permissions_deny():
    perms = [Permission("/a", Method.GET), Permission("/a", Method.POST)]
    assert evaluate(perms, "/a", Method.GET) is False


def test_evaluate_no_permissions():
    assert evaluate([], "/a", Method.GET) is False