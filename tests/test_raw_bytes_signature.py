import pytest

from flowinspector.packet import raw_packet
from flowinspector.raw_bytes_signature import RawBytesSignature


def packet(*values):
    return raw_packet(bytes(values))


def test_empty_payload_matches_non_empty_packet():
    assert RawBytesSignature(b"").check(packet(1, 2, 3, 4, 5)) is True


def test_empty_payload_does_not_match_empty_packet():
    assert RawBytesSignature(b"").check(packet()) is False


def test_payload_found_anywhere():
    signature = RawBytesSignature(bytes([1, 2, 3, 4, 5]))
    assert signature.check(packet(0, 1, 2, 3, 4, 5, 6)) is True
    assert signature.check(packet(0, 1, 2, 3, 6, 8)) is False


def test_payload_with_offset():
    signature = RawBytesSignature(bytes([2, 3, 4]), 1)
    assert signature.check(packet(1, 2, 3, 4, 5)) is True
    assert signature.check(packet(1, 1, 2, 3, 4, 5)) is False
    assert signature.check(packet(1, 2)) is False


def test_offset_beyond_packet_size():
    signature = RawBytesSignature(bytes([1, 2, 3]), 10)
    assert signature.check(packet(1, 2, 3, 4, 5)) is False


def test_empty_payload_at_offset():
    assert RawBytesSignature(b"", 3).check(packet(1, 2, 3)) is True
    assert RawBytesSignature(b"", 4).check(packet(1, 2, 3)) is False


def test_create_without_offset():
    signature = RawBytesSignature.create("[1 2 3 4]")
    assert signature == RawBytesSignature(bytes([1, 2, 3, 4]))
    assert signature.offset is None


def test_create_with_offset():
    signature = RawBytesSignature.create("[1 2 3 4], 1")
    assert signature.payload == bytes([1, 2, 3, 4])
    assert signature.offset == 1


def test_created_signature_matches_packet():
    signature = RawBytesSignature.create("[1 2 3 4]")
    assert signature.check(packet(0, 1, 2, 3, 4, 5, 6)) is True
    assert signature.check(packet(0, 1, 2, 4, 5, 6)) is False


def test_created_signature_with_offset_matches_packet():
    signature = RawBytesSignature.create("[1 2 3 4], 1")
    assert signature.check(packet(0, 1, 2, 3, 4, 1, 2, 3, 7)) is True
    assert signature.check(packet(1, 2, 3, 4, 5, 6)) is False


def test_create_wraps_values_to_bytes():
    assert RawBytesSignature.create("[256 257]").payload == b"\x00\x01"


def test_create_stops_at_non_integer():
    assert RawBytesSignature.create("[1 2 x 3]").payload == b"\x01\x02"


def test_create_with_nothing_after_comma_has_no_offset():
    assert RawBytesSignature.create("[5],").offset is None


def test_create_negative_offset_wraps():
    assert RawBytesSignature.create("[1], -1").offset == 0xFFFFFFFF


def test_create_without_closing_bracket_raises():
    with pytest.raises(ValueError):
        RawBytesSignature.create("[1 2 3")


def test_create_with_bad_offset_raises():
    with pytest.raises(ValueError):
        RawBytesSignature.create("[1 2], x")


def test_equal_signatures_deduplicate():
    signatures = {
        RawBytesSignature.create("[1 2], 1"),
        RawBytesSignature.create("[1 2], 1"),
    }
    assert len(signatures) == 1


def test_offset_distinguishes_signatures():
    assert RawBytesSignature(b"\x01\x02", 1) != RawBytesSignature(b"\x01\x02")