import ipaddress
import struct

import pytest

from flowinspector.ip_signature import (
    IPSignature,
    address_to_string,
    ip_to_int,
    mask_by_length,
    network_address,
    swap_octets,
)
from flowinspector.packet import Packet

MAC_DST = bytes.fromhex("aabbccddeeff")
MAC_SRC = bytes.fromhex("ffeeddccbbaa")


def make_packet(src, dst):
    header = struct.pack(
        "!BBHHHBBH4s4s",
        0x45, 0, 20, 0, 0, 64, 0, 0,
        ipaddress.IPv4Address(src).packed,
        ipaddress.IPv4Address(dst).packed,
    )
    return Packet(MAC_DST + MAC_SRC + b"\x08\x00" + header, parse_at_init=True)


def test_single_ip_match():
    signature = IPSignature(
        {(ip_to_int("192.168.1.1"), mask_by_length(32))},
        {(ip_to_int("10.0.0.1"), mask_by_length(32))},
    )
    assert signature.check(make_packet("192.168.1.1", "10.0.0.1")) is True


def test_no_ip_match():
    signature = IPSignature(
        {(ip_to_int("192.168.1.1"), mask_by_length(32))},
        {(ip_to_int("10.0.0.1"), mask_by_length(32))},
    )
    assert signature.check(make_packet("192.168.1.2", "10.0.0.2")) is False


def test_match_with_empty_destination_set():
    signature = IPSignature({(ip_to_int("192.168.1.1"), mask_by_length(32))}, set())
    assert signature.check(make_packet("192.168.1.1", "10.0.0.1")) is True


def test_match_with_empty_source_set():
    signature = IPSignature(set(), {(ip_to_int("10.0.0.1"), mask_by_length(32))})
    assert signature.check(make_packet("192.168.1.2", "10.0.0.1")) is True


def test_match_from_created_set():
    signature = IPSignature.create(
        "([192.168.1.1/32, 192.168.1.4/32], [10.0.0.1/32, 10.0.0.2/32])"
    )
    assert signature.check(make_packet("192.168.1.1", "10.0.0.1")) is True
    assert signature.check(make_packet("192.168.2.1", "10.0.0.1")) is False
    assert signature.check(make_packet("192.168.1.1", "10.0.0.2")) is True


def test_cidr_match():
    signature = IPSignature(
        {(ip_to_int("192.168.1.0"), mask_by_length(24))},
        {(ip_to_int("10.0.0.0"), mask_by_length(24))},
    )
    assert signature.check(make_packet("192.168.1.5", "10.0.0.10")) is True
    assert signature.check(make_packet("192.168.2.5", "10.0.1.10")) is False


def test_home_net_and_any():
    signature = IPSignature.create("([$HOME_NET], [any])")
    assert signature.dst_ip_masks == frozenset()
    assert signature.check(make_packet("192.168.0.7", "8.8.8.8")) is True
    assert signature.check(make_packet("192.168.1.7", "8.8.8.8")) is False


def test_address_without_mask_is_exact():
    signature = IPSignature.create("([10.1.2.3], [])")
    assert signature.src_ip_masks == frozenset({(ip_to_int("10.1.2.3"), mask_by_length(32))})


def test_non_ip_packet_does_not_match():
    frame = MAC_DST + MAC_SRC + b"\x08\x06" + bytes(28)
    assert IPSignature().check(Packet(frame, parse_at_init=True)) is False


def test_created_equal_signatures_are_equal():
    first = IPSignature.create("([1.2.3.4/32, 5.6.7.8/32], [any])")
    second = IPSignature.create("([5.6.7.8/32, 1.2.3.4/32], [any])")
    assert first == second
    assert hash(first) == hash(second)


def test_create_rejects_bad_address():
    with pytest.raises(ValueError):
        IPSignature.create("([not.an.ip/32], [any])")


def test_swap_octets():
    assert swap_octets(0x01020304) == 0x04030201


def test_mask_by_length():
    assert mask_by_length(24) == 0xFFFFFF00
    assert mask_by_length(32) == 0xFFFFFFFF
    assert mask_by_length(0) == 0


def test_mask_by_length_out_of_range():
    with pytest.raises(ValueError):
        mask_by_length(33)


def test_ip_to_int():
    assert ip_to_int("192.168.1.1") == 0xC0A80101


def test_network_address():
    assert network_address(ip_to_int("192.168.1.77"), 24) == ip_to_int("192.168.1.0")


def test_address_to_string_round_trip():
    assert address_to_string(ip_to_int("192.168.1.0"), 24) == "192.168.1.0/24"