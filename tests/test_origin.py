import pytest

from flowinspector.origin import PacketOrigin
from flowinspector.packet import LinkType, Packet


class ListOrigin(PacketOrigin):
    def __init__(self, packets):
        super().__init__()
        self.packets = list(packets)
        self.internal_stopped = False

    def start_reading(self):
        for packet in self.packets:
            if self.is_done_reading():
                break
            self.process_packet(packet)

    def link_type(self):
        return LinkType.ETHERNET

    def _internal_stop_reading(self):
        self.internal_stopped = True


def test_abstract_origin_cannot_be_created():
    with pytest.raises(TypeError):
        PacketOrigin()


def test_process_packet_without_processor_raises():
    origin = ListOrigin([])
    with pytest.raises(RuntimeError):
        origin.process_packet(Packet(b"\x01"))


def test_processor_receives_every_packet():
    packets = [Packet(b"\x01\x02"), Packet(b"\x03")]
    origin = ListOrigin(packets)
    received = []
    origin.set_processor(received.append)
    origin.start_reading()
    assert received == packets


def test_stop_reading_marks_done_and_calls_internal_stop():
    origin = ListOrigin([Packet(b"\x01")])
    assert PacketOrigin.is_done_reading(origin) is False
    PacketOrigin.stop_reading(origin)
    assert PacketOrigin.is_done_reading(origin) is True
    assert origin.internal_stopped is True


def test_stopping_from_processor_ends_reading():
    packets = [Packet(b"\x01"), Packet(b"\x02"), Packet(b"\x03")]
    origin = ListOrigin(packets)
    received = []

    def processor(packet):
        received.append(packet)
        origin.stop_reading()

    origin.set_processor(processor)
    origin.start_reading()
    assert received == packets[:1]


def test_set_processor_replaces_previous():
    origin = ListOrigin([Packet(b"\x05")])
    first, second = [], []
    origin.set_processor(first.append)
    origin.set_processor(second.append)
    origin.start_reading()
    assert first == []
    assert [p.data for p in second] == [b"\x05"]