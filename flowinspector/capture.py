"""Live capture from a network interface through a raw packet socket."""

from __future__ import annotations

import socket
import sys
import threading
import time

from flowinspector.origin import PacketOrigin
from flowinspector.packet import LinkType, Packet

_ETH_P_ALL = 0x0003
_SNAPLEN = 65535
_POLL_SECONDS = 0.1


class CaptureError(OSError):
    """The interface could not be found or opened for capture."""


class TrafficCapturer(PacketOrigin):
    """Reads every frame seen on a network interface until stopped."""

    def __init__(self, interface_name: str = "") -> None:
        super().__init__()
        self._interface_name = interface_name
        self._lock = threading.Lock()
        self._socket: socket.socket | None = None

    @property
    def interface_name(self) -> str:
        return self._interface_name

    def set_interface_name(self, interface_name: str) -> None:
        self._interface_name = interface_name

    def _check_interface(self) -> None:
        try:
            socket.if_nametoindex(self._interface_name)
        except OSError as exc:
            raise CaptureError(f"Couldn't find device {self._interface_name}") from exc

    def _open_socket(self) -> socket.socket:
        family = getattr(socket, "AF_PACKET", None)
        if family is None:
            raise CaptureError("live capture is not supported on this platform")
        try:
            sock = socket.socket(family, socket.SOCK_RAW, socket.htons(_ETH_P_ALL))
        except OSError as exc:
            raise CaptureError(f"Couldn't open device {self._interface_name}") from exc
        try:
            sock.bind((self._interface_name, 0))
        except OSError as exc:
            sock.close()
            raise CaptureError(f"Couldn't open device {self._interface_name}") from exc
        sock.settimeout(_POLL_SECONDS)
        return sock

    def start_reading(self) -> None:
        """Capture frames until ``stop_reading`` is called.

        Raises CaptureError if the interface cannot be found or opened.
        """
        self._check_interface()
        sock = self._open_socket()
        with self._lock:
            self._socket = sock
        try:
            while not self.is_done_reading():
                try:
                    data = sock.recv(_SNAPLEN)
                except socket.timeout:
                    continue
                except OSError:
                    if self.is_done_reading():
                        break
                    raise
                self.process_packet(Packet(data, time.time_ns(), LinkType.ETHERNET))
        finally:
            with self._lock:
                self._socket = None
            sock.close()

    def link_type(self) -> int:
        """ETHERNET for an existing interface, otherwise DLT_RAW1."""
        try:
            self._check_interface()
        except CaptureError as exc:
            print(exc, file=sys.stderr)
            return LinkType.DLT_RAW1
        return LinkType.ETHERNET

    def _internal_stop_reading(self) -> None:
        """The capture loop sees the done flag within one poll interval."""