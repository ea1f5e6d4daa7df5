"""Passive network flow inspector: signature rules matched against pcap files and live traffic."""

__version__ = "0.1.0"