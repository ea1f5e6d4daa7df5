# flowinspector

A passive intrusion detection system. It reads packets from a pcap or pcapng
file, or from a live network interface, checks every packet against a set of
signature rules using a pool of worker threads, and reacts to matches:
`Alert` rules are written to an event log file and `SaveToPcap` rules have
their packets written to a pcap file.

It needs nothing beyond the Python standard library (Python 3.10 or later).

## Installation

```
pip install .
```

## Running

Inspect a capture file:

```
flowinspector --mode pcap --file capture.pcap --rules my.rule
```

Watch an interface in real time:

```
flowinspector --mode live --interface eth0 --rules my.rule
```

Options:

| Option | Meaning | Default |
| --- | --- | --- |
| `-m`, `--mode` | `pcap` for file input or `live` for real-time capture | required |
| `-i`, `--interface` | network interface, required in live mode | |
| `-f`, `--file` | capture file, required in pcap mode | |
| `-j`, `--cores` | number of packet processing threads (0–255) | `1` |
| `-o`, `--log-output` | file for the event log | `default.log` |
| `-w`, `--write` | pcap file for packets saved by `SaveToPcap` rules | `default.pcap` |
| `-r`, `--rules` | rules file | none |
| `-s`, `--stat-speed` | interval in seconds for printing packets per second, `0` disables | `0` |
| `--log-level` | `debug` also logs debug messages and prints them to stdout; anything else means `info` | `info` |

Send `SIGHUP` to the running process to reload the rules file
(`kill -HUP <pid>`); the process ID is printed at start. `SIGINT` stops
reading; queued packets are still processed and the logs flushed before the
command exits. Malformed options or a wrong mode exit with status 1, as does a
rules file that cannot be read or parsed.

## Rules

A rules file holds one rule per line; empty lines and lines starting with `#`
are skipped. A rule is

```
<event>;<name>;<signature>;<signature>;...
```

`<event>` is one of `Alert`, `Notify`, `SaveToPcap`, `TestEvent`,
`TestEvent1`, `TestEvent2`, written without surrounding spaces. A packet
triggers the rule when every signature matches it; a rule with no signatures
matches every packet. Signatures:

- `raw_bytes([1 2 3 4])` – the bytes appear anywhere in the packet;
  `raw_bytes([1 2 3 4], 1)` – they appear at byte offset 1.
- `ip([192.168.1.0/24, 10.0.0.1], [any])` – IPv4 source and destination
  address lists; `any` or an empty list matches every address, `$HOME_NET`
  stands for `192.168.0.0/24`.
- `tcp([1234], [80])` – TCP source and destination ports; `any` or an empty
  list matches every port.
- `content(tcp, HelloWorld)` – the text appears in the TCP payload; `udp`
  looks in the UDP payload instead.

Equal signatures used by several rules are stored once. A malformed rule makes
the whole file fail to load, and the previously loaded rules are kept.

Example:

```
# alert on HTTP requests to the home network
Alert;http_home;ip([any], [$HOME_NET]);tcp([any], [80]);content(tcp, GET)
SaveToPcap;keep_everything;
```

## Event log

Each log line starts with the local time (`YYYY-MM-DD HH:MM:SS`) followed by
`Packet: ...`, `Alert: <rule name>` and/or `Message: ...`. Packets are printed
as decimal bytes (`[1 2 3 4]`) only when shorter than 10 bytes. The log is
written to the output file whenever 2000 entries have accumulated and when the
system shuts down.

## Using it as a library

```python
from flowinspector.ids import IDS
from flowinspector.logger import LogLevel
from flowinspector.pcap_reader import PcapReader

with IDS(4, PcapReader("capture.pcap")) as ids:
    ids.set_output_filename("events.log")
    ids.set_pcap_output_filename("saved.pcap")
    ids.set_log_level(LogLevel.INFO)
    ids.load_rules("my.rule")   # returns the number of rules
    ids.start()
```

Lower-level pieces:

- `flowinspector.analyzer` – `Analyzer` (`parse_rule`, `detect_threats`,
  `update_rules_from_file`, `signature_count`), `load_file` and `RuleError`.
- `flowinspector.events` – `EventsHandler` for registering callbacks per
  `EventType`.
- `flowinspector.packet` – `Packet`, `raw_packet` and `parse_layers`, a
  decoder for Ethernet, Linux cooked, loopback and raw IP link types with
  IPv4, IPv6, TCP and UDP layers.
- `flowinspector.pcap_reader` – `read_pcap` and `PcapReader`;
  `flowinspector.pcap_writer` – `PcapWriter`.
- `flowinspector.raw_bytes_signature`, `ip_signature`, `tcp_signature`,
  `content_signature` and `signature_factory` for the signature types.
- `flowinspector.logger` – `Logger` and `LogLevel`.

## Limitations

- Live capture uses a raw packet socket, so it works only on Linux and
  normally needs root privileges or `CAP_NET_RAW`.
- `ip(...)` signatures match IPv4 packets only.
- `content(http, ...)` is accepted in rules but never matches; the `nocase`
  flag is accepted but matching is always case-sensitive.
- Saved packets are always written as a microsecond-resolution pcap file.

## Tests

```
pip install .[test]
pytest
```