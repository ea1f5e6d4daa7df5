"""Command-line front end for the intrusion detection system."""

from __future__ import annotations

import argparse
import os
import signal
import sys
import threading
from collections.abc import Sequence
from types import TracebackType

from flowinspector.analyzer import RuleError
from flowinspector.capture import TrafficCapturer
from flowinspector.console import console_level, debug_stream
from flowinspector.ids import IDS
from flowinspector.logger import LogLevel
from flowinspector.origin import PacketOrigin
from flowinspector.pcap_reader import PcapReader

_ADDITIONAL_INFO = (
    "Additional Information:\n"
    "  SIGHUP Signal:        Send SIGHUP signal to the running process to reload rules\n"
    "                        Example: kill -HUP <pid>"
)


class _Parser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        self.print_help()
        self.exit(1, f"Error parsing options: {message}\n")


def _cores(text: str) -> int:
    value = int(text)
    if not 0 <= value <= 255:
        raise argparse.ArgumentTypeError(f"cores must be between 0 and 255: {text}")
    return value


def _non_negative(text: str) -> int:
    value = int(text)
    if value < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: {text}")
    return value


def _build_parser() -> argparse.ArgumentParser:
    parser = _Parser(
        prog="FlowInspector",
        usage="%(prog)s [OPTIONS]",
        description="CLI wrapper for flow inspector",
        epilog=_ADDITIONAL_INFO,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-m", "--mode", required=True,
        help="Operating mode: 'pcap' for file input or 'live' for real-time capture",
    )
    parser.add_argument(
        "-i", "--interface",
        help="Network interface for live mode capture (only used with live mode)",
    )
    parser.add_argument(
        "-f", "--file",
        help="Path to the PCAP file for input (applicable only in pcap mode)",
    )
    parser.add_argument(
        "-j", "--cores", type=_cores, default=1,
        help="Number of processor cores to utilize",
    )
    parser.add_argument(
        "-o", "--log-output", default="default.log",
        help="Path to the file for logging output",
    )
    parser.add_argument(
        "-w", "--write", default="default.pcap",
        help="Destination PCAP file to save captured data",
    )
    parser.add_argument(
        "-r", "--rules", default="",
        help="Path to the file containing rules for packet processing",
    )
    parser.add_argument(
        "-s", "--stat-speed", type=_non_negative, default=0,
        help="Interval (in seconds) for printing capture statistics",
    )
    parser.add_argument(
        "--log-level", default="info",
        help="Logging to stdout verbosity level: debug or info",
    )
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line options.

    Exits with status 1 on malformed options and 0 after ``--help``; raises
    ValueError when the mode or its required input is wrong.
    """
    options = _build_parser().parse_args(
        list(sys.argv[1:] if argv is None else argv)
    )
    if options.mode == "live":
        if options.interface is None:
            raise ValueError("Interface is required for live mode")
    elif options.mode == "pcap":
        if options.file is None:
            raise ValueError("File is required for pcap mode")
    else:
        raise ValueError("Invalid mode, use 'live' or 'pcap'")
    return options


class IdsCli:
    """Runs an IDS configured from command-line options."""

    def __init__(self, argv: Sequence[str] | None = None) -> None:
        options = parse_args(argv)
        self._mode: str = options.mode
        self._interface: str = options.interface or ""
        self._pcap_file: str = options.file or ""
        self._cores: int = options.cores
        self._rules_file: str = options.rules
        self._output_log_file: str = options.log_output
        self._pcap_output_file: str = options.write
        self._stat_speed: int = options.stat_speed
        self._log_level = LogLevel.INFO
        if options.log_level == "debug":
            self._log_level = LogLevel.DEBUG
            console_level().enable()
        self._ids: IDS | None = None

    def update_rules(self) -> None:
        """Reload the rules file into the running IDS, if there is one."""
        if self._ids is not None and self._rules_file:
            print(
                f"Received SIGHUP signal. Reloading rules from: {self._rules_file}",
                flush=True,
            )
            self._ids.load_rules(self._rules_file)

    def _make_origin(self) -> PacketOrigin:
        if self._mode == "live":
            return TrafficCapturer(self._interface)
        return PcapReader(self._pcap_file)

    def start(self) -> None:
        """Build the IDS and read packets until the source ends or is stopped."""
        self._ids = IDS(self._cores, self._make_origin())
        if self._rules_file:
            self._ids.load_rules(self._rules_file)
        self._ids.set_output_filename(self._output_log_file)
        self._ids.set_pcap_output_filename(self._pcap_output_file)
        self._ids.set_log_level(self._log_level)
        self._ids.set_stat_speed(self._stat_speed)
        source = self._rules_file or "<no rules file specified>"
        print(
            f"FlowInspector started. Send SIGHUP signal to reload rules from: {source}"
        )
        print(f"Process ID: {os.getpid()}", flush=True)
        self._ids.start()

    def stop(self) -> None:
        """Ask the running IDS to stop reading."""
        if self._ids is not None:
            self._ids.stop()

    def __enter__(self) -> IdsCli:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        if self._ids is not None:
            ids, self._ids = self._ids, None
            ids.close()


def _debug(message: str) -> None:
    stream = debug_stream()
    stream.write(message + "\n")
    stream.flush()


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command; return the exit status."""
    try:
        cli = IdsCli(argv)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    def on_stop(signum: int, _frame: object) -> None:
        cli.stop()
        _debug(f"stop signal: {signum}")

    def on_hangup(signum: int, _frame: object) -> None:
        _debug(f"sighup signal: {signum}")
        try:
            cli.update_rules()
        except (OSError, RuleError) as exc:
            print(f"Failed to reload rules: {exc}", file=sys.stderr)

    previous: dict[int, object] = {}
    if threading.current_thread() is threading.main_thread():
        previous[signal.SIGINT] = signal.signal(signal.SIGINT, on_stop)
        if hasattr(signal, "SIGHUP"):
            previous[signal.SIGHUP] = signal.signal(signal.SIGHUP, on_hangup)
    try:
        with cli:
            cli.start()
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())