from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.prompt import Prompt
from rich.table import Table

from .clock import DEFAULT_NTP_SERVER, FixedClock, NtpClock, TimeSource, ntp_to_datetime, split_clock
from .errors import AcquisitionError, InternalInvariantError, UlaError
from .interfaces import detect_mac
from .oui import IEEE_OUI_URL, ManufRegistry, VendorRegistry, load_oui_table
from .ula import UlaResult, generate
from .validate import format_mac

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    mac: str | None = None
    interface: str | None = None
    clock: str | None = None
    ntp_server: str = DEFAULT_NTP_SERVER
    ntp_timeout: float = 5.0
    registry: str = "ieee"
    oui_file: str = "oui.txt"
    oui_url: str = IEEE_OUI_URL
    refresh: bool = False
    strict: bool = False
    compress: bool = False
    json: bool = False
    verbose: bool = False
    debug: bool = False

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> Settings:
        return cls(
            mac=args.mac,
            interface=args.interface,
            clock=args.clock,
            ntp_server=args.ntp_server,
            ntp_timeout=args.timeout,
            registry=args.registry,
            oui_file=args.oui_file,
            oui_url=args.oui_url,
            refresh=args.refresh,
            strict=args.strict,
            compress=args.compress,
            json=args.json,
            verbose=args.verbose,
            debug=args.debug,
        )


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _interactive() -> bool:
    return sys.stdin.isatty()


def resolve_mac(settings: Settings, console: Console) -> tuple[str, bool]:
    """
    Returns (mac, prompted)
    """
    if settings.mac:
        return settings.mac, False
    if settings.interface:
        name = None if settings.interface == "auto" else settings.interface
        return detect_mac(name), False
    if not _interactive():
        raise AcquisitionError("No MAC address given. Use --mac or --interface.")
    return Prompt.ask("MAC address", console=console), True


def resolve_clock(settings: Settings, console: Console, prompted: bool) -> TimeSource:
    clock = settings.clock
    if clock is None and prompted:
        console.print("For a deterministic calculation, you may enter the ntp clock time.")
        console.print("Leave empty to query an NTP server.")
        clock = Prompt.ask("Clock", default="", show_default=False, console=console)

    if clock:
        return FixedClock(clock)
    return NtpClock(settings.ntp_server, timeout=settings.ntp_timeout)


def resolve_registry(settings: Settings) -> VendorRegistry:
    if settings.registry == "manuf":
        return ManufRegistry()
    return load_oui_table(settings.oui_file, url=settings.oui_url, refresh=settings.refresh)


def _build_table(result: UlaResult) -> Table:
    t = Table(title="gen-ula", show_header=False)
    t.add_column("Field", style="bold")
    t.add_column("Value")

    t.add_row("[dim]Inputs[/dim]", "")
    t.add_row("MAC address", f"{format_mac(result.mac)} ({escape(result.vendor)})")
    when = ntp_to_datetime(result.clock).strftime("%a, %b %d %Y %H:%M:%S UTC")
    t.add_row("NTP time", f"{split_clock(result.clock)}  {when}")

    t.add_row("[dim]Intermediary values[/dim]", "")
    t.add_row("EUI64 address", result.eui64)
    t.add_row("Global ID", result.global_id)

    t.add_row("[dim]Generated ULA[/dim]", "")
    t.add_row("Prefix", f"[bold green]{result.prefix}[/bold green]")
    return t


def cmd_generate(settings: Settings) -> int:
    console = Console(highlight=False)

    mac, prompted = resolve_mac(settings, console)
    source = resolve_clock(settings, console, prompted)
    registry = resolve_registry(settings)

    result = generate(
        mac,
        source.now(),
        registry,
        strict=settings.strict,
        compress=settings.compress,
    )

    if settings.json:
        console.print_json(json.dumps(result.to_dict()))
    elif settings.verbose:
        console.print(_build_table(result))
    else:
        console.print(result.prefix, markup=False)

    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="gen-ula",
        description="Generate an RFC 4193 Unique Local IPv6 /48 prefix from a MAC address and NTP time.",
    )

    src = p.add_mutually_exclusive_group()
    src.add_argument("--mac", help="Hardware address, e.g. 00:0d:3a:00:00:01")
    src.add_argument(
        "--interface",
        nargs="?",
        const="auto",
        help="Read the MAC from a local interface (no value: pick one automatically)",
    )

    p.add_argument("--clock", help="NTP time in hex, e.g. dcf4268b.208dd000 (default: query NTP)")
    p.add_argument("--ntp-server", default=DEFAULT_NTP_SERVER, help="NTP server to query")
    p.add_argument("--timeout", type=float, default=5.0, help="NTP query timeout seconds")

    p.add_argument(
        "--registry",
        default="ieee",
        choices=["ieee", "manuf"],
        help="Vendor registry: ieee (oui.txt, default) or manuf (Wireshark database)",
    )
    p.add_argument("--oui-file", default="oui.txt", help="Path of the cached IEEE oui.txt")
    p.add_argument("--oui-url", default=IEEE_OUI_URL, help="Where to download oui.txt from")
    p.add_argument("--refresh", action="store_true", help="Download oui.txt even if cached")

    p.add_argument(
        "--strict",
        action="store_true",
        help="Reject typical made-up MACs such as xx:xx:xx:01:02:03",
    )
    p.add_argument(
        "--compress",
        action="store_true",
        help="Suppress leading zeros (fd97:a5:a4::/48 instead of fd97:00a5:00a4::/48)",
    )

    out = p.add_mutually_exclusive_group()
    out.add_argument("-v", "--verbose", action="store_true", help="Show inputs and intermediary values")
    out.add_argument("--json", action="store_true", help="Print the result as JSON")
    p.add_argument("--debug", action="store_true", help="Debug logging on stderr")

    return p


def main(argv: list[str] | None = None) -> None:
    err = Console(stderr=True)
    try:
        args = build_parser().parse_args(argv)
        settings = Settings.from_args(args)
        _configure_logging(settings.debug)
        code = cmd_generate(settings)
        raise SystemExit(code)
    except KeyboardInterrupt:
        raise SystemExit(2)
    except InternalInvariantError as e:
        err.print(f"[red]Internal error (this is a bug in gen-ula):[/red] {escape(str(e))}", highlight=False)
        raise SystemExit(3)
    except UlaError as e:
        err.print(f"[red]Error:[/red] {escape(str(e))}", highlight=False)
        raise SystemExit(1)
    except Exception as e:
        log.debug("Unexpected failure", exc_info=True)
        err.print(f"[red]Error:[/red] {escape(str(e))}", highlight=False)
        raise SystemExit(2)
