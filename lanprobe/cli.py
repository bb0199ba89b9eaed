# lanprobe/cli.py
"""
Command line interface.

Usage:
    lanprobe scan [RANGE] [--preset ai] [--skip-ping] [--extra-ports 9000,9001]
                  [--remove-ports 22] [--json] [--output results.csv]
    lanprobe probe IP [--ports ai | --ports 8000,11434] [--json] [--output FILE]
    lanprobe presets

RANGE defaults to the local /24. Ctrl-C during a scan stops it and
prints whatever hosts had already finished (exit code 130).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, List

from lanprobe import __version__
from lanprobe.config import load_settings, log_level
from lanprobe.scanner.orchestrator import ScanOrchestrator, ScanSession
from lanprobe.scanner.presets import (
    DEFAULT_PRESET,
    PRESETS,
    parse_port_list,
    preset_ignores_port_hints,
    preset_runs_ai,
    resolve_ports,
)
from lanprobe.scanner.targets import RangeError, detect_local_subnet
from lanprobe.tools.scanner_tools import (
    remember_results,
    run_export_results,
    run_list_presets,
    run_probe_host,
)

logger = logging.getLogger("lanprobe")

EXIT_OK = 0
EXIT_BAD_INPUT = 2
EXIT_INTERRUPTED = 130


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else log_level(),
        format="%(asctime)s %(levelname)-7s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lanprobe",
        description="Discover LAN hosts and fingerprint the AI/ML services they expose.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command")

    scan = sub.add_parser("scan", help="Sweep a range and scan live hosts")
    scan.add_argument("range", nargs="?", help="CIDR, a-b range or single IP (default: local /24)")
    scan.add_argument(
        "--preset", default=DEFAULT_PRESET,
        help=f"Port preset: {', '.join(PRESETS)} or all (default: {DEFAULT_PRESET})",
    )
    scan.add_argument("--skip-ping", action="store_true", help="Scan hosts that do not answer ping")
    scan.add_argument("--extra-ports", default="", help="Comma-separated ports to add")
    scan.add_argument("--remove-ports", default="", help="Comma-separated ports to drop")
    scan.add_argument("--json", action="store_true", help="Print results as JSON")
    scan.add_argument("--output", help="Also write results to FILE (.csv or .json)")

    probe = sub.add_parser("probe", help="Deep-scan one host")
    probe.add_argument("ip", help="Target IPv4 address")
    probe.add_argument("--ports", default="ai", help="Comma-separated ports or a preset name (default: ai)")
    probe.add_argument("--json", action="store_true", help="Print result as JSON")
    probe.add_argument("--output", help="Also write the result to FILE (.csv or .json)")

    sub.add_parser("presets", help="List port presets")
    return parser


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

def format_host(host: Dict[str, Any]) -> str:
    name = f" ({host['hostname']})" if host.get("hostname") else ""
    ping = f"{host['ping_ms']}ms" if host.get("ping_ms") is not None else "no ping"
    lines = [f"{host['ip']}{name}  [{ping}]"]

    if host.get("open_ports"):
        ports = ", ".join(f"{p['port']}/{p['service']}" for p in host["open_ports"])
        lines.append(f"    ports: {ports}")
    for svc in host.get("ai_services", []):
        line = f"    AI: {svc['service']} on {svc['port']} [{svc['category']}, {svc['confidence']}]"
        if svc.get("details"):
            line += f" {svc['details']}"
        lines.append(line)
    return "\n".join(lines)


def _emit(hosts: List[Dict[str, Any]], as_json: bool) -> None:
    if as_json:
        print(json.dumps(hosts, indent=2))
        return
    for host in hosts:
        print(format_host(host))
    ai_total = sum(len(h.get("ai_services", [])) for h in hosts)
    print(f"\n{len(hosts)} host(s), {ai_total} AI service(s)")


def _export(path: str | None) -> None:
    if not path:
        return
    outcome = run_export_results(path)
    if "error" in outcome:
        logger.warning(outcome["error"])
    else:
        logger.info(f"Wrote {outcome['exported']} host(s) to {outcome['path']}")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_scan(args: argparse.Namespace) -> int:
    ip_range = args.range or detect_local_subnet()
    ports = resolve_ports(
        args.preset, parse_port_list(args.extra_ports), parse_port_list(args.remove_ports),
    )
    orchestrator = ScanOrchestrator(load_settings())

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    session = ScanSession()
    task = loop.create_task(orchestrator.scan_range(
        ip_range,
        ports,
        run_ai_probe=preset_runs_ai(args.preset),
        skip_ping=args.skip_ping,
        ignore_port_hints=preset_ignores_port_hints(args.preset),
        session=session,
    ))

    interrupted = False
    try:
        try:
            records = loop.run_until_complete(task)
        except KeyboardInterrupt:
            interrupted = True
            logger.warning("Interrupted; collecting finished hosts")
            session.cancel()
            if task.done():
                records = session.records
            else:
                records = loop.run_until_complete(task)
    except RangeError as e:
        print(f"Invalid range: {e}", file=sys.stderr)
        return EXIT_BAD_INPUT
    finally:
        loop.run_until_complete(orchestrator.aclose())
        loop.close()
        asyncio.set_event_loop(None)

    hosts = [r.to_dict() for r in records]
    remember_results(hosts)
    _emit(hosts, args.json)
    _export(args.output)
    return EXIT_INTERRUPTED if interrupted else EXIT_OK


def cmd_probe(args: argparse.Namespace) -> int:
    try:
        host = run_probe_host(args.ip, args.ports)
    except RangeError as e:
        print(f"Invalid address: {e}", file=sys.stderr)
        return EXIT_BAD_INPUT
    _emit([host], args.json)
    _export(args.output)
    return EXIT_OK


def cmd_presets(args: argparse.Namespace) -> int:
    for preset in run_list_presets():
        ports = ", ".join(str(p) for p in preset["ports"]) or "-"
        print(f"{preset['name']:<9} {preset['port_count']:>3} ports  {ports}")
    print("all       65535 ports  1-65535 (AI detection, every probe on every port)")
    return EXIT_OK


COMMANDS = {
    "scan": cmd_scan,
    "probe": cmd_probe,
    "presets": cmd_presets,
}


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return EXIT_BAD_INPUT

    configure_logging(args.verbose)
    return COMMANDS[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
