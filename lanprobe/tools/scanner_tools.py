# lanprobe/tools/scanner_tools.py
"""
Synchronous scan tools.

Thin, dict-in/dict-out wrappers around ScanOrchestrator for callers that
are not running an event loop (the CLI, scripts, agent tool adapters).
Each call builds its own orchestrator and event loop.

Tools:
    - run_scan_network    (range + preset)
    - run_probe_host      (single IP + ports or preset)
    - run_list_presets
    - run_export_results  (last scan/probe → JSON or CSV file)

Host dicts follow one contract everywhere:
    {"ip", "hostname", "alive", "ping_ms",
     "open_ports": [{"port", "service"}],
     "ai_services": [{"service", "category", "port", "confidence", "details"}]}
"""

from __future__ import annotations

import asyncio
import csv
import json
import logging
import os
import re
import threading
from typing import Any, Dict, List, Optional

from lanprobe.config import ScanSettings, load_settings
from lanprobe.scanner.orchestrator import ScanOrchestrator
from lanprobe.scanner.presets import (
    AI_PORTS,
    list_presets,
    normalize_preset,
    parse_port_list,
    preset_ignores_port_hints,
    preset_runs_ai,
    resolve_ports,
)
from lanprobe.scanner.targets import detect_local_subnet

logger = logging.getLogger(__name__)

CSV_COLUMNS = ["ip", "hostname", "alive", "ping_ms", "open_ports", "ai_services"]


# ═══════════════════════════════════════════════════════════════
# LAST RESULTS STORE
# ═══════════════════════════════════════════════════════════════

_last_results: List[Dict[str, Any]] = []
_last_results_lock = threading.Lock()


def remember_results(hosts: List[Dict[str, Any]]) -> None:
    global _last_results
    with _last_results_lock:
        _last_results = list(hosts)


def last_results() -> List[Dict[str, Any]]:
    with _last_results_lock:
        return list(_last_results)


# ═══════════════════════════════════════════════════════════════
# EVENT LOOP
# ═══════════════════════════════════════════════════════════════

def _run(orchestrator: ScanOrchestrator, coro):
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.run_until_complete(orchestrator.aclose())
        loop.close()
        asyncio.set_event_loop(None)


# ═══════════════════════════════════════════════════════════════
# TOOLS
# ═══════════════════════════════════════════════════════════════

def run_scan_network(
    ip_range: Optional[str] = None,
    preset: str = "quick",
    skip_ping: bool = False,
    extra_ports: Optional[List[int]] = None,
    remove_ports: Optional[List[int]] = None,
    settings: Optional[ScanSettings] = None,
    orchestrator: Optional[ScanOrchestrator] = None,
) -> List[Dict[str, Any]]:
    """
    Sweep a range and scan its live hosts.

    Args:
        ip_range:     CIDR, range or single IP. Defaults to the local /24.
        preset:       quick, common, extended, ai, none (or all).
        skip_ping:    Scan every address, not just those answering ping.
        extra_ports:  Added to the preset's ports.
        remove_ports: Removed from the preset's ports (ignored for "ai").

    Returns:
        List of host dicts, ordered by address.

    Raises:
        RangeError for an invalid range.
    """
    ip_range = ip_range or detect_local_subnet()
    ports = resolve_ports(preset, extra_ports or (), remove_ports or ())
    orchestrator = orchestrator or ScanOrchestrator(settings or load_settings())

    records = _run(orchestrator, orchestrator.scan_range(
        ip_range,
        ports,
        run_ai_probe=preset_runs_ai(preset),
        skip_ping=skip_ping,
        ignore_port_hints=preset_ignores_port_hints(preset),
    ))
    hosts = [r.to_dict() for r in records]
    remember_results(hosts)
    return hosts


def _ports_for_probe(ports: str) -> tuple:
    """(port list, run AI?, ignore hints?) for a probe_host `ports` argument."""
    text = (ports or "").strip()
    if re.fullmatch(r"\d+", text.split(",")[0].strip(), re.ASCII):
        port_list = parse_port_list(text)
        return port_list, bool(set(port_list) & set(AI_PORTS)), False

    # Anything else is a preset name; unknown names scan the quick preset.
    key = normalize_preset(text)
    port_list = resolve_ports(key)
    run_ai = preset_runs_ai(key) or bool(set(port_list) & set(AI_PORTS))
    return port_list, run_ai, preset_ignores_port_hints(key)


def run_probe_host(
    ip: str,
    ports: str = "ai",
    settings: Optional[ScanSettings] = None,
    orchestrator: Optional[ScanOrchestrator] = None,
) -> Dict[str, Any]:
    """
    Deep-scan a single host.

    Args:
        ip:    Target IPv4 address.
        ports: Comma-separated ports ("8000,11434") or a preset name.

    Returns:
        One host dict.

    Raises:
        MalformedRange for an invalid IP.
    """
    port_list, run_ai, ignore_hints = _ports_for_probe(ports)
    orchestrator = orchestrator or ScanOrchestrator(settings or load_settings())

    record = _run(orchestrator, orchestrator.probe_host(
        ip, port_list, run_ai_probe=run_ai, ignore_port_hints=ignore_hints,
    ))
    host = record.to_dict() if record else {
        "ip": ip, "hostname": "", "alive": False, "ping_ms": None,
        "open_ports": [], "ai_services": [],
    }
    remember_results([host])
    return host


def run_list_presets() -> List[Dict[str, Any]]:
    return list_presets()


def run_export_results(file_path: str, format: str = "auto") -> Dict[str, Any]:
    """
    Write the most recent scan or probe results to disk.

    format: "json", "csv" or "auto" (by file extension; .csv → CSV,
    anything else → JSON).
    """
    hosts = last_results()
    if not hosts:
        return {"error": "No scan results to export. Run a scan or probe first."}

    fmt = (format or "auto").lower()
    if fmt == "auto":
        fmt = "csv" if file_path.lower().endswith(".csv") else "json"
    if fmt not in ("csv", "json"):
        return {"error": f"Unsupported export format: {format!r}"}

    directory = os.path.dirname(os.path.abspath(file_path))
    os.makedirs(directory, exist_ok=True)

    if fmt == "csv":
        _write_csv(file_path, hosts)
    else:
        with open(file_path, "w", encoding="utf-8") as fh:
            json.dump(hosts, fh, indent=2)

    logger.info(f"Exported {len(hosts)} hosts to {file_path} ({fmt})")
    return {"exported": len(hosts), "path": os.path.abspath(file_path), "format": fmt}


def _write_csv(file_path: str, hosts: List[Dict[str, Any]]) -> None:
    with open(file_path, "w", encoding="utf-8", newline="") as fh:
        writer = csv.writer(fh)
        writer.writerow(CSV_COLUMNS)
        for host in hosts:
            writer.writerow([
                host["ip"],
                host.get("hostname") or "",
                str(bool(host.get("alive"))).lower(),
                "" if host.get("ping_ms") is None else host["ping_ms"],
                ";".join(f"{p['port']}/{p['service']}" for p in host.get("open_ports", [])),
                ";".join(f"{s['service']}:{s['port']}" for s in host.get("ai_services", [])),
            ])
