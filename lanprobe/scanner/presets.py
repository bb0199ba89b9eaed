# lanprobe/scanner/presets.py
"""
Named port lists.

    quick      6 everyday ports
    common     22 well-known service ports
    extended   the full well-known table used for service naming
    ai         default ports of local AI/ML runtimes and their tooling
    none       no port scan at all (sweep + name lookup only)
    all        every TCP port, 1-65535. Accepted everywhere but not
               listed, because it is slow enough that callers should
               ask for it by name.

Unknown preset names fall back to "quick". Selecting "ai" or "all"
turns on AI service fingerprinting; "all" additionally ignores probe
port hints so every probe runs against every open port.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional

DEFAULT_PRESET = "quick"

QUICK_PORTS = (80, 443, 22, 21, 3389, 8080)

COMMON_PORTS = (
    20, 21, 22, 23, 25, 53, 80, 110, 111, 135, 139, 143, 443, 445,
    993, 995, 1723, 3306, 3389, 5900, 8080, 8443,
)

EXTENDED_PORTS = (
    20, 21, 22, 23, 25, 53, 67, 68, 69, 80, 110, 111, 119, 123, 135,
    137, 138, 139, 143, 161, 162, 179, 389, 443, 445, 465, 500, 514,
    515, 520, 587, 631, 636, 993, 995, 1080, 1433, 1434, 1521, 1723,
    2049, 2082, 2083, 2086, 2087, 3306, 3389, 5432, 5900, 5901, 6379,
    8080, 8443, 8888, 9090, 9200, 27017,
)

AI_PORTS = (
    11434, 8000, 8080, 1234, 1337, 4891, 5001, 3000, 4000, 7860, 8188,
    8081, 8082, 8265, 8500, 8501, 47334, 47335, 3001, 3080, 5000, 8002,
    9400, 2375, 8443, 21001, 21002,
)

PRESETS: Dict[str, tuple] = {
    "quick": QUICK_PORTS,
    "common": COMMON_PORTS,
    "extended": EXTENDED_PORTS,
    "ai": AI_PORTS,
    "none": (),
}

PRESET_DESCRIPTIONS = {
    "quick": "Everyday ports: HTTP, HTTPS, SSH, FTP, RDP, HTTP-alt",
    "common": "Well-known service ports",
    "extended": "Extended well-known port table",
    "ai": "Default ports of local AI/ML runtimes, vector DBs and GPU exporters",
    "none": "No port scan (host discovery and name lookup only)",
}

ALL_PRESET = "all"
AI_PRESET = "ai"

# Presets whose port lists are fixed; extra/removed ports are ignored.
_FIXED_PRESETS = {ALL_PRESET, "none"}


def normalize_preset(name: Optional[str]) -> str:
    """Lower-case a preset name, mapping unknown names to the default."""
    key = (name or "").strip().lower()
    if key in PRESETS or key == ALL_PRESET:
        return key
    return DEFAULT_PRESET


def ports_for_preset(name: Optional[str]) -> List[int]:
    key = normalize_preset(name)
    if key == ALL_PRESET:
        return list(range(1, 65536))
    return list(PRESETS[key])


def preset_runs_ai(name: Optional[str]) -> bool:
    return normalize_preset(name) in (AI_PRESET, ALL_PRESET)


def preset_ignores_port_hints(name: Optional[str]) -> bool:
    return normalize_preset(name) == ALL_PRESET


def parse_port_list(text: Optional[str]) -> List[int]:
    """
    Parse "8000, 9000,abc,70000" → [8000, 9000].
    Entries that are not integers in 1-65535 are dropped silently.
    """
    ports: List[int] = []
    for chunk in (text or "").split(","):
        chunk = chunk.strip()
        if not re.fullmatch(r"\d+", chunk, re.ASCII):
            continue
        port = int(chunk)
        if 1 <= port <= 65535 and port not in ports:
            ports.append(port)
    return ports


def resolve_ports(
    preset: Optional[str],
    extra: Iterable[int] = (),
    removed: Iterable[int] = (),
) -> List[int]:
    """
    Final port list for a scan: the preset, plus `extra`, minus `removed`.

    Removals never apply to the "ai" preset, and neither additions nor
    removals apply to "all" or "none".
    """
    key = normalize_preset(preset)
    ports = ports_for_preset(key)
    if key in _FIXED_PRESETS:
        return ports

    for port in extra:
        if 1 <= port <= 65535 and port not in ports:
            ports.append(port)

    if key != AI_PRESET:
        drop = set(removed)
        ports = [p for p in ports if p not in drop]
    return ports


def list_presets() -> List[Dict[str, object]]:
    """Listed presets with their ports, in presentation order."""
    return [
        {
            "name": name,
            "description": PRESET_DESCRIPTIONS[name],
            "port_count": len(ports),
            "ports": list(ports),
        }
        for name, ports in PRESETS.items()
    ]
