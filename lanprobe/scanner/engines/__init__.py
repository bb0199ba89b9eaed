# lanprobe/scanner/engines/__init__.py
"""
Network engines.
Each engine gathers one kind of fact about a host; none of them decide
what gets scanned next.
"""
from lanprobe.scanner.engines.ping_engine import PingEngine
from lanprobe.scanner.engines.port_engine import PortEngine
from lanprobe.scanner.engines.dns_engine import DNSEngine
from lanprobe.scanner.engines.ai_probe_engine import AIProbeEngine

# Registry of all available engines.
# ScanOrchestrator builds any engine it is not handed from here.
ALL_ENGINES = {
    "ping": PingEngine,
    "port": PortEngine,
    "dns": DNSEngine,
    "ai_probe": AIProbeEngine,
}

__all__ = [
    "PingEngine", "PortEngine", "DNSEngine", "AIProbeEngine",
    "ALL_ENGINES",
]
