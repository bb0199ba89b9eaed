# lanprobe/scanner/base.py
"""
Core data structures for the lanprobe scan pipeline.

Architecture:
    address range → PingEngine → (per live host) DNSEngine + PortEngine
                  → AIProbeEngine → HostScanRecord

BaseEngine:   Collects facts from the network (ICMP echo, TCP connect,
              reverse DNS, HTTP fingerprint probes). Engines never
              decide what to do with a host; the orchestrator does.

Analyzers:    Pure functions that interpret raw response bodies (detail
              extraction, container inventory). They never touch the
              network.

Every record produced here is immutable once built. The orchestrator
builds a HostScanRecord only when a host's pipeline has fully completed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


# ---------------------------------------------------------------------------
# Fingerprint catalog entries
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProbeDefinition:
    """
    One fingerprint probe: an HTTP GET against `path` plus a match rule.

    Fields:
        path:            Request path, always starting with "/".
        service_name:    Display name of the service this probe identifies.
        category:        Grouping: "LLM", "Image Gen", "ML Platform",
                         "AI Platform", "Vector DB", "MCP Server",
                         "GPU Infra", "Container".
        confidence:      "high" or "medium".
        specificity:     0-100. When several probes match on one port,
                         the highest specificity wins.
        status_code:     Required HTTP status, or None for "any status".
        body_contains:   Case-insensitive substring the body must contain.
        header_contains: Case-insensitive substring the flattened response
                         headers must contain.
        port_hint:       If set, the probe only runs against this port
                         (unless hints are being ignored).
    """
    path: str
    service_name: str
    category: str
    confidence: str
    specificity: int
    status_code: Optional[int] = None
    body_contains: Optional[str] = None
    header_contains: Optional[str] = None
    port_hint: Optional[int] = None

    @property
    def has_content_rule(self) -> bool:
        return self.body_contains is not None or self.header_contains is not None


# ---------------------------------------------------------------------------
# Scan results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PortResult:
    """A TCP port that accepted a connection."""
    port: int
    service_name: str
    is_open: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {"port": self.port, "service": self.service_name}


@dataclass(frozen=True)
class AiServiceResult:
    """
    An identified AI/ML service on one port.

    `details` is a short human-readable summary pulled from the response
    (model names, version, GPU model). Empty when nothing useful was found.
    """
    service_name: str
    category: str
    port: int
    confidence: str
    specificity: int
    details: str = ""

    @property
    def dedupe_key(self) -> str:
        return f"{self.service_name}:{self.port}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "service": self.service_name,
            "category": self.category,
            "port": self.port,
            "confidence": self.confidence,
            "details": self.details,
        }


@dataclass(frozen=True)
class HostScanRecord:
    """
    Everything learned about one address. Built once, after the host's
    pipeline (name lookup, port scan, fingerprinting) has completed.
    """
    ip: str
    hostname: str = ""
    alive: bool = False
    ping_ms: Optional[int] = None
    open_ports: List[PortResult] = field(default_factory=list)
    ai_services: List[AiServiceResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ip": self.ip,
            "hostname": self.hostname,
            "alive": self.alive,
            "ping_ms": self.ping_ms,
            "open_ports": [p.to_dict() for p in self.open_ports],
            "ai_services": [s.to_dict() for s in self.ai_services],
        }


@dataclass(frozen=True)
class ScanProgress:
    """Snapshot of sweep progress, handed to on_progress callbacks."""
    completed: int
    total: int
    alive_count: int
    elapsed_seconds: float

    @property
    def percentage(self) -> float:
        if self.total <= 0:
            return 100.0
        return round(self.completed * 100.0 / self.total, 1)


# ---------------------------------------------------------------------------
# Abstract base class
# ---------------------------------------------------------------------------

class BaseEngine(ABC):
    """
    Abstract base for network-facing engines.

    To create a new engine:
        1. Subclass BaseEngine
        2. Set the `name` property (e.g., "ping", "port", "ai_probe")
        3. Declare DEFAULT_CONFIG with every tunable the engine reads

    Per-instance overrides are merged over DEFAULT_CONFIG, so callers
    only pass what they want to change.
    """

    DEFAULT_CONFIG: Dict[str, Any] = {}

    def __init__(self, config: Dict[str, Any] | None = None):
        self.config: Dict[str, Any] = {**self.DEFAULT_CONFIG, **(config or {})}

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique engine identifier, used in log lines and the registry."""
        ...

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
