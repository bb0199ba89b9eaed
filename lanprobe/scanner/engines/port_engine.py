# lanprobe/scanner/engines/port_engine.py
"""
TCP connect port scan engine.

A port counts as open when a full TCP handshake completes within the
timeout. The connection is closed immediately; nothing is sent.

Output: List[PortResult] in ascending port order, open ports only.

Config options:
    timeout_ms:      int   per-connect timeout (default: 2000)
    max_concurrent:  int   connects in flight per host (default: 64)
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from lanprobe.scanner.base import BaseEngine, PortResult

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    "timeout_ms": 2000,
    "max_concurrent": 64,
}

# (ip, port, timeout in seconds) → connected?
Connector = Callable[[str, int, float], Awaitable[bool]]

SERVICE_NAMES: Dict[int, str] = {
    20: "ftp-data", 21: "ftp", 22: "ssh", 23: "telnet", 25: "smtp",
    53: "dns", 67: "dhcp", 68: "dhcp", 69: "tftp", 80: "http",
    110: "pop3", 111: "rpcbind", 119: "nntp", 123: "ntp", 135: "msrpc",
    137: "netbios-ns", 138: "netbios-dgm", 139: "netbios-ssn", 143: "imap",
    161: "snmp", 162: "snmptrap", 179: "bgp", 389: "ldap", 443: "https",
    445: "smb", 465: "smtps", 500: "isakmp", 514: "syslog", 515: "printer",
    520: "rip", 587: "submission", 631: "ipp", 636: "ldaps", 993: "imaps",
    995: "pop3s", 1080: "socks", 1433: "mssql", 1434: "mssql-m",
    1521: "oracle", 1723: "pptp", 2049: "nfs", 2082: "cpanel",
    2083: "cpanels", 2086: "whm", 2087: "whms", 3306: "mysql", 3389: "rdp",
    5432: "postgresql", 5900: "vnc", 5901: "vnc-1", 6379: "redis",
    8080: "http-alt", 8443: "https-alt", 8888: "http-alt2",
    9090: "zeus-admin", 9200: "elasticsearch", 27017: "mongodb",
}


def service_name(port: int) -> str:
    return SERVICE_NAMES.get(port, "unknown")


async def tcp_connect(ip: str, port: int, timeout_s: float) -> bool:
    """Attempt one TCP handshake. Any failure or timeout means closed."""
    try:
        _, writer = await asyncio.wait_for(asyncio.open_connection(ip, port), timeout=timeout_s)
    except (OSError, asyncio.TimeoutError):
        return False
    writer.close()
    with contextlib.suppress(Exception):
        await writer.wait_closed()
    return True


class PortEngine(BaseEngine):
    """Per-host TCP connect scan with bounded concurrency."""

    DEFAULT_CONFIG: Dict[str, Any] = DEFAULT_CONFIG

    def __init__(self, config: Dict[str, Any] | None = None, connector: Connector | None = None):
        super().__init__(config)
        self._connect = connector or tcp_connect

    @property
    def name(self) -> str:
        return "port"

    async def check_port(self, ip: str, port: int, timeout_ms: int | None = None) -> bool:
        timeout_ms = timeout_ms or self.config["timeout_ms"]
        try:
            return bool(await self._connect(ip, port, timeout_ms / 1000.0))
        except Exception as e:
            logger.debug(f"connect {ip}:{port} failed: {e}")
            return False

    async def scan(
        self,
        ip: str,
        ports: Iterable[int],
        timeout_ms: int | None = None,
        max_concurrent: int | None = None,
    ) -> List[PortResult]:
        """Scan `ports` on `ip`. Returns open ports sorted ascending."""
        ports = list(dict.fromkeys(ports))
        if not ports:
            return []

        sem = asyncio.Semaphore(max(1, max_concurrent or self.config["max_concurrent"]))

        async def _check(port: int) -> Optional[PortResult]:
            async with sem:
                is_open = await self.check_port(ip, port, timeout_ms)
            return PortResult(port=port, service_name=service_name(port)) if is_open else None

        outcomes = await asyncio.gather(*(_check(p) for p in ports))
        open_ports = sorted((r for r in outcomes if r is not None), key=lambda r: r.port)

        logger.debug(f"port: {ip} → {len(open_ports)}/{len(ports)} open")
        return open_ports
