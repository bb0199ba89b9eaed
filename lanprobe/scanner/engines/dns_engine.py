# lanprobe/scanner/engines/dns_engine.py
"""
Reverse DNS engine.

Looks up the PTR record for an address with dnspython's async resolver,
then falls back to the system resolver (socket.gethostbyaddr, which also
consults /etc/hosts, mDNS and NetBIOS where the OS supports them).

Output: hostname without trailing dot, or "" when nothing resolves.
Lookups never raise except on cancellation.

Config options:
    timeout:              float  per-lookup timeout in seconds (default: 2)
    use_system_fallback:  bool   try socket.gethostbyaddr (default: True)
"""

from __future__ import annotations

import asyncio
import logging
import socket
from typing import Any, Dict, Optional

import dns.asyncresolver
import dns.exception

from lanprobe.scanner.base import BaseEngine

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    "timeout": 2.0,
    "use_system_fallback": True,
}


class DNSEngine(BaseEngine):

    DEFAULT_CONFIG: Dict[str, Any] = DEFAULT_CONFIG

    def __init__(self, config: Dict[str, Any] | None = None):
        super().__init__(config)
        self._resolver: Optional[dns.asyncresolver.Resolver] = None
        self._resolver_unavailable = False

    @property
    def name(self) -> str:
        return "dns"

    def _get_resolver(self) -> Optional[dns.asyncresolver.Resolver]:
        if self._resolver is None and not self._resolver_unavailable:
            try:
                resolver = dns.asyncresolver.Resolver()
            except dns.exception.DNSException as e:
                logger.debug(f"dns: no resolver configuration ({e}); using system lookup only")
                self._resolver_unavailable = True
                return None
            resolver.timeout = self.config["timeout"]
            resolver.lifetime = self.config["timeout"]
            self._resolver = resolver
        return self._resolver

    async def resolve(self, address) -> str:
        """Best-effort hostname for `address`."""
        ip = str(address)
        hostname = await self._lookup_ptr(ip)
        if not hostname and self.config["use_system_fallback"]:
            hostname = await self._lookup_system(ip)
        return hostname

    async def _lookup_ptr(self, ip: str) -> str:
        resolver = self._get_resolver()
        if resolver is None:
            return ""
        try:
            answer = await resolver.resolve_address(ip)
        except (dns.exception.DNSException, OSError, ValueError) as e:
            logger.debug(f"dns: PTR {ip} failed: {type(e).__name__}")
            return ""
        for rdata in answer:
            return str(rdata).rstrip(".")
        return ""

    async def _lookup_system(self, ip: str) -> str:
        loop = asyncio.get_running_loop()
        try:
            hostname, _, _ = await asyncio.wait_for(
                loop.run_in_executor(None, socket.gethostbyaddr, ip),
                timeout=self.config["timeout"],
            )
        except (socket.herror, socket.gaierror, OSError, asyncio.TimeoutError):
            return ""
        return (hostname or "").rstrip(".")
