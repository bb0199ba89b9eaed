# lanprobe/scanner/engines/ping_engine.py
"""
Reachability sweep engine.

Sends one ICMP echo per address through the system `ping` binary (raw
ICMP sockets need privileges; the setuid ping does not) and reports the
round-trip time. Sweeps run with a bounded number of pings in flight.

Per-address outcome:
    (True, 3)      replied in ~3 ms
    (True, 0)      replied, RTT not parseable or sub-millisecond
    (False, None)  no reply within the timeout, or ping failed to run

Config options:
    timeout_ms:      int   per-echo timeout (default: 1000)
    max_concurrent:  int   pings in flight at once (default: 256)
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import platform
import re
import shutil
import time
from typing import Awaitable, Callable, Dict, Any, Iterable, Optional, Tuple

from lanprobe.scanner.base import BaseEngine

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    "timeout_ms": 1000,
    "max_concurrent": 256,
}

# "time=0.512 ms", "time=12ms", "time<1ms"
_RTT_RE = re.compile(r"time\s*([=<])\s*([\d.]+)\s*ms", re.IGNORECASE)

# Only a real echo reply carries a TTL. Windows exits 0 on
# "Reply from <gateway>: Destination host unreachable." as well.
_TTL_RE = re.compile(r"\bttl\s*=\s*\d+", re.IGNORECASE)

# (ip, timeout in seconds) → RTT in ms, or None when unreachable
Pinger = Callable[[str, float], Awaitable[Optional[int]]]

# (address, alive, rtt_ms)
SweepCallback = Callable[[Any, bool, Optional[int]], None]


# ---------------------------------------------------------------------------
# System ping
# ---------------------------------------------------------------------------

def _platform_ping_args(timeout_s: float) -> list:
    timeout_ms = max(100, int(timeout_s * 1000))
    system = platform.system().lower()
    if system == "windows":
        return ["ping", "-n", "1", "-w", str(timeout_ms)]
    if system == "darwin":
        return ["ping", "-c", "1", "-W", str(timeout_ms)]
    # Linux takes whole seconds
    return ["ping", "-c", "1", "-W", str(max(1, int(round(timeout_s))))]


def is_echo_reply(output: str) -> bool:
    return bool(_RTT_RE.search(output or "") or _TTL_RE.search(output or ""))


def parse_rtt(output: str) -> int:
    """Round-trip time in ms from ping output; 0 when absent or sub-ms."""
    match = _RTT_RE.search(output or "")
    if not match:
        return 0
    if match.group(1) == "<":
        return 0
    try:
        return int(round(float(match.group(2))))
    except ValueError:
        return 0


async def system_ping(ip: str, timeout_s: float) -> Optional[int]:
    """One echo via the OS ping binary. Returns RTT in ms, or None."""
    if not shutil.which("ping"):
        logger.debug("ping binary not found on PATH")
        return None

    args = _platform_ping_args(timeout_s) + [ip]
    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except OSError as e:
        logger.debug(f"ping {ip}: could not start: {e}")
        return None

    try:
        stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=timeout_s + 0.5)
    except asyncio.TimeoutError:
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
        return None
    except asyncio.CancelledError:
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
        raise

    output = stdout.decode(errors="replace")
    if proc.returncode != 0 or not is_echo_reply(output):
        return None
    return parse_rtt(output)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class PingEngine(BaseEngine):
    """
    Bounded-concurrency ping sweep.

    The pinger is injectable so sweeps can be driven without touching the
    network; by default it shells out to the system ping.
    """

    DEFAULT_CONFIG: Dict[str, Any] = DEFAULT_CONFIG

    def __init__(self, config: Dict[str, Any] | None = None, pinger: Pinger | None = None):
        super().__init__(config)
        self._pinger = pinger or system_ping

    @property
    def name(self) -> str:
        return "ping"

    async def ping(self, address, timeout_ms: int | None = None) -> Tuple[bool, Optional[int]]:
        """Ping one address. Never raises except on cancellation."""
        timeout_ms = timeout_ms or self.config["timeout_ms"]
        try:
            rtt = await self._pinger(str(address), timeout_ms / 1000.0)
        except Exception as e:
            logger.debug(f"ping {address} failed: {e}")
            return False, None
        if rtt is None:
            return False, None
        return True, rtt

    async def sweep(
        self,
        addresses: Iterable,
        on_result: SweepCallback,
        timeout_ms: int | None = None,
        max_concurrent: int | None = None,
    ) -> int:
        """
        Ping every address, invoking on_result exactly once per address
        as its outcome arrives (completion order, not input order).

        Returns the number of live hosts.
        """
        addresses = list(addresses)
        limit = max(1, max_concurrent or self.config["max_concurrent"])
        sem = asyncio.Semaphore(limit)
        alive_count = 0
        start = time.monotonic()

        async def _ping_one(address):
            nonlocal alive_count
            async with sem:
                alive, rtt = await self.ping(address, timeout_ms)
            if alive:
                alive_count += 1
            on_result(address, alive, rtt)

        logger.info(
            "ping: sweeping %d addresses (concurrency=%d, timeout=%dms)",
            len(addresses), limit, timeout_ms or self.config["timeout_ms"],
        )
        await asyncio.gather(*(_ping_one(a) for a in addresses))
        logger.info(
            "ping: %d/%d alive in %.1fs",
            alive_count, len(addresses), time.monotonic() - start,
        )
        return alive_count
