# lanprobe/scanner/orchestrator.py
"""
Scan Orchestrator: drives a whole network scan.

Pipeline per scan_range() call:

    1. Expand the range (errors raised here, before any traffic)
    2. Ping sweep every address (bounded concurrency)
    3. As each live host reports in, start its host pipeline at once:
         reverse DNS ‖ TCP port scan → AI fingerprinting of open ports
    4. Publish each HostScanRecord the moment its pipeline finishes
    5. Return every published record, ordered by address

probe_host() runs steps 3-4 for a single address, with a direct ping
for the RTT instead of a sweep.

Cancellation:
    session.cancel()   stops outstanding work; the call returns the
                       records already published (partial result).
    task.cancel()      the usual asyncio cancellation; CancelledError
                       propagates to the caller after in-flight work
                       has been torn down.

Usage:
    from lanprobe.scanner import ScanOrchestrator, ScanSession

    orchestrator = ScanOrchestrator()
    session = ScanSession()
    records = await orchestrator.scan_range("192.168.1.0/24", [80, 11434],
                                            run_ai_probe=True, session=session)
"""

from __future__ import annotations

import asyncio
import contextlib
import ipaddress
import logging
import time
from typing import Callable, List, Optional, Sequence

from lanprobe.config import ScanSettings, load_settings
from lanprobe.scanner.base import HostScanRecord, ScanProgress
from lanprobe.scanner.engines import ALL_ENGINES, AIProbeEngine, DNSEngine, PingEngine, PortEngine
from lanprobe.scanner.targets import expand_range, parse_address

logger = logging.getLogger(__name__)

HostCallback = Callable[[HostScanRecord], None]
ProgressCallback = Callable[[ScanProgress], None]


def _sort_key(record: HostScanRecord) -> int:
    return int(ipaddress.IPv4Address(record.ip))


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

class ScanSession:
    """
    One scan's shared state: the published records, progress counters
    and the cancellation signal.

    All methods must be called on the event loop running the scan; from
    another thread use loop.call_soon_threadsafe(session.cancel).
    """

    def __init__(self, on_host: HostCallback | None = None, on_progress: ProgressCallback | None = None):
        self.on_host = on_host
        self.on_progress = on_progress
        self._records: List[HostScanRecord] = []
        self._lock = asyncio.Lock()
        self._cancelled = asyncio.Event()
        self._started = time.monotonic()
        self.total = 0
        self.completed = 0
        self.alive_count = 0

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    async def wait_cancelled(self) -> None:
        await self._cancelled.wait()

    def begin(self, total: int) -> None:
        """Start a scan on this session. Records and cancellation from an earlier scan are cleared."""
        self._records = []
        self._cancelled.clear()
        self.total = total
        self.completed = 0
        self.alive_count = 0
        self._started = time.monotonic()

    def progress(self) -> ScanProgress:
        return ScanProgress(
            completed=self.completed,
            total=self.total,
            alive_count=self.alive_count,
            elapsed_seconds=round(time.monotonic() - self._started, 2),
        )

    def record_ping(self, alive: bool) -> None:
        self.completed += 1
        if alive:
            self.alive_count += 1
        if self.on_progress:
            self.on_progress(self.progress())

    async def publish(self, record: HostScanRecord) -> None:
        async with self._lock:
            self._records.append(record)
        if self.on_host:
            self.on_host(record)

    @property
    def records(self) -> List[HostScanRecord]:
        return sorted(self._records, key=_sort_key)


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class ScanOrchestrator:
    """
    Wires the engines together. One instance may run many scans, but
    only inside a single event loop (the HTTP client and semaphores are
    bound to the loop that first uses them).
    """

    def __init__(
        self,
        settings: ScanSettings | None = None,
        ping_engine: PingEngine | None = None,
        port_engine: PortEngine | None = None,
        dns_engine: DNSEngine | None = None,
        ai_engine: AIProbeEngine | None = None,
    ):
        self.settings = settings or load_settings()
        self.ping_engine = ping_engine or ALL_ENGINES["ping"](self.settings.ping_config())
        self.port_engine = port_engine or ALL_ENGINES["port"](self.settings.port_config())
        self.dns_engine = dns_engine or ALL_ENGINES["dns"](self.settings.dns_config())
        self.ai_engine = ai_engine or ALL_ENGINES["ai_probe"](self.settings.probe_config())

    async def aclose(self) -> None:
        await self.ai_engine.aclose()

    # ─────────────────────────────────────────────────────
    # Public API
    # ─────────────────────────────────────────────────────

    async def scan_range(
        self,
        ip_range: str,
        ports: Sequence[int],
        run_ai_probe: bool = False,
        skip_ping: bool = False,
        ignore_port_hints: bool = False,
        session: ScanSession | None = None,
        on_host: HostCallback | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> List[HostScanRecord]:
        """
        Sweep `ip_range` and scan every live host (every host, when
        skip_ping is set). Raises RangeError for a bad range.

        on_progress fires after every ping outcome; on_host fires once
        per host, as soon as its record is complete.
        """
        addresses = expand_range(ip_range)
        session = session or ScanSession()
        if on_host:
            session.on_host = on_host
        if on_progress:
            session.on_progress = on_progress
        session.begin(len(addresses))

        logger.info(
            f"Scan started: {ip_range} ({len(addresses)} addresses, {len(ports)} ports, "
            f"ai={'on' if run_ai_probe else 'off'}, skip_ping={skip_ping})"
        )
        work = self._sweep_and_scan(
            addresses, list(ports), run_ai_probe, skip_ping, ignore_port_hints, session,
        )
        await self._run(work, session)

        records = session.records
        logger.info(
            f"Scan {'cancelled' if session.cancelled else 'finished'}: {ip_range} "
            f"→ {session.alive_count} alive, {len(records)} scanned, "
            f"{sum(len(r.ai_services) for r in records)} AI services "
            f"in {session.progress().elapsed_seconds}s"
        )
        return records

    async def probe_host(
        self,
        ip: str,
        ports: Sequence[int],
        run_ai_probe: bool = False,
        ignore_port_hints: bool = False,
        session: ScanSession | None = None,
    ) -> Optional[HostScanRecord]:
        """
        Scan one address regardless of whether it answers ping. Returns
        None only if the session was cancelled before the host finished.
        """
        address = parse_address(ip)
        session = session or ScanSession()
        session.begin(1)

        async def _work():
            alive, rtt = await self.ping_engine.ping(address)
            session.record_ping(alive)
            await self._scan_host(address, alive, rtt, list(ports), run_ai_probe, ignore_port_hints, session)

        await self._run(_work(), session)
        records = session.records
        return records[0] if records else None

    # ─────────────────────────────────────────────────────
    # Internals
    # ─────────────────────────────────────────────────────

    async def _run(self, work, session: ScanSession) -> None:
        """Run `work` until it finishes or the session is cancelled."""
        work_task = asyncio.ensure_future(work)
        cancel_task = asyncio.ensure_future(session.wait_cancelled())
        try:
            await asyncio.wait({work_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
            if work_task.done():
                work_task.result()
            else:
                logger.info("Scan cancellation requested; stopping in-flight work")
        finally:
            cancel_task.cancel()
            if not work_task.done():
                work_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await work_task

    async def _sweep_and_scan(
        self,
        addresses: List[ipaddress.IPv4Address],
        ports: List[int],
        run_ai_probe: bool,
        skip_ping: bool,
        ignore_port_hints: bool,
        session: ScanSession,
    ) -> None:
        host_tasks: List[asyncio.Task] = []

        def on_ping(address, alive: bool, rtt: Optional[int]) -> None:
            session.record_ping(alive)
            if alive or skip_ping:
                host_tasks.append(asyncio.ensure_future(
                    self._scan_host(address, alive, rtt, ports, run_ai_probe, ignore_port_hints, session)
                ))

        try:
            await self.ping_engine.sweep(addresses, on_ping)
            if host_tasks:
                await asyncio.gather(*host_tasks)
        finally:
            pending = [t for t in host_tasks if not t.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

    async def _scan_host(
        self,
        address: ipaddress.IPv4Address,
        alive: bool,
        rtt: Optional[int],
        ports: List[int],
        run_ai_probe: bool,
        ignore_port_hints: bool,
        session: ScanSession,
    ) -> None:
        ip = str(address)
        hostname, open_ports = await asyncio.gather(
            self.dns_engine.resolve(ip),
            self.port_engine.scan(ip, ports),
        )

        ai_services = []
        if run_ai_probe and open_ports:
            ai_services = await self.ai_engine.probe_all(
                ip, [p.port for p in open_ports], ignore_port_hints,
            )

        record = HostScanRecord(
            ip=ip,
            hostname=hostname,
            alive=alive,
            ping_ms=rtt if alive else None,
            open_ports=open_ports,
            ai_services=ai_services,
        )
        await session.publish(record)
        logger.debug(
            f"Host done: {ip} ({hostname or '-'}) ports={[p.port for p in open_ports]} "
            f"ai={[s.service_name for s in ai_services]}"
        )
