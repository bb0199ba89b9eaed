# lanprobe/scanner/engines/ai_probe_engine.py
"""
AI service fingerprinting engine.

For each open port, runs the eligible fingerprint probes (see
lanprobe.scanner.fingerprints) in catalog order and keeps the single
best match. Across a host's ports the results are deduplicated, Docker
daemons are asked for their AI containers, and the list is ordered by
specificity.

Match rule for one probe:
    1. GET {scheme}://{ip}:{port}{path}; any transport failure → no match
    2. status_code declared and different → no match
    3. no body/header rule → match on status alone (details extracted)
    4. body_contains declared → case-insensitive body match (details extracted)
    5. header_contains declared → case-insensitive match over the
       flattened "Name: v1,v2 Name2: v3" header string (no details)

Concurrency: one semaphore per engine instance bounds the number of
ports being fingerprinted at once across every host the engine serves.
A port holds its slot while its probes run one after another.

Config options:
    timeout:         float  per-request timeout in seconds (default: 3)
    max_concurrent:  int    ports fingerprinted at once (default: 32)
    user_agent:      str    sent with every probe
    verify_tls:      bool   verify certificates on TLS ports (default: False)
"""

from __future__ import annotations

import asyncio
import logging
from functools import reduce
from typing import Any, Dict, Iterable, List, Optional

import httpx

from lanprobe import __version__
from lanprobe.scanner.analyzers.container_inventory import summarize_ai_containers
from lanprobe.scanner.analyzers.detail_extractors import extract_details
from lanprobe.scanner.base import AiServiceResult, BaseEngine, ProbeDefinition
from lanprobe.scanner.fingerprints import (
    DOCKER_SERVICE,
    FINGERPRINTS,
    probes_for_port,
    scheme_for_port,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    "timeout": 3.0,
    "max_concurrent": 32,
    "user_agent": f"lanprobe/{__version__}",
    "verify_tls": False,
}


def flatten_headers(headers: httpx.Headers) -> str:
    """'Server: uvicorn Content-Type: application/json' style header string."""
    entries = []
    for key in headers.keys():
        entries.append(f"{key}: {','.join(headers.get_list(key))}")
    return " ".join(entries)


def prefer(best: Optional[AiServiceResult], candidate: Optional[AiServiceResult]) -> Optional[AiServiceResult]:
    """Keep `best` unless `candidate` is strictly more specific."""
    if candidate is None:
        return best
    if best is None or candidate.specificity > best.specificity:
        return candidate
    return best


def dedupe_results(results: Iterable[Optional[AiServiceResult]]) -> List[AiServiceResult]:
    """Drop Nones and repeated service:port pairs; first occurrence wins."""
    seen = set()
    unique: List[AiServiceResult] = []
    for result in results:
        if result is None or result.dedupe_key in seen:
            continue
        seen.add(result.dedupe_key)
        unique.append(result)
    return unique


class AIProbeEngine(BaseEngine):
    """
    HTTP fingerprint prober.

    Owns one httpx.AsyncClient (created lazily, closed with aclose()).
    A client passed in by the caller is used as-is and never closed here.
    """

    DEFAULT_CONFIG: Dict[str, Any] = DEFAULT_CONFIG

    def __init__(
        self,
        config: Dict[str, Any] | None = None,
        client: httpx.AsyncClient | None = None,
        catalog: List[ProbeDefinition] | None = None,
    ):
        super().__init__(config)
        self.catalog = list(FINGERPRINTS if catalog is None else catalog)
        self._client = client
        self._owns_client = client is None
        self._semaphore = asyncio.Semaphore(max(1, self.config["max_concurrent"]))

    @property
    def name(self) -> str:
        return "ai_probe"

    # ─────────────────────────────────────────────────────
    # Client lifecycle
    # ─────────────────────────────────────────────────────

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config["timeout"]),
                follow_redirects=False,
                verify=self.config["verify_tls"],
                trust_env=False,
                headers={"User-Agent": self.config["user_agent"]},
            )
        return self._client

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "AIProbeEngine":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    # ─────────────────────────────────────────────────────
    # Single port
    # ─────────────────────────────────────────────────────

    async def probe(self, ip: str, port: int, ignore_port_hints: bool = False) -> Optional[AiServiceResult]:
        """Best fingerprint match on one port, or None."""
        async with self._semaphore:
            matches = []
            for probe_def in probes_for_port(port, ignore_port_hints, self.catalog):
                matches.extend(await self._run_probe(ip, port, probe_def))
        best = reduce(prefer, matches, None)
        if best:
            logger.debug(f"ai_probe: {ip}:{port} → {best.service_name} ({best.specificity})")
        return best

    async def _fetch(self, url: str) -> Optional[httpx.Response]:
        try:
            return await self._get_client().get(
                url, headers={"User-Agent": self.config["user_agent"]},
            )
        except Exception as e:
            logger.debug(f"ai_probe: GET {url} failed: {type(e).__name__}: {e}")
            return None

    async def _run_probe(self, ip: str, port: int, probe_def: ProbeDefinition) -> List[AiServiceResult]:
        url = f"{scheme_for_port(port)}://{ip}:{port}{probe_def.path}"
        response = await self._fetch(url)
        if response is None:
            return []

        if probe_def.status_code is not None and response.status_code != probe_def.status_code:
            return []

        if not probe_def.has_content_rule:
            if probe_def.status_code is None:
                return []
            return [self._result(probe_def, port, response.text)]

        matches = []
        if probe_def.body_contains is not None:
            body = response.text
            if probe_def.body_contains.lower() not in body.lower():
                return []
            matches.append(self._result(probe_def, port, body))

        if probe_def.header_contains is not None:
            header_text = flatten_headers(response.headers)
            if probe_def.header_contains.lower() in header_text.lower():
                matches.append(self._result(probe_def, port))
        return matches

    @staticmethod
    def _result(probe_def: ProbeDefinition, port: int, body: str | None = None) -> AiServiceResult:
        details = ""
        if body is not None:
            try:
                details = extract_details(probe_def.service_name, probe_def.path, body)
            except Exception as e:
                logger.debug(f"Details unavailable for {probe_def.service_name} on port {port}: {e}")
        return AiServiceResult(
            service_name=probe_def.service_name,
            category=probe_def.category,
            port=port,
            confidence=probe_def.confidence,
            specificity=probe_def.specificity,
            details=details,
        )

    # ─────────────────────────────────────────────────────
    # Whole host
    # ─────────────────────────────────────────────────────

    async def probe_all(self, ip: str, ports: Iterable[int], ignore_port_hints: bool = False) -> List[AiServiceResult]:
        """
        Fingerprint every port on a host.

        Results are deduplicated on service:port, Docker daemons get their
        AI container list folded into details, and the final list is
        ordered by specificity (highest first; ties keep discovery order).
        """
        ports = list(ports)
        if not ports:
            return []

        outcomes = await asyncio.gather(*(self.probe(ip, p, ignore_port_hints) for p in ports))
        results = dedupe_results(outcomes)

        for i, result in enumerate(results):
            if result.service_name != DOCKER_SERVICE:
                continue
            containers = await self.list_ai_containers(ip, result.port)
            if containers:
                results[i] = AiServiceResult(
                    service_name=result.service_name,
                    category=result.category,
                    port=result.port,
                    confidence=result.confidence,
                    specificity=result.specificity,
                    details=", ".join(containers),
                )
            break

        results.sort(key=lambda r: r.specificity, reverse=True)
        if results:
            logger.info(
                "ai_probe: %s → %s", ip,
                ", ".join(f"{r.service_name}:{r.port}" for r in results),
            )
        return results

    async def list_ai_containers(self, ip: str, port: int) -> List[str]:
        """AI containers on a Docker daemon. Any failure yields []."""
        url = f"{scheme_for_port(port)}://{ip}:{port}/containers/json"
        async with self._semaphore:
            response = await self._fetch(url)
        if response is None or response.status_code != 200:
            return []
        try:
            payload = response.json()
        except ValueError:
            return []
        return summarize_ai_containers(payload)
