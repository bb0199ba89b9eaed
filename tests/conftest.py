# tests/conftest.py
import asyncio
from typing import Dict, Iterable, Optional, Set, Tuple

import httpx
import pytest

from lanprobe.config import ScanSettings
from lanprobe.scanner.engines import AIProbeEngine, DNSEngine, PingEngine, PortEngine
from lanprobe.scanner.orchestrator import ScanOrchestrator


# --- Network stand-ins -------------------------------------------------------

def make_pinger(alive: Dict[str, int], calls: Optional[list] = None):
    """Pinger answering for the IPs in `alive` with the given RTT."""
    async def pinger(ip: str, timeout_s: float):
        if calls is not None:
            calls.append(ip)
        await asyncio.sleep(0)
        return alive.get(ip)
    return pinger


def make_connector(open_ports: Dict[str, Iterable[int]]):
    table = {ip: set(ports) for ip, ports in open_ports.items()}

    async def connector(ip: str, port: int, timeout_s: float) -> bool:
        await asyncio.sleep(0)
        return port in table.get(ip, set())
    return connector


class StaticDNSEngine(DNSEngine):
    """DNSEngine that answers from a dict instead of the network."""

    def __init__(self, names: Optional[Dict[str, str]] = None):
        super().__init__()
        self.names = names or {}

    async def resolve(self, address) -> str:
        return self.names.get(str(address), "")


Route = Tuple[int, str]


def mock_client(routes: Dict[Tuple[str, int, str], Route], headers: Optional[Dict[str, str]] = None) -> httpx.AsyncClient:
    """
    AsyncClient whose transport serves `routes` keyed by (host, port, path).
    Unknown routes answer 404 with an empty body.
    """
    def handler(request: httpx.Request) -> httpx.Response:
        key = (request.url.host, request.url.port, request.url.path)
        if key not in routes:
            return httpx.Response(404, text="")
        status, body = routes[key]
        return httpx.Response(status, text=body, headers=headers or {})
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def make_ai_engine(routes, config=None, catalog=None, headers=None) -> AIProbeEngine:
    return AIProbeEngine(config=config, client=mock_client(routes, headers), catalog=catalog)


def make_orchestrator(
    alive: Dict[str, int],
    open_ports: Dict[str, Iterable[int]],
    routes=None,
    names: Optional[Dict[str, str]] = None,
    pinger=None,
    connector=None,
) -> ScanOrchestrator:
    return ScanOrchestrator(
        settings=ScanSettings(),
        ping_engine=PingEngine(pinger=pinger or make_pinger(alive)),
        port_engine=PortEngine(connector=connector or make_connector(open_ports)),
        dns_engine=StaticDNSEngine(names),
        ai_engine=make_ai_engine(routes or {}),
    )


@pytest.fixture
def ollama_routes():
    return {
        ("10.0.0.5", 11434, "/"): (200, "Ollama is running"),
        ("10.0.0.5", 11434, "/api/tags"): (200, '{"models": [{"name": "llama3:8b"}]}'),
    }
