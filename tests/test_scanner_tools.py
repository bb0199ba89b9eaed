# tests/test_scanner_tools.py
import csv
import json

import pytest

from lanprobe.scanner.presets import QUICK_PORTS
from lanprobe.scanner.targets import InvertedRange, MalformedRange
from lanprobe.tools import scanner_tools
from lanprobe.tools.scanner_tools import (
    _ports_for_probe,
    last_results,
    remember_results,
    run_export_results,
    run_list_presets,
    run_probe_host,
    run_scan_network,
)

from conftest import make_orchestrator


@pytest.fixture(autouse=True)
def clear_last_results():
    remember_results([])
    yield
    remember_results([])


@pytest.fixture
def lab_orchestrator(ollama_routes):
    return make_orchestrator(
        alive={"10.0.0.1": 1, "10.0.0.5": 2},
        open_ports={"10.0.0.1": [22], "10.0.0.5": [11434]},
        routes=ollama_routes,
        names={"10.0.0.1": "router.lan"},
    )


def test_scan_network_ai_preset(lab_orchestrator):
    hosts = run_scan_network("10.0.0.1-6", preset="ai", orchestrator=lab_orchestrator)

    assert [h["ip"] for h in hosts] == ["10.0.0.1", "10.0.0.5"]
    # 22 is not in the ai preset
    assert hosts[0]["open_ports"] == []
    assert hosts[1]["ai_services"][0]["service"] == "Ollama"
    assert last_results() == hosts


def test_scan_network_common_preset_skips_ai(lab_orchestrator):
    hosts = run_scan_network("10.0.0.1-6", preset="common", orchestrator=lab_orchestrator)
    assert hosts[0]["hostname"] == "router.lan"
    assert hosts[0]["open_ports"] == [{"port": 22, "service": "ssh"}]
    assert all(h["ai_services"] == [] for h in hosts)


def test_scan_network_extra_ports_reach_the_scan(lab_orchestrator):
    hosts = run_scan_network("10.0.0.5", preset="quick", extra_ports=[11434], orchestrator=lab_orchestrator)
    assert hosts[0]["open_ports"] == [{"port": 11434, "service": "unknown"}]


def test_scan_network_defaults_to_local_subnet(mocker, lab_orchestrator):
    detect = mocker.patch.object(scanner_tools, "detect_local_subnet", return_value="10.0.0.5/32")
    hosts = run_scan_network(preset="ai", orchestrator=lab_orchestrator)
    detect.assert_called_once()
    assert [h["ip"] for h in hosts] == ["10.0.0.5"]


def test_scan_network_bad_range_raises(lab_orchestrator):
    with pytest.raises(InvertedRange):
        run_scan_network("10.0.0.9-1", orchestrator=lab_orchestrator)


@pytest.mark.parametrize("ports, expected", [
    ("ai", (True, False)),
    ("AI", (True, False)),
    ("all", (True, True)),
    ("quick", (True, False)),
    ("foo", (True, False)),
    ("none", (False, False)),
    ("22,80", (False, False)),
    ("22,11434", (True, False)),
])
def test_probe_port_argument(ports, expected):
    _, run_ai, ignore_hints = _ports_for_probe(ports)
    assert (run_ai, ignore_hints) == expected


def test_probe_port_list_drops_junk():
    port_list, _, _ = _ports_for_probe("8000, abc, 70000, 9000")
    assert port_list == [8000, 9000]


def test_probe_unknown_preset_scans_quick_ports():
    port_list, run_ai, _ = _ports_for_probe("foo")
    assert port_list == list(QUICK_PORTS)
    assert run_ai is True


def test_probe_host_returns_single_host(lab_orchestrator):
    host = run_probe_host("10.0.0.5", "11434", orchestrator=lab_orchestrator)
    assert host["ip"] == "10.0.0.5"
    assert host["alive"] is True
    assert host["ai_services"][0]["service"] == "Ollama"
    assert last_results() == [host]


def test_probe_host_bad_ip(lab_orchestrator):
    with pytest.raises(MalformedRange):
        run_probe_host("not-an-ip", "ai", orchestrator=lab_orchestrator)


def test_list_presets_tool():
    assert [p["name"] for p in run_list_presets()] == ["quick", "common", "extended", "ai", "none"]


# --- Export ---
SAMPLE_HOSTS = [
    {
        "ip": "10.0.0.5", "hostname": "gpu, box", "alive": True, "ping_ms": 2,
        "open_ports": [{"port": 22, "service": "ssh"}, {"port": 11434, "service": "unknown"}],
        "ai_services": [{"service": "Ollama", "category": "LLM", "port": 11434,
                         "confidence": "high", "details": "llama3:8b"}],
    },
    {
        "ip": "10.0.0.9", "hostname": "", "alive": False, "ping_ms": None,
        "open_ports": [], "ai_services": [],
    },
]


def test_export_without_results_is_an_error(tmp_path):
    outcome = run_export_results(str(tmp_path / "out.json"))
    assert "error" in outcome
    assert not (tmp_path / "out.json").exists()


def test_export_csv(tmp_path):
    remember_results(SAMPLE_HOSTS)
    path = tmp_path / "hosts.csv"
    outcome = run_export_results(str(path))

    assert outcome["format"] == "csv"
    assert outcome["exported"] == 2
    with open(path, newline="", encoding="utf-8") as fh:
        rows = list(csv.reader(fh))
    assert rows[0] == ["ip", "hostname", "alive", "ping_ms", "open_ports", "ai_services"]
    assert rows[1] == ["10.0.0.5", "gpu, box", "true", "2", "22/ssh;11434/unknown", "Ollama:11434"]
    assert rows[2] == ["10.0.0.9", "", "false", "", "", ""]
    assert '"gpu, box"' in path.read_text(encoding="utf-8")


def test_export_json_by_default(tmp_path):
    remember_results(SAMPLE_HOSTS)
    path = tmp_path / "nested" / "hosts.out"
    outcome = run_export_results(str(path))

    assert outcome["format"] == "json"
    assert json.loads(path.read_text(encoding="utf-8")) == SAMPLE_HOSTS


def test_export_explicit_format_overrides_extension(tmp_path):
    remember_results(SAMPLE_HOSTS)
    path = tmp_path / "hosts.csv"
    assert run_export_results(str(path), format="json")["format"] == "json"
    assert json.loads(path.read_text(encoding="utf-8"))[0]["ip"] == "10.0.0.5"


def test_export_unknown_format(tmp_path):
    remember_results(SAMPLE_HOSTS)
    assert "error" in run_export_results(str(tmp_path / "x.xml"), format="xml")
