# tests/test_config.py
import logging

from lanprobe.config import ScanSettings, load_settings, log_level


def test_defaults():
    settings = load_settings({})
    assert settings == ScanSettings()
    assert settings.ping_config() == {"timeout_ms": 1000, "max_concurrent": 256}
    assert settings.port_config() == {"timeout_ms": 2000, "max_concurrent": 64}
    assert settings.probe_config() == {"timeout": 3.0, "max_concurrent": 32}


def test_environment_overrides():
    settings = load_settings({
        "LANPROBE_PING_TIMEOUT_MS": "500",
        "LANPROBE_HTTP_TIMEOUT": "1.5",
        "LANPROBE_PROBE_CONCURRENCY": "8",
    })
    assert settings.ping_timeout_ms == 500
    assert settings.http_timeout == 1.5
    assert settings.probe_concurrency == 8


def test_invalid_values_are_ignored_with_a_warning(caplog):
    with caplog.at_level(logging.WARNING, logger="lanprobe.config"):
        settings = load_settings({
            "LANPROBE_PORT_CONCURRENCY": "lots",
            "LANPROBE_PING_CONCURRENCY": "-3",
            "LANPROBE_DNS_TIMEOUT": "  ",
        })
    assert settings.port_concurrency == 64
    assert settings.ping_concurrency == 256
    assert settings.dns_timeout == 2.0
    assert "LANPROBE_PORT_CONCURRENCY" in caplog.text
    assert "LANPROBE_PING_CONCURRENCY" in caplog.text


def test_log_level():
    assert log_level({}) == logging.INFO
    assert log_level({"LANPROBE_LOG_LEVEL": "debug"}) == logging.DEBUG
    assert log_level({"LANPROBE_LOG_LEVEL": "chatty"}) == logging.INFO
