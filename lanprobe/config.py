# lanprobe/config.py
"""
Runtime settings.

Defaults suit a home or office /24. Every value can be overridden from
the environment:

    LANPROBE_PING_TIMEOUT_MS     per-echo timeout            (1000)
    LANPROBE_PORT_TIMEOUT_MS     per-connect timeout         (2000)
    LANPROBE_PING_CONCURRENCY    pings in flight             (256)
    LANPROBE_PORT_CONCURRENCY    connects in flight per host (64)
    LANPROBE_PROBE_CONCURRENCY   ports fingerprinted at once (32)
    LANPROBE_HTTP_TIMEOUT        probe request timeout, s    (3.0)
    LANPROBE_DNS_TIMEOUT         reverse lookup timeout, s   (2.0)
    LANPROBE_LOG_LEVEL           logging level               (INFO)

Unparseable or non-positive values are logged and ignored.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

ENV_PREFIX = "LANPROBE_"


@dataclass
class ScanSettings:
    ping_timeout_ms: int = 1000
    port_timeout_ms: int = 2000
    ping_concurrency: int = 256
    port_concurrency: int = 64
    probe_concurrency: int = 32
    http_timeout: float = 3.0
    dns_timeout: float = 2.0

    def ping_config(self) -> Dict[str, Any]:
        return {"timeout_ms": self.ping_timeout_ms, "max_concurrent": self.ping_concurrency}

    def port_config(self) -> Dict[str, Any]:
        return {"timeout_ms": self.port_timeout_ms, "max_concurrent": self.port_concurrency}

    def probe_config(self) -> Dict[str, Any]:
        return {"timeout": self.http_timeout, "max_concurrent": self.probe_concurrency}

    def dns_config(self) -> Dict[str, Any]:
        return {"timeout": self.dns_timeout}


def load_settings(environ: Optional[Mapping[str, str]] = None) -> ScanSettings:
    """Build ScanSettings from defaults plus LANPROBE_* overrides."""
    env = os.environ if environ is None else environ
    settings = ScanSettings()

    for f in fields(ScanSettings):
        key = ENV_PREFIX + f.name.upper()
        raw = env.get(key)
        if raw is None or not raw.strip():
            continue
        cast = float if f.type in (float, "float") else int
        try:
            value = cast(raw.strip())
        except ValueError:
            logger.warning(f"Ignoring {key}={raw!r}: not a valid {cast.__name__}")
            continue
        if value <= 0:
            logger.warning(f"Ignoring {key}={raw!r}: must be positive")
            continue
        setattr(settings, f.name, value)

    return settings


def log_level(environ: Optional[Mapping[str, str]] = None) -> int:
    env = os.environ if environ is None else environ
    name = env.get(ENV_PREFIX + "LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO
