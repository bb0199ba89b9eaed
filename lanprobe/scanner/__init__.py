# lanprobe/scanner/__init__.py
"""
lanprobe scan pipeline.

Public entry points:
    ScanOrchestrator   ping sweep → port scan → AI fingerprinting
    ScanSession        progress, streaming callbacks, cancellation
    expand_range       range string → addresses (raises RangeError)
"""
from lanprobe.scanner.base import (
    AiServiceResult,
    BaseEngine,
    HostScanRecord,
    PortResult,
    ProbeDefinition,
    ScanProgress,
)
from lanprobe.scanner.orchestrator import ScanOrchestrator, ScanSession
from lanprobe.scanner.targets import (
    InvertedRange,
    MalformedRange,
    RangeError,
    RangeTooLarge,
    detect_local_subnet,
    expand_range,
    parse_address,
)

__all__ = [
    "AiServiceResult", "BaseEngine", "HostScanRecord", "PortResult",
    "ProbeDefinition", "ScanProgress",
    "ScanOrchestrator", "ScanSession",
    "RangeError", "MalformedRange", "InvertedRange", "RangeTooLarge",
    "detect_local_subnet", "expand_range", "parse_address",
]
