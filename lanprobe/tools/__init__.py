# lanprobe/tools/__init__.py
from lanprobe.tools.scanner_tools import (
    last_results,
    run_export_results,
    run_list_presets,
    run_probe_host,
    run_scan_network,
)

__all__ = [
    "last_results", "run_export_results", "run_list_presets",
    "run_probe_host", "run_scan_network",
]
