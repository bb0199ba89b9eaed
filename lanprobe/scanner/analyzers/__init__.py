# lanprobe/scanner/analyzers/__init__.py
"""
Response analyzers.
Analyzers interpret bodies the engines already fetched; they never
touch the network.
"""
from lanprobe.scanner.analyzers.container_inventory import (
    AI_IMAGE_PATTERNS,
    describe_container,
    is_ai_image,
    summarize_ai_containers,
)
from lanprobe.scanner.analyzers.detail_extractors import extract_details, summarize_names

__all__ = [
    "AI_IMAGE_PATTERNS", "describe_container", "is_ai_image",
    "summarize_ai_containers", "extract_details", "summarize_names",
]
