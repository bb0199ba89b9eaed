# lanprobe/scanner/analyzers/container_inventory.py
"""
AI container inventory for exposed Docker daemons.

Reads the JSON array returned by GET /containers/json and keeps only the
containers whose image name looks like an AI/ML workload. Each survivor
is rendered as one line:

    "ollama (ollama/ollama:latest) [running]"
    "qdrant/qdrant:v1.9"                     (container has no name)
"""

from __future__ import annotations

import logging
from typing import Any, List

logger = logging.getLogger(__name__)

# Substrings matched against the lower-cased image name.
AI_IMAGE_PATTERNS = (
    "ollama", "localai", "vllm", "text-generation-inference",
    "tritonserver", "torchserve", "tensorflow/serving",
    "stable-diffusion", "comfyui", "open-webui", "anythingllm",
    "librechat", "flowise", "dify", "litellm", "koboldcpp", "tabbyml",
    "whisper", "llama", "mistral", "deepseek",
    "qdrant", "chromadb", "weaviate", "milvus",
    "bentoml", "langchain", "langserve", "ray", "mlflow", "mindsdb",
    "privategpt", "gpt4all", "xinference", "sglang",
    "text-generation-webui", "oobabooga", "invokeai", "sillytavern",
    "n8n", "llamafile", "agrus",
)


def is_ai_image(image: str) -> bool:
    image = (image or "").lower()
    return any(pattern in image for pattern in AI_IMAGE_PATTERNS)


def describe_container(container: dict) -> str:
    image = str(container.get("Image") or "")
    names = container.get("Names")
    name = ""
    if isinstance(names, list) and names:
        name = str(names[0]).lstrip("/")

    line = f"{name} ({image})" if name else image
    if container.get("State") == "running":
        line += " [running]"
    return line


def summarize_ai_containers(payload: Any) -> List[str]:
    """AI container lines from a /containers/json payload, in daemon order."""
    if not isinstance(payload, list):
        return []
    return [
        describe_container(c)
        for c in payload
        if isinstance(c, dict) and is_ai_image(str(c.get("Image") or ""))
    ]
