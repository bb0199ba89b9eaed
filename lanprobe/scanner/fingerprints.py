# lanprobe/scanner/fingerprints.py
"""
AI/ML service fingerprint catalog.

Each ProbeDefinition is one HTTP GET plus a match rule. The catalog is
evaluated in order against every open port; when several probes match
the same port, the one with the highest specificity wins (ties keep the
earlier entry). Probes with a port_hint only run against that port.

Specificity guide:
    95-100  unique banner or endpoint ("Ollama is running", DCGM_FI_)
    85-94   product-specific endpoint with a distinctive JSON key
    70-84   product endpoint with a generic key or plain 200
    50-69   protocol-level matches shared by many products
            (OpenAI-compatible /v1/models)
"""

from __future__ import annotations

from typing import List

from lanprobe.scanner.base import ProbeDefinition

LLM = "LLM"
IMAGE_GEN = "Image Gen"
ML_PLATFORM = "ML Platform"
AI_PLATFORM = "AI Platform"
VECTOR_DB = "Vector DB"
MCP_SERVER = "MCP Server"
GPU_INFRA = "GPU Infra"
CONTAINER = "Container"

HIGH = "high"
MEDIUM = "medium"

DOCKER_SERVICE = "Docker API"

# Ports that speak TLS by convention; everything else is probed over http.
TLS_PORTS = frozenset({8443, 2376})


def _p(path, service, category, confidence, specificity, *,
       status=None, body=None, header=None, hint=None) -> ProbeDefinition:
    return ProbeDefinition(
        path=path,
        service_name=service,
        category=category,
        confidence=confidence,
        specificity=specificity,
        status_code=status,
        body_contains=body,
        header_contains=header,
        port_hint=hint,
    )


FINGERPRINTS: List[ProbeDefinition] = [
    # ── LLM runtimes ─────────────────────────────────────────────
    _p("/", "Ollama", LLM, HIGH, 100, body="Ollama is running"),
    _p("/api/tags", "Ollama", LLM, HIGH, 95, body='"models"'),
    _p("/version", "vLLM", LLM, HIGH, 90, body="version"),
    _p("/info", "HF TGI", LLM, HIGH, 88, body="model_id"),
    _p("/props", "llama.cpp", LLM, HIGH, 88, body="default_generation_settings"),
    _p("/slots", "llama.cpp", LLM, HIGH, 85, body="id"),
    _p("/api/v1/info/version", "KoboldCpp", LLM, HIGH, 92, body="result"),
    _p("/api/v1/model", "KoboldCpp", LLM, HIGH, 85, body="result"),
    _p("/api/v0/models", "LM Studio", LLM, HIGH, 85, body="data"),
    _p("/model/info", "LiteLLM", LLM, HIGH, 82, body='"data"'),
    _p("/health/liveliness", "LiteLLM", LLM, MEDIUM, 70, body="I'm alive"),
    _p("/v1/models", "Jan.ai", LLM, HIGH, 80, body='"data"', hint=1337),
    _p("/v1/models", "GPT4All", LLM, HIGH, 80, body='"data"', hint=4891),
    _p("/models", "LocalAI", LLM, HIGH, 80, body="LocalAI"),
    _p("/v1/models", "LocalAI", LLM, MEDIUM, 65, body='"object"', hint=8080),
    _p("/v1/models", "FastChat", LLM, HIGH, 85, body='"data"', hint=21001),
    _p("/", "FastChat Worker", LLM, MEDIUM, 70, status=200, hint=21002),

    # ── Image generation ─────────────────────────────────────────
    _p("/sdapi/v1/sd-models", "Stable Diffusion (A1111)", IMAGE_GEN, HIGH, 95, status=200),
    _p("/sdapi/v1/options", "Stable Diffusion (A1111)", IMAGE_GEN, HIGH, 90, body="sd_model_checkpoint"),
    _p("/system_stats", "ComfyUI", IMAGE_GEN, HIGH, 95, body="system"),
    _p("/object_info", "ComfyUI", IMAGE_GEN, HIGH, 90, status=200),

    # ── Model serving / MLOps ────────────────────────────────────
    _p("/v2/health/ready", "NVIDIA Triton", ML_PLATFORM, HIGH, 92, status=200),
    _p("/v2/repository/index", "NVIDIA Triton", ML_PLATFORM, HIGH, 90, status=200),
    _p("/ping", "TorchServe", ML_PLATFORM, HIGH, 82, body="Healthy"),
    _p("/models", "TorchServe", ML_PLATFORM, HIGH, 85, body="models", hint=8081),
    _p("/v1/models", "TensorFlow Serving", ML_PLATFORM, HIGH, 78, body="model_version_status", hint=8501),
    _p("/version", "MLflow", ML_PLATFORM, HIGH, 80, status=200, hint=5000),
    _p("/api/2.0/mlflow/experiments/search", "MLflow", ML_PLATFORM, HIGH, 92, status=200),
    _p("/api/serve/deployments/", "Ray Serve", ML_PLATFORM, HIGH, 88, status=200, hint=8265),
    _p("/docs", "BentoML", ML_PLATFORM, HIGH, 80, body="BentoML", hint=3000),
    _p("/v2/health/ready", "KServe", ML_PLATFORM, MEDIUM, 75, status=200),
    _p("/", "MindsDB", ML_PLATFORM, HIGH, 90, status=200, hint=47334),
    _p("/v1/health", "Tabby", LLM, HIGH, 78, body="model"),

    # ── Chat front-ends / agent platforms ────────────────────────
    _p("/", "Open WebUI", AI_PLATFORM, HIGH, 90, body="Open WebUI"),
    _p("/api/health", "AnythingLLM", AI_PLATFORM, HIGH, 78, body="online"),
    _p("/", "LibreChat", AI_PLATFORM, HIGH, 88, body="LibreChat"),
    _p("/api/v1/chatflows", "Flowise", AI_PLATFORM, HIGH, 90, status=200),
    _p("/api/v1/chatflows", "Flowise", AI_PLATFORM, MEDIUM, 85, status=401),
    _p("/console/api/setup", "Dify", AI_PLATFORM, HIGH, 88, status=200),
    _p("/", "SillyTavern", AI_PLATFORM, HIGH, 88, body="SillyTavern", hint=8000),
    _p("/", "n8n", AI_PLATFORM, HIGH, 85, body="n8n", hint=5678),
    _p("/v1/health", "PrivateGPT", AI_PLATFORM, HIGH, 85, body="private_gpt", hint=8001),

    # ── More serving engines ─────────────────────────────────────
    _p("/v1/cluster/info", "Xinference", LLM, HIGH, 92, status=200),
    _p("/get_model_info", "SGLang", LLM, HIGH, 90, status=200),
    _p("/api/v1/model", "text-generation-webui", LLM, HIGH, 82, body="result", hint=5000),
    _p("/api/v1/app/version", "InvokeAI", IMAGE_GEN, HIGH, 92, status=200, hint=9090),

    # ── Vector databases ─────────────────────────────────────────
    _p("/collections", "Qdrant", VECTOR_DB, HIGH, 90, body='"collections"', hint=6333),
    _p("/api/v1/heartbeat", "ChromaDB", VECTOR_DB, HIGH, 92, status=200, hint=8000),
    _p("/v1/meta", "Weaviate", VECTOR_DB, HIGH, 90, body='"version"', hint=8080),
    _p("/healthz", "Milvus", VECTOR_DB, HIGH, 85, status=200, hint=9091),

    # ── MCP servers ──────────────────────────────────────────────
    _p("/mcp", "Agrus Scanner MCP", MCP_SERVER, HIGH, 88, body="agrus-scanner"),

    # ── GPU exporters ────────────────────────────────────────────
    _p("/metrics", "NVIDIA DCGM", GPU_INFRA, HIGH, 95, body="DCGM_FI_", hint=9400),
    _p("/metrics", "Triton Metrics", GPU_INFRA, HIGH, 92, body="nv_inference_", hint=8002),
    _p("/metrics", "TorchServe Metrics", GPU_INFRA, HIGH, 85, body="ts_inference_", hint=8082),

    # ── Container daemons ────────────────────────────────────────
    _p("/containers/json", DOCKER_SERVICE, CONTAINER, HIGH, 95, status=200, hint=2375),

    # ── Generic fallbacks (lowest specificity) ───────────────────
    _p("/v1/models", "OpenAI-compatible", LLM, MEDIUM, 50, body='"data"'),
    _p("/api/v1/models", "LM Studio / TGW", LLM, MEDIUM, 55, body='"data"'),
    _p("/", "Gradio AI App", AI_PLATFORM, MEDIUM, 70, body="gradio-app"),
]


def scheme_for_port(port: int) -> str:
    return "https" if port in TLS_PORTS else "http"


def probes_for_port(port: int, ignore_port_hints: bool = False,
                    catalog: List[ProbeDefinition] | None = None) -> List[ProbeDefinition]:
    """Catalog entries eligible to run against `port`, in catalog order."""
    entries = FINGERPRINTS if catalog is None else catalog
    if ignore_port_hints:
        return list(entries)
    return [p for p in entries if p.port_hint is None or p.port_hint == port]
