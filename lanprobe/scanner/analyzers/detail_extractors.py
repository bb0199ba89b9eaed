# lanprobe/scanner/analyzers/detail_extractors.py
"""
Detail extraction for matched AI services.

Given the service a probe identified, the probe path and the raw
response body, produce a short human-readable summary: loaded models,
server version, GPU model, metric counts.

The body is parsed as JSON first. Extractors that work on JSON receive
the parsed document; extractors for Prometheus-style text endpoints read
the raw body. A document that is not the expected shape simply yields
an empty string; extraction never raises.

Output examples:
    Ollama /api/tags           "llama3:8b, mistral:7b, phi3:mini +2 more"
    HF TGI /info               "meta-llama/Llama-2-7b (float16)"
    llama.cpp /props           "qwen2-7b-instruct-q4_k_m.gguf, ctx:4096"
    ComfyUI /system_stats      "posix, cuda:0 NVIDIA RTX 4090, 24.0GB VRAM"
    NVIDIA DCGM /metrics       "NVIDIA A100-SXM4-40GB"
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

# Marker for "body was not JSON"
_NOT_JSON = object()

MAX_LISTED_NAMES = 3
MAX_MODEL_NAME_LENGTH = 40
MAX_GPU_NAMES = 2
MAX_METRIC_COUNT = 3

_MODEL_NAME_RE = re.compile(r'modelName="([^"]*)"')

Extractor = Callable[[Any, str], str]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _get(doc: Any, *keys) -> Any:
    """Walk nested dicts/lists. Returns None as soon as a step is missing."""
    node = doc
    for key in keys:
        if isinstance(key, int):
            if not isinstance(node, list) or not -len(node) <= key < len(node):
                return None
            node = node[key]
        else:
            if not isinstance(node, dict) or key not in node:
                return None
            node = node[key]
    return node


def _as_text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value)


def summarize_names(items: Any, *keys: str) -> str:
    """
    "a, b, c +N more" over a list of objects.

    Takes the first of `keys` present in each item. At most three names
    are shown; the total item count drives the "+N more" suffix. An empty
    list reads "no models".
    """
    if not isinstance(items, list):
        return ""
    if not items:
        return "no models"

    names: List[str] = []
    for item in items:
        if len(names) >= MAX_LISTED_NAMES:
            break
        if not isinstance(item, dict):
            continue
        for key in keys:
            value = _as_text(item.get(key))
            if value:
                names.append(value)
                break

    summary = ", ".join(names)
    if len(items) > MAX_LISTED_NAMES:
        summary += f" +{len(items) - MAX_LISTED_NAMES} more"
    return summary


def _count_metric_lines(body: str, prefix: str) -> str:
    count = 0
    for line in body.splitlines():
        line = line.strip()
        if line.startswith(prefix) and not line.startswith("#"):
            count += 1
            if count >= MAX_METRIC_COUNT:
                break
    return f"{count} metric(s)" if count else ""


# ---------------------------------------------------------------------------
# Extractors: (parsed document, raw body) → details
# ---------------------------------------------------------------------------

def _model_list(*keys: str) -> Extractor:
    def extract(doc: Any, body: str) -> str:
        return summarize_names(_get(doc, "data"), *keys)
    return extract


def _ollama_tags(doc, body):
    return summarize_names(_get(doc, "models"), "name")


def _vllm_version(doc, body):
    version = _as_text(_get(doc, "version"))
    return f"v{version}" if version else ""


def _tgi_info(doc, body):
    model_id = _as_text(_get(doc, "model_id"))
    if not model_id:
        return ""
    dtype = _as_text(_get(doc, "model_dtype"))
    return f"{model_id} ({dtype})" if dtype else model_id


def _llama_cpp_props(doc, body):
    settings = _get(doc, "default_generation_settings")
    if not isinstance(settings, dict):
        return ""
    parts = []
    model = _as_text(settings.get("model"))
    if model:
        if len(model) > MAX_MODEL_NAME_LENGTH:
            model = model[:MAX_MODEL_NAME_LENGTH] + "..."
        parts.append(model)
    n_ctx = _as_text(settings.get("n_ctx"))
    if n_ctx:
        parts.append(f"ctx:{n_ctx}")
    return ", ".join(parts)


def _kobold_version(doc, body):
    result = _as_text(_get(doc, "result"))
    return f"v{result}" if result else ""


def _kobold_model(doc, body):
    return _as_text(_get(doc, "result"))


def _tabby_health(doc, body):
    return _as_text(_get(doc, "model"))


def _sd_models(doc, body):
    if not isinstance(doc, list):
        return ""
    return summarize_names(doc, "model_name", "title")


def _sd_options(doc, body):
    return _as_text(_get(doc, "sd_model_checkpoint"))


def _comfyui_stats(doc, body):
    if not isinstance(doc, dict):
        return ""
    parts = []
    os_name = _as_text(_get(doc, "system", "os")) or _as_text(_get(doc, "system", "system", "os"))
    if os_name:
        parts.append(os_name)

    devices = _get(doc, "devices")
    if devices is None:
        devices = _get(doc, "system", "devices")
    device = _get(devices, 0)
    if isinstance(device, dict):
        name = _as_text(device.get("name"))
        if name:
            parts.append(name)
        vram = device.get("vram_total")
        if isinstance(vram, (int, float)) and not isinstance(vram, bool):
            parts.append(f"{vram / 1024 ** 3:.1f}GB VRAM")
    return ", ".join(parts)


def _triton_repository(doc, body):
    if not isinstance(doc, list):
        return ""
    return summarize_names(doc, "name")


def _torchserve_models(doc, body):
    return summarize_names(_get(doc, "models"), "modelName")


def _tf_serving_status(doc, body):
    state = _as_text(_get(doc, "model_version_status", 0, "state"))
    if state == "AVAILABLE":
        return "serving"
    return state


def _mlflow_version(doc, body):
    version = body.strip().strip('"')
    return f"v{version}" if version else ""


def _ray_serve(doc, body):
    return "active"


def _dcgm_gpus(doc, body):
    gpus: List[str] = []
    for line in body.splitlines():
        if "DCGM_FI_DEV_GPU_UTIL" not in line:
            continue
        match = _MODEL_NAME_RE.search(line)
        if match and match.group(1) and match.group(1) not in gpus:
            gpus.append(match.group(1))
            if len(gpus) >= MAX_GPU_NAMES:
                break
    return ", ".join(gpus) if gpus else "GPU metrics"


def _triton_metrics(doc, body):
    return _count_metric_lines(body, "nv_inference_request_success") or "metrics"


def _torchserve_metrics(doc, body):
    return _count_metric_lines(body, "ts_inference_")


# (service, path) → extractor. A path of None matches any probe path.
EXTRACTORS: Dict[Tuple[str, Optional[str]], Extractor] = {
    ("Ollama", "/api/tags"): _ollama_tags,
    ("vLLM", None): _vllm_version,
    ("HF TGI", None): _tgi_info,
    ("llama.cpp", "/props"): _llama_cpp_props,
    ("KoboldCpp", "/api/v1/info/version"): _kobold_version,
    ("KoboldCpp", "/api/v1/model"): _kobold_model,
    ("LM Studio", None): _model_list("id"),
    ("Jan.ai", None): _model_list("id"),
    ("GPT4All", None): _model_list("id"),
    ("FastChat", None): _model_list("id"),
    ("LocalAI", None): _model_list("id"),
    ("OpenAI-compatible", None): _model_list("id"),
    ("LM Studio / TGW", None): _model_list("id"),
    ("LiteLLM", "/model/info"): _model_list("model_name", "id"),
    ("Tabby", None): _tabby_health,
    ("Stable Diffusion (A1111)", "/sdapi/v1/sd-models"): _sd_models,
    ("Stable Diffusion (A1111)", "/sdapi/v1/options"): _sd_options,
    ("ComfyUI", "/system_stats"): _comfyui_stats,
    ("NVIDIA Triton", "/v2/repository/index"): _triton_repository,
    ("TorchServe", "/models"): _torchserve_models,
    ("TensorFlow Serving", None): _tf_serving_status,
    ("MLflow", "/version"): _mlflow_version,
    ("Ray Serve", None): _ray_serve,
    ("NVIDIA DCGM", None): _dcgm_gpus,
    ("Triton Metrics", None): _triton_metrics,
    ("TorchServe Metrics", None): _torchserve_metrics,
}


def _lookup(service_name: str, path: str) -> Optional[Extractor]:
    return EXTRACTORS.get((service_name, path)) or EXTRACTORS.get((service_name, None))


def extract_details(service_name: str, path: str, body: str) -> str:
    """Summarize a matched response. Returns "" when nothing applies."""
    extractor = _lookup(service_name, path)
    if extractor is None:
        return ""

    try:
        doc = json.loads(body)
    except (ValueError, RecursionError):
        doc = _NOT_JSON

    try:
        return extractor(doc, body or "") or ""
    except (AttributeError, KeyError, IndexError, TypeError, ValueError, RecursionError) as e:
        logger.debug(f"Detail extraction failed for {service_name} {path}: {e}")
        return ""
