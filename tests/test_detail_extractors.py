# tests/test_detail_extractors.py
import json

from lanprobe.scanner.analyzers.detail_extractors import extract_details, summarize_names


def test_ollama_lists_three_models_then_counts_rest():
    body = json.dumps({"models": [{"name": n} for n in ["a", "b", "c", "d", "e"]]})
    assert extract_details("Ollama", "/api/tags", body) == "a, b, c +2 more"


def test_ollama_with_no_models():
    assert extract_details("Ollama", "/api/tags", '{"models": []}') == "no models"


def test_ollama_banner_has_no_details():
    assert extract_details("Ollama", "/", "Ollama is running") == ""


def test_vllm_version():
    assert extract_details("vLLM", "/version", '{"version": "0.4.2"}') == "v0.4.2"


def test_tgi_model_and_dtype():
    body = '{"model_id": "mistralai/Mistral-7B", "model_dtype": "torch.float16"}'
    assert extract_details("HF TGI", "/info", body) == "mistralai/Mistral-7B (torch.float16)"


def test_llama_cpp_truncates_long_model_names():
    model = "x" * 50
    body = json.dumps({"default_generation_settings": {"model": model, "n_ctx": 4096}})
    assert extract_details("llama.cpp", "/props", body) == "x" * 40 + "..., ctx:4096"


def test_koboldcpp_version_and_model():
    assert extract_details("KoboldCpp", "/api/v1/info/version", '{"result": "1.66"}') == "v1.66"
    assert extract_details("KoboldCpp", "/api/v1/model", '{"result": "koboldcpp/mythomax"}') == "koboldcpp/mythomax"


def test_openai_style_model_lists():
    body = json.dumps({"object": "list", "data": [{"id": "qwen2"}, {"id": "phi3"}]})
    for service in ("LM Studio", "Jan.ai", "GPT4All", "FastChat", "LocalAI", "OpenAI-compatible", "LM Studio / TGW"):
        assert extract_details(service, "/v1/models", body) == "qwen2, phi3"


def test_litellm_prefers_model_name():
    body = json.dumps({"data": [{"model_name": "gpt-4o"}, {"id": "fallback-id"}]})
    assert extract_details("LiteLLM", "/model/info", body) == "gpt-4o, fallback-id"


def test_sd_models_root_array():
    body = json.dumps([{"model_name": "sdxl"}, {"title": "v1-5-pruned.ckpt [e1441589a6]"}])
    assert extract_details("Stable Diffusion (A1111)", "/sdapi/v1/sd-models", body) == "sdxl, v1-5-pruned.ckpt [e1441589a6]"


def test_sd_options_checkpoint():
    body = '{"sd_model_checkpoint": "dreamshaper_8.safetensors"}'
    assert extract_details("Stable Diffusion (A1111)", "/sdapi/v1/options", body) == "dreamshaper_8.safetensors"


def test_comfyui_system_stats():
    body = json.dumps({
        "system": {"os": "posix", "python_version": "3.11"},
        "devices": [{"name": "cuda:0 NVIDIA GeForce RTX 4090", "vram_total": 25757220864}],
    })
    assert extract_details("ComfyUI", "/system_stats", body) == "posix, cuda:0 NVIDIA GeForce RTX 4090, 24.0GB VRAM"


def test_tf_serving_available_reads_serving():
    body = '{"model_version_status": [{"version": "1", "state": "AVAILABLE"}]}'
    assert extract_details("TensorFlow Serving", "/v1/models", body) == "serving"


def test_mlflow_version_plain_text():
    assert extract_details("MLflow", "/version", '  "2.12.1"\n') == "v2.12.1"


def test_ray_serve_is_active():
    assert extract_details("Ray Serve", "/api/serve/deployments/", "{}") == "active"


def test_dcgm_gpu_names_unique_and_capped():
    body = "\n".join([
        "# HELP DCGM_FI_DEV_GPU_UTIL GPU utilization",
        'DCGM_FI_DEV_GPU_UTIL{gpu="0",modelName="NVIDIA A100-SXM4-40GB"} 12',
        'DCGM_FI_DEV_GPU_UTIL{gpu="1",modelName="NVIDIA A100-SXM4-40GB"} 3',
        'DCGM_FI_DEV_GPU_UTIL{gpu="2",modelName="NVIDIA L4"} 0',
        'DCGM_FI_DEV_GPU_UTIL{gpu="3",modelName="NVIDIA T4"} 0',
    ])
    assert extract_details("NVIDIA DCGM", "/metrics", body) == "NVIDIA A100-SXM4-40GB, NVIDIA L4"


def test_dcgm_without_model_names():
    assert extract_details("NVIDIA DCGM", "/metrics", "DCGM_FI_DEV_FB_USED 10") == "GPU metrics"


def test_triton_metrics_count_is_capped():
    lines = ["# HELP nv_inference_request_success x"]
    lines += [f'nv_inference_request_success{{model="m{i}"}} 1' for i in range(5)]
    assert extract_details("Triton Metrics", "/metrics", "\n".join(lines)) == "3 metric(s)"
    assert extract_details("Triton Metrics", "/metrics", "nv_inference_count 1") == "metrics"


def test_torchserve_metrics_count():
    body = "ts_inference_requests_total 4\nts_inference_latency_microseconds 9\n"
    assert extract_details("TorchServe Metrics", "/metrics", body) == "2 metric(s)"


def test_wrong_shape_or_garbage_yields_empty():
    assert extract_details("Ollama", "/api/tags", "<html>") == ""
    assert extract_details("Ollama", "/api/tags", '{"models": "nope"}') == ""
    assert extract_details("HF TGI", "/info", "[1, 2]") == ""
    assert extract_details("ComfyUI", "/system_stats", '{"devices": [{"vram_total": "big"}]}') == ""


def test_deeply_nested_json_yields_empty():
    body = "[" * 100000 + '"models"' + "]" * 100000
    assert extract_details("Ollama", "/api/tags", body) == ""


def test_unknown_service_yields_empty():
    assert extract_details("Open WebUI", "/", "<title>Open WebUI</title>") == ""


def test_summarize_names_skips_items_without_names():
    items = [{"x": 1}, {"id": "a"}, "junk", {"id": "b"}]
    assert summarize_names(items, "id") == "a, b +1 more"
