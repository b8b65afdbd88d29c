"""
Load and expose app config (YAML). Supplies the remote pipeline settings (server URL,
timeouts, retries), request defaults, workflow node settings and encoder options.
The core treats these as plain inputs; the caller owns where they come from.
"""
from pathlib import Path
from typing import Any

import yaml


def _project_root() -> Path:
    return Path(__file__).resolve().parent.parent


def _defaults() -> dict[str, Any]:
    return {
        "remote": {
            "server_url": "http://localhost:8188",
            "request_timeout": 30.0,
            "result_timeout": 300.0,
            "poll_interval": 2.0,
            "retry_attempts": 3,
        },
        "generation": {
            "width": 512,
            "height": 512,
            "frame_count": 30,
            "fps": 10,
            "negative_prompt": None,
        },
        "workflow": {
            "checkpoint": "sd_xl_base_1.0.safetensors",
            "steps": 20,
            "cfg": 7.0,
            "sampler": "euler",
            "scheduler": "normal",
            "format": "video/webm",
            "filename_prefix": "promptreel_video",
            "pix_fmt": "yuv420p",
            "crf": 20,
        },
        "encoder": {
            "codec": "libx264",
            "quality": 8,
            "format": "mp4",
            "realtime": True,
        },
        "output": {
            "dir": "output",
            "filename_prefix": "video",
        },
    }


def load_config(config_path: Path | None = None) -> dict[str, Any]:
    """Load config from YAML. Path is optional; defaults to config/default.yaml.
    Each section is merged over the built-in defaults so partial files work."""
    if config_path is None:
        config_path = _project_root() / "config" / "default.yaml"
    path = Path(config_path)
    defaults = _defaults()
    if not path.exists():
        return defaults
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config {path} must be a mapping, got {type(data).__name__}")
    merged = dict(defaults)
    for key, value in data.items():
        if isinstance(value, dict) and isinstance(defaults.get(key), dict):
            merged[key] = {**defaults[key], **value}
        else:
            merged[key] = value
    return merged


def resolve_remote_config(config: dict[str, Any]) -> dict[str, Any]:
    """Remote section as RemotePipelineClient keyword arguments."""
    remote = {**_defaults()["remote"], **(config.get("remote") or {})}
    return {
        "server_url": str(remote["server_url"]),
        "request_timeout": float(remote["request_timeout"]),
        "result_timeout": float(remote["result_timeout"]),
        "poll_interval": float(remote["poll_interval"]),
        "retry_attempts": max(0, int(remote["retry_attempts"])),
    }


def resolve_generation_defaults(config: dict[str, Any]) -> dict[str, Any]:
    """Generation section as GenerationRequest keyword arguments (prompt excluded)."""
    gen = {**_defaults()["generation"], **(config.get("generation") or {})}
    return {
        "width": int(gen["width"]),
        "height": int(gen["height"]),
        "frame_count": int(gen["frame_count"]),
        "fps": float(gen["fps"]),
        "negative_prompt": gen.get("negative_prompt"),
    }


def resolve_encoder_config(config: dict[str, Any]) -> dict[str, Any]:
    return {**_defaults()["encoder"], **(config.get("encoder") or {})}


def resolve_workflow_config(config: dict[str, Any]) -> dict[str, Any]:
    return {**_defaults()["workflow"], **(config.get("workflow") or {})}


def get_output_dir(config: dict[str, Any]) -> Path:
    """Resolve output directory (relative to project root if needed)."""
    out = config.get("output", {})
    d = out.get("dir", "output")
    p = Path(d)
    if not p.is_absolute():
        p = _project_root() / p
    return p
