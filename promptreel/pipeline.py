"""
Pipeline: one request → one video artifact. Picks the backend per call:
the remote pipeline when it answers, the procedural engine when it is unreachable.
A remote pipeline that answers but misbehaves is reported, never masked by the fallback.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from .config import get_output_dir, load_config, resolve_generation_defaults
from .errors import CorsBlockedError, ServerUnavailableError
from .models import GenerationRequest, LocalArtifact, VideoArtifact
from .procedural import ProceduralVideoGenerator
from .remote import Availability, RemotePipelineClient
from .video_generator.base import ProgressCallback

logger = logging.getLogger(__name__)


class VideoGenerationService:
    """Facade over both backends. Only one backend runs for a given call."""

    def __init__(
        self,
        remote: RemotePipelineClient,
        procedural: ProceduralVideoGenerator | None = None,
    ):
        self.remote = remote
        self.procedural = procedural or ProceduralVideoGenerator()
        self.last_backend: str | None = None

    @classmethod
    def from_config(cls, config: dict[str, Any] | None = None) -> VideoGenerationService:
        if config is None:
            config = load_config()
        return cls(
            RemotePipelineClient.from_config(config),
            ProceduralVideoGenerator.from_config(config),
        )

    def generate_video(
        self,
        request: GenerationRequest,
        on_progress: ProgressCallback | None = None,
    ) -> VideoArtifact:
        """
        Probe, then run exactly one backend. Falls back to procedural synthesis only when
        the remote pipeline is unavailable; every other remote error propagates.
        """
        availability = self.remote.probe()
        if availability is Availability.CORS_BLOCKED:
            raise CorsBlockedError(
                f"Pipeline at {self.remote.server_url} appears to be running but blocks "
                "cross-origin requests. Configure CORS on the server."
            )
        if availability is Availability.AVAILABLE:
            try:
                artifact = self.remote.generate_video(request, on_progress)
            except ServerUnavailableError as e:
                logger.warning("Remote pipeline became unavailable (%s); using procedural generation", e.detail)
            else:
                self.last_backend = "remote"
                return artifact
        else:
            logger.info("Remote pipeline not detected at %s; using procedural generation", self.remote.server_url)

        artifact = self.procedural.generate(request, on_progress)
        self.last_backend = "procedural"
        return artifact

    def close(self) -> None:
        self.remote.disconnect()


def build_request(prompt: str, config: dict[str, Any] | None = None, **overrides: Any) -> GenerationRequest:
    """GenerationRequest with config defaults; keyword overrides that are None are ignored."""
    if config is None:
        config = load_config()
    fields = resolve_generation_defaults(config)
    fields.update({k: v for k, v in overrides.items() if v is not None})
    return GenerationRequest(prompt=prompt, **fields)


def generate_video(
    prompt: str,
    *,
    on_progress: ProgressCallback | None = None,
    config: dict[str, Any] | None = None,
    service: VideoGenerationService | None = None,
    **overrides: Any,
) -> VideoArtifact:
    """Convenience entry: prompt + config → artifact. Closes the push channel when it built the service."""
    if config is None:
        config = load_config()
    request = build_request(prompt, config, **overrides)
    if service is not None:
        return service.generate_video(request, on_progress)
    service = VideoGenerationService.from_config(config)
    try:
        return service.generate_video(request, on_progress)
    finally:
        service.close()


def save_local_artifact(
    artifact: LocalArtifact,
    config: dict[str, Any],
    output_path: Path | None = None,
) -> Path:
    """Write a local artifact under the configured output dir unless a path is given."""
    if output_path is None:
        suffix = ".webm" if artifact.mime_type == "video/webm" else ".mp4"
        output_path = get_output_dir(config) / _next_filename(config, "video", suffix)
    return artifact.save(Path(output_path))


def _next_filename(config: dict[str, Any], default_prefix: str, suffix: str = ".mp4") -> str:
    """Simple next filename: prefix + timestamp to avoid overwrites."""
    from datetime import datetime
    prefix = config.get("output", {}).get("filename_prefix", default_prefix)
    return f"{prefix}_{datetime.now().strftime('%Y%m%d_%H%M%S')}{suffix}"
