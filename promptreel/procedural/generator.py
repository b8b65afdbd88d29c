"""
Procedural video generator: prompt → (our parser) → style → (our renderer) → frames → (encoder) → blob.
No neural network, no external model, no network access. Used when the remote pipeline is down.
"""
from __future__ import annotations

import logging
from typing import Any

from ..encoder import FrameEncoder
from ..models import Frame, GenerationRequest, LocalArtifact
from ..video_generator.base import ProgressCallback, VideoGenerator
from .parser import StyleDescriptor, infer_style
from .renderer import render_frame

logger = logging.getLogger(__name__)


class ProceduralSynthesisEngine:
    """Deterministic frame synthesis. Same prompt and size always give the same frames."""

    def analyze(self, prompt: str) -> StyleDescriptor:
        return infer_style(prompt)

    def render_frames(
        self,
        style: StyleDescriptor,
        width: int,
        height: int,
        count: int,
        on_progress: ProgressCallback | None = None,
    ) -> list[Frame]:
        """Frames 0..count-1 in increasing timeline order. Reports after each rendered frame."""
        frames = []
        for i in range(count):
            frames.append(render_frame(style, i, count, width, height))
            if on_progress is not None:
                on_progress((i + 1) / count * 100.0, f"Rendered frame {i + 1}/{count}")
        return frames

    def generate_frames(
        self,
        request: GenerationRequest,
        on_progress: ProgressCallback | None = None,
    ) -> list[Frame]:
        style = self.analyze(request.prompt)
        return self.render_frames(style, request.width, request.height, request.frame_count, on_progress)


class ProceduralVideoGenerator(VideoGenerator):
    """
    Local fallback backend. Progress comes at fixed milestones since rendering has no
    finer-grained source: style analysis, frame generation, assembly.
    """

    name = "procedural"

    def __init__(
        self,
        engine: ProceduralSynthesisEngine | None = None,
        encoder: FrameEncoder | None = None,
    ):
        self.engine = engine or ProceduralSynthesisEngine()
        self.encoder = encoder or FrameEncoder()
        self.last_style: StyleDescriptor | None = None

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> ProceduralVideoGenerator:
        return cls(encoder=FrameEncoder.from_config(config))

    def generate(
        self,
        request: GenerationRequest,
        on_progress: ProgressCallback | None = None,
    ) -> LocalArtifact:
        def report(percent: float, status: str) -> None:
            if on_progress is not None:
                on_progress(percent, status)

        report(10, "Analyzing prompt...")
        style = self.engine.analyze(request.prompt)
        self.last_style = style
        logger.info(
            "Procedural style: palette=%s animation=%s speed=%.1f",
            style.palette_name, style.animation.value, style.speed,
        )

        report(30, f"Generating {request.frame_count} frames...")
        frames = self.engine.render_frames(style, request.width, request.height, request.frame_count)

        report(70, "Assembling video...")
        artifact = self.encoder.encode(frames, request.fps)

        report(100, "Procedural video generated!")
        return artifact
