"""
Abstract interface for video generation backends. One request (+ progress callback) → one artifact.
Implementations: the remote job-queue pipeline and the local procedural engine.
"""
from abc import ABC, abstractmethod
from typing import Callable

from ..models import GenerationRequest, VideoArtifact

ProgressCallback = Callable[[float, str], None]


class VideoGenerator(ABC):
    """
    Generates one video per request. Progress is reported as (percent 0-100, status text);
    the call ends with exactly one artifact or one raised PromptreelError.
    """

    name: str = "generator"

    @abstractmethod
    def generate(
        self,
        request: GenerationRequest,
        on_progress: ProgressCallback | None = None,
    ) -> VideoArtifact:
        """Produce the video for `request`."""
        ...
