"""
Data model shared by both backends: the request, raster frames and the two artifact shapes.
"""
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np

from .errors import InvalidRequestError


@dataclass(frozen=True)
class GenerationRequest:
    """One text-to-video request. Validated on construction and never changed after."""
    prompt: str
    width: int = 512
    height: int = 512
    frame_count: int = 30
    fps: float = 10
    negative_prompt: str | None = None

    def __post_init__(self) -> None:
        prompt = (self.prompt or "").strip()
        if not prompt:
            raise InvalidRequestError("Prompt must not be empty")
        object.__setattr__(self, "prompt", prompt)
        for name in ("width", "height", "frame_count"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise InvalidRequestError(f"{name} must be a positive integer, got {value!r}")
        if not self.fps or self.fps <= 0:
            raise InvalidRequestError(f"fps must be positive, got {self.fps!r}")
        if self.negative_prompt is not None:
            neg = self.negative_prompt.strip()
            object.__setattr__(self, "negative_prompt", neg or None)

    @property
    def duration_seconds(self) -> float:
        return self.frame_count / float(self.fps)


@dataclass(frozen=True)
class Frame:
    """RGBA raster (height, width, 4) uint8 plus its position on the 0-1 timeline."""
    pixels: np.ndarray = field(repr=False, compare=False)
    position: float

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    def rgb(self) -> np.ndarray:
        return self.pixels[:, :, :3]


@dataclass(frozen=True)
class RemoteArtifact:
    """Video stored by the remote pipeline, fetched through its /view endpoint."""
    url: str
    filename: str
    subfolder: str = ""
    type: str = "output"


@dataclass(frozen=True)
class LocalArtifact:
    """Encoded video bytes produced on this machine. The caller decides where they go."""
    data: bytes = field(repr=False)
    mime_type: str
    frame_count: int
    fps: float

    @property
    def duration(self) -> float:
        return self.frame_count / float(self.fps)

    @property
    def size(self) -> int:
        return len(self.data)

    def save(self, path: Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.data)
        return path


VideoArtifact = RemoteArtifact | LocalArtifact
