"""
Frame encoder: ordered frames + fps → one playable video blob.
Frames are fed to a sink one interval (1/fps s) apart, strictly in order, and the loop
waits one more interval before finalizing so the last frame is captured.
The default sink writes through imageio's ffmpeg writer to a temp file and reads it back.
"""
from __future__ import annotations

import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Callable, Iterable, Protocol

from .errors import EmptyInputError, EncodingError
from .models import Frame, LocalArtifact

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

_CONTAINERS: dict[str, tuple[str, str]] = {
    # container -> (mime type, default codec)
    "mp4": ("video/mp4", "libx264"),
    "webm": ("video/webm", "libvpx-vp9"),
}

# What a sink may raise while capturing
_SINK_ERRORS = (OSError, RuntimeError, ValueError)


class FrameSink(Protocol):
    mime_type: str

    def start(self, width: int, height: int, fps: float) -> None: ...

    def write(self, frame: Frame) -> None: ...

    def finish(self) -> list[bytes]: ...

    def abort(self) -> None: ...


class ImageioSink:
    """Encodes through imageio + imageio-ffmpeg into a temp file; finish() returns its chunks."""

    def __init__(self, *, container: str = "mp4", codec: str | None = None, quality: int | None = 8):
        if container not in _CONTAINERS:
            raise ValueError(f"Unsupported container {container!r}; expected one of {sorted(_CONTAINERS)}")
        self.container = container
        self.mime_type, default_codec = _CONTAINERS[container]
        self.codec = codec or default_codec
        self.quality = quality
        self._path: Path | None = None
        self._writer: Any = None

    def start(self, width: int, height: int, fps: float) -> None:
        import imageio

        fd, name = tempfile.mkstemp(prefix="promptreel_", suffix=f".{self.container}")
        os.close(fd)
        self._path = Path(name)
        self._writer = imageio.get_writer(
            str(self._path),
            fps=fps,
            codec=self.codec,
            quality=self.quality,
            macro_block_size=2,
        )
        logger.debug("Encoding %dx%d @ %s fps to %s (%s)", width, height, fps, self._path, self.codec)

    def write(self, frame: Frame) -> None:
        if self._writer is None:
            raise RuntimeError("ImageioSink.write called before start")
        self._writer.append_data(frame.rgb())

    def finish(self) -> list[bytes]:
        if self._writer is None or self._path is None:
            raise RuntimeError("ImageioSink.finish called before start")
        writer, self._writer = self._writer, None
        writer.close()
        chunks: list[bytes] = []
        try:
            with open(self._path, "rb") as f:
                while True:
                    chunk = f.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    chunks.append(chunk)
        finally:
            self._cleanup()
        return chunks

    def abort(self) -> None:
        writer, self._writer = self._writer, None
        if writer is not None:
            try:
                writer.close()
            except _SINK_ERRORS as e:
                logger.debug("Ignoring error while closing aborted writer: %s", e)
        self._cleanup()

    def _cleanup(self) -> None:
        if self._path is not None:
            self._path.unlink(missing_ok=True)
            self._path = None


def _no_sleep(_seconds: float) -> None:
    return None


class FrameEncoder:
    """Time-paced feed loop over a FrameSink. One encoder can encode many sequences."""

    def __init__(
        self,
        sink_factory: Callable[[], FrameSink] | None = None,
        *,
        realtime: bool = True,
        sleep: Callable[[float], None] | None = None,
    ):
        self._sink_factory = sink_factory or ImageioSink
        if sleep is not None:
            self._sleep = sleep
        else:
            self._sleep = time.sleep if realtime else _no_sleep

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> FrameEncoder:
        from .config import resolve_encoder_config

        enc = resolve_encoder_config(config)
        container = str(enc.get("format", "mp4"))
        codec = enc.get("codec")
        if container != "mp4" and codec == "libx264":
            codec = None

        def factory() -> FrameSink:
            return ImageioSink(container=container, codec=codec, quality=enc.get("quality"))

        return cls(factory, realtime=bool(enc.get("realtime", True)))

    def encode(self, frames: Iterable[Frame], fps: float) -> LocalArtifact:
        frames = list(frames)
        if not frames:
            raise EmptyInputError("No frames to convert")
        if not fps or fps <= 0:
            raise EncodingError(f"fps must be positive, got {fps!r}")
        width, height = frames[0].width, frames[0].height
        last_position = -1.0
        for i, frame in enumerate(frames):
            if (frame.width, frame.height) != (width, height):
                raise EncodingError(
                    f"Frame {i} is {frame.width}x{frame.height}, expected {width}x{height}"
                )
            if frame.position <= last_position:
                raise EncodingError(f"Frame {i} is out of timeline order")
            last_position = frame.position

        interval = 1.0 / fps
        sink = self._sink_factory()
        try:
            sink.start(width, height, fps)
            for frame in frames:
                sink.write(frame)
                self._sleep(interval)
            # One more interval so the final frame is captured before the stream closes
            self._sleep(interval)
            chunks = sink.finish()
        except _SINK_ERRORS as e:
            sink.abort()
            raise EncodingError(f"Encoder error: {e}") from e

        data = b"".join(c for c in chunks if c)
        if not data:
            raise EncodingError("Encoder produced no output")
        logger.info("Encoded %d frames @ %s fps (%d bytes)", len(frames), fps, len(data))
        return LocalArtifact(data=data, mime_type=sink.mime_type, frame_count=len(frames), fps=fps)
