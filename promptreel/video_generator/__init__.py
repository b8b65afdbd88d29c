from .base import ProgressCallback, VideoGenerator

__all__ = ["ProgressCallback", "VideoGenerator"]
