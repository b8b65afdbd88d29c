"""
promptreel: short videos from text prompts, through a remote generation pipeline
or a local procedural engine when the pipeline is unreachable.
"""
from .errors import (
    CorsBlockedError,
    EmptyInputError,
    EncodingError,
    ErrorKind,
    GenerationTimeoutError,
    InvalidRequestError,
    NoArtifactProducedError,
    PromptreelError,
    RetrievalFailedError,
    ServerUnavailableError,
    SubmissionRejectedError,
)
from .models import Frame, GenerationRequest, LocalArtifact, RemoteArtifact, VideoArtifact
from .pipeline import VideoGenerationService, generate_video

__version__ = "0.1.0"

__all__ = [
    "CorsBlockedError",
    "EmptyInputError",
    "EncodingError",
    "ErrorKind",
    "GenerationTimeoutError",
    "InvalidRequestError",
    "NoArtifactProducedError",
    "PromptreelError",
    "RetrievalFailedError",
    "ServerUnavailableError",
    "SubmissionRejectedError",
    "Frame",
    "GenerationRequest",
    "LocalArtifact",
    "RemoteArtifact",
    "VideoArtifact",
    "VideoGenerationService",
    "generate_video",
]
