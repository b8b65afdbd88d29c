"""
Error taxonomy for generation. Every failure surfaced to a caller is one of these,
carrying a kind plus a human-readable detail string.
Only ServerUnavailableError makes the orchestrator fall back to the procedural path.
"""
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    SERVER_UNAVAILABLE = "ServerUnavailable"
    CORS_BLOCKED = "CorsBlocked"
    SUBMISSION_REJECTED = "SubmissionRejected"
    RETRIEVAL_FAILED = "RetrievalFailed"
    NO_ARTIFACT_PRODUCED = "NoArtifactProduced"
    TIMEOUT = "Timeout"
    ENCODING_ERROR = "EncodingError"
    EMPTY_INPUT = "EmptyInput"
    INVALID_REQUEST = "InvalidRequest"


class PromptreelError(Exception):
    """Base for all generation errors. `kind` is the discriminator callers switch on."""

    kind: ErrorKind = ErrorKind.SERVER_UNAVAILABLE

    def __init__(
        self,
        detail: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
    ):
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code
        self.body = body[:500] if body else None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"kind": self.kind.value, "detail": self.detail}
        if self.status_code is not None:
            out["status_code"] = self.status_code
        return out


class ServerUnavailableError(PromptreelError):
    """Remote pipeline cannot be reached at all."""
    kind = ErrorKind.SERVER_UNAVAILABLE


class CorsBlockedError(PromptreelError):
    """Remote pipeline looks like it is running but rejects our cross-origin requests."""
    kind = ErrorKind.CORS_BLOCKED


class SubmissionRejectedError(PromptreelError):
    """Workflow graph was rejected before execution (node_errors non-empty)."""
    kind = ErrorKind.SUBMISSION_REJECTED

    def __init__(self, detail: str, *, node_errors: dict[str, Any] | None = None, **kwargs: Any):
        super().__init__(detail, **kwargs)
        self.node_errors = dict(node_errors or {})

    def to_dict(self) -> dict[str, Any]:
        out = super().to_dict()
        if self.node_errors:
            out["node_errors"] = self.node_errors
        return out


class RetrievalFailedError(PromptreelError):
    """History endpoint answered with an error while waiting for the job."""
    kind = ErrorKind.RETRIEVAL_FAILED


class NoArtifactProducedError(PromptreelError):
    """Job completed but none of its output nodes exposed a video."""
    kind = ErrorKind.NO_ARTIFACT_PRODUCED


class GenerationTimeoutError(PromptreelError):
    kind = ErrorKind.TIMEOUT


class EncodingError(PromptreelError):
    kind = ErrorKind.ENCODING_ERROR


class EmptyInputError(PromptreelError):
    kind = ErrorKind.EMPTY_INPUT


class InvalidRequestError(PromptreelError):
    kind = ErrorKind.INVALID_REQUEST
