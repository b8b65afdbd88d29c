"""
HTTP + push-channel client for the remote generation pipeline (ComfyUI-style job queue).
Availability probe, job submission, progress over the WebSocket, history polling for the result.

Everything runs on the caller's thread. While a job is outstanding, the wait between two
history polls is spent reading push messages, so progress callbacks and polls never overlap.
"""
from __future__ import annotations

import json
import logging
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable
from urllib.parse import urlencode

import requests
import websocket

from ..errors import (
    CorsBlockedError,
    GenerationTimeoutError,
    NoArtifactProducedError,
    PromptreelError,
    RetrievalFailedError,
    ServerUnavailableError,
    SubmissionRejectedError,
)
from ..models import GenerationRequest, RemoteArtifact
from ..video_generator.base import VideoGenerator
from .progress import GenerationSession, ProgressCallback, parse_message
from .workflow import WorkflowGraph, WorkflowSettings, build_text_to_video_workflow

logger = logging.getLogger(__name__)

_API_HEADERS = {
    "Accept": "application/json",
    "Accept-Language": "en-US,en;q=0.9",
    "User-Agent": "Mozilla/5.0 (compatible; promptreel/1.0)",
}

DEFAULT_SERVER_URL = "http://localhost:8188"
DEFAULT_BACKOFF_SECONDS = 2.0
# VideoHelperSuite reports videos under "gifs" in older releases
_VIDEO_OUTPUT_KEYS = ("videos", "gifs", "video")


class Availability(str, Enum):
    AVAILABLE = "available"
    CORS_BLOCKED = "cors_blocked"
    UNAVAILABLE = "unavailable"


@dataclass
class ConnectionReport:
    """Outcome of run_diagnostics: one flag per check plus the last error seen."""
    server_available: bool = False
    models_loaded: bool = False
    websocket_connected: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.server_available and self.models_loaded and self.websocket_connected


def _default_ws_factory(url: str, timeout: float) -> websocket.WebSocket:
    return websocket.create_connection(url, timeout=timeout)


def _is_success(status: int | None) -> bool:
    return status is not None and 200 <= status < 300


def _parse_json_response(resp: requests.Response) -> Any:
    """Parse JSON body; None if empty or invalid."""
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return None


class RemotePipelineClient(VideoGenerator):
    """
    One client per pipeline server. The client id is generated once and keys the push
    channel, which stays open across generations until disconnect().
    Overlapping generate_video calls on one client are not supported.
    """

    def __init__(
        self,
        server_url: str = DEFAULT_SERVER_URL,
        *,
        request_timeout: float = 30.0,
        result_timeout: float = 300.0,
        poll_interval: float = 2.0,
        retry_attempts: int = 3,
        backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
        origin: str | None = None,
        workflow_settings: WorkflowSettings | None = None,
        session: requests.Session | None = None,
        ws_factory: Callable[[str, float], Any] | None = None,
        clock: Callable[[], float] | None = None,
        sleep: Callable[[float], None] | None = None,
    ):
        self.server_url = server_url.rstrip("/")
        self.request_timeout = request_timeout
        self.result_timeout = result_timeout
        self.poll_interval = poll_interval
        self.retry_attempts = max(0, retry_attempts)
        self.backoff_seconds = backoff_seconds
        self.origin = origin
        self.workflow_settings = workflow_settings or WorkflowSettings()
        self.client_id = uuid.uuid4().hex
        self._http = session or requests.Session()
        self._ws_factory = ws_factory or _default_ws_factory
        self._clock = clock or time.monotonic
        self._sleep = sleep or time.sleep
        self._ws: Any = None
        self._active: GenerationSession | None = None

    @classmethod
    def from_config(cls, config: dict[str, Any], **kwargs: Any) -> RemotePipelineClient:
        from ..config import resolve_remote_config, resolve_workflow_config

        remote = resolve_remote_config(config)
        origin = (config.get("remote") or {}).get("origin")
        return cls(
            remote["server_url"],
            request_timeout=remote["request_timeout"],
            result_timeout=remote["result_timeout"],
            poll_interval=remote["poll_interval"],
            retry_attempts=remote["retry_attempts"],
            origin=origin,
            workflow_settings=WorkflowSettings.from_config(resolve_workflow_config(config)),
            **kwargs,
        )

    def __enter__(self) -> RemotePipelineClient:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.disconnect()

    # --- urls / headers ---

    def _url(self, path: str) -> str:
        return f"{self.server_url}{path}"

    @property
    def ws_url(self) -> str:
        base = self.server_url
        if base.startswith("https://"):
            base = "wss://" + base[len("https://"):]
        elif base.startswith("http://"):
            base = "ws://" + base[len("http://"):]
        return f"{base}/ws?clientId={self.client_id}"

    def view_url(self, filename: str, subfolder: str = "", file_type: str = "output") -> str:
        query = urlencode({"filename": filename, "subfolder": subfolder, "type": file_type})
        return self._url(f"/view?{query}")

    def _headers(self) -> dict[str, str]:
        headers = dict(_API_HEADERS)
        if self.origin:
            headers["Origin"] = self.origin
            headers["Referer"] = self.origin.rstrip("/") + "/"
        return headers

    @property
    def connected(self) -> bool:
        return self._ws is not None and getattr(self._ws, "connected", True)

    @property
    def active_session(self) -> GenerationSession | None:
        return self._active

    # --- availability ---

    def probe(self) -> Availability:
        """
        GET /system_stats. A connection-level failure or an origin rejection (403) is
        re-checked with an opaque request (no Origin, status ignored): if that one gets
        any answer the server is probably running but refusing cross-origin calls.
        That conclusion is a best-effort signal, not a guarantee.
        """
        url = self._url("/system_stats")
        try:
            resp = self._http.get(url, headers=self._headers(), timeout=self.request_timeout)
        except requests.exceptions.ConnectionError as e:
            logger.warning("Pipeline availability check failed: %s", e)
            return self._probe_opaque(url)
        except requests.exceptions.RequestException as e:
            logger.warning("Pipeline availability check failed: %s", e)
            return Availability.UNAVAILABLE
        if _is_success(resp.status_code):
            return Availability.AVAILABLE
        if resp.status_code == 403:
            logger.warning("Pipeline at %s rejected the request origin (403)", self.server_url)
            return self._probe_opaque(url)
        logger.warning("Pipeline availability check returned HTTP %s", resp.status_code)
        return Availability.UNAVAILABLE

    def _probe_opaque(self, url: str) -> Availability:
        try:
            resp = self._http.get(
                url,
                headers={"User-Agent": _API_HEADERS["User-Agent"]},
                timeout=self.request_timeout,
                allow_redirects=False,
            )
        except requests.exceptions.RequestException as e:
            logger.info("Opaque probe failed too; pipeline not reachable: %s", e)
            return Availability.UNAVAILABLE
        close = getattr(resp, "close", None)
        if close is not None:
            close()
        logger.warning(
            "Pipeline detected at %s but cross-origin requests are blocked. Configure CORS on the server.",
            self.server_url,
        )
        return Availability.CORS_BLOCKED

    def is_server_available(self) -> bool:
        """True if reachable. Raises CorsBlockedError when the server blocks our origin."""
        availability = self.probe()
        if availability is Availability.CORS_BLOCKED:
            raise CorsBlockedError(
                f"Pipeline at {self.server_url} appears to be running but blocks cross-origin requests"
            )
        return availability is Availability.AVAILABLE

    # --- push channel ---

    def connect(self) -> None:
        """Open the push channel if it is not open yet. Kept open across generations."""
        if self.connected:
            return
        url = self.ws_url
        try:
            self._ws = self._ws_factory(url, self.request_timeout)
        except websocket.WebSocketBadStatusException as e:
            # the server answered the handshake, so it is up but refusing the channel
            self._ws = None
            status = getattr(e, "status_code", None)
            if status == 403:
                raise CorsBlockedError(
                    f"Pipeline at {self.server_url} rejected the WebSocket origin (403). Configure CORS on the server.",
                    status_code=status,
                ) from e
            raise RetrievalFailedError(
                f"Pipeline WebSocket handshake at {url} was refused: {e}", status_code=status,
            ) from e
        except (OSError, websocket.WebSocketException) as e:
            self._ws = None
            raise ServerUnavailableError(f"Failed to connect to pipeline WebSocket at {url}: {e}") from e
        logger.info("Connected to pipeline WebSocket (client %s)", self.client_id)

    def disconnect(self) -> None:
        self._close_ws()
        self._active = None

    def _close_ws(self) -> None:
        ws, self._ws = self._ws, None
        if ws is None:
            return
        try:
            ws.close()
        except (OSError, websocket.WebSocketException) as e:
            logger.debug("Error closing WebSocket: %s", e)
        logger.info("Pipeline WebSocket connection closed")

    def _drain_channel(self, session: GenerationSession, wait: float) -> None:
        """Deliver push messages to the session for up to `wait` seconds."""
        end = self._clock() + wait
        while True:
            remaining = end - self._clock()
            if remaining <= 0:
                return
            if self._ws is None:
                self._sleep(remaining)
                return
            try:
                self._ws.settimeout(remaining)
                raw = self._ws.recv()
            except (websocket.WebSocketTimeoutException, TimeoutError):
                return
            except (websocket.WebSocketException, OSError) as e:
                logger.warning("Pipeline WebSocket failed (%s); continuing with polling only", e)
                self._close_ws()
                continue
            message = parse_message(raw)
            if message is not None:
                session.handle(message)

    # --- job queue ---

    def build_workflow(self, request: GenerationRequest, *, seed: int | None = None) -> WorkflowGraph:
        return build_text_to_video_workflow(
            request.prompt,
            request.negative_prompt,
            request.width,
            request.height,
            frame_count=request.frame_count,
            fps=request.fps,
            seed=seed,
            settings=self.workflow_settings,
        )

    def submit(self, graph: WorkflowGraph) -> str:
        """
        POST /prompt. Returns the prompt id. A non-empty node_errors map means the graph
        was rejected before execution. Retries 5xx and connection errors.
        """
        url = self._url("/prompt")
        body = {"prompt": graph.to_prompt(), "client_id": self.client_id}
        for attempt in range(self.retry_attempts + 1):
            try:
                resp = self._http.post(url, json=body, headers=self._headers(), timeout=self.request_timeout)
            except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
                if attempt < self.retry_attempts:
                    logger.warning(
                        "POST /prompt connection/timeout (attempt %s), retrying in %.1fs",
                        attempt + 1, self.backoff_seconds,
                    )
                    self._sleep(self.backoff_seconds)
                    continue
                raise ServerUnavailableError(f"POST /prompt failed: {e}") from e
            except requests.exceptions.RequestException as e:
                raise ServerUnavailableError(f"POST /prompt failed: {e}") from e

            status = resp.status_code
            if 500 <= status < 600 and attempt < self.retry_attempts:
                logger.warning(
                    "POST /prompt -> %s (attempt %s), retrying in %.1fs",
                    status, attempt + 1, self.backoff_seconds,
                )
                self._sleep(self.backoff_seconds)
                continue
            return self._read_submission(resp)
        raise ServerUnavailableError("POST /prompt failed")

    def _read_submission(self, resp: requests.Response) -> str:
        status = resp.status_code
        data = _parse_json_response(resp)
        payload = data if isinstance(data, dict) else {}
        node_errors = payload.get("node_errors") or {}
        if not _is_success(status):
            detail = f"Failed to queue prompt: HTTP {status}"
            error = payload.get("error")
            if isinstance(error, dict) and error.get("message"):
                detail += f" ({error['message']})"
            raise SubmissionRejectedError(
                detail, node_errors=node_errors, status_code=status, body=resp.text,
            )
        if node_errors:
            raise SubmissionRejectedError(
                f"Workflow errors: {json.dumps(node_errors, default=str)}",
                node_errors=node_errors,
                status_code=status,
            )
        prompt_id = payload.get("prompt_id")
        if not prompt_id:
            raise SubmissionRejectedError(
                "Queue response carried no prompt_id", status_code=status, body=resp.text,
            )
        logger.info("Queued prompt %s", prompt_id)
        return str(prompt_id)

    def _fetch_history(self, prompt_id: str) -> dict[str, Any] | None:
        """GET /history/{id}. None while the job is not finished."""
        try:
            resp = self._http.get(
                self._url(f"/history/{prompt_id}"),
                headers=self._headers(),
                timeout=self.request_timeout,
            )
        except requests.exceptions.RequestException as e:
            raise RetrievalFailedError(f"Failed to check generation status: {e}") from e
        if not _is_success(resp.status_code):
            raise RetrievalFailedError(
                f"Failed to check generation status: HTTP {resp.status_code}",
                status_code=resp.status_code,
                body=resp.text,
            )
        history = _parse_json_response(resp)
        if history is None:
            return None
        if not isinstance(history, dict):
            raise RetrievalFailedError("History response is not a JSON object", body=resp.text)
        entry = history.get(prompt_id)
        return entry if isinstance(entry, dict) else None

    def _extract_artifact(self, prompt_id: str, entry: dict[str, Any]) -> RemoteArtifact:
        status = entry.get("status") or {}
        if isinstance(status, dict) and status.get("status_str") == "error":
            raise RetrievalFailedError(f"Pipeline reported an execution error for prompt {prompt_id}")
        outputs = entry.get("outputs")
        if not isinstance(outputs, dict):
            outputs = {}
        for node_id, node_output in outputs.items():
            if not isinstance(node_output, dict):
                continue
            for key in _VIDEO_OUTPUT_KEYS:
                videos = node_output.get(key)
                if isinstance(videos, dict):
                    videos = [videos]
                if not isinstance(videos, list):
                    continue
                video = next((v for v in videos if isinstance(v, dict) and v.get("filename")), None)
                if video is None:
                    continue
                filename = str(video["filename"])
                subfolder = video.get("subfolder", "") or ""
                file_type = video.get("type", "output") or "output"
                logger.info("Prompt %s produced %s (node %s)", prompt_id, filename, node_id)
                return RemoteArtifact(
                    url=self.view_url(filename, subfolder, file_type),
                    filename=filename,
                    subfolder=subfolder,
                    type=file_type,
                )
        output_keys = {nid: list(out.keys()) for nid, out in outputs.items() if isinstance(out, dict)}
        raise NoArtifactProducedError(
            f"No video output found in generation results (outputs: {output_keys})"
        )

    def wait_for_result(self, session: GenerationSession) -> RemoteArtifact:
        """
        Fixed-interval history polling bounded by result_timeout. Push messages are
        delivered during each interval wait. The remote job is not cancelled on timeout.
        """
        if not session.prompt_id:
            raise ValueError("wait_for_result needs a session with a prompt id")
        deadline = self._clock() + self.result_timeout
        while True:
            remaining = deadline - self._clock()
            if remaining <= 0:
                break
            self._drain_channel(session, min(self.poll_interval, remaining))
            if self._clock() >= deadline:
                break
            entry = self._fetch_history(session.prompt_id)
            if entry is not None:
                return self._extract_artifact(session.prompt_id, entry)
        raise GenerationTimeoutError(
            f"Video generation timeout after {self.result_timeout:.0f}s (prompt {session.prompt_id})"
        )

    def generate_video(
        self,
        request: GenerationRequest,
        on_progress: ProgressCallback | None = None,
        *,
        seed: int | None = None,
    ) -> RemoteArtifact:
        """Submit one request and wait for its video. Arms a new session for this call."""
        session = GenerationSession(callback=on_progress, started_at=self._clock())
        self._active = session
        try:
            self.connect()
            session.report(10, "Creating workflow...")
            graph = self.build_workflow(request, seed=seed)
            session.report(20, "Queueing generation...")
            session.prompt_id = self.submit(graph)
            session.report(30, "Generation started...")
            artifact = self.wait_for_result(session)
            session.outcome = "success"
            session.report(100, "Video generation complete!")
            logger.info(
                "Prompt %s finished in %.1fs", session.prompt_id, session.elapsed(self._clock),
            )
            return artifact
        except PromptreelError as e:
            session.outcome = e.kind.value
            raise
        finally:
            if self._active is session:
                self._active = None

    def generate(
        self,
        request: GenerationRequest,
        on_progress: ProgressCallback | None = None,
    ) -> RemoteArtifact:
        return self.generate_video(request, on_progress)

    # --- diagnostics ---

    def get_models(self) -> list[str]:
        """Checkpoint names known to the pipeline; [] if they cannot be read."""
        try:
            resp = self._http.get(self._url("/object_info"), headers=self._headers(), timeout=self.request_timeout)
        except requests.exceptions.RequestException as e:
            logger.warning("Failed to fetch models: %s", e)
            return []
        if not _is_success(resp.status_code):
            logger.warning("Failed to fetch models: HTTP %s", resp.status_code)
            return []
        data = _parse_json_response(resp)
        if not isinstance(data, dict):
            return []
        try:
            names = data["CheckpointLoaderSimple"]["input"]["required"]["ckpt_name"][0]
        except (KeyError, IndexError, TypeError):
            return []
        return [str(n) for n in names] if isinstance(names, list) else []

    def run_diagnostics(self) -> ConnectionReport:
        """Server reachable, checkpoints listed, push channel opens."""
        report = ConnectionReport()
        try:
            report.server_available = self.is_server_available()
        except CorsBlockedError as e:
            report.error = e.detail
            return report
        if not report.server_available:
            report.error = f"Pipeline server is not running at {self.server_url}"
            return report
        report.models_loaded = len(self.get_models()) > 0
        if not report.models_loaded:
            report.error = "No checkpoints reported by the pipeline"
        try:
            self.connect()
            report.websocket_connected = True
        except PromptreelError as e:
            report.error = e.detail
        return report
