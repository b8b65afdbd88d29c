"""
Backend selection: remote when it answers, procedural only when it is unreachable.
"""
import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
for p in (ROOT, ROOT / "tests"):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))

import requests

from fakes import FakeClock, FakeHTTP, FakeResponse, FakeWebSocket, RecordingSink, WebSocketFactory
from promptreel.config import _defaults
from promptreel.encoder import FrameEncoder
from promptreel.errors import CorsBlockedError, SubmissionRejectedError
from promptreel.models import GenerationRequest, LocalArtifact, RemoteArtifact
from promptreel.pipeline import VideoGenerationService, build_request, generate_video
from promptreel.procedural import ProceduralVideoGenerator
from promptreel.remote import RemotePipelineClient

BASE = "http://pipeline.test:8188"


def _request():
    return GenerationRequest("calm ocean waves", width=32, height=32, frame_count=4, fps=4)


class PipelineTestCase(unittest.TestCase):

    def setUp(self):
        self.clock = FakeClock()
        self.http = FakeHTTP()
        self.ws_factory = WebSocketFactory(FakeWebSocket(self.clock))
        self.events = []

    def service(self):
        remote = RemotePipelineClient(
            BASE,
            session=self.http,
            ws_factory=self.ws_factory,
            clock=self.clock,
            sleep=self.clock.sleep,
            poll_interval=2.0,
            result_timeout=10.0,
            retry_attempts=0,
        )
        encoder = FrameEncoder(lambda: RecordingSink(), sleep=self.clock.sleep)
        return VideoGenerationService(remote, ProceduralVideoGenerator(encoder=encoder))

    def on_progress(self, percent, status):
        self.events.append((percent, status))


class TestFallback(PipelineTestCase):

    def test_unreachable_server_uses_procedural(self):
        service = self.service()
        artifact = service.generate_video(_request(), self.on_progress)
        self.assertIsInstance(artifact, LocalArtifact)
        self.assertEqual(artifact.frame_count, 4)
        self.assertEqual(service.last_backend, "procedural")
        self.assertEqual(self.http.count("POST", "/prompt"), 0)
        self.assertEqual(self.ws_factory.urls, [])
        self.assertEqual(self.events, [
            (10, "Analyzing prompt..."),
            (30, "Generating 4 frames..."),
            (70, "Assembling video..."),
            (100, "Procedural video generated!"),
        ])
        self.assertEqual(service.procedural.last_style.palette_name, "ocean")

    def test_cors_blocked_is_reported_not_masked(self):
        self.http.route(
            "GET", "/system_stats",
            requests.exceptions.ConnectionError("Failed to fetch"),
            FakeResponse(200, {}),
        )
        service = self.service()
        with self.assertRaises(CorsBlockedError):
            service.generate_video(_request(), self.on_progress)
        self.assertEqual(self.events, [])
        self.assertIsNone(service.last_backend)

    def test_unreachable_server_infers_warm_palette_for_sunset_over_ocean(self):
        service = self.service()
        request = GenerationRequest(
            "Ocean waves crashing on beach, sunset lighting", width=32, height=32, frame_count=4, fps=4,
        )
        artifact = service.generate_video(request, self.on_progress)
        self.assertIsInstance(artifact, LocalArtifact)
        self.assertEqual(service.last_backend, "procedural")
        style = service.procedural.last_style
        self.assertEqual(style.palette_name, "warm_sunset")
        self.assertEqual(style.animation.value, "wave")
        self.assertEqual(self.http.count("POST", "/prompt"), 0)

    def test_push_channel_origin_rejection_is_not_masked(self):
        import websocket

        self.http.route("GET", "/system_stats", FakeResponse(200, {}))
        self.ws_factory.error = websocket.WebSocketBadStatusException("Handshake status 403 Forbidden", 403)
        service = self.service()
        with self.assertRaises(CorsBlockedError):
            service.generate_video(_request(), self.on_progress)
        self.assertIsNone(service.last_backend)
        self.assertNotIn((10, "Analyzing prompt..."), self.events)

    def test_push_channel_failure_falls_back(self):
        self.http.route("GET", "/system_stats", FakeResponse(200, {}))
        self.ws_factory.error = ConnectionRefusedError("refused")
        service = self.service()
        artifact = service.generate_video(_request(), self.on_progress)
        self.assertIsInstance(artifact, LocalArtifact)
        self.assertEqual(service.last_backend, "procedural")
        self.assertEqual(self.http.count("POST", "/prompt"), 0)

    def test_rejected_submission_propagates(self):
        self.http.route("GET", "/system_stats", FakeResponse(200, {}))
        self.http.route("POST", "/prompt", FakeResponse(200, {"prompt_id": "p", "node_errors": {"3": "bad"}}))
        service = self.service()
        with self.assertRaises(SubmissionRejectedError):
            service.generate_video(_request(), self.on_progress)
        self.assertIsNone(service.last_backend)
        self.assertNotIn((10, "Analyzing prompt..."), self.events)


class TestRemotePath(PipelineTestCase):

    def test_available_server_returns_remote_artifact(self):
        self.http.route("GET", "/system_stats", FakeResponse(200, {}))
        self.http.route("POST", "/prompt", FakeResponse(200, {"prompt_id": "p", "number": 1, "node_errors": {}}))
        self.http.route("GET", "/history/p", FakeResponse(200, {
            "p": {"outputs": {"7": {"gifs": [{"filename": "a.webm", "subfolder": "", "type": "output"}]}}},
        }))
        service = self.service()
        artifact = service.generate_video(_request(), self.on_progress)
        self.assertIsInstance(artifact, RemoteArtifact)
        self.assertEqual(artifact.filename, "a.webm")
        self.assertEqual(service.last_backend, "remote")
        self.assertEqual(self.events[-1], (100, "Video generation complete!"))
        service.close()
        self.assertFalse(service.remote.connected)


class TestConvenienceEntry(PipelineTestCase):

    def test_build_request_uses_config_defaults(self):
        config = _defaults()
        config["generation"]["frame_count"] = 12
        request = build_request("  a red spiral  ", config, fps=None, width=64)
        self.assertEqual(request.prompt, "a red spiral")
        self.assertEqual(request.frame_count, 12)
        self.assertEqual(request.width, 64)
        self.assertEqual(request.height, 512)
        self.assertEqual(request.fps, 10.0)

    def test_generate_video_with_service(self):
        config = _defaults()
        config["generation"].update({"width": 16, "height": 16, "frame_count": 3, "fps": 6})
        artifact = generate_video("fast sparkle", config=config, service=self.service())
        self.assertIsInstance(artifact, LocalArtifact)
        self.assertEqual(artifact.frame_count, 3)
