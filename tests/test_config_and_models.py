"""
Config loading (partial YAML over defaults) and request/artifact data model.
"""
import sys
import tempfile
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from promptreel.config import (
    load_config,
    resolve_encoder_config,
    resolve_generation_defaults,
    resolve_remote_config,
)
from promptreel.errors import ErrorKind, InvalidRequestError, SubmissionRejectedError
from promptreel.models import GenerationRequest, LocalArtifact


class TestConfig(unittest.TestCase):

    def test_default_file_loads(self):
        config = load_config()
        remote = resolve_remote_config(config)
        self.assertEqual(remote["server_url"], "http://localhost:8188")
        self.assertEqual(remote["poll_interval"], 2.0)
        self.assertEqual(remote["result_timeout"], 300.0)
        self.assertEqual(remote["retry_attempts"], 3)

    def test_partial_file_merges_over_defaults(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "custom.yaml"
            path.write_text("remote:\n  server_url: http://gpu-box:8188\nencoder:\n  realtime: false\n")
            config = load_config(path)
        self.assertEqual(resolve_remote_config(config)["server_url"], "http://gpu-box:8188")
        self.assertEqual(resolve_remote_config(config)["request_timeout"], 30.0)
        self.assertFalse(resolve_encoder_config(config)["realtime"])
        self.assertEqual(resolve_encoder_config(config)["codec"], "libx264")
        self.assertEqual(resolve_generation_defaults(config)["frame_count"], 30)

    def test_missing_file_gives_defaults(self):
        config = load_config(Path(tempfile.gettempdir()) / "promptreel-does-not-exist.yaml")
        self.assertEqual(config["output"]["dir"], "output")

    def test_non_mapping_file_rejected(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "bad.yaml"
            path.write_text("- just\n- a list\n")
            with self.assertRaises(ValueError):
                load_config(path)


class TestGenerationRequest(unittest.TestCase):

    def test_prompt_trimmed_and_required(self):
        self.assertEqual(GenerationRequest("  hello ").prompt, "hello")
        with self.assertRaises(InvalidRequestError) as ctx:
            GenerationRequest("   ")
        self.assertEqual(ctx.exception.kind, ErrorKind.INVALID_REQUEST)

    def test_dimensions_must_be_positive(self):
        for field in ("width", "height", "frame_count"):
            with self.subTest(field=field):
                with self.assertRaises(InvalidRequestError):
                    GenerationRequest("x", **{field: 0})
        with self.assertRaises(InvalidRequestError):
            GenerationRequest("x", fps=0)

    def test_blank_negative_prompt_is_none(self):
        self.assertIsNone(GenerationRequest("x", negative_prompt="  ").negative_prompt)

    def test_duration(self):
        self.assertAlmostEqual(GenerationRequest("x", frame_count=30, fps=10).duration_seconds, 3.0)


class TestArtifacts(unittest.TestCase):

    def test_local_artifact_save(self):
        artifact = LocalArtifact(data=b"abc", mime_type="video/mp4", frame_count=5, fps=10)
        self.assertEqual(artifact.size, 3)
        self.assertAlmostEqual(artifact.duration, 0.5)
        with tempfile.TemporaryDirectory() as tmp:
            out = artifact.save(Path(tmp) / "nested" / "clip.mp4")
            self.assertEqual(out.read_bytes(), b"abc")

    def test_error_to_dict(self):
        err = SubmissionRejectedError("bad graph", node_errors={"3": "x"}, status_code=400)
        self.assertEqual(err.to_dict(), {
            "kind": "SubmissionRejected",
            "detail": "bad graph",
            "status_code": 400,
            "node_errors": {"3": "x"},
        })
