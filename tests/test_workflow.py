"""
Workflow graph builder: fixed topology, reference validation, seed as the only variable.
"""
import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from promptreel.random_utils import SEED_RANGE
from promptreel.remote.workflow import (
    DEFAULT_NEGATIVE_PROMPT,
    DecodeNode,
    LatentInitNode,
    ModelLoaderNode,
    NodeRef,
    SamplerNode,
    TextConditioningNode,
    WorkflowGraph,
    WorkflowGraphError,
    WorkflowSettings,
    build_text_to_video_workflow,
)


def _without_seed(prompt_json):
    out = {}
    for node_id, node in prompt_json.items():
        inputs = {k: v for k, v in node["inputs"].items() if k != "seed"}
        out[node_id] = {**node, "inputs": inputs}
    return out


class TestWorkflowBuilder(unittest.TestCase):

    def test_same_inputs_differ_only_in_seed(self):
        a = build_text_to_video_workflow("misty forest", None, 512, 320, frame_count=16, fps=8)
        b = build_text_to_video_workflow("misty forest", None, 512, 320, frame_count=16, fps=8)
        self.assertEqual(_without_seed(a.to_prompt()), _without_seed(b.to_prompt()))
        self.assertIsNotNone(a.seed)
        self.assertTrue(0 <= a.seed < SEED_RANGE)

    def test_explicit_seed_is_used(self):
        graph = build_text_to_video_workflow("x", None, 64, 64, seed=1234)
        self.assertEqual(graph.to_prompt()["3"]["inputs"]["seed"], 1234)

    def test_topology(self):
        graph = build_text_to_video_workflow("neon city", "ugly", 640, 384, frame_count=24, fps=12)
        prompt = graph.to_prompt()
        self.assertEqual(list(prompt), ["1", "2", "3", "4", "5", "6", "7"])
        self.assertEqual(prompt["1"]["class_type"], "CLIPTextEncode")
        self.assertEqual(prompt["1"]["inputs"], {"text": "neon city", "clip": ["4", 1]})
        self.assertEqual(prompt["2"]["inputs"]["text"], "ugly")
        self.assertEqual(prompt["5"]["inputs"], {"width": 640, "height": 384, "batch_size": 24})
        sampler = prompt["3"]["inputs"]
        self.assertEqual(sampler["positive"], ["1", 0])
        self.assertEqual(sampler["negative"], ["2", 0])
        self.assertEqual(sampler["latent_image"], ["5", 0])
        self.assertEqual(sampler["model"], ["4", 0])
        self.assertEqual(prompt["6"]["inputs"], {"samples": ["3", 0], "vae": ["4", 2]})
        self.assertEqual(prompt["7"]["class_type"], "VHS_VideoCombine")
        self.assertEqual(prompt["7"]["inputs"]["frame_rate"], 12)
        self.assertEqual(prompt["7"]["inputs"]["format"], "video/webm")
        self.assertEqual(prompt["7"]["_meta"], {"title": "Video Combine"})

    def test_default_negative_prompt(self):
        graph = build_text_to_video_workflow("x", None, 64, 64)
        self.assertEqual(graph.to_prompt()["2"]["inputs"]["text"], DEFAULT_NEGATIVE_PROMPT)

    def test_settings_flow_into_nodes(self):
        settings = WorkflowSettings.from_config({"checkpoint": "other.safetensors", "steps": 8, "format": "video/h264-mp4"})
        prompt = build_text_to_video_workflow("x", None, 64, 64, settings=settings).to_prompt()
        self.assertEqual(prompt["4"]["inputs"]["ckpt_name"], "other.safetensors")
        self.assertEqual(prompt["3"]["inputs"]["steps"], 8)
        self.assertEqual(prompt["7"]["inputs"]["format"], "video/h264-mp4")


class TestWorkflowGraph(unittest.TestCase):

    def test_reference_to_undeclared_node_is_rejected(self):
        graph = WorkflowGraph()
        with self.assertRaises(WorkflowGraphError):
            graph.add("1", TextConditioningNode(text="x", clip=NodeRef("4", 1)))
        self.assertEqual(len(graph), 0)

    def test_duplicate_id_is_rejected(self):
        graph = WorkflowGraph()
        graph.add("5", LatentInitNode(64, 64))
        with self.assertRaises(WorkflowGraphError):
            graph.add("5", LatentInitNode(32, 32))

    def test_nodes_can_only_point_backwards(self):
        graph = WorkflowGraph()
        loader = graph.add("4", ModelLoaderNode("m.safetensors"))
        latent = graph.add("5", LatentInitNode(64, 64))
        # decode cannot point at a sampler that does not exist yet
        with self.assertRaises(WorkflowGraphError):
            graph.add("6", DecodeNode(samples=NodeRef("3"), vae=NodeRef(loader.node_id, ModelLoaderNode.VAE)))
        pos = graph.add("1", TextConditioningNode("a", NodeRef("4", 1)))
        neg = graph.add("2", TextConditioningNode("b", NodeRef("4", 1), negative=True))
        graph.add("3", SamplerNode(NodeRef("4", 0), pos, neg, latent, seed=1))
        graph.add("6", DecodeNode(samples=NodeRef("3"), vae=NodeRef("4", 2)))
        self.assertEqual(list(graph), ["4", "5", "1", "2", "3", "6"])
        self.assertEqual(graph.seed, 1)

    def test_serialized_graph_is_sealed(self):
        graph = build_text_to_video_workflow("x", None, 64, 64, seed=5)
        self.assertFalse(graph.sealed)
        first = graph.to_prompt()
        self.assertTrue(graph.sealed)
        with self.assertRaises(WorkflowGraphError):
            graph.add("8", LatentInitNode(32, 32))
        self.assertEqual(len(graph), 7)
        self.assertEqual(graph.to_prompt(), first)
