"""
Workflow graph for the remote pipeline: typed nodes with explicit references,
validated acyclic as they are added, serialized to the pipeline's JSON node map.

Topology is fixed: model loader -> positive/negative text conditioning + empty latent
-> sampler -> decode -> frame assembly. The seed is the only non-deterministic input.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator

from ..random_utils import secure_seed

DEFAULT_NEGATIVE_PROMPT = "blurry, low quality, distorted"


@dataclass(frozen=True)
class NodeRef:
    """Output slot `slot` of node `node_id`. Serialized as [node_id, slot]."""
    node_id: str
    slot: int = 0

    def to_json(self) -> list[Any]:
        return [self.node_id, self.slot]


@dataclass(frozen=True)
class ModelLoaderNode:
    checkpoint: str
    class_type = "CheckpointLoaderSimple"
    title = "Load Checkpoint"

    # Output slots of the loader
    MODEL = 0
    CLIP = 1
    VAE = 2

    def refs(self) -> tuple[NodeRef, ...]:
        return ()

    def inputs(self) -> dict[str, Any]:
        return {"ckpt_name": self.checkpoint}


@dataclass(frozen=True)
class TextConditioningNode:
    text: str
    clip: NodeRef
    negative: bool = False
    class_type = "CLIPTextEncode"

    @property
    def title(self) -> str:
        return "CLIP Text Encode (Negative)" if self.negative else "CLIP Text Encode (Prompt)"

    def refs(self) -> tuple[NodeRef, ...]:
        return (self.clip,)

    def inputs(self) -> dict[str, Any]:
        return {"text": self.text, "clip": self.clip.to_json()}


@dataclass(frozen=True)
class LatentInitNode:
    width: int
    height: int
    batch_size: int = 1
    class_type = "EmptyLatentImage"
    title = "Empty Latent Image"

    def refs(self) -> tuple[NodeRef, ...]:
        return ()

    def inputs(self) -> dict[str, Any]:
        return {"width": self.width, "height": self.height, "batch_size": self.batch_size}


@dataclass(frozen=True)
class SamplerNode:
    model: NodeRef
    positive: NodeRef
    negative: NodeRef
    latent_image: NodeRef
    seed: int
    steps: int = 20
    cfg: float = 7.0
    sampler_name: str = "euler"
    scheduler: str = "normal"
    denoise: float = 1.0
    class_type = "KSampler"
    title = "KSampler"

    def refs(self) -> tuple[NodeRef, ...]:
        return (self.model, self.positive, self.negative, self.latent_image)

    def inputs(self) -> dict[str, Any]:
        return {
            "seed": self.seed,
            "steps": self.steps,
            "cfg": self.cfg,
            "sampler_name": self.sampler_name,
            "scheduler": self.scheduler,
            "denoise": self.denoise,
            "model": self.model.to_json(),
            "positive": self.positive.to_json(),
            "negative": self.negative.to_json(),
            "latent_image": self.latent_image.to_json(),
        }


@dataclass(frozen=True)
class DecodeNode:
    samples: NodeRef
    vae: NodeRef
    class_type = "VAEDecode"
    title = "VAE Decode"

    def refs(self) -> tuple[NodeRef, ...]:
        return (self.samples, self.vae)

    def inputs(self) -> dict[str, Any]:
        return {"samples": self.samples.to_json(), "vae": self.vae.to_json()}


@dataclass(frozen=True)
class FrameAssemblyNode:
    images: NodeRef
    frame_rate: float
    format: str = "video/webm"
    filename_prefix: str = "promptreel_video"
    loop_count: int = 0
    pix_fmt: str = "yuv420p"
    crf: int = 20
    save_metadata: bool = True
    class_type = "VHS_VideoCombine"
    title = "Video Combine"

    def refs(self) -> tuple[NodeRef, ...]:
        return (self.images,)

    def inputs(self) -> dict[str, Any]:
        return {
            "images": self.images.to_json(),
            "frame_rate": self.frame_rate,
            "loop_count": self.loop_count,
            "filename_prefix": self.filename_prefix,
            "format": self.format,
            "pix_fmt": self.pix_fmt,
            "crf": self.crf,
            "save_metadata": self.save_metadata,
        }


WorkflowNode = (
    ModelLoaderNode
    | TextConditioningNode
    | LatentInitNode
    | SamplerNode
    | DecodeNode
    | FrameAssemblyNode
)


class WorkflowGraphError(ValueError):
    """Node added with a duplicate id or a reference to an undeclared node."""


@dataclass
class WorkflowGraph:
    """
    Ordered node map. A node may only reference nodes declared before it, so the graph
    is acyclic by construction. Serialization order follows node ids as the pipeline
    expects string keys; references are resolved by id, not position.
    """
    _nodes: dict[str, WorkflowNode] = field(default_factory=dict)
    _sealed: bool = field(default=False, init=False, repr=False)

    def add(self, node_id: str, node: WorkflowNode) -> NodeRef:
        if self._sealed:
            raise WorkflowGraphError("Graph is sealed; it was already serialized for submission")
        node_id = str(node_id)
        if node_id in self._nodes:
            raise WorkflowGraphError(f"Duplicate node id {node_id!r}")
        for ref in node.refs():
            if ref.node_id not in self._nodes:
                raise WorkflowGraphError(
                    f"Node {node_id!r} references {ref.node_id!r}, which is not declared before it"
                )
        self._nodes[node_id] = node
        return NodeRef(node_id, 0)

    def __getitem__(self, node_id: str) -> WorkflowNode:
        return self._nodes[node_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def items(self) -> Iterator[tuple[str, WorkflowNode]]:
        return iter(self._nodes.items())

    def find(self, node_type: type) -> list[tuple[str, WorkflowNode]]:
        return [(nid, n) for nid, n in self._nodes.items() if isinstance(n, node_type)]

    @property
    def seed(self) -> int | None:
        samplers = self.find(SamplerNode)
        return samplers[0][1].seed if samplers else None

    @property
    def sealed(self) -> bool:
        return self._sealed

    def to_prompt(self) -> dict[str, dict[str, Any]]:
        """JSON node map for POST /prompt. Seals the graph: no nodes can be added afterwards."""
        self._sealed = True
        return {
            node_id: {
                "inputs": node.inputs(),
                "class_type": node.class_type,
                "_meta": {"title": node.title},
            }
            for node_id, node in sorted(self._nodes.items(), key=lambda kv: _id_sort_key(kv[0]))
        }


def _id_sort_key(node_id: str) -> tuple[int, Any]:
    return (0, int(node_id)) if node_id.isdigit() else (1, node_id)


@dataclass(frozen=True)
class WorkflowSettings:
    """Node settings the builder does not derive from the request."""
    checkpoint: str = "sd_xl_base_1.0.safetensors"
    steps: int = 20
    cfg: float = 7.0
    sampler: str = "euler"
    scheduler: str = "normal"
    format: str = "video/webm"
    filename_prefix: str = "promptreel_video"
    pix_fmt: str = "yuv420p"
    crf: int = 20

    @classmethod
    def from_config(cls, workflow_cfg: dict[str, Any] | None) -> WorkflowSettings:
        cfg = workflow_cfg or {}
        base = cls()
        return cls(
            checkpoint=str(cfg.get("checkpoint", base.checkpoint)),
            steps=int(cfg.get("steps", base.steps)),
            cfg=float(cfg.get("cfg", base.cfg)),
            sampler=str(cfg.get("sampler", base.sampler)),
            scheduler=str(cfg.get("scheduler", base.scheduler)),
            format=str(cfg.get("format", base.format)),
            filename_prefix=str(cfg.get("filename_prefix", base.filename_prefix)),
            pix_fmt=str(cfg.get("pix_fmt", base.pix_fmt)),
            crf=int(cfg.get("crf", base.crf)),
        )


def build_text_to_video_workflow(
    prompt: str,
    negative_prompt: str | None,
    width: int,
    height: int,
    *,
    frame_count: int = 1,
    fps: float = 10,
    seed: int | None = None,
    settings: WorkflowSettings | None = None,
) -> WorkflowGraph:
    """
    Build the text-to-video graph. Same inputs give structurally identical graphs;
    only the sampler seed differs between calls unless `seed` is given.
    """
    settings = settings or WorkflowSettings()
    if seed is None:
        seed = secure_seed()
    graph = WorkflowGraph()
    # Ids kept stable ("1".."7") so rejected-node reports map back to the same node.
    loader = graph.add("4", ModelLoaderNode(checkpoint=settings.checkpoint))
    clip = NodeRef(loader.node_id, ModelLoaderNode.CLIP)
    vae = NodeRef(loader.node_id, ModelLoaderNode.VAE)
    model = NodeRef(loader.node_id, ModelLoaderNode.MODEL)

    positive = graph.add("1", TextConditioningNode(text=prompt, clip=clip))
    negative = graph.add(
        "2",
        TextConditioningNode(text=negative_prompt or DEFAULT_NEGATIVE_PROMPT, clip=clip, negative=True),
    )
    latent = graph.add("5", LatentInitNode(width=width, height=height, batch_size=max(1, frame_count)))
    samples = graph.add(
        "3",
        SamplerNode(
            model=model,
            positive=positive,
            negative=negative,
            latent_image=latent,
            seed=seed,
            steps=settings.steps,
            cfg=settings.cfg,
            sampler_name=settings.sampler,
            scheduler=settings.scheduler,
        ),
    )
    images = graph.add("6", DecodeNode(samples=samples, vae=vae))
    graph.add(
        "7",
        FrameAssemblyNode(
            images=images,
            frame_rate=fps,
            format=settings.format,
            filename_prefix=settings.filename_prefix,
            pix_fmt=settings.pix_fmt,
            crf=settings.crf,
        ),
    )
    return graph
