# Remote pipeline backend: workflow graph, push-channel progress, job-queue client

from .client import Availability, ConnectionReport, RemotePipelineClient
from .progress import GenerationSession, NodeEndEvent, NodeStartEvent, StepEvent
from .workflow import WorkflowGraph, WorkflowSettings, build_text_to_video_workflow

__all__ = [
    "Availability",
    "ConnectionReport",
    "RemotePipelineClient",
    "GenerationSession",
    "NodeEndEvent",
    "NodeStartEvent",
    "StepEvent",
    "WorkflowGraph",
    "WorkflowSettings",
    "build_text_to_video_workflow",
]
