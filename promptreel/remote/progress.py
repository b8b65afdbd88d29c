"""
Push-channel progress: parse pipeline messages into events, normalize events to
(percent, status) and hold per-call session state.
"""
from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float, str], None]


@dataclass(frozen=True)
class StepEvent:
    completed: int
    total: int


@dataclass(frozen=True)
class NodeStartEvent:
    node_id: str


@dataclass(frozen=True)
class NodeEndEvent:
    pass


ProgressEvent = StepEvent | NodeStartEvent | NodeEndEvent


@dataclass(frozen=True)
class ChannelMessage:
    """Parsed push message: the event plus the prompt id it belongs to, when stated."""
    event: ProgressEvent
    prompt_id: str | None = None


def parse_message(raw: str | bytes) -> ChannelMessage | None:
    """
    Parse one push-channel frame. Returns None for anything that is not a progress event:
    binary preview frames, status/queue messages, malformed JSON.
    """
    if isinstance(raw, (bytes, bytearray)):
        return None
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        logger.debug("Ignoring non-JSON push message: %.80r", raw)
        return None
    if not isinstance(data, dict):
        return None
    msg_type = data.get("type")
    payload = data.get("data") or {}
    if not isinstance(payload, dict):
        return None
    prompt_id = payload.get("prompt_id")
    if msg_type == "progress":
        try:
            value = int(payload.get("value", 0))
            total = int(payload.get("max", 0))
        except (TypeError, ValueError):
            return None
        return ChannelMessage(StepEvent(value, total), prompt_id)
    if msg_type == "executing":
        node = payload.get("node")
        if node:
            return ChannelMessage(NodeStartEvent(str(node)), prompt_id)
        return ChannelMessage(NodeEndEvent(), prompt_id)
    return None


def normalize_event(event: ProgressEvent, last_percent: float = 0.0) -> tuple[float, str]:
    """Event -> (percent 0-100, status text). Node starts keep the last percent."""
    if isinstance(event, StepEvent):
        if event.total <= 0:
            return last_percent, f"Processing: {event.completed}/{event.total}"
        percent = max(0.0, min(100.0, event.completed / event.total * 100.0))
        return percent, f"Processing: {event.completed}/{event.total}"
    if isinstance(event, NodeStartEvent):
        return last_percent, f"Executing node: {event.node_id}"
    return 100.0, "Generation complete"


@dataclass
class GenerationSession:
    """
    Runtime state of one in-flight remote job. Owned by the client for the duration
    of one generate_video call; the callback travels with the session, so a newer
    session never reports through an older caller's callback.
    """
    callback: ProgressCallback | None = None
    prompt_id: str | None = None
    progress: float = 0.0
    status: str = ""
    started_at: float = field(default_factory=time.monotonic)
    outcome: str | None = None
    events: int = 0

    def report(self, percent: float, status: str) -> None:
        self.progress = percent
        self.status = status
        if self.callback is not None:
            self.callback(percent, status)

    def accepts(self, message: ChannelMessage) -> bool:
        """Messages tagged with another job's prompt id are not ours."""
        if message.prompt_id is None or self.prompt_id is None:
            return True
        return message.prompt_id == self.prompt_id

    def handle(self, message: ChannelMessage) -> None:
        if not self.accepts(message):
            logger.debug("Dropping push message for prompt %s (active %s)", message.prompt_id, self.prompt_id)
            return
        self.events += 1
        percent, status = normalize_event(message.event, self.progress)
        self.report(percent, status)

    def elapsed(self, clock: Callable[[], float] = time.monotonic) -> float:
        return clock() - self.started_at
