"""
Prompt → style descriptor using only our keyword tables. No neural network, no external model.
Palette, animation and speed are looked up independently of each other.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence, TypeVar

from .data.keywords import (
    ANIMATION_FAMILIES,
    DEFAULT_ANIMATION,
    DEFAULT_PALETTE,
    DEFAULT_SPEED,
    PALETTE_FAMILIES,
    SPEED_FAMILIES,
)
from .data.palettes import PALETTES

T = TypeVar("T")


class AnimationKind(str, Enum):
    """Closed set of procedural animations. Each has exactly one renderer."""
    SPIRAL = "spiral"
    PARTICLES = "particles"
    GEOMETRIC = "geometric"
    WAVE = "wave"
    PULSE = "pulse"


@dataclass(frozen=True)
class StyleDescriptor:
    palette_name: str
    colors: tuple[tuple[int, int, int], ...]
    animation: AnimationKind
    speed: float
    raw_prompt: str = ""


def _first_match(text: str, families: Sequence[tuple[tuple[str, ...], T]], default: T) -> T:
    for keywords, value in families:
        if any(k in text for k in keywords):
            return value
    return default


def infer_style(prompt: str) -> StyleDescriptor:
    """
    Turn a text prompt into a style descriptor. Substring match on the lower-cased prompt,
    first matching family wins within each table.
    """
    text = (prompt or "").strip().lower()
    palette_name = _first_match(text, PALETTE_FAMILIES, DEFAULT_PALETTE)
    animation = AnimationKind(_first_match(text, ANIMATION_FAMILIES, DEFAULT_ANIMATION))
    speed = float(_first_match(text, SPEED_FAMILIES, DEFAULT_SPEED))
    return StyleDescriptor(
        palette_name=palette_name,
        colors=PALETTES.get(palette_name, PALETTES[DEFAULT_PALETTE]),
        animation=animation,
        speed=speed,
        raw_prompt=text,
    )
