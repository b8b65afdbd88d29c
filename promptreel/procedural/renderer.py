"""
Procedural frame renderer: style + time → pixels. Our algorithms only, no external model.
Five animations, one pure function each: (t, width, height, colors) -> RGBA uint8 array.
Shapes are alpha-blended over an opaque black canvas with Pillow.
"""
import math
from typing import Callable, Sequence

import numpy as np
from PIL import Image, ImageDraw

from ..models import Frame
from .parser import AnimationKind, StyleDescriptor

Color = tuple[int, int, int]
Renderer = Callable[[float, int, int, Sequence[Color]], np.ndarray]


def _canvas(width: int, height: int) -> tuple[Image.Image, ImageDraw.ImageDraw]:
    img = Image.new("RGB", (width, height), (0, 0, 0))
    # RGBA draw mode blends each fill over what is already there
    return img, ImageDraw.Draw(img, "RGBA")


def _to_array(img: Image.Image) -> np.ndarray:
    return np.array(img.convert("RGBA"), dtype=np.uint8)


def _rgba(color: Color, alpha: float) -> tuple[int, int, int, int]:
    a = int(max(0, min(255, alpha)))
    return (int(color[0]), int(color[1]), int(color[2]), a)


def _circle(draw: ImageDraw.ImageDraw, x: float, y: float, r: float, fill: tuple[int, int, int, int]) -> None:
    r = max(0.0, r)
    draw.ellipse([x - r, y - r, x + r, y + r], fill=fill)


def render_spiral(t: float, width: int, height: int, colors: Sequence[Color]) -> np.ndarray:
    """100 dots on an outward spiral, fading with distance from the center."""
    img, draw = _canvas(width, height)
    cx, cy = width / 2, height / 2
    for i in range(100):
        angle = i * 0.1 + t
        radius = i * 2
        x = cx + math.cos(angle) * radius
        y = cy + math.sin(angle) * radius
        alpha = math.floor((1 - i / 100) * 255)
        _circle(draw, x, y, 3, _rgba(colors[i % len(colors)], alpha))
    return _to_array(img)


def render_particles(t: float, width: int, height: int, colors: Sequence[Color]) -> np.ndarray:
    """50 sprites, each on its own phase-shifted oscillation."""
    img, draw = _canvas(width, height)
    for i in range(50):
        x = (math.sin(t + i) * 0.5 + 0.5) * width
        y = (math.cos(t * 0.7 + i * 0.3) * 0.5 + 0.5) * height
        size = math.sin(t * 2 + i) * 3 + 5
        _circle(draw, x, y, size, _rgba(colors[i % len(colors)], 0x80))
    return _to_array(img)


def render_geometric(t: float, width: int, height: int, colors: Sequence[Color]) -> np.ndarray:
    """Six squares rotating about the center, size pulsing together."""
    img, draw = _canvas(width, height)
    cx, cy = width / 2, height / 2
    half = (50 + math.sin(t * 2) * 20) / 2
    corners = ((-half, -half), (half, -half), (half, half), (-half, half))
    for i in range(6):
        rot = t + i * math.pi / 3
        c, s = math.cos(rot), math.sin(rot)
        points = [(cx + px * c - py * s, cy + px * s + py * c) for px, py in corners]
        draw.polygon(points, fill=_rgba(colors[i % len(colors)], 0x60))
    return _to_array(img)


def render_wave(t: float, width: int, height: int, colors: Sequence[Color]) -> np.ndarray:
    """One sine curve per palette color, offset in phase and shrinking in amplitude."""
    img, draw = _canvas(width, height)
    amplitude = height * 0.2
    frequency = 0.02
    center_y = height / 2
    xs = np.arange(width, dtype=np.float64)
    for ci, color in enumerate(colors):
        offset = ci * 50
        ys = center_y + np.sin(xs * frequency + t + offset * 0.1) * amplitude * (1 - ci * 0.2)
        points = list(zip(xs.tolist(), ys.tolist()))
        if len(points) > 1:
            draw.line(points, fill=_rgba(color, 0x80), width=3)
    return _to_array(img)


def render_pulse(t: float, width: int, height: int, colors: Sequence[Color]) -> np.ndarray:
    """Concentric discs, one per palette color, radius breathing with its own phase."""
    img, draw = _canvas(width, height)
    cx, cy = width / 2, height / 2
    max_radius = min(width, height) / 2
    for i, color in enumerate(colors):
        pulse = math.sin(t * 2 + i * 0.5) * 0.5 + 0.5
        radius = max_radius * pulse * (1 - i * 0.2)
        _circle(draw, cx, cy, radius, _rgba(color, math.floor(pulse * 100)))
    return _to_array(img)


RENDERERS: dict[AnimationKind, Renderer] = {
    AnimationKind.SPIRAL: render_spiral,
    AnimationKind.PARTICLES: render_particles,
    AnimationKind.GEOMETRIC: render_geometric,
    AnimationKind.WAVE: render_wave,
    AnimationKind.PULSE: render_pulse,
}


def frame_time(index: int, count: int, speed: float) -> tuple[float, float]:
    """(timeline position, animation time) for output frame `index` of `count`."""
    progress = index / count
    return progress, progress * math.pi * 2 * speed


def render_frame(style: StyleDescriptor, index: int, count: int, width: int, height: int) -> Frame:
    """
    Render output frame `index` (0-based) of `count`. Pure: the same style and index
    always give the same pixels.
    """
    if count <= 0:
        raise ValueError("render_frame: count must be positive")
    if not 0 <= index < count:
        raise ValueError(f"render_frame: index {index} outside 0..{count - 1}")
    progress, t = frame_time(index, count, style.speed)
    pixels = RENDERERS[style.animation](t, width, height, style.colors)
    return Frame(pixels=pixels, position=progress)
