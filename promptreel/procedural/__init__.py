# Procedural video engine: our algorithms and data only, no external "model"

from .parser import AnimationKind, StyleDescriptor, infer_style
from .renderer import RENDERERS, render_frame
from .generator import ProceduralSynthesisEngine, ProceduralVideoGenerator

__all__ = [
    "AnimationKind",
    "StyleDescriptor",
    "infer_style",
    "RENDERERS",
    "render_frame",
    "ProceduralSynthesisEngine",
    "ProceduralVideoGenerator",
]
