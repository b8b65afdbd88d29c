"""
Our data: 3-color palettes (RGB 0–255). Used by the procedural renderer.
Renderers cycle through the colors by shape index.
"""
PALETTES: dict[str, tuple[tuple[int, int, int], ...]] = {
    "warm_sunset": (
        (245, 158, 11),
        (239, 68, 68),
        (220, 38, 38),
    ),
    "ocean": (
        (14, 165, 233),
        (59, 130, 246),
        (29, 78, 216),
    ),
    "forest": (
        (16, 185, 129),
        (5, 150, 105),
        (6, 95, 70),
    ),
    "fire": (
        (239, 68, 68),
        (220, 38, 38),
        (153, 27, 27),
    ),
    "night": (
        (30, 27, 75),
        (49, 46, 129),
        (55, 48, 163),
    ),
    "default": (
        (67, 56, 202),
        (124, 58, 237),
        (219, 39, 119),
    ),
}
