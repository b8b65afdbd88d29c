"""
Our data: keyword families → palette, animation and speed hints. Used by the style parser.
Each table is ordered; the first family with a keyword contained in the prompt wins.
Families are matched as substrings of the lower-cased prompt ("sunsets" matches "sunset").
"""
# (keywords, palette name). "sunset" is checked before "ocean": a sunset over water is warm.
PALETTE_FAMILIES: list[tuple[tuple[str, ...], str]] = [
    (("sunset", "orange", "warm"), "warm_sunset"),
    (("ocean", "blue", "water"), "ocean"),
    (("nature", "green", "forest"), "forest"),
    (("fire", "red"), "fire"),
    (("night", "dark", "space"), "night"),
]

# (keywords, animation kind value)
ANIMATION_FAMILIES: list[tuple[tuple[str, ...], str]] = [
    (("spiral", "swirl", "tornado"), "spiral"),
    (("particles", "stars", "sparkle"), "particles"),
    (("geometric", "abstract"), "geometric"),
    (("flowing", "fluid", "wave"), "wave"),
    (("pulsing", "breathing", "heartbeat"), "pulse"),
]

# (keywords, speed multiplier)
SPEED_FAMILIES: list[tuple[tuple[str, ...], float]] = [
    (("fast", "quick", "rapid"), 2.0),
    (("slow", "gentle", "calm"), 0.5),
]

DEFAULT_PALETTE = "default"
DEFAULT_ANIMATION = "wave"
DEFAULT_SPEED = 1.0
