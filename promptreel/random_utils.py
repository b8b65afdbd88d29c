"""
Random workflow seeds, drawn with secrets.
"""
import secrets

# Seeds are drawn from [0, 2**32)
SEED_RANGE = 2 ** 32


def secure_seed() -> int:
    """Uniform integer in [0, SEED_RANGE)."""
    return secrets.randbelow(SEED_RANGE)
