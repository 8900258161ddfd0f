"""
Random number generation utilities.

Components take an explicit ``AleaPRNG`` when a caller wants reproducible
output; otherwise they fall back to the process-wide generator below.
Python's ``random`` module is not used by the simulation.
"""

from typing import Optional

from ..core.alea_prng import AleaPRNG

# Global PRNG instance
_prng: Optional[AleaPRNG] = None


def set_random_seed(seed: str) -> AleaPRNG:
    """Reset the process-wide Alea PRNG to ``seed`` and return it."""
    global _prng
    _prng = AleaPRNG(seed)
    return _prng


def get_prng() -> AleaPRNG:
    """Return the process-wide Alea PRNG, seeding it from settings on first use."""
    global _prng
    if _prng is None:
        from ..config import settings

        _prng = AleaPRNG(settings.random_seed)
    return _prng
