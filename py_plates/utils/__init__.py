from .random import get_prng, set_random_seed

__all__ = ['get_prng', 'set_random_seed']
