"""
Core plate simulation functionality.
"""

from .alea_prng import AleaPRNG
from .errors import (
    DegenerateInputError,
    GraphInconsistencyError,
    NotFoundError,
    PlateSimulationError,
    StorageError,
)
from .hex_grid import HexGrid
from .models import Planet, Plate, Platelet, PlateletState, Simulation
from .plate_spectrum import PlateManifest, PlateSpec, PlateSpectrumGenerator

__all__ = ['AleaPRNG', 'HexGrid', 'Planet', 'Plate', 'Platelet', 'PlateletState', 'Simulation',
           'PlateManifest', 'PlateSpec', 'PlateSpectrumGenerator',
           'PlateSimulationError', 'NotFoundError', 'DegenerateInputError',
           'GraphInconsistencyError', 'StorageError']
