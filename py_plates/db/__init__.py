"""
Record storage for the plate simulation.
"""

from .collections import Collection, MemoryCollection, SQLCollection
from .connection import Database, db
from .store import COLLECTIONS, SimulationStore

__all__ = [
    'Collection',
    'MemoryCollection',
    'SQLCollection',
    'Database',
    'db',
    'COLLECTIONS',
    'SimulationStore',
]
