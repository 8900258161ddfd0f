"""The set of collections a simulation runs against."""

from dataclasses import dataclass
from typing import Optional

from ..core.models import Planet, Plate, Platelet, Simulation
from .collections import Collection, MemoryCollection, SQLCollection
from .connection import Database, db

COLLECTIONS = ("planets", "plates", "platelets", "simulations")


@dataclass
class SimulationStore:
    planets: Collection[Planet]
    plates: Collection[Plate]
    platelets: Collection[Platelet]
    simulations: Collection[Simulation]

    @classmethod
    def memory(cls) -> "SimulationStore":
        """In-process store; ``find`` on the indexed fields avoids full scans."""
        return cls(
            planets=MemoryCollection("planets", Planet),
            plates=MemoryCollection("plates", Plate, index_fields=("planet_id",)),
            platelets=MemoryCollection(
                "platelets", Platelet,
                index_fields=("plate_id", "planet_id", "cell_id", "sector"),
            ),
            simulations=MemoryCollection("simulations", Simulation, index_fields=("planet_id",)),
        )

    @classmethod
    def sql(cls, database: Optional[Database] = None, database_url: Optional[str] = None) -> "SimulationStore":
        """
        Store backed by one SQL database; initializes it if needed.

        Without arguments the module-level ``db`` configured from settings is used.
        """
        if database is None:
            database = Database(database_url) if database_url else db
        if not database.initialized:
            database.initialize(database_url)
        return cls(
            planets=SQLCollection("planets", Planet, database),
            plates=SQLCollection("plates", Plate, database),
            platelets=SQLCollection("platelets", Platelet, database),
            simulations=SQLCollection("simulations", Simulation, database),
        )
