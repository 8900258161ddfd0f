"""
Platelet collision detection.

Platelets are bucketed by sector, the resolution-0 grid cell holding them.
Within one sector, two live platelets of different plates interact when their
centers are no farther apart than the sum of their radii.
"""

from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Set

import numpy as np
import structlog
from scipy.spatial.distance import pdist, squareform

from ..db.store import SimulationStore
from .models import Platelet

logger = structlog.get_logger()


def interacting_pairs(platelets: Sequence[Platelet]) -> Dict[str, Set[str]]:
    """
    Symmetric interaction map for a snapshot of platelets.

    Platelets of the same plate never interact with each other; only ids that
    have at least one partner appear in the result.
    """
    interactions: Dict[str, Set[str]] = defaultdict(set)
    if len(platelets) < 2:
        return {}

    positions = np.array([p.position for p in platelets], dtype=np.float64)
    radii = np.array([p.radius for p in platelets], dtype=np.float64)
    plates = np.array([p.plate_id for p in platelets])

    distances = squareform(pdist(positions))
    touching = distances <= radii[:, None] + radii[None, :]
    touching &= plates[:, None] != plates[None, :]

    for i, j in zip(*np.nonzero(np.triu(touching, k=1))):
        interactions[platelets[i].id].add(platelets[j].id)
        interactions[platelets[j].id].add(platelets[i].id)
    return dict(interactions)


class PlateletCollisionDetector:
    """Finds overlapping platelets of different plates, one sector at a time."""

    def __init__(self, store: SimulationStore):
        self.store = store

    async def sector_platelets(self, sector_id: str, planet_id: Optional[str] = None) -> List[Platelet]:
        """Live platelets in a sector, sorted by id."""
        platelets = [
            p async for _, p in self.store.platelets.find("sector", sector_id)
            if p.is_live and (planet_id is None or p.planet_id == planet_id)
        ]
        return sorted(platelets, key=lambda p: p.id)

    async def find_interactions(
        self, sector_id: str, planet_id: Optional[str] = None
    ) -> Dict[str, Set[str]]:
        """Map each colliding platelet id to the ids it collides with."""
        platelets = await self.sector_platelets(sector_id, planet_id)
        if len({p.plate_id for p in platelets}) < 2:
            logger.debug("Sector has fewer than two plates", sector=sector_id,
                         platelets=len(platelets))
            return {}

        interactions = interacting_pairs(platelets)
        logger.info("Sector interactions found", sector=sector_id,
                    platelets=len(platelets), colliding=len(interactions))
        return interactions

    async def contested_sectors(self, planet_id: str) -> List[str]:
        """Sectors holding live platelets of at least two plates."""
        plates_by_sector: Dict[str, Set[str]] = defaultdict(set)
        async for _, platelet in self.store.platelets.find("planet_id", planet_id):
            if platelet.is_live and platelet.sector:
                plates_by_sector[platelet.sector].add(platelet.plate_id)
        return sorted(s for s, plates in plates_by_sector.items() if len(plates) > 1)

    async def find_all_interactions(self, planet_id: str) -> Dict[str, Dict[str, Set[str]]]:
        """Interactions for every contested sector of a planet, keyed by sector."""
        results = {}
        for sector in await self.contested_sectors(planet_id):
            interactions = await self.find_interactions(sector, planet_id)
            if interactions:
                results[sector] = interactions
        return results
