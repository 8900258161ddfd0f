"""
Platelet neighbor graph.

Each live platelet records the grid-adjacent cells that hold a live platelet of
the same plate. Deletions leave stale references behind, so the graph is
refreshed before anything trusts neighbor counts. Gap-fill closes holes in a
plate's patch with an explicit worklist.
"""

from collections import deque
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np
import structlog

from ..config import Settings, settings
from ..db.store import SimulationStore
from .errors import GraphInconsistencyError, NotFoundError, StorageError
from .geometry import as_vector
from .hex_grid import HexGrid
from .models import Platelet, platelet_id
from .platelet_manager import make_platelet

logger = structlog.get_logger()

# Live neighbors of a platelet fully surrounded by its plate
INTERIOR_NEIGHBOR_COUNT = 6


@dataclass
class NeighborStats:
    """Outcome of a neighbor population or refresh pass."""

    examined: int = 0
    updated: int = 0
    added: int = 0
    removed: int = 0

    def merge(self, other: "NeighborStats") -> "NeighborStats":
        self.examined += other.examined
        self.updated += other.updated
        self.added += other.added
        self.removed += other.removed
        return self


def find_edge_platelets(platelets: Iterable[Platelet]) -> List[Platelet]:
    """Live platelets with fewer than six live neighbors, sorted by id."""
    return sorted(
        (p for p in platelets
         if p.is_live and len(p.neighbor_cell_ids) < INTERIOR_NEIGHBOR_COUNT),
        key=lambda p: p.id,
    )


class NeighborGraph:
    """Builds, repairs and inspects the neighbor sets of platelets."""

    def __init__(
        self,
        store: SimulationStore,
        grid: Optional[HexGrid] = None,
        config: Optional[Settings] = None,
    ):
        self.store = store
        self.grid = grid or HexGrid()
        self.config = config or settings

    async def platelets_by_cell(self, plate_id: str) -> Dict[str, Platelet]:
        """Every platelet record of a plate, live or removed, keyed by cell."""
        return {p.cell_id: p async for _, p in self.store.platelets.find("plate_id", plate_id)}

    async def live_platelets(self, plate_id: str) -> Dict[str, Platelet]:
        records = await self.platelets_by_cell(plate_id)
        return {cell: p for cell, p in records.items() if p.is_live}

    async def fill_gaps(self, plate_id: str) -> int:
        """
        Create platelets for in-bounds cells adjacent to the plate's patch.

        A cell is in bounds when its center lies within the plate radius of
        the plate position. Cells holding a removed platelet count as
        present and are not recreated. Returns the number of platelets
        created; a missing plate or planet yields 0.
        """
        plate = await self.store.plates.get(plate_id)
        if plate is None:
            logger.warning("Skipping gap fill", plate_id=plate_id, reason="plate not found")
            return 0
        planet = await self.store.planets.get(plate.planet_id)
        if planet is None:
            logger.warning("Skipping gap fill", plate_id=plate_id,
                           reason=str(NotFoundError("planet", plate.planet_id)))
            return 0

        resolution = self.config.platelet_resolution
        cell_radius = self.grid.cell_radius(planet.radius, resolution)
        center = as_vector(plate.position)
        limit = self.config.max_gap_fill

        records = await self.platelets_by_cell(plate_id)
        worklist = deque(sorted(cell for cell, p in records.items() if p.is_live))
        visited = set(worklist)
        created: List[Platelet] = []

        while worklist and len(created) < limit:
            cell = worklist.popleft()
            for neighbor in self.grid.neighbors_of(cell):
                if neighbor in visited:
                    continue
                visited.add(neighbor)
                if neighbor in records:
                    continue
                point = self.grid.cell_to_point(neighbor, planet.radius)
                if np.linalg.norm(point - center) > plate.radius:
                    continue
                platelet = make_platelet(plate, neighbor, point, cell_radius, self.grid.sector_of(neighbor))
                records[neighbor] = platelet
                created.append(platelet)
                worklist.append(neighbor)
                if len(created) >= limit:
                    logger.warning("Gap fill limit reached", plate_id=plate_id, limit=limit)
                    break

        if created:
            try:
                await self.store.platelets.set_many([(p.id, p) for p in created])
            except StorageError as e:
                logger.error("Gap fill write failed", plate_id=plate_id, error=str(e))
                return 0
        logger.info("Gap fill complete", plate_id=plate_id, created=len(created))
        return len(created)

    async def populate_neighbors(self, plate_id: str) -> NeighborStats:
        """
        Recompute the neighbor set of every live platelet of a plate.

        Only sets that changed are written back, so a second pass over a stable
        platelet set reports zero updates.
        """
        live = await self.live_platelets(plate_id)
        stats = NeighborStats()
        changed = []
        for cell in sorted(live):
            platelet = live[cell]
            expected = {n for n in self.grid.neighbors_of(cell) if n in live}
            stats.examined += 1
            if expected == platelet.neighbor_cell_ids:
                continue
            stats.added += len(expected - platelet.neighbor_cell_ids)
            stats.removed += len(platelet.neighbor_cell_ids - expected)
            platelet.neighbor_cell_ids = expected
            changed.append(platelet)

        await self.store.platelets.set_many([(p.id, p) for p in changed])
        stats.updated = len(changed)
        logger.debug("Neighbors populated", plate_id=plate_id, examined=stats.examined,
                     updated=stats.updated)
        return stats

    async def refresh_neighbors(
        self, plate_id: Optional[str] = None, planet_id: Optional[str] = None
    ) -> NeighborStats:
        """
        Drop references to cells without a live platelet and add missing ones.

        Covers one plate, every plate of a planet, or every stored plate. A
        storage failure on one plate is logged and the others still refresh.
        """
        if plate_id is not None:
            plate_ids = [plate_id]
        elif planet_id is not None:
            plate_ids = [pid async for pid, _ in self.store.plates.find("planet_id", planet_id)]
        else:
            plate_ids = sorted(await self.store.plates.keys())

        total = NeighborStats()
        for pid in plate_ids:
            try:
                total.merge(await self.populate_neighbors(pid))
            except StorageError as e:
                logger.error("Neighbor refresh failed", plate_id=pid, error=str(e))
        logger.info("Neighbors refreshed", plates=len(plate_ids), updated=total.updated,
                    removed=total.removed)
        return total

    async def resolve_neighbor(self, plate_id: str, cell_id: str) -> Platelet:
        """
        Load the live platelet of ``plate_id`` at ``cell_id``.

        Raises:
            GraphInconsistencyError: No live platelet backs the reference
        """
        platelet = await self.store.platelets.get(platelet_id(plate_id, cell_id))
        if platelet is None or not platelet.is_live:
            raise GraphInconsistencyError(plate_id, cell_id)
        return platelet

    async def dangling_references(self, plate_id: str) -> List[Tuple[str, str]]:
        """(platelet id, cell id) pairs referencing a cell with no live platelet."""
        live = await self.live_platelets(plate_id)
        return [
            (live[cell].id, ref)
            for cell in sorted(live)
            for ref in sorted(live[cell].neighbor_cell_ids)
            if ref not in live
        ]

    async def edge_platelets(self, plate_id: str) -> List[Platelet]:
        return find_edge_platelets((await self.live_platelets(plate_id)).values())
