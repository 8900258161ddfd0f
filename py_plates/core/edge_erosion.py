"""
Plate edge erosion.

Boundary platelets are removed to turn the hexagonal outline of a plate into
an irregular coastline. The strategy depends on how many live platelets the
plate has:

    <= 30 platelets   untouched
    31 - 39           "direct": remove random edge platelets
    >= 40             "cascade": from random edge seeds, walk the neighbor
                      graph and remove the chain of platelets visited

Whatever the strategy, one plate never loses more than
``max(2, 25% of its edge platelets)``.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

import structlog

from ..config import Settings, settings
from ..db.store import SimulationStore
from ..utils.random import get_prng
from .alea_prng import AleaPRNG
from .errors import GraphInconsistencyError, StorageError
from .models import Platelet, PlateletState, platelet_id
from .neighbor_graph import NeighborGraph, find_edge_platelets

logger = structlog.get_logger()

STRATEGY_NONE = "none"
STRATEGY_DIRECT = "direct"
STRATEGY_CASCADE = "cascade"
STRATEGY_FAILED = "failed"


@dataclass
class PlateErosionResult:
    plate_id: str
    strategy: str
    platelet_count: int = 0
    edge_count: int = 0
    max_allowed: int = 0
    removed_cell_ids: List[str] = field(default_factory=list)

    @property
    def removed(self) -> int:
        return len(self.removed_cell_ids)


@dataclass
class ErosionReport:
    results: Dict[str, PlateErosionResult] = field(default_factory=dict)

    @property
    def total_removed(self) -> int:
        return sum(r.removed for r in self.results.values())


class EdgeErosion:
    """Erodes plate boundaries into irregular outlines."""

    def __init__(
        self,
        store: SimulationStore,
        graph: Optional[NeighborGraph] = None,
        config: Optional[Settings] = None,
        prng: Optional[AleaPRNG] = None,
    ):
        self.store = store
        self.config = config or settings
        self.graph = graph or NeighborGraph(store, config=self.config)
        self.prng = prng or get_prng()
        self.last_removed_count = 0

    def max_allowed_deletions(self, edge_count: int) -> int:
        return max(2, math.floor(self.config.erosion_max_ratio * edge_count))

    def select_strategy(self, platelet_count: int) -> str:
        if platelet_count <= self.config.erosion_min_platelets:
            return STRATEGY_NONE
        if platelet_count < self.config.erosion_cascade_platelets:
            return STRATEGY_DIRECT
        return STRATEGY_CASCADE

    async def create_irregular_plate_edges(self, planet_id: Optional[str] = None) -> ErosionReport:
        """
        Erode every plate of ``planet_id`` (or every stored plate).

        Neighbor sets are refreshed before plates are classified and again
        afterwards. Plates are processed one at a time in random order.
        """
        if planet_id is not None:
            plate_ids = [pid async for pid, _ in self.store.plates.find("planet_id", planet_id)]
        else:
            plate_ids = sorted(await self.store.plates.keys())

        await self.graph.refresh_neighbors(planet_id=planet_id)

        order = list(plate_ids)
        self.prng.shuffle(order)
        report = ErosionReport()
        for pid in order:
            report.results[pid] = await self.erode_plate(pid)

        await self.graph.refresh_neighbors(planet_id=planet_id)

        self.last_removed_count = report.total_removed
        logger.info("Plate edges eroded", planet_id=planet_id, plates=len(order),
                    removed=report.total_removed)
        return report

    async def erode_plate(self, plate_id: str) -> PlateErosionResult:
        """Erode one plate whose neighbor sets are current."""
        live = await self.graph.live_platelets(plate_id)
        edges = find_edge_platelets(live.values())
        result = PlateErosionResult(
            plate_id=plate_id,
            strategy=self.select_strategy(len(live)),
            platelet_count=len(live),
            edge_count=len(edges),
            max_allowed=self.max_allowed_deletions(len(edges)),
        )
        if result.strategy == STRATEGY_NONE or not edges:
            return result

        if result.strategy == STRATEGY_DIRECT:
            count = min(
                max(1, math.floor(self.config.erosion_direct_ratio * len(edges))),
                result.max_allowed,
                len(edges),
            )
            marked = [p.cell_id for p in self.prng.sample(edges, count)]
        else:
            marked = await self._cascade(plate_id, edges, result.max_allowed)

        try:
            await self._remove(plate_id, live, marked)
        except StorageError as e:
            logger.error("Erosion aborted for plate", plate_id=plate_id, error=str(e))
            result.strategy = STRATEGY_FAILED
            return result

        result.removed_cell_ids = marked
        logger.debug("Plate eroded", plate_id=plate_id, strategy=result.strategy,
                     removed=len(marked), edges=len(edges))
        return result

    async def _cascade(self, plate_id: str, edges: List[Platelet], max_allowed: int) -> List[str]:
        seed_count = min(
            max(2, math.floor(self.config.erosion_seed_ratio * len(edges))),
            max_allowed,
            len(edges),
        )
        seeds = self.prng.sample(edges, seed_count)

        marked: List[str] = []
        visited: Set[str] = set()
        for seed in seeds:
            if len(marked) >= max_allowed:
                break
            if seed.cell_id in visited:
                continue
            visited.add(seed.cell_id)
            marked.append(seed.cell_id)

            budget = self.prng.randint(self.config.cascade_min_steps, self.config.cascade_max_steps)
            current = seed
            for _ in range(budget):
                if len(marked) >= max_allowed:
                    break
                options = sorted(c for c in current.neighbor_cell_ids if c not in visited)
                if not options:
                    break
                cell = self.prng.choice(options)
                visited.add(cell)
                try:
                    current = await self.graph.resolve_neighbor(plate_id, cell)
                except GraphInconsistencyError as e:
                    logger.debug("Cascade branch ended", plate_id=plate_id, reason=str(e))
                    break
                marked.append(cell)
        return marked

    async def _remove(self, plate_id: str, live: Dict[str, Platelet], marked: List[str]):
        """Flag, unlink and delete the marked platelets of a plate."""
        marked_set = set(marked)

        def flag_removed(platelet: Platelet):
            platelet.state = PlateletState.REMOVED

        for cell in marked:
            await self.store.platelets.mutate(platelet_id(plate_id, cell), flag_removed)

        survivors: Dict[str, Set[str]] = {}
        for cell in marked:
            platelet = live.get(cell)
            if platelet is None:
                continue
            for neighbor in platelet.neighbor_cell_ids - marked_set:
                survivors.setdefault(neighbor, set()).add(cell)

        for neighbor, gone in sorted(survivors.items()):
            def unlink(platelet: Platelet, gone=gone):
                platelet.neighbor_cell_ids -= gone

            await self.store.platelets.mutate(platelet_id(plate_id, neighbor), unlink)

        await self.store.platelets.delete_many([platelet_id(plate_id, c) for c in marked])
