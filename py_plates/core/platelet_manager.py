"""
Platelet generation.

A plate's disc footprint is discretized into one platelet per hex grid cell.
Candidates come from concentric rings around the plate's center cell; the
exact distance test against the plate radius decides membership. Ring
expansion only keeps the candidate set small.
"""

import asyncio
from concurrent.futures import Executor
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np
import structlog

from ..config import Settings, settings
from ..db.store import SimulationStore
from .errors import DegenerateInputError, NotFoundError, PlateSimulationError
from .geometry import as_point, as_vector, rings_to_cover
from .hex_grid import HexGrid
from .models import Planet, Plate, Platelet, platelet_id

logger = structlog.get_logger()


def make_platelet(
    plate: Plate,
    cell_id: str,
    position: Iterable[float],
    cell_radius: float,
    sector: Optional[str] = None,
) -> Platelet:
    """Platelet for ``cell_id`` inheriting the plate's crust properties."""
    return Platelet(
        id=platelet_id(plate.id, cell_id),
        plate_id=plate.id,
        planet_id=plate.planet_id,
        cell_id=cell_id,
        position=as_point(as_vector(position)),
        radius=cell_radius,
        thickness=plate.thickness,
        density=plate.density,
        sector=sector,
    )


def candidate_cells(
    plate: Plate,
    planet_radius: float,
    resolution: int,
    grid: HexGrid,
    ring_margin: float,
    max_rings: int,
) -> Tuple[str, List[str]]:
    """Return the plate's center cell and every cell within the ring bound."""
    try:
        center_cell = grid.cell_for_position(plate.position, planet_radius, resolution)
    except ValueError as e:
        raise DegenerateInputError(f"plate {plate.id} has no usable center: {e}") from e

    cell_radius = grid.cell_radius(planet_radius, resolution)
    rings = rings_to_cover(plate.radius, cell_radius, ring_margin, max_rings)
    return center_cell, grid.disk(center_cell, rings)


def discretize_plate(
    plate: Plate,
    planet_radius: float,
    resolution: int,
    grid: Optional[HexGrid] = None,
    ring_margin: float = 1.33,
    max_rings: int = 20,
) -> List[Platelet]:
    """
    Cover a plate's disc with platelets.

    Args:
        plate: Plate whose position lies on the planet's sphere
        planet_radius: Planet radius in km
        resolution: Hex grid resolution
        grid: Spatial grid service
        ring_margin: Ring expansion covers ``ring_margin * plate.radius``
        max_rings: Cap on the number of rings

    Returns:
        Platelets sorted by cell id. Never empty: a plate too small to contain
        any cell center gets a single platelet at its own center.

    Raises:
        DegenerateInputError: The plate position cannot be mapped to a cell
    """
    grid = grid or HexGrid()
    cell_radius = grid.cell_radius(planet_radius, resolution)
    center_cell, candidates = candidate_cells(
        plate, planet_radius, resolution, grid, ring_margin, max_rings
    )

    cells = sorted(c for c in candidates if grid.is_valid(c))
    center = as_vector(plate.position)
    platelets = []
    if cells:
        points = np.array([grid.cell_to_point(c, planet_radius) for c in cells])
        inside = np.linalg.norm(points - center, axis=1) <= plate.radius
        platelets = [
            make_platelet(plate, cell, point, cell_radius, grid.sector_of(cell))
            for cell, point, keep in zip(cells, points, inside)
            if keep
        ]

    if not platelets:
        logger.debug("No cell centers inside plate, using center platelet",
                     plate_id=plate.id, radius=plate.radius, candidates=len(cells))
        platelets = [
            make_platelet(plate, center_cell, center, cell_radius, grid.sector_of(center_cell))
        ]
    return platelets


class PlateletManager:
    """Generates and persists the platelets of plates."""

    def __init__(
        self,
        store: SimulationStore,
        grid: Optional[HexGrid] = None,
        config: Optional[Settings] = None,
        executor: Optional[Executor] = None,
    ):
        self.store = store
        self.grid = grid or HexGrid()
        self.config = config or settings
        self.executor = executor

    @property
    def resolution(self) -> int:
        return self.config.platelet_resolution

    async def load_plate(self, plate_id: str) -> Tuple[Plate, Planet]:
        plate = await self.store.plates.get(plate_id)
        if plate is None:
            raise NotFoundError("plate", plate_id)
        planet = await self.store.planets.get(plate.planet_id)
        if planet is None:
            raise NotFoundError("planet", plate.planet_id)
        return plate, planet

    async def generate_platelets(self, plate_id: str) -> int:
        """
        Generate and store the platelets of one plate.

        Returns the number of platelets created. A missing plate or planet, or
        a rejected write, is logged and yields 0 so batches keep going.
        """
        try:
            plate, planet = await self.load_plate(plate_id)
            if self.executor is not None:
                platelets = await self._compute_in_executor(plate, planet)
            else:
                platelets = discretize_plate(
                    plate,
                    planet.radius,
                    self.resolution,
                    grid=self.grid,
                    ring_margin=self.config.ring_margin,
                    max_rings=self.config.max_rings,
                )
            await self.store.platelets.set_many([(p.id, p) for p in platelets])
        except NotFoundError as e:
            logger.warning("Skipping platelet generation", plate_id=plate_id, reason=str(e))
            return 0
        except PlateSimulationError as e:
            logger.error("Platelet generation failed", plate_id=plate_id, error=str(e))
            return 0

        logger.info("Platelets generated", plate_id=plate_id, count=len(platelets))
        return len(platelets)

    async def _compute_in_executor(self, plate: Plate, planet: Planet) -> List[Platelet]:
        from .platelet_worker import PlateletWorkerRequest, PlateletWorkerResponse, compute_platelets

        request = PlateletWorkerRequest(
            plate_id=plate.id,
            plate_data=plate.to_dict(),
            planet_radius=planet.radius,
            resolution=self.resolution,
            ring_margin=self.config.ring_margin,
            max_rings=self.config.max_rings,
        )
        loop = asyncio.get_running_loop()
        raw = await loop.run_in_executor(self.executor, compute_platelets, request.model_dump())
        response = PlateletWorkerResponse.model_validate(raw)
        if response.error:
            raise PlateSimulationError(f"worker failed for plate {plate.id}: {response.error}")
        return [Platelet.from_dict(data) for data in response.platelets]

    async def generate_all(
        self,
        plate_ids: Optional[Iterable[str]] = None,
        planet_id: Optional[str] = None,
        concurrency: Optional[int] = None,
    ) -> Dict[str, int]:
        """
        Generate platelets for many plates concurrently.

        Defaults to every plate of ``planet_id``, or every stored plate when no
        planet is given. Returns the count created per plate id.
        """
        if plate_ids is None:
            if planet_id is not None:
                plate_ids = [pid async for pid, _ in self.store.plates.find("planet_id", planet_id)]
            else:
                plate_ids = sorted(await self.store.plates.keys())
        plate_ids = list(plate_ids)

        semaphore = asyncio.Semaphore(concurrency or self.config.generation_concurrency)

        async def run(pid: str) -> int:
            async with semaphore:
                return await self.generate_platelets(pid)

        counts = await asyncio.gather(*(run(pid) for pid in plate_ids))
        results = dict(zip(plate_ids, counts))
        logger.info("Platelet batch complete", plates=len(plate_ids), platelets=sum(counts))
        return results
