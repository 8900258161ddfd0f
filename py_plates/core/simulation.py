"""
Plate simulation orchestrator.

``PlateSimulation`` owns a store and wires the platelet manager, neighbor
graph, force layout and erosion together around one planet.
"""

import dataclasses
import math
from concurrent.futures import Executor
from typing import Dict, Iterable, List, Optional, Set

import structlog

from ..config import Settings, configure_logging, settings
from ..db.store import SimulationStore
from ..utils.random import get_prng
from .alea_prng import AleaPRNG
from .edge_erosion import EdgeErosion, ErosionReport
from .errors import DegenerateInputError, NotFoundError, PlateSimulationError, StorageError
from .force_layout import ForceLayoutEngine, LayoutResult
from .geometry import as_point, as_vector, random_surface_point, set_length
from .hex_grid import HexGrid
from .models import Planet, Plate, Simulation
from .neighbor_graph import NeighborGraph, NeighborStats
from .plate_spectrum import PlateSpectrumGenerator
from .platelet_collisions import PlateletCollisionDetector
from .platelet_manager import PlateletManager

logger = structlog.get_logger()


class PlateSimulation:
    """Entry point for building and evolving the plates of one planet."""

    def __init__(
        self,
        store: Optional[SimulationStore] = None,
        simulation_id: Optional[str] = None,
        planet_radius: Optional[float] = None,
        plate_count: int = 0,
        max_plate_radius: float = math.pi / 6,
        seed: Optional[str] = None,
        grid: Optional[HexGrid] = None,
        config: Optional[Settings] = None,
        executor: Optional[Executor] = None,
    ):
        self.config = config or settings
        configure_logging(self.config)

        self.store = store or SimulationStore.memory()
        self.grid = grid or HexGrid()
        self.prng: AleaPRNG = AleaPRNG(seed) if seed is not None else get_prng()

        self.simulation_id = simulation_id
        self.planet_id: Optional[str] = None
        self.planet_radius = planet_radius or self.config.planet_radius
        self.plate_count = plate_count
        self.max_plate_radius = max_plate_radius

        self.platelet_manager = PlateletManager(self.store, self.grid, self.config, executor)
        self.neighbor_graph = NeighborGraph(self.store, self.grid, self.config)
        self.force_layout = ForceLayoutEngine(self.store, self.config, self.prng)
        self.erosion = EdgeErosion(self.store, self.neighbor_graph, self.config, self.prng)
        self.collisions = PlateletCollisionDetector(self.store)

    async def init(self) -> Simulation:
        """
        Load the configured simulation, or create a planet and simulation.

        When the simulation asks for plates and its planet has none yet, plates
        are generated from the size spectrum and relaxed with the force layout.
        """
        if self.simulation_id:
            simulation = await self.get_simulation(self.simulation_id)
        else:
            planet = await self.make_planet(self.planet_radius)
            simulation = await self.add_simulation(
                planet.id, plate_count=self.plate_count, max_plate_radius=self.max_plate_radius
            )

        self.simulation_id = simulation.id
        self.planet_id = simulation.planet_id

        if simulation.plate_count > 0 and not await self.plates_of(simulation.planet_id):
            await self.generate_plates(simulation.plate_count, simulation.max_plate_radius)
            await self.run_force_directed_layout()

        logger.info("Simulation ready", simulation_id=simulation.id, planet_id=self.planet_id)
        return simulation

    def _planet_id(self, planet_id: Optional[str]) -> str:
        planet_id = planet_id or self.planet_id
        if planet_id is None:
            raise PlateSimulationError("No planet selected; call init() or pass planet_id")
        return planet_id

    async def make_planet(self, radius: Optional[float] = None, name: Optional[str] = None) -> Planet:
        planet = Planet(radius=radius or self.config.planet_radius, name=name)
        await self.store.planets.set(planet.id, planet)
        logger.info("Planet created", planet_id=planet.id, radius=planet.radius)
        return planet

    async def update_planet(
        self, planet_id: str, radius: Optional[float] = None, name: Optional[str] = None
    ) -> Planet:
        """
        Replace a planet record. Plates are re-projected to a new radius;
        their platelets must be regenerated by the caller.
        """
        planet = await self.get_planet(planet_id)
        changes = {}
        if radius is not None:
            changes["radius"] = radius
        if name is not None:
            changes["name"] = name
        updated = dataclasses.replace(planet, **changes)
        await self.store.planets.set(planet_id, updated)

        if updated.radius != planet.radius:
            for plate in await self.plates_of(planet_id):
                plate.position = as_point(set_length(as_vector(plate.position), updated.radius))
                await self.store.plates.set(plate.id, plate)
            logger.info("Planet resized", planet_id=planet_id, radius=updated.radius)
        return updated

    async def add_simulation(
        self,
        planet_id: str,
        name: Optional[str] = None,
        plate_count: int = 0,
        max_plate_radius: float = math.pi / 6,
    ) -> Simulation:
        await self.get_planet(planet_id)
        simulation = Simulation(
            planet_id=planet_id, name=name, plate_count=plate_count,
            max_plate_radius=max_plate_radius,
        )
        await self.store.simulations.set(simulation.id, simulation)
        return simulation

    async def add_plate(
        self,
        radius: float,
        density: float,
        thickness: float,
        planet_id: Optional[str] = None,
        position: Optional[Iterable[float]] = None,
        name: Optional[str] = None,
        id: Optional[str] = None,
        rank: int = 0,
        behavioral_type: Optional[str] = None,
    ) -> Plate:
        """Store a plate; positions are projected onto the planet's sphere."""
        planet = await self.get_planet(self._planet_id(planet_id))
        if position is None:
            point = random_surface_point(self.prng, planet.radius)
        else:
            vector = as_vector(position)
            if not vector.any():
                raise DegenerateInputError("plate position must not be the origin")
            point = set_length(vector, planet.radius)

        plate = Plate.create(
            radius=radius,
            density=density,
            thickness=thickness,
            planet_id=planet.id,
            position=point,
            planet_radius=planet.radius,
            id=id,
            name=name,
            rank=rank,
            behavioral_type=behavioral_type,
        )
        await self.store.plates.set(plate.id, plate)
        return plate

    async def generate_plates(
        self, plate_count: int, max_plate_radius: Optional[float] = None,
        planet_id: Optional[str] = None,
    ) -> List[Plate]:
        """Create plates from the power-law spectrum at random positions."""
        planet = await self.get_planet(self._planet_id(planet_id))
        manifest = PlateSpectrumGenerator(
            planet.radius,
            plate_count,
            max_plate_radius=max_plate_radius,
            prng=self.prng,
        ).generate()

        plates = []
        for entry in manifest.plates:
            plates.append(await self.add_plate(
                radius=entry.radius,
                density=entry.density,
                thickness=entry.thickness,
                planet_id=planet.id,
                id=f"{planet.id}-{entry.id}",
                name=entry.id,
                rank=entry.rank,
                behavioral_type=entry.behavioral_type,
            ))
        return plates

    async def get_planet(self, planet_id: str) -> Planet:
        planet = await self.store.planets.get(planet_id)
        if planet is None:
            raise NotFoundError("planet", planet_id)
        return planet

    async def get_plate(self, plate_id: str) -> Plate:
        plate = await self.store.plates.get(plate_id)
        if plate is None:
            raise NotFoundError("plate", plate_id)
        return plate

    async def get_simulation(self, simulation_id: str) -> Simulation:
        simulation = await self.store.simulations.get(simulation_id)
        if simulation is None:
            raise NotFoundError("simulation", simulation_id)
        return simulation

    async def plates_of(self, planet_id: Optional[str] = None) -> List[Plate]:
        planet_id = self._planet_id(planet_id)
        return [p async for _, p in self.store.plates.find("planet_id", planet_id)]

    async def generate_platelets(self, plate_id: str) -> int:
        return await self.platelet_manager.generate_platelets(plate_id)

    async def generate_all_platelets(self, planet_id: Optional[str] = None) -> Dict[str, int]:
        return await self.platelet_manager.generate_all(planet_id=self._planet_id(planet_id))

    async def fill_gaps(self, plate_id: str) -> int:
        return await self.neighbor_graph.fill_gaps(plate_id)

    async def populate_platelet_neighbors(self, plate_id: str) -> NeighborStats:
        return await self.neighbor_graph.populate_neighbors(plate_id)

    async def refresh_neighbors(self, planet_id: Optional[str] = None) -> NeighborStats:
        return await self.neighbor_graph.refresh_neighbors(planet_id=self._planet_id(planet_id))

    async def apply_force_layout(self, planet_id: Optional[str] = None):
        return await self.force_layout.apply_force_layout(self._planet_id(planet_id))

    async def run_force_directed_layout(
        self, max_steps: Optional[int] = None, planet_id: Optional[str] = None
    ) -> LayoutResult:
        return await self.force_layout.run_force_directed_layout(
            self._planet_id(planet_id), max_steps
        )

    async def create_irregular_plate_edges(self, planet_id: Optional[str] = None) -> ErosionReport:
        return await self.erosion.create_irregular_plate_edges(self._planet_id(planet_id))

    async def find_platelet_interactions(
        self, sector_id: str, planet_id: Optional[str] = None
    ) -> Dict[str, Set[str]]:
        return await self.collisions.find_interactions(sector_id, self._planet_id(planet_id))

    async def find_all_platelet_interactions(
        self, planet_id: Optional[str] = None
    ) -> Dict[str, Dict[str, Set[str]]]:
        return await self.collisions.find_all_interactions(self._planet_id(planet_id))

    async def build_platelets(self, planet_id: Optional[str] = None) -> Dict[str, int]:
        """
        Generate platelets for every plate, then close gaps and link
        neighbors one plate at a time. Returns live platelets per plate.
        """
        planet_id = self._planet_id(planet_id)
        await self.platelet_manager.generate_all(planet_id=planet_id)

        counts = {}
        for plate in sorted(await self.plates_of(planet_id), key=lambda p: p.id):
            await self.neighbor_graph.fill_gaps(plate.id)
            try:
                await self.neighbor_graph.populate_neighbors(plate.id)
            except StorageError as e:
                logger.error("Neighbor population failed", plate_id=plate.id, error=str(e))
            counts[plate.id] = len(await self.neighbor_graph.live_platelets(plate.id))
        logger.info("Platelets built", planet_id=planet_id, plates=len(counts),
                    platelets=sum(counts.values()))
        return counts
