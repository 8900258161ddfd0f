"""
Force-directed plate layout.

Overlapping plates push each other apart until no pair is within the
interaction distance. Each step is computed from one snapshot of every plate
position (Jacobi iteration), so the result does not depend on plate order.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np
import structlog
from scipy.spatial.distance import pdist, squareform

from ..config import Settings, settings
from ..db.store import SimulationStore
from ..utils.random import get_prng
from .alea_prng import AleaPRNG
from .errors import NotFoundError
from .geometry import as_point, as_vector, random_unit_vector
from .models import Planet, Plate
from .plate_utils import elevation_cutoff, isostatic_elevation

logger = structlog.get_logger()


@dataclass
class LayoutResult:
    steps: int
    max_force: float
    converged: bool


class ForceLayoutEngine:
    """Relaxes the positions of all plates on a planet."""

    def __init__(
        self,
        store: SimulationStore,
        config: Optional[Settings] = None,
        prng: Optional[AleaPRNG] = None,
    ):
        self.store = store
        self.config = config or settings
        self.prng = prng or get_prng()

    async def _load(self, planet_id: str):
        planet: Optional[Planet] = await self.store.planets.get(planet_id)
        if planet is None:
            raise NotFoundError("planet", planet_id)
        plates: List[Plate] = [p async for _, p in self.store.plates.find("planet_id", planet_id)]
        plates.sort(key=lambda p: p.id)
        return planet, plates

    def compute_forces(
        self,
        positions: np.ndarray,
        radii: np.ndarray,
        masses: np.ndarray,
        thicknesses: np.ndarray,
        densities: np.ndarray,
    ) -> np.ndarray:
        """
        Pairwise repulsion forces for one step.

        Args:
            positions: (n, 3) plate centers in km
            radii: Plate radii in km
            masses: Plate masses in kg
            thicknesses: Plate thicknesses in km
            densities: Plate densities in g/cm3

        Returns:
            (n, 3) accumulated force per plate
        """
        n = len(positions)
        forces = np.zeros((n, 3), dtype=np.float64)
        if n < 2:
            return forces

        distances = squareform(pdist(positions))
        combined = radii[:, None] + radii[None, :]

        # Plates riding at very different heights pass over each other
        elevation = isostatic_elevation(thicknesses, densities, self.config.mantle_density)
        cutoff = elevation_cutoff(thicknesses[:, None], thicknesses[None, :])
        comparable = np.abs(elevation[:, None] - elevation[None, :]) <= cutoff

        interacting = comparable & (distances < self.config.fd_buffer * combined)
        repulsion = self.config.fd_repulsion

        for i, j in zip(*np.triu_indices(n, k=1)):
            if not interacting[i, j]:
                continue
            if distances[i, j] > 1e-9:
                direction = (positions[i] - positions[j]) / distances[i, j]
            else:
                direction = random_unit_vector(self.prng)

            total_mass = masses[i] + masses[j]
            share_i = masses[j] / total_mass if total_mass > 0 else 0.5
            forces[i] += direction * repulsion * share_i
            forces[j] -= direction * repulsion * (1 - share_i)
        return forces

    def step_positions(self, positions: np.ndarray, forces: np.ndarray, planet_radius: float) -> np.ndarray:
        """Move every plate by its damped force and project back onto the sphere."""
        moved = positions + forces * self.config.fd_strength * self.config.fd_delta_time
        norms = np.linalg.norm(moved, axis=1)
        for i in np.nonzero(norms < 1e-9)[0]:
            moved[i] = random_unit_vector(self.prng)
            norms[i] = 1.0
        return moved * (planet_radius / norms)[:, None]

    async def apply_force_layout(self, planet_id: str) -> Dict[str, np.ndarray]:
        """
        Run one relaxation step over every plate of the planet.

        Returns the force applied to each plate, keyed by plate id.
        """
        planet, plates = await self._load(planet_id)
        if not plates:
            return {}

        positions = np.array([as_vector(p.position) for p in plates])
        forces = self.compute_forces(
            positions,
            np.array([p.radius for p in plates], dtype=np.float64),
            np.array([p.mass for p in plates], dtype=np.float64),
            np.array([p.thickness for p in plates], dtype=np.float64),
            np.array([p.density for p in plates], dtype=np.float64),
        )
        updated = self.step_positions(positions, forces, planet.radius)

        for plate, position in zip(plates, updated):
            plate.position = as_point(position)
            await self.store.plates.set(plate.id, plate)

        return {plate.id: force for plate, force in zip(plates, forces)}

    async def run_force_directed_layout(
        self, planet_id: str, max_steps: Optional[int] = None
    ) -> LayoutResult:
        """Repeat relaxation steps until forces vanish or ``max_steps`` is hit."""
        max_steps = self.config.fd_max_steps if max_steps is None else max_steps
        max_force = 0.0
        steps = 0
        converged = False
        while steps < max_steps:
            forces = await self.apply_force_layout(planet_id)
            steps += 1
            max_force = max((float(np.linalg.norm(f)) for f in forces.values()), default=0.0)
            if max_force < self.config.fd_epsilon:
                converged = True
                break

        logger.info("Force layout finished", planet_id=planet_id, steps=steps,
                    max_force=round(max_force, 3), converged=converged)
        return LayoutResult(steps=steps, max_force=max_force, converged=converged)
