"""Shared fixtures for the plate simulation tests."""

import pytest

from py_plates.config import Settings
from py_plates.core.alea_prng import AleaPRNG
from py_plates.core.hex_grid import HexGrid
from py_plates.core.models import Planet, Plate
from py_plates.core.neighbor_graph import NeighborGraph
from py_plates.core.platelet_manager import make_platelet
from py_plates.db.store import SimulationStore

EARTH_RADIUS = 6371.0088
RESOLUTION = 3

# Candidate centers for hand-built hexagonal patches
PATCH_LOCATIONS = [(20.0, 30.0), (-35.0, 140.0), (48.0, -100.0), (5.0, -60.0)]


def clean_center(grid, k, resolution=RESOLUTION):
    """A cell whose k+1 disk contains no pentagon, so every ring is complete."""
    for lat, lon in PATCH_LOCATIONS:
        cell = grid.cell_for_point(lat, lon, resolution)
        if not any(grid.is_pentagon(c) for c in grid.disk(cell, k + 1)):
            return cell
    raise AssertionError("No pentagon-free patch center found")


@pytest.fixture
def config():
    return Settings(_env_file=None)


@pytest.fixture
def grid():
    return HexGrid()


@pytest.fixture
def prng():
    return AleaPRNG("test-seed")


@pytest.fixture
def store():
    return SimulationStore.memory()


@pytest.fixture
def patch_factory(grid, config):
    """
    Build a plate whose platelets are exactly the k-disk around a clean cell.

    Returns an async function ``build(store, k, plate_id)`` that yields the
    plate and the list of rings (ring 0 is the center cell).
    """

    async def build(store, k, plate_id="plate-a", planet_id="planet-1"):
        planet = await store.planets.get(planet_id)
        if planet is None:
            planet = Planet(radius=EARTH_RADIUS, id=planet_id)
            await store.planets.set(planet.id, planet)

        center_cell = clean_center(grid, k)
        center = grid.cell_to_point(center_cell, EARTH_RADIUS)
        cells = grid.disk(center_cell, k)
        reach = max(
            float(((grid.cell_to_point(c, EARTH_RADIUS) - center) ** 2).sum() ** 0.5)
            for c in cells
        )

        plate = Plate.create(
            radius=reach * 1.01,
            density=2.9,
            thickness=20.0,
            planet_id=planet.id,
            position=center,
            planet_radius=EARTH_RADIUS,
            id=plate_id,
        )
        await store.plates.set(plate.id, plate)

        cell_radius = grid.cell_radius(EARTH_RADIUS, RESOLUTION)
        platelets = [
            make_platelet(plate, c, grid.cell_to_point(c, EARTH_RADIUS), cell_radius, grid.sector_of(c))
            for c in cells
        ]
        await store.platelets.set_many([(p.id, p) for p in platelets])
        await NeighborGraph(store, grid, config).populate_neighbors(plate.id)

        rings = [set(grid.disk(center_cell, r)) for r in range(k + 1)]
        rings = [rings[0]] + [rings[r] - rings[r - 1] for r in range(1, k + 1)]
        return plate, rings

    return build
