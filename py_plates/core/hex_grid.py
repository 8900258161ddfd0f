"""
Spatial grid service backed by the H3 hexagonal index.

The simulation only talks to the grid through ``HexGrid``: cell lookup for a
point, cell-center projection, adjacency and validity. Cell centers are
projected on the unit sphere once and cached, then scaled per planet radius.
"""

import math
from functools import lru_cache
from typing import Iterable, List, Tuple

import h3
import numpy as np

from .geometry import hex_radius_at_resolution, lat_lon_to_point, point_to_lat_lon


@lru_cache(maxsize=200_000)
def _unit_center(cell: str) -> Tuple[float, float, float]:
    lat, lng = h3.cell_to_latlng(cell)
    x, y, z = lat_lon_to_point(math.radians(lat), math.radians(lng))
    return (x, y, z)


@lru_cache(maxsize=200_000)
def _neighbors(cell: str) -> Tuple[str, ...]:
    return tuple(sorted(c for c in h3.grid_disk(cell, 1) if c != cell))


class HexGrid:
    """Thin adapter over ``h3`` with the operations the simulation consumes."""

    def cell_for_point(self, lat: float, lon: float, resolution: int) -> str:
        """Cell containing latitude/longitude given in degrees."""
        return h3.latlng_to_cell(lat, lon, resolution)

    def cell_for_position(self, position: Iterable[float], radius: float, resolution: int) -> str:
        """Cell containing a 3-D point on (or near) a sphere of ``radius``."""
        lat, lon = point_to_lat_lon(position)
        return self.cell_for_point(math.degrees(lat), math.degrees(lon), resolution)

    def cell_to_point(self, cell: str, radius: float) -> np.ndarray:
        """3-D center of ``cell`` on a sphere of ``radius``."""
        return np.array(_unit_center(cell), dtype=np.float64) * radius

    def neighbors_of(self, cell: str) -> List[str]:
        """Cells sharing an edge with ``cell`` (6, or 5 around a pentagon)."""
        return list(_neighbors(cell))

    def children_of(self, cell: str, resolution: int) -> List[str]:
        return list(h3.cell_to_children(cell, resolution))

    def disk(self, cell: str, k: int) -> List[str]:
        """All cells within ``k`` grid steps of ``cell``, including itself."""
        return list(h3.grid_disk(cell, k))

    def is_valid(self, cell) -> bool:
        if not isinstance(cell, str) or not cell:
            return False
        return bool(h3.is_valid_cell(cell))

    def is_pentagon(self, cell: str) -> bool:
        return bool(h3.is_pentagon(cell))

    def sector_of(self, cell: str) -> str:
        """Resolution-0 cell containing ``cell``."""
        if h3.get_resolution(cell) == 0:
            return cell
        return h3.cell_to_parent(cell, 0)

    def resolution_of(self, cell: str) -> int:
        return h3.get_resolution(cell)

    def cell_radius(self, planet_radius: float, resolution: int) -> float:
        return hex_radius_at_resolution(planet_radius, resolution)
