"""
Sphere geometry helpers.

Positions are 3-D points in km with the planet centered at the origin. The
axis convention is y-up::

    x = r * cos(lat) * cos(lon)
    y = r * sin(lat)
    z = r * cos(lat) * sin(lon)
"""

import math
from typing import Iterable, Optional, Tuple

import numpy as np

EARTH_RADIUS = 6371.0088  # km
# Half of the center-to-center distance between resolution 0 cells on Earth (km)
LEVEL0_HEX_RADIUS = 1077.58
# Cell radius shrinks by roughly sqrt(7) per resolution level
RESOLUTION_SCALE = 2.64

Point = Tuple[float, float, float]


def as_vector(point: Iterable[float]) -> np.ndarray:
    """Convert a stored position to a float64 numpy vector."""
    return np.asarray(tuple(point), dtype=np.float64)


def as_point(vector: np.ndarray) -> Point:
    """Convert a numpy vector to the tuple form stored on records."""
    return (float(vector[0]), float(vector[1]), float(vector[2]))


def lat_lon_to_point(lat: float, lon: float, radius: float = 1.0) -> np.ndarray:
    """Project latitude/longitude in radians onto a sphere of ``radius``."""
    cos_lat = math.cos(lat)
    return np.array(
        [cos_lat * math.cos(lon), math.sin(lat), cos_lat * math.sin(lon)],
        dtype=np.float64,
    ) * radius


def point_to_lat_lon(point: Iterable[float]) -> Tuple[float, float]:
    """Inverse of ``lat_lon_to_point``; returns (lat, lon) in radians."""
    x, y, z = as_vector(point)
    length = math.sqrt(x * x + y * y + z * z)
    if length == 0:
        raise ValueError("Cannot compute latitude/longitude of the origin")
    lat = math.asin(max(-1.0, min(1.0, y / length)))
    lon = math.atan2(z, x)
    return lat, lon


def set_length(vector: np.ndarray, length: float) -> np.ndarray:
    """Rescale ``vector`` to ``length``; the zero vector is returned unchanged."""
    norm = np.linalg.norm(vector)
    if norm == 0:
        return np.array(vector, dtype=np.float64)
    return vector * (length / norm)


def distance(a: Iterable[float], b: Iterable[float]) -> float:
    """Euclidean (chord) distance in km."""
    return float(np.linalg.norm(as_vector(a) - as_vector(b)))


def random_unit_vector(prng) -> np.ndarray:
    """Random direction built from three uniform draws in [-0.5, 0.5)."""
    while True:
        vector = np.array(
            [prng.random() - 0.5, prng.random() - 0.5, prng.random() - 0.5],
            dtype=np.float64,
        )
        norm = np.linalg.norm(vector)
        if norm > 1e-9:
            return vector / norm


def random_surface_point(prng, radius: float) -> np.ndarray:
    return random_unit_vector(prng) * radius


def hex_radius_at_resolution(planet_radius: float, resolution: int) -> float:
    """Approximate hex cell radius (half the center spacing) in km."""
    base = (planet_radius / EARTH_RADIUS) * LEVEL0_HEX_RADIUS
    return base * math.pow(1.0 / RESOLUTION_SCALE, resolution)


def rings_to_cover(
    radius: float, cell_radius: float, margin: float, max_rings: Optional[int] = None
) -> int:
    """Number of concentric rings whose span covers ``margin * radius``."""
    if cell_radius <= 0:
        raise ValueError("cell_radius must be positive")
    rings = max(0, math.ceil(radius * margin / cell_radius))
    if max_rings is not None:
        rings = min(rings, max_rings)
    return rings
