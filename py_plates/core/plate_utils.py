"""
Derived plate physics: area, mass, behavioral banding and isostatic elevation.
"""

import math

DEFAULT_MANTLE_DENSITY = 3.3  # g/cm3

CONTINENTAL = "continental-like"
OCEANIC = "oceanic-like"
TRANSITIONAL = "transitional"


def calculate_sphere_surface_area(radius: float) -> float:
    """Surface area in km2 of a sphere with ``radius`` km."""
    return 4 * math.pi * radius * radius


def calculate_plate_area(radius: float) -> float:
    return math.pi * radius * radius


def calculate_plate_volume(area: float, thickness: float) -> float:
    """Volume in km3."""
    return area * thickness


def calculate_mass(volume: float, density: float) -> float:
    """
    Mass in kg.

    Args:
        volume: Volume in km3
        density: Density in g/cm3
    """
    volume_m3 = volume * 1e9
    density_kg_m3 = density * 1000
    return volume_m3 * density_kg_m3


def determine_behavioral_type(
    density: float, threshold_low: float = 2.8, threshold_high: float = 2.9
) -> str:
    """Classify a plate by density: light plates behave continentally."""
    if density < threshold_low:
        return CONTINENTAL
    if density > threshold_high:
        return OCEANIC
    return TRANSITIONAL


def isostatic_elevation(
    thickness: float, density: float, mantle_density: float = DEFAULT_MANTLE_DENSITY
) -> float:
    """Height in km a floating slab of ``thickness`` rides above the mantle."""
    return thickness * (1 - density / mantle_density)


def elevation_cutoff(thickness_a: float, thickness_b: float) -> float:
    """Largest elevation difference at which two plates still interact."""
    return (thickness_a + thickness_b) / 2
