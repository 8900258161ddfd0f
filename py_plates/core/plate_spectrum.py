"""
Plate spectrum generation.

Plates follow a power-law size distribution where size correlates with the
other physical properties: large plates are light and thick (continental-like),
small plates are dense and thin (oceanic-like). There are no discrete plate
categories; the behavioral type is a banding of the density spectrum.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np
import structlog

from .alea_prng import AleaPRNG
from .plate_utils import (
    CONTINENTAL,
    OCEANIC,
    TRANSITIONAL,
    calculate_mass,
    calculate_plate_volume,
    calculate_sphere_surface_area,
    determine_behavioral_type,
)

logger = structlog.get_logger()


@dataclass
class PlateSpec:
    """A generated plate before it is placed on a planet."""

    id: str
    radius: float
    area: float
    coverage_percent: float
    density: float
    thickness: float
    mass: float
    rank: int
    behavioral_type: str


@dataclass
class PlateManifest:
    plates: List[PlateSpec]
    summary: Dict[str, float] = field(default_factory=dict)


def vary_in_range(prng: AleaPRNG, low: float, high: float, pct: float, lerp: float) -> float:
    """Interpolate between ``low`` and ``high`` and jitter by ``pct`` of the range."""
    base = low + (high - low) * lerp
    spread = base * pct * 2
    value = base + spread * (prng.random() * 2 - 1)
    return float(np.clip(value, min(low, high), max(low, high)))


class PlateSpectrumGenerator:
    """Generates plates following a max power distribution."""

    def __init__(
        self,
        planet_radius: float,
        plate_count: int,
        target_coverage: float = 0.85,
        power_law_exponent: float = 2.0,
        min_density: float = 2.7,
        max_density: float = 3.0,
        min_thickness: float = 7.0,
        max_thickness: float = 35.0,
        variation_factor: float = 0.2,
        max_plate_radius: Optional[float] = None,
        prng: Optional[AleaPRNG] = None,
    ):
        if plate_count < 0:
            raise ValueError("plate_count must be >= 0")
        self.planet_radius = planet_radius
        self.plate_count = plate_count
        self.target_coverage = target_coverage
        self.power_law_exponent = power_law_exponent
        self.min_density = min_density
        self.max_density = max_density
        self.min_thickness = min_thickness
        self.max_thickness = max_thickness
        self.variation_factor = variation_factor
        self.max_plate_radius = max_plate_radius  # radians
        self.prng = prng or AleaPRNG("plate-spectrum")
        self.planet_surface_area = calculate_sphere_surface_area(planet_radius)

    def generate(self) -> PlateManifest:
        plates = self._generate_plates()
        summary: Dict[str, float] = {
            "total_plates": len(plates),
            "planet_surface_area": self.planet_surface_area,
            "total_coverage": sum(p.coverage_percent for p in plates),
        }
        for band in (CONTINENTAL, OCEANIC, TRANSITIONAL):
            members = [p for p in plates if p.behavioral_type == band]
            summary[f"{band}_plates"] = len(members)
            summary[f"{band}_coverage"] = sum(p.coverage_percent for p in members)

        logger.info("Plate spectrum generated", plates=len(plates),
                    coverage=round(summary["total_coverage"], 2))
        return PlateManifest(plates=plates, summary=summary)

    def power_law_sizes(self) -> np.ndarray:
        """Raw sizes proportional to 1 / rank^exponent."""
        ranks = np.arange(1, self.plate_count + 1, dtype=np.float64)
        return np.power(ranks, -self.power_law_exponent)

    def _generate_plates(self) -> List[PlateSpec]:
        if self.plate_count == 0:
            return []

        target_area = self.planet_surface_area * self.target_coverage
        raw_sizes = self.power_law_sizes()
        fractions = raw_sizes / raw_sizes.sum()

        density_range = self.max_density - self.min_density
        threshold_low = self.min_density + density_range * 0.33
        threshold_high = self.min_density + density_range * 0.66
        radius_cap = (
            self.max_plate_radius * self.planet_radius
            if self.max_plate_radius is not None
            else math.inf
        )

        plates = []
        for index, fraction in enumerate(fractions):
            rank = index + 1
            radius = min(math.sqrt(target_area * fraction / math.pi), radius_cap)
            area = math.pi * radius * radius
            lerp = 0.0 if self.plate_count == 1 else index / (self.plate_count - 1)

            # Smaller plates (higher rank) are denser and thinner
            density = vary_in_range(self.prng, self.min_density, self.max_density,
                                    self.variation_factor, lerp)
            thickness = vary_in_range(self.prng, self.max_thickness, self.min_thickness,
                                      self.variation_factor, lerp)

            plates.append(PlateSpec(
                id=f"plate-{rank}",
                radius=radius,
                area=area,
                coverage_percent=area / self.planet_surface_area * 100,
                density=density,
                thickness=thickness,
                mass=calculate_mass(calculate_plate_volume(area, thickness), density),
                rank=rank,
                behavioral_type=determine_behavioral_type(density, threshold_low, threshold_high),
            ))
        return plates
