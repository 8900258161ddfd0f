"""
Entity records for the plate simulation.

Records are plain dataclasses stored in the async collections. They round-trip
through ``to_dict``/``from_dict`` so the SQL backend and worker channel can
carry them as JSON.
"""

import math
import uuid
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Set

from .geometry import Point, as_point, as_vector
from .plate_utils import (
    calculate_mass,
    calculate_plate_area,
    calculate_plate_volume,
    calculate_sphere_surface_area,
    determine_behavioral_type,
)

MIN_PLANET_RADIUS = 1000.0  # km


def new_id() -> str:
    return str(uuid.uuid4())


def platelet_id(plate_id: str, cell_id: str) -> str:
    """Deterministic platelet id: one platelet per plate per grid cell."""
    return f"{plate_id}-{cell_id}"


@dataclass(frozen=True)
class Planet:
    """A sphere hosting plates. Frozen; change it through ``update_planet``."""

    radius: float
    name: Optional[str] = None
    id: str = field(default_factory=new_id)

    def __post_init__(self):
        if self.radius < MIN_PLANET_RADIUS:
            raise ValueError(f"planet radii must be >= {MIN_PLANET_RADIUS:.0f}km")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Planet":
        return cls(id=data["id"], radius=data["radius"], name=data.get("name"))


@dataclass
class Plate:
    """A tectonic plate: a disc of crust centered on ``position``."""

    id: str
    radius: float  # km
    density: float  # g/cm3
    thickness: float  # km
    planet_id: str
    position: Point
    name: Optional[str] = None
    area: float = 0.0
    coverage_percent: float = 0.0
    mass: float = 0.0
    rank: int = 0
    behavioral_type: str = ""

    @classmethod
    def create(
        cls,
        radius: float,
        density: float,
        thickness: float,
        planet_id: str,
        position: Iterable[float],
        planet_radius: float,
        id: Optional[str] = None,
        name: Optional[str] = None,
        rank: int = 0,
        behavioral_type: Optional[str] = None,
    ) -> "Plate":
        """Build a plate and fill in its derived properties."""
        plate_id = id or new_id()
        area = calculate_plate_area(radius)
        return cls(
            id=plate_id,
            name=name or f"plate-{plate_id}",
            radius=radius,
            density=density,
            thickness=thickness,
            planet_id=planet_id,
            position=as_point(as_vector(position)),
            area=area,
            coverage_percent=area / calculate_sphere_surface_area(planet_radius) * 100,
            mass=calculate_mass(calculate_plate_volume(area, thickness), density),
            rank=rank,
            behavioral_type=behavioral_type or determine_behavioral_type(density),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["position"] = list(self.position)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Plate":
        data = dict(data)
        data["position"] = tuple(float(v) for v in data["position"])
        return cls(**data)


class PlateletState(str, Enum):
    ACTIVE = "active"
    REMOVED = "removed"


@dataclass
class Platelet:
    """One hex cell's worth of a plate."""

    id: str
    plate_id: str
    planet_id: str
    cell_id: str
    position: Point
    radius: float
    thickness: float
    density: float
    neighbor_cell_ids: Set[str] = field(default_factory=set)
    state: PlateletState = PlateletState.ACTIVE
    sector: Optional[str] = None  # resolution-0 cell

    @property
    def removed(self) -> bool:
        return self.state is PlateletState.REMOVED

    @property
    def is_live(self) -> bool:
        return self.state is PlateletState.ACTIVE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "plate_id": self.plate_id,
            "planet_id": self.planet_id,
            "cell_id": self.cell_id,
            "position": list(self.position),
            "radius": self.radius,
            "thickness": self.thickness,
            "density": self.density,
            "neighbor_cell_ids": sorted(self.neighbor_cell_ids),
            "state": self.state.value,
            "sector": self.sector,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Platelet":
        return cls(
            id=data["id"],
            plate_id=data["plate_id"],
            planet_id=data["planet_id"],
            cell_id=data["cell_id"],
            position=tuple(float(v) for v in data["position"]),
            radius=data["radius"],
            thickness=data["thickness"],
            density=data["density"],
            neighbor_cell_ids=set(data.get("neighbor_cell_ids") or ()),
            state=PlateletState(data.get("state", PlateletState.ACTIVE.value)),
            sector=data.get("sector"),
        )


@dataclass
class Simulation:
    """Groups a planet with the plate-generation parameters used for it."""

    planet_id: str
    id: str = field(default_factory=new_id)
    name: Optional[str] = None
    plate_count: int = 0
    max_plate_radius: float = math.pi / 6  # radians

    def __post_init__(self):
        if not self.name:
            self.name = f"sim-{self.id}"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Simulation":
        return cls(**data)
