"""
Worker-delegation channel for platelet generation.

``compute_platelets`` is a plain module-level function taking and returning
dicts, so it can run in a thread or process pool. It never raises; failures
come back as an error string on the response.
"""

from typing import Any, Dict, List, Optional

import structlog
from pydantic import BaseModel, Field

from .hex_grid import HexGrid
from .models import Plate
from .platelet_manager import discretize_plate

logger = structlog.get_logger()

_grid = HexGrid()


class PlateletWorkerRequest(BaseModel):
    """Work item for one plate."""

    plate_id: str = Field(description="Plate to discretize")
    plate_data: Dict[str, Any] = Field(description="Plate record as produced by Plate.to_dict")
    planet_radius: float = Field(gt=0, description="Planet radius in km")
    resolution: int = Field(ge=0, le=15, description="Hex grid resolution")
    ring_margin: float = Field(default=1.33, description="Ring expansion margin on the plate radius")
    max_rings: int = Field(default=20, ge=0, description="Cap on candidate rings")


class PlateletWorkerResponse(BaseModel):
    plate_id: str
    platelet_count: int = 0
    platelets: List[Dict[str, Any]] = Field(default_factory=list)
    error: Optional[str] = None


def compute_platelets(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Discretize the plate described by ``payload`` into platelet dicts."""
    plate_id = payload.get("plate_id") if isinstance(payload, dict) else None
    try:
        request = PlateletWorkerRequest.model_validate(payload)
        plate = Plate.from_dict(request.plate_data)
        platelets = discretize_plate(
            plate,
            request.planet_radius,
            request.resolution,
            grid=_grid,
            ring_margin=request.ring_margin,
            max_rings=request.max_rings,
        )
        response = PlateletWorkerResponse(
            plate_id=request.plate_id,
            platelet_count=len(platelets),
            platelets=[p.to_dict() for p in platelets],
        )
    except Exception as e:
        logger.error("Platelet worker failed", plate_id=plate_id, error=str(e))
        response = PlateletWorkerResponse(plate_id=str(plate_id or ""), error=str(e))
    return response.model_dump()
