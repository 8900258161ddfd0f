"""Exception types raised by the plate simulation."""


class PlateSimulationError(Exception):
    """Base class for simulation errors."""


class NotFoundError(PlateSimulationError, KeyError):
    """A plate, planet, simulation or platelet record does not exist."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")

    def __str__(self) -> str:
        return f"{self.entity} {self.entity_id} not found"


class DegenerateInputError(PlateSimulationError):
    """Input geometry produced no usable grid cells."""


class GraphInconsistencyError(PlateSimulationError):
    """A neighbor reference points at a cell with no live platelet record."""

    def __init__(self, plate_id: str, cell_id: str):
        self.plate_id = plate_id
        self.cell_id = cell_id
        super().__init__(f"plate {plate_id} has no live platelet at cell {cell_id}")


class StorageError(PlateSimulationError):
    """A collection rejected a read, write or delete."""
