from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings pulled from environment variables (``PLATES_*``)."""

    model_config = SettingsConfigDict(
        env_prefix="PLATES_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage Configuration
    database_url: str = Field(default="sqlite://", description="SQLAlchemy database URL")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Logging format (json or console)")

    # Planet / Grid Configuration
    planet_radius: float = Field(default=6371.0088, description="Default planet radius in km")
    platelet_resolution: int = Field(default=3, ge=0, le=15, description="Hex grid resolution for platelets")
    ring_margin: float = Field(default=1.33, gt=1.0, description="Safety margin on plate radius for ring expansion")
    max_rings: int = Field(default=20, ge=1, description="Cap on concentric candidate rings")
    max_gap_fill: int = Field(default=100_000, ge=1, description="Cap on platelets created by one gap-fill pass")
    generation_concurrency: int = Field(default=8, ge=1, description="Plates generated concurrently")

    # Force Layout Configuration
    fd_strength: float = Field(default=0.33, ge=0.0, le=1.0, description="Force damping (0-1)")
    fd_delta_time: float = Field(default=2.0, gt=0.0, description="Time step per relaxation step")
    fd_repulsion: float = Field(default=500.0, ge=0.0, description="Base repulsion magnitude in km")
    fd_buffer: float = Field(default=1.2, ge=1.0, description="Interaction distance as a multiple of combined radius")
    fd_epsilon: float = Field(default=1.0, gt=0.0, description="Max force below which layout has converged")
    fd_max_steps: int = Field(default=400, ge=1, description="Default relaxation step limit")
    mantle_density: float = Field(default=3.3, gt=0.0, description="Mantle density in g/cm3")

    # Erosion Configuration
    erosion_min_platelets: int = Field(default=30, description="Plates at or below this size are not eroded")
    erosion_cascade_platelets: int = Field(default=40, description="Plates at or above this size erode by cascade")
    erosion_max_ratio: float = Field(default=0.25, description="Ceiling on removals as a share of edge platelets")
    erosion_direct_ratio: float = Field(default=0.4, description="Share of edge platelets removed on medium plates")
    erosion_seed_ratio: float = Field(default=0.2, description="Share of edge platelets used as cascade seeds")
    cascade_min_steps: int = Field(default=2, ge=0, description="Minimum cascade walk per seed")
    cascade_max_steps: int = Field(default=8, ge=0, description="Maximum cascade walk per seed")

    # Randomness
    random_seed: str = Field(default="py-plates", description="Seed for the Alea PRNG")


# Instantiate singleton settings object
settings = Settings()
