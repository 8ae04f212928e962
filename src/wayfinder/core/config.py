"""
Configuration settings for the Wayfinder search engine.
"""

from typing import Literal, Optional, Tuple

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Engine settings with environment variable support.

    Attributes:
        coordinate_precision: Decimals kept when deriving road node ids
        traffic_multiplier: Weight factor for edges touching a traffic node
        snap_radius_km: Max distance for snapping a point onto a road node
        maze_wall_probability: Chance an uncarved maze cell becomes a wall
        grid_rows: Default terrain grid height
        grid_cols: Default terrain grid width
        grid_start: Default (row, col) start cell
        grid_finish: Default (row, col) finish cell
        visit_batch_size: Default batch size when replaying a visitation trace
        log_level: Explicit log level, overrides the environment default
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="WAYFINDER_",
    )

    # Road graph settings
    coordinate_precision: int = 5
    traffic_multiplier: float = 10.0
    snap_radius_km: float = 0.5

    # Grid settings
    grid_rows: int = 20
    grid_cols: int = 45
    grid_start: Tuple[int, int] = (8, 5)
    grid_finish: Tuple[int, int] = (8, 35)
    maze_wall_probability: float = 0.85

    # Replay
    visit_batch_size: int = 4

    # Logging
    log_level: Optional[str] = None

    # Environment
    environment: Literal["development", "staging", "production"] = "development"

    @field_validator("coordinate_precision")
    @classmethod
    def _check_precision(cls, value: int) -> int:
        if value < 0:
            raise ValueError("coordinate_precision must be non-negative")
        return value

    @field_validator("traffic_multiplier")
    @classmethod
    def _check_multiplier(cls, value: float) -> float:
        if value < 1.0:
            raise ValueError("traffic_multiplier must be at least 1.0")
        return value

    @field_validator("snap_radius_km")
    @classmethod
    def _check_snap_radius(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("snap_radius_km must be positive")
        return value

    @field_validator("maze_wall_probability")
    @classmethod
    def _check_probability(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError("maze_wall_probability must be between 0 and 1")
        return value


# Global settings instance
settings = Settings()
