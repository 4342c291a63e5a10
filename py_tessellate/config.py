"""Configuration management."""

import logging
from typing import Literal

import structlog
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.cost_matrix import EARTH_RADIUS_M, DistanceMetric
from .core.engine import AssignmentOptions
from .core.hungarian import TieBreak


class Settings(BaseSettings):
    """Application settings pulled from TESSELLATE_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TESSELLATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Assignment
    distance_metric: DistanceMetric = Field(
        default=DistanceMetric.PLANAR, description="Centroid distance formula"
    )
    tie_break: TieBreak = Field(
        default=TieBreak.LOWEST_INDEX, description="Preference among equal-cost matchings"
    )
    max_workers: int = Field(default=1, ge=1, description="Threads for centroid extraction")
    earth_radius: float = Field(
        default=EARTH_RADIUS_M, gt=0, description="Sphere radius in metres (geodesic metric)"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_format: Literal["json", "console"] = Field(default="json", description="Log renderer")

    def assignment_options(self) -> AssignmentOptions:
        """Build engine options from these settings."""
        return AssignmentOptions(
            distance_metric=self.distance_metric,
            tie_break=self.tie_break,
            max_workers=self.max_workers,
            earth_radius=self.earth_radius,
        )


def configure_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Route structlog through stdlib logging with a JSON or console renderer."""
    logging.basicConfig(format="%(message)s", level=level.upper())

    renderer = (
        structlog.processors.JSONRenderer()
        if fmt == "json"
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


settings = Settings()
