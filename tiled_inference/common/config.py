"""
Configuration management for tiled inference
"""

import logging
from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field, validator


class Settings(BaseSettings):
    """Application settings"""

    # Tiling
    network_width: int = Field(
        default=640,
        description="Neural network input width in pixels"
    )
    network_height: int = Field(
        default=640,
        description="Neural network input height in pixels"
    )
    min_padding: int = Field(
        default=32,
        description="Minimum overlap between adjacent tiles in pixels"
    )

    # Merging
    merge_min_iou: float = Field(
        default=0.5,
        description="Minimum clipped IoU for two boxes to be the same object"
    )
    merge_different_classes: bool = Field(
        default=False,
        description="Allow boxes with different classes to be merged"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Logging format"
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Log file path"
    )

    @validator('log_level')
    def validate_log_level(cls, v):
        """Validate logging level name"""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Invalid log level: {v}")
        return level

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


# Create global settings instance
settings = Settings()


def setup_logging(config: Optional[Settings] = None) -> logging.Logger:
    """Configure root logging from settings"""
    config = config or settings

    handlers = [logging.StreamHandler()]
    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format=config.log_format,
        handlers=handlers
    )

    return logging.getLogger("tiled_inference")
