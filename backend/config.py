"""
Carousel Labs Configuration
============================

Settings for the carousel store and generation pipeline.
"""

import os
import logging
from pathlib import Path
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class CarouselSettings(BaseModel):
    """Configuration for the carousel store and orchestrator."""
    max_canvas_count: int = Field(default=10, ge=1)
    min_slide_count: int = Field(default=2, ge=1)
    max_slide_count: int = Field(default=10, ge=1)
    default_canvas_format: str = "instagram-post"
    default_image_cost: float = Field(default=0.05, ge=0.0)
    history_limit: int = Field(default=10, ge=1)
    sessions_dir: Path = Path("sessions")

    @classmethod
    def from_env(cls) -> "CarouselSettings":
        """Build settings from CAROUSEL_* environment variables."""
        defaults = cls()
        settings = cls(
            max_canvas_count=int(os.getenv("CAROUSEL_MAX_CANVAS_COUNT", defaults.max_canvas_count)),
            min_slide_count=int(os.getenv("CAROUSEL_MIN_SLIDE_COUNT", defaults.min_slide_count)),
            max_slide_count=int(os.getenv("CAROUSEL_MAX_SLIDE_COUNT", defaults.max_slide_count)),
            default_canvas_format=os.getenv("CAROUSEL_CANVAS_FORMAT", defaults.default_canvas_format),
            default_image_cost=float(os.getenv("CAROUSEL_DEFAULT_IMAGE_COST", defaults.default_image_cost)),
            history_limit=int(os.getenv("CAROUSEL_HISTORY_LIMIT", defaults.history_limit)),
            sessions_dir=Path(os.getenv("CAROUSEL_SESSIONS_DIR", str(defaults.sessions_dir))),
        )
        logger.info(
            f"[CONFIG] max_canvas_count={settings.max_canvas_count}, "
            f"slide_count={settings.min_slide_count}-{settings.max_slide_count}"
        )
        return settings
