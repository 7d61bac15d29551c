"""
Orchestrator Models for Carousel Labs
======================================

Models for generation progress, background image tasks, per-canvas loading
state and the payloads exchanged with the text and image collaborators.
"""

from enum import Enum
from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field

from .canvas_models import BackgroundStrategy


class GenerationStep(str, Enum):
    """Step of a generation run."""
    TEXT = "text"
    IMAGES = "images"
    CANVASES = "canvases"
    COMPLETE = "complete"


class TaskStatus(str, Enum):
    """
    Status of a background image task.

    pending -> generating -> completed | failed. Terminal states are final.
    """
    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)


class GenerationProgress(BaseModel):
    """Process-wide record of the active generation run."""
    is_generating: bool = False
    current_step: GenerationStep = GenerationStep.TEXT
    step_progress: int = Field(default=0, ge=0, le=100)
    total_progress: int = Field(default=0, ge=0, le=100)
    current_slide: Optional[int] = None
    total_slides: Optional[int] = None
    started_at: Optional[datetime] = None
    error: Optional[str] = None


class BackgroundTask(BaseModel):
    """One queued image-generation unit of work scoped to a single canvas."""
    id: str
    canvas_id: str
    slide_number: int
    prompt: str
    status: TaskStatus = TaskStatus.PENDING
    run_id: Optional[int] = None        # None = independent of any generation run
    image_url: Optional[str] = None
    error: Optional[str] = None
    cost: Optional[float] = None
    progress: int = Field(default=0, ge=0, le=100)
    created_at: datetime = Field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class CanvasLoadingState(BaseModel):
    """Loading flags of one canvas, kept outside the Canvas record."""
    canvas_id: str
    is_text_loaded: bool = False
    is_image_loading: bool = False
    is_image_loaded: bool = False
    image_load_progress: int = Field(default=0, ge=0, le=100)
    has_placeholder: bool = True
    error: Optional[str] = None


class GenerationOptions(BaseModel):
    """Request for a carousel generation run."""
    prompt: str = Field(min_length=1)
    slide_count: int = Field(ge=1)
    background_strategy: BackgroundStrategy = BackgroundStrategy.UNIQUE
    tone: Optional[str] = None
    target_audience: Optional[str] = None
    style: Optional[str] = None
    layout_preset: Optional[str] = None


class GeneratedSlide(BaseModel):
    """One slide as returned by the text collaborator."""
    title: str = ""
    body: str = ""
    cta: Optional[str] = None
    background_prompt: str = ""


class TextGenerationResult(BaseModel):
    """Slides returned by the text collaborator."""
    slides: List[GeneratedSlide] = Field(default_factory=list)
    model: Optional[str] = None


class GeneratedAsset(BaseModel):
    """A stored, AI-generated background image."""
    id: str
    project_id: str
    canvas_id: str
    slide_number: int
    url: str
    prompt: str
    background_strategy: BackgroundStrategy = BackgroundStrategy.UNIQUE
    cost: float = 0.0
    model: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)
