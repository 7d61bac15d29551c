"""
Carousel Routes
================

API routes for carousel generation, canvas management and navigation.
"""

import logging
from typing import Optional, List
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from pydantic import BaseModel, Field

from ..canvas.carousel_store import CarouselStore
from ..generation.orchestrator import GenerationOrchestrator, validate_slide_count
from ..models.canvas_models import BackgroundStrategy, SlideContent, ThumbnailSize

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/carousel", tags=["carousel"])

# Shared instances (initialized in server.py)
store: Optional[CarouselStore] = None
orchestrator: Optional[GenerationOrchestrator] = None


def get_store() -> CarouselStore:
    """Dependency to get the carousel store."""
    if store is None:
        raise HTTPException(500, "Carousel store not initialized")
    return store


def get_orchestrator() -> GenerationOrchestrator:
    """Dependency to get the generation orchestrator."""
    if orchestrator is None:
        raise HTTPException(500, "Generation orchestrator not initialized")
    return orchestrator


# =============================================================================
# Request models
# =============================================================================

class GenerateRequest(BaseModel):
    """Request to generate a carousel from a prompt."""
    prompt: str = Field(min_length=1)
    slide_count: int = 5
    background_strategy: BackgroundStrategy = BackgroundStrategy.UNIQUE
    tone: Optional[str] = None
    target_audience: Optional[str] = None
    style: Optional[str] = None
    layout_preset: Optional[str] = None


class NavigationUpdate(BaseModel):
    is_navigation_visible: Optional[bool] = None
    thumbnail_size: Optional[ThumbnailSize] = None
    show_add_button: Optional[bool] = None
    max_canvas_count: Optional[int] = Field(default=None, ge=1)


class AddCanvasRequest(BaseModel):
    position: Optional[int] = Field(default=None, ge=0)
    content: Optional[SlideContent] = None
    background_image: Optional[str] = None


class ReorderRequest(BaseModel):
    from_index: int
    to_index: int


class RegenerateRequest(BaseModel):
    prompt: Optional[str] = None


class ProjectRequest(BaseModel):
    name: Optional[str] = None


def _require_project(carousel: CarouselStore):
    if carousel.current_project is None:
        raise HTTPException(404, "No carousel project")
    return carousel.current_project


# =============================================================================
# Generation
# =============================================================================

@router.post("/generate")
async def generate(
    request: GenerateRequest,
    background_tasks: BackgroundTasks,
    orch: GenerationOrchestrator = Depends(get_orchestrator)
):
    """Start a generation run in the background."""
    try:
        validate_slide_count(request.slide_count, orch.store.settings)
    except ValueError as e:
        raise HTTPException(422, str(e))

    if orch.is_generating:
        return {"started": False, "message": "Generation already in progress"}

    background_tasks.add_task(
        orch.start_generation,
        request.prompt,
        request.slide_count,
        request.background_strategy,
        tone=request.tone,
        target_audience=request.target_audience,
        style=request.style,
        layout_preset=request.layout_preset,
    )
    logger.info(f"[CAROUSEL-API] Generation requested: {request.slide_count} slides")
    return {"started": True, "slide_count": request.slide_count}


@router.get("/progress")
async def get_progress(carousel: CarouselStore = Depends(get_store)):
    return carousel.generation_progress.model_dump(mode="json")


@router.post("/generation/reset")
async def reset_generation(orch: GenerationOrchestrator = Depends(get_orchestrator)):
    orch.reset_generation()
    return orch.store.generation_progress.model_dump(mode="json")


@router.post("/generation/cancel")
async def cancel_generation(orch: GenerationOrchestrator = Depends(get_orchestrator)):
    orch.cancel_generation()
    return orch.store.generation_progress.model_dump(mode="json")


# =============================================================================
# State
# =============================================================================

@router.get("/state")
async def get_state(carousel: CarouselStore = Depends(get_store)):
    """Current project with navigation, progress, loading states and tasks."""
    project = _require_project(carousel)
    return {
        "project": project.model_dump(mode="json"),
        "navigation": carousel.navigation.model_dump(mode="json"),
        "generation_progress": carousel.generation_progress.model_dump(mode="json"),
        "loading_states": {
            cid: state.model_dump(mode="json")
            for cid, state in carousel.loading_states.snapshot().items()
        },
        "background_tasks": [t.model_dump(mode="json") for t in carousel.background_queue.tasks],
        "media_assets": carousel.media_assets,
    }


@router.post("/project")
async def create_project(request: ProjectRequest, carousel: CarouselStore = Depends(get_store)):
    """Start a new project with one empty canvas."""
    project = carousel.create_empty_project(request.name)
    return project.model_dump(mode="json")


@router.get("/navigation")
async def get_navigation(carousel: CarouselStore = Depends(get_store)):
    return carousel.navigation.model_dump(mode="json")


@router.patch("/navigation")
async def update_navigation(request: NavigationUpdate, carousel: CarouselStore = Depends(get_store)):
    navigation = carousel.update_navigation(**request.model_dump())
    return navigation.model_dump(mode="json")


@router.get("/loading/{canvas_id}")
async def get_loading_state(canvas_id: str, carousel: CarouselStore = Depends(get_store)):
    state = carousel.get_canvas_loading_state(canvas_id)
    if state is None:
        raise HTTPException(404, "No loading state for canvas")
    return state.model_dump(mode="json")


@router.get("/history")
async def get_history(carousel: CarouselStore = Depends(get_store)) -> List[dict]:
    return [
        {
            "id": p.id,
            "name": p.name,
            "slide_count": p.metadata.slide_count,
            "updated_at": (p.updated_at or p.created_at).isoformat(),
        }
        for p in carousel.recent_projects
    ]


# =============================================================================
# Canvases
# =============================================================================

@router.post("/canvases")
async def add_canvas(request: AddCanvasRequest, carousel: CarouselStore = Depends(get_store)):
    """Add an empty canvas, or one pre-filled from template content."""
    _require_project(carousel)
    if request.content is not None:
        canvas_id = carousel.add_canvas_from_template(
            request.content, request.background_image, request.position
        )
    else:
        canvas_id = carousel.add_canvas(request.position)

    if canvas_id is None:
        raise HTTPException(409, f"Canvas limit of {carousel.max_canvas_count} reached")
    return {"canvas_id": canvas_id, "navigation": carousel.navigation.model_dump(mode="json")}


@router.delete("/canvases/{canvas_id}")
async def remove_canvas(canvas_id: str, carousel: CarouselStore = Depends(get_store)):
    _require_project(carousel)
    if not carousel.has_canvas(canvas_id):
        raise HTTPException(404, "Canvas not found")
    if not carousel.remove_canvas(canvas_id):
        raise HTTPException(409, "Cannot remove the last canvas")
    return {"removed": canvas_id, "navigation": carousel.navigation.model_dump(mode="json")}


@router.post("/canvases/{canvas_id}/duplicate")
async def duplicate_canvas(canvas_id: str, carousel: CarouselStore = Depends(get_store)):
    _require_project(carousel)
    if not carousel.has_canvas(canvas_id):
        raise HTTPException(404, "Canvas not found")
    new_id = carousel.duplicate_canvas(canvas_id)
    if new_id is None:
        raise HTTPException(409, f"Canvas limit of {carousel.max_canvas_count} reached")
    return {"canvas_id": new_id}


@router.post("/canvases/reorder")
async def reorder_canvases(request: ReorderRequest, carousel: CarouselStore = Depends(get_store)):
    _require_project(carousel)
    carousel.reorder_canvases(request.from_index, request.to_index)
    return carousel.navigation.model_dump(mode="json")


@router.put("/canvases/{canvas_id}/active")
async def set_active_canvas(canvas_id: str, carousel: CarouselStore = Depends(get_store)):
    _require_project(carousel)
    if not carousel.has_canvas(canvas_id):
        raise HTTPException(404, "Canvas not found")
    carousel.set_active_canvas(canvas_id)
    return carousel.navigation.model_dump(mode="json")


@router.post("/canvases/{canvas_id}/regenerate")
async def regenerate_canvas(
    canvas_id: str,
    request: RegenerateRequest,
    orch: GenerationOrchestrator = Depends(get_orchestrator)
):
    """Generate a fresh background for one canvas."""
    _require_project(orch.store)
    if not orch.store.has_canvas(canvas_id):
        raise HTTPException(404, "Canvas not found")

    task = await orch.regenerate_slide(canvas_id, request.prompt)
    if task is None:
        raise HTTPException(422, "No prompt available for this canvas")
    return task.model_dump(mode="json")
