"""
Canvas Collection
=================

Pure operations over a CarouselProject's ordered canvas list.

Every function returns a new project (copy-on-write) and never raises for
structural edge cases: adding past the ceiling, removing the last canvas or
addressing an unknown id returns the project unchanged. Callers that need to
know whether an operation took effect compare the result with the input.
"""

import logging
import uuid
from datetime import datetime
from typing import List, Optional

from ..models.canvas_models import (
    Canvas, CarouselProject, CarouselMetadata, SlideContent, BackgroundStrategy,
    EMPTY_BACKGROUND, DEFAULT_CANVAS_FORMAT,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_CANVAS_COUNT = 10


def new_canvas_id() -> str:
    return f"canvas_{uuid.uuid4().hex}"


def create_canvas(
    content: Optional[SlideContent] = None,
    slide_number: int = 1,
    is_active: bool = False,
    background_image: str = EMPTY_BACKGROUND,
    format_id: str = DEFAULT_CANVAS_FORMAT,
    is_loading: bool = False
) -> Canvas:
    """Create a canvas with a fresh id."""
    return Canvas(
        id=new_canvas_id(),
        slide_number=slide_number,
        is_active=is_active,
        content=content or SlideContent(),
        background_image=background_image,
        format_id=format_id,
        is_loading=is_loading,
    )


def create_project(
    name: str,
    user_id: str = "current-user",
    canvases: Optional[List[Canvas]] = None,
    background_strategy: BackgroundStrategy = BackgroundStrategy.UNIQUE,
    source_prompt: Optional[str] = None
) -> CarouselProject:
    """Create a project. Without canvases it starts with one empty active canvas."""
    if not canvases:
        canvases = [create_canvas(slide_number=1, is_active=True)]
    project = CarouselProject(
        id=f"carousel_{uuid.uuid4().hex}",
        name=name,
        user_id=user_id,
        canvases=canvases,
        metadata=CarouselMetadata(
            slide_count=len(canvases),
            background_strategy=background_strategy,
            source_prompt=source_prompt,
        ),
    )
    return _with_canvases(project, canvases, active_id=_active_id(canvases))


def find_canvas(project: CarouselProject, canvas_id: str) -> Optional[Canvas]:
    for canvas in project.canvases:
        if canvas.id == canvas_id:
            return canvas
    return None


def index_of(project: CarouselProject, canvas_id: str) -> int:
    """Index of a canvas, or -1."""
    for index, canvas in enumerate(project.canvases):
        if canvas.id == canvas_id:
            return index
    return -1


def get_active_canvas(project: CarouselProject) -> Optional[Canvas]:
    for canvas in project.canvases:
        if canvas.is_active:
            return canvas
    return project.canvases[0] if project.canvases else None


def _active_id(canvases: List[Canvas]) -> Optional[str]:
    for canvas in canvases:
        if canvas.is_active:
            return canvas.id
    return canvases[0].id if canvases else None


def _with_canvases(
    project: CarouselProject,
    canvases: List[Canvas],
    active_id: Optional[str]
) -> CarouselProject:
    """Renumber, apply the single active flag and rebuild the project."""
    if canvases and not any(c.id == active_id for c in canvases):
        active_id = canvases[0].id

    renumbered = []
    for index, canvas in enumerate(canvases):
        is_active = canvas.id == active_id
        if canvas.slide_number != index + 1 or canvas.is_active != is_active:
            canvas = canvas.model_copy(update={"slide_number": index + 1, "is_active": is_active})
        renumbered.append(canvas)

    return project.model_copy(update={
        "canvases": renumbered,
        "metadata": project.metadata.model_copy(update={"slide_count": len(renumbered)}),
        "updated_at": datetime.now(),
    })


def add_canvas(
    project: CarouselProject,
    position: Optional[int] = None,
    max_count: int = DEFAULT_MAX_CANVAS_COUNT
) -> CarouselProject:
    """Insert an empty canvas (default: at the end) and make it active."""
    return insert_canvas(project, create_canvas(), position, max_count)


def insert_canvas(
    project: CarouselProject,
    canvas: Canvas,
    position: Optional[int] = None,
    max_count: int = DEFAULT_MAX_CANVAS_COUNT
) -> CarouselProject:
    """Insert a prepared canvas at position and make it active."""
    if len(project.canvases) >= max_count:
        logger.debug(f"[COLLECTION] Add rejected: {len(project.canvases)}/{max_count} canvases")
        return project

    canvases = list(project.canvases)
    if position is None or position > len(canvases):
        position = len(canvases)
    position = max(0, position)
    canvases.insert(position, canvas)
    return _with_canvases(project, canvases, active_id=canvas.id)


def remove_canvas(project: CarouselProject, canvas_id: str) -> CarouselProject:
    """
    Remove a canvas.

    If the removed canvas was active, the canvas that moves into its index
    becomes active; when the last canvas was removed, the new last one does.
    """
    if len(project.canvases) <= 1:
        logger.debug("[COLLECTION] Remove rejected: at least one canvas is required")
        return project

    index = index_of(project, canvas_id)
    if index == -1:
        return project

    removed = project.canvases[index]
    canvases = project.canvases[:index] + project.canvases[index + 1:]

    if removed.is_active:
        active_id = canvases[min(index, len(canvases) - 1)].id
    else:
        active_id = _active_id(canvases)
    return _with_canvases(project, canvases, active_id=active_id)


def duplicate_canvas(
    project: CarouselProject,
    canvas_id: str,
    max_count: int = DEFAULT_MAX_CANVAS_COUNT
) -> CarouselProject:
    """Copy a canvas's slide content into a new canvas right after it."""
    if len(project.canvases) >= max_count:
        logger.debug(f"[COLLECTION] Duplicate rejected: {len(project.canvases)}/{max_count} canvases")
        return project

    index = index_of(project, canvas_id)
    if index == -1:
        return project

    source = project.canvases[index]
    copy = Canvas(
        id=new_canvas_id(),
        slide_number=index + 2,
        is_active=False,
        content=source.content.model_copy(update={"title": f"{source.content.title} (Copy)"}),
        background_image=source.background_image,
        thumbnail_url=source.thumbnail_url,
        format_id=source.format_id,
        background_color=source.background_color,
    )
    canvases = list(project.canvases)
    canvases.insert(index + 1, copy)
    return _with_canvases(project, canvases, active_id=_active_id(project.canvases))


def reorder_canvases(project: CarouselProject, from_index: int, to_index: int) -> CarouselProject:
    """Move a canvas; the active flag travels with the canvas."""
    count = len(project.canvases)
    if not (0 <= from_index < count and 0 <= to_index < count) or from_index == to_index:
        return project

    canvases = list(project.canvases)
    moved = canvases.pop(from_index)
    canvases.insert(to_index, moved)
    return _with_canvases(project, canvases, active_id=_active_id(project.canvases))


def set_active_canvas(project: CarouselProject, canvas_id: str) -> CarouselProject:
    if index_of(project, canvas_id) == -1:
        return project
    return _with_canvases(project, list(project.canvases), active_id=canvas_id)


def update_canvas(project: CarouselProject, canvas_id: str, **updates) -> CarouselProject:
    """
    Replace fields of one canvas.

    Identity and ordering fields (id, slide_number, is_active) are owned by
    the structural operations and cannot be changed here.
    """
    index = index_of(project, canvas_id)
    if index == -1:
        return project

    for key in ("id", "slide_number", "is_active"):
        updates.pop(key, None)
    if not updates:
        return project

    canvases = list(project.canvases)
    canvases[index] = canvases[index].model_copy(update=updates)
    return project.model_copy(update={"canvases": canvases, "updated_at": datetime.now()})
