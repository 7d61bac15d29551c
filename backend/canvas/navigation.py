"""
Canvas Navigation
=================

Navigation strip state as a projection of the carousel project.
"""

from typing import Optional

from ..models.canvas_models import CarouselProject, NavigationState, ThumbnailSize
from .collection import get_active_canvas, index_of


def project_navigation(
    project: Optional[CarouselProject],
    navigation: NavigationState
) -> NavigationState:
    """
    Recompute active_canvas_id and canvas_order from the project.

    UI preferences (visibility, thumbnail size, add button, max count) are
    carried over unchanged.
    """
    if project is None:
        return navigation.model_copy(update={"active_canvas_id": "", "canvas_order": []})

    active = get_active_canvas(project)
    return navigation.model_copy(update={
        "active_canvas_id": active.id if active else "",
        "canvas_order": project.canvas_ids,
    })


def step_canvas(project: CarouselProject, direction: int) -> Optional[str]:
    """
    Id of the canvas `direction` steps away from the active one, wrapping
    around both ends. None for an empty project.
    """
    if not project.canvases:
        return None
    active = get_active_canvas(project)
    current = index_of(project, active.id) if active else 0
    return project.canvases[(current + direction) % len(project.canvases)].id


def can_add_more(project: CarouselProject, navigation: NavigationState) -> bool:
    return len(project.canvases) < navigation.max_canvas_count


def with_preferences(
    navigation: NavigationState,
    is_navigation_visible: Optional[bool] = None,
    thumbnail_size: Optional[ThumbnailSize] = None,
    show_add_button: Optional[bool] = None,
    max_canvas_count: Optional[int] = None
) -> NavigationState:
    """Apply the given UI preference changes, leaving the projection untouched."""
    updates = {}
    if is_navigation_visible is not None:
        updates["is_navigation_visible"] = is_navigation_visible
    if thumbnail_size is not None:
        updates["thumbnail_size"] = ThumbnailSize(thumbnail_size)
    if show_add_button is not None:
        updates["show_add_button"] = show_add_button
    if max_canvas_count is not None:
        updates["max_canvas_count"] = max(1, max_canvas_count)
    return navigation.model_copy(update=updates)


def toggle_visibility(navigation: NavigationState) -> NavigationState:
    return with_preferences(navigation, is_navigation_visible=not navigation.is_navigation_visible)


def with_thumbnail_size(navigation: NavigationState, size: ThumbnailSize) -> NavigationState:
    return with_preferences(navigation, thumbnail_size=size)
