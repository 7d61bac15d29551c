"""
Carousel Store
==============

The owned state object behind the carousel editor: current project,
navigation, per-canvas loading state, generation progress, background task
queue, generated media assets and recent-project history.

All mutation happens on the owner's event loop (single writer). Project,
navigation and progress records are replaced, never mutated in place, so a
reader holding an old reference keeps a consistent snapshot.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from ..config import CarouselSettings
from ..models.canvas_models import (
    Canvas, CarouselProject, NavigationState, SlideContent, ThumbnailSize,
)
from ..models.orchestrator_models import (
    BackgroundTask, CanvasLoadingState, GenerationProgress,
)
from ..generation.task_queue import BackgroundTaskQueue
from ..services.media_store import MediaStore, TimelineStore
from . import collection
from .loading_state import LoadingStateTracker
from .navigation import (
    project_navigation, step_canvas, toggle_visibility, with_preferences, with_thumbnail_size,
)
from .state_manager import StateManager

logger = logging.getLogger(__name__)


class CarouselStore:
    """
    State container and structural operations for one editing session.

    Args:
        image_generator: Image collaborator used by the background queue
        settings: Carousel settings (canvas ceiling, history size, ...)
        media_store: Outbound port for generated assets
        timeline_store: Outbound port for per-canvas timelines
        state_manager: Optional JSON persistence for history and preferences
    """

    def __init__(
        self,
        image_generator,
        settings: Optional[CarouselSettings] = None,
        media_store: Optional[MediaStore] = None,
        timeline_store: Optional[TimelineStore] = None,
        state_manager: Optional[StateManager] = None
    ):
        self.settings = settings or CarouselSettings()
        self.media_store = media_store or MediaStore()
        self.timeline_store = timeline_store or TimelineStore()
        self.state_manager = state_manager

        self.current_project: Optional[CarouselProject] = None
        self.navigation = NavigationState(max_canvas_count=self.settings.max_canvas_count)
        self.generation_progress = GenerationProgress()
        self.current_run_id = 0
        self.media_assets: Dict[str, List[str]] = {}
        self.recent_projects: List[CarouselProject] = []

        self.loading_states = LoadingStateTracker(
            canvas_exists=self.has_canvas,
            apply_background=self._apply_background,
        )
        self.background_queue = BackgroundTaskQueue(
            image_generator,
            self.loading_states,
            format_hint=self.settings.default_canvas_format,
            on_completed=self._record_generated_asset,
            is_stale=self._is_stale_task,
            default_cost=self.settings.default_image_cost,
        )

        if self.state_manager:
            self._restore_preferences()

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    def has_canvas(self, canvas_id: str) -> bool:
        return (
            self.current_project is not None
            and collection.index_of(self.current_project, canvas_id) != -1
        )

    def get_canvas(self, canvas_id: str) -> Optional[Canvas]:
        if self.current_project is None:
            return None
        return collection.find_canvas(self.current_project, canvas_id)

    def get_active_canvas(self) -> Optional[Canvas]:
        if self.current_project is None:
            return None
        return collection.get_active_canvas(self.current_project)

    def get_canvas_loading_state(self, canvas_id: str) -> Optional[CanvasLoadingState]:
        return self.loading_states.get(canvas_id)

    def get_canvas_assets(self, canvas_id: str) -> List[str]:
        return list(self.media_assets.get(canvas_id, []))

    @property
    def max_canvas_count(self) -> int:
        return self.navigation.max_canvas_count

    # ------------------------------------------------------------------
    # Project management
    # ------------------------------------------------------------------

    def _commit(self, project: Optional[CarouselProject]) -> None:
        """Install a project and re-project navigation from it."""
        self.current_project = project
        self.navigation = project_navigation(project, self.navigation)

    def set_current_project(self, project: Optional[CarouselProject]) -> None:
        """Replace the project; resets generation progress and the queue."""
        self._commit(project)
        self.generation_progress = GenerationProgress()
        self.background_queue.clear()
        logger.info(f"[CAROUSEL-STORE] Current project set to {project.id if project else None}")

    def update_project(self, **updates) -> None:
        """Update project-level fields (name, tags, template_id, metadata)."""
        if self.current_project is None:
            return
        for key in ("id", "canvases"):
            updates.pop(key, None)
        updates["updated_at"] = datetime.now()
        self._commit(self.current_project.model_copy(update=updates))

    def create_empty_project(self, name: Optional[str] = None) -> CarouselProject:
        """Clear everything and start a project with one empty canvas."""
        self.timeline_store.clear_all()
        self.media_store.clear_all()
        self.loading_states.clear()
        self.media_assets = {}

        project = collection.create_project(
            name or f"Instagram Carousel {datetime.now().strftime('%Y-%m-%d')}"
        )
        self.set_current_project(project)
        self.add_to_history(project)
        for canvas in project.canvases:
            self.timeline_store.create_canvas_timeline(canvas.id)

        logger.info(f"[CAROUSEL-STORE] Created empty project {project.id}")
        return project

    # ------------------------------------------------------------------
    # Canvas management
    # ------------------------------------------------------------------

    def add_canvas(self, position: Optional[int] = None) -> Optional[str]:
        """Add an empty canvas. Returns its id, or None at the ceiling."""
        if self.current_project is None:
            return None

        before = self.current_project
        after = collection.add_canvas(before, position, self.max_canvas_count)
        if after is before:
            logger.info(f"[CAROUSEL-STORE] Cannot add canvas: limit of {self.max_canvas_count} reached")
            return None

        self._commit(after)
        new_id = collection.get_active_canvas(after).id
        self.timeline_store.create_canvas_timeline(new_id)
        return new_id

    def add_canvas_from_template(
        self,
        content: SlideContent,
        background_image: Optional[str] = None,
        position: Optional[int] = None
    ) -> Optional[str]:
        """Add a canvas pre-filled with slide content (e.g. from a template)."""
        if self.current_project is None:
            return None

        canvas = collection.create_canvas(content=content, format_id=self.settings.default_canvas_format)
        if background_image:
            canvas = canvas.model_copy(update={"background_image": background_image, "thumbnail_url": background_image})

        before = self.current_project
        after = collection.insert_canvas(before, canvas, position, self.max_canvas_count)
        if after is before:
            return None

        self._commit(after)
        self.timeline_store.create_canvas_timeline(canvas.id)
        self.loading_states.update(
            canvas.id,
            is_text_loaded=True,
            has_placeholder=not background_image,
            is_image_loaded=bool(background_image),
            image_load_progress=100 if background_image else 0,
        )
        return canvas.id

    def remove_canvas(self, canvas_id: str) -> bool:
        """
        Remove a canvas together with its timeline, media, loading state and
        asset list. Returns False when the removal was rejected.
        """
        if self.current_project is None:
            return False

        before = self.current_project
        after = collection.remove_canvas(before, canvas_id)
        if after is before:
            return False

        self._commit(after)
        self.timeline_store.remove_canvas_timeline(canvas_id)
        self.media_store.remove_canvas_items(before.id, canvas_id)
        self.loading_states.remove(canvas_id)
        self.media_assets.pop(canvas_id, None)
        logger.info(f"[CAROUSEL-STORE] Removed canvas {canvas_id}")
        return True

    def duplicate_canvas(self, canvas_id: str) -> Optional[str]:
        """Duplicate a canvas's content. Returns the new id, or None if rejected."""
        if self.current_project is None:
            return None

        before = self.current_project
        after = collection.duplicate_canvas(before, canvas_id, self.max_canvas_count)
        if after is before:
            return None

        self._commit(after)
        new_id = after.canvases[collection.index_of(after, canvas_id) + 1].id
        self.timeline_store.create_canvas_timeline(new_id)
        return new_id

    def reorder_canvases(self, from_index: int, to_index: int) -> None:
        if self.current_project is None:
            return
        self._commit(collection.reorder_canvases(self.current_project, from_index, to_index))

    def set_active_canvas(self, canvas_id: str) -> None:
        if self.current_project is None:
            return
        self._commit(collection.set_active_canvas(self.current_project, canvas_id))

    def navigate(self, direction: int) -> Optional[str]:
        """Move the active canvas by `direction` steps (wrapping). Returns the new active id."""
        if self.current_project is None:
            return None
        target = step_canvas(self.current_project, direction)
        if target:
            self.set_active_canvas(target)
        return target

    def update_canvas(self, canvas_id: str, **updates) -> None:
        if self.current_project is None:
            return
        self._commit(collection.update_canvas(self.current_project, canvas_id, **updates))

    def _apply_background(self, canvas_id: str, image_url: str) -> None:
        self.update_canvas(canvas_id, background_image=image_url, thumbnail_url=image_url)

    # ------------------------------------------------------------------
    # Navigation preferences
    # ------------------------------------------------------------------

    def update_navigation(
        self,
        is_navigation_visible: Optional[bool] = None,
        thumbnail_size: Optional[ThumbnailSize] = None,
        show_add_button: Optional[bool] = None,
        max_canvas_count: Optional[int] = None
    ) -> NavigationState:
        self.navigation = with_preferences(
            self.navigation,
            is_navigation_visible=is_navigation_visible,
            thumbnail_size=thumbnail_size,
            show_add_button=show_add_button,
            max_canvas_count=max_canvas_count,
        )
        return self._save_preferences(self.navigation)

    def _save_preferences(self, navigation: NavigationState) -> NavigationState:
        self.navigation = navigation
        if self.state_manager:
            self.state_manager.save_preferences(navigation)
        return navigation

    def toggle_navigation_visibility(self) -> NavigationState:
        return self._save_preferences(toggle_visibility(self.navigation))

    def set_thumbnail_size(self, size: ThumbnailSize) -> NavigationState:
        return self._save_preferences(with_thumbnail_size(self.navigation, size))

    def _restore_preferences(self) -> None:
        preferences = self.state_manager.load_preferences()
        if preferences:
            self.navigation = with_preferences(self.navigation, **preferences)

    # ------------------------------------------------------------------
    # Generation progress
    # ------------------------------------------------------------------

    def update_generation_progress(self, **updates) -> GenerationProgress:
        self.generation_progress = self.generation_progress.model_copy(update=updates)
        return self.generation_progress

    def next_run_id(self) -> int:
        """Start a new generation run token; older runs become stale."""
        self.current_run_id += 1
        return self.current_run_id

    def _is_stale_task(self, task: BackgroundTask) -> bool:
        return task.run_id is not None and task.run_id != self.current_run_id

    # ------------------------------------------------------------------
    # Media assets
    # ------------------------------------------------------------------

    def add_media_asset(self, canvas_id: str, asset_url: str) -> None:
        self.media_assets[canvas_id] = self.media_assets.get(canvas_id, []) + [asset_url]

    def remove_media_asset(self, canvas_id: str, asset_url: str) -> None:
        self.media_assets[canvas_id] = [u for u in self.media_assets.get(canvas_id, []) if u != asset_url]

    def _record_generated_asset(self, task: BackgroundTask, response) -> None:
        """Store a completed task's image in the media store and asset list."""
        if self.current_project is None or not self.has_canvas(task.canvas_id):
            return
        self.media_store.add_generated_image(
            self.current_project.id,
            task.canvas_id,
            task.slide_number,
            task.image_url,
            task.prompt,
            background_strategy=self.current_project.metadata.background_strategy,
            cost=task.cost or 0.0,
            model=getattr(response, "model", None),
        )
        self.add_media_asset(task.canvas_id, task.image_url)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def add_to_history(self, project: CarouselProject) -> None:
        others = [p for p in self.recent_projects if p.id != project.id]
        self.recent_projects = [project] + others[: self.settings.history_limit - 1]
        if self.state_manager:
            self.state_manager.save_project(project)

    def remove_from_history(self, project_id: str) -> None:
        self.recent_projects = [p for p in self.recent_projects if p.id != project_id]

    def clear_history(self) -> None:
        self.recent_projects = []

    # ------------------------------------------------------------------
    # Reset
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Drop all state. Preferences survive; in-flight runs become stale."""
        self.next_run_id()
        self.current_project = None
        self.navigation = project_navigation(None, self.navigation)
        self.generation_progress = GenerationProgress()
        self.background_queue.clear()
        self.loading_states.clear()
        self.media_assets = {}
        self.recent_projects = []
        self.timeline_store.clear_all()
        self.media_store.clear_all()
