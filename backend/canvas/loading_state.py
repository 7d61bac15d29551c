"""
Loading-State Tracker
=====================

Per-canvas loading flags, kept apart from the Canvas records because they
change far more often (progress ticks) than slide content.
"""

import logging
from typing import Callable, Dict, Optional

from ..models.orchestrator_models import CanvasLoadingState

logger = logging.getLogger(__name__)


class LoadingStateTracker:
    """
    Tracks CanvasLoadingState records keyed by canvas id.

    Records are created lazily on first update. Updates addressed to a canvas
    that no longer exists are discarded, so late completions never resurrect
    an entry for a removed canvas.

    Args:
        canvas_exists: Returns True if the canvas id is in the current project
        apply_background: Replaces a canvas's background with a loaded image URL
    """

    def __init__(
        self,
        canvas_exists: Callable[[str], bool],
        apply_background: Callable[[str, str], None]
    ):
        self._canvas_exists = canvas_exists
        self._apply_background = apply_background
        self._states: Dict[str, CanvasLoadingState] = {}

    def get(self, canvas_id: str) -> Optional[CanvasLoadingState]:
        return self._states.get(canvas_id)

    def snapshot(self) -> Dict[str, CanvasLoadingState]:
        return dict(self._states)

    def update(self, canvas_id: str, **fields) -> Optional[CanvasLoadingState]:
        """Merge fields into the canvas's record, creating a default one if needed."""
        if not self._canvas_exists(canvas_id):
            logger.debug(f"[LOADING-STATE] Discarding update for unknown canvas {canvas_id}")
            return None

        current = self._states.get(canvas_id) or CanvasLoadingState(canvas_id=canvas_id)
        if "image_load_progress" in fields:
            fields["image_load_progress"] = max(0, min(100, int(fields["image_load_progress"])))
        state = current.model_copy(update=fields)
        self._states[canvas_id] = state
        return state

    def remove(self, canvas_id: str) -> None:
        self._states.pop(canvas_id, None)

    def clear(self) -> None:
        self._states = {}

    def set_text_loaded(self, canvas_id: str) -> Optional[CanvasLoadingState]:
        return self.update(canvas_id, is_text_loaded=True)

    def set_image_loading(
        self,
        canvas_id: str,
        is_loading: bool,
        progress: int = 0
    ) -> Optional[CanvasLoadingState]:
        """is_image_loaded keeps describing the image currently shown."""
        return self.update(
            canvas_id,
            is_image_loading=is_loading,
            image_load_progress=progress,
        )

    def set_image_loaded(self, canvas_id: str, image_url: str) -> Optional[CanvasLoadingState]:
        """
        Mark the image as loaded and swap the canvas background to image_url.

        Both writes happen in one synchronous step so no reader sees a loaded
        flag next to the old placeholder background.
        """
        if not self._canvas_exists(canvas_id):
            logger.debug(f"[LOADING-STATE] Image for removed canvas {canvas_id} dropped")
            return None

        self._apply_background(canvas_id, image_url)
        return self.update(
            canvas_id,
            is_image_loading=False,
            is_image_loaded=True,
            image_load_progress=100,
            has_placeholder=False,
            error=None,
        )

    def set_image_error(self, canvas_id: str, error: str) -> Optional[CanvasLoadingState]:
        return self.update(
            canvas_id,
            is_image_loading=False,
            image_load_progress=0,
            error=error,
        )
