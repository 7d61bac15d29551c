"""
Media and Timeline Stores
=========================

In-memory implementations of the outbound ports used by the carousel store
and the background task queue:

- TimelineStore: one (empty) editing timeline per canvas
- MediaStore: generated background assets tagged with project and canvas

Replace either with a persistent implementation exposing the same methods.
"""

import logging
import uuid
from typing import Dict, List, Optional

from ..models.orchestrator_models import GeneratedAsset

logger = logging.getLogger(__name__)


class TimelineStore:
    """Holds one timeline per canvas id."""

    def __init__(self):
        self._timelines: Dict[str, List[dict]] = {}

    def create_canvas_timeline(self, canvas_id: str) -> None:
        self._timelines[canvas_id] = []

    def remove_canvas_timeline(self, canvas_id: str) -> None:
        self._timelines.pop(canvas_id, None)
        logger.debug(f"[TIMELINE] Removed timeline for canvas {canvas_id}")

    def has_timeline(self, canvas_id: str) -> bool:
        return canvas_id in self._timelines

    def clear_all(self) -> None:
        self._timelines = {}


class MediaStore:
    """Stores generated background images per project."""

    def __init__(self):
        self._items: Dict[str, Dict[str, GeneratedAsset]] = {}

    def add_generated_image(
        self,
        project_id: str,
        canvas_id: str,
        slide_number: int,
        url: str,
        prompt: str,
        **metadata
    ) -> GeneratedAsset:
        """Store a generated background for a canvas."""
        asset = GeneratedAsset(
            id=f"media_{uuid.uuid4().hex}",
            project_id=project_id,
            canvas_id=canvas_id,
            slide_number=slide_number,
            url=url,
            prompt=prompt,
            **metadata
        )
        self._items.setdefault(project_id, {})[asset.id] = asset
        logger.info(f"[MEDIA-STORE] Stored background {asset.id} for canvas {canvas_id}")
        return asset

    def list_items(self, project_id: str) -> List[GeneratedAsset]:
        return list(self._items.get(project_id, {}).values())

    def get_canvas_background(self, project_id: str, canvas_id: str) -> Optional[GeneratedAsset]:
        """Most recently stored background for a canvas."""
        matches = [a for a in self.list_items(project_id) if a.canvas_id == canvas_id]
        return matches[-1] if matches else None

    def remove_media_item(self, project_id: str, item_id: str) -> bool:
        removed = self._items.get(project_id, {}).pop(item_id, None)
        return removed is not None

    def remove_canvas_items(self, project_id: str, canvas_id: str) -> int:
        """Remove every asset tagged with the canvas. Returns the number removed."""
        items = self._items.get(project_id, {})
        doomed = [item_id for item_id, a in items.items() if a.canvas_id == canvas_id]
        for item_id in doomed:
            del items[item_id]
        if doomed:
            logger.info(f"[MEDIA-STORE] Removed {len(doomed)} item(s) for canvas {canvas_id}")
        return len(doomed)

    def clear_all(self) -> None:
        self._items = {}
