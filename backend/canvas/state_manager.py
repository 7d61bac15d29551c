"""
Carousel State Manager
======================

Persists carousel project snapshots and navigation preferences as JSON.
"""

import json
import logging
from pathlib import Path
from typing import Optional, Dict, Any, List

from ..models.canvas_models import CarouselProject, NavigationState

logger = logging.getLogger(__name__)

PREFERENCES_FILE = "preferences.json"


class StateManager:
    """Saves projects and UI preferences under a sessions directory."""

    def __init__(self, sessions_dir: Optional[Path] = None):
        self.sessions_dir = Path(sessions_dir or "sessions")
        self.sessions_dir.mkdir(parents=True, exist_ok=True)
        self._cache: Dict[str, CarouselProject] = {}
        logger.info(f"[STATE-MANAGER] Initialized with sessions_dir={self.sessions_dir}")

    def _project_path(self, project_id: str) -> Path:
        return self.sessions_dir / f"{project_id}.json"

    def save_project(self, project: CarouselProject) -> None:
        """Write a project snapshot to disk."""
        self._cache[project.id] = project
        with open(self._project_path(project.id), "w") as f:
            f.write(project.model_dump_json(indent=2))

    def get_project(self, project_id: str) -> Optional[CarouselProject]:
        """Load a project from cache or disk."""
        if project_id in self._cache:
            return self._cache[project_id]

        path = self._project_path(project_id)
        if not path.exists():
            return None
        try:
            with open(path) as f:
                project = CarouselProject.model_validate_json(f.read())
        except ValueError as e:
            logger.error(f"[STATE-MANAGER] Could not read project {project_id}: {e}")
            return None
        self._cache[project_id] = project
        return project

    def list_projects(self) -> List[str]:
        """Ids of saved projects."""
        return sorted(
            p.stem for p in self.sessions_dir.glob("*.json")
            if p.name != PREFERENCES_FILE
        )

    def delete_project(self, project_id: str) -> bool:
        self._cache.pop(project_id, None)
        path = self._project_path(project_id)
        if path.exists():
            path.unlink()
            return True
        return False

    def save_preferences(self, navigation: NavigationState) -> None:
        """Persist only the UI preferences, never the active canvas or order."""
        preferences = {
            "is_navigation_visible": navigation.is_navigation_visible,
            "thumbnail_size": navigation.thumbnail_size.value,
        }
        with open(self.sessions_dir / PREFERENCES_FILE, "w") as f:
            json.dump(preferences, f, indent=2)

    def load_preferences(self) -> Dict[str, Any]:
        path = self.sessions_dir / PREFERENCES_FILE
        if not path.exists():
            return {}
        try:
            with open(path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"[STATE-MANAGER] Ignoring unreadable preferences: {e}")
            return {}
        return {k: v for k, v in data.items() if k in ("is_navigation_visible", "thumbnail_size")}
