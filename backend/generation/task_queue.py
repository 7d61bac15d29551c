"""
Background Task Queue
=====================

Queue of background-image jobs, one per canvas, drained sequentially
against the external image service.
"""

import asyncio
import logging
import uuid
from datetime import datetime
from typing import Callable, List, Optional

from ..canvas.loading_state import LoadingStateTracker
from ..models.orchestrator_models import BackgroundTask, TaskStatus
from .errors import ImageGenerationError

logger = logging.getLogger(__name__)

# Loading progress reported while a task is in flight
PROGRESS_ISSUED = 0
PROGRESS_RESPONSE_RECEIVED = 50
PROGRESS_FINALIZING = 90


def new_task_id(prefix: str = "bg") -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


class BackgroundTaskQueue:
    """
    Sequential image-generation queue.

    Tasks run one at a time in enqueue order because the image service is
    rate limited. Drains may overlap (a regeneration during a run), but every
    task runs under one shared lock, so only one image call is ever in flight.
    A failed task never blocks the ones after it. A retry is a new task:
    terminal tasks are never reset.

    Args:
        image_generator: Object with `async generate(prompt, format_hint)`
            returning a response with success/image_url/cost/error
        loading_states: Tracker receiving progress, loaded and error updates
        format_hint: Canvas format id passed to the image service
        on_completed: Called with (task, response) after a task completes
        is_stale: Returns True for tasks whose results must be discarded
        default_cost: Cost recorded when the service does not report one
    """

    def __init__(
        self,
        image_generator,
        loading_states: LoadingStateTracker,
        format_hint: str = "instagram-post",
        on_completed: Optional[Callable] = None,
        is_stale: Optional[Callable[[BackgroundTask], bool]] = None,
        default_cost: float = 0.05
    ):
        self.image_generator = image_generator
        self.loading_states = loading_states
        self.format_hint = format_hint
        self.on_completed = on_completed
        self.is_stale = is_stale or (lambda task: False)
        self.default_cost = default_cost
        self._tasks: List[BackgroundTask] = []
        self._run_lock = asyncio.Lock()

    @property
    def tasks(self) -> List[BackgroundTask]:
        return list(self._tasks)

    def pending(self) -> List[BackgroundTask]:
        return [t for t in self._tasks if t.status == TaskStatus.PENDING]

    def get(self, task_id: str) -> Optional[BackgroundTask]:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def enqueue(self, task: BackgroundTask) -> BackgroundTask:
        """Append a task as pending."""
        if task.status != TaskStatus.PENDING:
            task = task.model_copy(update={"status": TaskStatus.PENDING})
        self._tasks.append(task)
        logger.info(f"[TASK-QUEUE] Enqueued {task.id} for canvas {task.canvas_id} (slide {task.slide_number})")
        return task

    def remove(self, task_id: str) -> bool:
        """Drop a task that is not currently generating."""
        task = self.get(task_id)
        if task is None or task.status == TaskStatus.GENERATING:
            return False
        self._tasks = [t for t in self._tasks if t.id != task_id]
        return True

    def clear(self) -> None:
        self._tasks = []

    def _update(self, task: BackgroundTask, **updates) -> BackgroundTask:
        """
        Replace a task with updated fields. Terminal tasks are left untouched.

        A task dropped from the queue mid-flight (queue cleared by a new run)
        is updated as a detached copy.
        """
        for index, queued in enumerate(self._tasks):
            if queued.id != task.id:
                continue
            if queued.status.is_terminal:
                logger.warning(f"[TASK-QUEUE] Ignoring update to terminal task {task.id}")
                return queued
            updated = queued.model_copy(update=updates)
            self._tasks[index] = updated
            return updated
        return task.model_copy(update=updates)

    async def process_queue(self) -> List[BackgroundTask]:
        """
        Run every task that is pending at call time, one after another.

        Tasks another drain already picked up are skipped. Returns the tasks
        this call processed, in their final state.
        """
        pending_ids = [t.id for t in self.pending()]
        logger.info(f"[TASK-QUEUE] Processing {len(pending_ids)} background task(s)")

        processed = []
        for task_id in pending_ids:
            result = await self.process_task(task_id)
            if result is not None:
                processed.append(result)
        return processed

    async def process_task(self, task_id: str) -> Optional[BackgroundTask]:
        """
        Run one task if it is still pending. Returns its final state.

        Waits for any task in flight first; the pending check is repeated once
        the lock is held because another drain may have taken the task.
        """
        async with self._run_lock:
            task = self.get(task_id)
            if task is None or task.status != TaskStatus.PENDING:
                return None
            return await self._run_task(task)

    async def _run_task(self, task: BackgroundTask) -> BackgroundTask:
        if self.is_stale(task):
            logger.info(f"[TASK-QUEUE] Skipping {task.id}: its generation run was superseded")
            return self._update(
                task,
                status=TaskStatus.FAILED,
                error="Generation run superseded",
                completed_at=datetime.now(),
            )

        task = self._update(task, status=TaskStatus.GENERATING, started_at=datetime.now(), progress=0)
        self.loading_states.set_image_loading(task.canvas_id, True, PROGRESS_ISSUED)

        try:
            response = await self.image_generator.generate(task.prompt, self.format_hint)
            self._report_progress(task, PROGRESS_RESPONSE_RECEIVED)

            if not getattr(response, "success", False):
                raise ImageGenerationError(getattr(response, "error", None) or "Image generation failed")
            image_url = getattr(response, "image_url", None)
            if not image_url:
                raise ImageGenerationError("Image service returned no image URL")

            self._report_progress(task, PROGRESS_FINALIZING)
        except Exception as e:
            logger.error(f"[TASK-QUEUE] Task {task.id} failed: {e}")
            failed = self._update(
                task,
                status=TaskStatus.FAILED,
                error=str(e) or type(e).__name__,
                completed_at=datetime.now(),
            )
            if not self.is_stale(task):
                self.loading_states.set_image_error(task.canvas_id, failed.error)
            return failed

        cost = getattr(response, "cost", None)
        completed = self._update(
            task,
            status=TaskStatus.COMPLETED,
            image_url=image_url,
            cost=cost if cost is not None else self.default_cost,
            progress=100,
            completed_at=datetime.now(),
        )

        if self.is_stale(task):
            logger.info(f"[TASK-QUEUE] Discarding result of {task.id}: run superseded")
            return completed

        self.loading_states.set_image_loaded(task.canvas_id, image_url)
        if self.on_completed:
            try:
                self.on_completed(completed, response)
            except Exception as e:
                logger.error(f"[TASK-QUEUE] Failed to record asset for {task.id}: {e}")

        logger.info(f"[TASK-QUEUE] Task {task.id} completed for canvas {task.canvas_id}")
        return completed

    def _report_progress(self, task: BackgroundTask, progress: int) -> None:
        self._update(task, progress=progress)
        if not self.is_stale(task):
            self.loading_states.set_image_loading(task.canvas_id, True, progress)
