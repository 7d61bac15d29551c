"""Tests for the sequential background image queue."""
import pytest

from backend.canvas.loading_state import LoadingStateTracker
from backend.generation.task_queue import BackgroundTaskQueue
from backend.models.orchestrator_models import BackgroundTask, TaskStatus

from fakes import FakeImageGenerator


class Harness:
    def __init__(self, fail_markers=(), stale_runs=()):
        self.backgrounds = {f"canvas_{i}": "placeholder:gradient-1" for i in range(1, 4)}
        self.completed = []
        self.stale_runs = set(stale_runs)
        self.images = FakeImageGenerator(fail_markers)
        self.tracker = LoadingStateTracker(
            canvas_exists=lambda cid: cid in self.backgrounds,
            apply_background=self.backgrounds.__setitem__,
        )
        self.queue = BackgroundTaskQueue(
            self.images,
            self.tracker,
            on_completed=lambda task, response: self.completed.append(task.id),
            is_stale=lambda task: task.run_id in self.stale_runs,
        )

    def enqueue(self, n, run_id=None):
        return self.queue.enqueue(BackgroundTask(
            id=f"bg_{n}", canvas_id=f"canvas_{n}", slide_number=n, prompt=f"scene-{n}", run_id=run_id,
        ))


@pytest.mark.asyncio
async def test_tasks_complete_in_enqueue_order():
    h = Harness()
    for n in (1, 2, 3):
        h.enqueue(n)

    processed = await h.queue.process_queue()

    assert [t.id for t in processed] == ["bg_1", "bg_2", "bg_3"]
    assert all(t.status == TaskStatus.COMPLETED for t in processed)
    assert h.completed == ["bg_1", "bg_2", "bg_3"]
    assert all(not url.startswith("placeholder:") for url in h.backgrounds.values())


@pytest.mark.asyncio
async def test_next_task_never_starts_before_previous_finishes():
    h = Harness()
    for n in (1, 2, 3):
        h.enqueue(n)

    await h.queue.process_queue()

    kinds = [kind for kind, _ in h.images.events]
    assert kinds == ["start", "end"] * 3


@pytest.mark.asyncio
async def test_failure_does_not_block_later_tasks():
    h = Harness(fail_markers=["scene-2"])
    for n in (1, 2, 3):
        h.enqueue(n)

    processed = await h.queue.process_queue()

    assert [t.status for t in processed] == [TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.COMPLETED]
    assert processed[1].error == "Image service error: HTTP 500"
    assert h.tracker.get("canvas_2").error == "Image service error: HTTP 500"
    assert h.backgrounds["canvas_2"] == "placeholder:gradient-1"


@pytest.mark.asyncio
async def test_exception_from_generator_marks_task_failed():
    h = Harness()

    async def explode(prompt, format_hint="instagram-post"):
        raise RuntimeError("connection reset")

    h.images.generate = explode
    h.enqueue(1)

    (task,) = await h.queue.process_queue()

    assert task.status == TaskStatus.FAILED
    assert task.error == "connection reset"


@pytest.mark.asyncio
async def test_stale_task_fails_without_calling_image_service():
    h = Harness(stale_runs={1})
    h.enqueue(1, run_id=1)
    h.enqueue(2, run_id=2)

    processed = await h.queue.process_queue()

    assert processed[0].status == TaskStatus.FAILED
    assert processed[0].error == "Generation run superseded"
    assert h.images.prompts == ["scene-2"]


@pytest.mark.asyncio
async def test_terminal_tasks_are_not_rerun():
    h = Harness()
    h.enqueue(1)
    await h.queue.process_queue()

    assert await h.queue.process_queue() == []
    assert h.images.prompts == ["scene-1"]


@pytest.mark.asyncio
async def test_default_cost_applied_when_missing():
    h = Harness()
    original = h.images.generate

    async def without_cost(prompt, format_hint="instagram-post"):
        response = await original(prompt, format_hint)
        return response.model_copy(update={"cost": None})

    h.images.generate = without_cost
    h.enqueue(1)

    (task,) = await h.queue.process_queue()
    assert task.cost == 0.05


def test_remove_refuses_generating_task():
    h = Harness()
    task = h.enqueue(1)
    h.queue._tasks[0] = task.model_copy(update={"status": TaskStatus.GENERATING})

    assert not h.queue.remove("bg_1")
    h.enqueue(2)
    assert h.queue.remove("bg_2")
    assert [t.id for t in h.queue.tasks] == ["bg_1"]
