"""Tests for generation runs driven by the orchestrator."""
import asyncio

import pytest

from backend.generation.errors import TextGenerationError
from backend.generation.orchestrator import validate_slide_count
from backend.models.canvas_models import (
    BackgroundStrategy, ThumbnailSize, PLACEHOLDER_BODY, is_placeholder_background,
)
from backend.models.orchestrator_models import GenerationStep, TaskStatus


@pytest.mark.asyncio
async def test_successful_run_replaces_every_placeholder(orchestrator, store, text_generator):
    await orchestrator.start_generation("5 tips", 5, BackgroundStrategy.UNIQUE)

    project = store.current_project
    assert [c.content.title for c in project.canvases] == [f"Tip {i}" for i in range(1, 6)]
    assert all(not c.has_placeholder_background for c in project.canvases)
    assert all(not c.is_loading for c in project.canvases)

    progress = store.generation_progress
    assert progress.current_step == GenerationStep.COMPLETE
    assert progress.total_progress == 100
    assert not progress.is_generating
    assert progress.error is None
    assert len(text_generator.calls) == 1


@pytest.mark.asyncio
async def test_failed_slide_keeps_placeholder_and_run_completes(orchestrator, store, image_generator):
    image_generator.fail_markers = ["scene-3"]

    await orchestrator.start_generation("5 tips", 5, BackgroundStrategy.UNIQUE)

    canvases = store.current_project.canvases
    assert is_placeholder_background(canvases[2].background_image)
    assert store.get_canvas_loading_state(canvases[2].id).error
    for index in (0, 1, 3, 4):
        state = store.get_canvas_loading_state(canvases[index].id)
        assert state.is_image_loaded
        assert not state.has_placeholder
    assert store.generation_progress.current_step == GenerationStep.COMPLETE
    assert store.generation_progress.total_progress == 100


@pytest.mark.asyncio
async def test_placeholders_installed_before_text_returns(orchestrator, store, text_generator):
    text_generator.gate = asyncio.Event()
    run = asyncio.create_task(orchestrator.start_generation("Morning routine tips", 3))
    await text_generator.started.wait()

    project = store.current_project
    assert [c.content.title for c in project.canvases] == ["Slide 1", "Slide 2", "Slide 3"]
    assert all(c.content.body == PLACEHOLDER_BODY for c in project.canvases)
    assert all(c.is_loading for c in project.canvases)
    assert all(c.has_placeholder_background for c in project.canvases)
    assert project.canvases[0].is_active
    assert store.generation_progress.is_generating
    assert store.generation_progress.current_step == GenerationStep.TEXT
    for canvas in project.canvases:
        assert store.timeline_store.has_timeline(canvas.id)
        assert store.get_canvas_loading_state(canvas.id).image_load_progress == 10

    text_generator.gate.set()
    await run


@pytest.mark.asyncio
async def test_concurrent_start_runs_only_once(orchestrator, text_generator):
    first, second = await asyncio.gather(
        orchestrator.start_generation("5 tips", 5),
        orchestrator.start_generation("5 tips", 5),
    )

    assert first is not None
    assert second is None
    assert len(text_generator.calls) == 1


@pytest.mark.asyncio
async def test_slide_count_mismatch_keeps_placeholders(orchestrator, store, text_generator, image_generator):
    text_generator.returned_count = 4

    await orchestrator.start_generation("5 tips", 5)

    project = store.current_project
    assert [c.content.title for c in project.canvases] == [f"Slide {i}" for i in range(1, 6)]
    assert store.generation_progress.error == "Expected 5 slides, received 4"
    assert not store.generation_progress.is_generating
    assert image_generator.prompts == []


@pytest.mark.asyncio
async def test_text_failure_recorded_as_run_error(orchestrator, store, text_generator):
    text_generator.error = TextGenerationError("LLM service not initialized")

    await orchestrator.start_generation("5 tips", 3)

    assert store.generation_progress.error == "LLM service not initialized"
    assert len(store.current_project.canvases) == 3


@pytest.mark.asyncio
async def test_a_new_run_can_start_after_failure(orchestrator, store, text_generator):
    text_generator.returned_count = 2
    await orchestrator.start_generation("5 tips", 3)

    text_generator.returned_count = None
    await orchestrator.start_generation("5 tips", 3)

    assert store.generation_progress.error is None
    assert store.current_project.canvases[0].content.title == "Tip 1"


@pytest.mark.asyncio
async def test_cancelled_run_results_are_discarded(orchestrator, store, text_generator, image_generator):
    text_generator.gate = asyncio.Event()
    run = asyncio.create_task(orchestrator.start_generation("5 tips", 3))
    await text_generator.started.wait()

    orchestrator.cancel_generation()
    text_generator.gate.set()
    await run

    assert [c.content.title for c in store.current_project.canvases] == ["Slide 1", "Slide 2", "Slide 3"]
    assert store.generation_progress.error == "Generation cancelled by user"
    assert not store.generation_progress.is_generating
    assert image_generator.prompts == []


@pytest.mark.asyncio
async def test_thematic_prompts_are_harmonised(orchestrator, image_generator):
    await orchestrator.start_generation("Brand story", 3, BackgroundStrategy.THEMATIC)

    assert len(image_generator.prompts) == 3
    assert all("cohesive visual style" in p for p in image_generator.prompts)
    assert "slide 2 of 3" in image_generator.prompts[1]


@pytest.mark.asyncio
async def test_completed_images_are_recorded_as_assets(orchestrator, store):
    await orchestrator.start_generation("5 tips", 2)

    project = store.current_project
    items = store.media_store.list_items(project.id)
    assert len(items) == 2
    for canvas in project.canvases:
        assert store.get_canvas_assets(canvas.id) == [canvas.background_image]


@pytest.mark.asyncio
async def test_removing_canvas_mid_drain_leaves_no_loading_state(orchestrator, store, image_generator):
    removed = {}

    def remove_second(prompt):
        if "scene-1" in prompt:
            removed["id"] = store.current_project.canvases[1].id
            store.remove_canvas(removed["id"])

    image_generator.before_call = remove_second

    await orchestrator.start_generation("5 tips", 4)

    project = store.current_project
    assert removed["id"] not in project.canvas_ids
    assert [c.slide_number for c in project.canvases] == [1, 2, 3]
    assert store.get_canvas_loading_state(removed["id"]) is None
    assert store.get_canvas_assets(removed["id"]) == []
    assert all(a.canvas_id != removed["id"] for a in store.media_store.list_items(project.id))
    assert store.generation_progress.current_step == GenerationStep.COMPLETE


@pytest.mark.asyncio
async def test_regenerate_replaces_previous_asset(orchestrator, store, image_generator):
    await orchestrator.start_generation("5 tips", 2)
    canvas = store.current_project.canvases[0]
    old_asset = store.media_store.get_canvas_background(store.current_project.id, canvas.id)

    task = await orchestrator.regenerate_slide(canvas.id, "sunset over mountains")

    assert task.id.startswith("regen_")
    assert task.status == TaskStatus.COMPLETED
    assert task.run_id is None
    assert "sunset over mountains" in image_generator.prompts[-1]

    items = store.media_store.list_items(store.current_project.id)
    assert old_asset.id not in [a.id for a in items]
    updated = store.get_canvas(canvas.id)
    assert updated.background_image == task.image_url
    assert not updated.is_regenerating
    assert updated.content.background_prompt == "sunset over mountains"
    assert store.get_canvas_assets(canvas.id) == [task.image_url]


@pytest.mark.asyncio
async def test_regenerate_unknown_canvas_returns_none(orchestrator):
    assert await orchestrator.regenerate_slide("canvas_missing") is None


@pytest.mark.asyncio
async def test_regenerate_allowed_while_generating(orchestrator, store, text_generator):
    text_generator.gate = asyncio.Event()
    run = asyncio.create_task(orchestrator.start_generation("5 tips", 2))
    await text_generator.started.wait()

    task = await orchestrator.regenerate_slide(store.current_project.canvases[0].id)
    assert task.status == TaskStatus.COMPLETED

    text_generator.gate.set()
    await run
    assert store.generation_progress.current_step == GenerationStep.COMPLETE


@pytest.mark.asyncio
async def test_regenerate_during_image_drain_stays_sequential(orchestrator, store, image_generator):
    image_generator.delay = 0.01
    run = asyncio.create_task(orchestrator.start_generation("5 tips", 5))
    while not store.background_queue.tasks:
        await asyncio.sleep(0)

    task = await orchestrator.regenerate_slide(store.current_project.canvases[0].id)
    await run

    assert image_generator.max_in_flight == 1
    assert task.status == TaskStatus.COMPLETED
    run_tasks = [t for t in store.background_queue.tasks if t.run_id is not None]
    assert len(run_tasks) == 5
    assert all(t.status == TaskStatus.COMPLETED for t in run_tasks)
    assert store.generation_progress.current_step == GenerationStep.COMPLETE


@pytest.mark.asyncio
async def test_cancelled_run_drain_does_not_overlap_new_run(orchestrator, store, image_generator):
    image_generator.delay = 0.01
    first = asyncio.create_task(orchestrator.start_generation("5 tips", 3))
    while not store.background_queue.tasks:
        await asyncio.sleep(0)

    orchestrator.cancel_generation()
    await orchestrator.start_generation("3 facts", 3)
    await first

    assert image_generator.max_in_flight == 1


@pytest.mark.asyncio
async def test_run_above_canvas_limit_is_ignored(orchestrator, store, text_generator):
    store.update_navigation(max_canvas_count=3)
    before = store.current_project

    assert await orchestrator.start_generation("5 tips", 6) is None

    assert store.current_project is before
    assert text_generator.calls == []
    assert not store.generation_progress.is_generating


@pytest.mark.asyncio
async def test_run_at_canvas_limit_fills_it(orchestrator, store):
    store.update_navigation(max_canvas_count=3)

    assert await orchestrator.start_generation("3 tips", 3) is not None

    assert len(store.current_project.canvases) == 3
    assert await orchestrator.start_generation("tips", store.settings.max_canvas_count + 5) is None
    assert len(store.current_project.canvases) == 3


@pytest.mark.asyncio
async def test_generation_leaves_navigation_preferences_alone(orchestrator, store):
    store.set_thumbnail_size(ThumbnailSize.LARGE)
    store.update_navigation(is_navigation_visible=False, show_add_button=False)

    await orchestrator.start_generation("5 tips", 3)

    navigation = store.navigation
    assert navigation.thumbnail_size == ThumbnailSize.LARGE
    assert not navigation.is_navigation_visible
    assert not navigation.show_add_button
    assert navigation.canvas_order == store.current_project.canvas_ids
    assert navigation.active_canvas_id == store.current_project.canvases[0].id


@pytest.mark.asyncio
async def test_generation_adds_project_to_history(orchestrator, store):
    await orchestrator.start_generation("10 productivity tips for remote teams", 2)

    latest = store.recent_projects[0]
    assert latest.id == store.current_project.id
    assert latest.name == "Carousel: 10 productivity tips for remote teams"
    assert latest.metadata.content_type == "tips"


def test_reset_generation_restores_default_progress(orchestrator, store):
    store.update_generation_progress(error="boom", total_progress=40)
    orchestrator.reset_generation()

    assert store.generation_progress.error is None
    assert store.generation_progress.total_progress == 0


def test_validate_slide_count(settings):
    assert validate_slide_count(5, settings) == 5
    with pytest.raises(ValueError):
        validate_slide_count(1, settings)
    with pytest.raises(ValueError):
        validate_slide_count(11, settings)
