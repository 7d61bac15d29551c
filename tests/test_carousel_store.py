"""Tests for the carousel store, its persistence and settings."""
from backend.config import CarouselSettings
from backend.canvas.carousel_store import CarouselStore
from backend.canvas.state_manager import StateManager
from backend.models.canvas_models import SlideContent, ThumbnailSize
from backend.models.orchestrator_models import BackgroundTask

from fakes import FakeImageGenerator


def test_structural_edits_reproject_navigation(store):
    new_id = store.add_canvas()

    assert store.navigation.canvas_order == store.current_project.canvas_ids
    assert store.navigation.active_canvas_id == new_id
    assert store.timeline_store.has_timeline(new_id)


def test_add_canvas_at_ceiling_returns_none(image_generator):
    store = CarouselStore(image_generator, settings=CarouselSettings(max_canvas_count=2))
    store.create_empty_project()

    assert store.add_canvas() is not None
    assert store.add_canvas() is None
    assert len(store.current_project.canvases) == 2


def test_remove_canvas_cleans_up_ports(store):
    keep = store.current_project.canvases[0].id
    doomed = store.add_canvas()
    store.loading_states.set_text_loaded(doomed)
    store.media_store.add_generated_image(store.current_project.id, doomed, 2, "https://cdn.test/x.png", "x")
    store.add_media_asset(doomed, "https://cdn.test/x.png")

    assert store.remove_canvas(doomed)

    assert store.current_project.canvas_ids == [keep]
    assert not store.timeline_store.has_timeline(doomed)
    assert store.get_canvas_loading_state(doomed) is None
    assert store.get_canvas_assets(doomed) == []
    assert store.media_store.list_items(store.current_project.id) == []


def test_remove_only_canvas_is_rejected(store):
    assert not store.remove_canvas(store.current_project.canvases[0].id)


def test_navigate_wraps(store):
    first = store.current_project.canvases[0].id
    second = store.add_canvas()

    assert store.navigate(1) == first
    assert store.navigate(-1) == second


def test_add_from_template_inserts_content(store):
    canvas_id = store.add_canvas_from_template(SlideContent(title="Cover"), position=0)

    assert store.current_project.canvases[0].id == canvas_id
    assert store.get_canvas_loading_state(canvas_id).has_placeholder


def test_update_project_keeps_canvases(store):
    ids = store.current_project.canvas_ids
    store.update_project(name="Renamed", canvases=[], tags=["launch"])

    assert store.current_project.name == "Renamed"
    assert store.current_project.tags == ["launch"]
    assert store.current_project.canvas_ids == ids


def test_stale_tasks_follow_run_token(store):
    task = BackgroundTask(id="bg_1", canvas_id="c", slide_number=1, prompt="p", run_id=store.next_run_id())
    independent = task.model_copy(update={"run_id": None})

    assert not store._is_stale_task(task)
    store.next_run_id()
    assert store._is_stale_task(task)
    assert not store._is_stale_task(independent)


def test_history_is_bounded(image_generator):
    store = CarouselStore(image_generator, settings=CarouselSettings(history_limit=2))
    for name in ("one", "two", "three"):
        store.create_empty_project(name)

    assert [p.name for p in store.recent_projects] == ["three", "two"]

    store.remove_from_history(store.recent_projects[0].id)
    assert [p.name for p in store.recent_projects] == ["two"]
    store.clear_history()
    assert store.recent_projects == []


def test_reset_keeps_preferences(store):
    store.set_thumbnail_size(ThumbnailSize.SMALL)
    run_id = store.current_run_id

    store.reset()

    assert store.current_project is None
    assert store.navigation.canvas_order == []
    assert store.navigation.thumbnail_size == ThumbnailSize.SMALL
    assert store.current_run_id == run_id + 1


def test_preferences_persist_across_stores(tmp_path):
    manager = StateManager(tmp_path)
    first = CarouselStore(FakeImageGenerator(), state_manager=manager)
    first.set_thumbnail_size(ThumbnailSize.LARGE)
    first.toggle_navigation_visibility()

    second = CarouselStore(FakeImageGenerator(), state_manager=StateManager(tmp_path))

    assert second.navigation.thumbnail_size == ThumbnailSize.LARGE
    assert not second.navigation.is_navigation_visible


def test_state_manager_round_trips_projects(tmp_path, store):
    manager = StateManager(tmp_path)
    manager.save_project(store.current_project)

    loaded = StateManager(tmp_path).get_project(store.current_project.id)

    assert loaded == store.current_project
    assert manager.list_projects() == [store.current_project.id]
    assert manager.delete_project(store.current_project.id)
    assert manager.get_project(store.current_project.id) is None


def test_state_manager_ignores_corrupt_preferences(tmp_path):
    (tmp_path / "preferences.json").write_text("{not json")
    assert StateManager(tmp_path).load_preferences() == {}


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("CAROUSEL_MAX_CANVAS_COUNT", "6")
    monkeypatch.setenv("CAROUSEL_HISTORY_LIMIT", "3")

    settings = CarouselSettings.from_env()

    assert settings.max_canvas_count == 6
    assert settings.history_limit == 3
    assert settings.default_canvas_format == "instagram-post"
