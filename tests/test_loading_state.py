"""Tests for the per-canvas loading-state tracker."""
import pytest

from backend.canvas.loading_state import LoadingStateTracker


@pytest.fixture
def canvases():
    return {"canvas_a": "placeholder:gradient-1", "canvas_b": "placeholder:gradient-2"}


@pytest.fixture
def tracker(canvases):
    def apply_background(canvas_id, url):
        canvases[canvas_id] = url

    return LoadingStateTracker(canvas_exists=lambda cid: cid in canvases, apply_background=apply_background)


def test_record_created_lazily_with_defaults(tracker):
    assert tracker.get("canvas_a") is None

    state = tracker.set_text_loaded("canvas_a")

    assert state.is_text_loaded
    assert state.has_placeholder
    assert not state.is_image_loaded
    assert state.image_load_progress == 0


def test_updates_for_unknown_canvas_are_discarded(tracker):
    assert tracker.update("canvas_gone", is_text_loaded=True) is None
    assert tracker.get("canvas_gone") is None


def test_progress_is_clamped(tracker):
    assert tracker.set_image_loading("canvas_a", True, 250).image_load_progress == 100
    assert tracker.set_image_loading("canvas_a", True, -5).image_load_progress == 0


def test_image_loaded_swaps_background_and_resets_flags(tracker, canvases):
    tracker.set_image_error("canvas_a", "boom")

    state = tracker.set_image_loaded("canvas_a", "https://images.test/a.png")

    assert canvases["canvas_a"] == "https://images.test/a.png"
    assert state.is_image_loaded
    assert not state.is_image_loading
    assert not state.has_placeholder
    assert state.image_load_progress == 100
    assert state.error is None


def test_new_image_request_keeps_previous_image_loaded(tracker, canvases):
    tracker.set_image_loaded("canvas_a", "https://images.test/a.png")

    state = tracker.set_image_loading("canvas_a", True, 0)

    assert state.is_image_loading
    assert state.is_image_loaded
    assert canvases["canvas_a"] == "https://images.test/a.png"

    state = tracker.set_image_error("canvas_a", "Image service timeout")
    assert state.is_image_loaded
    assert not state.is_image_loading
    assert canvases["canvas_a"] == "https://images.test/a.png"


def test_image_loaded_for_removed_canvas_does_nothing(tracker, canvases):
    del canvases["canvas_b"]

    assert tracker.set_image_loaded("canvas_b", "https://images.test/b.png") is None
    assert "canvas_b" not in canvases


def test_image_error_keeps_placeholder(tracker, canvases):
    tracker.set_image_loading("canvas_a", True, 50)

    state = tracker.set_image_error("canvas_a", "Image service timeout")

    assert state.error == "Image service timeout"
    assert not state.is_image_loading
    assert state.has_placeholder
    assert canvases["canvas_a"] == "placeholder:gradient-1"


def test_remove_and_clear(tracker):
    tracker.set_text_loaded("canvas_a")
    tracker.set_text_loaded("canvas_b")

    tracker.remove("canvas_a")
    assert set(tracker.snapshot()) == {"canvas_b"}

    tracker.clear()
    assert tracker.snapshot() == {}
