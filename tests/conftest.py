"""Global test configuration and fixtures."""
import pytest

from backend.config import CarouselSettings
from backend.canvas.carousel_store import CarouselStore
from backend.generation.orchestrator import GenerationOrchestrator
from fakes import FakeImageGenerator, FakeTextGenerator


@pytest.fixture
def settings(tmp_path):
    return CarouselSettings(sessions_dir=tmp_path / "sessions")


@pytest.fixture
def image_generator():
    return FakeImageGenerator()


@pytest.fixture
def text_generator():
    return FakeTextGenerator()


@pytest.fixture
def store(image_generator, settings):
    carousel = CarouselStore(image_generator, settings=settings)
    carousel.create_empty_project("Test carousel")
    return carousel


@pytest.fixture
def orchestrator(store, text_generator):
    return GenerationOrchestrator(store, text_generator)
