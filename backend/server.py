"""
Carousel Labs Server
=====================

FastAPI server for AI carousel generation.

Features:
- Prompt-to-carousel generation with placeholder-then-patch slides
- Sequential background image queue against the Image Service
- Canvas management and navigation with JSON-persisted preferences
- Gemini LLM for slide text generation
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

from .config import CarouselSettings
from .canvas.carousel_store import CarouselStore
from .canvas.state_manager import StateManager
from .generation.orchestrator import GenerationOrchestrator
from .models.canvas_models import CANVAS_FORMATS
from .services.carousel_prompt_service import summarize_templates
from .services.image_client import ImageClient, IMAGE_SERVICE_URL
from .services.llm_service import LLMService

from .api import carousel_routes


# Shared service instances
settings: CarouselSettings = None
image_client: ImageClient = None
llm_service: LLMService = None
store: CarouselStore = None
orchestrator: GenerationOrchestrator = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    global settings, image_client, llm_service, store, orchestrator

    logger.info("[CAROUSEL-LABS] Starting up...")

    settings = CarouselSettings.from_env()

    sessions_dir = settings.sessions_dir
    if not sessions_dir.is_absolute():
        sessions_dir = Path(__file__).parent.parent / sessions_dir
    state_manager = StateManager(sessions_dir=sessions_dir)

    image_client = ImageClient(
        timeout=60.0  # 60 second timeout for image generation
    )
    llm_service = LLMService()

    store = CarouselStore(image_client, settings=settings, state_manager=state_manager)
    store.create_empty_project()
    orchestrator = GenerationOrchestrator(store, llm_service)

    # Inject into route modules
    carousel_routes.store = store
    carousel_routes.orchestrator = orchestrator

    logger.info("[CAROUSEL-LABS] Services initialized")

    yield

    # Cleanup
    logger.info("[CAROUSEL-LABS] Shutting down...")
    if image_client:
        await image_client.close()


# Create FastAPI app
app = FastAPI(
    title="Carousel Labs",
    description="AI carousel generation with placeholder-first slides",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins for development
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(carousel_routes.router)


@app.get("/")
async def root():
    return {
        "service": "Carousel Labs",
        "version": "1.0.0",
        "status": "running",
        "endpoints": {
            "generate": "/api/carousel/generate",
            "progress": "/api/carousel/progress",
            "state": "/api/carousel/state",
            "canvases": "/api/carousel/canvases"
        }
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "carousel-labs",
        "image_api": IMAGE_SERVICE_URL
    }


@app.get("/api/info")
async def api_info():
    """Get API information: canvas formats, content types and limits."""
    current = settings or CarouselSettings()
    return {
        "service": "Carousel Labs",
        "version": "1.0.0",
        "canvas_formats": [
            {
                "id": fmt.id,
                "name": fmt.name,
                "width": fmt.width,
                "height": fmt.height,
                "aspect_ratio": fmt.aspect_ratio,
                "platform": fmt.platform
            }
            for fmt in CANVAS_FORMATS.values()
        ],
        "content_types": summarize_templates(),
        "limits": {
            "max_canvas_count": current.max_canvas_count,
            "slide_count_range": [current.min_slide_count, current.max_slide_count]
        }
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "backend.server:app",
        host="0.0.0.0",
        port=8080,
        reload=True
    )
