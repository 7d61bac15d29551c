"""
Canvas Models for Carousel Labs
================================

Models for carousel projects, slide canvases, canvas formats and navigation.
"""

from enum import Enum
from typing import List, Optional, Dict
from pydantic import BaseModel, Field
from datetime import datetime


# Background references starting with this prefix are placeholders, not images
PLACEHOLDER_PREFIX = "placeholder:"

# Rotated across placeholder canvases so the skeleton is visually distinct
PLACEHOLDER_BACKGROUNDS = [
    "placeholder:gradient-violet-pink",
    "placeholder:gradient-blue-cyan",
    "placeholder:gradient-orange-red",
    "placeholder:gradient-green-teal",
    "placeholder:gradient-indigo-purple",
]

EMPTY_BACKGROUND = "placeholder:blank"

PLACEHOLDER_BODY = "AI is generating your content..."


def is_placeholder_background(reference: Optional[str]) -> bool:
    """True when a background reference is a placeholder token (or unset)."""
    return not reference or reference.startswith(PLACEHOLDER_PREFIX)


class BackgroundStrategy(str, Enum):
    """How slide backgrounds relate to each other."""
    UNIQUE = "unique"        # One image prompt per slide
    THEMATIC = "thematic"    # Shared visual theme across slides


class ThumbnailSize(str, Enum):
    """Size of canvas thumbnails in the navigation strip."""
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class CanvasFormat(BaseModel):
    """Output format of a canvas."""
    id: str
    name: str
    width: int = Field(ge=1)
    height: int = Field(ge=1)
    platform: str
    category: str  # story | post | reel | thumbnail | cover

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height


CANVAS_FORMATS: Dict[str, CanvasFormat] = {
    f.id: f for f in [
        CanvasFormat(id="instagram-post", name="Instagram Post (1:1)",
                     width=1080, height=1080, platform="instagram", category="post"),
        CanvasFormat(id="instagram-portrait", name="Instagram Portrait (4:5)",
                     width=1080, height=1350, platform="instagram", category="post"),
        CanvasFormat(id="instagram-story", name="Instagram Story (9:16)",
                     width=1080, height=1920, platform="instagram", category="story"),
        CanvasFormat(id="instagram-reel", name="Instagram Reel (9:16)",
                     width=1080, height=1920, platform="instagram", category="reel"),
        CanvasFormat(id="tiktok", name="TikTok (9:16)",
                     width=1080, height=1920, platform="tiktok", category="post"),
        CanvasFormat(id="facebook-post", name="Facebook Post (16:9)",
                     width=1920, height=1080, platform="facebook", category="post"),
        CanvasFormat(id="linkedin-post", name="LinkedIn Post (16:9)",
                     width=1920, height=1080, platform="linkedin", category="post"),
        CanvasFormat(id="twitter-post", name="Twitter Post (16:9)",
                     width=1600, height=900, platform="twitter", category="post"),
        CanvasFormat(id="youtube-thumbnail", name="YouTube Thumbnail (16:9)",
                     width=1280, height=720, platform="youtube", category="thumbnail"),
    ]
}

DEFAULT_CANVAS_FORMAT = "instagram-post"


def get_canvas_format(format_id: Optional[str]) -> CanvasFormat:
    """Look up a canvas format, falling back to the square Instagram post."""
    return CANVAS_FORMATS.get(format_id or "", CANVAS_FORMATS[DEFAULT_CANVAS_FORMAT])


class SlideContent(BaseModel):
    """Text content of a single slide."""
    title: str = ""
    body: str = ""
    cta: Optional[str] = None
    background_prompt: str = ""


class Canvas(BaseModel):
    """One slide of the carousel."""
    id: str
    slide_number: int = Field(ge=1)
    is_active: bool = False
    content: SlideContent = Field(default_factory=SlideContent)
    background_image: str = EMPTY_BACKGROUND
    thumbnail_url: Optional[str] = None
    format_id: str = DEFAULT_CANVAS_FORMAT
    background_color: str = "#000000"
    is_loading: bool = False         # True while content is still placeholder
    is_regenerating: bool = False
    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def has_placeholder_background(self) -> bool:
        return is_placeholder_background(self.background_image)


class CarouselMetadata(BaseModel):
    """Aggregate metadata of a carousel project."""
    slide_count: int = 0
    background_strategy: BackgroundStrategy = BackgroundStrategy.UNIQUE
    source_prompt: Optional[str] = None
    content_type: Optional[str] = None


class CarouselProject(BaseModel):
    """An ordered collection of canvases plus generation metadata."""
    id: str
    name: str
    user_id: str = "current-user"
    canvases: List[Canvas] = Field(default_factory=list)
    metadata: CarouselMetadata = Field(default_factory=CarouselMetadata)
    tags: List[str] = Field(default_factory=list)
    template_id: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: Optional[datetime] = None

    @property
    def canvas_ids(self) -> List[str]:
        return [c.id for c in self.canvases]


class NavigationState(BaseModel):
    """Navigation strip state, projected from the project plus UI preferences."""
    active_canvas_id: str = ""
    canvas_order: List[str] = Field(default_factory=list)
    is_navigation_visible: bool = True
    thumbnail_size: ThumbnailSize = ThumbnailSize.MEDIUM
    show_add_button: bool = True
    max_canvas_count: int = Field(default=10, ge=1)
