"""
LLM Service for Carousel Labs
==============================

Gemini text integration for carousel slide generation.

The model is asked for strict JSON (one object per slide); the payload is
parsed into GeneratedSlide records and checked against the requested count.
"""

import json
import logging
import os
import re
from typing import Optional, Dict, Any, List
from pydantic import BaseModel

from ..models.canvas_models import BackgroundStrategy
from ..models.orchestrator_models import GeneratedSlide, TextGenerationResult
from ..generation.errors import TextGenerationError, SlideCountMismatchError

logger = logging.getLogger(__name__)

# Try to import Vertex AI
try:
    import vertexai
    from vertexai.generative_models import GenerativeModel, GenerationConfig
    VERTEXAI_AVAILABLE = True
except ImportError:
    VERTEXAI_AVAILABLE = False
    logger.warning("vertexai not available, carousel text generation disabled")

CAROUSEL_SYSTEM_INSTRUCTION = (
    "You write Instagram carousel copy. Respond with valid JSON only, "
    "using the exact schema given in the prompt and no surrounding prose."
)


class LLMConfig(BaseModel):
    """Vertex AI settings for slide text generation."""
    project_id: str = os.getenv("GCP_PROJECT_ID", "deckster-xyz")
    location: str = os.getenv("GCP_LOCATION", "us-central1")
    text_model: str = os.getenv("CAROUSEL_TEXT_MODEL", "gemini-2.0-flash-001")
    temperature: float = 0.8
    max_output_tokens: int = 4096


class LLMResponse(BaseModel):
    """Raw text returned by Gemini."""
    success: bool
    content: str = ""
    error: Optional[str] = None
    usage: Optional[Dict[str, Any]] = None
    finish_reason: Optional[str] = None


_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def _first(item: Dict[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = item.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def parse_carousel_slides(content: str) -> List[GeneratedSlide]:
    """
    Parse the model's JSON payload into slides.

    Accepts an optional markdown code fence and either camelCase or
    snake_case keys. Raises TextGenerationError if the payload is not a JSON
    object with a "slides" list.
    """
    text = _FENCE_PATTERN.sub("", (content or "").strip())
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise TextGenerationError(f"Unparsable text response: {e.msg}") from e

    slides = data.get("slides") if isinstance(data, dict) else None
    if not isinstance(slides, list):
        raise TextGenerationError("Invalid text response: slides missing")

    parsed = []
    for index, item in enumerate(slides, 1):
        if not isinstance(item, dict):
            raise TextGenerationError(f"Invalid text response: slide {index} is not an object")
        parsed.append(GeneratedSlide(
            title=_first(item, "title") or f"Slide {index}",
            body=_first(item, "body", "content") or "",
            cta=_first(item, "cta"),
            background_prompt=_first(item, "backgroundPrompt", "background_prompt") or "",
        ))
    return parsed


class LLMService:
    """
    Service for Gemini text operations.

    Used as the text collaborator of the generation orchestrator:
    `generate(structured_prompt, slide_count, strategy)`.
    """

    def __init__(self, config: Optional[LLMConfig] = None):
        self.config = config or LLMConfig()
        self._ready = False
        self._text_model: Optional["GenerativeModel"] = None

    def _ensure_model(self) -> bool:
        """Lazily initialise Vertex AI and the slide-writing model."""
        if self._ready:
            return True

        if not VERTEXAI_AVAILABLE:
            logger.error("[LLM-SERVICE] vertexai not installed")
            return False

        try:
            vertexai.init(project=self.config.project_id, location=self.config.location)
            self._text_model = GenerativeModel(
                self.config.text_model,
                system_instruction=CAROUSEL_SYSTEM_INSTRUCTION,
            )
        except Exception as e:
            logger.error(f"[LLM-SERVICE] Vertex AI setup failed: {e}")
            return False

        self._ready = True
        logger.info(f"[LLM-SERVICE] Using {self.config.text_model} in {self.config.location}")
        return True

    async def generate_text(self, prompt: str, temperature: Optional[float] = None) -> LLMResponse:
        """
        Ask Gemini for a JSON response to `prompt`.

        Never raises: service errors come back as a failed LLMResponse.
        """
        if not self._ensure_model():
            return LLMResponse(success=False, error="LLM service not initialized")

        gen_config = GenerationConfig(
            temperature=self.config.temperature if temperature is None else temperature,
            max_output_tokens=self.config.max_output_tokens,
            response_mime_type="application/json",
        )

        try:
            response = await self._text_model.generate_content_async(prompt, generation_config=gen_config)
        except Exception as e:
            logger.error(f"[LLM-SERVICE] Slide text request failed: {e}")
            return LLMResponse(success=False, error=str(e))

        finish_reason = None
        if response.candidates:
            finish_reason = response.candidates[0].finish_reason.name
        try:
            content = response.text or ""
        except ValueError:
            # Raised when the candidate was blocked and carries no text
            return LLMResponse(
                success=False,
                error=f"Gemini returned no text (finish reason: {finish_reason})",
                finish_reason=finish_reason,
            )

        usage = None
        if response.usage_metadata:
            usage = {
                "prompt_tokens": response.usage_metadata.prompt_token_count,
                "output_tokens": response.usage_metadata.candidates_token_count,
            }

        logger.info(f"[LLM-SERVICE] Received {len(content)} chars (finish={finish_reason}, usage={usage})")
        return LLMResponse(success=True, content=content, usage=usage, finish_reason=finish_reason)

    async def generate(
        self,
        structured_prompt: str,
        slide_count: int,
        strategy: BackgroundStrategy
    ) -> TextGenerationResult:
        """
        Generate carousel slides.

        Args:
            structured_prompt: Prompt built by the carousel prompt service
            slide_count: Number of slides requested
            strategy: Background strategy (unique or thematic)

        Returns:
            TextGenerationResult with exactly slide_count slides

        Raises:
            TextGenerationError: service failure or malformed payload
            SlideCountMismatchError: wrong number of slides returned
        """
        logger.info(f"[LLM-SERVICE] Generating {slide_count} slides (strategy={BackgroundStrategy(strategy).value})")

        response = await self.generate_text(structured_prompt)
        if not response.success:
            raise TextGenerationError(response.error or "Text generation failed")

        slides = parse_carousel_slides(response.content)
        if len(slides) != slide_count:
            raise SlideCountMismatchError(slide_count, len(slides))

        return TextGenerationResult(slides=slides, model=self.config.text_model)
