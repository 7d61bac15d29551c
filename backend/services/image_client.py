"""
Image Client for Carousel Labs
===============================

HTTP client for calling the Image Service generation endpoint.

Used as the image collaborator of the background task queue: one call per
task, no automatic retry.
"""

import os
import httpx
from typing import Optional
from pydantic import BaseModel
import logging

from ..models.canvas_models import get_canvas_format

logger = logging.getLogger(__name__)

IMAGE_SERVICE_URL = os.getenv(
    "IMAGE_API_URL",
    "https://web-production-1b5df.up.railway.app"
)

VALID_STYLES = ["realistic", "illustration", "corporate", "abstract", "minimalist"]
VALID_QUALITIES = ["draft", "standard", "high", "ultra"]


class ImageResponse(BaseModel):
    """Response from image generation."""
    success: bool
    image_url: Optional[str] = None
    generation_id: Optional[str] = None
    model: Optional[str] = None
    cost: Optional[float] = None
    width: Optional[int] = None
    height: Optional[int] = None
    generation_time_ms: Optional[int] = None
    error: Optional[str] = None


class ImageClient:
    """
    HTTP client for Image Service generation.

    Usage:
        client = ImageClient()
        response = await client.generate(
            prompt="Sunrise over a calm lake, soft pastel palette",
            format_hint="instagram-post"
        )
        if response.success:
            image_url = response.image_url
    """

    def __init__(
        self,
        base_url: str = None,
        timeout: float = 60.0,
        style: str = "realistic",
        quality: str = "standard",
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize image client.

        Args:
            base_url: Image service URL (defaults to IMAGE_SERVICE_URL env var)
            timeout: Request timeout in seconds (default 60s for image generation)
            style: One of realistic, illustration, corporate, abstract, minimalist
            quality: One of draft, standard, high, ultra
            transport: Optional httpx transport (e.g. a mock transport)
        """
        self.base_url = base_url or IMAGE_SERVICE_URL
        self.timeout = timeout
        self.transport = transport
        self._client: Optional[httpx.AsyncClient] = None

        if style not in VALID_STYLES:
            logger.warning(f"[ImageClient] Invalid style '{style}', defaulting to 'realistic'")
            style = "realistic"
        if quality not in VALID_QUALITIES:
            logger.warning(f"[ImageClient] Invalid quality '{quality}', defaulting to 'standard'")
            quality = "standard"
        self.style = style
        self.quality = quality

        logger.info(f"[ImageClient] Initialized with base URL: {self.base_url}")

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self.transport,
                headers={"Content-Type": "application/json"}
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def generate(self, prompt: str, format_hint: str = "instagram-post") -> ImageResponse:
        """
        Generate a background image.

        Args:
            prompt: Text description to generate image from
            format_hint: Canvas format id; selects the image dimensions

        Returns:
            ImageResponse with success status and image URL
        """
        canvas_format = get_canvas_format(format_hint)
        url = f"{self.base_url}/api/v1/images/generate"

        payload = {
            "prompt": prompt,
            "width": canvas_format.width,
            "height": canvas_format.height,
            "canvas_format": canvas_format.id,
            "config": {
                "style": self.style,
                "quality": self.quality
            }
        }

        logger.info(
            f"[ImageClient] Generating image: {prompt[:50]}... "
            f"({canvas_format.width}x{canvas_format.height}, style={self.style})"
        )

        try:
            client = await self._get_client()
            response = await client.post(url, json=payload)

            if response.status_code != 200:
                error_msg = f"Image service error: HTTP {response.status_code}"
                try:
                    error_data = response.json()
                    if isinstance(error_data.get("detail"), str):
                        error_msg = error_data["detail"]
                    elif isinstance(error_data.get("error"), str):
                        error_msg = error_data["error"]
                except ValueError:
                    pass

                logger.error(f"[ImageClient] {error_msg}")
                return ImageResponse(success=False, error=error_msg)

            data = response.json()
            # Some deployments wrap the result in {"success": ..., "data": {...}}
            result = data.get("data") if isinstance(data.get("data"), dict) else data

            if not data.get("success", True):
                error_msg = data.get("error", "Image generation failed")
                logger.error(f"[ImageClient] {error_msg}")
                return ImageResponse(success=False, error=error_msg)

            image_url = result.get("image_url") or result.get("imageUrl")
            if not image_url:
                logger.error("[ImageClient] Response did not include an image URL")
                return ImageResponse(success=False, error="Image service returned no image URL")

            metadata = result.get("aiMetadata") or {}
            cost = result.get("cost", metadata.get("cost"))

            logger.info(f"[ImageClient] Successfully generated image: {result.get('id')}")

            return ImageResponse(
                success=True,
                image_url=image_url,
                generation_id=result.get("id") or result.get("element_id"),
                model=result.get("model"),
                cost=cost,
                width=canvas_format.width,
                height=canvas_format.height,
                generation_time_ms=result.get("generation_time_ms")
            )

        except httpx.TimeoutException:
            logger.error("[ImageClient] Timeout calling Image Service")
            return ImageResponse(success=False, error="Image service timeout - please try again")
        except httpx.RequestError as e:
            logger.error(f"[ImageClient] Network error: {e}")
            return ImageResponse(success=False, error=f"Network error: {str(e)}")
        except ValueError as e:
            logger.error(f"[ImageClient] Invalid response body: {e}")
            return ImageResponse(success=False, error=f"Invalid response from image service: {str(e)}")

    async def health_check(self) -> bool:
        """
        Check if Image Service is available.

        Returns:
            True if service is healthy, False otherwise
        """
        url = f"{self.base_url}/api/v1/images/health"

        try:
            client = await self._get_client()
            response = await client.get(url, timeout=5.0)
            return response.status_code == 200
        except httpx.HTTPError:
            return False
