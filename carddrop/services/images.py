"""
Card artwork fetching and composite pick images.

Two process-wide caches, both unbounded and never evicted:
- decoded artwork keyed by exact URL
- encoded PNG composites keyed by the ordered URL sequence

Decoding and encoding run in a worker thread so the event loop keeps
serving other commands. A failure fetching or decoding any one image fails
the whole composite; there are no partial results.
"""

import asyncio
import logging
from collections.abc import Sequence
from io import BytesIO

import httpx
from PIL import Image

from carddrop.config import (
    CARD_IMAGE_HEIGHT,
    CARD_IMAGE_SPACING,
    CARD_IMAGE_WIDTH,
    IMAGE_PRELOAD_BATCH_SIZE,
)
from carddrop.models.failure import UpstreamFailureError

logger = logging.getLogger(__name__)


class ImageFetchError(UpstreamFailureError):
    """Raised when card artwork cannot be downloaded or decoded."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(
            "Failed to load card images.",
            detail=f"{url}: {reason}",
        )


def _decode(data: bytes) -> Image.Image:
    with Image.open(BytesIO(data)) as img:
        return img.convert("RGBA")


class CardImageCompositor:
    """
    Fetches card artwork and renders side-by-side composites.

    `fetch_count` counts network downloads, for observing cache hits.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        card_width: int = CARD_IMAGE_WIDTH,
        card_height: int = CARD_IMAGE_HEIGHT,
        spacing: int = CARD_IMAGE_SPACING,
    ) -> None:
        self._client = client
        self._card_size = (card_width, card_height)
        self._spacing = spacing
        self._images: dict[str, Image.Image] = {}
        self._composites: dict[str, bytes] = {}
        self._pending: dict[str, asyncio.Future[Image.Image]] = {}
        self.fetch_count = 0

    @property
    def cached_images(self) -> int:
        return len(self._images)

    @property
    def cached_composites(self) -> int:
        return len(self._composites)

    async def fetch(self, url: str) -> Image.Image:
        """
        Get decoded artwork for a URL, downloading it on first use.

        Concurrent requests for the same URL share one download.

        Raises:
            ImageFetchError: If the download or decode fails
        """
        cached = self._images.get(url)
        if cached is not None:
            return cached

        pending = self._pending.get(url)
        if pending is None:
            pending = asyncio.ensure_future(self._download(url))
            self._pending[url] = pending
            pending.add_done_callback(lambda _: self._pending.pop(url, None))
        return await pending

    async def _download(self, url: str) -> Image.Image:
        self.fetch_count += 1
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ImageFetchError(url, f"HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise ImageFetchError(url, str(e) or type(e).__name__) from e

        try:
            image = await asyncio.to_thread(_decode, response.content)
        except (OSError, Image.DecompressionBombError) as e:
            raise ImageFetchError(url, "could not decode image") from e

        self._images[url] = image
        return image

    async def compose(self, urls: Sequence[str]) -> bytes:
        """
        Render the images side by side into one transparent PNG.

        Each image is scaled to the card size with fixed spacing between
        cards. Identical URL sequences are served from cache.

        Raises:
            ImageFetchError: If any image fails
        """
        key = "|".join(urls)
        cached = self._composites.get(key)
        if cached is not None:
            return cached

        try:
            images = await asyncio.gather(*(self.fetch(url) for url in urls))
        except ImageFetchError as e:
            logger.error("Error combining images: %s", e.detail)
            raise

        data = await asyncio.to_thread(self._render, images)
        self._composites[key] = data
        return data

    def _render(self, images: Sequence[Image.Image]) -> bytes:
        width, height = self._card_size
        count = len(images)
        canvas_width = width * count + self._spacing * max(0, count - 1)
        canvas = Image.new("RGBA", (canvas_width, height), (0, 0, 0, 0))

        for position, image in enumerate(images):
            scaled = image.resize((width, height))
            canvas.alpha_composite(scaled, dest=(position * (width + self._spacing), 0))

        buffer = BytesIO()
        canvas.save(buffer, format="PNG")
        return buffer.getvalue()

    async def preload(self, urls: Sequence[str], batch_size: int = IMAGE_PRELOAD_BATCH_SIZE) -> int:
        """
        Warm the artwork cache in batches.

        Failures are logged and skipped. Returns the number of cached images.
        """
        unique = list(dict.fromkeys(urls))
        for start in range(0, len(unique), batch_size):
            batch = unique[start : start + batch_size]
            results = await asyncio.gather(
                *(self.fetch(url) for url in batch), return_exceptions=True
            )
            for url, result in zip(batch, results, strict=True):
                if isinstance(result, ImageFetchError):
                    logger.warning("Failed to preload %s: %s", url, result.reason)
                elif isinstance(result, BaseException):
                    raise result
            logger.info("Cached %d/%d images", min(start + batch_size, len(unique)), len(unique))
        return self.cached_images
