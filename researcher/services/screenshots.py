"""Screenshot capture for the visual mood board."""

from abc import ABC, abstractmethod
from functools import lru_cache

import httpx

from researcher.config import settings
from researcher.core.exceptions import ScreenshotError

VIEWPORT = {"width": 1280, "height": 720}


class ScreenshotService(ABC):
    """Captures a page and returns a locator for the image."""

    @abstractmethod
    async def capture(self, url: str) -> str | None:
        """Capture ``url``; None when the service produced no image.

        Raises:
            ScreenshotError: If the capture request fails
        """

    async def aclose(self) -> None:
        """Release any held connections."""
        return None


class BrowserRenderScreenshotService(ScreenshotService):
    """Calls a hosted browser-rendering screenshot endpoint."""

    def __init__(
        self,
        token: str,
        endpoint: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self._token = token
        self._endpoint = endpoint or settings.screenshot_api_url
        self._client = client or httpx.AsyncClient(timeout=timeout or settings.http_timeout)

    async def capture(self, url: str) -> str | None:
        try:
            response = await self._client.post(
                self._endpoint,
                headers={"Authorization": f"Bearer {self._token}"},
                json={"url": url, "viewport": VIEWPORT, "fullPage": False},
            )
        except httpx.HTTPError as e:
            raise ScreenshotError(url, str(e)) from e

        if response.status_code >= 400:
            raise ScreenshotError(url, f"screenshot API returned {response.status_code}")

        return response.json().get("screenshotUrl") or None

    async def aclose(self) -> None:
        await self._client.aclose()


@lru_cache
def get_screenshot_service() -> ScreenshotService | None:
    """Get the screenshot service, or None when capture is not configured."""
    if not settings.screenshots_enabled:
        return None
    return BrowserRenderScreenshotService(token=settings.browser_render_token or "")
