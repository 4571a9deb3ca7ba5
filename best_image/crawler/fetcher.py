# best_image/crawler/fetcher.py
# Responsibility: Fetches HTML documents and linked stylesheets over HTTP.

from typing import Optional

import httpx

from best_image.config.settings import settings
from best_image.errors import DocumentFetchError, StylesheetFetchError
from best_image.services.logr import LOGR


class DocumentFetcher:
    """
    Component responsible for text retrieval (pages and stylesheets).
    The transport can be injected so tests never touch the network.
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Args:
            transport (httpx.AsyncBaseTransport): Optional transport override.
        """
        self.timeout = settings.FETCH.REQUEST_TIMEOUT
        self.headers = {"User-Agent": settings.FETCH.USER_AGENT}
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            headers=self.headers,
            follow_redirects=True,
            transport=self.transport,
        )

    async def fetch_document(self, url: str) -> str:
        """
        Loads the target page.

        Raises:
            DocumentFetchError: On transport failure or any non-200 status.
        """
        try:
            async with self._client() as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            LOGR.error(f"[Fetcher] Failed to load document: {e} url= [{url}]")
            raise DocumentFetchError(f"Failed to load document: {e}", {"url": url})

        if response.status_code != 200:
            LOGR.error(f"[Fetcher] Failed to load document url= [{url}] Status Code: {response.status_code}")
            raise DocumentFetchError(
                f"Failed to load document: HTTP {response.status_code}",
                {"url": url, "status_code": response.status_code},
            )

        LOGR.debug(f"[Fetcher] Loaded HTML document {url}")
        return response.text

    async def fetch_stylesheet(self, url: str) -> str:
        """
        Loads a linked stylesheet.

        Raises:
            StylesheetFetchError: On transport failure or any non-200 status.
        """
        try:
            async with self._client() as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            raise StylesheetFetchError(f"Error loading CSS file: {url} - {e}", {"url": url})

        if response.status_code != 200:
            raise StylesheetFetchError(
                f"Error loading CSS file: {url} - HTTP {response.status_code}",
                {"url": url, "status_code": response.status_code},
            )
        return response.text
