"""
Page fetchers for HTTP JSON APIs.

JSONPageFetcher is a ready-made fetch_page callable for
LazySequence.from_paged_fetch: each call requests one page and returns its
items, leaving pagination and termination to the sequence.
"""

import logging
from typing import Any, Dict, List, Optional

import aiohttp

from models import JSONPageFetcherConfig

logger = logging.getLogger(__name__)


class PageFetchError(RuntimeError):
    """A page request failed or returned an unusable body"""

    def __init__(self, message: str, status: Optional[int] = None, page: Optional[int] = None):
        super().__init__(message)
        self.status = status
        self.page = page


class JSONPageFetcher:
    """
    Fetches pages from an endpoint taking page and size query parameters.

    A session passed in is borrowed and never closed here. Without one, the
    fetcher opens its own on first use and closes it once a short (last)
    page arrives. A sequence abandoned before its last page leaves the
    session open; use the fetcher as an async context manager or call
    close() in that case.
    """

    def __init__(self, config: JSONPageFetcherConfig, session: Optional[aiohttp.ClientSession] = None):
        self.config = config
        self.session = session
        self._owns_session = session is None
        self.requests_made = 0

    async def connect(self) -> None:
        """Open an HTTP session if none was provided"""
        if self.session is None:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.timeout_seconds)
            )
            self._owns_session = True
            logger.info(f"HTTP session created for {self.config.url}")

    async def close(self) -> None:
        """Close the session if this fetcher opened it"""
        if self.session is not None and self._owns_session:
            await self.session.close()
            self.session = None
            logger.info(f"HTTP session closed for {self.config.url}")

    async def __aenter__(self) -> "JSONPageFetcher":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def build_params(self, batch_size: int, page: int) -> Dict[str, Any]:
        params = dict(self.config.extra_params)
        params[self.config.size_param] = batch_size
        params[self.config.page_param] = page
        return params

    async def __call__(self, batch_size: int, page: int) -> List[Any]:
        if self.session is None:
            await self.connect()

        params = self.build_params(batch_size, page)
        self.requests_made += 1
        logger.debug(f"GET {self.config.url} params={params}")

        async with self.session.get(self.config.url, params=params) as response:
            if response.status >= 400:
                raise PageFetchError(
                    f"Page {page} request to {self.config.url} failed with status {response.status}",
                    status=response.status,
                    page=page
                )
            try:
                body = await response.json()
            except aiohttp.ContentTypeError as e:
                raise PageFetchError(
                    f"Page {page} response from {self.config.url} is not JSON",
                    status=response.status,
                    page=page
                ) from e

        items = self.extract_items(body, page)
        if len(items) < batch_size and self._owns_session:
            # Last page: nothing more will be requested
            await self.close()
        return items

    def extract_items(self, body: Any, page: int) -> List[Any]:
        """Pull the item list out of a decoded response body"""
        items_key = self.config.items_key
        if items_key is not None:
            if not isinstance(body, dict) or items_key not in body:
                raise PageFetchError(f"Page {page} response has no '{items_key}' field", page=page)
            body = body[items_key]
        if not isinstance(body, list):
            raise PageFetchError(
                f"Page {page} response items must be a list, got {type(body).__name__}",
                page=page
            )
        return body
