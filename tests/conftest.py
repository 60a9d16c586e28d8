"""
Pytest configuration for lazy sequence tests.

Puts the project root on the Python path so tests can import lazy, models,
utils and fetchers, and provides recording page fetchers.
"""

import sys
from pathlib import Path

# Add the parent directory to the Python path
parent_dir = Path(__file__).parent.parent
if str(parent_dir) not in sys.path:
    sys.path.insert(0, str(parent_dir))

import asyncio
import pytest
from typing import Any, Dict, List, Tuple


class RecordingFetcher:
    """Serves pages from a dict and records every (batch_size, page) call"""

    def __init__(self, pages: Dict[int, List[Any]], is_async: bool = True):
        self.pages = pages
        self.is_async = is_async
        self.calls: List[Tuple[int, int]] = []

    def _lookup(self, batch_size: int, page: int) -> List[Any]:
        self.calls.append((batch_size, page))
        return list(self.pages.get(page, []))

    def __call__(self, batch_size: int, page: int):
        if self.is_async:
            return self._fetch_async(batch_size, page)
        return self._lookup(batch_size, page)

    async def _fetch_async(self, batch_size: int, page: int) -> List[Any]:
        await asyncio.sleep(0)
        return self._lookup(batch_size, page)

    @property
    def pages_requested(self) -> List[int]:
        return [page for _, page in self.calls]


@pytest.fixture
def recording_fetcher():
    """Factory for fetchers serving fixed pages"""
    def _make(pages: Dict[int, List[Any]], is_async: bool = True) -> RecordingFetcher:
        return RecordingFetcher(pages, is_async=is_async)
    return _make


@pytest.fixture
def range_fetcher():
    """Factory for a fetcher paging over range(total)"""
    def _make(total: int) -> RecordingFetcher:
        fetcher = RecordingFetcher({})

        def _lookup(batch_size: int, page: int) -> List[Any]:
            fetcher.calls.append((batch_size, page))
            start = page * batch_size
            return list(range(start, min(start + batch_size, total)))

        fetcher._lookup = _lookup
        return fetcher
    return _make
