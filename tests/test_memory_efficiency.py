import logging
import pytest
from lazy import LazySequence
from models import DrainMetrics
from utils import measure_drain, resolve, setup_logging


class TestMemoryEfficiency:
    """Test that draining stays proportional to buffers, not input size"""

    @pytest.mark.asyncio
    async def test_measure_drain_counts_items(self):
        metrics = await measure_drain(LazySequence.from_collection(range(50)).batch_into(10))

        assert isinstance(metrics, DrainMetrics)
        assert metrics.success is True
        assert metrics.item_count == 5
        assert metrics.error is None
        assert metrics.execution_time_ms >= 0

    @pytest.mark.asyncio
    async def test_paged_drain_does_not_hold_all_pages(self, range_fetcher):
        """Only one page is buffered at a time"""
        total = 50000
        fetcher = range_fetcher(total)

        metrics = await measure_drain(
            LazySequence.from_paged_fetch(100, 0, fetcher).map_each(lambda x: x * 2)
        )

        assert metrics.item_count == total
        assert metrics.peak_memory_mb < 5, f"Used too much memory: {metrics.peak_memory_mb:.2f}MB"

    @pytest.mark.asyncio
    async def test_measure_drain_reraises(self):
        def explode(x):
            raise ValueError("broken")

        with pytest.raises(ValueError):
            await measure_drain(LazySequence.from_collection([1]).map_each(explode))

    @pytest.mark.asyncio
    async def test_measure_drain_reports_failure(self):
        def explode(x):
            if x == 2:
                raise ValueError("broken")
            return x

        metrics = await measure_drain(
            LazySequence.from_collection([0, 1, 2, 3]).map_each(explode),
            raise_on_error=False
        )

        assert metrics.success is False
        assert metrics.item_count == 2
        assert metrics.error == "broken"


class TestUtils:
    """Test small helpers"""

    @pytest.mark.asyncio
    async def test_resolve_plain_value(self):
        assert await resolve(5) == 5

    @pytest.mark.asyncio
    async def test_resolve_awaitable(self):
        async def value():
            return "done"

        assert await resolve(value()) == "done"

    def test_setup_logging_returns_logger(self):
        logger = setup_logging(logging.DEBUG)
        assert logger.name == "lazy"
