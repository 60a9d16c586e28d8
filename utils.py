"""
Utility functions for lazy sequences.

Helpers for awaiting optional coroutines, configuring logging and measuring
how much time and memory a full drain of a sequence costs.
"""

import gc
import inspect
import logging
import sys
import time
import tracemalloc
from typing import Any

from models import DrainMetrics

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(funcName)s:%(lineno)d] - %(message)s'


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Setup structured logging for sequence pipelines"""
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)]
    )
    return logging.getLogger('lazy')


async def resolve(value: Any) -> Any:
    """Await value if it is awaitable, otherwise return it unchanged"""
    if inspect.isawaitable(value):
        return await value
    return value


async def measure_drain(sequence, raise_on_error: bool = True) -> DrainMetrics:
    """
    Drain a sequence to exhaustion while tracking wall time and peak memory.

    The items themselves are not kept, so the reported peak reflects the
    pipeline's own buffers rather than the size of the output. A failure is
    logged and re-raised, or reported in the returned metrics when
    raise_on_error is False.
    """
    tracemalloc.start()
    gc.collect()
    start_time = time.perf_counter()
    item_count = 0

    try:
        async for _ in sequence:
            item_count += 1
    except Exception as e:
        execution_time_ms = (time.perf_counter() - start_time) * 1000
        _, peak = tracemalloc.get_traced_memory()
        metrics = DrainMetrics(
            item_count=item_count,
            execution_time_ms=execution_time_ms,
            peak_memory_mb=peak / 1024 / 1024,
            success=False,
            error=str(e)
        )
        logger.error(f"Drain failed after {item_count} items: {e}")
        if raise_on_error:
            raise
        return metrics
    else:
        execution_time_ms = (time.perf_counter() - start_time) * 1000
        _, peak = tracemalloc.get_traced_memory()
        metrics = DrainMetrics(
            item_count=item_count,
            execution_time_ms=execution_time_ms,
            peak_memory_mb=peak / 1024 / 1024,
            success=True
        )
        logger.info(
            f"Drained {item_count} items in {metrics.execution_time_ms:.2f}ms "
            f"(peak {metrics.peak_memory_mb:.2f}MB)"
        )
        return metrics
    finally:
        tracemalloc.stop()
