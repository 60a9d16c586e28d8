import asyncio
import logging
from time import perf_counter

from lazy import LazySequence
from utils import setup_logging, measure_drain

PAGE_SIZE = 4
TOTAL_ITEMS = 10


async def slow_fetch(batch_size, page):
    # Simulate a remote call so laziness is visible
    print(f"  fetching page {page} ...")
    await asyncio.sleep(0.2)
    start = page * batch_size
    return list(range(start, min(start + batch_size, TOTAL_ITEMS)))


async def main():
    setup_logging(logging.INFO)

    print("\n--- Demo: laziness (no fetch until pulled) ---")
    pipeline = (
        LazySequence.from_paged_fetch(PAGE_SIZE, 0, slow_fetch)
        .map_each(lambda v: v * v)
        .filter_each(lambda v: v % 2 == 0)
    )
    print("Constructed pipeline. No output yet (nothing fetched).")

    print("\nPulling three items (should fetch only what's needed):")
    t0 = perf_counter()
    first_three = [(await pipeline.pull()).value for _ in range(3)]
    print(f"First three: {first_three}. Time: {perf_counter() - t0:.2f}s")

    print("\n--- Demo: batching over pages ---")
    batched = LazySequence.from_paged_fetch(PAGE_SIZE, 0, slow_fetch).batch_into(3)
    async for batch in batched:
        print("  batch:", batch)

    print("\n--- Demo: concatenation and tap ---")
    seen = []
    combined = LazySequence.concatenate(
        LazySequence.from_collection(["a", "b"]),
        LazySequence.from_collection(["c"])
    ).tap_each(seen.append)
    print(f"Result: {await combined.to_list()} (tapped: {seen})")

    print("\n--- Demo: drain metrics ---")
    metrics = await measure_drain(LazySequence.from_paged_fetch(PAGE_SIZE, 0, slow_fetch))
    print(f"Drained {metrics.item_count} items in {metrics.execution_time_ms:.0f}ms")


if __name__ == "__main__":
    asyncio.run(main())
