"""
Lazy asynchronous sequences.

A LazySequence wraps a provider: a zero-argument callable that builds the
sequence's iteration state. Nothing runs until the first pull. Each pull
travels up the chain of stages and brings back at most one item (or one
batch), so a paginated source is only fetched as far as the consumer reads.
"""

import logging
from collections import abc
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Iterable, List, Optional, Tuple, TypeVar

from models import SequenceState, PagedFetchOptions, BatchOptions
from utils import resolve

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InvalidPageError(TypeError):
    """A page fetcher returned something that is not an ordered sequence"""


@dataclass(frozen=True)
class PullResult(Generic[T]):
    """Outcome of one pull: a value, or the done marker"""
    value: Optional[T] = None
    done: bool = False


DONE = PullResult(done=True)


@dataclass
class PartialDrain(Generic[T]):
    """Items collected before a sequence stopped, and the failure if any"""
    items: List[T] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def complete(self) -> bool:
        return self.error is None


# ---------- Stages ----------

class CollectionStage:
    """Yields items of an immutable snapshot front to back"""

    def __init__(self, items: Tuple[Any, ...]):
        self._items = items
        self._index = 0

    async def pull(self) -> PullResult:
        if self._index >= len(self._items):
            return DONE
        item = self._items[self._index]
        self._index += 1
        return PullResult(item)


class IteratorStage:
    """Adapts a native sync or async iterator"""

    def __init__(self, iterator):
        self._iterator = iterator
        self._is_async = hasattr(iterator, "__anext__")

    async def pull(self) -> PullResult:
        if self._is_async:
            try:
                value = await self._iterator.__anext__()
            except StopAsyncIteration:
                return DONE
        else:
            try:
                value = next(self._iterator)
            except StopIteration:
                return DONE
        return PullResult(value)


class PagedFetchStage:
    """
    Drives a page fetcher one page at a time.

    The current page is kept as a tuple with an index cursor. A page shorter
    than the batch size is the last one; an empty page ends the sequence
    immediately. The next page is fetched only once the current one is
    drained, so there is never more than one fetch outstanding.
    """

    def __init__(self, batch_size: int, start_page: int, fetch_page: Callable):
        self._batch_size = batch_size
        self._fetch_page = fetch_page
        self._next_page = start_page
        self._page: Tuple[Any, ...] = ()
        self._index = 0
        self._last_page = False

    async def pull(self) -> PullResult:
        if self._index >= len(self._page):
            if self._last_page:
                return DONE
            await self._fetch_next()
            if not self._page:
                return DONE
        item = self._page[self._index]
        self._index += 1
        return PullResult(item)

    async def _fetch_next(self) -> None:
        page_index = self._next_page
        logger.debug(f"Fetching page {page_index} (batch size {self._batch_size})")
        try:
            page = await resolve(self._fetch_page(self._batch_size, page_index))
        except Exception as e:
            logger.debug(f"Fetching page {page_index} failed: {e}")
            raise

        if not isinstance(page, abc.Sequence) or isinstance(page, (str, bytes, bytearray)):
            raise InvalidPageError(
                f"Page {page_index} must be an ordered sequence, got {type(page).__name__}"
            )

        self._page = tuple(page)
        self._index = 0
        self._next_page += 1
        if len(self._page) < self._batch_size:
            self._last_page = True
            logger.debug(f"Page {page_index} returned {len(self._page)} items, no further fetches")


class ConcatStage:
    """Exhausts each source in order before moving to the next"""

    def __init__(self, sources: List["LazySequence"]):
        self._sources = sources
        self._position = 0

    async def pull(self) -> PullResult:
        while self._position < len(self._sources):
            result = await self._sources[self._position].pull()
            if not result.done:
                return result
            self._position += 1
        return DONE


class MapStage:
    def __init__(self, upstream: "LazySequence", transform: Callable):
        self._upstream = upstream
        self._transform = transform

    async def pull(self) -> PullResult:
        result = await self._upstream.pull()
        if result.done:
            return result
        return PullResult(await resolve(self._transform(result.value)))


class FilterStage:
    """Keeps items whose predicate is truthy; awaitable verdicts are awaited first"""

    def __init__(self, upstream: "LazySequence", predicate: Callable):
        self._upstream = upstream
        self._predicate = predicate

    async def pull(self) -> PullResult:
        while True:
            result = await self._upstream.pull()
            if result.done:
                return result
            if await resolve(self._predicate(result.value)):
                return result


class TapStage:
    def __init__(self, upstream: "LazySequence", side_effect: Callable):
        self._upstream = upstream
        self._side_effect = side_effect

    async def pull(self) -> PullResult:
        result = await self._upstream.pull()
        if not result.done:
            await resolve(self._side_effect(result.value))
        return result


class BatchStage:
    """Groups upstream items into lists of exactly `size`, except a shorter final one"""

    def __init__(self, upstream: "LazySequence", size: int):
        self._upstream = upstream
        self._size = size
        self._buffer: List[Any] = []

    async def pull(self) -> PullResult:
        while True:
            result = await self._upstream.pull()
            if result.done:
                if self._buffer:
                    logger.debug(f"Flushing final batch of {len(self._buffer)} items")
                    return PullResult(self._flush())
                return DONE
            self._buffer.append(result.value)
            if len(self._buffer) == self._size:
                return PullResult(self._flush())

    def _flush(self) -> List[Any]:
        batch, self._buffer = self._buffer, []
        return batch


# ---------- Sequence ----------

class LazySequence(Generic[T]):
    """
    A single-use, pull-driven asynchronous sequence.

    The provider is invoked exactly once, on the first pull; every later pull
    resumes the same iteration state. Transform methods never touch this
    instance: they return a new sequence whose stage pulls from this one.
    Once exhausted (or broken by a failure) every pull reports done.

    Pulls must not overlap on one instance; that is left to the caller.
    """

    def __init__(self, provider: Callable[[], Any]):
        if not callable(provider):
            raise TypeError(f"provider must be callable, got {type(provider).__name__}")
        self._provider = provider
        self._stage = None
        self._state = SequenceState.NOT_STARTED

    @property
    def state(self) -> SequenceState:
        return self._state

    # --------- construction ----------
    @classmethod
    def from_paged_fetch(cls, batch_size: int, start_page: int = 0,
                         fetch_page: Optional[Callable] = None) -> "LazySequence":
        """
        Build a sequence over a paginated source.

        fetch_page(batch_size, page) is called with page = start_page,
        start_page + 1, ... and may return a list or an awaitable of one.
        """
        if fetch_page is None or not callable(fetch_page):
            raise TypeError("fetch_page must be a callable taking (batch_size, page)")
        options = PagedFetchOptions(batch_size=batch_size, start_page=start_page)
        return cls(lambda: PagedFetchStage(options.batch_size, options.start_page, fetch_page))

    @classmethod
    def from_collection(cls, source: Iterable[T]) -> "LazySequence[T]":
        """Snapshot source now; later changes to it are not seen"""
        items = tuple(source)
        return cls(lambda: CollectionStage(items))

    @staticmethod
    def concatenate(first, *rest) -> "LazySequence":
        return _as_sequence(first).concat(*rest)

    # --------- chainable operators (lazy) ----------
    def concat(self, *others) -> "LazySequence":
        sources = [self] + [_as_sequence(other) for other in others]
        return LazySequence(lambda: ConcatStage(sources))

    def map_each(self, transform: Callable) -> "LazySequence":
        return self._derive(lambda upstream: MapStage(upstream, transform))

    def filter_each(self, predicate: Callable) -> "LazySequence[T]":
        return self._derive(lambda upstream: FilterStage(upstream, predicate))

    def tap_each(self, side_effect: Callable) -> "LazySequence[T]":
        return self._derive(lambda upstream: TapStage(upstream, side_effect))

    def batch_into(self, size: int = 1) -> "LazySequence[List[T]]":
        options = BatchOptions(size=size)
        return self._derive(lambda upstream: BatchStage(upstream, options.size))

    def chunk(self, size: int) -> "LazySequence[List[T]]":
        """Alias for batch_into()"""
        return self.batch_into(size)

    # --------- pulling ----------
    async def pull(self) -> PullResult:
        if self._state is SequenceState.EXHAUSTED:
            return DONE
        try:
            if self._stage is None:
                self._state = SequenceState.RUNNING
                self._stage = self._instantiate()
            result = await self._stage.pull()
        except Exception:
            self._state = SequenceState.EXHAUSTED
            raise

        if result.done:
            self._state = SequenceState.EXHAUSTED
            logger.debug(f"{self!r} exhausted")
        return result

    def iterate(self) -> "LazySequence[T]":
        return self

    def __aiter__(self) -> "LazySequence[T]":
        return self

    async def __anext__(self) -> T:
        result = await self.pull()
        if result.done:
            raise StopAsyncIteration
        return result.value

    # --------- forcing evaluation ----------
    async def to_list(self) -> List[T]:
        """Drain every remaining item; on failure nothing collected is returned"""
        collection = []
        async for item in self:
            collection.append(item)
        return collection

    async def to_list_partial(self) -> PartialDrain[T]:
        """Drain until exhaustion or the first failure, keeping what was produced"""
        drained = PartialDrain()
        try:
            async for item in self:
                drained.items.append(item)
        except Exception as e:
            logger.warning(f"Sequence failed after {len(drained.items)} items: {e}")
            drained.error = e
        return drained

    # --------- helpers ----------
    def _derive(self, stage_factory: Callable[["LazySequence"], Any]) -> "LazySequence":
        upstream = self
        return LazySequence(lambda: stage_factory(upstream))

    def _instantiate(self):
        logger.debug(f"Instantiating provider for {self!r}")
        state = self._provider()
        if hasattr(state, "pull"):
            return state
        if hasattr(state, "__anext__") or hasattr(state, "__next__"):
            return IteratorStage(state)
        if hasattr(state, "__aiter__"):
            return IteratorStage(state.__aiter__())
        raise TypeError(
            f"provider must return a stage or an iterator, got {type(state).__name__}"
        )

    def __repr__(self) -> str:
        return f"<LazySequence state={self._state.value}>"


def _as_sequence(source) -> LazySequence:
    if isinstance(source, LazySequence):
        return source
    if hasattr(source, "__aiter__"):
        return LazySequence(source.__aiter__)
    if isinstance(source, abc.Iterable):
        # Not iterated until the first pull reaches it
        return LazySequence(lambda: iter(source))
    raise TypeError(f"Cannot concatenate {type(source).__name__}")
