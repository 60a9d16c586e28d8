"""
Pydantic models for lazy sequences.

Argument models validate combinator parameters before any work is scheduled,
so a bad batch size fails at construction time instead of on the first pull.
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, field_validator
from enum import Enum


class SequenceState(str, Enum):
    """Lifecycle of a single LazySequence instance"""
    NOT_STARTED = "not_started"
    RUNNING = "running"
    EXHAUSTED = "exhausted"


class PagedFetchOptions(BaseModel):
    """Parameters for paginated retrieval"""
    batch_size: int = Field(
        ...,
        description="Number of items requested per page",
        ge=1,
        strict=True
    )
    start_page: int = Field(
        0,
        description="Index of the first page to fetch",
        ge=0,
        strict=True
    )


class BatchOptions(BaseModel):
    """Parameters for fixed-size batching"""
    size: int = Field(
        1,
        description="Number of items per emitted batch",
        ge=1,
        strict=True
    )


class JSONPageFetcherConfig(BaseModel):
    """Settings for fetching pages from a JSON HTTP endpoint"""
    url: str = Field(..., description="Endpoint returning one page per request")
    page_param: str = Field("page", description="Query parameter carrying the page index")
    size_param: str = Field("size", description="Query parameter carrying the page size")
    items_key: Optional[str] = Field(
        None,
        description="Key holding the item list in the response body; None if the body is the list"
    )
    timeout_seconds: float = Field(
        30.0,
        description="Total timeout for a single page request in seconds",
        ge=1.0,
        le=300.0
    )
    extra_params: Dict[str, Any] = Field(
        default_factory=dict,
        description="Additional query parameters sent with every request"
    )

    @field_validator('url')
    @classmethod
    def validate_url(cls, v):
        """Only plain HTTP(S) endpoints are supported"""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"URL must start with http:// or https://, got {v!r}")
        return v


class DrainMetrics(BaseModel):
    """Timing and memory figures for one full drain of a sequence"""
    item_count: int = Field(0, description="Items produced before completion or failure", ge=0)
    execution_time_ms: float = Field(..., description="Wall time of the drain in milliseconds", ge=0)
    peak_memory_mb: float = Field(..., description="Peak traced memory in megabytes", ge=0)
    success: bool = Field(..., description="Whether the sequence was drained to exhaustion")
    error: Optional[str] = Field(None, description="Error message if the drain failed")
