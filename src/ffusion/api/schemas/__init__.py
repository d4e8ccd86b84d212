"""Pydantic models for API I/O."""

from .requests import AggregateBatchRequest, AggregateRequest
from .responses import ErrorDetail, SourceStatusResponse, SourcesResponse

__all__ = [
    "AggregateBatchRequest",
    "AggregateRequest",
    "ErrorDetail",
    "SourceStatusResponse",
    "SourcesResponse",
]
