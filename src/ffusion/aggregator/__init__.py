"""Pipeline orchestration."""

from .factory import build_aggregator, feed_from_spec
from .service import Aggregator, FeedSnapshot, RecordReader, SourceFeed

__all__ = [
    "Aggregator",
    "FeedSnapshot",
    "RecordReader",
    "SourceFeed",
    "build_aggregator",
    "feed_from_spec",
]
