"""Cross-source merge policy."""

from .priority import SourcePriority
from .service import TOLERANCE, merge, merge_stats, order_records

__all__ = ["SourcePriority", "TOLERANCE", "merge", "merge_stats", "order_records"]
