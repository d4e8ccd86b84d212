"""Total ordering over source names used to settle merge conflicts."""

from __future__ import annotations

from typing import Iterable, Sequence, Tuple


class SourcePriority:
    """Sources listed first win. Unlisted sources rank after every listed one, by name."""

    def __init__(self, order: Iterable[str] = ()):
        seen: list[str] = []
        for source in order:
            if source not in seen:
                seen.append(source)
        self.order: Tuple[str, ...] = tuple(seen)
        self._index = {source: idx for idx, source in enumerate(self.order)}

    def rank(self, source: str) -> Tuple[int, str]:
        idx = self._index.get(source)
        if idx is None:
            return (len(self.order), source)
        return (idx, "")

    def sort(self, sources: Iterable[str]) -> Sequence[str]:
        return sorted(set(sources), key=self.rank)

    def __repr__(self) -> str:
        return f"SourcePriority({list(self.order)!r})"
