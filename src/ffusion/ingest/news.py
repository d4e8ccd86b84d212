"""News feed reader and the in-memory store keyed by player external id."""

from __future__ import annotations

import json
import logging
import re
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence

from ffusion.errors import SourceUnreadable
from ffusion.models import NewsItem

from .common import ParseResult, _ResultBuilder, decode_payload


logger = logging.getLogger(__name__)


def _keywords(*words: str) -> re.Pattern[str]:
    return re.compile(r"\b(?:" + "|".join(re.escape(word) for word in words) + r")\b", re.IGNORECASE)


_INJURY = _keywords(
    "injury", "injured", "hurt", "questionable", "doubtful", "out", "ir", "surgery",
    "concussion", "ankle", "knee", "shoulder", "hamstring", "groin",
)
_TRANSACTION = _keywords(
    "trade", "traded", "sign", "signed", "signs", "release", "released", "waive",
    "waived", "cut", "claim", "claimed", "acquire", "acquired",
)
_PERFORMANCE = _keywords(
    "touchdown", "touchdowns", "yards", "performance", "stats", "record", "career",
    "season high", "breakout",
)
_HIGH_IMPACT = _keywords(
    "out for season", "ir", "surgery", "torn", "fracture", "traded", "released",
    "waived", "suspended", "out indefinitely", "multiple weeks", "starting", "benched",
)
_MEDIUM_IMPACT = _keywords(
    "questionable", "doubtful", "limited", "backup", "week-to-week", "day-to-day",
    "probable", "game-time decision", "minor", "signed", "claimed",
)


def classify_news(headline: str) -> str:
    if _INJURY.search(headline):
        return "injury"
    if _TRANSACTION.search(headline):
        return "transaction"
    if _PERFORMANCE.search(headline):
        return "performance"
    return "general"


def assess_impact(headline: str, body: str) -> str:
    text = f"{headline} {body}"
    if _HIGH_IMPACT.search(text):
        return "high"
    if _MEDIUM_IMPACT.search(text):
        return "medium"
    return "low"


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def _article_player_ids(article: Mapping[str, Any]) -> List[str]:
    ids: List[str] = []
    for key in ("player_id", "playerId", "athleteId"):
        value = article.get(key)
        if value not in (None, ""):
            ids.append(str(value))
    for category in article.get("categories") or []:
        if not isinstance(category, Mapping):
            continue
        athlete_id = category.get("athleteId")
        if athlete_id is None and isinstance(category.get("athlete"), Mapping):
            athlete_id = category["athlete"].get("id")
        if athlete_id not in (None, ""):
            ids.append(str(athlete_id))
    return list(dict.fromkeys(ids))


class NewsReader:
    """Parse a JSON news payload (``{"articles": [...]}`` or a bare list) into ``NewsItem``s."""

    def __init__(self, source_id: str = "news"):
        self.source_id = source_id

    def parse(self, payload: str | bytes) -> ParseResult[NewsItem]:
        text = decode_payload(payload, self.source_id)
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise SourceUnreadable(self.source_id, f"invalid JSON: {exc.msg}") from exc
        if isinstance(data, Mapping):
            articles = data.get("articles", data.get("body"))
        else:
            articles = data
        if not isinstance(articles, list):
            raise SourceUnreadable(self.source_id, "news payload has no article list")

        builder: _ResultBuilder[NewsItem] = _ResultBuilder(self.source_id)
        for index, article in enumerate(articles, start=1):
            if not isinstance(article, Mapping):
                builder.skip(index, "article is not an object", str(article)[:80])
                continue
            headline = str(article.get("headline") or article.get("title") or "").strip()
            if not headline:
                builder.skip(index, "missing headline", json.dumps(article)[:80])
                continue
            player_ids = _article_player_ids(article)
            if not player_ids:
                builder.skip(index, "article is not tied to a player", headline[:80])
                continue
            body = str(article.get("description") or article.get("summary") or article.get("story") or "")
            published = _parse_timestamp(article.get("published") or article.get("published_date"))
            for player_id in player_ids:
                builder.add(
                    NewsItem(
                        external_id=player_id,
                        headline=headline,
                        body=body,
                        published=published,
                        category=classify_news(headline),
                        impact=assess_impact(headline, body),
                    )
                )
        return builder.build()


class NewsStore(Protocol):
    async def news_for(self, external_id: str, *, limit: int = 5) -> List[NewsItem]:
        ...


class InMemoryNewsStore:
    def __init__(self, items: Iterable[NewsItem] = ()):
        grouped: Dict[str, List[NewsItem]] = defaultdict(list)
        for item in items:
            grouped[item.external_id].append(item)
        self._items: Dict[str, Sequence[NewsItem]] = {
            key: tuple(sorted(value, key=_newest_first)) for key, value in grouped.items()
        }

    async def news_for(self, external_id: str, *, limit: int = 5) -> List[NewsItem]:
        return list(self._items.get(external_id, ())[:limit])


def _newest_first(item: NewsItem) -> tuple[int, float, str]:
    if item.published is None:
        return (1, 0.0, item.headline)
    return (0, -item.published.timestamp(), item.headline)
