"""Dashboard statistics over a conversation collection."""

from __future__ import annotations

from collections import Counter
from datetime import date, datetime, timedelta, timezone

from .config import ACTIVITY_DAYS, UNKNOWN_MODEL
from .models import (
    Conversation,
    DateRange,
    DayCount,
    MonthCount,
    NameCount,
    Platform,
    Stats,
)


def _distinct(values) -> list[str]:
    return list(dict.fromkeys(v for v in values if v))


def compute_stats(conversations: list[Conversation]) -> Stats:
    """Recompute every metric from scratch; linear in the collection size."""
    total = len(conversations)
    total_messages = sum(c.message_count for c in conversations)
    total_words = sum(c.word_count for c in conversations)

    by_platform = {p.value: 0 for p in Platform}
    for conv in conversations:
        by_platform[conv.platform.value] += 1

    models = Counter(c.model or UNKNOWN_MODEL for c in conversations)
    # sorted() is stable, so equal counts keep first-seen order
    by_model = [
        NameCount(name=name, count=count)
        for name, count in sorted(models.items(), key=lambda kv: kv[1], reverse=True)
    ]

    created = [c.created.astimezone(timezone.utc) for c in conversations if c.created]
    months = Counter(d.strftime("%Y-%m") for d in created)
    days = Counter(d.date().isoformat() for d in created)

    return Stats(
        total=total,
        by_platform=by_platform,
        total_messages=total_messages,
        total_words=total_words,
        all_tags=_distinct(t for c in conversations for t in c.tags),
        all_models=_distinct(c.model for c in conversations),
        date_range=DateRange(min=min(created), max=max(created)) if created else None,
        by_model=by_model,
        by_month=[MonthCount(month=m, count=n) for m, n in sorted(months.items())],
        by_day=dict(sorted(days.items())),
        tagged=sum(1 for c in conversations if c.tags),
        avg_messages=round(total_messages / total) if total else 0,
        avg_words=round(total_words / total) if total else 0,
    )


def activity_grid(
    by_day: dict[str, int], today: date | None = None, days: int = ACTIVITY_DAYS
) -> list[DayCount]:
    """Expand ``by_day`` into one entry per day ending today, zeros included."""
    if today is None:
        today = datetime.now(timezone.utc).date()
    grid = []
    for offset in range(days - 1, -1, -1):
        key = (today - timedelta(days=offset)).isoformat()
        grid.append(DayCount(date=key, count=by_day.get(key, 0)))
    return grid
