"""Filter and sort a conversation collection."""

from __future__ import annotations

from datetime import datetime, time, timezone

from .config import WILDCARD
from .models import Conversation, FilterSpec, SortOrder

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
END_OF_DAY = time(23, 59, 59)


def _matches_search(conv: Conversation, query: str) -> bool:
    q = query.lower()
    return (
        q in conv.title.lower()
        or q in conv.first_message.lower()
        or q in conv.notes.lower()
        or any(q in tag.lower() for tag in conv.tags)
    )


def matches(conv: Conversation, spec: FilterSpec) -> bool:
    """True when ``conv`` satisfies every predicate in ``spec``."""
    if spec.search and not _matches_search(conv, spec.search):
        return False
    if spec.platform != WILDCARD and conv.platform != spec.platform:
        return False
    if spec.model != WILDCARD and conv.model != spec.model:
        return False
    if spec.tags and not set(spec.tags).issubset(conv.tags):
        return False

    if spec.date_from is not None or spec.date_to is not None:
        if conv.created is None:
            return False
        if spec.date_from is not None:
            start = datetime.combine(spec.date_from, time.min, tzinfo=timezone.utc)
            if conv.created < start:
                return False
        if spec.date_to is not None:
            end = datetime.combine(spec.date_to, END_OF_DAY, tzinfo=timezone.utc)
            if conv.created > end:
                return False

    if spec.min_messages is not None and conv.message_count < spec.min_messages:
        return False
    return True


def sort_conversations(conversations: list[Conversation], order: SortOrder) -> list[Conversation]:
    """Stable sort; ties keep their input order."""
    if order == SortOrder.NEWEST:
        return sorted(conversations, key=lambda c: c.created or EPOCH, reverse=True)
    if order == SortOrder.OLDEST:
        return sorted(conversations, key=lambda c: c.created or EPOCH)
    if order == SortOrder.LONGEST:
        return sorted(conversations, key=lambda c: c.message_count, reverse=True)
    if order == SortOrder.SHORTEST:
        return sorted(conversations, key=lambda c: c.message_count)
    if order == SortOrder.WORDS:
        return sorted(conversations, key=lambda c: c.word_count, reverse=True)
    return sorted(conversations, key=lambda c: c.title)


def apply_filters(conversations: list[Conversation], spec: FilterSpec) -> list[Conversation]:
    """Return the conversations matching ``spec``, in the requested sort order."""
    return sort_conversations([c for c in conversations if matches(c, spec)], spec.sort_by)
