"""Pure operations over a conversation collection.

Every function returns a new list and leaves its input untouched; a changed
conversation is replaced by a copy, never mutated in place.
"""

from __future__ import annotations

import uuid
from typing import Any, Callable, Iterable

from .models import Conversation, Link

# Fields owned by the parser; derived from messages or identifying the conversation
PROTECTED_FIELDS = frozenset(
    {"id", "messages", "message_count", "word_count", "first_message", "last_activity"}
)


def merge(existing: list[Conversation], incoming: Iterable[Conversation]) -> list[Conversation]:
    """Append conversations whose id is not already present, in input order."""
    seen = {c.id for c in existing}
    merged = list(existing)
    for conv in incoming:
        if conv.id not in seen:
            seen.add(conv.id)
            merged.append(conv)
    return merged


def _replace(
    collection: list[Conversation],
    conversation_id: str,
    change: Callable[[Conversation], Conversation],
) -> list[Conversation]:
    return [change(c) if c.id == conversation_id else c for c in collection]


def update_fields(
    collection: list[Conversation], conversation_id: str, fields: dict[str, Any]
) -> list[Conversation]:
    """Replace only the named fields on the matching conversation."""
    unknown = set(fields).difference(Conversation.model_fields)
    if unknown:
        raise ValueError(f"Unknown fields: {', '.join(sorted(unknown))}")
    protected = PROTECTED_FIELDS.intersection(fields)
    if protected:
        raise ValueError(f"Cannot update fields: {', '.join(sorted(protected))}")

    def change(conv: Conversation) -> Conversation:
        # Re-validate so tags are normalized and types are checked
        return Conversation.model_validate({**conv.model_dump(), **fields})

    return _replace(collection, conversation_id, change)


def _clean_tag(tag: str) -> str:
    return tag.strip().lower()


def add_tag(collection: list[Conversation], conversation_id: str, tag: str) -> list[Conversation]:
    tag = _clean_tag(tag)
    if not tag:
        return list(collection)

    def change(conv: Conversation) -> Conversation:
        if tag in conv.tags:
            return conv
        return conv.model_copy(update={"tags": [*conv.tags, tag]})

    return _replace(collection, conversation_id, change)


def remove_tag(collection: list[Conversation], conversation_id: str, tag: str) -> list[Conversation]:
    tag = _clean_tag(tag)

    def change(conv: Conversation) -> Conversation:
        if tag not in conv.tags:
            return conv
        return conv.model_copy(update={"tags": [t for t in conv.tags if t != tag]})

    return _replace(collection, conversation_id, change)


def add_link(
    collection: list[Conversation],
    conversation_id: str,
    url: str,
    label: str | None = None,
) -> tuple[list[Conversation], str | None]:
    """Attach a link and return the new collection with the link's fresh id.

    The id is None, and the collection unchanged, when no conversation matches.
    """
    if not any(conv.id == conversation_id for conv in collection):
        return list(collection), None
    url = url.strip()
    link = Link(id=uuid.uuid4().hex[:12], url=url, label=(label or "").strip() or url)

    def change(conv: Conversation) -> Conversation:
        return conv.model_copy(update={"links": [*conv.links, link]})

    return _replace(collection, conversation_id, change), link.id


def remove_link(collection: list[Conversation], conversation_id: str, link_id: str) -> list[Conversation]:
    def change(conv: Conversation) -> Conversation:
        return conv.model_copy(update={"links": [l for l in conv.links if l.id != link_id]})

    return _replace(collection, conversation_id, change)


def update_notes(collection: list[Conversation], conversation_id: str, notes: str) -> list[Conversation]:
    def change(conv: Conversation) -> Conversation:
        return conv.model_copy(update={"notes": notes})

    return _replace(collection, conversation_id, change)
