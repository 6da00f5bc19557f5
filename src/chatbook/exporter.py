"""Render conversations and statistics as CSV or JSON text."""

from __future__ import annotations

import csv
import io
import json
from datetime import datetime, timezone

from pydantic import TypeAdapter

from .config import MESSAGE_EXPORT_CHARS
from .models import Conversation, Stats

CONVERSATION_COLUMNS = [
    "id", "title", "platform", "model", "created", "updated",
    "messageCount", "wordCount", "tags", "notes", "firstMessage",
]
MESSAGE_COLUMNS = [
    "conversation_id", "title", "platform", "model", "created",
    "role", "message", "timestamp",
]

_conversations = TypeAdapter(list[Conversation])


def _iso(value: datetime | None) -> str:
    return value.isoformat() if value else ""


def _write_csv(header: list[str], rows) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return buf.getvalue()


def conversations_csv(conversations: list[Conversation]) -> str:
    """One row per conversation, tags joined with ", "."""
    rows = (
        [
            c.id, c.title, c.platform.value, c.model, _iso(c.created), _iso(c.updated),
            c.message_count, c.word_count, ", ".join(c.tags), c.notes, c.first_message,
        ]
        for c in conversations
    )
    return _write_csv(CONVERSATION_COLUMNS, rows)


def messages_csv(conversations: list[Conversation]) -> str:
    """One row per message, content truncated for spreadsheet use."""
    rows = (
        [
            c.id, c.title, c.platform.value, c.model, _iso(c.created),
            m.role, m.content[:MESSAGE_EXPORT_CHARS], _iso(m.timestamp),
        ]
        for c in conversations
        for m in c.messages
    )
    return _write_csv(MESSAGE_COLUMNS, rows)


def conversations_json(conversations: list[Conversation]) -> str:
    """Full export including tags, links and notes."""
    return _conversations.dump_json(conversations, by_alias=True, indent=2).decode()


def stats_json(stats: Stats, generated: datetime | None = None) -> str:
    generated = generated or datetime.now(timezone.utc)
    payload = {
        "generated": generated.isoformat(),
        "stats": stats.model_dump(mode="json", by_alias=True),
        "modelBreakdown": [m.model_dump(by_alias=True) for m in stats.by_model],
        "monthlyActivity": [m.model_dump(by_alias=True) for m in stats.by_month],
    }
    return json.dumps(payload, indent=2)
