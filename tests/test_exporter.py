"""Tests for CSV and JSON exports."""

import csv
import io
import json

from chatbook import exporter
from chatbook.models import Message
from chatbook.stats import compute_stats

from conftest import make_conversation, utc


def read_csv(text):
    return list(csv.DictReader(io.StringIO(text)))


def test_conversations_csv_quotes_and_joins_tags() -> None:
    conv = make_conversation(
        "a", created=utc(2024, 1, 5), title='Bread, "rye"', tags=["food", "baking"], notes="line1\nline2"
    )

    rows = read_csv(exporter.conversations_csv([conv]))

    assert rows[0]["title"] == 'Bread, "rye"'
    assert rows[0]["tags"] == "food, baking"
    assert rows[0]["notes"] == "line1\nline2"
    assert rows[0]["messageCount"] == "1"
    assert rows[0]["created"].startswith("2024-01-05")
    assert rows[0]["updated"] == ""


def test_messages_csv_one_row_per_message_truncated() -> None:
    conv = make_conversation("a", n_messages=2)
    long_msg = Message(id="x", role="assistant", content="z" * 800)
    conv = conv.model_copy(update={"messages": [*conv.messages, long_msg]})

    rows = read_csv(exporter.messages_csv([conv]))

    assert len(rows) == 3
    assert [r["role"] for r in rows] == ["user", "assistant", "assistant"]
    assert len(rows[2]["message"]) == 500
    assert all(r["conversation_id"] == "a" for r in rows)


def test_conversations_json_round_trips_annotations() -> None:
    conv = make_conversation("a", tags=["keep"], notes="n")

    data = json.loads(exporter.conversations_json([conv]))

    assert data[0]["id"] == "a"
    assert data[0]["tags"] == ["keep"]
    assert data[0]["wordCount"] == 3


def test_stats_json() -> None:
    stats = compute_stats([make_conversation("a", created=utc(2024, 1, 5))])

    data = json.loads(exporter.stats_json(stats, generated=utc(2024, 6, 1)))

    assert data["generated"].startswith("2024-06-01")
    assert data["stats"]["total"] == 1
    assert data["modelBreakdown"] == [{"name": "gpt-4o", "count": 1}]
    assert data["monthlyActivity"] == [{"month": "2024-01", "count": 1}]
