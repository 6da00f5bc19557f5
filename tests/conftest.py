"""
Shared fixtures for chatbook tests.
"""

from datetime import datetime, timezone

import pytest

from chatbook.errors import PersistenceReadFailure, PersistenceWriteFailure
from chatbook.models import Conversation, Message, Platform
from chatbook.storage import ConversationStore


class MemoryBackend:
    """Snapshot backend holding the serialized collection in a string."""

    def __init__(self, text=None):
        self.text = text
        self.saves = 0

    def load(self):
        return self.text

    def save(self, text):
        self.saves += 1
        self.text = text

    def clear(self):
        self.text = None


class FailingBackend(MemoryBackend):
    def load(self):
        raise PersistenceReadFailure("disk on fire")

    def save(self, text):
        raise PersistenceWriteFailure("disk full")

    def clear(self):
        raise PersistenceWriteFailure("disk full")


def make_conversation(
    conv_id,
    platform=Platform.CHATGPT,
    created=None,
    n_messages=1,
    **fields,
):
    messages = [
        Message(id=f"{conv_id}-{i}", role="user" if i % 2 == 0 else "assistant", content=f"message {i} here")
        for i in range(n_messages)
    ]
    fields.setdefault("title", f"Conversation {conv_id}")
    fields.setdefault("model", "gpt-4o" if platform == Platform.CHATGPT else "claude-3-opus")
    return Conversation.from_messages(
        messages,
        id=conv_id,
        platform=platform,
        created=created,
        **fields,
    )


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def store(backend):
    s = ConversationStore(backend)
    s.load()
    return s


@pytest.fixture
def chatgpt_export():
    """Two ChatGPT conversations; the first has an edit branch at the user turn."""
    return [
        {
            "id": "gpt-1",
            "title": "Rye bread",
            "create_time": 1704412800.0,  # 2024-01-05
            "update_time": 1704416400.0,
            "mapping": {
                "root": {"message": None, "parent": None, "children": ["sys"]},
                "sys": {
                    "message": {
                        "id": "sys",
                        "author": {"role": "system"},
                        "content": {"content_type": "text", "parts": [""]},
                        "create_time": None,
                    },
                    "parent": "root",
                    "children": ["u1"],
                },
                "u1": {
                    "message": {
                        "id": "u1",
                        "author": {"role": "user"},
                        "content": {"content_type": "text", "parts": ["How do I freeze rye bread?"]},
                        "create_time": 1704412800.0,
                    },
                    "parent": "sys",
                    "children": ["a1-old", "a1"],
                },
                "a1-old": {
                    "message": {
                        "id": "a1-old",
                        "author": {"role": "assistant"},
                        "content": {"content_type": "text", "parts": ["Abandoned answer"]},
                        "create_time": 1704412810.0,
                        "metadata": {"model_slug": "gpt-3.5"},
                    },
                    "parent": "u1",
                    "children": [],
                },
                "a1": {
                    "message": {
                        "id": "a1",
                        "author": {"role": "assistant"},
                        "content": {"content_type": "text", "parts": ["Slice it first.", "Then wrap it."]},
                        "create_time": 1704412820.0,
                        "metadata": {"model_slug": "gpt-4o"},
                    },
                    "parent": "u1",
                    "children": [],
                },
            },
        },
        {
            "id": "gpt-2",
            "title": "Empty",
            "create_time": 1707523200.0,  # 2024-02-10
            "mapping": {},
        },
    ]


@pytest.fixture
def claude_export():
    return [
        {
            "uuid": "cl-1",
            "name": "Tool use",
            "created_at": "2024-03-01T10:00:00Z",
            "updated_at": "2024-03-01T10:05:00Z",
            "project": {"name": "Research"},
            "chat_messages": [
                {
                    "uuid": "m1",
                    "sender": "human",
                    "content": "  What is six times seven?  ",
                    "created_at": "2024-03-01T10:00:00Z",
                },
                {
                    "uuid": "m2",
                    "sender": "assistant",
                    "content": [
                        {"type": "text", "text": "hi"},
                        {"type": "tool_result", "content": "42"},
                    ],
                    "created_at": "2024-03-01T10:00:05Z",
                    "model": "claude-3-5-sonnet",
                },
                {
                    "uuid": "m3",
                    "sender": "assistant",
                    "content": [{"type": "thinking", "thinking": "hmm"}],
                    "created_at": "2024-03-01T10:00:06Z",
                },
            ],
        }
    ]
