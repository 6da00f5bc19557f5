"""Parse ChatGPT export conversations.json tree structure into flat message lists."""

from __future__ import annotations

import hashlib
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from .config import DEFAULT_CHATGPT_MODEL, UNTITLED
from .models import Conversation, Message, Platform

logger = logging.getLogger(__name__)


def _extract_text(parts: list[Any]) -> str:
    """Extract text from message content parts, filtering non-strings."""
    return "\n".join(part for part in parts if isinstance(part, str)).strip()


def _from_epoch(ts: float | None) -> datetime | None:
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def _find_roots(mapping: dict[str, Any]) -> list[str]:
    """Nodes without a parent, or whose parent is missing from a truncated export."""
    return [
        node_id
        for node_id, node in mapping.items()
        if not (node or {}).get("parent") or node["parent"] not in mapping
    ]


def _walk_branch(mapping: dict[str, Any], root_id: str, visited: set[str]) -> list[str]:
    """Walk down from root_id, following the last child at every branch point.

    Edits and regenerations add sibling children; the last one is the branch
    shown in the ChatGPT UI. Earlier siblings are dropped.
    """
    path: list[str] = []
    node_id: str | None = root_id

    while node_id and node_id in mapping:
        if node_id in visited:
            logger.warning("Circular reference detected at node %s", node_id)
            break
        visited.add(node_id)
        path.append(node_id)
        children = (mapping[node_id] or {}).get("children") or []
        node_id = children[-1] if children else None

    return path


def _to_message(node_id: str, msg_data: dict[str, Any]) -> Message | None:
    author = msg_data.get("author")
    content_data = msg_data.get("content")
    if not author or not content_data:
        return None

    text = _extract_text(content_data.get("parts") or [])
    if not text:
        return None

    return Message(
        id=msg_data.get("id") or node_id,
        role="user" if author.get("role") == "user" else "assistant",
        content=text,
        timestamp=_from_epoch(msg_data.get("create_time")),
        model=(msg_data.get("metadata") or {}).get("model_slug"),
    )


def _sort_by_timestamp(messages: list[Message]) -> list[Message]:
    """Stable sort of the timestamped messages; undated ones keep their slots."""
    dated = sorted((m for m in messages if m.timestamp), key=lambda m: m.timestamp)
    dated_iter = iter(dated)
    return [next(dated_iter) if m.timestamp else m for m in messages]


def extract_messages(mapping: dict[str, Any]) -> list[Message]:
    """Linearize a mapping graph into the accepted conversation path."""
    messages: list[Message] = []
    visited: set[str] = set()

    for root_id in _find_roots(mapping):
        for node_id in _walk_branch(mapping, root_id, visited):
            msg_data = (mapping[node_id] or {}).get("message")
            if msg_data is None:
                continue
            message = _to_message(node_id, msg_data)
            if message is not None:
                messages.append(message)

    return _sort_by_timestamp(messages)


def extract_model(conv: dict[str, Any]) -> str:
    for node in (conv.get("mapping") or {}).values():
        slug = (((node or {}).get("message") or {}).get("metadata") or {}).get("model_slug")
        if slug:
            return slug
    return conv.get("default_model_slug") or DEFAULT_CHATGPT_MODEL


def _fallback_id(conv: dict[str, Any]) -> str:
    """Content-derived id so re-importing an id-less conversation stays idempotent."""
    try:
        content = json.dumps(conv, sort_keys=True, default=str)
    except ValueError:
        return uuid.uuid4().hex
    return f"chatgpt-{hashlib.sha256(content.encode()).hexdigest()[:16]}"


def parse_conversation(conv: dict[str, Any]) -> Conversation:
    """Parse a single ChatGPT conversation dict into a Conversation model."""
    messages = extract_messages(conv.get("mapping") or {})

    return Conversation.from_messages(
        messages,
        id=conv.get("id") or conv.get("conversation_id") or _fallback_id(conv),
        title=conv.get("title") or UNTITLED,
        platform=Platform.CHATGPT,
        model=extract_model(conv),
        created=_from_epoch(conv.get("create_time")),
        updated=_from_epoch(conv.get("update_time")),
    )


def parse_conversations(data: list[dict[str, Any]] | dict[str, Any]) -> list[Conversation]:
    """Parse a full conversations.json payload into a list of Conversations.

    Accepts the bare array or the ``{"conversations": [...]}`` wrapper.
    """
    if isinstance(data, dict):
        data = data.get("conversations") or []
    if not isinstance(data, list):
        return []

    conversations: list[Conversation] = []

    for conv_dict in data:
        if not isinstance(conv_dict, dict) or "mapping" not in conv_dict:
            logger.warning("Skipping entry without a mapping in ChatGPT export")
            continue
        try:
            conversations.append(parse_conversation(conv_dict))
        except Exception:
            title = conv_dict.get("title", "unknown")
            logger.warning("Failed to parse conversation '%s'", title, exc_info=True)

    return conversations
