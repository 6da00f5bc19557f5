"""Parse Claude.ai export conversations into the canonical model."""

from __future__ import annotations

import hashlib
import json
import logging
import uuid
from datetime import datetime
from typing import Any

from pydantic import TypeAdapter, ValidationError

from .config import DEFAULT_CLAUDE_MODEL, UNTITLED
from .models import Conversation, Message, Platform

logger = logging.getLogger(__name__)

_datetime = TypeAdapter(datetime)


def _parse_timestamp(value: Any) -> datetime | None:
    """Parse a timestamp, returning None (with a warning) for unreadable values."""
    if not value:
        return None
    try:
        return _datetime.validate_python(value)
    except ValidationError:
        logger.warning("Ignoring unparseable timestamp %r", value)
        return None


def _tool_result_text(content: Any) -> str:
    # Newer exports nest text blocks inside tool results
    if isinstance(content, list):
        return "\n".join(
            block.get("text", "") if isinstance(block, dict) else str(block)
            for block in content
        )
    return "" if content is None else str(content)


def _block_text(block: Any) -> str:
    if isinstance(block, str):
        return block
    if not isinstance(block, dict):
        return ""
    block_type = block.get("type")
    if block_type == "text":
        return block.get("text") or ""
    if block_type == "tool_result":
        return f"[Tool Result: {_tool_result_text(block.get('content'))}]"
    return ""


def extract_content(content: str | list[Any] | None) -> str:
    """Flatten a plain string or a list of typed content blocks into text."""
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        return "\n".join(_block_text(block) for block in content).strip()
    return ""


def extract_messages(chat_messages: list[dict[str, Any]]) -> list[Message]:
    """Normalize messages in source order, dropping those with no text."""
    messages: list[Message] = []

    for msg in chat_messages:
        text = extract_content(msg.get("content") or msg.get("text") or "")
        if not text:
            continue

        messages.append(
            Message(
                id=msg.get("uuid") or uuid.uuid4().hex,
                role="user" if msg.get("sender") == "human" else "assistant",
                content=text,
                timestamp=_parse_timestamp(msg.get("created_at")),
                model=msg.get("model") or None,
            )
        )

    return messages


def extract_model(conv: dict[str, Any]) -> str:
    for msg in conv.get("chat_messages") or []:
        if msg.get("model"):
            return msg["model"]
    return conv.get("model") or DEFAULT_CLAUDE_MODEL


def _fallback_id(conv: dict[str, Any]) -> str:
    content = json.dumps(conv, sort_keys=True, default=str)
    return f"claude-{hashlib.sha256(content.encode()).hexdigest()[:16]}"


def parse_conversation(conv: dict[str, Any]) -> Conversation:
    """Parse a single Claude conversation dict into a Conversation model."""
    messages = extract_messages(conv.get("chat_messages") or [])

    return Conversation.from_messages(
        messages,
        id=conv.get("uuid") or _fallback_id(conv),
        title=conv.get("name") or UNTITLED,
        platform=Platform.CLAUDE,
        model=extract_model(conv),
        created=_parse_timestamp(conv.get("created_at")),
        updated=_parse_timestamp(conv.get("updated_at")),
        project=(conv.get("project") or {}).get("name"),
    )


def parse_conversations(data: list[dict[str, Any]]) -> list[Conversation]:
    """Parse a Claude export array into a list of Conversations."""
    if not isinstance(data, list):
        return []

    conversations: list[Conversation] = []

    for conv_dict in data:
        if not isinstance(conv_dict, dict) or "chat_messages" not in conv_dict:
            logger.warning("Skipping entry without chat_messages in Claude export")
            continue
        try:
            conversations.append(parse_conversation(conv_dict))
        except Exception:
            name = conv_dict.get("name", "unknown")
            logger.warning("Failed to parse conversation '%s'", name, exc_info=True)

    return conversations
