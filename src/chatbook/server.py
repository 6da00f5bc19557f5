"""FastMCP server exposing chat book queries and annotations as tools."""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from .config import SQLITE_PATH, WILDCARD
from .filters import apply_filters
from .models import FilterSpec
from .stats import compute_stats
from .storage import ConversationStore, SQLiteSnapshotBackend

# Logging to stderr only — stdout is the MCP JSON-RPC transport
logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
)

mcp = FastMCP(
    "chatbook",
    instructions=(
        "Browse and annotate the user's imported ChatGPT and Claude conversations. "
        "Use list_conversations to filter by text, platform, model, tags or dates. "
        "Use get_conversation to read a full transcript. "
        "Use add_tag, remove_tag and set_notes to annotate conversations. "
        "Use get_stats for an overview of the collection."
    ),
)

# Singleton store — loaded once, reused across tool calls
_store: ConversationStore | None = None
_db_path: Path = SQLITE_PATH


def configure(db_path: Path):
    """Serve the snapshot in db_path instead of the default database."""
    global _store, _db_path
    _db_path = db_path
    _store = None


def _get_store() -> ConversationStore:
    global _store
    if _store is None:
        _store = ConversationStore(SQLiteSnapshotBackend(_db_path))
        _store.load()
    return _store


def _format_ts(ts: datetime | None) -> str:
    if ts is None:
        return "Unknown date"
    return ts.strftime("%Y-%m-%d %H:%M")


@mcp.tool()
def list_conversations(
    search: str = "",
    platform: str = WILDCARD,
    model: str = WILDCARD,
    tags: list[str] | None = None,
    date_from: str = "",
    date_to: str = "",
    min_messages: int | None = None,
    sort_by: str = "newest",
    limit: int = 20,
) -> str:
    """Filter and sort imported conversations.

    Args:
        search: Case-insensitive text matched against titles, first messages, notes and tags
        platform: "chatgpt", "claude" or "all"
        model: Exact model name, or "all"
        tags: Conversations must carry every one of these tags
        date_from: Earliest creation date (YYYY-MM-DD)
        date_to: Latest creation date (YYYY-MM-DD), inclusive
        min_messages: Minimum number of messages
        sort_by: newest, oldest, longest, shortest, words or title
        limit: Maximum results (default 20)
    """
    spec = FilterSpec(
        search=search,
        platform=platform,
        model=model,
        tags=tags or [],
        date_from=date_from,
        date_to=date_to,
        min_messages=min_messages,
        sort_by=sort_by,
    )
    results = apply_filters(_get_store().conversations, spec)

    if not results:
        return "No conversations found."

    lines = [f"Found {len(results)} conversations (showing {min(limit, len(results))}):\n"]
    for i, c in enumerate(results[:limit], 1):
        lines.append(f"{i}. **{c.title}** ({_format_ts(c.created)})")
        lines.append(
            f"   ID: `{c.id}` | {c.platform.value} | {c.message_count} msgs | Model: {c.model}"
        )
        if c.tags:
            lines.append(f"   Tags: {', '.join(c.tags)}")
    return "\n".join(lines)


@mcp.tool()
def get_conversation(conversation_id: str) -> str:
    """Retrieve a full conversation transcript with its tags, links and notes.

    Args:
        conversation_id: The conversation id (from list_conversations)
    """
    conv = _get_store().get(conversation_id)
    if conv is None:
        return f"Conversation not found: {conversation_id}"

    assistant = "ChatGPT" if conv.platform.value == "chatgpt" else "Claude"
    lines = [
        f"# {conv.title}",
        f"Date: {_format_ts(conv.created)}",
        f"Model: {conv.model}",
        f"Messages: {conv.message_count}",
    ]
    if conv.tags:
        lines.append(f"Tags: {', '.join(conv.tags)}")
    for link in conv.links:
        lines.append(f"Link: [{link.label}]({link.url})")
    if conv.notes:
        lines.append(f"Notes: {conv.notes}")
    lines += ["", "---", ""]

    for msg in conv.messages:
        role = "**User**" if msg.role == "user" else f"**{assistant}**"
        lines.append(f"{role}:")
        lines.append(msg.content)
        lines.append("")

    return "\n".join(lines)


@mcp.tool()
def add_tag(conversation_id: str, tag: str) -> str:
    """Tag a conversation. Tags are lower-cased; adding an existing tag does nothing.

    Args:
        conversation_id: The conversation id
        tag: Tag to add
    """
    store = _get_store()
    if store.get(conversation_id) is None:
        return f"Conversation not found: {conversation_id}"
    store.add_tag(conversation_id, tag)
    return f"Tags: {', '.join(store.get(conversation_id).tags)}"


@mcp.tool()
def remove_tag(conversation_id: str, tag: str) -> str:
    """Remove a tag from a conversation.

    Args:
        conversation_id: The conversation id
        tag: Tag to remove
    """
    store = _get_store()
    if store.get(conversation_id) is None:
        return f"Conversation not found: {conversation_id}"
    store.remove_tag(conversation_id, tag)
    return f"Tags: {', '.join(store.get(conversation_id).tags) or '(none)'}"


@mcp.tool()
def set_notes(conversation_id: str, notes: str) -> str:
    """Replace the notes attached to a conversation.

    Args:
        conversation_id: The conversation id
        notes: New notes text (replaces the old notes)
    """
    store = _get_store()
    if store.get(conversation_id) is None:
        return f"Conversation not found: {conversation_id}"
    store.update_notes(conversation_id, notes)
    return "Notes saved."


@mcp.tool()
def get_stats() -> str:
    """Get statistics about the imported conversations.

    Shows totals, date range, most used models and monthly activity.
    """
    stats = compute_stats(_get_store().conversations)
    if not stats.total:
        return "No conversations imported yet. Run `chatbook import <export>` first."

    lines = [
        "# Chat Book Statistics",
        "",
        f"- **Conversations**: {stats.total:,} "
        f"({stats.by_platform['chatgpt']:,} ChatGPT, {stats.by_platform['claude']:,} Claude)",
        f"- **Messages**: {stats.total_messages:,}",
        f"- **Words**: {stats.total_words:,}",
        f"- **Avg messages/conversation**: {stats.avg_messages}",
        f"- **Tags**: {', '.join(stats.all_tags) or '(none)'}",
    ]
    if stats.date_range:
        lines.append(
            f"- **Date range**: {_format_ts(stats.date_range.min)} → {_format_ts(stats.date_range.max)}"
        )

    lines += ["", "## Models used:"]
    for m in stats.by_model:
        lines.append(f"- {m.name}: {m.count:,} conversations")

    if stats.by_month:
        lines += ["", "## Monthly activity:"]
        for m in stats.by_month:
            lines.append(f"- {m.month}: {m.count:,}")

    return "\n".join(lines)
