"""Central configuration for paths and constants."""

import os
from pathlib import Path

# Data directory — override with CHATBOOK_DATA_DIR env var
DATA_DIR = Path(
    os.environ.get("CHATBOOK_DATA_DIR", str(Path.home() / ".chatbook"))
)

# Database path
SQLITE_PATH = DATA_DIR / "chatbook.db"

# Key the whole conversation snapshot is stored under
STORAGE_KEY = "ai_chat_book_data"

# Name of the conversations file inside an export archive
CONVERSATIONS_FILE = "conversations.json"

# Defaults for fields missing from an export
UNTITLED = "Untitled Conversation"
DEFAULT_CHATGPT_MODEL = "gpt"
DEFAULT_CLAUDE_MODEL = "claude"
UNKNOWN_MODEL = "Unknown"

FIRST_MESSAGE_CHARS = 120  # Cached preview length for list views
MESSAGE_EXPORT_CHARS = 500  # Per-message limit in the messages CSV
ACTIVITY_DAYS = 365  # Days in the activity grid

# Filter value that matches every platform / model
WILDCARD = "all"
