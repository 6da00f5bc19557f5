"""Conversation store with whole-snapshot persistence, and its SQLite backend."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Protocol

from pydantic import TypeAdapter, ValidationError

from . import collection
from .config import STORAGE_KEY
from .errors import (
    PersistenceError,
    PersistenceReadFailure,
    PersistenceWriteFailure,
    StoreNotLoaded,
)
from .models import Conversation

logger = logging.getLogger(__name__)

_snapshot = TypeAdapter(list[Conversation])


class SnapshotBackend(Protocol):
    """Loads, saves and clears the serialized collection under a single key."""

    def load(self) -> str | None: ...

    def save(self, text: str) -> None: ...

    def clear(self) -> None: ...


class SQLiteSnapshotBackend:
    """SQLite-backed key/value table holding the collection snapshot."""

    def __init__(self, db_path: Path, key: str = STORAGE_KEY):
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self.key = key
        self.conn = sqlite3.connect(str(db_path))
        self.conn.execute("PRAGMA journal_mode=WAL")
        self._migrate()

    def _migrate(self):
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS snapshots (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
        """)
        self.conn.commit()

    def load(self) -> str | None:
        try:
            row = self.conn.execute(
                "SELECT value FROM snapshots WHERE key = ?", (self.key,)
            ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceReadFailure(f"Could not read snapshot: {e}") from e
        return row[0] if row else None

    def save(self, text: str) -> None:
        try:
            with self.conn:
                self.conn.execute(
                    "INSERT OR REPLACE INTO snapshots (key, value, updated_at) VALUES (?, ?, ?)",
                    (self.key, text, datetime.now(timezone.utc).isoformat()),
                )
        except sqlite3.Error as e:
            raise PersistenceWriteFailure(f"Could not write snapshot: {e}") from e

    def clear(self) -> None:
        try:
            with self.conn:
                self.conn.execute("DELETE FROM snapshots WHERE key = ?", (self.key,))
        except sqlite3.Error as e:
            raise PersistenceWriteFailure(f"Could not clear snapshot: {e}") from e

    def close(self):
        self.conn.close()


def dump_snapshot(conversations: list[Conversation]) -> str:
    return _snapshot.dump_json(conversations, by_alias=True).decode()


def load_snapshot(text: str) -> list[Conversation]:
    return _snapshot.validate_json(text)


class ConversationStore:
    """The authoritative in-memory collection.

    Mutations build a new collection with the pure functions in
    ``chatbook.collection``, swap it in, then persist the whole snapshot.
    Persistence failures are logged and kept in ``last_error``; the in-memory
    collection stays the source of truth for the session.
    """

    def __init__(self, backend: SnapshotBackend):
        self.backend = backend
        self._conversations: list[Conversation] = []
        self._loaded = False
        self.last_error: PersistenceError | None = None

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def conversations(self) -> list[Conversation]:
        return list(self._conversations)

    def get(self, conversation_id: str) -> Conversation | None:
        for conv in self._conversations:
            if conv.id == conversation_id:
                return conv
        return None

    def load(self) -> list[Conversation]:
        """Apply the persisted snapshot. A snapshot that fails to load counts as empty."""
        conversations: list[Conversation] = []
        try:
            text = self.backend.load()
            if text:
                conversations = load_snapshot(text)
        except PersistenceReadFailure as e:
            self._report(e)
        except ValidationError as e:
            self._report(PersistenceReadFailure(f"Stored snapshot is unreadable: {e}"))

        self._conversations = conversations
        self._loaded = True
        logger.info("Loaded %d conversations", len(conversations))
        return self.conversations

    def persist(self, conversations: list[Conversation]) -> bool:
        """Write the full collection as one snapshot. Returns False on failure."""
        try:
            self.backend.save(dump_snapshot(conversations))
        except PersistenceWriteFailure as e:
            self._report(e)
            return False
        self.last_error = None
        return True

    def _report(self, error: PersistenceError):
        logger.warning("%s", error)
        self.last_error = error

    def _commit(self, conversations: list[Conversation]) -> list[Conversation]:
        self._conversations = conversations
        self.persist(conversations)
        return self.conversations

    def _require_loaded(self):
        if not self._loaded:
            raise StoreNotLoaded("Conversation store has not been loaded yet")

    def merge(self, incoming: Iterable[Conversation]) -> list[Conversation]:
        self._require_loaded()
        return self._commit(collection.merge(self._conversations, incoming))

    def update_fields(self, conversation_id: str, fields: dict[str, Any]) -> list[Conversation]:
        self._require_loaded()
        return self._commit(collection.update_fields(self._conversations, conversation_id, fields))

    def add_tag(self, conversation_id: str, tag: str) -> list[Conversation]:
        self._require_loaded()
        return self._commit(collection.add_tag(self._conversations, conversation_id, tag))

    def remove_tag(self, conversation_id: str, tag: str) -> list[Conversation]:
        self._require_loaded()
        return self._commit(collection.remove_tag(self._conversations, conversation_id, tag))

    def add_link(self, conversation_id: str, url: str, label: str | None = None) -> str | None:
        self._require_loaded()
        conversations, link_id = collection.add_link(self._conversations, conversation_id, url, label)
        if link_id is not None:
            self._commit(conversations)
        return link_id

    def remove_link(self, conversation_id: str, link_id: str) -> list[Conversation]:
        self._require_loaded()
        return self._commit(collection.remove_link(self._conversations, conversation_id, link_id))

    def update_notes(self, conversation_id: str, notes: str) -> list[Conversation]:
        self._require_loaded()
        return self._commit(collection.update_notes(self._conversations, conversation_id, notes))

    def clear_all(self) -> list[Conversation]:
        """Empty the collection and delete the persisted snapshot. Irreversible."""
        self._require_loaded()
        self._conversations = []
        try:
            self.backend.clear()
        except PersistenceWriteFailure as e:
            self._report(e)
        return self.conversations
