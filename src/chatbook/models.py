"""Data models for canonical conversations, filters and statistics."""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from .config import FIRST_MESSAGE_CHARS, UNTITLED, WILDCARD


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def count_words(text: str) -> int:
    return len(text.split())


class CamelModel(BaseModel):
    """Serializes with camelCase aliases, accepts either spelling on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Platform(str, Enum):
    CHATGPT = "chatgpt"
    CLAUDE = "claude"


class Message(CamelModel):
    id: str
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime | None = None
    model: str | None = None

    @field_validator("timestamp")
    @classmethod
    def assume_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)


class Link(CamelModel):
    # Older snapshots stored millisecond timestamps as link ids
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    url: str
    label: str


class Conversation(CamelModel):
    id: str
    title: str = UNTITLED
    platform: Platform
    model: str
    created: datetime | None = None
    updated: datetime | None = None
    messages: list[Message] = []
    message_count: int = 0
    word_count: int = 0
    tags: list[str] = []
    links: list[Link] = []
    notes: str = ""
    first_message: str = ""
    last_activity: datetime | None = None
    project: str | None = None

    @field_validator("created", "updated", "last_activity")
    @classmethod
    def assume_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, tags: list[str]) -> list[str]:
        normalized: list[str] = []
        for tag in tags:
            tag = tag.strip().lower()
            if tag and tag not in normalized:
                normalized.append(tag)
        return normalized

    @classmethod
    def from_messages(cls, messages: list[Message], **fields) -> Conversation:
        """Build a conversation, deriving counts and previews from its messages."""
        return cls(
            messages=messages,
            message_count=len(messages),
            word_count=sum(count_words(m.content) for m in messages),
            first_message=messages[0].content[:FIRST_MESSAGE_CHARS] if messages else "",
            last_activity=messages[-1].timestamp if messages else None,
            **fields,
        )


class SortOrder(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    LONGEST = "longest"
    SHORTEST = "shortest"
    WORDS = "words"
    TITLE = "title"


class FilterSpec(CamelModel):
    search: str = ""
    platform: str = WILDCARD
    model: str = WILDCARD
    tags: list[str] = []
    date_from: date | None = None
    date_to: date | None = None
    min_messages: int | None = None
    sort_by: SortOrder = SortOrder.NEWEST

    @field_validator("date_from", "date_to", "min_messages", mode="before")
    @classmethod
    def blank_is_unset(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("tags")
    @classmethod
    def lower_tags(cls, tags: list[str]) -> list[str]:
        return [t.strip().lower() for t in tags if t.strip()]

    @property
    def active_count(self) -> int:
        """Number of predicates that narrow the result."""
        return sum(
            [
                bool(self.search),
                self.platform != WILDCARD,
                self.model != WILDCARD,
                bool(self.tags),
                self.date_from is not None,
                self.date_to is not None,
                bool(self.min_messages),
            ]
        )


class NameCount(CamelModel):
    name: str
    count: int


class MonthCount(CamelModel):
    month: str
    count: int


class DayCount(CamelModel):
    date: str
    count: int


class DateRange(CamelModel):
    min: datetime
    max: datetime


class Stats(CamelModel):
    total: int = 0
    by_platform: dict[str, int] = {}
    total_messages: int = 0
    total_words: int = 0
    all_tags: list[str] = []
    all_models: list[str] = []
    date_range: DateRange | None = None
    by_model: list[NameCount] = []
    by_month: list[MonthCount] = []
    by_day: dict[str, int] = {}
    tagged: int = 0
    avg_messages: int = 0
    avg_words: int = 0
