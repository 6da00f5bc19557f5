"""Detect the export format of decoded JSON and dispatch to the right parser."""

from __future__ import annotations

import logging
from typing import Any

from . import chatgpt, claude
from .models import Conversation, Platform

logger = logging.getLogger(__name__)


def detect_format(data: Any) -> Platform:
    """Guess which platform produced ``data``. Never raises.

    Unrecognized shapes fall back to Claude so the Claude parser gets the
    chance to report that it found nothing usable.
    """
    if isinstance(data, list) and data and isinstance(data[0], dict):
        if "mapping" in data[0]:
            return Platform.CHATGPT
        if "chat_messages" in data[0]:
            return Platform.CLAUDE
    if isinstance(data, dict) and "conversations" in data:
        return Platform.CHATGPT
    return Platform.CLAUDE


def parse_export(data: Any) -> tuple[Platform, list[Conversation]]:
    """Detect the format of ``data`` and parse it into canonical conversations."""
    platform = detect_format(data)
    logger.info("Detected %s export", platform.value)

    if platform is Platform.CHATGPT:
        return platform, chatgpt.parse_conversations(data)
    return platform, claude.parse_conversations(data)
