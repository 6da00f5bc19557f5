"""Import pipeline: archive/JSON unwrap → format detection → parsing → store merge."""

from __future__ import annotations

import json
import logging
import zipfile
from pathlib import Path
from typing import Any

from .config import CONVERSATIONS_FILE
from .errors import MalformedJSON, MissingConversationsFile, UnknownExportShape, UnsupportedFileType
from .parser import parse_export
from .storage import ConversationStore

logger = logging.getLogger(__name__)


def read_archive_entry(zip_path: Path) -> str:
    """Return the text of the conversations file inside an export ZIP."""
    if not zipfile.is_zipfile(str(zip_path)):
        raise UnsupportedFileType(f"Not a valid ZIP file: {zip_path}")

    with zipfile.ZipFile(str(zip_path), "r") as zf:
        entry = next(
            (name for name in zf.namelist() if name.endswith(CONVERSATIONS_FILE)),
            None,
        )
        if entry is None:
            raise MissingConversationsFile(
                f"No {CONVERSATIONS_FILE} found in ZIP. "
                "Make sure this is a ChatGPT or Claude data export "
                "(Settings → Data Controls → Export Data)."
            )
        raw = zf.read(entry)

    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedJSON(f"{entry} is not valid UTF-8: {e}") from e


def decode_json(text: str, source: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedJSON(f"Could not parse {source} as JSON: {e}") from e


def read_export(path: str | Path) -> Any:
    """Read an export file (.zip or .json) and return the decoded JSON."""
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix == ".zip":
        text = read_archive_entry(path)
    elif suffix == ".json":
        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise MalformedJSON(f"{path.name} is not valid UTF-8: {e}") from e
    else:
        raise UnsupportedFileType(
            f"Unsupported file type: {path.name}. "
            "Please use a .json file or a .zip export."
        )

    return decode_json(text, path.name)


def _count_entries(data: Any) -> int:
    if isinstance(data, dict):
        data = data.get("conversations")
    return len(data) if isinstance(data, list) else 0


def import_data(data: Any, store: ConversationStore) -> dict:
    """Parse decoded export JSON and merge it into ``store``.

    Returns a summary dict with import statistics.
    """
    platform, conversations = parse_export(data)
    found = _count_entries(data)
    warnings: list[str] = []

    if data and not conversations:
        warning = UnknownExportShape(
            f"Treated the export as {platform.value} but found no usable conversations"
        )
        logger.warning("%s", warning)
        warnings.append(str(warning))
    elif len(conversations) < found:
        warnings.append(f"Skipped {found - len(conversations)} malformed conversations")

    before = len(store.conversations)
    merged = store.merge(conversations)
    imported = len(merged) - before

    summary = {
        "platform": platform.value,
        "found": found,
        "imported": imported,
        "skipped": len(conversations) - imported,
        "messages": sum(c.message_count for c in merged[before:]),
        "warnings": warnings,
    }
    logger.info(
        "Imported %d of %d %s conversations", imported, len(conversations), platform.value
    )
    return summary


def import_file(path: str | Path, store: ConversationStore) -> dict:
    """Import a ChatGPT or Claude export file into ``store``."""
    return import_data(read_export(path), store)
