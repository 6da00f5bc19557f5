"""Exceptions raised by the import pipeline and the conversation store."""

from __future__ import annotations

import click


class ImportFailed(click.ClickException):
    """An import attempt failed; the store is left untouched."""


class MissingConversationsFile(ImportFailed):
    pass


class UnsupportedFileType(ImportFailed):
    pass


class MalformedJSON(ImportFailed):
    pass


class UnknownExportShape(UserWarning):
    """The detected parser found no usable conversations in a non-empty export."""


class PersistenceError(Exception):
    """Base class for snapshot backend failures. Never fatal to the session."""


class PersistenceReadFailure(PersistenceError):
    pass


class PersistenceWriteFailure(PersistenceError):
    pass


class StoreNotLoaded(RuntimeError):
    """A store mutation was attempted before load() completed."""
