"""Error hierarchy for the emoji search engine."""

from __future__ import annotations


class EmojiSearchError(Exception):
    """Base error for the emoji search engine."""


class DuplicateEntryId(EmojiSearchError):
    """Raised when two catalog entries share an id."""

    def __init__(self, entry_id: int) -> None:
        super().__init__(f"Duplicate emoji entry id: {entry_id}")
        self.entry_id = entry_id


class EmptyCatalog(EmojiSearchError):
    """Raised when an index build is requested for a catalog with no entries."""

    def __init__(self) -> None:
        super().__init__("Cannot build an index from an empty catalog")


class ConfigMismatch(EmojiSearchError):
    """Raised when a query is tokenized with a config other than the index's."""

    def __init__(self, expected: object, found: object) -> None:
        super().__init__(f"Tokenizer config mismatch: index built with {expected!r}, query uses {found!r}")
        self.expected = expected
        self.found = found


class CorruptSnapshot(EmojiSearchError):
    """Raised when snapshot bytes are malformed or truncated."""


class VersionMismatch(EmojiSearchError):
    """Raised when a snapshot was written with an unsupported format version."""

    def __init__(self, found: int, expected: int) -> None:
        super().__init__(f"Snapshot format version {found} is not supported (expected {expected})")
        self.found = found
        self.expected = expected


class UnknownIndexHandle(EmojiSearchError, KeyError):
    """Raised when a handle does not refer to a registered index."""

    def __init__(self, handle: int) -> None:
        super().__init__(f"Unknown index handle: {handle}")
        self.handle = handle

    def __str__(self) -> str:
        return str(self.args[0])


class CatalogFormatError(EmojiSearchError, ValueError):
    """Raised when catalog source data does not have the expected shape."""
