"""Search data models."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import overload

from emoji_search.catalog import EmojiEntry
from emoji_search.config import IndexConfig


@dataclass(frozen=True, slots=True)
class Posting:
    """Association between a token and one catalog entry."""

    entry_id: int
    field_weight: float
    term_frequency: int


@dataclass(frozen=True)
class SearchIndex:
    """Immutable search snapshot: the catalog plus its inverted index.

    ``entries`` are sorted by id, ``postings`` maps each token to postings in
    ascending entry id order, and tokens are stored in sorted order so that the
    structure serializes deterministically. The mappings must be treated as
    read-only; a rebuild produces a new ``SearchIndex``.
    """

    config: IndexConfig
    entries: tuple[EmojiEntry, ...]
    postings: Mapping[str, tuple[Posting, ...]]
    document_frequency: Mapping[str, int]
    pinned: Mapping[str, int] = field(default_factory=dict)

    @property
    def entry_count(self) -> int:
        return len(self.entries)

    @property
    def vocabulary_size(self) -> int:
        return len(self.postings)

    def get_postings(self, token: str) -> tuple[Posting, ...]:
        return self.postings.get(token, ())


@dataclass(frozen=True, slots=True)
class ScoredEntry:
    """One ranked match with the tokens that produced it."""

    entry: EmojiEntry
    score: float
    matched_tokens: tuple[str, ...] = ()
    full_coverage: bool = False


@dataclass(frozen=True)
class QueryResult:
    """Matches ordered by score descending, then entry id ascending."""

    matches: tuple[ScoredEntry, ...] = ()

    @classmethod
    def empty(cls) -> QueryResult:
        return cls(())

    def __iter__(self) -> Iterator[ScoredEntry]:
        return iter(self.matches)

    def __len__(self) -> int:
        return len(self.matches)

    def __bool__(self) -> bool:
        return bool(self.matches)

    @overload
    def __getitem__(self, index: int) -> ScoredEntry: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[ScoredEntry, ...]: ...

    def __getitem__(self, index):
        return self.matches[index]

    @property
    def symbols(self) -> list[str]:
        return [match.entry.symbol for match in self.matches]
