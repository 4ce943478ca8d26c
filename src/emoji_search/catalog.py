"""Catalog loading helpers.

Adapts external emoji datasets into immutable ``EmojiEntry`` records. The JSON
format mirrors the upstream keyword dataset: an object keyed by emoji symbol
whose value is a list of strings, the first being the canonical name and the
rest the keywords in curated priority order.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, replace
import logging
from pathlib import Path
from typing import Any

import orjson

from emoji_search.errors import CatalogFormatError


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EmojiEntry:
    """Immutable catalog record."""

    id: int
    symbol: str
    canonical_name: str
    keywords: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.id < 0:
            raise ValueError(f"Emoji entry id must be non-negative, got {self.id}")
        if not isinstance(self.keywords, tuple):
            object.__setattr__(self, "keywords", tuple(self.keywords))


def entries_from_triples(
    triples: Iterable[tuple[str, str, Sequence[str]]],
    *,
    start_id: int = 0,
) -> list[EmojiEntry]:
    """Assign positional ids to ``(symbol, canonical_name, keywords)`` triples."""

    return [
        EmojiEntry(id=entry_id, symbol=symbol, canonical_name=name, keywords=tuple(keywords))
        for entry_id, (symbol, name, keywords) in enumerate(triples, start=start_id)
    ]


def _load_json_object(path: Path) -> dict[str, Any]:
    try:
        payload = orjson.loads(Path(path).read_bytes())
    except orjson.JSONDecodeError as exc:
        raise CatalogFormatError(f"{path}: invalid JSON ({exc})") from exc
    if not isinstance(payload, dict):
        raise CatalogFormatError(f"{path}: expected a JSON object at the top level")
    return payload


def parse_catalog(payload: Mapping[str, Any]) -> list[EmojiEntry]:
    """Convert a ``{symbol: [name, keyword, ...]}`` mapping into entries.

    Entries are ordered by symbol so ids stay stable across loads of the same
    dataset regardless of JSON key order.
    """

    triples: list[tuple[str, str, list[str]]] = []
    for symbol in sorted(payload):
        values = payload[symbol]
        if not isinstance(values, list) or not values or not all(isinstance(v, str) for v in values):
            raise CatalogFormatError(f"Catalog entry for {symbol!r} must be a non-empty list of strings")
        triples.append((symbol, values[0], values[1:]))
    return entries_from_triples(triples)


def load_catalog_json(path: Path) -> list[EmojiEntry]:
    """Load catalog entries from a keyword dataset JSON file."""

    entries = parse_catalog(_load_json_object(path))
    logger.info("Loaded %d emoji entries from %s", len(entries), path)
    return entries


def load_pinned_json(path: Path) -> dict[str, str]:
    """Load a ``{keyword: symbol}`` table of curated most-relevant emoji."""

    payload = _load_json_object(path)
    pinned: dict[str, str] = {}
    for keyword, symbol in payload.items():
        if not isinstance(symbol, str):
            raise CatalogFormatError(f"Pinned emoji for {keyword!r} must be a string")
        pinned[keyword] = symbol
    return pinned


def extend_keywords(entries: Sequence[EmojiEntry], custom: Mapping[str, Sequence[str]]) -> list[EmojiEntry]:
    """Return entries with caller-supplied keywords appended after the built-in ones."""

    if not custom:
        return list(entries)

    known = {entry.symbol for entry in entries}
    for symbol in custom:
        if symbol not in known:
            logger.warning("Ignoring custom keywords for unknown emoji %r", symbol)

    extended: list[EmojiEntry] = []
    for entry in entries:
        extra = custom.get(entry.symbol)
        if extra:
            entry = replace(entry, keywords=(*entry.keywords, *extra))
        extended.append(entry)
    return extended


def load_word_ranks_json(path: Path) -> dict[str, int]:
    """Load a JSON array of words, most common first, as ``{word: rank}``.

    Ranks order prefix completions during search-as-you-type. Words are case
    folded; a repeated word keeps its first (most common) rank.
    """

    try:
        payload = orjson.loads(Path(path).read_bytes())
    except orjson.JSONDecodeError as exc:
        raise CatalogFormatError(f"{path}: invalid JSON ({exc})") from exc
    if not isinstance(payload, list) or not all(isinstance(word, str) for word in payload):
        raise CatalogFormatError(f"{path}: expected a JSON array of words")

    ranks: dict[str, int] = {}
    for rank, word in enumerate(payload):
        ranks.setdefault(word.casefold(), rank)
    return ranks
