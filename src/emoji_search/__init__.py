"""Keyword search over an emoji catalog with portable index snapshots."""

from emoji_search.catalog import (
    EmojiEntry,
    entries_from_triples,
    extend_keywords,
    load_catalog_json,
    load_pinned_json,
    load_word_ranks_json,
)
from emoji_search.config import IndexConfig, RankingConfig, Settings, TokenizerConfig, get_settings
from emoji_search.errors import (
    CatalogFormatError,
    ConfigMismatch,
    CorruptSnapshot,
    DuplicateEntryId,
    EmojiSearchError,
    EmptyCatalog,
    UnknownIndexHandle,
    VersionMismatch,
)
from emoji_search.search.analyzers import Tokenizer, tokenize
from emoji_search.search.engine import MAX_SCORE, EmojiSearchEngine, search
from emoji_search.search.indexer import build_index
from emoji_search.search.models import Posting, QueryResult, ScoredEntry, SearchIndex
from emoji_search.search.snapshot import FORMAT_VERSION, decode_snapshot, encode_snapshot, read_snapshot, write_snapshot


__all__ = [
    "FORMAT_VERSION",
    "MAX_SCORE",
    "CatalogFormatError",
    "ConfigMismatch",
    "CorruptSnapshot",
    "DuplicateEntryId",
    "EmojiEntry",
    "EmojiSearchEngine",
    "EmojiSearchError",
    "EmptyCatalog",
    "IndexConfig",
    "Posting",
    "QueryResult",
    "RankingConfig",
    "ScoredEntry",
    "SearchIndex",
    "Settings",
    "Tokenizer",
    "TokenizerConfig",
    "UnknownIndexHandle",
    "VersionMismatch",
    "build_index",
    "decode_snapshot",
    "encode_snapshot",
    "entries_from_triples",
    "extend_keywords",
    "get_settings",
    "load_catalog_json",
    "load_pinned_json",
    "load_word_ranks_json",
    "read_snapshot",
    "search",
    "tokenize",
    "write_snapshot",
]
