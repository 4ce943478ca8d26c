"""Plain-data boundary for foreign callers.

Everything crossing this boundary is a string, a byte buffer, a number, or an
opaque integer index handle. ``EmojiSearchBinding`` owns the handle registry;
the module-level functions delegate to a process-wide default binding.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
import logging
import threading

from emoji_search.catalog import entries_from_triples
from emoji_search.config import IndexConfig, RankingConfig, Settings, get_settings
from emoji_search.errors import EmojiSearchError
from emoji_search.observability import configure_logging, index_handle_context
from emoji_search.registry import IndexRegistry
from emoji_search.search.engine import run_query
from emoji_search.search.indexer import build_index as build_search_index
from emoji_search.search.snapshot import decode_snapshot, encode_snapshot


logger = logging.getLogger(__name__)

CatalogTriple = tuple[str, str, Sequence[str]]
SearchHit = tuple[str, str, float]


class EmojiSearchBinding:
    """Build, load and query indexes through plain data."""

    def __init__(
        self,
        *,
        index_config: IndexConfig | None = None,
        ranking: RankingConfig | None = None,
        settings: Settings | None = None,
        word_ranks: Mapping[str, int] | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.index_config = index_config or self.settings.index_config()
        self.registry = IndexRegistry(ranking or self.settings.ranking_config(), word_ranks=word_ranks)

    def configure_logging(self, logger_levels: Mapping[str, str] | None = None) -> None:
        """Install root log handlers from ``settings.log_level`` and ``settings.log_json``.

        Hosts that already own logging configuration should skip this call.
        """
        configure_logging(
            level=self.settings.log_level,
            json_output=self.settings.log_json,
            logger_levels=dict(logger_levels) if logger_levels else None,
        )
        logger.debug("Logging configured at level %s", self.settings.log_level)

    def build_index(
        self,
        catalog: Iterable[CatalogTriple],
        *,
        pinned: Mapping[str, str] | None = None,
    ) -> bytes:
        """Build an index from ``(symbol, name, keywords)`` triples and return its snapshot."""
        entries = entries_from_triples(catalog)
        try:
            index = build_search_index(
                entries,
                self.index_config,
                pinned=pinned,
                workers=self.settings.build_workers,
            )
        except EmojiSearchError as exc:
            logger.warning("Index build failed: %s", exc, extra={"error_type": type(exc).__name__})
            raise
        return encode_snapshot(index)

    def load_index(self, snapshot: bytes) -> int:
        """Decode ``snapshot`` and return a handle to the loaded index."""
        return self.registry.register(decode_snapshot(snapshot))

    def reload_index(self, handle: int, snapshot: bytes) -> None:
        """Replace the index behind ``handle``; a failed decode leaves it untouched."""
        self.registry.replace(handle, decode_snapshot(snapshot))

    def release_index(self, handle: int) -> None:
        self.registry.release(handle)

    def search(self, handle: int, query: str, limit: int | None = None) -> list[SearchHit]:
        """Return ``(symbol, canonical_name, score)`` for the best matches."""
        engine = self.registry.engine(handle)
        effective_limit = self.settings.default_limit if limit is None else limit
        with index_handle_context(handle):
            result = run_query(engine, query, effective_limit)
        return [(match.entry.symbol, match.entry.canonical_name, float(match.score)) for match in result]


_default_binding: dict[str, EmojiSearchBinding | None] = {"binding": None}
_default_binding_lock = threading.Lock()


def get_binding() -> EmojiSearchBinding:
    """Return the process-wide binding, creating it exactly once on first use."""
    binding = _default_binding["binding"]
    if binding is None:
        with _default_binding_lock:
            binding = _default_binding["binding"]
            if binding is None:
                binding = EmojiSearchBinding()
                _default_binding["binding"] = binding
    return binding


def build_index(catalog: Iterable[CatalogTriple], *, pinned: Mapping[str, str] | None = None) -> bytes:
    return get_binding().build_index(catalog, pinned=pinned)


def load_index(snapshot: bytes) -> int:
    return get_binding().load_index(snapshot)


def reload_index(handle: int, snapshot: bytes) -> None:
    get_binding().reload_index(handle, snapshot)


def release_index(handle: int) -> None:
    get_binding().release_index(handle)


def search(handle: int, query: str, limit: int | None = None) -> list[SearchHit]:
    return get_binding().search(handle, query, limit)
