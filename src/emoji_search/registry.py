"""Handle registry for loaded indexes.

Callers outside Python never hold references to index objects; they receive an
integer handle into this table. Each slot holds a ready-to-query
``EmojiSearchEngine``. Replacing a slot swaps the engine reference in one
assignment, so readers see either the previous complete index or the new one.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import itertools
import logging
import threading

from emoji_search.config import RankingConfig
from emoji_search.errors import UnknownIndexHandle
from emoji_search.observability import REGISTERED_INDEXES
from emoji_search.search.engine import EmojiSearchEngine
from emoji_search.search.models import SearchIndex
from emoji_search.search.stats import compute_index_stats


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexMetadata:
    """Summary of a registered index, suitable for diagnostics."""

    handle: int
    entry_count: int
    token_count: int
    generation: int


class IndexRegistry:
    """Arena-style table mapping integer handles to loaded indexes."""

    def __init__(
        self,
        ranking: RankingConfig | None = None,
        *,
        word_ranks: Mapping[str, int] | None = None,
    ) -> None:
        self.ranking = ranking or RankingConfig()
        self.word_ranks = word_ranks
        self._engines: dict[int, EmojiSearchEngine] = {}
        self._generations: dict[int, int] = {}
        self._next_handle = itertools.count(1)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._engines)

    def __contains__(self, handle: object) -> bool:
        return handle in self._engines

    def register(self, index: SearchIndex) -> int:
        """Store ``index`` and return its new handle."""
        engine = EmojiSearchEngine(index, self.ranking, word_ranks=self.word_ranks)
        with self._lock:
            handle = next(self._next_handle)
            self._engines[handle] = engine
            self._generations[handle] = 1
            REGISTERED_INDEXES.set(len(self._engines))
        logger.info("Registered emoji index handle %d (%d entries)", handle, index.entry_count)
        return handle

    def replace(self, handle: int, index: SearchIndex) -> None:
        """Atomically publish ``index`` under an existing handle."""
        engine = EmojiSearchEngine(index, self.ranking, word_ranks=self.word_ranks)
        with self._lock:
            if handle not in self._engines:
                raise UnknownIndexHandle(handle)
            self._engines[handle] = engine
            self._generations[handle] += 1
            generation = self._generations[handle]
        logger.info("Swapped emoji index handle %d to generation %d", handle, generation)

    def engine(self, handle: int) -> EmojiSearchEngine:
        """Return the engine currently published under ``handle``."""
        try:
            return self._engines[handle]
        except KeyError:
            raise UnknownIndexHandle(handle) from None

    def get(self, handle: int) -> SearchIndex:
        return self.engine(handle).index

    def release(self, handle: int) -> None:
        """Drop the index stored under ``handle``."""
        with self._lock:
            if self._engines.pop(handle, None) is None:
                raise UnknownIndexHandle(handle)
            self._generations.pop(handle, None)
            REGISTERED_INDEXES.set(len(self._engines))
        logger.info("Released emoji index handle %d", handle)

    def metadata(self, handle: int) -> IndexMetadata:
        engine = self.engine(handle)
        stats = compute_index_stats(engine.index)
        return IndexMetadata(
            handle=handle,
            entry_count=stats.entry_count,
            token_count=stats.token_count,
            generation=self._generations.get(handle, 0),
        )
