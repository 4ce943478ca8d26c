"""Index construction for the emoji catalog.

The build is a fork-join: entries are partitioned into chunks that worker
threads analyze independently (each worker returns its own per-entry token
table, nothing is shared), then a single sequential reduce merges the tables
in entry id order. Tokens are emitted sorted, so the resulting
``SearchIndex`` and its snapshot bytes do not depend on worker scheduling.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
import logging

from emoji_search.catalog import EmojiEntry
from emoji_search.config import IndexConfig, get_settings
from emoji_search.errors import DuplicateEntryId, EmptyCatalog
from emoji_search.observability import INDEX_BUILD_LATENCY, create_span, track_latency
from emoji_search.search.analyzers import Tokenizer
from emoji_search.search.models import Posting, SearchIndex
from emoji_search.search.stats import compute_index_stats, keyword_weight_at


logger = logging.getLogger(__name__)

_MIN_CHUNK_SIZE = 64


@dataclass(frozen=True, slots=True)
class EntryTerms:
    """Per-entry analysis result: token -> (strongest field weight, term frequency)."""

    entry_id: int
    terms: Mapping[str, tuple[float, int]]


class EntryAnalyzer:
    """Tokenize and weight the text fields of a single entry."""

    def __init__(self, config: IndexConfig) -> None:
        self.config = config
        self.tokenizer = Tokenizer(config.tokenizer)

    def analyze(self, entry: EmojiEntry) -> EntryTerms:
        terms: dict[str, tuple[float, int]] = {}

        def add(token: str, weight: float) -> None:
            best, count = terms.get(token, (0.0, 0))
            terms[token] = (max(best, weight), count + 1)

        for token in self.tokenizer.tokenize(entry.canonical_name):
            add(token, self.config.name_weight)

        for position, keyword in enumerate(entry.keywords):
            weight = keyword_weight_at(position, self.config.keyword_weight, self.config.position_decay)
            for token in self.tokenizer.tokenize(keyword):
                add(token, weight)

        return EntryTerms(entry_id=entry.id, terms=terms)

    def analyze_chunk(self, entries: Sequence[EmojiEntry]) -> list[EntryTerms]:
        return [self.analyze(entry) for entry in entries]


def _validate_catalog(catalog: Sequence[EmojiEntry]) -> list[EmojiEntry]:
    if not catalog:
        raise EmptyCatalog()
    seen: set[int] = set()
    for entry in catalog:
        if entry.id in seen:
            raise DuplicateEntryId(entry.id)
        seen.add(entry.id)
    return sorted(catalog, key=lambda entry: entry.id)


def _chunk(entries: Sequence[EmojiEntry], workers: int) -> list[Sequence[EmojiEntry]]:
    size = max(_MIN_CHUNK_SIZE, -(-len(entries) // workers))
    return [entries[i : i + size] for i in range(0, len(entries), size)]


def _analyze_parallel(entries: Sequence[EmojiEntry], analyzer: EntryAnalyzer, workers: int) -> list[EntryTerms]:
    chunks = _chunk(entries, workers)
    if workers <= 1 or len(chunks) == 1:
        return analyzer.analyze_chunk(entries)

    results: list[EntryTerms] = []
    with ThreadPoolExecutor(max_workers=min(workers, len(chunks)), thread_name_prefix="emoji-index") as executor:
        # map() yields in submission order, keeping the merge input ordered by id
        for chunk_terms in executor.map(analyzer.analyze_chunk, chunks):
            results.extend(chunk_terms)
    return results


def _merge(analyzed: Sequence[EntryTerms]) -> tuple[dict[str, tuple[Posting, ...]], dict[str, int]]:
    """Reduce per-entry term tables into sorted posting lists."""

    merged: dict[str, list[Posting]] = {}
    for entry_terms in analyzed:
        for token in sorted(entry_terms.terms):
            weight, frequency = entry_terms.terms[token]
            merged.setdefault(token, []).append(
                Posting(entry_id=entry_terms.entry_id, field_weight=weight, term_frequency=frequency)
            )

    postings = {token: tuple(merged[token]) for token in sorted(merged)}
    document_frequency = {token: len(entries) for token, entries in postings.items()}
    return postings, document_frequency


def _resolve_pinned(
    pinned: Mapping[str, str] | None,
    entries: Sequence[EmojiEntry],
    tokenizer: Tokenizer,
) -> dict[str, int]:
    if not pinned:
        return {}

    ids_by_symbol = {entry.symbol: entry.id for entry in entries}
    resolved: dict[str, int] = {}
    for keyword in sorted(pinned):
        symbol = pinned[keyword]
        entry_id = ids_by_symbol.get(symbol)
        if entry_id is None:
            logger.warning("Skipping pinned keyword %r: emoji %r is not in the catalog", keyword, symbol)
            continue
        tokens = tokenizer(keyword)
        if len(tokens) != 1:
            logger.warning("Skipping pinned keyword %r: expected a single token, got %d", keyword, len(tokens))
            continue
        resolved[tokens[0]] = entry_id
    return dict(sorted(resolved.items()))


def build_index(
    catalog: Sequence[EmojiEntry],
    config: IndexConfig | None = None,
    *,
    pinned: Mapping[str, str] | None = None,
    workers: int | None = None,
) -> SearchIndex:
    """Build a ``SearchIndex`` from catalog entries.

    Args:
        catalog: Entries to index; ids must be unique.
        config: Tokenizer and weighting parameters. Defaults to ``IndexConfig()``.
        pinned: Optional ``{keyword: symbol}`` table of curated most-relevant emoji.
        workers: Threads for the per-entry analysis step. Defaults to settings.

    Raises:
        EmptyCatalog: ``catalog`` has no entries.
        DuplicateEntryId: two entries share an id.
    """

    config = config or IndexConfig()
    workers = workers if workers is not None else get_settings().build_workers

    with (
        create_span("emoji_index.build", attributes={"index.entries": len(catalog), "index.workers": workers}) as span,
        track_latency(INDEX_BUILD_LATENCY),
    ):
        entries = _validate_catalog(catalog)
        analyzer = EntryAnalyzer(config)
        analyzed = _analyze_parallel(entries, analyzer, max(1, workers))
        postings, document_frequency = _merge(analyzed)

        index = SearchIndex(
            config=config,
            entries=tuple(entries),
            postings=postings,
            document_frequency=document_frequency,
            pinned=_resolve_pinned(pinned, entries, analyzer.tokenizer),
        )

        stats = compute_index_stats(index)
        span.set_attribute("index.tokens", stats.token_count)
        logger.info(
            "Built emoji index with %d entries and %d tokens",
            stats.entry_count,
            stats.token_count,
            extra={"postings": stats.posting_count, "pinned": stats.pinned_count},
        )
        return index
