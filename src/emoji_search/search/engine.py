"""Query scoring over a built ``SearchIndex``.

Each distinct query token contributes ``field_weight * term_frequency * idf``
per posting. Tokens with no exact postings fall back to prefix completions,
ranked by word commonness before the expansion cap applies. Entries matched by
every token, pinned for a token, or holding a multi-word keyword that matches
the query as a phrase get multiplicative boosts.
"""

from __future__ import annotations

from bisect import bisect_left
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
import heapq
import logging
import sys

from emoji_search.catalog import EmojiEntry
from emoji_search.config import RankingConfig, TokenizerConfig
from emoji_search.errors import ConfigMismatch
from emoji_search.observability import SEARCH_LATENCY, create_span, track_latency
from emoji_search.search.analyzers import Tokenizer
from emoji_search.search.models import Posting, QueryResult, ScoredEntry, SearchIndex
from emoji_search.search.stats import calculate_idf


logger = logging.getLogger(__name__)

MAX_SCORE = sys.float_info.max
DEFAULT_LIMIT = 20

_VARIATION_SELECTOR = "\ufe0f"


@dataclass(frozen=True)
class QueryTokens:
    """Distinct query tokens in first-seen order."""

    tokens: tuple[str, ...]
    seed_text: str

    @classmethod
    def empty(cls) -> QueryTokens:
        return cls((), "")

    def is_empty(self) -> bool:
        return not self.tokens


@dataclass
class _Candidate:
    score: float = 0.0
    matched: list[str] | None = None
    pinned: bool = False

    def add(self, token: str, contribution: float) -> None:
        self.score += contribution
        if self.matched is None:
            self.matched = []
        self.matched.append(token)


class EmojiSearchEngine:
    """Rank catalog entries for free-text queries against one index."""

    def __init__(
        self,
        index: SearchIndex,
        ranking: RankingConfig | None = None,
        *,
        word_ranks: Mapping[str, int] | None = None,
    ) -> None:
        self.index = index
        self.ranking = ranking or RankingConfig()
        self.word_ranks: Mapping[str, int] = word_ranks or {}
        self.tokenizer = Tokenizer(index.config.tokenizer)
        self._phrases = _multi_word_phrases(index.entries, self.tokenizer)
        self._entries_by_id: dict[int, EmojiEntry] = {entry.id: entry for entry in index.entries}
        self._symbols = _symbol_lookup(index.entries)
        self._vocabulary: list[str] | None = None

    def _sorted_vocabulary(self) -> list[str]:
        if self._vocabulary is None:
            self._vocabulary = sorted(self.index.postings)
        return self._vocabulary

    def match_symbol(self, text: str) -> EmojiEntry | None:
        """Return the entry whose symbol equals ``text`` exactly, if any."""
        entry = self._symbols.get(text)
        if entry is None and _VARIATION_SELECTOR in text:
            entry = self._symbols.get(text.replace(_VARIATION_SELECTOR, ""))
        return entry

    def tokenize_query(self, seed_text: str) -> QueryTokens:
        normalized_seed = seed_text.strip()
        if not normalized_seed:
            return QueryTokens.empty()

        seen: set[str] = set()
        tokens: list[str] = []
        for token in self.tokenizer.tokenize(normalized_seed):
            if token in seen:
                continue
            seen.add(token)
            tokens.append(token)
        return QueryTokens(tuple(tokens), normalized_seed)

    def _prefix_expansions(self, token: str) -> list[str]:
        """Return at most ``max_prefix_expansions`` completions of ``token``.

        Every vocabulary token sharing the prefix is a candidate. Candidates are
        ordered by word commonness (``word_ranks``, then document frequency),
        with shorter completions first on ties, before the cap is applied.
        """
        vocabulary = self._sorted_vocabulary()
        start = bisect_left(vocabulary, token)
        end = start
        while end < len(vocabulary) and vocabulary[end].startswith(token):
            end += 1
        if end - start <= self.ranking.max_prefix_expansions:
            return vocabulary[start:end]

        unranked = len(self.word_ranks)

        def commonness(term: str) -> tuple[int, int, int, str]:
            return (
                self.word_ranks.get(term, unranked),
                -self.index.document_frequency.get(term, 0),
                len(term),
                term,
            )

        return heapq.nsmallest(self.ranking.max_prefix_expansions, vocabulary[start:end], key=commonness)

    def _contribution(self, token: str, posting: Posting) -> float:
        idf = calculate_idf(self.index.document_frequency.get(token, 0), self.index.entry_count)
        return posting.field_weight * posting.term_frequency * idf

    def _accumulate(self, token: str, candidates: dict[int, _Candidate]) -> None:
        postings = self.index.get_postings(token)
        if postings:
            pinned_id = self.index.pinned.get(token)
            for posting in postings:
                candidate = candidates.setdefault(posting.entry_id, _Candidate())
                candidate.add(token, self._contribution(token, posting))
                if posting.entry_id == pinned_id:
                    candidate.pinned = True
            return

        if not self.ranking.prefix_matching:
            return

        # Each entry keeps only its best expansion for this token
        best: dict[int, float] = {}
        for term in self._prefix_expansions(token):
            for posting in self.index.get_postings(term):
                contribution = self._contribution(term, posting) * self.ranking.prefix_discount
                if contribution > best.get(posting.entry_id, 0.0):
                    best[posting.entry_id] = contribution
        for entry_id, contribution in best.items():
            candidates.setdefault(entry_id, _Candidate()).add(token, contribution)

    def phrase_multiplier(self, entry_id: int, query_phrase: str) -> float:
        """Boost for an entry whose multi-word keyword matches ``query_phrase``.

        An exact phrase earns ``phrase_bonus``; the query appearing in order at
        a word boundary inside a longer keyword earns ``partial_phrase_bonus``.
        """
        multiplier = 1.0
        for phrase in self._phrases.get(entry_id, ()):
            if phrase == query_phrase:
                multiplier = max(multiplier, self.ranking.phrase_bonus)
            elif phrase.startswith(query_phrase) or f" {query_phrase}" in phrase:
                multiplier = max(multiplier, self.ranking.partial_phrase_bonus)
        return multiplier

    def score(self, query_tokens: QueryTokens, *, limit: int) -> list[ScoredEntry]:
        """Return ranked matches for tokenized query terms."""

        if query_tokens.is_empty():
            return []

        candidates: dict[int, _Candidate] = {}
        for token in query_tokens.tokens:
            self._accumulate(token, candidates)

        token_count = len(query_tokens.tokens)
        query_phrase = " ".join(query_tokens.tokens) if token_count > 1 else ""
        ranked: list[ScoredEntry] = []
        for entry_id, candidate in candidates.items():
            matched = tuple(candidate.matched or ())
            full_coverage = len(matched) == token_count
            score = candidate.score
            if full_coverage:
                score *= self.ranking.full_match_bonus
            if candidate.pinned:
                score *= self.ranking.pinned_bonus
            if query_phrase:
                score *= self.phrase_multiplier(entry_id, query_phrase)
            ranked.append(
                ScoredEntry(
                    entry=self._entries_by_id[entry_id],
                    score=score,
                    matched_tokens=matched,
                    full_coverage=full_coverage,
                )
            )

        def sort_key(match: ScoredEntry) -> tuple[float, int]:
            return (-match.score, match.entry.id)

        if 0 < limit < len(ranked):
            return heapq.nsmallest(limit, ranked, key=sort_key)
        return sorted(ranked, key=sort_key)

    def search(self, query: str, limit: int = DEFAULT_LIMIT) -> QueryResult:
        if limit < 0:
            raise ValueError(f"limit must be non-negative, got {limit}")

        trimmed = (query or "").strip()
        if not trimmed:
            return QueryResult.empty()

        entry = self.match_symbol(trimmed)
        if entry is not None:
            return QueryResult((ScoredEntry(entry=entry, score=MAX_SCORE, full_coverage=True),))

        query_tokens = self.tokenize_query(trimmed)
        return QueryResult(tuple(self.score(query_tokens, limit=limit)))


def _symbol_lookup(entries: Sequence[EmojiEntry]) -> Mapping[str, EmojiEntry]:
    lookup: dict[str, EmojiEntry] = {}
    # Exact symbols win over variation-selector-stripped aliases
    for entry in entries:
        bare = entry.symbol.replace(_VARIATION_SELECTOR, "")
        if bare and bare != entry.symbol:
            lookup.setdefault(bare, entry)
    for entry in entries:
        lookup[entry.symbol] = entry
    return lookup


def _multi_word_phrases(entries: Sequence[EmojiEntry], tokenizer: Tokenizer) -> dict[int, tuple[str, ...]]:
    """Normalized multi-word names and keywords per entry, words joined by one space."""

    phrases: dict[int, tuple[str, ...]] = {}
    for entry in entries:
        found: list[str] = []
        for text in (entry.canonical_name, *entry.keywords):
            tokens = tokenizer(text)
            if len(tokens) > 1:
                found.append(" ".join(tokens))
        if found:
            phrases[entry.id] = tuple(dict.fromkeys(found))
    return phrases


def search(
    index: SearchIndex,
    query: str,
    limit: int = DEFAULT_LIMIT,
    *,
    tokenizer_config: TokenizerConfig | None = None,
    ranking: RankingConfig | None = None,
    word_ranks: Mapping[str, int] | None = None,
) -> QueryResult:
    """Search ``index`` for ``query`` and return at most ``limit`` matches.

    ``limit == 0`` returns every match. When ``tokenizer_config`` is given it
    must equal the config the index was built with.

    This is a one-shot convenience: every call builds a fresh
    ``EmojiSearchEngine``, which indexes symbols and phrases in O(entries).
    Callers issuing many queries should build one engine and pass it to
    ``run_query`` (the handle registry does this for the binding).

    Raises:
        ConfigMismatch: ``tokenizer_config`` differs from the index's tokenizer.
        ValueError: ``limit`` is negative.
    """

    if tokenizer_config is not None and tokenizer_config != index.config.tokenizer:
        raise ConfigMismatch(index.config.tokenizer, tokenizer_config)

    engine = EmojiSearchEngine(index, ranking, word_ranks=word_ranks)
    return run_query(engine, query, limit)


def run_query(engine: EmojiSearchEngine, query: str, limit: int = DEFAULT_LIMIT) -> QueryResult:
    """Run one query through ``engine`` with tracing and latency metrics."""

    with create_span("emoji_search.query", attributes={"search.query": (query or "")[:100], "search.limit": limit}) as span:
        with track_latency(SEARCH_LATENCY, path="query"):
            result = engine.search(query, limit)
        span.set_attribute("search.result_count", len(result))
        logger.debug("Query %r matched %d entries", query, len(result))
        return result
