"""Statistical helpers for scoring.

The functions here stay independent of how the index was produced (built or
decoded from a snapshot) so they can be unit tested on their own.
"""

from __future__ import annotations

from dataclasses import dataclass
import math

from emoji_search.search.models import SearchIndex


@dataclass(frozen=True)
class IndexStats:
    """Aggregate shape of a built index, used for logging and metrics."""

    entry_count: int
    token_count: int
    posting_count: int
    pinned_count: int

    @property
    def average_postings_per_token(self) -> float:
        if self.token_count == 0:
            return 0.0
        return self.posting_count / self.token_count


def calculate_idf(document_frequency: int, entry_count: int) -> float:
    """Return ``ln(1 + entry_count / document_frequency)``.

    Rarer tokens score higher. A token with no postings contributes nothing.
    """

    if document_frequency <= 0 or entry_count <= 0:
        return 0.0
    return math.log1p(entry_count / document_frequency)


def keyword_weight_at(position: int, keyword_weight: float, position_decay: float) -> float:
    """Weight of a keyword at ``position`` in the curated keyword order."""

    return keyword_weight / (1.0 + position * position_decay)


def compute_index_stats(index: SearchIndex) -> IndexStats:
    return IndexStats(
        entry_count=index.entry_count,
        token_count=len(index.postings),
        posting_count=sum(len(postings) for postings in index.postings.values()),
        pinned_count=len(index.pinned),
    )
