"""Tokenizer pipeline for emoji names and keywords.

Follows a composable tokenizer/filter design: a splitter yields raw pieces and
a chain of filters normalizes them. Tokens are plain strings; equality is
exact string equality after normalization.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
import re
from typing import Protocol
import unicodedata

from emoji_search.config import TokenizerConfig


_SPLIT_PATTERN = re.compile(r"[\s\-_/,:]+", re.UNICODE)
_STRIP_PATTERN = re.compile(r"[\"“”;().!?]+")


class TokenSplitter(Protocol):
    """Protocol implemented by splitters."""

    def __call__(self, text: str) -> Iterator[str]:  # pragma: no cover - interface definition
        ...


class TokenFilter(Protocol):
    """Protocol implemented by token filters."""

    def __call__(self, tokens: Iterable[str]) -> Iterator[str]:  # pragma: no cover - interface definition
        ...


class SeparatorSplitter:
    """Split on Unicode whitespace and the separator punctuation ``- _ / , :``."""

    def __call__(self, text: str) -> Iterator[str]:
        for piece in _SPLIT_PATTERN.split(text):
            if piece:
                yield piece


class PunctuationFilter:
    """Remove quote and sentence punctuation and normalize typographic apostrophes."""

    def __call__(self, tokens: Iterable[str]) -> Iterator[str]:
        for token in tokens:
            yield _STRIP_PATTERN.sub("", token).replace("’", "'")


class CaseFoldFilter:
    """Apply full Unicode case folding."""

    def __call__(self, tokens: Iterable[str]) -> Iterator[str]:
        for token in tokens:
            yield token.casefold()


class DiacriticFoldFilter:
    """Decompose (NFKD) and drop combining marks, so 'café' becomes 'cafe'."""

    def __call__(self, tokens: Iterable[str]) -> Iterator[str]:
        for token in tokens:
            if token.isascii():
                yield token
                continue
            decomposed = unicodedata.normalize("NFKD", token)
            yield "".join(ch for ch in decomposed if not unicodedata.combining(ch))


class MinLengthFilter:
    """Drop tokens shorter than ``min_length`` codepoints."""

    def __init__(self, min_length: int = 1) -> None:
        self.min_length = min_length

    def __call__(self, tokens: Iterable[str]) -> Iterator[str]:
        for token in tokens:
            if len(token) >= self.min_length:
                yield token


class NumericFilter:
    """Drop purely numeric tokens."""

    def __call__(self, tokens: Iterable[str]) -> Iterator[str]:
        for token in tokens:
            if not token.isnumeric():
                yield token


class TokenStream:
    """Lazy, restartable sequence of tokens for one input text.

    Each iteration re-runs the pipeline over the original text, so a stream can
    be consumed any number of times with identical results.
    """

    __slots__ = ("_run", "_text")

    def __init__(self, text: str, run: Callable[[str], Iterator[str]]) -> None:
        self._text = text
        self._run = run

    def __iter__(self) -> Iterator[str]:
        return self._run(self._text)

    def __repr__(self) -> str:
        return f"TokenStream({self._text!r})"


class Tokenizer:
    """Splitter plus filter chain built from a ``TokenizerConfig``."""

    def __init__(self, config: TokenizerConfig | None = None) -> None:
        self.config = config or TokenizerConfig()
        self.splitter: TokenSplitter = SeparatorSplitter()
        self.filters: Sequence[TokenFilter] = _build_filters(self.config)

    def _run(self, text: str) -> Iterator[str]:
        stream: Iterable[str] = self.splitter(text)
        for token_filter in self.filters:
            stream = token_filter(stream)
        yield from stream

    def tokenize(self, text: str) -> TokenStream:
        """Return the normalized tokens of ``text``; never fails."""
        return TokenStream(text or "", self._run)

    def __call__(self, text: str) -> list[str]:
        return list(self._run(text or ""))


def _build_filters(config: TokenizerConfig) -> list[TokenFilter]:
    filters: list[TokenFilter] = [PunctuationFilter(), CaseFoldFilter()]
    if config.fold_diacritics:
        filters.append(DiacriticFoldFilter())
    filters.append(MinLengthFilter(1))
    if not config.include_numeric_tokens:
        filters.append(NumericFilter())
    return filters


def tokenize(text: str, config: TokenizerConfig | None = None) -> TokenStream:
    """Tokenize ``text`` with a tokenizer built from ``config``."""

    return Tokenizer(config).tokenize(text)
