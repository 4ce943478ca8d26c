"""Configuration models for emoji-search using Pydantic.

Three frozen models describe how an index is built and queried:

- ``TokenizerConfig``: text normalization rules, recorded in every index
- ``IndexConfig``: tokenizer plus field weights used at build time
- ``RankingConfig``: query-time scoring knobs

``Settings`` loads process defaults from ``EMOJI_SEARCH_*`` environment
variables (or a ``.env`` file) and materializes the models above.
"""

from __future__ import annotations

from functools import lru_cache
import os
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TokenizerConfig(BaseModel):
    """Normalization options shared by index build and query tokenization."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    include_numeric_tokens: bool = Field(default=True, description="Keep purely numeric tokens such as '100'")
    fold_diacritics: bool = Field(default=False, description="Strip combining marks after NFKD decomposition")


class IndexConfig(BaseModel):
    """Build-time parameters; serialized into every snapshot."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    tokenizer: TokenizerConfig = Field(default_factory=TokenizerConfig)

    name_weight: Annotated[
        float,
        Field(gt=0.0, description="Weight of tokens taken from the canonical name"),
    ] = 3.0

    keyword_weight: Annotated[
        float,
        Field(gt=0.0, description="Weight of the first keyword before position decay"),
    ] = 2.0

    position_decay: Annotated[
        float,
        Field(ge=0.0, description="Keyword at position p weighs keyword_weight / (1 + p * position_decay)"),
    ] = 0.1


class RankingConfig(BaseModel):
    """Query-time scoring parameters."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    full_match_bonus: Annotated[
        float,
        Field(ge=1.0, description="Multiplier for entries matched by every query token"),
    ] = 1.5

    prefix_matching: bool = Field(
        default=True,
        description="Expand query tokens with no exact postings to indexed tokens sharing the prefix",
    )

    prefix_discount: Annotated[
        float,
        Field(gt=0.0, le=1.0, description="Multiplier applied to prefix-expanded contributions"),
    ] = 0.5

    max_prefix_expansions: Annotated[
        int,
        Field(ge=1, description="Maximum indexed tokens considered per prefix expansion"),
    ] = 64

    pinned_bonus: Annotated[
        float,
        Field(ge=1.0, description="Multiplier when a query token is pinned to the entry"),
    ] = 2.0

    phrase_bonus: Annotated[
        float,
        Field(ge=1.0, description="Multiplier when a multi-word query equals one of the entry's multi-word keywords"),
    ] = 2.0

    partial_phrase_bonus: Annotated[
        float,
        Field(ge=1.0, description="Multiplier when a multi-word query appears in order inside a multi-word keyword"),
    ] = 1.25


class Settings(BaseSettings):
    """Process-level defaults loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="EMOJI_SEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    build_workers: int = Field(
        default_factory=lambda: min(8, os.cpu_count() or 1),
        ge=1,
        description="Worker threads used for the per-entry build step",
    )
    default_limit: int = Field(default=20, ge=0, description="Result limit when callers do not pass one")

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    log_json: bool = Field(default=True, description="Emit structured JSON logs")

    # Tokenizer
    include_numeric_tokens: bool = Field(default=True)
    fold_diacritics: bool = Field(default=False)

    # Index weights
    name_weight: float = Field(default=3.0, gt=0.0)
    keyword_weight: float = Field(default=2.0, gt=0.0)
    position_decay: float = Field(default=0.1, ge=0.0)

    # Ranking
    full_match_bonus: float = Field(default=1.5, ge=1.0)
    prefix_matching: bool = Field(default=True)
    prefix_discount: float = Field(default=0.5, gt=0.0, le=1.0)
    max_prefix_expansions: int = Field(default=64, ge=1)
    pinned_bonus: float = Field(default=2.0, ge=1.0)
    phrase_bonus: float = Field(default=2.0, ge=1.0)
    partial_phrase_bonus: float = Field(default=1.25, ge=1.0)

    def tokenizer_config(self) -> TokenizerConfig:
        return TokenizerConfig(
            include_numeric_tokens=self.include_numeric_tokens,
            fold_diacritics=self.fold_diacritics,
        )

    def index_config(self) -> IndexConfig:
        """Build the index configuration described by these settings."""
        return IndexConfig(
            tokenizer=self.tokenizer_config(),
            name_weight=self.name_weight,
            keyword_weight=self.keyword_weight,
            position_decay=self.position_decay,
        )

    def ranking_config(self) -> RankingConfig:
        """Build the ranking configuration described by these settings."""
        return RankingConfig(
            full_match_bonus=self.full_match_bonus,
            prefix_matching=self.prefix_matching,
            prefix_discount=self.prefix_discount,
            max_prefix_expansions=self.max_prefix_expansions,
            pinned_bonus=self.pinned_bonus,
            phrase_bonus=self.phrase_bonus,
            partial_phrase_bonus=self.partial_phrase_bonus,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return process settings, loading them on first use."""
    return Settings()
