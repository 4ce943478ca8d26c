"""Shared test fixtures and configuration."""

from pathlib import Path
import sys

import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from emoji_search.catalog import EmojiEntry  # noqa: E402
from emoji_search.search.indexer import build_index  # noqa: E402
from tests.fixtures.catalogs import BROKEN_HEART, RED_HEART, animal_catalog  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch):
    """Keep host environment variables from leaking into engine defaults."""
    monkeypatch.delenv("EMOJI_SEARCH_BUILD_WORKERS", raising=False)
    monkeypatch.delenv("EMOJI_SEARCH_DEFAULT_LIMIT", raising=False)


@pytest.fixture
def heart_entries():
    return [
        EmojiEntry(id=0, symbol=RED_HEART, canonical_name="red heart", keywords=("love", "heart")),
        EmojiEntry(id=1, symbol=BROKEN_HEART, canonical_name="broken heart", keywords=("heartbreak", "sad")),
    ]


@pytest.fixture
def heart_index(heart_entries):
    return build_index(heart_entries, workers=1)


@pytest.fixture
def animal_entries():
    return animal_catalog()


@pytest.fixture
def animal_index(animal_entries):
    return build_index(animal_entries, workers=1)
