"""Unit tests for the plain-data binding surface."""

import logging
import threading
import time

import pytest

from emoji_search import api
from emoji_search.api import EmojiSearchBinding
from emoji_search.catalog import EmojiEntry
from emoji_search.config import Settings
from emoji_search.errors import CorruptSnapshot, DuplicateEntryId, EmptyCatalog, UnknownIndexHandle, VersionMismatch
from emoji_search.observability import JsonFormatter, get_trace_context, set_trace_context
from emoji_search.search.engine import MAX_SCORE
from emoji_search.search.indexer import build_index
from tests.fixtures.catalogs import BROKEN_HEART, CAT, DOG, RED_HEART


CATALOG = [
    (RED_HEART, "red heart", ["love", "heart"]),
    (BROKEN_HEART, "broken heart", ["heartbreak", "sad"]),
    (DOG, "dog", ["pet", "animal"]),
    (CAT, "cat", ["pet", "animal"]),
]


@pytest.fixture
def binding():
    return EmojiSearchBinding(settings=Settings(build_workers=2, default_limit=3))


@pytest.mark.unit
class TestBinding:
    def test_build_load_search(self, binding):
        handle = binding.load_index(binding.build_index(CATALOG))
        hits = binding.search(handle, "heart")
        assert [symbol for symbol, _, _ in hits] == [RED_HEART, BROKEN_HEART]
        symbol, name, score = hits[0]
        assert name == "red heart"
        assert isinstance(score, float)

    def test_build_returns_bytes(self, binding):
        assert isinstance(binding.build_index(CATALOG), bytes)

    def test_default_limit_from_settings(self, binding):
        handle = binding.load_index(binding.build_index(CATALOG))
        assert len(binding.search(handle, "pet heart")) == 3
        assert len(binding.search(handle, "pet heart", limit=0)) == 4

    def test_symbol_query(self, binding):
        handle = binding.load_index(binding.build_index(CATALOG))
        assert binding.search(handle, CAT) == [(CAT, "cat", MAX_SCORE)]

    def test_pinned_keywords(self, binding):
        handle = binding.load_index(binding.build_index(CATALOG, pinned={"pet": CAT}))
        assert binding.search(handle, "pet")[0][0] == CAT

    def test_empty_catalog(self, binding):
        with pytest.raises(EmptyCatalog):
            binding.build_index([])

    def test_unknown_handle(self, binding):
        with pytest.raises(UnknownIndexHandle):
            binding.search(99, "heart")

    def test_bad_snapshot(self, binding):
        with pytest.raises(CorruptSnapshot):
            binding.load_index(b"\x01\x00\x00\x00garbage")
        with pytest.raises(VersionMismatch):
            binding.load_index(b"\x07\x00\x00\x00")

    def test_reload_swaps_index(self, binding):
        handle = binding.load_index(binding.build_index(CATALOG))
        binding.reload_index(handle, binding.build_index([(DOG, "dog", ["heart"])]))
        assert [hit[0] for hit in binding.search(handle, "heart")] == [DOG]

    def test_failed_reload_keeps_previous_index(self, binding):
        handle = binding.load_index(binding.build_index(CATALOG))
        with pytest.raises(CorruptSnapshot):
            binding.reload_index(handle, b"\x01\x00\x00\x00")
        assert binding.search(handle, "dog")[0][0] == DOG

    def test_release(self, binding):
        handle = binding.load_index(binding.build_index(CATALOG))
        binding.release_index(handle)
        with pytest.raises(UnknownIndexHandle):
            binding.search(handle, "dog")

    def test_negative_limit(self, binding):
        handle = binding.load_index(binding.build_index(CATALOG))
        with pytest.raises(ValueError):
            binding.search(handle, "dog", limit=-2)


@pytest.mark.unit
def test_module_level_functions(monkeypatch):
    monkeypatch.setitem(api._default_binding, "binding", EmojiSearchBinding(settings=Settings(build_workers=1)))
    handle = api.load_index(api.build_index(CATALOG))
    assert api.search(handle, "dog")[0][:2] == (DOG, "dog")
    api.reload_index(handle, api.build_index(CATALOG[:1]))
    assert api.search(handle, "dog") == []
    api.release_index(handle)
    with pytest.raises(UnknownIndexHandle):
        api.search(handle, "dog")


@pytest.mark.unit
def test_duplicate_entry_ids_surface_from_direct_builds():
    with pytest.raises(DuplicateEntryId):
        build_index([EmojiEntry(id=0, symbol=DOG, canonical_name="dog")] * 2, workers=1)


@pytest.mark.unit
def test_search_does_not_leak_index_handle_into_caller_context(binding):
    handle = binding.load_index(binding.build_index(CATALOG))
    set_trace_context("ab" * 16, "cd" * 8)
    binding.search(handle, "dog")
    ctx = get_trace_context()
    assert "index_handle" not in ctx
    assert ctx["trace_id"] == "ab" * 16


@pytest.mark.unit
def test_symbol_score_is_finite(binding):
    handle = binding.load_index(binding.build_index(CATALOG))
    (_, _, score) = binding.search(handle, DOG)[0]
    assert score == MAX_SCORE
    assert score != float("inf")


@pytest.mark.unit
def test_default_binding_is_created_once_under_concurrency(monkeypatch):
    class SlowBinding:
        def __init__(self):
            time.sleep(0.05)

    monkeypatch.setitem(api._default_binding, "binding", None)
    monkeypatch.setattr(api, "EmojiSearchBinding", SlowBinding)
    barrier = threading.Barrier(4)
    seen = []

    def first_use():
        barrier.wait()
        seen.append(api.get_binding())

    threads = [threading.Thread(target=first_use) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(seen) == 4
    assert len({id(binding) for binding in seen}) == 1


@pytest.mark.unit
def test_configure_logging_uses_settings():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    try:
        EmojiSearchBinding(settings=Settings(log_level="warning", log_json=True)).configure_logging(
            {"emoji_search.registry": "error"}
        )
        assert root.level == logging.WARNING
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
        assert logging.getLogger("emoji_search.registry").level == logging.ERROR

        EmojiSearchBinding(settings=Settings(log_level="debug", log_json=False)).configure_logging()
        assert root.level == logging.DEBUG
        assert not isinstance(root.handlers[0].formatter, JsonFormatter)
    finally:
        root.handlers[:] = handlers
        root.setLevel(level)
        logging.getLogger("emoji_search.registry").setLevel(logging.NOTSET)
