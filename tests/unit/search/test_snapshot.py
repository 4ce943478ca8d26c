"""Unit tests for the binary snapshot codec."""

import struct

import pytest

from emoji_search.catalog import EmojiEntry
from emoji_search.config import IndexConfig, TokenizerConfig
from emoji_search.errors import CorruptSnapshot, VersionMismatch
from emoji_search.search.engine import search
from emoji_search.search.indexer import build_index
from emoji_search.search.models import Posting, SearchIndex
from emoji_search.search.snapshot import (
    FORMAT_VERSION,
    decode_snapshot,
    encode_snapshot,
    read_snapshot,
    write_snapshot,
)
from tests.fixtures.catalogs import DOG, large_catalog


@pytest.fixture
def pinned_index(animal_entries):
    config = IndexConfig(tokenizer=TokenizerConfig(fold_diacritics=True), name_weight=4.0)
    return build_index(animal_entries, config, pinned={"dog": DOG}, workers=1)


@pytest.mark.unit
class TestRoundTrip:
    def test_decoded_index_equals_original(self, pinned_index):
        decoded = decode_snapshot(encode_snapshot(pinned_index))
        assert decoded == pinned_index
        assert decoded.config.tokenizer.fold_diacritics is True
        assert decoded.pinned == {"dog": 1}

    def test_decoded_index_answers_queries_identically(self, animal_index):
        decoded = decode_snapshot(encode_snapshot(animal_index))
        for query in ("dog", "cat face", "pet dog", "kitt", "100", DOG):
            assert search(decoded, query, limit=0) == search(animal_index, query, limit=0)

    def test_encoding_is_deterministic(self):
        catalog = large_catalog(250)
        first = encode_snapshot(build_index(catalog, workers=1))
        second = encode_snapshot(build_index(catalog, workers=4))
        assert first == second

    def test_reencoding_is_stable(self, heart_index):
        blob = encode_snapshot(heart_index)
        assert encode_snapshot(decode_snapshot(blob)) == blob

    def test_file_round_trip(self, tmp_path, heart_index):
        path = write_snapshot(tmp_path / "nested" / "hearts.idx", heart_index)
        assert path.exists()
        assert read_snapshot(path) == heart_index

    def test_blob_starts_with_format_version(self, heart_index):
        blob = encode_snapshot(heart_index)
        assert struct.unpack("<I", blob[:4])[0] == FORMAT_VERSION


@pytest.mark.unit
class TestRejection:
    def test_version_mismatch(self, heart_index):
        blob = encode_snapshot(heart_index)
        with pytest.raises(VersionMismatch) as exc_info:
            decode_snapshot(struct.pack("<I", 99) + blob[4:])
        assert exc_info.value.found == 99
        assert exc_info.value.expected == FORMAT_VERSION

    def test_version_checked_before_length(self):
        with pytest.raises(VersionMismatch):
            decode_snapshot(struct.pack("<I", 2))

    @pytest.mark.parametrize("blob", [b"", b"\x01", b"\x01\x00\x00"])
    def test_too_short(self, blob):
        with pytest.raises(CorruptSnapshot):
            decode_snapshot(blob)

    def test_truncated(self, heart_index):
        blob = encode_snapshot(heart_index)
        for cut in (8, len(blob) // 2, len(blob) - 1):
            with pytest.raises(CorruptSnapshot):
                decode_snapshot(blob[:cut])

    def test_flipped_byte(self, heart_index):
        blob = bytearray(encode_snapshot(heart_index))
        blob[len(blob) // 2] ^= 0xFF
        with pytest.raises(CorruptSnapshot):
            decode_snapshot(bytes(blob))

    def test_trailing_bytes(self, heart_index):
        with pytest.raises(CorruptSnapshot):
            decode_snapshot(encode_snapshot(heart_index) + b"\x00")

    def test_dangling_posting_reference(self):
        index = SearchIndex(
            config=IndexConfig(),
            entries=(EmojiEntry(id=0, symbol="a", canonical_name="alpha"),),
            postings={"alpha": (Posting(entry_id=5, field_weight=3.0, term_frequency=1),)},
            document_frequency={"alpha": 1},
        )
        with pytest.raises(CorruptSnapshot, match="unknown entry id"):
            decode_snapshot(encode_snapshot(index))

    def test_document_frequency_table_mismatch(self):
        index = SearchIndex(
            config=IndexConfig(),
            entries=(EmojiEntry(id=0, symbol="a", canonical_name="alpha"),),
            postings={"alpha": (Posting(entry_id=0, field_weight=3.0, term_frequency=1),)},
            document_frequency={"beta": 1},
        )
        with pytest.raises(CorruptSnapshot, match="Document frequency"):
            decode_snapshot(encode_snapshot(index))

    def test_dangling_pinned_reference(self):
        index = SearchIndex(
            config=IndexConfig(),
            entries=(EmojiEntry(id=0, symbol="a", canonical_name="alpha"),),
            postings={"alpha": (Posting(entry_id=0, field_weight=3.0, term_frequency=1),)},
            document_frequency={"alpha": 1},
            pinned={"alpha": 3},
        )
        with pytest.raises(CorruptSnapshot, match="Pinned"):
            decode_snapshot(encode_snapshot(index))

    def test_rejection_does_not_return_partial_index(self, heart_index):
        blob = encode_snapshot(heart_index)
        result = None
        with pytest.raises(CorruptSnapshot):
            result = decode_snapshot(blob[:-3])
        assert result is None
