"""Binary snapshot codec for built indexes.

Layout (little endian)::

    [format_version: u32][entry_count: u32]
    [config: varint length + JSON with sorted keys]
    [entries: entry_count x (varint id, str symbol, str name, varint n, n x str keyword)]
    [postings: varint n_tokens x (str token, varint n, n x (varint id gap, f64 weight, varint tf))]
    [document_frequency: varint n x (str token, varint df)]
    [pinned: varint n x (str token, varint entry id)]
    [blake2b-128 digest of every preceding byte]

``str`` is a varint byte length followed by UTF-8. Posting ids are stored as
gaps from the previous id in the same list. Decoding performs no
recomputation: document frequencies are read back as written.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
import struct

import orjson
from pydantic import ValidationError

from emoji_search.catalog import EmojiEntry
from emoji_search.config import IndexConfig
from emoji_search.errors import CorruptSnapshot, VersionMismatch
from emoji_search.observability import SNAPSHOT_ERRORS, create_span
from emoji_search.search.models import Posting, SearchIndex


logger = logging.getLogger(__name__)

FORMAT_VERSION = 1

_HEADER = struct.Struct("<II")
_VERSION = struct.Struct("<I")
_FLOAT = struct.Struct("<d")
_DIGEST_SIZE = 16


def _digest(payload: bytes | memoryview) -> bytes:
    return hashlib.blake2b(payload, digest_size=_DIGEST_SIZE).digest()


class _Writer:
    def __init__(self) -> None:
        self._buffer = bytearray()

    def varint(self, value: int) -> None:
        if value < 0:
            raise ValueError(f"varint cannot encode negative value {value}")
        while value >= 0x80:
            self._buffer.append((value & 0x7F) | 0x80)
            value >>= 7
        self._buffer.append(value)

    def raw(self, data: bytes) -> None:
        self._buffer.extend(data)

    def blob(self, data: bytes) -> None:
        self.varint(len(data))
        self._buffer.extend(data)

    def text(self, value: str) -> None:
        self.blob(value.encode("utf-8"))

    def double(self, value: float) -> None:
        self._buffer.extend(_FLOAT.pack(value))

    def getvalue(self) -> bytes:
        return bytes(self._buffer)


class _Reader:
    def __init__(self, data: memoryview, offset: int = 0) -> None:
        self._data = data
        self._offset = offset

    @property
    def remaining(self) -> int:
        return len(self._data) - self._offset

    def take(self, size: int) -> memoryview:
        if size < 0 or size > self.remaining:
            raise CorruptSnapshot(f"Snapshot truncated at byte {self._offset} (needed {size} bytes)")
        chunk = self._data[self._offset : self._offset + size]
        self._offset += size
        return chunk

    def varint(self) -> int:
        result = 0
        shift = 0
        while True:
            if self._offset >= len(self._data):
                raise CorruptSnapshot(f"Snapshot truncated inside varint at byte {self._offset}")
            byte = self._data[self._offset]
            self._offset += 1
            result |= (byte & 0x7F) << shift
            if not byte & 0x80:
                return result
            shift += 7
            if shift > 63:
                raise CorruptSnapshot(f"Varint too long at byte {self._offset}")

    def text(self) -> str:
        raw = self.take(self.varint())
        try:
            return bytes(raw).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise CorruptSnapshot(f"Invalid UTF-8 in snapshot: {exc}") from exc

    def double(self) -> float:
        return _FLOAT.unpack(self.take(_FLOAT.size))[0]


def encode_snapshot(index: SearchIndex) -> bytes:
    """Serialize ``index`` to a versioned binary blob."""

    with create_span("emoji_snapshot.encode", attributes={"index.entries": index.entry_count}) as span:
        writer = _Writer()
        writer.raw(_HEADER.pack(FORMAT_VERSION, index.entry_count))
        writer.blob(orjson.dumps(index.config.model_dump(mode="json"), option=orjson.OPT_SORT_KEYS))

        for entry in index.entries:
            writer.varint(entry.id)
            writer.text(entry.symbol)
            writer.text(entry.canonical_name)
            writer.varint(len(entry.keywords))
            for keyword in entry.keywords:
                writer.text(keyword)

        writer.varint(len(index.postings))
        for token, postings in index.postings.items():
            writer.text(token)
            writer.varint(len(postings))
            previous = 0
            for posting in postings:
                writer.varint(posting.entry_id - previous)
                writer.double(posting.field_weight)
                writer.varint(posting.term_frequency)
                previous = posting.entry_id

        writer.varint(len(index.document_frequency))
        for token, frequency in index.document_frequency.items():
            writer.text(token)
            writer.varint(frequency)

        writer.varint(len(index.pinned))
        for token, entry_id in index.pinned.items():
            writer.text(token)
            writer.varint(entry_id)

        body = writer.getvalue()
        blob = body + _digest(body)
        span.set_attribute("snapshot.bytes", len(blob))
        return blob


def _read_config(reader: _Reader) -> IndexConfig:
    raw = reader.take(reader.varint())
    try:
        return IndexConfig.model_validate(orjson.loads(bytes(raw)))
    except (orjson.JSONDecodeError, ValidationError) as exc:
        raise CorruptSnapshot(f"Invalid index config in snapshot: {exc}") from exc


def _read_entries(reader: _Reader, entry_count: int) -> tuple[EmojiEntry, ...]:
    entries: list[EmojiEntry] = []
    previous_id = -1
    for _ in range(entry_count):
        entry_id = reader.varint()
        if entry_id <= previous_id:
            raise CorruptSnapshot(f"Entry ids out of order or duplicated at id {entry_id}")
        previous_id = entry_id
        symbol = reader.text()
        name = reader.text()
        keywords = tuple(reader.text() for _ in range(reader.varint()))
        entries.append(EmojiEntry(id=entry_id, symbol=symbol, canonical_name=name, keywords=keywords))
    return tuple(entries)


def _read_postings(reader: _Reader, known_ids: set[int]) -> dict[str, tuple[Posting, ...]]:
    postings: dict[str, tuple[Posting, ...]] = {}
    for _ in range(reader.varint()):
        token = reader.text()
        if token in postings:
            raise CorruptSnapshot(f"Duplicate token {token!r} in postings table")
        entries: list[Posting] = []
        entry_id = 0
        for position in range(reader.varint()):
            gap = reader.varint()
            if position and gap == 0:
                raise CorruptSnapshot(f"Repeated entry id in postings for {token!r}")
            entry_id += gap
            if entry_id not in known_ids:
                raise CorruptSnapshot(f"Posting for {token!r} references unknown entry id {entry_id}")
            weight = reader.double()
            frequency = reader.varint()
            entries.append(Posting(entry_id=entry_id, field_weight=weight, term_frequency=frequency))
        postings[token] = tuple(entries)
    return postings


def _read_counts(reader: _Reader, label: str) -> dict[str, int]:
    table: dict[str, int] = {}
    for _ in range(reader.varint()):
        token = reader.text()
        if token in table:
            raise CorruptSnapshot(f"Duplicate token {token!r} in {label} table")
        table[token] = reader.varint()
    return table


def decode_snapshot(blob: bytes) -> SearchIndex:
    """Deserialize a blob produced by ``encode_snapshot``.

    Raises:
        VersionMismatch: the leading format version is not ``FORMAT_VERSION``.
        CorruptSnapshot: the blob is truncated, altered, or structurally invalid.
    """

    with create_span("emoji_snapshot.decode", attributes={"snapshot.bytes": len(blob)}):
        try:
            return _decode(memoryview(blob))
        except VersionMismatch as exc:
            SNAPSHOT_ERRORS.labels(kind="version_mismatch").inc()
            logger.warning("Rejected snapshot: %s", exc, extra={"found_version": exc.found})
            raise
        except CorruptSnapshot as exc:
            SNAPSHOT_ERRORS.labels(kind="corrupt").inc()
            logger.warning("Rejected snapshot: %s", exc)
            raise


def _decode(data: memoryview) -> SearchIndex:
    if len(data) < _VERSION.size:
        raise CorruptSnapshot("Snapshot shorter than its version header")
    (version,) = _VERSION.unpack(data[: _VERSION.size])
    if version != FORMAT_VERSION:
        raise VersionMismatch(found=version, expected=FORMAT_VERSION)
    if len(data) < _HEADER.size + _DIGEST_SIZE:
        raise CorruptSnapshot("Snapshot shorter than its header and digest")

    body, digest = data[:-_DIGEST_SIZE], data[-_DIGEST_SIZE:]
    if _digest(body) != bytes(digest):
        raise CorruptSnapshot("Snapshot digest mismatch")

    _, entry_count = _HEADER.unpack(body[: _HEADER.size])
    reader = _Reader(body, _HEADER.size)
    config = _read_config(reader)
    entries = _read_entries(reader, entry_count)
    known_ids = {entry.id for entry in entries}
    postings = _read_postings(reader, known_ids)

    document_frequency = _read_counts(reader, "document frequency")
    if document_frequency.keys() != postings.keys():
        raise CorruptSnapshot("Document frequency table does not match the postings table")

    pinned = _read_counts(reader, "pinned")
    for token, entry_id in pinned.items():
        if entry_id not in known_ids:
            raise CorruptSnapshot(f"Pinned token {token!r} references unknown entry id {entry_id}")

    if reader.remaining:
        raise CorruptSnapshot(f"{reader.remaining} unexpected trailing bytes in snapshot")

    return SearchIndex(
        config=config,
        entries=entries,
        postings=postings,
        document_frequency=document_frequency,
        pinned=pinned,
    )


def write_snapshot(path: Path, index: SearchIndex) -> Path:
    """Encode ``index`` and write it to ``path``."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(encode_snapshot(index))
    logger.info("Wrote emoji index snapshot to %s", path)
    return path


def read_snapshot(path: Path) -> SearchIndex:
    """Read and decode a snapshot file."""

    return decode_snapshot(Path(path).read_bytes())
