"""Fixed-layout binary codec for digests and proofs.

Layout (all integers unsigned 64-bit little-endian):

- ``uint64``:         8 bytes
- prefixed bytes:     ``uint64(len) || bytes``
- Digest:             prefixed bytes
- Proof:              ``Digest(root) || uint64(n) || Digest(path[0]) ... ||
                      uint64(target_index) || uint64(leaf_count)``

Decoding enforces two ceilings so hostile input cannot force large
allocations: no single prefixed field or digest list may exceed
``max_slice_size`` bytes, and no object may consume more than
``max_object_size`` bytes of input.
"""

from __future__ import annotations

import io
import logging
import struct
from pathlib import Path
from typing import BinaryIO

from stream_merkle.config import settings
from stream_merkle.schemas import Proof
from stream_merkle.tree import MerkleError

logger = logging.getLogger(__name__)

_UINT64 = struct.Struct("<Q")


class EncodingError(MerkleError):
    """Raised when bytes cannot be decoded into the expected shape."""


class ObjectTooLarge(EncodingError):
    """Encoded object exceeds the object size limit."""


class SliceTooLarge(EncodingError):
    """Encoded slice or string exceeds the slice size limit."""


# ---------------------------------------------------------------------------
# Integers
# ---------------------------------------------------------------------------


def encode_uint64(value: int) -> bytes:
    if value < 0 or value >= 1 << 64:
        raise EncodingError(f"value {value} does not fit in uint64")
    return _UINT64.pack(value)


def decode_uint64(data: bytes) -> int:
    """Decode up to 8 little-endian bytes; shorter input is zero-padded."""
    return _UINT64.unpack(bytes(data[:8]).ljust(8, b"\x00"))[0]


def write_uint64(stream: BinaryIO, value: int) -> None:
    _write(stream, encode_uint64(value))


# ---------------------------------------------------------------------------
# Length-prefixed fields
# ---------------------------------------------------------------------------


def write_prefix(stream: BinaryIO, data: bytes) -> None:
    write_uint64(stream, len(data))
    _write(stream, data)


def read_prefix(stream: BinaryIO, max_len: int) -> bytes:
    """Read one length-prefixed field, rejecting lengths above *max_len*."""
    length = decode_uint64(_read_exact(stream, 8))
    if length > max_len:
        raise SliceTooLarge(f"length {length} exceeds limit of {max_len}")
    return _read_exact(stream, length)


# ---------------------------------------------------------------------------
# Proof
# ---------------------------------------------------------------------------


def encode_proof(proof: Proof) -> bytes:
    buf = io.BytesIO()
    write_proof(buf, proof)
    return buf.getvalue()


def write_proof(stream: BinaryIO, proof: Proof) -> None:
    write_prefix(stream, proof.root)
    write_uint64(stream, len(proof.path))
    for digest in proof.path:
        write_prefix(stream, digest)
    write_uint64(stream, proof.target_index)
    write_uint64(stream, proof.leaf_count)


def decode_proof(
    data: bytes,
    max_object_size: int | None = None,
    max_slice_size: int | None = None,
) -> Proof:
    """Decode a proof, requiring that *data* holds nothing else."""
    stream = io.BytesIO(data)
    proof = read_proof(stream, max_object_size=max_object_size, max_slice_size=max_slice_size)
    if stream.read(1):
        raise EncodingError("trailing bytes after encoded proof")
    return proof


def read_proof(
    stream: BinaryIO,
    max_object_size: int | None = None,
    max_slice_size: int | None = None,
) -> Proof:
    reader = _LimitedReader(
        stream,
        max_object_size if max_object_size is not None else settings.max_object_size,
    )
    max_slice = max_slice_size if max_slice_size is not None else settings.max_slice_size

    root = read_prefix(reader, max_slice)
    count = decode_uint64(_read_exact(reader, 8))
    # Each entry costs at least its 8-byte length prefix.
    if count > max_slice // 8:
        raise SliceTooLarge(f"proof path of {count} entries exceeds the slice size limit")
    path = [read_prefix(reader, max_slice) for _ in range(count)]
    target_index = decode_uint64(_read_exact(reader, 8))
    leaf_count = decode_uint64(_read_exact(reader, 8))
    return Proof(root=root, path=path, target_index=target_index, leaf_count=leaf_count)


def write_proof_file(filename: str | Path, proof: Proof) -> None:
    try:
        with open(filename, "wb") as fh:
            write_proof(fh, proof)
    except OSError as exc:
        raise EncodingError(f"error while writing {filename}: {exc}") from exc
    logger.debug("Wrote proof for leaf %d to %s", proof.target_index, filename)


def read_proof_file(filename: str | Path) -> Proof:
    try:
        with open(filename, "rb") as fh:
            proof = read_proof(fh)
            if fh.read(1):
                raise EncodingError("trailing bytes after encoded proof")
    except OSError as exc:
        raise EncodingError(f"error while reading {filename}: {exc}") from exc
    except EncodingError as exc:
        raise type(exc)(f"error while reading {filename}: {exc}") from exc
    return proof


# ---------------------------------------------------------------------------
# Internal
# ---------------------------------------------------------------------------


class _LimitedReader:
    """Counts bytes read from *stream* and fails past *limit*."""

    def __init__(self, stream: BinaryIO, limit: int) -> None:
        self._stream = stream
        self._limit = limit
        self._consumed = 0

    def read(self, n: int) -> bytes:
        if self._consumed + n > self._limit:
            raise ObjectTooLarge("encoded object exceeds size limit")
        data = self._stream.read(n)
        self._consumed += len(data)
        return data


def _read_exact(stream, n: int) -> bytes:
    data = stream.read(n)
    if len(data) != n:
        raise EncodingError(f"unexpected end of data: wanted {n} bytes, got {len(data)}")
    return data


def _write(stream: BinaryIO, data: bytes) -> None:
    written = stream.write(data)
    if written is not None and written != len(data):
        raise EncodingError("short write")
