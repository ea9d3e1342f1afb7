"""Feed byte streams into a tree one fixed-size segment at a time."""

from __future__ import annotations

import logging
from typing import BinaryIO

from stream_merkle.digest import HashFactory
from stream_merkle.schemas import Proof
from stream_merkle.tree import MerkleError, Tree

logger = logging.getLogger(__name__)


class IndexNotReached(MerkleError):
    """The stream ended before the requested leaf index."""


def read_all(tree: Tree, stream: BinaryIO, segment_size: int) -> int:
    """Append every *segment_size* chunk of *stream* to *tree*.

    A short final chunk is appended as-is; reading stops at end of stream.
    Returns the number of segments appended. I/O errors propagate.
    """
    if segment_size <= 0:
        raise ValueError(f"segment size must be positive, got {segment_size}")

    segments = 0
    while True:
        segment = _read_segment(stream, segment_size)
        if not segment:
            break
        tree.append(segment)
        segments += 1
        if len(segment) < segment_size:
            break

    logger.debug("Read %d segment(s) of up to %d bytes", segments, segment_size)
    return segments


def reader_root(stream: BinaryIO, hash_factory: HashFactory, segment_size: int) -> bytes:
    """Return the Merkle root of *stream* split into *segment_size* leaves."""
    tree = Tree(hash_factory)
    read_all(tree, stream, segment_size)
    return tree.root()


def build_reader_proof(
    stream: BinaryIO,
    hash_factory: HashFactory,
    segment_size: int,
    index: int,
) -> Proof:
    """Build the inclusion proof for segment *index* of *stream*.

    Raises ``IndexNotReached`` if the stream holds fewer segments.
    """
    tree = Tree(hash_factory)
    tree.set_index(index)
    read_all(tree, stream, segment_size)
    proof = tree.prove()
    if not proof.available:
        raise IndexNotReached(
            f"index {index} was not reached while creating proof "
            f"({tree.leaf_count} segment(s) read)"
        )
    return proof


def _read_segment(stream: BinaryIO, size: int) -> bytes:
    """Read up to *size* bytes, retrying short reads until EOF."""
    chunks: list[bytes] = []
    remaining = size
    while remaining:
        chunk = stream.read(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)
