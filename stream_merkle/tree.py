"""Incremental Merkle tree over a stream of segments.

Leaves are folded into a *forest* of perfect subtrees as they arrive, so
memory stays O(log n): pushing a leaf is incrementing a binary counter
where every carry is a merge of two equal-height subtrees. The full tree
is never stored.

**Tree shape:** for a leaf count that is not a power of two the tree is
the left-to-right fold of the forest, smallest (newest) subtree first:
``root = H(0x01 || oldest || H(0x01 || ... || H(0x01 || older || newest)))``.

**Proofs:** one target leaf is chosen with ``set_index`` before the first
append. While appending, the tree records the sibling digest at every
merge that sits on the target's path; ``prove`` completes the path with
the digests still pending in the forest.

**Thread safety:** none. One writer per instance; ``root`` and ``prove``
are read-only but must not race an ``append``.
"""

from __future__ import annotations

from typing import NamedTuple

from stream_merkle.digest import HashFactory, leaf_sum, node_sum, on_left_branch
from stream_merkle.schemas import Proof


class MerkleError(Exception):
    """Base class for errors raised by stream-merkle."""


class AlreadyStarted(MerkleError):
    """Raised when the proof target is changed after data was appended."""


class ForestEntry(NamedTuple):
    height: int
    digest: bytes


class Forest:
    """Stack of pending subtree roots, oldest first.

    Heights strictly decrease from the bottom of the stack to the top
    between operations; only ``merge_top`` briefly sees two equal heights.
    """

    def __init__(self, hash_factory: HashFactory) -> None:
        self._hash = hash_factory
        self._entries: list[ForestEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    def push(self, digest: bytes) -> None:
        self._entries.append(ForestEntry(0, digest))

    def pending_merge(self) -> tuple[ForestEntry, ForestEntry] | None:
        """Return ``(older, newer)`` if the two newest entries share a height."""
        if len(self._entries) < 2:
            return None
        older, newer = self._entries[-2], self._entries[-1]
        if older.height != newer.height:
            return None
        return older, newer

    def merge_top(self) -> ForestEntry:
        newer = self._entries.pop()
        older = self._entries.pop()
        merged = ForestEntry(older.height + 1, node_sum(self._hash, older.digest, newer.digest))
        self._entries.append(merged)
        return merged

    def newest_first(self) -> list[ForestEntry]:
        return self._entries[::-1]

    def fold(self) -> bytes:
        """Combine every pending subtree into the overall root."""
        if not self._entries:
            return b""
        entries = self.newest_first()
        current = entries[0].digest
        for older in entries[1:]:
            current = node_sum(self._hash, older.digest, current)
        return current


class Tree:
    """Streaming Merkle tree that can prove one designated leaf.

    With ``raw_leaves=True`` every appended value is taken verbatim as a
    leaf digest instead of being hashed; this is how a tree is built over
    pre-computed subtree roots (see ``CachedTree``).
    """

    def __init__(self, hash_factory: HashFactory, raw_leaves: bool = False) -> None:
        self._hash = hash_factory
        self._raw_leaves = raw_leaves
        self._forest = Forest(hash_factory)
        self._leaf_count = 0
        self._target_index = 0
        self._partial_proof: list[bytes] = []

    @property
    def leaf_count(self) -> int:
        return self._leaf_count

    @property
    def target_index(self) -> int:
        return self._target_index

    @property
    def raw_leaves(self) -> bool:
        return self._raw_leaves

    def set_index(self, index: int) -> None:
        """Choose the leaf to prove. Only allowed before the first append."""
        if self._leaf_count:
            raise AlreadyStarted("cannot set the proof index once data has been appended")
        if index < 0:
            raise ValueError(f"proof index must be non-negative, got {index}")
        self._target_index = index

    def append(self, data: bytes) -> None:
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError(f"leaf data must be bytes-like, got {type(data).__name__}")
        if self._leaf_count == self._target_index:
            self._partial_proof.append(bytes(data))

        if self._raw_leaves:
            self._forest.push(bytes(data))
        else:
            self._forest.push(leaf_sum(self._hash, data))

        while True:
            pair = self._forest.pending_merge()
            if pair is None:
                break
            older, newer = pair
            height = older.height
            if height == len(self._partial_proof) - 1:
                span = 1 << (height + 1)
                start = (self._leaf_count // span) * span
                if on_left_branch(self._target_index, height + 1, start):
                    self._partial_proof.append(newer.digest)
                else:
                    self._partial_proof.append(older.digest)
            self._forest.merge_top()

        self._leaf_count += 1

    def root(self) -> bytes:
        """Return the Merkle root of everything appended so far (``b""`` if empty)."""
        return self._forest.fold()

    def prove(self) -> Proof:
        """Return the inclusion proof for the target leaf.

        The path is empty when nothing was appended or the target index has
        not been reached yet.
        """
        root = self.root()
        if not self._leaf_count or not self._partial_proof:
            return Proof(
                root=root,
                path=[],
                target_index=self._target_index,
                leaf_count=self._leaf_count,
            )

        path = list(self._partial_proof)
        frontier = len(path) - 1
        entries = self._forest.newest_first()

        # Fold everything newer than the target's subtree into one sibling.
        pos = 0
        current = entries[0].digest
        while pos + 1 < len(entries) and entries[pos + 1].height < frontier:
            current = node_sum(self._hash, entries[pos + 1].digest, current)
            pos += 1
        if pos + 1 < len(entries) and entries[pos + 1].height == frontier:
            path.append(current)
            pos += 1

        # Skip the target's own subtree; everything older is a left sibling.
        for entry in entries[pos + 1 :]:
            path.append(entry.digest)

        return Proof(
            root=root,
            path=path,
            target_index=self._target_index,
            leaf_count=self._leaf_count,
        )
