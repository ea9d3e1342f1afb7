"""Two-level Merkle tree built over pre-computed subtree roots.

Very large inputs are split into cached nodes of ``2**cached_node_height``
raw leaves each. Every cached node's root is computed independently (for
example by a plain ``Tree`` scoped to that slice, possibly elsewhere) and
then appended here. Indices and leaf counts are translated between
raw-leaf space and cached-node space so the resulting proofs look exactly
like proofs from one flat tree over all raw leaves.
"""

from __future__ import annotations

from stream_merkle.digest import HashFactory
from stream_merkle.schemas import Proof
from stream_merkle.tree import Tree


class CachedTree:
    def __init__(self, hash_factory: HashFactory, cached_node_height: int) -> None:
        if cached_node_height < 0:
            raise ValueError(f"cached node height must be non-negative, got {cached_node_height}")
        self._cached_node_height = cached_node_height
        self._true_target_index = 0
        self._tree = Tree(hash_factory, raw_leaves=True)

    @property
    def cached_node_height(self) -> int:
        return self._cached_node_height

    @property
    def leaves_per_node(self) -> int:
        return 1 << self._cached_node_height

    @property
    def leaf_count(self) -> int:
        """Number of raw leaves covered by the cached nodes appended so far."""
        return self._tree.leaf_count * self.leaves_per_node

    def set_index(self, index: int) -> None:
        """Choose the raw leaf to prove. Only allowed before the first append."""
        self._tree.set_index(index >> self._cached_node_height)
        self._true_target_index = index

    def append(self, cached_root: bytes) -> None:
        self._tree.append(cached_root)

    def root(self) -> bytes:
        return self._tree.root()

    def prove(self, cached_proof: list[bytes]) -> Proof:
        """Return the proof for the raw target leaf.

        *cached_proof* is the proof path of the target inside its own cached
        node: the raw leaf followed by its ``cached_node_height`` siblings.
        It replaces the first fragment of the upper tree's path, which is the
        cached node root itself.
        """
        upper = self._tree.prove()
        if not upper.path:
            path: list[bytes] = []
        else:
            path = list(cached_proof) + upper.path[1:]
        return Proof(
            root=upper.root,
            path=path,
            target_index=self._true_target_index,
            leaf_count=self.leaf_count,
        )
