"""Standalone Merkle inclusion-proof verification.

Algorithm (for third-party verifiers)
=====================================

Inputs: a hash factory, the expected root, the proof path, the target
leaf index and the number of leaves in the tree. ``path[0]`` is the raw
leaf value; every following entry is a sibling digest, lowest first.

1. ``running = H(0x00 || path[0])``.
2. Balanced climb: for height 1, 2, ... while the aligned subtree of
   ``2**height`` leaves containing the target ends inside the tree,
   combine ``running`` with ``path[height]``. The sibling is on the right
   when the target sits in the left half of that subtree, else on the
   left.
3. Unbalanced frontier: if the last complete subtree does not end at the
   final leaf, the next entry is the fold of the newer leaves and is
   always on the right.
4. Every remaining entry is an older subtree and is always on the left.
5. The proof is valid iff ``running`` equals the root byte for byte.

No tree instance is needed; the function is pure and safe to call from
any number of threads.
"""

from __future__ import annotations

import hmac
import logging
from collections.abc import Sequence

from stream_merkle.digest import HashFactory, leaf_sum, node_sum, on_left_branch

logger = logging.getLogger(__name__)


def verify_proof(
    hash_factory: HashFactory,
    root: bytes | None,
    path: Sequence[bytes] | None,
    target_index: int,
    leaf_count: int,
) -> bool:
    """Return True only if *path* reconstructs *root* for leaf *target_index*.

    Malformed input of any kind yields False rather than an exception.
    """
    if not isinstance(path, Sequence) or isinstance(path, (str, bytes, bytearray)):
        return False
    if not root or not path:
        return False
    if not isinstance(root, (bytes, bytearray, memoryview)):
        return False
    if not isinstance(target_index, int) or not isinstance(leaf_count, int):
        return False
    if target_index < 0 or target_index >= leaf_count:
        return False
    if not all(isinstance(p, (bytes, bytearray, memoryview)) for p in path):
        return False

    running = leaf_sum(hash_factory, bytes(path[0]))
    height = 1

    stable_end = target_index
    while True:
        span = 1 << height
        subtree_start = (target_index // span) * span
        subtree_end = subtree_start + span - 1
        if subtree_end >= leaf_count:
            break
        stable_end = subtree_end

        if len(path) <= height:
            return False
        if on_left_branch(target_index, height, subtree_start):
            running = node_sum(hash_factory, running, bytes(path[height]))
        else:
            running = node_sum(hash_factory, bytes(path[height]), running)
        height += 1

    if stable_end != leaf_count - 1:
        if len(path) <= height:
            return False
        running = node_sum(hash_factory, running, bytes(path[height]))
        height += 1

    while height < len(path):
        running = node_sum(hash_factory, bytes(path[height]), running)
        height += 1

    valid = hmac.compare_digest(running, bytes(root))
    if not valid:
        logger.debug(
            "Proof for leaf %d of %d does not reconstruct the root", target_index, leaf_count
        )
    return valid
