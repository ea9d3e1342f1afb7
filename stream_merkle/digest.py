"""Domain-separated hashing shared by the tree builder and the verifier.

**Hash primitive:** injected, never hardcoded. A *hash factory* is any
zero-argument callable returning a hashlib-compatible object
(``update()`` / ``digest()``), e.g. ``hashlib.sha256``. Every sum starts
from a fresh object, which is the reset / write / sum cycle.

**Domain separation** (an internal node can never be reinterpreted as a
leaf):

- Leaf nodes:     H(0x00 || data)
- Internal nodes: H(0x01 || left || right)
"""

from __future__ import annotations

import hashlib
from collections.abc import Callable
from typing import Protocol


class HashObject(Protocol):
    def update(self, data: bytes, /) -> None: ...

    def digest(self) -> bytes: ...


HashFactory = Callable[[], HashObject]

LEAF_PREFIX = b"\x00"
NODE_PREFIX = b"\x01"


def resolve_hash(name: str) -> HashFactory:
    """Return a factory for the hashlib algorithm called *name*.

    Raises ``ValueError`` for names hashlib does not know.
    """
    hashlib.new(name)  # fail fast on unknown names

    def factory() -> HashObject:
        return hashlib.new(name)

    factory.__name__ = name
    return factory


def sum_parts(hash_factory: HashFactory, *parts: bytes) -> bytes:
    h = hash_factory()
    for part in parts:
        h.update(part)
    return h.digest()


def leaf_sum(hash_factory: HashFactory, data: bytes) -> bytes:
    return sum_parts(hash_factory, LEAF_PREFIX, data)


def node_sum(hash_factory: HashFactory, left: bytes, right: bytes) -> bytes:
    return sum_parts(hash_factory, NODE_PREFIX, left, right)


def on_left_branch(target_index: int, height: int, subtree_start: int) -> bool:
    """Whether *target_index* lies in the left half of an aligned subtree.

    The subtree spans ``2**height`` leaves starting at *subtree_start*.
    The tree builder uses this to pick which sibling to record, the
    verifier to pick the combine order; both must agree.
    """
    return target_index - subtree_start < 1 << (height - 1)
