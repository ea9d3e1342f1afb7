"""Example: prove one segment of a large file with a two-level cached tree.

The file is cut into cached nodes of 2**height segments. Each node's root
is computed on its own (this could happen in parallel, or on another
machine); only the node holding the target segment is walked again to
produce the fine-grained part of the proof.

Usage:
    python examples/cached_proof.py FILE INDEX [SEGMENT_SIZE] [HEIGHT]
"""

from __future__ import annotations

import hashlib
import sys

from stream_merkle import CachedTree, Tree, verify_proof


def _node_tree(segments: list[bytes], index: int | None = None) -> Tree:
    tree = Tree(hashlib.sha256)
    if index is not None:
        tree.set_index(index)
    for seg in segments:
        tree.append(seg)
    return tree


def main() -> None:
    if len(sys.argv) < 3:
        print("Usage: python examples/cached_proof.py FILE INDEX [SEGMENT_SIZE] [HEIGHT]")
        sys.exit(1)

    filename = sys.argv[1]
    index = int(sys.argv[2])
    segment_size = int(sys.argv[3]) if len(sys.argv) > 3 else 64
    height = int(sys.argv[4]) if len(sys.argv) > 4 else 4
    per_node = 1 << height

    with open(filename, "rb") as fh:
        data = fh.read()
    segments = [data[i : i + segment_size] for i in range(0, len(data), segment_size)]
    if len(segments) % per_node:
        print(f"File must hold a multiple of {per_node} segments for this example")
        sys.exit(1)

    cached = CachedTree(hashlib.sha256, height)
    cached.set_index(index)
    intra_path: list[bytes] = []
    for start in range(0, len(segments), per_node):
        node = segments[start : start + per_node]
        cached.append(_node_tree(node).root())
        if start <= index < start + per_node:
            intra_path = _node_tree(node, index - start).prove().path

    proof = cached.prove(intra_path)
    print(f"Root:      {proof.root.hex()}")
    print(f"Leaves:    {proof.leaf_count}")
    print(f"Path len:  {len(proof.path)}")
    ok = verify_proof(hashlib.sha256, proof.root, proof.path, proof.target_index, proof.leaf_count)
    print(f"Verified:  {ok}")
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
