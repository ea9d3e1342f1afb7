"""Tests for the incremental tree builder and its proofs.

Covers:
- Forest carry/merge behaviour and root shape against a recursive reference
- set_index ordering rules
- Proof round trips for balanced and unbalanced trees
- The empty / unreached-target proof signal
"""

from __future__ import annotations

import hashlib

import pytest

from stream_merkle.digest import leaf_sum, node_sum
from stream_merkle.tree import AlreadyStarted, Forest, ForestEntry, MerkleError, Tree
from stream_merkle.verify import verify_proof

H = hashlib.sha256


def _segments(n: int) -> list[bytes]:
    return [f"segment-{i}".encode() for i in range(n)]


def _reference_root(leaves: list[bytes]) -> bytes:
    """Root of an RFC 6962 shaped tree: split at the largest power of two below n."""
    if len(leaves) == 1:
        return leaf_sum(H, leaves[0])
    k = 1
    while k * 2 < len(leaves):
        k *= 2
    return node_sum(H, _reference_root(leaves[:k]), _reference_root(leaves[k:]))


def _build(segments: list[bytes], index: int | None = None) -> Tree:
    tree = Tree(H)
    if index is not None:
        tree.set_index(index)
    for seg in segments:
        tree.append(seg)
    return tree


# ---------------------------------------------------------------------------
# Forest
# ---------------------------------------------------------------------------


class TestForest:
    def test_empty_forest_folds_to_empty(self):
        forest = Forest(H)
        assert len(forest) == 0
        assert forest.fold() == b""
        assert forest.pending_merge() is None

    def test_equal_heights_merge(self):
        forest = Forest(H)
        forest.push(b"a" * 32)
        assert forest.pending_merge() is None
        forest.push(b"b" * 32)
        older, newer = forest.pending_merge()
        assert older.digest == b"a" * 32
        assert newer.digest == b"b" * 32

        merged = forest.merge_top()
        assert merged == ForestEntry(1, node_sum(H, b"a" * 32, b"b" * 32))
        assert len(forest) == 1

    def test_size_tracks_set_bits_of_leaf_count(self):
        tree = Tree(H)
        for n, seg in enumerate(_segments(37), start=1):
            tree.append(seg)
            assert len(tree._forest) == bin(n).count("1")

    def test_heights_strictly_decrease_towards_newest(self):
        tree = _build(_segments(45))
        heights = [e.height for e in tree._forest.newest_first()]
        assert heights == sorted(heights)
        assert len(set(heights)) == len(heights)
        # 45 = 0b101101
        assert heights == [0, 2, 3, 5]


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


class TestRoot:
    def test_empty_tree_root_is_empty(self):
        tree = Tree(H)
        assert tree.root() == b""
        assert tree.leaf_count == 0

    def test_single_leaf_root_is_leaf_hash(self):
        tree = _build([b"hello"])
        assert tree.root() == hashlib.sha256(b"\x00hello").digest()

    def test_two_leaves(self):
        tree = _build([b"L", b"R"])
        assert tree.root() == node_sum(H, leaf_sum(H, b"L"), leaf_sum(H, b"R"))

    def test_three_leaves(self):
        tree = _build([b"a", b"b", b"c"])
        left = node_sum(H, leaf_sum(H, b"a"), leaf_sum(H, b"b"))
        assert tree.root() == node_sum(H, left, leaf_sum(H, b"c"))

    @pytest.mark.parametrize("n", [1, 2, 3, 4, 5, 6, 7, 8, 9, 15, 16, 17, 31, 100])
    def test_matches_reference_shape(self, n):
        segments = _segments(n)
        assert _build(segments).root() == _reference_root(segments)

    def test_root_does_not_mutate(self):
        tree = _build(_segments(11))
        first = tree.root()
        assert tree.root() == first
        assert len(tree._forest) == 3
        tree.append(b"more")
        assert tree.root() == _reference_root(_segments(11) + [b"more"])

    def test_root_independent_of_target_index(self):
        segments = _segments(13)
        roots = {_build(segments, index=i).root() for i in (0, 5, 12, 40)}
        assert roots == {_build(segments).root()}

    def test_raw_leaves_used_verbatim(self):
        a, b = b"\x11" * 32, b"\x22" * 32
        tree = Tree(H, raw_leaves=True)
        tree.append(a)
        tree.append(b)
        assert tree.raw_leaves is True
        assert tree.root() == node_sum(H, a, b)

    def test_other_hash_algorithm(self):
        segments = _segments(6)
        tree = Tree(hashlib.blake2b)
        for seg in segments:
            tree.append(seg)
        assert len(tree.root()) == 64
        assert tree.root() != _build(segments).root()


# ---------------------------------------------------------------------------
# set_index
# ---------------------------------------------------------------------------


class TestSetIndex:
    def test_default_target_is_zero(self):
        tree = _build(_segments(3))
        proof = tree.prove()
        assert proof.target_index == 0
        assert proof.path[0] == b"segment-0"

    def test_set_index_after_append_fails(self):
        tree = Tree(H)
        tree.set_index(2)
        tree.append(b"x")
        with pytest.raises(AlreadyStarted):
            tree.set_index(0)
        assert tree.target_index == 2

    def test_already_started_is_merkle_error(self):
        assert issubclass(AlreadyStarted, MerkleError)

    def test_set_index_twice_before_append(self):
        tree = Tree(H)
        tree.set_index(4)
        tree.set_index(1)
        assert tree.target_index == 1

    def test_negative_index_rejected(self):
        with pytest.raises(ValueError):
            Tree(H).set_index(-1)


class TestAppendInput:
    @pytest.mark.parametrize("raw", [False, True])
    def test_int_rejected(self, raw):
        tree = Tree(H, raw_leaves=raw)
        with pytest.raises(TypeError):
            tree.append(5)
        assert tree.leaf_count == 0

    def test_str_rejected(self):
        with pytest.raises(TypeError):
            Tree(H).append("abc")

    def test_bytes_like_accepted(self):
        tree = Tree(H)
        tree.append(bytearray(b"a"))
        tree.append(memoryview(b"b"))
        assert tree.root() == _build([b"a", b"b"]).root()


# ---------------------------------------------------------------------------
# Proofs
# ---------------------------------------------------------------------------


class TestProve:
    def test_concrete_four_leaf_scenario(self):
        tree = _build([b"\x41", b"\x42", b"\x43", b"\x44"], index=1)
        proof = tree.prove()

        assert proof.path == [
            b"\x42",
            leaf_sum(H, b"\x41"),
            node_sum(H, leaf_sum(H, b"\x43"), leaf_sum(H, b"\x44")),
        ]
        assert proof.leaf_count == 4
        assert verify_proof(H, proof.root, proof.path, 1, 4)
        assert not verify_proof(H, proof.root, proof.path, 2, 4)

    def test_three_leaves_first(self):
        proof = _build([b"a", b"b", b"c"], index=0).prove()
        assert proof.path == [b"a", leaf_sum(H, b"b"), leaf_sum(H, b"c")]

    def test_three_leaves_last(self):
        proof = _build([b"a", b"b", b"c"], index=2).prove()
        left = node_sum(H, leaf_sum(H, b"a"), leaf_sum(H, b"b"))
        assert proof.path == [b"c", left]

    def test_single_leaf(self):
        proof = _build([b"only"], index=0).prove()
        assert proof.path == [b"only"]
        assert verify_proof(H, proof.root, proof.path, 0, 1)

    @pytest.mark.parametrize("n", [1, 2, 3, 5, 7, 100])
    def test_every_index_of_unbalanced_trees_verifies(self, n):
        segments = _segments(n)
        expected_root = _reference_root(segments)
        for k in range(n):
            proof = _build(segments, index=k).prove()
            assert proof.root == expected_root
            assert proof.target_index == k
            assert proof.leaf_count == n
            assert proof.path[0] == segments[k]
            assert verify_proof(H, proof.root, proof.path, k, n), f"leaf {k} of {n}"

    @pytest.mark.parametrize("n", [8, 16, 32])
    def test_balanced_proof_length_is_height_plus_one(self, n):
        for k in range(n):
            proof = _build(_segments(n), index=k).prove()
            assert len(proof.path) == n.bit_length()

    def test_prove_between_appends(self):
        segments = _segments(20)
        tree = Tree(H)
        tree.set_index(6)
        for i, seg in enumerate(segments, start=1):
            tree.append(seg)
            proof = tree.prove()
            if i <= 6:
                assert not proof.available
            else:
                assert verify_proof(H, proof.root, proof.path, 6, i)

    def test_prove_is_repeatable(self):
        tree = _build(_segments(9), index=3)
        assert tree.prove() == tree.prove()

    def test_empty_tree_proof_unavailable(self):
        proof = Tree(H).prove()
        assert proof.path == []
        assert proof.root == b""
        assert proof.leaf_count == 0
        assert not proof.available

    def test_unreached_target_proof_unavailable(self):
        proof = _build(_segments(4), index=4).prove()
        assert proof.path == []
        assert proof.target_index == 4
        assert proof.leaf_count == 4
        assert proof.root == _reference_root(_segments(4))
