"""Tests for the Merkle vector commitment.

Covers commit/open/verify round trips, minimal batched openings, padding, and
rejection of every single-byte or single-value modification.
"""

from dataclasses import replace

import numpy as np
import pytest

from stark_engine.primitives.backend import ThreadPoolBackend
from stark_engine.primitives.field import TOY
from stark_engine.primitives.hashing import Hasher
from stark_engine.primitives.merkle_tree import MerkleProof, MerkleTree, verify_proof


def _rows(n: int, width: int = 2):
    return TOY([[i * width + j for j in range(width)] for i in range(n)])


def _flip_byte(digest: bytes, position: int = 0) -> bytes:
    return digest[:position] + bytes([digest[position] ^ 0x01]) + digest[position + 1:]


class TestMerkleCommit:
    """Test tree construction."""

    def test_root_is_deterministic(self, hasher: Hasher) -> None:
        a = MerkleTree.commit(_rows(8), hasher, TOY)
        b = MerkleTree.commit(_rows(8), hasher, TOY)
        assert a.root == b.root
        assert len(a.root) == hasher.digest_size

    def test_root_depends_on_every_row(self, hasher: Hasher) -> None:
        """Changing any single value changes the root."""
        base = MerkleTree.commit(_rows(8), hasher, TOY).root
        for i in range(8):
            rows = _rows(8).copy()
            rows[i, 1] += TOY(1)
            assert MerkleTree.commit(rows, hasher, TOY).root != base

    def test_single_leaf(self, hasher: Hasher) -> None:
        """A one-leaf tree's root is the leaf hash; opening it needs no siblings."""
        tree = MerkleTree.commit(_rows(1), hasher, TOY)
        proof = tree.open([0])
        assert proof.siblings == []
        assert verify_proof(tree.root, proof, hasher, TOY)

    def test_rejects_non_power_of_two(self, hasher: Hasher) -> None:
        with pytest.raises(ValueError):
            MerkleTree.commit(_rows(6), hasher, TOY)

    def test_rejects_empty(self, hasher: Hasher) -> None:
        with pytest.raises(ValueError):
            MerkleTree.commit(TOY.zeros((0, 2)), hasher, TOY)

    def test_pad_row(self, hasher: Hasher) -> None:
        """Padding appends filler rows up to the next power of two."""
        tree = MerkleTree.commit(_rows(6), hasher, TOY, pad_row=[0, 0])
        assert tree.num_leaves == 8
        assert tree.leaf_values(7) == [0, 0]
        assert tree.leaf_values(5) == [10, 11]

    def test_commit_does_not_freeze_caller_array(self, hasher: Hasher) -> None:
        rows = _rows(4)
        MerkleTree.commit(rows, hasher, TOY)
        rows[0, 0] = TOY(9)

    def test_thread_pool_backend_same_root(self, hasher: Hasher) -> None:
        """Backends are observably equivalent."""
        rows = TOY.GF.Random((64, 3))
        sequential = MerkleTree.commit(rows, hasher, TOY)
        threaded = MerkleTree.commit(rows, hasher, TOY, backend=ThreadPoolBackend(max_workers=4))
        assert sequential.root == threaded.root


class TestMerkleOpen:
    """Test batched openings and verification."""

    @pytest.mark.parametrize("indices", [[0], [7], [0, 1], [2, 5], [0, 3, 4, 7], list(range(8))])
    def test_roundtrip(self, hasher: Hasher, indices) -> None:
        tree = MerkleTree.commit(_rows(8), hasher, TOY)
        proof = tree.open(indices)
        assert proof.indices == sorted(indices)
        assert proof.values == [tree.leaf_values(i) for i in sorted(indices)]
        assert MerkleTree.verify(tree.root, proof.indices, proof.values, proof, hasher, TOY)

    def test_opening_is_minimal(self, hasher: Hasher) -> None:
        """Siblings computable from opened leaves are not sent."""
        tree = MerkleTree.commit(_rows(8), hasher, TOY)
        assert len(tree.open([3]).siblings) == 3
        assert len(tree.open([2, 3]).siblings) == 2
        assert len(tree.open([0, 1, 2, 3]).siblings) == 1
        assert len(tree.open(range(8)).siblings) == 0

    def test_open_deduplicates(self, hasher: Hasher) -> None:
        tree = MerkleTree.commit(_rows(8), hasher, TOY)
        assert tree.open([5, 1, 5]).indices == [1, 5]

    def test_open_out_of_range(self, hasher: Hasher) -> None:
        tree = MerkleTree.commit(_rows(8), hasher, TOY)
        with pytest.raises(IndexError):
            tree.open([8])

    def test_every_sibling_byte_flip_rejected(self, hasher: Hasher) -> None:
        tree = MerkleTree.commit(_rows(16), hasher, TOY)
        proof = tree.open([3, 9])
        for s in range(len(proof.siblings)):
            for position in (0, hasher.digest_size - 1):
                siblings = list(proof.siblings)
                siblings[s] = _flip_byte(siblings[s], position)
                assert not verify_proof(tree.root, replace(proof, siblings=siblings), hasher, TOY)

    def test_root_byte_flip_rejected(self, hasher: Hasher) -> None:
        tree = MerkleTree.commit(_rows(8), hasher, TOY)
        proof = tree.open([4])
        for position in range(hasher.digest_size):
            assert not verify_proof(_flip_byte(tree.root, position), proof, hasher, TOY)

    def test_value_change_rejected(self, hasher: Hasher) -> None:
        tree = MerkleTree.commit(_rows(8), hasher, TOY)
        proof = tree.open([2, 6])
        values = [list(v) for v in proof.values]
        values[1][0] += 1
        assert not MerkleTree.verify(tree.root, proof.indices, values, proof, hasher, TOY)

    def test_wrong_index_rejected(self, hasher: Hasher) -> None:
        tree = MerkleTree.commit(_rows(8), hasher, TOY)
        proof = tree.open([2])
        assert not MerkleTree.verify(tree.root, [3], proof.values, proof, hasher, TOY)

    @pytest.mark.parametrize("mutate", [
        lambda p: replace(p, siblings=p.siblings + [p.siblings[0]]),   # leftover sibling
        lambda p: replace(p, siblings=p.siblings[:-1]),                 # missing sibling
        lambda p: replace(p, indices=[p.indices[1], p.indices[0]]),     # unsorted
        lambda p: replace(p, indices=[p.indices[0], p.indices[0]]),     # duplicate
        lambda p: replace(p, indices=[p.indices[0], 99]),               # out of range
        lambda p: replace(p, values=p.values[:1]),                      # count mismatch
        lambda p: replace(p, values=[[TOY.modulus, 0], p.values[1]]),   # non-canonical
        lambda p: replace(p, num_leaves=6),                             # not a power of two
        lambda p: replace(p, siblings=[b"short"] + p.siblings[1:]),     # bad digest size
    ])
    def test_malformed_proofs_return_false(self, hasher: Hasher, mutate) -> None:
        """Malformed input is rejected without raising."""
        tree = MerkleTree.commit(_rows(8), hasher, TOY)
        proof = mutate(tree.open([1, 6]))
        assert verify_proof(tree.root, proof, hasher, TOY) is False

    def test_dict_roundtrip(self, hasher: Hasher) -> None:
        tree = MerkleTree.commit(_rows(8), hasher, TOY)
        proof = tree.open([0, 5])
        restored = MerkleProof.from_dict(proof.to_dict())
        assert restored == proof
        assert verify_proof(tree.root, restored, hasher, TOY)

    @pytest.mark.parametrize("name", ["sha256", "blake2b", "sha3_256"])
    def test_hash_choices(self, name: str) -> None:
        h = Hasher(name)
        tree = MerkleTree.commit(_rows(8), h, TOY)
        assert verify_proof(tree.root, tree.open([1, 2]), h, TOY)

    def test_rows_are_read_only(self, hasher: Hasher) -> None:
        tree = MerkleTree.commit(_rows(4), hasher, TOY)
        assert np.array_equal(tree.rows, _rows(4))
        with pytest.raises(ValueError):
            tree.rows[0, 0] = TOY(1)
