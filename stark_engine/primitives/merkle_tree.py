"""Binary Merkle tree vector commitment with batched openings.

Nodes live in a flat arena: nodes[1] is the root, nodes[n + i] is leaf i and
the children of node k are 2k and 2k + 1. Leaves hash the encoded row with a
0x00 prefix, internal nodes hash both children with a 0x01 prefix.

A batched opening for a sorted index set carries the minimal sibling list:
walking up level by level over the sorted known nodes, a sibling is emitted
only when it cannot be computed from the opened leaves themselves.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

import galois
import numpy as np

from stark_engine.primitives.backend import ComputeBackend, SequentialBackend
from stark_engine.primitives.field import Field, is_power_of_two
from stark_engine.primitives.hashing import Hasher

# --- Type Aliases ---

MerkleRoot = bytes
LeafValues = List[int]


# --- Data Classes ---


@dataclass(frozen=True)
class MerkleProof:
    """Batched opening of a set of leaves.

    Attributes:
        num_leaves: leaf count of the committed tree
        indices: sorted, unique leaf indices
        values: opened rows, values[i] belongs to indices[i]
        siblings: authentication digests in canonical consumption order
    """
    num_leaves: int
    indices: List[int] = field(default_factory=list)
    values: List[LeafValues] = field(default_factory=list)
    siblings: List[bytes] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "num_leaves": self.num_leaves,
            "indices": list(self.indices),
            "values": [[str(x) for x in v] for v in self.values],
            "siblings": [s.hex() for s in self.siblings],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MerkleProof":
        return cls(
            num_leaves=data["num_leaves"],
            indices=list(data["indices"]),
            values=[[int(x) for x in v] for v in data["values"]],
            siblings=[bytes.fromhex(s) for s in data["siblings"]],
        )


# --- Merkle Tree ---


class MerkleTree:
    """Committed rows plus the node arena. Read-only once built."""

    def __init__(self, nodes: List[bytes], rows: galois.FieldArray, hasher: Hasher, field: Field):
        self._nodes = nodes
        self._rows = rows
        self.hasher = hasher
        self.field = field

    @classmethod
    def commit(
        cls,
        rows,
        hasher: Hasher,
        field: Field,
        backend: Optional[ComputeBackend] = None,
        pad_row: Optional[Sequence[int]] = None,
    ) -> "MerkleTree":
        """Build a tree whose leaf i commits to rows[i].

        Args:
            rows: 2-D array of field elements, one leaf per row
            pad_row: filler row used when the row count is not a power of two

        Raises:
            ValueError: empty input, or a non power-of-two row count without pad_row
        """
        backend = backend or SequentialBackend()
        rows = field(rows).copy()
        if rows.ndim == 1:
            rows = rows.reshape(-1, 1)
        n = rows.shape[0]
        if n == 0:
            raise ValueError("cannot commit to an empty row set")
        if not is_power_of_two(n):
            if pad_row is None:
                raise ValueError(f"leaf count {n} is not a power of two")
            target = 1 << n.bit_length()
            filler = field(np.tile(np.asarray(pad_row, dtype=object), (target - n, 1)))
            rows = field.concatenate([rows, filler], axis=0)
            n = target

        nodes: List[bytes] = [b""] * (2 * n)
        nodes[n:] = backend.hash_leaves(hasher, field.encode_rows(rows))
        width = n // 2
        while width >= 1:
            nodes[width:2 * width] = backend.hash_pairs(hasher, nodes[2 * width:4 * width])
            width //= 2

        rows.flags.writeable = False
        return cls(nodes, rows, hasher, field)

    # --- Accessors ---

    @property
    def root(self) -> MerkleRoot:
        return self._nodes[1]

    @property
    def num_leaves(self) -> int:
        return len(self._nodes) // 2

    @property
    def rows(self) -> galois.FieldArray:
        return self._rows

    def leaf_values(self, index: int) -> LeafValues:
        return self.field.to_ints(self._rows[index])

    # --- Opening ---

    def open(self, indices: Iterable[int]) -> MerkleProof:
        """Batch opening of the given leaves (deduplicated and sorted)."""
        n = self.num_leaves
        unique = sorted(set(int(i) for i in indices))
        for i in unique:
            if not 0 <= i < n:
                raise IndexError(f"leaf index {i} out of range for {n} leaves")

        siblings: List[bytes] = []
        known = [n + i for i in unique]
        while known and known[0] > 1:
            parents: List[int] = []
            pos = 0
            while pos < len(known):
                node = known[pos]
                if pos + 1 < len(known) and known[pos + 1] == node ^ 1:
                    pos += 2
                else:
                    siblings.append(self._nodes[node ^ 1])
                    pos += 1
                parents.append(node >> 1)
            known = parents

        return MerkleProof(
            num_leaves=n,
            indices=unique,
            values=[self.leaf_values(i) for i in unique],
            siblings=siblings,
        )

    # --- Verification ---

    @staticmethod
    def verify(
        root: bytes,
        indices: Sequence[int],
        values: Sequence[Sequence[int]],
        proof: MerkleProof,
        hasher: Hasher,
        field: Field,
    ) -> bool:
        """Recompute the root from opened leaves and siblings.

        Returns False for any malformed input instead of raising.
        """
        n = proof.num_leaves
        if not isinstance(n, int) or not is_power_of_two(n):
            return False
        if not isinstance(root, bytes) or len(root) != hasher.digest_size:
            return False
        indices = list(indices)
        values = list(values)
        if not indices or len(indices) != len(values):
            return False
        for i, idx in enumerate(indices):
            if not isinstance(idx, int) or isinstance(idx, bool) or not 0 <= idx < n:
                return False
            if i > 0 and idx <= indices[i - 1]:
                return False

        digests = {}
        for idx, row in zip(indices, values):
            if not isinstance(row, (list, tuple)) or not row:
                return False
            if not all(field.is_canonical(v) for v in row):
                return False
            digests[n + idx] = hasher.leaf(field.encode_ints(row))

        siblings = iter(proof.siblings)
        known = sorted(digests)
        while known[0] > 1:
            parents: List[int] = []
            pos = 0
            while pos < len(known):
                node = known[pos]
                if pos + 1 < len(known) and known[pos + 1] == node ^ 1:
                    sibling = digests[node ^ 1]
                    pos += 2
                else:
                    sibling = next(siblings, None)
                    if not isinstance(sibling, bytes) or len(sibling) != hasher.digest_size:
                        return False
                    pos += 1
                if node & 1:
                    digests[node >> 1] = hasher.node(sibling, digests[node])
                else:
                    digests[node >> 1] = hasher.node(digests[node], sibling)
                parents.append(node >> 1)
            known = parents

        if next(siblings, None) is not None:
            return False
        return digests[1] == root


def verify_proof(root: bytes, proof: MerkleProof, hasher: Hasher, field: Field) -> bool:
    """Verify a batched opening against the indices and values it carries."""
    try:
        return MerkleTree.verify(root, proof.indices, proof.values, proof, hasher, field)
    except (AttributeError, TypeError):
        return False
