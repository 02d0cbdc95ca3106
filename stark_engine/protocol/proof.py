"""STARK proof data structures and dict conversion."""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List

from stark_engine.primitives.merkle_tree import MerkleProof, MerkleRoot
from stark_engine.protocol.fri import FriProof

# --- Proof Data Structures ---


@dataclass(frozen=True)
class OodFrame:
    """Out-of-domain evaluations at z.

    Every value is an extension element given by its d base coefficients.

    Attributes:
        trace_current: t_j(z) for every trace column (main then auxiliary)
        trace_next: t_j(z * omega)
        composition: H(z)
    """
    trace_current: List[int] = field(default_factory=list)
    trace_next: List[int] = field(default_factory=list)
    composition: List[int] = field(default_factory=list)

    def values(self) -> List[int]:
        """Flattened in absorb order."""
        return list(self.trace_current) + list(self.trace_next) + list(self.composition)


@dataclass(frozen=True)
class Proof:
    """Complete STARK proof.

    Fields appear in the order the prover produces them.

    Attributes:
        trace_length: number of trace rows n
        trace_roots: Merkle roots of the trace segments; [0] main, [1] auxiliary
        composition_root: Merkle root of the composition codeword
        ood: out-of-domain evaluations
        fri: FRI layer roots, remainder polynomial and layer openings
        pow_nonce: grinding nonce
        trace_openings: per segment, rows {q, q + k} for every query q
        composition_opening: composition values at every query q
    """
    trace_length: int
    trace_roots: List[MerkleRoot]
    composition_root: MerkleRoot
    ood: OodFrame
    fri: FriProof
    pow_nonce: int
    trace_openings: List[MerkleProof]
    composition_opening: MerkleProof

    @property
    def num_queries(self) -> int:
        return len(self.composition_opening.indices)

    # --- Dict Conversion ---

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible form: hex digests, field values as decimal strings."""
        return {
            "trace_length": self.trace_length,
            "trace_roots": [r.hex() for r in self.trace_roots],
            "composition_root": self.composition_root.hex(),
            "ood": {
                "trace_current": [str(v) for v in self.ood.trace_current],
                "trace_next": [str(v) for v in self.ood.trace_next],
                "composition": [str(v) for v in self.ood.composition],
            },
            "fri": self.fri.to_dict(),
            "pow_nonce": str(self.pow_nonce),
            "trace_openings": [o.to_dict() for o in self.trace_openings],
            "composition_opening": self.composition_opening.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Proof":
        ood = data["ood"]
        return cls(
            trace_length=int(data["trace_length"]),
            trace_roots=[bytes.fromhex(r) for r in data["trace_roots"]],
            composition_root=bytes.fromhex(data["composition_root"]),
            ood=OodFrame(
                trace_current=[int(v) for v in ood["trace_current"]],
                trace_next=[int(v) for v in ood["trace_next"]],
                composition=[int(v) for v in ood["composition"]],
            ),
            fri=FriProof.from_dict(data["fri"]),
            pow_nonce=int(data["pow_nonce"]),
            trace_openings=[MerkleProof.from_dict(o) for o in data["trace_openings"]],
            composition_opening=MerkleProof.from_dict(data["composition_opening"]),
        )


def save_proof(proof: Proof, path: str | Path) -> None:
    with open(path, "w") as f:
        json.dump(proof.to_dict(), f, indent=2)


def load_proof(path: str | Path) -> Proof:
    with open(path) as f:
        return Proof.from_dict(json.load(f))
