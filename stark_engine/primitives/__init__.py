"""Primitives - Low-level cryptographic and mathematical building blocks."""

from stark_engine.primitives.backend import (
    ComputeBackend,
    SequentialBackend,
    ThreadPoolBackend,
    available_backends,
    get_backend,
    register_backend,
)
from stark_engine.primitives.field import (
    GOLDILOCKS,
    GOLDILOCKS_PRIME,
    TOY,
    TOY_PRIME,
    Field,
    is_power_of_two,
)
from stark_engine.primitives.hashing import SUPPORTED_HASHES, Hasher
from stark_engine.primitives.merkle_tree import (
    LeafValues,
    MerkleProof,
    MerkleRoot,
    MerkleTree,
    verify_proof,
)
from stark_engine.primitives.ntt import NTT
from stark_engine.primitives.transcript import Transcript

__all__ = [
    # Field
    "Field",
    "GOLDILOCKS",
    "GOLDILOCKS_PRIME",
    "TOY",
    "TOY_PRIME",
    "is_power_of_two",
    # NTT
    "NTT",
    # Hashing
    "Hasher",
    "SUPPORTED_HASHES",
    # Compute backends
    "ComputeBackend",
    "SequentialBackend",
    "ThreadPoolBackend",
    "available_backends",
    "get_backend",
    "register_backend",
    # Merkle Tree
    "MerkleTree",
    "MerkleProof",
    "MerkleRoot",
    "LeafValues",
    "verify_proof",
    # Transcript
    "Transcript",
]
