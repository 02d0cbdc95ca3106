"""Public proof parameters.

ProofOptions is shared by prover and verifier. Its canonical encoding is
absorbed into the transcript, so a verifier configured with different options
derives different challenges and rejects.
"""

import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import ClassVar

from stark_engine.errors import ConfigurationError
from stark_engine.primitives.field import is_power_of_two
from stark_engine.primitives.hashing import SUPPORTED_HASHES


@dataclass(frozen=True)
class ProofOptions:
    """STARK parameters.

    Attributes:
        num_queries: FRI query count; soundness grows with it
        blowup_factor: LDE expansion k, domain size k * n
        fri_max_remainder_size: degree bound at which FRI stops folding and
            sends the remainder polynomial in the clear
        grinding_bits: proof-of-work difficulty before query sampling
        hash_name: hashlib algorithm for Merkle trees and the transcript
        backend: compute backend name; scheduling only, not part of the proof
    """
    num_queries: int = 32
    blowup_factor: int = 4
    fri_max_remainder_size: int = 8
    grinding_bits: int = 8
    hash_name: str = "sha256"
    backend: str = "sequential"

    MIN_NUM_QUERIES: ClassVar[int] = 1
    MAX_NUM_QUERIES: ClassVar[int] = 128
    MIN_BLOWUP_FACTOR: ClassVar[int] = 2
    MAX_BLOWUP_FACTOR: ClassVar[int] = 64
    MAX_GRINDING_BITS: ClassVar[int] = 32

    def __post_init__(self) -> None:
        if not isinstance(self.num_queries, int) or not (
            self.MIN_NUM_QUERIES <= self.num_queries <= self.MAX_NUM_QUERIES
        ):
            raise ConfigurationError(
                f"num_queries must be in [{self.MIN_NUM_QUERIES}, {self.MAX_NUM_QUERIES}], "
                f"got {self.num_queries}"
            )
        if not is_power_of_two(self.blowup_factor) or not (
            self.MIN_BLOWUP_FACTOR <= self.blowup_factor <= self.MAX_BLOWUP_FACTOR
        ):
            raise ConfigurationError(
                f"blowup_factor must be a power of two in "
                f"[{self.MIN_BLOWUP_FACTOR}, {self.MAX_BLOWUP_FACTOR}], got {self.blowup_factor}"
            )
        if not is_power_of_two(self.fri_max_remainder_size):
            raise ConfigurationError(
                f"fri_max_remainder_size must be a power of two, got {self.fri_max_remainder_size}"
            )
        if not isinstance(self.grinding_bits, int) or not 0 <= self.grinding_bits <= self.MAX_GRINDING_BITS:
            raise ConfigurationError(
                f"grinding_bits must be in [0, {self.MAX_GRINDING_BITS}], got {self.grinding_bits}"
            )
        if self.hash_name not in SUPPORTED_HASHES:
            raise ConfigurationError(f"unsupported hash {self.hash_name!r}")
        if not isinstance(self.backend, str) or not self.backend:
            raise ConfigurationError("backend must be a non-empty name")

    # --- Encoding ---

    def encode(self) -> bytes:
        """Canonical bytes absorbed into the transcript (backend excluded)."""
        hash_name = self.hash_name.encode()
        return b"".join([
            self.num_queries.to_bytes(2, "little"),
            self.blowup_factor.to_bytes(2, "little"),
            self.fri_max_remainder_size.to_bytes(8, "little"),
            self.grinding_bits.to_bytes(1, "little"),
            len(hash_name).to_bytes(1, "little"),
            hash_name,
        ])

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "ProofOptions":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"unknown proof options: {', '.join(sorted(unknown))}")
        return cls(**data)

    @classmethod
    def from_json(cls, path: str | Path) -> "ProofOptions":
        with open(path) as f:
            return cls.from_dict(json.load(f))
