"""Fiat-Shamir transcript.

The running state is a chained digest. Every absorb folds the message, its
length and a message counter into the state; every challenge first absorbs its
tag, squeezes output bytes and then ratchets the state so no challenge is ever
reused. Prover and verifier perform the same absorb/challenge sequence and
therefore derive bit-identical challenges.
"""

from typing import List

import galois

from stark_engine.primitives.field import Field, is_power_of_two
from stark_engine.primitives.hashing import Hasher

# Extra squeeze bytes per element; keeps the modular reduction bias below 2^-128.
_BIAS_BYTES = 16
_MAX_NONCE = 2**64


class Transcript:
    """Fiat-Shamir oracle for one proof session."""

    def __init__(self, field: Field, label: bytes | str = b"stark-engine", hash_name: str = "sha256"):
        if isinstance(label, str):
            label = label.encode()
        self.field = field
        self.hasher = Hasher(hash_name)
        self._state = self.hasher.hash(b"transcript|init|", len(label).to_bytes(8, "little"), label)
        self.message_count = 0

    @property
    def state(self) -> bytes:
        return self._state

    # --- Absorbing ---

    def absorb(self, data: bytes) -> None:
        self._state = self.hasher.hash(
            self._state,
            b"absorb",
            self.message_count.to_bytes(8, "little"),
            len(data).to_bytes(8, "little"),
            bytes(data),
        )
        self.message_count += 1

    def absorb_elements(self, values) -> None:
        self.absorb(self.field.encode(values))

    def absorb_ext(self, values) -> None:
        """Absorb EF values as their flattened base coefficients."""
        self.absorb(self.field.encode(self.field.flatten_ext(values)))

    def absorb_int(self, value: int, length: int = 8) -> None:
        self.absorb(int(value).to_bytes(length, "little"))

    # --- Challenges ---

    def _squeeze(self, tag: str, length: int) -> bytes:
        self.absorb(b"challenge|" + tag.encode())
        out = bytearray()
        block = 0
        while len(out) < length:
            out += self.hasher.hash(self._state, b"squeeze", block.to_bytes(8, "little"))
            block += 1
        self._state = self.hasher.hash(self._state, b"ratchet")
        return bytes(out[:length])

    def challenge_field_elements(self, tag: str, count: int) -> galois.FieldArray:
        """Derive `count` field elements under a domain-separation tag."""
        width = (self.field.modulus.bit_length() + 7) // 8 + _BIAS_BYTES
        stream = self._squeeze(tag, width * count)
        values = [
            int.from_bytes(stream[i * width:(i + 1) * width], "little") % self.field.modulus
            for i in range(count)
        ]
        return self.field.GF(values) if values else self.field.zeros(0)

    def challenge_field_element(self, tag: str) -> galois.FieldArray:
        return self.challenge_field_elements(tag, 1)[0]

    def challenge_ext_elements(self, tag: str, count: int) -> galois.FieldArray:
        """Derive `count` extension elements, d base elements each."""
        field = self.field
        base = self.challenge_field_elements(tag, count * field.extension_degree)
        return field.unflatten_ext(base) if count else field.EF.Zeros(0)

    def challenge_ext_element(self, tag: str) -> galois.FieldArray:
        return self.challenge_ext_elements(tag, 1)[0]

    def challenge_indices(self, count: int, domain_size: int, tag: str = "queries") -> List[int]:
        """Derive `count` distinct indices in [0, domain_size)."""
        if not is_power_of_two(domain_size):
            raise ValueError(f"domain size {domain_size} is not a power of two")
        if not 0 <= count <= domain_size:
            raise ValueError(f"cannot draw {count} distinct indices from {domain_size}")
        seed = self._squeeze(tag, self.hasher.digest_size)
        mask = domain_size - 1
        indices: List[int] = []
        seen = set()
        counter = 0
        while len(indices) < count:
            block = self.hasher.hash(seed, counter.to_bytes(8, "little"))
            counter += 1
            for offset in range(0, len(block) - 7, 8):
                index = int.from_bytes(block[offset:offset + 8], "little") & mask
                if index not in seen:
                    seen.add(index)
                    indices.append(index)
                    if len(indices) == count:
                        break
        return indices

    # --- Grinding ---

    def _pow_digest(self, nonce: int) -> int:
        digest = self.hasher.hash(b"pow", self._state, nonce.to_bytes(8, "little"))
        return int.from_bytes(digest, "big")

    def check_pow(self, nonce: int, bits: int) -> bool:
        """True if H("pow" || state || nonce) has `bits` leading zero bits."""
        if not isinstance(nonce, int) or isinstance(nonce, bool) or not 0 <= nonce < _MAX_NONCE:
            return False
        if bits == 0:
            return True
        shift = 8 * self.hasher.digest_size - bits
        return self._pow_digest(nonce) >> shift == 0

    def grind(self, bits: int) -> int:
        """Least nonce satisfying check_pow. The caller absorbs it afterwards."""
        nonce = 0
        while not self.check_pow(nonce, bits):
            nonce += 1
        return nonce
