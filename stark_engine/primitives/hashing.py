"""Hash function used by the Merkle commitment and the transcript.

A thin hashlib wrapper with domain separation between Merkle leaves (0x00)
and internal nodes (0x01).
"""

import hashlib

from stark_engine.errors import ConfigurationError

LEAF_PREFIX = b"\x00"
NODE_PREFIX = b"\x01"

# Fixed-output, collision-resistant algorithms hashlib guarantees everywhere.
SUPPORTED_HASHES = (
    "blake2b",
    "blake2s",
    "sha256",
    "sha384",
    "sha512",
    "sha3_256",
    "sha3_384",
    "sha3_512",
)


class Hasher:
    """Named hash function with leaf/node helpers."""

    def __init__(self, name: str = "sha256"):
        if name not in SUPPORTED_HASHES:
            raise ConfigurationError(
                f"unsupported hash {name!r}; expected one of {', '.join(SUPPORTED_HASHES)}"
            )
        self.name = name
        self._constructor = getattr(hashlib, name)
        self.digest_size = self._constructor().digest_size

    def __repr__(self) -> str:
        return f"Hasher({self.name!r})"

    def hash(self, *parts: bytes) -> bytes:
        h = self._constructor()
        for part in parts:
            h.update(part)
        return h.digest()

    def leaf(self, payload: bytes) -> bytes:
        return self.hash(LEAF_PREFIX, payload)

    def node(self, left: bytes, right: bytes) -> bytes:
        return self.hash(NODE_PREFIX, left, right)
