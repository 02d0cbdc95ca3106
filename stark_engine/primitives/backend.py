"""Compute backends for the data-parallel parts of proving.

Leaf hashing, per-level Merkle node hashing, column transforms and FRI folding
are independent per item. A backend decides how such work is scheduled; every
backend must return exactly what the sequential one returns, in the same order.

Accelerators plug in through the registry:

    register_backend("my-gpu", MyGpuBackend)
    ProofOptions(backend="my-gpu")
"""

import os
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Sequence, TypeVar

import galois
import numpy as np

from stark_engine.errors import ConfigurationError
from stark_engine.primitives.hashing import Hasher

T = TypeVar("T")
R = TypeVar("R")


def _chunks(items: Sequence[T], n_chunks: int) -> List[Sequence[T]]:
    """Split into at most n_chunks contiguous slices, preserving order."""
    n = len(items)
    n_chunks = max(1, min(n_chunks, n))
    size = -(-n // n_chunks)
    return [items[i:i + size] for i in range(0, n, size)]


# --- Backend Interface ---


class ComputeBackend(ABC):
    """Schedules independent work items."""

    name = "abstract"

    @abstractmethod
    def map(self, fn: Callable[[T], R], items: Sequence[T]) -> List[R]:
        """Apply fn to every item; results keep the input order."""

    def map_chunks(self, fn: Callable[[Sequence[T]], List[R]], items: Sequence[T]) -> List[R]:
        """Apply fn to contiguous chunks and flatten the per-chunk results."""
        return fn(items)

    def hash_leaves(self, hasher: Hasher, payloads: Sequence[bytes]) -> List[bytes]:
        return self.map_chunks(lambda chunk: [hasher.leaf(p) for p in chunk], payloads)

    def hash_pairs(self, hasher: Hasher, children: Sequence[bytes]) -> List[bytes]:
        """Hash children[2i], children[2i+1] into parent i."""
        pairs = list(zip(children[0::2], children[1::2]))
        return self.map_chunks(lambda chunk: [hasher.node(l, r) for l, r in chunk], pairs)

    def transform(self, matrix: galois.FieldArray,
                  fn: Callable[[galois.FieldArray], galois.FieldArray]) -> galois.FieldArray:
        """Apply a column-wise transform to a (rows, cols) matrix."""
        return fn(matrix)


class SequentialBackend(ComputeBackend):
    """Runs everything on the calling thread."""

    name = "sequential"

    def map(self, fn, items):
        return [fn(item) for item in items]


class ThreadPoolBackend(ComputeBackend):
    """Fans work out over a thread pool in contiguous chunks.

    A fresh executor is used per call, so the backend holds no threads
    between proving rounds.
    """

    name = "threads"

    def __init__(self, max_workers: int | None = None):
        self.max_workers = max_workers or min(32, (os.cpu_count() or 1) + 4)

    def map(self, fn, items):
        items = list(items)
        if len(items) <= 1:
            return [fn(item) for item in items]
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            return list(pool.map(fn, items))

    def map_chunks(self, fn, items):
        if len(items) <= 1:
            return fn(items)
        results: List = []
        for part in self.map(fn, _chunks(items, self.max_workers)):
            results.extend(part)
        return results

    def transform(self, matrix, fn):
        n_cols = matrix.shape[1]
        if n_cols <= 1:
            return fn(matrix)
        blocks = _chunks(range(n_cols), self.max_workers)
        outputs = self.map(lambda cols: fn(matrix[:, cols.start:cols.stop]), blocks)
        field_type = type(outputs[0])
        return field_type(np.concatenate([o.view(np.ndarray) for o in outputs], axis=1))


# --- Registry ---

_REGISTRY: Dict[str, Callable[[], ComputeBackend]] = {
    SequentialBackend.name: SequentialBackend,
    ThreadPoolBackend.name: ThreadPoolBackend,
}


def register_backend(name: str, factory: Callable[[], ComputeBackend]) -> None:
    """Make a backend selectable by name in ProofOptions."""
    _REGISTRY[name] = factory


def available_backends() -> List[str]:
    return sorted(_REGISTRY)


def get_backend(backend: "str | ComputeBackend") -> ComputeBackend:
    if isinstance(backend, ComputeBackend):
        return backend
    try:
        factory = _REGISTRY[backend]
    except KeyError:
        raise ConfigurationError(
            f"unknown compute backend {backend!r}; available: {', '.join(available_backends())}"
        ) from None
    return factory()
