"""Tests for compute backends and the backend registry.

Every backend must produce exactly what the sequential backend produces.
"""

import numpy as np
import pytest

from stark_engine.constraints import doubling_constraints
from stark_engine.errors import ConfigurationError
from stark_engine.primitives.backend import (
    SequentialBackend,
    ThreadPoolBackend,
    available_backends,
    get_backend,
    register_backend,
)
from stark_engine.primitives.field import TOY
from stark_engine.primitives.hashing import Hasher
from stark_engine.primitives.polynomial import to_coefficients
from stark_engine.protocol.options import ProofOptions
from stark_engine.protocol.prover import Prover

BACKENDS = [SequentialBackend(), ThreadPoolBackend(max_workers=1), ThreadPoolBackend(max_workers=4)]


class TestBackendEquivalence:
    """Order-preserving results for every backend."""

    @pytest.mark.parametrize("backend", BACKENDS, ids=lambda b: f"{b.name}")
    def test_map_preserves_order(self, backend) -> None:
        assert backend.map(lambda x: x * x, list(range(50))) == [x * x for x in range(50)]

    @pytest.mark.parametrize("backend", BACKENDS, ids=lambda b: f"{b.name}")
    def test_map_chunks_flattens_in_order(self, backend) -> None:
        result = backend.map_chunks(lambda chunk: [x + 1 for x in chunk], list(range(37)))
        assert result == list(range(1, 38))

    @pytest.mark.parametrize("backend", BACKENDS, ids=lambda b: f"{b.name}")
    def test_empty_inputs(self, backend) -> None:
        assert backend.map(lambda x: x, []) == []
        assert backend.map_chunks(lambda chunk: list(chunk), []) == []

    def test_hashing_matches(self, hasher: Hasher) -> None:
        payloads = [bytes([i]) * 8 for i in range(64)]
        expected = SequentialBackend().hash_leaves(hasher, payloads)
        threaded = ThreadPoolBackend(max_workers=5)
        assert threaded.hash_leaves(hasher, payloads) == expected
        assert threaded.hash_pairs(hasher, expected) == SequentialBackend().hash_pairs(hasher, expected)
        assert len(threaded.hash_pairs(hasher, expected)) == 32

    def test_transform_matches(self) -> None:
        matrix = TOY.GF.Random((16, 7))
        fn = lambda block: to_coefficients(TOY, block)  # noqa: E731
        expected = SequentialBackend().transform(matrix, fn)
        result = ThreadPoolBackend(max_workers=3).transform(matrix, fn)
        assert result.shape == (16, 7)
        assert np.array_equal(result, expected)


class _CustomBackend(SequentialBackend):
    name = "custom"


class TestRegistry:
    """Backends are selected by name."""

    def test_builtin_backends(self) -> None:
        assert {"sequential", "threads"} <= set(available_backends())
        assert isinstance(get_backend("sequential"), SequentialBackend)
        assert isinstance(get_backend("threads"), ThreadPoolBackend)

    def test_instance_passthrough(self) -> None:
        backend = ThreadPoolBackend(max_workers=2)
        assert get_backend(backend) is backend

    def test_unknown_backend(self) -> None:
        with pytest.raises(ConfigurationError, match="gpu"):
            get_backend("gpu")

    def test_unknown_backend_at_prover_construction(self) -> None:
        with pytest.raises(ConfigurationError):
            Prover(doubling_constraints(1), ProofOptions(backend="missing"), TOY)

    def test_registered_backend_is_used(self) -> None:
        register_backend("custom", _CustomBackend)
        assert "custom" in available_backends()
        prover = Prover(doubling_constraints(1), ProofOptions(backend="custom"), TOY)
        assert isinstance(prover.backend, _CustomBackend)
