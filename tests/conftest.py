"""
Pytest configuration and shared fixtures for stark_engine tests.

Proving tests run over the small TOY field with reduced query counts so that
a full prove/verify cycle stays fast.
"""

import pytest

from stark_engine.constraints import (
    doubling_constraints,
    doubling_trace,
    fibonacci_constraints,
    fibonacci_result,
    fibonacci_trace,
    permutation_constraints,
    permutation_trace,
)
from stark_engine.primitives.field import GOLDILOCKS, TOY
from stark_engine.primitives.hashing import Hasher
from stark_engine.protocol.options import ProofOptions


@pytest.fixture
def field():
    return TOY


@pytest.fixture
def goldilocks():
    return GOLDILOCKS


@pytest.fixture
def hasher() -> Hasher:
    return Hasher("sha256")


@pytest.fixture
def options() -> ProofOptions:
    """Small but complete parameter set: 2 FRI layers for an 8-row degree-1 AIR."""
    return ProofOptions(
        num_queries=8,
        blowup_factor=4,
        fri_max_remainder_size=2,
        grinding_bits=4,
    )


# --- AIR Fixtures ---


@pytest.fixture
def doubling_air():
    """8-row doubling trace starting at 3 and its constraints."""
    return doubling_trace(TOY, 8, 3), doubling_constraints(3)


@pytest.fixture
def fibonacci_air():
    n = 16
    return fibonacci_trace(TOY, n), fibonacci_constraints(fibonacci_result(TOY, n))


@pytest.fixture
def permutation_air():
    """Degree-2 AIR with an auxiliary running-product column."""
    original = [5, 1, 4, 8, 2, 7, 3, 6]
    permuted = [1, 2, 3, 4, 5, 6, 7, 8]
    return permutation_trace(TOY, original, permuted), permutation_constraints()
