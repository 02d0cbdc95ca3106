"""Permutation argument: column b is a rearrangement of column a.

Uses one interaction challenge gamma and an auxiliary running-product column z:

    z[0] = 1
    z[i+1] * (b[i] + gamma) = z[i] * (a[i] + gamma)
    z[n-1] * (a[n-1] + gamma) = b[n-1] + gamma

The last constraint closes the product, which equals 1 exactly when
prod(a + gamma) == prod(b + gamma), i.e. (with overwhelming probability over
gamma) when the multisets of a and b coincide.
"""

from typing import Sequence

import galois

from stark_engine.primitives.field import Field
from stark_engine.protocol.air import (
    BoundaryConstraint,
    ConstraintSet,
    TerminalConstraint,
    TransitionConstraint,
)
from stark_engine.protocol.expressions import Challenge, Column
from stark_engine.protocol.trace import ExecutionTrace


def running_product(trace: ExecutionTrace, challenges: galois.FieldArray) -> galois.FieldArray:
    """Auxiliary column z from the main columns and gamma; lives in the challenge field."""
    field = trace.field
    gamma = challenges[0]
    a, b = field.lift(trace.column(0)), field.lift(trace.column(1))
    ratios = (a + gamma) * (b + gamma) ** -1
    z = type(ratios).Ones(trace.num_rows)
    for i in range(1, trace.num_rows):
        z[i] = z[i - 1] * ratios[i - 1]
    return z.reshape(-1, 1)


def permutation_constraints() -> ConstraintSet:
    a, b, z = Column(0), Column(1), Column(2)
    gamma = Challenge(0)
    return ConstraintSet(
        num_columns=2,
        boundary=[BoundaryConstraint.equals(2, 0, 1)],
        transition=[TransitionConstraint(z.next * (b + gamma) - z * (a + gamma))],
        terminal=[TerminalConstraint(z * (a + gamma) - (b + gamma))],
        num_aux_columns=1,
        num_challenges=1,
        aux_builder=running_product,
    )


def permutation_trace(field: Field, original: Sequence[int], permuted: Sequence[int]) -> ExecutionTrace:
    if len(original) != len(permuted):
        raise ValueError("columns must have equal length")
    return ExecutionTrace.from_columns(field, [list(original), list(permuted)])
