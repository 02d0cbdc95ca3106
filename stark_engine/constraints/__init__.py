"""Constraint evaluation contexts and example AIRs."""

from stark_engine.constraints.base import (
    ConstraintContext,
    ProverConstraintContext,
    VerifierConstraintContext,
)
from stark_engine.constraints.doubling import doubling_constraints, doubling_trace
from stark_engine.constraints.fibonacci import (
    fibonacci_constraints,
    fibonacci_result,
    fibonacci_trace,
)
from stark_engine.constraints.permutation import (
    permutation_constraints,
    permutation_trace,
    running_product,
)

__all__ = [
    # Contexts
    "ConstraintContext",
    "ProverConstraintContext",
    "VerifierConstraintContext",
    # Example AIRs
    "doubling_constraints",
    "doubling_trace",
    "fibonacci_constraints",
    "fibonacci_result",
    "fibonacci_trace",
    "permutation_constraints",
    "permutation_trace",
    "running_product",
]
