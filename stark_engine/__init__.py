"""STARK prover and verifier over galois prime fields.

Example:
    from stark_engine import TOY, ProofOptions, prove, verify
    from stark_engine.constraints import fibonacci_constraints, fibonacci_result, fibonacci_trace

    trace = fibonacci_trace(TOY, 64)
    constraints = fibonacci_constraints(fibonacci_result(TOY, 64))
    proof = prove(trace, constraints, ProofOptions(num_queries=20))
    assert verify(proof, constraints, ProofOptions(num_queries=20), TOY)
"""

from stark_engine.errors import (
    ConfigurationError,
    ConstraintViolation,
    ProvingError,
    StarkError,
    VerificationError,
)
from stark_engine.primitives.field import GOLDILOCKS, TOY, Field
from stark_engine.protocol import (
    BoundaryConstraint,
    Challenge,
    Column,
    ConstraintSet,
    ExecutionTrace,
    Proof,
    ProofOptions,
    Prover,
    Public,
    TerminalConstraint,
    TransitionConstraint,
    VerificationResult,
    Verifier,
    prove,
    verify,
)

__all__ = [
    "BoundaryConstraint",
    "Challenge",
    "Column",
    "ConfigurationError",
    "ConstraintSet",
    "ConstraintViolation",
    "ExecutionTrace",
    "Field",
    "GOLDILOCKS",
    "Proof",
    "ProofOptions",
    "Prover",
    "ProvingError",
    "Public",
    "StarkError",
    "TOY",
    "TerminalConstraint",
    "TransitionConstraint",
    "VerificationError",
    "VerificationResult",
    "Verifier",
    "prove",
    "verify",
]
