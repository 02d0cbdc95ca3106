"""Protocol - Core STARK protocol algorithms."""

from stark_engine.protocol.expressions import Challenge, Column, Constant, Expr, Public
from stark_engine.protocol.trace import ExecutionTrace
from stark_engine.protocol.air import (
    BoundaryConstraint,
    ConstraintSet,
    TerminalConstraint,
    TransitionConstraint,
)
from stark_engine.protocol.options import ProofOptions
from stark_engine.protocol.domain import StarkDomain
from stark_engine.protocol.fri import FriConfig, FriProof, FriProver, FriVerifier, verify_fri
from stark_engine.protocol.air_config import AirConfig
from stark_engine.protocol.composition import ConstraintComposer, DeepComposer, check_constraints
from stark_engine.protocol.proof import OodFrame, Proof, load_proof, save_proof
from stark_engine.protocol.prover import Prover, prove
from stark_engine.protocol.verifier import VerificationResult, Verifier, verify

__all__ = [
    # Expressions
    "Expr",
    "Column",
    "Constant",
    "Public",
    "Challenge",
    # AIR
    "ExecutionTrace",
    "ConstraintSet",
    "BoundaryConstraint",
    "TransitionConstraint",
    "TerminalConstraint",
    "AirConfig",
    # Parameters and domains
    "ProofOptions",
    "StarkDomain",
    # Composition
    "ConstraintComposer",
    "DeepComposer",
    "check_constraints",
    # FRI
    "FriConfig",
    "FriProof",
    "FriProver",
    "FriVerifier",
    "verify_fri",
    # Proof
    "Proof",
    "OodFrame",
    "save_proof",
    "load_proof",
    # Prover / Verifier
    "Prover",
    "prove",
    "Verifier",
    "VerificationResult",
    "verify",
]
