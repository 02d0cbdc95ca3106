"""Algebraic Intermediate Representation: the constraint set a trace must satisfy.

Three kinds of constraints:

- boundary:   expression vanishes at one fixed row
- transition: expression over current/next rows vanishes on every row but the last
- terminal:   expression vanishes at the last row

An AIR may also declare an auxiliary trace segment. Its columns are computed
after the main trace is committed, from verifier challenges, which is how
permutation and lookup arguments are expressed. Column indices count main
columns first, then auxiliary ones.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

import galois

from stark_engine.errors import ConfigurationError
from stark_engine.protocol.expressions import Challenge, Column, Expr, ExprLike, Public, lift
from stark_engine.protocol.trace import ExecutionTrace

BOUNDARY = "boundary"
TRANSITION = "transition"
TERMINAL = "terminal"

# (main trace, challenges) -> aux matrix of shape (n_rows, num_aux_columns), over field.EF
AuxTraceBuilder = Callable[[ExecutionTrace, galois.FieldArray], galois.FieldArray]


def _value_expr(value) -> Expr:
    """Right-hand side of an equality constraint: int, public input name or Expr."""
    if isinstance(value, str):
        return Public(value)
    return lift(value)


# --- Constraint Kinds ---


@dataclass(frozen=True)
class BoundaryConstraint:
    row: int
    expr: Expr

    @classmethod
    def equals(cls, column: int, row: int, value: "ExprLike | str") -> "BoundaryConstraint":
        """trace[row][column] == value"""
        return cls(row, Column(column) - _value_expr(value))


@dataclass(frozen=True)
class TransitionConstraint:
    expr: Expr


@dataclass(frozen=True)
class TerminalConstraint:
    expr: Expr

    @classmethod
    def equals(cls, column: int, value: "ExprLike | str") -> "TerminalConstraint":
        """trace[n-1][column] == value"""
        return cls(Column(column) - _value_expr(value))


# --- Constraint Set ---


@dataclass
class ConstraintSet:
    """Constraints plus the trace layout they refer to.

    Attributes:
        num_columns: width of the main trace segment
        boundary / transition / terminal: constraints by kind
        public_inputs: values referenced by Public(name), absorbed into the transcript
        num_aux_columns: width of the auxiliary segment (0 for none)
        num_challenges: challenges drawn after the main commitment
        aux_builder: computes the auxiliary segment from the main trace
    """
    num_columns: int
    boundary: List[BoundaryConstraint] = field(default_factory=list)
    transition: List[TransitionConstraint] = field(default_factory=list)
    terminal: List[TerminalConstraint] = field(default_factory=list)
    public_inputs: Dict[str, int] = field(default_factory=dict)
    num_aux_columns: int = 0
    num_challenges: int = 0
    aux_builder: Optional[AuxTraceBuilder] = None

    def __post_init__(self) -> None:
        if self.num_columns < 1:
            raise ConfigurationError("constraint set needs at least one main column")
        if not (self.boundary or self.transition or self.terminal):
            raise ConfigurationError("constraint set has no constraints")
        if (self.num_aux_columns > 0) != (self.aux_builder is not None):
            raise ConfigurationError("auxiliary columns and aux_builder must be given together")
        if self.num_challenges < 0 or self.num_aux_columns < 0:
            raise ConfigurationError("negative segment sizes")

        for kind, index, expr in self.constraints():
            if expr.degree() < 1:
                raise ConfigurationError(f"{kind} constraint {index} does not depend on the trace")
            for node in expr.walk():
                if isinstance(node, Column):
                    if node.index >= self.total_columns:
                        raise ConfigurationError(
                            f"{kind} constraint {index} references column {node.index} "
                            f"of {self.total_columns}"
                        )
                    if node.offset and kind != TRANSITION:
                        raise ConfigurationError(
                            f"{kind} constraint {index} references the next row"
                        )
                elif isinstance(node, Public) and node.name not in self.public_inputs:
                    raise ConfigurationError(f"public input {node.name!r} not provided")
                elif isinstance(node, Challenge) and node.index >= self.num_challenges:
                    raise ConfigurationError(
                        f"challenge {node.index} used but only {self.num_challenges} declared"
                    )
        for index, c in enumerate(self.boundary):
            if c.row < 0:
                raise ConfigurationError(f"boundary constraint {index} has negative row {c.row}")

    # --- Layout ---

    @property
    def total_columns(self) -> int:
        return self.num_columns + self.num_aux_columns

    @property
    def has_aux_segment(self) -> bool:
        return self.num_aux_columns > 0

    @property
    def num_segments(self) -> int:
        return 2 if self.has_aux_segment else 1

    @property
    def num_constraints(self) -> int:
        return len(self.boundary) + len(self.transition) + len(self.terminal)

    def constraints(self) -> List[Tuple[str, int, Expr]]:
        """All constraints in canonical order: boundary, transition, terminal."""
        out = [(BOUNDARY, i, c.expr) for i, c in enumerate(self.boundary)]
        out += [(TRANSITION, i, c.expr) for i, c in enumerate(self.transition)]
        out += [(TERMINAL, i, c.expr) for i, c in enumerate(self.terminal)]
        return out

    # --- Degrees ---

    @property
    def max_degree(self) -> int:
        return max(expr.degree() for _, _, expr in self.constraints())

    @property
    def composition_factor(self) -> int:
        """Smallest power of two >= the highest constraint degree."""
        return 1 << (self.max_degree - 1).bit_length()

    # --- Auxiliary Segment ---

    def build_aux_columns(self, trace: ExecutionTrace, challenges: galois.FieldArray) -> galois.FieldArray:
        columns = trace.field.lift(self.aux_builder(trace, challenges))
        if columns.ndim == 1:
            columns = columns.reshape(-1, 1)
        return columns

    # --- Encoding ---

    def encode(self) -> bytes:
        """Canonical description of the statement, absorbed into the transcript."""
        lines = [
            f"columns={self.num_columns}",
            f"aux_columns={self.num_aux_columns}",
            f"challenges={self.num_challenges}",
        ]
        lines += [f"boundary@{c.row}:{c.expr!r}" for c in self.boundary]
        lines += [f"transition:{c.expr!r}" for c in self.transition]
        lines += [f"terminal:{c.expr!r}" for c in self.terminal]
        return "\n".join(lines).encode()

    def encode_public_inputs(self, modulus: int) -> bytes:
        parts = []
        for name in sorted(self.public_inputs):
            raw = name.encode()
            value = int(self.public_inputs[name]) % modulus
            parts.append(len(raw).to_bytes(2, "little") + raw + value.to_bytes(32, "little"))
        return b"".join(parts)
