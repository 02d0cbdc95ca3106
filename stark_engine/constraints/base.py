"""Evaluation contexts for constraint expressions.

ConstraintContext provides a uniform interface for constraint evaluation that
works for both prover (returns arrays) and verifier (returns scalars or small
vectors). The same expression tree is evaluated in both contexts thanks to
galois broadcasting. Values are lifted to the challenge field field.EF so that
trace columns, constants and challenges combine freely.

Example:
    expr = Column(0).next - Column(0) * 2

    # Prover: every row of the trace domain or of the LDE coset
    values = expr.evaluate(ProverConstraintContext(field, trace_matrix, step=1))

    # Verifier: out-of-domain point z, from t(z) and t(z * omega)
    value = expr.evaluate(VerifierConstraintContext(field, ood_current, ood_next))
"""

from abc import ABC, abstractmethod
from typing import Mapping, Optional

import galois
import numpy as np

from stark_engine.primitives.field import Field


class ConstraintContext(ABC):
    """Uniform interface for constraint evaluation."""

    def __init__(self, field: Field, public_inputs: Optional[Mapping[str, int]] = None,
                 challenges: Optional[galois.FieldArray] = None):
        self.field = field
        self._publics = {
            name: field.lift(int(value) % field.modulus)
            for name, value in (public_inputs or {}).items()
        }
        self._challenges = field.lift(challenges) if challenges is not None else field.EF.Zeros(0)

    @abstractmethod
    def column(self, index: int, offset: int = 0) -> galois.FieldArray:
        """Column `index` at the current row (offset 0) or next row (offset 1).

        Returns:
            Prover: array of values at all domain points
            Verifier: evaluation at the point (or points) being checked
        """

    def constant(self, value: int) -> galois.FieldArray:
        return self.field.lift(value % self.field.modulus)

    def public(self, name: str) -> galois.FieldArray:
        try:
            return self._publics[name]
        except KeyError:
            raise KeyError(f"public input {name!r} not provided") from None

    def challenge(self, index: int) -> galois.FieldArray:
        if not 0 <= index < len(self._challenges):
            raise IndexError(f"challenge {index} not drawn ({len(self._challenges)} available)")
        return self._challenges[index]


class ProverConstraintContext(ConstraintContext):
    """Columns as whole arrays over a cyclic domain.

    The next row of point j lives at index j + step: step is 1 on the trace
    domain and the blowup factor on the LDE coset.
    """

    def __init__(self, field: Field, matrix: galois.FieldArray, step: int = 1,
                 public_inputs: Optional[Mapping[str, int]] = None,
                 challenges: Optional[galois.FieldArray] = None,
                 rows: Optional[slice] = None):
        super().__init__(field, public_inputs, challenges)
        self.matrix = field.lift(matrix)
        self.step = step
        self.rows = rows if rows is not None else slice(None)

    def restrict(self, rows: slice) -> "ProverConstraintContext":
        """Same context limited to a contiguous block of points."""
        ctx = ProverConstraintContext(self.field, self.matrix, self.step, rows=rows)
        ctx._publics = self._publics
        ctx._challenges = self._challenges
        return ctx

    def column(self, index: int, offset: int = 0) -> galois.FieldArray:
        values = self.matrix[:, index]
        if offset:
            values = np.roll(values, -offset * self.step)
        return values[self.rows]


class VerifierConstraintContext(ConstraintContext):
    """Columns as values at a point: t(x) for the current row, t(x * omega) for the next.

    `current` and `next_` are 1-D (one value per column) or 2-D (points x columns).
    """

    def __init__(self, field: Field, current: galois.FieldArray, next_: galois.FieldArray,
                 public_inputs: Optional[Mapping[str, int]] = None,
                 challenges: Optional[galois.FieldArray] = None):
        super().__init__(field, public_inputs, challenges)
        self.current = field.lift(current)
        self.next = field.lift(next_)

    def column(self, index: int, offset: int = 0) -> galois.FieldArray:
        values = self.next if offset else self.current
        return values[..., index]
