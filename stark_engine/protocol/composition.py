"""Constraint composition and DEEP composition.

Each constraint C_i(x) = expr_i(T(x), T(omega x)) is divided by the vanishing
polynomial of the rows where it must hold:

    boundary at row r:  C / (x - omega^r)
    terminal:           C / (x - omega^(n-1))
    transition:         C * (x - omega^(n-1)) / (x^n - 1)    (all rows but the last)

For a valid trace each quotient Q_i is a polynomial with degree bound q_i. The
composition H(x) = sum_i (alpha_i + beta_i * x^(D - 1 - q_i)) * Q_i(x) lifts
every quotient to the common bound D = c * n, so a single low-degree test on H
covers all of them.

DEEP: given an out-of-domain point z and claimed openings t_j(z), t_j(z omega)
and H(z), the DEEP codeword

    sum_j beta_j (T_j(x) - t_j(z)) / (x - z) + gamma_j (T_j(x) - t_j(z omega)) / (x - z omega)
        + delta (H(x) - H(z)) / (x - z)

has degree < D exactly when the openings are consistent with the commitments.

Challenges, z and everything built from them are extension-field values;
domain points are lifted before they meet them.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List

import galois
import numpy as np

from stark_engine.constraints.base import ConstraintContext, ProverConstraintContext
from stark_engine.errors import ConstraintViolation
from stark_engine.primitives.field import Field
from stark_engine.protocol.air import BOUNDARY, TERMINAL, TRANSITION, ConstraintSet
from stark_engine.protocol.domain import StarkDomain
from stark_engine.protocol.expressions import Expr

logger = logging.getLogger(__name__)


# --- Trace Validation ---


def check_constraints(constraints: ConstraintSet, matrix: galois.FieldArray, field: Field,
                      challenges: galois.FieldArray | None = None) -> None:
    """Evaluate every constraint on the trace domain.

    Raises:
        ConstraintViolation: at the first row where a constraint must vanish but does not
    """
    n = matrix.shape[0]
    ctx = ProverConstraintContext(field, matrix, step=1,
                                  public_inputs=constraints.public_inputs, challenges=challenges)
    for kind, index, expr in constraints.constraints():
        values = np.asarray(expr.evaluate(ctx).view(np.ndarray))
        if kind == BOUNDARY:
            rows = [constraints.boundary[index].row]
        elif kind == TERMINAL:
            rows = [n - 1]
        else:
            rows = range(n - 1)
        for row in rows:
            if values[row] != 0:
                raise ConstraintViolation(kind, index, row, repr(expr))
    logger.debug(f"All {constraints.num_constraints} constraints hold on {n} rows")


# --- Constraint Composition ---


@dataclass(frozen=True)
class _Term:
    kind: str
    expr: Expr
    row: int
    degree_bound: int
    adjustment: int


class ConstraintComposer:
    """Random linear combination of degree-adjusted constraint quotients."""

    def __init__(self, constraints: ConstraintSet, domain: StarkDomain,
                 coefficients: galois.FieldArray):
        if len(coefficients) != 2 * constraints.num_constraints:
            raise ValueError(
                f"expected {2 * constraints.num_constraints} composition coefficients, "
                f"got {len(coefficients)}"
            )
        self.constraints = constraints
        self.domain = domain
        self.field = domain.field
        self.coefficients = self.field.lift(coefficients)
        n = domain.trace_length
        self.degree_bound = n * constraints.composition_factor

        self.terms: List[_Term] = []
        self._row_points: Dict[int, galois.FieldArray] = {}
        for kind, index, expr in constraints.constraints():
            d = expr.degree()
            if kind == TRANSITION:
                row, q = n - 1, (d - 1) * (n - 1)
            elif kind == BOUNDARY:
                row, q = constraints.boundary[index].row, d * (n - 1) - 1
            else:
                row, q = n - 1, d * (n - 1) - 1
            self.terms.append(_Term(kind, expr, row, q, self.degree_bound - 1 - q))
            if row not in self._row_points:
                self._row_points[row] = self.field.lift(domain.trace_point(row))

    def evaluate(self, ctx: ConstraintContext, x: galois.FieldArray) -> galois.FieldArray:
        """H at x: scalar or array, matching the shape of the context's columns."""
        field = self.field
        x = field.lift(x)
        one = field.lift(1)
        row_divisors: Dict[int, galois.FieldArray] = {}
        transition_factor = None
        acc = field.EF.Zeros(np.shape(x)) if np.ndim(x) else field.lift(0)

        for i, term in enumerate(self.terms):
            if term.row not in row_divisors:
                row_divisors[term.row] = (x - self._row_points[term.row]) ** -1
            if term.kind == TRANSITION:
                if transition_factor is None:
                    # term.row is the last row for transitions
                    transition_factor = (x - self._row_points[term.row]) * (
                        (x ** self.domain.trace_length - one) ** -1
                    )
                quotient = term.expr.evaluate(ctx) * transition_factor
            else:
                quotient = term.expr.evaluate(ctx) * row_divisors[term.row]

            alpha, beta = self.coefficients[2 * i], self.coefficients[2 * i + 1]
            acc = acc + (alpha + beta * x ** term.adjustment) * quotient
        return acc


# --- DEEP Composition ---


class DeepComposer:
    """Builds DEEP values from trace and composition values at points x."""

    def __init__(self, field: Field, z: galois.FieldArray, trace_generator: galois.FieldArray,
                 ood_current: galois.FieldArray, ood_next: galois.FieldArray,
                 ood_composition: galois.FieldArray, coefficients: galois.FieldArray):
        width = len(ood_current)
        if len(ood_next) != width or len(coefficients) != 2 * width + 1:
            raise ValueError("DEEP coefficient count does not match the trace width")
        self.field = field
        self.z = field.lift(z)
        self.z_next = self.z * field.lift(trace_generator)
        self.ood_current = field.lift(ood_current)
        self.ood_next = field.lift(ood_next)
        self.ood_composition = field.lift(ood_composition)
        self.coefficients = field.lift(coefficients)
        self.width = width

    def evaluate(self, trace_values: galois.FieldArray, composition_values: galois.FieldArray,
                 x: galois.FieldArray) -> galois.FieldArray:
        """DEEP values at points x.

        Args:
            trace_values: (len(x), width) trace values at x
            composition_values: H values at x
            x: evaluation points
        """
        field = self.field
        m = self.width
        trace_values = field.lift(trace_values)
        composition_values = field.lift(composition_values)
        x = field.lift(x)
        at_z = field.EF.Zeros(len(x))
        at_z_next = field.EF.Zeros(len(x))
        for j in range(m):
            column = trace_values[:, j]
            at_z = at_z + self.coefficients[j] * (column - self.ood_current[j])
            at_z_next = at_z_next + self.coefficients[m + j] * (column - self.ood_next[j])
        at_z = at_z + self.coefficients[2 * m] * (composition_values - self.ood_composition)
        return at_z * (x - self.z) ** -1 + at_z_next * (x - self.z_next) ** -1
