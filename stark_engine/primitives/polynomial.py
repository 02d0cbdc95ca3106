"""Polynomial operations in coefficient form.

Coefficients are ascending: coeffs[i] multiplies x^i. They may lie in the base
field or in its extension. Matrices of shape (N, n_cols) hold one polynomial per
column. The protocol layer converts between coefficient and evaluation form
through these helpers rather than invoking the NTT engine directly.
"""

import galois
import numpy as np

from stark_engine.primitives.field import Field
from stark_engine.primitives.ntt import NTT, extend


def to_coefficients(field: Field, evaluations: galois.FieldArray) -> galois.FieldArray:
    """Interpolate values on the subgroup <omega_N>, N = len(evaluations)."""
    return NTT(field, evaluations.shape[0]).intt(evaluations)


def to_evaluations(field: Field, coefficients: galois.FieldArray) -> galois.FieldArray:
    """Evaluate on the subgroup <omega_N>, N = len(coefficients)."""
    return NTT(field, coefficients.shape[0]).ntt(coefficients)


def coset_to_coefficients(field: Field, evaluations: galois.FieldArray,
                          offset: galois.FieldArray) -> galois.FieldArray:
    """Interpolate values on offset * <omega_N>."""
    return NTT(field, evaluations.shape[0]).coset_intt(evaluations, offset)


def extend_to_coset(field: Field, coefficients: galois.FieldArray, extended_size: int,
                    offset: galois.FieldArray) -> galois.FieldArray:
    """Low-degree extension of coefficient columns onto offset * <omega_extended>."""
    return extend(field, coefficients, extended_size, offset)


# --- Point Evaluation ---


def _common_field(field: Field, coeffs, x):
    """Coefficients and point in one galois class: EF if either is, else GF(p)."""
    if field.is_extension(coeffs) or field.is_extension(x):
        return field.lift(coeffs), field.lift(x)
    return field(coeffs), field(x)


def evaluate(field: Field, coeffs: galois.FieldArray, x) -> galois.FieldArray:
    """Evaluate one polynomial at x (scalar or array) by Horner's rule."""
    coeffs, x = _common_field(field, coeffs, x)
    # galois.Poly takes descending coefficients
    poly = galois.Poly(coeffs[::-1], field=type(coeffs))
    return poly(x)


def evaluate_columns(field: Field, coeffs: galois.FieldArray, x) -> galois.FieldArray:
    """Evaluate every column polynomial of a (N, n_cols) matrix at one point."""
    coeffs, x = _common_field(field, coeffs, x)
    acc = type(coeffs).Zeros(coeffs.shape[1])
    for row in range(coeffs.shape[0] - 1, -1, -1):
        acc = acc * x + coeffs[row]
    return acc


def exceeds_degree(coeffs: galois.FieldArray, bound: int) -> bool:
    """True if any coefficient at index >= bound is non-zero."""
    tail = np.asarray(coeffs[bound:].view(np.ndarray))
    return bool(np.count_nonzero(tail))


def degree(coeffs: galois.FieldArray) -> int:
    """Degree of a coefficient vector; -1 for the zero polynomial."""
    nonzero = np.flatnonzero(np.asarray(coeffs.view(np.ndarray)))
    return int(nonzero[-1]) if len(nonzero) else -1
