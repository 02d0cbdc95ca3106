"""Number Theoretic Transform over two-adic prime fields.

Transforms run through galois.ntt / galois.intt, one column at a time. 1-D
inputs are single polynomials; 2-D inputs of shape (N, n_cols) are transformed
column-wise. The coset variants scale by powers of the coset offset.

The domains are subgroups of the base field, so extension-field inputs are
transformed coefficient by coefficient.
"""

from typing import Callable

import galois
import numpy as np

from stark_engine.primitives.field import Field, is_power_of_two, log2

# --- NTT Engine ---


class NTT:
    """NTT engine for one power-of-two domain size."""

    def __init__(self, field: Field, domain_size: int) -> None:
        if not is_power_of_two(domain_size):
            raise ValueError(f"Domain size must be power of 2, got {domain_size}")

        self.field = field
        self.n = domain_size
        self.n_bits = log2(domain_size)
        # galois uses primitive_element^((p-1)/N), the same root as the protocol
        self.omega = field.root_of_unity(domain_size)

    def ntt(self, coeffs: galois.FieldArray) -> galois.FieldArray:
        """Forward NTT: coefficients -> evaluations at omega^j."""
        self._check_shape(coeffs)
        return _over_base(self.field, coeffs, lambda c: self._columns(c, galois.ntt))

    def intt(self, evals: galois.FieldArray) -> galois.FieldArray:
        """Inverse NTT: evaluations at omega^j -> coefficients."""
        self._check_shape(evals)
        return _over_base(self.field, evals, lambda e: self._columns(e, galois.intt))

    def coset_ntt(self, coeffs: galois.FieldArray, offset: galois.FieldArray) -> galois.FieldArray:
        """Evaluate at offset * omega^j."""
        self._check_shape(coeffs)
        shift = self.field.powers(offset, self.n)
        return _over_base(
            self.field, coeffs, lambda c: self._columns(c * _column(shift, c), galois.ntt)
        )

    def coset_intt(self, evals: galois.FieldArray, offset: galois.FieldArray) -> galois.FieldArray:
        """Coefficients of the polynomial taking `evals` on offset * <omega>."""
        self._check_shape(evals)
        unshift = self.field.powers(self.field(offset) ** -1, self.n)

        def transform(e: galois.FieldArray) -> galois.FieldArray:
            coeffs = self._columns(e, galois.intt)
            return coeffs * _column(unshift, coeffs)

        return _over_base(self.field, evals, transform)

    def _columns(self, values: galois.FieldArray, transform: Callable) -> galois.FieldArray:
        """Apply galois.ntt or galois.intt to a vector or to every column."""
        field = self.field
        if values.ndim == 1:
            return field(transform(values, modulus=field.modulus))
        columns = [transform(values[:, j], modulus=field.modulus) for j in range(values.shape[1])]
        if not columns:
            return field.zeros(values.shape)
        return field.hstack([field(c) for c in columns])

    def _check_shape(self, values: galois.FieldArray) -> None:
        if values.ndim not in (1, 2) or values.shape[0] != self.n:
            raise ValueError(f"Expected {self.n} rows, got shape {values.shape}")


def extend(field: Field, coeffs: galois.FieldArray, extended_size: int,
           offset: galois.FieldArray) -> galois.FieldArray:
    """Low-degree extension: evaluate coefficient rows on an offset coset.

    Coefficients are zero-padded up to `extended_size` before the coset NTT.
    """
    n = coeffs.shape[0]
    if extended_size < n or extended_size % n != 0:
        raise ValueError(f"Extended size {extended_size} must be a multiple of {n}")
    padded = type(coeffs).Zeros((extended_size,) + coeffs.shape[1:])
    padded[:n] = coeffs
    return NTT(field, extended_size).coset_ntt(padded, offset)


# --- Helpers ---


def _column(factors: galois.FieldArray, like: galois.FieldArray) -> galois.FieldArray:
    """Broadcast per-row factors against a 1-D or 2-D array."""
    return factors if like.ndim == 1 else factors.reshape(-1, 1)


def _over_base(field: Field, values: galois.FieldArray,
               transform: Callable[[galois.FieldArray], galois.FieldArray]) -> galois.FieldArray:
    """Run a base-field linear transform along axis 0.

    EF values are split into their d base coefficients, transformed as extra
    columns and recombined.
    """
    if not field.is_extension(values):
        return transform(field(values))
    coeffs = field.ext_coefficients(values)                  # (N, ..., d)
    out = transform(coeffs.reshape(coeffs.shape[0], -1))
    raw = np.asarray(out.view(np.ndarray)).reshape((out.shape[0],) + coeffs.shape[1:])
    return field.from_ext_coefficients(raw)
