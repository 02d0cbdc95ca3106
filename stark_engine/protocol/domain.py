"""Evaluation domains.

Trace domain: the subgroup <omega_n> of order n; row i sits at omega_n^i.
LDE domain: the coset g * <omega_kn> with g the field generator. The coset is
disjoint from the trace domain, so the vanishing polynomials used by the
composition never divide by zero on it. Point j of the LDE corresponds to row
j / k when k divides j, and the next row of point j is point j + k.
"""

from functools import cached_property

import galois

from stark_engine.primitives.backend import ComputeBackend, SequentialBackend
from stark_engine.primitives.field import Field, is_power_of_two
from stark_engine.primitives.polynomial import (
    coset_to_coefficients,
    extend_to_coset,
    to_coefficients,
)


class StarkDomain:
    """Trace domain of size n and its k-fold LDE coset."""

    def __init__(self, field: Field, trace_length: int, blowup_factor: int):
        if not is_power_of_two(trace_length) or trace_length < 2:
            raise ValueError(f"trace length must be a power of two >= 2, got {trace_length}")
        if not is_power_of_two(blowup_factor):
            raise ValueError(f"blowup factor must be a power of two, got {blowup_factor}")

        self.field = field
        self.trace_length = trace_length
        self.blowup_factor = blowup_factor
        self.lde_size = trace_length * blowup_factor
        # root_of_unity raises ConfigurationError beyond the field's two-adicity
        self.trace_generator = field.root_of_unity(trace_length)
        self.lde_generator = field.root_of_unity(self.lde_size)
        self.offset = field.generator

    def __repr__(self) -> str:
        return f"StarkDomain(n={self.trace_length}, k={self.blowup_factor}, {self.field.name})"

    # --- Points ---

    @cached_property
    def trace_points(self) -> galois.FieldArray:
        return self.field.powers(self.trace_generator, self.trace_length)

    @cached_property
    def lde_points(self) -> galois.FieldArray:
        return self.offset * self.field.powers(self.lde_generator, self.lde_size)

    def trace_point(self, row: int) -> galois.FieldArray:
        return self.trace_generator ** row

    def lde_point(self, index: int) -> galois.FieldArray:
        return self.offset * self.lde_generator ** index

    def next_index(self, index: int) -> int:
        """LDE index holding the next-row value of `index`."""
        return (index + self.blowup_factor) % self.lde_size

    def in_lde_coset(self, x: galois.FieldArray) -> bool:
        """x may be a base or an extension element."""
        field = self.field
        shifted = field.lift(x) * field.lift(self.offset ** -1)
        return bool(shifted ** self.lde_size == field.lift(1))

    # --- Transforms ---

    def interpolate(self, values: galois.FieldArray,
                    backend: ComputeBackend | None = None) -> galois.FieldArray:
        """Trace-domain evaluations (n, cols) -> coefficients (n, cols)."""
        backend = backend or SequentialBackend()
        return backend.transform(values, lambda block: to_coefficients(self.field, block))

    def extend(self, coeffs: galois.FieldArray,
               backend: ComputeBackend | None = None) -> galois.FieldArray:
        """Coefficients (n, cols) -> LDE evaluations (kn, cols)."""
        backend = backend or SequentialBackend()
        return backend.transform(
            coeffs, lambda block: extend_to_coset(self.field, block, self.lde_size, self.offset)
        )

    def coset_interpolate(self, values: galois.FieldArray) -> galois.FieldArray:
        """LDE evaluations -> coefficients (length kn)."""
        return coset_to_coefficients(self.field, values, self.offset)
