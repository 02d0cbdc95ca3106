"""Execution trace: the prover's witness matrix.

Rows are time steps, columns are registers. The engine never pads a trace on
its own; callers that produce traces of arbitrary length pad explicitly with
ExecutionTrace.padded().
"""

from typing import Sequence

import galois
import numpy as np

from stark_engine.primitives.field import Field

PAD_POLICIES = ("last_row", "zeros")


class ExecutionTrace:
    """Immutable (n_rows, n_columns) matrix over a prime field."""

    def __init__(self, field: Field, matrix) -> None:
        matrix = field(matrix).copy()
        if matrix.ndim != 2:
            raise ValueError(f"trace must be 2-D (rows x columns), got shape {matrix.shape}")
        if matrix.shape[0] == 0 or matrix.shape[1] == 0:
            raise ValueError(f"trace must be non-empty, got shape {matrix.shape}")
        matrix.flags.writeable = False
        self.field = field
        self._matrix = matrix

    @classmethod
    def from_rows(cls, field: Field, rows: Sequence[Sequence[int]]) -> "ExecutionTrace":
        return cls(field, np.array(rows, dtype=object))

    @classmethod
    def from_columns(cls, field: Field, columns: Sequence[Sequence[int]]) -> "ExecutionTrace":
        return cls(field, np.array(columns, dtype=object).T)

    def __repr__(self) -> str:
        return f"ExecutionTrace({self.num_rows}x{self.num_columns} over {self.field.name})"

    @property
    def matrix(self) -> galois.FieldArray:
        return self._matrix

    @property
    def num_rows(self) -> int:
        return self._matrix.shape[0]

    @property
    def num_columns(self) -> int:
        return self._matrix.shape[1]

    def column(self, index: int) -> galois.FieldArray:
        return self._matrix[:, index]

    def row(self, index: int) -> galois.FieldArray:
        return self._matrix[index]

    def padded(self, length: int | None = None, policy: str = "last_row") -> "ExecutionTrace":
        """Extend to `length` rows (default: next power of two).

        Policies:
            last_row  repeat the final row
            zeros     append all-zero rows
        """
        if policy not in PAD_POLICIES:
            raise ValueError(f"unknown padding policy {policy!r}; expected one of {PAD_POLICIES}")
        n = self.num_rows
        if length is None:
            length = 1 << (n - 1).bit_length()
        if length < n:
            raise ValueError(f"cannot pad {n} rows down to {length}")
        if length == n:
            return self

        if policy == "last_row":
            filler = np.tile(self._matrix[-1].view(np.ndarray), (length - n, 1))
        else:
            filler = self.field.zeros((length - n, self.num_columns))
        return ExecutionTrace(self.field, self.field.concatenate([self._matrix, filler], axis=0))
