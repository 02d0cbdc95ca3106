"""Doubling AIR: one column, each row twice the previous.

    trace[0][0] = start          (boundary, public input)
    trace[i+1][0] = 2 * trace[i][0]
"""

from stark_engine.primitives.field import Field
from stark_engine.protocol.air import BoundaryConstraint, ConstraintSet, TransitionConstraint
from stark_engine.protocol.expressions import Column
from stark_engine.protocol.trace import ExecutionTrace


def doubling_constraints(start: int) -> ConstraintSet:
    x = Column(0)
    return ConstraintSet(
        num_columns=1,
        boundary=[BoundaryConstraint.equals(0, 0, "start")],
        transition=[TransitionConstraint(x.next - 2 * x)],
        public_inputs={"start": start},
    )


def doubling_trace(field: Field, length: int, start: int) -> ExecutionTrace:
    values = [start % field.modulus]
    for _ in range(length - 1):
        values.append(2 * values[-1] % field.modulus)
    return ExecutionTrace.from_columns(field, [values])
