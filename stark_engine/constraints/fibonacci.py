"""Fibonacci AIR over two registers.

    a[0] = 1, b[0] = 1
    a[i+1] = b[i]
    b[i+1] = a[i] + b[i]
    b[n-1] = result               (terminal, public input)
"""

from stark_engine.primitives.field import Field
from stark_engine.protocol.air import (
    BoundaryConstraint,
    ConstraintSet,
    TerminalConstraint,
    TransitionConstraint,
)
from stark_engine.protocol.expressions import Column
from stark_engine.protocol.trace import ExecutionTrace


def fibonacci_trace(field: Field, length: int) -> ExecutionTrace:
    a, b = [1], [1]
    for _ in range(length - 1):
        a.append(b[-1])
        b.append((a[-2] + b[-1]) % field.modulus)
    return ExecutionTrace.from_columns(field, [a, b])


def fibonacci_result(field: Field, length: int) -> int:
    return int(fibonacci_trace(field, length).matrix[-1, 1])


def fibonacci_constraints(result: int) -> ConstraintSet:
    a, b = Column(0), Column(1)
    return ConstraintSet(
        num_columns=2,
        boundary=[
            BoundaryConstraint.equals(0, 0, 1),
            BoundaryConstraint.equals(1, 0, 1),
        ],
        transition=[
            TransitionConstraint(a.next - b),
            TransitionConstraint(b.next - (a + b)),
        ],
        terminal=[TerminalConstraint.equals(1, "result")],
        public_inputs={"result": result},
    )
