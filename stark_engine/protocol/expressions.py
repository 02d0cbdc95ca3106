"""Constraint expression trees.

Constraints are written with ordinary Python arithmetic over leaf nodes:

    a, b = Column(0), Column(1)
    transition = a.next - b           # a[i+1] = b[i]
    boundary = a - Public("start")    # evaluated at one row

Every node knows its degree in the trace columns, which fixes the degree of
the composition polynomial, and evaluates against a ConstraintContext. The
same tree is evaluated on whole arrays by the prover and on single points by
the verifier.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Union

# --- Operations ---


class Operation(Enum):
    """Binary operations of the expression tree."""
    ADD = "+"
    SUB = "-"
    MUL = "*"


# --- Expression Nodes ---


class Expr:
    """Base class for constraint expressions."""

    def degree(self) -> int:
        raise NotImplementedError

    def evaluate(self, ctx):
        raise NotImplementedError

    def children(self) -> tuple:
        return ()

    def walk(self) -> Iterator["Expr"]:
        """Pre-order traversal over every node."""
        yield self
        for child in self.children():
            yield from child.walk()

    # --- Operators ---

    def __add__(self, other) -> "Expr":
        return BinaryOp(Operation.ADD, self, lift(other))

    def __radd__(self, other) -> "Expr":
        return BinaryOp(Operation.ADD, lift(other), self)

    def __sub__(self, other) -> "Expr":
        return BinaryOp(Operation.SUB, self, lift(other))

    def __rsub__(self, other) -> "Expr":
        return BinaryOp(Operation.SUB, lift(other), self)

    def __mul__(self, other) -> "Expr":
        return BinaryOp(Operation.MUL, self, lift(other))

    def __rmul__(self, other) -> "Expr":
        return BinaryOp(Operation.MUL, lift(other), self)

    def __neg__(self) -> "Expr":
        return Neg(self)

    def __pow__(self, exponent: int) -> "Expr":
        return Pow(self, exponent)


ExprLike = Union[Expr, int]


def lift(value: ExprLike) -> Expr:
    if isinstance(value, Expr):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return Constant(value)
    raise TypeError(f"cannot use {type(value).__name__} in a constraint expression")


@dataclass(frozen=True, eq=False)
class Constant(Expr):
    value: int

    def degree(self) -> int:
        return 0

    def evaluate(self, ctx):
        return ctx.constant(self.value)

    def __repr__(self) -> str:
        return str(self.value)


@dataclass(frozen=True, eq=False)
class Column(Expr):
    """Trace column `index` at the current row (offset 0) or the next row (offset 1).

    Indices count main-segment columns first, then auxiliary columns.
    """
    index: int
    offset: int = 0

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError(f"column index must be non-negative, got {self.index}")
        if self.offset not in (0, 1):
            raise ValueError(f"row offset must be 0 or 1, got {self.offset}")

    @property
    def next(self) -> "Column":
        return Column(self.index, 1)

    def degree(self) -> int:
        return 1

    def evaluate(self, ctx):
        return ctx.column(self.index, self.offset)

    def __repr__(self) -> str:
        return f"col[{self.index}]" + ("'" if self.offset else "")


@dataclass(frozen=True, eq=False)
class Public(Expr):
    """Named public input."""
    name: str

    def degree(self) -> int:
        return 0

    def evaluate(self, ctx):
        return ctx.public(self.name)

    def __repr__(self) -> str:
        return f"public[{self.name}]"


@dataclass(frozen=True, eq=False)
class Challenge(Expr):
    """Verifier randomness drawn after the main trace commitment."""
    index: int

    def degree(self) -> int:
        return 0

    def evaluate(self, ctx):
        return ctx.challenge(self.index)

    def __repr__(self) -> str:
        return f"challenge[{self.index}]"


@dataclass(frozen=True, eq=False)
class BinaryOp(Expr):
    op: Operation
    lhs: Expr
    rhs: Expr

    def children(self) -> tuple:
        return (self.lhs, self.rhs)

    def degree(self) -> int:
        if self.op is Operation.MUL:
            return self.lhs.degree() + self.rhs.degree()
        return max(self.lhs.degree(), self.rhs.degree())

    def evaluate(self, ctx):
        lhs = self.lhs.evaluate(ctx)
        rhs = self.rhs.evaluate(ctx)
        if self.op is Operation.ADD:
            return lhs + rhs
        if self.op is Operation.SUB:
            return lhs - rhs
        return lhs * rhs

    def __repr__(self) -> str:
        return f"({self.lhs!r} {self.op.value} {self.rhs!r})"


@dataclass(frozen=True, eq=False)
class Neg(Expr):
    operand: Expr

    def children(self) -> tuple:
        return (self.operand,)

    def degree(self) -> int:
        return self.operand.degree()

    def evaluate(self, ctx):
        return -self.operand.evaluate(ctx)

    def __repr__(self) -> str:
        return f"-{self.operand!r}"


@dataclass(frozen=True, eq=False)
class Pow(Expr):
    base: Expr
    exponent: int

    def __post_init__(self) -> None:
        if not isinstance(self.exponent, int) or self.exponent < 0:
            raise ValueError(f"exponent must be a non-negative int, got {self.exponent!r}")

    def children(self) -> tuple:
        return (self.base,)

    def degree(self) -> int:
        return self.base.degree() * self.exponent

    def evaluate(self, ctx):
        return self.base.evaluate(ctx) ** self.exponent

    def __repr__(self) -> str:
        return f"{self.base!r}^{self.exponent}"
