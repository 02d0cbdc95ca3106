"""Tests for constraint expressions, constraint sets and the derived AIR configuration."""

import pytest

from stark_engine.constraints import doubling_constraints, fibonacci_constraints, permutation_constraints
from stark_engine.errors import ConfigurationError
from stark_engine.primitives.field import TOY
from stark_engine.protocol.air import (
    BOUNDARY,
    TERMINAL,
    TRANSITION,
    BoundaryConstraint,
    ConstraintSet,
    TerminalConstraint,
    TransitionConstraint,
)
from stark_engine.protocol.air_config import AirConfig
from stark_engine.protocol.expressions import Challenge, Column, Constant, Public, lift
from stark_engine.protocol.options import ProofOptions


class TestExpressions:
    """Expression trees: degrees, structure and printing."""

    def test_degrees(self) -> None:
        a, b = Column(0), Column(1)
        assert (a + 1).degree() == 1
        assert (a.next - 2 * b).degree() == 1
        assert (a * b).degree() == 2
        assert ((a * b) ** 2).degree() == 4
        assert (a * Challenge(0) + Public("x")).degree() == 1
        assert (-(a * a * a)).degree() == 3
        assert Constant(7).degree() == 0

    def test_repr(self) -> None:
        x = Column(0)
        assert repr(x.next - 2 * x) == "(col[0]' - (2 * col[0]))"
        assert repr(Public("start")) == "public[start]"
        assert repr(Challenge(1)) == "challenge[1]"
        assert repr(x ** 3) == "col[0]^3"

    def test_walk_visits_every_node(self) -> None:
        expr = Column(0) * Column(1) + Public("p")
        names = [type(node).__name__ for node in expr.walk()]
        assert names == ["BinaryOp", "BinaryOp", "Column", "Column", "Public"]

    def test_next_row(self) -> None:
        x = Column(3)
        assert x.next.index == 3
        assert x.next.offset == 1

    @pytest.mark.parametrize("bad", [
        lambda: Column(-1),
        lambda: Column(0, 2),
        lambda: Column(0) ** -1,
    ])
    def test_invalid_nodes(self, bad) -> None:
        with pytest.raises(ValueError):
            bad()

    def test_lift_rejects_floats_and_bools(self) -> None:
        with pytest.raises(TypeError):
            lift(1.5)
        with pytest.raises(TypeError):
            lift(True)


class TestConstraintSet:
    """Validation and canonical ordering."""

    def test_canonical_order(self) -> None:
        cs = fibonacci_constraints(5)
        kinds = [kind for kind, _, _ in cs.constraints()]
        assert kinds == [BOUNDARY, BOUNDARY, TRANSITION, TRANSITION, TERMINAL]
        assert cs.num_constraints == 5

    @pytest.mark.parametrize("degree,factor", [(1, 1), (2, 2), (3, 4), (4, 4), (5, 8)])
    def test_composition_factor(self, degree: int, factor: int) -> None:
        x = Column(0)
        cs = ConstraintSet(num_columns=1, transition=[TransitionConstraint(x.next - x ** degree)])
        assert cs.max_degree == degree
        assert cs.composition_factor == factor

    def test_aux_layout(self) -> None:
        cs = permutation_constraints()
        assert cs.total_columns == 3
        assert cs.has_aux_segment
        assert cs.num_segments == 2
        assert not doubling_constraints(1).has_aux_segment

    @pytest.mark.parametrize("build", [
        lambda: ConstraintSet(num_columns=0, transition=[TransitionConstraint(Column(0))]),
        lambda: ConstraintSet(num_columns=1),
        lambda: ConstraintSet(num_columns=1, transition=[TransitionConstraint(Constant(1))]),
        lambda: ConstraintSet(num_columns=1, transition=[TransitionConstraint(Column(1))]),
        lambda: ConstraintSet(num_columns=1, boundary=[BoundaryConstraint(0, Column(0).next)]),
        lambda: ConstraintSet(num_columns=1, terminal=[TerminalConstraint(Column(0).next)]),
        lambda: ConstraintSet(num_columns=1, boundary=[BoundaryConstraint.equals(0, 0, "missing")]),
        lambda: ConstraintSet(num_columns=1, transition=[TransitionConstraint(Column(0) - Challenge(0))]),
        lambda: ConstraintSet(num_columns=1, boundary=[BoundaryConstraint(-1, Column(0))]),
        lambda: ConstraintSet(num_columns=1, transition=[TransitionConstraint(Column(0))],
                              num_aux_columns=1),
    ])
    def test_invalid_sets(self, build) -> None:
        with pytest.raises(ConfigurationError):
            build()

    def test_encode_is_deterministic(self) -> None:
        assert fibonacci_constraints(5).encode() == fibonacci_constraints(5).encode()
        assert fibonacci_constraints(5).encode() != doubling_constraints(5).encode()

    def test_public_inputs_encoding(self) -> None:
        """Public values are reduced mod p and sorted by name."""
        a = ConstraintSet(
            num_columns=1,
            boundary=[BoundaryConstraint.equals(0, 0, "x")],
            terminal=[TerminalConstraint.equals(0, "y")],
            public_inputs={"y": 2, "x": 1},
        )
        b = ConstraintSet(
            num_columns=1,
            boundary=[BoundaryConstraint.equals(0, 0, "x")],
            terminal=[TerminalConstraint.equals(0, "y")],
            public_inputs={"x": 1 + TOY.modulus, "y": 2},
        )
        assert a.encode_public_inputs(TOY.modulus) == b.encode_public_inputs(TOY.modulus)
        assert a.encode_public_inputs(TOY.modulus) != fibonacci_constraints(1).encode_public_inputs(TOY.modulus)


class TestAirConfig:
    """Parameters derived for one trace length."""

    def test_degree_bound_and_fri_schedule(self) -> None:
        opts = ProofOptions(num_queries=8, blowup_factor=4, fri_max_remainder_size=2)
        config = AirConfig(permutation_constraints(), opts, TOY, 8)
        assert config.composition_factor == 2
        assert config.degree_bound == 16
        assert config.fri_config.domain_size == 32
        assert config.fri_config.num_layers == 3
        assert config.fri_config.final_degree_bound == 2

    def test_blowup_too_small_for_degree(self) -> None:
        with pytest.raises(ConfigurationError):
            AirConfig(permutation_constraints(), ProofOptions(num_queries=4, blowup_factor=2), TOY, 8)

    @pytest.mark.parametrize("n", [0, 1, 6, 12])
    def test_trace_length_must_be_power_of_two(self, n: int) -> None:
        with pytest.raises(ConfigurationError):
            AirConfig(doubling_constraints(1), ProofOptions(num_queries=4), TOY, n)

    def test_boundary_row_outside_trace(self) -> None:
        cs = ConstraintSet(num_columns=1, boundary=[BoundaryConstraint.equals(0, 8, 0)])
        with pytest.raises(ConfigurationError):
            AirConfig(cs, ProofOptions(num_queries=4), TOY, 8)

    def test_too_many_queries(self) -> None:
        with pytest.raises(ConfigurationError):
            AirConfig(doubling_constraints(1), ProofOptions(num_queries=64, blowup_factor=4), TOY, 8)

    def test_domain_beyond_two_adicity(self) -> None:
        with pytest.raises(ConfigurationError):
            AirConfig(doubling_constraints(1), ProofOptions(num_queries=4, blowup_factor=8), TOY, 1 << 28)
