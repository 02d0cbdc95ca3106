"""Tests for the Fiat-Shamir transcript: determinism, domain separation, grinding."""

import numpy as np
import pytest

from stark_engine.primitives.field import GOLDILOCKS, TOY
from stark_engine.primitives.transcript import Transcript


def _transcript(label: str = "test") -> Transcript:
    t = Transcript(TOY, label=label)
    t.absorb(b"root")
    t.absorb_elements(TOY([1, 2, 3]))
    return t


class TestDeterminism:
    """Identical absorb sequences give identical challenges."""

    def test_same_sequence_same_challenges(self) -> None:
        a, b = _transcript(), _transcript()
        assert np.array_equal(a.challenge_field_elements("x", 4), b.challenge_field_elements("x", 4))
        assert a.challenge_indices(5, 64) == b.challenge_indices(5, 64)
        assert a.state == b.state

    def test_label_separates(self) -> None:
        a, b = _transcript("one"), _transcript("two")
        assert a.challenge_field_element("x") != b.challenge_field_element("x")

    def test_absorb_order_matters(self) -> None:
        a = Transcript(TOY)
        a.absorb(b"a")
        a.absorb(b"b")
        b = Transcript(TOY)
        b.absorb(b"b")
        b.absorb(b"a")
        assert a.state != b.state

    def test_message_boundaries_matter(self) -> None:
        """absorb(b"ab") differs from absorb(b"a"); absorb(b"b")."""
        a = Transcript(TOY)
        a.absorb(b"ab")
        b = Transcript(TOY)
        b.absorb(b"a")
        b.absorb(b"b")
        assert a.state != b.state


class TestChallenges:
    """Domain separation and ratcheting."""

    def test_tags_separate(self) -> None:
        a, b = _transcript(), _transcript()
        assert a.challenge_field_element("alpha") != b.challenge_field_element("beta")

    def test_challenges_never_repeat(self) -> None:
        """Two draws with the same tag differ: state ratchets after each draw."""
        t = _transcript()
        first = t.challenge_field_element("alpha")
        second = t.challenge_field_element("alpha")
        assert first != second

    def test_elements_in_field(self) -> None:
        t = Transcript(GOLDILOCKS)
        values = t.challenge_field_elements("x", 16)
        assert len(values) == 16
        assert all(0 <= int(v) < GOLDILOCKS.modulus for v in values)

    def test_ext_challenges_in_base_field_match_field_challenges(self) -> None:
        """With no extension, extension challenges are ordinary field challenges."""
        a, b = _transcript(), _transcript()
        assert np.array_equal(a.challenge_ext_elements("x", 3), b.challenge_field_elements("x", 3))

    def test_ext_challenges_use_d_coefficients(self) -> None:
        field = TOY.extended(3)
        a, b = Transcript(field), Transcript(field)
        values = a.challenge_ext_elements("x", 2)
        assert type(values) is field.EF
        assert len(values) == 2
        coefficients = b.challenge_field_elements("x", 6)
        assert np.array_equal(field.flatten_ext(values), coefficients)
        assert a.state == b.state

    def test_absorb_ext_matches_flattened_absorb(self) -> None:
        field = TOY.extended(3)
        values = field.EF.Random(4)
        a, b = Transcript(field), Transcript(field)
        a.absorb_ext(values)
        b.absorb_elements(field.flatten_ext(values))
        assert a.state == b.state

    def test_counter_advances(self) -> None:
        t = Transcript(TOY)
        before = t.message_count
        t.absorb(b"data")
        t.challenge_field_element("x")
        assert t.message_count == before + 2

    @pytest.mark.parametrize("count,domain", [(1, 1), (8, 64), (32, 32), (20, 1024)])
    def test_indices_distinct_and_in_range(self, count: int, domain: int) -> None:
        indices = _transcript().challenge_indices(count, domain)
        assert len(indices) == count
        assert len(set(indices)) == count
        assert all(0 <= i < domain for i in indices)

    def test_indices_reject_too_many(self) -> None:
        with pytest.raises(ValueError):
            _transcript().challenge_indices(9, 8)

    def test_indices_reject_non_power_of_two(self) -> None:
        with pytest.raises(ValueError):
            _transcript().challenge_indices(2, 12)


class TestGrinding:
    """Proof-of-work on the transcript state."""

    @pytest.mark.parametrize("bits", [0, 1, 6])
    def test_grind_then_check(self, bits: int) -> None:
        t = _transcript()
        nonce = t.grind(bits)
        assert t.check_pow(nonce, bits)

    def test_grind_finds_least_nonce(self) -> None:
        t = _transcript()
        nonce = t.grind(6)
        assert not any(t.check_pow(n, 6) for n in range(nonce))

    def test_zero_bits_accepts_zero(self) -> None:
        assert _transcript().grind(0) == 0

    def test_check_pow_rejects_bad_nonce_types(self) -> None:
        t = _transcript()
        assert not t.check_pow(-1, 0)
        assert not t.check_pow(2**64, 0)
        assert not t.check_pow("1", 0)
