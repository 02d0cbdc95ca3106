"""Prime fields GF(p) and their extensions GF(p^d) used by the engine.

Uses galois library for all field arithmetic. A Field bundles a galois.GF class
with the constants the protocol needs: a multiplicative generator (also the LDE
coset shift), two-adic roots of unity and a fixed-width byte encoding.

Traces and evaluation domains always live in the base field GF(p). Verifier
challenges, and every value derived from them, live in the extension
EF = GF(p)[x] / (x^d - g), g the multiplicative generator. For d = 1, EF is
GF(p) itself. Extension elements travel as d base coefficients, ascending.

Two fields are predefined:
    GOLDILOCKS  p = 2^64 - 2^32 + 1   (two-adicity 32)
    TOY         p = 3 * 2^30 + 1      (two-adicity 30, small enough for tests)
"""

import secrets
from functools import cached_property
from typing import Iterable, List, Sequence

import galois
import numpy as np

from stark_engine.errors import ConfigurationError

# --- Field Constants ---

GOLDILOCKS_PRIME = 0xFFFFFFFF00000001
TOY_PRIME = 3 * 2**30 + 1


def _two_adicity(value: int) -> int:
    """Largest s such that 2^s divides value."""
    return (value & -value).bit_length() - 1


def is_power_of_two(n: int) -> bool:
    return isinstance(n, int) and n > 0 and n & (n - 1) == 0


def log2(n: int) -> int:
    """Exact log2 of a power of two."""
    if not is_power_of_two(n):
        raise ValueError(f"{n} is not a power of two")
    return n.bit_length() - 1


def _prime_factors(n: int) -> List[int]:
    factors, q = [], 2
    while q * q <= n:
        if n % q == 0:
            factors.append(q)
            while n % q == 0:
                n //= q
        q += 1
    if n > 1:
        factors.append(n)
    return factors


# --- Field Wrapper ---


class Field:
    """A prime field together with its NTT-friendly structure.

    Calling the field converts ints, lists or numpy arrays into galois
    FieldArrays of the base field: ``field(5)``, ``field([1, 2, 3])``.
    ``field.lift`` embeds base values into the extension field.
    """

    def __init__(self, modulus: int, name: str = "", extension_degree: int = 1):
        self.modulus = int(modulus)
        self.name = name or f"GF({self.modulus})"
        self.GF = galois.GF(self.modulus)
        self.generator = self.GF(int(self.GF.primitive_element))
        self.two_adicity = _two_adicity(self.modulus - 1)
        # Fields below 2^64 share the 8-byte little-endian layout.
        if self.modulus < 2**64:
            self.element_size = 8
        else:
            self.element_size = (self.modulus.bit_length() + 7) // 8

        if not isinstance(extension_degree, int) or extension_degree < 1:
            raise ConfigurationError(
                f"extension degree must be a positive int, got {extension_degree!r}"
            )
        # x^d - g is irreducible iff every prime factor of d divides p - 1
        # (and p = 1 mod 4 when 4 divides d).
        unsupported = [q for q in _prime_factors(extension_degree) if (self.modulus - 1) % q]
        if unsupported or (extension_degree % 4 == 0 and self.modulus % 4 != 1):
            raise ConfigurationError(
                f"no binomial extension of degree {extension_degree} over {self.name}"
            )
        self.extension_degree = extension_degree

    def __repr__(self) -> str:
        return f"Field({self.name})"

    def __eq__(self, other) -> bool:
        return (
            isinstance(other, Field)
            and other.modulus == self.modulus
            and other.extension_degree == self.extension_degree
        )

    def __hash__(self) -> int:
        return hash((self.modulus, self.extension_degree))

    def __call__(self, values) -> galois.FieldArray:
        if isinstance(values, galois.FieldArray) and type(values) is self.GF:
            return values
        if isinstance(values, galois.FieldArray):
            values = values.view(np.ndarray)
        return self.GF(values)

    def extended(self, degree: int) -> "Field":
        """Same base field, challenges drawn from GF(p^degree)."""
        name = self.name.split("^")[0]
        return Field(self.modulus, f"{name}^{degree}" if degree > 1 else name, degree)

    # --- Extension Field ---

    @cached_property
    def EF(self):
        """Challenge field GF(p^d); GF(p) itself when d == 1."""
        d = self.extension_degree
        if d == 1:
            return self.GF
        irreducible = galois.Poly([1] + [0] * (d - 1) + [self.modulus - int(self.generator)],
                                  field=self.GF)
        return galois.GF(self.modulus ** d, irreducible_poly=irreducible)

    def is_extension(self, values) -> bool:
        return self.extension_degree > 1 and type(values) is self.EF

    def lift(self, values) -> galois.FieldArray:
        """Base values (or extension values, unchanged) as elements of EF."""
        if self.extension_degree == 1:
            return self(values)
        if type(values) is self.EF:
            return values
        return self.EF(np.asarray(self(values).view(np.ndarray)))

    def ext_coefficients(self, values) -> galois.FieldArray:
        """Ascending base coefficients of EF values: shape (...) -> (..., d)."""
        values = self.lift(values)
        if self.extension_degree == 1:
            return values[..., np.newaxis]
        return self.GF(np.ascontiguousarray(values.vector().view(np.ndarray)[..., ::-1]))

    def from_ext_coefficients(self, coeffs) -> galois.FieldArray:
        """Inverse of ext_coefficients: (..., d) base coefficients -> EF values."""
        coeffs = self(coeffs)
        if self.extension_degree == 1:
            return coeffs[..., 0]
        return self.EF.Vector(np.ascontiguousarray(coeffs.view(np.ndarray)[..., ::-1]))

    def flatten_ext(self, values) -> galois.FieldArray:
        """Spread EF values over base columns: (..., c) -> (..., c * d).

        Base-field arrays pass through unchanged; this is the layout used for
        Merkle leaves, proof fields and transcript absorbs.
        """
        if not self.is_extension(values):
            return self(values)
        coeffs = self.ext_coefficients(values)
        return coeffs.reshape(coeffs.shape[:-2] + (-1,))

    def unflatten_ext(self, values) -> galois.FieldArray:
        """Inverse of flatten_ext on the last axis: (..., c * d) base -> (..., c) EF."""
        raw = self(values)
        d = self.extension_degree
        if raw.shape[-1] % d:
            raise ValueError(f"{raw.shape[-1]} coefficients do not split into degree-{d} elements")
        return self.from_ext_coefficients(raw.reshape(raw.shape[:-1] + (-1, d)))

    # --- Constructors ---

    @property
    def zero(self) -> galois.FieldArray:
        return self.GF(0)

    @property
    def one(self) -> galois.FieldArray:
        return self.GF(1)

    def zeros(self, shape) -> galois.FieldArray:
        return self.GF.Zeros(shape)

    def ones(self, shape) -> galois.FieldArray:
        return self.GF.Ones(shape)

    def random(self, size: int) -> galois.FieldArray:
        """Uniform elements drawn from the OS CSPRNG."""
        return self.GF([secrets.randbelow(self.modulus) for _ in range(size)])

    def concatenate(self, parts: Sequence[galois.FieldArray], axis: int = 0) -> galois.FieldArray:
        """np.concatenate over FieldArrays of this field.

        The result is in EF when any part is; base parts are lifted.
        """
        parts = list(parts)
        if any(self.is_extension(p) for p in parts):
            cls, parts = self.EF, [self.lift(p) for p in parts]
        else:
            cls, parts = self.GF, [self(p) for p in parts]
        raw = [np.asarray(p.view(np.ndarray)) for p in parts]
        return cls(np.concatenate(raw, axis=axis))

    def hstack(self, parts: Sequence[galois.FieldArray]) -> galois.FieldArray:
        """Join column blocks of equal height."""
        return self.concatenate([p if p.ndim == 2 else p.reshape(-1, 1) for p in parts], axis=1)

    def powers(self, base, count: int) -> galois.FieldArray:
        """[1, base, base^2, ..., base^(count-1)] by repeated doubling."""
        result = self.ones(count)
        if count <= 1:
            return result
        base = self(base)
        result[1] = base
        filled = 2
        step = base * base
        while filled < count:
            take = min(filled, count - filled)
            result[filled:filled + take] = result[:take] * step
            filled += take
            step = step * step
        return result

    # --- Roots of Unity ---

    def root_of_unity(self, n: int) -> galois.FieldArray:
        """Primitive n-th root of unity, n a power of two."""
        if not is_power_of_two(n):
            raise ConfigurationError(f"domain size {n} is not a power of two")
        if log2(n) > self.two_adicity:
            raise ConfigurationError(
                f"domain size 2^{log2(n)} exceeds two-adicity {self.two_adicity} of {self.name}"
            )
        return self.generator ** ((self.modulus - 1) // n)

    # --- Encoding ---

    def is_canonical(self, value) -> bool:
        """True for a plain int in [0, p). Used on untrusted proof data."""
        return isinstance(value, (int, np.integer)) and not isinstance(value, bool) and 0 <= value < self.modulus

    def to_ints(self, values) -> List[int]:
        return [int(v) for v in np.asarray(self(values).view(np.ndarray)).reshape(-1)]

    def encode(self, values) -> bytes:
        """Fixed-width little-endian encoding of one or more elements."""
        raw = np.asarray(self(values).view(np.ndarray)).reshape(-1)
        if self.element_size == 8:
            return raw.astype("<u8").tobytes()
        return b"".join(int(v).to_bytes(self.element_size, "little") for v in raw)

    def encode_rows(self, matrix) -> List[bytes]:
        """Encode each row of a 2-D array; one payload per Merkle leaf."""
        raw = np.asarray(self(matrix).view(np.ndarray))
        if raw.ndim != 2:
            raise ValueError(f"expected a 2-D matrix, got shape {raw.shape}")
        if self.element_size == 8:
            data = raw.astype("<u8")
            return [data[i].tobytes() for i in range(data.shape[0])]
        return [
            b"".join(int(v).to_bytes(self.element_size, "little") for v in row)
            for row in raw
        ]

    def encode_ints(self, values: Iterable[int]) -> bytes:
        """Encode already-validated canonical ints without building a FieldArray."""
        return b"".join(int(v).to_bytes(self.element_size, "little") for v in values)


GOLDILOCKS = Field(GOLDILOCKS_PRIME, name="Goldilocks")
TOY = Field(TOY_PRIME, name="Toy")

