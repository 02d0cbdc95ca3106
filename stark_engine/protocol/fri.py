"""FRI low-degree test with folding factor 2.

Layer i holds a codeword of size N_i on the coset offset_i * <omega_i>. Its
Merkle leaf j commits to the pair (f[j], f[j + N_i/2]), the two points x_j and
-x_j that fold into point j of the next layer:

    f'(j) = (a + b) / 2 + alpha * (a - b) / (2 * x_j),    x_j = offset_i * omega_i^j

The next layer lives on the coset offset_i^2 * <omega_i^2> of half the size.
Folding continues until the degree bound drops to the maximum remainder size;
the remainder polynomial is then sent in coefficient form.

A query at layer-0 position p opens leaf p mod N_0/2 (slot p >= N_0/2) and
continues at position p mod N_0/2 in the next layer.

Codewords, folding challenges and the remainder are extension-field values.
Leaves and the remainder carry them as flattened base coefficients.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import galois

from stark_engine.errors import ConfigurationError, ProvingError, VerificationError
from stark_engine.primitives.backend import ComputeBackend, SequentialBackend
from stark_engine.primitives.field import Field, is_power_of_two
from stark_engine.primitives.hashing import Hasher
from stark_engine.primitives.merkle_tree import MerkleProof, MerkleRoot, MerkleTree
from stark_engine.primitives.polynomial import (
    coset_to_coefficients,
    degree,
    evaluate,
    exceeds_degree,
)
from stark_engine.primitives.transcript import Transcript

logger = logging.getLogger(__name__)

FOLD_TAG = "fri-fold"


# --- Configuration ---


@dataclass(frozen=True)
class FriConfig:
    """FRI parameters.

    Attributes:
        domain_size: size of the layer-0 evaluation domain
        degree_bound: claimed bound on the layer-0 polynomial degree (exclusive)
        max_remainder_size: stop folding once the bound is at most this
    """
    domain_size: int
    degree_bound: int
    max_remainder_size: int

    def __post_init__(self) -> None:
        if not is_power_of_two(self.domain_size):
            raise ConfigurationError(f"FRI domain size {self.domain_size} is not a power of two")
        if not is_power_of_two(self.degree_bound):
            raise ConfigurationError(f"FRI degree bound {self.degree_bound} is not a power of two")
        if self.degree_bound * 2 > self.domain_size:
            raise ConfigurationError(
                f"FRI rate too high: degree bound {self.degree_bound} on {self.domain_size} points"
            )
        if not is_power_of_two(self.max_remainder_size):
            raise ConfigurationError(
                f"FRI max remainder size {self.max_remainder_size} is not a power of two"
            )

    @property
    def num_layers(self) -> int:
        """Number of committed (folded) layers."""
        layers, bound = 0, self.degree_bound
        while bound > self.max_remainder_size:
            bound //= 2
            layers += 1
        return layers

    @property
    def final_degree_bound(self) -> int:
        return self.degree_bound >> self.num_layers

    def layer_size(self, layer: int) -> int:
        return self.domain_size >> layer


# --- Data Classes ---


@dataclass(frozen=True)
class FriProof:
    """Layer roots, remainder coefficients and per-layer batched openings.

    final_polynomial holds d base coefficients per remainder coefficient.
    """
    layer_roots: List[MerkleRoot] = field(default_factory=list)
    final_polynomial: List[int] = field(default_factory=list)
    layer_proofs: List[MerkleProof] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "layer_roots": [r.hex() for r in self.layer_roots],
            "final_polynomial": [str(c) for c in self.final_polynomial],
            "layer_proofs": [p.to_dict() for p in self.layer_proofs],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FriProof":
        return cls(
            layer_roots=[bytes.fromhex(r) for r in data["layer_roots"]],
            final_polynomial=[int(c) for c in data["final_polynomial"]],
            layer_proofs=[MerkleProof.from_dict(p) for p in data["layer_proofs"]],
        )


@dataclass
class FriLayer:
    tree: MerkleTree
    codeword: galois.FieldArray
    offset: galois.FieldArray
    generator: galois.FieldArray


# --- Folding ---


def fold_values(a, b, alpha, x, two_inv):
    """Fold the pair f(x), f(-x) with challenge alpha. Works on scalars and arrays."""
    return ((a + b) + alpha * (a - b) * x ** -1) * two_inv


def fold_codeword(field: Field, codeword: galois.FieldArray, alpha: galois.FieldArray,
                  offset: galois.FieldArray, generator: galois.FieldArray,
                  backend: Optional[ComputeBackend] = None) -> galois.FieldArray:
    """Fold a codeword on offset * <generator> into one of half the size."""
    backend = backend or SequentialBackend()
    codeword, alpha = field.lift(codeword), field.lift(alpha)
    half = len(codeword) // 2
    xs = field.lift(offset * field.powers(generator, half))
    two_inv = field.lift(field.GF(2) ** -1)

    def fold_block(block: range) -> list:
        s = slice(block.start, block.stop)
        return [fold_values(codeword[s], codeword[half:][s], alpha, xs[s], two_inv)]

    return field.concatenate(backend.map_chunks(fold_block, range(half)))


def _leaf_pairs(field: Field, codeword: galois.FieldArray) -> galois.FieldArray:
    half = len(codeword) // 2
    return field.flatten_ext(field.hstack([codeword[:half], codeword[half:]]))


# --- Prover ---


class FriProver:
    """Commit phase and query phase of FRI."""

    def __init__(self, config: FriConfig, field: Field, hasher: Hasher,
                 domain_offset: galois.FieldArray, backend: Optional[ComputeBackend] = None):
        self.config = config
        self.field = field
        self.hasher = hasher
        self.domain_offset = domain_offset
        self.backend = backend or SequentialBackend()
        self.layers: List[FriLayer] = []
        self.final_polynomial: Optional[galois.FieldArray] = None

    def build_layers(self, transcript: Transcript, codeword: galois.FieldArray) -> None:
        """Commit-fold loop: merkelize -> absorb root -> draw alpha -> fold."""
        cfg = self.config
        if len(codeword) != cfg.domain_size:
            raise ValueError(f"codeword has {len(codeword)} points, expected {cfg.domain_size}")

        codeword = self.field.lift(codeword)
        offset = self.domain_offset
        generator = self.field.root_of_unity(cfg.domain_size)
        self.layers = []
        for layer in range(cfg.num_layers):
            tree = MerkleTree.commit(_leaf_pairs(self.field, codeword), self.hasher, self.field,
                                     self.backend)
            transcript.absorb(tree.root)
            alpha = transcript.challenge_ext_element(FOLD_TAG)
            self.layers.append(FriLayer(tree, codeword, offset, generator))

            codeword = fold_codeword(self.field, codeword, alpha, offset, generator, self.backend)
            offset = offset * offset
            generator = generator * generator
            logger.debug(f"FRI layer {layer}: folded to {len(codeword)} points")

        coeffs = coset_to_coefficients(self.field, codeword, offset)
        if exceeds_degree(coeffs, cfg.final_degree_bound):
            raise ProvingError(
                f"FRI remainder has degree {degree(coeffs)}, bound {cfg.final_degree_bound}; "
                "the committed codeword is not low-degree"
            )
        self.final_polynomial = coeffs[:cfg.final_degree_bound]
        transcript.absorb_ext(self.final_polynomial)

    def build_proof(self, positions: Sequence[int]) -> FriProof:
        """Open every layer at the folded images of the query positions."""
        if self.final_polynomial is None:
            raise RuntimeError("build_layers must run before build_proof")
        layer_proofs = []
        positions = sorted(set(positions))
        for layer in self.layers:
            half = len(layer.codeword) // 2
            leaves = sorted({p % half for p in positions})
            layer_proofs.append(layer.tree.open(leaves))
            positions = leaves
        return FriProof(
            layer_roots=[layer.tree.root for layer in self.layers],
            final_polynomial=self.field.to_ints(self.field.flatten_ext(self.final_polynomial)),
            layer_proofs=layer_proofs,
        )


# --- Verifier ---


class FriVerifier:
    """Replays FRI commitments and checks query consistency."""

    def __init__(self, config: FriConfig, field: Field, hasher: Hasher,
                 domain_offset: galois.FieldArray):
        self.config = config
        self.field = field
        self.hasher = hasher
        self.domain_offset = domain_offset

    def read_commitments(self, transcript: Transcript, proof: FriProof) -> List[galois.FieldArray]:
        """Check proof shape, absorb roots and remainder, return folding challenges."""
        cfg = self.config
        if len(proof.layer_roots) != cfg.num_layers:
            raise VerificationError(
                f"expected {cfg.num_layers} FRI layer roots, got {len(proof.layer_roots)}"
            )
        expected_coeffs = cfg.final_degree_bound * self.field.extension_degree
        if len(proof.final_polynomial) != expected_coeffs:
            raise VerificationError(
                f"expected {expected_coeffs} remainder coefficients, "
                f"got {len(proof.final_polynomial)}"
            )
        if not all(self.field.is_canonical(c) for c in proof.final_polynomial):
            raise VerificationError("non-canonical remainder coefficient")

        alphas = []
        for root in proof.layer_roots:
            if not isinstance(root, bytes) or len(root) != self.hasher.digest_size:
                raise VerificationError("malformed FRI layer root")
            transcript.absorb(root)
            alphas.append(transcript.challenge_ext_element(FOLD_TAG))
        transcript.absorb_elements(self.field.GF(list(proof.final_polynomial)))
        return alphas

    def verify_queries(self, proof: FriProof, alphas: Sequence[galois.FieldArray],
                       positions: Sequence[int],
                       initial_values: Optional[Sequence[galois.FieldArray]] = None) -> None:
        """Check every query path from layer 0 down to the remainder.

        Args:
            positions: layer-0 positions
            initial_values: expected layer-0 values at `positions`; when None the
                opened layer-0 values are taken as given

        Raises:
            VerificationError: on the first inconsistency
        """
        cfg = self.config
        field = self.field
        if len(proof.layer_proofs) != cfg.num_layers:
            raise VerificationError(
                f"expected {cfg.num_layers} FRI layer openings, got {len(proof.layer_proofs)}"
            )
        if initial_values is not None and len(initial_values) != len(positions):
            raise VerificationError("initial value count does not match query count")

        expected: Dict[int, Optional[galois.FieldArray]] = {}
        for i, p in enumerate(positions):
            if not 0 <= p < cfg.domain_size:
                raise VerificationError(f"query position {p} outside the FRI domain")
            expected[p] = field.lift(initial_values[i]) if initial_values is not None else None

        two_inv = field.lift(field.GF(2) ** -1)
        leaf_width = 2 * field.extension_degree
        offset = self.domain_offset
        generator = field.root_of_unity(cfg.domain_size)
        size = cfg.domain_size

        for layer in range(cfg.num_layers):
            half = size // 2
            opening = proof.layer_proofs[layer]
            leaves = sorted({p % half for p in expected})
            if opening.num_leaves != half or list(opening.indices) != leaves:
                raise VerificationError(f"FRI layer {layer} opens the wrong leaves")
            if not MerkleTree.verify(proof.layer_roots[layer], opening.indices, opening.values,
                                     opening, self.hasher, field):
                raise VerificationError(f"FRI layer {layer} Merkle opening failed")

            pairs = {}
            for j, row in zip(opening.indices, opening.values):
                if len(row) != leaf_width:
                    raise VerificationError(f"FRI layer {layer} leaf {j} is not a pair")
                pairs[j] = field.unflatten_ext(list(row))

            folded: Dict[int, galois.FieldArray] = {}
            for p, value in expected.items():
                j = p % half
                pair = pairs[j]
                if value is not None and not bool(pair[p // half] == value):
                    raise VerificationError(f"FRI layer {layer} value mismatch at position {p}")
                x = field.lift(offset * generator ** j)
                folded[j] = fold_values(pair[0], pair[1], alphas[layer], x, two_inv)

            expected = folded
            offset = offset * offset
            generator = generator * generator
            size = half

        remainder = field.unflatten_ext(list(proof.final_polynomial))
        for p, value in expected.items():
            if value is None:
                continue
            x = offset * generator ** p
            if not bool(evaluate(field, remainder, x) == value):
                raise VerificationError(f"FRI remainder mismatch at position {p}")


def verify_fri(config: FriConfig, field: Field, hasher: Hasher, domain_offset: galois.FieldArray,
               proof: FriProof, transcript: Transcript, query_count: int,
               initial_values: Optional[Sequence[galois.FieldArray]] = None,
               positions: Optional[Sequence[int]] = None) -> bool:
    """Standalone FRI verification.

    Replays the commitments on `transcript`, derives `query_count` positions
    (unless given) and checks them. Returns False instead of raising.
    """
    verifier = FriVerifier(config, field, hasher, domain_offset)
    try:
        alphas = verifier.read_commitments(transcript, proof)
        if positions is None:
            positions = sorted(transcript.challenge_indices(query_count, config.domain_size))
        verifier.verify_queries(proof, alphas, positions, initial_values)
    except VerificationError as e:
        logger.warning(f"FRI verification failed: {e}")
        return False
    except (ValueError, IndexError, TypeError, KeyError) as e:
        logger.warning(f"FRI verification failed on malformed proof: {e}")
        return False
    return True
