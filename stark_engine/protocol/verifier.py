"""STARK proof verification.

The verifier replays the prover's transcript from the proof contents and checks,
in order: proof structure, the out-of-domain composition identity, the
proof-of-work, every Merkle opening, composition consistency at the query
positions, and finally FRI on the DEEP values at those positions.

Any failure is reported as a rejection; no exception escapes verify().
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import galois

from stark_engine.constraints.base import VerifierConstraintContext
from stark_engine.errors import ConfigurationError, VerificationError
from stark_engine.primitives.field import GOLDILOCKS, Field
from stark_engine.primitives.hashing import Hasher
from stark_engine.primitives.merkle_tree import MerkleProof, MerkleTree
from stark_engine.primitives.transcript import Transcript
from stark_engine.protocol.air import ConstraintSet
from stark_engine.protocol.air_config import AirConfig
from stark_engine.protocol.composition import ConstraintComposer, DeepComposer
from stark_engine.protocol.fri import FriVerifier
from stark_engine.protocol.options import ProofOptions
from stark_engine.protocol.proof import Proof
from stark_engine.protocol.utils.challenge_utils import (
    AUX_CHALLENGES_TAG,
    COMPOSITION_TAG,
    DEEP_TAG,
    QUERY_TAG,
    draw_ood_point,
    seed_transcript,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of verification; truthy when the proof is accepted."""
    accepted: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.accepted


@dataclass
class _Challenges:
    """Everything the verifier re-derives from the transcript."""
    aux: galois.FieldArray
    composition: galois.FieldArray
    z: galois.FieldArray
    deep: galois.FieldArray
    fri_alphas: List[galois.FieldArray]
    positions: List[int]


# --- Verifier ---


class Verifier:
    """Checks proofs for one constraint set under fixed options."""

    def __init__(self, constraints: ConstraintSet, options: Optional[ProofOptions] = None,
                 field: Field = GOLDILOCKS):
        self.constraints = constraints
        self.options = options or ProofOptions()
        self.field = field
        self.hasher = Hasher(self.options.hash_name)

    def verify(self, proof: Proof) -> bool:
        return bool(self.check(proof))

    def check(self, proof: Proof) -> VerificationResult:
        """Verify and report why a proof was rejected."""
        try:
            self._verify(proof)
        except VerificationError as e:
            return self._reject(str(e))
        except ConfigurationError as e:
            return self._reject(f"unsupported proof parameters: {e}")
        except (ValueError, IndexError, TypeError, KeyError, AttributeError, ZeroDivisionError) as e:
            return self._reject(f"malformed proof: {type(e).__name__}: {e}")
        logger.debug("Proof accepted")
        return VerificationResult(True)

    @staticmethod
    def _reject(reason: str) -> VerificationResult:
        logger.warning(f"ERROR: {reason}")
        return VerificationResult(False, reason)

    def _verify(self, proof: Proof) -> None:
        field = self.field
        constraints = self.constraints

        # --- Structure ---
        if not isinstance(proof, Proof):
            raise VerificationError(f"expected a Proof, got {type(proof).__name__}")
        n = proof.trace_length
        if not isinstance(n, int) or isinstance(n, bool):
            raise VerificationError("trace length is not an integer")
        config = AirConfig(constraints, self.options, field, n)
        domain = config.domain
        _verify_structure(proof, constraints, field, self.hasher)

        # --- Transcript Replay ---
        fri_verifier = FriVerifier(config.fri_config, field, self.hasher, domain.offset)
        transcript = seed_transcript(field, self.options, constraints, n)
        challenges = _reconstruct_transcript(transcript, proof, config, fri_verifier)

        # --- Out-of-Domain Identity ---
        logger.debug("Verifying out-of-domain composition identity")
        composer = ConstraintComposer(constraints, domain, challenges.composition)
        ood_current = field.unflatten_ext(proof.ood.trace_current)
        ood_next = field.unflatten_ext(proof.ood.trace_next)
        ood_composition = field.unflatten_ext(proof.ood.composition)[0]
        ood_ctx = VerifierConstraintContext(
            field, ood_current, ood_next,
            public_inputs=constraints.public_inputs, challenges=challenges.aux,
        )
        if not bool(composer.evaluate(ood_ctx, challenges.z) == ood_composition):
            raise VerificationError("Invalid evaluations: composition identity fails at z")

        # --- Merkle Openings ---
        logger.debug("Verifying Merkle openings")
        positions = challenges.positions
        trace_positions = sorted(set(positions) | {domain.next_index(p) for p in positions})
        rows = _verify_trace_openings(proof, constraints, trace_positions, domain.lde_size, field,
                                      self.hasher)
        composition_values = _verify_composition_opening(proof, positions, domain.lde_size, field,
                                                         self.hasher)

        # --- Composition Consistency ---
        logger.debug("Verifying composition consistency at query positions")
        current = field.concatenate([rows[p].reshape(1, -1) for p in positions])
        following = field.concatenate([rows[domain.next_index(p)].reshape(1, -1) for p in positions])
        xs = field.GF([int(domain.lde_point(p)) for p in positions])
        query_ctx = VerifierConstraintContext(
            field, current, following,
            public_inputs=constraints.public_inputs, challenges=challenges.aux,
        )
        composed = composer.evaluate(query_ctx, xs)
        for i, p in enumerate(positions):
            if not bool(composed[i] == composition_values[i]):
                raise VerificationError(f"Composition value mismatch at query position {p}")

        # --- DEEP + FRI ---
        logger.debug("Verifying FRI")
        deep = DeepComposer(
            field, challenges.z, domain.trace_generator,
            ood_current, ood_next, ood_composition, challenges.deep,
        )
        deep_values = deep.evaluate(current, composition_values, xs)
        fri_verifier.verify_queries(proof.fri, challenges.fri_alphas, positions,
                                    [deep_values[i] for i in range(len(positions))])


def verify(proof: Proof, constraints: ConstraintSet, options: Optional[ProofOptions] = None,
           field: Field = GOLDILOCKS) -> bool:
    """Accept or reject a proof."""
    return Verifier(constraints, options, field).verify(proof)


# --- Verification Steps ---


def _check_digest(value, hasher: Hasher, what: str) -> None:
    if not isinstance(value, bytes) or len(value) != hasher.digest_size:
        raise VerificationError(f"malformed {what}")


def _verify_structure(proof: Proof, constraints: ConstraintSet, field: Field, hasher: Hasher) -> None:
    if len(proof.trace_roots) != constraints.num_segments:
        raise VerificationError(
            f"expected {constraints.num_segments} trace roots, got {len(proof.trace_roots)}"
        )
    for root in proof.trace_roots:
        _check_digest(root, hasher, "trace root")
    _check_digest(proof.composition_root, hasher, "composition root")

    d = field.extension_degree
    width = constraints.total_columns * d
    ood = proof.ood
    if len(ood.trace_current) != width or len(ood.trace_next) != width:
        raise VerificationError(f"out-of-domain frame must hold {width} values per row")
    if len(ood.composition) != d:
        raise VerificationError(f"out-of-domain composition must hold {d} values")
    if not all(field.is_canonical(v) for v in ood.values()):
        raise VerificationError("non-canonical out-of-domain value")

    if len(proof.trace_openings) != constraints.num_segments:
        raise VerificationError(
            f"expected {constraints.num_segments} trace openings, got {len(proof.trace_openings)}"
        )
    for opening in list(proof.trace_openings) + [proof.composition_opening]:
        if not isinstance(opening, MerkleProof):
            raise VerificationError("malformed Merkle opening")


def _reconstruct_transcript(transcript: Transcript, proof: Proof, config: AirConfig,
                            fri_verifier: FriVerifier) -> _Challenges:
    """Replay every absorb in prover order and collect the challenges."""
    constraints = config.constraints
    field = config.field
    domain = config.domain

    transcript.absorb(proof.trace_roots[0])
    aux = field.EF.Zeros(0)
    if constraints.num_challenges:
        aux = transcript.challenge_ext_elements(AUX_CHALLENGES_TAG, constraints.num_challenges)
    if constraints.has_aux_segment:
        transcript.absorb(proof.trace_roots[1])

    composition = transcript.challenge_ext_elements(COMPOSITION_TAG,
                                                    2 * constraints.num_constraints)
    transcript.absorb(proof.composition_root)

    z = draw_ood_point(transcript, domain)
    transcript.absorb_elements(field.GF(proof.ood.values()))
    deep = transcript.challenge_ext_elements(DEEP_TAG, 2 * constraints.total_columns + 1)

    fri_alphas = fri_verifier.read_commitments(transcript, proof.fri)

    if not transcript.check_pow(proof.pow_nonce, config.options.grinding_bits):
        raise VerificationError("PoW verification failed")
    transcript.absorb_int(proof.pow_nonce)

    positions = sorted(transcript.challenge_indices(config.options.num_queries, domain.lde_size,
                                                    QUERY_TAG))
    return _Challenges(aux, composition, z, deep, fri_alphas, positions)


def _verify_trace_openings(proof: Proof, constraints: ConstraintSet, positions: Sequence[int],
                           lde_size: int, field: Field,
                           hasher: Hasher) -> Dict[int, galois.FieldArray]:
    """Check every segment opening; return full rows (all segments) by LDE index."""
    segments: Dict[int, List[galois.FieldArray]] = {p: [] for p in positions}
    widths = [constraints.num_columns, constraints.num_aux_columns * field.extension_degree]
    for segment, (root, opening) in enumerate(zip(proof.trace_roots, proof.trace_openings)):
        if opening.num_leaves != lde_size or list(opening.indices) != list(positions):
            raise VerificationError(f"Trace segment {segment} opens the wrong rows")
        if not MerkleTree.verify(root, opening.indices, opening.values, opening, hasher, field):
            raise VerificationError(f"Trace segment {segment} Merkle Tree verification failed")
        if any(len(values) != widths[segment] for values in opening.values):
            raise VerificationError(f"Trace segment {segment} rows have the wrong width")
        for p, values in zip(opening.indices, opening.values):
            # main rows are base elements, auxiliary rows flattened EF elements
            row = field.GF(list(values)) if segment == 0 else field.unflatten_ext(list(values))
            segments[p].append(row)
    return {p: field.concatenate(parts) for p, parts in segments.items()}


def _verify_composition_opening(proof: Proof, positions: Sequence[int], lde_size: int,
                                field: Field, hasher: Hasher) -> galois.FieldArray:
    opening = proof.composition_opening
    if opening.num_leaves != lde_size or list(opening.indices) != list(positions):
        raise VerificationError("Composition opening has the wrong rows")
    if not MerkleTree.verify(proof.composition_root, opening.indices, opening.values, opening,
                             hasher, field):
        raise VerificationError("Composition Merkle Tree verification failed")
    if any(len(values) != field.extension_degree for values in opening.values):
        raise VerificationError("Composition leaves must hold one element")
    return field.unflatten_ext([list(values) for values in opening.values])[:, 0]
