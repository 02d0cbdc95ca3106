"""Top-level STARK proof generation.

Rounds run strictly in order; each round's challenges are drawn only after the
previous commitment is absorbed:

    0. absorb the public statement
    1. commit the main trace (and, if declared, the auxiliary segment)
    2. validate constraints, compose, commit the composition codeword
    3. DEEP: out-of-domain point, openings, DEEP codeword
    4. FRI commit phase
    5. grinding
    6. query sampling and openings
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

import galois

from stark_engine.constraints.base import ProverConstraintContext
from stark_engine.errors import ProvingError
from stark_engine.primitives.backend import ComputeBackend, get_backend
from stark_engine.primitives.field import GOLDILOCKS, Field, is_power_of_two
from stark_engine.primitives.hashing import Hasher
from stark_engine.primitives.merkle_tree import MerkleTree
from stark_engine.primitives.polynomial import degree, evaluate, evaluate_columns, exceeds_degree
from stark_engine.protocol.air import ConstraintSet
from stark_engine.protocol.air_config import AirConfig
from stark_engine.protocol.composition import ConstraintComposer, DeepComposer, check_constraints
from stark_engine.protocol.fri import FriProver
from stark_engine.protocol.options import ProofOptions
from stark_engine.protocol.proof import OodFrame, Proof
from stark_engine.protocol.trace import ExecutionTrace
from stark_engine.protocol.utils.challenge_utils import (
    AUX_CHALLENGES_TAG,
    COMPOSITION_TAG,
    DEEP_TAG,
    QUERY_TAG,
    draw_ood_point,
    seed_transcript,
)
from stark_engine.protocol.utils.timer import timed

logger = logging.getLogger(__name__)


# --- Committed Segments ---


@dataclass
class TraceSegment:
    """One committed block of trace columns.

    The main segment is over the base field, the auxiliary one over field.EF;
    its Merkle leaves hold the flattened base coefficients.
    """
    values: galois.FieldArray   # (n, cols) on the trace domain
    coeffs: galois.FieldArray   # (n, cols) coefficient form
    lde: galois.FieldArray      # (kn, cols) on the LDE coset
    tree: MerkleTree


# --- Prover ---


class Prover:
    """Builds proofs for one constraint set under fixed options."""

    def __init__(self, constraints: ConstraintSet, options: Optional[ProofOptions] = None,
                 field: Field = GOLDILOCKS, backend: Optional[ComputeBackend] = None):
        self.constraints = constraints
        self.options = options or ProofOptions()
        self.field = field
        self.hasher = Hasher(self.options.hash_name)
        self.backend = backend or get_backend(self.options.backend)

    def _commit_segment(self, values: galois.FieldArray, domain) -> TraceSegment:
        coeffs = domain.interpolate(values, self.backend)
        lde = domain.extend(coeffs, self.backend)
        tree = MerkleTree.commit(self.field.flatten_ext(lde), self.hasher, self.field, self.backend)
        return TraceSegment(values, coeffs, lde, tree)

    def _check_trace(self, trace: ExecutionTrace) -> None:
        if not isinstance(trace, ExecutionTrace):
            raise ProvingError(f"expected an ExecutionTrace, got {type(trace).__name__}")
        if trace.field.modulus != self.field.modulus:
            raise ProvingError(f"trace is over {trace.field.name}, prover over {self.field.name}")
        if trace.num_columns != self.constraints.num_columns:
            raise ProvingError(
                f"trace has {trace.num_columns} columns, constraints expect "
                f"{self.constraints.num_columns}"
            )
        if not is_power_of_two(trace.num_rows) or trace.num_rows < 2:
            raise ProvingError(
                f"trace length {trace.num_rows} is not a power of two >= 2; "
                "pad it with ExecutionTrace.padded()"
            )

    def prove(self, trace: ExecutionTrace) -> Proof:
        """Generate a proof that `trace` satisfies the constraint set.

        Raises:
            ConstraintViolation: the trace does not satisfy a constraint
            ProvingError: the trace cannot be proven (shape, degree)
            ConfigurationError: options incompatible with the trace length or field
        """
        field = self.field
        constraints = self.constraints
        options = self.options

        self._check_trace(trace)
        if trace.field != field:
            # Same base field; the prover's copy carries the extension for aux builders.
            trace = ExecutionTrace(field, trace.matrix)
        config = AirConfig(constraints, options, field, trace.num_rows)
        domain = config.domain
        logger.info(f"Proving {trace} with {config}")

        # === ROUND 0: Public statement ===
        transcript = seed_transcript(field, options, constraints, trace.num_rows)

        # === ROUND 1: Trace commitment ===
        # The main segment is committed first; interaction challenges depend on it.
        with timed("main trace commitment"):
            segments: List[TraceSegment] = [self._commit_segment(trace.matrix, domain)]
        transcript.absorb(segments[0].tree.root)

        challenges = field.EF.Zeros(0)
        if constraints.num_challenges:
            challenges = transcript.challenge_ext_elements(AUX_CHALLENGES_TAG,
                                                           constraints.num_challenges)

        if constraints.has_aux_segment:
            aux_values = constraints.build_aux_columns(trace, challenges)
            if aux_values.shape != (trace.num_rows, constraints.num_aux_columns):
                raise ProvingError(
                    f"auxiliary segment has shape {aux_values.shape}, expected "
                    f"{(trace.num_rows, constraints.num_aux_columns)}"
                )
            with timed("auxiliary trace commitment"):
                segments.append(self._commit_segment(aux_values, domain))
            transcript.absorb(segments[1].tree.root)

        full_values = field.hstack([s.values for s in segments])
        full_coeffs = field.hstack([s.coeffs for s in segments])
        full_lde = field.hstack([s.lde for s in segments])

        # === ROUND 2: Constraint composition ===
        # Constraints are checked on the trace domain before anything is composed,
        # so an invalid trace fails here with the offending row.
        check_constraints(constraints, full_values, field, challenges)

        composition_coeffs = transcript.challenge_ext_elements(COMPOSITION_TAG,
                                                               2 * constraints.num_constraints)
        composer = ConstraintComposer(constraints, domain, composition_coeffs)
        ctx = ProverConstraintContext(field, full_lde, step=domain.blowup_factor,
                                      public_inputs=constraints.public_inputs,
                                      challenges=challenges)
        points = domain.lde_points

        with timed("composition"):
            blocks = self.backend.map_chunks(
                lambda block: [composer.evaluate(ctx.restrict(slice(block.start, block.stop)),
                                                 points[block.start:block.stop])],
                range(domain.lde_size),
            )
            composition = field.concatenate(blocks)
            composition_poly = domain.coset_interpolate(composition)
        if exceeds_degree(composition_poly, config.degree_bound):
            raise ProvingError(
                f"composition polynomial has degree {degree(composition_poly)}, "
                f"bound {config.degree_bound}"
            )
        composition_tree = MerkleTree.commit(field.flatten_ext(composition.reshape(-1, 1)),
                                             self.hasher, field, self.backend)
        transcript.absorb(composition_tree.root)

        # === ROUND 3: DEEP ===
        z = draw_ood_point(transcript, domain)
        ood_current = evaluate_columns(field, full_coeffs, z)
        ood_next = evaluate_columns(field, full_coeffs, z * field.lift(domain.trace_generator))
        ood_composition = evaluate(field, composition_poly, z)
        ood = OodFrame(
            trace_current=field.to_ints(field.flatten_ext(ood_current)),
            trace_next=field.to_ints(field.flatten_ext(ood_next)),
            composition=field.to_ints(field.flatten_ext(ood_composition)),
        )
        transcript.absorb_elements(field.GF(ood.values()))

        deep_coeffs = transcript.challenge_ext_elements(DEEP_TAG, 2 * constraints.total_columns + 1)
        deep = DeepComposer(field, z, domain.trace_generator, ood_current, ood_next,
                            ood_composition, deep_coeffs)
        with timed("DEEP composition"):
            deep_codeword = deep.evaluate(full_lde, composition, points)

        # === ROUND 4: FRI commit phase ===
        fri_prover = FriProver(config.fri_config, field, self.hasher, domain.offset, self.backend)
        with timed("FRI commit phase"):
            fri_prover.build_layers(transcript, deep_codeword)
        logger.debug(f"FRI: {config.fri_config.num_layers} layers, "
                     f"remainder degree bound {config.fri_config.final_degree_bound}")

        # === ROUND 5: Grinding ===
        with timed("grinding"):
            nonce = transcript.grind(options.grinding_bits)
        transcript.absorb_int(nonce)

        # === ROUND 6: Queries ===
        positions = sorted(transcript.challenge_indices(options.num_queries, domain.lde_size,
                                                        QUERY_TAG))
        trace_positions = sorted(set(positions) | {domain.next_index(p) for p in positions})
        trace_openings = self.backend.map(lambda s: s.tree.open(trace_positions), segments)
        composition_opening = composition_tree.open(positions)
        fri_proof = fri_prover.build_proof(positions)

        logger.info(f"Proof complete: {len(positions)} queries, "
                    f"{config.fri_config.num_layers} FRI layers")
        return Proof(
            trace_length=trace.num_rows,
            trace_roots=[s.tree.root for s in segments],
            composition_root=composition_tree.root,
            ood=ood,
            fri=fri_proof,
            pow_nonce=nonce,
            trace_openings=list(trace_openings),
            composition_opening=composition_opening,
        )


def prove(trace: ExecutionTrace, constraints: ConstraintSet,
          options: Optional[ProofOptions] = None, field: Optional[Field] = None) -> Proof:
    """Generate a proof; the field defaults to the trace's field."""
    return Prover(constraints, options, field or trace.field).prove(trace)
