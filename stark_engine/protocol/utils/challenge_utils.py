"""Transcript seeding and challenge helpers shared by prover and verifier.

Both sides must perform the exact same absorb/challenge sequence. The public
statement (field, trace length, options, constraint set, public inputs) is
absorbed before anything else so that any parameter mismatch desynchronises
every later challenge.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import galois

from stark_engine.primitives.transcript import Transcript

if TYPE_CHECKING:
    from stark_engine.primitives.field import Field
    from stark_engine.protocol.air import ConstraintSet
    from stark_engine.protocol.domain import StarkDomain
    from stark_engine.protocol.options import ProofOptions

PROTOCOL_LABEL = b"stark-engine/v1"

# --- Challenge Tags ---

AUX_CHALLENGES_TAG = "aux-challenges"
COMPOSITION_TAG = "composition"
OOD_POINT_TAG = "ood-point"
DEEP_TAG = "deep"
QUERY_TAG = "queries"


def seed_transcript(field: Field, options: ProofOptions, constraints: ConstraintSet,
                    trace_length: int) -> Transcript:
    """Fresh transcript with the public statement absorbed."""
    transcript = Transcript(field, label=PROTOCOL_LABEL, hash_name=options.hash_name)
    transcript.absorb(field.modulus.to_bytes(field.element_size, "little"))
    transcript.absorb_int(field.extension_degree)
    transcript.absorb_int(trace_length)
    transcript.absorb(options.encode())
    transcript.absorb(constraints.encode())
    transcript.absorb(constraints.encode_public_inputs(field.modulus))
    return transcript


def draw_ood_point(transcript: Transcript, domain: StarkDomain) -> galois.FieldArray:
    """Out-of-domain point z: outside the trace domain and the LDE coset.

    z is drawn from the extension field. Redraws (with fresh transcript state)
    in the negligible case that z lands in either set.
    """
    field = domain.field
    while True:
        z = transcript.challenge_ext_element(OOD_POINT_TAG)
        if bool(z ** domain.trace_length == field.lift(1)):
            continue
        if domain.in_lde_coset(z):
            continue
        return z
