"""Protocol helpers shared by prover and verifier."""

from stark_engine.protocol.utils.challenge_utils import (
    AUX_CHALLENGES_TAG,
    COMPOSITION_TAG,
    DEEP_TAG,
    OOD_POINT_TAG,
    PROTOCOL_LABEL,
    QUERY_TAG,
    draw_ood_point,
    seed_transcript,
)
from stark_engine.protocol.utils.timer import timed

__all__ = [
    "AUX_CHALLENGES_TAG",
    "COMPOSITION_TAG",
    "DEEP_TAG",
    "OOD_POINT_TAG",
    "PROTOCOL_LABEL",
    "QUERY_TAG",
    "draw_ood_point",
    "seed_transcript",
    "timed",
]
