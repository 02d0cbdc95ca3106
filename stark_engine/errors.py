"""Exception hierarchy for the STARK engine.

Prover-side failures propagate to the caller. Verifier-side failures are raised
internally and collapsed into a rejection at the verifier boundary.
"""


class StarkError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(StarkError, ValueError):
    """Unsupported parameter combination (options, field, domain sizes)."""


class ProvingError(StarkError):
    """The prover cannot build a proof for the supplied trace."""


class ConstraintViolation(ProvingError):
    """A constraint does not vanish on the trace where it must.

    Attributes:
        kind: "boundary", "transition" or "terminal"
        index: position of the constraint within its kind
        row: first trace row where the constraint evaluates to non-zero
    """

    def __init__(self, kind: str, index: int, row: int, detail: str = ""):
        self.kind = kind
        self.index = index
        self.row = row
        message = f"{kind} constraint {index} fails at row {row}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class VerificationError(StarkError):
    """A proof check failed. Never escapes the verifier."""
