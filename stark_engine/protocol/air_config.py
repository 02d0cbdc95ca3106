"""AIR configuration: everything derived from (constraints, options, field, n).

The prover and the verifier build the same AirConfig for a given trace length,
which fixes the domains, the composition degree bound and the FRI schedule.

Example:
    config = AirConfig(constraints, ProofOptions(blowup_factor=4), GOLDILOCKS, 1024)
    config.degree_bound        # c * n
    config.fri_config.num_layers
"""

from stark_engine.errors import ConfigurationError
from stark_engine.primitives.field import Field, is_power_of_two
from stark_engine.protocol.air import ConstraintSet
from stark_engine.protocol.domain import StarkDomain
from stark_engine.protocol.fri import FriConfig
from stark_engine.protocol.options import ProofOptions


class AirConfig:
    """Derived protocol parameters for one trace length.

    Raises:
        ConfigurationError: for parameter combinations the protocol cannot support
    """

    def __init__(self, constraints: ConstraintSet, options: ProofOptions, field: Field,
                 trace_length: int):
        if not is_power_of_two(trace_length) or trace_length < 2:
            raise ConfigurationError(f"trace length must be a power of two >= 2, got {trace_length}")

        self.constraints = constraints
        self.options = options
        self.field = field
        self.trace_length = trace_length
        self.domain = StarkDomain(field, trace_length, options.blowup_factor)

        # Rate <= 1/2 for the composition polynomial on the LDE coset
        self.composition_factor = constraints.composition_factor
        if options.blowup_factor < 2 * self.composition_factor:
            raise ConfigurationError(
                f"blowup factor {options.blowup_factor} too small for constraint degree "
                f"{constraints.max_degree}; need at least {2 * self.composition_factor}"
            )
        self.degree_bound = trace_length * self.composition_factor

        for index, c in enumerate(constraints.boundary):
            if c.row >= trace_length:
                raise ConfigurationError(
                    f"boundary constraint {index} at row {c.row} outside {trace_length} rows"
                )

        if options.num_queries > self.domain.lde_size:
            raise ConfigurationError(
                f"{options.num_queries} queries exceed the LDE domain of {self.domain.lde_size}"
            )

        self.fri_config = FriConfig(
            domain_size=self.domain.lde_size,
            degree_bound=self.degree_bound,
            max_remainder_size=options.fri_max_remainder_size,
        )

    def __repr__(self) -> str:
        return (
            f"AirConfig(n={self.trace_length}, k={self.options.blowup_factor}, "
            f"D={self.degree_bound}, fri_layers={self.fri_config.num_layers})"
        )
