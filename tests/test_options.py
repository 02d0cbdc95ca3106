"""Tests for ProofOptions validation and loading."""

import json

import pytest

from stark_engine.errors import ConfigurationError
from stark_engine.protocol.options import ProofOptions


class TestProofOptions:
    """Validation, encoding and file loading."""

    def test_defaults(self) -> None:
        opts = ProofOptions()
        assert opts.num_queries == 32
        assert opts.blowup_factor == 4
        assert opts.hash_name == "sha256"
        assert opts.backend == "sequential"

    @pytest.mark.parametrize("kwargs", [
        dict(num_queries=0),
        dict(num_queries=129),
        dict(blowup_factor=1),
        dict(blowup_factor=6),
        dict(blowup_factor=128),
        dict(fri_max_remainder_size=0),
        dict(fri_max_remainder_size=3),
        dict(grinding_bits=-1),
        dict(grinding_bits=33),
        dict(hash_name="md5"),
        dict(backend=""),
    ])
    def test_invalid(self, kwargs: dict) -> None:
        with pytest.raises(ConfigurationError):
            ProofOptions(**kwargs)

    def test_configuration_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            ProofOptions(num_queries=0)

    def test_frozen(self) -> None:
        opts = ProofOptions()
        with pytest.raises(AttributeError):
            opts.num_queries = 4

    def test_encode_ignores_backend(self) -> None:
        assert ProofOptions(backend="threads").encode() == ProofOptions().encode()

    @pytest.mark.parametrize("kwargs", [
        dict(num_queries=31),
        dict(blowup_factor=8),
        dict(fri_max_remainder_size=16),
        dict(grinding_bits=0),
        dict(hash_name="sha3_256"),
    ])
    def test_encode_covers_every_proof_parameter(self, kwargs: dict) -> None:
        assert ProofOptions(**kwargs).encode() != ProofOptions().encode()

    def test_dict_roundtrip(self) -> None:
        opts = ProofOptions(num_queries=20, blowup_factor=8, grinding_bits=0)
        assert ProofOptions.from_dict(opts.to_dict()) == opts

    def test_from_dict_partial(self) -> None:
        assert ProofOptions.from_dict({"num_queries": 10}) == ProofOptions(num_queries=10)

    def test_from_dict_rejects_unknown_keys(self) -> None:
        with pytest.raises(ConfigurationError, match="blowup"):
            ProofOptions.from_dict({"blowup": 4})

    def test_from_json(self, tmp_path) -> None:
        path = tmp_path / "options.json"
        path.write_text(json.dumps({"num_queries": 12, "hash_name": "blake2b"}))
        opts = ProofOptions.from_json(path)
        assert opts.num_queries == 12
        assert opts.hash_name == "blake2b"

    def test_from_json_validates(self, tmp_path) -> None:
        path = tmp_path / "options.json"
        path.write_text(json.dumps({"blowup_factor": 3}))
        with pytest.raises(ConfigurationError):
            ProofOptions.from_json(path)
