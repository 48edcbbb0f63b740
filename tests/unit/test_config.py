"""
Unit tests for model configuration.
"""

import pytest

from bcrat_model_utils_config import ModelConfig


class TestModelConfig:
    """Defaults, validation and YAML round trip."""

    def test_defaults_are_valid(self):
        config = ModelConfig()

        assert config.validate()
        assert config.raw_input is True
        assert config.calculate_average is False
        assert config.five_year_horizon == 5

    @pytest.mark.parametrize("changes", [
        {'five_year_horizon': 0},
        {'five_year_horizon': 80},
        {'absolute_risk_tolerance': -0.1},
        {'max_workers': 0},
    ])
    def test_invalid_values(self, changes):
        assert not ModelConfig(**changes).validate()

    def test_yaml_round_trip(self, tmp_path):
        path = tmp_path / "config.yaml"
        config = ModelConfig(calculate_average=True, max_workers=4, output_dir="results")

        config.to_yaml(str(path))
        loaded = ModelConfig.from_yaml(str(path))

        assert loaded == config

    def test_partial_yaml_uses_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("raw_input: false\n")

        loaded = ModelConfig.from_yaml(str(path))

        assert loaded.raw_input is False
        assert loaded.calculate_average is False

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")

        assert ModelConfig.from_yaml(str(path)) == ModelConfig()
