"""
Configuration management for the BCRAT model.

Centralizes calculation options and validation tolerances and provides
YAML loading and saving.
"""

from dataclasses import dataclass, asdict
from typing import Optional
import yaml
import logging

logger = logging.getLogger(__name__)


@dataclass
class ModelConfig:
    """
    Configuration for the BCRAT model.

    Attributes:
        version: Model version
        raw_input: Profiles hold raw risk factor values (False: category codes)
        calculate_average: Also compute average risk for comparison
        five_year_horizon: Projection length for five-year risk, in years
        max_workers: Thread pool size for batch runs (None: sequential)
        absolute_risk_tolerance: Allowed absolute risk difference against
            reference results, in percentage points
        relative_risk_tolerance: Allowed relative risk difference
    """
    version: str = "1.0.0"
    raw_input: bool = True
    calculate_average: bool = False
    five_year_horizon: int = 5
    max_workers: Optional[int] = None

    # Data paths
    data_dir: str = "data"
    output_dir: str = "outputs"

    # Validation settings
    absolute_risk_tolerance: float = 0.01
    relative_risk_tolerance: float = 0.001
    enable_validation: bool = True

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'ModelConfig':
        """Load configuration from YAML file."""
        with open(yaml_path, 'r') as f:
            config_dict = yaml.safe_load(f) or {}
        return cls(**config_dict)

    def to_yaml(self, yaml_path: str):
        """Save configuration to YAML file."""
        with open(yaml_path, 'w') as f:
            yaml.dump(asdict(self), f, default_flow_style=False)

    def validate(self) -> bool:
        """Validate configuration parameters."""
        checks = []

        # Horizon must fit inside the 20-90 age range
        checks.append(0 < self.five_year_horizon <= 70)

        # Tolerances are non-negative
        checks.append(self.absolute_risk_tolerance >= 0)
        checks.append(self.relative_risk_tolerance >= 0)

        checks.append(self.max_workers is None or self.max_workers >= 1)

        is_valid = all(checks)
        if not is_valid:
            logger.error("Invalid configuration parameters")

        return is_valid
