"""
Data loading utilities for risk factor profiles.

Loads profile tables from CSV (snake_case, camelCase or BCRA R package column
names), converts rows to plain-Python profile records, and writes results.
"""

import pandas as pd
import numpy as np
from pathlib import Path
from typing import Dict, List, Optional
import logging

from bcrat_model_utils_errors import BCRATValidationError
from bcrat_model_utils_validators import FIELD_ALIASES, MODEL_FIELDS, sanitize_profile_data

logger = logging.getLogger(__name__)


class ProfileDataLoader:
    """
    Risk factor profile loader.

    Handles loading, column normalization and export of profile data.
    """

    def __init__(self, config):
        """
        Initialize data loader.

        Args:
            config: Model configuration object
        """
        self.config = config
        self.data_dir = Path(config.data_dir)
        self.output_dir = Path(config.output_dir)

    def load_from_file(self, file_path: str) -> pd.DataFrame:
        """
        Load profiles from a CSV file.

        Raises:
            FileNotFoundError: if the file does not exist
            BCRATValidationError: if a model field has no column under any
                accepted spelling
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Profile file not found: {path}")

        logger.info(f"Loading profiles from {path}")
        df = pd.read_csv(path)

        missing_fields = self.missing_fields(df)
        if missing_fields:
            logger.error(f"Missing required columns: {missing_fields}")
            raise BCRATValidationError(
                "Profile file is missing required columns",
                field_errors={name: "column not found" for name in missing_fields}
            )

        logger.info(f"Loaded {len(df)} profiles")
        return df

    @staticmethod
    def missing_fields(df: pd.DataFrame) -> List[str]:
        """Model fields with no column under any accepted spelling."""
        return [
            name for name in MODEL_FIELDS
            if not any(alias in df.columns for alias in FIELD_ALIASES[name])
        ]

    @staticmethod
    def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
        """Rename recognized columns to their snake_case field names."""
        renames = {}
        for name, aliases in FIELD_ALIASES.items():
            for alias in aliases:
                if alias in df.columns:
                    renames[alias] = name
                    break
        return df.rename(columns=renames)

    def to_profiles(self, df: pd.DataFrame) -> List[Dict]:
        """
        Convert a profile table to records for the calculator.

        Rows without an identifier get their 1-based row number.
        """
        profiles = []
        for i, row in enumerate(df.to_dict('records'), start=1):
            profile = sanitize_profile_data(row)
            if profile['id'] is None:
                profile['id'] = i
            profiles.append(profile)
        return profiles

    def generate_synthetic_profiles(self, n_profiles: int = 100,
                                    seed: Optional[int] = None) -> pd.DataFrame:
        """
        Generate synthetic, mostly valid profiles for demonstration.

        Args:
            n_profiles: Number of rows
            seed: Random seed for reproducibility

        Returns:
            DataFrame with snake_case profile columns
        """
        logger.info(f"Generating {n_profiles} synthetic profiles")
        rng = np.random.default_rng(seed)

        initial_age = rng.integers(35, 80, size=n_profiles)
        num_biopsies = rng.choice([0, 0, 0, 1, 2, 99], size=n_profiles)
        hyperplasia = np.where(
            np.isin(num_biopsies, [0, 99]), 99, rng.choice([0, 1, 99], size=n_profiles)
        )
        age_at_menarche = rng.choice([10, 11, 12, 13, 14, 15, 99], size=n_profiles)
        age_at_first_birth = rng.choice([18, 22, 26, 31, 98, 99], size=n_profiles)

        return pd.DataFrame({
            'id': np.arange(1, n_profiles + 1),
            'initial_age': initial_age,
            'projection_end_age': np.minimum(initial_age + 5, 90),
            'race': rng.integers(1, 12, size=n_profiles),
            'num_breast_biopsies': num_biopsies,
            'age_at_menarche': age_at_menarche,
            'age_at_first_birth': age_at_first_birth,
            'num_relatives_with_brca': rng.choice([0, 0, 1, 2], size=n_profiles),
            'atypical_hyperplasia': hyperplasia,
        })

    def save_results(self, data: pd.DataFrame, filename: str) -> Path:
        """Save results to the configured output directory."""
        output_path = self.output_dir / filename
        output_path.parent.mkdir(parents=True, exist_ok=True)

        data.to_csv(output_path, index=False)
        logger.info(f"Saved results to {output_path}")
        return output_path
