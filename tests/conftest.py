"""
Pytest configuration and shared fixtures for BCRAT model tests.

This module provides:
- Risk factor profile fixtures (baseline, high risk, low risk, invalid)
- Model configuration fixtures
- Profile CSV fixtures for pipeline tests
"""

import pytest
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pandas as pd

from bcrat_model_utils_config import ModelConfig


# =============================================================================
# PROFILE FIXTURES
# =============================================================================

@pytest.fixture
def baseline_profile():
    """White woman aged 45, menarche at 12, first birth at 25, no other risk factors."""
    return {
        'id': 1,
        'initial_age': 45,
        'projection_end_age': 50,
        'race': 1,
        'num_breast_biopsies': 0,
        'age_at_menarche': 12,
        'age_at_first_birth': 25,
        'num_relatives_with_brca': 0,
        'atypical_hyperplasia': 99,
    }


@pytest.fixture
def high_risk_profile(baseline_profile):
    """Two biopsies with atypia, early menarche, late first birth, two relatives."""
    return dict(
        baseline_profile,
        id=2,
        num_breast_biopsies=2,
        age_at_menarche=11,
        age_at_first_birth=35,
        num_relatives_with_brca=2,
        atypical_hyperplasia=1,
    )


@pytest.fixture
def low_risk_profile(baseline_profile):
    """All four risk factors in their lowest category."""
    return dict(
        baseline_profile,
        id=3,
        age_at_menarche=14,
        age_at_first_birth=18,
    )


@pytest.fixture
def invalid_profile(baseline_profile):
    """Projection end age before initial age."""
    return dict(baseline_profile, id=4, initial_age=50, projection_end_age=45)


@pytest.fixture
def mixed_profiles(baseline_profile, high_risk_profile, low_risk_profile, invalid_profile):
    return [baseline_profile, invalid_profile, high_risk_profile, low_risk_profile]


# =============================================================================
# CONFIGURATION FIXTURES
# =============================================================================

@pytest.fixture
def config(tmp_path):
    """Default configuration writing into a temporary directory."""
    return ModelConfig(
        data_dir=str(tmp_path / "data"),
        output_dir=str(tmp_path / "outputs"),
    )


@pytest.fixture
def profiles_csv(tmp_path, mixed_profiles):
    """Profiles written as CSV with BCRA R package column names."""
    rows = [
        {
            'ID': p['id'], 'T1': p['initial_age'], 'T2': p['projection_end_age'],
            'N_Biop': p['num_breast_biopsies'], 'HypPlas': p['atypical_hyperplasia'],
            'AgeMen': p['age_at_menarche'], 'Age1st': p['age_at_first_birth'],
            'N_Rels': p['num_relatives_with_brca'], 'Race': p['race'],
        }
        for p in mixed_profiles
    ]
    path = tmp_path / "profiles.csv"
    pd.DataFrame(rows).to_csv(path, index=False)
    return path
