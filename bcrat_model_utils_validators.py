"""
Risk factor profile record and pre-flight input checks.

The structural check runs before any domain validation so that missing,
non-numeric or infinite values are reported as messages rather than
surfacing as comparison errors further down the pipeline.
"""

from dataclasses import dataclass, fields, asdict
from typing import Any, Dict, List, Mapping, Optional
import math
import numbers
import logging

import numpy as np

logger = logging.getLogger(__name__)


# Accepted spellings for each profile field: snake_case, the camelCase JSON
# contract, and the BCRA R package column names.
FIELD_ALIASES = {
    'id': ('id', 'ID'),
    'initial_age': ('initial_age', 'initialAge', 'T1'),
    'projection_end_age': ('projection_end_age', 'projectionEndAge', 'T2'),
    'race': ('race', 'Race'),
    'num_breast_biopsies': ('num_breast_biopsies', 'numBreastBiopsies', 'N_Biop'),
    'age_at_menarche': ('age_at_menarche', 'ageAtMenarche', 'AgeMen'),
    'age_at_first_birth': ('age_at_first_birth', 'ageAtFirstBirth', 'Age1st'),
    'num_relatives_with_brca': ('num_relatives_with_brca', 'numRelativesWithBrCa', 'N_Rels'),
    'atypical_hyperplasia': ('atypical_hyperplasia', 'atypicalHyperplasia', 'HypPlas'),
}

MODEL_FIELDS = [name for name in FIELD_ALIASES if name != 'id']


@dataclass(frozen=True)
class RiskFactorProfile:
    """
    Risk factors for one individual.

    Attributes:
        id: Opaque identifier (numeric or string)
        initial_age: Current age, in [20, 90)
        projection_end_age: End of the projection interval, in (20, 90]
        race: Race/ethnicity code, 1-11
        num_breast_biopsies: Count, or 99 (unknown)
        age_at_menarche: Age, or 99 (unknown)
        age_at_first_birth: Age, 98 (nulliparous) or 99 (unknown)
        num_relatives_with_brca: First-degree relatives with breast cancer, or 99
        atypical_hyperplasia: 0 (no), 1 (yes), 99 (unknown/not applicable)
    """
    id: Any = None
    initial_age: Any = None
    projection_end_age: Any = None
    race: Any = None
    num_breast_biopsies: Any = None
    age_at_menarche: Any = None
    age_at_first_birth: Any = None
    num_relatives_with_brca: Any = None
    atypical_hyperplasia: Any = None

    @classmethod
    def from_dict(cls, data: Mapping) -> 'RiskFactorProfile':
        """Build a profile from a mapping using any accepted key spelling."""
        values = {}
        for name, aliases in FIELD_ALIASES.items():
            for alias in aliases:
                if alias in data:
                    values[name] = _clean_value(data[alias])
                    break
        return cls(**values)

    def to_dict(self) -> Dict:
        return asdict(self)

    def replace(self, **changes) -> 'RiskFactorProfile':
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values.update(changes)
        return RiskFactorProfile(**values)


def _clean_value(value):
    """Convert numpy scalars and pandas missing markers to plain Python."""
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and np.isnan(value):
        return None
    return value


def as_profile(data) -> RiskFactorProfile:
    """Accept a RiskFactorProfile or a mapping."""
    if isinstance(data, RiskFactorProfile):
        return data
    if isinstance(data, Mapping):
        return RiskFactorProfile.from_dict(data)
    raise TypeError(f"Expected RiskFactorProfile or mapping, got {type(data).__name__}")


def is_number(value) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def check_profile_structure(profile: RiskFactorProfile) -> List[str]:
    """
    Pre-flight structural check.

    Args:
        profile: Profile to check

    Returns:
        One message per missing, non-numeric or non-finite model field
    """
    errors = []
    for name in MODEL_FIELDS:
        value = getattr(profile, name)
        if value is None:
            errors.append(f"{name} is required")
        elif not is_number(value):
            errors.append(f"{name} must be a number")
        elif not math.isfinite(value):
            errors.append(f"{name} must be a finite number")
    return errors


def collect_warnings(profile: RiskFactorProfile) -> List[str]:
    """Advisory messages; these never change the calculation."""
    warnings = []
    for name in ('initial_age', 'projection_end_age'):
        value = getattr(profile, name)
        if is_number(value) and math.isfinite(value) and value != int(value):
            warnings.append(f"{name} should typically be a whole number")
    return warnings


def is_integer_in_range(value, low: int, high: int) -> bool:
    return is_number(value) and value == int(value) and low <= value <= high


def sanitize_profile_data(data: Mapping) -> Dict:
    """
    Normalize a raw record to snake_case keys with plain Python values.

    Numeric strings (as read from CSV or form input) are converted to numbers;
    anything else is passed through for the structural check to report.
    """
    profile = RiskFactorProfile.from_dict(data)
    cleaned = profile.to_dict()
    for name in MODEL_FIELDS:
        value = cleaned[name]
        if isinstance(value, str):
            cleaned[name] = _parse_number(value)
    return cleaned


def _parse_number(text: str) -> Optional[Any]:
    stripped = text.strip()
    if not stripped:
        return None
    try:
        number = float(stripped)
    except ValueError:
        return text
    return int(number) if number.is_integer() else number
