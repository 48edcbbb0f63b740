"""
Input validation and recoding submodel for the BCRAT (Gail) model.

Turns a raw risk factor profile into the categorical covariates used by the
relative risk model, collecting every validation error along the way.
Race-specific differences are expressed as tables: a first birth recoding
scheme per race, and category collapse maps applied after the shared
baseline recoding of each field.
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Tuple
import logging

import numpy as np

from bcrat_model_tables import (
    RaceCode, HISPANIC_RACES, ASIAN_RACES, UNKNOWN, NULLIPAROUS, NOT_APPLICABLE,
    MIN_AGE, MAX_AGE, UNKNOWN_RACE_LABEL, get_race_label,
)
from bcrat_model_utils_validators import (
    RiskFactorProfile, as_profile, check_profile_structure, collect_warnings,
    is_integer_in_range,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecodedValues:
    """Categorical covariates for the relative risk model."""
    biopsy_category: Optional[int] = None
    menarche_category: Optional[int] = None
    first_birth_category: Optional[int] = None
    relatives_category: Optional[int] = None
    hyperplasia_multiplier: Optional[float] = None
    race_label: str = UNKNOWN_RACE_LABEL

    @property
    def is_complete(self) -> bool:
        return None not in (
            self.biopsy_category, self.menarche_category, self.first_birth_category,
            self.relatives_category, self.hyperplasia_multiplier,
        )

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class ValidationResult:
    """
    Outcome of validation and recoding.

    is_valid, errors and error_indicator always agree; add errors through
    add_error().
    """
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    recoded_values: Optional[RecodedValues] = None
    error_indicator: int = 0

    def add_error(self, message: str):
        self.errors.append(message)
        self.is_valid = False
        self.error_indicator = 1

    def extend_errors(self, messages: List[str]):
        for message in messages:
            self.add_error(message)

    def to_dict(self) -> Dict:
        return {
            'is_valid': self.is_valid,
            'errors': list(self.errors),
            'warnings': list(self.warnings),
            'recoded_values': self.recoded_values.to_dict() if self.recoded_values else None,
            'error_indicator': self.error_indicator,
        }


@dataclass(frozen=True)
class FirstBirthScheme:
    """
    Age at first birth recoding scheme.

    Attributes:
        cut_points: Bin edges; category = number of edges <= age
        nulliparous_category: Category for the nulliparous code (98)
        upper_limit: Ages at or above this (other than the codes) are invalid
        excluded: Covariate not in this race's model; always category 0
    """
    cut_points: Tuple[float, ...] = (20, 25, 30)
    nulliparous_category: int = 2
    upper_limit: Optional[float] = NULLIPAROUS
    excluded: bool = False


STANDARD_FIRST_BIRTH = FirstBirthScheme()
HISPANIC_FIRST_BIRTH = FirstBirthScheme(cut_points=(20, 30), upper_limit=None)
EXCLUDED_FIRST_BIRTH = FirstBirthScheme(excluded=True)

FIRST_BIRTH_SCHEMES: Dict[int, FirstBirthScheme] = {
    RaceCode.AFRICAN_AMERICAN: EXCLUDED_FIRST_BIRTH,
    RaceCode.HISPANIC_US_BORN: HISPANIC_FIRST_BIRTH,
    RaceCode.HISPANIC_FOREIGN_BORN: HISPANIC_FIRST_BIRTH,
}

# Per-race category collapses: field -> race -> {from_category: to_category}
_TOP_INTO_ONE = {2: 1}

CATEGORY_COLLAPSE: Dict[str, Dict[int, Dict[int, int]]] = {
    'biopsy': {race: _TOP_INTO_ONE for race in HISPANIC_RACES},
    'menarche': {
        RaceCode.AFRICAN_AMERICAN: _TOP_INTO_ONE,
        # Menarche not in the US-born Hispanic model
        RaceCode.HISPANIC_US_BORN: {1: 0, 2: 0},
    },
    'relatives': {race: _TOP_INTO_ONE for race in HISPANIC_RACES | ASIAN_RACES},
}

HYPERPLASIA_MULTIPLIERS = {0: 0.93, 1: 1.82, UNKNOWN: 1.00}

# Valid ranges for pre-recoded input
CATEGORY_RANGES = {
    'num_breast_biopsies': ('biopsy', 2),
    'age_at_menarche': ('menarche', 2),
    'age_at_first_birth': ('first birth', 3),
    'num_relatives_with_brca': ('relatives', 2),
}


def apply_collapse(field_name: str, race, category: Optional[int]) -> Optional[int]:
    """Apply the race-specific collapse for a field to a baseline category."""
    if category is None:
        return None
    collapse = CATEGORY_COLLAPSE.get(field_name, {}).get(race, {})
    return collapse.get(category, category)


# ============================================================================
# AGE AND RACE CHECKS
# ============================================================================

def validate_ages(initial_age: float, projection_end_age: float) -> List[str]:
    """Check 20 <= initial_age < projection_end_age <= 90."""
    errors = []

    if initial_age < MIN_AGE or initial_age >= MAX_AGE:
        errors.append('Initial age must be between 20 and 89 years')

    if projection_end_age > MAX_AGE:
        errors.append('Projection end age must be 90 years or less')

    if initial_age >= projection_end_age:
        errors.append('Projection end age must be greater than initial age')

    return errors


def validate_race(race) -> Tuple[Optional[str], str]:
    """Return (error or None, label)."""
    if not is_integer_in_range(race, RaceCode.WHITE, RaceCode.OTHER_ASIAN):
        return 'Invalid race code. Must be between 1 and 11', UNKNOWN_RACE_LABEL
    return None, get_race_label(race)


# ============================================================================
# FIELD RECODING
# ============================================================================

def recode_number_of_biopsies(
    num_biopsies: float,
    atypical_hyperplasia: float,
    race
) -> Tuple[Optional[str], Optional[int], Optional[float]]:
    """
    Recode number of biopsies and derive the hyperplasia multiplier.

    0 or 99 -> 0, 1 -> 1, 2..98 -> 2. With no biopsies hyperplasia must be
    99; with biopsies it must be 0, 1 or 99.

    Returns:
        (error, category, multiplier)
    """
    no_biopsies = num_biopsies == 0 or num_biopsies == UNKNOWN

    if no_biopsies and atypical_hyperplasia != NOT_APPLICABLE:
        return (
            'Consistency error: If no biopsies, atypical hyperplasia must be not applicable (99)',
            None, None
        )

    if 0 < num_biopsies < UNKNOWN and atypical_hyperplasia not in HYPERPLASIA_MULTIPLIERS:
        return (
            'Consistency error: If biopsies performed, atypical hyperplasia must be 0, 1, or 99',
            None, None
        )

    if no_biopsies:
        category = 0
    elif num_biopsies == 1:
        category = 1
    elif 2 <= num_biopsies < UNKNOWN:
        category = 2
    else:
        return 'Invalid number of biopsies', None, None

    multiplier = 1.0
    if category > 0:
        multiplier = HYPERPLASIA_MULTIPLIERS[atypical_hyperplasia]

    return None, apply_collapse('biopsy', race, category), multiplier


def recode_age_at_menarche(
    age_at_menarche: float,
    initial_age: float,
    race
) -> Tuple[Optional[str], Optional[int]]:
    """
    Recode age at menarche: 14+ or 99 -> 0, 12-13 -> 1, under 12 -> 2.

    Returns:
        (error, category)
    """
    if age_at_menarche > initial_age and age_at_menarche != UNKNOWN:
        return 'Age at menarche cannot be greater than initial age', None

    if age_at_menarche >= 14 or age_at_menarche == UNKNOWN:
        category = 0
    elif age_at_menarche >= 12:
        category = 1
    elif age_at_menarche > 0:
        category = 2
    else:
        return 'Invalid age at menarche', None

    return None, apply_collapse('menarche', race, category)


def recode_age_at_first_birth(
    age_at_first_birth: float,
    age_at_menarche: float,
    initial_age: float,
    race
) -> Tuple[Optional[str], Optional[int]]:
    """
    Recode age at first birth with the race's scheme.

    Standard: under 20 or 99 -> 0, 20-24 -> 1, 25-29 or 98 -> 2, 30+ -> 3.
    Hispanic: under 20 or 99 -> 0, 20-29 -> 1, 30+ or 98 -> 2.
    African-American: always 0.

    Returns:
        (error, category)
    """
    if (age_at_first_birth < age_at_menarche
            and age_at_menarche != UNKNOWN
            and age_at_first_birth not in (UNKNOWN, NULLIPAROUS)):
        return 'Age at first birth cannot be less than age at menarche', None

    if initial_age < age_at_first_birth < NULLIPAROUS:
        return 'Age at first birth cannot be greater than initial age', None

    scheme = FIRST_BIRTH_SCHEMES.get(race, STANDARD_FIRST_BIRTH)
    if scheme.excluded:
        return None, 0

    if age_at_first_birth == UNKNOWN:
        return None, 0
    if age_at_first_birth == NULLIPAROUS:
        return None, scheme.nulliparous_category
    if scheme.upper_limit is not None and age_at_first_birth >= scheme.upper_limit:
        return 'Invalid age at first birth', None

    category = int(np.digitize(age_at_first_birth, scheme.cut_points))
    return None, category


def recode_number_of_relatives(
    num_relatives: float,
    race
) -> Tuple[Optional[str], Optional[int]]:
    """
    Recode first-degree relatives: 0 or 99 -> 0, 1 -> 1, 2..98 -> 2.

    Returns:
        (error, category)
    """
    if num_relatives == 0 or num_relatives == UNKNOWN:
        category = 0
    elif num_relatives == 1:
        category = 1
    elif 2 <= num_relatives < UNKNOWN:
        category = 2
    else:
        return 'Invalid number of relatives', None

    return None, apply_collapse('relatives', race, category)


# ============================================================================
# VALIDATION ENTRY POINT
# ============================================================================

def recode_and_validate(data, raw_input: bool = True) -> ValidationResult:
    """
    Validate a risk factor profile and recode it into model categories.

    All applicable checks run; errors accumulate rather than stopping at the
    first failure. Structural problems (missing or non-numeric fields) are
    reported on their own, since the domain checks cannot run on them.

    Args:
        data: RiskFactorProfile or mapping of risk factors
        raw_input: False when the four risk factor fields already hold
            category codes

    Returns:
        ValidationResult with recoded values
    """
    profile = as_profile(data)
    result = ValidationResult()

    structural_errors = check_profile_structure(profile)
    if structural_errors:
        result.extend_errors(structural_errors)
        result.recoded_values = RecodedValues(race_label=get_race_label(profile.race))
        return result

    result.warnings.extend(collect_warnings(profile))

    result.extend_errors(validate_ages(profile.initial_age, profile.projection_end_age))

    race_error, race_label = validate_race(profile.race)
    if race_error:
        result.add_error(race_error)

    race = int(profile.race) if race_label != UNKNOWN_RACE_LABEL else None

    if raw_input:
        result.recoded_values = _recode_raw(profile, race, race_label, result)
    else:
        result.recoded_values = _pass_through(profile, race_label, result)

    if not result.is_valid:
        logger.debug(f"Profile {profile.id} failed validation: {result.errors}")

    return result


def _recode_raw(profile: RiskFactorProfile, race, race_label: str,
                result: ValidationResult) -> RecodedValues:
    biopsy_error, biopsy_category, multiplier = recode_number_of_biopsies(
        profile.num_breast_biopsies, profile.atypical_hyperplasia, race
    )
    menarche_error, menarche_category = recode_age_at_menarche(
        profile.age_at_menarche, profile.initial_age, race
    )
    first_birth_error, first_birth_category = recode_age_at_first_birth(
        profile.age_at_first_birth, profile.age_at_menarche, profile.initial_age, race
    )
    relatives_error, relatives_category = recode_number_of_relatives(
        profile.num_relatives_with_brca, race
    )

    for error in (biopsy_error, menarche_error, first_birth_error, relatives_error):
        if error:
            result.add_error(error)

    return RecodedValues(
        biopsy_category=biopsy_category,
        menarche_category=menarche_category,
        first_birth_category=first_birth_category,
        relatives_category=relatives_category,
        hyperplasia_multiplier=multiplier,
        race_label=race_label,
    )


def _pass_through(profile: RiskFactorProfile, race_label: str,
                  result: ValidationResult) -> RecodedValues:
    """Accept already recoded categories; no hyperplasia adjustment."""
    categories = {}
    for name, (label, top) in CATEGORY_RANGES.items():
        value = getattr(profile, name)
        if is_integer_in_range(value, 0, top):
            categories[name] = int(value)
        else:
            categories[name] = None
            result.add_error(f"Recoded {label} category must be an integer in [0, {top}]")

    return RecodedValues(
        biopsy_category=categories['num_breast_biopsies'],
        menarche_category=categories['age_at_menarche'],
        first_birth_category=categories['age_at_first_birth'],
        relatives_category=categories['num_relatives_with_brca'],
        hyperplasia_multiplier=1.0,
        race_label=race_label,
    )