"""
BCRAT model: NCI Breast Cancer Risk Assessment Tool (Gail model).

Sequences validation/recoding, relative risk and absolute risk into a single
calculation that always returns a RiskResult. Failures of any kind are
reported on the result (success=False, absolute_risk=None, messages in
validation.errors, structured detail in error); nothing is raised to the
caller, so a batch of N profiles always yields N results.

Usage:
    model = BCRATModel()
    result = model.calculate_individual_risk(
        initial_age=45, projection_end_age=50, race=1,
        num_breast_biopsies=0, age_at_menarche=12, age_at_first_birth=25,
        num_relatives_with_brca=0, atypical_hyperplasia=99
    )
    print(result.absolute_risk)
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import partial
from typing import Dict, Iterable, List, Optional
import logging

import numpy as np
import pandas as pd

from bcrat_model_tables import MAX_AGE
from bcrat_model_recode import RecodedValues, ValidationResult, recode_and_validate
from bcrat_model_relative_risk import calculate_relative_risk
from bcrat_model_absolute_risk import calculate_absolute_risk
from bcrat_model_utils_config import ModelConfig
from bcrat_model_utils_errors import BCRATLookupError, describe_exception
from bcrat_model_utils_validators import RiskFactorProfile, as_profile, is_number

logger = logging.getLogger(__name__)


@dataclass
class RiskResult:
    """
    Result of one risk calculation.

    absolute_risk is set only when success is True. average_risk is None
    when it was not requested (average_requested False) or could not be
    computed.
    """
    id: object = None
    success: bool = False
    absolute_risk: Optional[float] = None
    average_risk: Optional[float] = None
    average_requested: bool = False
    relative_risk_under_50: Optional[float] = None
    relative_risk_at_or_above_50: Optional[float] = None
    pattern_number: Optional[int] = None
    race_ethnicity: Optional[str] = None
    projection_interval: Optional[float] = None
    validation: ValidationResult = field(default_factory=ValidationResult)
    recoded_values: Optional[RecodedValues] = None
    error: Optional[Dict] = None

    def to_dict(self) -> Dict:
        """JSON-compatible representation."""
        return {
            'id': self.id,
            'success': self.success,
            'absolute_risk': self.absolute_risk,
            'average_risk': self.average_risk,
            'average_requested': self.average_requested,
            'relative_risk_under_50': self.relative_risk_under_50,
            'relative_risk_at_or_above_50': self.relative_risk_at_or_above_50,
            'pattern_number': self.pattern_number,
            'race_ethnicity': self.race_ethnicity,
            'projection_interval': self.projection_interval,
            'validation': self.validation.to_dict(),
            'recoded_values': self.recoded_values.to_dict() if self.recoded_values else None,
            'error': self.error,
        }

    def to_record(self) -> Dict:
        """Flat row for tabular output."""
        return {
            'success': self.success,
            'absolute_risk': self.absolute_risk,
            'average_risk': self.average_risk,
            'relative_risk_under_50': self.relative_risk_under_50,
            'relative_risk_at_or_above_50': self.relative_risk_at_or_above_50,
            'pattern_number': self.pattern_number,
            'race_ethnicity': self.race_ethnicity,
            'error_indicator': self.validation.error_indicator,
            'errors': '; '.join(self.validation.errors),
        }


def _fail(result: RiskResult, error: BCRATLookupError) -> RiskResult:
    result.validation.add_error(str(error))
    result.error = error.to_dict()
    return result


def calculate_risk(
    data,
    raw_input: bool = True,
    calculate_average: bool = False
) -> RiskResult:
    """
    Calculate breast cancer risk for one individual.

    Args:
        data: RiskFactorProfile or mapping of risk factors
        raw_input: False when risk factor fields are already category codes
        calculate_average: Also compute the average risk for comparison

    Returns:
        RiskResult (never raises)
    """
    result = RiskResult(average_requested=calculate_average)

    try:
        profile = as_profile(data)
        result.id = profile.id

        validation = recode_and_validate(profile, raw_input)
        result.validation = validation
        if not validation.is_valid:
            return result

        result.recoded_values = validation.recoded_values
        result.race_ethnicity = validation.recoded_values.race_label
        result.projection_interval = profile.projection_end_age - profile.initial_age

        relative_risk = calculate_relative_risk(validation, profile.race)
        if not relative_risk.is_complete:
            return _fail(result, BCRATLookupError(
                'Relative risk calculation failed for this race/ethnicity', race=profile.race
            ))

        result.relative_risk_under_50 = relative_risk.relative_risk_under_50
        result.relative_risk_at_or_above_50 = relative_risk.relative_risk_at_or_above_50
        result.pattern_number = relative_risk.pattern_number

        absolute_risk = calculate_absolute_risk(profile, validation, relative_risk, False)
        if absolute_risk is None:
            return _fail(result, BCRATLookupError(
                'Absolute risk calculation failed - missing race-specific rates', race=profile.race
            ))
        result.absolute_risk = absolute_risk

        if calculate_average:
            result.average_risk = _average_risk(profile, validation, relative_risk)

        result.success = True
        return result

    except Exception as e:
        logger.error(f"Unexpected error during risk calculation for id={result.id}: {e}")
        result.success = False
        result.absolute_risk = None
        result.average_risk = None
        result.error = describe_exception(e)
        result.validation.add_error(f"Unexpected error: {result.error['message']}")
        return result


def _average_risk(profile, validation, relative_risk) -> Optional[float]:
    """Average risk; a failure here leaves the individual result intact."""
    try:
        return calculate_absolute_risk(profile, validation, relative_risk, True)
    except Exception as e:
        logger.warning(f"Average risk calculation failed for id={profile.id}: {e}")
        return None


def calculate_batch_risk(
    profiles: Iterable,
    raw_input: bool = True,
    calculate_average: bool = False,
    max_workers: Optional[int] = None
) -> List[RiskResult]:
    """
    Calculate risk for many individuals independently.

    Args:
        profiles: RiskFactorProfiles or mappings
        raw_input: Applied to every profile
        calculate_average: Applied to every profile
        max_workers: Use a thread pool of this size when greater than 1

    Returns:
        One RiskResult per profile, in input order
    """
    profiles = list(profiles)
    calculate = partial(calculate_risk, raw_input=raw_input, calculate_average=calculate_average)

    if max_workers and max_workers > 1 and len(profiles) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            return list(executor.map(calculate, profiles))

    return [calculate(profile) for profile in profiles]


# ============================================================================
# FIVE-YEAR AND LIFETIME RISK
# ============================================================================

def _project_to(data, end_age_for, raw_input: bool = True) -> RiskResult:
    try:
        profile = as_profile(data)
    except TypeError:
        return calculate_risk(data, raw_input=raw_input, calculate_average=True)

    end_age = end_age_for(profile.initial_age) if is_number(profile.initial_age) else None
    return calculate_risk(
        profile.replace(projection_end_age=end_age),
        raw_input=raw_input,
        calculate_average=True
    )


def calculate_five_year_risk(data, horizon: int = 5, raw_input: bool = True) -> RiskResult:
    """Risk over the next five years (capped at age 90), with average risk."""
    return _project_to(data, lambda age: min(age + horizon, MAX_AGE), raw_input)


def calculate_lifetime_risk(data, raw_input: bool = True) -> RiskResult:
    """Risk from the current age to age 90, with average risk."""
    return _project_to(data, lambda age: MAX_AGE, raw_input)


def calculate_both_risks(data, horizon: int = 5, raw_input: bool = True) -> Dict:
    """Five-year and lifetime risk together."""
    five_year = calculate_five_year_risk(data, horizon, raw_input)
    lifetime = calculate_lifetime_risk(data, raw_input)
    return {
        'five_year': five_year,
        'lifetime': lifetime,
        'success': five_year.success and lifetime.success,
    }


# ============================================================================
# PRESENTATION HELPERS
# ============================================================================

def compare_risks(patient_risk: float, average_risk: float) -> Dict:
    """Compare an individual's risk with the average risk."""
    ratio = patient_risk / average_risk if average_risk > 0 else 0.0
    is_higher = patient_risk > average_risk
    return {
        'is_higher': is_higher,
        'ratio': round(ratio, 2),
        'comparison': 'higher than' if is_higher else 'lower than',
    }


def select_denominator(patient_risk: float, average_risk: float) -> Dict:
    """
    Pick a population size in which both risks are at least one woman.

    Returns:
        Dictionary with denominator, patient_num and average_num
    """
    for denominator in (100, 200, 500, 1000, 2000, 5000, 10000):
        patient_num = round(patient_risk * denominator / 100)
        average_num = round(average_risk * denominator / 100)
        if patient_num >= 1 and average_num >= 1:
            return {'denominator': denominator, 'patient_num': patient_num, 'average_num': average_num}

    return {
        'denominator': 10000,
        'patient_num': max(1, round(patient_risk * 100)),
        'average_num': max(1, round(average_risk * 100)),
    }


def format_percentage(value: Optional[float], decimals: int = 2) -> str:
    """Format a risk percentage, 'N/A' when missing."""
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return 'N/A'
    return f"{value:.{decimals}f}%"


# ============================================================================
# MODEL FACADE
# ============================================================================

class BCRATModel:
    """
    Breast cancer risk model bound to a configuration.

    Wraps the module-level calculation functions with the configured
    options and adds population-level (DataFrame) helpers.
    """

    def __init__(self, config: Optional[ModelConfig] = None):
        """
        Initialize the model.

        Args:
            config: Model configuration (defaults if omitted)
        """
        self.config = config or ModelConfig()
        if not self.config.validate():
            raise ValueError("Invalid BCRAT model configuration")

        logger.info(f"Initialized BCRAT model v{self.config.version}")

    def calculate_individual_risk(
        self,
        initial_age: float,
        projection_end_age: float,
        race: int,
        num_breast_biopsies: float = 0,
        age_at_menarche: float = 99,
        age_at_first_birth: float = 99,
        num_relatives_with_brca: float = 0,
        atypical_hyperplasia: float = 99,
        id=None
    ) -> RiskResult:
        """Calculate risk from keyword risk factors."""
        profile = RiskFactorProfile(
            id=id,
            initial_age=initial_age,
            projection_end_age=projection_end_age,
            race=race,
            num_breast_biopsies=num_breast_biopsies,
            age_at_menarche=age_at_menarche,
            age_at_first_birth=age_at_first_birth,
            num_relatives_with_brca=num_relatives_with_brca,
            atypical_hyperplasia=atypical_hyperplasia,
        )
        return self.calculate_risk(profile)

    def calculate_risk(self, data) -> RiskResult:
        return calculate_risk(
            data,
            raw_input=self.config.raw_input,
            calculate_average=self.config.calculate_average
        )

    def calculate_batch_risk(self, profiles: Iterable) -> List[RiskResult]:
        return calculate_batch_risk(
            profiles,
            raw_input=self.config.raw_input,
            calculate_average=self.config.calculate_average,
            max_workers=self.config.max_workers
        )

    def calculate_five_year_risk(self, data) -> RiskResult:
        return calculate_five_year_risk(data, self.config.five_year_horizon, self.config.raw_input)

    def calculate_lifetime_risk(self, data) -> RiskResult:
        return calculate_lifetime_risk(data, self.config.raw_input)

    def calculate_population_risks(self, population: pd.DataFrame) -> pd.DataFrame:
        """
        Calculate risks for every row of a population DataFrame.

        Args:
            population: One row per individual; any accepted column spelling

        Returns:
            The population with result columns appended
        """
        results = self.calculate_batch_risk(population.to_dict('records'))
        risk_df = pd.DataFrame([result.to_record() for result in results])

        n_failed = int((~risk_df['success']).sum()) if len(risk_df) else 0
        if n_failed:
            logger.warning(f"{n_failed} of {len(risk_df)} profiles could not be calculated")

        return pd.concat([population.reset_index(drop=True), risk_df], axis=1)

    def get_risk_distribution(self, population_risks: pd.DataFrame) -> Dict:
        """
        Summary statistics for the calculated absolute risks.

        Args:
            population_risks: Output of calculate_population_risks

        Returns:
            Dictionary with distribution statistics over successful rows
        """
        risks = population_risks.loc[population_risks['success'], 'absolute_risk'].astype(float)

        distribution = {
            'n_calculated': int(len(risks)),
            'n_failed': int(len(population_risks) - len(risks)),
            'mean_absolute_risk': risks.mean(),
            'median_absolute_risk': risks.median(),
            'std_absolute_risk': risks.std(),
            'min_risk': risks.min(),
            'max_risk': risks.max(),
            'percentile_25': risks.quantile(0.25),
            'percentile_75': risks.quantile(0.75),
        }

        if 'average_risk' in population_risks.columns:
            average = population_risks.loc[population_risks['success'], 'average_risk'].astype(float)
            distribution['mean_average_risk'] = average.mean()

        return distribution
