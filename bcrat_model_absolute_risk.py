"""
Absolute risk submodel implementing the BCRAT competing-hazards integral.

Absolute risk over [t1, t2] is

    sum_j  [w_j*l1_j / h_j] * exp(-H_j) * (1 - exp(-h_j * dt_j))

with h_j = w_j*l1_j + l2_j the combined hazard of single-year interval j,
H_j the hazard accumulated over earlier intervals, w_j = (1-AR)*RR, and dt_j
the part of year j inside [t1, t2]. Rates are piecewise constant by single
year of age, so the sum is the exact cumulative incidence.
"""

from typing import Optional
import logging
import math

import numpy as np

from bcrat_model_tables import (
    RaceTables, get_race_tables, MIN_AGE, AGE_THRESHOLD, N_SINGLE_YEARS,
    YEARS_PER_AGE_GROUP,
)
from bcrat_model_recode import ValidationResult
from bcrat_model_relative_risk import RelativeRiskResult
from bcrat_model_utils_errors import BCRATCalculationError
from bcrat_model_utils_validators import as_profile

logger = logging.getLogger(__name__)

UNDER_50_YEARS = AGE_THRESHOLD - MIN_AGE


def expand_to_single_years(rates_by_group) -> np.ndarray:
    """
    Expand five-year age group rates to single-year rates.

    Args:
        rates_by_group: 14 rates for [20,25), ..., [85,90)

    Returns:
        70 rates for ages 20-89 (index 0 = age 20)
    """
    return np.repeat(np.asarray(rates_by_group, dtype=float), YEARS_PER_AGE_GROUP)


def build_weights(
    tables: RaceTables,
    relative_risk: Optional[RelativeRiskResult],
    average_mode: bool = False
) -> np.ndarray:
    """
    (1-AR)*RR for each single year of age 20-89.

    Average mode uses 1.0 throughout (no individualization).
    """
    if average_mode:
        return np.ones(N_SINGLE_YEARS)

    ar_under_50, ar_at_or_above_50 = tables.attributable_risk_complement
    weights = np.empty(N_SINGLE_YEARS)
    weights[:UNDER_50_YEARS] = ar_under_50 * relative_risk.relative_risk_under_50
    weights[UNDER_50_YEARS:] = ar_at_or_above_50 * relative_risk.relative_risk_at_or_above_50
    return weights


def interval_lengths(t1: float, t2: float) -> np.ndarray:
    """
    Length of each single-year integration interval between t1 and t2.

    The first interval starts at t1 and the last ends at t2; a last interval
    ending exactly on a whole age covers the full year.
    """
    n_intervals = math.ceil(t2) - math.floor(t1)
    if n_intervals <= 1:
        return np.array([t2 - t1], dtype=float)

    lengths = np.ones(n_intervals)
    lengths[0] = 1.0 - (t1 - math.floor(t1))
    fraction_t2 = t2 - math.floor(t2)
    lengths[-1] = fraction_t2 if fraction_t2 > 0 else 1.0
    return lengths


def integrate_risk(
    t1: float,
    t2: float,
    lambda1: np.ndarray,
    lambda2: np.ndarray,
    weights: np.ndarray
) -> float:
    """
    Integrate cumulative breast cancer incidence under competing mortality.

    Args:
        t1: Initial age
        t2: Projection end age
        lambda1: 70 single-year incidence rates
        lambda2: 70 single-year competing mortality rates
        weights: 70 single-year (1-AR)*RR values

    Returns:
        Absolute risk on the 0-1 scale

    Raises:
        BCRATCalculationError: if the interval falls outside ages 20-90
    """
    lengths = interval_lengths(t1, t2)
    start = math.floor(t1) - MIN_AGE
    stop = start + len(lengths)

    if start < 0 or stop > N_SINGLE_YEARS:
        raise BCRATCalculationError(
            'Integration interval outside the supported age range',
            details={'initial_age': t1, 'projection_end_age': t2,
                     'start_index': start, 'stop_index': stop}
        )

    cancer_hazard = weights[start:stop] * lambda1[start:stop]
    combined_hazard = cancer_hazard + lambda2[start:stop]
    interval_hazard = combined_hazard * lengths

    # hazard accumulated before each interval
    prior_hazard = np.concatenate(([0.0], np.cumsum(interval_hazard)[:-1]))

    contributions = (
        (cancer_hazard / combined_hazard)
        * np.exp(-prior_hazard)
        * (1.0 - np.exp(-interval_hazard))
    )
    return float(contributions.sum())


def calculate_absolute_risk(
    data,
    validation: ValidationResult,
    relative_risk: Optional[RelativeRiskResult],
    average_mode: bool = False
) -> Optional[float]:
    """
    Calculate absolute risk of invasive breast cancer over the projection interval.

    Args:
        data: RiskFactorProfile or mapping (ages and race are used)
        validation: Result of recode_and_validate
        relative_risk: Result of calculate_relative_risk
        average_mode: Use population-average rates and no individual RR

    Returns:
        Absolute risk in percent, or None if validation failed or rates
        are unavailable
    """
    if validation is None or not validation.is_valid:
        return None

    profile = as_profile(data)
    tables = get_race_tables(profile.race)
    if tables is None:
        logger.warning(f"No rate tables for race code {profile.race}")
        return None

    if not average_mode and (relative_risk is None or not relative_risk.is_complete):
        return None

    incidence, mortality = tables.incidence, tables.mortality
    if average_mode and tables.has_average_rates:
        incidence, mortality = tables.average_incidence, tables.average_mortality

    lambda1 = expand_to_single_years(incidence)
    lambda2 = expand_to_single_years(mortality)
    weights = build_weights(tables, relative_risk, average_mode)

    risk = integrate_risk(
        profile.initial_age, profile.projection_end_age, lambda1, lambda2, weights
    )
    return risk * 100
