"""
Relative risk submodel implementing the BCRAT logistic regression.

Computes relative risk multipliers for ages under 50 and 50+ from the
recoded covariates and the race-specific coefficients:

    LP1 = b0*NB + b1*AM + b2*AF + b3*NR + b5*(AF*NR) + ln(R_Hyp)
    LP2 = LP1 + b4*NB
    RR1 = exp(LP1), RR2 = exp(LP2)

Covariates excluded from a race's model have zero coefficients in the
tables, so no race branching happens here.
"""

from dataclasses import dataclass, asdict
from typing import Dict, Optional, Tuple
import logging

import numpy as np

from bcrat_model_tables import get_race_tables
from bcrat_model_recode import RecodedValues, ValidationResult

logger = logging.getLogger(__name__)

N_PATTERNS = 108


@dataclass(frozen=True)
class RelativeRiskResult:
    """Relative risks for ages < 50 and >= 50, and the risk factor pattern."""
    relative_risk_under_50: Optional[float] = None
    relative_risk_at_or_above_50: Optional[float] = None
    pattern_number: Optional[int] = None

    @property
    def is_complete(self) -> bool:
        return (self.relative_risk_under_50 is not None
                and self.relative_risk_at_or_above_50 is not None)

    def to_dict(self) -> Dict:
        return asdict(self)


def calculate_pattern_number(
    biopsy_category: int,
    menarche_category: int,
    first_birth_category: int,
    relatives_category: int
) -> int:
    """
    Index of a risk factor combination, 1-108.

    The 3 x 3 x 4 x 3 category combinations map one-to-one onto 1..108.
    """
    return (int(biopsy_category) * 36
            + int(menarche_category) * 12
            + int(first_birth_category) * 3
            + int(relatives_category)
            + 1)


def linear_predictors(recoded: RecodedValues, beta: np.ndarray) -> Tuple[float, float]:
    """
    Evaluate the logistic linear predictors.

    Args:
        recoded: Complete recoded covariates
        beta: Six race-specific coefficients

    Returns:
        (LP for age < 50, LP for age >= 50)
    """
    nb = recoded.biopsy_category
    af = recoded.first_birth_category
    nr = recoded.relatives_category

    covariates = np.array([
        nb,
        recoded.menarche_category,
        af,
        nr,
        0.0,        # age >= 50 x biopsies enters LP2 only
        af * nr,
    ], dtype=float)

    lp_under_50 = float(np.dot(covariates, beta) + np.log(recoded.hyperplasia_multiplier))
    lp_at_or_above_50 = lp_under_50 + nb * float(beta[4])
    return lp_under_50, lp_at_or_above_50


def calculate_relative_risk(validation: ValidationResult, race) -> RelativeRiskResult:
    """
    Calculate relative risks from validated, recoded data.

    Args:
        validation: Result of recode_and_validate
        race: Race code (1-11)

    Returns:
        RelativeRiskResult; all fields None if validation failed, a covariate
        is missing, or the race has no coefficient table
    """
    if validation is None or not validation.is_valid:
        return RelativeRiskResult()

    recoded = validation.recoded_values
    if recoded is None or not recoded.is_complete:
        return RelativeRiskResult()

    tables = get_race_tables(race)
    if tables is None:
        logger.warning(f"No coefficient table for race code {race}")
        return RelativeRiskResult()

    lp_under_50, lp_at_or_above_50 = linear_predictors(recoded, tables.beta)

    return RelativeRiskResult(
        relative_risk_under_50=float(np.exp(lp_under_50)),
        relative_risk_at_or_above_50=float(np.exp(lp_at_or_above_50)),
        pattern_number=calculate_pattern_number(
            recoded.biopsy_category,
            recoded.menarche_category,
            recoded.first_birth_category,
            recoded.relatives_category,
        ),
    )
