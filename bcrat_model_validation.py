"""
Model validation framework for quality assurance.

Checks calculated results for internal consistency, compares them with
reference output of the BCRA R package, and runs one-factor sensitivity
analyses.
"""

import numpy as np
import pandas as pd
from typing import Dict, Iterable, Optional
from scipy import stats
import logging

from bcrat_model import calculate_risk
from bcrat_model_relative_risk import N_PATTERNS
from bcrat_model_utils_validators import as_profile

logger = logging.getLogger(__name__)

# Result column -> BCRA R package column
REFERENCE_COLUMNS = {
    'absolute_risk': 'AbsRisk',
    'relative_risk_under_50': 'RR_Star1',
    'relative_risk_at_or_above_50': 'RR_Star2',
    'pattern_number': 'PatternNumber',
    'error_indicator': 'Error_Ind',
}


class ModelValidationFramework:
    """
    Model validation component.

    Works on the tabular output of BCRATModel.calculate_population_risks.
    """

    def __init__(self, config):
        """
        Initialize validation framework.

        Args:
            config: Model configuration object
        """
        self.config = config

        self.tolerance_thresholds = {
            'absolute_risk': config.absolute_risk_tolerance,
            'relative_risk_under_50': config.relative_risk_tolerance,
            'relative_risk_at_or_above_50': config.relative_risk_tolerance,
            'pattern_number': 0,
            'error_indicator': 0,
        }

        logger.info("Initialized Model Validation Framework")

    def validate_model(
        self,
        results: pd.DataFrame,
        reference: Optional[pd.DataFrame] = None
    ) -> Dict:
        """
        Run model validation.

        Args:
            results: Calculated results (one row per profile)
            reference: BCRA R package output for the same profiles, same
                row order (optional)

        Returns:
            Dictionary with validation results
        """
        validation_results = {
            'statistical_tests': self._run_statistical_tests(results),
            'consistency_checks': self._check_consistency(results),
        }

        if reference is not None:
            validation_results['reference_comparison'] = self._compare_with_reference(
                results, reference
            )

        validation_results['overall_valid'] = self._assess_overall_validity(
            validation_results
        )

        return validation_results

    def _run_statistical_tests(self, data: pd.DataFrame) -> Dict:
        """Range check and summary statistics of absolute risk."""
        results = {}

        if 'absolute_risk' in data.columns:
            risk_values = data['absolute_risk'].dropna().astype(float)

            results['risk_range_valid'] = bool(
                (risk_values >= 0).all() and (risk_values <= 100).all()
            )

            results['risk_statistics'] = {
                'count': int(len(risk_values)),
                'mean': risk_values.mean(),
                'median': risk_values.median(),
                'std': risk_values.std(),
                'min': risk_values.min(),
                'max': risk_values.max(),
            }

        return results

    def _check_consistency(self, data: pd.DataFrame) -> Dict:
        """Check internal consistency of model outputs."""
        results = {}

        if {'success', 'error_indicator'} <= set(data.columns):
            results['error_indicator_consistent'] = bool(
                ((data['error_indicator'] == 0) == data['success']).all()
            )

        if {'success', 'absolute_risk'} <= set(data.columns):
            results['absolute_risk_iff_success'] = bool(
                (data['absolute_risk'].notna() == data['success']).all()
            )

        if 'pattern_number' in data.columns:
            patterns = data['pattern_number'].dropna()
            results['pattern_numbers_in_range'] = bool(
                ((patterns >= 1) & (patterns <= N_PATTERNS)).all()
            )

        rr_cols = [col for col in ('relative_risk_under_50', 'relative_risk_at_or_above_50')
                   if col in data.columns]
        if rr_cols:
            results['non_negative_relative_risks'] = all(
                (data[col].dropna() >= 0).all() for col in rr_cols
            )

        if 'average_risk' in data.columns:
            average = data['average_risk'].dropna()
            results['average_risk_in_range'] = bool(
                ((average >= 0) & (average <= 100)).all()
            )

        return results

    def _compare_with_reference(
        self,
        results: pd.DataFrame,
        reference: pd.DataFrame
    ) -> Dict:
        """Compare results row by row with BCRA R package output."""
        comparison = {}

        if len(results) != len(reference):
            logger.warning(
                f"Reference has {len(reference)} rows, results have {len(results)}; "
                f"comparing the first {min(len(results), len(reference))}"
            )

        n_rows = min(len(results), len(reference))
        results = results.iloc[:n_rows].reset_index(drop=True)
        reference = reference.iloc[:n_rows].reset_index(drop=True)

        for column, reference_column in REFERENCE_COLUMNS.items():
            if column not in results.columns or reference_column not in reference.columns:
                continue

            calculated = pd.to_numeric(results[column], errors='coerce')
            expected = pd.to_numeric(reference[reference_column], errors='coerce')
            both = calculated.notna() & expected.notna()

            difference = (calculated[both] - expected[both]).abs()
            tolerance = self.tolerance_thresholds[column]
            # Missing on exactly one side is a mismatch
            n_missing_mismatch = int((calculated.isna() != expected.isna()).sum())

            column_result = {
                'n_compared': int(both.sum()),
                'max_difference': difference.max() if len(difference) else 0.0,
                'n_outside_tolerance': int((difference > tolerance).sum()) + n_missing_mismatch,
            }

            if both.sum() > 2 and calculated[both].nunique() > 1 and expected[both].nunique() > 1:
                r, p_value = stats.pearsonr(calculated[both], expected[both])
                column_result['correlation'] = float(r)
                column_result['p_value'] = float(p_value)

            column_result['within_tolerance'] = column_result['n_outside_tolerance'] == 0
            comparison[column] = column_result

        comparison['all_within_tolerance'] = all(
            v['within_tolerance'] for v in comparison.values()
        )

        if not comparison['all_within_tolerance']:
            logger.warning("Results differ from reference output beyond tolerance")

        return comparison

    def _assess_overall_validity(self, validation_results: Dict) -> bool:
        """Assess overall model validity."""
        checks = []

        if 'statistical_tests' in validation_results:
            checks.append(validation_results['statistical_tests'].get('risk_range_valid', True))

        if 'consistency_checks' in validation_results:
            checks.append(all(
                v for v in validation_results['consistency_checks'].values()
                if isinstance(v, bool)
            ))

        if 'reference_comparison' in validation_results:
            checks.append(validation_results['reference_comparison']['all_within_tolerance'])

        return all(checks) if checks else False

    def run_sensitivity_analysis(
        self,
        base_profile,
        field_ranges: Dict[str, Iterable],
        calculate_average: bool = False
    ) -> pd.DataFrame:
        """
        Vary one risk factor at a time and record the absolute risk.

        Args:
            base_profile: RiskFactorProfile or mapping
            field_ranges: Field name -> values to try
            calculate_average: Also record the average risk

        Returns:
            DataFrame with field, value, success, absolute_risk (and
            average_risk) per evaluated profile
        """
        base = as_profile(base_profile)
        results = []

        for field_name, values in field_ranges.items():
            for value in values:
                if isinstance(value, np.generic):
                    value = value.item()

                result = calculate_risk(
                    base.replace(**{field_name: value}),
                    raw_input=self.config.raw_input,
                    calculate_average=calculate_average
                )
                if not result.success:
                    logger.warning(
                        f"Sensitivity analysis failed for {field_name}={value}: "
                        f"{result.validation.errors}"
                    )

                row = {
                    'field': field_name,
                    'value': value,
                    'success': result.success,
                    'absolute_risk': result.absolute_risk,
                }
                if calculate_average:
                    row['average_risk'] = result.average_risk
                results.append(row)

        return pd.DataFrame(results)
