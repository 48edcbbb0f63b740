"""
BATCH BREAST CANCER RISK PIPELINE
================================================================================

Runs the BCRAT model over a CSV of risk factor profiles:
1. Load profiles (snake_case, camelCase or BCRA R package column names)
2. Calculate absolute risk (and optionally average risk) for every row
3. Validate results (internal consistency, optional BCRA R reference output)
4. Save results and log summary statistics

Rows that fail validation are kept in the output with success=False and
their error messages; they never stop the run.

Usage:
    pipeline = BatchRiskPipeline(
        input_csv="profiles.csv",
        config=ModelConfig(calculate_average=True),
        reference_csv="bcra_reference.csv"
    )

    results_df = pipeline.run(output_file="risk_results.csv")

Command line:
    python model.py --input profiles.csv --output risk_results.csv --average
"""

import pandas as pd
from pathlib import Path
from typing import Dict, List, Optional
import logging

from bcrat_model import BCRATModel
from bcrat_model_utils_config import ModelConfig
from bcrat_model_utils_data_loader import ProfileDataLoader
from bcrat_model_validation import ModelValidationFramework

logger = logging.getLogger(__name__)


class BatchRiskPipeline:
    """
    Batch pipeline: load profiles, calculate risks, validate, save.
    """

    def __init__(self,
                 input_csv: str,
                 config: Optional[ModelConfig] = None,
                 reference_csv: Optional[str] = None):

        logger.info("=" * 80)
        logger.info("INITIALIZING BATCH BREAST CANCER RISK PIPELINE")
        logger.info("=" * 80)

        self.config = config or ModelConfig()
        self.loader = ProfileDataLoader(self.config)
        self.model = BCRATModel(self.config)
        self.validator = ModelValidationFramework(self.config)

        logger.info(f"\n1. Loading profiles from: {input_csv}")
        raw_profiles = self.loader.load_from_file(input_csv)
        self.profiles_df = self.loader.normalize_columns(raw_profiles)
        logger.info(f" ✓ Loaded {len(self.profiles_df)} profiles")

        self.reference_df = None
        if reference_csv:
            logger.info(f"\n2. Loading reference results from: {reference_csv}")
            self.reference_df = pd.read_csv(reference_csv)
            logger.info(f" ✓ Loaded {len(self.reference_df)} reference rows")

        mode = "raw risk factors" if self.config.raw_input else "pre-recoded categories"
        logger.info(f"\nInput mode: {mode}")
        logger.info(f"Average risk: {'yes' if self.config.calculate_average else 'no'}\n")

    def calculate(self) -> pd.DataFrame:
        """Calculate risks for all loaded profiles."""
        profiles = self.loader.to_profiles(self.profiles_df)
        results = self.model.calculate_batch_risk(profiles)

        rows = []
        for profile, result in zip(profiles, results):
            row = {'id': profile['id']}
            row.update(result.to_record())
            rows.append(row)

        risk_df = pd.DataFrame(rows)
        input_df = self.profiles_df.drop(columns=['id'], errors='ignore').reset_index(drop=True)
        return pd.concat([risk_df[['id']], input_df, risk_df.drop(columns=['id'])], axis=1)

    def validate(self, results: pd.DataFrame) -> Dict:
        return self.validator.validate_model(results, self.reference_df)

    def run(self, output_file: str) -> pd.DataFrame:
        """
        Run all stages.

        Args:
            output_file: Path of the results CSV

        Returns:
            DataFrame with input columns and result columns
        """
        logger.info("=" * 80)
        logger.info("STAGE 1: CALCULATING ABSOLUTE RISK")
        logger.info("=" * 80)

        results = self.calculate()
        n_success = int(results['success'].sum())
        logger.info(f"✓ Calculated {n_success} of {len(results)} profiles\n")

        self.validation_results = None
        if self.config.enable_validation:
            logger.info("=" * 80)
            logger.info("STAGE 2: VALIDATING RESULTS")
            logger.info("=" * 80)

            self.validation_results = self.validate(results)
            status = "PASSED" if self.validation_results['overall_valid'] else "FAILED"
            logger.info(f"✓ Validation {status}\n")

        logger.info("=" * 80)
        logger.info("SAVING RESULTS")
        logger.info("=" * 80)

        output_path = Path(output_file)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        results.to_csv(output_path, index=False)
        logger.info(f"✓ Saved results to: {output_path}\n")

        self._print_summary(results)

        return results

    def _print_summary(self, results: pd.DataFrame):
        """Print summary statistics."""

        logger.info("=" * 80)
        logger.info("FINAL SUMMARY STATISTICS")
        logger.info("=" * 80)

        logger.info(f"\nProfiles:")
        logger.info(f"  Total: {len(results)}")
        failed = results[~results['success']]
        logger.info(f"  Calculated: {len(results) - len(failed)}")
        logger.info(f"  Failed validation: {len(failed)}")

        if len(failed) > 0:
            logger.info(f"\nMost common errors:")
            errors = failed['errors'].str.split('; ').explode().value_counts().head(5)
            for message, count in errors.items():
                logger.info(f"  {count:>5}  {message}")

        distribution = self.model.get_risk_distribution(results)
        if distribution['n_calculated'] > 0:
            logger.info(f"\nAbsolute Risk Distribution (%):")
            logger.info(f"  Mean: {distribution['mean_absolute_risk']:.4f}")
            logger.info(f"  Median: {distribution['median_absolute_risk']:.4f}")
            logger.info(f"  Min: {distribution['min_risk']:.4f}")
            logger.info(f"  Max: {distribution['max_risk']:.4f}")

            if 'mean_average_risk' in distribution:
                logger.info(f"  Mean average risk: {distribution['mean_average_risk']:.4f}")

            logger.info(f"\nBy Race/Ethnicity:")
            calculated = results[results['success']]
            by_race = calculated.groupby('race_ethnicity')['absolute_risk'].agg(['count', 'mean'])
            for label, row in by_race.iterrows():
                logger.info(f"  {label}: n={int(row['count'])}, mean={row['mean']:.4f}")

        if self.validation_results and 'reference_comparison' in self.validation_results:
            logger.info(f"\nReference Comparison:")
            for column, comparison in self.validation_results['reference_comparison'].items():
                if isinstance(comparison, dict):
                    logger.info(
                        f"  {column}: max diff {comparison['max_difference']:.6f}, "
                        f"{comparison['n_outside_tolerance']} outside tolerance"
                    )

        logger.info(f"\n{'='*80}\n")


def build_config(args) -> ModelConfig:
    """Model configuration from command line arguments."""
    config = ModelConfig.from_yaml(args.config) if args.config else ModelConfig()

    if args.average:
        config.calculate_average = True
    if args.pre_recoded:
        config.raw_input = False
    if args.workers is not None:
        config.max_workers = args.workers

    return config


def main(argv: Optional[List[str]] = None) -> pd.DataFrame:
    import argparse

    parser = argparse.ArgumentParser(description="Run BCRAT breast cancer risk calculations on a CSV file")
    parser.add_argument("--input", required=True, help="Input profiles CSV file")
    parser.add_argument("--output", required=True, help="Output CSV file")
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--average", action="store_true", help="Also calculate average risk")
    parser.add_argument("--pre-recoded", action="store_true",
                        help="Risk factor columns already hold category codes")
    parser.add_argument("--workers", type=int, help="Thread pool size for batch calculation")
    parser.add_argument("--reference", help="BCRA R package output CSV to compare against")

    args = parser.parse_args(argv)

    pipeline = BatchRiskPipeline(
        input_csv=args.input,
        config=build_config(args),
        reference_csv=args.reference
    )

    return pipeline.run(output_file=args.output)


# ============================================================================
# COMMAND LINE
# ============================================================================

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format='%(message)s')
    main()
