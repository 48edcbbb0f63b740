"""
Batch risk analysis example.

Demonstrates population-level use of the BCRAT model: synthetic profiles,
risk distribution, validation checks and a sensitivity analysis.
"""

from bcrat_model import BCRATModel
from bcrat_model_utils_config import ModelConfig
from bcrat_model_utils_data_loader import ProfileDataLoader
from bcrat_model_validation import ModelValidationFramework


def main():
    """Run batch risk analysis."""

    print("BCRAT Model - Batch Analysis Example")
    print("=" * 60)

    print("\n1. Initializing model...")
    config = ModelConfig(calculate_average=True, max_workers=4)
    model = BCRATModel(config)

    print("2. Generating synthetic profiles...")
    loader = ProfileDataLoader(config)
    population = loader.generate_synthetic_profiles(n_profiles=500, seed=42)

    print("3. Calculating risks...")
    results = model.calculate_population_risks(population)
    distribution = model.get_risk_distribution(results)

    print("\n" + "=" * 60)
    print("ANALYSIS RESULTS")
    print("=" * 60)
    print(f"Profiles calculated: {distribution['n_calculated']}")
    print(f"Profiles failing validation: {distribution['n_failed']}")
    print(f"Mean 5-year risk: {distribution['mean_absolute_risk']:.3f}%")
    print(f"Mean average 5-year risk: {distribution['mean_average_risk']:.3f}%")
    print(f"Interquartile range: {distribution['percentile_25']:.3f}% "
          f"to {distribution['percentile_75']:.3f}%")

    print("\n4. Mean risk by race/ethnicity:")
    by_race = results[results['success']].groupby('race_ethnicity')['absolute_risk'].mean()
    for label, risk in by_race.sort_values(ascending=False).items():
        print(f"  {label}: {risk:.3f}%")

    print("\n5. Validating results...")
    validator = ModelValidationFramework(config)
    validation = validator.validate_model(results)
    for check, passed in validation['consistency_checks'].items():
        print(f"  {check}: {'ok' if passed else 'FAILED'}")
    print(f"  Overall: {'valid' if validation['overall_valid'] else 'INVALID'}")

    print("\n6. Sensitivity of 5-year risk to number of affected relatives...")
    base_profile = {
        'initial_age': 50, 'projection_end_age': 55, 'race': 1,
        'num_breast_biopsies': 0, 'age_at_menarche': 13, 'age_at_first_birth': 25,
        'num_relatives_with_brca': 0, 'atypical_hyperplasia': 99,
    }
    sensitivity = validator.run_sensitivity_analysis(
        base_profile, {'num_relatives_with_brca': [0, 1, 2, 3]}
    )
    for _, row in sensitivity.iterrows():
        print(f"  {row['value']} relatives: {row['absolute_risk']:.3f}%")

    output_path = loader.save_results(results, "synthetic_risk_results.csv")

    print("\n" + "=" * 60)
    print(f"Analysis complete! Results saved to {output_path}")
    print("=" * 60)


if __name__ == "__main__":
    main()
