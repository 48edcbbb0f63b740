"""
Individual risk calculation example.

Demonstrates five-year and lifetime breast cancer risk for different risk
factor profiles, compared with the average risk for women of the same age
and race/ethnicity.
"""

from bcrat_model import (
    BCRATModel, calculate_both_risks, compare_risks, select_denominator, format_percentage,
)
from bcrat_model_utils_config import ModelConfig
from bcrat_model_utils_errors import create_user_friendly_errors
import pandas as pd


def main():
    """Calculate and compare individual risks."""

    print("BCRAT Individual Risk Assessment Examples")
    print("=" * 70)

    model = BCRATModel(ModelConfig(calculate_average=True))

    individuals = [
        {
            'name': 'White, no risk factors',
            'initial_age': 45, 'race': 1,
            'num_breast_biopsies': 0, 'age_at_menarche': 14, 'age_at_first_birth': 22,
            'num_relatives_with_brca': 0, 'atypical_hyperplasia': 99,
        },
        {
            'name': 'White, biopsy with atypia and family history',
            'initial_age': 52, 'race': 1,
            'num_breast_biopsies': 1, 'age_at_menarche': 11, 'age_at_first_birth': 98,
            'num_relatives_with_brca': 2, 'atypical_hyperplasia': 1,
        },
        {
            'name': 'African-American, two biopsies',
            'initial_age': 48, 'race': 2,
            'num_breast_biopsies': 2, 'age_at_menarche': 12, 'age_at_first_birth': 99,
            'num_relatives_with_brca': 1, 'atypical_hyperplasia': 0,
        },
        {
            'name': 'Hispanic (US born), unknown history',
            'initial_age': 60, 'race': 3,
            'num_breast_biopsies': 99, 'age_at_menarche': 99, 'age_at_first_birth': 99,
            'num_relatives_with_brca': 99, 'atypical_hyperplasia': 99,
        },
        {
            'name': 'Chinese, first birth after 30',
            'initial_age': 40, 'race': 6,
            'num_breast_biopsies': 0, 'age_at_menarche': 13, 'age_at_first_birth': 32,
            'num_relatives_with_brca': 1, 'atypical_hyperplasia': 99,
        },
        {
            'name': 'Invalid entry (menarche after current age)',
            'initial_age': 30, 'race': 1,
            'num_breast_biopsies': 0, 'age_at_menarche': 35, 'age_at_first_birth': 99,
            'num_relatives_with_brca': 0, 'atypical_hyperplasia': 99,
        },
    ]

    results = []
    for person in individuals:
        risks = calculate_both_risks(person)
        five_year, lifetime = risks['five_year'], risks['lifetime']

        print(f"\n{person['name']}:")
        print(f"  Age: {person['initial_age']}, Race/ethnicity: {five_year.race_ethnicity}")

        if not risks['success']:
            print("  Could not calculate risk:")
            for message in create_user_friendly_errors(five_year.validation.errors):
                print(f"    - {message}")
            continue

        print(f"  \n  5-year risk: {format_percentage(five_year.absolute_risk)}"
              f" (average {format_percentage(five_year.average_risk)})")
        print(f"  Lifetime risk (to 90): {format_percentage(lifetime.absolute_risk)}"
              f" (average {format_percentage(lifetime.average_risk)})")
        print(f"  \n  Relative risk: {five_year.relative_risk_under_50:.2f}x under 50, "
              f"{five_year.relative_risk_at_or_above_50:.2f}x at 50+")
        print(f"  Risk factor pattern: {five_year.pattern_number}")

        comparison = compare_risks(five_year.absolute_risk, five_year.average_risk)
        counts = select_denominator(five_year.absolute_risk, five_year.average_risk)
        print(f"  \n  5-year risk is {comparison['ratio']:.2f}x, {comparison['comparison']} average")
        print(f"  About {counts['patient_num']} in {counts['denominator']} women with these "
              f"risk factors vs {counts['average_num']} in {counts['denominator']} on average")

        results.append({
            'name': person['name'],
            'five_year_risk': five_year.absolute_risk,
            'five_year_average': five_year.average_risk,
            'lifetime_risk': lifetime.absolute_risk,
        })

    # A single call through the model facade
    result = model.calculate_individual_risk(
        initial_age=35, projection_end_age=40, race=7,
        num_breast_biopsies=1, age_at_menarche=12, age_at_first_birth=27,
        num_relatives_with_brca=0, atypical_hyperplasia=0
    )
    print(f"\nJapanese, age 35, one biopsy without atypia: "
          f"{format_percentage(result.absolute_risk, 3)} over 5 years")

    print("\n" + "=" * 70)
    print("RISK COMPARISON SUMMARY")
    print("=" * 70)

    results_df = pd.DataFrame(results)
    print(results_df.to_string(index=False))

    print(f"\n5-year Risk Range: {results_df['five_year_risk'].min():.3f}% "
          f"to {results_df['five_year_risk'].max():.3f}%")
    print(f"Risk Variation: {results_df['five_year_risk'].max() / results_df['five_year_risk'].min():.1f}x")


if __name__ == "__main__":
    main()
