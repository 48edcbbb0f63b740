"""
Integration tests for the risk calculation entry points.

Tests the full validate -> relative risk -> absolute risk sequence including:
- Successful and failed calculations
- Error containment (nothing raised to the caller)
- Average risk handling
- Batch calculation
- Five-year and lifetime helpers
"""

import json

import pytest

import bcrat_model
from bcrat_model import (
    calculate_risk,
    calculate_batch_risk,
    calculate_five_year_risk,
    calculate_lifetime_risk,
    calculate_both_risks,
    compare_risks,
    select_denominator,
    format_percentage,
)
from bcrat_model_relative_risk import RelativeRiskResult


class TestCalculateRisk:
    """Single profile calculations."""

    def test_baseline_profile(self, baseline_profile):
        result = calculate_risk(baseline_profile)

        assert result.success
        assert 0 < result.absolute_risk < 5
        assert result.relative_risk_under_50 > 1.0
        assert result.pattern_number == 19
        assert result.race_ethnicity == 'Non-Hispanic White'
        assert result.projection_interval == 5
        assert result.id == 1
        assert result.error is None
        assert result.validation.is_valid

    def test_lifetime_window(self, baseline_profile):
        result = calculate_risk(dict(baseline_profile, initial_age=35, projection_end_age=90))
        assert 5 < result.absolute_risk < 20

    def test_high_risk_profile(self, high_risk_profile):
        result = calculate_risk(high_risk_profile)

        assert result.success
        assert result.relative_risk_under_50 > 5

    def test_fractional_ages(self, baseline_profile):
        result = calculate_risk(dict(baseline_profile, initial_age=45.5, projection_end_age=50.7))

        assert result.success
        assert result.absolute_risk > 0
        assert result.projection_interval == pytest.approx(5.2)
        assert len(result.validation.warnings) == 2

    def test_deterministic(self, high_risk_profile):
        first = calculate_risk(high_risk_profile, calculate_average=True)
        second = calculate_risk(high_risk_profile, calculate_average=True)

        assert first.to_dict() == second.to_dict()

    def test_result_is_json_serializable(self, baseline_profile):
        payload = calculate_risk(baseline_profile, calculate_average=True).to_dict()
        assert json.loads(json.dumps(payload))['success'] is True

    def test_pre_recoded_input(self, baseline_profile):
        profile = dict(
            baseline_profile,
            num_breast_biopsies=0, age_at_menarche=1,
            age_at_first_birth=2, num_relatives_with_brca=0,
        )
        pre_recoded = calculate_risk(profile, raw_input=False)
        raw = calculate_risk(baseline_profile)

        assert pre_recoded.success
        assert pre_recoded.absolute_risk == pytest.approx(raw.absolute_risk)


class TestFailedCalculations:
    """Failures are reported on the result."""

    def test_age_ordering(self, invalid_profile):
        result = calculate_risk(invalid_profile)

        assert not result.success
        assert result.absolute_risk is None
        assert 'Projection end age must be greater than initial age' in result.validation.errors
        assert result.validation.error_indicator == 1
        assert result.relative_risk_under_50 is None

    def test_inconsistent_hyperplasia(self, baseline_profile):
        result = calculate_risk(dict(baseline_profile, atypical_hyperplasia=1))

        assert not result.success
        assert result.absolute_risk is None
        assert any(error.startswith('Consistency error') for error in result.validation.errors)

    def test_missing_fields(self):
        result = calculate_risk({'id': 'abc', 'initial_age': 45})

        assert not result.success
        assert result.id == 'abc'
        assert 'race is required' in result.validation.errors

    def test_non_mapping_input(self):
        result = calculate_risk(42)

        assert not result.success
        assert result.error['type'] == 'TypeError'
        assert result.validation.errors[0].startswith('Unexpected error:')
        assert not result.validation.is_valid

    def test_unexpected_error_is_contained(self, baseline_profile, monkeypatch):
        def broken(*args, **kwargs):
            raise RuntimeError('table corrupted')

        monkeypatch.setattr(bcrat_model, 'calculate_relative_risk', broken)
        result = calculate_risk(baseline_profile)

        assert not result.success
        assert result.absolute_risk is None
        assert result.error['type'] == 'RuntimeError'
        assert result.error['message'] == 'table corrupted'
        assert 'stack' in result.error
        assert 'Unexpected error: table corrupted' in result.validation.errors
        assert result.validation.error_indicator == 1

    def test_relative_risk_lookup_failure(self, baseline_profile, monkeypatch):
        monkeypatch.setattr(bcrat_model, 'calculate_relative_risk',
                            lambda validation, race: RelativeRiskResult())
        result = calculate_risk(baseline_profile)

        assert not result.success
        assert result.error['type'] == 'BCRATLookupError'
        assert result.validation.errors == ['Relative risk calculation failed for this race/ethnicity']
        assert not result.validation.is_valid

    def test_absolute_risk_lookup_failure(self, baseline_profile, monkeypatch):
        monkeypatch.setattr(bcrat_model, 'calculate_absolute_risk', lambda *args: None)
        result = calculate_risk(baseline_profile)

        assert not result.success
        assert result.absolute_risk is None
        assert result.validation.errors == [
            'Absolute risk calculation failed - missing race-specific rates'
        ]


class TestAverageRisk:
    """Average risk alongside the individual risk."""

    def test_not_requested(self, baseline_profile):
        result = calculate_risk(baseline_profile)

        assert not result.average_requested
        assert result.average_risk is None

    def test_requested(self, baseline_profile):
        result = calculate_risk(baseline_profile, calculate_average=True)

        assert result.average_requested
        assert result.average_risk > 0

    def test_ordering(self, high_risk_profile, low_risk_profile):
        high = calculate_risk(high_risk_profile, calculate_average=True)
        low = calculate_risk(low_risk_profile, calculate_average=True)

        assert high.absolute_risk > high.average_risk
        assert low.absolute_risk < low.average_risk

    def test_average_failure_keeps_success(self, baseline_profile, monkeypatch):
        original = bcrat_model.calculate_absolute_risk

        def fail_in_average_mode(data, validation, relative_risk, average_mode=False):
            if average_mode:
                raise ValueError('no average rates')
            return original(data, validation, relative_risk, average_mode)

        monkeypatch.setattr(bcrat_model, 'calculate_absolute_risk', fail_in_average_mode)
        result = calculate_risk(baseline_profile, calculate_average=True)

        assert result.success
        assert result.absolute_risk > 0
        assert result.average_requested
        assert result.average_risk is None


class TestAsianEquivalence:
    """The six Asian race codes share one relative risk model."""

    def test_same_relative_risks(self, high_risk_profile):
        results = [calculate_risk(dict(high_risk_profile, race=race)) for race in range(6, 12)]

        assert len({r.relative_risk_under_50 for r in results}) == 1
        assert len({r.relative_risk_at_or_above_50 for r in results}) == 1
        # Incidence differs by group
        assert len({r.absolute_risk for r in results}) == 6


class TestBatchRisk:
    """Batch calculation."""

    def test_one_result_per_profile_in_order(self, mixed_profiles):
        results = calculate_batch_risk(mixed_profiles)

        assert [r.id for r in results] == [1, 4, 2, 3]
        assert [r.success for r in results] == [True, False, True, True]

    def test_thread_pool_matches_sequential(self, mixed_profiles):
        profiles = mixed_profiles * 5
        sequential = calculate_batch_risk(profiles, calculate_average=True)
        threaded = calculate_batch_risk(profiles, calculate_average=True, max_workers=4)

        assert [r.to_dict() for r in threaded] == [r.to_dict() for r in sequential]

    def test_bad_entries_do_not_stop_batch(self, baseline_profile):
        results = calculate_batch_risk([baseline_profile, None, 'text', {}])

        assert len(results) == 4
        assert results[0].success
        assert not any(r.success for r in results[1:])

    def test_empty_batch(self):
        assert calculate_batch_risk([]) == []


class TestProjectionHelpers:
    """Five-year and lifetime risk."""

    def test_five_year_risk(self, baseline_profile):
        result = calculate_five_year_risk(dict(baseline_profile, projection_end_age=None))

        assert result.success
        assert result.projection_interval == 5
        assert result.average_risk is not None
        assert result.absolute_risk == pytest.approx(calculate_risk(baseline_profile).absolute_risk)

    def test_five_year_capped_at_90(self, baseline_profile):
        result = calculate_five_year_risk(dict(baseline_profile, initial_age=87))

        assert result.success
        assert result.projection_interval == 3

    def test_lifetime_risk(self, baseline_profile):
        result = calculate_lifetime_risk(baseline_profile)

        assert result.success
        assert result.projection_interval == 45
        assert result.absolute_risk > calculate_five_year_risk(baseline_profile).absolute_risk

    def test_both_risks(self, baseline_profile):
        both = calculate_both_risks(baseline_profile)

        assert both['success']
        assert both['lifetime'].absolute_risk > both['five_year'].absolute_risk

    def test_helpers_report_invalid_input(self):
        result = calculate_five_year_risk({'race': 1})

        assert not result.success
        assert 'initial_age is required' in result.validation.errors
        assert not calculate_lifetime_risk(None).success


class TestPresentationHelpers:
    """Comparison and formatting helpers."""

    def test_compare_higher(self):
        assert compare_risks(3.0, 1.5) == {'is_higher': True, 'ratio': 2.0, 'comparison': 'higher than'}

    def test_compare_lower(self):
        comparison = compare_risks(1.0, 3.0)

        assert not comparison['is_higher']
        assert comparison['ratio'] == 0.33
        assert comparison['comparison'] == 'lower than'

    def test_compare_zero_average(self):
        assert compare_risks(1.0, 0.0)['ratio'] == 0.0

    def test_denominator_small_population(self):
        assert select_denominator(2.0, 1.0) == {'denominator': 100, 'patient_num': 2, 'average_num': 1}

    def test_denominator_grows_for_small_risks(self):
        selected = select_denominator(1.2, 0.3)

        assert selected['denominator'] == 200
        assert selected['average_num'] >= 1

    def test_denominator_fallback(self):
        assert select_denominator(0.001, 0.002) == {
            'denominator': 10000, 'patient_num': 1, 'average_num': 1,
        }

    def test_format_percentage(self):
        assert format_percentage(1.23456) == '1.23%'
        assert format_percentage(1.23456, 3) == '1.235%'
        assert format_percentage(None) == 'N/A'
        assert format_percentage(float('nan')) == 'N/A'
