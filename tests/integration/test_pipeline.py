"""
Integration tests for the model facade, data loading, validation framework
and the batch pipeline.
"""

import pandas as pd
import pytest

from bcrat_model import BCRATModel
from bcrat_model_utils_config import ModelConfig
from bcrat_model_utils_data_loader import ProfileDataLoader
from bcrat_model_utils_errors import BCRATValidationError
from bcrat_model_validation import ModelValidationFramework
from model import BatchRiskPipeline, main


class TestBCRATModel:
    """Configured model facade."""

    def test_invalid_config_rejected(self):
        with pytest.raises(ValueError):
            BCRATModel(ModelConfig(five_year_horizon=0))

    def test_calculate_individual_risk(self):
        model = BCRATModel(ModelConfig(calculate_average=True))
        result = model.calculate_individual_risk(
            initial_age=45, projection_end_age=50, race=1,
            age_at_menarche=12, age_at_first_birth=25
        )

        assert result.success
        assert result.pattern_number == 19
        assert result.average_risk is not None

    def test_config_horizon(self, baseline_profile):
        model = BCRATModel(ModelConfig(five_year_horizon=10))
        assert model.calculate_five_year_risk(baseline_profile).projection_interval == 10

    def test_population_risks(self, mixed_profiles):
        model = BCRATModel(ModelConfig(calculate_average=True, max_workers=2))
        population = pd.DataFrame(mixed_profiles)

        results = model.calculate_population_risks(population)

        assert len(results) == len(population)
        assert list(results['id']) == [1, 4, 2, 3]
        assert list(results['success']) == [True, False, True, True]
        assert pd.isna(results.loc[1, 'absolute_risk'])
        assert results.loc[1, 'error_indicator'] == 1
        assert 'Projection end age must be greater than initial age' in results.loc[1, 'errors']

    def test_risk_distribution(self, mixed_profiles):
        model = BCRATModel()
        results = model.calculate_population_risks(pd.DataFrame(mixed_profiles))
        distribution = model.get_risk_distribution(results)

        assert distribution['n_calculated'] == 3
        assert distribution['n_failed'] == 1
        assert distribution['min_risk'] <= distribution['median_absolute_risk'] <= distribution['max_risk']


class TestProfileDataLoader:
    """Loading and exporting profile tables."""

    def test_load_r_column_names(self, config, profiles_csv):
        loader = ProfileDataLoader(config)
        df = loader.load_from_file(str(profiles_csv))

        assert len(df) == 4
        assert loader.missing_fields(df) == []
        assert 'initial_age' in loader.normalize_columns(df).columns

    def test_missing_file(self, config, tmp_path):
        with pytest.raises(FileNotFoundError):
            ProfileDataLoader(config).load_from_file(str(tmp_path / "missing.csv"))

    def test_missing_columns_rejected(self, config, tmp_path):
        path = tmp_path / "partial.csv"
        pd.DataFrame({'T1': [45], 'T2': [50]}).to_csv(path, index=False)

        with pytest.raises(BCRATValidationError) as exc_info:
            ProfileDataLoader(config).load_from_file(str(path))

        field_errors = exc_info.value.field_errors
        assert field_errors['race'] == 'column not found'
        assert 'initial_age' not in field_errors
        assert exc_info.value.to_dict()['type'] == 'BCRATValidationError'

    def test_missing_columns_reported(self, config):
        df = pd.DataFrame({'T1': [45], 'T2': [50]})
        missing = ProfileDataLoader.missing_fields(df)

        assert 'race' in missing
        assert 'initial_age' not in missing

    def test_to_profiles_assigns_row_ids(self, config):
        df = pd.DataFrame({'initial_age': [45, 50], 'race': [1, 2]})
        profiles = ProfileDataLoader(config).to_profiles(df)

        assert [p['id'] for p in profiles] == [1, 2]
        assert type(profiles[0]['initial_age']) is int

    def test_synthetic_profiles_are_valid(self, config):
        loader = ProfileDataLoader(config)
        population = loader.generate_synthetic_profiles(n_profiles=200, seed=7)

        results = BCRATModel().calculate_population_risks(population)

        assert len(results) == 200
        assert results['success'].all()

    def test_synthetic_profiles_reproducible(self, config):
        loader = ProfileDataLoader(config)
        pd.testing.assert_frame_equal(
            loader.generate_synthetic_profiles(50, seed=1),
            loader.generate_synthetic_profiles(50, seed=1),
        )

    def test_save_results(self, config):
        path = ProfileDataLoader(config).save_results(pd.DataFrame({'a': [1]}), "out.csv")

        assert path.exists()
        assert path.parent == ProfileDataLoader(config).output_dir


class TestModelValidationFramework:
    """Result validation and sensitivity analysis."""

    @pytest.fixture
    def results(self, mixed_profiles):
        model = BCRATModel(ModelConfig(calculate_average=True))
        return model.calculate_population_risks(pd.DataFrame(mixed_profiles))

    def test_consistent_results(self, config, results):
        validation = ModelValidationFramework(config).validate_model(results)

        assert validation['statistical_tests']['risk_range_valid']
        assert all(validation['consistency_checks'].values())
        assert validation['overall_valid']

    def test_detects_inconsistency(self, config, results):
        broken = results.copy()
        broken.loc[0, 'error_indicator'] = 1

        validation = ModelValidationFramework(config).validate_model(broken)

        assert not validation['consistency_checks']['error_indicator_consistent']
        assert not validation['overall_valid']

    def test_reference_comparison_matches(self, config, results):
        reference = pd.DataFrame({
            'AbsRisk': results['absolute_risk'] + 0.001,
            'RR_Star1': results['relative_risk_under_50'],
            'RR_Star2': results['relative_risk_at_or_above_50'],
            'PatternNumber': results['pattern_number'],
            'Error_Ind': results['error_indicator'],
        })

        validation = ModelValidationFramework(config).validate_model(results, reference)
        comparison = validation['reference_comparison']

        assert comparison['all_within_tolerance']
        assert comparison['absolute_risk']['n_compared'] == 3
        assert comparison['absolute_risk']['correlation'] == pytest.approx(1.0)
        assert validation['overall_valid']

    def test_reference_comparison_mismatch(self, config, results):
        reference = pd.DataFrame({'AbsRisk': results['absolute_risk'].fillna(0) + 1.0})

        comparison = ModelValidationFramework(config).validate_model(results, reference)['reference_comparison']

        assert not comparison['all_within_tolerance']
        # Three outside tolerance plus one missing only on the calculated side
        assert comparison['absolute_risk']['n_outside_tolerance'] == 4

    def test_sensitivity_analysis(self, config, baseline_profile):
        sensitivity = ModelValidationFramework(config).run_sensitivity_analysis(
            baseline_profile, {'num_relatives_with_brca': [0, 1, 2], 'race': [1, 12]}
        )

        assert len(sensitivity) == 5
        relatives = sensitivity[sensitivity['field'] == 'num_relatives_with_brca']
        assert relatives['absolute_risk'].is_monotonic_increasing
        assert list(sensitivity[sensitivity['field'] == 'race']['success']) == [True, False]


class TestBatchRiskPipeline:
    """CSV in, CSV out."""

    def test_run(self, config, profiles_csv, tmp_path):
        output = tmp_path / "results" / "risks.csv"
        pipeline = BatchRiskPipeline(str(profiles_csv), config=config)

        results = pipeline.run(str(output))

        assert output.exists()
        assert list(results['id']) == [1, 4, 2, 3]
        assert list(results['success']) == [True, False, True, True]
        assert 'initial_age' in results.columns
        assert pipeline.validation_results['overall_valid']

        saved = pd.read_csv(output)
        assert len(saved) == 4

    def test_run_with_reference(self, config, profiles_csv, tmp_path):
        first = BatchRiskPipeline(str(profiles_csv), config=config).run(str(tmp_path / "a.csv"))
        reference_path = tmp_path / "reference.csv"
        first.rename(columns={
            'absolute_risk': 'AbsRisk', 'pattern_number': 'PatternNumber',
            'error_indicator': 'Error_Ind',
        })[['AbsRisk', 'PatternNumber', 'Error_Ind']].to_csv(reference_path, index=False)

        pipeline = BatchRiskPipeline(str(profiles_csv), config=config, reference_csv=str(reference_path))
        pipeline.run(str(tmp_path / "b.csv"))

        assert pipeline.validation_results['reference_comparison']['all_within_tolerance']

    def test_command_line(self, profiles_csv, tmp_path):
        output = tmp_path / "cli.csv"
        config_path = tmp_path / "config.yaml"
        ModelConfig(output_dir=str(tmp_path)).to_yaml(str(config_path))

        results = main([
            "--input", str(profiles_csv), "--output", str(output),
            "--config", str(config_path), "--average", "--workers", "2",
        ])

        assert output.exists()
        assert results['average_risk'].notna().sum() == 3
