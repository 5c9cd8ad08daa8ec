import os

import joblib
import numpy as np
import pandas as pd
import pytest
import requests

from conftest import FakeResponse, FakeSession, fdc_match, fdc_payload
from fuelfit_config import FuelFitConfig, MissingCredentialError
from fuelfit_complete import FuelFitReport, run_complete_pipeline
from fuelfit_food_assignment import FOOD_CATALOG
from fuelfit_nutrition import NutritionFetcher


def fake_catalog_responses(unresolved=("tuna", "kale")):
    rng = np.random.default_rng(3)
    responses = {}
    for name in FOOD_CATALOG:
        if name in unresolved:
            responses[name] = requests.ConnectionError("offline")
            continue
        protein, fat, carbs = rng.uniform(0, 35), rng.uniform(0, 30), rng.uniform(0, 60)
        responses[name] = FakeResponse(fdc_payload(fdc_match(
            calories=round(4 * protein + 9 * fat + 4 * carbs, 1),
            protein=protein, fat=fat, carbs=carbs, fiber=rng.uniform(0, 8),
        )))
    return responses


@pytest.fixture
def report_config(tmp_path, sample_sessions):
    csv_path = tmp_path / "gym_members.csv"
    sample_sessions.to_csv(csv_path, index=False)
    return FuelFitConfig(api_key="test-key", exercise_csv=str(csv_path),
                         output_dir=str(tmp_path / "out"), random_seed=5)


def make_report(config):
    session = FakeSession(fake_catalog_responses())
    fetcher = NutritionFetcher(config.api_key, session=session)
    return FuelFitReport(config, fetcher=fetcher), session


def test_missing_credential_fails_before_any_work():
    with pytest.raises(MissingCredentialError):
        FuelFitReport(FuelFitConfig(api_key=None))


def test_full_report_run(report_config, capsys):
    report, session = make_report(report_config)
    results = report.run()

    assert len(session.calls) == len(FOOD_CATALOG)
    assert set(report.nutrition['food_name']) == set(FOOD_CATALOG) - {"tuna", "kale"}
    assert not report.enriched['food_name'].isin(["tuna", "kale"]).any()
    assert report.enriched['calories'].notna().all()

    assert {'descriptive', 'anova', 'posthoc', 'correlation', 'decision_tree',
            'linear_regression', 'food_ranking', 'food_group_summary',
            'food_category_summary'} <= set(results)
    assert "ANOVA" in capsys.readouterr().out


def test_outputs_are_written(report_config):
    report, _ = make_report(report_config)
    report.run()

    out = report_config.output_dir
    nutrition = pd.read_csv(os.path.join(out, 'nutrition_table.csv'))
    assert nutrition['food_name'].is_unique

    models = joblib.load(os.path.join(out, 'fuelfit_models.pkl'))
    assert set(models) == {'decision_tree', 'linear_regression'}
    assert models['linear_regression']['target'] == 'efficiency_ratio'


def test_same_seed_gives_identical_enriched_table(report_config):
    first, _ = make_report(report_config)
    second, _ = make_report(report_config)
    for report in (first, second):
        report.load_sessions()
        report.load_nutrition()
        report.assign_and_merge()

    assert first.enriched.to_csv(index=False) == second.enriched.to_csv(index=False)


def test_steps_must_run_in_order(report_config):
    report, _ = make_report(report_config)
    with pytest.raises(RuntimeError):
        report.assign_and_merge()
    with pytest.raises(RuntimeError):
        report.run_analyses()


def test_run_complete_pipeline_uses_given_config(report_config, monkeypatch):
    session = FakeSession(fake_catalog_responses())
    monkeypatch.setattr("fuelfit_nutrition.requests.Session", lambda: session)

    report = run_complete_pipeline(report_config)

    assert report.enriched is not None
    assert len(session.calls) == len(FOOD_CATALOG)
