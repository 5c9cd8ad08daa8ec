import numpy as np
import pandas as pd
import pytest
import requests

from fuelfit_exercise_data import DURATION_COL, WORKOUT_TYPES


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeSession:
    """Stands in for requests.Session; answers by query string"""

    def __init__(self, responses):
        self.responses = responses
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append({'url': url, 'params': params, 'timeout': timeout})
        response = self.responses[params['query']]
        if isinstance(response, Exception):
            raise response
        return response


def fdc_match(calories=None, protein=None, fat=None, carbs=None, fiber=None,
              serving_size=None, serving_unit=None, extra=()):
    nutrients = []
    for name, value in [('Energy', calories), ('Protein', protein),
                        ('Total lipid (fat)', fat),
                        ('Carbohydrate, by difference', carbs),
                        ('Fiber, total dietary', fiber)]:
        if value is not None:
            nutrients.append({'nutrientName': name, 'value': value, 'unitName': 'G'})
    nutrients.extend(extra)

    match = {'description': 'test food', 'foodNutrients': nutrients}
    if serving_size is not None:
        match['servingSize'] = serving_size
        match['servingSizeUnit'] = serving_unit
    return match


def fdc_payload(*matches):
    return {'totalHits': len(matches), 'foods': list(matches)}


@pytest.fixture
def sample_sessions():
    """Synthetic gym sessions with the Kaggle table's columns"""
    rng = np.random.default_rng(7)
    n = 80
    workout = np.array(WORKOUT_TYPES * (n // len(WORKOUT_TYPES)))
    duration = rng.uniform(0.5, 2.0, n)
    avg_bpm = rng.integers(120, 170, n)
    base = {'Strength': 8.0, 'HIIT': 11.0, 'Cardio': 9.5, 'Yoga': 4.0}

    return pd.DataFrame({
        'Age': rng.integers(18, 60, n),
        'Gender': rng.choice(['Male', 'Female'], n),
        'BMI': rng.uniform(17, 35, n).round(2),
        'Max_BPM': rng.integers(170, 200, n),
        'Avg_BPM': avg_bpm,
        'Resting_BPM': rng.integers(50, 75, n),
        DURATION_COL: duration.round(2),
        'Calories_Burned': (duration * avg_bpm * np.array([base[w] for w in workout])
                            + rng.normal(0, 20, n)).round(0),
        'Workout_Type': workout,
    })


@pytest.fixture
def catalog_nutrition():
    """A resolved nutrition table for every catalog food"""
    from fuelfit_food_assignment import FOOD_CATALOG
    from fuelfit_nutrition import NutritionRecord, build_nutrition_table

    rng = np.random.default_rng(21)
    records = []
    for name in FOOD_CATALOG:
        protein, fat, carbs = rng.uniform(0, 40), rng.uniform(0, 35), rng.uniform(0, 70)
        calories = 4 * protein + 9 * fat + 4 * carbs
        records.append(NutritionRecord(name, calories, protein, fat, carbs,
                                       rng.uniform(0, 10), 100, 'g').to_dict())
    return build_nutrition_table(records)


@pytest.fixture
def enriched_sessions(sample_sessions, catalog_nutrition):
    from fuelfit_exercise_data import add_efficiency_metrics
    from fuelfit_food_assignment import assign_foods
    from fuelfit_merge import merge_sessions_with_nutrition

    assigned = assign_foods(add_efficiency_metrics(sample_sessions), seed=42)
    return merge_sessions_with_nutrition(assigned, catalog_nutrition)
