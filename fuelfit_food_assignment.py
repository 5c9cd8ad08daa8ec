import logging

import numpy as np

logger = logging.getLogger(__name__)

# Plausible pre-workout foods per workout type; the lists are disjoint
WORKOUT_FOOD_CANDIDATES = {
    'Strength': [
        'chicken breast', 'greek yogurt', 'eggs', 'tuna', 'cottage cheese',
        'lean beef', 'turkey breast', 'whey protein', 'tofu', 'peanut butter',
        'egg whites', 'beef jerky',
    ],
    'HIIT': [
        'banana', 'oatmeal', 'whole wheat toast', 'apple', 'rice cakes',
        'blueberries', 'orange', 'sweet potato', 'brown rice', 'dates',
        'energy bar', 'granola',
    ],
    'Cardio': [
        'quinoa', 'whole wheat pasta', 'strawberries', 'grapes', 'watermelon',
        'spinach', 'beetroot', 'carrots', 'shrimp', 'milk', 'edamame',
        'pork loin', 'salmon',
    ],
    'Yoga': [
        'avocado', 'walnuts', 'chia seeds', 'kale', 'broccoli', 'cucumber',
        'hummus', 'chickpeas', 'mango', 'almonds', 'lentils', 'dark chocolate',
    ],
}

FOOD_CATALOG = [food for foods in WORKOUT_FOOD_CANDIDATES.values() for food in foods]

# Checked in this order; every catalog food belongs to at most one list
FOOD_CATEGORIES = {
    'seafood': ['tuna', 'salmon', 'shrimp'],
    'poultry': ['chicken breast', 'turkey breast'],
    'red meat': ['lean beef', 'pork loin', 'beef jerky'],
    'dairy': ['greek yogurt', 'cottage cheese', 'milk'],
    'eggs': ['eggs', 'egg whites'],
    'plant protein': ['tofu', 'edamame', 'lentils', 'chickpeas', 'hummus'],
    'whole grains': ['oatmeal', 'whole wheat toast', 'rice cakes', 'brown rice',
                     'quinoa', 'whole wheat pasta', 'granola'],
    'fruits': ['banana', 'apple', 'blueberries', 'orange', 'dates', 'strawberries',
               'grapes', 'watermelon', 'mango'],
    'vegetables': ['sweet potato', 'spinach', 'beetroot', 'carrots', 'kale',
                   'broccoli', 'cucumber'],
    'healthy fats': ['avocado', 'walnuts', 'chia seeds', 'almonds', 'peanut butter'],
    'supplemental': ['whey protein', 'energy bar'],
}

OTHER_CATEGORY = 'other'


def validate_candidate_lists(candidates=None):
    """Raise ValueError if a food is a candidate for more than one workout type"""
    candidates = candidates or WORKOUT_FOOD_CANDIDATES
    owner = {}
    for workout_type, foods in candidates.items():
        for food in foods:
            if food in owner and owner[food] != workout_type:
                raise ValueError(
                    f"'{food}' is listed for both {owner[food]} and {workout_type}"
                )
            owner[food] = workout_type


def validate_category_membership(categories=None):
    """Raise ValueError if a food appears in two category lists"""
    categories = categories or FOOD_CATEGORIES
    owner = {}
    for category, foods in categories.items():
        for food in foods:
            if food in owner:
                raise ValueError(
                    f"'{food}' belongs to both '{owner[food]}' and '{category}'"
                )
            owner[food] = category


def categorize_food(food_name, categories=None):
    categories = categories or FOOD_CATEGORIES
    for category, foods in categories.items():
        if food_name in foods:
            return category
    return OTHER_CATEGORY


def assign_foods(sessions, rng=None, seed=None, candidates=None):
    """
    Assign a pre-workout food to every session.

    Parameters:
    -----------
    sessions : DataFrame
        Session table with a `Workout_Type` column
    rng : numpy.random.Generator, optional
        Random source; takes precedence over `seed`
    seed : int, optional
        Seed for a fresh generator when `rng` is not given

    Returns:
    --------
    DataFrame
        A copy of `sessions` with `food_name` and `food_category` added
    """
    candidates = candidates or WORKOUT_FOOD_CANDIDATES
    if rng is None:
        rng = np.random.default_rng(seed)

    unknown = sorted(set(sessions['Workout_Type']) - set(candidates))
    if unknown:
        raise ValueError(f"No food candidates for workout types {unknown}")

    # One independent uniform draw per row, in row order
    foods = [
        candidates[workout_type][rng.integers(len(candidates[workout_type]))]
        for workout_type in sessions['Workout_Type']
    ]

    df = sessions.copy()
    df['food_name'] = foods
    df['food_category'] = [categorize_food(food) for food in foods]

    logger.info("Assigned foods to %d sessions", len(df))
    return df
