import logging

logger = logging.getLogger(__name__)

NUTRITION_COLUMNS = [
    'food_name', 'calories', 'protein_g', 'fat_g', 'carbs_g', 'fiber_g',
    'serving_size', 'serving_unit', 'protein_ratio', 'calorie_density', 'food_group',
]


def merge_sessions_with_nutrition(sessions, nutrition):
    """Left-join assigned sessions to the nutrition table and drop rows without calories"""
    if 'food_name' not in sessions.columns:
        raise KeyError("sessions have no 'food_name' column; run assign_foods first")

    columns = [col for col in NUTRITION_COLUMNS if col in nutrition.columns]
    merged = sessions.merge(nutrition[columns], on='food_name', how='left')

    before = len(merged)
    merged = merged.dropna(subset=['calories']).reset_index(drop=True)
    if len(merged) < before:
        logger.info("Dropped %d sessions whose food has no nutrition data", before - len(merged))

    return merged
