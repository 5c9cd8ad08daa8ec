import logging
import os

import kagglehub
import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

WORKOUT_TYPES = ["Strength", "HIIT", "Cardio", "Yoga"]

DURATION_COL = "Session_Duration (hours)"
REQUIRED_COLUMNS = [
    'Age', 'BMI', 'Max_BPM', 'Avg_BPM', 'Resting_BPM',
    DURATION_COL, 'Calories_Burned', 'Workout_Type'
]


class ExerciseDataError(ValueError):
    """Raised when the gym session table does not have the expected shape"""


def _find_main_csv(path):
    csv_files = []
    for root, dirs, files in os.walk(path):
        for file in files:
            if file.endswith('.csv'):
                csv_files.append(os.path.join(root, file))

    if not csv_files:
        raise FileNotFoundError(f"No CSV files found in {path}")

    # The main table is the largest file in the download
    return max(csv_files, key=lambda x: os.path.getsize(x))


def read_exercise_table(config):
    """Read the raw gym session table, from `exercise_csv` or the Kaggle dataset"""
    if config.exercise_csv:
        logger.info("Reading exercise data from %s", config.exercise_csv)
        return pd.read_csv(config.exercise_csv)

    logger.info("Downloading exercise dataset %s from Kaggle", config.exercise_dataset)
    path = kagglehub.dataset_download(config.exercise_dataset)
    main_file = _find_main_csv(path)
    logger.info("Loading main file: %s", os.path.basename(main_file))
    return pd.read_csv(main_file)


def validate_exercise_table(df):
    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise ExerciseDataError(f"Exercise data is missing columns: {missing}")

    blank = int(df['Workout_Type'].isna().sum())
    if blank:
        raise ExerciseDataError(f"{blank} sessions have no Workout_Type")

    unknown = sorted(set(df['Workout_Type'].astype(str)) - set(WORKOUT_TYPES))
    if unknown:
        raise ExerciseDataError(
            f"Unknown workout types {unknown}; expected one of {WORKOUT_TYPES}"
        )


def add_efficiency_metrics(df):
    """
    Derive the per-session efficiency fields and categorical bins.

    Every derived column is a function of the same row's raw fields only.
    Returns a new DataFrame; the input is left untouched.
    """
    df = df.copy()

    duration = df[DURATION_COL].where(df[DURATION_COL] > 0)
    df['calories_per_hour'] = df['Calories_Burned'] / duration
    df['hr_reserve'] = df['Max_BPM'] - df['Resting_BPM']
    df['efficiency_ratio'] = df['calories_per_hour'] / df['Avg_BPM'].where(df['Avg_BPM'] > 0)

    df['BMI_Category'] = pd.cut(df['BMI'],
                                bins=[0, 18.5, 25, 30, np.inf],
                                labels=['Underweight', 'Normal', 'Overweight', 'Obese'],
                                right=False)
    df['Age_Group'] = pd.cut(df['Age'],
                             bins=[0, 25, 35, 45, 55, np.inf],
                             labels=['Youth', 'Young_Adult', 'Adult', 'Middle_Age', 'Senior'],
                             right=False)
    return df


def load_exercise_data(config):
    """Load the gym sessions once and compute the efficiency metrics"""
    raw = read_exercise_table(config)
    validate_exercise_table(raw)

    sessions = add_efficiency_metrics(raw)
    logger.info("Loaded %d sessions across workout types %s",
                len(sessions), sessions['Workout_Type'].value_counts().to_dict())
    return sessions
