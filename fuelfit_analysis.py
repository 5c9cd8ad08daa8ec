import logging
from dataclasses import dataclass
from itertools import combinations
from typing import Dict, List

import numpy as np
import pandas as pd
from scipy import stats
from sklearn.linear_model import LinearRegression
from sklearn.metrics import mean_squared_error, r2_score
from sklearn.model_selection import train_test_split
from sklearn.tree import DecisionTreeRegressor

logger = logging.getLogger(__name__)

NUTRITION_FIELDS = ['calories', 'protein_g', 'fat_g', 'carbs_g', 'fiber_g',
                    'protein_ratio', 'calorie_density']
EFFICIENCY_FIELDS = ['calories_per_hour', 'efficiency_ratio', 'hr_reserve']

MODEL_FEATURES = ['calories', 'protein_g', 'fat_g', 'carbs_g', 'fiber_g', 'Age', 'BMI']
MODEL_TARGET = 'efficiency_ratio'


@dataclass
class AnovaResult:
    factor: str
    value: str
    f_statistic: float
    p_value: float
    groups: Dict[str, int]

    @property
    def significant(self):
        return self.p_value < 0.05


@dataclass
class ModelResult:
    name: str
    model: object
    features: List[str]
    target: str
    r2: float
    mse: float
    details: pd.Series


def descriptive_statistics(df, columns=None):
    """Summary statistics (count, mean, std, quartiles) per numeric column"""
    columns = columns or [c for c in NUTRITION_FIELDS + EFFICIENCY_FIELDS if c in df.columns]
    return df[columns].describe().T


def _grouped_values(df, value, factor):
    grouped = {}
    for level, group in df.groupby(factor, observed=True):
        values = group[value].dropna().to_numpy()
        if len(values) > 0:
            grouped[str(level)] = values
    if len(grouped) < 2:
        raise ValueError(f"Need at least two '{factor}' groups with '{value}' data")
    return grouped


def workout_type_anova(df, value=MODEL_TARGET, factor='Workout_Type'):
    """One-way ANOVA of `value` with `factor` as the grouping variable"""
    grouped = _grouped_values(df, value, factor)
    f_stat, p_value = stats.f_oneway(*grouped.values())

    result = AnovaResult(
        factor=factor,
        value=value,
        f_statistic=float(f_stat),
        p_value=float(p_value),
        groups={level: len(values) for level, values in grouped.items()},
    )
    logger.info("ANOVA %s ~ %s: F=%.3f, p=%.4f", value, factor, result.f_statistic, result.p_value)
    return result


def pairwise_posthoc(df, value=MODEL_TARGET, factor='Workout_Type', alpha=0.05):
    """Tukey HSD pairwise comparisons (family-wise error controlled)"""
    grouped = _grouped_values(df, value, factor)
    levels = list(grouped)
    result = stats.tukey_hsd(*grouped.values())
    ci = result.confidence_interval(confidence_level=1 - alpha)

    rows = []
    for i, j in combinations(range(len(levels)), 2):
        rows.append({
            'group_a': levels[i],
            'group_b': levels[j],
            'mean_diff': float(result.statistic[i, j]),
            'ci_low': float(ci.low[i, j]),
            'ci_high': float(ci.high[i, j]),
            'p_adj': float(result.pvalue[i, j]),
            'reject': bool(result.pvalue[i, j] < alpha),
        })
    return pd.DataFrame(rows)


def nutrition_efficiency_correlation(df, method='pearson'):
    columns = [c for c in NUTRITION_FIELDS + EFFICIENCY_FIELDS if c in df.columns]
    return df[columns].corr(method=method)


def _model_frame(df, features, target):
    data = df[features + [target]].replace([np.inf, -np.inf], np.nan).dropna()
    if len(data) < 5:
        raise ValueError(f"Not enough complete rows to model {target} ({len(data)})")
    return data[features], data[target]


def fit_decision_tree(df, features=None, target=MODEL_TARGET, max_depth=4,
                      test_size=0.2, random_state=42):
    """Regression tree predicting `target` from nutrition and body features"""
    features = features or MODEL_FEATURES
    X, y = _model_frame(df, features, target)
    X_train, X_test, y_train, y_test = train_test_split(
        X, y, test_size=test_size, random_state=random_state
    )

    model = DecisionTreeRegressor(max_depth=max_depth, random_state=random_state)
    model.fit(X_train, y_train)
    y_pred = model.predict(X_test)

    importances = pd.Series(model.feature_importances_, index=features).sort_values(ascending=False)
    return ModelResult(
        name='decision_tree',
        model=model,
        features=features,
        target=target,
        r2=float(r2_score(y_test, y_pred)),
        mse=float(mean_squared_error(y_test, y_pred)),
        details=importances,
    )


def fit_linear_regression(df, features=None, target=MODEL_TARGET):
    """Multiple linear regression of `target` on `features`, fitted on all complete rows"""
    features = features or MODEL_FEATURES
    X, y = _model_frame(df, features, target)

    model = LinearRegression()
    model.fit(X, y)
    y_pred = model.predict(X)

    coefficients = pd.Series(model.coef_, index=features)
    coefficients['intercept'] = model.intercept_
    return ModelResult(
        name='linear_regression',
        model=model,
        features=features,
        target=target,
        r2=float(r2_score(y, y_pred)),
        mse=float(mean_squared_error(y, y_pred)),
        details=coefficients,
    )


def summarize_by(df, column, value=MODEL_TARGET):
    """Mean / median / count of `value` per level of `column`, best first"""
    summary = (df.groupby(column, observed=True)[value]
                 .agg(['mean', 'median', 'std', 'count'])
                 .sort_values('mean', ascending=False))
    return summary


def rank_foods(df, value=MODEL_TARGET, min_sessions=1):
    """Rank assigned foods by mean `value`, with their nutrition profile"""
    summary = summarize_by(df, 'food_name', value)
    summary = summary[summary['count'] >= min_sessions]

    profile = (df.drop_duplicates('food_name')
                 .set_index('food_name')[['food_group', 'food_category', 'calories', 'protein_ratio']])
    ranked = summary.join(profile)
    ranked.insert(0, 'rank', range(1, len(ranked) + 1))
    return ranked
