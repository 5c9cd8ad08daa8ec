import logging
import os

import joblib
import pandas as pd

from fuelfit_analysis import (
    descriptive_statistics, workout_type_anova, pairwise_posthoc,
    nutrition_efficiency_correlation, fit_decision_tree, fit_linear_regression,
    summarize_by, rank_foods,
)
from fuelfit_config import FuelFitConfig
from fuelfit_exercise_data import load_exercise_data
from fuelfit_food_assignment import (
    FOOD_CATALOG, assign_foods, validate_candidate_lists, validate_category_membership,
)
from fuelfit_merge import merge_sessions_with_nutrition
from fuelfit_nutrition import NutritionFetcher, fetch_nutrition_table

logger = logging.getLogger(__name__)


class FuelFitReport:
    def __init__(self, config, fetcher=None, catalog=None):
        """Report over gym sessions enriched with pre-workout nutrition"""
        self.config = config
        # Fails fast on a missing API key, before anything is downloaded
        self.fetcher = fetcher or NutritionFetcher.from_config(config)
        self.catalog = catalog or FOOD_CATALOG
        self.sessions = None
        self.nutrition = None
        self.enriched = None
        self.results = {}

    # ==================== DATA ====================

    def load_sessions(self):
        print("📂 Loading gym exercise sessions...")
        self.sessions = load_exercise_data(self.config)
        print(f"✅ Sessions loaded: {self.sessions.shape}")
        return self.sessions

    def load_nutrition(self):
        print(f"\n🍎 Fetching nutrition facts for {len(self.catalog)} foods...")
        self.nutrition = fetch_nutrition_table(self.fetcher, self.catalog)
        print(f"✅ Nutrition table: {len(self.nutrition)} foods with calories")
        return self.nutrition

    def assign_and_merge(self):
        if self.sessions is None or self.nutrition is None:
            raise RuntimeError("Load sessions and nutrition before merging")

        validate_candidate_lists()
        validate_category_membership()

        assigned = assign_foods(self.sessions, seed=self.config.random_seed)
        self.enriched = merge_sessions_with_nutrition(assigned, self.nutrition)
        print(f"\n🔗 Enriched sessions: {len(self.enriched)} of {len(assigned)}")
        return self.enriched

    # ==================== ANALYSIS ====================

    def run_analyses(self):
        if self.enriched is None:
            raise RuntimeError("No enriched data; run assign_and_merge() first")

        df = self.enriched
        print("\n📊 DESCRIPTIVE STATISTICS")
        print("=" * 50)
        self.results['descriptive'] = descriptive_statistics(df)
        print(self.results['descriptive'].round(3))

        print("\n🧪 ONE-WAY ANOVA: efficiency by workout type")
        print("=" * 50)
        anova = workout_type_anova(df)
        self.results['anova'] = anova
        print(f"F = {anova.f_statistic:.3f}, p = {anova.p_value:.4f}, groups = {anova.groups}")

        self.results['posthoc'] = pairwise_posthoc(df)
        print("\nTukey HSD pairwise comparisons:")
        print(self.results['posthoc'].round(4).to_string(index=False))

        print("\n🔗 CORRELATION: nutrition vs efficiency")
        print("=" * 50)
        self.results['correlation'] = nutrition_efficiency_correlation(df)
        print(self.results['correlation'].round(2))

        print("\n🌳 DECISION TREE")
        print("=" * 50)
        seed = 42 if self.config.random_seed is None else self.config.random_seed
        tree = fit_decision_tree(df, random_state=seed)
        self.results['decision_tree'] = tree
        print(f"R² = {tree.r2:.3f}, MSE = {tree.mse:.5f}")
        print(tree.details.round(3))

        print("\n📈 LINEAR REGRESSION")
        print("=" * 50)
        linear = fit_linear_regression(df)
        self.results['linear_regression'] = linear
        print(f"R² = {linear.r2:.3f}, MSE = {linear.mse:.5f}")
        print(linear.details.round(5))

        print("\n🏆 RANKINGS")
        print("=" * 50)
        self.results['food_ranking'] = rank_foods(df)
        self.results['food_group_summary'] = summarize_by(df, 'food_group')
        self.results['food_category_summary'] = summarize_by(df, 'food_category')
        print(self.results['food_ranking'].head(10).round(3))
        print(self.results['food_group_summary'].round(3))
        print(self.results['food_category_summary'].round(3))

        return self.results

    # ==================== OUTPUT ====================

    def save_outputs(self):
        os.makedirs(self.config.output_dir, exist_ok=True)

        nutrition_path = os.path.join(self.config.output_dir, 'nutrition_table.csv')
        enriched_path = os.path.join(self.config.output_dir, 'enriched_sessions.csv')
        models_path = os.path.join(self.config.output_dir, 'fuelfit_models.pkl')

        self.nutrition.to_csv(nutrition_path, index=False)
        self.enriched.to_csv(enriched_path, index=False)

        models = {
            name: {'model': result.model, 'features': result.features,
                   'target': result.target, 'r2': result.r2, 'mse': result.mse}
            for name, result in self.results.items()
            if name in ('decision_tree', 'linear_regression')
        }
        joblib.dump(models, models_path)

        print(f"\n💾 Outputs saved to {self.config.output_dir}")
        return [nutrition_path, enriched_path, models_path]

    def run(self):
        self.load_sessions()
        self.load_nutrition()
        self.assign_and_merge()
        self.run_analyses()
        self.save_outputs()
        return self.results


def run_complete_pipeline(config=None):
    """Run the complete FuelFit report"""
    print("🚀 FUELFIT: PRE-WORKOUT NUTRITION vs WORKOUT EFFICIENCY")
    print("=" * 60)

    config = config or FuelFitConfig.from_env()
    report = FuelFitReport(config)
    report.run()

    print("\n🎉 FuelFit report complete!")
    return report


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
    pd.set_option('display.width', 160)
    run_complete_pipeline()
