import logging
import time
from dataclasses import dataclass, asdict, fields
from typing import Dict, Optional

import pandas as pd
import requests

from fuelfit_config import MissingCredentialError, USDA_SEARCH_URL

logger = logging.getLogger(__name__)

# Exact FoodData Central nutrient names -> NutritionRecord field
NUTRIENT_FIELDS = {
    'Energy': 'calories',
    'Protein': 'protein_g',
    'Total lipid (fat)': 'fat_g',
    'Carbohydrate, by difference': 'carbs_g',
    'Fiber, total dietary': 'fiber_g',
}


@dataclass
class NutritionRecord:
    """Nutrition facts for one catalog food. None marks an unresolved value."""
    food_name: str
    calories: Optional[float] = None
    protein_g: Optional[float] = None
    fat_g: Optional[float] = None
    carbs_g: Optional[float] = None
    fiber_g: Optional[float] = None
    serving_size: Optional[float] = None
    serving_unit: Optional[str] = None

    @classmethod
    def missing(cls, food_name):
        return cls(food_name=food_name)

    def to_dict(self):
        return asdict(self)


RECORD_COLUMNS = [f.name for f in fields(NutritionRecord)]


def _to_float(value):
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _first_match(payload):
    """First entry of a search response's `foods`, None when there is none"""
    if not isinstance(payload, dict):
        raise ValueError(f"unexpected response of type {type(payload).__name__}")
    matches = payload.get('foods') or []
    if not isinstance(matches, list):
        raise ValueError("'foods' is not a list")
    if not matches:
        return None
    if not isinstance(matches[0], dict):
        raise ValueError("malformed food match")
    return matches[0]


def extract_nutrients(food_name, match):
    """
    Build a NutritionRecord from a single search match.

    Nutrients are assigned through NUTRIENT_FIELDS; names outside it are
    ignored. When a name repeats, the last occurrence wins. A malformed
    nutrient list raises ValueError.
    """
    record = NutritionRecord(
        food_name=food_name,
        serving_size=_to_float(match.get('servingSize')),
        serving_unit=match.get('servingSizeUnit'),
    )

    nutrients = match.get('foodNutrients') or []
    if not isinstance(nutrients, list):
        raise ValueError("'foodNutrients' is not a list")

    for nutrient in nutrients:
        if not isinstance(nutrient, dict):
            raise ValueError(f"malformed nutrient entry {nutrient!r}")
        field_name = NUTRIENT_FIELDS.get(nutrient.get('nutrientName'))
        if field_name is not None:
            setattr(record, field_name, _to_float(nutrient.get('value')))

    return record


# ==================== RATE LIMITING ====================

class TokenBucket:
    """Blocking token bucket; `take()` waits until a token is available"""

    def __init__(self, capacity, refill_per_s, clock=time.monotonic, sleep=time.sleep):
        self.cap = float(capacity)
        self.refill = float(refill_per_s)
        self.tokens = float(capacity)
        self.clock = clock
        self.sleep = sleep
        self.ts = clock()

    def _refill(self):
        now = self.clock()
        dt = max(0.0, now - self.ts)
        self.ts = now
        self.tokens = min(self.cap, self.tokens + dt * self.refill)

    def take(self, cost=1):
        self._refill()
        while self.tokens < cost:
            wait = (cost - self.tokens) / self.refill
            logger.debug("Rate limit reached, waiting %.2fs", wait)
            self.sleep(wait)
            self._refill()
        self.tokens -= cost


class RateLimiter:
    def __init__(self, bucket=None):
        self.bucket = bucket

    @classmethod
    def per_minute(cls, requests_per_minute, **kwargs):
        if not requests_per_minute or requests_per_minute <= 0:
            return cls(None)
        bucket = TokenBucket(requests_per_minute, requests_per_minute / 60.0, **kwargs)
        return cls(bucket)

    def wait(self):
        if self.bucket is not None:
            self.bucket.take()


# ==================== FETCHER ====================

class NutritionFetcher:
    """Looks up one food at a time against the FoodData Central search endpoint"""

    def __init__(self, api_key, api_url=USDA_SEARCH_URL, timeout=10.0,
                 rate_limiter=None, session=None):
        if not api_key:
            raise MissingCredentialError("A nutrition API key is required")
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout
        self.rate_limiter = rate_limiter or RateLimiter(None)
        self.session = session or requests.Session()
        # Run-scoped memo, never persisted
        self._cache: Dict[str, NutritionRecord] = {}

    @classmethod
    def from_config(cls, config, session=None):
        return cls(
            api_key=config.require_api_key(),
            api_url=config.api_url,
            timeout=config.request_timeout,
            rate_limiter=RateLimiter.per_minute(config.requests_per_minute),
            session=session,
        )

    def _search(self, food_name):
        self.rate_limiter.wait()
        response = self.session.get(
            self.api_url,
            params={'api_key': self.api_key, 'query': food_name, 'pageSize': 1},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def fetch(self, food_name):
        """Return one NutritionRecord for `food_name`; failures give an all-missing record"""
        if not food_name or not food_name.strip():
            raise ValueError("food_name must be a non-empty string")

        if food_name in self._cache:
            return self._cache[food_name]

        try:
            payload = self._search(food_name)
            match = _first_match(payload)
            if match is None:
                logger.warning("No nutrition match for %r", food_name)
                record = NutritionRecord.missing(food_name)
            else:
                record = extract_nutrients(food_name, match)
        except (requests.RequestException, ValueError) as e:
            logger.warning("Nutrition lookup failed for %r: %s", food_name, e)
            record = NutritionRecord.missing(food_name)

        self._cache[food_name] = record
        return record


# ==================== NUTRITION TABLE ====================

def classify_food_group(protein_ratio, carbs_g, fat_g):
    """High protein beats high carb beats high fat; all comparisons are strict"""
    if pd.notna(protein_ratio) and protein_ratio > 0.4:
        return 'high protein'
    if pd.notna(carbs_g) and carbs_g > 50:
        return 'high carb'
    if pd.notna(fat_g) and fat_g > 30:
        return 'high fat'
    return 'balanced'


def add_nutrition_features(df):
    df = df.copy()

    macro_total = df['protein_g'] + df['fat_g'] + df['carbs_g']
    df['protein_ratio'] = df['protein_g'] / macro_total.where(macro_total != 0)

    # Search results report nutrients per 100 g; serving fields are kept as data only
    df['calorie_density'] = df['calories']

    df['food_group'] = [
        classify_food_group(p, c, f)
        for p, c, f in zip(df['protein_ratio'], df['carbs_g'], df['fat_g'])
    ]
    return df


def build_nutrition_table(records):
    """
    Turn raw fetch results into the final nutrition table.

    Rows without calories are dropped, then duplicates by food name
    (first occurrence kept), then protein ratio, calorie density and
    food group are derived.
    """
    df = pd.DataFrame(records, columns=RECORD_COLUMNS)
    numeric = ['calories', 'protein_g', 'fat_g', 'carbs_g', 'fiber_g', 'serving_size']
    df[numeric] = df[numeric].apply(pd.to_numeric, errors='coerce')

    before = len(df)
    df = df.dropna(subset=['calories'])
    df = df.drop_duplicates(subset='food_name', keep='first').reset_index(drop=True)
    logger.info("Nutrition table: %d of %d foods resolved calories", len(df), before)

    return add_nutrition_features(df)


def fetch_nutrition_table(fetcher, catalog):
    """Fetch every catalog food sequentially, one request per name"""
    records = []
    for i, food_name in enumerate(catalog, 1):
        logger.info("[%d/%d] Fetching nutrition for %s", i, len(catalog), food_name)
        records.append(fetcher.fetch(food_name).to_dict())

    return build_nutrition_table(records)
