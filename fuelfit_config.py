import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

USDA_SEARCH_URL = "https://api.nal.usda.gov/fdc/v1/foods/search"
GYM_DATASET = "valakhorasani/gym-members-exercise-dataset"


class MissingCredentialError(RuntimeError):
    """Raised when the nutrition API key is not configured"""


@dataclass
class FuelFitConfig:
    """Configuration for the FuelFit nutrition / efficiency report"""
    api_key: Optional[str] = None
    api_url: str = USDA_SEARCH_URL
    request_timeout: float = 10.0
    requests_per_minute: int = 60  # 0 disables throttling

    # Exercise data source
    exercise_dataset: str = GYM_DATASET
    exercise_csv: Optional[str] = None

    random_seed: Optional[int] = 42
    output_dir: str = "fuelfit_output"

    @classmethod
    def from_env(cls, env_file=None):
        """Build a config from the process environment (and an optional .env file)"""
        load_dotenv(env_file)

        seed = os.getenv("FUELFIT_SEED")
        rpm = os.getenv("FUELFIT_REQUESTS_PER_MINUTE")

        return cls(
            api_key=os.getenv("USDA_API_KEY") or None,
            exercise_csv=os.getenv("FUELFIT_EXERCISE_CSV") or None,
            random_seed=int(seed) if seed else 42,
            output_dir=os.getenv("FUELFIT_OUTPUT_DIR", "fuelfit_output"),
            requests_per_minute=int(rpm) if rpm else 60,
        )

    def require_api_key(self):
        if not self.api_key:
            raise MissingCredentialError(
                "USDA_API_KEY is not set. Export it or add it to a .env file "
                "before fetching nutrition data."
            )
        return self.api_key
