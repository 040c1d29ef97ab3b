import os
from functools import lru_cache
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _int_env(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _float_env(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


class Settings:
    """Application settings loaded from environment variables with defaults.

    Sampling caps bound how many records a single analytics call pulls from
    the store, and the limit/window maxima are the values caller supplied
    parameters get clamped to. Both can be tuned per deployment through the
    environment without touching the analytics code.
    """

    # Project metadata
    PROJECT_NAME = "Market Analytics"
    PROJECT_VERSION = "0.1.0"

    # Database Settings
    DB_HOST = os.getenv("DB_HOST", "localhost")
    DB_PORT = os.getenv("DB_PORT", "3306")
    DB_NAME = os.getenv("DB_NAME", "skyblock")
    DB_USER = os.getenv("DB_USER", "user")
    DB_PASS = os.getenv("DB_PASSWORD", "password")
    DATABASE_URL_OVERRIDE = os.getenv("DATABASE_URL")

    # Sample sizes pulled from the store per call
    FLIP_SAMPLE_SIZE = _int_env("FLIP_SAMPLE_SIZE", 5000)
    SNIPE_SAMPLE_SIZE = _int_env("SNIPE_SAMPLE_SIZE", 500)
    UNDERPRICED_SAMPLE_SIZE = _int_env("UNDERPRICED_SAMPLE_SIZE", 100)
    CURRENT_PRICE_BIN_SAMPLE = _int_env("CURRENT_PRICE_BIN_SAMPLE", 10)

    # Thresholds
    SNIPE_MIN_DISCOUNT = _float_env("SNIPE_MIN_DISCOUNT", 15.0)

    # Upper bounds for caller supplied parameters
    MAX_FLIP_LIMIT = _int_env("MAX_FLIP_LIMIT", 100)
    MAX_SNIPE_LIMIT = _int_env("MAX_SNIPE_LIMIT", 50)
    MAX_SNIPE_AGE_MINUTES = _int_env("MAX_SNIPE_AGE_MINUTES", 30)
    MAX_TREND_LIMIT = _int_env("MAX_TREND_LIMIT", 100)
    MAX_MARGIN_LIMIT = _int_env("MAX_MARGIN_LIMIT", 100)
    MAX_HISTORY_DAYS = _int_env("MAX_HISTORY_DAYS", 30)
    MAX_BAZAAR_HISTORY_HOURS = _int_env("MAX_BAZAAR_HISTORY_HOURS", 168)
    MAX_COMPARE_TAGS = _int_env("MAX_COMPARE_TAGS", 10)

    @property
    def DATABASE_URL(self) -> str:
        """Constructs a SQLAlchemy connection string, MySQL unless overridden."""
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        return f"mysql+pymysql://{self.DB_USER}:{self.DB_PASS}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()


# For direct access in other modules
settings = get_settings()
