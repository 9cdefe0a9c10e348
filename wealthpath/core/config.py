import logging
from typing import Dict, List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "Wealthpath Engine"
    LOG_LEVEL: str = "INFO"

    # Scenario defaults (used when neither an override nor a stored scenario is supplied)
    DEFAULT_CURRENT_AGE: int = 35
    DEFAULT_RETIREMENT_AGE: int = 60
    DEFAULT_LIFE_EXPECTANCY: int = 85
    DEFAULT_INFLATION_RATE: float = 6.0
    DEFAULT_SIP_STEP_UP: float = 10.0
    DEFAULT_CORPUS_RETURN_RATE: float = 10.0
    DEFAULT_WITHDRAWAL_RATE: float = 4.0
    DEFAULT_INCOME_STRATEGY: str = "SUSTAINABLE"

    # Rate reduction for small-savings style instruments
    DEFAULT_RATE_REDUCTION_ENABLED: bool = True
    DEFAULT_RATE_REDUCTION_PERCENT: float = 0.5
    DEFAULT_RATE_REDUCTION_YEARS: int = 5

    # Annual return assumptions per asset bucket (%)
    DEFAULT_RETURNS: Dict[str, float] = {
        "EQUITY_MF": 12.0,
        "DEBT_MF": 7.0,
        "FD": 7.0,
        "RD": 6.5,
        "PPF": 7.1,
        "EPF": 8.15,
        "NPS": 10.0,
        "REAL_ESTATE": 7.0,
        "GOLD": 8.0,
        "CRYPTO": 15.0,
        "CASH": 3.5,
        "OTHER": 7.0,
    }

    # Annual volatility (standard deviation, %) used to perturb returns in Monte Carlo trials
    RETURN_VOLATILITY: Dict[str, float] = {
        "EQUITY_MF": 16.0,
        "DEBT_MF": 4.0,
        "FD": 0.5,
        "RD": 0.5,
        "PPF": 0.5,
        "EPF": 0.5,
        "NPS": 10.0,
        "REAL_ESTATE": 8.0,
        "GOLD": 14.0,
        "CRYPTO": 60.0,
        "CASH": 0.5,
        "OTHER": 8.0,
    }

    # Buckets reported in net worth but never drawn for retirement spending
    ILLIQUID_BUCKETS: List[str] = ["REAL_ESTATE", "GOLD", "CRYPTO"]

    # Projection / simulation request defaults
    DEFAULT_PROJECTION_YEARS: int = 10
    MC_DEFAULT_SIMULATIONS: int = 1000
    MC_DEFAULT_YEARS: int = 10
    MC_WORKERS: int = 1

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level '{v}'")
        return level

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="WEALTHPATH_",
        case_sensitive=True,
        extra="ignore"
    )

settings = Settings()


def configure_logging(level: Optional[str] = None) -> None:
    """Attach a basic handler to the package logger. Call from the host application, not on import."""
    logger = logging.getLogger("wealthpath")
    logger.setLevel(level or settings.LOG_LEVEL)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        logger.addHandler(handler)
