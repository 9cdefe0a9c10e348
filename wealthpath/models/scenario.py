from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from wealthpath.core.config import settings
from wealthpath.core.exceptions import ScenarioValidationError
from .records import AssetBucket


class IncomeStrategy(str, Enum):
    SIMPLE_DEPLETION = "SIMPLE_DEPLETION"
    SAFE_4_PERCENT = "SAFE_4_PERCENT"
    SUSTAINABLE = "SUSTAINABLE"


class LumpsumFrequency(str, Enum):
    YEARLY = "YEARLY"
    MONTHLY = "MONTHLY"


DEFAULT_REDUCTION_BUCKETS = (AssetBucket.PPF, AssetBucket.EPF, AssetBucket.FD, AssetBucket.RD)

# Flat per-instrument return fields accepted from older scenario payloads
LEGACY_RETURN_FIELDS = {
    "epfReturn": AssetBucket.EPF,
    "ppfReturn": AssetBucket.PPF,
    "mfReturn": AssetBucket.EQUITY_MF,
    "npsReturn": AssetBucket.NPS,
}


class PeriodReturn(BaseModel):
    model_config = ConfigDict(frozen=True)

    fromYear: int
    toYear: int  # inclusive
    rate: float

    def covers(self, year: int) -> bool:
        return self.fromYear <= year <= self.toYear


class ScenarioAssumptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = "Default"

    # Timeline
    currentAge: int = Field(default_factory=lambda: settings.DEFAULT_CURRENT_AGE, ge=0, le=120)
    retirementAge: int = Field(default_factory=lambda: settings.DEFAULT_RETIREMENT_AGE, ge=0, le=120)
    lifeExpectancy: int = Field(default_factory=lambda: settings.DEFAULT_LIFE_EXPECTANCY, ge=0, le=130)
    startYear: Optional[int] = None  # calendar year of projection year 0, resolved from the as-of date when missing

    # Returns (%)
    returns: Dict[AssetBucket, float] = Field(default_factory=dict)
    periodReturns: Dict[AssetBucket, List[PeriodReturn]] = Field(default_factory=dict)
    effectiveFromYear: int = Field(default=1, ge=0)

    # Growth assumptions (%)
    inflationRate: float = Field(default_factory=lambda: settings.DEFAULT_INFLATION_RATE, ge=0, le=50)
    sipStepUpPercent: float = Field(default_factory=lambda: settings.DEFAULT_SIP_STEP_UP, ge=0, le=100)
    lumpsumAmount: float = Field(default=0.0, ge=0)
    lumpsumFrequency: LumpsumFrequency = LumpsumFrequency.YEARLY

    # Retirement income
    incomeStrategy: IncomeStrategy = Field(default_factory=lambda: IncomeStrategy(settings.DEFAULT_INCOME_STRATEGY))
    corpusReturnRate: float = Field(default_factory=lambda: settings.DEFAULT_CORPUS_RETURN_RATE, ge=0, le=50)
    withdrawalRate: float = Field(default_factory=lambda: settings.DEFAULT_WITHDRAWAL_RATE, gt=0, le=50)

    # Rate reduction
    enableRateReduction: bool = Field(default_factory=lambda: settings.DEFAULT_RATE_REDUCTION_ENABLED)
    rateReductionPercent: float = Field(default_factory=lambda: settings.DEFAULT_RATE_REDUCTION_PERCENT, ge=0)
    rateReductionYears: int = Field(default_factory=lambda: settings.DEFAULT_RATE_REDUCTION_YEARS, ge=1)
    rateReductionBuckets: List[AssetBucket] = Field(default_factory=lambda: list(DEFAULT_REDUCTION_BUCKETS))
    rateFloor: float = 0.0

    # Cash flow routing
    reinvestmentBucket: AssetBucket = AssetBucket.DEBT_MF
    surplusInvestmentPercent: float = Field(default=0.0, ge=0, le=100)

    @model_validator(mode="before")
    @classmethod
    def normalize_legacy_aliases(cls, data: Any) -> Any:
        """Maps older flat field names onto the canonical ones. Canonical values win when both are present."""
        if not isinstance(data, dict):
            return data
        data = dict(data)

        inflation = data.pop("inflation", None)
        if inflation is not None and data.get("inflationRate") is None:
            data["inflationRate"] = inflation

        step_up = data.pop("sipStepup", None)
        if step_up is not None and data.get("sipStepUpPercent") is None:
            data["sipStepUpPercent"] = step_up

        returns = dict(data.get("returns") or {})
        for legacy_key, bucket in LEGACY_RETURN_FIELDS.items():
            value = data.pop(legacy_key, None)
            if value is None:
                continue
            if bucket not in returns and bucket.value not in returns:
                returns[bucket] = value
        if returns:
            data["returns"] = returns

        if isinstance(data.get("lumpsumFrequency"), str):
            data["lumpsumFrequency"] = data["lumpsumFrequency"].upper()

        return data

    # Derived timeline

    @property
    def yearsToRetirement(self) -> int:
        return self.retirementAge - self.currentAge

    @property
    def totalYears(self) -> int:
        return self.lifeExpectancy - self.currentAge

    @property
    def retirementYears(self) -> int:
        return self.lifeExpectancy - self.retirementAge

    @property
    def yearlyLumpsum(self) -> float:
        if self.lumpsumFrequency == LumpsumFrequency.MONTHLY:
            return self.lumpsumAmount * 12
        return self.lumpsumAmount

    def validate_timeline(self) -> None:
        if self.retirementAge <= self.currentAge:
            raise ScenarioValidationError(
                f"Retirement age ({self.retirementAge}) must be greater than current age ({self.currentAge})"
            )
        if self.lifeExpectancy <= self.retirementAge:
            raise ScenarioValidationError(
                f"Life expectancy ({self.lifeExpectancy}) must be greater than retirement age ({self.retirementAge})"
            )
