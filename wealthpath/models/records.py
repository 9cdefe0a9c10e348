import logging
from datetime import date
from enum import Enum
from typing import Any, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

logger = logging.getLogger(__name__)


class AssetBucket(str, Enum):
    EQUITY_MF = "EQUITY_MF"
    DEBT_MF = "DEBT_MF"
    FD = "FD"
    RD = "RD"
    PPF = "PPF"
    EPF = "EPF"
    NPS = "NPS"
    REAL_ESTATE = "REAL_ESTATE"
    GOLD = "GOLD"
    CRYPTO = "CRYPTO"
    CASH = "CASH"
    OTHER = "OTHER"


class InsuranceType(str, Enum):
    TERM_LIFE = "TERM_LIFE"
    HEALTH = "HEALTH"
    ULIP = "ULIP"
    ENDOWMENT = "ENDOWMENT"
    MONEY_BACK = "MONEY_BACK"
    ANNUITY = "ANNUITY"
    VEHICLE = "VEHICLE"
    OTHER = "OTHER"


class HealthInsuranceType(str, Enum):
    GROUP = "GROUP"
    PERSONAL = "PERSONAL"
    FAMILY_FLOATER = "FAMILY_FLOATER"


class Frequency(str, Enum):
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    HALF_YEARLY = "HALF_YEARLY"
    YEARLY = "YEARLY"
    SINGLE = "SINGLE"
    ONE_TIME = "ONE_TIME"


PAYMENTS_PER_YEAR = {
    Frequency.MONTHLY: 12,
    Frequency.QUARTERLY: 4,
    Frequency.HALF_YEARLY: 2,
    Frequency.YEARLY: 1,
    Frequency.SINGLE: 0,
    Frequency.ONE_TIME: 0,
}


class Priority(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class Relationship(str, Enum):
    SELF = "SELF"
    SPOUSE = "SPOUSE"
    CHILD = "CHILD"
    PARENT = "PARENT"
    SIBLING = "SIBLING"
    OTHER = "OTHER"


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, use_enum_values=False)


# Income

class IncomeStream(FrozenModel):
    source: str
    monthlyAmount: float = Field(ge=0)
    annualIncrement: float = Field(default=0.0, ge=0, le=100)
    isActive: bool = True
    startDate: Optional[date] = None


# Investments

class InvestmentHolding(FrozenModel):
    name: str
    bucket: AssetBucket = AssetBucket.OTHER
    currentValue: Optional[float] = Field(default=None, ge=0)
    investedAmount: Optional[float] = Field(default=None, ge=0)
    monthlySip: Optional[float] = Field(default=None, ge=0)
    sipDay: Optional[int] = Field(default=None, ge=1, le=28)
    yearlyContribution: Optional[float] = Field(default=None, ge=0)
    expectedReturn: Optional[float] = Field(default=None, ge=-50, le=100)
    maturityDate: Optional[date] = None
    isEmergencyFund: bool = False

    @property
    def value(self) -> float:
        if self.currentValue is not None:
            return self.currentValue
        return self.investedAmount or 0.0


# Loans

class Loan(FrozenModel):
    name: str
    type: str = "OTHER"  # HOME, VEHICLE, PERSONAL, EDUCATION, CREDIT_CARD, OTHER
    originalAmount: float = Field(default=0.0, ge=0)
    outstandingAmount: float = Field(ge=0)
    emi: float = Field(ge=0)
    interestRate: float = Field(ge=0, le=50)
    tenureMonths: Optional[int] = Field(default=None, ge=1, le=600)
    remainingMonths: int = Field(ge=0)
    startDate: Optional[date] = None
    moratoriumMonths: int = Field(default=0, ge=0)


# Insurance

class PremiumSchedule(FrozenModel):
    amount: float = Field(default=0.0, ge=0)  # per installment
    frequency: Frequency = Frequency.YEARLY
    renewalMonth: Optional[int] = Field(default=None, ge=1, le=12)
    premiumEndYear: Optional[int] = None

    @property
    def annualAmount(self) -> float:
        return self.amount * PAYMENTS_PER_YEAR[self.frequency]


class MoneyBackPayout(FrozenModel):
    policyYear: int
    percentage: Optional[float] = None
    fixedAmount: Optional[float] = None
    includesBonus: bool = False
    description: Optional[str] = None

    def calculate_payout(self, sum_assured: float, bonus_accrued: float) -> float:
        """
        Percentage of sum assured takes precedence over a fixed amount.
        The bonus share is only added for percentage-based rules.
        """
        if self.percentage is not None:
            amount = (sum_assured or 0.0) * self.percentage / 100
            if self.includesBonus and bonus_accrued:
                amount += bonus_accrued * self.percentage / 100
            return amount
        if self.fixedAmount is not None:
            return self.fixedAmount
        return 0.0


class AnnuityTerms(FrozenModel):
    startYear: int
    monthlyAmount: float = Field(ge=0)
    growthRate: float = 0.0


def _parse_legacy_years(raw: str) -> list:
    years = []
    for token in str(raw).split(","):
        token = token.strip()
        if not token:
            continue
        try:
            years.append(int(token))
        except ValueError:
            logger.warning(f"Skipping malformed money-back year '{token}'")
    return years


class InsurancePolicy(FrozenModel):
    policyName: str = "Policy"
    type: InsuranceType = InsuranceType.OTHER
    healthType: Optional[HealthInsuranceType] = None
    sumAssured: float = Field(default=0.0, ge=0)
    premium: Optional[PremiumSchedule] = None
    continuesAfterRetirement: Optional[bool] = None
    moneyBackPayouts: Tuple[MoneyBackPayout, ...] = ()
    bonusAccrued: float = Field(default=0.0, ge=0)
    annuity: Optional[AnnuityTerms] = None
    fundValue: Optional[float] = Field(default=None, ge=0)
    maturityBenefit: Optional[float] = Field(default=None, ge=0)
    startDate: Optional[date] = None
    maturityDate: Optional[date] = None

    @model_validator(mode="before")
    @classmethod
    def normalize_legacy_fields(cls, data: Any) -> Any:
        """
        Converts the legacy flat money-back and annuity fields into the structured form.

        Legacy payouts ("5,10,15" + percent or amount) are only used when no structured
        list was supplied. The legacy keys are dropped so the model only carries the
        canonical representation.
        """
        if not isinstance(data, dict):
            return data
        data = dict(data)

        legacy_years = data.pop("moneyBackYears", None)
        legacy_percent = data.pop("moneyBackPercent", None)
        legacy_amount = data.pop("moneyBackAmount", None)
        if not data.get("moneyBackPayouts") and legacy_years:
            data["moneyBackPayouts"] = [
                {"policyYear": y, "percentage": legacy_percent, "fixedAmount": legacy_amount}
                for y in _parse_legacy_years(legacy_years)
            ]

        is_annuity = data.pop("isAnnuityPolicy", None)
        start_year = data.pop("annuityStartYear", None)
        monthly = data.pop("monthlyAnnuityAmount", None)
        growth = data.pop("annuityGrowthRate", None)
        if data.get("annuity") is None and (is_annuity or start_year is not None) and start_year is not None and monthly is not None:
            data["annuity"] = {"startYear": start_year, "monthlyAmount": monthly, "growthRate": growth or 0.0}

        return data

    @property
    def annualPremium(self) -> float:
        return self.premium.annualAmount if self.premium else 0.0


# Family

class FamilyMember(FrozenModel):
    name: str
    relationship: Relationship = Relationship.OTHER
    dateOfBirth: Optional[date] = None
    isDependent: bool = False
    dependencyEndAge: Optional[int] = None

    def age_in(self, year: int) -> Optional[int]:
        if self.dateOfBirth is None:
            return None
        return year - self.dateOfBirth.year

    def is_dependent_in(self, year: int) -> bool:
        if not self.isDependent:
            return False
        age = self.age_in(year)
        if age is None or self.dependencyEndAge is None:
            return True
        return age <= self.dependencyEndAge


# Goals

class Goal(FrozenModel):
    name: str
    targetAmount: Optional[float] = Field(default=None, ge=0)  # in today's value
    targetYear: Optional[int] = None
    priority: Priority = Priority.MEDIUM
    isRecurring: Optional[bool] = None
    recurrenceInterval: Optional[int] = Field(default=None, ge=1)
    recurrenceEndYear: Optional[int] = None
    adjustForInflation: Optional[bool] = None
    customInflationRate: Optional[float] = None


# Expenses

class Expense(FrozenModel):
    name: str
    amount: float = Field(ge=0)
    frequency: Frequency = Frequency.MONTHLY
    isTimeBound: bool = False
    endYear: Optional[int] = None
    continuesAfterRetirement: Optional[bool] = None

    @property
    def monthlyEquivalent(self) -> float:
        per_year = PAYMENTS_PER_YEAR[self.frequency]
        return self.amount * per_year / 12

    def is_active_in(self, year: int) -> bool:
        if self.isTimeBound and self.endYear is not None:
            return year <= self.endYear
        return True

    def continues_after(self, retirement_year: int) -> bool:
        if self.continuesAfterRetirement is not None:
            return self.continuesAfterRetirement
        return self.is_active_in(retirement_year)


# Snapshot

class FinancialRecordSet(FrozenModel):
    """Read-only view of one user's records, already scoped and authorized by the caller."""
    ownerId: Optional[str] = None
    incomes: Tuple[IncomeStream, ...] = ()
    holdings: Tuple[InvestmentHolding, ...] = ()
    loans: Tuple[Loan, ...] = ()
    policies: Tuple[InsurancePolicy, ...] = ()
    familyMembers: Tuple[FamilyMember, ...] = ()
    goals: Tuple[Goal, ...] = ()
    expenses: Tuple[Expense, ...] = ()
    defaultScenario: Optional["ScenarioAssumptions"] = None

    def holdings_in(self, bucket: AssetBucket, include_emergency: bool = True):
        return [
            h for h in self.holdings
            if h.bucket == bucket and (include_emergency or not h.isEmergencyFund)
        ]


from .scenario import ScenarioAssumptions  # noqa: E402

FinancialRecordSet.model_rebuild()
