from datetime import date

from wealthpath.models.records import (
    AssetBucket,
    FinancialRecordSet,
    Goal,
    IncomeStream,
    InvestmentHolding,
)
from wealthpath.models.scenario import ScenarioAssumptions

AS_OF = date(2025, 4, 1)


class FixedRates:
    """Rate provider returning one rate for every bucket and year."""

    def __init__(self, rate: float):
        self.rate = rate

    def rate_for(self, bucket, year):
        return self.rate


def scenario(**overrides) -> ScenarioAssumptions:
    values = {
        "currentAge": 35,
        "retirementAge": 60,
        "lifeExpectancy": 85,
        "startYear": AS_OF.year,
        "sipStepUpPercent": 0.0,
        "enableRateReduction": False,
    }
    values.update(overrides)
    return ScenarioAssumptions(**values)


def holding(name: str = "Index Fund", bucket: AssetBucket = AssetBucket.EQUITY_MF, value: float = 500000.0, **kwargs) -> InvestmentHolding:
    return InvestmentHolding(name=name, bucket=bucket, currentValue=value, **kwargs)


def records(**kwargs) -> FinancialRecordSet:
    kwargs.setdefault("ownerId", "user-1")
    return FinancialRecordSet(**kwargs)


def salary(monthly: float = 100000.0, increment: float = 7.0) -> IncomeStream:
    return IncomeStream(source="Salary", monthlyAmount=monthly, annualIncrement=increment)


def goal(name: str = "Vacation", amount: float = 200000.0, year: int = 2025, **kwargs) -> Goal:
    return Goal(name=name, targetAmount=amount, targetYear=year, **kwargs)
