from typing import Dict, List

from pydantic import BaseModel

from wealthpath.core.config import settings
from wealthpath.models.records import AssetBucket, HealthInsuranceType, InsurancePolicy, InsuranceType


class WithdrawalPhase(BaseModel):
    phase: int
    name: str
    description: str
    buckets: List[AssetBucket]


class FinancialAssumptionsService:
    """
    Service to provide financial assumptions such as default returns, volatility and
    the drawdown ordering, plus the time-value-of-money helpers the projection uses.
    These are currently static (overridable through settings).
    """

    # Order in which liquid corpus buckets are drawn for spending
    ALLOCATION_ORDER = [
        AssetBucket.CASH,
        AssetBucket.FD,
        AssetBucket.RD,
        AssetBucket.DEBT_MF,
        AssetBucket.EQUITY_MF,
        AssetBucket.PPF,
        AssetBucket.EPF,
        AssetBucket.NPS,
        AssetBucket.OTHER,
    ]

    # Tax-aware drawdown phases
    WITHDRAWAL_PHASES = [
        WithdrawalPhase(
            phase=1,
            name="Taxable & Liquid",
            description="Use first: already taxed or low-return liquid money",
            buckets=[AssetBucket.CASH, AssetBucket.FD, AssetBucket.RD, AssetBucket.CRYPTO],
        ),
        WithdrawalPhase(
            phase=2,
            name="Tax-Deferred",
            description="Use next: market-linked and retirement accounts",
            buckets=[AssetBucket.EPF, AssetBucket.NPS, AssetBucket.EQUITY_MF, AssetBucket.DEBT_MF, AssetBucket.OTHER],
        ),
        WithdrawalPhase(
            phase=3,
            name="Tax-Free & Long-Term",
            description="Use last: tax-free compounding and real assets",
            buckets=[AssetBucket.PPF, AssetBucket.GOLD, AssetBucket.REAL_ESTATE],
        ),
    ]

    def get_default_returns(self) -> Dict[AssetBucket, float]:
        return {AssetBucket(k): v for k, v in settings.DEFAULT_RETURNS.items()}

    def get_volatility(self) -> Dict[AssetBucket, float]:
        return {AssetBucket(k): v for k, v in settings.RETURN_VOLATILITY.items()}

    def get_illiquid_buckets(self) -> List[AssetBucket]:
        return [AssetBucket(b) for b in settings.ILLIQUID_BUCKETS]

    def phase_for(self, bucket: AssetBucket) -> WithdrawalPhase:
        for phase in self.WITHDRAWAL_PHASES:
            if bucket in phase.buckets:
                return phase
        return self.WITHDRAWAL_PHASES[1]

    # Time value of money

    @staticmethod
    def future_value(principal: float, annual_rate: float, years: float) -> float:
        """FV = P * (1 + r)^n"""
        return principal * (1 + annual_rate / 100) ** years

    @staticmethod
    def sip_future_value(monthly: float, annual_rate: float, months: int) -> float:
        """
        Future value of a monthly SIP paid at the start of each month.
        FV = PMT * ((1+i)^n - 1) / i * (1+i)

        At a 0% rate this is simply the sum of installments.
        """
        if monthly <= 0 or months <= 0:
            return 0.0
        i = annual_rate / 100 / 12
        if i == 0:
            return monthly * months
        return monthly * ((1 + i) ** months - 1) / i * (1 + i)

    @staticmethod
    def step_up_sip_future_value(monthly: float, annual_rate: float, step_up: float, years: int) -> float:
        """SIP raised by `step_up`% every year; each year's installments compound to the end of the term."""
        total = 0.0
        current = monthly
        for year in range(years):
            year_value = FinancialAssumptionsService.sip_future_value(current, annual_rate, 12)
            total += FinancialAssumptionsService.future_value(year_value, annual_rate, years - year - 1)
            current *= (1 + step_up / 100)
        return total

    @staticmethod
    def cagr(initial: float, final: float, years: float) -> float:
        if initial <= 0 or years <= 0:
            return 0.0
        return ((final / initial) ** (1 / years) - 1) * 100

    @staticmethod
    def absolute_return(invested: float, current: float) -> float:
        if invested <= 0:
            return 0.0
        return (current - invested) / invested * 100

    # Insurance rules

    @staticmethod
    def policy_continues_after_retirement(policy: InsurancePolicy) -> bool:
        """
        Whether premiums on a policy keep being paid once the holder retires.

        An explicit flag wins. Otherwise term cover and personal health cover continue,
        employer group health cover ends with employment, and savings-type policies
        (ULIP, endowment, money-back) stop on their own schedule.
        """
        if policy.continuesAfterRetirement is not None:
            return policy.continuesAfterRetirement

        if policy.type == InsuranceType.TERM_LIFE:
            return True
        elif policy.type == InsuranceType.HEALTH:
            return policy.healthType != HealthInsuranceType.GROUP
        # ULIP, ENDOWMENT, MONEY_BACK, ANNUITY, VEHICLE, OTHER
        return False

    @staticmethod
    def premium_due(policy: InsurancePolicy, year: int) -> float:
        """Annual premium payable in a calendar year (zero after the premium end year or maturity)."""
        if policy.premium is None:
            return 0.0
        if policy.premium.premiumEndYear is not None and year > policy.premium.premiumEndYear:
            return 0.0
        if policy.maturityDate is not None and year > policy.maturityDate.year:
            return 0.0
        if policy.startDate is not None and year < policy.startDate.year:
            return 0.0
        if policy.premium.annualAmount == 0 and policy.startDate is not None and year == policy.startDate.year:
            # single premium policies pay once, in the start year
            return policy.premium.amount
        return policy.premium.annualAmount
