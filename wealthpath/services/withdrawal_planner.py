import logging
from typing import Dict, List, Optional, Tuple

from wealthpath.models.records import AssetBucket, InvestmentHolding
from wealthpath.models.scenario import IncomeStrategy
from wealthpath.services.financial_assumptions_service import FinancialAssumptionsService

logger = logging.getLogger(__name__)


class WithdrawalStrategyPlanner:
    """
    Decides how much to draw from the corpus each retirement year and from which buckets.

    SIMPLE_DEPLETION pays the inflation-adjusted need (or spreads the corpus evenly over the
    remaining years when no need is known). SAFE_4_PERCENT pays a fixed share of the corpus
    at retirement, raised with inflation, whatever balance remains. SUSTAINABLE pays at most what the corpus earns.
    """

    def __init__(
        self,
        strategy: IncomeStrategy,
        inflation_rate: float = 6.0,
        withdrawal_rate: float = 4.0,
        corpus_return_rate: float = 10.0,
        assumptions: Optional[FinancialAssumptionsService] = None,
    ):
        self.strategy = strategy
        self.inflation_rate = inflation_rate
        self.withdrawal_rate = withdrawal_rate
        self.corpus_return_rate = corpus_return_rate
        self.assumptions = assumptions or FinancialAssumptionsService()

    def plan_year(
        self,
        years_into_retirement: int,
        current_corpus: float,
        corpus_at_retirement: float,
        expense_need: float = 0.0,
        remaining_years: int = 1,
    ) -> float:
        if self.strategy == IncomeStrategy.SIMPLE_DEPLETION:
            if expense_need > 0:
                return expense_need
            return max(0.0, current_corpus) / max(1, remaining_years)

        elif self.strategy == IncomeStrategy.SAFE_4_PERCENT:
            inflation_factor = (1 + self.inflation_rate / 100) ** years_into_retirement
            return corpus_at_retirement * self.withdrawal_rate / 100 * inflation_factor

        elif self.strategy == IncomeStrategy.SUSTAINABLE:
            if current_corpus <= 0:
                return 0.0
            cap = current_corpus * self.corpus_return_rate / 100
            if expense_need > 0:
                return min(cap, expense_need)
            return cap

        raise ValueError(f"Unknown income strategy: {self.strategy}")

    def allocate(self, amount: float, balances: Dict[AssetBucket, float]) -> Tuple[Dict[AssetBucket, float], bool]:
        """
        Draws `amount` from the balances in allocation order.

        Returns:
            (breakdown, capped): how much came from each bucket, and whether the
            request exceeded what was available.
        """
        breakdown: Dict[AssetBucket, float] = {}
        remaining = amount
        for bucket in self.assumptions.ALLOCATION_ORDER:
            if remaining <= 0:
                break
            available = balances.get(bucket, 0.0)
            if available <= 0:
                continue
            take = min(available, remaining)
            breakdown[bucket] = take
            remaining -= take
        return breakdown, remaining > 1e-6

    def strategy_incomes(self, corpus: float, retirement_years: int) -> Dict[str, Dict[str, float]]:
        """First-year income under each strategy for a given corpus at retirement."""
        years = max(1, retirement_years)
        annual = {
            IncomeStrategy.SIMPLE_DEPLETION.value: corpus / years,
            IncomeStrategy.SAFE_4_PERCENT.value: corpus * self.withdrawal_rate / 100,
            IncomeStrategy.SUSTAINABLE.value: corpus * self.corpus_return_rate / 100,
        }
        return {
            name: {"annualIncome": round(value, 2), "monthlyIncome": round(value / 12, 2)}
            for name, value in annual.items()
        }

    def build_schedule(
        self,
        corpus: float,
        annual_expense: float,
        start_age: int,
        years: int,
        return_rate: float,
        balances: Optional[Dict[AssetBucket, float]] = None,
    ) -> List[Dict]:
        """
        Standalone drawdown of a single corpus, growing at `return_rate` and paying the
        strategy amount each year. `annual_expense` is the first-year need.

        `balances` splits the corpus across buckets so each row can report where the
        money came from; without it the whole corpus is held as OTHER.
        """
        buckets = dict(balances) if balances else {AssetBucket.OTHER: corpus}
        schedule = []
        for t in range(years):
            balance = sum(buckets.values())
            need = annual_expense * (1 + self.inflation_rate / 100) ** t
            requested = self.plan_year(t, balance, corpus, need, years - t)
            breakdown, capped = self.allocate(requested, buckets)

            growth = 0.0
            for bucket, value in buckets.items():
                remaining = max(0.0, value - breakdown.get(bucket, 0.0))
                g = remaining * return_rate / 100
                buckets[bucket] = remaining + g
                growth += g

            schedule.append({
                "year": t + 1,
                "age": start_age + t,
                "openingBalance": round(balance, 2),
                "withdrawal": round(sum(breakdown.values()), 2),
                "sources": {bucket.value: round(amount, 2) for bucket, amount in breakdown.items()},
                "growth": round(growth, 2),
                "closingBalance": round(sum(buckets.values()), 2),
                "shortfall": capped,
            })
        return schedule

    def classify_phases(self, holdings: List[InvestmentHolding], annual_expense: float) -> List[Dict]:
        """Groups holdings into the tax-aware drawdown phases with how many years each phase can fund."""
        phases = []
        for phase in self.assumptions.WITHDRAWAL_PHASES:
            members = [h for h in holdings if h.bucket in phase.buckets and h.value > 0]
            total = sum(h.value for h in members)
            years_covered = total / annual_expense if annual_expense > 0 else None
            phases.append({
                "phase": phase.phase,
                "name": phase.name,
                "description": phase.description,
                "totalValue": round(total, 2),
                "yearsCovered": round(years_covered, 1) if years_covered is not None else None,
                "holdings": [
                    {"name": h.name, "bucket": h.bucket.value, "value": round(h.value, 2)}
                    for h in sorted(members, key=lambda h: self.assumptions.ALLOCATION_ORDER.index(h.bucket)
                                    if h.bucket in self.assumptions.ALLOCATION_ORDER else len(self.assumptions.ALLOCATION_ORDER))
                ],
            })
        return phases
