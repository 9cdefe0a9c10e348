import logging
from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional

from wealthpath.core.exceptions import ScenarioValidationError
from wealthpath.models.records import AssetBucket, FinancialRecordSet
from wealthpath.models.scenario import ScenarioAssumptions
from wealthpath.models.projection import GoalOccurrence, MaturityRecord, Phase, ProjectionYear
from wealthpath.services.amortization import AmortizationCalculator
from wealthpath.services.financial_assumptions_service import FinancialAssumptionsService
from wealthpath.services.goal_expander import GoalExpander
from wealthpath.services.payout_scheduler import PayoutScheduler
from wealthpath.services.withdrawal_planner import WithdrawalStrategyPlanner

logger = logging.getLogger(__name__)


class CorpusProjector:
    """
    Year-by-year projection of the retirement corpus.

    The corpus is the liquid, non-emergency part of the user's holdings, tracked per bucket.
    Each year grows the opening balances, adds contributions (working years only) and policy
    inflows, then draws goals, loan payments and spending in allocation order. A year whose
    demand exceeds the corpus is flagged as a shortfall and the corpus is clamped at zero.

    `rate_provider` is anything with `rate_for(bucket, year) -> float` (annual %).
    """

    def __init__(
        self,
        records: FinancialRecordSet,
        scenario: ScenarioAssumptions,
        rate_provider,
        years: Optional[int] = None,
        planner: Optional[WithdrawalStrategyPlanner] = None,
        assumptions: Optional[FinancialAssumptionsService] = None,
        sip_step_up: Optional[float] = None,
        sip_stop_year: Optional[int] = None,
    ):
        self.records = records
        self.scenario = scenario
        self.rate_provider = rate_provider
        self.assumptions = assumptions or FinancialAssumptionsService()
        self.years = years if years is not None else scenario.totalYears
        if self.years <= 0:
            raise ScenarioValidationError(f"Projection horizon must be positive, got {self.years}")
        self.start_year = scenario.startYear if scenario.startYear is not None else date.today().year
        self.horizon_end_year = self.start_year + self.years - 1
        self.retirement_year = self.start_year + scenario.yearsToRetirement
        self.sip_step_up = scenario.sipStepUpPercent if sip_step_up is None else sip_step_up
        # first projection year without a further step-up (None = never stops)
        self.sip_stop_year = sip_stop_year
        self.planner = planner or WithdrawalStrategyPlanner(
            strategy=scenario.incomeStrategy,
            inflation_rate=scenario.inflationRate,
            withdrawal_rate=scenario.withdrawalRate,
            corpus_return_rate=scenario.corpusReturnRate,
            assumptions=self.assumptions,
        )

        illiquid = set(self.assumptions.get_illiquid_buckets())
        self.corpus_buckets = [b for b in AssetBucket if b not in illiquid]
        if scenario.reinvestmentBucket not in self.corpus_buckets:
            self.corpus_buckets.append(scenario.reinvestmentBucket)

        self.corpus_holdings = [
            h for h in records.holdings
            if not h.isEmergencyFund and h.bucket in self.corpus_buckets
        ]

        self._prepare_events()

    # Event materialization

    def _prepare_events(self) -> None:
        s = self.scenario

        self.goals_by_year: Dict[int, List[GoalOccurrence]] = defaultdict(list)
        for goal in self.records.goals:
            for occurrence in GoalExpander.expand(goal, self.horizon_end_year, s.inflationRate, self.retirement_year):
                if self.start_year <= occurrence.year <= self.horizon_end_year:
                    self.goals_by_year[occurrence.year].append(occurrence)

        self.loan_payments: List[List[float]] = []
        self.maturities_by_year: Dict[int, List[MaturityRecord]] = defaultdict(list)
        for loan in self.records.loans:
            self.loan_payments.append(AmortizationCalculator.yearly_payments(loan))
            payoff = AmortizationCalculator.payoff_year_index(loan)
            if payoff >= 0:
                self.maturities_by_year[self.start_year + payoff].append(
                    MaturityRecord(name=loan.name, kind="LOAN", amount=0.0)
                )

        self.inflows_by_year: Dict[int, float] = defaultdict(float)
        for policy in self.records.policies:
            for event in PayoutScheduler.schedule(policy, self.horizon_end_year):
                if event.year >= self.start_year:
                    self.inflows_by_year[event.year] += event.amount
            if policy.maturityDate is not None:
                maturity = PayoutScheduler.maturity_event(policy)
                self.maturities_by_year[policy.maturityDate.year].append(
                    MaturityRecord(name=policy.policyName, kind="POLICY", amount=maturity.amount if maturity else 0.0)
                )

        for holding in self.records.holdings:
            if holding.maturityDate is not None:
                self.maturities_by_year[holding.maturityDate.year].append(
                    MaturityRecord(name=holding.name, kind="HOLDING", amount=holding.value)
                )

    def opening_balances(self) -> Dict[AssetBucket, float]:
        balances = {b: 0.0 for b in self.corpus_buckets}
        for h in self.corpus_holdings:
            balances[h.bucket] += h.value
        return balances

    # Yearly cash flows

    def _step_up_factor(self, k: int) -> float:
        first = max(self.scenario.effectiveFromYear, 1)
        last = k if self.sip_stop_year is None else min(k, self.sip_stop_year - 1)
        steps = max(0, last - first + 1)
        return (1 + self.sip_step_up / 100) ** steps

    def _contributions(self, k: int, year: int, rates: Dict[AssetBucket, float]) -> Dict[AssetBucket, float]:
        added: Dict[AssetBucket, float] = defaultdict(float)
        factor = self._step_up_factor(k)
        for h in self.corpus_holdings:
            if h.maturityDate is not None and year > h.maturityDate.year:
                continue
            if h.monthlySip:
                added[h.bucket] += FinancialAssumptionsService.sip_future_value(h.monthlySip * factor, rates[h.bucket], 12)
            if h.yearlyContribution:
                added[h.bucket] += h.yearlyContribution
        lumpsum = self.scenario.yearlyLumpsum
        if lumpsum > 0:
            added[AssetBucket.EQUITY_MF] += lumpsum
        return added

    def income_for(self, k: int) -> float:
        total = 0.0
        for income in self.records.incomes:
            if not income.isActive:
                continue
            if income.startDate is not None and income.startDate.year > self.start_year + k:
                continue
            total += income.monthlyAmount * 12 * (1 + income.annualIncrement / 100) ** k
        return total

    def expenses_for(self, k: int, retired: bool) -> float:
        year = self.start_year + k
        inflation = (1 + self.scenario.inflationRate / 100) ** k
        total = 0.0
        for expense in self.records.expenses:
            if not expense.is_active_in(year):
                continue
            if retired and not expense.continues_after(self.retirement_year):
                continue
            total += expense.monthlyEquivalent * 12 * inflation
        return total

    def premiums_for(self, year: int, retired: bool) -> float:
        total = 0.0
        for policy in self.records.policies:
            if retired and not FinancialAssumptionsService.policy_continues_after_retirement(policy):
                continue
            total += FinancialAssumptionsService.premium_due(policy, year)
        return total

    def loan_payments_for(self, k: int) -> float:
        return sum(payments[k] for payments in self.loan_payments if k < len(payments))

    # Projection

    def project(self) -> List[ProjectionYear]:
        s = self.scenario
        balances = self.opening_balances()
        corpus_at_retirement: Optional[float] = None
        rows: List[ProjectionYear] = []

        for k in range(self.years):
            year = self.start_year + k
            age = s.currentAge + k
            retired = age >= s.retirementAge
            phase = Phase.DRAWDOWN if retired else Phase.ACCUMULATION

            opening = dict(balances)
            opening_corpus = sum(opening.values())
            rates = {b: self.rate_provider.rate_for(b, year) for b in self.corpus_buckets}

            # 1. Growth on opening balances
            growth = 0.0
            for b in self.corpus_buckets:
                g = opening[b] * rates[b] / 100
                balances[b] = opening[b] + g
                growth += g

            # 2. Contributions (working years only)
            contributions = 0.0
            if not retired:
                for b, amount in self._contributions(k, year, rates).items():
                    balances[b] += amount
                    contributions += amount

            # 3. Policy inflows reinvested
            inflows = self.inflows_by_year.get(year, 0.0)
            if inflows:
                balances[s.reinvestmentBucket] += inflows

            # 4. Outflows
            goals = self.goals_by_year.get(year, [])
            goal_total = sum(o.amount for o in goals)
            loan_total = self.loan_payments_for(k)
            retirement_draw = 0.0

            if not retired:
                net = self.income_for(k) - self.expenses_for(k, False) - self.premiums_for(year, False) - loan_total
                demand = goal_total
                if net < 0:
                    demand += -net
                elif net > 0 and s.surplusInvestmentPercent > 0:
                    surplus = net * s.surplusInvestmentPercent / 100
                    balances[AssetBucket.CASH] += surplus
                    contributions += surplus
            else:
                if corpus_at_retirement is None:
                    corpus_at_retirement = opening_corpus
                need = self.expenses_for(k, True)
                planned = self.planner.plan_year(
                    years_into_retirement=age - s.retirementAge,
                    current_corpus=opening_corpus,
                    corpus_at_retirement=corpus_at_retirement,
                    expense_need=need,
                    remaining_years=s.lifeExpectancy - age,
                )
                retirement_draw = planned + self.premiums_for(year, True)
                demand = goal_total + retirement_draw + loan_total

            # 5. Withdraw in allocation order
            breakdown, capped = self.planner.allocate(demand, balances)
            for b, amount in breakdown.items():
                balances[b] = max(0.0, balances[b] - amount)
            drawn = sum(breakdown.values())
            shortfall_amount = max(0.0, demand - drawn) if capped else 0.0
            if capped:
                logger.debug(f"Shortfall of {shortfall_amount:.2f} in {year} (age {age})")

            rows.append(ProjectionYear(
                year=year,
                age=age,
                phase=phase,
                openingByBucket=opening,
                contributions=contributions,
                goalWithdrawals=goal_total,
                retirementWithdrawals=retirement_draw,
                loanPayments=loan_total,
                inflows=inflows,
                growth=growth,
                withdrawalsByBucket=breakdown,
                closingByBucket=dict(balances),
                openingCorpus=opening_corpus,
                closingCorpus=sum(balances.values()),
                shortfall=capped,
                shortfallAmount=shortfall_amount,
                goalsThisYear=list(goals),
                maturities=list(self.maturities_by_year.get(year, [])),
                rates=rates,
            ))

        return rows
