import logging
from contextlib import contextmanager
from datetime import date
from typing import Any, Dict, List, Optional

from wealthpath.core.config import settings
from wealthpath.core.exceptions import ProjectionComputationError, ScenarioValidationError
from wealthpath.models.records import AssetBucket, FinancialRecordSet, InsuranceType, Loan
from wealthpath.models.scenario import IncomeStrategy, ScenarioAssumptions
from wealthpath.models.projection import Phase, ProjectionYear
from wealthpath.services.amortization import AmortizationCalculator
from wealthpath.services.corpus_projector import CorpusProjector
from wealthpath.services.financial_assumptions_service import FinancialAssumptionsService
from wealthpath.services.goal_expander import GoalExpander
from wealthpath.services.monte_carlo import MonteCarloService
from wealthpath.services.return_schedule import ReturnScheduleResolver, weighted_holding_returns
from wealthpath.services.withdrawal_planner import WithdrawalStrategyPlanner

logger = logging.getLogger(__name__)

# Return assumed for the extra SIP needed to close a corpus gap
GAP_SIP_RETURN = 10.0
# Growth assumed for a ULIP fund value until maturity
ULIP_FUND_GROWTH = 8.0
# Longest standalone drawdown schedule produced for the withdrawal strategy
MAX_WITHDRAWAL_SCHEDULE_YEARS = 30


class RetirementService:
    """
    Entry point for all projection and simulation requests.

    This service handles:
    1. Resolving the effective scenario (override > stored default > built-in defaults).
    2. Driving the corpus projection, either directly or through Monte Carlo trials.
    3. Shaping results into plain dicts for the calling layer.

    Records arrive already scoped to one user; nothing here reads ambient user context.
    """

    def __init__(self, as_of: Optional[date] = None):
        self.as_of = as_of or date.today()
        self.assumptions_service = FinancialAssumptionsService()

    @contextmanager
    def _computation(self, operation: str):
        try:
            yield
        except (TypeError, ZeroDivisionError, KeyError) as exc:
            logger.error(f"{operation} failed: {exc!r}")
            raise ProjectionComputationError(f"{operation} failed: {exc}") from exc

    # Inputs

    def resolve_scenario(self, records: FinancialRecordSet, scenario: Optional[ScenarioAssumptions] = None) -> ScenarioAssumptions:
        """
        Resolves the effective scenario.
        Priority: explicit override > the records' stored default > built-in defaults.
        """
        chosen = scenario or records.defaultScenario or ScenarioAssumptions()
        if chosen.startYear is None:
            chosen = chosen.model_copy(update={"startYear": self.as_of.year})
        chosen.validate_timeline()
        return chosen

    def build_resolver(self, records: FinancialRecordSet, scenario: ScenarioAssumptions) -> ReturnScheduleResolver:
        return ReturnScheduleResolver(
            scenario,
            self.assumptions_service.get_default_returns(),
            weighted_holding_returns(records.holdings),
        )

    def project(self, records: FinancialRecordSet, scenario: ScenarioAssumptions, **kwargs) -> List[ProjectionYear]:
        resolver = self.build_resolver(records, scenario)
        return CorpusProjector(records, scenario, resolver, assumptions=self.assumptions_service, **kwargs).project()

    def _holding_rate(self, holding) -> float:
        if holding.expectedReturn is not None:
            return holding.expectedReturn
        return self.assumptions_service.get_default_returns().get(holding.bucket, 0.0)

    # Net worth & simple projections

    def calculate_net_worth(self, records: FinancialRecordSet) -> Dict[str, Any]:
        logger.info(f"Calculating net worth for owner {records.ownerId}")
        with self._computation("Net worth"):
            by_bucket: Dict[str, float] = {}
            for h in records.holdings:
                by_bucket[h.bucket.value] = by_bucket.get(h.bucket.value, 0.0) + h.value

            illiquid = set(self.assumptions_service.get_illiquid_buckets())
            total_investments = sum(by_bucket.values())
            insurance_value = sum(p.fundValue or 0.0 for p in records.policies)
            liabilities = sum(loan.outstandingAmount for loan in records.loans)
            emergency = sum(h.value for h in records.holdings if h.isEmergencyFund)
            liquid = sum(h.value for h in records.holdings if not h.isEmergencyFund and h.bucket not in illiquid)
            sellable = [
                {"name": h.name, "bucket": h.bucket.value, "value": round(h.value, 2)}
                for h in records.holdings if h.bucket == AssetBucket.REAL_ESTATE and h.value > 0
            ]

            total_assets = total_investments + insurance_value
            return {
                "totalAssets": round(total_assets, 2),
                "totalInvestments": round(total_investments, 2),
                "insuranceFundValue": round(insurance_value, 2),
                "totalLiabilities": round(liabilities, 2),
                "netWorth": round(total_assets - liabilities, 2),
                "assetBreakdown": {k: round(v, 2) for k, v in by_bucket.items()},
                "liquidCorpus": round(liquid, 2),
                "emergencyFund": round(emergency, 2),
                "sellableAssets": sellable,
                "sellableAssetsTotal": round(sum(s["value"] for s in sellable), 2),
            }

    def _holding_value_after(self, holding, rate: float, years: int) -> float:
        fv = FinancialAssumptionsService.future_value
        value = fv(holding.value, rate, years)
        value += FinancialAssumptionsService.sip_future_value(holding.monthlySip or 0.0, rate, 12 * years)
        value += sum(fv(holding.yearlyContribution or 0.0, rate, years - y) for y in range(years))
        return value

    def calculate_projections(self, records: FinancialRecordSet, years: Optional[int] = None) -> Dict[str, Any]:
        """Per-holding future value of today's balance plus ongoing SIPs and yearly contributions."""
        if years is None:
            years = settings.DEFAULT_PROJECTION_YEARS
        if years <= 0:
            raise ScenarioValidationError(f"Projection horizon must be positive, got {years}")
        logger.info(f"Calculating {years}-year holding projections for owner {records.ownerId}")

        with self._computation("Holding projections"):
            holdings = []
            yearly_totals = [0.0] * (years + 1)
            for h in records.holdings:
                rate = self._holding_rate(h)
                for n in range(years + 1):
                    yearly_totals[n] += self._holding_value_after(h, rate, n)
                holdings.append({
                    "name": h.name,
                    "bucket": h.bucket.value,
                    "expectedReturn": rate,
                    "currentValue": round(h.value, 2),
                    "projectedValue": round(self._holding_value_after(h, rate, years), 2),
                })

            total_current = sum(h["currentValue"] for h in holdings)
            total_projected = sum(h["projectedValue"] for h in holdings)
            return {
                "years": years,
                "holdings": holdings,
                "yearly": [{"year": self.as_of.year + n, "value": round(v, 2)} for n, v in enumerate(yearly_totals)],
                "totalCurrent": round(total_current, 2),
                "totalProjected": round(total_projected, 2),
                "cagr": round(FinancialAssumptionsService.cagr(total_current, total_projected, years), 2),
            }

    # Retirement matrix

    def generate_retirement_matrix(self, records: FinancialRecordSet, scenario: Optional[ScenarioAssumptions] = None) -> Dict[str, Any]:
        """
        Main entry point for the deterministic projection.

        Steps:
        1. Resolves the scenario and validates the timeline.
        2. Projects the corpus year by year to life expectancy.
        3. Summarizes the corpus at retirement and the income each strategy would give.
        4. Compares it against the corpus the retirement needs (gap analysis).
        5. Looks for the earliest year the SIP step-up can stop while still meeting that need.

        Returns:
            dict: {"matrix", "summary", "gapAnalysis", "sipStepUpOptimization", "maturingBeforeRetirement"}
        """
        # 1. Resolve effective inputs
        s = self.resolve_scenario(records, scenario)
        logger.info(
            f"Generating retirement matrix for owner {records.ownerId}: "
            f"age {s.currentAge}->{s.retirementAge}->{s.lifeExpectancy}, strategy {s.incomeStrategy.value}"
        )

        with self._computation("Retirement matrix"):
            # 2. Projection
            rows = self.project(records, s)
            corpus_at_retirement = self._corpus_at_retirement(rows)

            # 3. Summary
            summary = self._summary(s, rows, corpus_at_retirement)

            # 4. Gap analysis
            gap = self._gap_analysis(records, s, corpus_at_retirement)

            # 5. SIP step-up optimization
            optimization = self._sip_step_up_optimization(records, s, gap["requiredCorpus"], corpus_at_retirement)

            return {
                "matrix": [row.model_dump(mode="json") for row in rows],
                "summary": summary,
                "gapAnalysis": gap,
                "sipStepUpOptimization": optimization,
                "maturingBeforeRetirement": self._maturing(records, s.currentAge, s.retirementAge),
            }

    @staticmethod
    def _corpus_at_retirement(rows: List[ProjectionYear]) -> float:
        for row in rows:
            if row.phase == Phase.DRAWDOWN:
                return row.openingCorpus
        return rows[-1].closingCorpus if rows else 0.0

    def _summary(self, s: ScenarioAssumptions, rows: List[ProjectionYear], corpus_at_retirement: float) -> Dict[str, Any]:
        planner = WithdrawalStrategyPlanner(s.incomeStrategy, s.inflationRate, s.withdrawalRate, s.corpusReturnRate)
        incomes = planner.strategy_incomes(corpus_at_retirement, s.retirementYears)
        selected = incomes[s.incomeStrategy.value]

        starting = rows[0].openingByBucket if rows else {}
        shortfall_years = [row.year for row in rows if row.shortfall]
        drawdown = [row for row in rows if row.phase == Phase.DRAWDOWN]

        return {
            "currentAge": s.currentAge,
            "retirementAge": s.retirementAge,
            "lifeExpectancy": s.lifeExpectancy,
            "yearsToRetirement": s.yearsToRetirement,
            "retirementYears": s.retirementYears,
            "retirementYear": s.startYear + s.yearsToRetirement,
            "startingBalances": {b.value: round(v, 2) for b, v in starting.items()},
            "totalStarting": round(sum(starting.values()), 2),
            "corpusAtRetirement": round(corpus_at_retirement, 2),
            "finalCorpus": round(rows[-1].closingCorpus, 2) if rows else 0.0,
            "incomeStrategy": s.incomeStrategy.value,
            "strategyIncomes": incomes,
            "selectedMonthlyIncome": selected["monthlyIncome"],
            "retirementIncomeProjection": [
                {
                    "year": row.year,
                    "age": row.age,
                    "withdrawal": round(row.retirementWithdrawals, 2),
                    "monthlyIncome": round(row.retirementWithdrawals / 12, 2),
                    "sources": {b.value: round(v, 2) for b, v in row.withdrawalsByBucket.items()},
                    "closingCorpus": round(row.closingCorpus, 2),
                }
                for row in drawdown
            ],
            "shortfallYears": shortfall_years,
            "firstShortfallAge": next((row.age for row in rows if row.shortfall), None),
        }

    def _monthly_expense_after_retirement(self, records: FinancialRecordSet, s: ScenarioAssumptions) -> float:
        """Today's monthly spend that carries into retirement, including premiums that keep running."""
        retirement_year = s.startYear + s.yearsToRetirement
        expenses = sum(e.monthlyEquivalent for e in records.expenses if e.continues_after(retirement_year))
        premiums = sum(
            p.annualPremium / 12 for p in records.policies
            if FinancialAssumptionsService.policy_continues_after_retirement(p)
        )
        return expenses + premiums

    def _gap_analysis(self, records: FinancialRecordSet, s: ScenarioAssumptions, projected: float) -> Dict[str, Any]:
        monthly_today = self._monthly_expense_after_retirement(records, s)
        inflated_monthly = monthly_today * (1 + s.inflationRate / 100) ** s.yearsToRetirement
        yearly_at_retirement = inflated_monthly * 12

        # Corpus needed for expenses under the selected strategy
        if s.incomeStrategy == IncomeStrategy.SIMPLE_DEPLETION:
            required_for_expenses = sum(
                yearly_at_retirement * (1 + s.inflationRate / 100) ** t for t in range(s.retirementYears)
            )
            explanation = f"Corpus depletes over {s.retirementYears} years"
        elif s.incomeStrategy == IncomeStrategy.SAFE_4_PERCENT:
            required_for_expenses = yearly_at_retirement * 100 / s.withdrawalRate
            explanation = f"{100 / s.withdrawalRate:g}x yearly expenses ({s.withdrawalRate:g}% rule)"
        else:
            if s.corpusReturnRate > 0:
                required_for_expenses = yearly_at_retirement * 100 / s.corpusReturnRate
            else:
                required_for_expenses = yearly_at_retirement * 100 / s.withdrawalRate
            explanation = f"Yearly expense / {s.corpusReturnRate:g}% corpus return"

        horizon_end = s.startYear + s.totalYears - 1
        retirement_year = s.startYear + s.yearsToRetirement
        total_goals = sum(
            GoalExpander.total_cost(g, horizon_end, s.inflationRate, retirement_year) for g in records.goals
        )
        required = required_for_expenses + total_goals

        corpus_gap = required - projected
        gap_percent = corpus_gap / required * 100 if required > 0 else 0.0

        additional_sip = 0.0
        if corpus_gap > 0 and s.yearsToRetirement > 0:
            monthly_rate = GAP_SIP_RETURN / 100 / 12
            months = s.yearsToRetirement * 12
            additional_sip = corpus_gap * monthly_rate / ((1 + monthly_rate) ** months - 1)

        return {
            "currentMonthlyExpenses": round(monthly_today, 2),
            "inflatedMonthlyExpenses": round(inflated_monthly, 2),
            "yearlyExpenseAtRetirement": round(yearly_at_retirement, 2),
            "requiredCorpusForExpenses": round(required_for_expenses, 2),
            "totalGoalAmount": round(total_goals, 2),
            "requiredCorpus": round(required, 2),
            "projectedCorpus": round(projected, 2),
            "corpusGap": round(corpus_gap, 2),
            "gapPercent": round(gap_percent, 1),
            "isOnTrack": corpus_gap <= 0,
            "additionalSIPRequired": round(additional_sip, 2),
            "strategyExplanation": explanation,
            "suggestions": self._suggestions(corpus_gap, additional_sip, monthly_today, s.yearsToRetirement),
        }

    @staticmethod
    def _suggestions(corpus_gap: float, additional_sip: float, monthly_expense: float, years_to_retirement: int) -> List[Dict[str, str]]:
        if corpus_gap <= 0:
            return [{
                "title": "You're on track",
                "description": "Your projected corpus exceeds your retirement needs.",
                "impact": "positive",
            }]

        suggestions = [
            {
                "title": "Increase monthly SIP",
                "description": f"Increase your monthly SIP by {round(additional_sip):,} to close the gap",
                "impact": "high",
            },
            {
                "title": "Reduce discretionary expenses",
                "description": f"Cutting {round(monthly_expense * 0.10):,}/month from expenses and investing it can help",
                "impact": "medium",
            },
        ]
        if years_to_retirement < 25:
            suggestions.append({
                "title": "Consider delayed retirement",
                "description": "Working 2-3 more years can significantly boost your corpus",
                "impact": "high",
            })
        suggestions.append({
            "title": "Review asset allocation",
            "description": "Higher equity allocation early on may provide better returns",
            "impact": "medium",
        })
        return suggestions

    def _sip_step_up_optimization(self, records: FinancialRecordSet, s: ScenarioAssumptions, required: float, projected: float) -> Dict[str, Any]:
        """
        Finds the earliest year the SIP step-up can stop while the corpus at retirement
        still meets the required corpus.
        """
        monthly_sip = sum(h.monthlySip or 0.0 for h in records.holdings if not h.isEmergencyFund)
        result: Dict[str, Any] = {
            "optimalStopYear": None,
            "canStopEarly": False,
            "currentProjectedCorpus": round(projected, 2),
            "requiredCorpus": round(required, 2),
        }

        if s.sipStepUpPercent <= 0 or s.yearsToRetirement <= 0 or monthly_sip <= 0:
            result["reason"] = "No SIP step-up configured or no SIP investments"
            return result
        if projected < required:
            result["reason"] = "Current projection already below required corpus - continue step-up"
            result["deficit"] = round(required - projected, 2)
            return result

        first = max(s.effectiveFromYear, 1)
        growth = 1 + s.sipStepUpPercent / 100
        scenarios = []
        first_meeting: Optional[int] = None
        corpus_at_stop = projected
        for stop_year in range(first, s.yearsToRetirement + 1):
            rows = self.project(records, s, years=s.yearsToRetirement, sip_stop_year=stop_year)
            corpus = rows[-1].closingCorpus
            meets = corpus >= required
            scenarios.append({
                "stopYear": stop_year,
                "projectedCorpus": round(corpus, 2),
                "meetsTarget": meets,
                "surplus": round(corpus - required, 2),
                "finalSipAtStop": round(monthly_sip * growth ** (stop_year - first), 2),
            })
            if meets and first_meeting is None:
                first_meeting = stop_year
                corpus_at_stop = corpus

        stop = first_meeting if first_meeting is not None else s.yearsToRetirement
        sip_full = monthly_sip * growth ** max(0, s.yearsToRetirement - first)
        sip_at_stop = monthly_sip * growth ** max(0, stop - first)

        result.update({
            "optimalStopYear": first_meeting,
            "canStopEarly": first_meeting is not None and first_meeting < s.yearsToRetirement,
            "corpusAtOptimalStop": round(corpus_at_stop, 2),
            "sipAtStart": round(monthly_sip, 2),
            "sipAtFullStepUp": round(sip_full, 2),
            "sipAtOptimalStop": round(sip_at_stop, 2),
            "monthlyReliefFromStoppingEarly": round(sip_full - sip_at_stop, 2),
            "yearsOfStepUp": stop - first,
            "yearsWithoutStepUp": s.yearsToRetirement - stop,
            "scenarios": scenarios,
        })
        if result["canStopEarly"]:
            result["recommendation"] = (
                f"You can stop increasing your SIP after year {first_meeting} "
                f"and still reach your retirement corpus"
            )
        return result

    # Monte Carlo

    def run_monte_carlo(
        self,
        records: FinancialRecordSet,
        scenario: Optional[ScenarioAssumptions] = None,
        simulations: Optional[int] = None,
        years: Optional[int] = settings.MC_DEFAULT_YEARS,
        seed: Optional[int] = None,
        workers: Optional[int] = None,
    ) -> Dict[str, Any]:
        s = self.resolve_scenario(records, scenario)
        logger.info(f"Running Monte Carlo for owner {records.ownerId}: simulations={simulations}, years={years}, seed={seed}")
        with self._computation("Monte Carlo simulation"):
            result = MonteCarloService.run_simulation(
                records,
                s,
                num_simulations=simulations,
                years=years,
                seed=seed,
                workers=workers,
                default_returns=self.assumptions_service.get_default_returns(),
                holding_returns=weighted_holding_returns(records.holdings),
                volatility=self.assumptions_service.get_volatility(),
            )
            return result.model_dump(mode="json")

    # Loans

    def amortization_schedule(self, loan: Loan) -> Dict[str, Any]:
        logger.info(f"Building amortization schedule for loan '{loan.name}'")
        with self._computation("Amortization schedule"):
            rows = AmortizationCalculator.schedule(loan)
            return {
                "loanName": loan.name,
                "outstandingAmount": loan.outstandingAmount,
                "emi": loan.emi,
                "months": len(rows),
                "totalInterest": round(sum(r.interestPortion for r in rows), 2),
                "totalPrincipal": round(sum(r.principalPortion for r in rows), 2),
                "schedule": [r.model_dump(mode="json") for r in rows],
            }

    # Maturities

    def calculate_maturing_before_retirement(
        self,
        records: FinancialRecordSet,
        current_age: Optional[int] = None,
        retirement_age: Optional[int] = None,
    ) -> Dict[str, Any]:
        current_age = settings.DEFAULT_CURRENT_AGE if current_age is None else current_age
        retirement_age = settings.DEFAULT_RETIREMENT_AGE if retirement_age is None else retirement_age
        logger.info(f"Calculating maturities before retirement for owner {records.ownerId}")
        with self._computation("Maturities before retirement"):
            return self._maturing(records, current_age, retirement_age)

    def _maturing(self, records: FinancialRecordSet, current_age: int, retirement_age: int) -> Dict[str, Any]:
        """Holdings and policies maturing between today and the retirement year, valued at maturity."""
        fv = FinancialAssumptionsService.future_value
        retirement_year = self.as_of.year + max(0, retirement_age - current_age)

        investments = []
        for h in records.holdings:
            if h.maturityDate is None or not (self.as_of <= h.maturityDate and h.maturityDate.year <= retirement_year):
                continue
            years = max(0, h.maturityDate.year - self.as_of.year)
            rate = self._holding_rate(h)
            if h.bucket in (AssetBucket.RD, AssetBucket.PPF):
                # recurring deposits and PPF keep receiving contributions until maturity
                value = self._holding_value_after(h, rate, years)
            else:
                value = fv(h.value, rate, years)
            investments.append({
                "name": h.name,
                "type": h.bucket.value,
                "currentValue": round(h.value, 2),
                "maturityDate": h.maturityDate.isoformat(),
                "yearsToMaturity": years,
                "expectedMaturityValue": round(value, 2),
            })

        insurance = []
        for p in records.policies:
            if p.maturityDate is None or not (self.as_of <= p.maturityDate and p.maturityDate.year <= retirement_year):
                continue
            years = max(0, p.maturityDate.year - self.as_of.year)
            if p.maturityBenefit is not None:
                value = p.maturityBenefit
            elif p.type == InsuranceType.ULIP and p.fundValue:
                value = fv(p.fundValue, ULIP_FUND_GROWTH, years)
            else:
                value = p.fundValue or 0.0
            insurance.append({
                "name": p.policyName,
                "type": p.type.value,
                "maturityDate": p.maturityDate.isoformat(),
                "yearsToMaturity": years,
                "expectedMaturityValue": round(value, 2),
            })

        total = sum(i["expectedMaturityValue"] for i in investments) + sum(i["expectedMaturityValue"] for i in insurance)
        return {
            "maturingInvestments": investments,
            "maturingInsurance": insurance,
            "investmentCount": len(investments),
            "insuranceCount": len(insurance),
            "totalMaturingBeforeRetirement": round(total, 2),
        }

    # Withdrawal strategy

    def generate_withdrawal_strategy(
        self,
        records: FinancialRecordSet,
        current_age: Optional[int] = None,
        retirement_age: Optional[int] = None,
        life_expectancy: Optional[int] = None,
        scenario: Optional[ScenarioAssumptions] = None,
    ) -> Dict[str, Any]:
        """
        Post-retirement drawdown plan: which holdings to draw first, how long each phase
        lasts, and a year-by-year schedule for the selected income strategy.
        """
        base = scenario or records.defaultScenario or ScenarioAssumptions()
        timeline = {
            "currentAge": base.currentAge if current_age is None else current_age,
            "retirementAge": base.retirementAge if retirement_age is None else retirement_age,
            "lifeExpectancy": base.lifeExpectancy if life_expectancy is None else life_expectancy,
        }
        s = self.resolve_scenario(records, base.model_copy(update=timeline))
        logger.info(f"Generating withdrawal strategy for owner {records.ownerId}: retire at {s.retirementAge}")

        with self._computation("Withdrawal strategy"):
            rows = self.project(records, s)
            corpus = self._corpus_at_retirement(rows)
            retirement_row = next((row for row in rows if row.phase == Phase.DRAWDOWN), None)
            balances = retirement_row.openingByBucket if retirement_row else None
            annual_expense = self._monthly_expense_after_retirement(records, s) * 12 * (1 + s.inflationRate / 100) ** s.yearsToRetirement

            planner = WithdrawalStrategyPlanner(s.incomeStrategy, s.inflationRate, s.withdrawalRate, s.corpusReturnRate)
            holdings = [h for h in records.holdings if not h.isEmergencyFund]
            phases = planner.classify_phases(holdings, annual_expense)

            schedule_years = min(MAX_WITHDRAWAL_SCHEDULE_YEARS, s.retirementYears)
            schedule = planner.build_schedule(
                corpus, annual_expense, s.retirementAge, schedule_years, s.corpusReturnRate, balances
            )
            first_short = next((row for row in schedule if row["shortfall"]), None)

            return {
                "currentAge": s.currentAge,
                "retirementAge": s.retirementAge,
                "lifeExpectancy": s.lifeExpectancy,
                "incomeStrategy": s.incomeStrategy.value,
                "corpusAtRetirement": round(corpus, 2),
                "annualExpenseAtRetirement": round(annual_expense, 2),
                "phases": phases,
                "schedule": schedule,
                "corpusLastsUntilAge": first_short["age"] if first_short else None,
                "metrics": {
                    "safeWithdrawal4Percent": round(corpus * 0.04, 2),
                    "safeWithdrawal6Percent": round(corpus * 0.06, 2),
                    "monthlyIncome4Percent": round(corpus * 0.04 / 12, 2),
                    "monthlyIncome6Percent": round(corpus * 0.06 / 12, 2),
                },
            }

    # Goals

    def analyze_goals(self, records: FinancialRecordSet, scenario: Optional[ScenarioAssumptions] = None) -> Dict[str, Any]:
        s = self.resolve_scenario(records, scenario)
        horizon_end = s.startYear + s.totalYears - 1
        retirement_year = s.startYear + s.yearsToRetirement
        logger.info(f"Analyzing {len(records.goals)} goals for owner {records.ownerId}")

        with self._computation("Goal analysis"):
            goals = []
            for goal in records.goals:
                occurrences = GoalExpander.expand(goal, horizon_end, s.inflationRate, retirement_year)
                goals.append({
                    "name": goal.name,
                    "priority": goal.priority.value,
                    "isRecurring": bool(goal.isRecurring),
                    "status": "INCOMPLETE" if not occurrences else "PLANNED",
                    "occurrenceCount": len(occurrences),
                    "totalCost": round(sum(o.amount for o in occurrences), 2),
                    "occurrences": [o.model_dump(mode="json") for o in occurrences],
                })

            return {
                "horizonEndYear": horizon_end,
                "goals": goals,
                "totalGoalCost": round(sum(g["totalCost"] for g in goals), 2),
                "incompleteCount": sum(1 for g in goals if g["status"] == "INCOMPLETE"),
            }
