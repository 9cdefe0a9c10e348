import pytest

from tests.helpers import goal, holding, records, salary, scenario
from wealthpath.core.exceptions import ProjectionComputationError, ScenarioValidationError
from wealthpath.models.records import AssetBucket, Expense, InsurancePolicy
from wealthpath.models.scenario import ScenarioAssumptions


def test_end_to_end_accumulation_grows_without_shortfall(service, young_saver):
    recs, s = young_saver

    result = service.generate_retirement_matrix(recs, s)
    matrix = result["matrix"]
    accumulation = [row for row in matrix if row["phase"] == "ACCUMULATION"]

    assert len(matrix) == 55
    assert len(accumulation) == 30
    assert not any(row["shortfall"] for row in accumulation)
    closings = [row["closingCorpus"] for row in accumulation]
    assert all(b >= a for a, b in zip(closings, closings[1:]))

    # invested amount plus every SIP rupee paid in, with step-up, and no growth
    paid_in = 500000.0 + sum(10000.0 * 12 * 1.1 ** max(0, k) for k in range(30))
    retirement_row = matrix[30]
    assert retirement_row["age"] == 60
    assert retirement_row["openingCorpus"] > paid_in
    assert result["summary"]["corpusAtRetirement"] == pytest.approx(retirement_row["openingCorpus"], abs=0.01)


def test_matrix_rows_use_plain_keys(service, young_saver):
    recs, s = young_saver

    row = service.generate_retirement_matrix(recs, s)["matrix"][0]

    assert row["year"] == 2025
    assert row["openingByBucket"]["EQUITY_MF"] == 500000.0
    assert row["rates"]["EQUITY_MF"] == 12.0


def test_scenario_precedence(service):
    stored = ScenarioAssumptions(currentAge=40, retirementAge=55, lifeExpectancy=80)
    recs = records(defaultScenario=stored)

    assert service.resolve_scenario(recs).retirementAge == 55
    assert service.resolve_scenario(recs, scenario(retirementAge=62)).retirementAge == 62
    assert service.resolve_scenario(records()).retirementAge == 60
    assert service.resolve_scenario(records()).startYear == 2025


def test_invalid_timeline_rejected_before_projection(service):
    with pytest.raises(ScenarioValidationError):
        service.generate_retirement_matrix(records(), scenario(currentAge=60, retirementAge=60))


def test_overlapping_ranges_surface_as_computation_error(service):
    s = scenario(periodReturns={"EQUITY_MF": [
        {"fromYear": 2025, "toYear": 2030, "rate": 10.0},
        {"fromYear": 2029, "toYear": 2032, "rate": 8.0},
    ]})

    with pytest.raises(ProjectionComputationError):
        service.generate_retirement_matrix(records(), s)


def test_internal_failures_are_wrapped(service, young_saver, monkeypatch):
    recs, s = young_saver

    def broken(*args, **kwargs):
        raise ZeroDivisionError("division by zero")

    monkeypatch.setattr(service, "project", broken)

    with pytest.raises(ProjectionComputationError) as excinfo:
        service.generate_retirement_matrix(recs, s)
    assert isinstance(excinfo.value.__cause__, ZeroDivisionError)


def test_gap_analysis_flags_underfunded_plan(service):
    recs = records(
        holdings=[holding(value=100000.0, monthlySip=5000.0)],
        incomes=[salary(80000.0, 5.0)],
        expenses=[Expense(name="Household", amount=50000.0)],
    )

    gap = service.generate_retirement_matrix(recs, scenario())["gapAnalysis"]

    assert gap["requiredCorpus"] > gap["projectedCorpus"]
    assert not gap["isOnTrack"]
    assert gap["additionalSIPRequired"] > 0
    assert gap["suggestions"][0]["title"] == "Increase monthly SIP"


def test_gap_analysis_required_corpus_by_strategy(service):
    recs = records(expenses=[Expense(name="Household", amount=10000.0)])
    base = {"inflationRate": 0.0, "currentAge": 50, "retirementAge": 60, "lifeExpectancy": 70}

    safe = service.generate_retirement_matrix(recs, scenario(incomeStrategy="SAFE_4_PERCENT", **base))["gapAnalysis"]
    depletion = service.generate_retirement_matrix(recs, scenario(incomeStrategy="SIMPLE_DEPLETION", **base))["gapAnalysis"]
    sustainable = service.generate_retirement_matrix(recs, scenario(incomeStrategy="SUSTAINABLE", corpusReturnRate=8.0, **base))["gapAnalysis"]

    assert safe["requiredCorpus"] == pytest.approx(120000.0 * 25)
    assert depletion["requiredCorpus"] == pytest.approx(120000.0 * 10)
    assert sustainable["requiredCorpus"] == pytest.approx(120000.0 / 0.08)


def test_sip_step_up_can_stop_early_when_well_funded(service):
    recs = records(holdings=[holding(value=20000000.0, monthlySip=10000.0)])

    result = service.generate_retirement_matrix(recs, scenario(sipStepUpPercent=10.0, currentAge=45))
    optimization = result["sipStepUpOptimization"]

    assert result["gapAnalysis"]["isOnTrack"]
    assert optimization["optimalStopYear"] == 1
    assert optimization["canStopEarly"]
    assert optimization["scenarios"][0]["meetsTarget"]


def test_sip_step_up_not_configured(service, young_saver):
    recs, s = young_saver

    optimization = service.generate_retirement_matrix(recs, s.model_copy(update={"sipStepUpPercent": 0.0}))["sipStepUpOptimization"]

    assert optimization["optimalStopYear"] is None
    assert not optimization["canStopEarly"]


def test_run_monte_carlo_returns_plain_dict(service, young_saver):
    recs, s = young_saver

    result = service.run_monte_carlo(recs, s, simulations=30, years=10, seed=11)

    assert set(result["percentiles"]) == {"p10", "p25", "p50", "p75", "p90"}
    assert result["simulations"] == 30
    assert result["years"][0] == 2025


def test_run_monte_carlo_rejects_zero_trials(service, young_saver):
    recs, s = young_saver

    with pytest.raises(ScenarioValidationError):
        service.run_monte_carlo(recs, s, simulations=0)


def test_net_worth(service, home_loan):
    recs = records(
        holdings=[
            holding("Index Fund", value=1000000.0),
            holding("Flat", bucket=AssetBucket.REAL_ESTATE, value=6000000.0),
            holding("Savings", bucket=AssetBucket.CASH, value=200000.0, isEmergencyFund=True),
        ],
        loans=[home_loan],
        policies=[InsurancePolicy(policyName="ULIP", type="ULIP", fundValue=300000.0)],
    )

    worth = service.calculate_net_worth(recs)

    assert worth["totalAssets"] == 7500000.0
    assert worth["totalLiabilities"] == 1200000.0
    assert worth["netWorth"] == 6300000.0
    assert worth["liquidCorpus"] == 1000000.0
    assert worth["emergencyFund"] == 200000.0
    assert worth["sellableAssetsTotal"] == 6000000.0
    assert worth["assetBreakdown"]["REAL_ESTATE"] == 6000000.0


def test_calculate_projections(service):
    recs = records(holdings=[holding(value=100000.0, expectedReturn=10.0)])

    result = service.calculate_projections(recs, years=2)

    assert result["totalProjected"] == pytest.approx(121000.0)
    assert [y["value"] for y in result["yearly"]] == pytest.approx([100000.0, 110000.0, 121000.0])
    assert result["cagr"] == pytest.approx(10.0)


def test_amortization_schedule_output(service, home_loan):
    result = service.amortization_schedule(home_loan)

    assert result["totalPrincipal"] == pytest.approx(1200000.0, abs=0.05)
    assert result["schedule"][-1]["closingBalance"] == 0.0
    assert result["months"] == len(result["schedule"])


def test_maturing_before_retirement(service):
    recs = records(
        holdings=[
            holding("Bank FD", bucket=AssetBucket.FD, value=100000.0, expectedReturn=7.0, maturityDate="2027-04-01"),
            holding("Late FD", bucket=AssetBucket.FD, value=100000.0, maturityDate="2070-01-01"),
        ],
        policies=[InsurancePolicy(policyName="ULIP", type="ULIP", fundValue=500000.0, maturityDate="2030-01-01")],
    )

    result = service.calculate_maturing_before_retirement(recs, current_age=35, retirement_age=60)

    assert result["investmentCount"] == 1
    assert result["maturingInvestments"][0]["expectedMaturityValue"] == pytest.approx(100000.0 * 1.07 ** 2, abs=0.01)
    assert result["maturingInsurance"][0]["expectedMaturityValue"] == pytest.approx(500000.0 * 1.08 ** 5, abs=0.01)


def test_withdrawal_strategy(service):
    recs = records(
        holdings=[
            holding("Savings", bucket=AssetBucket.CASH, value=500000.0),
            holding("Index Fund", value=2000000.0, monthlySip=20000.0),
            holding("PPF", bucket=AssetBucket.PPF, value=800000.0, yearlyContribution=150000.0),
        ],
        expenses=[Expense(name="Household", amount=40000.0)],
    )

    result = service.generate_withdrawal_strategy(recs, current_age=40, retirement_age=60, life_expectancy=85)

    assert [p["phase"] for p in result["phases"]] == [1, 2, 3]
    assert len(result["schedule"]) == 25
    assert result["metrics"]["safeWithdrawal4Percent"] == pytest.approx(result["corpusAtRetirement"] * 0.04, abs=0.01)


def test_analyze_goals(service):
    recs = records(goals=[
        goal(amount=200000.0, isRecurring=True, recurrenceEndYear=2029),
        goal(name="Someday", amount=None, year=None),
    ])

    result = service.analyze_goals(recs)

    assert result["goals"][0]["occurrenceCount"] == 5
    assert result["goals"][0]["totalCost"] == pytest.approx(200000 + 212000 + 224720 + 238203 + 252495)
    assert result["goals"][1]["status"] == "INCOMPLETE"
    assert result["incompleteCount"] == 1


def test_recurring_goals_default_to_retirement_year(service):
    recs = records(goals=[goal(name="Travel", amount=100000.0, year=2026, isRecurring=True)])

    result = service.analyze_goals(recs, scenario())
    occurrences = result["goals"][0]["occurrences"]

    assert occurrences[-1]["year"] == 2050
    assert result["goals"][0]["occurrenceCount"] == 25

    matrix = service.generate_retirement_matrix(recs, scenario())["matrix"]
    assert [row["year"] for row in matrix if row["goalWithdrawals"] > 0][-1] == 2050


def test_drawdown_years_carry_source_breakdown(service, young_saver):
    recs, s = young_saver

    result = service.generate_retirement_matrix(recs, s)
    drawdown = [row for row in result["matrix"] if row["phase"] == "DRAWDOWN"]

    assert all("withdrawalsByBucket" in row for row in drawdown)
    assert all("sources" in entry for entry in result["summary"]["retirementIncomeProjection"])

    strategy = service.generate_withdrawal_strategy(recs, scenario=s)
    for row in strategy["schedule"]:
        assert sum(row["sources"].values()) == pytest.approx(row["withdrawal"], abs=0.05)


@pytest.mark.parametrize("years", [0, -3])
def test_calculate_projections_rejects_non_positive_horizon(service, years):
    recs = records(holdings=[holding(value=100000.0)])

    with pytest.raises(ScenarioValidationError):
        service.calculate_projections(recs, years=years)


def test_calculate_projections_defaults_horizon(service):
    result = service.calculate_projections(records(holdings=[holding(value=100000.0)]))

    assert result["years"] == 10
    assert len(result["yearly"]) == 11
