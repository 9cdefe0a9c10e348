import pytest

from wealthpath.models.projection import PayoutKind
from wealthpath.models.records import InsurancePolicy, MoneyBackPayout
from wealthpath.services.payout_scheduler import PayoutScheduler


def test_percentage_payout_of_sum_assured():
    rule = MoneyBackPayout(policyYear=5, percentage=20)

    assert rule.calculate_payout(1000000.0, 0.0) == 200000.0


def test_percentage_payout_with_bonus_share():
    rule = MoneyBackPayout(policyYear=20, percentage=30, includesBonus=True)

    assert rule.calculate_payout(1000000.0, 200000.0) == pytest.approx(360000.0)


def test_percentage_takes_precedence_over_fixed_amount():
    rule = MoneyBackPayout(policyYear=5, percentage=10, fixedAmount=50000.0)

    assert rule.calculate_payout(1000000.0, 0.0) == 100000.0


def test_rule_without_amount_pays_nothing():
    assert MoneyBackPayout(policyYear=5).calculate_payout(1000000.0, 0.0) == 0.0


def test_money_back_schedule_uses_policy_start_year(lic_money_back):
    events = PayoutScheduler.schedule(lic_money_back)

    assert [e.year for e in events] == [2020, 2025, 2030]
    assert [e.amount for e in events] == pytest.approx([300000.0, 450000.0, 900000.0])
    assert all(e.kind == PayoutKind.MONEY_BACK for e in events)
    assert PayoutScheduler.total_money_back(lic_money_back) == pytest.approx(1650000.0)


def test_fixed_amount_payouts():
    policy = InsurancePolicy(
        policyName="HDFC Sanchay",
        type="MONEY_BACK",
        sumAssured=1000000.0,
        startDate="2020-01-15",
        moneyBackPayouts=[
            {"policyYear": 4, "fixedAmount": 100000.0},
            {"policyYear": 8, "fixedAmount": 150000.0},
            {"policyYear": 12, "fixedAmount": 200000.0},
        ],
    )

    assert PayoutScheduler.total_money_back(policy) == 450000.0
    assert [e.year for e in PayoutScheduler.schedule(policy)] == [2024, 2028, 2032]


def test_missing_start_date_skips_money_back():
    policy = InsurancePolicy(policyName="No Start", type="MONEY_BACK", sumAssured=100000.0,
                             moneyBackPayouts=[{"policyYear": 5, "percentage": 20}])

    assert PayoutScheduler.schedule(policy, 2060) == []


def test_non_money_back_policy_has_no_payouts():
    policy = InsurancePolicy(policyName="Term Cover", type="TERM_LIFE", sumAssured=10000000.0, startDate="2020-01-01")

    assert PayoutScheduler.schedule(policy, 2060) == []


def test_annuity_grows_each_year_until_horizon():
    policy = InsurancePolicy(
        policyName="Pension Plan",
        type="ANNUITY",
        annuity={"startYear": 2040, "monthlyAmount": 10000.0, "growthRate": 3.0},
    )

    events = PayoutScheduler.schedule(policy, 2042)

    assert [e.year for e in events] == [2040, 2041, 2042]
    assert events[0].amount == pytest.approx(120000.0)
    assert events[2].amount == pytest.approx(120000.0 * 1.03 ** 2)
    assert all(e.kind == PayoutKind.ANNUITY for e in events)


def test_annuity_without_horizon_yields_nothing():
    policy = InsurancePolicy(policyName="Pension Plan", type="ANNUITY",
                             annuity={"startYear": 2040, "monthlyAmount": 10000.0})

    assert PayoutScheduler.schedule(policy) == []


def test_maturity_benefit_falls_back_to_fund_value():
    ulip = InsurancePolicy(policyName="ULIP", type="ULIP", fundValue=800000.0, maturityDate="2035-06-30")
    endowment = InsurancePolicy(policyName="Endowment", type="ENDOWMENT", fundValue=100.0,
                                maturityBenefit=1200000.0, maturityDate="2038-01-01")

    [ulip_event] = PayoutScheduler.schedule(ulip, 2060)
    [endowment_event] = PayoutScheduler.schedule(endowment, 2060)

    assert (ulip_event.year, ulip_event.amount, ulip_event.kind) == (2035, 800000.0, PayoutKind.MATURITY)
    assert endowment_event.amount == 1200000.0


def test_events_past_horizon_are_dropped(lic_money_back):
    assert [e.year for e in PayoutScheduler.schedule(lic_money_back, 2026)] == [2020, 2025]
