import pytest

from tests.helpers import holding, scenario
from wealthpath.core.exceptions import ProjectionComputationError
from wealthpath.models.records import AssetBucket
from wealthpath.services.return_schedule import ReturnScheduleResolver, weighted_holding_returns

DEFAULTS = {bucket: 7.0 for bucket in AssetBucket}
DEFAULTS[AssetBucket.EQUITY_MF] = 12.0
DEFAULTS[AssetBucket.PPF] = 7.1


def test_period_override_wins_inside_its_range():
    s = scenario(
        returns={"EQUITY_MF": 11.0},
        periodReturns={"EQUITY_MF": [{"fromYear": 2027, "toYear": 2029, "rate": 5.0}]},
    )
    resolver = ReturnScheduleResolver(s, DEFAULTS)

    assert resolver.rate_for(AssetBucket.EQUITY_MF, 2028) == 5.0
    assert resolver.rate_for(AssetBucket.EQUITY_MF, 2030) == 11.0


def test_scenario_rate_then_holding_rate_then_default():
    s = scenario(returns={"EQUITY_MF": 11.0}, effectiveFromYear=0)
    resolver = ReturnScheduleResolver(s, DEFAULTS, {AssetBucket.EQUITY_MF: 14.0, AssetBucket.GOLD: 9.0})

    assert resolver.rate_for(AssetBucket.EQUITY_MF, 2025) == 11.0
    assert resolver.rate_for(AssetBucket.GOLD, 2025) == 9.0
    assert resolver.rate_for(AssetBucket.CASH, 2025) == 7.0


def test_scenario_rate_applies_from_effective_year():
    s = scenario(returns={"EQUITY_MF": 10.0}, effectiveFromYear=2)
    resolver = ReturnScheduleResolver(s, DEFAULTS)

    assert resolver.rate_for(AssetBucket.EQUITY_MF, 2025) == 12.0
    assert resolver.rate_for(AssetBucket.EQUITY_MF, 2026) == 12.0
    assert resolver.rate_for(AssetBucket.EQUITY_MF, 2027) == 10.0


def test_rate_reduction_steps_down_without_compounding():
    s = scenario(enableRateReduction=True, rateReductionPercent=0.5, rateReductionYears=5)
    resolver = ReturnScheduleResolver(s, DEFAULTS)

    assert resolver.rate_for(AssetBucket.PPF, 2025) == pytest.approx(7.1)
    assert resolver.rate_for(AssetBucket.PPF, 2029) == pytest.approx(7.1)
    assert resolver.rate_for(AssetBucket.PPF, 2030) == pytest.approx(6.6)
    assert resolver.rate_for(AssetBucket.PPF, 2040) == pytest.approx(5.6)
    # equity is not in the reduction set
    assert resolver.rate_for(AssetBucket.EQUITY_MF, 2040) == 12.0


def test_rate_reduction_respects_floor():
    s = scenario(enableRateReduction=True, rateReductionPercent=1.0, rateReductionYears=1, rateFloor=4.0)
    resolver = ReturnScheduleResolver(s, DEFAULTS)

    assert resolver.rate_for(AssetBucket.FD, 2027) == pytest.approx(5.0)
    assert resolver.rate_for(AssetBucket.FD, 2060) == pytest.approx(4.0)


def test_overlapping_overrides_are_rejected():
    s = scenario(periodReturns={"DEBT_MF": [
        {"fromYear": 2025, "toYear": 2030, "rate": 7.0},
        {"fromYear": 2030, "toYear": 2035, "rate": 6.0},
    ]})

    with pytest.raises(ProjectionComputationError):
        ReturnScheduleResolver(s, DEFAULTS)


def test_inverted_override_range_is_rejected():
    s = scenario(periodReturns={"DEBT_MF": [{"fromYear": 2031, "toYear": 2030, "rate": 7.0}]})

    with pytest.raises(ProjectionComputationError):
        ReturnScheduleResolver(s, DEFAULTS)


def test_zero_rate_is_valid():
    s = scenario(returns={"CASH": 0.0}, effectiveFromYear=0)

    assert ReturnScheduleResolver(s, DEFAULTS).rate_for(AssetBucket.CASH, 2030) == 0.0


def test_holding_returns_are_value_weighted():
    holdings = [
        holding("A", value=300000.0, expectedReturn=10.0),
        holding("B", value=100000.0, expectedReturn=14.0),
        holding("C", bucket=AssetBucket.FD, value=50000.0),
    ]

    rates = weighted_holding_returns(holdings)

    assert rates == {AssetBucket.EQUITY_MF: pytest.approx(11.0)}
