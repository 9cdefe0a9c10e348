import logging
from datetime import date
from typing import Dict, Optional

from wealthpath.core.exceptions import ProjectionComputationError
from wealthpath.models.records import AssetBucket
from wealthpath.models.scenario import ScenarioAssumptions

logger = logging.getLogger(__name__)


class ReturnScheduleResolver:
    """
    Resolves the annual return (%) for a bucket in a calendar year.

    Precedence:
        1. A period override whose range contains the year.
        2. The simple rate: scenario return, else the value-weighted expected return
           of the user's holdings in that bucket, else the configured default.
           Before the scenario's effective year the scenario return is ignored.
        3. Rate reduction for the configured buckets, stepping down every
           `rateReductionYears` from the projection start, never below `rateFloor`.
    """

    def __init__(
        self,
        scenario: ScenarioAssumptions,
        default_returns: Dict[AssetBucket, float],
        holding_returns: Optional[Dict[AssetBucket, float]] = None,
    ):
        self.scenario = scenario
        self.default_returns = default_returns
        self.holding_returns = holding_returns or {}
        self.start_year = scenario.startYear if scenario.startYear is not None else date.today().year
        self.effective_year = self.start_year + scenario.effectiveFromYear
        self._validate_overrides()

    def _validate_overrides(self) -> None:
        for bucket, periods in self.scenario.periodReturns.items():
            for p in periods:
                if p.fromYear > p.toYear:
                    raise ProjectionComputationError(
                        f"Return override for {bucket.value} has fromYear {p.fromYear} after toYear {p.toYear}"
                    )
            ordered = sorted(periods, key=lambda p: p.fromYear)
            for prev, nxt in zip(ordered, ordered[1:]):
                if nxt.fromYear <= prev.toYear:
                    raise ProjectionComputationError(
                        f"Overlapping return overrides for {bucket.value}: "
                        f"{prev.fromYear}-{prev.toYear} and {nxt.fromYear}-{nxt.toYear}"
                    )

    def base_rate(self, bucket: AssetBucket) -> float:
        """Rate that applies before scenario adjustments take effect."""
        if bucket in self.holding_returns:
            return self.holding_returns[bucket]
        return self.default_returns.get(bucket, self.default_returns.get(AssetBucket.OTHER, 0.0))

    def simple_rate(self, bucket: AssetBucket, year: int) -> float:
        if year >= self.effective_year and bucket in self.scenario.returns:
            return self.scenario.returns[bucket]
        return self.base_rate(bucket)

    def rate_for(self, bucket: AssetBucket, year: int) -> float:
        # 1. Explicit override range
        for period in self.scenario.periodReturns.get(bucket, []):
            if period.covers(year):
                return period.rate

        # 2. Simple rate
        rate = self.simple_rate(bucket, year)

        # 3. Rate reduction
        s = self.scenario
        if s.enableRateReduction and bucket in s.rateReductionBuckets:
            steps = max(0, year - self.start_year) // s.rateReductionYears
            if steps > 0:
                rate = min(rate, max(s.rateFloor, rate - steps * s.rateReductionPercent))

        return rate

    def rates_for_year(self, year: int) -> Dict[AssetBucket, float]:
        return {bucket: self.rate_for(bucket, year) for bucket in AssetBucket}


def weighted_holding_returns(holdings) -> Dict[AssetBucket, float]:
    """Value-weighted expected return per bucket, for holdings that state one."""
    totals: Dict[AssetBucket, float] = {}
    weights: Dict[AssetBucket, float] = {}
    for h in holdings:
        if h.expectedReturn is None:
            continue
        # a holding with no value yet still counts through its SIP
        weight = h.value if h.value > 0 else (h.monthlySip or 0) * 12
        if weight <= 0:
            weight = 1.0
        totals[h.bucket] = totals.get(h.bucket, 0.0) + h.expectedReturn * weight
        weights[h.bucket] = weights.get(h.bucket, 0.0) + weight
    return {b: totals[b] / weights[b] for b in totals}
