import logging
import math
import time
from concurrent.futures import ProcessPoolExecutor
from datetime import date
from typing import Dict, List, Optional, Tuple

import numpy as np

from wealthpath.core.config import settings
from wealthpath.core.exceptions import ScenarioValidationError
from wealthpath.models.records import AssetBucket, FinancialRecordSet
from wealthpath.models.scenario import ScenarioAssumptions
from wealthpath.models.projection import SimulationResult
from wealthpath.services.corpus_projector import CorpusProjector
from wealthpath.services.financial_assumptions_service import FinancialAssumptionsService
from wealthpath.services.return_schedule import ReturnScheduleResolver

logger = logging.getLogger(__name__)

PERCENTILES = [10, 25, 50, 75, 90]
# A year can lose at most this much (%)
RETURN_FLOOR = -95.0


class PerturbedRates:
    """Scheduled rates plus one trial's random noise, indexed by projection year."""

    def __init__(self, resolver: ReturnScheduleResolver, noise: Dict[AssetBucket, np.ndarray], start_year: int):
        self.resolver = resolver
        self.noise = noise
        self.start_year = start_year

    def rate_for(self, bucket: AssetBucket, year: int) -> float:
        rate = self.resolver.rate_for(bucket, year)
        shocks = self.noise.get(bucket)
        if shocks is not None:
            rate += float(shocks[year - self.start_year])
        return max(RETURN_FLOOR, rate)


def _run_trials(
    records: FinancialRecordSet,
    scenario: ScenarioAssumptions,
    default_returns: Dict[AssetBucket, float],
    holding_returns: Dict[AssetBucket, float],
    volatility: Dict[AssetBucket, float],
    years: int,
    entropy: int,
    trial_indices: List[int],
) -> List[Tuple[List[float], bool]]:
    """
    Runs a batch of trials. Lives at module level so it can be shipped to worker processes.

    Each trial draws from its own generator seeded by (entropy, trial index), so a trial's
    outcome does not depend on which batch or process ran it.
    """
    resolver = ReturnScheduleResolver(scenario, default_returns, holding_returns)
    outcomes = []
    for i in trial_indices:
        rng = np.random.default_rng(np.random.SeedSequence(entropy, spawn_key=(i,)))
        noise = {bucket: rng.normal(0.0, volatility.get(bucket, 0.0), years) for bucket in AssetBucket}
        rates = PerturbedRates(resolver, noise, scenario.startYear)
        rows = CorpusProjector(records, scenario, rates, years=years).project()
        outcomes.append(([r.closingCorpus for r in rows], any(r.shortfall for r in rows)))
    return outcomes


class MonteCarloService:
    @staticmethod
    def run_simulation(
        records: FinancialRecordSet,
        scenario: ScenarioAssumptions,
        num_simulations: Optional[int] = None,
        years: Optional[int] = None,
        seed: Optional[int] = None,
        workers: Optional[int] = None,
        default_returns: Optional[Dict[AssetBucket, float]] = None,
        holding_returns: Optional[Dict[AssetBucket, float]] = None,
        volatility: Optional[Dict[AssetBucket, float]] = None,
    ) -> SimulationResult:
        """
        Runs a Monte Carlo simulation of the corpus projection.

        Every trial perturbs each bucket's scheduled return with normal noise (sigma from
        the volatility table) and runs the full deterministic projection on those rates.
        Results are aggregated only after all trials finish.

        Args:
            num_simulations (int): Number of trials. Defaults to settings.MC_DEFAULT_SIMULATIONS.
            years (int): Projection horizon. None projects to life expectancy.
            seed (int): Base seed. The same seed and inputs give identical results;
                None draws fresh entropy.
            workers (int): Worker processes. Results do not depend on this value.

        Returns:
            SimulationResult: percentile trajectories, terminal percentiles, mean terminal
            corpus, success probability and the typical (median) trajectory.
        """
        if num_simulations is None:
            num_simulations = settings.MC_DEFAULT_SIMULATIONS
        if years is None:
            years = scenario.totalYears
        workers = workers or settings.MC_WORKERS

        if num_simulations <= 0:
            raise ScenarioValidationError(f"Number of simulations must be positive, got {num_simulations}")
        if years <= 0:
            raise ScenarioValidationError(f"Simulation horizon must be positive, got {years}")

        if scenario.startYear is None:
            scenario = scenario.model_copy(update={"startYear": date.today().year})

        assumptions = FinancialAssumptionsService()
        default_returns = default_returns or assumptions.get_default_returns()
        volatility = volatility or assumptions.get_volatility()
        holding_returns = holding_returns or {}

        entropy = seed if seed is not None else np.random.SeedSequence().entropy
        started = time.perf_counter()

        # 1. Run trials
        indices = list(range(num_simulations))
        args = (records, scenario, default_returns, holding_returns, volatility, years, entropy)
        if workers > 1 and num_simulations > 1:
            chunk = math.ceil(num_simulations / workers)
            batches = [indices[i:i + chunk] for i in range(0, num_simulations, chunk)]
            outcomes = []
            with ProcessPoolExecutor(max_workers=workers) as executor:
                futures = [executor.submit(_run_trials, *args, batch) for batch in batches]
                for future in futures:
                    outcomes.extend(future.result())
        else:
            outcomes = _run_trials(*args, indices)

        # 2. Aggregate
        trajectories = np.array([o[0] for o in outcomes])
        failures = np.array([o[1] for o in outcomes])
        terminal = trajectories[:, -1]

        percentiles = {}
        terminal_percentiles = {}
        for p in PERCENTILES:
            ts = np.percentile(trajectories, p, axis=0)
            percentiles[f"p{p}"] = ts.tolist()
            terminal_percentiles[f"p{p}"] = float(ts[-1])

        median_terminal = np.median(terminal)
        typical_index = int(np.argmin(np.abs(terminal - median_terminal)))
        success_probability = float(np.sum(~failures)) / num_simulations * 100.0

        elapsed = time.perf_counter() - started
        logger.info(
            f"Monte Carlo finished: {num_simulations} trials over {years} years, "
            f"success {success_probability:.1f}%, {elapsed:.2f}s"
        )

        return SimulationResult(
            years=[scenario.startYear + k for k in range(years)],
            ages=[scenario.currentAge + k for k in range(years)],
            percentiles=percentiles,
            terminalPercentiles=terminal_percentiles,
            meanTerminalCorpus=float(np.mean(terminal)),
            successProbability=round(success_probability, 1),
            typicalTrajectory=trajectories[typical_index].tolist(),
            simulations=num_simulations,
            seed=seed,
        )
