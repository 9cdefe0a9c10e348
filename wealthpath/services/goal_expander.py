import logging
import math
from typing import List, Optional

from wealthpath.models.records import Goal
from wealthpath.models.projection import GoalOccurrence

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> float:
    return float(math.floor(value + 0.5))


class GoalExpander:
    """
    Expands goals into dated cash outflows.

    A one-time goal produces a single occurrence at its target year. A recurring goal
    repeats every `recurrenceInterval` years from its target year until its end year
    (or `default_end_year`, normally the retirement year), never past the projection
    horizon, growing with inflation unless the goal opts out.
    """

    @staticmethod
    def expand(
        goal: Goal,
        horizon_end_year: int,
        inflation_rate: float,
        default_end_year: Optional[int] = None,
    ) -> List[GoalOccurrence]:
        if goal.targetAmount is None or goal.targetYear is None:
            logger.warning(f"Skipping goal '{goal.name}': missing target amount or target year")
            return []

        if not goal.isRecurring:
            return [GoalOccurrence(year=goal.targetYear, amount=goal.targetAmount, label=goal.name, goalName=goal.name)]

        interval = goal.recurrenceInterval or 1
        end_year = goal.recurrenceEndYear
        if end_year is None:
            end_year = default_end_year if default_end_year is not None else horizon_end_year
        end_year = min(end_year, horizon_end_year)

        rate = goal.customInflationRate if goal.customInflationRate is not None else inflation_rate
        adjust = goal.adjustForInflation is not False

        occurrences = []
        year = goal.targetYear
        while year <= end_year:
            elapsed = year - goal.targetYear
            amount = goal.targetAmount
            if adjust and elapsed > 0:
                amount = round_half_up(goal.targetAmount * (1 + rate / 100) ** elapsed)

            label = f"{goal.name} ({year})" if interval > 1 else goal.name
            occurrences.append(GoalOccurrence(year=year, amount=amount, label=label, goalName=goal.name))
            year += interval

        return occurrences

    @staticmethod
    def total_cost(goal: Goal, horizon_end_year: int, inflation_rate: float, default_end_year: Optional[int] = None) -> float:
        return sum(o.amount for o in GoalExpander.expand(goal, horizon_end_year, inflation_rate, default_end_year))

    @staticmethod
    def occurrence_count(goal: Goal, horizon_end_year: int, default_end_year: Optional[int] = None) -> int:
        return len(GoalExpander.expand(goal, horizon_end_year, 0.0, default_end_year))
