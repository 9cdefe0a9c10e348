import logging
from typing import List

from wealthpath.models.records import Loan
from wealthpath.models.projection import AmortizationRow

logger = logging.getLogger(__name__)

# Balances below this are treated as settled (sub-paisa float residue)
SETTLED_BALANCE = 0.005


class AmortizationCalculator:
    @staticmethod
    def calculate_emi(principal: float, annual_rate: float, months: int) -> float:
        """
        Standard reducing-balance EMI.
        EMI = P * r * (1+r)^n / ((1+r)^n - 1), with r the monthly rate.
        """
        if months <= 0:
            return 0.0
        monthly_rate = annual_rate / 100 / 12
        if monthly_rate == 0:
            return principal / months
        factor = (1 + monthly_rate) ** months
        return principal * monthly_rate * factor / (factor - 1)

    @staticmethod
    def remaining_moratorium(loan: Loan) -> int:
        if not loan.moratoriumMonths:
            return 0
        elapsed = (loan.tenureMonths - loan.remainingMonths) if loan.tenureMonths else 0
        return max(0, loan.moratoriumMonths - max(0, elapsed))

    @staticmethod
    def schedule(loan: Loan) -> List[AmortizationRow]:
        """
        Month-by-month schedule for the remaining life of a loan.

        The stored EMI is trusted as-is. The period that clears the balance (the final one,
        or an earlier one when the EMI overpays) settles whatever is left, and its difference
        from the stored EMI is recorded in `adjustment`. Months still under moratorium pay
        interest only.

        Returns:
            List[AmortizationRow]: one row per month until the balance is cleared.
        """
        if loan.outstandingAmount <= 0:
            return []
        if loan.remainingMonths <= 0:
            logger.warning(f"Loan '{loan.name}' has an outstanding balance but no remaining months")
            return []

        monthly_rate = loan.interestRate / 100 / 12
        moratorium = AmortizationCalculator.remaining_moratorium(loan)
        months = loan.remainingMonths

        rows = []
        balance = loan.outstandingAmount
        for period in range(1, months + 1):
            if balance <= SETTLED_BALANCE:
                break

            opening = balance
            interest = opening * monthly_rate
            adjustment = 0.0

            if period <= moratorium:
                principal = 0.0
                payment = interest
            elif period == months:
                principal = opening
                payment = interest + principal
                adjustment = payment - loan.emi
            else:
                principal = min(max(loan.emi - interest, 0.0), opening)
                payment = interest + principal

            balance = opening - principal
            if balance <= SETTLED_BALANCE:
                balance = 0.0
                if moratorium < period < months:
                    # settled ahead of schedule
                    principal = opening
                    payment = interest + principal
                    adjustment = payment - loan.emi

            rows.append(AmortizationRow(
                period=period,
                openingBalance=opening,
                emi=payment,
                interestPortion=interest,
                principalPortion=principal,
                closingBalance=balance,
                adjustment=adjustment,
            ))

        return rows

    @staticmethod
    def yearly_payments(loan: Loan) -> List[float]:
        """Total paid per projection year (12 periods each), starting with year 0."""
        totals: List[float] = []
        for row in AmortizationCalculator.schedule(loan):
            index = (row.period - 1) // 12
            while len(totals) <= index:
                totals.append(0.0)
            totals[index] += row.emi
        return totals

    @staticmethod
    def payoff_year_index(loan: Loan) -> int:
        """Projection year in which the last payment falls, or -1 if nothing is owed."""
        rows = AmortizationCalculator.schedule(loan)
        if not rows:
            return -1
        return (rows[-1].period - 1) // 12
