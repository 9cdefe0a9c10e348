import logging
from typing import List, Optional

from wealthpath.models.records import InsurancePolicy, InsuranceType
from wealthpath.models.projection import PayoutEvent, PayoutKind

logger = logging.getLogger(__name__)

MATURING_POLICY_TYPES = (InsuranceType.ULIP, InsuranceType.ENDOWMENT, InsuranceType.MONEY_BACK)


class PayoutScheduler:
    """
    Turns insurance policies into dated cash inflows: money-back installments,
    annuity income and maturity benefits.
    """

    @staticmethod
    def money_back_events(policy: InsurancePolicy) -> List[PayoutEvent]:
        if not policy.moneyBackPayouts:
            return []
        if policy.startDate is None:
            logger.warning(f"Policy '{policy.policyName}' has money-back rules but no start date; skipping payouts")
            return []

        events = []
        for rule in policy.moneyBackPayouts:
            events.append(PayoutEvent(
                year=policy.startDate.year + rule.policyYear,
                amount=rule.calculate_payout(policy.sumAssured, policy.bonusAccrued),
                source=policy.policyName,
                kind=PayoutKind.MONEY_BACK,
            ))
        return events

    @staticmethod
    def annuity_events(policy: InsurancePolicy, horizon_end_year: Optional[int]) -> List[PayoutEvent]:
        terms = policy.annuity
        if terms is None or horizon_end_year is None:
            return []

        events = []
        for year in range(terms.startYear, horizon_end_year + 1):
            amount = terms.monthlyAmount * 12 * (1 + terms.growthRate / 100) ** (year - terms.startYear)
            events.append(PayoutEvent(year=year, amount=amount, source=policy.policyName, kind=PayoutKind.ANNUITY))
        return events

    @staticmethod
    def maturity_event(policy: InsurancePolicy) -> Optional[PayoutEvent]:
        if policy.type not in MATURING_POLICY_TYPES or policy.maturityDate is None:
            return None
        benefit = policy.maturityBenefit if policy.maturityBenefit is not None else policy.fundValue
        if not benefit:
            return None
        return PayoutEvent(year=policy.maturityDate.year, amount=benefit, source=policy.policyName, kind=PayoutKind.MATURITY)

    @staticmethod
    def schedule(policy: InsurancePolicy, horizon_end_year: Optional[int] = None) -> List[PayoutEvent]:
        """
        All payout events for a policy, ordered by year.

        Annuity income is open-ended, so it is only emitted when a horizon is given.
        Events past the horizon are dropped.
        """
        events = PayoutScheduler.money_back_events(policy)
        events.extend(PayoutScheduler.annuity_events(policy, horizon_end_year))

        maturity = PayoutScheduler.maturity_event(policy)
        if maturity is not None:
            events.append(maturity)

        if horizon_end_year is not None:
            events = [e for e in events if e.year <= horizon_end_year]

        return sorted(events, key=lambda e: e.year)

    @staticmethod
    def total_money_back(policy: InsurancePolicy) -> float:
        return sum(rule.calculate_payout(policy.sumAssured, policy.bonusAccrued) for rule in policy.moneyBackPayouts)
