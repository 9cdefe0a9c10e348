from .records import (
    AssetBucket,
    InsuranceType,
    HealthInsuranceType,
    Frequency,
    Priority,
    Relationship,
    IncomeStream,
    InvestmentHolding,
    Loan,
    PremiumSchedule,
    MoneyBackPayout,
    AnnuityTerms,
    InsurancePolicy,
    FamilyMember,
    Goal,
    Expense,
    FinancialRecordSet,
)
from .scenario import (
    IncomeStrategy,
    LumpsumFrequency,
    PeriodReturn,
    ScenarioAssumptions,
)
from .projection import (
    GoalOccurrence,
    AmortizationRow,
    PayoutKind,
    PayoutEvent,
    Phase,
    MaturityRecord,
    ProjectionYear,
    SimulationResult,
)
