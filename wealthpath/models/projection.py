from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .records import AssetBucket

# Cash-flow events


class GoalOccurrence(BaseModel):
    year: int
    amount: float
    label: str
    goalName: Optional[str] = None


class AmortizationRow(BaseModel):
    period: int
    openingBalance: float
    emi: float
    interestPortion: float
    principalPortion: float
    closingBalance: float
    adjustment: float = 0.0


class PayoutKind(str, Enum):
    MONEY_BACK = "MONEY_BACK"
    ANNUITY = "ANNUITY"
    MATURITY = "MATURITY"


class PayoutEvent(BaseModel):
    year: int
    amount: float
    source: str
    kind: PayoutKind


# Projection Models


class Phase(str, Enum):
    ACCUMULATION = "ACCUMULATION"
    DRAWDOWN = "DRAWDOWN"


class MaturityRecord(BaseModel):
    name: str
    kind: str  # HOLDING, LOAN, POLICY
    amount: float = 0.0


class ProjectionYear(BaseModel):
    year: int
    age: int
    phase: Phase
    openingByBucket: Dict[AssetBucket, float] = Field(default_factory=dict)
    contributions: float = 0.0
    goalWithdrawals: float = 0.0
    retirementWithdrawals: float = 0.0
    loanPayments: float = 0.0
    inflows: float = 0.0
    growth: float = 0.0
    withdrawalsByBucket: Dict[AssetBucket, float] = Field(default_factory=dict)
    closingByBucket: Dict[AssetBucket, float] = Field(default_factory=dict)
    openingCorpus: float = 0.0
    closingCorpus: float = 0.0
    shortfall: bool = False
    shortfallAmount: float = 0.0
    goalsThisYear: List[GoalOccurrence] = Field(default_factory=list)
    maturities: List[MaturityRecord] = Field(default_factory=list)
    rates: Dict[AssetBucket, float] = Field(default_factory=dict)


# Simulation Models


class SimulationResult(BaseModel):
    years: List[int]
    ages: List[int]
    percentiles: Dict[str, List[float]]  # "p10" ... "p90" -> corpus by year
    terminalPercentiles: Dict[str, float]
    meanTerminalCorpus: float
    successProbability: float  # 0-100
    typicalTrajectory: List[float]
    simulations: int
    seed: Optional[int] = None
