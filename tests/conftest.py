import pytest

from tests.helpers import AS_OF, holding, records, salary, scenario
from wealthpath.models.records import InsurancePolicy, Loan
from wealthpath.services.retirement_service import RetirementService


@pytest.fixture
def service() -> RetirementService:
    return RetirementService(as_of=AS_OF)


@pytest.fixture
def home_loan() -> Loan:
    return Loan(
        name="Home Loan",
        type="HOME",
        originalAmount=3000000.0,
        outstandingAmount=1200000.0,
        emi=25000.0,
        interestRate=8.5,
        tenureMonths=240,
        remainingMonths=60,
    )


@pytest.fixture
def lic_money_back() -> InsurancePolicy:
    return InsurancePolicy(
        policyName="LIC Money Back",
        type="MONEY_BACK",
        sumAssured=1500000.0,
        bonusAccrued=300000.0,
        startDate="2015-03-01",
        moneyBackPayouts=[
            {"policyYear": 5, "percentage": 20},
            {"policyYear": 10, "percentage": 30},
            {"policyYear": 15, "percentage": 50, "includesBonus": True},
        ],
    )


@pytest.fixture
def young_saver():
    """30/60/85 saver with one salary and one equity SIP, nothing else."""
    return (
        records(
            incomes=[salary(100000.0, 7.0)],
            holdings=[holding(value=500000.0, expectedReturn=12.0, monthlySip=10000.0)],
        ),
        scenario(currentAge=30, retirementAge=60, lifeExpectancy=85, sipStepUpPercent=10.0),
    )
