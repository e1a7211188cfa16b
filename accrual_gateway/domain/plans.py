"""Investment plan catalogue and the funding action's contract"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional

from accrual_gateway.domain.models import Investment, InvestmentStatus, Transaction, TransactionType
from accrual_gateway.utils.date_utils import add_days, ensure_utc, epoch_millis, utc_now


@dataclass(frozen=True)
class InvestmentPlan:
    plan_id: str
    name: str
    amount: Decimal
    return_rate: Decimal
    duration_days: int

    @property
    def daily_return(self) -> Decimal:
        return self.amount * self.return_rate / Decimal(100)

    @property
    def total_return(self) -> Decimal:
        return self.daily_return * self.duration_days


INVESTMENT_PLANS: Dict[str, InvestmentPlan] = {
    plan.plan_id: plan
    for plan in (
        InvestmentPlan("starter", "Starter Ads", Decimal("5000"), Decimal("4.0"), 30),
        InvestmentPlan("basic", "Basic Ads", Decimal("10000"), Decimal("4.0"), 30),
        InvestmentPlan("standard", "Standard Ads", Decimal("20000"), Decimal("4.0"), 30),
        InvestmentPlan("premium", "Premium Ads", Decimal("50000"), Decimal("4.0"), 30),
    )
}


def open_investment(
    plan: InvestmentPlan,
    start_date: Optional[datetime] = None,
    investment_id: Optional[str] = None,
) -> Investment:
    """
    Create a fresh investment for a plan.

    The end date is fixed here (start + duration days) and never changes;
    the accrual job only advances days_processed and total_earned.
    """
    start = ensure_utc(start_date) if start_date else utc_now()
    return Investment(
        investment_id=investment_id or f"inv-{epoch_millis(start)}",
        plan_name=plan.name,
        amount=plan.amount,
        return_rate=plan.return_rate,
        duration_days=plan.duration_days,
        start_date=start,
        end_date=add_days(start, plan.duration_days),
        days_processed=0,
        total_earned=Decimal("0.00"),
        status=InvestmentStatus.ACTIVE.value,
    )


def funding_transaction(account_id: str, investment: Investment) -> Transaction:
    """Ledger entry recorded when an account funds a plan"""
    return Transaction(
        transaction_id=f"invest-{epoch_millis(investment.start_date)}-{account_id}-{investment.investment_id}",
        type=TransactionType.INVESTMENT.value,
        amount=investment.amount,
        date=investment.start_date,
        description=f"Invested in {investment.plan_name}",
        investment_id=investment.investment_id,
    )
