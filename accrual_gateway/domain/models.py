"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from accrual_gateway.utils.money import ZERO


class InvestmentStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TransactionType(str, Enum):
    DEPOSIT = "deposit"
    INTEREST = "interest"
    WITHDRAWAL = "withdrawal"
    INVESTMENT = "investment"


@dataclass
class Transaction:
    """Immutable ledger line on an account"""

    transaction_id: str
    type: str
    amount: Decimal
    date: datetime
    description: str
    status: str = "completed"
    investment_id: Optional[str] = None


@dataclass
class Investment:
    """Funded, time-bounded interest-bearing position"""

    investment_id: str
    plan_name: str
    amount: Decimal
    return_rate: Decimal  # Percent per day
    duration_days: int
    start_date: datetime
    end_date: datetime
    days_processed: int = 0
    total_earned: Decimal = ZERO
    status: str = InvestmentStatus.ACTIVE.value

    def is_eligible(self, now: datetime) -> bool:
        """Active, not past its end date, and with days left to accrue"""
        return (
            self.status == InvestmentStatus.ACTIVE.value
            and now <= self.end_date
            and self.days_processed < self.duration_days
        )


@dataclass
class Account:
    """A user's financial record"""

    account_id: str
    available_balance: Decimal = ZERO
    total_earnings: Decimal = ZERO
    total_funded_amount: Decimal = ZERO
    investments: List[Investment] = field(default_factory=list)
    transactions: List[Transaction] = field(default_factory=list)
    last_accrued_on: Optional[date] = None


@dataclass(frozen=True)
class InstrumentMutation:
    """Per-investment change produced by an accrual"""

    investment_id: str
    expected_days_processed: int
    days_increment: int
    earned_delta: Decimal


@dataclass(frozen=True)
class AccrualEntry:
    """One credit computed by a policy: (transaction, balance delta, instrument change)"""

    transaction: Transaction
    balance_delta: Decimal
    mutation: Optional[InstrumentMutation] = None


@dataclass(frozen=True)
class InvestmentUpdate:
    """Compare-and-swap update for one investment"""

    investment_id: str
    expected_days_processed: int
    new_days_processed: int
    earned_delta: Decimal
    new_status: str


@dataclass
class AccountUpdate:
    """Everything written for one account in a single store operation"""

    account_id: str
    balance_delta: Decimal
    earnings_delta: Decimal
    transactions: List[Transaction]
    investment_updates: List[InvestmentUpdate]
    accrued_on: date
    guard_same_day: bool = False


@dataclass
class AccountOutcome:
    """Per-account line of a run report"""

    account_id: str
    success: bool
    amount: Optional[Decimal] = None
    error: Optional[str] = None


@dataclass
class RunReport:
    """Aggregate outcome of one batch invocation"""

    started_at: datetime
    finished_at: Optional[datetime] = None
    processed: int = 0
    errors: int = 0
    skipped: int = 0
    total_credited: Decimal = ZERO
    details: List[AccountOutcome] = field(default_factory=list)

    def record_success(self, account_id: str, amount: Decimal) -> None:
        self.processed += 1
        self.total_credited += amount
        self.details.append(AccountOutcome(account_id=account_id, success=True, amount=amount))

    def record_failure(self, account_id: str, error: str) -> None:
        self.errors += 1
        self.details.append(AccountOutcome(account_id=account_id, success=False, error=error))

    def record_skip(self) -> None:
        self.skipped += 1
