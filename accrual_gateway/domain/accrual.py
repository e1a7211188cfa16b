"""Accrual policies - core business logic for daily interest

Both strategies are pure: they read an Account snapshot and return the
entries to credit. Applying them is the mutator's job.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from accrual_gateway.domain.models import (
    Account,
    AccrualEntry,
    InstrumentMutation,
    Investment,
    Transaction,
    TransactionType,
)
from accrual_gateway.utils.date_utils import epoch_millis
from accrual_gateway.utils.money import ZERO, format_rate, percent_of


def make_transaction_id(run_started_at: datetime, account_id: str, investment_id: Optional[str] = None) -> str:
    """
    Deterministic transaction id for one credit in one run.

    The same (run, account, instrument) always yields the same id, so a
    replayed write for the same run is rejected by the store's unique key.
    """
    parts = ["interest", str(epoch_millis(run_started_at)), account_id]
    if investment_id is not None:
        parts.append(investment_id)
    return "-".join(parts)


class AccrualPolicy(ABC):
    """Strategy computing one day's interest for one account"""

    name: str = ""

    @abstractmethod
    def is_candidate(self, account: Account) -> bool:
        """Cheap pre-check; False means the account can be skipped outright"""

    @abstractmethod
    def compute(self, account: Account, as_of: datetime) -> List[AccrualEntry]:
        """
        Return the entries to credit for a run at `as_of`; never mutates `account`.

        `as_of` is both the eligibility reference time and the transaction
        timestamp, so every credit in one run shares it.
        """


class PerInstrumentPolicy(AccrualPolicy):
    """
    Pay each eligible investment its own daily rate.

    dailyInterest = amount * returnRate / 100, one `interest` transaction per
    instrument, and the instrument advances by one processed day.
    """

    name = "per_instrument"

    def is_candidate(self, account: Account) -> bool:
        return bool(account.investments)

    def compute(self, account: Account, as_of: datetime) -> List[AccrualEntry]:
        entries = []
        for investment in account.investments:
            if not investment.is_eligible(as_of):
                continue
            entries.append(self._entry_for(account, investment, as_of))
        return entries

    def _entry_for(self, account: Account, investment: Investment, as_of: datetime) -> AccrualEntry:
        daily_interest = percent_of(investment.amount, investment.return_rate)
        transaction = Transaction(
            transaction_id=make_transaction_id(as_of, account.account_id, investment.investment_id),
            type=TransactionType.INTEREST.value,
            amount=daily_interest,
            date=as_of,
            description=f"{format_rate(investment.return_rate)}% Daily interest on {investment.plan_name}",
            investment_id=investment.investment_id,
        )
        mutation = InstrumentMutation(
            investment_id=investment.investment_id,
            expected_days_processed=investment.days_processed,
            days_increment=1,
            earned_delta=daily_interest,
        )
        return AccrualEntry(transaction=transaction, balance_delta=daily_interest, mutation=mutation)


class FlatRatePolicy(AccrualPolicy):
    """
    Pay one global rate on everything the user has funded.

    interestAmount = totalFundedAmount * rate / 100, credited as a single
    `deposit` transaction; investments are left untouched.
    """

    name = "flat_rate"

    def __init__(self, rate_percent: Decimal):
        if rate_percent < 0:
            raise ValueError(f"Interest rate must be non-negative, got {rate_percent}")
        self.rate_percent = rate_percent

    def is_candidate(self, account: Account) -> bool:
        return account.total_funded_amount > ZERO

    def compute(self, account: Account, as_of: datetime) -> List[AccrualEntry]:
        if not self.is_candidate(account):
            return []

        interest_amount = percent_of(account.total_funded_amount, self.rate_percent)
        if interest_amount <= ZERO:
            return []

        transaction = Transaction(
            transaction_id=make_transaction_id(as_of, account.account_id),
            type=TransactionType.DEPOSIT.value,
            amount=interest_amount,
            date=as_of,
            description=f"{format_rate(self.rate_percent)}% Daily interest on funded amount",
        )
        return [AccrualEntry(transaction=transaction, balance_delta=interest_amount)]


def build_policy(policy_name: str, rate_percent: Decimal) -> AccrualPolicy:
    """Select the deployment-wide accrual strategy"""
    if policy_name == PerInstrumentPolicy.name:
        return PerInstrumentPolicy()
    if policy_name == FlatRatePolicy.name:
        return FlatRatePolicy(rate_percent)
    raise ValueError(f"Unknown accrual policy: {policy_name}")
