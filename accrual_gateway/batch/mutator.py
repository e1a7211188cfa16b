"""Turns computed accrual entries into one account write"""

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, List

from accrual_gateway.domain.models import (
    Account,
    AccountUpdate,
    AccrualEntry,
    Investment,
    InvestmentStatus,
    InvestmentUpdate,
)
from accrual_gateway.domain.store import AccountStore
from accrual_gateway.utils.money import ZERO

logger = logging.getLogger(__name__)


class AccountMutator:
    """Applies a policy's entries to one account through a single store call"""

    def __init__(self, store: AccountStore):
        self.store = store

    def build_update(
        self,
        account: Account,
        entries: List[AccrualEntry],
        accrued_on: date,
        guard_same_day: bool = False,
    ) -> AccountUpdate:
        """
        Fold entries into one AccountUpdate.

        An investment reaching its last processed day is marked completed in
        the same write that pays that day.
        """
        investments: Dict[str, Investment] = {inv.investment_id: inv for inv in account.investments}
        total = sum((entry.balance_delta for entry in entries), ZERO)

        investment_updates = []
        for entry in entries:
            mutation = entry.mutation
            if mutation is None:
                continue
            investment = investments[mutation.investment_id]
            new_days = min(mutation.expected_days_processed + mutation.days_increment, investment.duration_days)
            new_status = (
                InvestmentStatus.COMPLETED.value if new_days >= investment.duration_days else investment.status
            )
            investment_updates.append(
                InvestmentUpdate(
                    investment_id=mutation.investment_id,
                    expected_days_processed=mutation.expected_days_processed,
                    new_days_processed=new_days,
                    earned_delta=mutation.earned_delta,
                    new_status=new_status,
                )
            )

        return AccountUpdate(
            account_id=account.account_id,
            balance_delta=total,
            earnings_delta=total,
            transactions=[entry.transaction for entry in entries],
            investment_updates=investment_updates,
            accrued_on=accrued_on,
            guard_same_day=guard_same_day,
        )

    def apply(
        self,
        account: Account,
        entries: List[AccrualEntry],
        accrued_on: date,
        guard_same_day: bool = False,
    ) -> Decimal:
        """
        Write the accrual and return the amount credited.

        Raises:
            AccountWriteError: The store rejected the write; nothing was applied.
        """
        account_update = self.build_update(account, entries, accrued_on, guard_same_day)
        self.store.apply_update(account_update)

        logger.debug(
            "Account credited",
            extra={
                "account_id": account.account_id,
                "amount": str(account_update.balance_delta),
                "transactions": len(account_update.transactions),
                "completed_investments": sum(
                    1 for u in account_update.investment_updates if u.new_status == InvestmentStatus.COMPLETED.value
                ),
            },
        )
        return account_update.balance_delta
