"""Data access layer for accounts and their accruals"""

from typing import Callable, List, Optional
from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload
from accrual_gateway.infrastructure.database.models import AccountTransaction, InvestmentRecord, UserAccount
from accrual_gateway.domain.exceptions import (
    AccountNotFoundError,
    AccountReadError,
    AccountWriteError,
    AlreadyAccruedError,
    ConcurrentModificationError,
    EnumerationError,
)
from accrual_gateway.domain.models import Account, AccountUpdate, Investment, InvestmentStatus, Transaction
from accrual_gateway.utils.date_utils import ensure_utc
from accrual_gateway.utils.money import to_decimal


class AccountRepository:
    """
    SQLAlchemy-backed AccountStore.

    Every public method opens its own short-lived session, so one repository
    can be shared by worker threads processing different accounts.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def list_account_ids(self, after: Optional[str], limit: int) -> List[str]:
        """Keyset-paginated account ids"""
        query = select(UserAccount.id).order_by(UserAccount.id).limit(limit)
        if after is not None:
            query = query.where(UserAccount.id > after)

        try:
            with self.session_factory() as session:
                return list(session.scalars(query))
        except SQLAlchemyError as e:
            raise EnumerationError(f"Could not list accounts: {e}") from e

    def get_account(self, account_id: str, include_transactions: bool = False) -> Account:
        """
        Load one account with its investments.

        Transaction history is only loaded on request; accrual never needs it.
        """
        options = [selectinload(UserAccount.investments)]
        if include_transactions:
            options.append(selectinload(UserAccount.transactions))

        try:
            with self.session_factory() as session:
                row = session.scalars(
                    select(UserAccount).where(UserAccount.id == account_id).options(*options)
                ).first()
                if row is None:
                    raise AccountNotFoundError(account_id, f"Account {account_id} not found")
                return _to_domain(row, include_transactions)
        except SQLAlchemyError as e:
            raise AccountReadError(account_id, f"Could not read account: {e}") from e

    def apply_update(self, account_update: AccountUpdate) -> None:
        """
        Apply one account's accrual in a single database transaction.

        Balances use in-place increments so concurrent credits from other
        writers are preserved. Investments are compare-and-swapped on
        days_processed; any miss rolls back the whole account.
        """
        account_id = account_update.account_id
        try:
            with self.session_factory() as session, session.begin():
                self._increment_balances(session, account_update)

                for inv in account_update.investment_updates:
                    result = session.execute(
                        update(InvestmentRecord)
                        .where(
                            InvestmentRecord.id == inv.investment_id,
                            InvestmentRecord.account_id == account_id,
                            InvestmentRecord.days_processed == inv.expected_days_processed,
                            InvestmentRecord.status == InvestmentStatus.ACTIVE.value,
                        )
                        .values(
                            days_processed=inv.new_days_processed,
                            total_earned=InvestmentRecord.total_earned + inv.earned_delta,
                            status=inv.new_status,
                        )
                        .execution_options(synchronize_session=False)
                    )
                    if result.rowcount != 1:
                        raise ConcurrentModificationError(
                            account_id, f"Investment {inv.investment_id} changed since it was read"
                        )

                session.add_all(_to_row(account_id, txn) for txn in account_update.transactions)
                session.flush()
        except IntegrityError as e:
            raise AccountWriteError(account_id, f"Duplicate or invalid transaction: {e.orig}") from e
        except SQLAlchemyError as e:
            raise AccountWriteError(account_id, f"Could not write account: {e}") from e

    def _increment_balances(self, session: Session, account_update: AccountUpdate) -> None:
        account_id = account_update.account_id
        stmt = (
            update(UserAccount)
            .where(UserAccount.id == account_id)
            .values(
                available_balance=UserAccount.available_balance + account_update.balance_delta,
                total_earnings=UserAccount.total_earnings + account_update.earnings_delta,
                last_accrued_on=account_update.accrued_on,
            )
            .execution_options(synchronize_session=False)
        )
        if account_update.guard_same_day:
            stmt = stmt.where(
                or_(
                    UserAccount.last_accrued_on.is_(None),
                    UserAccount.last_accrued_on < account_update.accrued_on,
                )
            )

        if session.execute(stmt).rowcount == 1:
            return

        exists = session.scalar(select(UserAccount.id).where(UserAccount.id == account_id))
        if exists is None:
            raise AccountWriteError(account_id, f"Account {account_id} no longer exists")
        raise AlreadyAccruedError(account_id, f"Account already accrued on {account_update.accrued_on.isoformat()}")

    def create_account(self, account: Account) -> None:
        """Insert an account with its investments and history (funding/seeding path)"""
        row = UserAccount(
            id=account.account_id,
            available_balance=account.available_balance,
            total_earnings=account.total_earnings,
            total_funded_amount=account.total_funded_amount,
            last_accrued_on=account.last_accrued_on,
        )
        row.investments = [_investment_row(account.account_id, inv) for inv in account.investments]
        row.transactions = [_to_row(account.account_id, txn) for txn in account.transactions]

        with self.session_factory() as session, session.begin():
            session.add(row)

    def add_investment(self, account_id: str, investment: Investment, funding: Transaction) -> None:
        """
        Attach a newly funded investment to an existing account.

        total_funded_amount is incremented in place, alongside the investment
        row and its funding transaction, in one database transaction.
        """
        try:
            with self.session_factory() as session, session.begin():
                result = session.execute(
                    update(UserAccount)
                    .where(UserAccount.id == account_id)
                    .values(total_funded_amount=UserAccount.total_funded_amount + investment.amount)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    raise AccountNotFoundError(account_id, f"Account {account_id} not found")

                session.add(_investment_row(account_id, investment))
                session.add(_to_row(account_id, funding))
                session.flush()
        except IntegrityError as e:
            raise AccountWriteError(account_id, f"Duplicate or invalid investment: {e.orig}") from e
        except SQLAlchemyError as e:
            raise AccountWriteError(account_id, f"Could not write account: {e}") from e


def _to_domain(row: UserAccount, include_transactions: bool) -> Account:
    return Account(
        account_id=row.id,
        available_balance=to_decimal(row.available_balance),
        total_earnings=to_decimal(row.total_earnings),
        total_funded_amount=to_decimal(row.total_funded_amount),
        last_accrued_on=row.last_accrued_on,
        investments=[
            Investment(
                investment_id=inv.id,
                plan_name=inv.plan_name,
                amount=to_decimal(inv.amount),
                return_rate=to_decimal(inv.return_rate),
                duration_days=inv.duration_days,
                start_date=ensure_utc(inv.start_date),
                end_date=ensure_utc(inv.end_date),
                days_processed=inv.days_processed,
                total_earned=to_decimal(inv.total_earned),
                status=inv.status,
            )
            for inv in row.investments
        ],
        transactions=[
            Transaction(
                transaction_id=txn.id,
                type=txn.type,
                amount=to_decimal(txn.amount),
                date=ensure_utc(txn.date),
                description=txn.description,
                status=txn.status,
                investment_id=txn.investment_id,
            )
            for txn in row.transactions
        ]
        if include_transactions
        else [],
    )


def _investment_row(account_id: str, inv: Investment) -> InvestmentRecord:
    return InvestmentRecord(
        id=inv.investment_id,
        account_id=account_id,
        plan_name=inv.plan_name,
        amount=inv.amount,
        return_rate=inv.return_rate,
        duration_days=inv.duration_days,
        days_processed=inv.days_processed,
        total_earned=inv.total_earned,
        status=inv.status,
        start_date=inv.start_date,
        end_date=inv.end_date,
    )


def _to_row(account_id: str, txn: Transaction) -> AccountTransaction:
    return AccountTransaction(
        id=txn.transaction_id,
        account_id=account_id,
        type=txn.type,
        amount=txn.amount,
        date=txn.date,
        status=txn.status,
        description=txn.description,
        investment_id=txn.investment_id,
    )
