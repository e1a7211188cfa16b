"""AccountStore contract the batch components depend on"""

from typing import List, Optional, Protocol

from accrual_gateway.domain.models import Account, AccountUpdate


class AccountStore(Protocol):
    """
    Read-all / read-one / update-one operations over the account collection.

    Implementations raise EnumerationError from list_account_ids,
    AccountReadError from get_account and AccountWriteError from apply_update.
    """

    def list_account_ids(self, after: Optional[str], limit: int) -> List[str]:
        """Next page of account ids in ascending order, strictly after `after`"""
        ...

    def get_account(self, account_id: str) -> Account:
        ...

    def apply_update(self, update: AccountUpdate) -> None:
        """Apply one account's accrual atomically, or raise and apply nothing"""
        ...
