"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class Unauthorized(DomainException):
    """Trigger credential is missing or does not match the configured secret"""

    pass


class EnumerationError(DomainException):
    """Account collection could not be listed; fatal to the run"""

    pass


class AccountError(DomainException):
    """Failure scoped to a single account; the run continues"""

    def __init__(self, account_id: str, message: str):
        super().__init__(message)
        self.account_id = account_id


class AccountReadError(AccountError):
    """Account document could not be read"""

    pass


class AccountNotFoundError(AccountReadError):
    """Account disappeared between enumeration and read"""

    pass


class AccountWriteError(AccountError):
    """Accrual update could not be written"""

    pass


class ConcurrentModificationError(AccountWriteError):
    """An investment changed between read and write"""

    pass


class AlreadyAccruedError(AccountWriteError):
    """Account was already credited for this calendar day"""

    pass


class AccountTimeoutError(AccountError):
    """Account processing exceeded the per-account timeout"""

    pass


class TriggerRequestError(DomainException):
    """Remote trigger endpoint could not be reached or answered garbage"""

    pass
