"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional

from accrual_gateway.domain.models import RunReport


class AccountResult(BaseModel):
    """Outcome for a single account"""

    model_config = ConfigDict(populate_by_name=True)

    account_id: str = Field(..., alias="accountId")
    amount: Optional[float] = None
    error: Optional[str] = None
    success: bool


class RunResults(BaseModel):
    """Aggregate counts and per-account details of a run"""

    processed: int
    errors: int
    details: List[AccountResult]


class DailyInterestResponse(BaseModel):
    """Response for POST /api/daily-interest when the run completed"""

    success: bool = True
    message: str
    results: RunResults

    @classmethod
    def from_report(cls, report: RunReport) -> "DailyInterestResponse":
        return cls(
            message=f"Daily interest processed for {report.processed} accounts with {report.errors} errors",
            results=RunResults(
                processed=report.processed,
                errors=report.errors,
                details=[
                    AccountResult(
                        account_id=detail.account_id,
                        # JSON number at the boundary; Decimal everywhere inside
                        amount=float(detail.amount) if detail.amount is not None else None,
                        error=detail.error,
                        success=detail.success,
                    )
                    for detail in report.details
                ],
            ),
        )


class ErrorResponse(BaseModel):
    """Response for a run that failed as a whole"""

    success: bool = False
    message: str
    error: str


class UnauthorizedResponse(BaseModel):
    """Response for a rejected trigger credential"""

    error: str = "Unauthorized"
