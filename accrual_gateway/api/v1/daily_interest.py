"""POST /api/daily-interest - daily interest accrual trigger"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse

from accrual_gateway.api.v1.schemas import DailyInterestResponse, ErrorResponse, UnauthorizedResponse
from accrual_gateway.api.dependencies import get_request_id, get_trigger_gateway
from accrual_gateway.domain.exceptions import EnumerationError, Unauthorized
from accrual_gateway.gateway import TriggerGateway

router = APIRouter()


@router.post(
    "/daily-interest",
    response_model=DailyInterestResponse,
    response_model_exclude_none=True,
    responses={401: {"model": UnauthorizedResponse}, 500: {"model": ErrorResponse}},
)
async def run_daily_interest(
    request: Request,
    authorization: Optional[str] = Header(None),
    gateway: TriggerGateway = Depends(get_trigger_gateway),
):
    """
    Accrue one day of interest across every account.

    Flow:
    1. Check the Authorization header against the configured secret
    2. Page through all accounts and accrue each independently
    3. Return processed/error counts with per-account details

    Partial failures still return 200; only a failure to list accounts is a 500.
    """
    request_id = get_request_id(request)

    try:
        report = await gateway.invoke(authorization)

    except Unauthorized:
        logging.warning("Rejected daily interest trigger", extra={"request_id": request_id})
        return JSONResponse(status_code=401, content=UnauthorizedResponse().model_dump())

    except EnumerationError as e:
        logging.error(f"Account enumeration failed: {e}", extra={"request_id": request_id})
        return _failure(e)

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        return _failure(e)

    return DailyInterestResponse.from_report(report)


def _failure(error: Exception) -> JSONResponse:
    body = ErrorResponse(message="An error occurred while processing daily interest", error=str(error))
    return JSONResponse(status_code=500, content=body.model_dump())
