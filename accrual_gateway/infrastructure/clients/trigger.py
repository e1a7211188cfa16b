"""HTTP client that fires the daily interest trigger, for external schedulers"""

import logging
from dataclasses import dataclass
from typing import Any, Dict

import httpx
from accrual_gateway.domain.exceptions import TriggerRequestError
from accrual_gateway.config import settings


@dataclass
class TriggerResult:
    status_code: int
    payload: Dict[str, Any]

    @property
    def succeeded(self) -> bool:
        return self.status_code == 200 and bool(self.payload.get("success"))


class TriggerClient:
    """Client for POSTing the accrual trigger endpoint"""

    def __init__(self, url: str | None = None, timeout: float | None = None):
        self.url = url or settings.trigger_url
        self.timeout = timeout or settings.http_timeout_seconds

    async def trigger(self, credential: str) -> TriggerResult:
        """
        Invoke the daily interest run once.

        The run is synchronous on the server, so the timeout must cover a
        whole pass over the account collection. No retries: a second call
        would credit the day twice.

        Raises:
            TriggerRequestError: On timeout, transport failure, or a non-JSON body
        """
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(
                    self.url,
                    headers={"Authorization": credential, "Content-Type": "application/json"},
                )
                payload = response.json()
                if not isinstance(payload, dict):
                    raise ValueError("expected a JSON object")

            except httpx.TimeoutException as e:
                raise TriggerRequestError(f"Trigger timed out after {self.timeout}s") from e
            except httpx.RequestError as e:
                raise TriggerRequestError(f"Trigger request failed: {e}") from e
            except ValueError as e:
                raise TriggerRequestError(f"Trigger returned non-JSON body (status {response.status_code})") from e

        result = TriggerResult(status_code=response.status_code, payload=payload)
        if not result.succeeded:
            logging.error(
                "Daily interest trigger failed",
                extra={"status_code": result.status_code, "detail": payload.get("message") or payload.get("error")},
            )
        return result
