"""Trigger gateway: authenticate an invocation, then run the batch"""

import hmac
import logging
from typing import Optional

from accrual_gateway.batch.orchestrator import BatchOrchestrator
from accrual_gateway.domain.exceptions import Unauthorized
from accrual_gateway.domain.models import RunReport
from accrual_gateway.infrastructure.observability.metrics import run_counter

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def credential_matches(credential: Optional[str], secret: str) -> bool:
    """
    Constant-time check of a caller credential against the configured secret.

    The credential must be exactly the secret, or exactly `Bearer <secret>`.
    An unset secret matches nothing.
    """
    if not secret or not credential:
        return False

    candidates = [credential]
    if credential.startswith(BEARER_PREFIX):
        candidates.append(credential[len(BEARER_PREFIX):])

    expected = secret.encode("utf-8")
    return any(hmac.compare_digest(candidate.encode("utf-8"), expected) for candidate in candidates)


class TriggerGateway:
    """Thin adapter between an external trigger and the batch orchestrator"""

    def __init__(self, secret: str, orchestrator: BatchOrchestrator):
        self.secret = secret
        self.orchestrator = orchestrator

    def authorize(self, credential: Optional[str]) -> None:
        if not credential_matches(credential, self.secret):
            run_counter.labels(outcome="unauthorized").inc()
            raise Unauthorized("Unauthorized")

    async def invoke(self, credential: Optional[str]) -> RunReport:
        """
        Authorize, then run the accrual batch.

        Raises:
            Unauthorized: Credential mismatch; no account was touched
            EnumerationError: The run could not list accounts
        """
        self.authorize(credential)
        try:
            report = await self.orchestrator.run()
        except Exception:
            run_counter.labels(outcome="failed").inc()
            raise

        run_counter.labels(outcome="completed").inc()
        return report
