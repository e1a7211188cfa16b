"""Daily interest batch: enumerate accounts, accrue each one, report the run"""

import asyncio
import logging
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from decimal import Decimal
from datetime import datetime
from typing import Callable, List, Optional

from accrual_gateway.batch.mutator import AccountMutator
from accrual_gateway.config import Settings
from accrual_gateway.domain.accrual import AccrualPolicy
from accrual_gateway.domain.exceptions import AccountError, AccountTimeoutError, EnumerationError
from accrual_gateway.domain.models import RunReport
from accrual_gateway.domain.store import AccountStore
from accrual_gateway.infrastructure.observability.logging import log_run_completed
from accrual_gateway.infrastructure.observability.metrics import (
    record_account_credited,
    record_account_failed,
    record_account_skipped,
    run_duration_histogram,
)
from accrual_gateway.utils.date_utils import accrual_day, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrchestratorConfig:
    """Batch tuning passed in at construction"""

    page_size: int = 500
    max_workers: int = 4
    per_account_timeout_seconds: float = 30.0
    guard_same_day: bool = False

    def __post_init__(self):
        if self.page_size < 1:
            raise ValueError("page_size must be at least 1")
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if self.per_account_timeout_seconds <= 0:
            raise ValueError("per_account_timeout_seconds must be positive")

    @classmethod
    def from_settings(cls, settings: Settings) -> "OrchestratorConfig":
        return cls(
            page_size=settings.page_size,
            max_workers=settings.max_workers,
            per_account_timeout_seconds=settings.per_account_timeout_seconds,
            guard_same_day=settings.skip_if_accrued_today,
        )


class BatchOrchestrator:
    """
    Runs one accrual pass over every account.

    Flow per account (each isolated from the others):
    1. Read the account snapshot from the store
    2. Skip it if the policy says it cannot accrue
    3. Compute entries with the policy (pure)
    4. Write them with the mutator (one store call)

    Accounts are paged through so memory does not grow with the collection,
    and at most `max_workers` accounts are in flight at once. Only a failure
    to enumerate aborts the run.
    """

    def __init__(
        self,
        store: AccountStore,
        policy: AccrualPolicy,
        config: Optional[OrchestratorConfig] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.policy = policy
        self.config = config or OrchestratorConfig()
        self.clock = clock
        self.mutator = AccountMutator(store)

    async def run(self) -> RunReport:
        """
        Accrue interest across all accounts.

        Store calls run on a pool owned by this run. The pool is abandoned,
        not joined, on the way out, so a stalled account cannot hold the
        caller past its timeout.

        Raises:
            EnumerationError: The account collection could not be listed
        """
        run_id = str(uuid.uuid4())
        start_time = time.time()
        as_of = self.clock()
        report = RunReport(started_at=as_of)
        semaphore = asyncio.Semaphore(self.config.max_workers)
        # One extra thread so paging is not starved by stalled accounts
        executor = ThreadPoolExecutor(max_workers=self.config.max_workers + 1, thread_name_prefix="accrual")

        logger.info("Accrual run started", extra={"run_id": run_id, "policy": self.policy.name})

        try:
            after = None
            while True:
                page = await self._next_page(executor, after)
                if not page:
                    break

                await asyncio.gather(
                    *(self._process(executor, semaphore, account_id, as_of, report) for account_id in page)
                )

                if len(page) < self.config.page_size:
                    break
                after = page[-1]
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        report.finished_at = self.clock()
        duration = time.time() - start_time
        run_duration_histogram.observe(duration)
        log_run_completed(run_id, self.policy.name, report, duration * 1000)
        return report

    async def _next_page(self, executor: ThreadPoolExecutor, after: Optional[str]) -> List[str]:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(executor, self.store.list_account_ids, after, self.config.page_size)
        except EnumerationError:
            raise
        except Exception as e:
            raise EnumerationError(f"Could not list accounts: {e}") from e

    async def _process(
        self,
        executor: ThreadPoolExecutor,
        semaphore: asyncio.Semaphore,
        account_id: str,
        as_of: datetime,
        report: RunReport,
    ) -> None:
        async with semaphore:
            loop = asyncio.get_running_loop()
            timeout = self.config.per_account_timeout_seconds
            abandoned = threading.Event()
            try:
                amount = await asyncio.wait_for(
                    loop.run_in_executor(executor, self.accrue_account, account_id, as_of, abandoned),
                    timeout=timeout,
                )
            except asyncio.TimeoutError:
                # The worker cannot be interrupted; the flag stops it before it writes
                abandoned.set()
                error = AccountTimeoutError(account_id, f"Timed out after {timeout}s")
                self._record_failure(report, account_id, error)
            except AccountError as e:
                self._record_failure(report, account_id, e)
            except Exception as e:
                logger.exception("Unexpected error accruing account", extra={"account_id": account_id})
                self._record_failure(report, account_id, e)
            else:
                if amount is None:
                    report.record_skip()
                    record_account_skipped()
                else:
                    report.record_success(account_id, amount)
                    record_account_credited(amount)

    def accrue_account(
        self,
        account_id: str,
        as_of: datetime,
        abandoned: Optional[threading.Event] = None,
    ) -> Optional[Decimal]:
        """
        Read, compute and write one account. Blocking; runs in a worker thread.

        Returns the amount credited, or None when there was nothing to accrue.
        If `abandoned` is set by the time the entries are ready, nothing is
        written and AccountTimeoutError is raised.
        """
        day = accrual_day(as_of)
        account = self.store.get_account(account_id)
        if not self.policy.is_candidate(account):
            return None
        if self.config.guard_same_day and account.last_accrued_on is not None and account.last_accrued_on >= day:
            return None

        entries = self.policy.compute(account, as_of)
        if not entries:
            return None

        if abandoned is not None and abandoned.is_set():
            raise AccountTimeoutError(account_id, "Abandoned after timeout; nothing written")
        return self.mutator.apply(account, entries, day, self.config.guard_same_day)

    def _record_failure(self, report: RunReport, account_id: str, error: Exception) -> None:
        logger.warning(
            f"Accrual failed for account {account_id}: {error}",
            extra={"account_id": account_id, "error_type": type(error).__name__},
        )
        report.record_failure(account_id, str(error))
        record_account_failed(type(error).__name__)
