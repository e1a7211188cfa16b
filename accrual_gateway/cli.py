"""Command-line entry points for the accrual job.

Subcommands:
- run:     authenticate and run the batch in-process, print the report as JSON
- trigger: POST the HTTP trigger of a running service (scheduler side)
- init-db: create the account tables
- open-investment: fund a catalogue plan on an existing account

Exit codes for `run`: 0 completed, 1 systemic failure, 3 unauthorized,
4 completed with account errors when --fail-on-errors is given.
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import List, Optional

from accrual_gateway.api.v1.schemas import DailyInterestResponse, ErrorResponse, UnauthorizedResponse
from accrual_gateway.batch.orchestrator import BatchOrchestrator, OrchestratorConfig
from accrual_gateway.config import Settings
from accrual_gateway.domain.accrual import build_policy
from accrual_gateway.domain.exceptions import AccountError, DomainException, Unauthorized
from accrual_gateway.domain.plans import INVESTMENT_PLANS, funding_transaction, open_investment
from accrual_gateway.gateway import TriggerGateway
from accrual_gateway.infrastructure.clients.trigger import TriggerClient
from accrual_gateway.infrastructure.database.models import Base
from accrual_gateway.infrastructure.database.repositories import AccountRepository
from accrual_gateway.infrastructure.database.session import build_engine, build_session_factory
from accrual_gateway.infrastructure.observability.logging import setup_logging
from accrual_gateway.utils.date_utils import epoch_millis, utc_now

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_UNAUTHORIZED = 3
EXIT_PARTIAL = 4

CREDENTIAL_ENV = "ACCRUAL_CREDENTIAL"


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="accrual-gateway",
        description="Daily interest accrual batch",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Run the accrual batch in-process")
    run.add_argument(
        "--credential",
        default=os.environ.get(CREDENTIAL_ENV),
        help=f"Trigger credential (default: ${CREDENTIAL_ENV})",
    )
    run.add_argument(
        "--policy",
        choices=["per_instrument", "flat_rate"],
        help="Override the configured accrual policy",
    )
    run.add_argument(
        "--fail-on-errors",
        action="store_true",
        help=f"Exit with {EXIT_PARTIAL} if any account failed",
    )

    trigger = subparsers.add_parser("trigger", help="POST the trigger endpoint of a running service")
    trigger.add_argument("--url", help="Trigger URL (default: configured trigger_url)")
    trigger.add_argument(
        "--credential",
        default=os.environ.get(CREDENTIAL_ENV),
        help=f"Trigger credential (default: ${CREDENTIAL_ENV})",
    )

    subparsers.add_parser("init-db", help="Create account tables if missing")

    invest = subparsers.add_parser("open-investment", help="Fund a plan on an existing account")
    invest.add_argument("--account", required=True, help="Account id")
    invest.add_argument("--plan", required=True, choices=sorted(INVESTMENT_PLANS), help="Plan id")
    invest.add_argument("--investment-id", help="Investment id (default: derived from time and account)")

    return parser.parse_args(argv)


def _print_json(payload: dict) -> None:
    print(json.dumps(payload, indent=2))


def _print_run_error(error: Exception) -> None:
    _print_json(
        ErrorResponse(message="An error occurred while processing daily interest", error=str(error)).model_dump()
    )


def run_batch(args: argparse.Namespace, settings: Settings) -> int:
    engine = build_engine(settings.database_url)
    try:
        store = AccountRepository(build_session_factory(engine))
        policy = build_policy(args.policy or settings.accrual_policy, settings.daily_interest_rate)
        orchestrator = BatchOrchestrator(store, policy, OrchestratorConfig.from_settings(settings))
        gateway = TriggerGateway(settings.cron_secret_key, orchestrator)

        try:
            report = asyncio.run(gateway.invoke(args.credential))
        except Unauthorized:
            _print_json(UnauthorizedResponse().model_dump())
            return EXIT_UNAUTHORIZED
        except DomainException as e:
            logger.error(f"Accrual run failed: {e}")
            _print_run_error(e)
            return EXIT_FAILURE
        except Exception as e:
            logger.exception("Unexpected error during accrual run")
            _print_run_error(e)
            return EXIT_FAILURE
    finally:
        engine.dispose()

    _print_json(DailyInterestResponse.from_report(report).model_dump(by_alias=True, exclude_none=True))
    if args.fail_on_errors and report.errors:
        return EXIT_PARTIAL
    return EXIT_OK


def trigger_remote(args: argparse.Namespace, settings: Settings) -> int:
    if not args.credential:
        logger.error(f"No credential given; pass --credential or set {CREDENTIAL_ENV}")
        return EXIT_UNAUTHORIZED

    client = TriggerClient(url=args.url or settings.trigger_url, timeout=settings.http_timeout_seconds)
    try:
        result = asyncio.run(client.trigger(args.credential))
    except DomainException as e:
        logger.error(f"Error calling daily interest API: {e}")
        return EXIT_FAILURE

    _print_json(result.payload)
    if result.status_code == 401:
        return EXIT_UNAUTHORIZED
    return EXIT_OK if result.succeeded else EXIT_FAILURE


def init_db(settings: Settings) -> int:
    engine = build_engine(settings.database_url)
    try:
        Base.metadata.create_all(bind=engine)
    finally:
        engine.dispose()
    logger.info("Account tables ready")
    return EXIT_OK


def open_plan_investment(args: argparse.Namespace, settings: Settings) -> int:
    plan = INVESTMENT_PLANS[args.plan]
    start = utc_now()
    investment = open_investment(
        plan,
        start_date=start,
        investment_id=args.investment_id or f"inv-{epoch_millis(start)}-{args.account}",
    )

    engine = build_engine(settings.database_url)
    try:
        store = AccountRepository(build_session_factory(engine))
        store.add_investment(args.account, investment, funding_transaction(args.account, investment))
    except AccountError as e:
        logger.error(f"Could not open investment: {e}")
        _print_json({"success": False, "error": str(e)})
        return EXIT_FAILURE
    finally:
        engine.dispose()

    _print_json(
        {
            "success": True,
            "accountId": args.account,
            "investmentId": investment.investment_id,
            "plan": plan.name,
            "amount": float(plan.amount),
            "endDate": investment.end_date.isoformat(),
        }
    )
    return EXIT_OK


def main(argv: Optional[List[str]] = None, settings: Optional[Settings] = None) -> int:
    args = _parse_args(argv)
    settings = settings or Settings()
    setup_logging(settings.log_level, settings.service_name)

    if args.command == "run":
        return run_batch(args, settings)
    if args.command == "trigger":
        return trigger_remote(args, settings)
    if args.command == "open-investment":
        return open_plan_investment(args, settings)
    return init_db(settings)


if __name__ == "__main__":
    sys.exit(main())
