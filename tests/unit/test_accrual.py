"""Unit tests for accrual policies"""

import copy
import pytest
from datetime import timedelta
from decimal import Decimal
from accrual_gateway.domain.accrual import (
    FlatRatePolicy,
    PerInstrumentPolicy,
    build_policy,
    make_transaction_id,
)
from accrual_gateway.domain.models import Account


def test_per_instrument_daily_interest(make_investment, run_start):
    """100000 at 3.53% per day pays 3530 and advances one day"""
    account = Account(account_id="user-1", investments=[make_investment()])

    entries = PerInstrumentPolicy().compute(account, run_start)

    assert len(entries) == 1
    entry = entries[0]
    assert entry.balance_delta == Decimal("3530.00")
    assert entry.transaction.type == "interest"
    assert entry.transaction.amount == Decimal("3530.00")
    assert entry.transaction.status == "completed"
    assert entry.transaction.investment_id == "inv-1"
    assert entry.transaction.date == run_start
    assert entry.transaction.description == "3.53% Daily interest on Starter Ads"
    assert entry.mutation.investment_id == "inv-1"
    assert entry.mutation.expected_days_processed == 0
    assert entry.mutation.days_increment == 1
    assert entry.mutation.earned_delta == Decimal("3530.00")


@pytest.mark.parametrize(
    "overrides",
    [
        {"status": "cancelled"},
        {"status": "completed"},
        {"days_processed": 30},
    ],
)
def test_per_instrument_skips_ineligible(make_investment, run_start, overrides):
    """Non-active or exhausted instruments never accrue"""
    account = Account(account_id="user-1", investments=[make_investment(**overrides)])

    assert PerInstrumentPolicy().compute(account, run_start) == []


def test_per_instrument_skips_after_end_date(make_investment, run_start):
    """An instrument past its end date is ineligible even with days left"""
    investment = make_investment(days_processed=10, start_date=run_start - timedelta(days=31))
    account = Account(account_id="user-1", investments=[investment])

    assert PerInstrumentPolicy().compute(account, run_start) == []


def test_per_instrument_eligible_on_end_date(make_investment, run_start):
    """now == endDate still accrues"""
    investment = make_investment(days_processed=29, start_date=run_start - timedelta(days=30))
    account = Account(account_id="user-1", investments=[investment])

    assert len(PerInstrumentPolicy().compute(account, run_start)) == 1


def test_per_instrument_mixed_portfolio(make_investment, run_start):
    """Only eligible instruments produce entries, one each"""
    account = Account(
        account_id="user-1",
        investments=[
            make_investment("inv-a", amount="5000", return_rate="4.0"),
            make_investment("inv-b", status="cancelled"),
            make_investment("inv-c", amount="20000", return_rate="4.0", plan_name="Standard Ads"),
        ],
    )

    entries = PerInstrumentPolicy().compute(account, run_start)

    assert [e.transaction.investment_id for e in entries] == ["inv-a", "inv-c"]
    assert [e.balance_delta for e in entries] == [Decimal("200.00"), Decimal("800.00")]
    assert entries[1].transaction.description == "4% Daily interest on Standard Ads"
    assert len({e.transaction.transaction_id for e in entries}) == 2


def test_per_instrument_rounds_to_cents(make_investment, run_start):
    """333.33 * 1.5% = 4.99995 rounds half-up to 5.00"""
    account = Account(account_id="user-1", investments=[make_investment(amount="333.33", return_rate="1.5")])

    entries = PerInstrumentPolicy().compute(account, run_start)

    assert entries[0].balance_delta == Decimal("5.00")


def test_compute_does_not_mutate_account(make_investment, run_start):
    """Policies are pure; callers apply the deltas"""
    account = Account(
        account_id="user-1",
        total_funded_amount=Decimal("50000"),
        investments=[make_investment()],
    )
    snapshot = copy.deepcopy(account)

    PerInstrumentPolicy().compute(account, run_start)
    FlatRatePolicy(Decimal("4.0")).compute(account, run_start)

    assert account == snapshot


def test_per_instrument_candidate_requires_investments():
    assert PerInstrumentPolicy().is_candidate(Account(account_id="user-1")) is False


def test_flat_rate_on_funded_amount(run_start):
    """50000 funded at 4% credits a single 2000 deposit"""
    account = Account(
        account_id="user-1",
        available_balance=Decimal("1000"),
        total_funded_amount=Decimal("50000"),
    )

    entries = FlatRatePolicy(Decimal("4.0")).compute(account, run_start)

    assert len(entries) == 1
    entry = entries[0]
    assert entry.balance_delta == Decimal("2000.00")
    assert entry.transaction.type == "deposit"
    assert entry.transaction.description == "4% Daily interest on funded amount"
    assert entry.transaction.investment_id is None
    assert entry.mutation is None


@pytest.mark.parametrize("funded", ["0", "-10"])
def test_flat_rate_skips_unfunded_accounts(run_start, funded):
    account = Account(account_id="user-1", total_funded_amount=Decimal(funded))
    policy = FlatRatePolicy(Decimal("4.0"))

    assert policy.is_candidate(account) is False
    assert policy.compute(account, run_start) == []


def test_flat_rate_ignores_investments(make_investment, run_start):
    """Instrument state is untouched by the flat-rate policy"""
    account = Account(
        account_id="user-1",
        total_funded_amount=Decimal("10000"),
        investments=[make_investment()],
    )

    entries = FlatRatePolicy(Decimal("3.53")).compute(account, run_start)

    assert [e.balance_delta for e in entries] == [Decimal("353.00")]
    assert entries[0].mutation is None


def test_flat_rate_rejects_negative_rate():
    with pytest.raises(ValueError):
        FlatRatePolicy(Decimal("-1"))


def test_transaction_id_is_deterministic(run_start):
    """Same run, account and instrument always give the same id"""
    first = make_transaction_id(run_start, "user-abcdef", "inv-1")
    second = make_transaction_id(run_start, "user-abcdef", "inv-1")

    assert first == second
    assert first == f"interest-{int(run_start.timestamp() * 1000)}-user-abcdef-inv-1"
    assert make_transaction_id(run_start, "user-abcdef") != first
    # Accounts sharing a prefix must not collide
    assert make_transaction_id(run_start, "user-abcxyz", "inv-1") != first


def test_build_policy():
    assert isinstance(build_policy("per_instrument", Decimal("4")), PerInstrumentPolicy)
    flat = build_policy("flat_rate", Decimal("3.53"))
    assert isinstance(flat, FlatRatePolicy)
    assert flat.rate_percent == Decimal("3.53")

    with pytest.raises(ValueError):
        build_policy("compound", Decimal("4"))
