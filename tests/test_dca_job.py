"""Tests for the DCA sweep: due-plan selection, execution records and rescheduling."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from hyperdca.engine.dca_job import add_months, next_execution_time, run_due_plans
from hyperdca.engine.order_executor import FillResult
from hyperdca.services.errors import AgentNotAuthorized, NoLiquidity, OrderOutcomeUnknown

NOW = datetime(2025, 1, 31, 12, 0, tzinfo=timezone.utc)


def _naive(moment: datetime) -> datetime:
    # SQLite hands datetimes back without tzinfo
    return moment.replace(tzinfo=None)


def _executor(side_effect=None):
    executor = SimpleNamespace(buy_by_usd=AsyncMock())
    if side_effect is not None:
        executor.buy_by_usd.side_effect = side_effect
    else:
        executor.buy_by_usd.return_value = FillResult(
            order_id="9001", asset="BTC", amount_usd=49.9, amount_crypto=0.001, price=49900.0,
            trading_address="0x1111111111111111111111111111111111111111",
        )
    return executor


@pytest.fixture
def due_plan(store, profile):
    return store.create_plan(
        user_id=profile.id, asset="BTC", amount_usd=50.0, frequency="weekly",
        slippage=0.5, next_execution_at=NOW - timedelta(minutes=1),
    )


# ---------------------------------------------------------------------------
# 1. Scheduling arithmetic
# ---------------------------------------------------------------------------

class TestNextExecution:
    @pytest.mark.parametrize("frequency, days", [("daily", 1), ("weekly", 7), ("biweekly", 14)])
    def test_fixed_frequencies(self, frequency, days):
        plan = SimpleNamespace(frequency=frequency, custom_days_interval=None)
        assert next_execution_time(plan, NOW) == NOW + timedelta(days=days)

    def test_monthly_clamps_to_month_end(self):
        plan = SimpleNamespace(frequency="monthly", custom_days_interval=None)
        assert next_execution_time(plan, NOW) == datetime(2025, 2, 28, 12, 0, tzinfo=timezone.utc)

    def test_custom_interval_wins(self):
        plan = SimpleNamespace(frequency="monthly", custom_days_interval=3)
        assert next_execution_time(plan, NOW) == NOW + timedelta(days=3)

    def test_add_months_across_year(self):
        assert add_months(datetime(2024, 12, 15), 1) == datetime(2025, 1, 15)
        assert add_months(datetime(2024, 1, 31), 1) == datetime(2024, 2, 29)


# ---------------------------------------------------------------------------
# 2. Sweep
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_successful_execution_is_recorded(store, due_plan):
    executor = _executor()

    results = await run_due_plans(store, executor, now=NOW)

    executor.buy_by_usd.assert_awaited_once_with(due_plan.user_id, "BTC", 50.0, 0.5)
    assert results == [{
        "plan_id": due_plan.id, "status": "success", "order_id": "9001",
        "amount_crypto": 0.001, "price": 49900.0,
    }]
    execution = store.list_executions(due_plan.id)[0]
    assert execution.status == "success"
    assert execution.hyperliquid_order_id == "9001"
    assert execution.price_at_execution == 49900.0
    assert store.get_plan(due_plan.id).next_execution_at == _naive(NOW + timedelta(days=7))


@pytest.mark.asyncio
async def test_failed_execution_is_recorded_and_stays_due(store, due_plan):
    executor = _executor(side_effect=NoLiquidity("Order not filled"))

    results = await run_due_plans(store, executor, now=NOW)

    assert results[0]["status"] == "failed"
    execution = store.list_executions(due_plan.id)[0]
    assert execution.status == "failed"
    assert execution.error_message == "Order not filled"
    assert execution.amount_crypto is None
    assert store.get_plan(due_plan.id).next_execution_at == _naive(NOW - timedelta(minutes=1))


@pytest.mark.asyncio
async def test_failed_plan_is_retried_next_sweep(store, due_plan):
    failing = _executor(side_effect=AgentNotAuthorized("Agent wallet not authorized yet"))
    await run_due_plans(store, failing, now=NOW)

    later = NOW + timedelta(minutes=5)
    results = await run_due_plans(store, _executor(), now=later)

    assert [r["status"] for r in results] == ["success"]
    assert [e.status for e in store.list_executions(due_plan.id)] == ["success", "failed"]
    assert store.get_plan(due_plan.id).next_execution_at == _naive(later + timedelta(days=7))


@pytest.mark.asyncio
async def test_unknown_outcome_is_not_recorded_as_failure(store, due_plan):
    executor = _executor(side_effect=OrderOutcomeUnknown("No response after submission"))

    results = await run_due_plans(store, executor, now=NOW)

    assert results == [{"plan_id": due_plan.id, "status": "unknown", "error": "No response after submission"}]
    execution = store.list_executions(due_plan.id)[0]
    assert execution.status == "unknown"
    assert execution.error_message == "No response after submission"
    # may have filled: not bought again until the next period
    assert store.get_plan(due_plan.id).next_execution_at == _naive(NOW + timedelta(days=7))


@pytest.mark.asyncio
async def test_plans_not_due_or_inactive_are_skipped(store, profile):
    store.create_plan(user_id=profile.id, asset="BTC", amount_usd=10, next_execution_at=NOW + timedelta(hours=1))
    store.create_plan(user_id=profile.id, asset="BTC", amount_usd=10, is_active=False, next_execution_at=NOW - timedelta(days=1))
    executor = _executor()

    assert await run_due_plans(store, executor, now=NOW) == []
    executor.buy_by_usd.assert_not_awaited()


@pytest.mark.asyncio
async def test_default_slippage(store, profile):
    store.create_plan(user_id=profile.id, asset="HYPE", amount_usd=20, slippage=0, next_execution_at=NOW)
    executor = _executor()

    await run_due_plans(store, executor, now=NOW)

    assert executor.buy_by_usd.await_args.args[3] == 1.0


@pytest.mark.asyncio
async def test_profile_without_wallet_is_skipped(store):
    profile = store.create_profile(identity_subject="did:privy:no-wallet")
    plan = store.create_plan(user_id=profile.id, asset="BTC", amount_usd=10, next_execution_at=NOW)
    executor = _executor()

    assert await run_due_plans(store, executor, now=NOW) == []
    assert store.list_executions(plan.id) == []


@pytest.mark.asyncio
async def test_unexpected_error_does_not_stop_sweep(store, profile, caplog):
    first = store.create_plan(user_id=profile.id, asset="BTC", amount_usd=10, next_execution_at=NOW)
    second = store.create_plan(user_id=profile.id, asset="ETH", amount_usd=10, next_execution_at=NOW)
    executor = _executor(side_effect=[RuntimeError("boom"), _executor().buy_by_usd.return_value])

    results = await run_due_plans(store, executor, now=NOW)

    statuses = {r["plan_id"]: r["status"] for r in results}
    assert statuses == {first.id: "error", second.id: "success"}
    assert "Unexpected error" in caplog.text
