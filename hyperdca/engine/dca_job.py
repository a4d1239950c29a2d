"""DCA sweep: execute every active plan whose next run is due.

This is the function APScheduler calls on each interval. Each due plan is
bought through the order executor and recorded as one ``DcaExecution``.
A plan advances to its next run after a fill, or after a submission whose
outcome is unknown. A failed purchase leaves the plan due for the next sweep.
"""

import asyncio
import calendar
import logging
from datetime import datetime, timedelta, timezone

from hyperdca.engine.order_executor import OrderExecutor
from hyperdca.models import DcaPlan
from hyperdca.services.errors import OrderOutcomeUnknown, TradingError
from hyperdca.services.store import Store
from hyperdca.utils.constants import FREQUENCY_DAYS

logger = logging.getLogger(__name__)
_sweep_lock = asyncio.Lock()


def add_months(moment: datetime, months: int) -> datetime:
    """Same day next month, clamped to the month's last day (Jan 31 -> Feb 28/29)."""
    index = moment.month - 1 + months
    year = moment.year + index // 12
    month = index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def next_execution_time(plan: DcaPlan, now: datetime) -> datetime:
    if plan.custom_days_interval and plan.custom_days_interval > 0:
        return now + timedelta(days=plan.custom_days_interval)
    if plan.frequency == "monthly":
        return add_months(now, 1)
    return now + timedelta(days=FREQUENCY_DAYS.get(plan.frequency, 1))


async def execute_plan(store: Store, executor: OrderExecutor, plan: DcaPlan, now: datetime) -> dict:
    """Run one plan and record the attempt. Never raises for trading failures."""
    slippage = plan.slippage if plan.slippage else 1.0
    logger.info(f"[plan_{plan.id}] Executing DCA: ${plan.amount_usd} -> {plan.asset}")

    try:
        fill = await executor.buy_by_usd(plan.user_id, plan.asset, plan.amount_usd, slippage)
    except OrderOutcomeUnknown as e:
        # The order may have filled, so this period must not be bought again
        logger.error(f"[plan_{plan.id}] DCA purchase outcome unknown, check the wallet: {e.message}")
        store.insert_execution({
            "plan_id": plan.id,
            "amount_usd": plan.amount_usd,
            "status": "unknown",
            "error_message": e.message,
            "executed_at": now,
        })
        store.update_plan(plan.id, {"next_execution_at": next_execution_time(plan, now)})
        return {"plan_id": plan.id, "status": "unknown", "error": e.message}
    except TradingError as e:
        logger.warning(f"[plan_{plan.id}] DCA purchase failed ({e.kind}), retrying next sweep: {e.message}")
        store.insert_execution({
            "plan_id": plan.id,
            "amount_usd": plan.amount_usd,
            "status": "failed",
            "error_message": e.message,
            "executed_at": now,
        })
        return {"plan_id": plan.id, "status": "failed", "error": e.message}

    store.insert_execution({
        "plan_id": plan.id,
        "amount_usd": plan.amount_usd,
        "amount_crypto": fill.amount_crypto,
        "price_at_execution": fill.price,
        "status": "success",
        "hyperliquid_order_id": fill.order_id,
        "executed_at": now,
    })
    store.update_plan(plan.id, {"next_execution_at": next_execution_time(plan, now)})
    return {
        "plan_id": plan.id,
        "status": "success",
        "order_id": fill.order_id,
        "amount_crypto": fill.amount_crypto,
        "price": fill.price,
    }


async def run_due_plans(store: Store, executor: OrderExecutor, now: datetime | None = None) -> list[dict]:
    """Execute all due plans once, skipping if a previous sweep is still running."""
    if _sweep_lock.locked():
        logger.warning("DCA sweep already in progress, skipping")
        return []

    async with _sweep_lock:
        now = now or datetime.now(timezone.utc)
        plans = store.due_plans(now)
        logger.info(f"DCA sweep: {len(plans)} plans due")

        results = []
        for plan in plans:
            profile = store.get_profile(plan.user_id)
            if profile is None or not profile.wallet_address:
                logger.info(f"[plan_{plan.id}] Skipping: wallet not configured")
                continue
            try:
                results.append(await execute_plan(store, executor, plan, now))
            except Exception:
                logger.exception(f"[plan_{plan.id}] Unexpected error during DCA execution")
                results.append({"plan_id": plan.id, "status": "error"})
        return results
