"""Decoding of Hyperliquid ``/exchange`` order responses.

The exchange answers with loosely shaped JSON. Every field is read
defensively and the body is reduced to exactly one of the result variants
below, so callers branch on a type instead of probing nested dicts.
"""

from dataclasses import dataclass
from typing import Any, Union

from hyperdca.utils.constants import UNKNOWN_AGENT_MARKER


@dataclass(frozen=True)
class OrderFilled:
    oid: int | None
    total_sz: float
    avg_px: float


@dataclass(frozen=True)
class OrderNotFilled:
    """The order was accepted but nothing matched (IOC remainder cancelled)."""

    detail: str


@dataclass(frozen=True)
class OrderError:
    """Top-level ``ok`` but the order status itself carries an error."""

    reason: str


@dataclass(frozen=True)
class ExchangeError:
    reason: str


@dataclass(frozen=True)
class UnrecognizedAgent:
    """The signing address is not an approved agent for the user."""

    reason: str


@dataclass(frozen=True)
class Malformed:
    raw: Any


OrderResponse = Union[OrderFilled, OrderNotFilled, OrderError, ExchangeError, UnrecognizedAgent, Malformed]


def _to_float(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _first_status(body: dict) -> dict | None:
    response = body.get("response")
    if not isinstance(response, dict):
        return None
    data = response.get("data")
    if not isinstance(data, dict):
        return None
    statuses = data.get("statuses")
    if not isinstance(statuses, list) or not statuses:
        return None
    first = statuses[0]
    if isinstance(first, str):
        # e.g. "waitingForFill" on some order types
        return {"_raw": first}
    return first if isinstance(first, dict) else None


def parse_order_response(body: Any) -> OrderResponse:
    if not isinstance(body, dict):
        return Malformed(raw=body)

    status = body.get("status")
    if status == "err":
        reason = str(body.get("response") or "Unknown exchange error")
        if UNKNOWN_AGENT_MARKER in reason.lower():
            return UnrecognizedAgent(reason=reason)
        return ExchangeError(reason=reason)
    if status != "ok":
        return Malformed(raw=body)

    entry = _first_status(body)
    if entry is None:
        return Malformed(raw=body)

    if entry.get("error"):
        return OrderError(reason=str(entry["error"]))

    filled = entry.get("filled")
    if not isinstance(filled, dict):
        if "resting" in entry:
            return OrderNotFilled(detail="Order rested on the book instead of filling immediately")
        return OrderNotFilled(detail=str(entry.get("_raw") or "No fill reported"))

    total_sz = _to_float(filled.get("totalSz"))
    avg_px = _to_float(filled.get("avgPx"))
    if total_sz is None or total_sz <= 0:
        return OrderNotFilled(detail="Fill reported with zero size")
    return OrderFilled(oid=_to_int(filled.get("oid")), total_sz=total_sz, avg_px=avg_px or 0.0)
