"""Execution venues: the collaborator that turns a sized decision into an order."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol

import httpx

from oracle_edge.common.errors import ExecutionError
from oracle_edge.sizing.models import Platform

logger = logging.getLogger(__name__)


@dataclass
class Order:
    market_id: str
    outcome: str
    size: float
    platform: Platform
    min_price: float = 0.05
    max_price: float = 0.95


@dataclass
class Receipt:
    """Result of submitting an order.

    status is "executed", "dry_run" or "failed"; failed receipts carry the
    venue's error message.
    """

    order_id: str
    status: str
    platform: Platform
    market_id: str
    outcome: str
    size: float
    price: float | None = None
    error: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class Venue(Protocol):
    """Protocol for trading venues."""

    platform: Platform

    async def submit(self, order: Order) -> Receipt:
        """Place the order. May raise ExecutionError or httpx.HTTPError."""
        ...


class DryRunVenue:
    """Accepts every order without touching a real venue."""

    def __init__(self, platform: Platform = Platform.POLYMARKET) -> None:
        self.platform = platform
        self.orders: list[Order] = []

    async def submit(self, order: Order) -> Receipt:
        self.orders.append(order)
        logger.info(
            "DRY RUN: would buy %s %.2f on %s (market %s)",
            order.outcome, order.size, self.platform.value, order.market_id,
        )
        return Receipt(
            order_id=f"dry-{uuid.uuid4().hex[:12]}",
            status="dry_run",
            platform=self.platform,
            market_id=order.market_id,
            outcome=order.outcome,
            size=order.size,
            price=order.max_price,
        )


async def execute_order(order: Order, venues: dict[Platform, Venue]) -> Receipt:
    """Route an order to the venue for its platform.

    Venue failures become a "failed" receipt; a missing venue is a routing
    error and raises ExecutionError.
    """
    venue = venues.get(order.platform)
    if venue is None:
        raise ExecutionError(f"No venue configured for {order.platform.value}")

    try:
        return await venue.submit(order)
    except (ExecutionError, httpx.HTTPError) as exc:
        logger.warning(
            "Order for market %s failed on %s: %s",
            order.market_id, order.platform.value, exc,
            extra={"event": "execution_error", "market_id": order.market_id},
        )
        return Receipt(
            order_id="",
            status="failed",
            platform=order.platform,
            market_id=order.market_id,
            outcome=order.outcome,
            size=order.size,
            error=str(exc),
        )
