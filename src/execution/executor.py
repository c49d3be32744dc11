"""Turns open/close decisions into signed IOC orders and books the fills."""

from __future__ import annotations

import random
import time
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Iterable, Optional, Protocol

import structlog

from src.budget.cycle import BudgetCycleManager, quantize_down
from src.exceptions import ExecutionError
from src.execution.authorizer import OrderAuthorizer
from src.execution.models import FillResult, OrderIntent, OrderResult
from src.strategy.candidates import PUTS, Candidate
from src.strategy.decision import ExitOrder
from src.utils.parsing import dig, to_float

logger = structlog.get_logger()

CENT = Decimal("0.01")


class OrderGateway(Protocol):
    async def place_order(self, payload: dict[str, Any], headers: dict[str, str]) -> dict[str, Any]: ...


class OrderJournal(Protocol):
    async def record_order(self, **fields: Any) -> None: ...


def reduce_fills(
    trades: Optional[Iterable[dict[str, Any]]],
    intended_quantity: float,
    limit_price: float,
) -> FillResult:
    """Quantity-weighted average of the reported trades.

    With no usable trade reports the order is assumed fully filled at the
    limit price.
    """
    total_qty = 0.0
    total_value = 0.0
    for trade in trades or ():
        qty = to_float(trade.get("trade_amount"))
        price = to_float(trade.get("trade_price"))
        if qty is None or price is None:
            continue
        total_qty += qty
        total_value += qty * price
    if total_qty > 0:
        return FillResult(
            filled_quantity=total_qty,
            avg_fill_price=total_value / total_qty,
            total_notional=total_value,
        )
    return FillResult(
        filled_quantity=intended_quantity,
        avg_fill_price=limit_price,
        total_notional=intended_quantity * limit_price,
        assumed=True,
    )


def _decimal(value: float) -> Decimal:
    return Decimal(str(value))


def _action(leg: str, direction: str) -> str:
    return f"{direction}_{'put' if leg == PUTS else 'call'}"


class OrderExecutor:
    """Signs and submits orders; only reconciled fills touch the budget.

    In paper mode orders are built and signed exactly as in live mode, but
    nothing is sent: the synthetic response carries no trade reports, so the
    fill falls back to the full quantity at the limit.
    """

    def __init__(
        self,
        *,
        gateway: Optional[OrderGateway],
        authorizer: OrderAuthorizer,
        journal: Optional[OrderJournal] = None,
        subaccount_id: int,
        fee_cap_pct: float = 0.08,
        signature_ttl: int = 600,
        paper: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.gateway = gateway
        self.authorizer = authorizer
        self.journal = journal
        self.subaccount_id = subaccount_id
        self.fee_cap_pct = _decimal(fee_cap_pct)
        self.signature_ttl = signature_ttl
        self.paper = paper
        self._clock = clock
        self._last_nonce = 0

    # ------------------------------------------------------------------
    # Intent construction
    # ------------------------------------------------------------------

    def next_nonce(self) -> int:
        """Millisecond timestamp with three random digits, strictly increasing."""
        nonce = int(f"{int(self._clock() * 1000)}{random.randint(0, 999)}")
        if nonce <= self._last_nonce:
            nonce = self._last_nonce + 1
        self._last_nonce = nonce
        return nonce

    def build_intent(
        self,
        *,
        instrument_name: str,
        direction: str,
        quantity: float,
        limit_price: float,
        asset_address: str,
        asset_sub_id: int,
        reduce_only: bool,
    ) -> OrderIntent:
        amount = _decimal(quantity)
        price = _decimal(limit_price)
        max_fee = (self.fee_cap_pct * price * amount).quantize(CENT, rounding=ROUND_HALF_UP)
        return OrderIntent(
            instrument_name=instrument_name,
            direction=direction,
            amount=amount,
            limit_price=price,
            max_fee=max_fee,
            subaccount_id=self.subaccount_id,
            nonce=self.next_nonce(),
            expiry=int(self._clock()) + self.signature_ttl,
            asset_address=asset_address,
            asset_sub_id=asset_sub_id,
            signer=self.authorizer.signer,
            reduce_only=reduce_only,
        )

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit(self, intent: OrderIntent) -> OrderResult:
        """Sign and send one order. Raises ExecutionError on any failure."""
        payload = intent.to_payload(self.authorizer.sign_order(intent))
        if self.paper or self.gateway is None:
            response: dict[str, Any] = {
                "result": {"order": {"order_id": f"paper-{intent.nonce}"}, "trades": []},
            }
        else:
            headers = self.authorizer.request_headers(int(self._clock() * 1000))
            response = await self.gateway.place_order(payload, headers)
        fill = reduce_fills(
            dig(response, "result", "trades"),
            float(intent.amount),
            float(intent.limit_price),
        )
        if fill.assumed:
            logger.warning(
                "order_fill_assumed",
                instrument=intent.instrument_name,
                quantity=str(intent.amount),
                price=str(intent.limit_price),
            )
        order_id = dig(response, "result", "order", "order_id") or ""
        return OrderResult(success=True, order_id=str(order_id), fill=fill, raw=response)

    async def _execute(
        self,
        *,
        leg: str,
        manager: BudgetCycleManager,
        candidate: Candidate,
        direction: str,
        quantity: float,
        price: float,
        reduce_only: bool,
        reason: str,
        spot: Optional[float],
    ) -> Optional[FillResult]:
        record: dict[str, Any] = {
            "leg": leg,
            "action": _action(leg, direction),
            "reason": reason,
            "instrument_name": candidate.instrument_name,
            "strike": candidate.strike,
            "expiry": candidate.expiry,
            "delta": candidate.delta,
            "price": price,
            "intended_amount": quantity,
            "spot_price": spot,
            "paper": self.paper,
        }
        try:
            intent = self.build_intent(
                instrument_name=candidate.instrument_name,
                direction=direction,
                quantity=quantity,
                limit_price=price,
                asset_address=candidate.base_asset_address,
                asset_sub_id=candidate.base_asset_sub_id,
                reduce_only=reduce_only,
            )
            result = await self.submit(intent)
        except ExecutionError as exc:
            logger.error("order_failed", leg=leg, instrument=candidate.instrument_name, error=str(exc))
            await self._journal(success=False, error=str(exc), **record)
            return None

        fill = result.fill
        # opening fills add to the leg's commitment, closing fills release it
        signed = -fill.total_notional if reduce_only else fill.total_notional
        await manager.apply_fill(signed)
        logger.info(
            "order_filled",
            leg=leg,
            action=record["action"],
            instrument=candidate.instrument_name,
            filled=fill.filled_quantity,
            avg_price=fill.avg_fill_price,
            notional=round(fill.total_notional, 6),
            assumed=fill.assumed,
            paper=self.paper,
        )
        await self._journal(
            success=True,
            order_id=result.order_id,
            filled_amount=fill.filled_quantity,
            fill_price=fill.avg_fill_price,
            total_value=fill.total_notional,
            fill_assumed=fill.assumed,
            raw_response=result.raw,
            **record,
        )
        return fill

    async def _journal(self, **fields: Any) -> None:
        if self.journal is not None:
            await self.journal.record_order(**fields)

    # ------------------------------------------------------------------
    # Leg operations
    # ------------------------------------------------------------------

    async def open_position(
        self,
        candidate: Candidate,
        manager: BudgetCycleManager,
        *,
        reason: str,
        spot: Optional[float] = None,
        hard_cap: Optional[float] = None,
    ) -> Optional[FillResult]:
        """Buy a put at the ask or sell a call at the bid, sized by the budget."""
        leg = manager.leg
        if leg == PUTS:
            direction, price, book = "buy", candidate.ask_price, candidate.ask_size
        else:
            direction, price, book = "sell", candidate.bid_price, candidate.bid_size
        if not price or not book or price <= 0 or book <= 0:
            logger.info("order_skipped", leg=leg, instrument=candidate.instrument_name, reason="no_quote")
            return None
        quantity = manager.size_order(price, book, candidate.amount_step, hard_cap)
        if quantity <= 0:
            logger.info(
                "order_skipped",
                leg=leg,
                instrument=candidate.instrument_name,
                reason="size_rounds_to_zero",
                capacity=round(manager.capacity, 4),
                step=candidate.amount_step,
            )
            return None
        return await self._execute(
            leg=leg,
            manager=manager,
            candidate=candidate,
            direction=direction,
            quantity=quantity,
            price=price,
            reduce_only=False,
            reason=reason,
            spot=spot,
        )

    async def close_position(
        self,
        exit_order: ExitOrder,
        quote: Candidate,
        manager: BudgetCycleManager,
        *,
        spot: Optional[float] = None,
    ) -> Optional[FillResult]:
        """Reduce-only close at the touch: sell long puts at the bid, buy back calls at the ask."""
        if exit_order.direction == "sell":
            price, book = quote.bid_price, quote.bid_size
        else:
            price, book = quote.ask_price, quote.ask_size
        if not price or not book or price <= 0 or book <= 0:
            logger.info("exit_skipped", instrument=quote.instrument_name, reason="no_quote")
            return None
        quantity = quantize_down(min(abs(exit_order.position.amount), book), quote.amount_step)
        if quantity <= 0:
            logger.info("exit_skipped", instrument=quote.instrument_name, reason="size_rounds_to_zero")
            return None
        return await self._execute(
            leg=exit_order.leg,
            manager=manager,
            candidate=quote,
            direction=exit_order.direction,
            quantity=quantity,
            price=price,
            reduce_only=True,
            reason=f"{exit_order.reason}_exit",
            spot=spot,
        )
