"""Supply / borrow orchestration as an explicit finite-state machine."""
from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from ..errors import CallRejected, RpcError
from ..fixed_point import parse_units
from ..interfaces.chain import LendingChain
from ..models import (
    ActionKind,
    ActionOutcome,
    ActionRequest,
    NativeInstrument,
    TokenInstrument,
)

logger = logging.getLogger(__name__)


class ActionState(str, enum.Enum):
    CHECK_MEMBERSHIP = "check_membership"
    ENTER_MARKET = "enter_market"
    APPROVE = "approve"
    SUBMIT_ACTION = "submit_action"
    AWAIT_CONFIRMATION = "await_confirmation"
    DONE = "done"
    FAILED = "failed"


TERMINAL_STATES = frozenset({ActionState.DONE, ActionState.FAILED})


@dataclass
class ActionContext:
    """Per-invocation working state of the state machine."""

    request: ActionRequest
    raw_amount: int
    is_member: bool | None = None
    tx_hash: str | None = None
    receipt: dict[str, Any] | None = None
    visited: list[ActionState] = field(default_factory=list)


def needs_approval(request: ActionRequest) -> bool:
    """Only supplying an ERC20-backed market needs an allowance."""
    return request.kind is ActionKind.SUPPLY and isinstance(
        request.instrument, TokenInstrument
    )


def next_state(state: ActionState, ctx: ActionContext) -> ActionState:
    """Guarded transition taken after ``state`` completed successfully."""
    if state is ActionState.CHECK_MEMBERSHIP:
        if not ctx.is_member:
            return ActionState.ENTER_MARKET
        return _after_entry(ctx)
    if state is ActionState.ENTER_MARKET:
        return _after_entry(ctx)
    if state is ActionState.APPROVE:
        return ActionState.SUBMIT_ACTION
    if state is ActionState.SUBMIT_ACTION:
        return ActionState.AWAIT_CONFIRMATION
    if state is ActionState.AWAIT_CONFIRMATION:
        return ActionState.DONE
    raise ValueError(f"No transition out of terminal state {state.value}")


def _after_entry(ctx: ActionContext) -> ActionState:
    if needs_approval(ctx.request):
        return ActionState.APPROVE
    return ActionState.SUBMIT_ACTION


def validate_amount(request: ActionRequest) -> int:
    """Convert the request amount to raw units; invalid amounts raise.

    Raises:
        ValueError: amount is zero or negative.
        PrecisionLoss: amount has more digits than the instrument's decimals.
    """
    amount = Decimal(request.amount)
    if amount <= 0:
        raise ValueError(f"Amount must be positive, got {request.amount}")
    return parse_units(amount, request.instrument.decimals)


class ActionOrchestrator:
    """Runs one supply or borrow request end to end.

    Steps run strictly in sequence; any rejected call moves the machine to
    FAILED and nothing after it runs. Requests for the same account are
    serialized.
    """

    def __init__(self, chain: LendingChain) -> None:
        self._chain = chain
        # account -> (lock, number of requests holding or waiting on it)
        self._locks: dict[str, tuple[asyncio.Lock, int]] = {}
        self._handlers = {
            ActionState.CHECK_MEMBERSHIP: self._check_membership,
            ActionState.ENTER_MARKET: self._enter_market,
            ActionState.APPROVE: self._approve,
            ActionState.SUBMIT_ACTION: self._submit_action,
            ActionState.AWAIT_CONFIRMATION: self._await_confirmation,
        }

    def _acquire_slot(self, key: str) -> asyncio.Lock:
        lock, users = self._locks.get(key, (asyncio.Lock(), 0))
        self._locks[key] = (lock, users + 1)
        return lock

    def _release_slot(self, key: str) -> None:
        lock, users = self._locks[key]
        if users == 1:
            del self._locks[key]
        else:
            self._locks[key] = (lock, users - 1)

    async def execute(self, request: ActionRequest) -> ActionOutcome:
        """Execute ``request`` and return its single end-to-end outcome."""
        ctx = ActionContext(request=request, raw_amount=validate_amount(request))

        key = request.account.lower()
        lock = self._acquire_slot(key)
        try:
            async with lock:
                return await self._run(ctx)
        finally:
            self._release_slot(key)

    async def _run(self, ctx: ActionContext) -> ActionOutcome:
        request = ctx.request
        state = ActionState.CHECK_MEMBERSHIP
        logger.info(
            "Starting %s of %s %s on market %s",
            request.kind.value,
            request.amount,
            request.instrument.symbol,
            request.instrument.address,
        )

        while state not in TERMINAL_STATES:
            ctx.visited.append(state)
            try:
                await self._handlers[state](ctx)
            except (CallRejected, RpcError) as e:
                logger.error(
                    "%s failed at %s: %s", request.kind.value, state.value, e
                )
                return ActionOutcome(success=False, reason=f"{state.value}: {e}")
            state = next_state(state, ctx)
            logger.debug("Transition -> %s", state.value)

        logger.info(
            "%s of %s %s confirmed",
            request.kind.value,
            request.amount,
            request.instrument.symbol,
        )
        return ActionOutcome(success=True, receipt=ctx.receipt)

    # ------------------------------------------------------------------
    # Step handlers
    # ------------------------------------------------------------------

    async def _check_membership(self, ctx: ActionContext) -> None:
        ctx.is_member = await self._chain.check_membership(
            ctx.request.account, ctx.request.instrument.address
        )

    async def _enter_market(self, ctx: ActionContext) -> None:
        tx_hash = await self._chain.enter_markets(
            ctx.request.account, [ctx.request.instrument.address]
        )
        await self._chain.wait_for_receipt(tx_hash)

    async def _approve(self, ctx: ActionContext) -> None:
        instrument = ctx.request.instrument
        if not isinstance(instrument, TokenInstrument):
            raise TypeError(
                f"{instrument.symbol} market has no underlying token to approve"
            )
        tx_hash = await self._chain.approve(
            ctx.request.account, instrument.underlying, instrument.address, ctx.raw_amount
        )
        await self._chain.wait_for_receipt(tx_hash)

    async def _submit_action(self, ctx: ActionContext) -> None:
        request = ctx.request
        market = request.instrument.address
        if request.kind is ActionKind.BORROW:
            ctx.tx_hash = await self._chain.borrow(request.account, market, ctx.raw_amount)
        elif isinstance(request.instrument, NativeInstrument):
            ctx.tx_hash = await self._chain.mint_native(
                request.account, market, ctx.raw_amount
            )
        else:
            ctx.tx_hash = await self._chain.mint(request.account, market, ctx.raw_amount)

    async def _await_confirmation(self, ctx: ActionContext) -> None:
        if ctx.tx_hash is None:
            raise RuntimeError("No transaction was submitted to confirm")
        ctx.receipt = await self._chain.wait_for_receipt(ctx.tx_hash)
