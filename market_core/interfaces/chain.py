"""Lending chain protocol: contract-call layer abstraction."""
from typing import Any, Protocol


class LendingChain(Protocol):
    """Abstract interface for a Compound-style lending deployment.

    Read methods return raw fixed-point integers. Mutating methods return a
    transaction hash and raise ``CallRejected`` when the call is refused;
    ``wait_for_receipt`` raises ``CallRejected`` when the transaction reverted.
    """

    async def all_markets(self) -> list[str]: ...

    async def underlying(self, market: str) -> str: ...

    async def erc20_decimals(self, token: str) -> int: ...

    async def erc20_name(self, token: str) -> str: ...

    async def erc20_symbol(self, token: str) -> str: ...

    async def total_supply(self, market: str) -> int: ...

    async def exchange_rate_stored(self, market: str) -> int: ...

    async def total_borrows(self, market: str) -> int: ...

    async def supply_rate_per_block(self, market: str) -> int: ...

    async def borrow_rate_per_block(self, market: str) -> int: ...

    async def check_membership(self, account: str, market: str) -> bool: ...

    async def enter_markets(self, account: str, markets: list[str]) -> str: ...

    async def approve(self, account: str, token: str, spender: str, amount: int) -> str: ...

    async def mint(self, account: str, market: str, amount: int) -> str: ...

    async def mint_native(self, account: str, market: str, amount: int) -> str: ...

    async def borrow(self, account: str, market: str, amount: int) -> str: ...

    async def wait_for_receipt(self, tx_hash: str) -> dict[str, Any]: ...
