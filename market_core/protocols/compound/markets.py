"""Compound v2 bindings — Comptroller, cToken and ERC20 calls over JSON-RPC."""
from __future__ import annotations

import logging
from typing import Any

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_abi.exceptions import DecodingError
from eth_utils import keccak, to_checksum_address

from ...chains.evm import EvmClient
from ...config import ProtocolConfig
from ...errors import CallRejected

logger = logging.getLogger(__name__)


def selector(signature: str) -> bytes:
    """4-byte function selector for a canonical signature like ``mint(uint256)``."""
    return keccak(text=signature)[:4]


def encode_call(signature: str, arg_types: list[str], args: list[Any]) -> bytes:
    return selector(signature) + (abi_encode(arg_types, args) if arg_types else b"")


class CompoundMarkets:
    """Comptroller + cToken deployment exposed through the LendingChain interface.

    Compound's mutating functions report failures as non-zero error codes
    instead of reverting, so every mutating call is simulated with
    ``eth_call`` first and a non-zero code is turned into ``CallRejected``.
    """

    def __init__(self, client: EvmClient, config: ProtocolConfig) -> None:
        self._client = client
        self._comptroller = to_checksum_address(config.comptroller)

    # ------------------------------------------------------------------
    # Low-level helpers
    # ------------------------------------------------------------------

    async def _read(
        self,
        to: str,
        signature: str,
        out_types: list[str],
        arg_types: list[str] | None = None,
        args: list[Any] | None = None,
    ) -> tuple[Any, ...]:
        data = encode_call(signature, arg_types or [], args or [])
        raw = await self._client.eth_call(to_checksum_address(to), data)
        try:
            return abi_decode(out_types, raw)
        except DecodingError as e:
            raise CallRejected(signature, f"undecodable return data: {e}") from e

    async def _read_uint(self, to: str, signature: str) -> int:
        (value,) = await self._read(to, signature, ["uint256"])
        return int(value)

    async def _transact(
        self,
        step: str,
        account: str,
        to: str,
        signature: str,
        arg_types: list[str],
        args: list[Any],
        value: int = 0,
        error_code: bool = True,
    ) -> str:
        """Simulate then submit a mutating call, returning the tx hash."""
        data = encode_call(signature, arg_types, args)
        target = to_checksum_address(to)

        if error_code:
            raw = await self._client.eth_call(target, data, sender=account, value=value)
            codes = _decode_error_codes(step, signature, raw)
            failed = [c for c in codes if c != 0]
            if failed:
                raise CallRejected(step, f"{signature} returned error code {failed[0]}")

        logger.info("Submitting %s for %s", signature, account)
        return await self._client.send_transaction(account, target, data, value=value)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def all_markets(self) -> list[str]:
        (markets,) = await self._read(self._comptroller, "getAllMarkets()", ["address[]"])
        return [to_checksum_address(m) for m in markets]

    async def underlying(self, market: str) -> str:
        (address,) = await self._read(market, "underlying()", ["address"])
        return to_checksum_address(address)

    async def erc20_decimals(self, token: str) -> int:
        (value,) = await self._read(token, "decimals()", ["uint8"])
        return int(value)

    async def _read_text(self, token: str, signature: str) -> str:
        data = encode_call(signature, [], [])
        raw = await self._client.eth_call(to_checksum_address(token), data)
        try:
            (text,) = abi_decode(["string"], raw)
            return text
        except DecodingError:
            # Some older tokens (MKR, SAI) return bytes32
            try:
                (value,) = abi_decode(["bytes32"], raw)
            except DecodingError as e:
                raise CallRejected(signature, f"undecodable return data: {e}") from e
            return value.rstrip(b"\x00").decode("utf-8", errors="replace")

    async def erc20_name(self, token: str) -> str:
        return await self._read_text(token, "name()")

    async def erc20_symbol(self, token: str) -> str:
        return await self._read_text(token, "symbol()")

    async def total_supply(self, market: str) -> int:
        return await self._read_uint(market, "totalSupply()")

    async def exchange_rate_stored(self, market: str) -> int:
        return await self._read_uint(market, "exchangeRateStored()")

    async def total_borrows(self, market: str) -> int:
        return await self._read_uint(market, "totalBorrows()")

    async def supply_rate_per_block(self, market: str) -> int:
        return await self._read_uint(market, "supplyRatePerBlock()")

    async def borrow_rate_per_block(self, market: str) -> int:
        return await self._read_uint(market, "borrowRatePerBlock()")

    async def check_membership(self, account: str, market: str) -> bool:
        (member,) = await self._read(
            self._comptroller,
            "checkMembership(address,address)",
            ["bool"],
            ["address", "address"],
            [to_checksum_address(account), to_checksum_address(market)],
        )
        return bool(member)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def enter_markets(self, account: str, markets: list[str]) -> str:
        return await self._transact(
            "enter_market",
            account,
            self._comptroller,
            "enterMarkets(address[])",
            ["address[]"],
            [[to_checksum_address(m) for m in markets]],
        )

    async def approve(self, account: str, token: str, spender: str, amount: int) -> str:
        return await self._transact(
            "approve",
            account,
            token,
            "approve(address,uint256)",
            ["address", "uint256"],
            [to_checksum_address(spender), amount],
            error_code=False,
        )

    async def mint(self, account: str, market: str, amount: int) -> str:
        return await self._transact(
            "mint", account, market, "mint(uint256)", ["uint256"], [amount]
        )

    async def mint_native(self, account: str, market: str, amount: int) -> str:
        # CEther.mint() is payable and reverts on failure
        return await self._transact(
            "mint", account, market, "mint()", [], [], value=amount, error_code=False
        )

    async def borrow(self, account: str, market: str, amount: int) -> str:
        return await self._transact(
            "borrow", account, market, "borrow(uint256)", ["uint256"], [amount]
        )

    async def wait_for_receipt(self, tx_hash: str) -> dict[str, Any]:
        return await self._client.wait_for_receipt(tx_hash)


def _decode_error_codes(step: str, signature: str, raw: bytes) -> list[int]:
    """Decode the Compound error code(s) returned by a simulated call."""
    if not raw:
        return []
    out_type = "uint256[]" if signature.startswith("enterMarkets") else "uint256"
    try:
        (decoded,) = abi_decode([out_type], raw)
    except DecodingError as e:
        raise CallRejected(step, f"undecodable return data: {e}") from e
    if isinstance(decoded, int):
        return [decoded]
    return [int(c) for c in decoded]
