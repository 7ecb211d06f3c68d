"""EVM JSON-RPC client with fallback support."""
from __future__ import annotations

import asyncio
import logging
import ssl
from typing import Any

import aiohttp
import certifi

from ...config import ChainConfig
from ...errors import CallRejected, RpcError

logger = logging.getLogger(__name__)

# Node error codes / messages that mean the call itself reverted.
_REVERT_CODES = {3, -32015}
_REVERT_MARKERS = ("revert", "user denied", "user rejected")


def _is_rejection(error: dict[str, Any]) -> bool:
    if error.get("code") in _REVERT_CODES:
        return True
    message = str(error.get("message", "")).lower()
    return any(marker in message for marker in _REVERT_MARKERS)


class EvmClient:
    """EVM JSON-RPC client with automatic endpoint fallback."""

    def __init__(self, config: ChainConfig) -> None:
        self.endpoints = list(config.rpc_endpoints)
        self.timeout = config.rpc_timeout
        self.receipt_timeout = config.receipt_timeout
        self.receipt_poll_interval = config.receipt_poll_interval
        self.current_rpc_index = 0

    async def rpc_call(self, method: str, params: list[Any]) -> Any:
        """Make RPC call with fallback to alternative endpoints.

        A reverted or user-rejected call raises ``CallRejected`` immediately;
        any other failure moves on to the next endpoint.
        """
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}

        ssl_context = ssl.create_default_context(cafile=certifi.where())

        last_error: Exception | None = None
        for attempt in range(len(self.endpoints)):
            rpc_index = (self.current_rpc_index + attempt) % len(self.endpoints)
            rpc_url = self.endpoints[rpc_index]

            try:
                connector = aiohttp.TCPConnector(ssl=ssl_context)
                async with aiohttp.ClientSession(connector=connector) as session:
                    async with session.post(
                        rpc_url,
                        json=payload,
                        timeout=aiohttp.ClientTimeout(total=self.timeout),
                    ) as response:
                        result = await response.json()
                        if "error" in result:
                            error = result["error"] or {}
                            if _is_rejection(error):
                                raise CallRejected(
                                    method, str(error.get("message", error))
                                )
                            raise RuntimeError(f"RPC Error: {error}")

                        if rpc_index != self.current_rpc_index:
                            logger.info("Switched to RPC endpoint: %s", rpc_url)
                            self.current_rpc_index = rpc_index

                        return result.get("result")
            except CallRejected:
                raise
            except Exception as e:
                last_error = e
                logger.warning("RPC endpoint %s failed: %s", rpc_url, e)
                if attempt < len(self.endpoints) - 1:
                    logger.info("Trying next endpoint...")
                continue

        raise RpcError(f"All RPC endpoints failed. Last error: {last_error}")

    async def eth_call(
        self, to: str, data: bytes, sender: str | None = None, value: int = 0
    ) -> bytes:
        """Execute a read-only call against the latest block."""
        call: dict[str, Any] = {"to": to, "data": "0x" + data.hex()}
        if sender:
            call["from"] = sender
        if value:
            call["value"] = hex(value)
        result = await self.rpc_call("eth_call", [call, "latest"])
        return bytes.fromhex((result or "0x")[2:])

    async def send_transaction(self, sender: str, to: str, data: bytes, value: int = 0) -> str:
        """Submit a transaction signed by the node/wallet-managed ``sender``."""
        tx: dict[str, Any] = {"from": sender, "to": to, "data": "0x" + data.hex()}
        if value:
            tx["value"] = hex(value)
        tx_hash = await self.rpc_call("eth_sendTransaction", [tx])
        logger.info("Submitted transaction %s to %s", tx_hash, to)
        return tx_hash

    async def get_transaction_receipt(self, tx_hash: str) -> dict[str, Any] | None:
        return await self.rpc_call("eth_getTransactionReceipt", [tx_hash])

    async def wait_for_receipt(self, tx_hash: str) -> dict[str, Any]:
        """Poll until the transaction is mined; raise if it reverted."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.receipt_timeout

        while True:
            receipt = await self.get_transaction_receipt(tx_hash)
            if receipt:
                if int(receipt.get("status", "0x1"), 16) == 0:
                    raise CallRejected("transaction", f"{tx_hash} reverted")
                logger.info(
                    "Transaction %s confirmed in block %s",
                    tx_hash,
                    receipt.get("blockNumber"),
                )
                return receipt
            if loop.time() >= deadline:
                raise RpcError(
                    f"Timed out after {self.receipt_timeout}s waiting for {tx_hash}"
                )
            await asyncio.sleep(self.receipt_poll_interval)
