"""Minimal Solana JSON-RPC client over aiohttp."""

import asyncio
import itertools
from typing import Any, Dict, List, Optional

import aiohttp
from loguru import logger

from ..errors import RpcError


class SolanaRpcClient:
    """Async JSON-RPC client shared by the venue adapters and the wallet."""

    def __init__(self, rpc_url: str, commitment: str = "confirmed", timeout_sec: float = 10.0):
        self.rpc_url = rpc_url
        self.commitment = commitment
        self.timeout = aiohttp.ClientTimeout(total=timeout_sec)
        self.session: Optional[aiohttp.ClientSession] = None
        self._ids = itertools.count(1)

    async def connect(self):
        """Open the HTTP session."""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(timeout=self.timeout)
            logger.info(f"RPC client connected: {self.rpc_url}")

    async def disconnect(self):
        """Close the HTTP session."""
        if self.session and not self.session.closed:
            await self.session.close()
            logger.info("RPC client disconnected")
        self.session = None

    async def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """Make a JSON-RPC call and return its `result` field."""
        if self.session is None or self.session.closed:
            await self.connect()

        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }

        try:
            async with self.session.post(self.rpc_url, json=payload) as response:
                if response.status != 200:
                    body = await response.text()
                    raise RpcError(f"{method} HTTP {response.status}: {body[:200]}")
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise RpcError(f"{method} request failed: {e}") from e
        if "error" in data:
            error = data["error"]
            raise RpcError(f"{method} error: {error.get('message', error)}", code=error.get("code"))

        return data.get("result")

    async def get_balance(self, pubkey: str) -> int:
        """Native balance in lamports."""
        result = await self.call("getBalance", [pubkey, {"commitment": self.commitment}])
        return int(result["value"])

    async def get_token_account_balance(self, account: str) -> float:
        """UI amount held by an SPL token account."""
        result = await self.call("getTokenAccountBalance", [account, {"commitment": self.commitment}])
        try:
            value = result["value"]
            return int(value["amount"]) / (10 ** int(value["decimals"]))
        except (KeyError, TypeError, ValueError) as e:
            raise RpcError(f"Unparsable token balance for {account}: {result!r}") from e

    async def get_account_info(self, account: str) -> Optional[Dict[str, Any]]:
        """Account info, or None if the account does not exist."""
        result = await self.call(
            "getAccountInfo",
            [account, {"encoding": "base64", "commitment": self.commitment}],
        )
        return result.get("value") if result else None

    async def get_latest_blockhash(self) -> str:
        result = await self.call("getLatestBlockhash", [{"commitment": self.commitment}])
        return result["value"]["blockhash"]

    async def send_transaction(self, tx_b64: str) -> str:
        """Submit a signed, base64-encoded transaction. Returns the signature."""
        return await self.call(
            "sendTransaction",
            [tx_b64, {"encoding": "base64", "preflightCommitment": self.commitment}],
        )

    async def get_signature_status(self, signature: str) -> Optional[Dict[str, Any]]:
        result = await self.call(
            "getSignatureStatuses",
            [[signature], {"searchTransactionHistory": False}],
        )
        statuses = result.get("value") if result else None
        return statuses[0] if statuses else None
