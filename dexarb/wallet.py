"""Solana wallet: keypair loading, balance reads and swap submission."""

import asyncio
import base64
import json
import os
from pathlib import Path
from typing import Callable, Dict, List, Optional

from loguru import logger
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from .core.types import SwapAction
from .dexes.rpc import SolanaRpcClient
from .errors import RpcError, SubmissionError, WalletError

LAMPORTS_PER_SOL = 1_000_000_000

# Turns a swap leg into the venue program's instructions for a given payer.
TransactionBuilder = Callable[[SwapAction, Pubkey], List[Instruction]]


def load_keypair(path: str) -> Keypair:
    """Load a keypair file.

    Accepts the Solana CLI format (a JSON array of 64 bytes), a JSON object
    with a `secretKey` array, or the raw 64 bytes.
    """
    keypair_path = Path(path)
    if not keypair_path.exists():
        raise WalletError(f"Keypair file not found: {keypair_path}")

    if os.name == "posix" and keypair_path.stat().st_mode & 0o077:
        logger.warning(f"Keypair file {keypair_path} is readable by group/others; chmod 600 recommended")

    raw = keypair_path.read_bytes()
    try:
        data = json.loads(raw)
    except ValueError:
        data = None

    if isinstance(data, dict):
        data = data.get("secretKey")
    if isinstance(data, list):
        raw = bytes(data)

    try:
        return Keypair.from_bytes(raw)
    except Exception as e:
        raise WalletError(f"Invalid keypair file {keypair_path}: {e}") from e


class SolanaWallet:
    """Wallet collaborator used by the safety guard and the executor."""

    def __init__(self, keypair: Keypair, rpc: SolanaRpcClient,
                 builders: Optional[Dict[str, TransactionBuilder]] = None,
                 send_retries: int = 3, confirm_poll_sec: float = 0.5):
        self.keypair = keypair
        self.rpc = rpc
        self.builders: Dict[str, TransactionBuilder] = dict(builders or {})
        self.send_retries = send_retries
        self.confirm_poll_sec = confirm_poll_sec

    @property
    def pubkey(self) -> Pubkey:
        return self.keypair.pubkey()

    def register_builder(self, venue: str, builder: TransactionBuilder):
        self.builders[venue] = builder
        logger.info(f"Registered transaction builder for {venue}")

    async def get_balance(self) -> float:
        """Native SOL balance."""
        try:
            lamports = await self.rpc.get_balance(str(self.pubkey))
        except RpcError as e:
            raise WalletError(f"Balance read failed: {e}") from e
        return lamports / LAMPORTS_PER_SOL

    async def submit_swap(self, action: SwapAction) -> str:
        """Sign, send and confirm one swap leg. Returns the transaction signature."""
        leg = action.direction.value
        builder = self.builders.get(action.venue)
        if builder is None:
            raise SubmissionError(f"No transaction builder registered for {action.venue}", leg=leg)

        # solders parse/compile/signing errors do not share a base class
        try:
            instructions = builder(action, self.pubkey)
            blockhash = await self.rpc.get_latest_blockhash()
            message = MessageV0.try_compile(
                payer=self.pubkey,
                instructions=instructions,
                address_lookup_table_accounts=[],
                recent_blockhash=Hash.from_string(blockhash),
            )
            tx = VersionedTransaction(message, [self.keypair])
            tx_b64 = base64.b64encode(bytes(tx)).decode()
        except Exception as e:
            raise SubmissionError(
                f"{action.venue} {leg} transaction build failed: {type(e).__name__}: {e}", leg=leg
            ) from e

        signature = await self._send_with_retry(tx_b64, leg)
        await self._confirm(signature, leg)
        logger.info(f"{action.venue} {leg} confirmed: {signature}")
        return signature

    async def _send_with_retry(self, tx_b64: str, leg: str) -> str:
        # Re-sending the same signed transaction cannot execute it twice.
        last_error: Optional[Exception] = None
        for attempt in range(self.send_retries):
            try:
                return await self.rpc.send_transaction(tx_b64)
            except RpcError as e:
                last_error = e
                logger.warning(f"Send attempt {attempt + 1}/{self.send_retries} failed: {e}")
                await asyncio.sleep(0.1 * (attempt + 1))
        raise SubmissionError(f"Transaction send failed after {self.send_retries} attempts: {last_error}", leg=leg)

    async def _confirm(self, signature: str, leg: str):
        """Poll until confirmed. The caller bounds this with a timeout."""
        while True:
            try:
                status = await self.rpc.get_signature_status(signature)
            except RpcError as e:
                logger.debug(f"Signature status read failed for {signature}: {e}")
                status = None

            if status:
                if status.get("err"):
                    raise SubmissionError(f"Transaction {signature} failed: {status['err']}", leg=leg)
                if status.get("confirmationStatus") in ("confirmed", "finalized"):
                    return
            await asyncio.sleep(self.confirm_poll_sec)
