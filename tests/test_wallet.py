"""Test keypair loading, balance reads and swap submission."""

import json
import os
from unittest.mock import AsyncMock, Mock

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.system_program import TransferParams, transfer

from dexarb.core.types import SwapAction, SwapDirection
from dexarb.errors import RpcError, SubmissionError, WalletError
from dexarb.wallet import SolanaWallet, load_keypair
from sample_data import ADDRESSES


def sample_action(venue: str = "raydium") -> SwapAction:
    return SwapAction(
        venue=venue,
        pair="SOL/USDC",
        direction=SwapDirection.BUY,
        amount=1.0,
        amount_in=100.0,
        min_amount_out=0.99,
        pool_address=ADDRESSES[0],
        base_vault=ADDRESSES[1],
        quote_vault=ADDRESSES[2],
    )


def transfer_builder(action, payer):
    return [transfer(TransferParams(from_pubkey=payer, to_pubkey=payer, lamports=1))]


class TestLoadKeypair:
    """Test keypair file formats."""

    def test_cli_array_format(self, tmp_path):
        """JSON byte array as written by the Solana CLI."""
        keypair = Keypair()
        path = tmp_path / "id.json"
        path.write_text(json.dumps(list(bytes(keypair))))
        os.chmod(path, 0o600)

        assert load_keypair(str(path)).pubkey() == keypair.pubkey()

    def test_secret_key_object_format(self, tmp_path):
        """JSON object with a secretKey array."""
        keypair = Keypair()
        path = tmp_path / "wallet.json"
        path.write_text(json.dumps({"secretKey": list(bytes(keypair))}))

        assert load_keypair(str(path)).pubkey() == keypair.pubkey()

    def test_missing_file(self, tmp_path):
        """Missing keypair is a wallet error."""
        with pytest.raises(WalletError):
            load_keypair(str(tmp_path / "missing.json"))

    def test_invalid_contents(self, tmp_path):
        """Wrong-length key material is a wallet error."""
        path = tmp_path / "bad.json"
        path.write_text(json.dumps([1, 2, 3]))

        with pytest.raises(WalletError):
            load_keypair(str(path))


class TestSolanaWallet:
    """Test RPC-backed wallet operations."""

    def setup_method(self):
        self.rpc = Mock()
        self.rpc.get_balance = AsyncMock(return_value=2_500_000_000)
        self.rpc.get_latest_blockhash = AsyncMock(return_value=str(Hash.default()))
        self.rpc.send_transaction = AsyncMock(return_value="5sig")
        self.rpc.get_signature_status = AsyncMock(return_value={"confirmationStatus": "confirmed", "err": None})
        self.wallet = SolanaWallet(Keypair(), self.rpc, confirm_poll_sec=0.01)

    @pytest.mark.asyncio
    async def test_balance_in_sol(self):
        """Lamports are converted to SOL."""
        assert await self.wallet.get_balance() == pytest.approx(2.5)

    @pytest.mark.asyncio
    async def test_balance_rpc_failure(self):
        """RPC errors become wallet errors."""
        self.rpc.get_balance = AsyncMock(side_effect=RpcError("timeout"))
        with pytest.raises(WalletError):
            await self.wallet.get_balance()

    @pytest.mark.asyncio
    async def test_submit_without_builder_fails(self):
        """Venues without a transaction builder cannot be traded live."""
        with pytest.raises(SubmissionError) as exc_info:
            await self.wallet.submit_swap(sample_action())
        assert exc_info.value.leg == "buy"
        self.rpc.send_transaction.assert_not_called()

    @pytest.mark.asyncio
    async def test_submit_signs_and_confirms(self):
        """Built instructions are signed, sent and confirmed."""
        self.wallet.register_builder("raydium", transfer_builder)

        signature = await self.wallet.submit_swap(sample_action())

        assert signature == "5sig"
        self.rpc.send_transaction.assert_awaited_once()
        self.rpc.get_signature_status.assert_awaited_with("5sig")

    @pytest.mark.asyncio
    async def test_send_retries_then_fails(self):
        """Send errors are retried a bounded number of times."""
        self.wallet.register_builder("raydium", transfer_builder)
        self.rpc.send_transaction = AsyncMock(side_effect=RpcError("blockhash not found"))

        with pytest.raises(SubmissionError):
            await self.wallet.submit_swap(sample_action())
        assert self.rpc.send_transaction.await_count == 3

    @pytest.mark.asyncio
    async def test_on_chain_error_fails(self):
        """A transaction that lands with an error is a submission failure."""
        self.wallet.register_builder("raydium", transfer_builder)
        self.rpc.get_signature_status = AsyncMock(return_value={"confirmationStatus": "confirmed", "err": {"InstructionError": [0, "Custom"]}})

        with pytest.raises(SubmissionError):
            await self.wallet.submit_swap(sample_action())

    @pytest.mark.asyncio
    async def test_malformed_blockhash_fails(self):
        """Transaction build errors surface as submission errors."""
        self.wallet.register_builder("raydium", transfer_builder)
        self.rpc.get_latest_blockhash = AsyncMock(return_value="not-a-blockhash")

        with pytest.raises(SubmissionError) as exc_info:
            await self.wallet.submit_swap(sample_action())
        assert exc_info.value.leg == "buy"
        self.rpc.send_transaction.assert_not_called()

    @pytest.mark.asyncio
    async def test_builder_exception_fails(self):
        """A broken transaction builder never escapes as a raw exception."""
        def broken_builder(action, payer):
            raise KeyError("missing pool account")

        self.wallet.register_builder("raydium", broken_builder)

        with pytest.raises(SubmissionError):
            await self.wallet.submit_swap(sample_action())
        self.rpc.send_transaction.assert_not_called()
