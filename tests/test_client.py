from unittest.mock import AsyncMock, MagicMock

import pytest
from solana.rpc.core import RPCException
from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.signature import Signature

from pumpfun_sdk.core import client as client_module
from pumpfun_sdk.core.client import SolanaClient
from pumpfun_sdk.core.errors import ExternalServiceError, MissingSignerError
from pumpfun_sdk.core.priority_fee import PriorityFee
from pumpfun_sdk.platforms.pumpfun.address_provider import PumpFunAddresses
from pumpfun_sdk.trading.orchestrator import PreparedTransaction


@pytest.fixture
def rpc():
    rpc = MagicMock()
    rpc.get_latest_blockhash = AsyncMock(
        return_value=MagicMock(value=MagicMock(blockhash=Hash.default()))
    )
    rpc.send_transaction = AsyncMock(return_value=MagicMock(value=Signature.default()))
    rpc.confirm_transaction = AsyncMock(
        return_value=MagicMock(value=[MagicMock(slot=99, err=None)])
    )
    rpc.close = AsyncMock()
    return rpc


@pytest.fixture
def solana_client(rpc):
    client = SolanaClient("http://localhost:8899", max_retries=3)
    client._client = rpc
    return client


@pytest.fixture
def prepared(creator):
    instruction = Instruction(
        PumpFunAddresses.PROGRAM,
        b"\x01",
        [AccountMeta(pubkey=creator.pubkey(), is_signer=True, is_writable=True)],
    )
    return PreparedTransaction.from_instructions([instruction], creator.pubkey())


@pytest.fixture
def no_sleep(monkeypatch):
    sleep = AsyncMock()
    monkeypatch.setattr(client_module.asyncio, "sleep", sleep)
    return sleep


@pytest.mark.asyncio
async def test_get_account_buffer(solana_client, rpc, mint):
    rpc.get_account_info = AsyncMock(return_value=MagicMock(value=MagicMock(data=b"\x01\x02")))
    assert await solana_client.get_account_buffer(mint.pubkey()) == b"\x01\x02"

    rpc.get_account_info = AsyncMock(return_value=MagicMock(value=None))
    assert await solana_client.get_account_buffer(mint.pubkey()) is None


@pytest.mark.asyncio
async def test_get_account_buffer_rpc_failure(solana_client, rpc, mint):
    rpc.get_account_info = AsyncMock(side_effect=RPCException("node unavailable"))

    with pytest.raises(ExternalServiceError) as exc_info:
        await solana_client.get_account_buffer(mint.pubkey())
    assert exc_info.value.recoverable


@pytest.mark.asyncio
async def test_submit_confirms(solana_client, rpc, prepared, creator):
    result = await solana_client.submit(prepared, [creator], finality="finalized")

    assert result.success
    assert result.slot == 99
    assert result.signature == str(Signature.default())
    rpc.confirm_transaction.assert_awaited_once()


@pytest.mark.asyncio
async def test_submit_attaches_compute_budget(solana_client, rpc, prepared, creator):
    await solana_client.submit(
        prepared, [creator], priority_fee=PriorityFee(unit_limit=100_000, unit_price=7)
    )

    sent = rpc.send_transaction.await_args.args[0]
    assert len(sent.message.instructions) == 3


@pytest.mark.asyncio
async def test_submit_reports_on_chain_failure(solana_client, rpc, prepared, creator):
    rpc.confirm_transaction = AsyncMock(
        return_value=MagicMock(value=[MagicMock(slot=100, err="InstructionError")])
    )

    result = await solana_client.submit(prepared, [creator])

    assert not result.success
    assert result.error == "InstructionError"


@pytest.mark.asyncio
async def test_send_is_retried(solana_client, rpc, prepared, creator, no_sleep):
    rpc.send_transaction = AsyncMock(
        side_effect=[RPCException("busy"), MagicMock(value=Signature.default())]
    )

    result = await solana_client.submit(prepared, [creator])

    assert result.success
    assert rpc.send_transaction.await_count == 2
    no_sleep.assert_awaited_once_with(1)


@pytest.mark.asyncio
async def test_send_gives_up_after_max_retries(solana_client, rpc, prepared, creator, no_sleep):
    rpc.send_transaction = AsyncMock(side_effect=RPCException("busy"))

    with pytest.raises(ExternalServiceError):
        await solana_client.submit(prepared, [creator])
    assert rpc.send_transaction.await_count == 3
    rpc.confirm_transaction.assert_not_awaited()


@pytest.mark.asyncio
async def test_submit_without_signer(solana_client, rpc, prepared, trader):
    with pytest.raises(MissingSignerError):
        await solana_client.submit(prepared, [trader])
    rpc.send_transaction.assert_not_awaited()


@pytest.mark.asyncio
async def test_close(solana_client, rpc):
    await solana_client.close()

    rpc.close.assert_awaited_once()
    assert solana_client._client is None
