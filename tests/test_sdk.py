import struct
from unittest.mock import AsyncMock, MagicMock

import pytest
from solders.keypair import Keypair

from pumpfun_sdk.config_loader import PriorityFeeConfig, SDKConfig
from pumpfun_sdk.core.client import SolanaClient
from pumpfun_sdk.core.errors import (
    AccountNotFound,
    ConfigurationError,
    CurveCompleted,
    SlippageUnsatisfiable,
)
from pumpfun_sdk.core.priority_fee import PriorityFee
from pumpfun_sdk.core.pubkeys import SystemAddresses
from pumpfun_sdk.metadata.uploader import CreateTokenMetadata, TokenMetadataUpload
from pumpfun_sdk.monitoring.logs_listener import LogsEventListener
from pumpfun_sdk.platforms.pumpfun.address_provider import PumpFunAddresses
from pumpfun_sdk.platforms.pumpfun.instruction_builder import (
    BUY_DISCRIMINATOR,
    CREATE_DISCRIMINATOR,
    SELL_DISCRIMINATOR,
)
from pumpfun_sdk.trading.pumpfun_trader import PumpFunSDK

CREATOR_VAULT_INDEX = 9


@pytest.fixture
def sdk(ledger):
    return PumpFunSDK(ledger)


@pytest.fixture
def metadata():
    return CreateTokenMetadata(
        name="Token", symbol="TKN", description="A test token", file=b"\x89PNG"
    )


def trade_args(instruction) -> tuple[int, int]:
    return struct.unpack("<QQ", bytes(instruction.data[8:24]))


@pytest.mark.asyncio
async def test_buy_by_sol_amount(sdk, trader, mint, creator):
    prepared = await sdk.get_buy_instructions_by_sol_amount(
        trader.pubkey(), mint.pubkey(), 1_000_000_000
    )

    ata_create, buy = prepared.instructions
    assert ata_create.program_id == SystemAddresses.ASSOCIATED_TOKEN_PROGRAM
    assert bytes(buy.data[:8]) == BUY_DISCRIMINATOR
    # 5% default slippage on the SOL spent
    assert trade_args(buy) == (34_612_903_225_806, 1_050_000_000)
    assert prepared.required_signers == (trader.pubkey(),)


@pytest.mark.asyncio
async def test_buy_uses_curve_creator_vault(sdk, trader, mint, creator):
    prepared = await sdk.get_buy_instructions_by_sol_amount(
        trader.pubkey(), mint.pubkey(), 1_000_000
    )

    vault = prepared.instructions[-1].accounts[CREATOR_VAULT_INDEX].pubkey
    assert vault == PumpFunAddresses.find_creator_vault(creator.pubkey())
    assert vault != PumpFunAddresses.find_creator_vault(trader.pubkey())


@pytest.mark.asyncio
async def test_buy_skips_existing_token_account(sdk, ledger, trader, mint):
    ata = sdk.address_provider.derive_user_token_account(trader.pubkey(), mint.pubkey())
    ledger.accounts[ata] = bytes(165)

    prepared = await sdk.get_buy_instructions_by_sol_amount(
        trader.pubkey(), mint.pubkey(), 1_000_000, slippage_bps=0
    )

    (buy,) = prepared.instructions
    assert trade_args(buy)[1] == 1_000_000


@pytest.mark.asyncio
async def test_buy_on_completed_curve(sdk, ledger, curve_buffer, trader, mint, creator):
    ledger.accounts[PumpFunAddresses.find_bonding_curve(mint.pubkey())] = curve_buffer(
        creator.pubkey(), complete=True
    )

    with pytest.raises(CurveCompleted):
        await sdk.buy(trader, mint.pubkey(), 1_000_000)
    assert ledger.submitted == []


@pytest.mark.asyncio
async def test_buy_on_missing_curve(sdk, ledger, trader):
    with pytest.raises(AccountNotFound) as exc_info:
        await sdk.buy(trader, Keypair().pubkey(), 1_000_000)
    assert exc_info.value.account_type == "BondingCurve"
    assert ledger.submitted == []


@pytest.mark.asyncio
async def test_buy_beyond_real_reserves(sdk, ledger, curve_buffer, trader, mint, creator):
    ledger.accounts[PumpFunAddresses.find_bonding_curve(mint.pubkey())] = curve_buffer(
        creator.pubkey(), real_token_reserves=1_000
    )

    with pytest.raises(SlippageUnsatisfiable):
        await sdk.get_buy_instructions_by_sol_amount(trader.pubkey(), mint.pubkey(), 1_000_000)


@pytest.mark.asyncio
async def test_buy_submits_with_buyer_signature(sdk, ledger, trader, mint):
    result = await sdk.buy(trader, mint.pubkey(), 1_000_000)

    assert result.success
    (submission,) = ledger.submitted
    assert submission["signers"] == [trader]
    assert submission["commitment"] == "confirmed"
    assert submission["finality"] == "finalized"
    assert submission["priority_fee"] is None


@pytest.mark.asyncio
async def test_sell_by_token_amount(sdk, ledger, curve_buffer, trader, mint, creator):
    ledger.accounts[PumpFunAddresses.find_bonding_curve(mint.pubkey())] = curve_buffer(
        creator.pubkey(), real_sol_reserves=10_000_000_000
    )

    prepared = await sdk.get_sell_instructions_by_token_amount(
        trader.pubkey(), mint.pubkey(), 1_000_000_000_000
    )

    (sell,) = prepared.instructions
    assert bytes(sell.data[:8]) == SELL_DISCRIMINATOR
    # net 27_653_631 after the 1% fee, minus 5% slippage
    assert trade_args(sell) == (1_000_000_000_000, 26_270_950)
    assert sell.accounts[8].pubkey == PumpFunAddresses.find_creator_vault(creator.pubkey())


@pytest.mark.asyncio
async def test_sell_beyond_real_sol_reserves(sdk, trader, mint):
    # A fresh curve holds no real SOL
    with pytest.raises(SlippageUnsatisfiable):
        await sdk.sell(trader, mint.pubkey(), 1_000_000_000_000)


@pytest.mark.asyncio
async def test_sell_submits(sdk, ledger, curve_buffer, trader, mint, creator):
    ledger.accounts[PumpFunAddresses.find_bonding_curve(mint.pubkey())] = curve_buffer(
        creator.pubkey(), real_sol_reserves=10_000_000_000
    )

    result = await sdk.sell(trader, mint.pubkey(), 1_000_000_000_000, slippage_bps=0)

    assert result.signature == "fake-signature"
    (submission,) = ledger.submitted
    (sell,) = submission["transaction"].instructions
    assert trade_args(sell)[1] == 27_653_631


@pytest.mark.asyncio
async def test_sell_with_zero_output_is_unsatisfiable(
    sdk, ledger, curve_buffer, trader, mint, creator
):
    ledger.accounts[PumpFunAddresses.find_bonding_curve(mint.pubkey())] = curve_buffer(
        creator.pubkey(), real_sol_reserves=10_000_000_000
    )

    # floor(1 * 3e10 / (1.073e15 + 1)) == 0
    with pytest.raises(SlippageUnsatisfiable) as exc_info:
        await sdk.get_sell_instructions_by_token_amount(trader.pubkey(), mint.pubkey(), 1)
    assert exc_info.value.details == {"token_amount": 1, "sol_output": 0}
    assert ledger.submitted == []


def test_create_instructions_require_mint_signature(sdk, creator, mint):
    prepared = sdk.get_create_instructions(
        creator.pubkey(), "Token", "TKN", "ipfs://meta", mint.pubkey()
    )

    assert prepared.required_signers == (creator.pubkey(), mint.pubkey())
    assert bytes(prepared.instructions[0].data[:8]) == CREATE_DISCRIMINATOR


@pytest.mark.asyncio
async def test_create_and_buy(sdk, ledger, creator, metadata):
    new_mint = Keypair()
    sdk.metadata_uploader.upload = AsyncMock(
        return_value=TokenMetadataUpload(metadata_uri="ipfs://meta", metadata={})
    )

    result = await sdk.create_and_buy(creator, new_mint, metadata, 1_000_000_000)

    assert result.success
    sdk.metadata_uploader.upload.assert_awaited_once_with(metadata)
    (submission,) = ledger.submitted
    assert submission["signers"] == [creator, new_mint]

    create, ata_create, buy = submission["transaction"].instructions
    assert bytes(create.data[:8]) == CREATE_DISCRIMINATOR
    assert b"ipfs://meta" in bytes(create.data)
    assert ata_create.program_id == SystemAddresses.ASSOCIATED_TOKEN_PROGRAM
    # Priced against the initial reserves in the global config
    assert trade_args(buy) == (34_612_903_225_806, 1_050_000_000)
    assert buy.accounts[CREATOR_VAULT_INDEX].pubkey == PumpFunAddresses.find_creator_vault(
        creator.pubkey()
    )


@pytest.mark.asyncio
async def test_create_without_buy(sdk, ledger, creator, metadata):
    sdk.metadata_uploader.upload = AsyncMock(
        return_value=TokenMetadataUpload(metadata_uri="ipfs://meta", metadata={})
    )

    await sdk.create_and_buy(creator, Keypair(), metadata, 0)

    (submission,) = ledger.submitted
    assert len(submission["transaction"].instructions) == 1


@pytest.mark.asyncio
async def test_priority_fee_from_manager(ledger, trader, mint):
    fee = PriorityFee(unit_limit=150_000, unit_price=1_000)
    manager = MagicMock()
    manager.get_priority_fee = AsyncMock(return_value=fee)
    sdk = PumpFunSDK(ledger, priority_fee_manager=manager)

    await sdk.buy(trader, mint.pubkey(), 1_000_000)

    assert ledger.submitted[0]["priority_fee"] == fee
    accounts = manager.get_priority_fee.await_args.args[0]
    assert mint.pubkey() in accounts


@pytest.mark.asyncio
async def test_explicit_priority_fee_wins(ledger, trader, mint):
    manager = MagicMock()
    manager.get_priority_fee = AsyncMock()
    sdk = PumpFunSDK(ledger, priority_fee_manager=manager)
    fee = PriorityFee(unit_limit=100_000, unit_price=1)

    await sdk.buy(trader, mint.pubkey(), 1_000_000, priority_fee=fee)

    assert ledger.submitted[0]["priority_fee"] == fee
    manager.get_priority_fee.assert_not_awaited()


@pytest.mark.asyncio
async def test_account_reads(sdk, mint, creator, fee_recipient):
    assert (await sdk.get_global_account()).fee_recipient == fee_recipient
    assert (await sdk.get_bonding_curve_account(mint.pubkey())).creator == creator.pubkey()
    assert await sdk.get_bonding_curve_account(Keypair().pubkey()) is None


def test_event_listener_requires_stream(sdk):
    with pytest.raises(ConfigurationError):
        sdk.add_event_listener("tradeEvent", lambda event, slot, signature: None)


def test_event_listener_registration(ledger):
    listener = LogsEventListener("ws://localhost:8900")
    sdk = PumpFunSDK(ledger, event_listener=listener)

    listener_id = sdk.add_event_listener("createEvent", lambda event, slot, signature: None)

    assert listener.listener_count == 1
    # No running loop, so nothing was started
    assert not listener.is_running
    sdk.remove_event_listener(listener_id)
    assert listener.listener_count == 0


def test_event_listener_rejects_unknown_type(ledger):
    sdk = PumpFunSDK(ledger, event_listener=LogsEventListener("ws://localhost:8900"))

    with pytest.raises(ValueError):
        sdk.add_event_listener("swapEvent", lambda event, slot, signature: None)


def test_from_config():
    config = SDKConfig(
        rpc_endpoint="http://localhost:8899",
        wss_endpoint="ws://localhost:8900",
        slippage_bps=250,
        priority_fees=PriorityFeeConfig(enable_fixed=True, fixed_amount=1_000, hard_cap=5_000),
    )

    sdk = PumpFunSDK.from_config(config)

    assert isinstance(sdk.transport, SolanaClient)
    assert isinstance(sdk.event_listener, LogsEventListener)
    assert sdk.priority_fee_manager is not None
    assert sdk.slippage_bps == 250


def test_from_config_without_stream_or_fees():
    sdk = PumpFunSDK.from_config(SDKConfig(rpc_endpoint="http://localhost:8899"))

    assert sdk.event_listener is None
    assert sdk.priority_fee_manager is None
