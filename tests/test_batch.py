from unittest.mock import AsyncMock

import pytest
from fakes import POOL_A, POOL_B, POOL_C, TOKEN_X, FakeChain

from poolbatch.adapters.uniswap import UniswapV2PairAdapter, UniswapV3TickBitmapWindowAdapter
from poolbatch.core.config import BatchConfig
from poolbatch.core.errors import RemoteTransportError, ResourceCeilingExceeded
from poolbatch.core.models import UniswapV2PairRecord
from poolbatch.core.use_cases.batch import BatchQueryService, run_batch
from poolbatch.encoding.packer import unpack_batch


@pytest.mark.asyncio
async def test_codeless_entry_is_a_sentinel(v2_chain: FakeChain) -> None:
    result = await run_batch(v2_chain, UniswapV2PairAdapter(), [POOL_A, POOL_B, POOL_C])

    assert len(result) == 3
    assert isinstance(result.records[0], UniswapV2PairRecord)
    assert result.records[1] is None
    assert isinstance(result.records[2], UniswapV2PairRecord)
    assert result.diagnostics[1].startswith("NotAContract")
    assert result.diagnostics[0] is None and result.diagnostics[2] is None


@pytest.mark.asyncio
async def test_token0_decimals_revert_is_a_sentinel(v2_chain: FakeChain) -> None:
    v2_chain.revert(TOKEN_X, "decimals()")

    result = await run_batch(v2_chain, UniswapV2PairAdapter(), [POOL_A])

    assert result.records == [None]
    assert result.diagnostics[0].startswith("RemoteCallReverted")


@pytest.mark.asyncio
@pytest.mark.parametrize("decimals", [0, 256])
async def test_out_of_range_decimals_are_skipped(v2_chain: FakeChain, decimals: int) -> None:
    v2_chain.token(TOKEN_X, decimals=decimals)

    result = await run_batch(v2_chain, UniswapV2PairAdapter(), [POOL_A, POOL_C])

    assert result.records == [None, None]
    assert all(d.startswith("DecimalsOutOfRange") for d in result.diagnostics)


@pytest.mark.asyncio
async def test_malformed_address_is_a_sentinel(v2_chain: FakeChain) -> None:
    result = await run_batch(v2_chain, UniswapV2PairAdapter(), ["not-an-address", POOL_A])

    assert result.records[0] is None
    assert result.diagnostics[0].startswith("MalformedAddress")
    assert result.records[1] is not None


@pytest.mark.asyncio
async def test_length_matches_input_for_every_outcome(v2_chain: FakeChain) -> None:
    addresses = [POOL_A, POOL_B, "0x12", POOL_C, POOL_A]
    result = await run_batch(v2_chain, UniswapV2PairAdapter(), addresses)

    assert len(result) == len(addresses) == len(result.diagnostics)
    assert result.synced == 3
    assert result.skipped == 2


@pytest.mark.asyncio
async def test_unexpected_error_is_confined_to_entry(v2_chain: FakeChain) -> None:
    adapter = UniswapV2PairAdapter()
    real_fetch = adapter.fetch

    async def flaky(v, pool, *, current_tick=None):
        if pool == POOL_A:
            raise KeyError("boom")
        return await real_fetch(v, pool, current_tick=current_tick)

    adapter.fetch = flaky  # type: ignore[method-assign]
    result = await run_batch(v2_chain, adapter, [POOL_A, POOL_C])

    assert result.records[0] is None
    assert result.diagnostics[0].startswith("UnexpectedError: KeyError")
    assert result.records[1] is not None


@pytest.mark.asyncio
async def test_transport_error_escapes_the_batch(v2_chain: FakeChain) -> None:
    v2_chain.break_address(POOL_C, RemoteTransportError("connection reset"))
    with pytest.raises(RemoteTransportError):
        await run_batch(v2_chain, UniswapV2PairAdapter(), [POOL_A, POOL_C])


@pytest.mark.asyncio
async def test_budget_is_per_batch(v2_chain: FakeChain) -> None:
    # one V2 entry costs 3 pool calls + 2 decimals + 2 symbols = 7 capped calls
    config = BatchConfig(gas_cap=1_000, batch_gas_ceiling=7_000)
    service = BatchQueryService(v2_chain, config)

    assert (await service.run(UniswapV2PairAdapter(), [POOL_A])).synced == 1
    assert (await service.run(UniswapV2PairAdapter(), [POOL_A])).synced == 1
    with pytest.raises(ResourceCeilingExceeded):
        await service.run(UniswapV2PairAdapter(), [POOL_A, POOL_C])


@pytest.mark.asyncio
async def test_current_ticks_length_checked_before_any_call() -> None:
    reader = AsyncMock()
    service = BatchQueryService(reader)
    with pytest.raises(ValueError):
        await service.run(UniswapV3TickBitmapWindowAdapter(), [POOL_A, POOL_B], current_ticks=[0])
    reader.call.assert_not_called()
    reader.call_many.assert_not_called()
    reader.get_code.assert_not_called()


@pytest.mark.asyncio
async def test_current_ticks_are_routed_per_entry(chain: FakeChain) -> None:
    chain.v3_pool(POOL_A, tick=0, tick_spacing=10)
    chain.v3_pool(POOL_B, tick=0, tick_spacing=10)
    chain.tick_bitmap(POOL_A, -1, 5)
    chain.tick_bitmap(POOL_A, 0, 1)
    chain.tick_bitmap(POOL_B, 3, 2)

    result = await run_batch(
        chain, UniswapV3TickBitmapWindowAdapter(half_width=1), [POOL_A, POOL_B], current_ticks=[None, 800]
    )

    assert result.records[0].tick == 0 and result.records[0].bitmaps == (5, 1)
    assert result.records[1].tick == 800 and result.records[1].word_positions == (3,)


@pytest.mark.asyncio
async def test_all_calls_pinned_to_configured_block(v2_chain: FakeChain) -> None:
    await run_batch(v2_chain, UniswapV2PairAdapter(), [POOL_A], config=BatchConfig(block=123))
    assert {block for *_, block in v2_chain.calls} == {123}


@pytest.mark.asyncio
async def test_run_packed_round_trips(v2_chain: FakeChain) -> None:
    service = BatchQueryService(v2_chain, BatchConfig(include_diagnostics=True))
    adapter = UniswapV2PairAdapter()

    buf = await service.run_packed(adapter, [POOL_A, POOL_B, POOL_C])
    packed = unpack_batch(buf)

    assert packed.tag == "uniswap_v2_pair"
    assert packed.has_diagnostics
    assert packed.result == await service.run(adapter, [POOL_A, POOL_B, POOL_C])
