import pytest
from eth_abi import encode
from fakes import POOL_A, POOL_B, TOKEN_X, FakeChain

from poolbatch.core.models import EventLog
from poolbatch.tick_liquidity import (
    BURN_TOPIC0,
    MINT_TOPIC0,
    LiquidityChange,
    TickLiquidity,
    decode_liquidity_change,
    fetch_tick_liquidity,
    replay_tick_liquidity,
)

OWNER = "0x" + bytes(12).hex() + TOKEN_X.lower()[2:]


def _tick(tick: int) -> str:
    return "0x" + tick.to_bytes(32, "big", signed=True).hex()


def _mint(pool: str, lower: int, upper: int, amount: int, *, block: int, index: int = 0) -> EventLog:
    return EventLog(
        address=pool,
        topics=(MINT_TOPIC0, OWNER, _tick(lower), _tick(upper)),
        data=encode(["address", "uint128", "uint256", "uint256"], [TOKEN_X, amount, 0, 0]),
        block_number=block,
        log_index=index,
    )


def _burn(pool: str, lower: int, upper: int, amount: int, *, block: int, index: int = 0) -> EventLog:
    return EventLog(
        address=pool,
        topics=(BURN_TOPIC0, OWNER, _tick(lower), _tick(upper)),
        data=encode(["uint128", "uint256", "uint256"], [amount, 0, 0]),
        block_number=block,
        log_index=index,
    )


def test_decode_mint_and_burn() -> None:
    assert decode_liquidity_change(_mint(POOL_A, -120, 60, 7, block=1)) == LiquidityChange(POOL_A, -120, 60, 7)
    assert decode_liquidity_change(_burn(POOL_A, -120, 60, 3, block=1)) == LiquidityChange(POOL_A, -120, 60, -3)


def test_malformed_logs_are_ignored() -> None:
    topics = (MINT_TOPIC0, OWNER, _tick(0), _tick(60))
    short = EventLog(address=POOL_A, topics=topics, data=bytes(32), block_number=1, log_index=0)
    assert decode_liquidity_change(short) is None

    # tick topic that is not a sign-extended int24
    wide_topics = (MINT_TOPIC0, OWNER, "0x" + (2**30).to_bytes(32, "big").hex(), _tick(60))
    wide = EventLog(POOL_A, wide_topics, _mint(POOL_A, 0, 60, 1, block=1).data, 1, 0)
    assert decode_liquidity_change(wide) is None

    other = EventLog(address=POOL_A, topics=("0x" + "11" * 32,), data=b"", block_number=1, log_index=0)
    assert decode_liquidity_change(other) is None


def test_replay_net_and_gross() -> None:
    logs = [
        _mint(POOL_A, -60, 60, 100, block=5),
        _mint(POOL_A, 0, 60, 40, block=6),
        _burn(POOL_A, -60, 60, 30, block=7),
        _mint(POOL_B, -10, 10, 9, block=8),
    ]

    state = replay_tick_liquidity(logs)

    assert state[POOL_A] == {
        -60: TickLiquidity(net=70, gross=70),
        0: TickLiquidity(net=40, gross=40),
        60: TickLiquidity(net=-110, gross=110),
    }
    assert state[POOL_B] == {-10: TickLiquidity(9, 9), 10: TickLiquidity(-9, 9)}


def test_replay_follows_chain_order_not_list_order() -> None:
    # burn listed first but happens after the mint
    logs = [_burn(POOL_A, -60, 60, 100, block=9, index=1), _mint(POOL_A, -60, 60, 100, block=9, index=0)]
    assert replay_tick_liquidity(logs) == {POOL_A: {}}


def test_fully_burned_ticks_are_dropped() -> None:
    logs = [
        _mint(POOL_A, -60, 60, 100, block=1),
        _mint(POOL_A, 60, 120, 5, block=2),
        _burn(POOL_A, -60, 60, 100, block=3),
    ]
    assert replay_tick_liquidity(logs) == {POOL_A: {60: TickLiquidity(5, 5), 120: TickLiquidity(-5, 5)}}


@pytest.mark.asyncio
async def test_fetch_scans_in_steps_and_replays(chain: FakeChain) -> None:
    for log in (_mint(POOL_A, -60, 60, 100, block=4_000), _burn(POOL_A, -60, 60, 40, block=12_000)):
        chain.logs.append(log)
    chain.logs.append(_mint(POOL_B, 0, 10, 1, block=100))

    state, stats = await fetch_tick_liquidity(chain, pools=[POOL_A], from_block=0, to_block=12_999)

    assert sorted(chain.log_queries) == [(0, 4_999), (5_000, 9_999), (10_000, 12_999)]
    assert state == {POOL_A: {-60: TickLiquidity(60, 60), 60: TickLiquidity(-60, 60)}}
    assert stats.complete
