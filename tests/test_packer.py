import struct

import pytest
from fakes import POOL_A, POOL_B, TOKEN_X, TOKEN_Y

from poolbatch.core.errors import PayloadTooLarge
from poolbatch.core.models import (
    BalancerWeightedPoolRecord,
    BatchResult,
    TickBitmapWindowRecord,
    UniswapV2PairRecord,
)
from poolbatch.encoding.packer import pack_batch, unpack_batch

V2_RECORD = UniswapV2PairRecord(
    pool=POOL_A,
    token0=TOKEN_X,
    token1=TOKEN_Y,
    token0_decimals=18,
    token1_decimals=6,
    token0_name="WETH",
    token1_name="UNK_" + TOKEN_Y.lower()[2:],
    reserve0=2**112 - 1,
    reserve1=0,
)


def _v2_result() -> BatchResult:
    result = BatchResult()
    result.append_record(V2_RECORD)
    result.append_sentinel("NotAContract: " + POOL_B)
    result.append_record(V2_RECORD)
    return result


def test_round_trip_is_byte_exact() -> None:
    buf = pack_batch(_v2_result(), "uniswap_v2_pair")
    packed = unpack_batch(buf)

    assert packed.tag == "uniswap_v2_pair"
    assert packed.result.records == [V2_RECORD, None, V2_RECORD]
    assert packed.result.diagnostics == [None, None, None]
    assert pack_batch(packed.result, packed.tag) == buf


def test_round_trip_with_diagnostics() -> None:
    result = _v2_result()
    buf = pack_batch(result, "uniswap_v2_pair", include_diagnostics=True)
    packed = unpack_batch(buf)

    assert packed.has_diagnostics
    assert packed.result == result
    assert pack_batch(packed.result, packed.tag, include_diagnostics=True) == buf


def test_round_trip_arrays_and_bytes32() -> None:
    result = BatchResult()
    result.append_record(
        BalancerWeightedPoolRecord(
            pool=POOL_A,
            pool_id=b"\x11" * 32,
            tokens=(TOKEN_X, TOKEN_Y),
            decimals=(18, 6),
            names=("WETH", "USDC"),
            balances=(10**30, 5),
            weights=(0, 0),
            swap_fee=10**15,
        )
    )
    buf = pack_batch(result, "balancer_weighted_pool")
    assert unpack_batch(buf).result == result
    assert pack_batch(unpack_batch(buf).result, "balancer_weighted_pool") == buf


def test_round_trip_negative_words() -> None:
    result = BatchResult()
    result.append_record(
        TickBitmapWindowRecord(pool=POOL_A, tick=-887272, tick_spacing=200, word_positions=(-3467, -3466), bitmaps=(1, 2**256 - 1))
    )
    buf = pack_batch(result, "uniswap_v3_tick_window")
    assert unpack_batch(buf).result == result


def test_header_layout() -> None:
    result = BatchResult()
    result.append_sentinel("NotAContract")
    buf = pack_batch(result, "maverick_v2_pool")

    tag = b"maverick_v2_pool"
    assert buf == struct.pack(">BBH", 1, 0, len(tag)) + tag + struct.pack(">I", 1) + b"\x00"


def test_sentinel_is_distinguishable_from_zero_record() -> None:
    zero = UniswapV2PairRecord(
        pool="0x" + "00" * 20,
        token0="0x" + "00" * 20,
        token1="0x" + "00" * 20,
        token0_decimals=0,
        token1_decimals=0,
        token0_name="",
        token1_name="",
        reserve0=0,
        reserve1=0,
    )
    result = BatchResult()
    result.append_record(zero)
    result.append_sentinel("x")

    records = unpack_batch(pack_batch(result, "uniswap_v2_pair")).result.records
    assert records[0] is not None
    assert records[1] is None


def test_payload_too_large() -> None:
    with pytest.raises(PayloadTooLarge):
        pack_batch(_v2_result(), "uniswap_v2_pair", max_payload_bytes=64)


def test_diagnostics_must_align_with_records() -> None:
    short = BatchResult(records=[V2_RECORD, None])
    with pytest.raises(ValueError, match="diagnostic"):
        pack_batch(short, "uniswap_v2_pair", include_diagnostics=True)
    # without the section the diagnostics list is not read
    assert unpack_batch(pack_batch(short, "uniswap_v2_pair")).result.records == [V2_RECORD, None]


def test_wrong_record_type_for_tag() -> None:
    with pytest.raises(TypeError):
        pack_batch(_v2_result(), "maverick_v2_pool")


def test_bad_version() -> None:
    buf = bytearray(pack_batch(_v2_result(), "uniswap_v2_pair"))
    buf[0] = 2
    with pytest.raises(ValueError, match="version"):
        unpack_batch(bytes(buf))


def test_unknown_tag() -> None:
    tag = b"nope"
    buf = struct.pack(">BBH", 1, 0, len(tag)) + tag + struct.pack(">I", 0)
    with pytest.raises(ValueError, match="unknown adapter tag"):
        unpack_batch(buf)


def test_truncated_buffer() -> None:
    buf = pack_batch(_v2_result(), "uniswap_v2_pair")
    for cut in (1, 5, len(buf) // 2, len(buf) - 1):
        with pytest.raises(ValueError):
            unpack_batch(buf[:cut])


def test_trailing_bytes_rejected() -> None:
    buf = pack_batch(_v2_result(), "uniswap_v2_pair")
    with pytest.raises(ValueError, match="trailing"):
        unpack_batch(buf + b"\x00")
