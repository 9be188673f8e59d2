from unittest.mock import patch

from click.testing import CliRunner
from eth_abi import encode
from fakes import POOL_A, POOL_B, TOKEN_X, TOKEN_Y, FakeChain, addr

from poolbatch.cli import cli, parse_block, read_addresses
from poolbatch.constants import CHAIN_PRESETS
from poolbatch.core.models import MaverickV2PoolRecord
from poolbatch.discovery import UNISWAP_V2_PAIR_CREATED
from poolbatch.encoding.packer import unpack_batch
from poolbatch.tick_liquidity import MINT_TOPIC0

FACTORY = addr(0xFAC)


def _maverick_chain() -> FakeChain:
    chain = FakeChain()
    chain.token(TOKEN_X, symbol="WETH")
    chain.token(TOKEN_Y, decimals=6, symbol="USDC")
    chain.on(POOL_A, "tokenA()", ("address",), (TOKEN_X,))
    chain.on(POOL_A, "tokenB()", ("address",), (TOKEN_Y,))
    return chain


def test_parse_block() -> None:
    assert parse_block("latest") == "latest"
    assert parse_block("123") == 123
    assert parse_block("0x10") == 16


def test_read_addresses(tmp_path) -> None:
    f = tmp_path / "pools.txt"
    f.write_text(f"# pools\n{POOL_B}\n\n{POOL_A}  # second\n")
    assert read_addresses((POOL_A,), str(f)) == [POOL_A, POOL_B, POOL_A]


def test_fetch_writes_blob_and_parquet(tmp_path) -> None:
    chain = _maverick_chain()
    blob = tmp_path / "out.bin"
    parquet = tmp_path / "out.parquet"

    with patch("poolbatch.cli.RPC", return_value=chain):
        result = CliRunner().invoke(
            cli,
            [
                "fetch",
                "--rpc", "http://node.test",
                "--adapter", "maverick_v2_pool",
                "--address", POOL_A,
                "--address", POOL_B,
                "--blob", str(blob),
                "--out", str(parquet),
            ],
        )

    assert result.exit_code == 0, result.output
    assert chain.closed

    packed = unpack_batch(blob.read_bytes())
    assert packed.tag == "maverick_v2_pool"
    assert isinstance(packed.result.records[0], MaverickV2PoolRecord)
    assert packed.result.records[0].token_a_name == "WETH"
    assert packed.result.records[1] is None
    assert packed.result.diagnostics[1].startswith("NotAContract")
    assert parquet.exists()


def test_fetch_requires_addresses() -> None:
    result = CliRunner().invoke(cli, ["fetch", "--rpc", "http://node.test", "--adapter", "maverick_v2_pool"])
    assert result.exit_code != 0


def test_fetch_curve_without_factory_fails() -> None:
    result = CliRunner().invoke(
        cli, ["fetch", "--rpc", "http://node.test", "--adapter", "curve_2pool", "--address", POOL_A]
    )
    assert result.exit_code == 1
    assert "curve_two_factory" in result.output


def test_pairs_lists_factory_pairs() -> None:
    chain = FakeChain()
    pairs = [addr(0x601), addr(0x602), addr(0x603)]
    chain.on(FACTORY, "allPairsLength()", ("uint256",), (len(pairs),))
    for i, pair in enumerate(pairs):
        chain.on(FACTORY, "allPairs(uint256)", ("address",), (pair,), arg_types=("uint256",), args=(i,))

    with patch("poolbatch.cli.RPC", return_value=chain):
        result = CliRunner().invoke(cli, ["pairs", "--rpc", "http://node.test", "--factory", FACTORY, "--step", "2"])

    assert result.exit_code == 0, result.output
    for pair in pairs:
        assert pair in result.output


def test_pairs_defaults_to_chain_preset_factory() -> None:
    factory = CHAIN_PRESETS["base"]["uniswap_v2_factory"]
    chain = FakeChain()
    chain.on(factory, "allPairsLength()", ("uint256",), (2,))
    chain.on(factory, "allPairs(uint256)", ("address",), (addr(0x611),), arg_types=("uint256",), args=(0,))
    chain.revert(factory, "allPairs(uint256)", arg_types=("uint256",), args=(1,))

    with patch("poolbatch.cli.RPC", return_value=chain):
        result = CliRunner().invoke(cli, ["pairs", "--rpc", "http://node.test", "--chain", "base"])

    assert result.exit_code == 0, result.output
    assert addr(0x611) in result.output
    assert "1 indices failed" in result.output


def test_pairs_needs_factory_or_chain() -> None:
    result = CliRunner().invoke(cli, ["pairs", "--rpc", "http://node.test"])
    assert result.exit_code != 0
    assert "--chain" in result.output


def _topic(value: str) -> str:
    return "0x" + bytes(12).hex() + value.lower()[2:]


def _tick_topic(tick: int) -> str:
    return "0x" + tick.to_bytes(32, "big", signed=True).hex()


def test_discover_lists_created_pools(tmp_path) -> None:
    factory = CHAIN_PRESETS["ethereum"]["uniswap_v2_factory"]
    chain = FakeChain()
    for block, pair in ((120, addr(0x621)), (50, addr(0x622))):
        chain.add_log(
            factory,
            [UNISWAP_V2_PAIR_CREATED.topic0, _topic(TOKEN_X), _topic(TOKEN_Y)],
            encode(["address", "uint256"], [pair, 1]),
            block=block,
        )
    out = tmp_path / "pools.txt"

    with patch("poolbatch.cli.RPC", return_value=chain):
        result = CliRunner().invoke(
            cli,
            [
                "discover",
                "--rpc", "http://node.test",
                "--adapter", "uniswap_v2_pair",
                "--chain", "ethereum",
                "--from-block", "0",
                "--to-block", "199",
                "--step", "100",
                "--out", str(out),
            ],
        )

    assert result.exit_code == 0, result.output
    assert chain.closed
    assert sorted(chain.log_queries) == [(0, 99), (100, 199)]
    assert read_addresses((), str(out)) == [addr(0x622), addr(0x621)]


def test_ticks_prints_replayed_liquidity() -> None:
    pool = addr(0x631)
    chain = FakeChain()
    chain.add_log(
        pool,
        [MINT_TOPIC0, _topic(TOKEN_X), _tick_topic(-60), _tick_topic(60)],
        encode(["address", "uint128", "uint256", "uint256"], [TOKEN_X, 500, 1, 1]),
        block=10,
    )

    with patch("poolbatch.cli.RPC", return_value=chain):
        result = CliRunner().invoke(
            cli, ["ticks", "--rpc", "http://node.test", "--pool", pool, "--from-block", "0", "--to-block", "20"]
        )

    assert result.exit_code == 0, result.output
    assert f"{pool} -60 500 500" in result.output
    assert f"{pool} 60 -500 500" in result.output
