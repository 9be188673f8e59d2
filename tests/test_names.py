import pytest
from fakes import TOKEN_X, TOKEN_Y, TOKEN_Z, FakeChain

from poolbatch.validation.names import decode_bytes32_symbol, placeholder_name, resolve_name, resolve_names
from poolbatch.validation.validator import DefensiveValidator


def test_placeholder_is_unk_plus_lowercase_hex() -> None:
    name = placeholder_name(TOKEN_X)
    assert name == "UNK_" + TOKEN_X.lower()[2:]
    assert len(name) == 4 + 40


def test_bytes32_symbol_stops_at_first_zero() -> None:
    assert decode_bytes32_symbol(b"MKR" + bytes(29)) == "MKR"
    assert decode_bytes32_symbol(b"A" * 32) == "A" * 32
    assert decode_bytes32_symbol(b"MKR") is None
    assert decode_bytes32_symbol(bytes(32)) is None


@pytest.mark.asyncio
async def test_string_symbol(chain: FakeChain, validator: DefensiveValidator) -> None:
    chain.on(TOKEN_X, "symbol()", ("string",), ("WETH",))
    assert await resolve_name(validator, TOKEN_X) == "WETH"


@pytest.mark.asyncio
async def test_bytes32_symbol_fallback(chain: FakeChain, validator: DefensiveValidator) -> None:
    chain.on(TOKEN_X, "symbol()", raw=b"MKR" + bytes(29))
    assert await resolve_name(validator, TOKEN_X) == "MKR"


@pytest.mark.asyncio
async def test_reverting_symbol_gives_placeholder(chain: FakeChain, validator: DefensiveValidator) -> None:
    chain.revert(TOKEN_X, "symbol()")
    assert await resolve_name(validator, TOKEN_X) == placeholder_name(TOKEN_X)


@pytest.mark.asyncio
async def test_empty_string_symbol_gives_placeholder(chain: FakeChain, validator: DefensiveValidator) -> None:
    chain.on(TOKEN_X, "symbol()", ("string",), ("",))
    assert await resolve_name(validator, TOKEN_X) == placeholder_name(TOKEN_X)


@pytest.mark.asyncio
async def test_symbol_is_called_once(chain: FakeChain, validator: DefensiveValidator) -> None:
    chain.on(TOKEN_X, "symbol()", raw=b"\x00" * 7)
    assert await resolve_name(validator, TOKEN_X) == placeholder_name(TOKEN_X)
    assert len(chain.calls) == 1


@pytest.mark.asyncio
async def test_resolve_names_shares_one_round_trip(chain: FakeChain, validator: DefensiveValidator) -> None:
    chain.on(TOKEN_X, "symbol()", ("string",), ("WETH",))
    chain.on(TOKEN_Y, "symbol()", raw=b"MKR" + bytes(29))
    chain.revert(TOKEN_Z, "symbol()")

    names = await resolve_names(validator, [TOKEN_X, TOKEN_Y, TOKEN_Z])

    assert names == ("WETH", "MKR", placeholder_name(TOKEN_Z))
    assert chain.round_trips == 1
