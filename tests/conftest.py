from unittest.mock import AsyncMock

import pytest
from fakes import POOL_A, POOL_B, POOL_C, TOKEN_X, TOKEN_Y, FakeChain

from poolbatch.core.config import BatchConfig
from poolbatch.validation.validator import DefensiveValidator


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def validator(chain: FakeChain) -> DefensiveValidator:
    return DefensiveValidator.from_config(chain, BatchConfig())


@pytest.fixture
def v2_chain(chain: FakeChain) -> FakeChain:
    """Three V2 pairs A, B, C over tokens X/Y (B is set up but left codeless)."""
    chain.token(TOKEN_X, decimals=18, symbol="WETH")
    chain.token(TOKEN_Y, decimals=6, symbol="USDC")
    for pool in (POOL_A, POOL_B, POOL_C):
        chain.v2_pair(pool, TOKEN_X, TOKEN_Y)
    del chain.code[POOL_B.lower()]
    return chain


@pytest.fixture
def mock_rpc():
    rpc = AsyncMock()
    rpc.latest_block = AsyncMock(return_value=100)
    rpc.aclose = AsyncMock()
    return rpc
