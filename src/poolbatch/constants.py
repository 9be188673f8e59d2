from __future__ import annotations

# Uniswap V3 tick bounds (TickMath.MIN_TICK / MAX_TICK)
MIN_TICK = -887272
MAX_TICK = 887272

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Same address on every chain it is deployed to
BALANCER_V2_VAULT = "0xBA12222222228d8Ba445958a75a0704d566BF2C8"

# Added by the node to every eth_call on top of the execution gas cap
INTRINSIC_GAS = 21_000
CALLDATA_ZERO_BYTE_GAS = 4
CALLDATA_NONZERO_BYTE_GAS = 16

# Factory addresses per chain: adapters get theirs through AdapterSettings,
# discovery and pair listing read the rest directly
CHAIN_PRESETS: dict[str, dict[str, str]] = {
    "ethereum": {
        "uniswap_v2_factory": "0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f",
        "uniswap_v3_factory": "0x1F98431c8aD98523631AE4a59f267346ea31F984",
        "curve_two_factory": "0x98EE851a00abeE0d95D08cF4CA2BdCE32aeaAF7F",
        "curve_tri_factory": "0x0c0e5f2fF0ff18a3be9b835635039256dC4B4963",
        "maverick_v2_factory": "0x0A7e848Aca42d879EF06507Fca0E7b33A0a63c1e",
        "balancer_weighted_factory": "0x897888115Ada5773E02aA29F775430BFB5F34c51",
        "balancer_vault": BALANCER_V2_VAULT,
    },
    "base": {
        "uniswap_v2_factory": "0x8909Dc15e40173Ff4699343b6eB8132c65e18eC6",
        "uniswap_v3_factory": "0x33128a8fC17869897dcE68Ed026d694621f6FDfD",
        "curve_two_factory": "0xc9Fe0C63Af9A39402e8a5514f9c43Af0322b665F",
        "curve_tri_factory": "0xA5961898870943c68037F6848d2D866Ed2016bcB",
        "maverick_v2_factory": "0x0A7e848Aca42d879EF06507Fca0E7b33A0a63c1e",
        "balancer_weighted_factory": "0x4C32a8a8fDa4E24139B51b456B42290f51d6A1c4",
        "balancer_vault": BALANCER_V2_VAULT,
    },
}
