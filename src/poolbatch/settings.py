"""JSON settings file for the CLI, validated with pydantic.

Every key is optional; unknown keys are rejected. Chain presets fill in
factory/vault addresses the file leaves out.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal

from eth_utils import is_address
from pydantic import BaseModel, ConfigDict, Field, field_validator

from poolbatch.constants import BALANCER_V2_VAULT, CHAIN_PRESETS
from poolbatch.core.config import AdapterSettings, BatchConfig, SyncConfig

ChainName = Literal["ethereum", "base"]


class SettingsFile(BaseModel):
    """Typed contents of `--settings file.json`."""

    model_config = ConfigDict(extra="forbid")

    chain: ChainName | None = None

    # adapters
    curve_two_factory: str | None = None
    curve_tri_factory: str | None = None
    balancer_vault: str | None = None
    tick_half_width: int = Field(default=3, gt=0)
    ticks_to_fetch: int | None = Field(default=None, gt=0)
    resolve_names: bool = True

    # per-batch limits
    gas_cap: int = Field(default=20_000, gt=0)
    heavy_gas_cap: int = Field(default=250_000, gt=0)
    max_return_bytes: int = Field(default=8_192, gt=0)
    call_timeout_s: float | None = Field(default=None, gt=0)
    batch_gas_ceiling: int | None = Field(default=None, gt=0)
    include_diagnostics: bool = True
    max_payload_bytes: int | None = Field(default=None, gt=0)

    # orchestrator
    shard_size: int = Field(default=50, gt=0)
    concurrency: int = Field(default=8, gt=0)

    @field_validator("curve_two_factory", "curve_tri_factory", "balancer_vault")
    @classmethod
    def _check_address(cls, value: str | None) -> str | None:
        if value is not None and not is_address(value):
            raise ValueError(f"not a 20-byte hex address: {value!r}")
        return value

    def adapter_settings(self, chain: ChainName | None = None) -> AdapterSettings:
        """Adapter settings, with unset addresses taken from the chain preset."""
        preset = CHAIN_PRESETS.get(chain or self.chain or "", {})
        return AdapterSettings(
            curve_two_factory=self.curve_two_factory or preset.get("curve_two_factory"),
            curve_tri_factory=self.curve_tri_factory or preset.get("curve_tri_factory"),
            balancer_vault=self.balancer_vault or preset.get("balancer_vault", BALANCER_V2_VAULT),
            tick_half_width=self.tick_half_width,
            ticks_to_fetch=self.ticks_to_fetch,
            resolve_names=self.resolve_names,
        )

    def batch_config(self, block: int | str = "latest") -> BatchConfig:
        return BatchConfig(
            gas_cap=self.gas_cap,
            heavy_gas_cap=self.heavy_gas_cap,
            max_return_bytes=self.max_return_bytes,
            call_timeout_s=self.call_timeout_s,
            batch_gas_ceiling=self.batch_gas_ceiling,
            block=block,
            include_diagnostics=self.include_diagnostics,
            max_payload_bytes=self.max_payload_bytes,
        )

    def sync_config(self, *, shard_size: int | None = None, concurrency: int | None = None) -> SyncConfig:
        """Orchestrator config; explicit arguments win over the file."""
        return SyncConfig(
            shard_size=shard_size or self.shard_size,
            concurrency=concurrency or self.concurrency,
        )


def load_settings(path: Path | str | None) -> SettingsFile:
    """Parse and validate a settings file (defaults when `path` is None)."""
    if path is None:
        return SettingsFile()
    with open(path, encoding="utf-8") as f:
        return SettingsFile.model_validate(json.load(f))
