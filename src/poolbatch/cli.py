import asyncio
import time
from pathlib import Path

import click
from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)

from poolbatch.adapters.registry import ADAPTERS, make_adapter
from poolbatch.clients.rpc import RPC
from poolbatch.constants import CHAIN_PRESETS
from poolbatch.core.config import BatchConfig
from poolbatch.core.errors import BatchFatalError, EntrySkip
from poolbatch.discovery import (
    CREATION_EVENTS,
    DEFAULT_LOG_STEP,
    FACTORY_PRESET_KEYS,
    creation_event_for,
    discover_pools,
)
from poolbatch.encoding.packer import pack_batch
from poolbatch.factory import DEFAULT_PAIR_STEP, PairFactory, iter_pair_ranges
from poolbatch.log import configure_logging
from poolbatch.orchestration.orchestrator import sync_pools
from poolbatch.settings import load_settings
from poolbatch.storage.export import batch_to_table, write_parquet
from poolbatch.tick_liquidity import DEFAULT_TICK_LOG_STEP, fetch_tick_liquidity

console = Console(stderr=True)


def parse_block(value: str) -> int | str:
    """`"latest"`-style tags pass through; decimal or 0x-hex become ints."""
    v = value.strip().lower()
    if v.startswith("0x"):
        return int(v, 16)
    if v.isdigit():
        return int(v)
    return v


def read_addresses(addresses: tuple[str, ...], addresses_file: str | None) -> list[str]:
    """Addresses from repeated options, then from the file (one per line, `#` comments)."""
    out = list(addresses)
    if addresses_file:
        for line in Path(addresses_file).read_text(encoding="utf-8").splitlines():
            line = line.split("#", 1)[0].strip()
            if line:
                out.append(line)
    return out


def _progress(label: str = "querying pools") -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn(f"[bold]{label}[/]"),
        BarColumn(),
        MofNCompleteColumn(),
        TextColumn("•"),
        TimeElapsedColumn(),
        TextColumn("→"),
        TimeRemainingColumn(),
        TextColumn(" • {task.description}"),
        console=console,
        transient=False,
        expand=True,
    )


def _preset_address(explicit: str | None, chain: str | None, key: str) -> str:
    """An explicit address wins; otherwise the `key` entry of the chain preset."""
    if explicit:
        return explicit
    if chain is None:
        raise click.UsageError(f"Pass an address or --chain to use the {key} preset")
    address = CHAIN_PRESETS[chain].get(key)
    if address is None:
        raise click.UsageError(f"No {key} preset for chain {chain!r}")
    return address


@click.group()
@click.option("--log-level", default="WARNING", show_default=True, help="Package log level")
def cli(log_level: str) -> None:
    """poolbatch: defensive batch snapshots of on-chain liquidity pools."""
    configure_logging(log_level, console=console)


@cli.command("fetch")
@click.option("--rpc", required=True, help="RPC endpoint URL")
@click.option("--adapter", "tag", type=click.Choice(sorted(ADAPTERS)), required=True, help="Protocol adapter")
@click.option("--address", "addresses", multiple=True, help="Pool address; repeat for more")
@click.option("--addresses-file", type=click.Path(exists=True, dir_okay=False), help="One address per line")
@click.option("--chain", type=click.Choice(sorted(CHAIN_PRESETS)), default=None, help="Factory/vault presets")
@click.option("--settings", "settings_path", type=click.Path(exists=True, dir_okay=False), help="JSON settings")
@click.option("--shard-size", type=int, default=None, help="Addresses per batch (default from settings: 50)")
@click.option("--concurrency", type=int, default=None, help="Batches in flight (default from settings: 8)")
@click.option("--block", default="latest", show_default=True, help="Block number or tag for every call")
@click.option("--out", "out_path", type=click.Path(dir_okay=False), default=None, help="Parquet export path")
@click.option("--blob", "blob_path", type=click.Path(dir_okay=False), default=None, help="Packed buffer path")
def fetch_cmd(
    rpc: str,
    tag: str,
    addresses: tuple[str, ...],
    addresses_file: str | None,
    chain: str | None,
    settings_path: str | None,
    shard_size: int | None,
    concurrency: int | None,
    block: str,
    out_path: str | None,
    blob_path: str | None,
) -> None:
    """Query pools with one adapter and print a summary with a live progress bar."""
    pool_addresses = read_addresses(addresses, addresses_file)
    if not pool_addresses:
        raise click.UsageError("Pass at least one --address or an --addresses-file")

    try:
        settings = load_settings(settings_path)
        adapter = make_adapter(tag, settings.adapter_settings(chain))  # type: ignore[arg-type]
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    config = settings.batch_config(parse_block(block))
    sync = settings.sync_config(shard_size=shard_size, concurrency=concurrency)

    async def run():
        client = RPC(rpc)
        try:
            with _progress() as progress:
                task = progress.add_task(description=f"{tag} @ {config.block}", total=len(pool_addresses))
                return await sync_pools(
                    reader=client,
                    adapter=adapter,
                    addresses=pool_addresses,
                    config=config,
                    sync=sync,
                    on_progress=lambda n: progress.advance(task, n),
                )
        finally:
            await client.aclose()

    t0 = time.time()
    try:
        out = asyncio.run(run())
    except (BatchFatalError, ValueError) as e:
        raise click.ClickException(str(e)) from e
    elapsed = time.time() - t0

    stats = out.stats
    console.print(f"[bold]done[/]: {len(pool_addresses)} pools • {elapsed:.2f}s")
    console.print(
        f"[bold]summary[/]: "
        f"[green]synced[/]={stats.synced}  "
        f"[yellow]skipped[/]={stats.skipped}  "
        f"[red]batch_fatal[/]={stats.fatal_entries}  "
        f"(batches={stats.batches_ok}, failed={stats.batches_failed}, splits={stats.shards_split})"
    )

    if blob_path:
        # the payload limit applies per shard, enforced during the sync
        blob = pack_batch(out.result, adapter.tag, include_diagnostics=config.include_diagnostics)
        Path(blob_path).write_bytes(blob)
        console.print(f"💾 wrote → {blob_path}  ({len(blob)} bytes)")

    if out_path:
        table = batch_to_table(out.result, pool_addresses, adapter.record_type)
        write_parquet(table, out_path)
        console.print(f"💾 wrote → {out_path}  (rows={len(table)}, cols={len(table.schema)})")


@cli.command("pairs")
@click.option("--rpc", required=True, help="RPC endpoint URL")
@click.option("--factory", default=None, help="Uniswap-V2-style factory address (default: the --chain preset)")
@click.option("--chain", type=click.Choice(sorted(CHAIN_PRESETS)), default=None, help="Take the V2 factory from presets")
@click.option("--start", type=int, default=0, show_default=True, help="First pair index")
@click.option("--end", type=int, default=None, help="End index, exclusive (default: allPairsLength)")
@click.option("--step", type=int, default=DEFAULT_PAIR_STEP, show_default=True, help="Pairs per page")
@click.option("--block", default="latest", show_default=True, help="Block number or tag for every call")
def pairs_cmd(
    rpc: str, factory: str | None, chain: str | None, start: int, end: int | None, step: int, block: str
) -> None:
    """Print factory pair addresses, one per line."""
    factory = _preset_address(factory, chain, "uniswap_v2_factory")

    async def run() -> None:
        client = RPC(rpc)
        try:
            pf = PairFactory(client, factory, config=BatchConfig(block=parse_block(block)))
            count = await pf.pair_count()
            stop = count if end is None else min(end, count)
            total = missing = 0
            for a, b in iter_pair_ranges(max(0, stop - start), step):
                page = await pf.get_range(start + a, start + b)
                for pair in page:
                    if pair is None:
                        missing += 1
                        continue
                    click.echo(pair)
                    total += 1
            console.print(f"[bold]done[/]: {total} pairs in [{start}, {stop}) of {count}")
            if missing:
                console.print(f"[yellow]{missing} indices failed or returned the zero address[/]")
        finally:
            await client.aclose()

    try:
        asyncio.run(run())
    except EntrySkip as e:
        raise click.ClickException(f"factory call failed: {e.describe()}") from e
    except (BatchFatalError, ValueError) as e:
        raise click.ClickException(str(e)) from e


@cli.command("discover")
@click.option("--rpc", required=True, help="RPC endpoint URL")
@click.option("--adapter", "tag", type=click.Choice(sorted(CREATION_EVENTS)), required=True, help="Pool family")
@click.option("--factory", "factories", multiple=True, help="Factory address; repeat for more")
@click.option("--chain", type=click.Choice(sorted(CHAIN_PRESETS)), default=None, help="Take the factory from presets")
@click.option("--from-block", type=int, default=0, show_default=True, help="First block (inclusive)")
@click.option("--to-block", type=int, default=None, help="Last block, inclusive (default: latest)")
@click.option("--step", type=int, default=DEFAULT_LOG_STEP, show_default=True, help="Blocks per eth_getLogs")
@click.option("--concurrency", type=int, default=4, show_default=True, help="Requests in flight")
@click.option("--out", "out_path", type=click.Path(dir_okay=False), default=None, help="Write addresses to a file")
def discover_cmd(
    rpc: str,
    tag: str,
    factories: tuple[str, ...],
    chain: str | None,
    from_block: int,
    to_block: int | None,
    step: int,
    concurrency: int,
    out_path: str | None,
) -> None:
    """List pools a factory created, from its creation events, in creation order."""
    factory_list = list(factories) or [_preset_address(None, chain, FACTORY_PRESET_KEYS[tag])]
    event = creation_event_for(tag)

    async def run():
        client = RPC(rpc)
        try:
            stop = to_block if to_block is not None else await client.latest_block()
            with _progress("scanning blocks") as progress:
                task = progress.add_task(description=f"{tag} [{from_block}, {stop}]", total=stop - from_block + 1)
                return await discover_pools(
                    client,
                    event=event,
                    factory=factory_list,
                    from_block=from_block,
                    to_block=stop,
                    step=step,
                    concurrency=concurrency,
                    on_progress=lambda n: progress.advance(task, n),
                )
        finally:
            await client.aclose()

    try:
        out = asyncio.run(run())
    except (BatchFatalError, ValueError) as e:
        raise click.ClickException(str(e)) from e

    if out_path:
        Path(out_path).write_text("".join(f"{pool}\n" for pool in out.pools), encoding="utf-8")
        console.print(f"💾 wrote → {out_path}  ({len(out.pools)} pools)")
    else:
        for pool in out.pools:
            click.echo(pool)

    stats = out.stats
    console.print(
        f"[bold]summary[/]: [green]pools[/]={len(out.pools)}  logs={stats.total_logs}  "
        f"(requests={stats.requests_ok}, failed={stats.requests_failed}, splits={stats.splits})"
    )
    if not stats.complete:
        ranges = ", ".join(f"{a}-{b}" for a, b in stats.failed_ranges)
        console.print(f"[red]incomplete[/]: no logs for blocks {ranges}")


@cli.command("ticks")
@click.option("--rpc", required=True, help="RPC endpoint URL")
@click.option("--pool", "pools", multiple=True, required=True, help="V3-style pool address; repeat for more")
@click.option("--from-block", type=int, required=True, help="First block, inclusive (the pool's creation block)")
@click.option("--to-block", type=int, default=None, help="Last block, inclusive (default: latest)")
@click.option("--step", type=int, default=DEFAULT_TICK_LOG_STEP, show_default=True, help="Blocks per eth_getLogs")
def ticks_cmd(rpc: str, pools: tuple[str, ...], from_block: int, to_block: int | None, step: int) -> None:
    """Replay Mint/Burn logs and print `pool tick liquidityNet liquidityGross` lines."""

    async def run():
        client = RPC(rpc)
        try:
            stop = to_block if to_block is not None else await client.latest_block()
            return await fetch_tick_liquidity(client, pools=list(pools), from_block=from_block, to_block=stop, step=step)
        finally:
            await client.aclose()

    try:
        state, stats = asyncio.run(run())
    except (BatchFatalError, ValueError) as e:
        raise click.ClickException(str(e)) from e

    for pool, ticks in state.items():
        for tick in sorted(ticks):
            liq = ticks[tick]
            click.echo(f"{pool} {tick} {liq.net} {liq.gross}")
    if not stats.complete:
        ranges = ", ".join(f"{a}-{b}" for a, b in stats.failed_ranges)
        console.print(f"[red]incomplete[/]: no logs for blocks {ranges}")


if __name__ == "__main__":
    cli()
