"""Command line interface for mmsim."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from rich.console import Console
from rich.table import Table

from mmsim.config import Config, load_config
from mmsim.engine.batch import run_batch
from mmsim.engine.clock import SteppedClock
from mmsim.engine.events import CollapseEvent
from mmsim.engine.simulation import MarketMakingSimulator
from mmsim.market.quotes import format_price
from mmsim.persistence.store import SimulationStore
from mmsim.reporting.export import history_frame
from mmsim.reporting.summary import export_summary, summarize_history
from mmsim.utils.io import save_table, timestamped_dir, write_config_snapshot, write_text
from mmsim.utils.logging import setup_logging
from mmsim.utils.validation import validate_config

app = typer.Typer(help="Market-making strategy simulator CLI")
console = Console()

DEFAULT_STORE = Path("results/store")


def _build_config(
    config: Optional[Path],
    asset: Optional[str] = None,
    seed: Optional[int] = None,
    regime: Optional[str] = None,
    drift: Optional[float] = None,
    atr_length: Optional[int] = None,
    mode: Optional[str] = None,
) -> Config:
    simulation: Dict[str, Any] = {}
    for key, value in (
        ("asset", asset),
        ("seed", seed),
        ("volatility_regime", regime),
        ("drift", drift),
        ("atr_length", atr_length),
        ("mode", mode),
    ):
        if value is not None:
            simulation[key] = value
    overrides = {"simulation": simulation} if simulation else None
    cfg = load_config(config, overrides=overrides)
    validate_config(cfg)
    return cfg


def _print_summary(summary, title: str) -> None:
    table = Table(title=title)
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    for metric, value in zip(summary["metric"], summary["value"]):
        table.add_row(str(metric), f"{value:,.4f}" if isinstance(value, float) else str(value))
    console.print(table)


def _persist_run(
    engine: MarketMakingSimulator,
    out_dir: Path,
    save: bool,
    store: Path,
) -> None:
    history = list(engine.history)
    if not history:
        console.print("[yellow]No ticks recorded; nothing to export[/yellow]")
        return
    csv_text = engine.export_csv()
    if csv_text is not None:
        write_text(csv_text + "\n", out_dir, "history.csv")
    write_text(engine.export_json(), out_dir, "simulation.json")
    write_config_snapshot(engine.config, out_dir)
    summary = summarize_history(
        history_frame(history),
        trades=engine.ledger.trades_executed,
        collapses=len(engine.ledger.collapses),
    )
    export_summary(summary, out_dir)
    _print_summary(summary, f"{engine.asset_name} {engine.mode} run")
    if save:
        record = engine.export_payload()
        record["timestamp"] = datetime.now(timezone.utc).isoformat()
        sim_id = SimulationStore(store).save(record)
        console.print(f"Stored simulation [bold]{sim_id}[/bold] in {store}")


@app.command()
def run(
    config: Optional[Path] = typer.Option(None, exists=True, dir_okay=False, help="Configuration YAML"),
    ticks: int = typer.Option(500, min=1, help="Number of simulation ticks"),
    out: Path = typer.Option(Path("results/runs"), help="Output directory"),
    asset: Optional[str] = typer.Option(None, help="Asset override (BTC, ETH, SOL, APT)"),
    seed: Optional[int] = typer.Option(None, help="RNG seed override"),
    regime: Optional[str] = typer.Option(None, help="Volatility regime: low, medium, high"),
    drift: Optional[float] = typer.Option(None, help="Annualised drift of the price path"),
    atr_length: Optional[int] = typer.Option(None, help="ATR lookback (clamped to 5-50)"),
    save: bool = typer.Option(False, help="Also store the run in the simulation store"),
    store: Path = typer.Option(DEFAULT_STORE, help="Simulation store directory"),
    log_level: str = typer.Option("WARNING", help="Logging level"),
) -> None:
    """Run a deterministic simulation for a fixed number of ticks."""

    setup_logging(log_level)
    cfg = _build_config(config, asset, seed, regime, drift, atr_length, mode="simulation")
    out_dir = timestamped_dir(out, cfg.meta.name or cfg.simulation.asset)
    console.print(f"[bold green]Running simulation[/bold green] -> {out_dir}")
    engine = MarketMakingSimulator(cfg, clock=SteppedClock(step_ms=cfg.trading.tick_interval_ms))
    collapses = []
    engine.events.subscribe(CollapseEvent, collapses.append)
    engine.run(ticks)
    if collapses:
        console.print(f"{len(collapses)} collapse(s) netted inventory")
    _persist_run(engine, out_dir, save, store)


@app.command()
def live(
    config: Optional[Path] = typer.Option(None, exists=True, dir_okay=False, help="Configuration YAML"),
    duration: float = typer.Option(60.0, min=1.0, help="Seconds to keep quoting"),
    out: Path = typer.Option(Path("results/live"), help="Output directory"),
    asset: Optional[str] = typer.Option(None, help="Asset override (BTC, ETH, SOL, APT)"),
    save: bool = typer.Option(False, help="Also store the run in the simulation store"),
    store: Path = typer.Option(DEFAULT_STORE, help="Simulation store directory"),
    log_level: str = typer.Option("INFO", help="Logging level"),
) -> None:
    """Quote against live CoinGecko prices for ``duration`` seconds."""

    setup_logging(log_level)
    cfg = _build_config(config, asset, mode="live")
    out_dir = timestamped_dir(out, cfg.simulation.asset)
    engine = MarketMakingSimulator(cfg)
    console.print(f"[bold cyan]Live quoting {cfg.simulation.asset}[/bold cyan] for {duration:.0f}s")
    asyncio.run(engine.run_for(duration))
    if engine.current_mid:
        console.print(f"Last mid {format_price(engine.current_mid, engine.asset)}")
    _persist_run(engine, out_dir, save, store)


@app.command()
def batch(
    config: Optional[Path] = typer.Option(None, exists=True, dir_okay=False, help="Configuration YAML"),
    runs: int = typer.Option(16, min=1, help="Number of seeds"),
    start_seed: int = typer.Option(1, help="First seed; later runs use consecutive seeds"),
    ticks: int = typer.Option(500, min=1, help="Ticks per run"),
    out: Path = typer.Option(Path("results/batch"), help="Output directory"),
) -> None:
    """Run the same configuration across many seeds and report percentiles."""

    cfg = _build_config(config)
    out_dir = timestamped_dir(out, cfg.meta.name or cfg.simulation.asset)
    console.print(f"[bold cyan]Running {runs} seeds[/bold cyan] -> {out_dir}")
    result = run_batch(cfg, range(start_seed, start_seed + runs), ticks)
    save_table(result.metrics, out_dir, "batch_metrics")
    table = Table(title="Percentiles")
    table.add_column("Metric")
    for key in ("p10", "p50", "p90"):
        table.add_column(key, justify="right")
    for metric, values in result.percentiles.items():
        table.add_row(metric, *(f"{values[key]:,.4f}" for key in ("p10", "p50", "p90")))
    console.print(table)


@app.command()
def assets(config: Optional[Path] = typer.Option(None, exists=True, dir_okay=False, help="Configuration YAML")) -> None:
    """List configured assets and their quoting parameters."""

    cfg = load_config(config)
    table = Table(title="Assets")
    for column in ("Asset", "k_vol", "k_pos", "Tick", "Max position", "Init price", "Feed id"):
        table.add_column(column)
    for name, asset_cfg in cfg.assets.items():
        table.add_row(
            name,
            f"{asset_cfg.k_vol:g}",
            f"{asset_cfg.k_pos:g}",
            f"{asset_cfg.tick_size:g}",
            f"{asset_cfg.max_position:g}",
            format_price(asset_cfg.init_price, asset_cfg),
            asset_cfg.coin_id,
        )
    console.print(table)


@app.command()
def saved(
    store: Path = typer.Option(DEFAULT_STORE, help="Simulation store directory"),
    sim_id: Optional[str] = typer.Option(None, "--id", help="Show one stored simulation"),
) -> None:
    """List stored simulations, or summarise one of them."""

    repo = SimulationStore(store)
    if sim_id is None:
        entries = repo.list()
        if not entries:
            console.print("No stored simulations")
            return
        for entry in entries:
            console.print(f"[bold]{entry['id']}[/bold] {entry.get('asset')} {entry.get('timestamp')}")
        return
    record = repo.get(sim_id)
    if record is None:
        console.print(f"[red]Simulation {sim_id} not found[/red]")
        raise typer.Exit(code=1)
    final = record.get("final_state", {})
    console.print(f"[bold]{sim_id}[/bold] {record.get('asset')} ({record.get('mode')})")
    console.print(f"  ticks: {len(record.get('history', []))}")
    console.print(f"  trades kept: {len(record.get('trades', []))}, collapses: {len(record.get('collapses', []))}")
    console.print(f"  final balance: {final.get('balance')}, realized pnl: {final.get('realized_pnl')}")


@app.command()
def validate(config: Path = typer.Argument(..., exists=True, dir_okay=False)) -> None:
    """Validate configuration without running simulation."""

    cfg = load_config(config)
    validate_config(cfg)
    console.print("Configuration validated successfully")


if __name__ == "__main__":
    app()
