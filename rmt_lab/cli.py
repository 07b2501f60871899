"""
cli.py - Rich Command Line Interface for RMT Lab

Runs the noise-filtering experiment from the terminal and renders its
numeric artifacts as tables.

Usage:
    rmt-lab --help
    rmt-lab run --assets 50 --ratio 0.35 --seed 42
    rmt-lab run --ratio 0.85 --method exact --weights
    rmt-lab sweep --start 0.05 --stop 0.85 --step 0.1
    rmt-lab version
"""

from __future__ import annotations

import sys
from typing import List

import numpy as np
import typer
from loguru import logger
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .config import (
    DEFAULT_ASPECT_RATIO,
    DEFAULT_ASSET_COUNT,
    DEFAULT_NUM_BINS,
    DEFAULT_SEED,
    PipelineConfig,
)
from .decomposition import DEFAULT_POWER_STEPS, SpectralMethod
from .errors import RMTLabError
from .optimization import DEFAULT_OPTIMIZER_STEPS
from .pipeline import run_pipeline
from .simulation import DEFAULT_LOADING_SCALE, DEFAULT_NUM_FACTORS
from .types import PipelineResult

# Initialize Typer app and Rich console
app = typer.Typer(
    name="rmt-lab",
    help="Random-matrix noise filtering for correlation matrices and min-variance portfolios",
    add_completion=False,
    rich_markup_mode="rich",
)
console = Console()


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def configure_logging(verbose: bool) -> None:
    """Route loguru to stderr; quiet unless --verbose."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


def build_config(
    assets: int,
    ratio: float,
    seed: int,
    power_steps: int,
    optimizer_steps: int,
    factors: int,
    loading_scale: float,
    bins: int,
    method: SpectralMethod,
) -> PipelineConfig:
    """Validate CLI options into a PipelineConfig, exiting on error."""
    try:
        return PipelineConfig(
            asset_count=assets,
            aspect_ratio=ratio,
            seed=seed,
            power_iteration_steps=power_steps,
            optimizer_steps=optimizer_steps,
            num_factors=factors,
            loading_scale=loading_scale,
            num_bins=bins,
            spectral_method=method,
        )
    except RMTLabError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)


def print_summary(result: PipelineResult) -> None:
    """Print the spectrum and partition summary."""
    table = Table(title="Spectrum Summary", box=box.ROUNDED, show_header=False, title_style="bold cyan")
    table.add_column("Property", style="dim")
    table.add_column("Value", style="bold")

    table.add_row("Assets (N)", str(result.n_assets))
    table.add_row("Periods (T)", str(result.n_periods))
    table.add_row("Aspect ratio (q)", f"{result.aspect_ratio:.3f}")
    table.add_row("λ- / λ+", f"{result.lambda_minus:.3f} / {result.lambda_plus:.3f}")
    table.add_row("Largest eigenvalue", f"{result.eigenvalues[-1]:.3f}")
    table.add_row("Signal eigenvalues", f"[green]{result.signal_count}[/green]")
    table.add_row("Noise eigenvalues", f"[yellow]{result.noise_count}[/yellow]")

    console.print(table)


def print_histogram(result: PipelineResult) -> None:
    """Print the eigenvalue histogram against the MP density."""
    table = Table(title="Eigenvalue Density vs Marchenko-Pastur", box=box.SIMPLE)
    table.add_column("λ", justify="right", style="cyan")
    table.add_column("Count", justify="right")
    table.add_column("Empirical", justify="right")
    table.add_column("MP", justify="right")
    table.add_column("Bar", justify="left")

    peak = max((b.density for b in result.histogram), default=0.0)
    for b in result.histogram:
        bar_len = int(20 * b.density / peak) if peak > 0 else 0
        color = "green" if b.is_signal else "yellow"
        bar = f"[{color}]{'█' * bar_len}[/{color}]"
        table.add_row(
            f"{b.midpoint:.2f}",
            str(b.count),
            f"{b.density:.3f}",
            f"{b.mp_density:.3f}",
            bar,
        )

    console.print(table)


def print_portfolios(result: PipelineResult) -> None:
    """Print the raw-versus-cleaned portfolio comparison."""
    table = Table(title="Minimum-Variance Portfolios", box=box.ROUNDED)
    table.add_column("Metric", style="dim")
    table.add_column("Raw", justify="right")
    table.add_column("Cleaned", justify="right")

    table.add_row("Estimated volatility", f"{result.vol_raw:.4f}", f"{result.vol_clean:.4f}")
    table.add_row("Volatility under raw matrix", f"{result.vol_raw:.4f}", f"{result.vol_realized:.4f}")
    table.add_row(
        "Volatility under population",
        f"{result.population_vol_raw:.4f}",
        f"{result.population_vol_clean:.4f}",
    )
    table.add_row("Herfindahl index", f"{result.hhi_raw:.4f}", f"{result.hhi_clean:.4f}")
    table.add_row(
        "Effective positions",
        f"{1.0 / result.hhi_raw:.1f}",
        f"{1.0 / result.hhi_clean:.1f}",
    )
    table.add_row("Max |weight|", f"{result.max_abs_raw:.2%}", f"{result.max_abs_clean:.2%}")

    console.print(table)


def print_weights(result: PipelineResult, limit: int = 10) -> None:
    """Print the extreme raw weights next to their cleaned counterparts."""
    rows = result.sorted_weights()
    picked = rows if len(rows) <= 2 * limit else rows[:limit] + rows[-limit:]

    table = Table(title="Weights (sorted by raw)", box=box.SIMPLE)
    table.add_column("Asset", style="cyan")
    table.add_column("Raw", justify="right")
    table.add_column("Cleaned", justify="right")
    for label, raw, clean in picked:
        raw_color = "green" if raw >= 0 else "red"
        clean_color = "green" if clean >= 0 else "red"
        table.add_row(
            label,
            f"[{raw_color}]{raw:+.2%}[/{raw_color}]",
            f"[{clean_color}]{clean:+.2%}[/{clean_color}]",
        )
    if len(rows) > len(picked):
        table.add_row("...", f"({len(rows) - len(picked)} more)", "")

    console.print(table)


def ratio_grid(start: float, stop: float, step: float) -> List[float]:
    """Inclusive grid start, start + step, ... <= stop, rounded to 1e-6."""
    if step <= 0:
        raise ValueError(f"step must be positive, got {step}")
    count = int(np.floor((stop - start) / step + 1e-9)) + 1
    return [round(start + i * step, 6) for i in range(max(count, 0))]


# =============================================================================
# COMMANDS
# =============================================================================

@app.command()
def run(
    assets: int = typer.Option(DEFAULT_ASSET_COUNT, "--assets", "-n", help="Number of assets N"),
    ratio: float = typer.Option(DEFAULT_ASPECT_RATIO, "--ratio", "-q", help="Aspect ratio q = N/T in (0, 1)"),
    seed: int = typer.Option(DEFAULT_SEED, "--seed", "-s", help="Generator seed"),
    power_steps: int = typer.Option(DEFAULT_POWER_STEPS, "--power-steps", help="Power iterations per eigenpair"),
    optimizer_steps: int = typer.Option(DEFAULT_OPTIMIZER_STEPS, "--optimizer-steps", help="Gradient steps"),
    factors: int = typer.Option(DEFAULT_NUM_FACTORS, "--factors", "-k", help="Latent factors in the panel"),
    loading_scale: float = typer.Option(DEFAULT_LOADING_SCALE, "--loading-scale", help="Factor loading multiplier"),
    bins: int = typer.Option(DEFAULT_NUM_BINS, "--bins", help="Histogram bins"),
    method: SpectralMethod = typer.Option(SpectralMethod.POWER, "--method", "-m", help="Eigen-decomposition method"),
    weights: bool = typer.Option(False, "--weights", "-w", help="Show per-asset weights"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """
    Run the experiment at one aspect ratio.

    Example:
        rmt-lab run --assets 50 --ratio 0.35
        rmt-lab run -q 0.85 --method exact --weights
    """
    configure_logging(verbose)
    config = build_config(
        assets, ratio, seed, power_steps, optimizer_steps, factors, loading_scale, bins, method
    )

    console.print(Panel.fit("🔬 [bold]RMT Noise Filtering[/bold]", border_style="blue"))
    console.print(
        f"  Panel: [cyan]{config.n_periods}[/cyan] periods × [cyan]{config.asset_count}[/cyan] assets "
        f"(q = {config.aspect_ratio:.3f})\n"
    )

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        transient=True,
        console=console,
    ) as progress:
        progress.add_task("Running pipeline...", total=None)
        try:
            result = run_pipeline(config)
        except RMTLabError as exc:
            console.print(f"[red]Error:[/red] {exc}")
            raise typer.Exit(1)

    print_summary(result)
    print_histogram(result)
    print_portfolios(result)
    if weights:
        print_weights(result)


@app.command()
def sweep(
    start: float = typer.Option(0.05, "--start", help="First aspect ratio"),
    stop: float = typer.Option(0.85, "--stop", help="Last aspect ratio (inclusive)"),
    step: float = typer.Option(0.1, "--step", help="Aspect ratio increment"),
    assets: int = typer.Option(DEFAULT_ASSET_COUNT, "--assets", "-n", help="Number of assets N"),
    seed: int = typer.Option(DEFAULT_SEED, "--seed", "-s", help="Generator seed"),
    factors: int = typer.Option(DEFAULT_NUM_FACTORS, "--factors", "-k", help="Latent factors in the panel"),
    method: SpectralMethod = typer.Option(SpectralMethod.POWER, "--method", "-m", help="Eigen-decomposition method"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """
    Run the experiment across a grid of aspect ratios.

    Example:
        rmt-lab sweep --start 0.05 --stop 0.85 --step 0.05
    """
    configure_logging(verbose)
    try:
        ratios = ratio_grid(start, stop, step)
    except ValueError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)
    base = build_config(
        assets,
        ratios[0] if ratios else DEFAULT_ASPECT_RATIO,
        seed,
        DEFAULT_POWER_STEPS,
        DEFAULT_OPTIMIZER_STEPS,
        factors,
        DEFAULT_LOADING_SCALE,
        DEFAULT_NUM_BINS,
        method,
    )

    console.print(Panel.fit("📈 [bold]Aspect Ratio Sweep[/bold]", border_style="blue"))

    table = Table(title=f"N={assets}, seed={seed}", box=box.ROUNDED)
    table.add_column("q", justify="right", style="cyan")
    table.add_column("T", justify="right")
    table.add_column("λ+", justify="right")
    table.add_column("Signal", justify="right", style="green")
    table.add_column("Noise", justify="right", style="yellow")
    table.add_column("Vol raw", justify="right")
    table.add_column("Vol clean", justify="right")
    table.add_column("Vol realized", justify="right")
    table.add_column("HHI raw", justify="right")
    table.add_column("HHI clean", justify="right")

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        transient=True,
        console=console,
    ) as progress:
        task = progress.add_task("Sweeping...", total=len(ratios))
        for q in ratios:
            try:
                result = run_pipeline(base.with_aspect_ratio(q))
            except RMTLabError as exc:
                console.print(f"[red]Error at q={q}:[/red] {exc}")
                raise typer.Exit(1)
            table.add_row(
                f"{q:.3f}",
                str(result.n_periods),
                f"{result.lambda_plus:.3f}",
                str(result.signal_count),
                str(result.noise_count),
                f"{result.vol_raw:.4f}",
                f"{result.vol_clean:.4f}",
                f"{result.vol_realized:.4f}",
                f"{result.hhi_raw:.4f}",
                f"{result.hhi_clean:.4f}",
            )
            progress.advance(task)

    console.print(table)


@app.command()
def version():
    """Show version information."""
    from rmt_lab import __version__

    console.print(Panel(
        f"[bold cyan]RMT Lab[/bold cyan] v{__version__}\n\n"
        "Marchenko-Pastur noise filtering for sample correlation\n"
        "matrices and minimum-variance portfolios.",
        border_style="cyan"
    ))


# =============================================================================
# ENTRY POINT
# =============================================================================

def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
