"""CLI 진입점: build / check 서브커맨드."""

import logging
from pathlib import Path
from typing import Optional

import numpy as np
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .validation import InconsistentTopology, InvalidConfiguration, UnsupportedMaterialPair

app = typer.Typer(
    name="pdlattice",
    help="노치 부재의 페리다이나믹 격자 이산화",
    no_args_is_help=True,
)

console = Console()


def _setup_logging(verbose: bool):
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _make_progress_callback(progress: Progress, task_id):
    """Rich Progress 콜백 생성."""
    def callback(stage: str, details: dict):
        msg = details.get("message", "")
        progress.update(task_id, description=f"[cyan]{stage}[/] {msg}")
    return callback


def _load_config(config_path: Optional[Path]):
    from .config import DiscretizationConfig

    if config_path is None:
        return DiscretizationConfig.default()
    return DiscretizationConfig.from_toml(config_path)


@app.command()
def build(
    config_path: Optional[Path] = typer.Argument(None, help="설정 파일 경로 (TOML)"),
    output: Path = typer.Option(Path("discretization.npz"), "-o", "--output", help="출력 NPZ 경로"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="단계별 로그 출력"),
):
    """이산화를 수행하고 NPZ 스냅샷으로 저장."""
    from .pipeline import discretize

    _setup_logging(verbose)
    try:
        cfg = _load_config(config_path)
        with Progress(SpinnerColumn(), TextColumn("{task.description}"), console=console) as progress:
            task = progress.add_task("[cyan]discretize[/] 시작...", total=None)
            disc = discretize(cfg, progress_callback=_make_progress_callback(progress, task))
    except (FileNotFoundError, ValidationError, InvalidConfiguration,
            InconsistentTopology, UnsupportedMaterialPair) as e:
        console.print(f"[red]실패[/]: {escape(str(e))}")
        raise typer.Exit(1)

    output.parent.mkdir(parents=True, exist_ok=True)
    np.savez_compressed(output, **disc.to_arrays())

    table = Table(title="Discretization")
    table.add_column("quantity")
    table.add_column("value", justify="right")
    for key, value in disc.summary().items():
        table.add_row(key, f"{value:.4g}" if isinstance(value, float) else str(value))
    console.print(table)
    console.print(f"[green]완료[/]: {output} ({sum(disc.timings.values()):.1f}초)")


@app.command()
def check(
    config_path: Optional[Path] = typer.Argument(None, help="설정 파일 경로 (TOML)"),
):
    """설정만 검증 (이산화는 하지 않음)."""
    from .core.lattice import build_lattice
    from .core.notch import NotchRegion

    try:
        cfg = _load_config(config_path)
        lat = cfg.lattice
        lattice = build_lattice(
            spacing=lat.spacing,
            divisions=tuple(lat.divisions),
            dim=lat.dim,
            origin=tuple(lat.origin) if lat.origin is not None else None,
            edge_inclusive=lat.edge_inclusive,
            thickness=lat.thickness,
        )
        notch = None
        if cfg.notch is not None:
            notch = NotchRegion.from_lattice(
                lattice,
                eccentricity=cfg.notch.eccentricity,
                depth=cfg.notch.depth,
                normal_axis=cfg.notch.normal_axis,
                depth_axis=cfg.notch.depth_axis,
                face=cfg.notch.face,
            )
    except (FileNotFoundError, ValidationError, InvalidConfiguration) as e:
        console.print(f"[red]실패[/]: {escape(str(e))}")
        raise typer.Exit(1)

    console.print(f"points:  {lattice.n_points}")
    console.print(f"horizon: {cfg.horizon:.6g}")
    console.print(f"notch:   {notch.describe() if notch else 'none'}")
    console.print("[green]OK[/]")


if __name__ == "__main__":
    app()
