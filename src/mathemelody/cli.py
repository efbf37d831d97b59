"""
Command-line interface for Mathemelody.
"""

import asyncio
import threading
import time
from pathlib import Path
from typing import List, Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from .core.exceptions import ExpressionError, MathemelodyError, format_error_for_user
from .infrastructure.config.settings import get_config
from .infrastructure.monitoring.logging import configure_logging, get_logger
from .playback.engine import PlaybackEngine, StepOutcome
from .playback.evaluator import evaluate as evaluate_expression
from .playback.evaluator import graph as graph_expression
from .playback.notes import SCALE_FREQUENCIES, note_index
from .playback.scheduler import ManualScheduler, ThreadedScheduler
from .playback.tone import TONE_DURATION, RecordingSink, SoundDeviceSink, ToneTrigger

logger = get_logger(__name__)

app = typer.Typer(help="Mathemelody: equation grids played as music")
console = Console()


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output")):
    """Configure logging for every command."""
    logging_config = get_config().logging
    configure_logging(
        level="DEBUG" if verbose else logging_config.level,
        format_type=logging_config.format,
        log_file=logging_config.file,
    )


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Run the Composition API server."""
    import uvicorn

    api_config = get_config().api
    uvicorn.run(
        "mathemelody.api.app:create_app",
        factory=True,
        host=host or api_config.host,
        port=port or api_config.port,
        reload=reload or api_config.reload,
    )


@app.command("init-db")
def init_db():
    """Create the database tables."""
    from .infrastructure.database.connection import init_database

    database_config = get_config().database
    asyncio.run(init_database(database_config))
    rprint(f"[green]✓ Database ready at {database_config.url}[/green]")


@app.command()
def evaluate(
    expression: str = typer.Argument(..., help="Equation, e.g. 'x^2'"),
    x: float = typer.Option(0, "--x", "-x", help="Value bound to x"),
):
    """Evaluate one equation and show the note it plays."""
    try:
        result = evaluate_expression(expression, x)
    except ExpressionError as e:
        rprint(f"[red]Error: {format_error_for_user(e)}[/red]")
        raise typer.Exit(1)

    index = note_index(result.magnitude)
    table = Table(title=expression)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="magenta")
    table.add_row("x", f"{x:g}")
    table.add_row("value", str(result.value))
    table.add_row("magnitude", f"{result.magnitude:.6g}")
    table.add_row("note index", str(index))
    table.add_row("frequency", f"{SCALE_FREQUENCIES[index]:.2f} Hz")
    console.print(table)


@app.command()
def graph(expression: str = typer.Argument(..., help="Equation to plot over x = 0..31")):
    """Show the 32-point graph of an equation."""
    table = Table(title=expression)
    table.add_column("x", justify="right", style="cyan")
    table.add_column("y", justify="right", style="magenta")

    for x, sample in enumerate(graph_expression(expression)):
        table.add_row(str(x), "-" if sample is None else f"{sample:.6g}")
    console.print(table)


def _equations(equations: List[str], composition_id: Optional[str], api_url: str, engine: PlaybackEngine):
    if composition_id:
        from .client import MathemelodyClient

        with MathemelodyClient(api_url) as client:
            client.load_into(engine, client.get_composition(composition_id))
    elif equations:
        engine.load(equations)
    else:
        rprint("[red]Error: give equations or --composition-id[/red]")
        raise typer.Exit(1)


def _print_step(outcome: StepOutcome) -> None:
    if outcome.error:
        rprint(f"[yellow]{outcome.error}[/yellow]")
    elif outcome.tone_fired:
        rprint(
            f"[dim]step {outcome.step + 1:>2}[/dim] {outcome.expression:<20} "
            f"[green]{outcome.frequency:.2f} Hz[/green]"
        )


def _stop_on_worker(scheduler: ThreadedScheduler, engine: PlaybackEngine, timeout: float = 1.0) -> None:
    """Stop the engine on the scheduler thread, where its ticks run."""
    stopped = threading.Event()

    def stop() -> None:
        engine.stop()
        stopped.set()

    scheduler.call_later(0, stop)
    stopped.wait(timeout)


@app.command()
def play(
    equations: Optional[List[str]] = typer.Argument(None, help="One equation per step"),
    tempo: Optional[int] = typer.Option(None, "--tempo", "-t", help="Tempo in BPM"),
    wave: Optional[str] = typer.Option(None, "--wave", "-w", help="sine, square, sawtooth or triangle"),
    steps: Optional[int] = typer.Option(None, "--steps", "-n", help="Ticks to play (default: one pass)"),
    composition_id: Optional[str] = typer.Option(None, "--composition-id", help="Play a saved composition"),
    api_url: str = typer.Option("http://localhost:3000", "--api-url", help="Composition API base URL"),
):
    """Play equations through the sound card."""
    playback_config = get_config().playback

    try:
        sink = SoundDeviceSink(playback_config.sample_rate).open()
    except MathemelodyError as e:
        rprint(f"[red]Error: {format_error_for_user(e)}[/red]")
        raise typer.Exit(1)

    with ThreadedScheduler() as scheduler, sink:
        engine = PlaybackEngine(
            scheduler,
            ToneTrigger(sink, playback_config.sample_rate, clock=scheduler.now),
            tempo=playback_config.default_tempo,
            wave_type=playback_config.default_wave_type,
            error_display_seconds=playback_config.error_display_seconds,
        )
        try:
            _equations(equations, composition_id, api_url, engine)
            if tempo:
                engine.set_tempo(tempo)
            if wave:
                engine.set_wave_type(wave)
        except MathemelodyError as e:
            rprint(f"[red]Error: {format_error_for_user(e)}[/red]")
            raise typer.Exit(1)

        total = steps or len(engine.grid)
        done = threading.Event()
        played = 0

        @engine.on_step
        def count(outcome: StepOutcome) -> None:
            nonlocal played
            _print_step(outcome)
            played += 1
            if played >= total:
                engine.stop()
                done.set()

        rprint(f"[blue]Playing {len(engine.grid)} steps at {engine.tempo} BPM ({engine.wave_type.value})[/blue]")
        engine.start()
        try:
            done.wait()
        except KeyboardInterrupt:
            rprint("[yellow]Stopped[/yellow]")
        finally:
            _stop_on_worker(scheduler, engine)
            # let the last tone ring out
            time.sleep(TONE_DURATION)


@app.command()
def render(
    equations: Optional[List[str]] = typer.Argument(None, help="One equation per step"),
    output: Path = typer.Option(Path("output.wav"), "--output", "-o", help="Output audio file"),
    tempo: Optional[int] = typer.Option(None, "--tempo", "-t", help="Tempo in BPM"),
    wave: Optional[str] = typer.Option(None, "--wave", "-w", help="sine, square, sawtooth or triangle"),
    steps: Optional[int] = typer.Option(None, "--steps", "-n", help="Ticks to render (default: one pass)"),
    composition_id: Optional[str] = typer.Option(None, "--composition-id", help="Render a saved composition"),
    api_url: str = typer.Option("http://localhost:3000", "--api-url", help="Composition API base URL"),
):
    """Render equations to a WAV file without a sound card."""
    playback_config = get_config().playback
    scheduler = ManualScheduler()
    sink = RecordingSink()
    engine = PlaybackEngine(
        scheduler,
        ToneTrigger(sink, playback_config.sample_rate, clock=scheduler.now),
        tempo=playback_config.default_tempo,
        wave_type=playback_config.default_wave_type,
        error_display_seconds=playback_config.error_display_seconds,
    )
    try:
        _equations(equations, composition_id, api_url, engine)
        if tempo:
            engine.set_tempo(tempo)
        if wave:
            engine.set_wave_type(wave)
    except MathemelodyError as e:
        rprint(f"[red]Error: {format_error_for_user(e)}[/red]")
        raise typer.Exit(1)

    engine.on_step(_print_step)
    total = steps or len(engine.grid)
    engine.start()
    scheduler.advance_time(total * engine.interval_ms / 1000)
    engine.stop()

    try:
        sink.write_wav(output, origin=engine.interval_ms / 1000)
    except MathemelodyError as e:
        rprint(f"[red]Error: {format_error_for_user(e)}[/red]")
        raise typer.Exit(1)
    rprint(f"[green]✓ Rendered {len(sink)} tones to {output}[/green]")


if __name__ == "__main__":
    app()
