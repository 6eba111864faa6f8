"""Command-line interface for phasetrack.

This CLI is primarily for debugging and development.
For production use, import phasetrack as a library.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import NoReturn

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from phasetrack import create_sync_engine, create_transport
from phasetrack.exceptions import PhaseTrackError
from phasetrack.models import (
    ClientAction,
    Err,
    Ok,
    Phase,
    PhaseStatus,
    PhaseTrackingState,
)
from phasetrack.services import (
    ActionStore,
    PhaseStateMachine,
    SyncEngine,
    catalog,
    progress,
)
from phasetrack.settings import Settings
from phasetrack.transport import PortalHttpClient

app = typer.Typer(
    name="phasetrack",
    help="Inspect and follow client project phase tracking",
    no_args_is_help=True,
)

STATUS_STYLES: dict[PhaseStatus, str] = {
    PhaseStatus.COMPLETED: "green",
    PhaseStatus.CURRENT: "bold cyan",
    PhaseStatus.NEXT: "yellow",
    PhaseStatus.LOCKED: "dim",
}


@dataclass
class CliState:
    """Options shared by every command."""

    verbose: bool = False
    overrides: dict[str, str] = field(default_factory=dict)

    def settings(self) -> Settings:
        try:
            return Settings(**self.overrides)
        except ValidationError as e:
            echo_error(f"Configuration error: {e.errors()[0]['msg']}")


state = CliState()


def setup_logging(verbose: bool = False, console: Console | None = None) -> None:
    """Configure logging with Rich handler.

    Clears existing handlers first so it can be called again to reconfigure.

    Args:
        verbose: If True, set log level to DEBUG. Otherwise WARNING.
        console: Optional Console instance to use for RichHandler.
    """
    level = logging.DEBUG if verbose else logging.WARNING

    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    handler = RichHandler(
        rich_tracebacks=True,
        show_path=False,
        console=console,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    root_logger.setLevel(level)
    root_logger.addHandler(handler)


def echo_error(message: str) -> NoReturn:
    """Print error message and exit."""
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(1)


def print_phase_table(
    console: Console,
    machine: PhaseStateMachine,
    store: ActionStore,
    percentage: int,
) -> None:
    """Print every phase with its status and task counts."""
    table = Table(title=f"Progress {percentage}%", show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Phase")
    table.add_column("Status")
    table.add_column("Tasks")

    for index, (phase, status) in enumerate(machine.statuses()):
        summary = progress.phase_summary(phase, store)
        tasks = summary.label if summary.total else "-"
        style = STATUS_STYLES[status]
        table.add_row(
            str(index),
            phase.name,
            f"[{style}]{status.value}[/{style}]",
            tasks,
        )
    console.print(table)


def print_actions(console: Console, phase: Phase, store: ActionStore) -> None:
    """Print the actions of one phase as a checklist."""
    actions = store.actions_for_phase(phase.key)
    if not actions:
        return
    console.print(f"\n[bold]{phase.name}[/bold] tasks:")
    for action in actions:
        mark = "[green]x[/green]" if store.is_completed(action.id) else " "
        required = " [red]*[/red]" if action.is_required else ""
        label = action.name or action.id
        console.print(f"  [{mark}] {label}{required} (id {action.id})")


class ConsoleView:
    """ViewPort printing every state change to a rich console."""

    def __init__(self, console: Console) -> None:
        self._console = console
        self.engine: SyncEngine | None = None

    def on_state_changed(
        self,
        tracking: PhaseTrackingState,
        actions: list[ClientAction],
        percentage: int,
    ) -> None:
        phase_name = ""
        if self.engine is not None:
            phase_name = f" ({self.engine.current_phase.name})"
        completed = sum(1 for a in actions if tracking.is_action_completed(a.id))
        self._console.print(
            f"[cyan]phase[/cyan] {tracking.current_phase_index}{phase_name}  "
            f"[cyan]tasks[/cyan] {completed}/{len(actions)}  "
            f"[cyan]progress[/cyan] {percentage}%"
        )

    def on_error(self, error: PhaseTrackError) -> None:
        self._console.print(f"[red]{error.kind.value}[/red]: {error.message}")


@app.callback()
def _main_callback(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
    base_url: str | None = typer.Option(
        None, "--base-url", help="Portal base URL (overrides PHASETRACK_BASE_URL)"
    ),
    token: str | None = typer.Option(
        None, "--token", help="Bearer token (overrides PHASETRACK_AUTH_TOKEN)"
    ),
) -> None:
    """Inspect and follow client project phase tracking."""
    state.verbose = verbose
    state.overrides = {}
    if base_url:
        state.overrides["base_url"] = base_url
    if token:
        state.overrides["auth_token"] = token
    setup_logging(verbose=verbose)


@app.command()
def show(
    project_id: str = typer.Argument(..., help="Project identifier"),
) -> None:
    """Fetch a project's tracking snapshot once and print it."""
    settings = state.settings()
    console = Console()

    async def fetch() -> None:
        async with PortalHttpClient(
            settings.base_url,
            auth_token=settings.token,
            timeout=settings.request_timeout,
        ) as client:
            snapshot = await client.fetch_tracking(project_id)

        phases = catalog.resolve(snapshot.service_config)
        store = ActionStore(snapshot.actions)
        store.replace_statuses(snapshot.tracking.action_statuses.values())
        machine = PhaseStateMachine(
            phases, store, snapshot.tracking.current_phase_index
        )
        percentage = progress.percentage(snapshot.tracking, phases, store)

        title = snapshot.project.name or f"Project {snapshot.project.id}"
        console.print(f"[bold]{title}[/bold]")
        print_phase_table(console, machine, store, percentage)
        print_actions(console, machine.current_phase, store)

    try:
        asyncio.run(fetch())
    except PhaseTrackError as e:
        echo_error(e.message)


@app.command()
def watch(
    project_id: str = typer.Argument(..., help="Project identifier"),
) -> None:
    """Follow a project and print every state change until Ctrl+C."""
    settings = state.settings()
    console = Console()
    setup_logging(verbose=state.verbose, console=console)

    async def run() -> None:
        view = ConsoleView(console)
        async with create_transport(settings) as transport:
            view.engine = create_sync_engine(
                project_id, transport, view, settings=settings
            )
            async with view.engine:
                console.print("[dim]Watching, press Ctrl+C to stop[/dim]")
                await asyncio.Event().wait()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("[dim]Stopped[/dim]")


@app.command()
def advance(
    project_id: str = typer.Argument(..., help="Project identifier"),
    target: int = typer.Argument(..., help="Phase index to advance to"),
) -> None:
    """Check the advancement gate and request a phase advance."""
    settings = state.settings()
    console = Console()

    async def run() -> int | None:
        view = ConsoleView(console)
        # REST only, the socket hub is never started
        transport = create_transport(settings)
        engine = create_sync_engine(project_id, transport, view, settings=settings)
        view.engine = engine
        try:
            if isinstance(await engine.load(), Err):
                return None
            match await engine.request_advance(target):
                case Ok(value=index):
                    return index
                case _:
                    return None
        finally:
            await engine.dispose()
            await transport.aclose()

    index = asyncio.run(run())
    if index is None:
        raise typer.Exit(1)
    console.print(f"[green]Advanced to phase {index}[/green]")


def main() -> None:
    """Entry point for the CLI."""
    app()
