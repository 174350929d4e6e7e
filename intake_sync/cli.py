"""intake-sync CLI - serve the API or run a sync from the terminal."""

import asyncio
import json

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="intake-sync",
    help="IntakeQ / GoHighLevel contact sync",
    no_args_is_help=True,
)
console = Console()

_STATUS_STYLES = {"success": "green", "error": "red", "pending": "yellow"}


@app.command("serve")
def serve(
    port: int = typer.Option(8030, "--port", "-p", help="Port to run on"),
    host: str = typer.Option("127.0.0.1", "--host", help="Host to bind to"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Launch the sync API."""
    import uvicorn

    console.print(f"[bold cyan]Starting intake-sync at http://{host}:{port}[/bold cyan]")
    uvicorn.run("intake_sync.app:app", host=host, port=port, reload=reload)


@app.command("run")
def run(
    direction: str = typer.Option(None, "--direction", "-d", help="Override the configured direction"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Run one synchronization now."""
    from .database import create_tables
    from .routers.sync import run_to_schema
    from .sync.notifier import Notifier
    from .sync.scheduler import SyncScheduler

    async def _run():
        await create_tables()
        notifier = Notifier()
        result = await SyncScheduler().run_once(direction, notifier=notifier)
        return run_to_schema(result, notifier)

    summary = asyncio.run(_run())
    if json_output:
        console.print_json(summary.model_dump_json())
        return

    for n in summary.notifications:
        style = {"error": "red", "warning": "yellow", "success": "green"}.get(n.level, "cyan")
        console.print(f"[{style}]{n.message}[/{style}]")
    console.print(
        f"Created: {summary.created}  Updated: {summary.updated}  "
        f"Skipped: {summary.skipped}  Failed: {summary.failed}"
    )
    if summary.has_errors or summary.state == "aborted":
        raise typer.Exit(1)


@app.command("activity")
def activity(
    limit: int = typer.Option(20, "--limit", "-n", help="Number of entries"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show the most recent activity log entries."""
    from .database import create_tables
    from .schemas.activity import ActivityLogRead
    from .services.activity_svc import ActivityLogStore

    async def _list():
        await create_tables()
        rows = await ActivityLogStore().list(limit)
        return [ActivityLogRead.model_validate(r) for r in rows]

    entries = asyncio.run(_list())
    if json_output:
        console.print_json(json.dumps([e.model_dump(mode="json") for e in entries]))
        return

    table = Table(title="Sync Activity")
    table.add_column("Time", style="dim")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Detail")
    table.add_column("Error", style="red")
    for e in entries:
        style = _STATUS_STYLES.get(e.status, "white")
        table.add_row(
            e.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            e.type,
            f"[{style}]{e.status}[/{style}]",
            e.detail,
            e.error or "",
        )
    console.print(table)


@app.command("check")
def check(
    system: str = typer.Argument(..., help="ghl or intakeq"),
):
    """Test the stored API key of one system."""
    from .database import create_tables
    from .relay.client import HttpRelay
    from .relay.endpoints import check_connection
    from .services.credentials_svc import CredentialsStore

    async def _check():
        await create_tables()
        creds = await CredentialsStore().get()
        api_key = creds.target_api_key if system == "ghl" else creds.source_api_key
        if not api_key:
            return None
        async with HttpRelay() as relay:
            return await check_connection(relay, system, api_key, creds.target_location_id)

    if system not in ("ghl", "intakeq"):
        console.print(f"[red]Unknown system: {system}[/red]")
        raise typer.Exit(2)

    result = asyncio.run(_check())
    if result is None:
        console.print(f"[red]No API key stored for {system}[/red]")
        raise typer.Exit(1)
    if result.success:
        console.print(f"[green]{result.message}[/green] {result.endpoint}")
    else:
        console.print(f"[red]{result.message}[/red]")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
