"""
CLI interface for Cloud Billing.

Provides command-line access to the catalog, calculations and history.
"""

import json
import sys
import sqlite3
from datetime import datetime
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from cloud_billing.config.loader import AppConfig, resolve_config
from cloud_billing.core.billing import BillingService
from cloud_billing.core.cost_engine import CostBreakdown, CostEngine, UsageSelection
from cloud_billing.core.errors import CostEngineError
from cloud_billing.core.logging import setup_logging
from cloud_billing.storage.repository import BillingRepository

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1


def _build_service(config: AppConfig) -> BillingService:
    return BillingService(
        CostEngine(config.catalog),
        BillingRepository(config.db_path),
        default_user_id=config.default_user_id
    )


def _config(ctx: typer.Context) -> AppConfig:
    return ctx.obj["config"]


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a YAML configuration file"
    )
):
    """Cloud Billing CLI."""
    try:
        config = resolve_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading configuration:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    setup_logging(level=config.log_level, structured=config.structured_logs)
    ctx.obj = {"config": config}

    if ctx.invoked_subcommand is None:
        console.print("Cloud Billing - Use --help to see available commands")


@app.command()
def init(ctx: typer.Context):
    """Initialize the billing database."""
    try:
        BillingRepository(_config(ctx).db_path).initialize()
        console.print("[green]✓[/] Database initialized successfully")
        sys.exit(EXIT_CODE_PASS)
    except sqlite3.Error as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def instances(ctx: typer.Context):
    """List available instance types."""
    table = Table(title="Instance Types")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("vCPU", justify="right")
    table.add_column("Memory (GB)", justify="right")
    table.add_column("Price/hour", justify="right")

    for spec in _config(ctx).catalog.list_instances():
        table.add_row(
            spec.identifier,
            spec.display_name,
            str(spec.vcpu),
            f"{spec.memory_gib:g}",
            f"${spec.hourly_rate}"
        )
    console.print(table)


@app.command("storage-types")
def storage_types(ctx: typer.Context):
    """List available storage classes."""
    table = Table(title="Storage Types")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Price/GB/month", justify="right")
    table.add_column("Description")

    for storage in _config(ctx).catalog.list_storage_classes():
        table.add_row(
            storage.identifier,
            storage.display_name,
            f"${storage.monthly_rate_per_unit}",
            storage.description
        )
    console.print(table)


@app.command()
def estimate(
    ctx: typer.Context,
    instance_type: Optional[str] = typer.Option(None, "--instance-type", "-i"),
    storage_type: Optional[str] = typer.Option(None, "--storage-type", "-s"),
    storage_size: Optional[float] = typer.Option(None, "--storage-size", help="Storage in GB"),
    hours: Optional[float] = typer.Option(None, "--hours")
):
    """
    Preview the cost of a selection without saving it.

    Incomplete or invalid selections show $0.00 instead of an error.
    """
    service = _build_service(_config(ctx))
    costs = service.preview(UsageSelection(
        instance_type_id=instance_type,
        storage_type_id=storage_type,
        storage_size=storage_size,
        hours=hours
    ))
    _display_breakdown(costs)


@app.command()
def calculate(
    ctx: typer.Context,
    instance_type: Optional[str] = typer.Option(None, "--instance-type", "-i"),
    storage_type: Optional[str] = typer.Option(None, "--storage-type", "-s"),
    storage_size: Optional[float] = typer.Option(None, "--storage-size", help="Storage in GB"),
    hours: Optional[float] = typer.Option(None, "--hours"),
    user_id: Optional[str] = typer.Option(None, "--user-id", "-u", help="Owner of the record")
):
    """Calculate the cost of a selection and save it to the billing history."""
    service = _build_service(_config(ctx))
    selection = UsageSelection(
        instance_type_id=instance_type,
        storage_type_id=storage_type,
        storage_size=storage_size,
        hours=hours
    )
    try:
        record = service.submit(selection, user_id=user_id)
    except CostEngineError as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    except sqlite3.OperationalError as e:
        if "no such table" in str(e).lower():
            console.print("[yellow]Database not initialized.[/] Run `cloud-billing init` first.")
            sys.exit(EXIT_CODE_FAIL)
        raise

    # Pure and already validated by submit
    _display_breakdown(service.engine.compute_cost(selection))
    console.print(f"[green]✓[/] Calculation saved (id {record.id})")
    sys.exit(EXIT_CODE_PASS)


@app.command()
def history(
    ctx: typer.Context,
    instance_type: Optional[str] = typer.Option(None, "--instance-type", "-i", help="Only this instance type"),
    user_id: Optional[str] = typer.Option(None, "--user-id", "-u", help="Only records owned by this user"),
    as_json: bool = typer.Option(False, "--json", help="Print records as JSON")
):
    """Show saved calculations."""
    service = _build_service(_config(ctx))
    records = _read_or_exit(
        lambda: service.history(instance_type_id=instance_type, user_id=user_id)
    )

    if as_json:
        print(json.dumps([record.to_dict() for record in records]))
        return
    if not records:
        console.print("[dim]No calculations saved yet.[/]")
        return

    table = Table(title="Billing History")
    table.add_column("Instance")
    table.add_column("vCPU", justify="right")
    table.add_column("Memory", justify="right")
    table.add_column("Storage")
    table.add_column("Size", justify="right")
    table.add_column("Hours", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Date")

    for record in records:
        table.add_row(
            record.instance_type_id,
            str(record.vcpu),
            f"{record.memory_gib:g}",
            record.storage_type_id,
            f"{record.storage_size:g}",
            f"{record.hours:g}",
            _format_currency(record.total_cost),
            _format_timestamp(record.created_at)
        )
    console.print(table)


@app.command()
def summary(
    ctx: typer.Context,
    as_json: bool = typer.Option(False, "--json", help="Print summary rows as JSON")
):
    """Show saved costs rolled up by instance type."""
    rows = _read_or_exit(_build_service(_config(ctx)).summary)

    if as_json:
        print(json.dumps([row.to_dict() for row in rows]))
        return
    if not rows:
        console.print("[dim]No calculations saved yet.[/]")
        return

    for row in rows:
        console.print(f"\n[bold]{row.instance_type_id}[/bold]")
        console.print(f"Total Cost: {_format_currency(row.total_cost)}")
        console.print(f"Total Hours: {row.total_hours:g}")
        console.print(f"Total Storage: {row.total_storage:g} GB")


@app.command()
def serve(
    ctx: typer.Context,
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(3000, "--port", envvar="PORT")
):
    """Run the HTTP API."""
    import uvicorn

    from cloud_billing.api import create_app

    uvicorn.run(create_app(_config(ctx)), host=host, port=port)


def _read_or_exit(read):
    try:
        return read()
    except sqlite3.OperationalError as e:
        if "no such table" in str(e).lower():
            console.print("[yellow]Database not initialized.[/] Run `cloud-billing init` first.")
            sys.exit(EXIT_CODE_FAIL)
        raise


def _display_breakdown(costs: CostBreakdown):
    console.print(f"Instance Cost: {_format_currency(costs.instance_cost)}")
    console.print(f"Storage Cost: {_format_currency(costs.storage_cost)}")
    console.print(f"[bold]Total Cost: {_format_currency(costs.total_cost)}[/bold]")


def _format_currency(amount: float) -> str:
    """Format currency with proper symbols and formatting."""
    return f"${amount:,.2f}"


def _format_timestamp(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return value.astimezone().strftime("%Y-%m-%d %H:%M")


if __name__ == "__main__":
    app()
