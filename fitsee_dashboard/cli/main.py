"""
CLI interface for the Fitsee dashboard.

Starts the HTTP server and offers quick terminal views of the same reports.
"""

import logging
import sqlite3
import sys
from typing import Optional

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

from fitsee_dashboard.config.loader import load_dashboard_config
from fitsee_dashboard.core.reports import OverviewFilters, build_overview
from fitsee_dashboard.core.revenue import format_currency
from fitsee_dashboard.demo.seed_demo_data import seed_demo_data
from fitsee_dashboard.storage.repository import get_repository
from fitsee_dashboard.web.app import create_app

app = typer.Typer()
console = Console()

EXIT_CODE_OK = 0
EXIT_CODE_FAIL = 1

ConfigOption = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to YAML configuration file"
)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """Fitsee dashboard CLI."""
    if ctx.invoked_subcommand is None:
        console.print("Fitsee Dashboard - Use --help to see available commands")


@app.command()
def serve(
    config_path: Optional[str] = ConfigOption,
    host: Optional[str] = typer.Option(None, "--host", help="Override bind host"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Override bind port")
):
    """Run the dashboard HTTP server."""
    config = load_dashboard_config(config_path)
    _configure_logging(config.log_level)

    bind_host = host or config.server.host
    bind_port = port or config.server.port
    logging.getLogger(__name__).info("Starting dashboard on %s:%d", bind_host, bind_port)
    uvicorn.run(
        create_app(config),
        host=bind_host,
        port=bind_port,
        log_level=config.log_level.lower()
    )


@app.command()
def summary(
    config_path: Optional[str] = ConfigOption,
    date_filter: str = typer.Option(
        "all",
        "--date-filter",
        "-d",
        help="One of: all, today, 7days, 30days"
    )
):
    """Print overview totals for all shops."""
    try:
        config = load_dashboard_config(config_path)
        repository = get_repository(config.database.path)
        report = build_overview(repository, OverviewFilters(date_filter=date_filter))
    except sqlite3.OperationalError as e:
        console.print(f"[red]Cannot read dashboard data:[/] {str(e)}")
        console.print("Run `fitsee-dashboard init-demo` to create a local demo database.")
        sys.exit(EXIT_CODE_FAIL)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    _display_overview(report)
    sys.exit(EXIT_CODE_OK)


@app.command("init-demo")
def init_demo(
    db_path: str = typer.Option("fitsee.db", "--db", help="SQLite file to create")
):
    """Create a local demo database with sample shops."""
    try:
        count = seed_demo_data(db_path)
        if count:
            console.print(f"[green]✓[/] Demo database ready with {count} shops: {db_path}")
        else:
            console.print(f"[yellow]Demo database already has shops, nothing added:[/] {db_path}")
        sys.exit(EXIT_CODE_OK)
    except sqlite3.Error as e:
        console.print(f"[red]Error creating demo database:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


def _display_overview(report):
    """Show overview totals and the per-shop table."""
    stats = report.stats
    console.print(f"\n[bold]Fitsee Dashboard[/bold] ({report.date_filter})")
    console.print("-" * 40)
    console.print(f"Total shops: {stats.total_shops}")
    console.print(f"Active shops: {stats.active_shops}")
    console.print(f"Total generations: {stats.total_generations}")
    console.print(f"Total revenue: {format_currency(stats.total_revenue)}")
    console.print(f"Shops with plans: {stats.shops_with_plans}")

    if not report.rows:
        console.print("\n[dim]No shops found.[/]")
        return

    table = Table(show_header=True)
    table.add_column("Shop")
    table.add_column("Status")
    table.add_column("Plan")
    table.add_column("Generations", justify="right")
    table.add_column("Revenue", justify="right")
    for row in report.rows:
        table.add_row(
            row.shop.domain,
            "Active" if row.shop.is_active else "Uninstalled",
            row.plan.name if row.plan else "No plan",
            str(row.generations),
            format_currency(row.revenue)
        )
    console.print(table)


if __name__ == "__main__":
    app()
