"""Command-line interface for the energy ledger."""

from datetime import date, datetime
from pathlib import Path

import structlog
import typer
from rich.console import Console
from rich.table import Table

from energyledger.config import DEFAULT_DB_PATH, DEFAULT_REPORT_PATH, HEAT_METER, TIMEZONE
from energyledger.index import build_snapshot
from energyledger.ingestion import JsonFileSource, JsonTemperatureSource, Loader
from energyledger.models import Carrier
from energyledger.quality import DatasetChecker
from energyledger.report import ReportBuilder
from energyledger.storage import Storage, write_report
from energyledger.store import TimeSeriesStore

# Configure structured logging
structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ]
)

app = typer.Typer(
    name="energyledger",
    help="Household electricity and district heat usage, costs and reports",
    no_args_is_help=True,
)
console = Console()

DbOption = typer.Option(DEFAULT_DB_PATH, envvar="ENERGYLEDGER_DB", help="Database path")
HeatMeterOption = typer.Option(
    HEAT_METER, envvar="ENERGYLEDGER_HEAT_METER", help="Meter name holding district heat"
)

STATUS_STYLE = {
    "pass": "[green]PASS[/green]",
    "warn": "[yellow]WARN[/yellow]",
    "fail": "[red]FAIL[/red]",
}


def _now() -> datetime:
    return datetime.now(TIMEZONE).replace(tzinfo=None)


@app.command("merge-usage")
def merge_usage(
    meter: str = typer.Argument(..., help="Meter name, e.g. a grid metering point"),
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Usage records as JSON"),
    db_path: Path = DbOption,
) -> None:
    """Merge hourly usage for a meter."""
    records = JsonFileSource(file).usage()

    with Storage(db_path) as storage:
        store = TimeSeriesStore(storage.load_dataset())
        count = store.merge_usage(meter, records)
        storage.save_dataset(store.dataset)

    console.print(f"[bold green]Merged {count} usage records for {meter}[/bold green]")


@app.command("merge-spot-prices")
def merge_spot_prices(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Spot prices as JSON"),
    db_path: Path = DbOption,
) -> None:
    """Merge hourly spot prices."""
    records = JsonFileSource(file).spot_prices()

    with Storage(db_path) as storage:
        store = TimeSeriesStore(storage.load_dataset())
        count = store.merge_spot_prices(records)
        storage.save_dataset(store.dataset)

    console.print(f"[bold green]Merged {count} spot prices[/bold green]")


@app.command("merge-temperature")
def merge_temperature(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Temperatures as JSON"),
    daily: bool = typer.Option(False, "--daily", help="File holds daily mean temperatures"),
    db_path: Path = DbOption,
) -> None:
    """Merge hourly or daily outdoor temperatures."""
    source = JsonFileSource(file)

    with Storage(db_path) as storage:
        store = TimeSeriesStore(storage.load_dataset())
        if daily:
            count = store.merge_daily_temperature(source.daily_temperature())
        else:
            count = store.merge_hourly_temperature(source.hourly_temperature())
        storage.save_dataset(store.dataset)

    kind = "daily" if daily else "hourly"
    console.print(f"[bold green]Merged {count} {kind} temperatures[/bold green]")


@app.command()
def report(
    output: Path = typer.Option(
        DEFAULT_REPORT_PATH, envvar="ENERGYLEDGER_REPORT", help="Report JSON path"
    ),
    db_path: Path = DbOption,
    heat_meter: str = HeatMeterOption,
) -> None:
    """Build the report from the stored dataset and write it as JSON."""
    console.print("[bold blue]Building report...[/bold blue]")

    with Storage(db_path) as storage:
        dataset = storage.load_dataset()

    snapshot = build_snapshot(dataset, heat_meter=heat_meter)
    result = ReportBuilder(snapshot, now=_now()).build()
    write_report(result, output)

    console.print(f"  Daily rows: {len(result.daily.rows)}")
    console.print(f"  Last usage date: {snapshot.last_date or '-'}")
    console.print(f"[bold green]Report written to {output}[/bold green]")


def _usage_sources(entries: list[str]) -> dict[str, JsonFileSource]:
    sources = {}
    for entry in entries:
        meter, sep, path = entry.partition("=")
        if not sep or not meter or not path:
            raise typer.BadParameter(f"Expected METER=FILE, got {entry!r}", param_hint="--usage")
        sources[meter] = JsonFileSource(path)
    return sources


@app.command()
def run(
    usage: list[str] = typer.Option(
        None, "--usage", help="Usage records for a meter as METER=FILE, repeatable"
    ),
    spot_prices: Path = typer.Option(None, exists=True, dir_okay=False, help="Spot prices as JSON"),
    hourly_temperature: Path = typer.Option(
        None, exists=True, dir_okay=False, help="Hourly temperatures as JSON"
    ),
    daily_temperature: Path = typer.Option(
        None, exists=True, dir_okay=False, help="Daily mean temperatures as JSON"
    ),
    output: Path = typer.Option(
        DEFAULT_REPORT_PATH, envvar="ENERGYLEDGER_REPORT", help="Report JSON path"
    ),
    db_path: Path = DbOption,
    heat_meter: str = HeatMeterOption,
) -> None:
    """Load missing recent data from the sources, save it and rebuild the report."""
    now = _now()
    usage_sources = _usage_sources(usage or [])
    temperature = None
    if hourly_temperature or daily_temperature:
        temperature = JsonTemperatureSource(hourly_temperature, daily_temperature)

    console.print("[bold blue]Loading recent data...[/bold blue]")

    with Storage(db_path) as storage:
        store = TimeSeriesStore(storage.load_dataset())
        loader = Loader(
            store,
            usage_sources=usage_sources,
            spot_prices=JsonFileSource(spot_prices) if spot_prices else None,
            temperature=temperature,
            heat_meter=heat_meter,
        )
        count = loader.run_iteration(now)
        storage.save_dataset(store.dataset)

    snapshot = build_snapshot(store.dataset, heat_meter=heat_meter)
    result = ReportBuilder(snapshot, now=now).build()
    write_report(result, output)

    console.print(f"  Records merged: {count}")
    console.print(f"  Last usage date: {snapshot.last_date or '-'}")
    console.print(f"[bold green]Report written to {output}[/bold green]")


@app.command()
def costs(
    year: int = typer.Option(None, help="Year to show, defaults to the current year"),
    db_path: Path = DbOption,
    heat_meter: str = HeatMeterOption,
) -> None:
    """Show monthly usage and cost per carrier."""
    now = _now()
    year = year or now.year

    with Storage(db_path) as storage:
        dataset = storage.load_dataset()

    builder = ReportBuilder(build_snapshot(dataset, heat_meter=heat_meter), now=now)
    months = builder.monthly_table(date(year, 1, 1), date(year, 12, 31))

    table = Table(title=f"Costs {year}")
    table.add_column("Month", style="cyan")
    table.add_column(f"{Carrier.ELECTRICITY.value} kWh", justify="right")
    table.add_column(f"{Carrier.ELECTRICITY.value} NOK", justify="right")
    table.add_column(f"{Carrier.DISTRICT_HEAT.value} kWh", justify="right")
    table.add_column(f"{Carrier.DISTRICT_HEAT.value} NOK", justify="right")
    table.add_column("Total NOK", justify="right", style="bold")

    for month in months:
        if month.electricity_datapoints == 0 and month.heat_datapoints == 0:
            continue
        table.add_row(
            month.name,
            f"{month.electricity.usage_kwh:,.1f}",
            f"{month.electricity_cost:,.2f}",
            f"{month.heat.usage_kwh:,.1f}",
            f"{month.heat_cost:,.2f}",
            f"{month.cost:,.2f}",
        )

    console.print(table)


@app.command()
def status(
    db_path: Path = DbOption,
    heat_meter: str = HeatMeterOption,
) -> None:
    """Show dataset summary and health checks."""
    if not db_path.exists():
        console.print("[yellow]No database found. Run 'energyledger merge-usage' first.[/yellow]")
        return

    with Storage(db_path) as storage:
        counts = storage.counts()
        dataset = storage.load_dataset()

    store = TimeSeriesStore(dataset)

    console.print("[bold]Dataset Status[/bold]\n")
    for table_name, count in counts.items():
        console.print(f"{table_name + ':':<20}{count:,}")
    console.print(f"{'meters:':<20}{', '.join(store.meter_names()) or '-'}")
    console.print(f"{'last usage date:':<20}{store.last_usage_date() or '-'}")
    console.print()

    results = DatasetChecker(today=_now().date(), heat_meter=heat_meter).check(dataset)

    table = Table(title="Health Checks")
    table.add_column("Check", style="cyan")
    table.add_column("Status", style="bold")
    table.add_column("Message")

    for result in results:
        table.add_row(
            result.check_name,
            STATUS_STYLE.get(result.status.value, result.status.value),
            result.message,
        )

    console.print(table)

    passed = sum(1 for r in results if r.status.value == "pass")
    console.print(f"\n[bold]{passed}/{len(results)} checks passed[/bold]")


if __name__ == "__main__":
    app()
