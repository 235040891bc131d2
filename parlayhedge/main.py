"""CLI entry point for ParlayHedge."""

import json
import uuid
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from parlayhedge.config import get_settings
from parlayhedge.errors import ParlayHedgeError
from parlayhedge.logger import get_logger
from parlayhedge.models.parlay import Leg
from parlayhedge.services.parlay_service import ParlayService

console = Console()
logger = get_logger(__name__)


def _load_legs(path: Path) -> list[Leg]:
    """Read legs from a JSON file holding a list of leg objects."""
    try:
        data = json.loads(path.read_text())
        return [Leg(**item) for item in data]
    except (json.JSONDecodeError, ValidationError, TypeError) as e:
        raise click.BadParameter(f"Could not read legs from {path}: {e}")


def _build_service(with_oracle: bool = True) -> ParlayService:
    try:
        settings = get_settings()
        return ParlayService.from_settings(settings, with_oracle=with_oracle)
    except (ValueError, OSError) as e:
        logger.error(f"Configuration error: {e}")
        console.print(f"[red]Configuration error:[/red] {e}")
        raise SystemExit(1)


def _fail(e: Exception):
    logger.error(f"Error during execution: {e}", exc_info=True)
    console.print(f"[red]Error:[/red] {e}")
    if getattr(e, "retryable", False):
        console.print("[dim]This error is transient; try again shortly.[/dim]")
    raise SystemExit(1)


@click.group()
@click.version_option(version="0.1.0", prog_name="parlayhedge")
def cli():
    """ParlayHedge: correlated parlay pricing, hedging and settlement."""
    pass


@cli.command()
@click.option("--legs", "-l", "legs_file", type=click.Path(exists=True, path_type=Path), required=True,
              help="JSON file with the parlay legs")
@click.option("--stake", "-s", type=float, required=True, help="Stake in USD")
@click.option("--scenarios/--no-scenarios", default=True, help="Show the most likely scenarios")
def quote(legs_file: Path, stake: float, scenarios: bool):
    """Price a parlay and show the house hedge plan."""
    legs = _load_legs(legs_file)
    service = _build_service()

    try:
        with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"), console=console) as progress:
            task = progress.add_task("Pricing parlay...", total=None)
            parlay_quote, strategy = service.quote(legs, stake)
            progress.update(task, completed=True)
    except ParlayHedgeError as e:
        _fail(e)

    _display_quote(parlay_quote)
    _display_strategy(strategy, show_scenarios=scenarios)


@cli.command()
@click.option("--legs", "-l", "legs_file", type=click.Path(exists=True, path_type=Path), required=True,
              help="JSON file with the parlay legs")
@click.option("--stake", "-s", type=float, required=True, help="Stake in USD")
@click.option("--user", "-u", "user_id", type=str, required=True, help="Buyer's user id")
@click.option("--session", "session_id", type=str, default=None, help="Checkout session id (generated if omitted)")
def buy(legs_file: Path, stake: float, user_id: str, session_id: str | None):
    """Price, record and hedge a paid parlay."""
    legs = _load_legs(legs_file)
    service = _build_service()
    session_id = session_id or f"cs_{uuid.uuid4().hex}"

    try:
        parlay_quote, strategy = service.quote(legs, stake)
        purchase, execution = service.confirm_purchase(parlay_quote, strategy, session_id, user_id)
    except ParlayHedgeError as e:
        _fail(e)

    _display_quote(parlay_quote)
    console.print(f"\n[green]✓[/green] Purchase recorded: [bold]{purchase.session_id}[/bold]")
    if execution is None:
        console.print("[dim]No hedge orders needed.[/dim]")
    else:
        mode = " (dry run)" if execution.dry_run else ""
        console.print(f"Hedge orders: {execution.successful}/{execution.total_orders} succeeded{mode}")


@cli.command()
@click.argument("session_id")
def settle(session_id: str):
    """Check settlement of one purchased parlay."""
    service = _build_service(with_oracle=False)
    purchase = service.store.get_purchase(session_id)
    if purchase is None:
        console.print(f"[red]Error:[/red] Purchase {session_id} not found")
        raise SystemExit(1)

    try:
        report = service.settlement_engine.check_parlay_status(purchase)
    except ParlayHedgeError as e:
        _fail(e)

    table = Table(title=f"Legs of {session_id}", show_header=True)
    table.add_column("#", style="dim")
    table.add_column("Ticker", style="bold")
    table.add_column("Market")
    table.add_column("Outcome", justify="center")
    table.add_column("Price", justify="right")
    for outcome in report.outcomes:
        colour = {"win": "green", "loss": "red"}.get(outcome.outcome, "yellow")
        table.add_row(
            str(outcome.leg_number),
            outcome.ticker or "-",
            outcome.market_status,
            f"[{colour}]{outcome.outcome}[/{colour}]",
            f"{outcome.settlement_price:g}" if outcome.settlement_price is not None else (outcome.error or "-"),
        )
    console.print(table)
    console.print(f"Status: [bold]{report.status.value}[/bold], claimable ${report.claimable_amount:,.2f}")


@cli.command("settle-all")
@click.option("--workers", "-w", type=int, default=1, help="Purchases checked concurrently (default: 1)")
def settle_all(workers: int):
    """Check settlement of every pending or won parlay."""
    service = _build_service(with_oracle=False)
    report = service.settlement_engine.check_all_active(max_workers=workers)

    console.print(f"Checked {report.checked} parlays, {report.failed} failed")
    for session_id, error in report.errors.items():
        console.print(f"  [red]{session_id}[/red]: {error}")


@cli.command()
@click.argument("session_id")
def claim(session_id: str):
    """Claim the winnings of a won parlay."""
    service = _build_service(with_oracle=False)
    purchase = service.store.get_purchase(session_id)
    if purchase is None:
        console.print(f"[red]Error:[/red] Purchase {session_id} not found")
        raise SystemExit(1)

    try:
        result = service.settlement_engine.claim_winnings(purchase)
    except ParlayHedgeError as e:
        _fail(e)

    console.print(f"[green]✓[/green] Claimed ${result.amount:,.2f} for {purchase.user_id}")


@cli.command()
@click.argument("user_id")
def balance(user_id: str):
    """Show a user's credited balance."""
    service = _build_service(with_oracle=False)
    console.print(f"{user_id}: ${service.store.get_balance(user_id):,.2f}")


def _display_quote(parlay_quote):
    """Display the priced quote."""
    console.print()
    adjustments = ""
    if parlay_quote.adjustments:
        adjustments = "\n[yellow]Clamped:[/yellow] " + "; ".join(parlay_quote.adjustments)
    console.print(
        Panel(
            f"[bold]Stake:[/bold] ${parlay_quote.stake:,.2f}\n"
            f"[bold]Naive:[/bold] {parlay_quote.naive_probability:.2%} → ${parlay_quote.naive_payout:,.2f}\n"
            f"[bold]Adjusted:[/bold] {parlay_quote.adjusted_probability:.2%} "
            f"(factor {parlay_quote.correlation_factor:.2f}) → "
            f"${parlay_quote.adjusted_payout:,.2f} ({parlay_quote.payout_percentage:g}% of naive)\n"
            f"[bold]Risk:[/bold] {parlay_quote.risk_assessment or 'n/a'}\n\n"
            f"{parlay_quote.correlation_analysis}"
            f"{adjustments}\n\n"
            f"[dim]Expires {parlay_quote.expires_at:%H:%M:%S} UTC[/dim]",
            title="Parlay Quote",
            border_style="green",
        )
    )


def _display_strategy(strategy, show_scenarios: bool = True):
    """Display the hedging strategy."""
    console.print()
    if not strategy.needs_hedging:
        console.print(
            Panel(
                f"[yellow]{strategy.reasoning}[/yellow]\n\n"
                f"Unhedged EV: ${strategy.unhedged.ev:,.2f} ({strategy.unhedged.edge_percent:.2f}%)\n"
                f"Unhedged std dev: ${strategy.unhedged.std_dev:,.2f}",
                title="Hedging",
                border_style="yellow",
            )
        )
        return

    table = Table(title="Hedge Decisions", show_header=True)
    table.add_column("Leg", style="dim")
    table.add_column("Ticker", style="bold")
    table.add_column("Prob", justify="right")
    table.add_column("Fraction", justify="right")
    table.add_column("Hedge", justify="right")
    table.add_column("If wins", justify="right")
    for d in strategy.decisions:
        table.add_row(
            str(d.leg_index),
            d.ticker or "-",
            f"{d.probability_percent:g}%",
            f"{d.hedge_fraction:.0%}",
            f"${d.hedge_amount:,.2f}",
            f"${d.potential_win:,.2f}",
        )
    console.print(table)

    console.print(
        f"[bold]Unhedged:[/bold] EV ${strategy.unhedged.ev:,.2f} ({strategy.unhedged.edge_percent:.2f}%), "
        f"std dev ${strategy.unhedged.std_dev:,.2f}"
    )
    console.print(
        f"[bold]Hedged:[/bold] EV ${strategy.hedged.ev:,.2f} ({strategy.hedged.edge_percent:.2f}%), "
        f"std dev ${strategy.hedged.std_dev:,.2f}"
    )
    console.print(
        f"[bold]Impact:[/bold] {strategy.impact.variance_reduction_percent:.1f}% std dev reduction, "
        f"{strategy.impact.ev_change_percent:+.1f}% EV change"
    )

    if show_scenarios and strategy.top_scenarios:
        scenarios = Table(title=f"Top {len(strategy.top_scenarios)} of {strategy.scenario_count} Scenarios")
        scenarios.add_column("Outcome", style="dim")
        scenarios.add_column("Description", max_width=50)
        scenarios.add_column("Prob", justify="right")
        scenarios.add_column("Net", justify="right")
        for s in strategy.top_scenarios:
            colour = "green" if s.net_cash_flow >= 0 else "red"
            scenarios.add_row(
                s.outcome,
                s.description,
                f"{s.probability:.2%}",
                f"[{colour}]${s.net_cash_flow:,.2f}[/{colour}]",
            )
        console.print(scenarios)


if __name__ == "__main__":
    cli()
