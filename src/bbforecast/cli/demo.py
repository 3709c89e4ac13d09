"""Demo command: create a market, place an encrypted bet, decrypt totals through the mock relayer."""

from __future__ import annotations

import typer

from bbforecast.service import LedgerService
from bbforecast.units import format_value, parse_value

CREATOR = "0x1000000000000000000000000000000000000001"
BETTOR = "0x2000000000000000000000000000000000000002"


def demo(
    ctx: typer.Context,
    name: str = typer.Option("Favorite color", "--name", help="Market name"),
    options: str = typer.Option("Red,Blue,Green", "--options", help="Comma-separated option labels (2-4)"),
    choice: int = typer.Option(1, "--choice", help="Option index the bettor selects"),
    stake: str = typer.Option("0.5", "--stake", help="Stake in value units"),
    persist: bool = typer.Option(False, "--persist/--no-persist", help="Append events to the configured DuckDB log"),
) -> None:
    """Run the end-to-end flow in-process against the mock coprocessor."""
    settings = ctx.obj["settings"]
    labels = [label.strip() for label in options.split(",")]
    try:
        value = parse_value(stake, settings.value_decimals)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--stake") from e

    service = LedgerService.from_settings(settings, persist=persist)
    try:
        ledger = service.ledger
        market_id = service.create_market(name, labels, caller=CREATOR)
        typer.echo(f"Created market {market_id}: {name!r} {labels}")

        enc = service.encrypt_selection(BETTOR, choice)
        service.place_bet(market_id, enc.handles[0], enc.input_proof, value, caller=BETTOR)
        typer.echo(f"Bettor {BETTOR} placed an encrypted bet of {stake}")

        for i, label in enumerate(ledger.get_option_labels(market_id)):
            votes, total = ledger.get_option_totals(market_id, i)
            plain = service.decrypt_for(BETTOR, [votes, total])
            typer.echo(
                f"  [{i}] {label:<12} votes={plain[votes.hex]:<4} "
                f"stake={format_value(plain[total.hex], settings.value_decimals)}  ({votes!r}, {total!r})"
            )

        bet = ledger.get_bet(market_id, BETTOR, 0)
        plain = service.decrypt_for(BETTOR, [bet.selection, bet.stake])
        typer.echo(
            f"Bet 0: selection={plain[bet.selection.hex]} "
            f"stake={format_value(plain[bet.stake.hex], settings.value_decimals)} placed_at={bet.placed_at}"
        )
    finally:
        service.close()
