"""CLI bootstrap for receipt-split."""

from datetime import UTC, datetime
from pathlib import Path

import typer

from receipt_split.domain.billing_period import (
    FREE_BILLS_PER_PERIOD,
    StoredUsage,
    derive_usage_state,
)
from receipt_split.domain.legacy_payload import decode_legacy_items
from receipt_split.domain.money import format_money

app = typer.Typer(help="Operator CLI for the receipt split ledger.")
INPUT_FILE_OPTION = typer.Option(..., exists=True, dir_okay=False)


def _parse_timestamp(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise typer.BadParameter(f"'{value}' is not an ISO 8601 timestamp.") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@app.command("healthcheck")
def healthcheck() -> None:
    """Verify that the CLI entrypoint is available."""
    typer.echo("receipt-split is ready")


@app.command("billing-window")
def billing_window(
    anchor: str = typer.Option(..., help="Account creation time (ISO 8601)."),
    now: str | None = typer.Option(None, help="Reference time, defaults to now."),
    used: int = typer.Option(0, help="Free bills stored for the stored window."),
    stored_start: str | None = typer.Option(None, help="Stored window start."),
    stored_end: str | None = typer.Option(None, help="Stored window end."),
    credits: int = typer.Option(0, help="Purchased bill credits."),
) -> None:
    """Show the billing window and allowance derived for an account."""
    reference = _parse_timestamp(now) if now else datetime.now(UTC)
    state = derive_usage_state(
        StoredUsage(
            anchor=_parse_timestamp(anchor),
            free_bills_used_in_period=used,
            current_period_start_at=(
                _parse_timestamp(stored_start) if stored_start else None
            ),
            current_period_end_at=_parse_timestamp(stored_end) if stored_end else None,
            bill_credits_balance=credits,
        ),
        reference,
    )
    typer.echo(
        f"Window: {state.current_period_start_at.isoformat()} -> "
        f"{state.current_period_end_at.isoformat()}"
    )
    typer.echo(
        f"Free bills: {state.free_bills_used_in_period}/{FREE_BILLS_PER_PERIOD} "
        f"used | Credits: {state.bill_credits_balance}"
    )
    typer.echo(f"Can host new bill: {'yes' if state.can_host_new_bill else 'no'}")


@app.command("decode-legacy")
def decode_legacy(
    input: Path = INPUT_FILE_OPTION,
    client_receipt_id: str | None = typer.Option(None, help="Expected receipt id."),
) -> None:
    """Decode a legacy receipt JSON blob the way reads do."""
    result = decode_legacy_items(
        input.read_text(encoding="utf-8"),
        client_receipt_id,
    )
    if result.failure is not None:
        typer.echo(f"Rejected: {result.failure.value}")
        raise typer.Exit(code=1)

    typer.echo(f"Items: {len(result.items)}")
    for item in result.items:
        price = format_money(item.price) if item.price is not None else "-"
        typer.echo(f"{item.key}\t{item.quantity} x {item.name}\t{price}")


def main() -> None:
    """Run the receipt-split CLI application."""
    app()


if __name__ == "__main__":
    main()
