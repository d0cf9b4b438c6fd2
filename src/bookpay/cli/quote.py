"""CLI: bookpay quote|fee"""

import json
from decimal import Decimal, InvalidOperation
from typing import NoReturn, Optional

import click
from rich.console import Console
from rich.table import Table

from bookpay.errors import BookPayError, ValidationError
from bookpay.models.payment import PaymentMethod
from bookpay.models.pricing import CouponClass
from bookpay.money import format_currency
from bookpay.pricing import PricingEngine, fee_explanation, processing_fee

console = Console()

METHOD_CHOICES = click.Choice([m.value for m in PaymentMethod])


class MoneyParam(click.ParamType):
    name = "amount"

    def convert(self, value, param, ctx):
        if isinstance(value, Decimal):
            return value
        try:
            return Decimal(str(value).strip().lstrip("$"))
        except InvalidOperation:
            self.fail(f"{value!r} is not a valid amount", param, ctx)


MONEY = MoneyParam()


def _load_settings(**overrides):
    from bookpay.cli.main import _load_settings
    return _load_settings(**overrides)


def _fail(e: BookPayError) -> NoReturn:
    from bookpay.cli.main import _fail
    _fail(e)


@click.command("quote")
@click.argument("price", type=MONEY)
@click.option("--method", "-m", type=METHOD_CHOICES, default="card", show_default=True)
@click.option("--coupon-discount", type=MONEY, default=Decimal("0"), help="Coupon discount already worked out")
@click.option("--gift-card-discount", type=MONEY, default=Decimal("0"))
@click.option("--deposit-reduction", type=MONEY, default=Decimal("0"))
@click.option("--coupon-class", type=click.Choice([c.value for c in CouponClass]), default="none")
@click.option("--tax-rate", type=MONEY, default=None, help="Override the configured tax rate (percent)")
@click.option("--json", "as_json", is_flag=True, help="Print the breakdown as JSON")
def quote_cmd(
    price: Decimal,
    method: str,
    coupon_discount: Decimal,
    gift_card_discount: Decimal,
    deposit_reduction: Decimal,
    coupon_class: str,
    tax_rate: Optional[Decimal],
    as_json: bool,
):
    """Price breakdown for a service PRICE."""
    try:
        settings = _load_settings()
        engine = PricingEngine.from_settings(settings)
        result = engine.quote(
            price,
            PaymentMethod(method),
            coupon_discount=coupon_discount,
            gift_card_discount=gift_card_discount,
            deposit_reduction=deposit_reduction,
            coupon_class=CouponClass(coupon_class),
            tax_rate_percent=tax_rate,
        )
    except BookPayError as e:
        _fail(e)

    if as_json:
        data = result.model_dump(mode="json")
        data["amount_due_now"] = str(result.amount_due_now)
        click.echo(json.dumps(data, indent=2))
        return

    currency = settings.currency
    table = Table(title=f"{result.payment_method.label} quote ({result.kind})")
    table.add_column("Item")
    table.add_column("Amount", justify="right")
    table.add_row("Subtotal", format_currency(result.subtotal, currency))
    table.add_row("Tax", format_currency(result.tax, currency))
    table.add_row("Deposit" if result.remaining > 0 else "Service total", format_currency(result.deposit, currency))
    table.add_row(fee_explanation(result.payment_method), format_currency(result.fee, currency))
    table.add_row("Total", format_currency(result.total, currency))
    table.add_row("Remaining at appointment", format_currency(result.remaining, currency))
    table.add_row("[bold]Due now[/bold]", f"[bold]{format_currency(result.amount_due_now, currency)}[/bold]")
    console.print(table)
    if result.forced_full and result.kind == "standard":
        console.print("[dim]Full payment required for this amount or payment method.[/dim]")


@click.command("fee")
@click.argument("amount", type=MONEY)
@click.option("--method", "-m", type=METHOD_CHOICES, default="card", show_default=True)
def fee_cmd(amount: Decimal, method: str):
    """Processing fee added on top of a charge basis AMOUNT."""
    if amount < 0:
        _fail(ValidationError("Amount must not be negative"))
    rail = PaymentMethod(method)
    fee = processing_fee(amount, rail)
    console.print(f"{fee_explanation(rail)}: {format_currency(fee)}")
