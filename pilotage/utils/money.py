"""
Money and percentage formatting in the French locale.

Usage:
    from pilotage.utils.money import format_eur, format_percentage

    format_eur(1234.5)         -> "1 234,50 €"   (narrow no-break space, no-break space)
    format_eur(-42)            -> "-42,00 €"
    format_percentage(20)      -> "+20.0%"
"""
from decimal import ROUND_HALF_UP, Decimal

THOUSANDS_SEPARATOR = "\u202f"
CURRENCY_SEPARATOR = "\u00a0"

_CURRENCY_SYMBOL = {
    "EUR": "€",
}


def currency_label(code: str) -> str:
    """Symbole de la devise, ou son code ISO à défaut."""
    return _CURRENCY_SYMBOL.get(code, code)


def format_money(amount, currency: str = "EUR", decimals: int = 2) -> str:
    """
    Formater un montant : séparateur de milliers espace fine insécable,
    virgule décimale, espace insécable avant la devise.

    Args:
        amount: nombre (int / float / Decimal / str)
        currency: code ISO de la devise
        decimals: nombre de décimales
    """
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    quantum = Decimal(1).scaleb(-decimals)
    value = value.quantize(quantum, rounding=ROUND_HALF_UP)
    if value == 0:
        value = abs(value)

    formatted = f"{value:,.{decimals}f}"
    formatted = formatted.replace(",", THOUSANDS_SEPARATOR).replace(".", ",")
    return f"{formatted}{CURRENCY_SEPARATOR}{currency_label(currency)}"


def format_eur(amount) -> str:
    return format_money(amount, "EUR")


def format_percentage(value: float) -> str:
    """Signed percentage with one decimal: +20.0% / -5.0% / +0.0%."""
    sign = "+" if value >= 0 else ""
    return f"{sign}{value:.1f}%"
