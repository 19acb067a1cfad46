"""
Amount input validation
"""
import re
from decimal import Decimal, InvalidOperation


def normalize_decimal_input(value: str) -> str:
    """
    Normaliser une saisie de montant : virgule -> point, espaces retirés

    Example:
        >>> normalize_decimal_input("1 250,50")
        "1250.50"
    """
    return re.sub(r"\s", "", value).replace(",", ".")


def validate_decimal_amount(value: str, max_decimal_places: int = 2) -> tuple[bool, str | None]:
    """
    Valider un montant saisi

    Returns:
        (is_valid, error_message)

    Example:
        >>> validate_decimal_amount("100,50")
        (True, None)
        >>> validate_decimal_amount("100.505")
        (False, "2 décimales maximum")
    """
    normalized = normalize_decimal_input(value)

    try:
        Decimal(normalized)
    except (InvalidOperation, ValueError):
        return False, "Montant invalide"

    pattern = rf"^-?\d+(\.\d{{1,{max_decimal_places}}})?$"
    if not re.match(pattern, normalized):
        return False, f"{max_decimal_places} décimales maximum"

    return True, None


def parse_amount(value, max_decimal_places: int = 2) -> Decimal:
    """
    Valider et convertir un montant (str, int, float ou Decimal)

    Raises:
        ValueError: montant invalide
    """
    if isinstance(value, Decimal):
        value = format(value, "f")
    is_valid, error = validate_decimal_amount(str(value), max_decimal_places)
    if not is_valid:
        raise ValueError(error)
    return Decimal(normalize_decimal_input(str(value)))
