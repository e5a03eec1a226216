"""
Formatting utilities for amounts and percentages.

Used to build the human-readable messages that accompany structured
results (placement messages, sale simulation summaries).
"""

from decimal import Decimal


def format_currency(
    amount: Decimal | int,
    currency: str = "USD",
    decimals: int = 2,
) -> str:
    """
    Format an amount with its currency label.

    Args:
        amount: Amount to format
        currency: Currency code or symbol
        decimals: Digits after the decimal point

    Returns:
        Formatted string

    Example:
        >>> format_currency(Decimal("1234.5"))
        '1,234.50 USD'
        >>> format_currency(Decimal("20"), currency="$")
        '$20.00'
    """
    formatted = f"{Decimal(amount):,.{decimals}f}"
    if currency.startswith("$") or currency.startswith("€"):
        return f"{currency}{formatted}"
    return f"{formatted} {currency}"


def format_percentage(value: Decimal | int, decimals: int = 2) -> str:
    """
    Format a value that is already expressed in percent.

    Example:
        >>> format_percentage(Decimal("12.5"))
        '12.50%'
    """
    return f"{Decimal(value):.{decimals}f}%"


def format_breakdown(
    title: str,
    rows: list[tuple[str, Decimal]],
    currency: str = "USD",
    decimals: int = 2,
) -> str:
    """Render a titled list of labelled amounts, one per line."""
    width = max((len(label) for label, _ in rows), default=0)
    lines = [title]
    for label, amount in rows:
        lines.append(f"  {label.ljust(width)}  {format_currency(amount, currency, decimals)}")
    return "\n".join(lines)
