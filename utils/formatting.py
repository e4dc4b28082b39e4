"""Display formatting for campaign data (Brazilian conventions).

Provides reusable functions for:
- Currency in reais ("R$ 1.234,56")
- Counts with "." thousands separators
- CNPJ masks and ISO → dd/mm/yyyy dates
- Label truncation for chart axes and legends
"""

from datetime import date, datetime
from typing import Optional, Union


def _swap_separators(text: str) -> str:
    # "1,234,567.89" → "1.234.567,89"
    return text.replace(",", "_").replace(".", ",").replace("_", ".")


def format_currency(value: Optional[float], precision: int = 2) -> str:
    """Format an amount in Brazilian reais.

    Examples:
        format_currency(50000) -> "R$ 50.000,00"
        format_currency(None) -> "-"
    """
    if value is None:
        return "-"
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return "-"
    sign = "-" if amount < 0 else ""
    return f"{sign}R$ {_swap_separators(f'{abs(amount):,.{precision}f}')}"


def format_count(value: Optional[int]) -> str:
    """Format a count with "." as thousands separator.

    Examples:
        format_count(1234567) -> "1.234.567"
        format_count(None) -> "-"
    """
    if value is None:
        return "-"
    return f"{int(value):,d}".replace(",", ".")


def format_cnpj(value: Optional[str]) -> str:
    """Apply the CNPJ mask to a 14-digit string.

    Values that are not 14 digits after stripping are returned unchanged.

    Examples:
        format_cnpj("12345678000195") -> "12.345.678/0001-95"
    """
    if not value:
        return "-"
    digits = "".join(ch for ch in str(value) if ch.isdigit())
    if len(digits) != 14:
        return str(value)
    return f"{digits[:2]}.{digits[2:5]}.{digits[5:8]}/{digits[8:12]}-{digits[12:]}"


def format_date(value: Union[str, date, datetime, None]) -> str:
    """Render an ISO date or datetime as dd/mm/yyyy."""
    if value is None or value == "":
        return "-"
    if isinstance(value, (date, datetime)):
        return value.strftime("%d/%m/%Y")
    text = str(value)
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return text
    return parsed.strftime("%d/%m/%Y")


def truncate_label(text: Optional[str], max_chars: int, suffix: str = "...") -> str:
    """Keep the first *max_chars* characters and append *suffix* if cut.

    Examples:
        truncate_label("Rio Grande do Sul, Santa Catarina", 15) -> "Rio Grande do S..."
        truncate_label("SP", 15) -> "SP"
    """
    if text is None:
        return ""
    text = str(text)
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + suffix
