"""
Display formatting for USD amounts and P&L.
"""

DEFAULT_THB_PER_USD = 35.0


def format_currency(amount: float, decimals: int = 2) -> str:
    """Format as USD, e.g. -1234.5 -> '-$1,234.50'."""
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.{decimals}f}"


def format_amount(amount: float, decimals: int = 2) -> str:
    """Format with thousands separators and no currency symbol."""
    return f"{amount:,.{decimals}f}"


def format_pnl(amount: float, decimals: int = 2) -> str:
    """Format P&L with an explicit sign, e.g. '+$100.00' or '-$50.00'."""
    sign = "+" if amount >= 0 else "-"
    return f"{sign}${format_amount(abs(amount), decimals)}"


def format_compact_currency(amount: float) -> str:
    """Abbreviate large amounts with K/M/B suffixes."""
    size = abs(amount)
    if size >= 1_000_000_000:
        return f"${amount / 1_000_000_000:.1f}B"
    if size >= 1_000_000:
        return f"${amount / 1_000_000:.1f}M"
    if size >= 1_000:
        return f"${amount / 1_000:.1f}K"
    return format_currency(amount)


def format_profit_factor(value: float) -> str:
    return "∞" if value == float("inf") else f"{value:.2f}"


def baht_to_usd(baht: float, exchange_rate: float = DEFAULT_THB_PER_USD) -> float:
    return baht / exchange_rate


def usd_to_baht(usd: float, exchange_rate: float = DEFAULT_THB_PER_USD) -> float:
    return usd * exchange_rate
