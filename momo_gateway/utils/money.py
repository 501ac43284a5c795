from decimal import Decimal, ROUND_HALF_UP

# fr-FR display symbols, no fraction digits
CURRENCY_SYMBOLS = {
    "XOF": "F\u202fCFA",
    "XAF": "FCFA",
    "EUR": "€",
    "USD": "$US",
    "GBP": "£GB",
}

GROUP_SEPARATOR = "\u202f"  # narrow no-break space
SYMBOL_SEPARATOR = "\u00a0"


def format_amount(amount, currency: str = "XOF") -> str:
    """Locale formatting as a French storefront shows it: '10 000 F CFA'."""
    value = int(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    sign = "-" if value < 0 else ""
    grouped = f"{abs(value):,}".replace(",", GROUP_SEPARATOR)
    code = (currency or "").upper()
    symbol = CURRENCY_SYMBOLS.get(code, code)
    return f"{sign}{grouped}{SYMBOL_SEPARATOR}{symbol}"
