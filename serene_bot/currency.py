"""
Currency helpers — symbols, decimal places and display formatting.

Checkout amounts travel in minor units (paise, cents); anything shown to the
user goes through format_amount / format_minor_units.
"""

from decimal import Decimal, ROUND_HALF_UP

from serene_bot.config import settings


# ── Constants ──────────────────────────────────────────────

SUPPORTED_CURRENCIES = (
    "INR", "USD", "EUR", "GBP", "AUD", "CAD", "SGD", "AED", "MYR", "THB",
    "CHF", "HKD", "NZD", "SEK", "DKK", "NOK", "PLN", "CZK", "HUF", "ILS",
    "JPY", "KRW", "PHP", "ZAR", "BRL", "MXN", "ARS", "CLP", "COP", "PEN",
    "VND", "IDR", "RUB", "TRY", "SAR", "QAR", "OMR", "KWD", "BHD", "EGP",
    "PKR", "BDT", "LKR", "NPR", "MMK", "TWD", "CNY",
)

CURRENCY_SYMBOLS = {
    "INR": "₹", "USD": "$", "EUR": "€", "GBP": "£",
    "AUD": "A$", "CAD": "C$", "SGD": "S$", "AED": "AED ",
    "MYR": "RM", "THB": "฿", "HKD": "HK$", "NZD": "NZ$",
    "JPY": "¥", "KRW": "₩", "PHP": "₱", "ZAR": "R",
    "BRL": "R$", "MXN": "MX$", "VND": "₫", "IDR": "Rp",
    "TRY": "₺", "ILS": "₪", "PKR": "₨", "BDT": "৳",
    "LKR": "Rs", "TWD": "NT$", "CNY": "¥",
}

ZERO_DECIMAL_CURRENCIES = {"JPY", "KRW", "CLP", "VND", "IDR"}
THREE_DECIMAL_CURRENCIES = {"KWD", "BHD", "OMR"}

# Country picker used during onboarding → billing currency
COUNTRY_CURRENCY = {
    "India": "INR",
    "USA": "USD",
    "UK": "GBP",
    "UAE": "AED",
    "Singapore": "SGD",
    "Other": "USD",
}


def is_valid_currency(currency: str) -> bool:
    return (currency or "").upper() in SUPPORTED_CURRENCIES


def currency_symbol(currency: str) -> str:
    code = (currency or "").upper()
    return CURRENCY_SYMBOLS.get(code, f"{code} ")


def decimal_places(currency: str) -> int:
    code = (currency or "").upper()
    if code in ZERO_DECIMAL_CURRENCIES:
        return 0
    if code in THREE_DECIMAL_CURRENCIES:
        return 3
    return 2


def to_minor_units(amount: float, currency: str) -> int:
    """Convert a major-unit amount (e.g. 1500.50 INR) to minor units (150050)."""
    scale = Decimal(10) ** decimal_places(currency)
    value = (Decimal(str(amount)) * scale).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return int(value)


def format_amount(amount: float, currency: str | None = None) -> str:
    """Format a major-unit amount with its symbol, e.g. ₹1,500.00."""
    code = (currency or settings.DEFAULT_CURRENCY).upper()
    places = decimal_places(code)
    return f"{currency_symbol(code)}{amount:,.{places}f}"


def format_minor_units(amount_minor: int, currency: str | None = None) -> str:
    """Format an amount given in minor units (as returned by the order API)."""
    code = (currency or settings.DEFAULT_CURRENCY).upper()
    places = decimal_places(code)
    return format_amount(amount_minor / (10 ** places), code)
