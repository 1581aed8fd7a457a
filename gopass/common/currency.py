"""Currency catalog, base-currency conversion and display formatting.

All stored prices (plans, events) are in `BASE_CURRENCY_CODE`. Conversion for
display uses the user's own exchange rates when set, otherwise the default
table below.
"""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class Currency:
    code: str
    symbol: str
    name: str


@dataclass(frozen=True)
class Country:
    code: str
    name: str
    currency: Currency


CURRENCIES: dict[str, Currency] = {
    "USD": Currency("USD", "$", "US Dollar"),
    "MWK": Currency("MWK", "K", "Malawian Kwacha"),
    "EUR": Currency("EUR", "€", "Euro"),
    "GBP": Currency("GBP", "£", "British Pound"),
    "JPY": Currency("JPY", "¥", "Japanese Yen"),
    "CAD": Currency("CAD", "$", "Canadian Dollar"),
    "AUD": Currency("AUD", "$", "Australian Dollar"),
    "CHF": Currency("CHF", "Fr", "Swiss Franc"),
    "CNY": Currency("CNY", "¥", "Chinese Yuan"),
    "INR": Currency("INR", "₹", "Indian Rupee"),
    "BRL": Currency("BRL", "R$", "Brazilian Real"),
    "RUB": Currency("RUB", "₽", "Russian Ruble"),
    "ZAR": Currency("ZAR", "R", "South African Rand"),
    "AED": Currency("AED", "د.إ", "UAE Dirham"),
    "KES": Currency("KES", "KSh", "Kenyan Shilling"),
    "NGN": Currency("NGN", "₦", "Nigerian Naira"),
    "GHS": Currency("GHS", "GH₵", "Ghanaian Cedi"),
}

COUNTRIES: list[Country] = sorted(
    [
        Country("US", "United States", CURRENCIES["USD"]),
        Country("MW", "Malawi", CURRENCIES["MWK"]),
        Country("DE", "Germany", CURRENCIES["EUR"]),
        Country("FR", "France", CURRENCIES["EUR"]),
        Country("GB", "United Kingdom", CURRENCIES["GBP"]),
    ],
    key=lambda country: country.name,
)

BASE_CURRENCY_CODE = "USD"

# Units of the target currency per 1 USD.
DEFAULT_EXCHANGE_RATES: dict[str, float] = {
    "USD": 1,
    "MWK": 1750,
    "EUR": 0.92,
    "GBP": 0.79,
    "JPY": 157.6,
    "CAD": 1.37,
    "AUD": 1.5,
    "CHF": 0.89,
    "CNY": 7.26,
    "INR": 83.5,
    "BRL": 5.44,
    "RUB": 88.2,
    "ZAR": 18.0,
    "AED": 3.67,
    "KES": 128.5,
    "NGN": 1480,
    "GHS": 14.8,
}

# No minor unit in everyday use.
WHOLE_NUMBER_CURRENCIES = frozenset({"MWK", "JPY"})


def convert_currency(amount, target_currency_code: str, user_rates: dict[str, float] | None = None):
    """Convert an amount in the base currency to `target_currency_code`.

    Unknown currencies fall through unchanged rather than raising.
    """

    if target_currency_code == BASE_CURRENCY_CODE:
        return amount

    rate = (user_rates or {}).get(target_currency_code) or DEFAULT_EXCHANGE_RATES.get(target_currency_code)
    if not rate:
        return amount
    return amount * rate


def format_currency(amount, currency: Currency) -> str:
    """Render e.g. `$49.00` or `K85,750` for an already converted amount."""

    # str() first so 49.995 rounds as the decimal the user sees, not its binary neighbour.
    value = Decimal(str(amount))
    if currency.code in WHOLE_NUMBER_CURRENCIES:
        return f"{currency.symbol}{value:,.0f}"
    return f"{currency.symbol}{value:,.2f}"


def format_event_price(price, currency_code: str) -> str:
    """Format an event price in its own currency, tolerating unknown codes."""

    currency = CURRENCIES.get(currency_code) or Currency(currency_code, currency_code, currency_code)
    return format_currency(price, currency)


def _rate(code: str, user_rates: dict[str, float] | None) -> float:
    if code == BASE_CURRENCY_CODE:
        return 1
    rate = (user_rates or {}).get(code) or DEFAULT_EXCHANGE_RATES.get(code)
    if not rate:
        raise ValueError(f"no exchange rate for {code}")
    return rate


def convert_between(amount, source_code: str, target_code: str, user_rates: dict[str, float] | None = None):
    """Convert an amount held in `source_code` into `target_code` via the base currency.

    Used for prices charged to a buyer, so an unknown code raises `ValueError`
    instead of passing the amount through.
    """

    if source_code == target_code:
        return amount
    return amount / _rate(source_code, user_rates) * _rate(target_code, user_rates)
