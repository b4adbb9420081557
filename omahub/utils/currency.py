"""
Currency helpers for brands and orders.

Brands sell in their own currency. The currency of a brand is taken, in
order, from its explicit `currency` column, the symbol in its price range
("₦15,000 - ₦120,000") and finally its location.
"""
import re
import logging
from collections import namedtuple
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

logger = logging.getLogger(__name__)

Currency = namedtuple('Currency', ['code', 'symbol', 'name', 'country', 'default_locations'])

CURRENCIES = (
    Currency('NGN', '₦', 'Nigerian Naira', 'Nigeria', ('Nigeria', 'Lagos', 'Abuja', 'Port Harcourt')),
    Currency('GHS', 'GHS', 'Ghanaian Cedi', 'Ghana', ('Ghana', 'Accra', 'Kumasi', 'Tamale')),
    Currency('KES', 'KSh', 'Kenyan Shilling', 'Kenya', ('Kenya', 'Nairobi', 'Mombasa', 'Kisumu')),
    Currency('ZAR', 'R', 'South African Rand', 'South Africa', ('South Africa', 'Johannesburg', 'Cape Town', 'Durban')),
    Currency('EGP', 'EGP', 'Egyptian Pound', 'Egypt', ('Egypt', 'Cairo', 'Alexandria', 'Giza')),
    Currency('MAD', 'MAD', 'Moroccan Dirham', 'Morocco', ('Morocco', 'Casablanca', 'Rabat', 'Marrakech')),
    Currency('TND', 'TND', 'Tunisian Dinar', 'Tunisia', ('Tunisia', 'Tunis', 'Sfax', 'Sousse')),
    Currency('XOF', 'XOF', 'West African CFA Franc', 'West Africa', ('Senegal', 'Ivory Coast', 'Burkina Faso', 'Mali')),
    Currency('DZD', 'DA', 'Algerian Dinar', 'Algeria', ('Algeria', 'Algiers', 'Oran', 'Constantine')),
    Currency('USD', '$', 'US Dollar', 'United States', ('United States', 'USA')),
    Currency('EUR', '€', 'Euro', 'European Union', ('European Union', 'EU')),
    Currency('GBP', '£', 'British Pound', 'United Kingdom', ('United Kingdom', 'UK', 'England', 'Scotland', 'Wales')),
)

CONTACT_FOR_PRICING = 'Contact for pricing'

PRICE_RANGE_PATTERN = re.compile(r'^([^\d,]+)(\d+(?:,\d+)*)\s*-\s*([^\d,]+)(\d+(?:,\d+)*)$')


def get_currency_by_code(code: Optional[str]) -> Optional[Currency]:
    """Get currency by ISO code (case-insensitive)."""
    if not code:
        return None
    code = code.strip().upper()
    return next((c for c in CURRENCIES if c.code == code), None)


def get_currency_by_symbol(symbol: Optional[str]) -> Optional[Currency]:
    """Get currency by display symbol."""
    if not symbol:
        return None
    return next((c for c in CURRENCIES if c.symbol == symbol), None)


def get_currency_by_location(location: Optional[str]) -> Optional[Currency]:
    """
    Get currency for a country or city.

    Exact country names win; otherwise the first currency whose known
    locations contain (or are contained in) the given location.

    Examples:
        get_currency_by_location('Ghana') -> GHS
        get_currency_by_location('Lagos, Nigeria') -> NGN
    """
    if not location:
        return None

    normalized = location.strip().lower()
    if not normalized:
        return None

    for currency in CURRENCIES:
        if currency.country.lower() == normalized:
            return currency

    for currency in CURRENCIES:
        for loc in currency.default_locations:
            loc = loc.lower()
            if loc in normalized or normalized in loc:
                return currency

    return None


def extract_currency_from_price_range(price_range: Optional[str]) -> Optional[Currency]:
    """
    Extract currency from a brand price range.

    Examples:
        extract_currency_from_price_range('₦15,000 - ₦120,000') -> NGN
        extract_currency_from_price_range('Contact for pricing') -> None
    """
    if not price_range or price_range == CONTACT_FOR_PRICING:
        return None

    match = PRICE_RANGE_PATTERN.match(price_range.strip())
    if not match:
        return None

    return get_currency_by_symbol(match.group(1).strip())


def get_brand_currency(brand) -> Optional[Currency]:
    """
    Resolve the currency a brand sells in, or None when it cannot be told.

    Args:
        brand: object with optional `currency`, `price_range` and `location`
    """
    if brand is None:
        return None

    explicit = get_currency_by_code(getattr(brand, 'currency', None))
    if explicit:
        return explicit

    from_price = extract_currency_from_price_range(getattr(brand, 'price_range', None))
    if from_price:
        return from_price

    from_location = get_currency_by_location(getattr(brand, 'location', None))
    if from_location:
        return from_location

    logger.debug(f"[CURRENCY] No currency could be determined for brand {getattr(brand, 'id', None)}")
    return None


def format_price(value: Union[int, float, Decimal, str, None], code: Optional[str] = None) -> str:
    """
    Format an amount with the currency symbol and thousands separators.

    Examples:
        format_price(Decimal('1500'), 'NGN') -> "₦1,500.00"
        format_price(20, 'GBP') -> "£20.00"
        format_price(None) -> "-"
    """
    if value is None or value == "":
        return "-"

    try:
        amount = Decimal(str(value)).quantize(Decimal('0.01'))
    except (InvalidOperation, ValueError, TypeError):
        return "-"

    currency = get_currency_by_code(code)
    symbol = currency.symbol if currency else (code or '')
    # Letter symbols (GHS, KSh...) read better with a space before the number
    separator = ' ' if symbol and symbol[-1].isalpha() and len(symbol) > 1 else ''

    sign = '-' if amount < 0 else ''
    return f"{sign}{symbol}{separator}{abs(amount):,.2f}"
