# services/pricing.py

from collections.abc import Mapping

MINOR_UNITS_PER_MAJOR = 100


def normalize_prices(raw_prices):
    """
    Turn a per-sport price table into a plain ``{sport: price}`` dict.

    Price tables reach us in two shapes: a mapping (JSON columns, request
    bodies) or a plain object carrying one attribute per sport (older exports
    loaded as namespaces). The mapping shape is tried first. Nothing past this
    function looks at the original shape.
    """
    if raw_prices is None:
        return {}
    if isinstance(raw_prices, Mapping):
        return {str(sport): price for sport, price in raw_prices.items()}
    if hasattr(raw_prices, '__dict__'):
        return {
            sport: price for sport, price in vars(raw_prices).items()
            if not sport.startswith('_')
        }
    raise TypeError(f"Unsupported price table type: {type(raw_prices).__name__}")


def price_for_sport(raw_prices, sport):
    """Price in major units, or None when the sport has no positive price."""
    price = normalize_prices(raw_prices).get(sport)
    if not price:
        return None
    try:
        price = int(price)
    except (TypeError, ValueError):
        return None
    return price if price > 0 else None


def to_minor_units(price):
    return int(price) * MINOR_UNITS_PER_MAJOR


def from_minor_units(amount):
    return amount / MINOR_UNITS_PER_MAJOR
