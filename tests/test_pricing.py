from types import SimpleNamespace

import pytest

from services.pricing import normalize_prices, price_for_sport, to_minor_units, from_minor_units


def test_mapping_price_table():
    assert normalize_prices({'Cricket': 1000, 'Football': 800}) == {'Cricket': 1000, 'Football': 800}


def test_attribute_price_table():
    prices = SimpleNamespace(Cricket=1000, Football=800)
    assert normalize_prices(prices) == {'Cricket': 1000, 'Football': 800}


def test_missing_price_table_is_empty():
    assert normalize_prices(None) == {}


def test_unsupported_price_table():
    with pytest.raises(TypeError):
        normalize_prices(42)


@pytest.mark.parametrize('prices, expected', [
    ({'Cricket': 1000}, 1000),
    ({'Cricket': '1000'}, 1000),
    ({'Cricket': 0}, None),
    ({'Cricket': -5}, None),
    ({'Cricket': 'free'}, None),
    ({'Football': 800}, None),
])
def test_price_for_sport(prices, expected):
    assert price_for_sport(prices, 'Cricket') == expected


def test_minor_units():
    assert to_minor_units(1000) == 100000
    assert from_minor_units(100000) == 1000
