from utils import calculate_discount, effective_price, format_currency, generate_slug


def test_effective_price_prefers_sale_price():
    assert effective_price({"price": 1200, "sale_price": 999}) == 999
    assert effective_price({"price": 1200, "sale_price": None}) == 1200


def test_calculate_discount_rounds_to_whole_percent():
    assert calculate_discount(3500, 2800) == 20
    assert calculate_discount(0, 0) == 0


def test_format_currency():
    assert format_currency(12500) == "৳12,500"
    assert format_currency(99.5) == "৳99.50"


def test_generate_slug():
    assert generate_slug("Men's Fashion & Style!") == "men-s-fashion-style"
