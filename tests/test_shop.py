from catalog import SAMPLE_PRODUCTS, ShopFilters, filter_products, present


def ids(products):
    return [p["id"] for p in products]


def test_default_view_is_newest_first():
    assert ids(filter_products(SAMPLE_PRODUCTS, ShopFilters())) == [6, 5, 4, 3, 2, 1]


def test_category_filter():
    result = filter_products(SAMPLE_PRODUCTS, ShopFilters(category="men"))
    assert result
    assert all(p["category"] == "men" for p in result)


def test_category_and_inclusive_price_range():
    result = filter_products(SAMPLE_PRODUCTS, ShopFilters(category="men", min_price=1000, max_price=3000))
    # the tee's list price is in range but its sale price (999) is not
    assert ids(result) == [2]


def test_price_range_bounds_are_inclusive():
    result = filter_products(SAMPLE_PRODUCTS, ShopFilters(min_price=999, max_price=1800))
    assert sorted(ids(result)) == [1, 3, 5]


def test_search_matches_name_or_category():
    assert ids(filter_products(SAMPLE_PRODUCTS, ShopFilters(search="t-shirt"))) == [6, 1]
    assert ids(filter_products(SAMPLE_PRODUCTS, ShopFilters(search="WOMEN"))) == [5, 3]


def test_sort_by_price_uses_effective_price():
    products = SAMPLE_PRODUCTS + [
        {"id": 7, "name": "Linen Shirt", "price": 1000, "sale_price": None, "category": "men", "rating": 4.0},
    ]
    low = filter_products(products, ShopFilters(sort="price-low"))
    assert ids(low)[:3] == [6, 1, 7]

    high = filter_products(products, ShopFilters(sort="price-high"))
    assert ids(high) == list(reversed(ids(low)))


def test_sort_by_rating():
    assert ids(filter_products(SAMPLE_PRODUCTS, ShopFilters(sort="rating"))) == [3, 1, 4, 2, 5, 6]


def test_unknown_sort_falls_back_to_newest():
    assert ids(filter_products(SAMPLE_PRODUCTS, ShopFilters(sort="popular"))) == [6, 5, 4, 3, 2, 1]


def test_filtering_does_not_mutate_source():
    before = ids(SAMPLE_PRODUCTS)
    filter_products(SAMPLE_PRODUCTS, ShopFilters(sort="price-high"))
    assert ids(SAMPLE_PRODUCTS) == before


def test_present_adds_discount_and_formatted_prices():
    card = present(SAMPLE_PRODUCTS[0])
    assert card["effective_price"] == 999
    assert card["display_price"] == "৳999"
    assert card["display_original_price"] == "৳1,200"
    assert card["discount"] == 17


def test_present_without_sale_has_no_discount():
    card = present({"id": 9, "name": "Cap", "price": 500, "sale_price": None})
    assert card["display_price"] == "৳500"
    assert "discount" not in card
