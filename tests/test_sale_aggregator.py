import pytest
from werkzeug.datastructures import MultiDict

from sales.aggregator import (
    build_sale_totals,
    headline_product,
    items_from_form,
    normalize_items,
    to_number,
)

CATALOG = {"pedha-1": "Kesar Pedha", "pedha-2": "Chocolate Pedha"}


def test_subtotal_discount_and_tax():
    totals = build_sale_totals(
        [
            {"productId": "pedha-1", "quantity": 2, "price": 200},
            {"productId": "pedha-2", "quantity": 1, "price": 250},
        ],
        CATALOG,
        discount=50,
        tax=10,
    )
    assert totals["subtotal"] == 650
    assert totals["total_amount"] == 610
    assert [i["totalAmount"] for i in totals["items"]] == [400, 250]


def test_item_missing_quantity_is_dropped():
    totals = build_sale_totals(
        [
            {"productId": "pedha-1", "quantity": "2", "price": "200"},
            {"productId": "pedha-2", "price": "250"},
        ],
        CATALOG,
    )
    assert len(totals["items"]) == 1
    assert totals["items"][0]["productId"] == "pedha-1"
    assert totals["subtotal"] == 400


@pytest.mark.parametrize("bad", [
    {"quantity": 1, "price": 10},
    {"productId": "", "quantity": 1, "price": 10},
    {"productId": "p", "quantity": 0, "price": 10},
    {"productId": "p", "quantity": "abc", "price": 10},
    {"productId": "p", "quantity": 1, "price": None},
    {"productId": "p", "quantity": 1, "price": "nan"},
])
def test_invalid_items_are_dropped(bad):
    assert build_sale_totals([bad], CATALOG)["items"] == []


def test_client_line_total_is_ignored():
    totals = build_sale_totals(
        [{"productId": "pedha-1", "quantity": 1.5, "price": 200, "totalAmount": 9999}],
        CATALOG,
    )
    assert totals["items"][0]["totalAmount"] == 300
    assert totals["subtotal"] == 300


def test_discount_and_tax_default_to_zero():
    items = [{"productId": "pedha-1", "quantity": 1, "price": 100}]
    assert build_sale_totals(items, CATALOG)["total_amount"] == 100
    totals = build_sale_totals(items, CATALOG, discount="", tax="n/a")
    assert totals["discount"] == 0
    assert totals["tax"] == 0
    assert totals["total_amount"] == 100


def test_total_never_negative():
    totals = build_sale_totals([{"productId": "pedha-1", "quantity": 1, "price": 100}], CATALOG, discount=500)
    assert totals["total_amount"] == 0


def test_negative_discount_and_tax_follow_the_formula():
    items = [{"productId": "pedha-1", "quantity": 1, "price": 100}]
    totals = build_sale_totals(items, CATALOG, discount=-5)
    assert totals["discount"] == -5
    assert totals["total_amount"] == 105

    totals = build_sale_totals(items, CATALOG, tax=-150)
    assert totals["total_amount"] == 0


def test_negative_quantity_or_price_keeps_the_line():
    totals = build_sale_totals(
        [
            {"productId": "pedha-1", "quantity": -2, "price": 200},
            {"productId": "pedha-2", "quantity": 3, "price": -10},
            {"productId": "pedha-2", "quantity": 1, "price": 250},
        ],
        CATALOG,
    )
    assert [i["totalAmount"] for i in totals["items"]] == [-400, -30, 250]
    assert totals["subtotal"] == -180
    assert totals["total_amount"] == 0


@pytest.mark.parametrize("product_id", [{"a": 1}, ["pedha-1"], True, 1.5])
def test_unusable_product_id_drops_the_line(product_id):
    totals = build_sale_totals([{"productId": product_id, "quantity": 1, "price": 1}], CATALOG)
    assert totals["items"] == []


def test_numeric_product_id_matches_catalog_key():
    totals = build_sale_totals([{"productId": 7, "quantity": 1, "price": 30}], {"7": "Kaju Katli"})
    assert totals["items"][0]["productId"] == "7"
    assert totals["items"][0]["productName"] == "Kaju Katli"


def test_product_name_resolution():
    totals = build_sale_totals(
        [
            {"productId": "pedha-1", "productName": "Old name", "quantity": 1, "price": 1},
            {"productId": "custom", "productName": "Gift Box", "quantity": 1, "price": 1},
            {"productId": "custom-2", "quantity": 1, "price": 1},
        ],
        CATALOG,
    )
    assert [i["productName"] for i in totals["items"]] == ["Kesar Pedha", "Gift Box", "Product"]


def test_empty_sale_is_valid():
    totals = build_sale_totals([], CATALOG, tax=5)
    assert totals["items"] == []
    assert totals["subtotal"] == 0
    assert totals["total_amount"] == 5


def test_normalize_accepts_mapping_of_items():
    raw = {"0": {"productId": "a"}, "1": {"productId": "b"}, "x": "junk"}
    assert [i["productId"] for i in normalize_items(raw)] == ["a", "b"]
    assert normalize_items("junk") == []
    assert normalize_items(None) == []


def test_items_from_flat_form_keys():
    form = MultiDict([
        ("customerName", "Asha"),
        ("products[10][productId]", "pedha-2"),
        ("products[10][quantity]", "1"),
        ("products[2][productId]", "pedha-1"),
        ("products[2][quantity]", "3"),
        ("products[2][price]", "200"),
    ])
    items = items_from_form(form)
    assert items == [
        {"productId": "pedha-1", "quantity": "3", "price": "200"},
        {"productId": "pedha-2", "quantity": "1"},
    ]


def test_to_number():
    assert to_number("2.5") == 2.5
    assert to_number(" 3 ") == 3.0
    assert to_number("inf") is None
    assert to_number(True) is None
    assert to_number([]) is None


def test_headline_product():
    assert headline_product([]) == "Multiple Products"
    assert headline_product([{"productName": "Kesar Pedha"}]) == "Kesar Pedha"
    assert headline_product([{"productName": "A"}, {"productName": "B"}, {"productName": "C"}]) == "A + 2 more"
