"""Request parsing for the sale flow; nothing here touches the database."""

import pytest

from posbackend.errors import ValidationError
from posbackend.validation import (
    MAX_AMOUNT_CENTS,
    coerce_amount_cents,
    coerce_int,
    parse_sale_request,
)


def _payload(**overrides):
    payload = {
        "items": [{"product_id": 1, "quantity": 2}],
        "payments": [{"method": "cash", "amount": "25.00"}],
    }
    payload.update(overrides)
    return payload


def test_parse_sale_request_normalizes():
    request = parse_sale_request(_payload(customer="12", notes="  walk-in  "))

    assert request.items[0].product_id == 1
    assert request.items[0].quantity == 2
    assert request.items[0].discount_cents == 0
    assert request.payments[0].method == "CASH"
    assert request.payments[0].amount_cents == 2500
    assert request.customer_id == 12
    assert request.notes == "walk-in"


def test_product_alias_accepted():
    request = parse_sale_request(_payload(items=[{"product": "3", "quantity": "1"}]))
    assert request.items[0].product_id == 3
    assert request.items[0].quantity == 1


@pytest.mark.parametrize("raw,expected", [
    ({"amount": 25}, 2500),
    ({"amount": 25.5}, 2550),
    ({"amount": "0.05"}, 5),
    ({"amount_cents": 2500}, 2500),
    ({"amount_cents": "2500", "amount": "1.00"}, 2500),
])
def test_coerce_amount_cents(raw, expected):
    assert coerce_amount_cents(raw, "payments[0]") == expected


@pytest.mark.parametrize("raw", [
    {"amount": "1.005"},
    {"amount": "abc"},
    {"amount": "NaN"},
    {"amount": True},
    {"amount": -1},
    {"amount_cents": MAX_AMOUNT_CENTS + 1},
    {},
])
def test_coerce_amount_cents_rejects(raw):
    with pytest.raises(ValidationError):
        coerce_amount_cents(raw, "payments[0]")


@pytest.mark.parametrize("value", [True, 1.5, "1.5", "1e3", "", None, [1]])
def test_coerce_int_rejects(value):
    with pytest.raises(ValidationError):
        coerce_int(value, "quantity")


def test_coerce_int_accepts_numeric_strings():
    assert coerce_int(" 42 ", "quantity") == 42
    assert coerce_int(-3, "quantity") == -3


@pytest.mark.parametrize("overrides,message", [
    ({"items": []}, "Sale items are required"),
    ({"payments": None}, "Payment information is required"),
    ({"items": [{"quantity": 1}]}, "items[0].product_id is required"),
    ({"items": [{"product_id": 1}]}, "items[0].quantity is required"),
    ({"items": [{"product_id": 1, "quantity": 0}]}, "items[0].quantity must be at least 1"),
    ({"items": [{"product_id": 1, "quantity": 1, "discount_cents": -1}]},
     "items[0].discount_cents must be >= 0"),
    ({"payments": [{"amount": 1}]}, "payments[0].method is required"),
    ({"items": ["oops"]}, "items[0] must be an object"),
])
def test_parse_sale_request_errors(overrides, message):
    with pytest.raises(ValidationError) as exc_info:
        parse_sale_request(_payload(**overrides))
    assert exc_info.value.message == message


def test_unknown_payment_method():
    with pytest.raises(ValidationError) as exc_info:
        parse_sale_request(_payload(payments=[{"method": "bitcoin", "amount": 30}]))
    assert "Invalid payment method: BITCOIN" in exc_info.value.message


def test_non_object_body():
    with pytest.raises(ValidationError):
        parse_sale_request(["items"])


@pytest.mark.parametrize("item,expected", [
    ({"product_id": 1, "quantity": 2, "discount": 5}, 500),
    ({"product_id": 1, "quantity": 2, "discount": "0.75"}, 75),
    ({"product_id": 1, "quantity": 2, "discount_cents": 120, "discount": "9.99"}, 120),
    ({"product_id": 1, "quantity": 2}, 0),
])
def test_item_discount_forms(item, expected):
    request = parse_sale_request(_payload(items=[item]))
    assert request.items[0].discount_cents == expected


@pytest.mark.parametrize("discount", ["1.234", "ten", -1, True])
def test_item_discount_rejects(discount):
    with pytest.raises(ValidationError):
        parse_sale_request(_payload(items=[{"product_id": 1, "quantity": 1, "discount": discount}]))
