import dataclasses
from datetime import datetime

import pytest

from app_ventas.models import (
    Branch,
    BranchStock,
    Product,
    Sale,
    clean_number,
    format_date,
    parse_date,
    parse_input_date,
    to_number,
)


@pytest.mark.parametrize('value, expected', [
    ('10', 10.0),
    (' 2.5 ', 2.5),
    (3, 3.0),
    ('', None),
    (None, None),
    ('abc', None),
    ('nan', None),
    (True, None),
])
def test_to_number(value, expected):
    assert to_number(value) == expected


def test_clean_number():
    assert clean_number(150.0) == 150
    assert isinstance(clean_number(150.0), int)
    assert clean_number(2.5) == 2.5


def test_parse_input_date_is_local_midnight():
    assert parse_input_date('2024-05-10') == datetime(2024, 5, 10, 0, 0)
    assert parse_input_date('') is None
    with pytest.raises(ValueError):
        parse_input_date('10/05/2024')


def test_parse_and_format_date():
    dt = datetime(2024, 5, 10, 14, 30, 15, 999)
    text = format_date(dt)
    assert text == '2024-05-10T14:30:15'
    assert parse_date(text) == datetime(2024, 5, 10, 14, 30, 15)
    assert parse_date('basura') is None
    assert parse_date(None) is None


def test_sale_build_computes_amount_and_cost():
    sale = Sale.build(
        product_name='Café 250g',
        product_id='p1',
        product_cost=60,
        branch_id='b1',
        branch_name='Centro',
        quantity=3,
        unit_price=100,
        discount=10,
        sale_date=datetime(2024, 5, 10),
        user_id='u1',
    )
    assert sale.amount == pytest.approx(290)
    assert sale.cost == pytest.approx(180)
    assert sale.profit == pytest.approx(110)
    assert sale.sales_channel == 'Centro'


def test_sale_build_clamps_negative_discount():
    sale = Sale.build('X', 'p', 5, 'b', 'B', 2, 10, -4, datetime(2024, 1, 1), 'u')
    assert sale.discount == 0
    assert sale.amount == pytest.approx(20)


def test_sale_amount_can_go_negative():
    sale = Sale.build('X', 'p', 5, 'b', 'B', 1, 10, 15, datetime(2024, 1, 1), 'u')
    assert sale.amount == pytest.approx(-5)


def test_sale_document_keys():
    sale = Sale.build('Café', 'p1', 60, 'b1', 'Centro', 3, 100, 10, datetime(2024, 5, 10), 'u1')
    doc = sale.to_dict()
    assert doc['productId'] == 'p1'
    assert doc['branchName'] == 'Centro'
    assert doc['unitPrice'] == 100
    assert doc['date'] == '2024-05-10T00:00:00'


def test_sale_is_immutable():
    sale = Sale.build('Café', 'p1', 60, 'b1', 'Centro', 1, 100, 0, datetime(2024, 5, 10), 'u1')
    with pytest.raises(dataclasses.FrozenInstanceError):
        sale.amount = 0


def test_product_helpers():
    product = Product(id='p1', name='Café', cost=2.5, stock=4)
    assert product.stock_value == pytest.approx(10)
    assert product.is_low_stock(5)
    assert not product.is_low_stock(4)

    doc = product.to_dict()
    assert doc['price'] == 0
    assert doc['shippingCost'] == 0
    assert Product.from_dict('p1', doc).name == 'Café'


def test_branch_and_branch_stock_documents():
    assert Branch.from_dict('b1', {'name': 'Centro'}).to_dict() == {'name': 'Centro'}
    entry = BranchStock.from_dict('e1', {'branchId': 'b1', 'productId': 'p1', 'stock': 7})
    assert entry.stock == 7
    assert entry.to_dict() == {'branchId': 'b1', 'productId': 'p1', 'stock': 7}
