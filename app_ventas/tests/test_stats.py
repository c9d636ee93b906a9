from datetime import datetime

import pytest

from app_ventas.exceptions import ValidationError
from app_ventas.services import (
    available_years,
    filter_sales,
    inventory_stats,
    month_options,
    parse_period,
    sales_stats,
)

SALES = [
    {'amount': 290, 'cost': 180, 'date': '2024-05-10T00:00:00'},
    {'amount': 100, 'cost': 40, 'date': '2024-05-20T15:30:00'},
    {'amount': 50.5, 'cost': 20, 'date': '2024-07-01T00:00:00'},
    {'amount': 80, 'cost': 30, 'date': '2023-12-31T23:59:00'},
    {'amount': 10, 'cost': 5},
]


def test_sales_stats():
    stats = sales_stats(SALES[:3])
    assert stats == {
        'total_revenue': 440.5,
        'total_cost': 240,
        'total_profit': 200.5,
        'total_sales': 3,
        'average_sale': pytest.approx(146.83),
    }


def test_sales_stats_empty():
    stats = sales_stats([])
    assert stats['total_sales'] == 0
    assert stats['average_sale'] == 0
    assert stats['total_profit'] == 0


def test_sales_stats_missing_values_count_as_zero():
    stats = sales_stats([{'amount': 'x'}, {'cost': None}, {}])
    assert stats['total_revenue'] == 0
    assert stats['total_sales'] == 3


def test_filter_by_year():
    assert len(filter_sales(SALES, 2024)) == 3
    assert len(filter_sales(SALES, '2023')) == 1


def test_filter_by_year_and_month():
    may = filter_sales(SALES, '2024', '5')
    assert [s['amount'] for s in may] == [290, 100]
    assert filter_sales(SALES, 2024, 12) == []


def test_all_years_ignores_month_and_keeps_undated():
    assert len(filter_sales(SALES, 'all', '5')) == len(SALES)
    assert len(filter_sales(SALES, '', '')) == len(SALES)


@pytest.mark.parametrize('year, month', [('2024', '13'), ('2024', '0'), ('dosmil', 'all'), (2024, 'mayo')])
def test_invalid_period(year, month):
    with pytest.raises(ValidationError):
        parse_period(year, month)


def test_parse_period():
    assert parse_period('2024', 'all') == (2024, None)
    assert parse_period(2024, '12') == (2024, 12)
    assert parse_period('all', '13') == (None, None)


def test_inventory_stats():
    products = [
        {'name': 'A', 'stock': 2, 'cost': 10},
        {'name': 'B', 'stock': 20, 'cost': 2.5},
        {'name': 'C', 'stock': None, 'cost': 100},
    ]
    stats = inventory_stats(products, threshold=5)
    assert stats == {
        'total_products': 3,
        'total_stock_units': 22,
        'total_stock_value_cost': 70,
        'low_stock_items': 2,
    }


def test_available_years_includes_current_year():
    years = available_years(SALES, today=datetime(2026, 1, 1))
    assert years == [2026, 2024, 2023]
    assert available_years([], today=datetime(2025, 6, 1)) == [2025]


def test_month_options():
    options = month_options()
    assert len(options) == 12
    assert options[0] == {'value': 1, 'label': 'Enero'}
    assert options[-1]['label'] == 'Diciembre'
