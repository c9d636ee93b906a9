import pytest

from app_ventas.exceptions import ValidationError
from app_ventas.services import parse_csv

HEADER = 'date,sku,barcode,brand,name,stock,cost,shippingCost'


def _csv(*rows, header=HEADER):
    return '\n'.join((header,) + rows) + '\n'


def test_import_valid_file_writes_all_products(container, uid):
    text = _csv(
        '2024-01-15,CAF-1,7790001,Andes,Café 250g,20,60,100',
        '2024-01-16,TE-1,7790002,Andes,Té verde,8,35,',
    )

    result = container.import_service.import_csv(uid, text)

    assert result['ok'] is True
    assert result['count'] == 2
    products = {p['name']: p for p in container.store.list(uid, 'inventory')}
    assert products['Café 250g']['stock'] == 20
    assert products['Café 250g']['shippingCost'] == 100
    assert products['Té verde']['shippingCost'] == 0
    assert products['Té verde']['price'] == 0
    assert products['Té verde']['date'] == '2024-01-16T00:00:00'


def test_any_row_error_aborts_whole_import(container, uid):
    text = _csv(
        '2024-01-15,CAF-1,7790001,Andes,Café 250g,20,60,100',
        '2024-01-16,TE-1,7790002,Andes,Té verde,muchos,35,0',
        '2024-01-17,YE-1,7790003,Andes,Yerba,5,40',
    )

    result = container.import_service.import_csv(uid, text)

    assert result['ok'] is False
    assert result['field'] == 'file'
    assert len(result['errors']) == 2
    assert result['errors'][0].startswith('Fila 3')
    assert result['errors'][1].startswith('Fila 4')
    assert container.store.list(uid, 'inventory') == []


def test_missing_headers_rejects_file(container, uid):
    text = _csv('2024-01-15,Café,20,60', header='date,name,stock,cost')

    result = container.import_service.import_csv(uid, text)

    assert result['ok'] is False
    assert 'sku' in result['error']
    assert result['details']['missing_headers'] == ['sku', 'barcode', 'brand', 'shippingCost']
    assert container.store.list(uid, 'inventory') == []


@pytest.mark.parametrize('text', ['', '\n\n', HEADER + '\n', '\n' + HEADER + '\n   \n'])
def test_empty_or_header_only_file(container, uid, text):
    result = container.import_service.import_csv(uid, text)
    assert result['ok'] is False
    assert result['field'] == 'file'


def test_blank_name_gets_row_label_and_blank_lines_are_skipped():
    products, errors = parse_csv(_csv('', '2024-02-01,,,,,3,10,0'))
    assert errors == []
    assert products[0].name == 'Producto fila 2'
    assert products[0].stock == 3


def test_invalid_date_and_negative_values_are_row_errors():
    products, errors = parse_csv(_csv(
        '01/02/2024,A,1,M,Uno,3,10,0',
        '2024-02-01,B,2,M,Dos,-3,10,0',
    ))
    assert products == []
    assert 'fecha' in errors[0]
    assert 'negativo' in errors[1]


def test_columns_can_come_in_any_order_and_be_quoted():
    header = 'name,stock,cost,shippingCost,date,sku,barcode,brand,notes'
    products, errors = parse_csv(_csv('"Galletas, surtidas",4,2.5,,2024-02-01,G1,,Dulce,"sin TACC"', header=header))
    assert errors == []
    assert products[0].name == 'Galletas, surtidas'
    assert products[0].cost == 2.5
    assert products[0].brand == 'Dulce'


def test_parse_csv_raises_for_file_level_problems():
    with pytest.raises(ValidationError):
        parse_csv(HEADER)
