import io

import pytest


@pytest.fixture
def token(client):
    response = client.get('/api/session')
    assert response.status_code == 200
    return response.get_json()['csrf_token']


def _post(client, token, url, **kwargs):
    return client.post(url, headers={'X-CSRF-Token': token}, **kwargs)


def test_session_returns_uid_and_is_reused(client):
    first = client.get('/api/session').get_json()
    second = client.get('/api/session').get_json()

    assert first['ok'] is True
    assert len(first['uid']) == 32
    assert second['uid'] == first['uid']
    assert second['csrf_token'] == first['csrf_token']


def test_data_routes_require_session(client):
    assert client.get('/api/sales').status_code == 401
    assert client.post('/api/branches', json={'name': 'Centro'}).status_code == 401


def test_post_requires_csrf_token(client, token):
    response = client.post('/api/branches', json={'name': 'Centro'})
    assert response.status_code == 403

    response = client.post('/api/branches', json={'name': 'Centro'}, headers={'X-CSRF-Token': 'otro'})
    assert response.status_code == 403

    response = client.post('/api/branches', json={'name': 'Centro', 'csrf_token': token})
    assert response.status_code == 201


def test_csrf_check_rejects_non_object_json(client, token):
    response = client.post('/api/branches', json=[1])
    assert response.status_code == 403
    assert response.get_json()['ok'] is False


def test_full_sale_flow(client, token):
    branch = _post(client, token, '/api/branches', json={'name': 'Centro'})
    assert branch.status_code == 201
    branch_id = branch.get_json()['id']

    product = _post(client, token, '/api/inventory', json={
        'name': 'Café 250g', 'stock': '40', 'cost': '60', 'shippingCost': '', 'date': '2024-01-01',
    })
    assert product.status_code == 201
    product_id = product.get_json()['id']

    distributed = _post(client, token, f'/api/branches/{branch_id}/distribute', json={
        'productId': product_id, 'quantity': '10',
    })
    assert distributed.status_code == 200
    assert distributed.get_json()['stock'] == 10

    options = client.get(f'/api/branches/{branch_id}/products').get_json()
    assert [p['productId'] for p in options['products']] == [product_id]

    sale_form = {
        'branchId': branch_id, 'productId': product_id,
        'quantity': '3', 'unitPrice': '100', 'discount': '10', 'date': '2024-05-10',
    }
    preview = _post(client, token, '/api/sales/preview', json=sale_form).get_json()
    assert preview['net'] == 290

    sale = _post(client, token, '/api/sales', json=sale_form)
    assert sale.status_code == 201
    body = sale.get_json()
    assert body['stock'] == 7
    assert body['clear_form'] is True
    assert body['sale']['amount'] == 290

    too_many = _post(client, token, '/api/sales', json=dict(sale_form, quantity='8'))
    assert too_many.status_code == 400
    assert too_many.get_json()['field'] == 'quantity'

    sales = client.get('/api/sales?year=2024').get_json()
    assert sales['stats']['total_revenue'] == 290
    assert sales['stats']['total_profit'] == 110
    assert 2024 in sales['years']
    assert sales['filter'] == {'year': '2024', 'month': 'all'}

    assert client.get('/api/sales?year=2023').get_json()['sales'] == []
    assert client.get('/api/sales?year=2024&month=13').status_code == 400

    overview = client.get(f'/api/branches/{branch_id}').get_json()
    assert overview['products'][0]['stock'] == 7
    assert overview['stats']['total_sales'] == 1


def test_form_encoded_posts(client, token):
    response = client.post('/api/branches', data={'name': 'Norte', 'csrf_token': token})
    assert response.status_code == 201

    renamed = _post(client, token, f"/api/branches/{response.get_json()['id']}", data={'name': 'Norte II'})
    assert renamed.status_code == 200
    assert [b['name'] for b in client.get('/api/branches').get_json()['branches']] == ['Norte II']


def test_inventory_listing(client, token):
    _post(client, token, '/api/inventory', json={'name': 'Café', 'stock': 3, 'cost': 10, 'date': '2024-02-01'})
    _post(client, token, '/api/inventory', json={'name': 'Té', 'stock': 30, 'cost': 2, 'date': '2024-01-01'})

    body = client.get('/api/inventory').get_json()
    assert [(p['name'], p['stockBadge']) for p in body['products']] == [('Café', 'red'), ('Té', '')]
    assert body['stats'] == {
        'total_products': 2,
        'total_stock_units': 33,
        'total_stock_value_cost': 90,
        'low_stock_items': 1,
    }

    found = client.get('/api/inventory', query_string={'q': 'té'}).get_json()
    assert [p['name'] for p in found['products']] == ['Té']
    # El resumen siempre cubre todo el catálogo
    assert found['stats']['total_products'] == 2


def test_edit_and_delete_product(client, token):
    product_id = _post(client, token, '/api/inventory', json={'name': 'Café', 'stock': 3, 'cost': 10}).get_json()['id']

    edited = _post(client, token, f'/api/inventory/{product_id}', json={'name': 'Café molido', 'stock': 8, 'cost': 12})
    assert edited.status_code == 200
    assert edited.get_json()['product']['name'] == 'Café molido'

    invalid = _post(client, token, f'/api/inventory/{product_id}', json={'name': 'Café', 'stock': -1, 'cost': 12})
    assert invalid.status_code == 400
    assert invalid.get_json()['field'] == 'stock'

    assert _post(client, token, f'/api/inventory/{product_id}/delete').status_code == 200
    assert _post(client, token, f'/api/inventory/{product_id}/delete').status_code == 404


def test_csv_import_multipart(client, token):
    csv_bytes = (
        '\ufeffdate,sku,barcode,brand,name,stock,cost,shippingCost\n'
        '2024-01-15,CAF-1,7790001,Andes,Café 250g,20,60,100\n'
        '2024-01-16,TE-1,7790002,Andes,Té verde,8,35,\n'
    ).encode('utf-8')

    response = _post(
        client, token, '/api/inventory/import',
        data={'file': (io.BytesIO(csv_bytes), 'productos.csv')},
        content_type='multipart/form-data',
    )

    assert response.status_code == 201
    assert response.get_json()['count'] == 2
    assert len(client.get('/api/inventory').get_json()['products']) == 2


def test_csv_import_rejects_bad_rows_and_encoding(client, token):
    bad = 'date,sku,barcode,brand,name,stock,cost,shippingCost\n2024-01-15,A,1,M,Uno,muchos,1,0\n'
    response = _post(client, token, '/api/inventory/import', data=bad, content_type='text/csv')
    assert response.status_code == 400
    assert response.get_json()['errors'][0].startswith('Fila 2')

    latin1 = _post(
        client, token, '/api/inventory/import',
        data={'file': (io.BytesIO('name\nCafé\n'.encode('latin-1')), 'x.csv')},
        content_type='multipart/form-data',
    )
    assert latin1.status_code == 400
    assert client.get('/api/inventory').get_json()['products'] == []


def test_unknown_branch_and_route(client, token):
    assert client.get('/api/branches/nope').status_code == 404
    assert client.get('/api/branches/nope/products').status_code == 404
    missing = _post(client, token, '/api/branches/nope/distribute', json={'productId': 'x', 'quantity': 1})
    assert missing.status_code == 400
    assert missing.get_json()['field'] == 'branchId'

    response = client.get('/api/no-existe')
    assert response.status_code == 404
    assert response.get_json()['ok'] is False


def test_security_headers(client):
    response = client.get('/api/session')
    assert response.headers['X-Frame-Options'] == 'DENY'
    assert response.headers['X-Content-Type-Options'] == 'nosniff'
