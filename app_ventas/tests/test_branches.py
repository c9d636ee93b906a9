import threading

import pytest

from app_ventas.services import join_branch_stock, parse_quantity
from app_ventas.exceptions import ValidationError


@pytest.fixture
def catalog(container, uid):
    """Una sucursal y un producto con 100 unidades en bodega."""
    branch_id = container.branch_service.add_branch(uid, '  Tienda Centro ')['id']
    product_id = container.inventory_service.add_product(
        uid, {'name': 'Café 250g', 'stock': 100, 'cost': 60, 'date': '2024-01-01'},
    )['id']
    return branch_id, product_id


def test_add_branch_trims_name(container, uid, catalog):
    branch_id, _ = catalog
    assert container.store.get(uid, 'branches', branch_id)['name'] == 'Tienda Centro'


def test_add_branch_requires_name(container, uid):
    result = container.branch_service.add_branch(uid, '   ')
    assert result['ok'] is False
    assert result['field'] == 'name'
    assert container.store.list(uid, 'branches') == []


def test_list_branches_sorted_by_name(container, uid):
    for name in ('Norte', 'centro', 'Aeropuerto'):
        container.branch_service.add_branch(uid, name)
    names = [b['name'] for b in container.branch_service.list_branches(uid)]
    assert names == ['Aeropuerto', 'centro', 'Norte']


def test_rename_branch(container, uid, catalog):
    branch_id, _ = catalog
    assert container.branch_service.rename_branch(uid, branch_id, 'Centro II')['ok'] is True
    assert container.store.get(uid, 'branches', branch_id)['name'] == 'Centro II'
    assert container.branch_service.rename_branch(uid, 'nope', 'X')['code'] == 'not_found'


def test_distribute_creates_then_increments(container, uid, catalog):
    branch_id, product_id = catalog

    first = container.branch_service.distribute(uid, branch_id, product_id, 5)
    assert first['ok'] is True
    assert (first['stock'], first['created']) == (5, True)

    second = container.branch_service.distribute(uid, branch_id, product_id, '5')
    assert (second['stock'], second['created']) == (10, False)
    assert second['entry_id'] == first['entry_id']

    entries = container.store.list(uid, 'branchInventory')
    assert len(entries) == 1
    assert entries[0]['stock'] == 10
    assert entries[0]['id'] == first['entry_id']


def test_concurrent_distributions_share_one_entry(container, uid, catalog):
    branch_id, product_id = catalog
    start = threading.Barrier(8)
    results = []

    def worker():
        start.wait()
        for _ in range(5):
            results.append(container.branch_service.distribute(uid, branch_id, product_id, 2))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert all(r['ok'] for r in results)
    assert sum(1 for r in results if r['created']) == 1
    assert len({r['entry_id'] for r in results}) == 1
    assert sorted(r['stock'] for r in results) == list(range(2, 81, 2))

    entries = container.store.list(uid, 'branchInventory')
    assert len(entries) == 1
    assert entries[0]['stock'] == 80


def test_distribute_does_not_change_catalog_stock(container, uid, catalog):
    branch_id, product_id = catalog
    container.branch_service.distribute(uid, branch_id, product_id, 30)
    assert container.store.get(uid, 'inventory', product_id)['stock'] == 100


@pytest.mark.parametrize('branch, product, quantity, field', [
    ('nope', None, 5, 'branchId'),
    (None, 'nope', 5, 'productId'),
    (None, None, 0, 'quantity'),
    (None, None, -2, 'quantity'),
    (None, None, 1.5, 'quantity'),
    (None, None, '', 'quantity'),
])
def test_distribute_validation(container, uid, catalog, branch, product, quantity, field):
    branch_id, product_id = catalog
    result = container.branch_service.distribute(uid, branch or branch_id, product or product_id, quantity)

    assert result['ok'] is False
    assert result['field'] == field
    assert container.store.list(uid, 'branchInventory') == []


def test_parse_quantity():
    assert parse_quantity('7') == 7
    with pytest.raises(ValidationError):
        parse_quantity('2.5')


def test_join_branch_stock_prefers_entry_fields_and_flags_orphans():
    products = [{'id': 'p1', 'name': 'Café', 'cost': 60, 'stock': 100}]
    entries = [
        {'id': 'e1', 'branchId': 'b1', 'productId': 'p1', 'stock': 7},
        {'id': 'e2', 'branchId': 'b1', 'productId': 'borrado', 'stock': 3},
    ]

    joined = join_branch_stock(entries, products)

    assert joined[0]['name'] == 'Café'
    assert joined[0]['stock'] == 7
    assert joined[0]['id'] == 'e1'
    assert joined[0]['branchInventoryId'] == 'e1'
    assert joined[0]['orphaned'] is False
    assert joined[1]['orphaned'] is True


def test_branch_overview(container, uid, catalog):
    branch_id, product_id = catalog
    other_id = container.branch_service.add_branch(uid, 'Norte')['id']
    container.branch_service.distribute(uid, branch_id, product_id, 10)
    container.branch_service.distribute(uid, other_id, product_id, 2)

    live = container.live_state(uid)
    container.sales_service.record_sale(uid, {
        'branchId': branch_id, 'productId': product_id, 'quantity': 3, 'unitPrice': 100, 'discount': 10,
    }, live)

    overview = container.branch_service.branch_overview(uid, branch_id)

    assert overview['ok'] is True
    assert overview['branch']['name'] == 'Tienda Centro'
    assert [(p['name'], p['stock'], p['stockBadge']) for p in overview['products']] == [('Café 250g', 7, 'yellow')]
    assert len(overview['sales']) == 1
    assert overview['stats']['total_revenue'] == pytest.approx(290)

    assert container.branch_service.branch_overview(uid, 'nope')['code'] == 'not_found'


def test_branch_overview_keeps_entries_of_deleted_products(container, uid, catalog):
    branch_id, product_id = catalog
    container.branch_service.distribute(uid, branch_id, product_id, 4)
    container.inventory_service.delete_product(uid, product_id)

    overview = container.branch_service.branch_overview(uid, branch_id)
    assert overview['products'][0]['orphaned'] is True
    assert container.branch_service.available_products(uid, branch_id) == []


def test_available_products(container, uid, catalog):
    branch_id, product_id = catalog
    container.branch_service.distribute(uid, branch_id, product_id, 4)

    products = container.branch_service.available_products(uid, branch_id)
    assert [(p['productId'], p['name'], p['stock'], p['cost']) for p in products] == [(product_id, 'Café 250g', 4, 60)]
