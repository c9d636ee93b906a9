import os
import threading

from app_ventas.app_container import AppContainer
from app_ventas.repositories import DocumentStore
from app_ventas.services import LiveState
from app_ventas.tests.conftest import read_log


def test_initial_state_and_updates(store, uid):
    store.add(uid, 'branches', {'name': 'Centro'})
    live = LiveState(store, uid)

    assert [b['name'] for b in live.branches] == ['Centro']
    assert live.sales == []
    assert live.error is None
    start = live.version

    branch_id = store.add(uid, 'branches', {'name': 'Norte'})
    store.add(uid, 'branchInventory', {'branchId': branch_id, 'productId': 'p1', 'stock': 4})

    assert len(live.branches) == 2
    assert live.find_branch(branch_id)['name'] == 'Norte'
    assert [e['stock'] for e in live.branch_entries(branch_id)] == [4]
    assert live.version == start + 2


def test_inventory_and_sales_are_newest_first(store, uid):
    live = LiveState(store, uid)
    store.add(uid, 'inventory', {'name': 'Viejo', 'date': '2023-01-01T00:00:00'})
    store.add(uid, 'inventory', {'name': 'Nuevo', 'date': '2024-01-01T00:00:00'})

    assert [p['name'] for p in live.inventory] == ['Nuevo', 'Viejo']


def test_on_change_listeners(store, uid):
    live = LiveState(store, uid)
    seen = []
    remove = live.on_change(lambda state, collection: seen.append(collection))

    store.add(uid, 'sales', {'amount': 10})
    assert seen == ['sales']

    remove()
    store.add(uid, 'sales', {'amount': 20})
    assert seen == ['sales']


def test_close_stops_updates(store, uid):
    live = LiveState(store, uid)
    assert not live.closed
    assert store.subscriber_count(uid, 'sales') == 1

    live.close()
    store.add(uid, 'sales', {'amount': 10})

    assert live.closed
    assert live.sales == []
    assert store.subscriber_count(uid, 'sales') == 0


def test_read_error_is_recorded_and_logged(data_dir, uid, logs_dir):
    os.makedirs(os.path.join(data_dir, 'users'))
    with open(os.path.join(data_dir, 'users', f'{uid}.json'), 'w', encoding='utf-8') as f:
        f.write('{roto')

    live = LiveState(DocumentStore(data_dir), uid)

    assert live.error is not None
    assert live.sales == []
    assert 'Suscripción a colecciones' in read_log(logs_dir, 'errors.log')


def test_container_recreates_closed_state(container, uid):
    first = container.live_state(uid)
    assert container.live_state(uid) is first

    container.close_live_state(uid)
    assert first.closed
    second = container.live_state(uid)
    assert second is not first
    assert not second.closed


def test_late_delivery_does_not_overwrite_newer_state(store, uid):
    stalled = threading.Event()
    release = threading.Event()

    def slow_view(docs, version):
        # Frena solo la entrega del primer commit
        if docs and not stalled.is_set():
            stalled.set()
            release.wait(5)

    store.subscribe(uid, 'branches', slow_view)
    live = LiveState(store, uid)

    writer = threading.Thread(target=store.add, args=(uid, 'branches', {'name': 'A'}))
    writer.start()
    assert stalled.wait(5)

    store.add(uid, 'branches', {'name': 'B'})
    assert sorted(b['name'] for b in live.branches) == ['A', 'B']

    release.set()
    writer.join(5)

    assert sorted(b['name'] for b in live.branches) == ['A', 'B']
    assert sorted(b['name'] for b in store.list(uid, 'branches')) == ['A', 'B']


def test_container_closes_least_recently_used_states(data_dir):
    container = AppContainer(data_dir, max_live_states=3)
    uids = [f'visitante{i}' for i in range(5)]
    states = [container.live_state(u) for u in uids]

    assert [s.closed for s in states] == [True, True, False, False, False]
    assert container.store.subscriber_count('visitante0', 'sales') == 0
    assert container.store.cached_users() == 3

    # Usar un estado lo vuelve el más reciente
    container.live_state('visitante2')
    container.live_state('visitante5')
    assert not states[2].closed
    assert states[3].closed
    container.reset()
