import os

import pytest

from app_ventas import performance_logger
from app_ventas.app_container import AppContainer
from app_ventas.main import create_app
from app_ventas.repositories import DocumentStore

UID = 'usuario0000000000000000000000001'


@pytest.fixture(autouse=True)
def logs_dir(tmp_path):
    """Cada test escribe sus logs en su propia carpeta temporal."""
    path = str(tmp_path / 'logs')
    performance_logger.configure(logs_dir=path, enabled=True)
    performance_logger.reset_stats()
    return path


@pytest.fixture
def data_dir(tmp_path):
    return str(tmp_path / 'data')


@pytest.fixture
def store(data_dir):
    return DocumentStore(data_dir)


@pytest.fixture
def container(data_dir):
    c = AppContainer(data_dir)
    yield c
    c.reset()


@pytest.fixture
def uid():
    return UID


@pytest.fixture
def app(data_dir, logs_dir):
    return create_app(data_dir=data_dir, logs_dir=logs_dir, testing=True)


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c


def read_log(logs_dir, name):
    path = os.path.join(logs_dir, name)
    if not os.path.exists(path):
        return ''
    with open(path, 'r', encoding='utf-8') as f:
        return f.read()
