# ==============================================================================
# CAPA DE REPOSITORIOS - Acceso a datos
# ==============================================================================
# Esta capa encapsula todo el acceso a la persistencia (JSON por usuario).
#
# ESTRUCTURA:
# ├── interfaces.py               → Protocolos (contratos)
# ├── base.py                     → DocumentStore, WriteBatch, CollectionRepository
# ├── inventory_repository.py     → Colección inventory
# ├── branch_repository.py        → Colección branches
# ├── branch_stock_repository.py  → Colección branchInventory
# └── sales_repository.py         → Colección sales
# ==============================================================================

from app_ventas.repositories.interfaces import (
    IWriteBatch,
    IDocumentStore,
    ICollectionRepository,
)

from app_ventas.repositories.base import (
    DocumentStore,
    WriteBatch,
    CollectionRepository,
    new_document_id,
)
from app_ventas.repositories.inventory_repository import InventoryRepository
from app_ventas.repositories.branch_repository import BranchRepository
from app_ventas.repositories.branch_stock_repository import BranchStockRepository
from app_ventas.repositories.sales_repository import SalesRepository

__all__ = [
    # Interfaces
    'IWriteBatch',
    'IDocumentStore',
    'ICollectionRepository',

    # Almacén
    'DocumentStore',
    'WriteBatch',
    'CollectionRepository',
    'new_document_id',

    # Colecciones
    'InventoryRepository',
    'BranchRepository',
    'BranchStockRepository',
    'SalesRepository',
]
