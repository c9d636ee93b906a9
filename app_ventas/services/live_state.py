# ==============================================================================
# ESTADO EN VIVO - Última versión conocida de las colecciones del usuario
# ==============================================================================
# Se suscribe a las cuatro colecciones del usuario y guarda en memoria la
# lista más reciente de cada una. Las vistas y la validación de formularios
# leen de aquí: es el "último dato conocido", no una foto fija, así que
# puede estar desactualizado respecto de una escritura en curso.
#
# Los callbacks registrados con on_change() se llaman tras cada
# actualización (para recalcular vistas derivadas).
# ==============================================================================

import threading
from typing import Any, Callable, Dict, List, Optional

from app_ventas.exceptions import StoreError
from app_ventas.performance_logger import log_error
from app_ventas.repositories.base import CollectionRepository
from app_ventas.repositories.interfaces import IDocumentStore

# colección del almacén → atributo
_ATTRIBUTES = {
    'sales': 'sales',
    'inventory': 'inventory',
    'branches': 'branches',
    'branchInventory': 'branch_inventory',
}

_DATE_SORTED = ('sales', 'inventory')


class LiveState:
    """
    Vista en memoria de los datos de un usuario, mantenida por suscripción.

    Attributes:
        sales: Ventas (más recientes primero)
        inventory: Productos del catálogo (más recientes primero)
        branches: Sucursales
        branch_inventory: Registros de stock por sucursal
        version: Se incrementa con cada actualización recibida
        error: Último error de lectura del almacén, o None
    """

    def __init__(self, store: IDocumentStore, uid: str):
        self.uid = uid
        self.sales: List[Dict[str, Any]] = []
        self.inventory: List[Dict[str, Any]] = []
        self.branches: List[Dict[str, Any]] = []
        self.branch_inventory: List[Dict[str, Any]] = []
        self.version = 0
        self.error: Optional[StoreError] = None
        self._lock = threading.Lock()
        self._listeners: List[Callable[['LiveState', str], None]] = []
        self._unsubscribers = []
        # Última versión aplicada por colección; una entrega más vieja se descarta
        self._received = {collection: -1 for collection in _ATTRIBUTES}

        for collection in _ATTRIBUTES:
            self._unsubscribers.append(store.subscribe(
                uid,
                collection,
                self._make_handler(collection),
                on_error=self._handle_error,
            ))

    def _make_handler(self, collection: str):
        attribute = _ATTRIBUTES[collection]

        def handler(docs: List[Dict[str, Any]], version: int) -> None:
            if collection in _DATE_SORTED:
                docs = CollectionRepository.sort_by_date(docs)
            with self._lock:
                if version < self._received[collection]:
                    return
                self._received[collection] = version
                setattr(self, attribute, docs)
                self.version += 1
                listeners = list(self._listeners)
            for listener in listeners:
                listener(self, collection)

        return handler

    def _handle_error(self, exc: Exception) -> None:
        self.error = exc
        log_error('Suscripción a colecciones', exc, self.uid)

    def on_change(self, callback: Callable[['LiveState', str], None]) -> Callable[[], None]:
        """
        Registra un callback(live_state, collection) para cada actualización.

        Returns:
            Función que cancela el registro
        """
        with self._lock:
            self._listeners.append(callback)

        def remove() -> None:
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return remove

    # =========================================================================
    # CONSULTAS SOBRE EL ÚLTIMO ESTADO
    # =========================================================================

    def find_branch(self, branch_id: str) -> Optional[Dict[str, Any]]:
        return next((b for b in self.branches if b.get('id') == branch_id), None)

    def branch_entries(self, branch_id: str) -> List[Dict[str, Any]]:
        return [e for e in self.branch_inventory if e.get('branchId') == branch_id]

    def close(self) -> None:
        """Cancela todas las suscripciones."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        with self._lock:
            self._listeners = []

    @property
    def closed(self) -> bool:
        return not self._unsubscribers
