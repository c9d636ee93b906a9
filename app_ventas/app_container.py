# ==============================================================================
# CONTENEDOR DE DEPENDENCIAS - Inyección de servicios
# ==============================================================================
# Punto único donde se construyen el almacén, los repositorios y los
# servicios. Facilita:
#   - Inyección de dependencias
#   - Testing (cada app de prueba usa su propia carpeta de datos)
#   - Cambiar el almacén sin tocar los servicios
#
# Hay un contenedor por app Flask (app.extensions['app_ventas']), no un
# singleton global: dos apps en el mismo proceso no comparten datos.
#
# Cada usuario tiene además su LiveState (suscripciones a sus colecciones),
# creado al primer uso y cacheado aquí. Se guardan a lo sumo max_live_states:
# al pasarse se cierra el menos usado y se descarta su caché del almacén.
# ==============================================================================

import threading
from collections import OrderedDict
from typing import Optional

from app_ventas import config

# ═══════════════════════════════════════════════════════════════════════════════
# REPOSITORIOS - Capa de persistencia
# ═══════════════════════════════════════════════════════════════════════════════
from app_ventas.repositories import (
    DocumentStore,
    InventoryRepository,
    BranchRepository,
    BranchStockRepository,
    SalesRepository,
)

# ═══════════════════════════════════════════════════════════════════════════════
# SERVICIOS - Capa de lógica de negocio
# ═══════════════════════════════════════════════════════════════════════════════
from app_ventas.services import (
    AuthService,
    LiveState,
    InventoryService,
    ImportService,
    BranchService,
    SalesService,
)


class AppContainer:
    """
    Contenedor de dependencias de la aplicación.

    Uso:
        container = AppContainer(data_dir='/ruta/datos')
        container.sales_service.record_sale(uid, form, container.live_state(uid))
    """

    def __init__(self, data_dir: str = None, max_live_states: int = config.MAX_LIVE_STATES):
        """
        Args:
            data_dir: Carpeta de datos (por defecto config.DATA_DIR)
            max_live_states: Usuarios con estado en vivo abierto a la vez
        """
        self._data_dir = data_dir or config.DATA_DIR
        self.max_live_states = max_live_states
        self._lock = threading.Lock()
        self._live_states: "OrderedDict[str, LiveState]" = OrderedDict()
        self.reset()

    @property
    def data_dir(self) -> str:
        return self._data_dir

    # =========================================================================
    # ALMACÉN Y REPOSITORIOS
    # =========================================================================

    @property
    def store(self) -> DocumentStore:
        """Almacén de documentos (uno por contenedor)."""
        if self._store is None:
            self._store = DocumentStore(self._data_dir)
        return self._store

    @property
    def inventory_repo(self) -> InventoryRepository:
        if self._inventory_repo is None:
            self._inventory_repo = InventoryRepository(self.store)
        return self._inventory_repo

    @property
    def branch_repo(self) -> BranchRepository:
        if self._branch_repo is None:
            self._branch_repo = BranchRepository(self.store)
        return self._branch_repo

    @property
    def branch_stock_repo(self) -> BranchStockRepository:
        if self._branch_stock_repo is None:
            self._branch_stock_repo = BranchStockRepository(self.store)
        return self._branch_stock_repo

    @property
    def sales_repo(self) -> SalesRepository:
        if self._sales_repo is None:
            self._sales_repo = SalesRepository(self.store)
        return self._sales_repo

    # =========================================================================
    # SERVICIOS
    # =========================================================================

    @property
    def auth_service(self) -> AuthService:
        if self._auth_service is None:
            self._auth_service = AuthService(self._data_dir)
        return self._auth_service

    @property
    def inventory_service(self) -> InventoryService:
        if self._inventory_service is None:
            self._inventory_service = InventoryService(self.inventory_repo)
        return self._inventory_service

    @property
    def import_service(self) -> ImportService:
        if self._import_service is None:
            self._import_service = ImportService(self.inventory_repo)
        return self._import_service

    @property
    def branch_service(self) -> BranchService:
        if self._branch_service is None:
            self._branch_service = BranchService(
                self.branch_repo,
                self.branch_stock_repo,
                self.inventory_repo,
                self.sales_repo,
                self.inventory_service,
            )
        return self._branch_service

    @property
    def sales_service(self) -> SalesService:
        if self._sales_service is None:
            self._sales_service = SalesService(self.sales_repo, self.branch_stock_repo)
        return self._sales_service

    # =========================================================================
    # ESTADO EN VIVO POR USUARIO
    # =========================================================================

    def live_state(self, uid: str) -> LiveState:
        """
        Estado en vivo del usuario (se crea y suscribe al primer uso).
        Si los datos no se pudieron leer, ``state.error`` queda asignado.
        """
        evicted = []
        with self._lock:
            state = self._live_states.get(uid)
            if state is None or state.closed:
                state = LiveState(self.store, uid)
                self._live_states[uid] = state
            self._live_states.move_to_end(uid)
            while len(self._live_states) > self.max_live_states:
                evicted.append(self._live_states.popitem(last=False))

        for old_uid, old_state in evicted:
            old_state.close()
            self.store.reload(old_uid)
        return state

    def close_live_state(self, uid: str) -> None:
        with self._lock:
            state: Optional[LiveState] = self._live_states.pop(uid, None)
        if state is not None:
            state.close()

    # =========================================================================
    # UTILIDADES
    # =========================================================================

    def reset(self) -> None:
        """
        Reinicia todas las instancias (y cierra las suscripciones).
        Útil para testing o para recargar datos desde disco.
        """
        with self._lock:
            states = list(self._live_states.values())
            self._live_states = OrderedDict()
        for state in states:
            state.close()

        self._store: Optional[DocumentStore] = None
        self._inventory_repo: Optional[InventoryRepository] = None
        self._branch_repo: Optional[BranchRepository] = None
        self._branch_stock_repo: Optional[BranchStockRepository] = None
        self._sales_repo: Optional[SalesRepository] = None

        self._auth_service: Optional[AuthService] = None
        self._inventory_service: Optional[InventoryService] = None
        self._import_service: Optional[ImportService] = None
        self._branch_service: Optional[BranchService] = None
        self._sales_service: Optional[SalesService] = None
